# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
A build, sign and submit pipeline for high-throughput transaction submission
from a single sender.

Payloads flow through three stages connected by bounded queues::

    submit() -> [builder] -> built -> [signer x N] -> signed -> [submitter] -> outcomes()

- The builder seeds a :class:`SequenceNumberTracker` from the chain once, then
  gives every payload the next sequence number. Sequence numbers therefore
  leave the builder strictly increasing. Nonce-based (orderless) payloads
  skip the tracker.
- Signers apply ``sign_fn`` to each built transaction. The default signs as
  the single sender; multi-agent and fee-payer transactions need a
  ``sign_fn`` that gathers the other signatures.
- The submitter posts each signed transaction and reports a
  :class:`TransactionSubmissionResponse` per payload id.

Errors never stop the pipeline: a payload that fails to build, sign or submit
produces an outcome carrying the error, and later payloads keep flowing.
:meth:`TransactionPipeline.close` drains the pipeline stage by stage, after
which :meth:`TransactionPipeline.outcomes` ends.

Examples:
    ::

        pipeline = TransactionPipeline(rest_client, alice)
        pipeline.start()
        for payload in payloads:
            await pipeline.submit(payload)
        await pipeline.close()
        async for outcome in pipeline.outcomes():
            print(outcome.id, outcome.hash, outcome.error)

    Or, for a fixed batch::

        outcomes = await TransactionPipeline(rest_client, alice).run_batch(payloads)
"""

from __future__ import annotations

import asyncio
import dataclasses
import inspect
import logging
import threading
import unittest
import unittest.mock
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, List, Optional, Union

from .account import Account
from .account_address import AccountAddress
from .account_sequence_number import SequenceNumberTracker
from .async_client import RestClient
from .authenticator import Authenticator, FeePayerAuthenticator
from .bcs import Serializer
from .errors import ChannelClosedError, RangeError, UnsupportedError
from .transaction_builder import AnyRawTransaction, TransactionBuilder, TransactionOptions
from .transactions import (
    EntryFunction,
    FeePayerRawTransaction,
    SignedTransaction,
    TransactionArgument,
    TransactionPayload,
)

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 20

_END = object()


class TransactionKind:
    SINGLE = "single"
    MULTI_AGENT = "multi_agent"
    FEE_PAYER = "fee_payer"


@dataclass
class TransactionBuildPayload:
    id: int
    payload: TransactionPayload
    options: Optional[TransactionOptions] = None
    kind: str = TransactionKind.SINGLE


@dataclass
class TransactionBuildResponse:
    id: int
    transaction: Optional[AnyRawTransaction]
    error: Optional[Exception] = None
    kind: str = TransactionKind.SINGLE


@dataclass
class SignedTransactionResponse:
    id: int
    transaction: Optional[SignedTransaction]
    error: Optional[Exception] = None


@dataclass
class TransactionSubmissionResponse:
    id: int
    hash: Optional[str]
    error: Optional[Exception] = None


SignFunction = Callable[
    [TransactionBuildResponse],
    Union[SignedTransaction, Awaitable[SignedTransaction]],
]


class TransactionPipeline:
    """Concurrent builder, signers and submitter for one sender's transactions.

    Args:
        client: Node used to seed the sequence number and to submit.
        sender: Account whose transactions flow through the pipeline.
        sign_fn: Turns a :class:`TransactionBuildResponse` into a
            :class:`SignedTransaction`; may be a coroutine function.
        workers: Number of concurrent signers.
        capacity: Size of each bounded queue between stages.
    """

    _client: RestClient
    _sender: Account
    _sign_fn: Optional[SignFunction]
    _workers: int
    _tracker: SequenceNumberTracker

    _payloads: asyncio.Queue
    _control: asyncio.Queue
    _built: asyncio.Queue
    _signed: asyncio.Queue
    _outcomes: asyncio.Queue

    _tasks: List[asyncio.Task]
    _started: bool
    _closed: bool
    _finished: bool
    _next_id: int

    def __init__(
        self,
        client: RestClient,
        sender: Account,
        sign_fn: Optional[SignFunction] = None,
        workers: int = 1,
        capacity: int = DEFAULT_CAPACITY,
    ):
        if workers < 1:
            raise RangeError(f"workers must be at least 1, got {workers}")
        self._client = client
        self._sender = sender
        self._sign_fn = sign_fn
        self._workers = workers
        self._tracker = SequenceNumberTracker()

        self._payloads = asyncio.Queue(maxsize=capacity)
        self._control = asyncio.Queue()
        self._built = asyncio.Queue(maxsize=capacity)
        self._signed = asyncio.Queue(maxsize=capacity)
        self._outcomes = asyncio.Queue()

        self._tasks = []
        self._started = False
        self._closed = False
        self._finished = False
        self._next_id = 0

    @property
    def tracker(self) -> SequenceNumberTracker:
        return self._tracker

    def start(self):
        if self._started:
            raise RuntimeError("Already started")
        self._started = True

        self._tasks.append(asyncio.create_task(self._build_transactions()))
        for _ in range(self._workers):
            self._tasks.append(asyncio.create_task(self._sign_transactions()))
        self._tasks.append(asyncio.create_task(self._submit_transactions()))

    async def submit(
        self,
        payload: TransactionPayload,
        options: Optional[TransactionOptions] = None,
        kind: str = TransactionKind.SINGLE,
        id: Optional[int] = None,
    ) -> int:
        """Queue a payload, returning the id its outcome will carry.

        Raises:
            ChannelClosedError: If :meth:`close` was already called.
        """
        if self._closed:
            raise ChannelClosedError("Pipeline is closed")
        if id is None:
            id = self._next_id
        self._next_id = max(self._next_id, id + 1)
        await self._payloads.put(TransactionBuildPayload(id, payload, options, kind))
        return id

    def set_sequence_number(self, sequence_number: int):
        """Make the next sequence-based payload use ``sequence_number``.

        Applied by the builder before the next payload it takes.
        """
        self._control.put_nowait(sequence_number)

    async def close(self):
        """Stop accepting payloads; queued ones still flow to the outcomes."""
        if self._closed:
            return
        self._closed = True
        await self._payloads.put(_END)

    async def outcomes(self) -> AsyncIterator[TransactionSubmissionResponse]:
        """Yield outcomes as they arrive, until the pipeline has drained."""
        while not self._finished:
            outcome = await self._outcomes.get()
            if outcome is _END:
                self._finished = True
                return
            yield outcome

    async def run_batch(
        self,
        payloads: List[TransactionPayload],
        options: Optional[TransactionOptions] = None,
        kind: str = TransactionKind.SINGLE,
    ) -> List[TransactionSubmissionResponse]:
        """Push ``payloads`` through and return every outcome, ordered by id."""
        if not self._started:
            self.start()
        for payload in payloads:
            await self.submit(payload, options, kind)
        await self.close()
        results = [outcome async for outcome in self.outcomes()]
        await self.wait()
        return sorted(results, key=lambda outcome: outcome.id)

    async def wait(self):
        await asyncio.gather(*self._tasks)

    def stop(self):
        """Cancel every stage without draining; :meth:`outcomes` then ends."""
        self._closed = True
        for task in self._tasks:
            task.cancel()
        self._outcomes.put_nowait(_END)

    #
    # Stages
    #

    async def _build_transactions(self):
        builder = TransactionBuilder(self._client)
        chain_id: Optional[int] = None
        seed_error: Optional[Exception] = None
        try:
            self._tracker.update(
                await self._client.account_sequence_number(self._sender.address())
            )
            chain_id = await self._client.chain_id()
        except Exception as e:
            logger.warning("Unable to seed pipeline for %s: %s", self._sender.address(), e)
            seed_error = e

        try:
            while True:
                item = await self._payloads.get()
                if item is _END:
                    break
                self._apply_control()
                if seed_error is not None:
                    response = TransactionBuildResponse(item.id, None, seed_error, item.kind)
                else:
                    response = await self._build(builder, item, chain_id)
                await self._built.put(response)
        except Exception as e:
            logger.error(e, exc_info=True)
        finally:
            for _ in range(self._workers):
                await self._built.put(_END)

    async def _build(
        self,
        builder: TransactionBuilder,
        item: TransactionBuildPayload,
        chain_id: Optional[int],
    ) -> TransactionBuildResponse:
        try:
            options = _options_for_kind(
                item.options or self._client.transaction_options(), item.kind
            )
            orderless = (
                options.replay_protection_nonce is not None
                or item.payload.replay_protection_nonce() is not None
            )
            if not orderless:
                options = dataclasses.replace(
                    options, sequence_number=self._tracker.increment()
                )
            options = dataclasses.replace(options, chain_id=chain_id)
            transaction = await builder.build(
                self._sender.address(), item.payload, options
            )
            return TransactionBuildResponse(item.id, transaction, None, item.kind)
        except Exception as e:
            logger.warning("Failed to build transaction %s: %s", item.id, e)
            return TransactionBuildResponse(item.id, None, e, item.kind)

    def _apply_control(self):
        while not self._control.empty():
            sequence_number = self._control.get_nowait()
            previous = self._tracker.update(sequence_number)
            logger.warning(
                "Sequence number for %s moved from %s to %s",
                self._sender.address(),
                previous,
                sequence_number,
            )

    async def _sign_transactions(self):
        try:
            while True:
                item = await self._built.get()
                if item is _END:
                    break
                if item.error is not None:
                    await self._signed.put(
                        SignedTransactionResponse(item.id, None, item.error)
                    )
                    continue
                try:
                    signed = await self._sign(item)
                    response = SignedTransactionResponse(item.id, signed)
                except Exception as e:
                    logger.warning("Failed to sign transaction %s: %s", item.id, e)
                    response = SignedTransactionResponse(item.id, None, e)
                await self._signed.put(response)
        except Exception as e:
            logger.error(e, exc_info=True)
        finally:
            await self._signed.put(_END)

    async def _sign(self, item: TransactionBuildResponse) -> SignedTransaction:
        if self._sign_fn is not None:
            signed = self._sign_fn(item)
            if inspect.isawaitable(signed):
                signed = await signed
            return signed
        if item.kind != TransactionKind.SINGLE:
            raise UnsupportedError(
                f"{item.kind} transactions need a sign_fn to collect every signature"
            )
        transaction = item.transaction
        # Signing is CPU bound; keep it off the event loop.
        authenticator = await asyncio.to_thread(self._sender.sign_transaction, transaction)
        return SignedTransaction(transaction, authenticator)

    async def _submit_transactions(self):
        remaining = self._workers
        try:
            while remaining:
                item = await self._signed.get()
                if item is _END:
                    remaining -= 1
                    continue
                if item.error is not None:
                    outcome = TransactionSubmissionResponse(item.id, None, item.error)
                else:
                    try:
                        txn_hash = await self._client.submit_bcs_transaction(
                            item.transaction
                        )
                        outcome = TransactionSubmissionResponse(item.id, txn_hash)
                    except Exception as e:
                        logger.warning("Failed to submit transaction %s: %s", item.id, e)
                        outcome = TransactionSubmissionResponse(item.id, None, e)
                await self._outcomes.put(outcome)
        except Exception as e:
            logger.error(e, exc_info=True)
        finally:
            await self._outcomes.put(_END)


def _options_for_kind(options: TransactionOptions, kind: str) -> TransactionOptions:
    if kind == TransactionKind.SINGLE:
        return dataclasses.replace(options, fee_payer=None, additional_signers=[])
    if kind == TransactionKind.MULTI_AGENT:
        return dataclasses.replace(options, fee_payer=None)
    if kind == TransactionKind.FEE_PAYER:
        fee_payer = options.fee_payer or AccountAddress.from_str("0x0")
        return dataclasses.replace(options, fee_payer=fee_payer)
    raise UnsupportedError(f"Unknown transaction kind {kind!r}")


class Test(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.submitted: List[SignedTransaction] = []
        self.patchers = [
            unittest.mock.patch(
                "aptos_kit.async_client.RestClient.account_sequence_number",
                return_value=5,
            ),
            unittest.mock.patch(
                "aptos_kit.async_client.RestClient.chain_id", return_value=4
            ),
            unittest.mock.patch(
                "aptos_kit.async_client.RestClient.submit_bcs_transaction",
                side_effect=self.record,
            ),
        ]
        for patcher in self.patchers:
            patcher.start()
        self.rest_client = RestClient("https://fullnode.devnet.aptoslabs.com/v1")
        self.sender = Account.generate()

    async def asyncTearDown(self):
        for patcher in self.patchers:
            patcher.stop()
        await self.rest_client.close()

    async def collect(self, pipeline: TransactionPipeline) -> list:
        return [outcome async for outcome in pipeline.outcomes()]

    def record(self, signed: SignedTransaction) -> str:
        self.submitted.append(signed)
        return signed.hash()

    def payload(self, amount: int = 1) -> TransactionPayload:
        return TransactionPayload(
            EntryFunction.natural(
                "0x1::aptos_account",
                "transfer",
                [],
                [
                    TransactionArgument(AccountAddress.from_str("0xf"), Serializer.struct),
                    TransactionArgument(amount, Serializer.u64),
                ],
            )
        )

    async def test_contiguous_sequence_numbers(self):
        pipeline = TransactionPipeline(self.rest_client, self.sender, workers=4)
        outcomes = await pipeline.run_batch([self.payload(i) for i in range(100)])

        self.assertEqual([outcome.id for outcome in outcomes], list(range(100)))
        self.assertTrue(all(outcome.error is None for outcome in outcomes))
        sequence_numbers = sorted(s.transaction.sequence_number for s in self.submitted)
        self.assertEqual(sequence_numbers, list(range(5, 105)))
        self.assertTrue(all(s.verify() for s in self.submitted))
        self.assertEqual(
            {outcome.hash for outcome in outcomes}, {s.hash() for s in self.submitted}
        )
        # The outcome stream ends exactly once.
        self.assertEqual([outcome async for outcome in pipeline.outcomes()], [])

    async def test_stop_ends_outcomes(self):
        pipeline = TransactionPipeline(self.rest_client, self.sender)
        pipeline.start()
        await pipeline.submit(self.payload())
        pipeline.stop()
        outcomes = await asyncio.wait_for(self.collect(pipeline), timeout=5)
        self.assertLessEqual(len(outcomes), 1)
        with self.assertRaises(ChannelClosedError):
            await pipeline.submit(self.payload())
        await asyncio.gather(*pipeline._tasks, return_exceptions=True)

    async def test_default_signing_runs_off_the_event_loop(self):
        loop_thread = threading.get_ident()
        signing_threads = []
        sign_transaction = Account.sign_transaction

        def record_thread(account, transaction):
            signing_threads.append(threading.get_ident())
            return sign_transaction(account, transaction)

        with unittest.mock.patch.object(Account, "sign_transaction", record_thread):
            pipeline = TransactionPipeline(self.rest_client, self.sender, workers=2)
            outcomes = await pipeline.run_batch([self.payload(i) for i in range(4)])

        self.assertTrue(all(outcome.error is None for outcome in outcomes))
        self.assertEqual(len(signing_threads), 4)
        self.assertNotIn(loop_thread, signing_threads)
        self.assertTrue(all(s.verify() for s in self.submitted))

    async def test_submit_after_close(self):
        pipeline = TransactionPipeline(self.rest_client, self.sender)
        pipeline.start()
        await pipeline.close()
        with self.assertRaises(ChannelClosedError):
            await pipeline.submit(self.payload())
        self.assertEqual([outcome async for outcome in pipeline.outcomes()], [])
        await pipeline.wait()

    async def test_errors_do_not_stop_the_pipeline(self):
        pipeline = TransactionPipeline(self.rest_client, self.sender)
        with unittest.mock.patch(
            "aptos_kit.async_client.RestClient.submit_bcs_transaction",
            side_effect=[Exception("Power overwhelming"), "0x2", "0x3"],
        ):
            outcomes = await pipeline.run_batch([self.payload() for _ in range(3)])
        self.assertEqual(str(outcomes[0].error), "Power overwhelming")
        self.assertIsNone(outcomes[0].hash)
        self.assertEqual([outcome.hash for outcome in outcomes[1:]], ["0x2", "0x3"])

    async def test_set_sequence_number(self):
        pipeline = TransactionPipeline(self.rest_client, self.sender)
        pipeline.start()
        await pipeline.submit(self.payload())
        pipeline.set_sequence_number(50)
        await pipeline.submit(self.payload())
        await pipeline.close()
        outcomes = [outcome async for outcome in pipeline.outcomes()]
        self.assertEqual(len(outcomes), 2)
        sequence_numbers = {s.transaction.sequence_number for s in self.submitted}
        self.assertIn(50, sequence_numbers)

    async def test_orderless_payload_skips_tracker(self):
        pipeline = TransactionPipeline(self.rest_client, self.sender)
        options = self.rest_client.transaction_options(replay_protection_nonce=7)
        await pipeline.run_batch([self.payload()], options)
        self.assertTrue(self.submitted[0].transaction.is_orderless())
        self.assertEqual(pipeline.tracker.peek(), 5)

    async def test_fee_payer_needs_sign_fn(self):
        pipeline = TransactionPipeline(self.rest_client, self.sender)
        outcomes = await pipeline.run_batch(
            [self.payload()], kind=TransactionKind.FEE_PAYER
        )
        self.assertIsInstance(outcomes[0].error, UnsupportedError)

    async def test_fee_payer_with_sign_fn(self):
        sponsor = Account.generate()

        def sign(response: TransactionBuildResponse) -> SignedTransaction:
            raw = response.transaction
            assert isinstance(raw, FeePayerRawTransaction)
            raw.fee_payer = sponsor.address()
            authenticator = Authenticator(
                FeePayerAuthenticator(
                    self.sender.sign_transaction(raw),
                    [],
                    (sponsor.address(), sponsor.sign_transaction(raw)),
                )
            )
            return SignedTransaction(raw.inner(), authenticator)

        pipeline = TransactionPipeline(self.rest_client, self.sender, sign_fn=sign)
        outcomes = await pipeline.run_batch(
            [self.payload()], kind=TransactionKind.FEE_PAYER
        )
        self.assertIsNone(outcomes[0].error)
        self.assertTrue(self.submitted[0].verify())

    async def test_seed_failure_reported_per_payload(self):
        with unittest.mock.patch(
            "aptos_kit.async_client.RestClient.account_sequence_number",
            side_effect=Exception("node down"),
        ):
            pipeline = TransactionPipeline(self.rest_client, self.sender)
            outcomes = await pipeline.run_batch([self.payload(), self.payload()])
        self.assertEqual([str(outcome.error) for outcome in outcomes], ["node down"] * 2)


if __name__ == "__main__":
    unittest.main()
