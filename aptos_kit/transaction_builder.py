# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Assembly of raw transactions from a payload and options.

:class:`TransactionOptions` holds every knob a caller can set. Anything left
as ``None`` is looked up on chain by :class:`TransactionBuilder`: the sender's
sequence number and the chain id. The shape of the result follows the options:

- ``fee_payer`` set: a :class:`FeePayerRawTransaction` (``0x0`` while the
  sponsor is not yet known)
- ``additional_signers`` non-empty: a :class:`MultiAgentRawTransaction`
- otherwise a plain :class:`RawTransaction`

Setting ``replay_protection_nonce`` produces an orderless transaction: the
payload is wrapped into its versioned form carrying the nonce, the sequence
number becomes ``2**64 - 1`` and no on-chain sequence number is fetched.

Examples:
    ::

        builder = TransactionBuilder(rest_client)
        raw = await builder.build(
            sender.address(),
            TransactionPayload(entry_function),
            TransactionOptions(max_gas_amount=5_000),
        )
        signed = SignedTransaction(raw, sender.sign_transaction(raw))
"""

from __future__ import annotations

import dataclasses
import time
import unittest
from dataclasses import dataclass, field
from typing import Any, List, Optional, Union

from typing_extensions import Protocol

from .account_address import AccountAddress
from .bcs import Serializer
from .errors import ParseError, RangeError
from .transactions import (
    ORDERLESS_SEQUENCE_NUMBER,
    EntryFunction,
    FeePayerRawTransaction,
    MultiAgentRawTransaction,
    Multisig,
    MultisigTransactionPayload,
    RawTransaction,
    Script,
    TransactionArgument,
    TransactionInnerPayload,
    TransactionPayload,
)

DEFAULT_MAX_GAS_AMOUNT = 100_000
DEFAULT_GAS_UNIT_PRICE = 100
DEFAULT_EXPIRATION_SECONDS = 300

AnyRawTransaction = Union[RawTransaction, MultiAgentRawTransaction, FeePayerRawTransaction]


@dataclass
class TransactionOptions:
    """Per-transaction settings; ``None`` means "ask the node"."""

    max_gas_amount: int = DEFAULT_MAX_GAS_AMOUNT
    gas_unit_price: int = DEFAULT_GAS_UNIT_PRICE
    expiration_seconds: int = DEFAULT_EXPIRATION_SECONDS
    sequence_number: Optional[int] = None
    chain_id: Optional[int] = None
    fee_payer: Optional[AccountAddress] = None
    additional_signers: List[AccountAddress] = field(default_factory=list)
    replay_protection_nonce: Optional[int] = None

    def __post_init__(self):
        if self.expiration_seconds < 0:
            raise RangeError(
                f"expiration_seconds must be >= 0, got {self.expiration_seconds}"
            )

    @staticmethod
    def from_kwargs(**kwargs: Any) -> TransactionOptions:
        """Build options from keyword arguments, rejecting unknown names.

        Raises:
            ParseError: If a keyword is not an option name.
            RangeError: If ``expiration_seconds`` is negative.
        """
        known = {f.name for f in dataclasses.fields(TransactionOptions)}
        unknown = sorted(set(kwargs) - known)
        if unknown:
            raise ParseError(f"Unknown transaction options: {', '.join(unknown)}")
        return TransactionOptions(**kwargs)

    @staticmethod
    def from_config(config: Any) -> TransactionOptions:
        """Defaults taken from a :class:`~aptos_kit.async_client.ClientConfig`."""
        return TransactionOptions(
            max_gas_amount=config.max_gas_amount,
            gas_unit_price=config.gas_unit_price,
            expiration_seconds=config.expiration_ttl,
        )


class ChainState(Protocol):
    """What the builder needs from a node; :class:`RestClient` provides it."""

    async def account_sequence_number(self, account_address: AccountAddress) -> int:
        ...

    async def chain_id(self) -> int:
        ...


def make_orderless(payload: TransactionPayload, nonce: int) -> TransactionPayload:
    """Re-express ``payload`` in the versioned form carrying ``nonce``."""
    if payload.variant == TransactionPayload.PAYLOAD:
        inner: TransactionInnerPayload = payload.value
        return TransactionPayload.orderless(
            inner.executable.value, nonce, inner.extra_config.multisig_address
        )
    if payload.variant == TransactionPayload.MULTISIG:
        multisig: Multisig = payload.value
        inner = multisig.transaction_payload
        executable = None if inner is None else inner.transaction_payload
        return TransactionPayload.orderless(executable, nonce, multisig.multisig_address)
    return TransactionPayload.orderless(payload.value, nonce)


def assemble(
    sender: AccountAddress,
    sequence_number: int,
    chain_id: int,
    payload: TransactionPayload,
    options: TransactionOptions,
    now: Optional[float] = None,
) -> AnyRawTransaction:
    """Put a transaction together from values already at hand; no I/O."""
    now = time.time() if now is None else now
    raw = RawTransaction(
        sender,
        sequence_number,
        payload,
        options.max_gas_amount,
        options.gas_unit_price,
        int(now) + options.expiration_seconds,
        chain_id,
    )
    if options.fee_payer is not None:
        return FeePayerRawTransaction(
            raw, list(options.additional_signers), options.fee_payer
        )
    if options.additional_signers:
        return MultiAgentRawTransaction(raw, list(options.additional_signers))
    return raw


class TransactionBuilder:
    client: ChainState

    def __init__(self, client: ChainState):
        self.client = client

    async def build(
        self,
        sender: AccountAddress,
        payload: Union[TransactionPayload, EntryFunction, Script],
        options: Optional[TransactionOptions] = None,
    ) -> AnyRawTransaction:
        options = options or TransactionOptions()
        if not isinstance(payload, TransactionPayload):
            payload = TransactionPayload(payload)

        if options.replay_protection_nonce is not None:
            payload = make_orderless(payload, options.replay_protection_nonce)

        if payload.replay_protection_nonce() is not None:
            sequence_number = ORDERLESS_SEQUENCE_NUMBER
        elif options.sequence_number is not None:
            sequence_number = options.sequence_number
        else:
            sequence_number = await self.client.account_sequence_number(sender)

        chain_id = options.chain_id
        if chain_id is None:
            chain_id = await self.client.chain_id()

        return assemble(sender, sequence_number, chain_id, payload, options)


class Test(unittest.IsolatedAsyncioTestCase):
    class FakeChain:
        def __init__(self):
            self.sequence_lookups = 0
            self.chain_lookups = 0

        async def account_sequence_number(self, account_address):
            self.sequence_lookups += 1
            return 7

        async def chain_id(self):
            self.chain_lookups += 1
            return 4

    def setUp(self):
        self.sender = AccountAddress.from_str_relaxed("0xa11ce")
        self.payload = TransactionPayload(
            EntryFunction.natural(
                "0x1::aptos_account",
                "transfer",
                [],
                [
                    TransactionArgument(AccountAddress.from_str("0x1"), Serializer.struct),
                    TransactionArgument(1, Serializer.u64),
                ],
            )
        )

    def test_defaults(self):
        options = TransactionOptions()
        self.assertEqual(options.max_gas_amount, 100_000)
        self.assertEqual(options.gas_unit_price, 100)
        self.assertEqual(options.expiration_seconds, 300)

    def test_negative_expiration(self):
        with self.assertRaises(RangeError):
            TransactionOptions(expiration_seconds=-1)

    def test_from_kwargs(self):
        options = TransactionOptions.from_kwargs(max_gas_amount=10, chain_id=2)
        self.assertEqual(options.max_gas_amount, 10)
        self.assertEqual(options.chain_id, 2)
        with self.assertRaises(ParseError):
            TransactionOptions.from_kwargs(max_gas=10)

    async def test_build_fetches_missing_values(self):
        chain = Test.FakeChain()
        before = int(time.time())
        raw = await TransactionBuilder(chain).build(self.sender, self.payload)
        self.assertIsInstance(raw, RawTransaction)
        self.assertEqual(raw.sequence_number, 7)
        self.assertEqual(raw.chain_id, 4)
        self.assertGreaterEqual(raw.expiration_timestamps_secs, before + 300)
        self.assertEqual(raw.max_gas_amount, 100_000)

    async def test_build_uses_given_values(self):
        chain = Test.FakeChain()
        options = TransactionOptions(sequence_number=3, chain_id=9, gas_unit_price=150)
        raw = await TransactionBuilder(chain).build(self.sender, self.payload, options)
        self.assertEqual((raw.sequence_number, raw.chain_id, raw.gas_unit_price), (3, 9, 150))
        self.assertEqual((chain.sequence_lookups, chain.chain_lookups), (0, 0))

    async def test_multi_agent_and_fee_payer(self):
        chain = Test.FakeChain()
        other = AccountAddress.from_str_relaxed("0xb0b")
        multi = await TransactionBuilder(chain).build(
            self.sender, self.payload, TransactionOptions(additional_signers=[other])
        )
        self.assertIsInstance(multi, MultiAgentRawTransaction)
        self.assertEqual(multi.secondary_signers, [other])

        sponsored = await TransactionBuilder(chain).build(
            self.sender,
            self.payload,
            TransactionOptions(fee_payer=AccountAddress.from_str("0x0")),
        )
        self.assertIsInstance(sponsored, FeePayerRawTransaction)
        self.assertEqual(sponsored.fee_payer_address(), AccountAddress.from_str("0x0"))

    async def test_orderless_skips_sequence_lookup(self):
        chain = Test.FakeChain()
        raw = await TransactionBuilder(chain).build(
            self.sender, self.payload, TransactionOptions(replay_protection_nonce=99)
        )
        self.assertEqual(raw.sequence_number, ORDERLESS_SEQUENCE_NUMBER)
        self.assertEqual(raw.replay_protection_nonce(), 99)
        self.assertEqual(raw.payload.variant, TransactionPayload.PAYLOAD)
        self.assertEqual(chain.sequence_lookups, 0)

    def test_orderless_multisig(self):
        entry_function = self.payload.value
        multisig_address = AccountAddress.from_str_relaxed("0x5")
        payload = TransactionPayload(
            Multisig(multisig_address, MultisigTransactionPayload(entry_function))
        )
        orderless = make_orderless(payload, 1)
        self.assertEqual(orderless.value.extra_config.multisig_address, multisig_address)
        self.assertEqual(orderless.value.executable.value, entry_function)

    async def test_orderless_payload_reused_with_new_nonces(self):
        chain = Test.FakeChain()
        shared = make_orderless(self.payload, 5)
        builder = TransactionBuilder(chain)
        first = await builder.build(
            self.sender, shared, TransactionOptions(replay_protection_nonce=1)
        )
        second = await builder.build(
            self.sender, shared, TransactionOptions(replay_protection_nonce=2)
        )
        self.assertEqual(first.replay_protection_nonce(), 1)
        self.assertEqual(second.replay_protection_nonce(), 2)
        self.assertEqual(shared.replay_protection_nonce(), 5)
        self.assertEqual(first.payload.value.executable, shared.value.executable)


if __name__ == "__main__":
    unittest.main()
