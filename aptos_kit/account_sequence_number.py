# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Sequence number allocation for a single sender.

Two allocators live here:

- :class:`SequenceNumberTracker` is a plain counter seeded once and handed
  out under a lock. It never talks to the network; whoever owns it calls
  :meth:`SequenceNumberTracker.update` when the on-chain value is known to
  have diverged. The transaction pipeline uses it.
- :class:`AccountSequenceNumber` is a REST-backed allocator with flow
  control: it keeps at most ``maximum_in_flight`` transactions outstanding
  and resynchronises with the chain when commits stall.

Examples:
    Tracker::

        tracker = SequenceNumberTracker(await client.account_sequence_number(addr))
        seq = tracker.increment()     # 5, then 6, 7...
        tracker.update(42)            # after a gap was observed

    REST-backed allocator::

        seq_manager = AccountSequenceNumber(client, addr)
        seq_num = await seq_manager.next_sequence_number()
        ...
        await seq_manager.synchronize()
"""

from __future__ import annotations

import asyncio
import logging
import threading
import unittest
from typing import Callable, Optional

from .account_address import AccountAddress
from .async_client import RestClient
from .errors import ApiError

logger = logging.getLogger(__name__)


class SequenceNumberTracker:
    """Thread-safe counter of the next sequence number to hand out.

    Concurrent :meth:`increment` calls each receive a distinct value, and the
    values handed out between two :meth:`update` calls form a contiguous range.
    """

    _lock: threading.Lock
    _next: int

    def __init__(self, initial: int = 0):
        self._lock = threading.Lock()
        self._next = initial

    def increment(self) -> int:
        """Return the next sequence number and advance past it."""
        with self._lock:
            value = self._next
            self._next += 1
        return value

    def update(self, value: int) -> int:
        """Set the next sequence number to ``value``, returning the previous one."""
        with self._lock:
            previous = self._next
            self._next = value
        return previous

    def peek(self) -> int:
        with self._lock:
            return self._next


class AccountSequenceNumberConfig:
    """Flow control knobs for :class:`AccountSequenceNumber`.

    Attributes:
        maximum_in_flight: Unconfirmed transactions allowed per account. The
            mempool holds at most 100 per sender.
        maximum_wait_time: Seconds of ledger time to wait for commits before
            resynchronising.
        sleep_time: Seconds between polls while waiting.
    """

    maximum_in_flight: int = 100
    maximum_wait_time: int = 30
    sleep_time: float = 0.01


class AccountSequenceNumber:
    """REST-backed sequence number allocator with a bounded in-flight window.

    Numbers come from a :class:`SequenceNumberTracker` seeded from the chain,
    under an :class:`asyncio.Lock`. When ``maximum_in_flight`` numbers are
    outstanding, allocation waits for commits. If the chain makes no progress
    within ``maximum_wait_time`` seconds of ledger time, every outstanding
    number is settled (committed, or unknown to the node) and the tracker is
    reseeded from the on-chain value.

    The allocator assumes it is the only writer for the account. If the chain
    is seen ahead of the tracker anyway, the tracker skips forward.
    """

    _client: RestClient
    _account: AccountAddress
    _lock: asyncio.Lock
    _tracker: SequenceNumberTracker
    _committed: int
    _initialized: bool

    def __init__(
        self,
        client: RestClient,
        account: AccountAddress,
        config: Optional[AccountSequenceNumberConfig] = None,
    ):
        config = config or AccountSequenceNumberConfig()
        self._client = client
        self._account = account
        self._lock = asyncio.Lock()
        self._tracker = SequenceNumberTracker()
        self._committed = 0
        self._initialized = False

        self._maximum_in_flight = config.maximum_in_flight
        self._maximum_wait_time = config.maximum_wait_time
        self._sleep_time = config.sleep_time

    @property
    def tracker(self) -> SequenceNumberTracker:
        return self._tracker

    async def next_sequence_number(self, block: bool = True) -> Optional[int]:
        """Allocate the next sequence number.

        Args:
            block: Wait for a free slot when the window is full. With
                ``False`` a full window returns ``None`` instead.
        """
        async with self._lock:
            if not self._initialized:
                await self._reset()
            if self._in_flight() >= self._maximum_in_flight:
                await self._refresh()
                if self._in_flight() >= self._maximum_in_flight:
                    if not block:
                        return None
                    await self._wait_for(
                        lambda: self._in_flight() >= self._maximum_in_flight
                    )
            return self._tracker.increment()

    async def synchronize(self):
        """Wait until every allocated number has been committed on chain."""
        async with self._lock:
            await self._refresh()
            await self._wait_for(lambda: self._in_flight() > 0)

    def _in_flight(self) -> int:
        return self._tracker.peek() - self._committed

    async def _reset(self):
        self._initialized = True
        self._committed = await self._client.account_sequence_number(self._account)
        self._tracker.update(self._committed)

    async def _refresh(self):
        self._committed = await self._client.account_sequence_number(self._account)
        if self._committed > self._tracker.peek():
            self._tracker.update(self._committed)

    async def _wait_for(self, pending: Callable[[], bool]):
        deadline = await self._client.current_timestamp() + self._maximum_wait_time
        while pending():
            if await self._client.current_timestamp() > deadline:
                logger.warning(
                    "Waited over %s seconds for a transaction to commit, resyncing %s",
                    self._maximum_wait_time,
                    self._account,
                )
                await self._settle()
                await self._reset()
                return
            await asyncio.sleep(self._sleep_time)
            await self._refresh()

    async def _settle(self):
        for seq_num in range(self._committed, self._tracker.peek()):
            while True:
                try:
                    if await self._client.account_transaction_sequence_number_status(
                        self._account, seq_num
                    ):
                        break
                except ApiError as error:
                    if error.status_code == 404:
                        break
                    raise
                await asyncio.sleep(self._sleep_time)


class TestTracker(unittest.IsolatedAsyncioTestCase):
    def test_increment_and_update(self):
        tracker = SequenceNumberTracker(5)
        self.assertEqual([tracker.increment() for _ in range(3)], [5, 6, 7])
        self.assertEqual(tracker.update(42), 8)
        self.assertEqual(tracker.increment(), 42)
        self.assertEqual(tracker.peek(), 43)

    def test_contiguous_across_threads(self):
        tracker = SequenceNumberTracker(10)
        seen = []
        seen_lock = threading.Lock()

        def work():
            values = [tracker.increment() for _ in range(250)]
            with seen_lock:
                seen.extend(values)

        threads = [threading.Thread(target=work) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        self.assertEqual(sorted(seen), list(range(10, 10 + 2000)))

    async def test_contiguous_across_tasks(self):
        tracker = SequenceNumberTracker(0)

        async def work():
            values = []
            for _ in range(50):
                values.append(tracker.increment())
                await asyncio.sleep(0)
            return values

        results = await asyncio.gather(*(work() for _ in range(4)))
        self.assertEqual(sorted(sum(results, [])), list(range(200)))


class Test(unittest.IsolatedAsyncioTestCase):
    class FakeNode:
        """Ledger time advances one second per read."""

        def __init__(self, sequence_number: int = 0):
            self.sequence_number = sequence_number
            self.ledger_time = 0.0
            self.status_checks = []

        async def account_sequence_number(self, account: AccountAddress) -> int:
            return self.sequence_number

        async def current_timestamp(self) -> float:
            self.ledger_time += 1
            return self.ledger_time

        async def account_transaction_sequence_number_status(
            self, account: AccountAddress, sequence_number: int
        ) -> bool:
            self.status_checks.append(sequence_number)
            return True

    def setUp(self):
        self.account = AccountAddress.from_str("0xf")

    async def test_common_path(self):
        node = Test.FakeNode(0)
        allocator = AccountSequenceNumber(node, self.account)
        for seq_num in range(5):
            self.assertEqual(await allocator.next_sequence_number(), seq_num)

        node.sequence_number = 5
        last_seq_num = 0
        for seq_num in range(AccountSequenceNumberConfig.maximum_in_flight):
            last_seq_num = await allocator.next_sequence_number()
            self.assertEqual(last_seq_num, seq_num + 5)

        self.assertIsNone(await allocator.next_sequence_number(block=False))

        node.sequence_number = last_seq_num + 1
        await allocator.synchronize()
        self.assertEqual(allocator.tracker.peek(), last_seq_num + 1)
        self.assertEqual(node.status_checks, [])

    async def test_resync_after_stall(self):
        config = AccountSequenceNumberConfig()
        config.maximum_in_flight = 2
        config.maximum_wait_time = 3
        config.sleep_time = 0
        node = Test.FakeNode(0)
        allocator = AccountSequenceNumber(node, self.account, config)
        self.assertEqual(await allocator.next_sequence_number(), 0)
        self.assertEqual(await allocator.next_sequence_number(), 1)

        with self.assertLogs("aptos_kit.account_sequence_number", logging.WARNING):
            self.assertEqual(await allocator.next_sequence_number(), 0)
        self.assertEqual(node.status_checks, [0, 1])

    async def test_chain_ahead_of_tracker(self):
        node = Test.FakeNode(3)
        allocator = AccountSequenceNumber(node, self.account)
        self.assertEqual(await allocator.next_sequence_number(), 3)
        node.sequence_number = 10
        await allocator.synchronize()
        self.assertEqual(await allocator.next_sequence_number(), 10)


if __name__ == "__main__":
    unittest.main()
