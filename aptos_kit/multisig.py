# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Payload factories for on-chain multisig accounts (``0x1::multisig_account``).

An on-chain multisig account is a separate account whose owners vote on
proposed transactions. The lifecycle is:

1. :func:`create_with_owners` creates the account with the sender as first owner.
2. An owner proposes with :func:`create_transaction` (the payload is stored on
   chain) or :func:`create_transaction_with_hash` (only its SHA3-256 is stored).
3. Owners vote with :func:`approve_transaction` / :func:`reject_transaction`.
4. Any owner executes with :func:`multisig_payload`, which wraps the proposed
   entry function into a ``Multisig`` transaction payload.

Examples:
    A 2-of-3 account and a coin transfer out of it::

        payload = create_with_owners([bob.address(), carol.address()], 2)
        # ... submit, then find the account address ...
        transfer = EntryFunction.natural(...)
        propose = create_transaction(multisig_address, MultisigTransactionPayload(transfer))
        approve = approve_transaction(multisig_address, 1)
        execute = multisig_payload(multisig_address, transfer)
"""

from __future__ import annotations

import unittest
from typing import Any, List, Optional

from .account_address import AccountAddress
from .bcs import Serializer
from .transactions import (
    EntryFunction,
    Multisig,
    MultisigTransactionPayload,
    TransactionArgument,
    TransactionPayload,
)

MODULE = "0x1::multisig_account"


def _call(function: str, args: List[TransactionArgument]) -> TransactionPayload:
    return TransactionPayload(EntryFunction.natural(MODULE, function, [], args))


def create_with_owners(
    additional_owners: List[AccountAddress],
    signatures_required: int,
    metadata_keys: Optional[List[str]] = None,
    metadata_values: Optional[List[bytes]] = None,
) -> TransactionPayload:
    """Create a multisig account owned by the sender and ``additional_owners``.

    Args:
        additional_owners: Owners besides the sender.
        signatures_required: Approvals needed to execute, at most the number
            of owners including the sender.
        metadata_keys: Optional metadata names.
        metadata_values: BCS-encoded metadata values, one per key.
    """
    return _call(
        "create_with_owners",
        [
            TransactionArgument(
                additional_owners, Serializer.sequence_serializer(Serializer.struct)
            ),
            TransactionArgument(signatures_required, Serializer.u64),
            TransactionArgument(
                metadata_keys or [], Serializer.sequence_serializer(Serializer.str)
            ),
            TransactionArgument(
                metadata_values or [], Serializer.sequence_serializer(Serializer.to_bytes)
            ),
        ],
    )


def add_owner(owner: AccountAddress) -> TransactionPayload:
    return _call("add_owner", [TransactionArgument(owner, Serializer.struct)])


def remove_owner(owner: AccountAddress) -> TransactionPayload:
    return _call("remove_owner", [TransactionArgument(owner, Serializer.struct)])


def update_signatures_required(signatures_required: int) -> TransactionPayload:
    return _call(
        "update_signatures_required",
        [TransactionArgument(signatures_required, Serializer.u64)],
    )


def create_transaction(
    multisig_address: AccountAddress, payload: MultisigTransactionPayload
) -> TransactionPayload:
    """Propose ``payload``, storing it in full on chain."""
    return _call(
        "create_transaction",
        [
            TransactionArgument(multisig_address, Serializer.struct),
            TransactionArgument(payload.to_bytes(), Serializer.to_bytes),
        ],
    )


def create_transaction_with_hash(
    multisig_address: AccountAddress, payload: MultisigTransactionPayload
) -> TransactionPayload:
    """Propose ``payload`` by hash; the executor must supply the full payload."""
    return _call(
        "create_transaction_with_hash",
        [
            TransactionArgument(multisig_address, Serializer.struct),
            TransactionArgument(payload.hash(), Serializer.to_bytes),
        ],
    )


def approve_transaction(multisig_address: AccountAddress, sequence_number: int) -> TransactionPayload:
    return _vote("approve_transaction", multisig_address, sequence_number)


def reject_transaction(multisig_address: AccountAddress, sequence_number: int) -> TransactionPayload:
    return _vote("reject_transaction", multisig_address, sequence_number)


def _vote(function: str, multisig_address: AccountAddress, sequence_number: int) -> TransactionPayload:
    return _call(
        function,
        [
            TransactionArgument(multisig_address, Serializer.struct),
            TransactionArgument(sequence_number, Serializer.u64),
        ],
    )


def multisig_payload(
    multisig_address: AccountAddress, entry_function: Optional[EntryFunction] = None
) -> TransactionPayload:
    """Execute the next approved proposal of ``multisig_address``.

    Leave ``entry_function`` out when the proposal was stored in full.
    """
    inner = None if entry_function is None else MultisigTransactionPayload(entry_function)
    return TransactionPayload(Multisig(multisig_address, inner))


async def next_multisig_address(client: Any, owner: AccountAddress) -> AccountAddress:
    """Address the next ``create_with_owners`` from ``owner`` will produce."""
    result = await client.view_bcs_payload(
        MODULE,
        "get_next_multisig_account_address",
        [],
        [TransactionArgument(owner, Serializer.struct)],
    )
    return AccountAddress.from_str_relaxed(result[0])


class Test(unittest.TestCase):
    def setUp(self):
        self.multisig = AccountAddress.from_str_relaxed("0x5eed")
        self.transfer = EntryFunction.natural(
            "0x1::aptos_account",
            "transfer",
            [],
            [
                TransactionArgument(AccountAddress.from_str("0x1"), Serializer.struct),
                TransactionArgument(100, Serializer.u64),
            ],
        )

    def test_create_with_owners(self):
        owners = [AccountAddress.from_str("0x2"), AccountAddress.from_str("0x3")]
        payload = create_with_owners(owners, 2)
        entry_function = payload.value
        self.assertEqual(str(entry_function.module), MODULE)
        self.assertEqual(entry_function.function, "create_with_owners")
        self.assertEqual(entry_function.args[0][0], 2)
        self.assertEqual(entry_function.args[1], (2).to_bytes(8, "little"))
        self.assertEqual(entry_function.args[2], b"\x00")
        self.assertEqual(entry_function.args[3], b"\x00")

    def test_proposals(self):
        inner = MultisigTransactionPayload(self.transfer)
        stored = create_transaction(self.multisig, inner).value
        self.assertEqual(stored.args[0], self.multisig.address)
        # Payload bytes travel as a vector<u8>.
        self.assertEqual(stored.args[1][1:], inner.to_bytes())

        hashed = create_transaction_with_hash(self.multisig, inner).value
        self.assertEqual(hashed.args[1], b"\x20" + inner.hash())

    def test_votes(self):
        approve = approve_transaction(self.multisig, 3).value
        self.assertEqual(approve.function, "approve_transaction")
        self.assertEqual(approve.args[1], (3).to_bytes(8, "little"))
        self.assertEqual(reject_transaction(self.multisig, 3).value.function, "reject_transaction")

    def test_execute(self):
        payload = multisig_payload(self.multisig, self.transfer)
        self.assertEqual(payload.variant, TransactionPayload.MULTISIG)
        self.assertEqual(payload.value.transaction_payload.transaction_payload, self.transfer)
        self.assertIsNone(multisig_payload(self.multisig).value.transaction_payload)


if __name__ == "__main__":
    unittest.main()
