# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Sponsored transfer: Alice sends APT while Sponsor pays the gas.

Alice is never funded beyond the amount she sends, so the transfer only
succeeds because the fee payer covers the gas.

Examples:
    ::

        python -m examples.fee_payer_transfer
"""

import asyncio

from aptos_kit.account import Account
from aptos_kit.bcs import Serializer
from aptos_kit.transactions import EntryFunction, TransactionArgument, TransactionPayload

from .common import faucet_client, rest_client


async def main():
    client = rest_client()
    faucet = faucet_client(client)

    alice = Account.generate()
    bob = Account.generate()
    sponsor = Account.generate()

    await asyncio.gather(
        *[
            faucet.fund_account(alice.address(), 1_000),
            faucet.fund_account(bob.address(), 1),
            faucet.fund_account(sponsor.address(), 100_000_000),
        ]
    )

    payload = EntryFunction.natural(
        "0x1::aptos_account",
        "transfer",
        [],
        [
            TransactionArgument(bob.address(), Serializer.struct),
            TransactionArgument(1_000, Serializer.u64),
        ],
    )
    signed_transaction = await client.create_fee_payer_bcs_transaction(
        alice, sponsor, TransactionPayload(payload)
    )
    txn_hash = await client.submit_bcs_transaction(signed_transaction)
    committed = await client.wait_for_transaction(txn_hash)
    print(f"Committed at version {committed['version']}, gas {committed['gas_used']}")

    print("\n=== Final Balances ===")
    for name, account in [("Alice", alice), ("Bob", bob), ("Sponsor", sponsor)]:
        print(f"{name}: {await client.account_balance(account.address())}")

    await client.close()


if __name__ == "__main__":
    asyncio.run(main())
