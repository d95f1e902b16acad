# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Basic APT transfer between two fresh accounts.

Generates Alice and Bob, funds them from the faucet, has Alice send Bob 1,000
octas twice and prints the balances after each step. When an indexer is
configured, Bob's coin balances are read back from it too.

Examples:
    Run against devnet::

        python -m examples.transfer_coin

    Run against a local testnet::

        APTOS_NETWORK=localnet python -m examples.transfer_coin
"""

import asyncio

from aptos_kit.account import Account

from .common import faucet_client, indexer_client, rest_client


async def print_balances(client, title: str, alice: Account, bob: Account):
    print(f"\n=== {title} ===")
    alice_balance = client.account_balance(alice.address())
    bob_balance = client.account_balance(bob.address())
    [alice_balance, bob_balance] = await asyncio.gather(*[alice_balance, bob_balance])
    print(f"Alice: {alice_balance}")
    print(f"Bob: {bob_balance}")


async def main():
    # :!:>section_1
    client = rest_client()
    faucet = faucet_client(client)  # <:!:section_1
    indexer = indexer_client()

    # :!:>section_2
    alice = Account.generate()
    bob = Account.generate()  # <:!:section_2

    print("\n=== Addresses ===")
    print(f"Alice: {alice.address()}")
    print(f"Bob: {bob.address()}")

    # :!:>section_3
    alice_fund = faucet.fund_account(alice.address(), 100_000_000)
    bob_fund = faucet.fund_account(bob.address(), 1)  # <:!:section_3
    await asyncio.gather(*[alice_fund, bob_fund])

    await print_balances(client, "Initial Balances", alice, bob)

    # :!:>section_5
    txn_hash = await client.bcs_transfer(alice, bob.address(), 1_000)  # <:!:section_5
    # :!:>section_6
    await client.wait_for_transaction(txn_hash)  # <:!:section_6

    await print_balances(client, "Intermediate Balances", alice, bob)

    txn_hash = await client.bcs_transfer(alice, bob.address(), 1_000)
    await client.wait_for_transaction(txn_hash)

    await print_balances(client, "Final Balances", alice, bob)

    if indexer:
        balances = await indexer.account_coin_balances(bob.address())
        print("\n=== Indexed Balances ===")
        for balance in balances:
            print(f"{balance['coin_type']}: {balance['amount']}")

    await client.close()


if __name__ == "__main__":
    asyncio.run(main())
