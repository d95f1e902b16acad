# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Transfer from a 2-of-3 MultiKey account mixing Secp256k1 and Ed25519 keys.

The account address is derived from the MultiKey itself, the transaction is
signed by two of its three keys, and the combined authenticator is checked
locally before it is submitted.

Examples:
    ::

        python -m examples.multikey
"""

import asyncio

from aptos_kit import asymmetric_crypto_wrapper, ed25519, secp256k1_ecdsa
from aptos_kit.account import Account
from aptos_kit.account_address import AccountAddress
from aptos_kit.asymmetric_crypto_wrapper import MultiSignature
from aptos_kit.authenticator import AccountAuthenticator, MultiKeyAuthenticator
from aptos_kit.bcs import Serializer
from aptos_kit.transactions import (
    EntryFunction,
    SignedTransaction,
    TransactionArgument,
    TransactionPayload,
)

from .common import faucet_client, rest_client


async def main():
    client = rest_client()
    faucet = faucet_client(client)

    # :!:>section_2
    key1 = secp256k1_ecdsa.PrivateKey.random()
    key2 = ed25519.PrivateKey.random()
    key3 = secp256k1_ecdsa.PrivateKey.random()

    alice_pubkey = asymmetric_crypto_wrapper.MultiPublicKey(
        [key1.public_key(), key2.public_key(), key3.public_key()], 2
    )
    alice_address = AccountAddress.from_key(alice_pubkey)  # <:!:section_2

    bob = Account.generate()

    print("\n=== Addresses ===")
    print(f"Multikey Alice: {alice_address}")
    print(f"Bob: {bob.address()}")

    alice_fund = faucet.fund_account(alice_address, 100_000_000)
    bob_fund = faucet.fund_account(bob.address(), 1)
    await asyncio.gather(*[alice_fund, bob_fund])

    print("\n=== Initial Balances ===")
    alice_balance = client.account_balance(alice_address)
    bob_balance = client.account_balance(bob.address())
    [alice_balance, bob_balance] = await asyncio.gather(*[alice_balance, bob_balance])
    print(f"Alice: {alice_balance}")
    print(f"Bob: {bob_balance}")

    # :!:>section_5
    payload = EntryFunction.natural(
        "0x1::aptos_account",
        "transfer",
        [],
        [
            TransactionArgument(bob.address(), Serializer.struct),
            TransactionArgument(1_000, Serializer.u64),
        ],
    )
    raw_transaction = await client.create_bcs_transaction(
        alice_address, TransactionPayload(payload)
    )

    signing_message = raw_transaction.keyed()
    sig1 = key1.sign(signing_message)
    sig3 = key3.sign(signing_message)

    # Key indices follow their position in the MultiKey
    total_sig = MultiSignature([(2, sig3), (0, sig1)])
    alice_auth = AccountAuthenticator(MultiKeyAuthenticator(alice_pubkey, total_sig))
    assert alice_auth.verify(signing_message)  # <:!:section_5

    txn_hash = await client.submit_bcs_transaction(
        SignedTransaction(raw_transaction, alice_auth)
    )
    await client.wait_for_transaction(txn_hash)

    print("\n=== Final Balances ===")
    alice_balance = client.account_balance(alice_address)
    bob_balance = client.account_balance(bob.address())
    [alice_balance, bob_balance] = await asyncio.gather(*[alice_balance, bob_balance])
    print(f"Alice: {alice_balance}")
    print(f"Bob: {bob_balance}")

    await client.close()


if __name__ == "__main__":
    asyncio.run(main())
