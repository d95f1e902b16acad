# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
aptos-kit: client core for the Aptos blockchain.

The package covers what a client needs to talk to an Aptos node: the BCS wire
format, keys and addresses, the transaction model, Move type parsing and
argument encoding, a concurrent submission pipeline, and REST, faucet and
indexer clients.

Quick Start:
    Fund an account and transfer APT::

        import asyncio
        from aptos_kit.account import Account
        from aptos_kit.network import Network

        async def main():
            rest_client = Network.DEVNET.rest_client()
            faucet_client = Network.DEVNET.faucet_client(rest_client)

            alice = Account.generate()
            bob = Account.generate()
            await faucet_client.fund_account(alice.address(), 100_000_000)

            txn_hash = await rest_client.bcs_transfer(alice, bob.address(), 1_000)
            committed = await rest_client.wait_for_transaction(txn_hash)
            print(committed["version"])

            await rest_client.close()

        asyncio.run(main())

    Calling an entry function from its ABI::

        abi = await rest_client.account_module(address, "my_module")
        entry_function = EntryFunction.from_abi(
            f"{address}::my_module", "do_thing", ["u64"], ["42", "0x1"], abi["abi"]
        )

Module Organization:
    Wire format:
    - **bcs**: Binary Canonical Serialization
    - **type_tag** / **type_tag_parser**: Move types, their encoding and parsing
    - **arguments**: Plain values to BCS-encoded Move arguments

    Identity:
    - **ed25519**, **secp256k1_ecdsa**, **secp256r1_ecdsa**, **slh_dsa**,
      **keyless**: Signature schemes
    - **asymmetric_crypto_wrapper**: SingleKey and MultiKey wrappers
    - **account_address**: Addresses, authentication keys, derived addresses
    - **account**: Local accounts

    Transactions:
    - **transactions**: Payloads, raw and signed transactions
    - **authenticator**: Transaction and account authenticators
    - **transaction_builder**: Options and assembly
    - **multisig**: On-chain multisig account payloads

    Network:
    - **async_client**: REST, faucet and indexer clients
    - **network**: Well-known networks
    - **account_sequence_number**: Sequence number allocation
    - **transaction_pipeline**: Concurrent build, sign and submit
    - **metadata**: Client identification header
    - **errors**: Exception hierarchy

Development:
    Running tests::

        pip install -e ".[test]"
        pytest
        behave
"""
