# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Local accounts: a private key paired with the on-chain address it controls.

The address is derived from the key when an account is created, and kept as is
afterwards since a key rotation changes the key but not the address.

Examples:
    ::

        alice = Account.generate()
        bob = Account.load_key("secp256k1-priv-0xd107...")
        alice.store("alice.json")
        assert Account.load("alice.json") == alice

        authenticator = alice.sign_transaction(raw_transaction)
"""

from __future__ import annotations

import json
import os
import tempfile
import unittest

from . import (
    asymmetric_crypto,
    asymmetric_crypto_wrapper,
    ed25519,
    secp256k1_ecdsa,
    secp256r1_ecdsa,
)
from .account_address import AccountAddress, AuthenticationKey
from .authenticator import AccountAuthenticator
from .bcs import Serializer
from .transactions import RawTransactionInternal

_KEY_LOADERS = {
    asymmetric_crypto.PrivateKey.AIP80_PREFIXES[
        asymmetric_crypto.PrivateKeyVariant.Secp256k1
    ]: secp256k1_ecdsa.PrivateKey.from_str,
    asymmetric_crypto.PrivateKey.AIP80_PREFIXES[
        asymmetric_crypto.PrivateKeyVariant.Secp256r1
    ]: secp256r1_ecdsa.PrivateKey.from_str,
}


def _load_private_key(key: str) -> asymmetric_crypto.PrivateKey:
    for prefix, loader in _KEY_LOADERS.items():
        if key.startswith(prefix):
            return loader(key)
    return ed25519.PrivateKey.from_str(key)


class Account:
    account_address: AccountAddress
    private_key: asymmetric_crypto.PrivateKey

    def __init__(
        self, account_address: AccountAddress, private_key: asymmetric_crypto.PrivateKey
    ):
        self.account_address = account_address
        self.private_key = private_key

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Account):
            return NotImplemented
        return (
            self.account_address == other.account_address
            and self.private_key == other.private_key
        )

    def __str__(self) -> str:
        return f"Account({self.account_address})"

    @staticmethod
    def from_private_key(private_key: asymmetric_crypto.PrivateKey) -> Account:
        return Account(AccountAddress.from_key(private_key.public_key()), private_key)

    @staticmethod
    def generate() -> Account:
        return Account.from_private_key(ed25519.PrivateKey.random())

    @staticmethod
    def generate_secp256k1_ecdsa() -> Account:
        return Account.from_private_key(secp256k1_ecdsa.PrivateKey.random())

    @staticmethod
    def generate_secp256r1_ecdsa() -> Account:
        """A Secp256r1 account. Its raw signatures can only authorize
        transactions through WebAuthn, which this library does not produce."""
        return Account.from_private_key(secp256r1_ecdsa.PrivateKey.random())

    @staticmethod
    def load_key(key: str) -> Account:
        """Account for a private key in hex or AIP-80 form.

        The AIP-80 prefix selects the scheme; bare hex is read as Ed25519.
        """
        return Account.from_private_key(_load_private_key(key))

    @staticmethod
    def load(path: str) -> Account:
        with open(path) as file:
            data = json.load(file)
        return Account(
            AccountAddress.from_str_relaxed(data["account_address"]),
            _load_private_key(data["private_key"]),
        )

    def store(self, path: str):
        data = {
            "account_address": str(self.account_address),
            "private_key": str(self.private_key),
        }
        with open(path, "w") as file:
            json.dump(data, file)

    def address(self) -> AccountAddress:
        return self.account_address

    def auth_key(self) -> str:
        """Authentication key of the current private key, as ``0x`` hex."""
        return str(AuthenticationKey.from_public_key(self.private_key.public_key()))

    def sign(self, data: bytes) -> asymmetric_crypto.Signature:
        return self.private_key.sign(data)

    def sign_simulated_transaction(
        self, transaction: RawTransactionInternal
    ) -> AccountAuthenticator:
        return transaction.sign_simulated(self.private_key.public_key())

    def sign_transaction(
        self, transaction: RawTransactionInternal
    ) -> AccountAuthenticator:
        return transaction.sign(self.private_key)

    def public_key(self) -> asymmetric_crypto.PublicKey:
        return self.private_key.public_key()


class RotationProofChallenge:
    """The message both the old and new key sign to rotate an account's key.

    Its BCS layout mirrors ``0x1::account::RotationProofChallenge`` preceded by
    the struct's type info.
    """

    type_info_account_address: AccountAddress = AccountAddress.from_str("0x1")
    type_info_module_name: str = "account"
    type_info_struct_name: str = "RotationProofChallenge"
    sequence_number: int
    originator: AccountAddress
    current_auth_key: AccountAddress
    new_public_key: asymmetric_crypto.PublicKey

    def __init__(
        self,
        sequence_number: int,
        originator: AccountAddress,
        current_auth_key: AccountAddress,
        new_public_key: asymmetric_crypto.PublicKey,
    ):
        self.sequence_number = sequence_number
        self.originator = originator
        self.current_auth_key = current_auth_key
        self.new_public_key = new_public_key

    def serialize(self, serializer: Serializer):
        self.type_info_account_address.serialize(serializer)
        serializer.str(self.type_info_module_name)
        serializer.str(self.type_info_struct_name)
        serializer.u64(self.sequence_number)
        self.originator.serialize(serializer)
        self.current_auth_key.serialize(serializer)
        serializer.struct(self.new_public_key)


class Test(unittest.TestCase):
    def store_and_load(self, account: Account) -> Account:
        (handle, path) = tempfile.mkstemp()
        os.close(handle)
        try:
            account.store(path)
            return Account.load(path)
        finally:
            os.remove(path)

    def test_load_and_store(self):
        for account in [Account.generate(), Account.generate_secp256k1_ecdsa()]:
            loaded = self.store_and_load(account)
            self.assertEqual(account, loaded)
            self.assertEqual(str(account.address()), account.auth_key())

    def test_sign_and_verify(self):
        message = b"test message"
        for account in [
            Account.generate(),
            Account.generate_secp256k1_ecdsa(),
            Account.generate_secp256r1_ecdsa(),
        ]:
            signature = account.sign(message)
            self.assertTrue(account.public_key().verify(message, signature))
            self.assertFalse(account.public_key().verify(b"other message", signature))

    def test_known_ed25519_account(self):
        account = Account.load_key(
            "0xc5338cd251c22daa8c9c9cc94f498cc8a5c7e1d2e75287a5dda91096fe64efa5"
        )
        self.assertEqual(
            account.auth_key(),
            "0x978c213990c4833df71548df7ce49d54c759d6b6d932de22b24d56060b7af2aa",
        )
        self.assertIsInstance(account.private_key, ed25519.PrivateKey)

    def test_known_secp256k1_account(self):
        account = Account.load_key(
            "secp256k1-priv-0xd107155adf816a0a94c6db3c9489c13ad8a1eda7ada2e558ba3bfa47c020347e"
        )
        self.assertIsInstance(account.private_key, secp256k1_ecdsa.PrivateKey)
        self.assertEqual(
            account.auth_key(),
            "0x5792c985bc96f436270bd2a3c692210b09c7febb8889345ceefdbae4bacfe498",
        )
        wrapped = asymmetric_crypto_wrapper.PublicKey(account.public_key())
        self.assertEqual(AccountAddress.from_key(wrapped), account.address())

    def test_rotation_proof_challenge(self):
        originating_account = Account.load_key(
            "005120c5882b0d492b3d2dc60a8a4510ec2051825413878453137305ba2d644b"
        )
        target_account = Account.load_key(
            "19d409c191b1787d5b832d780316b83f6ee219677fafbd4c0f69fee12fdcdcee"
        )
        challenge = RotationProofChallenge(
            sequence_number=1234,
            originator=originating_account.address(),
            current_auth_key=originating_account.address(),
            new_public_key=target_account.public_key(),
        )
        serializer = Serializer()
        challenge.serialize(serializer)
        expected = (
            "0000000000000000000000000000000000000000000000000000000000000001"
            "076163636f756e7416526f746174696f6e50726f6f664368616c6c656e6765d2"
            "0400000000000015b67a673979c7c5dfc8d9c9f94d02da35062a19dd9d218087"
            "bd9076589219c615b67a673979c7c5dfc8d9c9f94d02da35062a19dd9d218087"
            "bd9076589219c620a1f942a3c46e2a4cd9552c0f95d529f8e3b60bcd44408637"
            "9ace35e4458b9f22"
        )
        self.assertEqual(serializer.output().hex(), expected)


if __name__ == "__main__":
    unittest.main()
