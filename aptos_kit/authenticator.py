# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Transaction and account authenticators.

A signed transaction carries exactly one transaction-level :class:`Authenticator`.
Its variants decide who must have signed:

- ``ED25519`` / ``MULTI_ED25519``: legacy single-sender forms
- ``MULTI_AGENT``: the sender plus secondary signers, each with an address
- ``FEE_PAYER``: a multi-agent transaction whose gas is paid by another account
- ``SINGLE_SENDER``: one :class:`AccountAuthenticator` of any kind

An :class:`AccountAuthenticator` proves a single account's consent:
``ED25519``, ``MULTI_ED25519``, ``SINGLE_KEY``, ``MULTI_KEY``, or
``NO_ACCOUNT_AUTHENTICATOR``, a placeholder used while simulating a transaction
whose fee payer or secondary signer has not signed yet. The placeholder never
verifies.

Every authenticator exposes ``verify(message)`` over the signing message, the
prehashed transcript built by :mod:`aptos_kit.transactions`.
"""

from __future__ import annotations

import typing
import unittest
from typing import List

from . import asymmetric_crypto, asymmetric_crypto_wrapper, ed25519, secp256k1_ecdsa
from .account_address import AccountAddress
from .bcs import Deserializer, Serializer
from .errors import CodecError


class Authenticator:
    """Transaction-level authenticator."""

    ED25519: int = 0
    MULTI_ED25519: int = 1
    MULTI_AGENT: int = 2
    FEE_PAYER: int = 3
    SINGLE_SENDER: int = 4

    variant: int
    authenticator: typing.Any

    def __init__(self, authenticator: typing.Any):
        if isinstance(authenticator, Ed25519Authenticator):
            self.variant = Authenticator.ED25519
        elif isinstance(authenticator, MultiEd25519Authenticator):
            self.variant = Authenticator.MULTI_ED25519
        elif isinstance(authenticator, MultiAgentAuthenticator):
            self.variant = Authenticator.MULTI_AGENT
        elif isinstance(authenticator, FeePayerAuthenticator):
            self.variant = Authenticator.FEE_PAYER
        elif isinstance(authenticator, SingleSenderAuthenticator):
            self.variant = Authenticator.SINGLE_SENDER
        else:
            raise TypeError(f"Invalid authenticator type: {type(authenticator).__name__}")
        self.authenticator = authenticator

    @staticmethod
    def from_account_authenticator(
        authenticator: AccountAuthenticator,
    ) -> Authenticator:
        """Lift a sender's account authenticator to the transaction level.

        Ed25519 and MultiEd25519 keep their legacy transaction variants; every
        other kind travels inside ``SINGLE_SENDER``.
        """
        if authenticator.variant in (
            AccountAuthenticator.ED25519,
            AccountAuthenticator.MULTI_ED25519,
        ):
            return Authenticator(authenticator.authenticator)
        return Authenticator(SingleSenderAuthenticator(authenticator))

    @staticmethod
    def from_key(key: asymmetric_crypto.PublicKey) -> int:
        if isinstance(key, ed25519.PublicKey):
            return Authenticator.ED25519
        if isinstance(key, ed25519.MultiPublicKey):
            return Authenticator.MULTI_ED25519
        return Authenticator.SINGLE_SENDER

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Authenticator):
            return NotImplemented
        return (
            self.variant == other.variant and self.authenticator == other.authenticator
        )

    def __str__(self) -> str:
        return self.authenticator.__str__()

    def verify(self, data: bytes) -> bool:
        return self.authenticator.verify(data)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Authenticator:
        variant = deserializer.uleb128()

        if variant == Authenticator.ED25519:
            authenticator: typing.Any = Ed25519Authenticator.deserialize(deserializer)
        elif variant == Authenticator.MULTI_ED25519:
            authenticator = MultiEd25519Authenticator.deserialize(deserializer)
        elif variant == Authenticator.MULTI_AGENT:
            authenticator = MultiAgentAuthenticator.deserialize(deserializer)
        elif variant == Authenticator.FEE_PAYER:
            authenticator = FeePayerAuthenticator.deserialize(deserializer)
        elif variant == Authenticator.SINGLE_SENDER:
            authenticator = SingleSenderAuthenticator.deserialize(deserializer)
        else:
            raise CodecError(f"Invalid transaction authenticator variant: {variant}")

        return Authenticator(authenticator)

    def serialize(self, serializer: Serializer):
        serializer.uleb128(self.variant)
        serializer.struct(self.authenticator)


class AccountAuthenticator:
    """Authenticator for one account inside a transaction."""

    ED25519: int = 0
    MULTI_ED25519: int = 1
    SINGLE_KEY: int = 2
    MULTI_KEY: int = 3
    NO_ACCOUNT_AUTHENTICATOR: int = 4

    variant: int
    authenticator: typing.Any

    def __init__(self, authenticator: typing.Any):
        if isinstance(authenticator, Ed25519Authenticator):
            self.variant = AccountAuthenticator.ED25519
        elif isinstance(authenticator, MultiEd25519Authenticator):
            self.variant = AccountAuthenticator.MULTI_ED25519
        elif isinstance(authenticator, SingleKeyAuthenticator):
            self.variant = AccountAuthenticator.SINGLE_KEY
        elif isinstance(authenticator, MultiKeyAuthenticator):
            self.variant = AccountAuthenticator.MULTI_KEY
        elif isinstance(authenticator, NoAccountAuthenticator):
            self.variant = AccountAuthenticator.NO_ACCOUNT_AUTHENTICATOR
        else:
            raise TypeError(f"Invalid authenticator type: {type(authenticator).__name__}")
        self.authenticator = authenticator

    @staticmethod
    def no_account() -> AccountAuthenticator:
        return AccountAuthenticator(NoAccountAuthenticator())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AccountAuthenticator):
            return NotImplemented
        return (
            self.variant == other.variant and self.authenticator == other.authenticator
        )

    def __repr__(self) -> str:
        return self.__str__()

    def __str__(self) -> str:
        return self.authenticator.__str__()

    def verify(self, data: bytes) -> bool:
        return self.authenticator.verify(data)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> AccountAuthenticator:
        variant = deserializer.uleb128()

        if variant == AccountAuthenticator.ED25519:
            authenticator: typing.Any = Ed25519Authenticator.deserialize(deserializer)
        elif variant == AccountAuthenticator.MULTI_ED25519:
            authenticator = MultiEd25519Authenticator.deserialize(deserializer)
        elif variant == AccountAuthenticator.SINGLE_KEY:
            authenticator = SingleKeyAuthenticator.deserialize(deserializer)
        elif variant == AccountAuthenticator.MULTI_KEY:
            authenticator = MultiKeyAuthenticator.deserialize(deserializer)
        elif variant == AccountAuthenticator.NO_ACCOUNT_AUTHENTICATOR:
            authenticator = NoAccountAuthenticator.deserialize(deserializer)
        else:
            raise CodecError(f"Invalid account authenticator variant: {variant}")

        return AccountAuthenticator(authenticator)

    def serialize(self, serializer: Serializer):
        serializer.uleb128(self.variant)
        serializer.struct(self.authenticator)


class Ed25519Authenticator:
    public_key: ed25519.PublicKey
    signature: ed25519.Signature

    def __init__(self, public_key: ed25519.PublicKey, signature: ed25519.Signature):
        self.public_key = public_key
        self.signature = signature

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Ed25519Authenticator):
            return NotImplemented

        return self.public_key == other.public_key and self.signature == other.signature

    def __str__(self) -> str:
        return f"PublicKey: {self.public_key}, Signature: {self.signature}"

    def verify(self, data: bytes) -> bool:
        return self.public_key.verify(data, self.signature)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Ed25519Authenticator:
        key = deserializer.struct(ed25519.PublicKey)
        signature = deserializer.struct(ed25519.Signature)
        return Ed25519Authenticator(key, signature)

    def serialize(self, serializer: Serializer):
        serializer.struct(self.public_key)
        serializer.struct(self.signature)


def _deserialize_secondary_signers(
    deserializer: Deserializer,
) -> List[typing.Tuple[AccountAddress, AccountAuthenticator]]:
    addresses = deserializer.sequence(AccountAddress.deserialize)
    authenticators = deserializer.sequence(AccountAuthenticator.deserialize)
    if len(addresses) != len(authenticators):
        raise CodecError(
            f"{len(addresses)} secondary signer addresses but "
            f"{len(authenticators)} authenticators"
        )
    return list(zip(addresses, authenticators))


def _serialize_secondary_signers(
    serializer: Serializer,
    secondary_signers: List[typing.Tuple[AccountAddress, AccountAuthenticator]],
):
    serializer.sequence([x[0] for x in secondary_signers], Serializer.struct)
    serializer.sequence([x[1] for x in secondary_signers], Serializer.struct)


class FeePayerAuthenticator:
    sender: AccountAuthenticator
    secondary_signers: List[typing.Tuple[AccountAddress, AccountAuthenticator]]
    fee_payer: typing.Tuple[AccountAddress, AccountAuthenticator]

    def __init__(
        self,
        sender: AccountAuthenticator,
        secondary_signers: List[typing.Tuple[AccountAddress, AccountAuthenticator]],
        fee_payer: typing.Tuple[AccountAddress, AccountAuthenticator],
    ):
        self.sender = sender
        self.secondary_signers = secondary_signers
        self.fee_payer = fee_payer

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FeePayerAuthenticator):
            return NotImplemented
        return (
            self.sender == other.sender
            and self.secondary_signers == other.secondary_signers
            and self.fee_payer == other.fee_payer
        )

    def __str__(self) -> str:
        return (
            f"FeePayer: \n\tSender: {self.sender}\n\tSecondary Signers: "
            f"{self.secondary_signers}\n\t{self.fee_payer}"
        )

    def fee_payer_address(self) -> AccountAddress:
        return self.fee_payer[0]

    def secondary_addresses(self) -> List[AccountAddress]:
        return [x[0] for x in self.secondary_signers]

    def verify(self, data: bytes) -> bool:
        if not self.sender.verify(data):
            return False
        if not self.fee_payer[1].verify(data):
            return False
        return all(x[1].verify(data) for x in self.secondary_signers)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> FeePayerAuthenticator:
        sender = deserializer.struct(AccountAuthenticator)
        secondary_signers = _deserialize_secondary_signers(deserializer)
        fee_payer_address = deserializer.struct(AccountAddress)
        fee_payer_authenticator = deserializer.struct(AccountAuthenticator)
        return FeePayerAuthenticator(
            sender, secondary_signers, (fee_payer_address, fee_payer_authenticator)
        )

    def serialize(self, serializer: Serializer):
        serializer.struct(self.sender)
        _serialize_secondary_signers(serializer, self.secondary_signers)
        serializer.struct(self.fee_payer[0])
        serializer.struct(self.fee_payer[1])


class MultiAgentAuthenticator:
    sender: AccountAuthenticator
    secondary_signers: List[typing.Tuple[AccountAddress, AccountAuthenticator]]

    def __init__(
        self,
        sender: AccountAuthenticator,
        secondary_signers: List[typing.Tuple[AccountAddress, AccountAuthenticator]],
    ):
        self.sender = sender
        self.secondary_signers = secondary_signers

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MultiAgentAuthenticator):
            return NotImplemented
        return (
            self.sender == other.sender
            and self.secondary_signers == other.secondary_signers
        )

    def __str__(self) -> str:
        return f"MultiAgent: \n\tSender: {self.sender}\n\tSecondary Signers: {self.secondary_signers}"

    def secondary_addresses(self) -> List[AccountAddress]:
        return [x[0] for x in self.secondary_signers]

    def verify(self, data: bytes) -> bool:
        if not self.sender.verify(data):
            return False
        return all(x[1].verify(data) for x in self.secondary_signers)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> MultiAgentAuthenticator:
        sender = deserializer.struct(AccountAuthenticator)
        return MultiAgentAuthenticator(sender, _deserialize_secondary_signers(deserializer))

    def serialize(self, serializer: Serializer):
        serializer.struct(self.sender)
        _serialize_secondary_signers(serializer, self.secondary_signers)


class MultiEd25519Authenticator:
    public_key: ed25519.MultiPublicKey
    signature: ed25519.MultiSignature

    def __init__(
        self, public_key: ed25519.MultiPublicKey, signature: ed25519.MultiSignature
    ):
        self.public_key = public_key
        self.signature = signature

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MultiEd25519Authenticator):
            return NotImplemented
        return self.public_key == other.public_key and self.signature == other.signature

    def __str__(self) -> str:
        return f"MultiPublicKey: {self.public_key}, MultiSignature: {self.signature}"

    def verify(self, data: bytes) -> bool:
        return self.public_key.verify(data, self.signature)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> MultiEd25519Authenticator:
        public_key = deserializer.struct(ed25519.MultiPublicKey)
        signature = deserializer.struct(ed25519.MultiSignature)
        return MultiEd25519Authenticator(public_key, signature)

    def serialize(self, serializer: Serializer):
        serializer.struct(self.public_key)
        serializer.struct(self.signature)


class SingleSenderAuthenticator:
    sender: AccountAuthenticator

    def __init__(self, sender: AccountAuthenticator):
        self.sender = sender

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SingleSenderAuthenticator):
            return NotImplemented
        return self.sender == other.sender

    def __str__(self) -> str:
        return f"SingleSender: {self.sender}"

    def verify(self, data: bytes) -> bool:
        return self.sender.verify(data)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> SingleSenderAuthenticator:
        return SingleSenderAuthenticator(deserializer.struct(AccountAuthenticator))

    def serialize(self, serializer: Serializer):
        serializer.struct(self.sender)


class SingleKeyAuthenticator:
    """An ``AnyPublicKey`` and ``AnySignature`` pair.

    Bare keys and signatures are wrapped on construction.
    """

    public_key: asymmetric_crypto_wrapper.PublicKey
    signature: asymmetric_crypto_wrapper.Signature

    def __init__(
        self,
        public_key: asymmetric_crypto.PublicKey,
        signature: asymmetric_crypto.Signature,
    ):
        if isinstance(public_key, asymmetric_crypto_wrapper.PublicKey):
            self.public_key = public_key
        else:
            self.public_key = asymmetric_crypto_wrapper.PublicKey(public_key)

        if isinstance(signature, asymmetric_crypto_wrapper.Signature):
            self.signature = signature
        else:
            self.signature = asymmetric_crypto_wrapper.Signature(signature)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SingleKeyAuthenticator):
            return NotImplemented
        return self.public_key == other.public_key and self.signature == other.signature

    def __str__(self) -> str:
        return f"SingleKey - PublicKey: {self.public_key}, Signature: {self.signature}"

    def verify(self, data: bytes) -> bool:
        return self.public_key.verify(data, self.signature)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> SingleKeyAuthenticator:
        public_key = deserializer.struct(asymmetric_crypto_wrapper.PublicKey)
        signature = deserializer.struct(asymmetric_crypto_wrapper.Signature)
        return SingleKeyAuthenticator(public_key, signature)

    def serialize(self, serializer: Serializer):
        serializer.struct(self.public_key)
        serializer.struct(self.signature)


class MultiKeyAuthenticator:
    public_key: asymmetric_crypto_wrapper.MultiPublicKey
    signature: asymmetric_crypto_wrapper.MultiSignature

    def __init__(
        self,
        public_key: asymmetric_crypto_wrapper.MultiPublicKey,
        signature: asymmetric_crypto_wrapper.MultiSignature,
    ):
        self.public_key = public_key
        self.signature = signature

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MultiKeyAuthenticator):
            return NotImplemented
        return self.public_key == other.public_key and self.signature == other.signature

    def __str__(self) -> str:
        return f"MultiKey - PublicKey: {self.public_key}, Signature: {self.signature}"

    def verify(self, data: bytes) -> bool:
        return self.public_key.verify(data, self.signature)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> MultiKeyAuthenticator:
        public_key = deserializer.struct(asymmetric_crypto_wrapper.MultiPublicKey)
        signature = deserializer.struct(asymmetric_crypto_wrapper.MultiSignature)
        return MultiKeyAuthenticator(public_key, signature)

    def serialize(self, serializer: Serializer):
        serializer.struct(self.public_key)
        serializer.struct(self.signature)


class NoAccountAuthenticator:
    """Empty authenticator for a signer that has not signed yet."""

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NoAccountAuthenticator):
            return NotImplemented
        return True

    def __str__(self) -> str:
        return "NoAccountAuthenticator"

    def verify(self, data: bytes) -> bool:
        return False

    @staticmethod
    def deserialize(deserializer: Deserializer) -> NoAccountAuthenticator:
        return NoAccountAuthenticator()

    def serialize(self, serializer: Serializer):
        pass


class Test(unittest.TestCase):
    def test_multi_key_auth(self):
        expected_output = bytes.fromhex(
            "040303002020fdbac9b10b7587bba7b5bc163bce69e796d71e4ed44c10fcb4488689f7a1440141049b8327d929a0e45285c04d19c9fffbee065c266b701972922d807228120e43f34ad68ac77f6ec0205fe39f7c5b6055dad973a03464a3a743302de0feaf6ec6d90141049b8327d929a0e45285c04d19c9fffbee065c266b701972922d807228120e43f34ad68ac77f6ec0205fe39f7c5b6055dad973a03464a3a743302de0feaf6ec6d902020040a9839b56be99b48c285ec252cf9bf779e42d3b62eb8664c31b18c1fdb29b574b1bfde0b89aedddb9fb8304ca5913c9feefea75d332d8f72ac3ab4598a884ea0801402bd50683abe6332a496121f8ec7db7be351f49b0087fa0dfb258c469822bd52e59fc9344944a1f338b0f0a61c7173453e0cd09cf961e45cb9396808fa67eeef304c0000000"
        )

        pk0 = ed25519.PublicKey.from_str(
            "20FDBAC9B10B7587BBA7B5BC163BCE69E796D71E4ED44C10FCB4488689F7A144"
        )
        pk1 = secp256k1_ecdsa.PublicKey.from_str(
            "049B8327D929A0E45285C04D19C9FFFBEE065C266B701972922D807228120E43F34AD68AC77F6EC0205FE39F7C5B6055DAD973A03464A3A743302DE0FEAF6EC6D9"
        )
        sig0 = ed25519.Signature.from_str(
            "a9839b56be99b48c285ec252cf9bf779e42d3b62eb8664c31b18c1fdb29b574b1bfde0b89aedddb9fb8304ca5913c9feefea75d332d8f72ac3ab4598a884ea08"
        )
        sig1 = secp256k1_ecdsa.Signature.from_str(
            "2bd50683abe6332a496121f8ec7db7be351f49b0087fa0dfb258c469822bd52e59fc9344944a1f338b0f0a61c7173453e0cd09cf961e45cb9396808fa67eeef3"
        )

        multi_key = asymmetric_crypto_wrapper.MultiPublicKey([pk0, pk1, pk1], 2)
        multi_sig = asymmetric_crypto_wrapper.MultiSignature([(1, sig1), (0, sig0)])
        account_auth = AccountAuthenticator(MultiKeyAuthenticator(multi_key, multi_sig))
        txn_auth = Authenticator.from_account_authenticator(account_auth)

        self.assertEqual(txn_auth.variant, Authenticator.SINGLE_SENDER)
        self.assertEqual(_encode(txn_auth), expected_output)
        self.assertEqual(Deserializer(expected_output).struct(Authenticator), txn_auth)

    def test_account_to_transaction_mapping(self):
        key = ed25519.PrivateKey.random()
        ed = AccountAuthenticator(Ed25519Authenticator(key.public_key(), key.sign(b"m")))
        self.assertEqual(
            Authenticator.from_account_authenticator(ed).variant, Authenticator.ED25519
        )
        single = AccountAuthenticator(
            SingleKeyAuthenticator(key.public_key(), key.sign(b"m"))
        )
        lifted = Authenticator.from_account_authenticator(single)
        self.assertEqual(lifted.variant, Authenticator.SINGLE_SENDER)
        self.assertTrue(lifted.verify(b"m"))
        self.assertFalse(lifted.verify(b"n"))

    def test_no_account_authenticator(self):
        placeholder = AccountAuthenticator.no_account()
        encoded = _encode(placeholder)
        self.assertEqual(encoded, b"\x04")
        self.assertEqual(Deserializer(encoded).struct(AccountAuthenticator), placeholder)
        self.assertFalse(placeholder.verify(b"anything"))

    def test_multi_agent_length_mismatch(self):
        key = ed25519.PrivateKey.random()
        sender = AccountAuthenticator(Ed25519Authenticator(key.public_key(), key.sign(b"m")))
        ser = Serializer()
        ser.uleb128(Authenticator.MULTI_AGENT)
        sender.serialize(ser)
        ser.sequence([AccountAddress.from_str("0x1")], Serializer.struct)
        ser.sequence([], Serializer.struct)
        with self.assertRaises(CodecError):
            Deserializer(ser.output()).struct(Authenticator)

    def test_invalid_variant(self):
        with self.assertRaises(CodecError):
            Deserializer(b"\x09").struct(Authenticator)
        with self.assertRaises(CodecError):
            Deserializer(b"\x05").struct(AccountAuthenticator)


def _encode(value: typing.Any) -> bytes:
    ser = Serializer()
    value.serialize(ser)
    return ser.output()


if __name__ == "__main__":
    unittest.main()
