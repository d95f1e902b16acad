# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Secp256k1 ECDSA keys and signatures.

Messages are hashed with SHA3-256 before signing. Signatures are the 64-byte
big-endian ``r || s`` pair without a recovery byte. Because ``(r, s)`` and
``(r, n - s)`` verify equally, the chain only accepts the low-S form: signing
always normalizes to it and :meth:`PublicKey.verify` rejects the high-S twin.

Public keys are carried in their 65-byte uncompressed form ``0x04 || X || Y``.
Decoding also accepts the bare 64-byte ``X || Y``.

On chain these keys only appear wrapped in a SingleKey
(:class:`~aptos_kit.asymmetric_crypto_wrapper.PublicKey`).
"""

from __future__ import annotations

import hashlib
import unittest

from ecdsa import SECP256k1, BadSignatureError, SigningKey, VerifyingKey, util
from ecdsa.errors import MalformedPointError

from . import asymmetric_crypto
from .asymmetric_crypto import parse_hex
from .bcs import Deserializer, Serializer
from .errors import CryptoFormatError

CURVE_ORDER = SECP256k1.generator.order()


def normalize_s(signature: bytes, order: int) -> bytes:
    """Rewrite ``r || s`` so that ``s`` is in the lower half of the curve order."""
    r, s = util.sigdecode_string(signature, order)
    if s > order // 2:
        return util.sigencode_string(r, order - s, order)
    return signature


def is_low_s(signature: bytes, order: int) -> bool:
    _, s = util.sigdecode_string(signature, order)
    return s <= order // 2


class PrivateKey(asymmetric_crypto.PrivateKey):
    LENGTH: int = 32

    key: SigningKey

    def __init__(self, key: SigningKey):
        self.key = key

    def __eq__(self, other: object):
        if not isinstance(other, PrivateKey):
            return NotImplemented
        return self.key.to_string() == other.key.to_string()

    def __str__(self):
        return self.aip80()

    @staticmethod
    def from_hex(value: str | bytes, strict: bool | None = None) -> PrivateKey:
        parsed_value = PrivateKey.parse_hex_input(
            value, asymmetric_crypto.PrivateKeyVariant.Secp256k1, strict
        )
        return PrivateKey.from_bytes_exact(parsed_value)

    @staticmethod
    def from_str(value: str, strict: bool | None = None) -> PrivateKey:
        return PrivateKey.from_hex(value, strict)

    @staticmethod
    def from_bytes_exact(key: bytes) -> PrivateKey:
        if len(key) != PrivateKey.LENGTH:
            raise CryptoFormatError(
                f"Secp256k1 private key must be {PrivateKey.LENGTH} bytes, got {len(key)}"
            )
        try:
            return PrivateKey(SigningKey.from_string(key, SECP256k1, hashlib.sha3_256))
        except MalformedPointError as e:
            raise CryptoFormatError(f"Invalid Secp256k1 private key: {e}") from e

    def hex(self) -> str:
        return f"0x{self.key.to_string().hex()}"

    def aip80(self) -> str:
        return PrivateKey.format_private_key(
            self.hex(), asymmetric_crypto.PrivateKeyVariant.Secp256k1
        )

    def public_key(self) -> PublicKey:
        return PublicKey(self.key.verifying_key)

    @staticmethod
    def random() -> PrivateKey:
        return PrivateKey(
            SigningKey.generate(curve=SECP256k1, hashfunc=hashlib.sha3_256)
        )

    def sign(self, data: bytes) -> Signature:
        sig = self.key.sign_deterministic(data, hashfunc=hashlib.sha3_256)
        return Signature(normalize_s(sig, CURVE_ORDER))

    @staticmethod
    def deserialize(deserializer: Deserializer) -> PrivateKey:
        return PrivateKey.from_bytes_exact(deserializer.to_bytes())

    def serialize(self, serializer: Serializer):
        serializer.to_bytes(self.key.to_string())


class PublicKey(asymmetric_crypto.PublicKey):
    LENGTH: int = 64
    LENGTH_WITH_PREFIX_LENGTH: int = 65

    key: VerifyingKey

    def __init__(self, key: VerifyingKey):
        self.key = key

    def __eq__(self, other: object):
        if not isinstance(other, PublicKey):
            return NotImplemented
        return self.key.to_string() == other.key.to_string()

    def __hash__(self):
        return hash(self.key.to_string())

    def __str__(self) -> str:
        return self.hex()

    @staticmethod
    def from_str(value: str) -> PublicKey:
        return PublicKey.from_crypto_bytes(parse_hex(value))

    @staticmethod
    def from_crypto_bytes(key: bytes) -> PublicKey:
        """Load ``X || Y`` or ``0x04 || X || Y``.

        Raises:
            CryptoFormatError: On any other length or a point not on the curve.
        """
        if len(key) == PublicKey.LENGTH_WITH_PREFIX_LENGTH and key[0] == 0x04:
            key = key[1:]
        if len(key) != PublicKey.LENGTH:
            raise CryptoFormatError(
                f"Secp256k1 public key must be {PublicKey.LENGTH} or "
                f"{PublicKey.LENGTH_WITH_PREFIX_LENGTH} bytes"
            )
        try:
            return PublicKey(VerifyingKey.from_string(key, SECP256k1, hashlib.sha3_256))
        except MalformedPointError as e:
            raise CryptoFormatError(f"Invalid Secp256k1 public key: {e}") from e

    def hex(self) -> str:
        return f"0x{self.to_crypto_bytes().hex()}"

    def verify(self, data: bytes, signature: asymmetric_crypto.Signature) -> bool:
        if not isinstance(signature, Signature):
            return False
        if not is_low_s(signature.data(), CURVE_ORDER):
            return False
        try:
            return self.key.verify(signature.data(), data)
        except BadSignatureError:
            return False

    def to_crypto_bytes(self) -> bytes:
        return b"\x04" + self.key.to_string()

    @staticmethod
    def deserialize(deserializer: Deserializer) -> PublicKey:
        return PublicKey.from_crypto_bytes(deserializer.to_bytes())

    def serialize(self, serializer: Serializer):
        serializer.to_bytes(self.to_crypto_bytes())


class Signature(asymmetric_crypto.Signature):
    LENGTH: int = 64

    signature: bytes

    def __init__(self, signature: bytes):
        if len(signature) != Signature.LENGTH:
            raise CryptoFormatError(
                f"Secp256k1 signature must be {Signature.LENGTH} bytes, got {len(signature)}"
            )
        self.signature = bytes(signature)

    def __eq__(self, other: object):
        if not isinstance(other, Signature):
            return NotImplemented
        return self.signature == other.signature

    def __str__(self) -> str:
        return self.hex()

    def hex(self) -> str:
        return f"0x{self.signature.hex()}"

    @staticmethod
    def from_str(value: str) -> Signature:
        return Signature(parse_hex(value))

    @staticmethod
    def empty() -> Signature:
        return Signature(b"\x00" * Signature.LENGTH)

    def data(self) -> bytes:
        return self.signature

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Signature:
        return Signature(deserializer.to_bytes())

    def serialize(self, serializer: Serializer):
        serializer.to_bytes(self.signature)


class Test(unittest.TestCase):
    KEY = "306fa009600e27c09d2659145ce1785249360dd5fb992da01a578fe67ed607f4"

    def test_private_key_from_str(self):
        private_key_hex = PrivateKey.from_str(f"0x{self.KEY}", False)
        private_key_with_prefix = PrivateKey.from_str(f"secp256k1-priv-0x{self.KEY}", True)
        private_key_bytes = PrivateKey.from_hex(bytes.fromhex(self.KEY), False)
        self.assertEqual(private_key_hex, private_key_with_prefix)
        self.assertEqual(private_key_hex, private_key_bytes)
        self.assertEqual(private_key_hex.hex(), f"0x{self.KEY}")
        self.assertEqual(str(private_key_hex), f"secp256k1-priv-0x{self.KEY}")

    def test_vectors(self):
        public_key_hex = "0x04210c9129e35337ff5d6488f90f18d842cf985f06e0baeff8df4bfb2ac4221863e2631b971a237b5db0aa71188e33250732dd461d56ee623cbe0426a5c2db79ef"
        signature_hex = "0xa539b0973e76fa99b2a864eebd5da950b4dfb399c7afe57ddb34130e454fc9db04dceb2c3d4260b8cc3d3952ab21b5d36c7dc76277fe3747764e6762d12bd9a9"
        data = b"Hello world"

        private_key = PrivateKey.from_str(f"secp256k1-priv-0x{self.KEY}")
        local_public_key = private_key.public_key()
        local_signature = private_key.sign(data)
        self.assertTrue(local_public_key.verify(data, local_signature))

        original_public_key = PublicKey.from_str(public_key_hex)
        self.assertEqual(original_public_key, local_public_key)
        self.assertEqual(public_key_hex, local_public_key.hex())
        self.assertTrue(original_public_key.verify(data, Signature.from_str(signature_hex)))

    def test_hello_world_vector(self):
        private_key = PrivateKey.from_str(
            "0xd107155adf816a0a94c6db3c9489c13ad8a1eda7ada2e558ba3bfa47c020347e", False
        )
        public_key = private_key.public_key()
        self.assertEqual(
            public_key.hex(),
            "0x04acdd16651b839c24665b7e2033b55225f384554949fef46c397b5275f37f6ee9"
            "5554d70fb5d9f93c5831ebf695c7206e7477ce708f03ae9bb2862dc6c9e033ea",
        )
        signature = Signature.from_str(
            "0xd0d634e843b61339473b028105930ace022980708b2855954b977da09df84a77"
            "0c0b68c29c8ca1b5409a5085b0ec263be80e433c83fcf6debb82f3447e71edca"
        )
        self.assertTrue(public_key.verify(b"hello world", signature))
        self.assertEqual(
            str(public_key.auth_key()),
            "0x5792c985bc96f436270bd2a3c692210b09c7febb8889345ceefdbae4bacfe498",
        )

    def test_high_s_rejected(self):
        private_key = PrivateKey.random()
        signature = private_key.sign(b"malleable")
        r, s = util.sigdecode_string(signature.data(), CURVE_ORDER)
        self.assertLessEqual(s, CURVE_ORDER // 2)

        high_s = Signature(util.sigencode_string(r, CURVE_ORDER - s, CURVE_ORDER))
        # The high-S twin is mathematically valid but must not verify.
        self.assertTrue(
            private_key.public_key().key.verify(high_s.data(), b"malleable")
        )
        self.assertFalse(private_key.public_key().verify(b"malleable", high_s))

    def test_tampered_inputs_rejected(self):
        private_key = PrivateKey.random()
        public_key = private_key.public_key()
        message = b"tamper me"
        signature = private_key.sign(message)
        self.assertTrue(public_key.verify(message, signature))

        for position in (0, 31, 32, 63):
            tampered = bytearray(signature.data())
            tampered[position] ^= 0x01
            self.assertFalse(public_key.verify(message, Signature(bytes(tampered))))

        for position in range(len(message)):
            tampered = bytearray(message)
            tampered[position] ^= 0x01
            self.assertFalse(public_key.verify(bytes(tampered), signature))

        # Most flipped points are off the curve and fail to load.
        for position in (1, 32, 64):
            tampered = bytearray(public_key.to_crypto_bytes())
            tampered[position] ^= 0x01
            try:
                other = PublicKey.from_crypto_bytes(bytes(tampered))
            except CryptoFormatError:
                continue
            self.assertFalse(other.verify(message, signature))

        self.assertFalse(PrivateKey.random().public_key().verify(message, signature))

    def test_serialization(self):
        private_key = PrivateKey.random()
        self.assertEqual(PrivateKey.from_bytes(private_key.to_bytes()), private_key)

        public_key = private_key.public_key()
        encoded = public_key.to_bytes()
        self.assertEqual(encoded[0], 65)
        self.assertEqual(PublicKey.from_bytes(encoded), public_key)

        signature = private_key.sign(b"another_message")
        self.assertEqual(Signature.from_bytes(signature.to_bytes()), signature)

    def test_format_errors(self):
        with self.assertRaises(CryptoFormatError):
            PublicKey.from_crypto_bytes(b"\x04" + b"\x01" * 64)
        with self.assertRaises(CryptoFormatError):
            PublicKey.from_crypto_bytes(b"\x01" * 63)
        with self.assertRaises(CryptoFormatError):
            PrivateKey.from_hex(b"\x00" * 32, False)
        with self.assertRaises(CryptoFormatError):
            Signature.from_str("0x00")


if __name__ == "__main__":
    unittest.main()
