# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Secp256r1 (NIST P-256) ECDSA keys and signatures.

The byte layout matches :mod:`aptos_kit.secp256k1_ecdsa`: SHA3-256 message
hash, 64-byte low-S ``r || s`` signatures and 65-byte uncompressed public keys.

P-256 public keys can back a SingleKey account, but the chain only accepts
P-256 signatures inside a WebAuthn assertion. A raw :class:`Signature` can be
produced and verified locally; wrapping it into an ``AnySignature`` raises
:class:`~aptos_kit.errors.UnsupportedError`.
"""

from __future__ import annotations

import hashlib
import unittest

from ecdsa import NIST256p, BadSignatureError, SigningKey, VerifyingKey, util
from ecdsa.errors import MalformedPointError

from . import asymmetric_crypto
from .asymmetric_crypto import parse_hex
from .bcs import Deserializer, Serializer
from .errors import CryptoFormatError
from .secp256k1_ecdsa import is_low_s, normalize_s

CURVE_ORDER = NIST256p.generator.order()


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
        return PrivateKey.from_bytes_exact(
            PrivateKey.parse_hex_input(
                value, asymmetric_crypto.PrivateKeyVariant.Secp256r1, strict
            )
        )

    @staticmethod
    def from_str(value: str, strict: bool | None = None) -> PrivateKey:
        return PrivateKey.from_hex(value, strict)

    @staticmethod
    def from_bytes_exact(key: bytes) -> PrivateKey:
        if len(key) != PrivateKey.LENGTH:
            raise CryptoFormatError(
                f"Secp256r1 private key must be {PrivateKey.LENGTH} bytes, got {len(key)}"
            )
        try:
            return PrivateKey(SigningKey.from_string(key, NIST256p, hashlib.sha3_256))
        except MalformedPointError as e:
            raise CryptoFormatError(f"Invalid Secp256r1 private key: {e}") from e

    def hex(self) -> str:
        return f"0x{self.key.to_string().hex()}"

    def aip80(self) -> str:
        return PrivateKey.format_private_key(
            self.hex(), asymmetric_crypto.PrivateKeyVariant.Secp256r1
        )

    def public_key(self) -> PublicKey:
        return PublicKey(self.key.verifying_key)

    @staticmethod
    def random() -> PrivateKey:
        return PrivateKey(SigningKey.generate(curve=NIST256p, hashfunc=hashlib.sha3_256))

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
        return f"0x{self.to_crypto_bytes().hex()}"

    @staticmethod
    def from_str(value: str) -> PublicKey:
        return PublicKey.from_crypto_bytes(parse_hex(value))

    @staticmethod
    def from_crypto_bytes(key: bytes) -> PublicKey:
        if len(key) == PublicKey.LENGTH_WITH_PREFIX_LENGTH and key[0] == 0x04:
            key = key[1:]
        if len(key) != PublicKey.LENGTH:
            raise CryptoFormatError(
                f"Secp256r1 public key must be {PublicKey.LENGTH} or "
                f"{PublicKey.LENGTH_WITH_PREFIX_LENGTH} bytes"
            )
        try:
            return PublicKey(VerifyingKey.from_string(key, NIST256p, hashlib.sha3_256))
        except MalformedPointError as e:
            raise CryptoFormatError(f"Invalid Secp256r1 public key: {e}") from e

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
                f"Secp256r1 signature must be {Signature.LENGTH} bytes, got {len(signature)}"
            )
        self.signature = bytes(signature)

    def __eq__(self, other: object):
        if not isinstance(other, Signature):
            return NotImplemented
        return self.signature == other.signature

    def __str__(self) -> str:
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
    def test_sign_and_verify(self):
        private_key = PrivateKey.random()
        signature = private_key.sign(b"p256 message")
        self.assertTrue(private_key.public_key().verify(b"p256 message", signature))
        self.assertFalse(private_key.public_key().verify(b"other message", signature))

        r, s = util.sigdecode_string(signature.data(), CURVE_ORDER)
        self.assertLessEqual(s, CURVE_ORDER // 2)
        high_s = Signature(util.sigencode_string(r, CURVE_ORDER - s, CURVE_ORDER))
        self.assertFalse(private_key.public_key().verify(b"p256 message", high_s))

    def test_deterministic(self):
        private_key = PrivateKey.from_str(
            "secp256r1-priv-0x306fa009600e27c09d2659145ce1785249360dd5fb992da01a578fe67ed607f4"
        )
        self.assertEqual(private_key.sign(b"data"), private_key.sign(b"data"))

    def test_aip80(self):
        key = "secp256r1-priv-0x306fa009600e27c09d2659145ce1785249360dd5fb992da01a578fe67ed607f4"
        self.assertEqual(str(PrivateKey.from_str(key, True)), key)

    def test_public_key_encoding(self):
        public_key = PrivateKey.random().public_key()
        crypto_bytes = public_key.to_crypto_bytes()
        self.assertEqual(len(crypto_bytes), 65)
        self.assertEqual(crypto_bytes[0], 0x04)
        self.assertEqual(PublicKey.from_crypto_bytes(crypto_bytes[1:]), public_key)
        self.assertEqual(PublicKey.from_bytes(public_key.to_bytes()), public_key)
        with self.assertRaises(CryptoFormatError):
            PublicKey.from_crypto_bytes(b"\x04" + b"\x02" * 64)


if __name__ == "__main__":
    unittest.main()
