# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
SLH-DSA-SHA2-128s (FIPS 205) public keys and signatures.

Only the encoding side is available: keys and signatures can be decoded,
re-encoded, wrapped into a SingleKey and hashed into an authentication key.
Verification raises :class:`~aptos_kit.errors.UnsupportedError`.
"""

from __future__ import annotations

import unittest

from . import asymmetric_crypto
from .asymmetric_crypto import parse_hex
from .bcs import Deserializer, Serializer
from .errors import CryptoFormatError, UnsupportedError


class PublicKey(asymmetric_crypto.PublicKey):
    LENGTH: int = 32

    key: bytes

    def __init__(self, key: bytes):
        if len(key) != PublicKey.LENGTH:
            raise CryptoFormatError(
                f"SLH-DSA public key must be {PublicKey.LENGTH} bytes, got {len(key)}"
            )
        self.key = bytes(key)

    def __eq__(self, other: object):
        if not isinstance(other, PublicKey):
            return NotImplemented
        return self.key == other.key

    def __hash__(self):
        return hash(self.key)

    def __str__(self) -> str:
        return f"0x{self.key.hex()}"

    @staticmethod
    def from_str(value: str) -> PublicKey:
        return PublicKey(parse_hex(value))

    def to_crypto_bytes(self) -> bytes:
        return self.key

    def verify(self, data: bytes, signature: asymmetric_crypto.Signature) -> bool:
        raise UnsupportedError("SLH-DSA signature verification is not available")

    @staticmethod
    def deserialize(deserializer: Deserializer) -> PublicKey:
        return PublicKey(deserializer.to_bytes())

    def serialize(self, serializer: Serializer):
        serializer.to_bytes(self.key)


class Signature(asymmetric_crypto.Signature):
    LENGTH: int = 7856

    signature: bytes

    def __init__(self, signature: bytes):
        if len(signature) != Signature.LENGTH:
            raise CryptoFormatError(
                f"SLH-DSA signature must be {Signature.LENGTH} bytes, got {len(signature)}"
            )
        self.signature = bytes(signature)

    def __eq__(self, other: object):
        if not isinstance(other, Signature):
            return NotImplemented
        return self.signature == other.signature

    def __str__(self) -> str:
        return f"0x{self.signature.hex()}"

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
    def test_encoding(self):
        key = PublicKey(bytes(range(32)))
        encoded = key.to_bytes()
        self.assertEqual(encoded[0], 32)
        self.assertEqual(PublicKey.from_bytes(encoded), key)

        signature = Signature.empty()
        encoded = signature.to_bytes()
        # 7856 needs a two-byte ULEB128 length prefix.
        self.assertEqual(encoded[:2], bytes([0xB0, 0x3D]))
        self.assertEqual(Signature.from_bytes(encoded), signature)

    def test_lengths(self):
        with self.assertRaises(CryptoFormatError):
            PublicKey(b"\x00" * 31)
        with self.assertRaises(CryptoFormatError):
            Signature(b"\x00" * 64)

    def test_verify_unsupported(self):
        with self.assertRaises(UnsupportedError):
            PublicKey(bytes(32)).verify(b"msg", Signature.empty())


if __name__ == "__main__":
    unittest.main()
