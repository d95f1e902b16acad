# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
SingleKey and MultiKey: the scheme-agnostic wrappers used by modern accounts.

A SingleKey account is authenticated by an ``AnyPublicKey``, a ULEB128 variant
tag followed by the scheme's own encoding. A MultiKey account holds 1 to 32
such keys and a threshold ``k``; a ``MultiKeySignature`` lists the signatures
present, ordered by key index, and a bitmap marking which keys signed.

Variant tags:

============  ============  ===============
Tag           AnyPublicKey  AnySignature
============  ============  ===============
0             Ed25519       Ed25519
1             Secp256k1     Secp256k1
2             Secp256r1     WebAuthn
3             Keyless       Keyless
4             Fed. keyless  SLH-DSA
5             SLH-DSA
============  ============  ===============

The MultiKey bitmap sets bit ``0x80 >> (i % 8)`` of byte ``i // 8`` for every
signing key ``i`` and is always ``MAX_BITMAP_BYTES`` (4) bytes long. Shorter
bitmaps are still accepted when decoding.

Examples:
    A 2-of-3 MultiKey mixing schemes::

        from aptos_kit import asymmetric_crypto_wrapper as wrapper
        from aptos_kit import ed25519, secp256k1_ecdsa

        k0 = ed25519.PrivateKey.random()
        k1 = secp256k1_ecdsa.PrivateKey.random()
        k2 = ed25519.PrivateKey.random()
        multi_key = wrapper.MultiPublicKey(
            [k0.public_key(), k1.public_key(), k2.public_key()], 2
        )

        signature = wrapper.MultiSignature.from_indexed(
            [(2, k2.sign(b"msg")), (0, k0.sign(b"msg"))]
        )
        assert multi_key.verify(b"msg", signature)
"""

from __future__ import annotations

import unittest
from typing import List, Tuple

from . import (
    asymmetric_crypto,
    ed25519,
    keyless,
    secp256k1_ecdsa,
    secp256r1_ecdsa,
    slh_dsa,
)
from .bcs import Deserializer, Serializer
from .errors import CodecError, CryptoFormatError, UnsupportedError


class PublicKey(asymmetric_crypto.PublicKey):
    """An ``AnyPublicKey``: a single key of any supported scheme."""

    ED25519: int = 0
    SECP256K1_ECDSA: int = 1
    SECP256R1_ECDSA: int = 2
    KEYLESS: int = 3
    FEDERATED_KEYLESS: int = 4
    SLH_DSA_SHA2_128S: int = 5

    variant: int
    public_key: asymmetric_crypto.PublicKey

    def __init__(self, public_key: asymmetric_crypto.PublicKey):
        if isinstance(public_key, ed25519.PublicKey):
            self.variant = PublicKey.ED25519
        elif isinstance(public_key, secp256k1_ecdsa.PublicKey):
            self.variant = PublicKey.SECP256K1_ECDSA
        elif isinstance(public_key, secp256r1_ecdsa.PublicKey):
            self.variant = PublicKey.SECP256R1_ECDSA
        elif isinstance(public_key, slh_dsa.PublicKey):
            self.variant = PublicKey.SLH_DSA_SHA2_128S
        else:
            raise UnsupportedError(
                f"Cannot wrap {type(public_key).__name__} in a SingleKey"
            )
        self.public_key = public_key

    def __eq__(self, other: object):
        if not isinstance(other, PublicKey):
            return NotImplemented
        return self.variant == other.variant and self.public_key == other.public_key

    def __str__(self) -> str:
        return f"{self.public_key}"

    def to_crypto_bytes(self) -> bytes:
        return self.to_bytes()

    def verify(self, data: bytes, signature: asymmetric_crypto.Signature) -> bool:
        if isinstance(signature, Signature):
            signature = signature.signature
        return self.public_key.verify(data, signature)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> PublicKey:
        variant = deserializer.uleb128()

        if variant == PublicKey.ED25519:
            public_key: asymmetric_crypto.PublicKey = ed25519.PublicKey.deserialize(
                deserializer
            )
        elif variant == PublicKey.SECP256K1_ECDSA:
            public_key = secp256k1_ecdsa.PublicKey.deserialize(deserializer)
        elif variant == PublicKey.SECP256R1_ECDSA:
            public_key = secp256r1_ecdsa.PublicKey.deserialize(deserializer)
        elif variant == PublicKey.KEYLESS:
            public_key = keyless.KeylessPublicKey.deserialize(deserializer)
        elif variant == PublicKey.FEDERATED_KEYLESS:
            public_key = keyless.FederatedKeylessPublicKey.deserialize(deserializer)
        elif variant == PublicKey.SLH_DSA_SHA2_128S:
            public_key = slh_dsa.PublicKey.deserialize(deserializer)
        else:
            raise CodecError(f"Invalid AnyPublicKey variant: {variant}")

        return PublicKey(public_key)

    def serialize(self, serializer: Serializer):
        serializer.uleb128(self.variant)
        serializer.struct(self.public_key)


class Signature(asymmetric_crypto.Signature):
    """An ``AnySignature``: a single signature of any supported scheme."""

    ED25519: int = 0
    SECP256K1_ECDSA: int = 1
    WEBAUTHN: int = 2
    KEYLESS: int = 3
    SLH_DSA_SHA2_128S: int = 4

    variant: int
    signature: asymmetric_crypto.Signature

    def __init__(self, signature: asymmetric_crypto.Signature):
        if isinstance(signature, ed25519.Signature):
            self.variant = Signature.ED25519
        elif isinstance(signature, secp256k1_ecdsa.Signature):
            self.variant = Signature.SECP256K1_ECDSA
        elif isinstance(signature, slh_dsa.Signature):
            self.variant = Signature.SLH_DSA_SHA2_128S
        elif isinstance(signature, secp256r1_ecdsa.Signature):
            raise UnsupportedError(
                "Secp256r1 signatures are only accepted inside a WebAuthn assertion"
            )
        else:
            raise UnsupportedError(
                f"Cannot wrap {type(signature).__name__} in an AnySignature"
            )
        self.signature = signature

    def __eq__(self, other: object):
        if not isinstance(other, Signature):
            return NotImplemented
        return self.variant == other.variant and self.signature == other.signature

    def __str__(self) -> str:
        return f"{self.signature}"

    def data(self) -> bytes:
        return self.signature.data()

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Signature:
        variant = deserializer.uleb128()

        if variant == Signature.ED25519:
            signature: asymmetric_crypto.Signature = ed25519.Signature.deserialize(
                deserializer
            )
        elif variant == Signature.SECP256K1_ECDSA:
            signature = secp256k1_ecdsa.Signature.deserialize(deserializer)
        elif variant == Signature.WEBAUTHN:
            signature = keyless.WebAuthnSignature.deserialize(deserializer)
        elif variant == Signature.KEYLESS:
            signature = keyless.KeylessSignature.deserialize(deserializer)
        elif variant == Signature.SLH_DSA_SHA2_128S:
            signature = slh_dsa.Signature.deserialize(deserializer)
        else:
            raise CodecError(f"Invalid AnySignature variant: {variant}")

        return Signature(signature)

    def serialize(self, serializer: Serializer):
        serializer.uleb128(self.variant)
        serializer.struct(self.signature)


class MultiPublicKey(asymmetric_crypto.PublicKey):
    """A K-of-N set of ``AnyPublicKey``s."""

    keys: List[PublicKey]
    threshold: int

    MIN_KEYS = 1
    MAX_KEYS = 32
    MIN_THRESHOLD = 1

    def __init__(self, keys: List[asymmetric_crypto.PublicKey], threshold: int):
        if not self.MIN_KEYS <= len(keys) <= self.MAX_KEYS:
            raise CryptoFormatError(
                f"Must have between {self.MIN_KEYS} and {self.MAX_KEYS} keys."
            )
        if not self.MIN_THRESHOLD <= threshold <= len(keys):
            raise CryptoFormatError(
                f"Threshold must be between {self.MIN_THRESHOLD} and {len(keys)}."
            )

        self.keys = [key if isinstance(key, PublicKey) else PublicKey(key) for key in keys]
        self.threshold = threshold

    def __eq__(self, other: object):
        if not isinstance(other, MultiPublicKey):
            return NotImplemented
        return self.keys == other.keys and self.threshold == other.threshold

    def __str__(self) -> str:
        return f"{self.threshold}-of-{len(self.keys)} Multi key"

    def index_of(self, key: asymmetric_crypto.PublicKey) -> int:
        wrapped = key if isinstance(key, PublicKey) else PublicKey(key)
        return self.keys.index(wrapped)

    def verify(self, data: bytes, signature: asymmetric_crypto.Signature) -> bool:
        """True iff at least ``threshold`` signatures are present and all verify."""
        if not isinstance(signature, MultiSignature):
            return False
        if len(signature.signatures) < self.threshold:
            return False
        for index, inner in signature.signatures:
            if index >= len(self.keys):
                return False
            if not self.keys[index].verify(data, inner):
                return False
        return True

    @staticmethod
    def from_crypto_bytes(indata: bytes) -> MultiPublicKey:
        return MultiPublicKey.from_bytes(indata)

    def to_crypto_bytes(self) -> bytes:
        return self.to_bytes()

    @staticmethod
    def deserialize(deserializer: Deserializer) -> MultiPublicKey:
        keys = deserializer.sequence(PublicKey.deserialize)
        threshold = deserializer.u8()
        return MultiPublicKey(keys, threshold)

    def serialize(self, serializer: Serializer):
        serializer.sequence(self.keys, Serializer.struct)
        serializer.u8(self.threshold)


class MultiSignature(asymmetric_crypto.Signature):
    """Signatures from a subset of a :class:`MultiPublicKey`'s keys.

    ``signatures`` holds ``(key index, AnySignature)`` pairs sorted by index,
    whatever order they were supplied in.

    Raises:
        CryptoFormatError: On a duplicate or out-of-range index.
    """

    signatures: List[Tuple[int, Signature]]
    MAX_SIGNATURES: int = 32
    MAX_BITMAP_BYTES: int = 4

    def __init__(self, signatures: List[Tuple[int, asymmetric_crypto.Signature]]):
        seen = set()
        wrapped = []
        for index, signature in signatures:
            if not 0 <= index < self.MAX_SIGNATURES:
                raise CryptoFormatError(f"Signer index {index} exceeds the bitmap")
            if index in seen:
                raise CryptoFormatError(f"Duplicate signer index {index}")
            seen.add(index)
            if not isinstance(signature, Signature):
                signature = Signature(signature)
            wrapped.append((index, signature))
        self.signatures = sorted(wrapped, key=lambda entry: entry[0])

    @staticmethod
    def from_indexed(
        signatures: List[Tuple[int, asymmetric_crypto.Signature]]
    ) -> MultiSignature:
        return MultiSignature(signatures)

    @staticmethod
    def from_key_map(
        public_key: MultiPublicKey,
        signatures_map: List[Tuple[asymmetric_crypto.PublicKey, asymmetric_crypto.Signature]],
    ) -> MultiSignature:
        return MultiSignature(
            [(public_key.index_of(key), signature) for key, signature in signatures_map]
        )

    def __eq__(self, other: object):
        if not isinstance(other, MultiSignature):
            return NotImplemented
        return self.signatures == other.signatures

    def __str__(self) -> str:
        return f"{self.signatures}"

    def data(self) -> bytes:
        return self.to_bytes()

    def bitmap(self) -> bytes:
        bitmap = bytearray(self.MAX_BITMAP_BYTES)
        for index, _ in self.signatures:
            bitmap[index // 8] |= 0x80 >> (index % 8)
        return bytes(bitmap)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> MultiSignature:
        signatures = deserializer.sequence(Signature.deserialize)
        bitmap = deserializer.to_bytes()
        if len(bitmap) > MultiSignature.MAX_BITMAP_BYTES:
            raise CryptoFormatError(f"MultiKey bitmap is {len(bitmap)} bytes long")

        indices = [
            i for i in range(len(bitmap) * 8) if bitmap[i // 8] & (0x80 >> (i % 8))
        ]
        if len(indices) != len(signatures):
            raise CryptoFormatError(
                f"Bitmap marks {len(indices)} signers but {len(signatures)} "
                "signatures are present"
            )
        return MultiSignature(list(zip(indices, signatures)))

    def serialize(self, serializer: Serializer):
        serializer.sequence([sig for _, sig in self.signatures], Serializer.struct)
        serializer.to_bytes(self.bitmap())


class Test(unittest.TestCase):
    def test_single_key_encoding(self):
        private_key = secp256k1_ecdsa.PrivateKey.random()
        wrapped = PublicKey(private_key.public_key())
        encoded = wrapped.to_bytes()
        self.assertEqual(encoded[:2], b"\x01\x41")
        self.assertEqual(encoded[2], 0x04)
        self.assertEqual(PublicKey.from_bytes(encoded), wrapped)

        signature = Signature(private_key.sign(b"msg"))
        self.assertEqual(Signature.from_bytes(signature.to_bytes()), signature)
        self.assertTrue(wrapped.verify(b"msg", signature))

    def test_secp256r1_and_slh_dsa_keys(self):
        p256 = PublicKey(secp256r1_ecdsa.PrivateKey.random().public_key())
        self.assertEqual(p256.variant, PublicKey.SECP256R1_ECDSA)
        self.assertEqual(PublicKey.from_bytes(p256.to_bytes()), p256)

        slh = PublicKey(slh_dsa.PublicKey(bytes(range(32))))
        self.assertEqual(slh.to_bytes()[:2], b"\x05\x20")
        self.assertEqual(PublicKey.from_bytes(slh.to_bytes()), slh)

    def test_unsupported_variants(self):
        with self.assertRaises(UnsupportedError):
            Signature(secp256r1_ecdsa.PrivateKey.random().sign(b"msg"))
        with self.assertRaises(UnsupportedError):
            PublicKey.from_bytes(b"\x03\x00")
        with self.assertRaises(UnsupportedError):
            Signature.from_bytes(b"\x02\x00")
        with self.assertRaises(CodecError):
            PublicKey.from_bytes(b"\x09\x00")

    def test_multikey_threshold_and_ordering(self):
        keys = [
            ed25519.PrivateKey.random(),
            secp256k1_ecdsa.PrivateKey.random(),
            ed25519.PrivateKey.random(),
        ]
        multi_key = MultiPublicKey([k.public_key() for k in keys], 2)
        message = b"multikey"

        signature = MultiSignature.from_indexed(
            [(2, keys[2].sign(message)), (0, keys[0].sign(message))]
        )
        self.assertEqual([index for index, _ in signature.signatures], [0, 2])
        self.assertEqual(signature.bitmap(), b"\xa0\x00\x00\x00")
        self.assertTrue(multi_key.verify(message, signature))

        decoded = MultiSignature.from_bytes(signature.to_bytes())
        self.assertEqual(decoded, signature)

        one = MultiSignature([(1, keys[1].sign(message))])
        self.assertEqual(one.bitmap(), b"\x40\x00\x00\x00")
        self.assertFalse(multi_key.verify(message, one))

        # A signature at the wrong index does not verify.
        swapped = MultiSignature([(0, keys[2].sign(message)), (2, keys[0].sign(message))])
        self.assertFalse(multi_key.verify(message, swapped))

    def test_multikey_tampering_rejected(self):
        keys = [
            ed25519.PrivateKey.random(),
            secp256k1_ecdsa.PrivateKey.random(),
            ed25519.PrivateKey.random(),
        ]
        multi_key = MultiPublicKey([k.public_key() for k in keys], 2)
        message = b"multikey tamper"
        signature = MultiSignature(
            [(0, keys[0].sign(message)), (1, keys[1].sign(message))]
        )
        self.assertTrue(multi_key.verify(message, signature))
        self.assertFalse(multi_key.verify(b"multikey tamped", signature))

        # Same signatures, bitmap moved from keys 0 and 1 to keys 0 and 2.
        encoded = signature.to_bytes()
        moved = MultiSignature.from_bytes(encoded[:-4] + b"\xa0\x00\x00\x00")
        self.assertEqual([index for index, _ in moved.signatures], [0, 2])
        self.assertFalse(multi_key.verify(message, moved))

        inner = bytearray(keys[1].sign(message).data())
        inner[5] ^= 0x01
        altered = MultiSignature(
            [
                (0, keys[0].sign(message)),
                (1, secp256k1_ecdsa.Signature(bytes(inner))),
            ]
        )
        self.assertFalse(multi_key.verify(message, altered))

        other_key = MultiPublicKey(
            [keys[0].public_key(), ed25519.PrivateKey.random().public_key()], 2
        )
        self.assertFalse(other_key.verify(message, signature))

    def test_duplicate_index_rejected(self):
        key = ed25519.PrivateKey.random()
        with self.assertRaises(CryptoFormatError):
            MultiSignature([(0, key.sign(b"m")), (0, key.sign(b"m"))])

    def test_bitmap_width(self):
        key = ed25519.PrivateKey.random()
        signature = MultiSignature([(9, key.sign(b"m")), (31, key.sign(b"m"))])
        self.assertEqual(signature.bitmap(), b"\x00\x40\x00\x01")
        low = MultiSignature([(0, key.sign(b"m"))])
        self.assertEqual(low.bitmap(), b"\x80\x00\x00\x00")
        self.assertEqual(low.to_bytes()[-5:], b"\x04\x80\x00\x00\x00")

    def test_short_bitmap_still_decodes(self):
        key = ed25519.PrivateKey.random()
        signature = MultiSignature([(1, key.sign(b"m"))])
        encoded = signature.to_bytes()
        short = encoded[:-5] + b"\x01\x40"
        self.assertEqual(MultiSignature.from_bytes(short), signature)
        self.assertEqual(MultiSignature.from_bytes(short).to_bytes(), encoded)

    def test_bitmap_count_mismatch(self):
        key = ed25519.PrivateKey.random()
        encoded = MultiSignature([(0, key.sign(b"m"))]).to_bytes()
        # Flip the bitmap to claim two signers.
        tampered = encoded[:-4] + b"\xc0\x00\x00\x00"
        with self.assertRaises(CryptoFormatError):
            MultiSignature.from_bytes(tampered)

    def test_multikey_bounds(self):
        key = ed25519.PrivateKey.random().public_key()
        self.assertEqual(MultiPublicKey([key], 1).threshold, 1)
        with self.assertRaises(CryptoFormatError):
            MultiPublicKey([key], 2)
        with self.assertRaises(CryptoFormatError):
            MultiPublicKey([], 1)
        with self.assertRaises(CryptoFormatError):
            MultiPublicKey([key] * 33, 1)


if __name__ == "__main__":
    unittest.main()
