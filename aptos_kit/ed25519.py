# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Ed25519 keys and signatures, plus the legacy MultiEd25519 aggregate.

Ed25519 is the default scheme for Aptos accounts. Keys are 32 bytes and
signatures 64 bytes; signing is deterministic. The curve arithmetic, including
the malleability and small-order checks performed during verification, is
delegated to libsodium through PyNaCl.

MultiEd25519 is the original K-of-N multisig format. Its public key is the
concatenated member keys followed by the threshold byte, and its signature is
the concatenated member signatures followed by a 4-byte big-endian bitmap in
which bit ``31 - i`` marks a signature from key ``i``. New accounts should use
:class:`~aptos_kit.asymmetric_crypto_wrapper.MultiPublicKey` instead.

Examples:
    Signing and verifying::

        from aptos_kit import ed25519

        private_key = ed25519.PrivateKey.random()
        signature = private_key.sign(b"hello world")
        assert private_key.public_key().verify(b"hello world", signature)

    A 1-of-2 legacy multisig::

        keys = [ed25519.PrivateKey.random() for _ in range(2)]
        multi_key = ed25519.MultiPublicKey([k.public_key() for k in keys], 1)
        sig = ed25519.MultiSignature([(1, keys[1].sign(b"msg"))])
        assert multi_key.verify(b"msg", sig)
"""

from __future__ import annotations

import unittest
from typing import List, Tuple

from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey

from . import asymmetric_crypto
from .asymmetric_crypto import parse_hex
from .bcs import Deserializer, Serializer
from .errors import CryptoFormatError


class PrivateKey(asymmetric_crypto.PrivateKey):
    LENGTH: int = 32

    key: SigningKey

    def __init__(self, key: SigningKey):
        self.key = key

    def __eq__(self, other: object):
        if not isinstance(other, PrivateKey):
            return NotImplemented
        return self.key == other.key

    def __str__(self):
        return self.aip80()

    @staticmethod
    def from_hex(value: str | bytes, strict: bool | None = None) -> PrivateKey:
        """Load a key from raw bytes, hex, or an ``ed25519-priv-`` AIP-80 string.

        Raises:
            ParseError: If the string is not valid hex, or lacks the AIP-80
                prefix when ``strict`` is ``True``.
            CryptoFormatError: If the key is not 32 bytes.
        """
        key = PrivateKey.parse_hex_input(
            value, asymmetric_crypto.PrivateKeyVariant.Ed25519, strict
        )
        return PrivateKey.from_bytes_exact(key)

    @staticmethod
    def from_str(value: str, strict: bool | None = None) -> PrivateKey:
        return PrivateKey.from_hex(value, strict)

    @staticmethod
    def from_bytes_exact(key: bytes) -> PrivateKey:
        if len(key) != PrivateKey.LENGTH:
            raise CryptoFormatError(
                f"Ed25519 private key must be {PrivateKey.LENGTH} bytes, got {len(key)}"
            )
        return PrivateKey(SigningKey(key))

    def hex(self) -> str:
        return f"0x{self.key.encode().hex()}"

    def aip80(self) -> str:
        return PrivateKey.format_private_key(
            self.hex(), asymmetric_crypto.PrivateKeyVariant.Ed25519
        )

    def public_key(self) -> PublicKey:
        return PublicKey(self.key.verify_key)

    @staticmethod
    def random() -> PrivateKey:
        return PrivateKey(SigningKey.generate())

    def sign(self, data: bytes) -> Signature:
        return Signature(self.key.sign(data).signature)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> PrivateKey:
        return PrivateKey.from_bytes_exact(deserializer.to_bytes())

    def serialize(self, serializer: Serializer):
        serializer.to_bytes(self.key.encode())


class PublicKey(asymmetric_crypto.PublicKey):
    LENGTH: int = 32

    key: VerifyKey

    def __init__(self, key: VerifyKey):
        self.key = key

    def __eq__(self, other: object):
        if not isinstance(other, PublicKey):
            return NotImplemented
        return self.key == other.key

    def __hash__(self):
        return hash(self.key.encode())

    def __str__(self) -> str:
        return f"0x{self.key.encode().hex()}"

    @staticmethod
    def from_str(value: str) -> PublicKey:
        return PublicKey.from_crypto_bytes(parse_hex(value))

    @staticmethod
    def from_crypto_bytes(key: bytes) -> PublicKey:
        if len(key) != PublicKey.LENGTH:
            raise CryptoFormatError(
                f"Ed25519 public key must be {PublicKey.LENGTH} bytes, got {len(key)}"
            )
        return PublicKey(VerifyKey(key))

    def verify(self, data: bytes, signature: asymmetric_crypto.Signature) -> bool:
        if not isinstance(signature, Signature):
            return False
        try:
            self.key.verify(data, signature.data())
        except BadSignatureError:
            return False
        return True

    def to_crypto_bytes(self) -> bytes:
        return self.key.encode()

    @staticmethod
    def deserialize(deserializer: Deserializer) -> PublicKey:
        return PublicKey.from_crypto_bytes(deserializer.to_bytes())

    def serialize(self, serializer: Serializer):
        serializer.to_bytes(self.key.encode())


class MultiPublicKey(asymmetric_crypto.PublicKey):
    """K-of-N legacy multisig key over 2 to 32 Ed25519 keys."""

    keys: List[PublicKey]
    threshold: int

    MIN_KEYS = 2
    MAX_KEYS = 32
    MIN_THRESHOLD = 1

    def __init__(self, keys: List[PublicKey], threshold: int):
        if not self.MIN_KEYS <= len(keys) <= self.MAX_KEYS:
            raise CryptoFormatError(
                f"Must have between {self.MIN_KEYS} and {self.MAX_KEYS} keys."
            )
        if not self.MIN_THRESHOLD <= threshold <= len(keys):
            raise CryptoFormatError(
                f"Threshold must be between {self.MIN_THRESHOLD} and {len(keys)}."
            )

        self.keys = keys
        self.threshold = threshold

    def __eq__(self, other: object):
        if not isinstance(other, MultiPublicKey):
            return NotImplemented
        return self.keys == other.keys and self.threshold == other.threshold

    def __str__(self) -> str:
        return f"{self.threshold}-of-{len(self.keys)} Multi-Ed25519 public key"

    def verify(self, data: bytes, signature: asymmetric_crypto.Signature) -> bool:
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
        if len(indata) % PublicKey.LENGTH != 1:
            raise CryptoFormatError(
                f"MultiEd25519 public key has invalid length {len(indata)}"
            )
        total_keys = len(indata) // PublicKey.LENGTH
        keys = [
            PublicKey.from_crypto_bytes(
                indata[idx * PublicKey.LENGTH : (idx + 1) * PublicKey.LENGTH]
            )
            for idx in range(total_keys)
        ]
        return MultiPublicKey(keys, indata[-1])

    def to_crypto_bytes(self) -> bytes:
        key_bytes = bytearray()
        for key in self.keys:
            key_bytes.extend(key.to_crypto_bytes())
        key_bytes.append(self.threshold)
        return bytes(key_bytes)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> MultiPublicKey:
        return MultiPublicKey.from_crypto_bytes(deserializer.to_bytes())

    def serialize(self, serializer: Serializer):
        serializer.to_bytes(self.to_crypto_bytes())


class Signature(asymmetric_crypto.Signature):
    LENGTH: int = 64

    signature: bytes

    def __init__(self, signature: bytes):
        if len(signature) != Signature.LENGTH:
            raise CryptoFormatError(
                f"Ed25519 signature must be {Signature.LENGTH} bytes, got {len(signature)}"
            )
        self.signature = bytes(signature)

    def __eq__(self, other: object):
        if not isinstance(other, Signature):
            return NotImplemented
        return self.signature == other.signature

    def __str__(self) -> str:
        return f"0x{self.signature.hex()}"

    def data(self) -> bytes:
        return self.signature

    @staticmethod
    def empty() -> Signature:
        """All-zero signature used when simulating a transaction."""
        return Signature(b"\x00" * Signature.LENGTH)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Signature:
        return Signature(deserializer.to_bytes())

    @staticmethod
    def from_str(value: str) -> Signature:
        return Signature(parse_hex(value))

    def serialize(self, serializer: Serializer):
        serializer.to_bytes(self.signature)


class MultiSignature(asymmetric_crypto.Signature):
    """Signatures from a subset of a :class:`MultiPublicKey`'s members.

    ``signatures`` pairs each signature with the index of its key and is kept
    sorted by index.
    """

    signatures: List[Tuple[int, Signature]]
    BITMAP_NUM_OF_BYTES: int = 4

    def __init__(self, signatures: List[Tuple[int, Signature]]):
        indices = [index for index, _ in signatures]
        if len(set(indices)) != len(indices):
            raise CryptoFormatError("Duplicate signer index in MultiEd25519 signature")
        for index in indices:
            if not 0 <= index < self.BITMAP_NUM_OF_BYTES * 8:
                raise CryptoFormatError(f"Signer index {index} exceeds the bitmap")
        self.signatures = sorted(signatures, key=lambda entry: entry[0])

    def __eq__(self, other: object):
        if not isinstance(other, MultiSignature):
            return NotImplemented
        return self.signatures == other.signatures

    def __str__(self) -> str:
        return f"{self.signatures}"

    def data(self) -> bytes:
        return self.to_crypto_bytes()

    @staticmethod
    def from_key_map(
        public_key: MultiPublicKey,
        signatures_map: List[Tuple[PublicKey, Signature]],
    ) -> MultiSignature:
        return MultiSignature(
            [(public_key.keys.index(key), signature) for key, signature in signatures_map]
        )

    def bitmap(self) -> int:
        bitmap = 0
        for index, _ in self.signatures:
            bitmap |= 1 << (31 - index)
        return bitmap

    def to_crypto_bytes(self) -> bytes:
        signature_bytes = bytearray()
        for _, signature in self.signatures:
            signature_bytes.extend(signature.data())
        signature_bytes.extend(self.bitmap().to_bytes(self.BITMAP_NUM_OF_BYTES, "big"))
        return bytes(signature_bytes)

    @staticmethod
    def from_crypto_bytes(signature_bytes: bytes) -> MultiSignature:
        count, remainder = divmod(
            len(signature_bytes) - MultiSignature.BITMAP_NUM_OF_BYTES, Signature.LENGTH
        )
        if count < 0 or remainder != 0:
            raise CryptoFormatError("MultiSignature length is invalid")

        bitmap = int.from_bytes(signature_bytes[-MultiSignature.BITMAP_NUM_OF_BYTES :], "big")
        positions = [i for i in range(32) if bitmap & (1 << (31 - i))]
        if len(positions) != count:
            raise CryptoFormatError(
                f"Bitmap marks {len(positions)} signers but {count} signatures are present"
            )

        signatures = []
        for current, position in enumerate(positions):
            left = current * Signature.LENGTH
            signatures.append(
                (position, Signature(signature_bytes[left : left + Signature.LENGTH]))
            )
        return MultiSignature(signatures)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> MultiSignature:
        return MultiSignature.from_crypto_bytes(deserializer.to_bytes())

    def serialize(self, serializer: Serializer):
        serializer.to_bytes(self.to_crypto_bytes())


class Test(unittest.TestCase):
    def test_known_vector(self):
        private_key = PrivateKey.from_str(
            "0xc5338cd251c22daa8c9c9cc94f498cc8a5c7e1d2e75287a5dda91096fe64efa5", False
        )
        self.assertEqual(
            str(private_key.public_key()),
            "0xde19e5d1880cac87d57484ce9ed2e84cf0f9599f12e7cc3a52e4e7657a763f2c",
        )
        signature = private_key.sign(b"hello world")
        self.assertEqual(
            str(signature),
            "0x9e653d56a09247570bb174a389e85b9226abd5c403ea6c504b386626a145158c"
            "d4efd66fc5e071c0e19538a96a05ddbda24d3c51e1e6a9dacc6bb1ce775cce07",
        )
        self.assertTrue(private_key.public_key().verify(b"hello world", signature))

    def test_bit_flip_fails_verification(self):
        private_key = PrivateKey.random()
        signature = private_key.sign(b"message")
        flipped = bytearray(signature.data())
        flipped[10] ^= 0x01
        self.assertFalse(private_key.public_key().verify(b"message", Signature(bytes(flipped))))
        self.assertFalse(private_key.public_key().verify(b"massage", signature))
        self.assertFalse(private_key.public_key().verify(b"message", Signature.empty()))

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

        for position in (0, 15, 31):
            tampered = bytearray(public_key.to_crypto_bytes())
            tampered[position] ^= 0x01
            try:
                other = PublicKey.from_crypto_bytes(bytes(tampered))
            except CryptoFormatError:
                continue
            self.assertFalse(other.verify(message, signature))

        self.assertFalse(PrivateKey.random().public_key().verify(message, signature))

    def test_private_key_from_str(self):
        key = "4e5e3be60f4bbd5e98d086d932f3ce779ff4b58da99bf9e5241ae1212a29e5fe"
        private_key_hex = PrivateKey.from_str(f"0x{key}", False)
        private_key_with_prefix = PrivateKey.from_str(f"ed25519-priv-0x{key}", True)
        private_key_bytes = PrivateKey.from_hex(bytes.fromhex(key), False)
        self.assertEqual(private_key_hex, private_key_with_prefix)
        self.assertEqual(private_key_hex, private_key_bytes)
        self.assertEqual(str(private_key_hex), f"ed25519-priv-0x{key}")

    def test_length_checks(self):
        with self.assertRaises(CryptoFormatError):
            PrivateKey.from_hex(b"\x01" * 31, False)
        with self.assertRaises(CryptoFormatError):
            PublicKey.from_str("0x" + "01" * 33)
        with self.assertRaises(CryptoFormatError):
            Signature(b"\x01" * 63)

    def test_serialization(self):
        private_key = PrivateKey.random()
        self.assertEqual(PrivateKey.from_bytes(private_key.to_bytes()), private_key)
        public_key = private_key.public_key()
        self.assertEqual(PublicKey.from_bytes(public_key.to_bytes()), public_key)
        signature = private_key.sign(b"another_message")
        self.assertEqual(Signature.from_bytes(signature.to_bytes()), signature)

    def test_multisig(self):
        private_key_1 = PrivateKey.from_str(
            "ed25519-priv-0x4e5e3be60f4bbd5e98d086d932f3ce779ff4b58da99bf9e5241ae1212a29e5fe"
        )
        private_key_2 = PrivateKey.from_str(
            "ed25519-priv-0x1e70e49b78f976644e2c51754a2f049d3ff041869c669523ba95b172c7329901"
        )
        multisig_public_key = MultiPublicKey(
            [private_key_1.public_key(), private_key_2.public_key()], 1
        )

        expected_public_key_bcs = (
            "41754bb6a4720a658bdd5f532995955db0971ad3519acbde2f1149c3857348006c"
            "1634cd4607073f2be4a6f2aadc2b866ddb117398a675f2096ed906b20e0bf2c901"
        )
        self.assertEqual(multisig_public_key.to_bytes().hex(), expected_public_key_bcs)
        self.assertEqual(
            MultiPublicKey.from_bytes(bytes.fromhex(expected_public_key_bcs)),
            multisig_public_key,
        )

        signature = private_key_2.sign(b"multisig")
        multisig_signature = MultiSignature.from_key_map(
            multisig_public_key, [(private_key_2.public_key(), signature)]
        )
        expected_multisig_signature_bcs = (
            "4402e90d8f300d79963cb7159ffa6f620f5bba4af5d32a7176bfb5480b43897cf"
            "4886bbb4042182f4647c9b04f02dbf989966f0facceec52d22bdcc7ce631bfc0c"
            "40000000"
        )
        self.assertEqual(multisig_signature.to_bytes().hex(), expected_multisig_signature_bcs)
        deserialized = Deserializer(bytes.fromhex(expected_multisig_signature_bcs)).struct(
            MultiSignature
        )
        self.assertEqual(deserialized, multisig_signature)
        self.assertTrue(multisig_public_key.verify(b"multisig", multisig_signature))

        two_of_two = MultiPublicKey(multisig_public_key.keys, 2)
        self.assertFalse(two_of_two.verify(b"multisig", multisig_signature))

    def test_multisig_signature_ordering(self):
        keys = [PrivateKey.random() for _ in range(3)]
        unordered = MultiSignature([(2, keys[2].sign(b"m")), (0, keys[0].sign(b"m"))])
        self.assertEqual([index for index, _ in unordered.signatures], [0, 2])
        self.assertEqual(unordered.bitmap(), 0xA0000000)
        with self.assertRaises(CryptoFormatError):
            MultiSignature([(1, keys[1].sign(b"m")), (1, keys[1].sign(b"m"))])

    def test_multisig_range_checks(self):
        keys = [
            PrivateKey.random().public_key() for _ in range(MultiPublicKey.MAX_KEYS + 1)
        ]
        with self.assertRaisesRegex(CryptoFormatError, "Must have between 2 and 32 keys."):
            MultiPublicKey([keys[0]], 1)
        with self.assertRaisesRegex(CryptoFormatError, "Must have between 2 and 32 keys."):
            MultiPublicKey(keys, 1)
        with self.assertRaisesRegex(CryptoFormatError, "Threshold must be between 1 and 4."):
            MultiPublicKey(keys[0:4], 0)
        with self.assertRaisesRegex(CryptoFormatError, "Threshold must be between 1 and 4."):
            MultiPublicKey(keys[0:4], 5)
        with self.assertRaises(CryptoFormatError):
            MultiPublicKey.from_crypto_bytes(b"\x00" * 64)


if __name__ == "__main__":
    unittest.main()
