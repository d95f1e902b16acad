# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Protocols shared by every key and signature scheme.

Concrete schemes live in their own modules (``ed25519``, ``secp256k1_ecdsa``,
``secp256r1_ecdsa``, ``slh_dsa``, ``keyless``) and the on-chain wrappers in
``asymmetric_crypto_wrapper``. All of them implement the three protocols here:

- :class:`PrivateKey`: ``sign``, ``public_key``, ``hex`` and AIP-80 formatting
- :class:`PublicKey`: ``verify``, ``to_crypto_bytes`` and ``auth_key``
- :class:`Signature`: ``data``

``verify`` never raises for a signature that merely fails to check; it returns
``False``. Malformed key or signature material is rejected earlier, when the
object is constructed or decoded, with :class:`~aptos_kit.errors.CryptoFormatError`.

AIP-80 defines the private key string format ``<scheme>-priv-0x<hex>``:

    ed25519-priv-0x4e5e3be60f4bbd5e98d086d932f3ce779ff4b58da99bf9e5241ae1212a29e5fe

Examples:
    Formatting and parsing::

        from aptos_kit.asymmetric_crypto import PrivateKey, PrivateKeyVariant

        PrivateKey.format_private_key("0x4e5e...", PrivateKeyVariant.Ed25519)
        # "ed25519-priv-0x4e5e..."

        PrivateKey.parse_hex_input("ed25519-priv-0x4e5e...", PrivateKeyVariant.Ed25519)
        # b"\\x4e\\x5e..."
"""

from __future__ import annotations

import logging
import unittest
from enum import Enum
from typing import TYPE_CHECKING

from typing_extensions import Protocol

from .bcs import Deserializable, Serializable
from .errors import ParseError

if TYPE_CHECKING:
    from .account_address import AuthenticationKey

logger = logging.getLogger(__name__)


class PrivateKeyVariant(Enum):
    """Schemes with an AIP-80 private key prefix."""

    Ed25519 = "ed25519"
    Secp256k1 = "secp256k1"
    Secp256r1 = "secp256r1"


def parse_hex(value: str) -> bytes:
    """Decode a hex string with an optional ``0x`` prefix.

    Raises:
        ParseError: If the remaining text is not an even number of hex digits.
    """
    if value[0:2] == "0x":
        value = value[2:]
    try:
        return bytes.fromhex(value)
    except ValueError as e:
        raise ParseError(f"Invalid hex string: {value!r}") from e


class PrivateKey(Deserializable, Serializable, Protocol):
    """A secret key able to produce signatures for one scheme.

    Implementations must be deterministic where the scheme allows it: Ed25519
    always is, and the ECDSA schemes use RFC 6979 nonces.
    """

    def hex(self) -> str:
        """The raw key as ``0x``-prefixed hex."""
        ...

    def public_key(self) -> PublicKey:
        ...

    def sign(self, data: bytes) -> Signature:
        """Sign ``data`` as-is; hashing, where the scheme needs it, happens inside."""
        ...

    AIP80_PREFIXES: dict[PrivateKeyVariant, str] = {
        PrivateKeyVariant.Ed25519: "ed25519-priv-",
        PrivateKeyVariant.Secp256k1: "secp256k1-priv-",
        PrivateKeyVariant.Secp256r1: "secp256r1-priv-",
    }

    @staticmethod
    def format_private_key(
        private_key: bytes | str, key_type: PrivateKeyVariant
    ) -> str:
        """Render a key as an AIP-80 string.

        Args:
            private_key: Raw key bytes, a hex string, or an already prefixed
                AIP-80 string (returned unchanged).
            key_type: Scheme whose prefix to use.

        Returns:
            ``<scheme>-priv-0x<hex>``.

        Raises:
            ParseError: If ``key_type`` has no AIP-80 prefix.
            TypeError: If ``private_key`` is neither ``str`` nor ``bytes``.
        """
        if key_type not in PrivateKey.AIP80_PREFIXES:
            raise ParseError(f"Unknown private key type: {key_type}")
        aip80_prefix = PrivateKey.AIP80_PREFIXES[key_type]

        if isinstance(private_key, str):
            if private_key.startswith(aip80_prefix):
                return private_key
            key_value = private_key if private_key[0:2] == "0x" else f"0x{private_key}"
        elif isinstance(private_key, bytes):
            key_value = f"0x{private_key.hex()}"
        else:
            raise TypeError("Input value must be a string or bytes.")

        return f"{aip80_prefix}{key_value}"

    @staticmethod
    def parse_hex_input(
        value: str | bytes, key_type: PrivateKeyVariant, strict: bool | None = None
    ) -> bytes:
        """Decode a private key given as bytes, hex, or an AIP-80 string.

        Args:
            value: The key material.
            key_type: Scheme the key belongs to; selects the accepted prefix.
            strict: ``True`` requires the AIP-80 prefix. ``False`` accepts plain
                hex silently. ``None`` accepts plain hex but logs a warning.

        Raises:
            ParseError: On bad hex, or a missing prefix in strict mode.
            TypeError: If ``value`` is neither ``str`` nor ``bytes``.
        """
        if key_type not in PrivateKey.AIP80_PREFIXES:
            raise ParseError(f"Unknown private key type: {key_type}")
        aip80_prefix = PrivateKey.AIP80_PREFIXES[key_type]

        if isinstance(value, bytes):
            return value
        if not isinstance(value, str):
            raise TypeError("Input value must be a string or bytes.")

        if value.startswith(aip80_prefix):
            return parse_hex(value[len(aip80_prefix) :])
        if strict:
            raise ParseError("Invalid HexString input. Must be AIP-80 compliant string.")
        if strict is None:
            logger.warning(
                "It is recommended that private keys are AIP-80 compliant "
                "(https://github.com/aptos-foundation/AIPs/blob/main/aips/aip-80.md)."
            )
        return parse_hex(value)


class PublicKey(Deserializable, Serializable, Protocol):
    """A verifying key."""

    def to_crypto_bytes(self) -> bytes:
        """The bytes hashed into the authentication key."""
        ...

    def verify(self, data: bytes, signature: Signature) -> bool:
        ...

    def auth_key(self) -> AuthenticationKey:
        from .account_address import AuthenticationKey

        return AuthenticationKey.from_public_key(self)


class Signature(Deserializable, Serializable, Protocol):
    def data(self) -> bytes:
        ...


class Test(unittest.TestCase):
    KEY = "4e5e3be60f4bbd5e98d086d932f3ce779ff4b58da99bf9e5241ae1212a29e5fe"

    def test_format_private_key(self):
        expected = f"secp256r1-priv-0x{self.KEY}"
        for value in (self.KEY, f"0x{self.KEY}", bytes.fromhex(self.KEY), expected):
            self.assertEqual(
                PrivateKey.format_private_key(value, PrivateKeyVariant.Secp256r1),
                expected,
            )

    def test_parse_hex_input(self):
        key = bytes.fromhex(self.KEY)
        variant = PrivateKeyVariant.Ed25519
        self.assertEqual(PrivateKey.parse_hex_input(f"ed25519-priv-0x{self.KEY}", variant, True), key)
        self.assertEqual(PrivateKey.parse_hex_input(f"0x{self.KEY}", variant, False), key)
        with self.assertLogs(__name__, level="WARNING"):
            self.assertEqual(PrivateKey.parse_hex_input(self.KEY, variant), key)

    def test_parse_hex_input_errors(self):
        variant = PrivateKeyVariant.Ed25519
        with self.assertRaises(ParseError):
            PrivateKey.parse_hex_input(self.KEY, variant, True)
        with self.assertRaises(ParseError):
            PrivateKey.parse_hex_input("secp256k1-priv-0x00", variant, True)
        with self.assertRaises(ParseError):
            PrivateKey.parse_hex_input("0xnothex", variant, False)


if __name__ == "__main__":
    unittest.main()
