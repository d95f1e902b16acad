# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Placeholders for the keyless (OpenID) and WebAuthn authentication variants.

The on-chain enums reserve slots for these schemes so that every variant tag
has a home. Decoding, encoding, signing or verifying any of them raises
:class:`~aptos_kit.errors.UnsupportedError` with the name of the variant.
"""

from __future__ import annotations

import unittest

from . import asymmetric_crypto
from .bcs import Deserializer, Serializer
from .errors import UnsupportedError


class _Placeholder:
    NAME: str = "placeholder"

    def __init__(self, *args, **kwargs):
        raise UnsupportedError(f"{self.NAME} is not supported")

    def to_crypto_bytes(self) -> bytes:
        raise UnsupportedError(f"{self.NAME} is not supported")

    def verify(self, data: bytes, signature: asymmetric_crypto.Signature) -> bool:
        raise UnsupportedError(f"{self.NAME} is not supported")

    def data(self) -> bytes:
        raise UnsupportedError(f"{self.NAME} is not supported")

    def serialize(self, serializer: Serializer):
        raise UnsupportedError(f"{self.NAME} is not supported")


class KeylessPublicKey(_Placeholder):
    NAME = "Keyless public key"

    @staticmethod
    def deserialize(deserializer: Deserializer) -> KeylessPublicKey:
        raise UnsupportedError(f"{KeylessPublicKey.NAME} is not supported")


class FederatedKeylessPublicKey(_Placeholder):
    NAME = "Federated keyless public key"

    @staticmethod
    def deserialize(deserializer: Deserializer) -> FederatedKeylessPublicKey:
        raise UnsupportedError(f"{FederatedKeylessPublicKey.NAME} is not supported")


class KeylessSignature(_Placeholder):
    NAME = "Keyless signature"

    @staticmethod
    def deserialize(deserializer: Deserializer) -> KeylessSignature:
        raise UnsupportedError(f"{KeylessSignature.NAME} is not supported")


class WebAuthnSignature(_Placeholder):
    NAME = "WebAuthn signature"

    @staticmethod
    def deserialize(deserializer: Deserializer) -> WebAuthnSignature:
        raise UnsupportedError(f"{WebAuthnSignature.NAME} is not supported")


class Test(unittest.TestCase):
    def test_placeholders_refuse_everything(self):
        for placeholder in (
            KeylessPublicKey,
            FederatedKeylessPublicKey,
            KeylessSignature,
            WebAuthnSignature,
        ):
            with self.assertRaisesRegex(UnsupportedError, placeholder.NAME):
                placeholder()
            with self.assertRaises(UnsupportedError):
                placeholder.deserialize(Deserializer(b"\x00"))


if __name__ == "__main__":
    unittest.main()
