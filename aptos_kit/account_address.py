# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Account addresses, authentication keys and derived addresses.

An address is 32 bytes. For a freshly created account it equals the account's
authentication key, the SHA3-256 hash of the public key bytes followed by a
one-byte scheme identifier. Objects and resource accounts derive their
addresses the same way from a creator address, a seed and a derive scheme.

String forms follow AIP-40:
- Special addresses (the first 31 bytes zero and the last byte below 0x10)
  print in SHORT form, e.g. ``0x1``
- Every other address prints in LONG form, ``0x`` followed by 64 hex digits

:meth:`AccountAddress.from_str` only accepts those canonical forms, while
:meth:`AccountAddress.from_str_relaxed` also takes padded, unprefixed or
shortened input.

Examples:
    Parsing and printing::

        AccountAddress.from_str("0x1")                    # 0x1
        AccountAddress.from_str_relaxed("0000000000a")    # 0xa
        AccountAddress.from_str_relaxed("10")             # 0x0000...0010

    Deriving an account address from a key::

        key = ed25519.PrivateKey.random().public_key()
        address = AuthenticationKey.from_public_key(key).account_address()

    Object and resource-account addresses::

        creator = AccountAddress.from_str("0x1")
        AccountAddress.for_resource_account(creator, b"seed")
        AccountAddress.for_named_object(creator, b"bob's collection")
        AccountAddress.for_guid_object(creator, 3)
"""

from __future__ import annotations

import hashlib
import string
import unittest

from . import asymmetric_crypto, asymmetric_crypto_wrapper, ed25519
from .bcs import Deserializer, Serializer
from .errors import ParseAddressError, RangeError

HEX_DIGITS = frozenset(string.hexdigits)


class AuthKeyScheme:
    """Trailing scheme bytes hashed into authentication keys and derived addresses."""

    Ed25519: bytes = b"\x00"
    MultiEd25519: bytes = b"\x01"
    SingleKey: bytes = b"\x02"
    MultiKey: bytes = b"\x03"
    DeriveObjectAddressFromObject: bytes = b"\xFC"
    DeriveObjectAddressFromGuid: bytes = b"\xFD"
    DeriveObjectAddressFromSeed: bytes = b"\xFE"
    DeriveResourceAccountAddress: bytes = b"\xFF"


class AccountAddress:
    """A 32-byte on-chain address.

    Attributes:
        address: The raw 32 bytes.
        LENGTH: Byte length of every address.

    Raises:
        RangeError: If constructed from anything but exactly 32 bytes.
    """

    address: bytes
    LENGTH: int = 32

    def __init__(self, address: bytes):
        if len(address) != AccountAddress.LENGTH:
            raise RangeError(
                f"Expected address of length {AccountAddress.LENGTH}, got {len(address)}"
            )
        self.address = bytes(address)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AccountAddress):
            return NotImplemented
        return self.address == other.address

    def __hash__(self) -> int:
        return hash(self.address)

    def __str__(self):
        suffix = self.address.hex()
        if self.is_special():
            suffix = suffix.lstrip("0") or "0"
        return f"0x{suffix}"

    def __repr__(self):
        return self.__str__()

    def to_long_string(self) -> str:
        """Always ``0x`` plus 64 hex digits, regardless of specialness."""
        return f"0x{self.address.hex()}"

    def is_special(self) -> bool:
        """Whether this is one of the reserved addresses ``0x0`` through ``0xf``."""
        return all(b == 0 for b in self.address[:-1]) and self.address[-1] < 0x10

    @staticmethod
    def from_str(address: str) -> AccountAddress:
        """Parse the strict AIP-40 string form.

        The input must start with ``0x``. Special addresses may use SHORT form
        (exactly one hex digit) or LONG form; every other address must be LONG.

        Args:
            address: Canonical address string.

        Returns:
            The parsed address.

        Raises:
            ParseAddressError: If the prefix is missing or the form is not
                canonical for this address.
            RangeError: If there are no digits or more than 64.

        Examples:
            >>> AccountAddress.from_str("0x1")
            0x1
            >>> AccountAddress.from_str("0x01")
            Traceback (most recent call last):
            ...
            aptos_kit.errors.ParseAddressError: ...
        """
        if not address.startswith("0x"):
            raise ParseAddressError("Hex string must start with a leading 0x.")

        out = AccountAddress.from_str_relaxed(address)
        digits = len(address) - 2

        if digits == AccountAddress.LENGTH * 2:
            return out
        if not out.is_special():
            raise ParseAddressError(
                "The given hex string is not a special address, it must be "
                "represented as 0x + 64 chars."
            )
        if digits != 1:
            raise ParseAddressError(
                "The given hex string is a special address not in LONG form, "
                "it must be 0x0 to 0xf without padding zeroes."
            )
        return out

    @staticmethod
    def from_str_relaxed(address: str) -> AccountAddress:
        """Parse any reasonable address spelling.

        Accepts an optional ``0x`` prefix and 1 to 64 hex digits, including odd
        digit counts. Shorter input is left-padded with zeroes.

        Raises:
            RangeError: If there are no digits or more than 64.
            ParseAddressError: If a character is not a hex digit.
        """
        addr = address[2:] if address.startswith("0x") else address

        if len(addr) < 1:
            raise RangeError(
                "Hex string is too short, must be 1 to 64 chars long, excluding "
                "the leading 0x."
            )
        if len(addr) > AccountAddress.LENGTH * 2:
            raise RangeError(
                "Hex string is too long, must be 1 to 64 chars long, excluding "
                "the leading 0x."
            )
        if not HEX_DIGITS.issuperset(addr):
            raise ParseAddressError(f"Invalid hex in address: {address!r}")

        return AccountAddress(bytes.fromhex(addr.rjust(AccountAddress.LENGTH * 2, "0")))

    @staticmethod
    def from_key(key: asymmetric_crypto.PublicKey) -> AccountAddress:
        return AuthenticationKey.from_public_key(key).account_address()

    @staticmethod
    def for_resource_account(creator: AccountAddress, seed: bytes) -> AccountAddress:
        return AccountAddress._derive(
            creator.address + seed, AuthKeyScheme.DeriveResourceAccountAddress
        )

    @staticmethod
    def for_guid_object(creator: AccountAddress, creation_num: int) -> AccountAddress:
        """Address of an object created from a GUID (``creation_num``) of ``creator``."""
        ser = Serializer()
        ser.u64(creation_num)
        return AccountAddress._derive(
            ser.output() + creator.address, AuthKeyScheme.DeriveObjectAddressFromGuid
        )

    @staticmethod
    def for_named_object(creator: AccountAddress, seed: bytes) -> AccountAddress:
        return AccountAddress._derive(
            creator.address + seed, AuthKeyScheme.DeriveObjectAddressFromSeed
        )

    @staticmethod
    def for_object_from_object(
        creator: AccountAddress, object_address: AccountAddress
    ) -> AccountAddress:
        """Address of an object derived from the existing object ``object_address``."""
        return AccountAddress._derive(
            creator.address + object_address.address,
            AuthKeyScheme.DeriveObjectAddressFromObject,
        )

    @staticmethod
    def for_named_token(
        creator: AccountAddress, collection_name: str, token_name: str
    ) -> AccountAddress:
        seed = collection_name.encode() + b"::" + token_name.encode()
        return AccountAddress.for_named_object(creator, seed)

    @staticmethod
    def for_named_collection(
        creator: AccountAddress, collection_name: str
    ) -> AccountAddress:
        return AccountAddress.for_named_object(creator, collection_name.encode())

    @staticmethod
    def _derive(data: bytes, scheme: bytes) -> AccountAddress:
        return AccountAddress(hashlib.sha3_256(data + scheme).digest())

    @staticmethod
    def deserialize(deserializer: Deserializer) -> AccountAddress:
        return AccountAddress(deserializer.fixed_bytes(AccountAddress.LENGTH))

    def serialize(self, serializer: Serializer):
        serializer.fixed_bytes(self.address)


class AuthenticationKey:
    """SHA3-256 of a public key's bytes followed by its scheme byte.

    The key decides which scheme applies:
    - A bare Ed25519 key uses the legacy Ed25519 scheme
    - A legacy Ed25519 multisig key uses the MultiEd25519 scheme
    - Any other single key (Secp256k1, Secp256r1, SLH-DSA, or an explicit
      ``AnyPublicKey`` wrapper) uses the SingleKey scheme over its wrapped
      encoding
    - A ``MultiKey`` uses the MultiKey scheme
    """

    LENGTH: int = 32

    key: bytes

    def __init__(self, key: bytes):
        if len(key) != AuthenticationKey.LENGTH:
            raise RangeError(
                f"Expected authentication key of length {AuthenticationKey.LENGTH}"
            )
        self.key = bytes(key)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AuthenticationKey):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __str__(self) -> str:
        return f"0x{self.key.hex()}"

    def __repr__(self) -> str:
        return self.__str__()

    @staticmethod
    def from_scheme(key_bytes: bytes, scheme: bytes) -> AuthenticationKey:
        return AuthenticationKey(hashlib.sha3_256(key_bytes + scheme).digest())

    @staticmethod
    def from_public_key(key: asymmetric_crypto.PublicKey) -> AuthenticationKey:
        if isinstance(key, ed25519.PublicKey):
            scheme = AuthKeyScheme.Ed25519
        elif isinstance(key, ed25519.MultiPublicKey):
            scheme = AuthKeyScheme.MultiEd25519
        elif isinstance(key, asymmetric_crypto_wrapper.PublicKey):
            scheme = AuthKeyScheme.SingleKey
        elif isinstance(key, asymmetric_crypto_wrapper.MultiPublicKey):
            scheme = AuthKeyScheme.MultiKey
        else:
            # Remaining single keys only exist on chain behind the SingleKey wrapper.
            key = asymmetric_crypto_wrapper.PublicKey(key)
            scheme = AuthKeyScheme.SingleKey
        return AuthenticationKey.from_scheme(key.to_crypto_bytes(), scheme)

    def account_address(self) -> AccountAddress:
        return AccountAddress(self.key)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> AuthenticationKey:
        return AuthenticationKey(deserializer.fixed_bytes(AuthenticationKey.LENGTH))

    def serialize(self, serializer: Serializer):
        serializer.fixed_bytes(self.key)


ZERO_LONG = "0x" + "0" * 64
TEN_LONG = "0x" + "0" * 62 + "10"
OTHER = "0xca843279e3427144cead5e4d5999a3d0ca843279e3427144cead5e4d5999a3d0"


class Test(unittest.TestCase):
    def test_ed25519_auth_key(self):
        private_key = ed25519.PrivateKey.from_str(
            "c5338cd251c22daa8c9c9cc94f498cc8a5c7e1d2e75287a5dda91096fe64efa5"
        )
        auth_key = AuthenticationKey.from_public_key(private_key.public_key())
        self.assertEqual(
            str(auth_key),
            "0x978c213990c4833df71548df7ce49d54c759d6b6d932de22b24d56060b7af2aa",
        )
        self.assertEqual(auth_key.account_address(), AccountAddress.from_key(private_key.public_key()))

    def test_single_key_ed25519_auth_key(self):
        private_key = ed25519.PrivateKey.from_str(
            "f508cbef4e0fe463204aab724a90791c9a9dbe60a53b4978bbddbc712b55f2fd"
        )
        wrapped = asymmetric_crypto_wrapper.PublicKey(private_key.public_key())
        self.assertEqual(
            str(AccountAddress.from_key(wrapped)),
            "0x5bdf77d5bf826c8c04273d4e7323f7bc4a85ee7ee34b37bd7458b7aed3639dd3",
        )

    def test_multi_ed25519(self):
        private_key_1 = ed25519.PrivateKey.from_str(
            "4e5e3be60f4bbd5e98d086d932f3ce779ff4b58da99bf9e5241ae1212a29e5fe"
        )
        private_key_2 = ed25519.PrivateKey.from_str(
            "1e70e49b78f976644e2c51754a2f049d3ff041869c669523ba95b172c7329901"
        )
        multisig_public_key = ed25519.MultiPublicKey(
            [private_key_1.public_key(), private_key_2.public_key()], 1
        )

        expected = AccountAddress.from_str_relaxed(
            "835bb8c5ee481062946b18bbb3b42a40b998d6bf5316ca63834c959dc739acf0"
        )
        self.assertEqual(AccountAddress.from_key(multisig_public_key), expected)

    def test_resource_account(self):
        base_address = AccountAddress.from_str_relaxed("b0b")
        expected = AccountAddress.from_str_relaxed(
            "ee89f8c763c27f9d942d496c1a0dcf32d5eacfe78416f9486b8db66155b163b0"
        )
        actual = AccountAddress.for_resource_account(base_address, b"\x0b\x00\x0b")
        self.assertEqual(actual, expected)

    def test_named_objects(self):
        base_address = AccountAddress.from_str_relaxed("b0b")
        collection = AccountAddress.from_str_relaxed(
            "f417184602a828a3819edf5e36285ebef5e4db1ba36270be580d6fd2d7bcc321"
        )
        self.assertEqual(
            AccountAddress.for_named_object(base_address, b"bob's collection"),
            collection,
        )
        self.assertEqual(
            AccountAddress.for_named_collection(base_address, "bob's collection"),
            collection,
        )
        self.assertEqual(
            AccountAddress.for_named_token(
                base_address, "bob's collection", "bob's token"
            ),
            AccountAddress.from_str_relaxed(
                "e20d1f22a5400ba7be0f515b7cbd00edc42dbcc31acc01e31128b2b5ddb3c56e"
            ),
        )
        self.assertNotEqual(
            AccountAddress.for_object_from_object(base_address, collection),
            AccountAddress.for_named_object(base_address, collection.address),
        )

    def test_object_from_object(self):
        owner = AccountAddress.from_str_relaxed(
            "0xc67545d6f3d36ed01efc9b28cbfd0c1ae326d5d262dd077a29539bcee0edce9e"
        )
        source = AccountAddress.from_str_relaxed(
            "0x2ebb2ccac5e027a87fa0e2e5f656a3a4238d6a48d93ec9b610d570fc0aa0df12"
        )
        expected = AccountAddress.from_str_relaxed(
            "0x8a9d57692a9d4deb1680eaf107b83c152436e10f7bb521143fa403fa95ef76a"
        )
        derived = AccountAddress.for_object_from_object(owner, source)
        self.assertEqual(derived, expected)
        self.assertEqual(
            derived.address,
            hashlib.sha3_256(owner.address + source.address + b"\xfc").digest(),
        )

    def test_guid_object(self):
        creator = AccountAddress.from_str_relaxed("b0b")
        first = AccountAddress.for_guid_object(creator, 1)
        expected = hashlib.sha3_256(
            (1).to_bytes(8, "little") + creator.address + b"\xfd"
        ).digest()
        self.assertEqual(first.address, expected)
        self.assertNotEqual(first, AccountAddress.for_guid_object(creator, 2))

    def test_to_standard_string(self):
        self.assertEqual(str(AccountAddress.from_str_relaxed(ZERO_LONG)), "0x0")
        self.assertEqual(str(AccountAddress.from_str_relaxed("0x" + "0" * 63 + "1")), "0x1")
        self.assertEqual(str(AccountAddress.from_str_relaxed("0x" + "0" * 63 + "f")), "0xf")
        self.assertEqual(str(AccountAddress.from_str_relaxed("d")), "0xd")
        self.assertEqual(str(AccountAddress.from_str_relaxed(TEN_LONG)), TEN_LONG)
        self.assertEqual(str(AccountAddress.from_str_relaxed("10")), TEN_LONG)

        # Neither leading nor trailing zeroes are trimmed for other addresses.
        value = "0f" + "0" * 62
        self.assertEqual(str(AccountAddress.from_str_relaxed(value)), f"0x{value}")
        self.assertEqual(AccountAddress.from_str("0x1").to_long_string(), "0x" + "0" * 63 + "1")

    def test_from_str_relaxed(self):
        for text in (ZERO_LONG, ZERO_LONG[2:], "0x0", "0", "00"):
            self.assertEqual(str(AccountAddress.from_str_relaxed(text)), "0x0")
        for text in ("0x0f", "0f", "f", "0xf"):
            self.assertEqual(str(AccountAddress.from_str_relaxed(text)), "0xf")
        for text in (OTHER, OTHER[2:]):
            self.assertEqual(str(AccountAddress.from_str_relaxed(text)), OTHER)

    def test_from_str_relaxed_errors(self):
        with self.assertRaises(RangeError):
            AccountAddress.from_str_relaxed("0x")
        with self.assertRaises(RangeError):
            AccountAddress.from_str_relaxed("0x" + "1" * 65)
        with self.assertRaises(ParseAddressError):
            AccountAddress.from_str_relaxed("0xzz")
        with self.assertRaises(ParseAddressError):
            AccountAddress.from_str_relaxed("0x 1")

    def test_from_str(self):
        self.assertEqual(str(AccountAddress.from_str(ZERO_LONG)), "0x0")
        self.assertEqual(str(AccountAddress.from_str("0x0")), "0x0")
        self.assertEqual(str(AccountAddress.from_str("0xf")), "0xf")
        self.assertEqual(str(AccountAddress.from_str(TEN_LONG)), TEN_LONG)
        self.assertEqual(str(AccountAddress.from_str(OTHER)), OTHER)

        # Missing prefix, padded special addresses and short non-special forms.
        for text in (ZERO_LONG[2:], "0", "0x0f", "0f", "0x10", "10", OTHER[2:]):
            with self.assertRaises(ParseAddressError, msg=text):
                AccountAddress.from_str(text)

    def test_identical_bytes_identical_strings(self):
        left = AccountAddress.from_str_relaxed("0x000a")
        right = AccountAddress(bytes(31) + b"\x0a")
        self.assertEqual(left, right)
        self.assertEqual(str(left), str(right))
        self.assertEqual(len({left, right}), 1)

    def test_wrong_length(self):
        with self.assertRaises(RangeError):
            AccountAddress(b"\x01" * 31)
        with self.assertRaises(RangeError):
            AuthenticationKey(b"\x01" * 33)


if __name__ == "__main__":
    unittest.main()
