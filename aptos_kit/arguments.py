# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Conversion of plain Python values into BCS-encoded Move arguments.

:func:`marshal_argument` takes a parameter type and a value and returns the
argument bytes an entry function or view function expects. It accepts the
spellings values usually arrive in from JSON, command lines or user input:

- integers as ``int``, decimal strings or ``0x`` hex strings
- ``bool`` or the strings ``"true"`` / ``"false"``
- addresses as :class:`AccountAddress` or any relaxed address string
- ``vector<u8>`` as ``bytes``, a ``0x`` hex string, a plain string (UTF-8)
  or a list of ints
- ``0x1::string::String`` as ``str``
- ``0x1::option::Option<T>`` as ``None`` or a ``T`` value
- ``0x1::object::Object<T>`` as an address

Examples:
    ::

        marshal_argument(parse_type_tag("u64"), 42).hex()          # "2a00000000000000"
        marshal_argument(parse_type_tag("vector<u8>"), "0x42").hex()  # "0142"
        marshal_argument(parse_type_tag("0x1::option::Option<u8>"), None).hex()  # "00"
"""

from __future__ import annotations

import unittest
from typing import Any, Callable, Dict, Sequence

from .account_address import AccountAddress
from .bcs import Serializer
from .errors import ParseError, RangeError, UnsupportedError
from .type_tag import GenericTag, ReferenceTag, StructTag, TypeTag, VectorTag

_INTEGER_ENCODERS: Dict[int, Callable[[Serializer, int], None]] = {
    TypeTag.U8: Serializer.u8,
    TypeTag.U16: Serializer.u16,
    TypeTag.U32: Serializer.u32,
    TypeTag.U64: Serializer.u64,
    TypeTag.U128: Serializer.u128,
    TypeTag.U256: Serializer.u256,
    TypeTag.I8: Serializer.i8,
    TypeTag.I16: Serializer.i16,
    TypeTag.I32: Serializer.i32,
    TypeTag.I64: Serializer.i64,
    TypeTag.I128: Serializer.i128,
    TypeTag.I256: Serializer.i256,
}


def marshal_argument(
    type_tag: TypeTag, value: Any, type_params: Sequence[TypeTag] = ()
) -> bytes:
    """Encode ``value`` as an argument of type ``type_tag``.

    Args:
        type_tag: The parameter type, possibly containing references or
            generic parameters.
        value: The Python value.
        type_params: Concrete types that ``T0``, ``T1``... resolve to.

    Raises:
        ParseError: If ``value`` cannot be read as the requested type.
        RangeError: If a number does not fit, or a generic index has no type.
        UnsupportedError: For ``signer`` and structs other than ``String``,
            ``Option`` and ``Object``.
    """
    ser = Serializer()
    _marshal(ser, type_tag, value, type_params)
    return ser.output()


def _marshal(ser: Serializer, type_tag: TypeTag, value: Any, type_params: Sequence[TypeTag]):
    inner = type_tag.value
    variant = type_tag.variant()

    if variant in _INTEGER_ENCODERS:
        _INTEGER_ENCODERS[variant](ser, to_int(value, str(type_tag)))
    elif variant == TypeTag.BOOL:
        ser.bool(to_bool(value))
    elif variant == TypeTag.ACCOUNT_ADDRESS:
        ser.struct(to_address(value))
    elif variant == TypeTag.SIGNER:
        raise UnsupportedError("signer arguments are supplied by the transaction")
    elif isinstance(inner, ReferenceTag):
        _marshal(ser, inner.value, value, type_params)
    elif isinstance(inner, GenericTag):
        if inner.index >= len(type_params):
            raise RangeError(
                f"Type parameter T{inner.index} is not bound, {len(type_params)} given"
            )
        _marshal(ser, type_params[inner.index], value, type_params)
    elif isinstance(inner, VectorTag):
        _marshal_vector(ser, inner, value, type_params)
    elif isinstance(inner, StructTag):
        _marshal_struct(ser, inner, value, type_params)
    else:
        raise UnsupportedError(f"Cannot marshal arguments of type {type_tag}")


def _marshal_vector(
    ser: Serializer, tag: VectorTag, value: Any, type_params: Sequence[TypeTag]
):
    if value is None:
        raise ParseError(f"None is not a valid vector<{tag.value}>")

    if tag.value.variant() == TypeTag.U8:
        if isinstance(value, (bytes, bytearray)):
            ser.to_bytes(bytes(value))
            return
        if isinstance(value, str):
            ser.to_bytes(_hex_or_utf8(value))
            return

    if not isinstance(value, (list, tuple)):
        raise ParseError(f"Expected a list for vector<{tag.value}>, got {type(value).__name__}")

    ser.uleb128(len(value))
    for item in value:
        _marshal(ser, tag.value, item, type_params)


def _marshal_struct(
    ser: Serializer, tag: StructTag, value: Any, type_params: Sequence[TypeTag]
):
    if tag.is_string():
        if not isinstance(value, str):
            raise ParseError(f"Expected str for {tag}, got {type(value).__name__}")
        ser.str(value)
    elif tag.is_option():
        if value is None:
            ser.u8(0)
        else:
            ser.u8(1)
            _marshal(ser, tag.type_args[0], value, type_params)
    elif tag.is_object():
        ser.struct(to_address(value))
    else:
        raise UnsupportedError(f"Cannot marshal arguments of type {tag}")


def _hex_or_utf8(value: str) -> bytes:
    if not value.startswith("0x"):
        return value.encode("utf-8")
    try:
        return bytes.fromhex(value[2:])
    except ValueError as e:
        raise ParseError(f"Invalid hex string {value!r}") from e


def to_int(value: Any, type_name: str = "integer") -> int:
    """Read an integer from an int, a decimal string or a ``0x`` hex string."""
    if isinstance(value, bool):
        raise ParseError(f"Expected {type_name}, got bool")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            if text.lower().startswith("0x"):
                return int(text[2:], 16)
            return int(text, 10)
        except ValueError as e:
            raise ParseError(f"Invalid {type_name}: {value!r}") from e
    raise ParseError(f"Expected {type_name}, got {type(value).__name__}")


def to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value == "true":
        return True
    if value == "false":
        return False
    raise ParseError(f"Expected bool, got {value!r}")


def to_address(value: Any) -> AccountAddress:
    if isinstance(value, AccountAddress):
        return value
    if isinstance(value, str):
        return AccountAddress.from_str_relaxed(value)
    raise ParseError(f"Expected an address, got {type(value).__name__}")


class Test(unittest.TestCase):
    def marshal(self, type_str: str, value: Any, *type_params: str) -> str:
        from .type_tag_parser import parse_type_tag

        params = [parse_type_tag(p) for p in type_params]
        return marshal_argument(parse_type_tag(type_str), value, params).hex()

    def test_integers(self):
        self.assertEqual(self.marshal("u64", 42), "2a00000000000000")
        self.assertEqual(self.marshal("u64", "42"), "2a00000000000000")
        self.assertEqual(self.marshal("u64", "0x2a"), "2a00000000000000")
        self.assertEqual(self.marshal("u16", 258), "0201")
        self.assertEqual(self.marshal("i8", -1), "ff")
        self.assertEqual(self.marshal("u256", 1), "01" + "00" * 31)

    def test_integer_range(self):
        with self.assertRaises(RangeError):
            self.marshal("u8", 256)
        with self.assertRaises(RangeError):
            self.marshal("u64", -1)
        with self.assertRaises(RangeError):
            self.marshal("i8", 128)

    def test_integer_parse_errors(self):
        with self.assertRaises(ParseError):
            self.marshal("u64", "forty-two")
        with self.assertRaises(ParseError):
            self.marshal("u64", True)
        with self.assertRaises(ParseError):
            self.marshal("u64", 1.5)

    def test_bool(self):
        self.assertEqual(self.marshal("bool", True), "01")
        self.assertEqual(self.marshal("bool", "false"), "00")
        with self.assertRaises(ParseError):
            self.marshal("bool", "yes")

    def test_address(self):
        expected = "00" * 31 + "01"
        self.assertEqual(self.marshal("address", "0x1"), expected)
        self.assertEqual(self.marshal("address", AccountAddress.from_str("0x1")), expected)
        self.assertEqual(self.marshal("0x1::object::Object<0x1::object::ObjectCore>", "1"), expected)

    def test_vector_u8(self):
        self.assertEqual(self.marshal("vector<u8>", "0x42"), "0142")
        self.assertEqual(self.marshal("vector<u8>", b"\x01\x02"), "020102")
        self.assertEqual(self.marshal("vector<u8>", [1, 2, 3]), "03010203")
        self.assertEqual(self.marshal("vector<u8>", "hi"), "026869")
        with self.assertRaises(ParseError):
            self.marshal("vector<u8>", None)
        with self.assertRaises(ParseError):
            self.marshal("vector<u8>", "0xzz")

    def test_vector(self):
        self.assertEqual(self.marshal("vector<u16>", [1, 2]), "0201000200")
        self.assertEqual(self.marshal("vector<vector<bool>>", [[True], []]), "02010100")
        with self.assertRaises(ParseError):
            self.marshal("vector<u64>", 5)

    def test_string_and_option(self):
        self.assertEqual(self.marshal("0x1::string::String", "abc"), "03616263")
        self.assertEqual(self.marshal("0x1::option::Option<u8>", None), "00")
        self.assertEqual(self.marshal("0x1::option::Option<u8>", 0x42), "0142")
        self.assertEqual(
            self.marshal("0x1::option::Option<0x1::string::String>", "a"), "010161"
        )

    def test_references_and_generics(self):
        self.assertEqual(self.marshal("&u8", 7), "07")
        self.assertEqual(self.marshal("T0", 7, "u16"), "0700")
        self.assertEqual(self.marshal("vector<T1>", [1], "bool", "u8"), "0101")
        with self.assertRaises(RangeError):
            self.marshal("T2", 1, "u8")

    def test_unsupported(self):
        with self.assertRaises(UnsupportedError):
            self.marshal("signer", "0x1")
        with self.assertRaises(UnsupportedError):
            self.marshal("0x1::coin::Coin<0x1::aptos_coin::AptosCoin>", 1)


if __name__ == "__main__":
    unittest.main()
