# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Binary Canonical Serialization (BCS) for the Aptos wire format.

Every object that is signed or sent to a node in binary form goes through this
module. The encoding is deterministic: one logical value has exactly one byte
representation, which is what makes it safe to sign.

Encoding rules:
- Unsigned integers ``u8`` through ``u256`` are fixed-width little-endian
- Signed integers ``i8`` through ``i256`` are fixed-width two's complement
- Lengths and enum tags are ULEB128, limited to the ``u32`` range
- ``bool`` is exactly ``0x00`` or ``0x01``
- Byte strings and UTF-8 strings are a ULEB128 length followed by the bytes
- Fixed-size arrays have no length prefix
- Sequences are a ULEB128 count followed by each element
- Options are a tag of 0 (absent) or 1 followed by the value
- Structs are their fields in declaration order with no framing

Learn more at https://github.com/diem/bcs

Examples:
    Round-tripping a value::

        from aptos_kit.bcs import Deserializer, Serializer

        ser = Serializer()
        ser.u64(42)
        ser.option("memo", Serializer.str)
        data = ser.output()  # 2a00000000000000 01 04 6d656d6f

        der = Deserializer(data)
        der.u64()                        # 42
        der.option(Deserializer.str)     # "memo"

    Implementing a serializable type::

        class Coin:
            def __init__(self, value: int):
                self.value = value

            def serialize(self, serializer: Serializer):
                serializer.u64(self.value)

            @staticmethod
            def deserialize(deserializer: Deserializer) -> "Coin":
                return Coin(deserializer.u64())
"""

from __future__ import annotations

import io
import typing
import unittest
from typing import Dict, List, Optional

from typing_extensions import Protocol

from .errors import CodecError, RangeError

MAX_U8 = 2**8 - 1
MAX_U16 = 2**16 - 1
MAX_U32 = 2**32 - 1
MAX_U64 = 2**64 - 1
MAX_U128 = 2**128 - 1
MAX_U256 = 2**256 - 1

# ULEB128 encodings of a u32 never exceed five bytes.
MAX_ULEB128_BYTES = 5


class Deserializable(Protocol):
    """A type that can rebuild itself from a BCS stream.

    Implementations provide ``deserialize``; ``from_bytes`` is derived from it and
    requires the whole input to be consumed.
    """

    @classmethod
    def from_bytes(cls, indata: bytes) -> Deserializable:
        """Decode a complete BCS byte string into an instance of ``cls``.

        Raises:
            CodecError: If the input is malformed or has trailing bytes.
        """
        der = Deserializer(indata)
        value = der.struct(cls)
        if der.remaining() != 0:
            raise CodecError(f"{der.remaining()} trailing bytes after {cls.__name__}")
        return value

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Deserializable:
        ...


class Serializable(Protocol):
    """A type that can write itself into a BCS stream."""

    def to_bytes(self) -> bytes:
        ser = Serializer()
        ser.struct(self)
        return ser.output()

    def serialize(self, serializer: Serializer):
        ...


class Deserializer:
    """Reads BCS values from a byte string.

    Every read either returns a complete value or raises :class:`CodecError`;
    a failed read never hands back a partially decoded value.

    Examples:
        Reading a sequence of strings::

            der = Deserializer(bytes.fromhex("0201610162"))
            der.sequence(Deserializer.str)  # ["a", "b"]
    """

    _input: io.BytesIO
    _length: int

    def __init__(self, data: bytes):
        self._length = len(data)
        self._input = io.BytesIO(data)

    def remaining(self) -> int:
        """Number of bytes not yet consumed."""
        return self._length - self._input.tell()

    def bool(self) -> bool:
        """Read a boolean.

        Raises:
            CodecError: If the byte is anything other than 0 or 1.
        """
        value = self._read_int(1)
        if value == 0:
            return False
        if value == 1:
            return True
        raise CodecError(f"invalid bool: {value}")

    def to_bytes(self) -> bytes:
        """Read a ULEB128 length-prefixed byte string."""
        return self._read(self.uleb128())

    def fixed_bytes(self, length: int) -> bytes:
        """Read exactly ``length`` bytes with no prefix."""
        return self._read(length)

    def map(
        self,
        key_decoder: typing.Callable[[Deserializer], typing.Any],
        value_decoder: typing.Callable[[Deserializer], typing.Any],
    ) -> Dict[typing.Any, typing.Any]:
        length = self.uleb128()
        values: Dict = {}
        for _ in range(length):
            key = key_decoder(self)
            values[key] = value_decoder(self)
        return values

    def option(
        self, value_decoder: typing.Callable[[Deserializer], typing.Any]
    ) -> Optional[typing.Any]:
        """Read an optional value encoded as a 0/1 tag and the value.

        Raises:
            CodecError: If the tag is neither 0 nor 1.
        """
        tag = self.uleb128()
        if tag == 0:
            return None
        if tag == 1:
            return value_decoder(self)
        raise CodecError(f"invalid option length: {tag}")

    def sequence(
        self,
        value_decoder: typing.Callable[[Deserializer], typing.Any],
    ) -> List[typing.Any]:
        length = self.uleb128()
        return [value_decoder(self) for _ in range(length)]

    def str(self) -> str:
        data = self.to_bytes()
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise CodecError(f"invalid utf-8 string: {e}") from e

    def struct(self, struct: typing.Any) -> typing.Any:
        return struct.deserialize(self)

    def u8(self) -> int:
        return self._read_int(1)

    def u16(self) -> int:
        return self._read_int(2)

    def u32(self) -> int:
        return self._read_int(4)

    def u64(self) -> int:
        return self._read_int(8)

    def u128(self) -> int:
        return self._read_int(16)

    def u256(self) -> int:
        return self._read_int(32)

    def i8(self) -> int:
        return self._read_int(1, signed=True)

    def i16(self) -> int:
        return self._read_int(2, signed=True)

    def i32(self) -> int:
        return self._read_int(4, signed=True)

    def i64(self) -> int:
        return self._read_int(8, signed=True)

    def i128(self) -> int:
        return self._read_int(16, signed=True)

    def i256(self) -> int:
        return self._read_int(32, signed=True)

    def uleb128(self) -> int:
        """Read a ULEB128 value in the ``u32`` range.

        Raises:
            CodecError: On overflow past 32 bits or a non-canonical encoding.
        """
        value = 0
        for index in range(MAX_ULEB128_BYTES):
            byte = self._read_int(1)
            value |= (byte & 0x7F) << (7 * index)
            if byte & 0x80 == 0:
                if byte == 0 and index > 0:
                    raise CodecError("non-canonical uleb128 encoding")
                if value > MAX_U32:
                    raise CodecError(f"uleb128 value {value} overflows u32")
                return value
        raise CodecError("uleb128 value overflows u32")

    def _read(self, length: int) -> bytes:
        value = self._input.read(length)
        if value is None or len(value) < length:
            found = 0 if value is None else len(value)
            raise CodecError(
                f"Unexpected end of input. Requested: {length}, found: {found}"
            )
        return value

    def _read_int(self, length: int, signed: bool = False) -> int:
        return int.from_bytes(self._read(length), byteorder="little", signed=signed)


class Serializer:
    """Accumulates BCS-encoded values in memory.

    Range checks happen before any byte is written, so a failed call leaves the
    output untouched.

    Examples:
        Encoding an entry-function argument list::

            ser = Serializer()
            ser.sequence([b"\\x01", b"\\x02\\x03"], Serializer.to_bytes)
            ser.output().hex()  # "020101020203"
    """

    _output: io.BytesIO

    def __init__(self):
        self._output = io.BytesIO()

    def output(self) -> bytes:
        return self._output.getvalue()

    def bool(self, value: bool):
        if not isinstance(value, bool):
            raise RangeError(f"Cannot encode {value!r} as bool")
        self._write_int(int(value), 1)

    def to_bytes(self, value: bytes):
        self.uleb128(len(value))
        self._output.write(value)

    def fixed_bytes(self, value: bytes):
        self._output.write(value)

    def map(
        self,
        values: typing.Dict[typing.Any, typing.Any],
        key_encoder: typing.Callable[[Serializer, typing.Any], None],
        value_encoder: typing.Callable[[Serializer, typing.Any], None],
    ):
        # Canonical maps are ordered by the encoded key bytes.
        entries = sorted(
            (encoder(key, key_encoder), encoder(value, value_encoder))
            for key, value in values.items()
        )
        self.uleb128(len(entries))
        for key, value in entries:
            self.fixed_bytes(key)
            self.fixed_bytes(value)

    def option(
        self,
        value: Optional[typing.Any],
        value_encoder: typing.Callable[[Serializer, typing.Any], None],
    ):
        if value is None:
            self.uleb128(0)
        else:
            encoded = encoder(value, value_encoder)
            self.uleb128(1)
            self.fixed_bytes(encoded)

    @staticmethod
    def sequence_serializer(
        value_encoder: typing.Callable[[Serializer, typing.Any], None],
    ):
        return lambda self, values: self.sequence(values, value_encoder)

    def sequence(
        self,
        values: typing.Sequence[typing.Any],
        value_encoder: typing.Callable[[Serializer, typing.Any], None],
    ):
        encoded = [encoder(value, value_encoder) for value in values]
        self.uleb128(len(encoded))
        for item in encoded:
            self.fixed_bytes(item)

    def str(self, value: str):
        self.to_bytes(value.encode("utf-8"))

    def struct(self, value: typing.Any):
        value.serialize(self)

    def u8(self, value: int):
        self._write_int(_check_unsigned(value, MAX_U8, "u8"), 1)

    def u16(self, value: int):
        self._write_int(_check_unsigned(value, MAX_U16, "u16"), 2)

    def u32(self, value: int):
        self._write_int(_check_unsigned(value, MAX_U32, "u32"), 4)

    def u64(self, value: int):
        self._write_int(_check_unsigned(value, MAX_U64, "u64"), 8)

    def u128(self, value: int):
        self._write_int(_check_unsigned(value, MAX_U128, "u128"), 16)

    def u256(self, value: int):
        self._write_int(_check_unsigned(value, MAX_U256, "u256"), 32)

    def i8(self, value: int):
        self._write_signed(value, 1)

    def i16(self, value: int):
        self._write_signed(value, 2)

    def i32(self, value: int):
        self._write_signed(value, 4)

    def i64(self, value: int):
        self._write_signed(value, 8)

    def i128(self, value: int):
        self._write_signed(value, 16)

    def i256(self, value: int):
        self._write_signed(value, 32)

    def uleb128(self, value: int):
        _check_unsigned(value, MAX_U32, "uleb128")
        while value >= 0x80:
            # Low seven bits with the continuation bit set.
            self._output.write(bytes([(value & 0x7F) | 0x80]))
            value >>= 7
        self._output.write(bytes([value]))

    def _write_int(self, value: int, length: int):
        self._output.write(value.to_bytes(length, "little", signed=False))

    def _write_signed(self, value: int, length: int):
        bits = length * 8
        if not isinstance(value, int) or isinstance(value, bool):
            raise RangeError(f"Cannot encode {value!r} into i{bits}")
        if not -(2 ** (bits - 1)) <= value < 2 ** (bits - 1):
            raise RangeError(f"Cannot encode {value} into i{bits}")
        self._output.write(value.to_bytes(length, "little", signed=True))


def _check_unsigned(value: int, maximum: int, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise RangeError(f"Cannot encode {value!r} into {name}")
    if value < 0 or value > maximum:
        raise RangeError(f"Cannot encode {value} into {name}")
    return value


def encoder(
    value: typing.Any, encoder: typing.Callable[[Serializer, typing.Any], typing.Any]
) -> bytes:
    """Encode a single value with ``encoder`` and return the bytes."""
    ser = Serializer()
    encoder(ser, value)
    return ser.output()


class Test(unittest.TestCase):
    def test_bool(self):
        for in_value in (True, False):
            der = Deserializer(encoder(in_value, Serializer.bool))
            self.assertEqual(der.bool(), in_value)

    def test_bool_error(self):
        with self.assertRaisesRegex(CodecError, "invalid bool"):
            Deserializer(b"\x20").bool()

    def test_integer_widths(self):
        self.assertEqual(encoder(42, Serializer.u64).hex(), "2a00000000000000")
        self.assertEqual(encoder(0x1234, Serializer.u16).hex(), "3412")
        self.assertEqual(len(encoder(1, Serializer.u128)), 16)
        self.assertEqual(len(encoder(1, Serializer.u256)), 32)

        in_value = 111111111111111111111111111111111111111111111111111111111111111111111111111115
        der = Deserializer(encoder(in_value, Serializer.u256))
        self.assertEqual(der.u256(), in_value)

    def test_signed_integers(self):
        self.assertEqual(encoder(-1, Serializer.i8).hex(), "ff")
        self.assertEqual(encoder(-2, Serializer.i16).hex(), "feff")
        self.assertEqual(Deserializer(bytes.fromhex("80")).i8(), -128)
        der = Deserializer(encoder(-(2**127), Serializer.i128))
        self.assertEqual(der.i128(), -(2**127))
        with self.assertRaises(RangeError):
            encoder(128, Serializer.i8)

    def test_range_errors(self):
        with self.assertRaises(RangeError):
            encoder(MAX_U8 + 1, Serializer.u8)
        with self.assertRaises(RangeError):
            encoder(-1, Serializer.u64)
        with self.assertRaises(RangeError):
            encoder(MAX_U32 + 1, Serializer.uleb128)

        # A failed write leaves earlier output intact.
        ser = Serializer()
        ser.u8(7)
        with self.assertRaises(RangeError):
            ser.u16(MAX_U16 + 1)
        self.assertEqual(ser.output(), b"\x07")

    def test_uleb128(self):
        self.assertEqual(encoder(0, Serializer.uleb128), b"\x00")
        self.assertEqual(encoder(127, Serializer.uleb128), b"\x7f")
        self.assertEqual(encoder(128, Serializer.uleb128), b"\x80\x01")
        self.assertEqual(encoder(16384, Serializer.uleb128), b"\x80\x80\x01")
        self.assertEqual(
            Deserializer(encoder(MAX_U32, Serializer.uleb128)).uleb128(), MAX_U32
        )

    def test_uleb128_overflow(self):
        with self.assertRaises(CodecError):
            Deserializer(b"\x80\x80\x80\x80\x10").uleb128()
        with self.assertRaises(CodecError):
            Deserializer(b"\x80\x80\x80\x80\x80\x01").uleb128()

    def test_uleb128_non_canonical(self):
        with self.assertRaisesRegex(CodecError, "non-canonical"):
            Deserializer(b"\x80\x00").uleb128()

    def test_bytes_and_str(self):
        self.assertEqual(encoder(b"\x42", Serializer.to_bytes), b"\x01\x42")
        self.assertEqual(encoder("hello", Serializer.str), b"\x05hello")
        self.assertEqual(Deserializer(b"\x05hello").str(), "hello")
        self.assertEqual(Deserializer(b"\x02\xc3\xa9").str(), "é")

    def test_truncation(self):
        with self.assertRaisesRegex(CodecError, "Unexpected end of input"):
            Deserializer(b"\x05hel").str()
        with self.assertRaises(CodecError):
            Deserializer(b"\x01\x02").u64()

    def test_map_is_sorted_by_encoded_key(self):
        in_value = {"c": 23829, "a": 12345, "b": 99234}
        data = encoder(
            in_value,
            lambda ser, value: ser.map(value, Serializer.str, Serializer.u32),
        )
        self.assertEqual(data[:3], b"\x03\x01a")
        out_value = Deserializer(data).map(Deserializer.str, Deserializer.u32)
        self.assertEqual(in_value, out_value)

    def test_sequence(self):
        in_value = ["a", "abc", "def", "ghi"]

        ser = Serializer()
        seq_ser = Serializer.sequence_serializer(Serializer.str)
        seq_ser(ser, in_value)
        out_value = Deserializer(ser.output()).sequence(Deserializer.str)

        self.assertEqual(in_value, out_value)

    def test_option(self):
        ser = Serializer()
        ser.option(None, Serializer.u8)
        ser.option(0x42, Serializer.u8)
        self.assertEqual(ser.output(), b"\x00\x01\x42")

        der = Deserializer(ser.output())
        self.assertIsNone(der.option(Deserializer.u8))
        self.assertEqual(der.option(Deserializer.u8), 0x42)

        with self.assertRaisesRegex(CodecError, "invalid option length"):
            Deserializer(b"\x02\x42").option(Deserializer.u8)

    def test_from_bytes_rejects_trailing_data(self):
        class Wrapped(Deserializable):
            def __init__(self, value: int):
                self.value = value

            @staticmethod
            def deserialize(deserializer: Deserializer) -> "Wrapped":
                return Wrapped(deserializer.u8())

        self.assertEqual(Wrapped.from_bytes(b"\x01").value, 1)  # type: ignore[attr-defined]
        with self.assertRaisesRegex(CodecError, "trailing"):
            Wrapped.from_bytes(b"\x01\x02")


if __name__ == "__main__":
    unittest.main()
