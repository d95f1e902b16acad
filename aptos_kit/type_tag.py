# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Move type tags.

A :class:`TypeTag` wraps one concrete tag and carries its wire variant:

- primitives: ``bool`` (0), ``u8`` (1), ``u64`` (2), ``u128`` (3),
  ``address`` (4), ``signer`` (5), ``u16`` (8), ``u32`` (9), ``u256`` (10),
  and the signed integers ``i8`` (11) through ``i256`` (16)
- ``vector<T>`` (6) holding an inner tag
- structs (7): ``address::module::Name<T1, T2>``
- ``&T`` and generic parameters ``T0``, ``T1``... appear in function ABIs
  only. They can be parsed, printed and resolved but have no wire encoding,
  so serializing them raises :class:`~aptos_kit.errors.CodecError`.

The printed form of every tag parses back to an equal tag.

Examples:
    Building and parsing::

        coin = TypeTag(StructTag.from_str("0x1::aptos_coin::AptosCoin"))
        store = TypeTag(StructTag(AccountAddress.from_str("0x1"), "coin", "CoinStore", [coin]))
        str(store)  # "0x1::coin::CoinStore<0x1::aptos_coin::AptosCoin>"

        TypeTag(VectorTag(TypeTag(U8Tag()))).to_bytes()  # b"\\x06\\x01"
"""

from __future__ import annotations

import typing
import unittest
from typing import List

from .account_address import AccountAddress
from .bcs import Deserializable, Deserializer, Serializable, Serializer
from .errors import CodecError


class TypeTag(Deserializable, Serializable):
    """Root of the Move type representation."""

    BOOL: int = 0
    U8: int = 1
    U64: int = 2
    U128: int = 3
    ACCOUNT_ADDRESS: int = 4
    SIGNER: int = 5
    VECTOR: int = 6
    STRUCT: int = 7
    U16: int = 8
    U32: int = 9
    U256: int = 10
    I8: int = 11
    I16: int = 12
    I32: int = 13
    I64: int = 14
    I128: int = 15
    I256: int = 16
    # Not part of the wire enum.
    GENERIC: int = 254
    REFERENCE: int = 255

    value: typing.Any

    def __init__(self, value: typing.Any):
        self.value = value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TypeTag):
            return NotImplemented
        return (
            self.value.variant() == other.value.variant() and self.value == other.value
        )

    def __hash__(self):
        return hash(str(self))

    def __str__(self):
        return self.value.__str__()

    def __repr__(self):
        return self.__str__()

    def variant(self) -> int:
        return self.value.variant()

    def is_signer(self) -> bool:
        """True for ``signer`` and ``&signer``."""
        if isinstance(self.value, ReferenceTag):
            return self.value.value.is_signer()
        return isinstance(self.value, SignerTag)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> TypeTag:
        variant = deserializer.uleb128()
        primitive = _PRIMITIVES_BY_VARIANT.get(variant)
        if primitive is not None:
            return TypeTag(primitive())
        if variant == TypeTag.VECTOR:
            return TypeTag(VectorTag.deserialize(deserializer))
        if variant == TypeTag.STRUCT:
            return TypeTag(StructTag.deserialize(deserializer))
        raise CodecError(f"Invalid TypeTag variant: {variant}")

    def serialize(self, serializer: Serializer):
        if isinstance(self.value, (ReferenceTag, GenericTag)):
            raise CodecError(f"{self} has no wire encoding")
        serializer.uleb128(self.value.variant())
        serializer.struct(self.value)


class PrimitiveTag(Deserializable, Serializable):
    """A type with no parameters; the wire form is the variant alone."""

    VARIANT: int
    NAME: str

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PrimitiveTag):
            return NotImplemented
        return self.VARIANT == other.VARIANT

    def __str__(self):
        return self.NAME

    def variant(self):
        return self.VARIANT

    @classmethod
    def deserialize(cls, deserializer: Deserializer):
        return cls()

    def serialize(self, serializer: Serializer):
        pass


class BoolTag(PrimitiveTag):
    VARIANT = TypeTag.BOOL
    NAME = "bool"


class U8Tag(PrimitiveTag):
    VARIANT = TypeTag.U8
    NAME = "u8"


class U16Tag(PrimitiveTag):
    VARIANT = TypeTag.U16
    NAME = "u16"


class U32Tag(PrimitiveTag):
    VARIANT = TypeTag.U32
    NAME = "u32"


class U64Tag(PrimitiveTag):
    VARIANT = TypeTag.U64
    NAME = "u64"


class U128Tag(PrimitiveTag):
    VARIANT = TypeTag.U128
    NAME = "u128"


class U256Tag(PrimitiveTag):
    VARIANT = TypeTag.U256
    NAME = "u256"


class I8Tag(PrimitiveTag):
    VARIANT = TypeTag.I8
    NAME = "i8"


class I16Tag(PrimitiveTag):
    VARIANT = TypeTag.I16
    NAME = "i16"


class I32Tag(PrimitiveTag):
    VARIANT = TypeTag.I32
    NAME = "i32"


class I64Tag(PrimitiveTag):
    VARIANT = TypeTag.I64
    NAME = "i64"


class I128Tag(PrimitiveTag):
    VARIANT = TypeTag.I128
    NAME = "i128"


class I256Tag(PrimitiveTag):
    VARIANT = TypeTag.I256
    NAME = "i256"


class AccountAddressTag(PrimitiveTag):
    VARIANT = TypeTag.ACCOUNT_ADDRESS
    NAME = "address"


class SignerTag(PrimitiveTag):
    VARIANT = TypeTag.SIGNER
    NAME = "signer"


PRIMITIVES: typing.Dict[str, typing.Type[PrimitiveTag]] = {
    tag.NAME: tag
    for tag in (
        BoolTag,
        U8Tag,
        U16Tag,
        U32Tag,
        U64Tag,
        U128Tag,
        U256Tag,
        I8Tag,
        I16Tag,
        I32Tag,
        I64Tag,
        I128Tag,
        I256Tag,
        AccountAddressTag,
        SignerTag,
    )
}

_PRIMITIVES_BY_VARIANT = {tag.VARIANT: tag for tag in PRIMITIVES.values()}


class VectorTag(Deserializable, Serializable):
    value: TypeTag

    def __init__(self, value: TypeTag):
        self.value = value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VectorTag):
            return NotImplemented
        return self.value == other.value

    def __str__(self):
        return f"vector<{self.value}>"

    def variant(self):
        return TypeTag.VECTOR

    @staticmethod
    def deserialize(deserializer: Deserializer) -> VectorTag:
        return VectorTag(TypeTag.deserialize(deserializer))

    def serialize(self, serializer: Serializer):
        serializer.struct(self.value)


class ReferenceTag:
    """``&T``; appears in ABIs, never on the wire."""

    value: TypeTag

    def __init__(self, value: TypeTag):
        self.value = value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ReferenceTag):
            return NotImplemented
        return self.value == other.value

    def __str__(self):
        return f"&{self.value}"

    def variant(self):
        return TypeTag.REFERENCE


class GenericTag:
    """The ``index``-th type parameter of a generic function, printed ``T<index>``."""

    index: int

    def __init__(self, index: int):
        self.index = index

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GenericTag):
            return NotImplemented
        return self.index == other.index

    def __str__(self):
        return f"T{self.index}"

    def variant(self):
        return TypeTag.GENERIC


class StructTag(Deserializable, Serializable):
    """A struct type: where its module lives, its name, and its type arguments.

    Attributes:
        address: Account the defining module is published under.
        module: Module name.
        name: Struct name.
        type_args: Type arguments for generic structs.

    Examples:
        Parsing from string::

            tag = StructTag.from_str("0x1::coin::Coin<0x1::aptos_coin::AptosCoin>")
            print(tag)  # "0x1::coin::Coin<0x1::aptos_coin::AptosCoin>"
    """

    address: AccountAddress
    module: str
    name: str
    type_args: List[TypeTag]

    def __init__(self, address, module, name, type_args):
        self.address = address
        self.module = module
        self.name = name
        self.type_args = type_args

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StructTag):
            return NotImplemented
        return (
            self.address == other.address
            and self.module == other.module
            and self.name == other.name
            and self.type_args == other.type_args
        )

    def __str__(self) -> str:
        value = f"{self.address}::{self.module}::{self.name}"
        if len(self.type_args) > 0:
            value += f"<{self.type_args[0]}"
            for type_arg in self.type_args[1:]:
                value += f", {type_arg}"
            value += ">"
        return value

    @staticmethod
    def from_str(type_tag: str) -> StructTag:
        """Parse a struct type string such as ``"0x1::coin::Coin<u64>"``.

        Raises:
            TypeTagParseError: If the string is not a valid struct type.
        """
        from .errors import TypeTagParseError
        from .type_tag_parser import parse_type_tag

        parsed = parse_type_tag(type_tag, False)
        if not isinstance(parsed.value, StructTag):
            raise TypeTagParseError("Expected a struct type", type_tag)
        return parsed.value

    def _is(self, module: str, name: str) -> bool:
        return (
            self.address == AccountAddress.from_str("0x1")
            and self.module == module
            and self.name == name
        )

    def is_string(self) -> bool:
        return self._is("string", "String")

    def is_option(self) -> bool:
        return self._is("option", "Option") and len(self.type_args) == 1

    def is_object(self) -> bool:
        return self._is("object", "Object")

    def variant(self):
        return TypeTag.STRUCT

    @staticmethod
    def deserialize(deserializer: Deserializer) -> StructTag:
        address = deserializer.struct(AccountAddress)
        module = deserializer.str()
        name = deserializer.str()
        type_args = deserializer.sequence(TypeTag.deserialize)
        return StructTag(address, module, name, type_args)

    def serialize(self, serializer: Serializer):
        self.address.serialize(serializer)
        serializer.str(self.module)
        serializer.str(self.name)
        serializer.sequence(self.type_args, Serializer.struct)


class Test(unittest.TestCase):
    def test_nested_structs(self):
        l0 = "0x0::l0::L0"
        l10 = "0x1::l10::L10"
        l20 = "0x2::l20::L20"
        l11 = "0x1::l11::L11"
        composite = f"{l0}<{l10}<{l20}>, {l11}>"
        derived = StructTag.from_str(composite)
        self.assertEqual(composite, f"{derived}")
        in_bytes = derived.to_bytes()
        from_bytes = StructTag.from_bytes(in_bytes)
        self.assertEqual(derived, from_bytes)

    def test_primitive_encoding(self):
        self.assertEqual(TypeTag(U64Tag()).to_bytes(), b"\x02")
        self.assertEqual(TypeTag(I256Tag()).to_bytes(), b"\x10")
        self.assertEqual(TypeTag(VectorTag(TypeTag(U8Tag()))).to_bytes(), b"\x06\x01")
        for name, tag in PRIMITIVES.items():
            decoded = TypeTag.from_bytes(TypeTag(tag()).to_bytes())
            self.assertEqual(str(decoded), name)

    def test_struct_encoding(self):
        coin = TypeTag(StructTag.from_str("0x1::aptos_coin::AptosCoin"))
        self.assertEqual(
            coin.to_bytes().hex(),
            "07" + "00" * 31 + "01" + "0a6170746f735f636f696e" + "094170746f73436f696e" + "00",
        )

    def test_abi_only_tags_do_not_encode(self):
        with self.assertRaises(CodecError):
            TypeTag(ReferenceTag(TypeTag(U8Tag()))).to_bytes()
        with self.assertRaises(CodecError):
            TypeTag(GenericTag(0)).to_bytes()
        self.assertEqual(str(TypeTag(ReferenceTag(TypeTag(SignerTag())))), "&signer")
        self.assertTrue(TypeTag(ReferenceTag(TypeTag(SignerTag()))).is_signer())
        self.assertEqual(str(TypeTag(GenericTag(3))), "T3")

    def test_invalid_variant(self):
        with self.assertRaises(CodecError):
            TypeTag.from_bytes(b"\x11")

    def test_well_known_structs(self):
        self.assertTrue(StructTag.from_str("0x1::string::String").is_string())
        self.assertTrue(StructTag.from_str("0x1::option::Option<u8>").is_option())
        self.assertTrue(StructTag.from_str("0x1::object::Object<0x1::object::ObjectCore>").is_object())
        self.assertFalse(StructTag.from_str("0x2::string::String").is_string())


if __name__ == "__main__":
    unittest.main()
