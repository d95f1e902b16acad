# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Parser for Move type strings.

Grammar, with whitespace allowed between tokens::

    Tag     := Prim | "vector" "<" Tag ">" | "&" Tag | Generic | Struct
    Prim    := bool | u8 | u16 | u32 | u64 | u128 | u256
             | i8 | i16 | i32 | i64 | i128 | i256 | address | signer
    Generic := "T" digit+
    Struct  := Addr "::" Ident "::" Ident ("<" Tag ("," Tag)* ">")?
    Addr    := "0x" hex{1,64}
    Ident   := [A-Za-z_][A-Za-z0-9_]*

Every failure raises :class:`~aptos_kit.errors.TypeTagParseError` with the
offending input and the position where parsing stopped.

Examples:
    Parsing::

        parse_type_tag("0x1::coin::CoinStore<0x1::aptos_coin::AptosCoin>")
        parse_type_tag("vector<u8>")
        parse_type_tag("&signer")
        parse_type_tag("T0", generics_allowed=False)  # raises
"""

from __future__ import annotations

import unittest
from typing import List

from .account_address import AccountAddress
from .errors import ParseError, RangeError, TypeTagParseError
from .type_tag import (
    PRIMITIVES,
    GenericTag,
    ReferenceTag,
    StructTag,
    TypeTag,
    U8Tag,
    VectorTag,
)

_TOKEN_CHARS = frozenset(
    "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_"
)


def parse_type_tag(type_tag: str, generics_allowed: bool = True) -> TypeTag:
    """Parse a Move type string into a :class:`TypeTag`.

    Args:
        type_tag: The type string, e.g. ``"vector<0x1::string::String>"``.
        generics_allowed: Whether ``T0``-style parameters may appear. ABI
            parameter types contain them; concrete type arguments must not.

    Raises:
        TypeTagParseError: If the input does not match the grammar.
    """
    parser = _Parser(type_tag, generics_allowed)
    return parser.parse()


class _Parser:
    text: str
    pos: int
    generics_allowed: bool

    def __init__(self, text: str, generics_allowed: bool):
        self.text = text
        self.pos = 0
        self.generics_allowed = generics_allowed

    def error(self, message: str) -> TypeTagParseError:
        return TypeTagParseError(message, self.text, self.pos)

    def parse(self) -> TypeTag:
        self.skip_whitespace()
        if self.at_end():
            raise TypeTagParseError("Empty type tag", self.text)

        tag = self.parse_tag()
        self.skip_whitespace()
        if not self.at_end():
            char = self.peek()
            if char == ">":
                raise self.error("Unmatched '>'")
            if char == ",":
                raise self.error("Unexpected ','")
            raise self.error("Unexpected trailing characters")
        return tag

    def parse_tag(self) -> TypeTag:
        self.skip_whitespace()
        if self.at_end():
            raise self.error("Unexpected end of type tag")

        char = self.peek()
        if char == "&":
            self.pos += 1
            self.skip_whitespace()
            if self.text.startswith("mut", self.pos) and not self.token_char_at(
                self.pos + 3
            ):
                raise self.error("Mutable references are not supported")
            return TypeTag(ReferenceTag(self.parse_tag()))
        if char == ",":
            raise self.error("Unexpected ','")
        if char in "<>":
            raise self.error(f"Unexpected '{char}'")

        start = self.pos
        token = self.read_token()
        if not token:
            raise self.error(f"Unexpected character {char!r}")

        self.skip_whitespace()
        if self.text.startswith("::", self.pos):
            return TypeTag(self.parse_struct(token, start))

        primitive = PRIMITIVES.get(token)
        if primitive is not None:
            if self.peek() == "<":
                raise self.error(f"{token} takes no type parameters")
            return TypeTag(primitive())

        if token == "vector":
            if self.peek() != "<":
                raise self.error("vector requires exactly one type parameter")
            params = self.parse_type_args()
            if len(params) != 1:
                raise self.error(
                    f"vector requires exactly one type parameter, got {len(params)}"
                )
            return TypeTag(VectorTag(params[0]))

        if token[0] == "T" and token[1:].isdigit():
            if not self.generics_allowed:
                raise TypeTagParseError(
                    "Generic type parameters are not allowed here", self.text, start
                )
            return TypeTag(GenericTag(int(token[1:])))

        raise TypeTagParseError(f"Unknown type {token!r}", self.text, start)

    def parse_struct(self, address: str, start: int) -> StructTag:
        if not address.startswith("0x"):
            raise TypeTagParseError("Struct address must start with 0x", self.text, start)
        try:
            account = AccountAddress.from_str_relaxed(address)
        except (ParseError, RangeError) as e:
            raise TypeTagParseError(f"Invalid address ({e})", self.text, start) from e

        self.expect("::")
        module = self.read_identifier()
        self.expect("::")
        name = self.read_identifier()

        type_args: List[TypeTag] = []
        self.skip_whitespace()
        if self.peek() == "<":
            type_args = self.parse_type_args()
        return StructTag(account, module, name, type_args)

    def parse_type_args(self) -> List[TypeTag]:
        self.pos += 1
        args: List[TypeTag] = []
        while True:
            self.skip_whitespace()
            if self.at_end():
                raise self.error("Unmatched '<'")
            if self.peek() == ">":
                if not args:
                    raise self.error("Empty type parameter list")
                raise self.error("Trailing ','")

            args.append(self.parse_tag())

            self.skip_whitespace()
            if self.at_end():
                raise self.error("Unmatched '<'")
            char = self.peek()
            self.pos += 1
            if char == ">":
                return args
            if char != ",":
                self.pos -= 1
                raise self.error("Expected ',' or '>'")
            self.skip_whitespace()
            if self.peek() == ",":
                raise self.error("Unexpected ','")

    def read_identifier(self) -> str:
        self.skip_whitespace()
        start = self.pos
        token = self.read_token()
        if not token:
            raise TypeTagParseError("Expected an identifier", self.text, start)
        if token[0].isdigit():
            raise TypeTagParseError(
                f"Identifier {token!r} starts with a digit", self.text, start
            )
        return token

    def read_token(self) -> str:
        start = self.pos
        while self.token_char_at(self.pos):
            self.pos += 1
        return self.text[start : self.pos]

    def expect(self, literal: str):
        self.skip_whitespace()
        if not self.text.startswith(literal, self.pos):
            raise self.error(f"Expected '{literal}'")
        self.pos += len(literal)

    def token_char_at(self, index: int) -> bool:
        return index < len(self.text) and self.text[index] in _TOKEN_CHARS

    def skip_whitespace(self):
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def at_end(self) -> bool:
        return self.pos >= len(self.text)


class Test(unittest.TestCase):
    def test_struct_with_type_argument(self):
        tag = parse_type_tag("0x1::coin::CoinStore<0x1::aptos_coin::AptosCoin>")
        self.assertIsInstance(tag.value, StructTag)
        self.assertEqual(tag.value.address, AccountAddress.from_str("0x1"))
        self.assertEqual(tag.value.module, "coin")
        self.assertEqual(tag.value.name, "CoinStore")
        self.assertEqual(str(tag.value.type_args[0]), "0x1::aptos_coin::AptosCoin")
        self.assertEqual(str(tag), "0x1::coin::CoinStore<0x1::aptos_coin::AptosCoin>")

    def test_vector(self):
        tag = parse_type_tag("vector<u8>")
        self.assertEqual(tag, TypeTag(VectorTag(TypeTag(U8Tag()))))
        nested = parse_type_tag(" vector< vector <0x1::string::String> > ")
        self.assertEqual(str(nested), "vector<vector<0x1::string::String>>")

    def test_round_trip(self):
        for text in [
            "bool",
            "u8",
            "u256",
            "i64",
            "address",
            "signer",
            "&signer",
            "&u8",
            "T0",
            "vector<T1>",
            "0x1::option::Option<vector<u8>>",
            "0x1::m::S<u8, 0x1::string::String, vector<address>>",
            "0x" + "ab" * 32 + "::m::S",
        ]:
            self.assertEqual(str(parse_type_tag(text)), text, text)

    def test_long_special_address_prints_short(self):
        tag = parse_type_tag("0x" + "0" * 63 + "1::coin::Coin")
        self.assertEqual(str(tag), "0x1::coin::Coin")

    def test_failures(self):
        for text in [
            "",
            "   ",
            "&mut u8",
            "u8,",
            ",u8",
            "vector<u8",
            "vector<u8>>",
            "vector<>",
            "vector<u8, u16>",
            "vector",
            "u8<u8>",
            "0x1::coin::Coin<u8,>",
            "0x1::coin::Coin<,u8>",
            "0x1::coin::Coin<u8,,u8>",
            "0x1::coin",
            "0x1:coin:Coin",
            "1::coin::Coin",
            "0xzz::coin::Coin",
            "0x1::1coin::Coin",
            "0x1::coin::Coin extra",
            "u9",
            "u8 u8",
        ]:
            with self.assertRaises(TypeTagParseError, msg=text):
                parse_type_tag(text)

    def test_generics_disallowed(self):
        with self.assertRaises(TypeTagParseError):
            parse_type_tag("T0", generics_allowed=False)
        with self.assertRaises(TypeTagParseError):
            parse_type_tag("vector<T0>", generics_allowed=False)

    def test_error_position(self):
        with self.assertRaises(TypeTagParseError) as cm:
            parse_type_tag("u8,")
        self.assertEqual(cm.exception.position, 2)
        self.assertEqual(cm.exception.type_tag, "u8,")


if __name__ == "__main__":
    unittest.main()
