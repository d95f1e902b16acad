# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

import typing

from behave import then, use_step_matcher, when

from aptos_kit.account_address import AccountAddress
from aptos_kit.bcs import Deserializer, Serializer

# Use regular expressions
use_step_matcher("re")

SERIALIZERS: typing.Dict[str, typing.Callable[[Serializer, typing.Any], None]] = {
    "bool": Serializer.bool,
    "u8": Serializer.u8,
    "u16": Serializer.u16,
    "u32": Serializer.u32,
    "u64": Serializer.u64,
    "u128": Serializer.u128,
    "u256": Serializer.u256,
    "i8": Serializer.i8,
    "i16": Serializer.i16,
    "i32": Serializer.i32,
    "i64": Serializer.i64,
    "i128": Serializer.i128,
    "i256": Serializer.i256,
    "uleb128": Serializer.uleb128,
    "address": Serializer.struct,
    "bytes": Serializer.to_bytes,
    "string": Serializer.str,
}

DESERIALIZERS: typing.Dict[str, typing.Callable[[Deserializer], typing.Any]] = {
    "bool": Deserializer.bool,
    "u8": Deserializer.u8,
    "u16": Deserializer.u16,
    "u32": Deserializer.u32,
    "u64": Deserializer.u64,
    "u128": Deserializer.u128,
    "u256": Deserializer.u256,
    "i8": Deserializer.i8,
    "i16": Deserializer.i16,
    "i32": Deserializer.i32,
    "i64": Deserializer.i64,
    "i128": Deserializer.i128,
    "i256": Deserializer.i256,
    "uleb128": Deserializer.uleb128,
    "address": lambda des: des.struct(AccountAddress),
    "bytes": Deserializer.to_bytes,
    "string": Deserializer.str,
}


@when(r"I serialize as sequence of (?P<input_type>[a-zA-Z0-9]+)")
def when_serialize_sequence(context: typing.Any, input_type: str):
    ser = Serializer()
    ser.sequence(context.input, SERIALIZERS[input_type])
    context.output = ser.output()


@when(r"I serialize as fixed bytes with length (?P<length>[0-9]+)")
def when_serialize_fixed_bytes(context: typing.Any, length: str):
    assert len(context.input) == int(length)
    ser = Serializer()
    ser.fixed_bytes(context.input)
    context.output = ser.output()


@when(r"I serialize as (?P<input_type>[a-zA-Z0-9]+)")
def when_serialize(context: typing.Any, input_type: str):
    ser = Serializer()
    try:
        SERIALIZERS[input_type](ser, context.input)
        context.output = ser.output()
    except Exception as e:
        context.output = e


@when(r"I deserialize as sequence of (?P<input_type>[a-zA-Z0-9]+)")
def when_deserialize_sequence(context: typing.Any, input_type: str):
    try:
        context.output = Deserializer(context.input).sequence(DESERIALIZERS[input_type])
    except Exception as e:
        context.output = e


@when(r"I deserialize as fixed bytes with length (?P<length>[0-9]+)")
def when_deserialize_fixed_bytes(context: typing.Any, length: str):
    try:
        context.output = Deserializer(context.input).fixed_bytes(int(length))
    except Exception as e:
        context.output = e


@when(r"I deserialize as (?P<input_type>[a-zA-Z0-9]+)")
def when_deserialize(context: typing.Any, input_type: str):
    try:
        context.output = DESERIALIZERS[input_type](Deserializer(context.input))
    except Exception as e:
        context.output = e


@then(r"the serialization should fail")
def then_fail_serialization(context: typing.Any):
    assert isinstance(context.output, Exception), f"Unexpected {context.output}"


@then(r"the deserialization should fail")
def then_fail_deserialization(context: typing.Any):
    assert isinstance(context.output, Exception), f"Unexpected {context.output}"
