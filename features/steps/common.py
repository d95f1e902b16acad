# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

import typing

from behave import given, then, use_step_matcher

from aptos_kit.account_address import AccountAddress

# Use regular expressions
use_step_matcher("re")

INTEGER_TYPES = frozenset(
    [
        "u8",
        "u16",
        "u32",
        "u64",
        "u128",
        "u256",
        "i8",
        "i16",
        "i32",
        "i64",
        "i128",
        "i256",
        "uleb128",
    ]
)


@given(r"sequence of (?P<input_type>[a-zA-Z0-9]+) \[(?P<input_value>.*)\]")
def given_sequence_input(context: typing.Any, input_type: str, input_value: str):
    context.input = parse_sequence(input_type, input_value)


@given(r"(?P<input_type>[a-zA-Z0-9]+) (?P<input_value>\S+)")
def given_input(context: typing.Any, input_type: str, input_value: str):
    context.input = parse_value(input_type, input_value)


@then(
    r"the result should be sequence of (?P<expected_type>[a-zA-Z0-9]+) \[(?P<expected_value>\S*)\]"
)
def then_result_sequence(context: typing.Any, expected_type: str, expected_value: str):
    expected = parse_sequence(expected_type, expected_value)
    assert context.output == expected, f"Expected {expected} but got {context.output}"


@then(r"the result should be (?P<expected_type>[a-zA-Z0-9]+) (?P<expected_value>\S+)")
def then_result(context: typing.Any, expected_type: str, expected_value: str):
    expected = parse_value(expected_type, expected_value)
    assert context.output == expected, f"Expected {expected} but got {context.output}"


def parse_value(value_type: str, value: str) -> typing.Any:
    if value_type == "bool":
        return value == "true"
    if value_type in INTEGER_TYPES:
        return int(value)
    if value_type == "address":
        return AccountAddress.from_str_relaxed(value)
    if value_type == "bytes":
        return bytes.fromhex(value.removeprefix("0x"))
    if value_type == "string":
        return value.removeprefix('"').removesuffix('"')
    raise ValueError(f"Unrecognized input type {value_type}")


def parse_sequence(value_type: str, value: str) -> typing.List[typing.Any]:
    if len(value) == 0:
        return []
    return [parse_value(value_type, item) for item in value.split(",")]
