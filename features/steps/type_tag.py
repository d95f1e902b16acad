# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

import typing

from behave import then, use_step_matcher, when

from aptos_kit.arguments import marshal_argument
from aptos_kit.type_tag_parser import parse_type_tag

# Use regular expressions
use_step_matcher("re")


@when(r'I parse the type tag "(?P<type_tag>.*)"')
def when_parse_type_tag(context: typing.Any, type_tag: str):
    try:
        context.output = parse_type_tag(type_tag)
    except Exception as e:
        context.output = e


@when(r'I marshal "(?P<value>.*)" as "(?P<type_tag>.*)"')
def when_marshal(context: typing.Any, value: str, type_tag: str):
    try:
        context.output = marshal_argument(parse_type_tag(type_tag), value)
    except Exception as e:
        context.output = e


@when(r'I marshal nothing as "(?P<type_tag>.*)"')
def when_marshal_none(context: typing.Any, type_tag: str):
    try:
        context.output = marshal_argument(parse_type_tag(type_tag), None)
    except Exception as e:
        context.output = e


@then(r'the type tag should print as "(?P<expected>.*)"')
def then_type_tag_prints(context: typing.Any, expected: str):
    assert not isinstance(context.output, Exception), f"Unexpected {context.output}"
    assert str(context.output) == expected, f"Expected {expected} but got {context.output}"


@then(r"I should fail to parse the type tag")
def then_fail_type_tag(context: typing.Any):
    assert isinstance(context.output, Exception), f"Unexpected {context.output}"


@then(r"the marshalling should fail")
def then_fail_marshal(context: typing.Any):
    assert isinstance(context.output, Exception), f"Unexpected {context.output}"
