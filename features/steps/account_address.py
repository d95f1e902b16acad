# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

import typing

from behave import then, use_step_matcher, when

from aptos_kit.account_address import AccountAddress

# Use regular expressions
use_step_matcher("re")


@when(r"I parse the account address strictly")
def when_parse_account_address_strict(context: typing.Any):
    try:
        context.output = AccountAddress.from_str(context.input)
    except Exception as e:
        context.output = e


@when(r"I parse the account address")
def when_parse_account_address(context: typing.Any):
    try:
        context.output = AccountAddress.from_str_relaxed(context.input)
    except Exception as e:
        context.output = e


@when(r"I convert the address to a string long")
def when_account_address_to_string_long(context: typing.Any):
    context.output = context.input.to_long_string()


@when(r"I convert the address to a string")
def when_account_address_to_string(context: typing.Any):
    context.output = str(context.input)


@then(r"I should fail to parse the account address")
def then_fail_account_address(context: typing.Any):
    assert isinstance(context.output, Exception), f"Unexpected {context.output}"
