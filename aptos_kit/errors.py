# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Exception hierarchy shared by every layer of the SDK.

Each error kind is a small ``Exception`` subclass that carries the data a caller
needs to react to it. Where a kind has an obvious built-in counterpart the class
also inherits from it, so ``except ValueError`` or ``except TimeoutError`` keep
working for callers that do not know about this module.

Error kinds:
- :class:`ParseError`: invalid hex, bad type-tag syntax, wrong-length inputs
- :class:`RangeError`: integer overflow, address too long or short
- :class:`CryptoFormatError`: wrong key or signature length, invalid curve point
- :class:`VerificationError`: a signature failed to verify
- :class:`CodecError`: truncation, invalid variant, invalid option or bool
- :class:`ApiError`: non-2xx response from a node, faucet or indexer
- :class:`TransactionTimeoutError`: polling deadline exceeded
- :class:`ChannelClosedError`: the transaction pipeline has shut down
- :class:`UnsupportedError`: placeholder variants and deprecated payloads

Examples:
    Handling a missing account::

        from aptos_kit.errors import AccountNotFound, ApiError

        try:
            await client.account_resources(address)
        except AccountNotFound as e:
            print(f"{e.account} has not been created yet")
        except ApiError as e:
            print(e.status_code, e.vm_error_code)
"""

from __future__ import annotations

import json
import unittest
from typing import Any, Dict, Optional


class AptosKitError(Exception):
    """Base class for all errors raised by this package."""


class ParseError(AptosKitError, ValueError):
    """Input text could not be parsed."""


class ParseAddressError(ParseError):
    """An account address string or byte string is malformed."""


class TypeTagParseError(ParseError):
    """A type tag string does not match the Move type grammar.

    Attributes:
        type_tag: The full input that failed to parse.
        position: Offset in ``type_tag`` where parsing stopped, when known.
    """

    type_tag: str
    position: Optional[int]

    def __init__(self, message: str, type_tag: str, position: Optional[int] = None):
        if position is None:
            super().__init__(f"{message}: '{type_tag}'")
        else:
            super().__init__(f"{message} at position {position}: '{type_tag}'")
        self.type_tag = type_tag
        self.position = position


class RangeError(AptosKitError, OverflowError):
    """A value does not fit the width or bounds it is being encoded into."""


class CryptoFormatError(AptosKitError, ValueError):
    """Key or signature material has the wrong length or is not on the curve."""


class VerificationError(AptosKitError):
    """A signature did not verify against the supplied key and message."""


class CodecError(AptosKitError):
    """BCS input is truncated or contains an invalid tag or value."""


class UnsupportedError(AptosKitError, NotImplementedError):
    """The requested variant exists on chain but is not implemented here."""


class ChannelClosedError(AptosKitError):
    """Work was submitted to a pipeline that has already been closed."""


class ApiError(AptosKitError):
    """A remote endpoint answered with a non-2xx status.

    The node's error body is JSON of the form
    ``{"message": ..., "error_code": ..., "vm_error_code": ...}``; when the body
    parses, those fields are exposed as attributes.

    Attributes:
        status_code: HTTP status code.
        body: Raw response text.
        headers: Response headers.
        error_code: Node error code such as ``account_not_found``, if present.
        vm_error_code: Move VM status code, if present.
    """

    status_code: int
    body: str
    headers: Dict[str, str]
    error_code: Optional[str]
    vm_error_code: Optional[int]

    def __init__(
        self,
        message: str,
        status_code: int,
        body: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = message if body is None else body
        self.headers = dict(headers or {})
        self.error_code = None
        self.vm_error_code = None

        parsed = _parse_error_body(self.body)
        if parsed:
            self.error_code = parsed.get("error_code")
            self.vm_error_code = parsed.get("vm_error_code")

    @staticmethod
    def from_response(response: Any, context: Optional[str] = None) -> ApiError:
        """Build an error from an ``httpx.Response``."""
        message = response.text if context is None else f"{response.text} - {context}"
        return ApiError(
            message, response.status_code, response.text, dict(response.headers)
        )


HttpError = ApiError


class AccountNotFound(ApiError):

    account: Any

    def __init__(self, message: str, account: Any, status_code: int = 404):
        super().__init__(message, status_code)
        self.account = account


class ResourceNotFound(ApiError):

    resource: str

    def __init__(self, message: str, resource: str, status_code: int = 404):
        super().__init__(message, status_code)
        self.resource = resource


class TransactionTimeoutError(AptosKitError, TimeoutError):
    """A submitted transaction was not committed before the polling deadline."""

    txn_hash: str

    def __init__(self, txn_hash: str, timeout: float):
        super().__init__(f"transaction {txn_hash} timed out after {timeout}s")
        self.txn_hash = txn_hash


class TransactionFailedError(AptosKitError):
    """A transaction was committed but its execution did not succeed."""

    txn_hash: str
    vm_status: str

    def __init__(self, txn_hash: str, vm_status: str):
        super().__init__(f"transaction {txn_hash} failed: {vm_status}")
        self.txn_hash = txn_hash
        self.vm_status = vm_status


def _parse_error_body(body: str) -> Optional[Dict[str, Any]]:
    try:
        parsed = json.loads(body)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


class Test(unittest.TestCase):
    def test_api_error_parses_node_body(self):
        body = '{"message":"account not found","error_code":"account_not_found","vm_error_code":null}'
        error = ApiError(body, 404, body, {"x-aptos-ledger-version": "12"})
        self.assertEqual(error.status_code, 404)
        self.assertEqual(error.error_code, "account_not_found")
        self.assertIsNone(error.vm_error_code)
        self.assertEqual(error.headers["x-aptos-ledger-version"], "12")

    def test_api_error_plain_text_body(self):
        error = ApiError("bad gateway", 502)
        self.assertEqual(error.body, "bad gateway")
        self.assertIsNone(error.error_code)

    def test_builtin_compatibility(self):
        self.assertTrue(issubclass(ParseAddressError, ValueError))
        self.assertTrue(issubclass(RangeError, OverflowError))
        self.assertTrue(issubclass(UnsupportedError, NotImplementedError))
        self.assertTrue(issubclass(TransactionTimeoutError, TimeoutError))
        self.assertTrue(issubclass(AccountNotFound, ApiError))

    def test_type_tag_parse_error_message(self):
        error = TypeTagParseError("unexpected ','", "u8,", 2)
        self.assertEqual(error.position, 2)
        self.assertIn("position 2", str(error))


if __name__ == "__main__":
    unittest.main()
