# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Asynchronous clients for an Aptos fullnode, faucet and indexer.

- :class:`RestClient` wraps the fullnode REST API: account state, blocks,
  transactions, view functions, BCS submission and simulation, and waiting
  for commit.
- :class:`FaucetClient` funds accounts on test networks.
- :class:`IndexerClient` runs GraphQL queries against the indexer.

Every HTTP request carries the ``x-aptos-client`` header, the bearer token from
:class:`ClientConfig` when one is set, and any extra configured headers.
Responses with a status of 400 or above raise :class:`~aptos_kit.errors.ApiError`.

Examples:
    Transfer and wait::

        client = RestClient("https://api.devnet.aptoslabs.com/v1")
        txn_hash = await client.bcs_transfer(alice, bob.address(), 1_000)
        committed = await client.wait_for_transaction(txn_hash)
        await client.close()

    Sponsored transaction::

        signed = await client.create_fee_payer_bcs_transaction(alice, sponsor, payload)
        await client.submit_and_wait_for_bcs_transaction(signed)
"""

from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
import time
import unittest
import unittest.mock
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

import httpx
import python_graphql_client

from .account import Account
from .account_address import AccountAddress
from .authenticator import Authenticator, FeePayerAuthenticator, MultiAgentAuthenticator
from .bcs import Deserializer, Serializer
from .errors import (
    AccountNotFound,
    ApiError,
    ResourceNotFound,
    TransactionFailedError,
    TransactionTimeoutError,
)
from .metadata import Metadata
from .transaction_builder import TransactionBuilder, TransactionOptions
from .transactions import (
    EntryFunction,
    FeePayerRawTransaction,
    MultiAgentRawTransaction,
    RawTransaction,
    SignedTransaction,
    TransactionArgument,
    TransactionPayload,
)
from .type_tag import StructTag, TypeTag

logger = logging.getLogger(__name__)

BCS_CONTENT_TYPE = "application/x-bcs"
SIGNED_TRANSACTION_CONTENT_TYPE = "application/x.aptos.signed_transaction+bcs"
VIEW_FUNCTION_CONTENT_TYPE = "application/x.aptos.view_function+bcs"


@dataclass
class ClientConfig:
    """Common configuration for clients, particularly for submitting transactions.

    Attributes:
        expiration_ttl: Seconds a built transaction stays valid.
        gas_unit_price: Default gas unit price in octas.
        max_gas_amount: Default gas limit.
        transaction_wait_in_seconds: Window the sequence number allocator
            waits for commits before resynchronising.
        http2: Negotiate HTTP/2 with the node.
        api_key: Bearer token sent as ``Authorization``.
        timeout: Per-request timeout in seconds. Pool acquisition never times out.
        headers: Extra headers sent with every request.
        poll_period: Seconds between polls in :meth:`RestClient.wait_for_transaction`.
        poll_timeout: Seconds before :meth:`RestClient.wait_for_transaction` gives up.
    """

    expiration_ttl: int = 600
    gas_unit_price: int = 100
    max_gas_amount: int = 100_000
    transaction_wait_in_seconds: int = 20
    http2: bool = True
    api_key: Optional[str] = None
    timeout: float = 60.0
    headers: Dict[str, str] = field(default_factory=dict)
    poll_period: float = 0.1
    poll_timeout: float = 10.0


class IndexerClient:
    """A wrapper around the indexer's GraphQL endpoint."""

    COIN_BALANCES_QUERY = """
        query CoinBalances($owner_address: String) {
          current_coin_balances(where: {owner_address: {_eq: $owner_address}}) {
            amount
            coin_type
            owner_address
          }
        }
    """

    PROCESSOR_STATUS_QUERY = """
        query ProcessorStatus {
          processor_status {
            processor
            last_success_version
            last_updated
          }
        }
    """

    client: python_graphql_client.GraphqlClient

    def __init__(
        self,
        indexer_url: str,
        bearer_token: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        request_headers = {Metadata.APTOS_HEADER: Metadata.get_aptos_header_val()}
        request_headers.update(headers or {})
        if bearer_token:
            request_headers["Authorization"] = f"Bearer {bearer_token}"
        self.client = python_graphql_client.GraphqlClient(
            endpoint=indexer_url, headers=request_headers
        )

    async def query(
        self, query: str, variables: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Run ``query`` and return the raw response, ``errors`` included."""
        return await self.client.execute_async(query, variables or {})

    async def account_coin_balances(
        self, account_address: AccountAddress
    ) -> List[Dict[str, Any]]:
        result = await self.query(
            self.COIN_BALANCES_QUERY, {"owner_address": str(account_address)}
        )
        return self._data(result)["current_coin_balances"]

    async def processor_status(self) -> List[Dict[str, Any]]:
        result = await self.query(self.PROCESSOR_STATUS_QUERY)
        return self._data(result)["processor_status"]

    @staticmethod
    def _data(result: Dict[str, Any]) -> Dict[str, Any]:
        if result.get("errors"):
            body = json.dumps(result["errors"])
            raise ApiError(f"GraphQL query failed: {body}", 200, body)
        return result["data"]


class RestClient:
    """A wrapper around the Aptos-core REST API."""

    _chain_id: Optional[int]
    client: httpx.AsyncClient
    client_config: ClientConfig
    base_url: str

    def __init__(
        self,
        base_url: str,
        client_config: Optional[ClientConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        client_config = client_config or ClientConfig()
        self.base_url = base_url.rstrip("/")
        limits = httpx.Limits()
        # Jobs wait for a connection as long as progress is being made.
        timeout = httpx.Timeout(client_config.timeout, pool=None)
        headers = {Metadata.APTOS_HEADER: Metadata.get_aptos_header_val()}
        headers.update(client_config.headers)
        if client_config.api_key:
            headers["Authorization"] = f"Bearer {client_config.api_key}"
        self.client = httpx.AsyncClient(
            http2=client_config.http2,
            limits=limits,
            timeout=timeout,
            headers=headers,
            transport=transport,
        )
        self.client_config = client_config
        self._chain_id = None

    async def close(self):
        await self.client.aclose()

    async def chain_id(self) -> int:
        if not self._chain_id:
            info = await self.info()
            self._chain_id = int(info["chain_id"])
        return self._chain_id

    def set_chain_id(self, chain_id: int):
        """Pin the chain id so it is never fetched."""
        self._chain_id = chain_id

    def transaction_options(self, **kwargs: Any) -> TransactionOptions:
        """Options from this client's configuration, overridden by ``kwargs``."""
        defaults = TransactionOptions.from_config(self.client_config)
        values = {
            "max_gas_amount": defaults.max_gas_amount,
            "gas_unit_price": defaults.gas_unit_price,
            "expiration_seconds": defaults.expiration_seconds,
        }
        values.update(kwargs)
        return TransactionOptions.from_kwargs(**values)

    #
    # Account accessors
    #

    async def account(
        self, account_address: AccountAddress, ledger_version: Optional[int] = None
    ) -> Dict[str, str]:
        """Sequence number and authentication key of an account."""
        response = await self._get(
            endpoint=f"accounts/{account_address}",
            params={"ledger_version": ledger_version},
        )
        self._check(response, account_address)
        return response.json()

    async def account_balance(
        self,
        account_address: AccountAddress,
        ledger_version: Optional[int] = None,
        coin_type: Optional[str] = None,
    ) -> int:
        """Coin balance in base units, APT unless ``coin_type`` says otherwise."""
        coin_type = coin_type or "0x1::aptos_coin::AptosCoin"
        result = await self.view_bcs_payload(
            "0x1::coin",
            "balance",
            [TypeTag(StructTag.from_str(coin_type))],
            [TransactionArgument(account_address, Serializer.struct)],
            ledger_version,
        )
        return int(result[0])

    async def account_sequence_number(
        self, account_address: AccountAddress, ledger_version: Optional[int] = None
    ) -> int:
        """Next sequence number of an account; 0 for an account not yet created."""
        try:
            account_res = await self.account(account_address, ledger_version)
            return int(account_res["sequence_number"])
        except ApiError as ae:
            if ae.status_code != 404:
                raise
            return 0

    async def account_resource(
        self,
        account_address: AccountAddress,
        resource_type: str,
        ledger_version: Optional[int] = None,
    ) -> Dict[str, Any]:
        response = await self._get(
            endpoint=f"accounts/{account_address}/resource/{resource_type}",
            params={"ledger_version": ledger_version},
        )
        if response.status_code == 404:
            raise ResourceNotFound(resource_type, resource_type)
        self._check(response, account_address)
        return response.json()

    async def account_resources(
        self,
        account_address: AccountAddress,
        ledger_version: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        response = await self._get(
            endpoint=f"accounts/{account_address}/resources",
            params={"ledger_version": ledger_version},
        )
        if response.status_code == 404:
            raise AccountNotFound(f"{account_address}", account_address)
        self._check(response, account_address)
        return response.json()

    async def account_resources_bcs(
        self,
        account_address: AccountAddress,
        ledger_version: Optional[int] = None,
    ) -> List[Tuple[StructTag, bytes]]:
        """All resources of an account as ``(type, BCS bytes)`` pairs.

        The values are left encoded; decode them with the matching
        :class:`~aptos_kit.bcs.Deserializable`.
        """
        response = await self._get(
            endpoint=f"accounts/{account_address}/resources",
            params={"ledger_version": ledger_version},
            headers={"Accept": BCS_CONTENT_TYPE},
        )
        if response.status_code == 404:
            raise AccountNotFound(f"{account_address}", account_address)
        self._check(response, account_address)
        der = Deserializer(response.content)
        return der.sequence(lambda d: (StructTag.deserialize(d), d.to_bytes()))

    async def account_module(
        self,
        account_address: AccountAddress,
        module_name: str,
        ledger_version: Optional[int] = None,
    ) -> Dict[str, Any]:
        response = await self._get(
            endpoint=f"accounts/{account_address}/module/{module_name}",
            params={"ledger_version": ledger_version},
        )
        self._check(response, account_address)
        return response.json()

    async def account_modules(
        self,
        account_address: AccountAddress,
        ledger_version: Optional[int] = None,
        limit: Optional[int] = None,
        start: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        response = await self._get(
            endpoint=f"accounts/{account_address}/modules",
            params={
                "ledger_version": ledger_version,
                "limit": limit,
                "start": start,
            },
        )
        if response.status_code == 404:
            raise AccountNotFound(f"{account_address}", account_address)
        self._check(response, account_address)
        return response.json()

    #
    # Blocks
    #

    async def blocks_by_height(
        self,
        block_height: int,
        with_transactions: bool = False,
    ) -> Dict[str, Any]:
        response = await self._get(
            endpoint=f"blocks/by_height/{block_height}",
            params={"with_transactions": _bool_param(with_transactions)},
        )
        self._check(response)
        return response.json()

    async def blocks_by_version(
        self,
        version: int,
        with_transactions: bool = False,
    ) -> Dict[str, Any]:
        response = await self._get(
            endpoint=f"blocks/by_version/{version}",
            params={"with_transactions": _bool_param(with_transactions)},
        )
        self._check(response)
        return response.json()

    #
    # Ledger accessors
    #

    async def info(self) -> Dict[str, str]:
        """Ledger information: chain id, epoch, versions and timestamps."""
        response = await self.client.get(f"{self.base_url}/")
        self._check(response)
        return response.json()

    async def current_timestamp(self) -> float:
        """Ledger time in seconds."""
        info = await self.info()
        return float(info["ledger_timestamp"]) / 1_000_000

    async def estimate_gas_price(self) -> Dict[str, int]:
        """Gas unit price estimates: ``gas_estimate`` plus the prioritized and
        deprioritized variants when the node reports them."""
        response = await self._get(endpoint="estimate_gas_price")
        self._check(response)
        return {key: int(value) for key, value in response.json().items()}

    async def healthy(self, duration_secs: Optional[int] = None) -> bool:
        """Whether the node is up and, with ``duration_secs``, has committed
        within that many seconds."""
        response = await self._get(
            endpoint="-/healthy", params={"duration_secs": duration_secs}
        )
        if response.status_code == 503:
            return False
        self._check(response)
        return True

    #
    # Transactions
    #

    async def simulate_bcs_transaction(
        self,
        signed_transaction: SignedTransaction,
        estimate_gas_usage: bool = False,
    ) -> List[Dict[str, Any]]:
        """Run a transaction without committing it.

        Args:
            signed_transaction: Usually carries all-zero signatures, see
                :meth:`Account.sign_simulated_transaction`.
            estimate_gas_usage: Let the node pick the gas unit price and gas
                limit instead of using the transaction's.
        """
        params = {}
        if estimate_gas_usage:
            params = {
                "estimate_gas_unit_price": "true",
                "estimate_max_gas_amount": "true",
            }

        response = await self._post(
            endpoint="transactions/simulate",
            params=params,
            headers={"Content-Type": SIGNED_TRANSACTION_CONTENT_TYPE},
            content=signed_transaction.bytes(),
        )
        self._check(response)
        return response.json()

    async def simulate_transaction(
        self,
        transaction: RawTransaction,
        sender: Account,
        estimate_gas_usage: bool = False,
    ) -> List[Dict[str, Any]]:
        # Simulated transactions carry zero signatures, a valid one is rejected.
        authenticator = sender.sign_simulated_transaction(transaction)
        return await self.simulate_bcs_transaction(
            signed_transaction=SignedTransaction(transaction, authenticator),
            estimate_gas_usage=estimate_gas_usage,
        )

    async def submit_bcs_transaction(
        self, signed_transaction: SignedTransaction
    ) -> str:
        """Submit to mempool and return the transaction hash."""
        response = await self._post(
            endpoint="transactions",
            headers={"Content-Type": SIGNED_TRANSACTION_CONTENT_TYPE},
            content=signed_transaction.bytes(),
        )
        self._check(response)
        return response.json()["hash"]

    async def submit_and_wait_for_bcs_transaction(
        self, signed_transaction: SignedTransaction
    ) -> Dict[str, Any]:
        txn_hash = await self.submit_bcs_transaction(signed_transaction)
        return await self.wait_for_transaction(txn_hash)

    async def transaction_pending(self, txn_hash: str) -> bool:
        """Whether the transaction has not been committed yet; unknown counts
        as pending."""
        response = await self._get(endpoint=f"transactions/by_hash/{txn_hash}")
        if response.status_code == 404:
            return True
        self._check(response)
        return response.json()["type"] == "pending_transaction"

    async def wait_for_transaction(
        self,
        txn_hash: str,
        poll_period: Optional[float] = None,
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        """Poll until the transaction is committed and return it.

        A 404 means the node has not seen the transaction yet and is retried,
        as is a pending transaction. Any other error status raises at once.

        Args:
            txn_hash: Hash returned by submission.
            poll_period: Seconds between polls, ``ClientConfig.poll_period``
                by default.
            timeout: Seconds before giving up, ``ClientConfig.poll_timeout``
                by default.

        Raises:
            TransactionTimeoutError: If the transaction is not committed in time.
            TransactionFailedError: If it was committed but did not succeed.
            ApiError: On any error status other than 404.
        """
        poll_period = self.client_config.poll_period if poll_period is None else poll_period
        timeout = self.client_config.poll_timeout if timeout is None else timeout
        deadline = time.monotonic() + timeout

        while True:
            response = await self._get(endpoint=f"transactions/by_hash/{txn_hash}")
            if response.status_code != 404:
                self._check(response, txn_hash)
                data = response.json()
                if data.get("type") != "pending_transaction":
                    if not data.get("success", False):
                        raise TransactionFailedError(
                            txn_hash, data.get("vm_status", "unknown")
                        )
                    return data
            if time.monotonic() >= deadline:
                raise TransactionTimeoutError(txn_hash, timeout)
            await asyncio.sleep(poll_period)

    async def wait_for_transactions(
        self,
        txn_hashes: List[str],
        poll_period: Optional[float] = None,
        timeout: Optional[float] = None,
    ) -> List[Dict[str, Any]]:
        """Wait for several transactions concurrently, in the order given."""
        return await asyncio.gather(
            *(self.wait_for_transaction(h, poll_period, timeout) for h in txn_hashes)
        )

    async def account_transaction_sequence_number_status(
        self, address: AccountAddress, sequence_number: int
    ) -> bool:
        """Whether the transaction with this sequence number has been committed."""
        response = await self._get(
            endpoint=f"accounts/{address}/transactions",
            params={
                "limit": 1,
                "start": sequence_number,
            },
        )
        self._check(response, address)
        data = response.json()
        return len(data) == 1 and data[0]["type"] != "pending_transaction"

    async def transaction_by_hash(self, txn_hash: str) -> Dict[str, Any]:
        response = await self._get(endpoint=f"transactions/by_hash/{txn_hash}")
        self._check(response, txn_hash)
        return response.json()

    async def transaction_by_version(self, version: int) -> Dict[str, Any]:
        response = await self._get(endpoint=f"transactions/by_version/{version}")
        self._check(response)
        return response.json()

    async def transactions_by_account(
        self,
        account_address: AccountAddress,
        limit: Optional[int] = None,
        start: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        response = await self._get(
            endpoint=f"accounts/{account_address}/transactions",
            params={
                "limit": limit,
                "start": start,
            },
        )
        self._check(response, account_address)
        return response.json()

    async def transactions(
        self,
        limit: Optional[int] = None,
        start: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        response = await self._get(
            endpoint="transactions",
            params={
                "limit": limit,
                "start": start,
            },
        )
        self._check(response)
        return response.json()

    #
    # Transaction helpers
    #

    async def create_bcs_transaction(
        self,
        sender: Union[Account, AccountAddress],
        payload: TransactionPayload,
        sequence_number: Optional[int] = None,
        options: Optional[TransactionOptions] = None,
    ) -> RawTransaction:
        sender_address = sender.address() if isinstance(sender, Account) else sender
        options = options or self.transaction_options()
        if sequence_number is not None:
            options = dataclasses.replace(options, sequence_number=sequence_number)
        raw_transaction = await TransactionBuilder(self).build(
            sender_address, payload, options
        )
        if not isinstance(raw_transaction, RawTransaction):
            return raw_transaction.inner()
        return raw_transaction

    async def create_bcs_signed_transaction(
        self,
        sender: Account,
        payload: TransactionPayload,
        sequence_number: Optional[int] = None,
        options: Optional[TransactionOptions] = None,
    ) -> SignedTransaction:
        raw_transaction = await self.create_bcs_transaction(
            sender, payload, sequence_number, options
        )
        authenticator = sender.sign_transaction(raw_transaction)
        return SignedTransaction(raw_transaction, authenticator)

    async def create_multi_agent_bcs_transaction(
        self,
        sender: Account,
        secondary_accounts: List[Account],
        payload: TransactionPayload,
        options: Optional[TransactionOptions] = None,
    ) -> SignedTransaction:
        """Build and sign a transaction that every account in
        ``secondary_accounts`` co-signs."""
        options = dataclasses.replace(
            options or self.transaction_options(),
            additional_signers=[x.address() for x in secondary_accounts],
            fee_payer=None,
        )
        raw_transaction = await TransactionBuilder(self).build(
            sender.address(), payload, options
        )
        assert isinstance(raw_transaction, MultiAgentRawTransaction)

        authenticator = Authenticator(
            MultiAgentAuthenticator(
                sender.sign_transaction(raw_transaction),
                [(x.address(), x.sign_transaction(raw_transaction)) for x in secondary_accounts],
            )
        )
        return SignedTransaction(raw_transaction.inner(), authenticator)

    async def create_fee_payer_bcs_transaction(
        self,
        sender: Account,
        fee_payer: Account,
        payload: TransactionPayload,
        secondary_accounts: Optional[List[Account]] = None,
        options: Optional[TransactionOptions] = None,
    ) -> SignedTransaction:
        """Build and sign a transaction whose gas ``fee_payer`` pays."""
        secondary_accounts = secondary_accounts or []
        options = dataclasses.replace(
            options or self.transaction_options(),
            additional_signers=[x.address() for x in secondary_accounts],
            fee_payer=fee_payer.address(),
        )
        raw_transaction = await TransactionBuilder(self).build(
            sender.address(), payload, options
        )
        assert isinstance(raw_transaction, FeePayerRawTransaction)

        authenticator = Authenticator(
            FeePayerAuthenticator(
                sender.sign_transaction(raw_transaction),
                [(x.address(), x.sign_transaction(raw_transaction)) for x in secondary_accounts],
                (fee_payer.address(), fee_payer.sign_transaction(raw_transaction)),
            )
        )
        return SignedTransaction(raw_transaction.inner(), authenticator)

    #
    # Transaction wrappers
    #

    async def bcs_transfer(
        self,
        sender: Account,
        recipient: AccountAddress,
        amount: int,
        sequence_number: Optional[int] = None,
    ) -> str:
        """Transfer APT, creating the recipient account if needed."""
        transaction_arguments = [
            TransactionArgument(recipient, Serializer.struct),
            TransactionArgument(amount, Serializer.u64),
        ]
        payload = EntryFunction.natural(
            "0x1::aptos_account",
            "transfer",
            [],
            transaction_arguments,
        )
        signed_transaction = await self.create_bcs_signed_transaction(
            sender, TransactionPayload(payload), sequence_number=sequence_number
        )
        return await self.submit_bcs_transaction(signed_transaction)

    async def transfer_coins(
        self,
        sender: Account,
        recipient: AccountAddress,
        coin_type: str,
        amount: int,
        sequence_number: Optional[int] = None,
    ) -> str:
        transaction_arguments = [
            TransactionArgument(recipient, Serializer.struct),
            TransactionArgument(amount, Serializer.u64),
        ]
        payload = EntryFunction.natural(
            "0x1::aptos_account",
            "transfer_coins",
            [TypeTag(StructTag.from_str(coin_type))],
            transaction_arguments,
        )
        signed_transaction = await self.create_bcs_signed_transaction(
            sender, TransactionPayload(payload), sequence_number=sequence_number
        )
        return await self.submit_bcs_transaction(signed_transaction)

    #
    # View functions
    #

    async def view(
        self,
        function: str,
        type_arguments: List[str],
        arguments: List[Any],
        ledger_version: Optional[int] = None,
    ) -> List[Any]:
        """Call a view function with JSON-encoded arguments."""
        response = await self._post(
            endpoint="view",
            params={"ledger_version": ledger_version},
            data={
                "function": function,
                "type_arguments": type_arguments,
                "arguments": arguments,
            },
        )
        self._check(response, function)
        return response.json()

    async def view_bcs_payload(
        self,
        module: str,
        function: str,
        ty_args: List[TypeTag],
        args: List[TransactionArgument],
        ledger_version: Optional[int] = None,
    ) -> List[Any]:
        """Call a view function with BCS-encoded arguments; results are JSON."""
        view_data = EntryFunction.natural(module, function, ty_args, args)
        ser = Serializer()
        view_data.serialize(ser)
        response = await self._post(
            endpoint="view",
            params={"ledger_version": ledger_version},
            headers={"Content-Type": VIEW_FUNCTION_CONTENT_TYPE},
            content=ser.output(),
        )
        self._check(response, f"{module}::{function}")
        return response.json()

    #
    # HTTP helpers
    #

    @staticmethod
    def _check(response: httpx.Response, context: Any = None):
        if response.status_code >= 400:
            logger.debug(
                "%s %s failed with %s",
                response.request.method,
                response.request.url,
                response.status_code,
            )
            raise ApiError.from_response(
                response, None if context is None else str(context)
            )

    async def _post(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        content: Optional[bytes] = None,
    ) -> httpx.Response:
        params = {} if params is None else params
        params = {key: val for key, val in params.items() if val is not None}
        if content is not None:
            return await self.client.post(
                url=f"{self.base_url}/{endpoint}",
                params=params,
                headers=headers,
                content=content,
            )
        return await self.client.post(
            url=f"{self.base_url}/{endpoint}",
            params=params,
            headers=headers,
            json=data,
        )

    async def _get(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        params = {} if params is None else params
        params = {key: val for key, val in params.items() if val is not None}
        return await self.client.get(
            url=f"{self.base_url}/{endpoint}",
            params=params,
            headers=headers,
        )


def _bool_param(value: bool) -> str:
    return "true" if value else "false"


class FaucetClient:
    """Faucet creates and funds accounts on test networks. Shares the HTTP
    connection pool of its :class:`RestClient`."""

    base_url: str
    rest_client: RestClient
    headers: Dict[str, str]

    def __init__(
        self, base_url: str, rest_client: RestClient, auth_token: Optional[str] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.rest_client = rest_client
        self.headers = {}
        if auth_token:
            self.headers["Authorization"] = f"Bearer {auth_token}"

    async def close(self):
        await self.rest_client.close()

    async def fund_account(
        self, address: AccountAddress, amount: int, wait_for_transaction: bool = True
    ) -> str:
        """Mint ``amount`` octas into ``address``, creating it if needed.

        Returns the hash of the first mint transaction. With
        ``wait_for_transaction`` every returned transaction is awaited.
        """
        response = await self.rest_client.client.post(
            f"{self.base_url}/mint",
            params={"amount": amount, "address": str(address)},
            headers=self.headers,
        )
        RestClient._check(response, address)
        txn_hashes = response.json()
        if wait_for_transaction:
            await self.rest_client.wait_for_transactions(txn_hashes)
        return txn_hashes[0]

    async def healthy(self) -> bool:
        response = await self.rest_client.client.get(self.base_url)
        return "tap:ok" == response.text


class Test(unittest.IsolatedAsyncioTestCase):
    BASE_URL = "https://fullnode.example.com/v1"

    def setUp(self):
        self.requests: List[httpx.Request] = []
        self.routes: Dict[Tuple[str, str], Any] = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"message": "not found", "error_code": "not_found"})
        if callable(route):
            return route(request)
        return route

    def client(self, config: Optional[ClientConfig] = None) -> RestClient:
        return RestClient(self.BASE_URL, config, transport=httpx.MockTransport(self.handler))

    async def test_headers(self):
        self.routes[("GET", "/v1/")] = httpx.Response(200, json={"chain_id": "4"})
        client = self.client(ClientConfig(api_key="secret", headers={"x-extra": "1"}))
        await client.info()
        request = self.requests[0]
        self.assertTrue(request.headers["x-aptos-client"].startswith("aptos-kit-python/"))
        self.assertEqual(request.headers["authorization"], "Bearer secret")
        self.assertEqual(request.headers["x-extra"], "1")
        await client.close()

    async def test_chain_id_cached(self):
        self.routes[("GET", "/v1/")] = httpx.Response(200, json={"chain_id": "4"})
        client = self.client()
        self.assertEqual(await client.chain_id(), 4)
        self.assertEqual(await client.chain_id(), 4)
        self.assertEqual(len(self.requests), 1)
        await client.close()

    async def test_account_errors(self):
        address = AccountAddress.from_str("0x1")
        self.routes[("GET", f"/v1/accounts/{address}")] = httpx.Response(
            500, json={"message": "boom", "error_code": "internal_error", "vm_error_code": 7}
        )
        client = self.client()
        with self.assertRaises(ApiError) as cm:
            await client.account(address)
        self.assertEqual(cm.exception.status_code, 500)
        self.assertEqual(cm.exception.error_code, "internal_error")
        self.assertEqual(cm.exception.vm_error_code, 7)

        with self.assertRaises(AccountNotFound):
            await client.account_resources(address)
        with self.assertRaises(ResourceNotFound):
            await client.account_resource(address, "0x1::account::Account")
        await client.close()

    async def test_sequence_number_of_missing_account(self):
        client = self.client()
        self.assertEqual(
            await client.account_sequence_number(AccountAddress.from_str("0x7")), 0
        )
        await client.close()

    async def test_account_resources_bcs(self):
        address = AccountAddress.from_str("0x1")
        tag = StructTag.from_str("0x1::account::Account")
        ser = Serializer()
        ser.uleb128(1)
        ser.struct(tag)
        ser.to_bytes(b"\x01\x02")

        def resources(request: httpx.Request) -> httpx.Response:
            self.assertEqual(request.headers["accept"], BCS_CONTENT_TYPE)
            return httpx.Response(200, content=ser.output())

        self.routes[("GET", f"/v1/accounts/{address}/resources")] = resources
        client = self.client()
        self.assertEqual(await client.account_resources_bcs(address), [(tag, b"\x01\x02")])
        await client.close()

    async def test_submit(self):
        def submit(request: httpx.Request) -> httpx.Response:
            self.assertEqual(request.headers["content-type"], SIGNED_TRANSACTION_CONTENT_TYPE)
            received = SignedTransaction.deserialize(Deserializer(request.content))
            self.assertEqual(received.hash(), signed.hash())
            return httpx.Response(202, json={"hash": signed.hash()})

        self.routes[("POST", "/v1/transactions")] = submit
        sender = Account.generate()
        client = self.client()
        client.set_chain_id(4)
        payload = TransactionPayload(
            EntryFunction.natural(
                "0x1::aptos_account",
                "transfer",
                [],
                [
                    TransactionArgument(AccountAddress.from_str("0x2"), Serializer.struct),
                    TransactionArgument(5, Serializer.u64),
                ],
            )
        )
        signed = await client.create_bcs_signed_transaction(sender, payload, sequence_number=3)
        self.assertTrue(signed.verify())
        self.assertEqual(signed.transaction.sequence_number, 3)
        self.assertLessEqual(
            signed.transaction.expiration_timestamps_secs, int(time.time()) + 600
        )
        self.assertEqual(await client.submit_bcs_transaction(signed), signed.hash())
        await client.close()

    async def test_fee_payer_and_multi_agent(self):
        client = self.client()
        client.set_chain_id(4)
        sender, sponsor, friend = Account.generate(), Account.generate(), Account.generate()
        payload = TransactionPayload(
            EntryFunction.natural("0x1::m", "f", [], [])
        )

        sponsored = await client.create_fee_payer_bcs_transaction(sender, sponsor, payload)
        self.assertIsInstance(sponsored.authenticator.authenticator, FeePayerAuthenticator)
        self.assertTrue(sponsored.verify())

        multi = await client.create_multi_agent_bcs_transaction(sender, [friend], payload)
        self.assertIsInstance(multi.authenticator.authenticator, MultiAgentAuthenticator)
        self.assertTrue(multi.verify())
        self.assertEqual(multi.transaction.sequence_number, 0)
        await client.close()

    async def test_view_bcs_payload(self):
        def view(request: httpx.Request) -> httpx.Response:
            self.assertEqual(request.headers["content-type"], VIEW_FUNCTION_CONTENT_TYPE)
            self.assertEqual(request.url.params["ledger_version"], "9")
            return httpx.Response(200, json=["1000"])

        self.routes[("POST", "/v1/view")] = view
        client = self.client()
        balance = await client.account_balance(AccountAddress.from_str("0x1"), 9)
        self.assertEqual(balance, 1000)
        await client.close()

    async def test_wait_for_transaction(self):
        responses = [
            httpx.Response(404, json={"message": "not found"}),
            httpx.Response(200, json={"type": "pending_transaction"}),
            httpx.Response(200, json={"type": "user_transaction", "success": True}),
        ]
        self.routes[("GET", "/v1/transactions/by_hash/0xab")] = lambda _: responses.pop(0)
        client = self.client()
        committed = await client.wait_for_transaction("0xab", poll_period=0)
        self.assertTrue(committed["success"])
        self.assertEqual(len(self.requests), 3)
        await client.close()

    async def test_wait_for_failed_transaction(self):
        self.routes[("GET", "/v1/transactions/by_hash/0xab")] = httpx.Response(
            200,
            json={"type": "user_transaction", "success": False, "vm_status": "Move abort"},
        )
        client = self.client()
        with self.assertRaises(TransactionFailedError) as cm:
            await client.wait_for_transaction("0xab")
        self.assertEqual(cm.exception.vm_status, "Move abort")
        await client.close()

    async def test_wait_timeout_and_errors(self):
        client = self.client()
        with self.assertRaises(TransactionTimeoutError):
            await client.wait_for_transaction("0xcd", poll_period=0.01, timeout=0.05)

        self.routes[("GET", "/v1/transactions/by_hash/0xef")] = httpx.Response(
            400, json={"message": "invalid hash"}
        )
        with self.assertRaises(ApiError) as cm:
            await client.wait_for_transaction("0xef")
        self.assertEqual(cm.exception.status_code, 400)
        await client.close()

    async def test_gas_price_and_health(self):
        self.routes[("GET", "/v1/estimate_gas_price")] = httpx.Response(
            200, json={"gas_estimate": 100, "prioritized_gas_estimate": 150}
        )
        self.routes[("GET", "/v1/-/healthy")] = lambda request: httpx.Response(
            200 if request.url.params.get("duration_secs") is None else 503,
            json={"message": "aptos-node:ok"},
        )
        client = self.client()
        self.assertEqual((await client.estimate_gas_price())["gas_estimate"], 100)
        self.assertTrue(await client.healthy())
        self.assertFalse(await client.healthy(duration_secs=1))
        await client.close()

    async def test_faucet(self):
        minted = []

        def mint(request: httpx.Request) -> httpx.Response:
            minted.append(dict(request.url.params))
            self.assertEqual(request.headers["authorization"], "Bearer token")
            return httpx.Response(200, json=["0x01", "0x02"])

        self.routes[("POST", "/mint")] = mint
        self.routes[("GET", "/v1/transactions/by_hash/0x01")] = httpx.Response(
            200, json={"type": "user_transaction", "success": True}
        )
        self.routes[("GET", "/v1/transactions/by_hash/0x02")] = httpx.Response(
            200, json={"type": "user_transaction", "success": True}
        )
        self.routes[("GET", "/")] = httpx.Response(200, text="tap:ok")
        client = self.client()
        faucet = FaucetClient("https://faucet.example.com/", client, "token")
        address = AccountAddress.from_str("0x1")
        self.assertEqual(await faucet.fund_account(address, 500), "0x01")
        self.assertEqual(minted, [{"amount": "500", "address": str(address)}])
        self.assertTrue(await faucet.healthy())
        await faucet.close()

    async def test_indexer(self):
        indexer = IndexerClient("https://indexer.example.com/v1/graphql", "token")
        self.assertEqual(indexer.client.headers["Authorization"], "Bearer token")
        balances = [{"amount": 5, "coin_type": "0x1::aptos_coin::AptosCoin"}]
        with unittest.mock.patch.object(
            python_graphql_client.GraphqlClient,
            "execute_async",
            return_value={"data": {"current_coin_balances": balances}},
        ) as execute:
            result = await indexer.account_coin_balances(AccountAddress.from_str("0x1"))
        self.assertEqual(result, balances)
        self.assertEqual(execute.call_args[0][1], {"owner_address": "0x1"})

        with unittest.mock.patch.object(
            python_graphql_client.GraphqlClient,
            "execute_async",
            return_value={"errors": [{"message": "no such table"}]},
        ):
            with self.assertRaises(ApiError):
                await indexer.processor_status()


if __name__ == "__main__":
    unittest.main()
