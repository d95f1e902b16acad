# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Registry of well-known networks and their endpoints.

Each :class:`NetworkConfig` names a chain id, a node URL and, where the
network has them, an indexer and a faucet. A chain id of ``0`` means the id is
not fixed (devnet is reset regularly) and must be fetched from the node.

Examples:
    ::

        config = network_config("testnet")
        rest_client = config.rest_client()
        indexer = config.indexer_client()
        faucet = network_config("localnet").faucet_client(rest_client)
"""

from __future__ import annotations

import unittest
from dataclasses import dataclass
from typing import Dict, List, Optional

from .async_client import ClientConfig, FaucetClient, IndexerClient, RestClient
from .errors import ParseError, UnsupportedError


@dataclass(frozen=True)
class NetworkConfig:
    name: str
    chain_id: int
    node_url: str
    indexer_url: Optional[str] = None
    faucet_url: Optional[str] = None

    def rest_client(self, client_config: Optional[ClientConfig] = None) -> RestClient:
        client = RestClient(self.node_url, client_config or ClientConfig())
        if self.chain_id:
            client.set_chain_id(self.chain_id)
        return client

    def faucet_client(
        self, rest_client: RestClient, auth_token: Optional[str] = None
    ) -> FaucetClient:
        if not self.faucet_url:
            raise UnsupportedError(f"{self.name} has no faucet")
        return FaucetClient(self.faucet_url, rest_client, auth_token)

    def indexer_client(self, bearer_token: Optional[str] = None) -> IndexerClient:
        if not self.indexer_url:
            raise UnsupportedError(f"{self.name} has no indexer")
        return IndexerClient(self.indexer_url, bearer_token)


class Network:
    LOCALNET = NetworkConfig(
        "localnet",
        4,
        "http://127.0.0.1:8080/v1",
        "http://127.0.0.1:8090/v1/graphql",
        "http://127.0.0.1:8081",
    )
    DEVNET = NetworkConfig(
        "devnet",
        0,
        "https://api.devnet.aptoslabs.com/v1",
        "https://api.devnet.aptoslabs.com/v1/graphql",
        "https://faucet.devnet.aptoslabs.com",
    )
    TESTNET = NetworkConfig(
        "testnet",
        2,
        "https://api.testnet.aptoslabs.com/v1",
        "https://api.testnet.aptoslabs.com/v1/graphql",
        "https://faucet.testnet.aptoslabs.com",
    )
    MAINNET = NetworkConfig(
        "mainnet",
        1,
        "https://api.mainnet.aptoslabs.com/v1",
        "https://api.mainnet.aptoslabs.com/v1/graphql",
    )

    @staticmethod
    def all() -> List[NetworkConfig]:
        return [Network.LOCALNET, Network.DEVNET, Network.TESTNET, Network.MAINNET]


NAMED_NETWORKS: Dict[str, NetworkConfig] = {
    config.name: config for config in Network.all()
}


def network_config(name: str) -> NetworkConfig:
    """Look up a network by name, case-insensitively.

    Raises:
        ParseError: If ``name`` is not a known network.
    """
    config = NAMED_NETWORKS.get(name.strip().lower())
    if config is None:
        raise ParseError(
            f"Unknown network {name!r}, expected one of {', '.join(NAMED_NETWORKS)}"
        )
    return config


class Test(unittest.IsolatedAsyncioTestCase):
    def test_lookup(self):
        self.assertEqual(network_config("testnet").chain_id, 2)
        self.assertEqual(network_config(" MAINNET ").node_url, Network.MAINNET.node_url)
        with self.assertRaises(ParseError):
            network_config("betanet")

    def test_registry(self):
        self.assertEqual(
            [config.name for config in Network.all()],
            ["localnet", "devnet", "testnet", "mainnet"],
        )
        self.assertEqual(Network.DEVNET.chain_id, 0)
        self.assertIsNone(Network.MAINNET.faucet_url)

    async def test_clients(self):
        rest_client = Network.LOCALNET.rest_client()
        self.assertEqual(await rest_client.chain_id(), 4)
        faucet = Network.LOCALNET.faucet_client(rest_client)
        self.assertEqual(faucet.base_url, "http://127.0.0.1:8081")
        with self.assertRaises(UnsupportedError):
            Network.MAINNET.faucet_client(rest_client)
        await rest_client.close()


if __name__ == "__main__":
    unittest.main()
