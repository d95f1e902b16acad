# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Shared configuration for the example scripts.

Environment Variables:
    APTOS_NETWORK: Name of a well-known network, ``devnet`` if unset
    APTOS_NODE_URL: REST endpoint, overriding the network's
    APTOS_FAUCET_URL: Faucet endpoint, overriding the network's
    APTOS_INDEXER_URL: GraphQL indexer endpoint; ``none`` disables indexer use
    FAUCET_AUTH_TOKEN: Token for faucets that require one
"""

import os

from aptos_kit.async_client import FaucetClient, IndexerClient, RestClient
from aptos_kit.network import network_config

# :!:>section_1
NETWORK = network_config(os.getenv("APTOS_NETWORK", "devnet"))

NODE_URL = os.getenv("APTOS_NODE_URL", NETWORK.node_url)

FAUCET_URL = os.getenv("APTOS_FAUCET_URL", NETWORK.faucet_url or "")

FAUCET_AUTH_TOKEN = os.getenv("FAUCET_AUTH_TOKEN")

INDEXER_URL = os.getenv("APTOS_INDEXER_URL", NETWORK.indexer_url or "none")
# <:!:section_1


def rest_client() -> RestClient:
    client = RestClient(NODE_URL)
    if NETWORK.chain_id and NODE_URL == NETWORK.node_url:
        client.set_chain_id(NETWORK.chain_id)
    return client


def faucet_client(client: RestClient) -> FaucetClient:
    return FaucetClient(FAUCET_URL, client, FAUCET_AUTH_TOKEN)


def indexer_client():
    if INDEXER_URL and INDEXER_URL != "none":
        return IndexerClient(INDEXER_URL)
    return None
