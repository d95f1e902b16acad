# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Example scripts for aptos-kit.

Each script runs end to end against a live network, devnet by default::

    python -m examples.transfer_coin
    python -m examples.fee_payer_transfer
    python -m examples.multikey
    python -m examples.batch_transfer

Set ``APTOS_NETWORK`` to ``localnet``, ``devnet`` or ``testnet`` to pick a
network, or override single endpoints as described in :mod:`examples.common`.
"""
