# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Push a batch of transfers through the concurrent transaction pipeline.

The pipeline hands out contiguous sequence numbers, signs on several workers
and submits in order of arrival. Each outcome carries the id of the payload
that produced it, so results can be matched back regardless of ordering.

Examples:
    ::

        python -m examples.batch_transfer
"""

import asyncio
import logging

from aptos_kit.account import Account
from aptos_kit.bcs import Serializer
from aptos_kit.transaction_pipeline import TransactionPipeline
from aptos_kit.transactions import EntryFunction, TransactionArgument, TransactionPayload

from .common import faucet_client, rest_client

TRANSFERS = 50


async def main():
    logging.basicConfig(level=logging.INFO)
    client = rest_client()
    faucet = faucet_client(client)

    sender = Account.generate()
    recipients = [Account.generate() for _ in range(5)]
    await faucet.fund_account(sender.address(), 100_000_000)

    payloads = [
        TransactionPayload(
            EntryFunction.natural(
                "0x1::aptos_account",
                "transfer",
                [],
                [
                    TransactionArgument(
                        recipients[idx % len(recipients)].address(), Serializer.struct
                    ),
                    TransactionArgument(100 + idx, Serializer.u64),
                ],
            )
        )
        for idx in range(TRANSFERS)
    ]

    pipeline = TransactionPipeline(client, sender, workers=4)
    outcomes = await pipeline.run_batch(payloads)

    failed = [outcome for outcome in outcomes if outcome.error]
    for outcome in failed:
        print(f"Transfer {outcome.id} failed: {outcome.error}")

    await client.wait_for_transactions(
        [outcome.hash for outcome in outcomes if outcome.hash]
    )
    print(f"Submitted {len(outcomes) - len(failed)} of {TRANSFERS} transfers")

    for recipient in recipients:
        print(f"{recipient.address()}: {await client.account_balance(recipient.address())}")

    await client.close()


if __name__ == "__main__":
    asyncio.run(main())
