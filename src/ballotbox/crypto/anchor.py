"""Result anchoring — embeds an election commitment hash on Ethereum.

Anchoring publishes a digest inside an ordinary 0-ETH self-send
transaction. No contract code runs on-chain; the chain only witnesses
that the digest existed at that block. Anyone holding the event log and
the final snapshot can recompute the digest and compare.

Settings come from the environment, optionally seeded from a .env file:
    BALLOTBOX_RPC_URL      Ethereum JSON-RPC endpoint
    BALLOTBOX_PRIVATE_KEY  hex private key of the anchoring account
    BALLOTBOX_CHAIN_ID     optional, defaults to Sepolia (11155111)
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

SEPOLIA_CHAIN_ID = 11155111


@dataclass(frozen=True)
class AnchorSettings:
    """Connection settings for anchoring."""
    rpc_url: str
    private_key: str
    chain_id: int = SEPOLIA_CHAIN_ID
    gas: int = 30_000
    gas_price_gwei: str = "2"

    @classmethod
    def from_env(cls, dotenv_path: Optional[Path] = None) -> AnchorSettings:
        """Read settings from the environment.

        Values already set in the environment win over the .env file.

        Raises:
            ValueError: If the RPC URL or private key is missing, or the
                chain id is not an integer.
        """
        load_dotenv(dotenv_path)
        rpc_url = os.getenv("BALLOTBOX_RPC_URL")
        private_key = os.getenv("BALLOTBOX_PRIVATE_KEY")
        if not rpc_url or not private_key:
            raise ValueError(
                "Missing BALLOTBOX_RPC_URL and/or BALLOTBOX_PRIVATE_KEY"
            )
        raw_chain_id = os.getenv("BALLOTBOX_CHAIN_ID", str(SEPOLIA_CHAIN_ID))
        try:
            chain_id = int(raw_chain_id)
        except ValueError:
            raise ValueError(f"BALLOTBOX_CHAIN_ID must be an integer: {raw_chain_id!r}")
        return cls(rpc_url=rpc_url, private_key=private_key, chain_id=chain_id)


@dataclass(frozen=True)
class AnchorRecord:
    """A record of a successful blockchain anchor."""
    sha256_hash: str
    tx_hash: str
    block_number: int
    chain_id: int
    timestamp_utc: str


def election_digest(records: dict[str, Any]) -> str:
    """Canonical SHA-256 of an election snapshot.

    Canonical form: sorted keys, Unicode preserved, UTF-8 encoded, so
    equal snapshots always produce the same digest.
    """
    canonical = json.dumps(records, sort_keys=True, ensure_ascii=False).encode("utf-8")
    return hashlib.sha256(canonical).hexdigest()


def commitment_digest(event_root: str, state_digest: str) -> str:
    """Combine the event Merkle root and snapshot digest into one hash."""
    combined = f"{event_root.removeprefix('sha256:')}{state_digest}".encode("utf-8")
    return hashlib.sha256(combined).hexdigest()


def anchor_to_chain(digest: str, settings: AnchorSettings) -> AnchorRecord:
    """Anchor a SHA-256 hex digest in a self-send transaction.

    Waits for one confirmation.
    """
    from web3 import Web3, HTTPProvider
    from eth_account import Account

    w3 = Web3(HTTPProvider(settings.rpc_url))
    acct = Account.from_key(settings.private_key)

    tx = {
        "to": acct.address,  # self-send, 0 ETH
        "value": 0,
        "gas": settings.gas,
        "gasPrice": w3.to_wei(settings.gas_price_gwei, "gwei"),
        "nonce": w3.eth.get_transaction_count(acct.address),
        "chainId": settings.chain_id,
        "data": bytes.fromhex(digest),
    }

    signed = acct.sign_transaction(tx)
    tx_hash = w3.eth.send_raw_transaction(signed.raw_transaction)
    logger.info("Sent anchor tx %s, waiting for confirmation", tx_hash.hex())

    receipt = w3.eth.wait_for_transaction_receipt(tx_hash, timeout=300)
    logger.info("Anchor confirmed in block %d", receipt.blockNumber)

    return AnchorRecord(
        sha256_hash=digest,
        tx_hash=tx_hash.hex(),
        block_number=receipt.blockNumber,
        chain_id=settings.chain_id,
        timestamp_utc=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
    )
