"""
chains/block.py - Chain head as the observation index.

Each cycle is stamped with the block number it was taken at, so records
from different cycles order by chain time rather than wall time.
"""

from dataclasses import dataclass

from core.time import now_ms
from core.logging import get_logger
from core.exceptions import InfraError
from chains.providers import RPCProvider

logger = get_logger(__name__)


@dataclass
class BlockState:
    """Chain head as seen by one RPC call."""
    chain_id: int
    block_number: int
    timestamp_ms: int
    latency_ms: int


async def fetch_block_number(provider: RPCProvider) -> BlockState:
    """
    Fetch current block number from RPC.

    Raises:
        InfraError: no endpoint answered or the answer is not a hex quantity
    """
    try:
        block_number, latency_ms = await provider.get_block_number()
    except (TypeError, ValueError) as e:
        raise InfraError(
            message=f"Failed to parse block number: {e}",
            details={"chain_id": provider.chain_id},
        )

    logger.debug(
        f"Block {block_number}",
        extra={"context": {"chain_id": provider.chain_id, "latency_ms": latency_ms}},
    )

    return BlockState(
        chain_id=provider.chain_id,
        block_number=block_number,
        timestamp_ms=now_ms(),
        latency_ms=latency_ms,
    )
