"""
chains/ - Blockchain interaction layer.

Modules:
- providers: RPC provider management with failover
- block: Block number as observation index
"""

from chains.providers import (
    RPCProvider,
    RPCResponse,
    EndpointHealth,
)
from chains.block import (
    BlockState,
    fetch_block_number,
)

__all__ = [
    # Providers
    "RPCProvider",
    "RPCResponse",
    "EndpointHealth",
    # Block
    "BlockState",
    "fetch_block_number",
]
