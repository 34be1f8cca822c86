"""config/chains.py

Built-in chain table (Celo networks) with their default public RPC endpoints.
"""
from dataclasses import dataclass
from typing import Dict, List, Tuple

CELO_MAINNET = 42220
CELO_ALFAJORES = 44787
CELO_BAKLAVA = 62320


@dataclass(frozen=True)
class ChainInfo:
    chain_id: int
    name: str
    native_symbol: str
    rpc_urls: Tuple[str, ...]
    explorer_url: str


CHAINS: Dict[int, ChainInfo] = {
    CELO_MAINNET: ChainInfo(
        chain_id=CELO_MAINNET,
        name="Celo",
        native_symbol="CELO",
        rpc_urls=("https://forno.celo.org",),
        explorer_url="https://celoscan.io",
    ),
    CELO_ALFAJORES: ChainInfo(
        chain_id=CELO_ALFAJORES,
        name="Alfajores",
        native_symbol="CELO",
        rpc_urls=("https://alfajores-forno.celo-testnet.org",),
        explorer_url="https://alfajores.celoscan.io",
    ),
    CELO_BAKLAVA: ChainInfo(
        chain_id=CELO_BAKLAVA,
        name="Baklava",
        native_symbol="CELO",
        rpc_urls=("https://baklava-forno.celo-testnet.org",),
        explorer_url="https://baklava.celoscan.io",
    ),
}


def is_supported_chain(chain_id: int) -> bool:
    return chain_id in CHAINS


def get_chain(chain_id: int) -> ChainInfo:
    """Look up a chain; raises KeyError for chains outside the table."""
    return CHAINS[chain_id]


def default_endpoint_urls(chain_id: int) -> List[str]:
    """Default public RPC URLs for a chain (empty for unknown chains)."""
    info = CHAINS.get(chain_id)
    if info is None:
        return []
    return list(info.rpc_urls)
