"""
rpc/errors.py

Exceptions raised by the endpoint health layer.
"""
from typing import List, Optional


class RpcHealthError(RuntimeError):
    pass


class UnsupportedChainError(RpcHealthError):
    def __init__(self, chain_id: int):
        super().__init__(f"Unsupported chain ID: {chain_id}")
        self.chain_id = chain_id


class RefreshError(RpcHealthError):
    """Every active endpoint failed while sampling chain data."""

    def __init__(self, chain_id: int, tried: Optional[List[str]] = None):
        tried = tried or []
        super().__init__(
            f"Failed to sample chain {chain_id} from {len(tried)} active endpoint(s)"
        )
        self.chain_id = chain_id
        self.tried = tried
