"""
rpc/registry.py

EndpointRegistry - явный контекст эндпоинтов и клиентов по chain ID.
"""
import logging
from typing import Callable, Dict, Iterable, List, Optional

from config.chains import is_supported_chain
from config.loader import LoadedConfig
from .errors import UnsupportedChainError
from .models import ChainClient, Endpoint

logger = logging.getLogger(__name__)

ClientFactory = Callable[[Endpoint], ChainClient]


class EndpointRegistry:
    """
    Registry of candidate endpoints and their chain clients.

    Features:
    - Endpoints grouped per chain, in insertion order
    - One client per endpoint URL, created lazily through the factory
    - Optional restriction to the built-in chain table
    """

    def __init__(
        self,
        client_factory: ClientFactory,
        endpoints: Optional[Iterable[Endpoint]] = None,
        restrict_to_known_chains: bool = False,
    ):
        """
        Initialize EndpointRegistry.

        Args:
            client_factory: Callable building a ChainClient for an endpoint
            endpoints: Initial endpoints
            restrict_to_known_chains: Reject chain IDs missing from config.chains
        """
        self._client_factory = client_factory
        self._restrict = restrict_to_known_chains
        self._endpoints: Dict[int, List[Endpoint]] = {}
        self._clients: Dict[str, ChainClient] = {}

        for endpoint in endpoints or []:
            self.add(endpoint)

    @classmethod
    def from_config(
        cls,
        loaded: LoadedConfig,
        client_factory: ClientFactory,
        restrict_to_known_chains: bool = False,
    ) -> "EndpointRegistry":
        """Build a registry from the endpoint pools of a loaded YAML config."""
        registry = cls(client_factory, restrict_to_known_chains=restrict_to_known_chains)
        for chain_id, urls in loaded.endpoints.items():
            for url in urls:
                registry.add_url(url, chain_id)
        return registry

    def add(self, endpoint: Endpoint) -> Endpoint:
        """Добавить эндпоинт в пул (повторный URL игнорируется)."""
        if self._restrict and not is_supported_chain(endpoint.chain_id):
            raise UnsupportedChainError(endpoint.chain_id)

        pool = self._endpoints.setdefault(endpoint.chain_id, [])
        for existing in pool:
            if existing.url == endpoint.url:
                return existing

        pool.append(endpoint)
        logger.info(f"[registry] Added endpoint: {endpoint.url} (chain={endpoint.chain_id})")
        return endpoint

    def add_url(self, url: str, chain_id: int) -> Endpoint:
        return self.add(Endpoint(url=url, chain_id=chain_id))

    def remove(self, url: str) -> bool:
        """Удалить эндпоинт из пула."""
        for chain_id, pool in self._endpoints.items():
            for endpoint in pool:
                if endpoint.url == url:
                    pool.remove(endpoint)
                    self._clients.pop(url, None)
                    logger.info(f"[registry] Removed endpoint: {url} (chain={chain_id})")
                    return True
        return False

    def endpoints_for(self, chain_id: int) -> List[Endpoint]:
        """Live endpoint records for a chain (same objects the monitor mutates)."""
        return list(self._endpoints.get(chain_id, []))

    def active_endpoints(self, chain_id: int) -> List[Endpoint]:
        return [e for e in self._endpoints.get(chain_id, []) if e.is_active]

    def chain_ids(self) -> List[int]:
        return list(self._endpoints.keys())

    def client_for(self, endpoint: Endpoint) -> ChainClient:
        """
        Get (or lazily create) the chain client for an endpoint.

        Raises:
            UnsupportedChainError: if the factory cannot serve the endpoint's chain
        """
        client = self._clients.get(endpoint.url)
        if client is None:
            client = self._client_factory(endpoint)
            self._clients[endpoint.url] = client
        return client

    def __contains__(self, url: str) -> bool:
        return any(e.url == url for pool in self._endpoints.values() for e in pool)

    def __len__(self) -> int:
        return sum(len(pool) for pool in self._endpoints.values())
