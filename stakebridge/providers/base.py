from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from ..core.bridge.models import Route, TokenBalance, TokenRef
from ..core.execution.models import BatchEstimate, BatchSubmission, Call, SubmittedBatch


class ProviderError(Exception):
    """Transport-level or protocol-level failure reported by an external service."""


class Provider(ABC):
    """Base provider interface"""

    name: str
    timeout_s: int = 10

    @abstractmethod
    async def ready(self) -> bool:
        """Check if provider is ready to serve requests"""
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Return provider health status"""
        pass


class RoutingProvider(Provider):
    """Cross-chain routing and same-chain quoting service"""

    @abstractmethod
    async def get_chains(self) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    async def get_token(self, chain_id: int, token: str) -> Dict[str, Any]:
        """Resolve a token by symbol or address"""
        pass

    @abstractmethod
    async def get_routes(self, request: Dict[str, Any]) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    async def get_quote(
        self,
        chain_id: int,
        from_token: str,
        owner_address: str,
        from_amount: int,
        to_token: str,
        *,
        slippage: Optional[float] = None,
        integrator: Optional[str] = None,
        allowed_exchanges: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        pass


class BalanceProvider(Provider):
    """Token balance reads"""

    @abstractmethod
    async def get_token_balance(self, address: str, token: TokenRef) -> TokenBalance:
        pass


RouteUpdateCallback = Callable[[Route], None]


class RouteExecutor(ABC):
    """Executes every step of a bridge route from the key-based wallet"""

    @abstractmethod
    async def execute_route(self, route: Route, on_update: Optional[RouteUpdateCallback] = None) -> Route:
        pass


class SmartAccountGateway(ABC):
    """Batching gateway of the destination smart-contract wallet"""

    @abstractmethod
    async def compute_account(self) -> str:
        pass

    @abstractmethod
    async def add_batch_call(self, call: Call) -> None:
        pass

    @abstractmethod
    async def clear_batch(self) -> None:
        pass

    @abstractmethod
    async def estimate_batch(self) -> BatchEstimate:
        pass

    @abstractmethod
    async def submit_batch(self) -> BatchSubmission:
        pass

    @abstractmethod
    async def get_batch(self, batch_hash: str) -> SubmittedBatch:
        pass
