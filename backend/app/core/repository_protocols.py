"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell; dependency arrows point inward only
    - All IO operations accessed through Protocol types
    - Implementations provided by shell via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - Async in Protocol: boundary methods are async because implementations do IO,
      but core pure functions that USE these protocols are never async themselves
    - KeyValueStore keeps the get/put shape of the storage collaborator; failover
      between backends is an implementation detail invisible to callers
"""

from typing import Any, Protocol

from app.core.carnet import Carnet


class KeyValueStore(Protocol):
    """Contract for a durable key-value backend — raises StoreError on failure."""
    name: str

    async def get(self, key: str) -> Any | None: ...
    async def put(self, key: str, value: Any) -> None: ...


class CarnetRepository(Protocol):
    """Contract for persisting the carnet collection as a single aggregate."""
    async def load_all(self) -> list[Carnet]: ...
    async def save_all(self, carnets: list[Carnet]) -> None: ...
