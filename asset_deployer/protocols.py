"""
Protocols (Interfaces) for the remote gateways and file rules.

The orchestrator only depends on these; boto3-backed implementations live
in ``services``.
"""
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple, runtime_checkable


@runtime_checkable
class IRule(Protocol):
    """Anything that can decide whether a logical name matches."""

    def match(self, name: str) -> bool:
        ...


@runtime_checkable
class IObjectStore(Protocol):
    """Interface for object store operations."""

    async def upload(
        self,
        params: Dict[str, Any],
        callback: Optional[Callable[[int], None]] = None,
    ) -> Any:
        """Upload ``params["Body"]`` under ``params["Key"]``."""
        ...

    async def list_objects(
        self,
        bucket: str,
        continuation_token: Optional[str] = None,
        prefix: Optional[str] = None,
    ) -> Tuple[List[str], Optional[str]]:
        """Return one page of keys and the next continuation token."""
        ...

    async def delete_objects(self, bucket: str, keys: List[str]) -> Dict[str, Any]:
        """Delete keys in one batch request."""
        ...


@runtime_checkable
class ICacheInvalidator(Protocol):
    """Interface for edge cache invalidation."""

    async def create_invalidation(
        self,
        distribution_id: str,
        caller_reference: str,
        paths: List[str],
    ) -> str:
        """Request invalidation of ``paths``; returns the invalidation id."""
        ...
