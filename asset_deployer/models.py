"""
Models for the deployer.

Upload descriptors are immutable; result types carry errors explicitly
instead of swallowing them.
"""
import asyncio
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional


class DeployState(Enum):
    """Lifecycle of a deploy session."""
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    UPLOADING = "uploading"
    INVALIDATING = "invalidating"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class UploadFile:
    """A produced artifact: logical name relative to the build root plus its location."""
    name: str
    path: Path

    def __post_init__(self):
        object.__setattr__(self, "path", Path(self.path))


@dataclass
class TransferProgress:
    """Bytes streamed so far for one object; fed by the store's callback."""
    total_bytes: int = 0
    bytes_sent: int = 0

    def update(self, chunk: int) -> None:
        self.bytes_sent += chunk

    @property
    def fraction(self) -> float:
        if not self.total_bytes:
            return 1.0 if self.bytes_sent else 0.0
        return min(self.bytes_sent / self.total_bytes, 1.0)


@dataclass
class UploadHandle:
    """
    Handle for a single object transfer.

    ``task`` is the running transfer and can be cancelled on its own;
    awaiting the handle yields the store's response. ``progress`` tracks
    the bytes streamed while the transfer runs.
    """
    name: str
    key: str
    task: "asyncio.Task"
    progress: TransferProgress = field(default_factory=TransferProgress)

    async def wait(self) -> Any:
        return await self.task

    def __await__(self):
        return self.task.__await__()

    def cancel(self) -> bool:
        return self.task.cancel()

    @property
    def done(self) -> bool:
        return self.task.done()


@dataclass(frozen=True)
class ListResult:
    """Outcome of a paginated bucket listing."""
    keys: List[str] = field(default_factory=list)
    error: Optional[BaseException] = None

    @property
    def success(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, keys: List[str]):
        return cls(keys=list(keys))

    @classmethod
    def fail(cls, error: BaseException, partial_keys: Optional[List[str]] = None):
        return cls(keys=list(partial_keys or []), error=error)


@dataclass(frozen=True)
class DeleteResult:
    """Outcome of a batch delete."""
    deleted: List[str] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)  # key -> message
    error: Optional[BaseException] = None

    @property
    def success(self) -> bool:
        return self.error is None and not self.errors

    @classmethod
    def ok(cls, deleted: List[str], errors: Optional[Dict[str, str]] = None):
        return cls(deleted=list(deleted), errors=dict(errors or {}))

    @classmethod
    def fail(cls, error: BaseException, deleted: Optional[List[str]] = None):
        return cls(deleted=list(deleted or []), error=error)
