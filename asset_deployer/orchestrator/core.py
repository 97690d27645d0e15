"""Core orchestrator - coordinates a deploy session."""
import asyncio
import inspect
import logging
import mimetypes
import uuid
from pathlib import Path, PurePosixPath
from typing import Any, Dict, Iterable, List, Optional, Union

from ..config import DEFAULT_UPLOAD_OPTIONS, DeployOptions
from ..errors import ConfigurationError, DeployError
from ..models import DeleteResult, DeployState, ListResult, TransferProgress, UploadFile, UploadHandle
from ..protocols import ICacheInvalidator, IObjectStore
from ..services.invalidation import CloudFrontInvalidator
from ..services.object_store import S3ObjectStore, build_session
from ..services.rewriter import ContentRewriter, TrackedFiles
from ..utils import events
from ..utils.events import DeployEvents
from ..utils.paths import add_trailing_separator, make_key, strip_leading_separator, to_logical_name
from ..utils.rules import as_rule
from .file_collector import FileCollector
from .file_filter import FileFilter
from .reconcile import RemoteReconciler

logger = logging.getLogger(__name__)

FileLike = Union[UploadFile, str, Path]


class S3Uploader:
    """
    Publishes build output to S3 and invalidates CloudFront.

    One instance drives one deploy at a time:
    rewrite -> filter -> upload -> invalidate. Gateways can be injected;
    otherwise boto3-backed ones are built from ``s3_options`` on connect.

    Usage:
        async with S3Uploader(options) as uploader:
            await uploader.upload(files)
            await uploader.remove_unused_s3_files()
    """

    def __init__(
        self,
        options: Union[DeployOptions, Dict[str, Any], None] = None,
        store: Optional[IObjectStore] = None,
        invalidator: Optional[ICacheInvalidator] = None,
        session=None,
    ):
        """
        Args:
            options: Deploy options (or plugin-style mapping)
            store: Object store gateway, built from s3_options if omitted
            invalidator: Cache invalidation gateway, built lazily if omitted
            session: boto3 session shared by the default gateways
        """
        if isinstance(options, dict):
            options = DeployOptions.from_dict(options)
        self._options = options or DeployOptions()
        self._store = store
        self._invalidator = invalidator
        self._session = session

        self._state = DeployState.DISCONNECTED
        self._connected = False
        self._running = False
        self._events = DeployEvents()

        self._filter = FileFilter(self._options.include, self._options.exclude)
        self._tracked = TrackedFiles(self._options.cdnizer_options.get("files", []))
        self._rewriter = ContentRewriter(self._options.cdnizer_options, self._tracked)
        self._priority = [as_rule(p) for p in self._options.priority] if self._options.priority else None
        self._upload_params = self._options.upload_params()

        self._base_path: Optional[str] = None
        self._base_path_lock = asyncio.Lock()
        self._session_files: List[str] = []
        self._uploaded: List[str] = []

    async def __aenter__(self):
        self.connect()
        return self

    async def __aexit__(self, *args):
        return None

    @property
    def state(self) -> DeployState:
        return self._state

    @property
    def events(self) -> DeployEvents:
        return self._events

    @property
    def options(self) -> DeployOptions:
        return self._options

    @property
    def session_files(self) -> List[str]:
        return list(self._session_files)

    @property
    def uploaded_files(self) -> List[str]:
        return list(self._uploaded)

    @property
    def tracked_files(self) -> TrackedFiles:
        return self._tracked

    @property
    def file_filter(self) -> FileFilter:
        return self._filter

    @property
    def base_path(self) -> str:
        """Effective base path, or the configured one before resolution."""
        if self._base_path is not None:
            return self._base_path
        return add_trailing_separator(self._options.base_path)

    def connect(self) -> None:
        """Build the object store client once per instance."""
        if self._connected:
            return

        self._options.validate()
        if self._store is None:
            self._session = self._session or build_session(self._options.s3_options)
            self._store = S3ObjectStore(self._session)

        self._connected = True
        self._state = DeployState.CONNECTED
        logger.debug("Object store client ready")

    async def upload(self, files: Iterable[FileLike]) -> Optional[List[str]]:
        """
        Deploy ``files``: rewrite, filter, upload, then invalidate.

        Returns the invalidation ids, or None when no distribution is
        configured. Any stage failure moves the uploader to FAILED and
        re-raises the original exception.
        """
        if self._running:
            raise DeployError("a deploy is already running on this uploader")
        self._running = True

        try:
            unique: Dict[str, UploadFile] = {}
            for file in files:
                file = self._as_upload_file(file)
                unique.setdefault(file.name, file)
            candidates = list(unique.values())
            self._session_files = list(unique)
            self._uploaded = []
            self._base_path = None

            self.connect()
            self._state = DeployState.UPLOADING
            logger.info(f"Deploying {len(candidates)} candidate file(s)")

            await self._events.emit(events.PHASE, "rewriting")
            rewritten = await self.change_urls(candidates)
            for file in rewritten:
                if file.name not in self._session_files:
                    self._session_files.append(file.name)

            allowed = self._filter.filter_allowed_files(rewritten)
            await self._events.emit(events.PHASE, "uploading", len(allowed))
            await self.upload_files(allowed)

            self._state = DeployState.INVALIDATING
            await self._events.emit(events.PHASE, "invalidating")
            result = await self.invalidate_cloudfront()

            self._state = DeployState.DONE
            logger.info(f"Deploy complete: {len(self._uploaded)} file(s) uploaded")
            return result
        except (Exception, asyncio.CancelledError):
            self._state = DeployState.FAILED
            raise
        finally:
            self._running = False

    async def change_urls(self, files: List[UploadFile]) -> List[UploadFile]:
        """Rewrite HTML/CSS references to the CDN; no-op when rewriting is off."""
        if not self._rewriter.enabled:
            return files
        html_files = FileCollector.from_names(
            self._options.html_files, self._options.directory or Path.cwd()
        )
        return await self._rewriter.rewrite_files(files, html_files)

    async def resolve_base_path(self) -> str:
        """Run ``base_path_transform`` once per session and cache the result."""
        async with self._base_path_lock:
            if self._base_path is None:
                configured = add_trailing_separator(self._options.base_path)
                value = self._options.base_path_transform(configured)
                if inspect.isawaitable(value):
                    value = await value
                self._base_path = add_trailing_separator(value or "")
                logger.debug(f"Base path resolved to {self._base_path!r}")
            return self._base_path

    async def upload_files(self, files: List[UploadFile]) -> List[Any]:
        await self.resolve_base_path()
        if self._priority:
            return await self._upload_in_priority_order(files)
        return await self._upload_batch(files)

    async def _upload_in_priority_order(self, files: List[UploadFile]) -> List[Any]:
        """Each tier settles before the next starts; unmatched files go last."""
        remaining = list(files)
        tiers = []
        for rule in self._priority:
            tiers.append([f for f in remaining if rule.match(f.name)])
            remaining = [f for f in remaining if not rule.match(f.name)]
        tiers.append(remaining)

        responses = []
        for index, tier in enumerate(tiers, 1):
            if not tier:
                continue
            logger.debug(f"Uploading priority tier {index}/{len(tiers)}: {len(tier)} file(s)")
            responses.extend(await self._upload_batch(tier))
        return responses

    async def _upload_batch(self, files: List[UploadFile]) -> List[Any]:
        tasks: List[asyncio.Task] = []
        try:
            for file in files:
                tasks.append(self.upload_file(file.name, file.path).task)
            return await asyncio.gather(*tasks)
        except (Exception, asyncio.CancelledError):
            await self._cancel_remaining_tasks(tasks)
            raise

    def upload_file(self, name: str, path: Union[str, Path]) -> UploadHandle:
        """
        Start streaming one file to the store.

        Returns immediately with a handle; the transfer runs as its own task.
        """
        if not self._connected:
            raise DeployError("uploader is not connected")

        path = Path(path)
        key = make_key(self.base_path, name)
        params = {option: value.resolve(name, path) for option, value in self._upload_params.items()}
        if params.get("ContentType") is None:
            content_type, _ = mimetypes.guess_type(name)
            params["ContentType"] = content_type or "application/octet-stream"

        params = {**DEFAULT_UPLOAD_OPTIONS, **params, "Key": key}
        progress = TransferProgress(total_bytes=path.stat().st_size)
        task = asyncio.create_task(self._transfer(name, path, params, progress), name=f"upload:{key}")
        return UploadHandle(name=name, key=key, task=task, progress=progress)

    async def _transfer(
        self, name: str, path: Path, params: Dict[str, Any], progress: TransferProgress
    ) -> Any:
        await self._events.emit(events.FILE_START, name, progress.total_bytes)
        try:
            with open(path, "rb") as body:
                response = await self._store.upload({**params, "Body": body}, callback=progress.update)
        except Exception as e:
            logger.error(f"Upload failed for {params['Key']}: {e}")
            await self._events.emit(events.FILE_FAIL, name, e)
            raise

        self._uploaded.append(name)
        if self._rewriter.enabled:
            await self._tracked.add(name)
        logger.debug(f"Uploaded {name} -> {params['Key']}")
        await self._events.emit(events.FILE_COMPLETE, name)
        return response

    async def _cancel_remaining_tasks(self, tasks: List[asyncio.Task]) -> None:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def invalidate_cloudfront(self) -> Optional[List[str]]:
        """
        Invalidate the configured paths on every distribution.

        Fails if any request fails; distributions already invalidated stay
        invalidated.
        """
        options = self._options.cloudfront_invalidate_options
        distribution_ids = options.distribution_ids
        if not distribution_ids:
            return None

        invalidator = self._get_invalidator()
        ids = await asyncio.gather(*(
            invalidator.create_invalidation(distribution_id, uuid.uuid4().hex, list(options.items))
            for distribution_id in distribution_ids
        ))
        await self._events.emit(events.INVALIDATED, list(ids))
        return list(ids)

    def _get_invalidator(self) -> ICacheInvalidator:
        if self._invalidator is None:
            self._session = self._session or build_session(self._options.s3_options)
            self._invalidator = CloudFrontInvalidator(self._session)
        return self._invalidator

    def _get_reconciler(self) -> RemoteReconciler:
        self.connect()
        bucket = self._options.bucket
        if not bucket:
            raise ConfigurationError("reconciliation needs a static Bucket in s3_upload_options")
        return RemoteReconciler(self._store, bucket)

    async def _prefix(self) -> Optional[str]:
        return strip_leading_separator(await self.resolve_base_path()) or None

    async def list_s3_files(self) -> ListResult:
        """All keys under the effective base path."""
        reconciler = self._get_reconciler()
        return await reconciler.list_keys(await self._prefix())

    async def delete_s3_files(self, keys: Iterable[str]) -> DeleteResult:
        return await self._get_reconciler().delete_keys(keys)

    async def remove_unused_s3_files(self, strict: bool = True) -> DeleteResult:
        """Delete remote keys that were not part of the last deploy session."""
        reconciler = self._get_reconciler()
        base_path = await self.resolve_base_path()
        session_keys = [make_key(base_path, name) for name in self._session_files]
        return await reconciler.remove_unused(session_keys, await self._prefix(), strict=strict)

    def _as_upload_file(self, file: FileLike) -> UploadFile:
        if isinstance(file, UploadFile):
            return file

        directory = self._options.directory
        path = Path(file)
        if path.is_absolute():
            name = to_logical_name(path, directory) if directory else PurePosixPath(*path.parts[1:]).as_posix()
            return UploadFile(name=name, path=path)
        root = directory or Path.cwd()
        return UploadFile(name=PurePosixPath(*path.parts).as_posix(), path=root / path)
