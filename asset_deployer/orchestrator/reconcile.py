"""Remote reconciliation: list, delete, and prune stale objects."""
import logging
from typing import Iterable, List, Optional

from ..errors import DeletionError, ListingError
from ..models import DeleteResult, ListResult
from ..protocols import IObjectStore

logger = logging.getLogger(__name__)


class RemoteReconciler:
    """
    Compares the bucket's key set with a deploy session.

    Failures are returned as ``ListResult`` / ``DeleteResult`` values so the
    caller decides whether they are fatal.
    """

    # S3 rejects delete batches above this size
    MAX_DELETE_BATCH = 1000

    def __init__(self, store: IObjectStore, bucket: str):
        self._store = store
        self._bucket = bucket

    async def list_keys(self, prefix: Optional[str] = None) -> ListResult:
        """Follow continuation tokens until the listing is complete."""
        keys: List[str] = []
        token = None
        pages = 0
        try:
            while True:
                page, token = await self._store.list_objects(self._bucket, token, prefix)
                keys.extend(page)
                pages += 1
                if not token:
                    break
        except Exception as e:
            logger.error(f"Listing s3://{self._bucket} failed after {pages} page(s): {e}")
            return ListResult.fail(e, keys)

        logger.debug(f"Listed {len(keys)} key(s) in {pages} page(s) from s3://{self._bucket}")
        return ListResult.ok(keys)

    async def delete_keys(self, keys: Iterable[str]) -> DeleteResult:
        keys = list(keys)
        if not keys:
            return DeleteResult.ok([])

        deleted: List[str] = []
        errors = {}
        for start in range(0, len(keys), self.MAX_DELETE_BATCH):
            batch = keys[start:start + self.MAX_DELETE_BATCH]
            try:
                response = await self._store.delete_objects(self._bucket, batch) or {}
            except Exception as e:
                logger.error(f"Batch delete on s3://{self._bucket} failed: {e}")
                return DeleteResult.fail(e, deleted)

            batch_errors = {
                item["Key"]: item.get("Message") or item.get("Code", "unknown error")
                for item in response.get("Errors", [])
            }
            if "Deleted" in response:
                deleted.extend(item["Key"] for item in response["Deleted"])
            else:
                deleted.extend(key for key in batch if key not in batch_errors)
            errors.update(batch_errors)

        if errors:
            logger.warning(f"{len(errors)} key(s) could not be deleted from s3://{self._bucket}")
        else:
            logger.info(f"Deleted {len(deleted)} stale object(s) from s3://{self._bucket}")
        return DeleteResult.ok(deleted, errors)

    async def remove_unused(
        self,
        session_keys: Iterable[str],
        prefix: Optional[str] = None,
        strict: bool = True,
    ) -> DeleteResult:
        """
        Delete every remote key that is not part of the session.

        Nothing is deleted when the listing is incomplete. With ``strict``
        listing and deletion failures raise instead of being returned.
        """
        listing = await self.list_keys(prefix)
        if not listing.success:
            if strict:
                raise ListingError(
                    f"cannot list s3://{self._bucket}: {listing.error}", listing.keys
                ) from listing.error
            return DeleteResult.fail(listing.error)

        keep = set(session_keys)
        unused = [key for key in listing.keys if key not in keep]
        if not unused:
            logger.info("No unused objects to remove")
            return DeleteResult.ok([])

        logger.info(f"Removing {len(unused)} unused object(s)")
        result = await self.delete_keys(unused)
        if strict and not result.success:
            if result.error is not None:
                raise DeletionError(f"cannot delete from s3://{self._bucket}: {result.error}") from result.error
            raise DeletionError(f"{len(result.errors)} key(s) could not be deleted: {sorted(result.errors)}")
        return result
