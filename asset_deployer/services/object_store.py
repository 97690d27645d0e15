"""
Object Store Service - Single Responsibility: talk to the S3 bucket.

boto3 clients are blocking, so every call runs in a worker thread.
"""
import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

import boto3

logger = logging.getLogger(__name__)

# plugin-style credential keys -> boto3 session kwargs
_SESSION_ALIASES = {
    "accessKeyId": "aws_access_key_id",
    "secretAccessKey": "aws_secret_access_key",
    "sessionToken": "aws_session_token",
    "region": "region_name",
    "profile": "profile_name",
}


def build_session(s3_options: Optional[Dict[str, Any]] = None) -> boto3.session.Session:
    """Create a boto3 session from configured s3 options."""
    kwargs = {}
    for key, value in (s3_options or {}).items():
        if value is None:
            continue
        kwargs[_SESSION_ALIASES.get(key, key)] = value
    return boto3.session.Session(**kwargs)


class S3ObjectStore:
    """
    Gateway to an S3 bucket.

    Implements IObjectStore protocol.
    """

    def __init__(self, session: Optional[boto3.session.Session] = None, client=None):
        """
        Args:
            session: boto3 session used to build the client
            client: Pre-built s3 client (takes precedence over session)
        """
        self._client = client or (session or boto3.session.Session()).client("s3")

    async def upload(
        self,
        params: Dict[str, Any],
        callback: Optional[Callable[[int], None]] = None,
    ) -> Dict[str, Any]:
        """
        Stream ``params["Body"]`` to ``params["Bucket"]/params["Key"]``.

        ``upload_fileobj`` reads the body in multipart chunks, so large
        assets are never buffered whole. Remaining params become ExtraArgs.
        """
        extra = dict(params)
        body = extra.pop("Body")
        bucket = extra.pop("Bucket")
        key = extra.pop("Key")

        logger.debug(f"Uploading s3://{bucket}/{key}")
        await asyncio.to_thread(
            self._client.upload_fileobj,
            body,
            bucket,
            key,
            ExtraArgs=extra or None,
            Callback=callback,
        )
        return {"Bucket": bucket, "Key": key}

    async def list_objects(
        self,
        bucket: str,
        continuation_token: Optional[str] = None,
        prefix: Optional[str] = None,
    ) -> Tuple[List[str], Optional[str]]:
        kwargs: Dict[str, Any] = {"Bucket": bucket}
        if continuation_token:
            kwargs["ContinuationToken"] = continuation_token
        if prefix:
            kwargs["Prefix"] = prefix

        response = await asyncio.to_thread(self._client.list_objects_v2, **kwargs)
        keys = [item["Key"] for item in response.get("Contents", [])]
        next_token = response.get("NextContinuationToken") if response.get("IsTruncated") else None
        return keys, next_token

    async def delete_objects(self, bucket: str, keys: List[str]) -> Dict[str, Any]:
        logger.debug(f"Deleting {len(keys)} object(s) from s3://{bucket}")
        return await asyncio.to_thread(
            self._client.delete_objects,
            Bucket=bucket,
            Delete={"Objects": [{"Key": key} for key in keys], "Quiet": False},
        )
