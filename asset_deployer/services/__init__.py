"""Services for the deployer."""
from .object_store import S3ObjectStore, build_session
from .invalidation import CloudFrontInvalidator
from .rewriter import ContentRewriter, TrackedFiles

__all__ = [
    "S3ObjectStore",
    "CloudFrontInvalidator",
    "ContentRewriter",
    "TrackedFiles",
    "build_session",
]
