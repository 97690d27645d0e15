"""
asset_deployer - publish build output to S3 and CloudFront.

Usage:
    from asset_deployer import S3Uploader, DeployOptions, FileCollector

    options = DeployOptions(
        directory=build_dir,
        s3_upload_options={"Bucket": "my-assets", "ACL": "private"},
        cdnizer_options={"default_cdn_base": "https://cdn.example.com"},
        cloudfront_invalidate_options={"DistributionId": "E123", "Items": ["/*"]},
        priority=[r"\\.js$"],
    )
    async with S3Uploader(options) as uploader:
        await uploader.upload(FileCollector.collect_files(build_dir))
        await uploader.remove_unused_s3_files()
"""
from .config import Computed, DeployOptions, InvalidationOptions, StaticValue
from .errors import ConfigurationError, DeletionError, DeployError, ListingError, ReconciliationError
from .models import DeleteResult, DeployState, ListResult, TransferProgress, UploadFile, UploadHandle
from .orchestrator import Bundle, FileCollector, FileFilter, S3Uploader, iter_bundle_files

__version__ = "0.1.0"
__all__ = [
    # Main
    "S3Uploader",
    "FileFilter",
    "FileCollector",
    "Bundle",
    "iter_bundle_files",
    # Config
    "DeployOptions",
    "InvalidationOptions",
    "StaticValue",
    "Computed",
    # Models
    "UploadFile",
    "UploadHandle",
    "TransferProgress",
    "DeployState",
    "ListResult",
    "DeleteResult",
    # Errors
    "DeployError",
    "ConfigurationError",
    "ReconciliationError",
    "ListingError",
    "DeletionError",
]
