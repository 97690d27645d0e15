"""
Configuration for deploy sessions.

Options may be built directly or from the camelCase mapping used by
build-tool plugin configs (``DeployOptions.from_dict``).
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from .errors import ConfigurationError

PATH_SEP = "/"

DEFAULT_UPLOAD_OPTIONS: Dict[str, Any] = {"ACL": "public-read"}

REQUIRED_S3_UPLOAD_OPTIONS = ("Bucket",)

# VCS and OS metadata that is never published
UPLOAD_IGNORES = (
    r"(^|/)\.DS_Store$",
    r"(^|/)Thumbs\.db$",
    r"(^|/)desktop\.ini$",
    r"(^|/)\.git(/|$)",
    r"(^|/)\.svn(/|$)",
    r"(^|/)\.hg(/|$)",
)


def default_transform(base_path: str) -> str:
    return base_path


@dataclass(frozen=True)
class StaticValue:
    """Upload parameter with the same value for every object."""
    value: Any

    def resolve(self, name: str, path: Path) -> Any:
        return self.value


@dataclass(frozen=True)
class Computed:
    """Upload parameter computed per object from ``(name, path)``."""
    fn: Callable[[str, Path], Any]

    def resolve(self, name: str, path: Path) -> Any:
        return self.fn(name, path)


OptionValue = Union[StaticValue, Computed]


def as_option_value(value: Any) -> OptionValue:
    if isinstance(value, (StaticValue, Computed)):
        return value
    if callable(value):
        return Computed(value)
    return StaticValue(value)


@dataclass
class InvalidationOptions:
    """Edge cache invalidation target."""
    distribution_id: Union[str, List[str], None] = None
    items: List[str] = field(default_factory=lambda: ["/*"])

    @property
    def distribution_ids(self) -> List[str]:
        if not self.distribution_id:
            return []
        if isinstance(self.distribution_id, str):
            return [self.distribution_id]
        return [d for d in self.distribution_id if d]

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "InvalidationOptions":
        data = data or {}
        items = data.get("Items", data.get("items"))
        return cls(
            distribution_id=data.get("DistributionId", data.get("distribution_id")),
            items=list(items) if items else ["/*"],
        )


@dataclass
class DeployOptions:
    """Resolved configuration for one uploader instance."""
    include: Any = None
    exclude: Any = None
    directory: Optional[Path] = None
    html_files: Union[str, Sequence[str], None] = None
    base_path: str = ""
    base_path_transform: Callable[[str], Any] = default_transform
    s3_options: Dict[str, Any] = field(default_factory=dict)
    s3_upload_options: Dict[str, Any] = field(default_factory=dict)
    cdnizer_options: Dict[str, Any] = field(default_factory=dict)
    cloudfront_invalidate_options: InvalidationOptions = field(default_factory=InvalidationOptions)
    priority: Optional[List[Any]] = None
    progress: bool = True

    def __post_init__(self):
        if isinstance(self.html_files, str):
            self.html_files = [self.html_files]
        self.html_files = list(self.html_files or [])
        if self.directory is not None:
            self.directory = Path(self.directory)
        if isinstance(self.cloudfront_invalidate_options, dict):
            self.cloudfront_invalidate_options = InvalidationOptions.from_dict(
                self.cloudfront_invalidate_options
            )
        if self.priority is not None and not isinstance(self.priority, (list, tuple)):
            raise ConfigurationError("priority must be a list of patterns")

    @property
    def bucket(self) -> Optional[str]:
        value = self.s3_upload_options.get("Bucket")
        if isinstance(value, StaticValue):
            return value.value
        return value if isinstance(value, str) else None

    @property
    def rewrite_enabled(self) -> bool:
        return bool(self.cdnizer_options)

    def upload_params(self) -> Dict[str, OptionValue]:
        return {key: as_option_value(value) for key, value in self.s3_upload_options.items()}

    def validate(self) -> None:
        missing = [opt for opt in REQUIRED_S3_UPLOAD_OPTIONS if opt not in self.s3_upload_options]
        if missing:
            raise ConfigurationError(f"s3_upload_options is missing: {', '.join(missing)}")
        if self.rewrite_enabled and not self.cdnizer_options.get("default_cdn_base"):
            raise ConfigurationError("cdnizer_options requires default_cdn_base")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeployOptions":
        """Build options from plugin-style camelCase (or snake_case) keys."""
        aliases = {
            "htmlFiles": "html_files",
            "basePath": "base_path",
            "basePathTransform": "base_path_transform",
            "s3Options": "s3_options",
            "s3UploadOptions": "s3_upload_options",
            "cdnizerOptions": "cdnizer_options",
            "cloudfrontInvalidateOptions": "cloudfront_invalidate_options",
        }
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            name = aliases.get(key, key)
            if name not in cls.__dataclass_fields__:
                raise ConfigurationError(f"unknown deploy option: {key}")
            kwargs[name] = value

        cdnizer = dict(kwargs.get("cdnizer_options") or {})
        if "defaultCDNBase" in cdnizer:
            cdnizer["default_cdn_base"] = cdnizer.pop("defaultCDNBase")
        kwargs["cdnizer_options"] = cdnizer
        if kwargs.get("base_path_transform") is None:
            kwargs.pop("base_path_transform", None)
        return cls(**kwargs)
