"""Decides which discovered files are eligible for upload."""
import logging
from typing import Any, List, Sequence

from ..config import UPLOAD_IGNORES
from ..models import UploadFile
from ..utils.rules import AnyRule, as_rule

logger = logging.getLogger(__name__)


class FileFilter:
    """Applies include / exclude rules and the built-in ignore list."""

    def __init__(self, include: Any = None, exclude: Any = None, ignores: Sequence[str] = UPLOAD_IGNORES):
        self._include = as_rule(include) if include is not None else None
        self._exclude = as_rule(exclude) if exclude is not None else None
        self._ignores = AnyRule(ignores)

    def is_included_and_not_excluded(self, name: str) -> bool:
        included = self._include.match(name) if self._include else True
        excluded = self._exclude.match(name) if self._exclude else False
        return included and not excluded

    def is_ignored_file(self, name: str) -> bool:
        return self._ignores.match(name)

    def filter_allowed_files(self, files: List[UploadFile]) -> List[UploadFile]:
        allowed = [
            file for file in files
            if self.is_included_and_not_excluded(file.name) and not self.is_ignored_file(file.name)
        ]
        if len(allowed) != len(files):
            logger.debug(f"Filtered out {len(files) - len(allowed)} of {len(files)} file(s)")
        return allowed
