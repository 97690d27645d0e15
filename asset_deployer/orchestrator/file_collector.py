"""File collection for deploys: build bundles and output directories."""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional, Union

from ..models import UploadFile
from ..utils.paths import to_logical_name


@dataclass(eq=False)
class Bundle:
    """A node of the build graph; ``name`` is the produced file's path."""
    name: Optional[Union[str, Path]] = None
    child_bundles: List["Bundle"] = field(default_factory=list)


def iter_bundle_files(bundle: Bundle, root: Union[str, Path]) -> Iterator[UploadFile]:
    """
    Flatten a bundle and all nested children into upload descriptors.

    Depth-first, parents before children. Each bundle is visited once, so
    a cyclic child reference cannot recurse forever. Calling again restarts
    the walk.
    """
    seen = set()
    stack = [bundle]
    while stack:
        current = stack.pop()
        if id(current) in seen:
            continue
        seen.add(id(current))
        if current.name:
            path = Path(current.name)
            yield UploadFile(name=to_logical_name(path, root), path=path.resolve())
        stack.extend(reversed(current.child_bundles))


class FileCollector:
    """Collects build output files from folders."""

    @staticmethod
    def collect_files(folder: Union[str, Path]) -> List[UploadFile]:
        """
        Collect all regular files recursively.

        Args:
            folder: Build output root

        Returns:
            Upload descriptors sorted by logical name
        """
        folder = Path(folder)
        files = [
            UploadFile(name=to_logical_name(item, folder), path=item.resolve())
            for item in folder.rglob("*")
            if item.is_file()
        ]
        return sorted(files, key=lambda f: f.name)

    @staticmethod
    def from_names(names: List[str], folder: Union[str, Path]) -> List[UploadFile]:
        """Descriptors for names given relative to ``folder``."""
        folder = Path(folder)
        return [UploadFile(name=name.lstrip("/"), path=(folder / name.lstrip("/")).resolve()) for name in names]
