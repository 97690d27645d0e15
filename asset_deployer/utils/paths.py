"""Path and remote key helpers."""
import re
from pathlib import Path, PurePosixPath
from typing import Union

from ..config import PATH_SEP

_TRAILING_SEP = re.compile(r"/?(\?|#|$)")
_TEXTUAL = re.compile(r"\.(html?|css)$", re.IGNORECASE)


def add_trailing_separator(path: str) -> str:
    """
    Ensure a base path ends with a separator, before any query or fragment.

    An empty path stays empty so that keys are not prefixed with "/".
    """
    if not path:
        return path
    return _TRAILING_SEP.sub(PATH_SEP + r"\1", path, count=1)


def strip_leading_separator(key: str) -> str:
    return key.lstrip(PATH_SEP)


def make_key(base_path: str, name: str) -> str:
    """Remote key for a logical name; never starts with a separator."""
    return strip_leading_separator(f"{base_path or ''}{name}")


def to_logical_name(path: Union[str, Path], root: Union[str, Path]) -> str:
    """POSIX path of ``path`` relative to ``root``."""
    rel = Path(path).resolve().relative_to(Path(root).resolve())
    return PurePosixPath(*rel.parts).as_posix()


def is_textual(name: str) -> bool:
    """True for files whose references get rewritten (HTML/CSS)."""
    return bool(_TEXTUAL.search(name))
