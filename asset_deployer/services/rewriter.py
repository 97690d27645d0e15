"""
Content Rewriter - points HTML/CSS references at the CDN.

Textual files are rewritten in place on disk before they are uploaded, so
the published bytes differ from the raw build output for those files.
"""
import asyncio
import logging
import posixpath
import re
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..models import UploadFile
from ..utils.paths import add_trailing_separator, is_textual

logger = logging.getLogger(__name__)

_HTML_ATTR = re.compile(
    r"""(?P<head>\b(?:src|href|poster|data-src)\s*=\s*(?P<quote>["']))(?P<url>[^"']+)(?P=quote)""",
    re.IGNORECASE,
)
_HTML_ATTR_UNQUOTED = re.compile(
    r"""(?P<head>\b(?:src|href|poster|data-src)\s*=\s*)(?P<quote>)(?P<url>[^\s"'`=<>]+)""",
    re.IGNORECASE,
)
_SRCSET = re.compile(
    r"""(?P<head>\bsrcset\s*=\s*(?P<quote>["']))(?P<value>[^"']+)(?P=quote)""",
    re.IGNORECASE,
)
_SRCSET_CANDIDATE = re.compile(r"^(?P<lead>\s*)(?P<url>\S+)")
_CSS_URL = re.compile(
    r"""(?P<head>url\(\s*(?P<quote>["']?))(?P<url>[^"')\s]+)(?P=quote)(?=\s*\))""",
    re.IGNORECASE,
)
_ABSOLUTE = re.compile(r"^(?:[a-zA-Z][a-zA-Z0-9+.-]*:|//|#)")
_LEADING_RELATIVE = re.compile(r"^(?:\.{1,2}/|/)+")


class TrackedFiles:
    """
    Logical names whose references point at the CDN.

    Owned by one deploy session and shared with its upload tasks; appends
    go through a lock.
    """

    def __init__(self, names: Iterable[str] = ()):
        self._names: Dict[str, None] = dict.fromkeys(names)
        self._lock = asyncio.Lock()

    def reset(self, names: Iterable[str]) -> None:
        self._names = dict.fromkeys(names)

    async def add(self, name: str) -> None:
        async with self._lock:
            self._names[name] = None

    def snapshot(self) -> Tuple[str, ...]:
        return tuple(self._names)

    def __contains__(self, name: str) -> bool:
        return name in self._names

    def __len__(self) -> int:
        return len(self._names)


def _split_suffix(url: str) -> Tuple[str, str]:
    """Split ``a.css?v=1#x`` into ``("a.css", "?v=1#x")``."""
    for i, ch in enumerate(url):
        if ch in "?#":
            return url[:i], url[i:]
    return url, ""


class ContentRewriter:
    """
    Rewrites relative references to session files into CDN URLs.

    A reference is rewritten when its path equals a tracked logical name or
    ends with ``/<name>``, so ``app.js`` never matches ``myapp.js``.
    Absolute URLs are left alone, which makes rewriting a fixed point.
    """

    def __init__(self, options: Optional[Dict] = None, tracked: Optional[TrackedFiles] = None):
        self._options = dict(options or {})
        self.enabled = bool(self._options)
        self.cdn_base = add_trailing_separator(self._options.get("default_cdn_base") or "")
        self.tracked = tracked if tracked is not None else TrackedFiles(self._options.get("files", []))

    async def rewrite_files(
        self,
        files: List[UploadFile],
        html_files: Sequence[UploadFile] = (),
    ) -> List[UploadFile]:
        """
        Rewrite every HTML/CSS file of the session.

        Returns the deduplicated file list (extra html files first). The
        first read/write failure propagates; files already rewritten stay
        rewritten.
        """
        if not self.enabled:
            return files

        unique: Dict[str, UploadFile] = {}
        for file in list(html_files) + list(files):
            unique.setdefault(file.name, file)

        self.tracked.reset(unique)
        textual = [file for file in unique.values() if is_textual(file.name)]
        logger.info(f"Rewriting {len(textual)} file(s) against {self.cdn_base}")

        await asyncio.gather(*(self.rewrite_file(file) for file in textual))
        return list(unique.values())

    async def rewrite_file(self, file: UploadFile) -> UploadFile:
        text = await asyncio.to_thread(file.path.read_text, encoding="utf-8")
        rewritten = self.rewrite_text(text, file.name)
        if rewritten != text:
            await asyncio.to_thread(file.path.write_text, rewritten, encoding="utf-8")
            logger.debug(f"Rewrote references in {file.name}")
        return file

    def rewrite_text(self, text: str, file_name: str = "") -> str:
        names = self.tracked.snapshot()
        if not names:
            return text

        def replace(match: "re.Match") -> str:
            url = match.group("url")
            target = self._lookup(url, file_name, names)
            if target is None:
                return match.group(0)
            _, suffix = _split_suffix(url)
            quote = match.group("quote")
            return f"{match.group('head')}{self.cdn_base}{target}{suffix}{quote}"

        def replace_srcset(match: "re.Match") -> str:
            # "a.png 1x, b.png 2x": only the URL of each candidate changes
            candidates = [
                _SRCSET_CANDIDATE.sub(replace_candidate, candidate, count=1)
                for candidate in match.group("value").split(",")
            ]
            quote = match.group("quote")
            return f"{match.group('head')}{','.join(candidates)}{quote}"

        def replace_candidate(match: "re.Match") -> str:
            url = match.group("url")
            target = self._lookup(url, file_name, names)
            if target is None:
                return match.group(0)
            _, suffix = _split_suffix(url)
            return f"{match.group('lead')}{self.cdn_base}{target}{suffix}"

        text = _HTML_ATTR.sub(replace, text)
        text = _HTML_ATTR_UNQUOTED.sub(replace, text)
        text = _SRCSET.sub(replace_srcset, text)
        return _CSS_URL.sub(replace, text)

    def _lookup(self, url: str, file_name: str, names: Sequence[str]) -> Optional[str]:
        """Return the CDN-relative path for ``url`` or None to leave it."""
        if _ABSOLUTE.match(url):
            return None
        path, _ = _split_suffix(url)
        if not path:
            return None

        if path.startswith("/"):
            resolved = path.lstrip("/")
        else:
            resolved = posixpath.normpath(posixpath.join(posixpath.dirname(file_name), path))
        stripped = _LEADING_RELATIVE.sub("", path)

        for candidate in (resolved, stripped):
            if not candidate or candidate.startswith("../") or candidate == "..":
                continue
            if any(candidate == name or candidate.endswith("/" + name) for name in names):
                return candidate
        return None
