"""Shared fixtures: in-memory gateways and a small build directory."""
import asyncio
from typing import Dict, List, Optional, Tuple
from unittest.mock import AsyncMock

import pytest

from asset_deployer.models import UploadFile


class FakeStore:
    """In-memory object store that records the order of transfers."""

    def __init__(self):
        self.uploads: List[dict] = []
        self.bodies: Dict[str, bytes] = {}
        self.timeline: List[Tuple[str, str]] = []
        self.delays: Dict[str, float] = {}
        self.fail_keys = set()
        self.pages: Dict[Optional[str], Tuple[List[str], Optional[str]]] = {None: ([], None)}
        self.list_calls: List[Tuple[str, Optional[str], Optional[str]]] = []
        self.delete_objects = AsyncMock(return_value={})

    async def upload(self, params, callback=None):
        key = params["Key"]
        self.timeline.append(("start", key))
        await asyncio.sleep(self.delays.get(key, 0))
        if key in self.fail_keys:
            raise RuntimeError(f"upload failed: {key}")
        self.bodies[key] = params["Body"].read()
        if callback is not None:
            callback(len(self.bodies[key]))
        self.uploads.append({k: v for k, v in params.items() if k != "Body"})
        self.timeline.append(("done", key))
        return {"Key": key}

    async def list_objects(self, bucket, continuation_token=None, prefix=None):
        self.list_calls.append((bucket, continuation_token, prefix))
        return self.pages[continuation_token]


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def invalidator():
    mock = AsyncMock()
    mock.create_invalidation = AsyncMock(side_effect=lambda dist, ref, paths: f"I-{dist}")
    return mock


@pytest.fixture
def build_dir(tmp_path):
    """Build output with an HTML page, a stylesheet and a few assets."""
    (tmp_path / "assets").mkdir()
    (tmp_path / "index.html").write_text(
        '<html><head><link href="assets/style.css" rel="stylesheet"></head>'
        '<body><script src="app.js"></script><a href="https://example.com/app.js">x</a></body></html>',
        encoding="utf-8",
    )
    (tmp_path / "assets" / "style.css").write_text(
        "body { background: url('logo.png'); }", encoding="utf-8"
    )
    (tmp_path / "assets" / "logo.png").write_bytes(b"\x89PNG")
    (tmp_path / "app.js").write_text("console.log('hi')", encoding="utf-8")
    return tmp_path


@pytest.fixture
def make_files():
    def _make(root, names):
        return [UploadFile(name=name, path=root / name) for name in names]
    return _make
