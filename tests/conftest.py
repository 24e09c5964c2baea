"""Shared test fixtures for trademind.

``FakeDrive`` is an in-memory stand-in for the Drive v3 endpoints the
adapter talks to, served through ``httpx.MockTransport``.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

import httpx
import pytest

from trademind.models import JournalSnapshot, StrategyProfile, Trade
from trademind.sync.credentials import CredentialSupplier
from trademind.sync.drive import Clock
from trademind.sync.engine import SyncEngine, SyncSession
from trademind.sync.errors import AuthExpired
from trademind.sync.models import BACKUP_FILE_NAME, SyncConfig

FIXED_NOW = datetime(2024, 1, 3, 9, 30, tzinfo=timezone.utc)


class FakeDrive:
    """Minimal Drive v3: list by name, get media, multipart create, media patch."""

    def __init__(self) -> None:
        self.files: dict[str, dict] = {}
        self.requests: list[httpx.Request] = []
        self.reject_tokens: set[str] = set()
        self.fail_status: dict[str, int] = {}
        self._next_id = 0

    def add_file(
        self,
        content: bytes,
        name: str = BACKUP_FILE_NAME,
        modified: str = "2024-01-01T00:00:00.000Z",
    ) -> str:
        self._next_id += 1
        file_id = f"file-{self._next_id}"
        self.files[file_id] = {"name": name, "content": content, "modifiedTime": modified}
        return file_id

    def add_snapshot(self, snapshot: JournalSnapshot, **kwargs) -> str:
        return self.add_file(json.dumps(snapshot.to_wire()).encode("utf-8"), **kwargs)

    def content(self, file_id: str) -> dict:
        return json.loads(self.files[file_id]["content"])

    def requests_with(self, method: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method]

    @property
    def writes(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method in ("POST", "PATCH")]

    def handler(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)

        token = request.headers.get("Authorization", "").removeprefix("Bearer ")
        if token in self.reject_tokens:
            return httpx.Response(401, json={"error": {"code": 401}})
        if request.method in self.fail_status:
            return httpx.Response(self.fail_status[request.method], text="boom")

        path = request.url.path
        if request.method == "GET" and path == "/drive/v3/files":
            query = request.url.params["q"]
            matches = [
                {"id": fid, "name": f["name"], "modifiedTime": f["modifiedTime"]}
                for fid, f in self.files.items()
                if f"name = '{f['name']}'" in query
            ]
            return httpx.Response(200, json={"files": matches})

        if request.method == "GET" and path.startswith("/drive/v3/files/"):
            file_id = path.rsplit("/", 1)[1]
            if file_id not in self.files:
                return httpx.Response(404)
            return httpx.Response(200, content=self.files[file_id]["content"])

        if request.method == "POST" and path == "/upload/drive/v3/files":
            metadata, content = self._split_multipart(request)
            file_id = self.add_file(content, name=metadata["name"])
            return httpx.Response(200, json={"id": file_id})

        if request.method == "PATCH" and path.startswith("/upload/drive/v3/files/"):
            file_id = path.rsplit("/", 1)[1]
            if file_id not in self.files:
                return httpx.Response(404)
            self.files[file_id]["content"] = request.content
            return httpx.Response(200, json={"id": file_id})

        return httpx.Response(404)

    @staticmethod
    def _split_multipart(request: httpx.Request) -> tuple[dict, bytes]:
        boundary = request.headers["Content-Type"].split("boundary=", 1)[1]
        parts = request.content.split(f"--{boundary}".encode())
        metadata_part, media_part = parts[1], parts[2]
        metadata = json.loads(metadata_part.split(b"\r\n\r\n", 1)[1].strip())
        content = media_part.split(b"\r\n\r\n", 1)[1]
        return metadata, content.removesuffix(b"\r\n")


class RotatingSupplier(CredentialSupplier):
    """Hands out tokens in order; invalidate moves to the next one."""

    def __init__(self, *tokens: str) -> None:
        self.tokens = list(tokens)
        self.index = 0
        self.acquired: list[tuple[str, bool]] = []
        self.invalidations = 0

    async def acquire(self, interactive: bool = False) -> str:
        if self.index >= len(self.tokens):
            raise AuthExpired("no more tokens")
        token = self.tokens[self.index]
        self.acquired.append((token, interactive))
        return token

    def invalidate(self) -> None:
        self.invalidations += 1
        self.index += 1


def _trade(trade_id: str, **fields) -> Trade:
    base = {
        "id": trade_id,
        "date": "2024-01-02",
        "instrument": "NIFTY 50",
        "direction": "LONG",
        "entryPrice": 100,
        "quantity": 75,
        "outcome": "OPEN",
    }
    base.update(fields)
    return Trade.model_validate(base)


def _strategy(name: str = "My Breakout System") -> StrategyProfile:
    return StrategyProfile(name=name, description="custom", tags=["Breakout"])


def _session(
    drive: FakeDrive,
    supplier: CredentialSupplier,
    config: Optional[SyncConfig] = None,
    clock: Optional[Clock] = None,
) -> SyncSession:
    client = httpx.AsyncClient(transport=httpx.MockTransport(drive.handler))
    return SyncSession(supplier, config, client=client, clock=clock or (lambda: FIXED_NOW))


@pytest.fixture
def fixed_now() -> datetime:
    """The time every test session's clock reports."""
    return FIXED_NOW


@pytest.fixture
def make_trade() -> Callable[..., Trade]:
    """Factory for trades with realistic defaults; keyword args override."""
    return _trade


@pytest.fixture
def make_strategy() -> Callable[..., StrategyProfile]:
    """Factory for a customized (non-template) strategy profile."""
    return _strategy


@pytest.fixture
def make_supplier() -> Callable[..., RotatingSupplier]:
    """Factory for token suppliers that hand out the given tokens in order."""
    return RotatingSupplier


@pytest.fixture
def tmp_home(tmp_path: Path) -> Path:
    """Provide a temporary app home directory for testing."""
    home = tmp_path / ".trademind"
    home.mkdir()
    return home


@pytest.fixture
def drive() -> FakeDrive:
    return FakeDrive()


@pytest.fixture
def supplier() -> RotatingSupplier:
    return RotatingSupplier("token-1", "token-2")


@pytest.fixture
def build_session(drive: FakeDrive) -> Callable[..., SyncSession]:
    """Factory for sessions talking to the fake drive."""
    return lambda supplier, config=None, clock=None: _session(drive, supplier, config, clock)


@pytest.fixture
def session(drive: FakeDrive, supplier: RotatingSupplier) -> SyncSession:
    return _session(drive, supplier)


@pytest.fixture
def engine(session: SyncSession, tmp_home: Path) -> SyncEngine:
    return SyncEngine(session, home=tmp_home)
