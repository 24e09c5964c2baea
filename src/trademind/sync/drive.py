"""
Drive adapter -- reads and writes the backup document.

One JSON file, found by name. Creating it is not idempotent, replacing
it is, so the adapter keeps the two apart:

    upload(snapshot, None)    ->  POST multipart create, returns new id
    upload(snapshot, file_id) ->  PATCH full-content replace of that id
    download(file_id)         ->  GET alt=media, parsed or None

Uploads get exactly one silent token refresh on a 401. Downloads and
lookups get none; the caller can always fall back to local data.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import httpx
from pydantic import ValidationError

from ..models import JournalSnapshot
from .credentials import CredentialSupplier
from .errors import AuthExpired, TransportFailure
from .models import SyncConfig

logger = logging.getLogger("trademind.sync.drive")

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def encode_snapshot(snapshot: JournalSnapshot, stamp: datetime) -> bytes:
    """Serialize a snapshot to the backup wire format.

    Args:
        snapshot: Journal to serialize.
        stamp: Value written to ``lastUpdated``.

    Returns:
        Pretty-printed UTF-8 JSON bytes.
    """
    payload = snapshot.stamped(stamp).to_wire()
    return json.dumps(payload, indent=2, ensure_ascii=False).encode("utf-8")


def decode_snapshot(raw: bytes) -> Optional[JournalSnapshot]:
    """Parse backup bytes into a snapshot.

    Returns:
        The snapshot, or None if the payload is not valid JSON or does
        not have the shape of a journal backup.
    """
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.warning("Backup is not valid JSON: %s", exc)
        return None

    if not isinstance(data, dict):
        logger.warning("Backup is a %s, expected an object", type(data).__name__)
        return None

    try:
        return JournalSnapshot.model_validate(data)
    except ValidationError as exc:
        logger.warning(
            "Backup does not look like a journal (%d problem(s))",
            exc.error_count(),
        )
        return None


class DriveBackupStore:
    """Create, replace, and read the backup file through the Drive REST API.

    Args:
        client: Shared async HTTP client, owned by the sync session.
        credentials: Where bearer tokens come from.
        config: Sync configuration (file name, endpoints).
        clock: Time source used to stamp ``lastUpdated``.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        credentials: CredentialSupplier,
        config: Optional[SyncConfig] = None,
        clock: Clock = utc_now,
    ):
        self.client = client
        self.credentials = credentials
        self.config = config or SyncConfig()
        self.clock = clock

    async def find_backup(self) -> Optional[str]:
        """Look up the backup file id by its well-known name.

        Returns:
            The file id, or None when there is no backup. When several
            files share the name, the most recently modified one wins.
        """
        name = self.config.backup_file_name.replace("\\", "\\\\").replace("'", "\\'")
        params = {
            "q": f"name = '{name}' and trashed = false",
            "fields": "files(id,name,modifiedTime)",
            "spaces": "drive",
            "orderBy": "modifiedTime desc",
        }
        try:
            resp = await self._send(
                "GET", f"{self.config.api_base}/files",
                params=params, retry_auth=False,
            )
        except TransportFailure as exc:
            if exc.status_code == 404:
                return None
            raise

        try:
            files = resp.json().get("files") or []
        except (ValueError, AttributeError) as exc:
            raise TransportFailure(f"Unexpected file listing: {exc}") from exc

        files = [f for f in files if isinstance(f, dict) and f.get("id")]
        if not files:
            return None
        if len(files) > 1:
            logger.warning(
                "%d backups named %s; using the most recently modified",
                len(files), self.config.backup_file_name,
            )
        latest = max(files, key=lambda f: f.get("modifiedTime") or "")
        return latest["id"]

    async def download(self, handle: str) -> Optional[JournalSnapshot]:
        """Fetch and parse the backup.

        Args:
            handle: Drive file id.

        Returns:
            The parsed snapshot, or None if the content is unreadable.

        Raises:
            AuthExpired: On a 401. Not retried.
            TransportFailure: On network errors or other non-2xx codes.
        """
        resp = await self._send(
            "GET", f"{self.config.api_base}/files/{handle}",
            params={"alt": "media"}, retry_auth=False,
        )
        snapshot = decode_snapshot(resp.content)
        if snapshot is not None:
            logger.info(
                "Downloaded backup %s: %d trade(s)", handle, len(snapshot.trades)
            )
        return snapshot

    async def upload(
        self,
        snapshot: JournalSnapshot,
        handle: Optional[str] = None,
        stamp: Optional[datetime] = None,
    ) -> str:
        """Write the snapshot, creating the file if there is no handle.

        ``lastUpdated`` is stamped once here; a retry after a token
        refresh resends the exact same bytes.

        Args:
            snapshot: Journal to write.
            handle: Existing file id to replace, or None to create.
            stamp: Value for ``lastUpdated``. Defaults to the clock.

        Returns:
            The file id written to.

        Raises:
            AuthExpired: If the token is still rejected after one refresh.
            TransportFailure: On network errors or other non-2xx codes.
        """
        content = encode_snapshot(snapshot, stamp or self.clock())

        if handle:
            await self._send(
                "PATCH", f"{self.config.upload_base}/files/{handle}",
                params={"uploadType": "media"},
                headers={"Content-Type": "application/json"},
                content=content,
            )
            logger.info("Replaced backup %s (%d bytes)", handle, len(content))
            return handle

        body, content_type = self._multipart(content)
        resp = await self._send(
            "POST", f"{self.config.upload_base}/files",
            params={"uploadType": "multipart"},
            headers={"Content-Type": content_type},
            content=body,
        )
        try:
            file_id = resp.json()["id"]
        except (ValueError, KeyError, TypeError) as exc:
            raise TransportFailure(f"Create returned no file id: {exc}") from exc
        logger.info("Created backup %s (%d bytes)", file_id, len(content))
        return file_id

    def _multipart(self, content: bytes) -> tuple[bytes, str]:
        """Build a multipart/related body: metadata part, then media part."""
        boundary = f"trademind-{uuid.uuid4().hex}"
        metadata = json.dumps({
            "name": self.config.backup_file_name,
            "mimeType": "application/json",
        })
        body = (
            f"--{boundary}\r\n"
            "Content-Type: application/json; charset=UTF-8\r\n\r\n"
            f"{metadata}\r\n"
            f"--{boundary}\r\n"
            "Content-Type: application/json\r\n\r\n"
        ).encode("utf-8") + content + f"\r\n--{boundary}--\r\n".encode("utf-8")
        return body, f"multipart/related; boundary={boundary}"

    async def _send(
        self,
        method: str,
        url: str,
        retry_auth: bool = True,
        headers: Optional[dict[str, str]] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Issue an authenticated request.

        Args:
            method: HTTP method.
            url: Absolute URL.
            retry_auth: Refresh the token and retry once on a 401.
            headers: Extra request headers.
            **kwargs: Passed through to ``httpx.AsyncClient.request``.

        Returns:
            The 2xx response.
        """
        token = await self.credentials.acquire(interactive=False)
        resp = await self._request(method, url, token, headers, **kwargs)

        if resp.status_code == 401 and retry_auth:
            logger.info("Token rejected on %s; refreshing once", method)
            self.credentials.invalidate()
            token = await self.credentials.acquire(interactive=False)
            resp = await self._request(method, url, token, headers, **kwargs)

        if resp.status_code == 401:
            self.credentials.invalidate()
            raise AuthExpired("Drive rejected the access token. Please sign in again.")

        if not resp.is_success:
            logger.error(
                "Drive %s %s -> %d %s",
                method, url, resp.status_code, resp.text[:200],
            )
            raise TransportFailure(
                f"Drive {method} failed: {resp.status_code} {resp.reason_phrase}",
                status_code=resp.status_code,
            )
        return resp

    async def _request(
        self,
        method: str,
        url: str,
        token: str,
        headers: Optional[dict[str, str]],
        **kwargs: Any,
    ) -> httpx.Response:
        merged = {"Authorization": f"Bearer {token}", **(headers or {})}
        try:
            return await self.client.request(method, url, headers=merged, **kwargs)
        except httpx.TimeoutException as exc:
            raise TransportFailure(f"Drive {method} timed out") from exc
        except httpx.HTTPError as exc:
            raise TransportFailure(f"Drive {method} failed: {exc}") from exc
