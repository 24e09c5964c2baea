"""
Sync data models -- configuration and state for the backup sync.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ..models import JournalSnapshot, SyncStatus

BACKUP_FILE_NAME = "trademind_backup.json"
DRIVE_API_BASE = "https://www.googleapis.com/drive/v3"
DRIVE_UPLOAD_BASE = "https://www.googleapis.com/upload/drive/v3"


class SyncConfig(BaseModel):
    """Cloud backup configuration, the ``sync:`` section of config.yaml."""

    backup_file_name: str = BACKUP_FILE_NAME
    api_base: str = DRIVE_API_BASE
    upload_base: str = DRIVE_UPLOAD_BASE
    timeout_seconds: float = Field(default=30.0, gt=0)
    autosave_delay_seconds: float = Field(default=5.0, ge=0)

    # Credentials
    token_env_var: str = "TRADEMIND_DRIVE_TOKEN"
    token_command: Optional[str] = None


class SyncState(BaseModel):
    """Current sync state persisted to disk."""

    status: SyncStatus = SyncStatus.OFFLINE
    file_id: Optional[str] = None
    last_push: Optional[datetime] = None
    last_pull: Optional[datetime] = None
    push_count: int = 0
    pull_count: int = 0
    last_error: Optional[str] = None


class SyncResult(BaseModel):
    """Outcome of a reconcile call.

    ``remote_unreadable`` is set when a backup exists but could not be
    read; the snapshot is then the local one and nothing was uploaded.
    """

    snapshot: JournalSnapshot
    handle: str
    uploaded: bool = True
    remote_unreadable: bool = False
