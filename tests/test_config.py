"""Tests for app configuration loading."""

from __future__ import annotations

from pathlib import Path

from trademind.config import AppConfig, config_path, load_config, save_config
from trademind.sync.credentials import CommandTokenSupplier, EnvTokenSupplier, create_supplier
from trademind.sync.models import BACKUP_FILE_NAME, SyncConfig


class TestLoadConfig:
    """Tests for config.yaml handling."""

    def test_defaults_when_missing(self, tmp_home: Path):
        config = load_config(tmp_home)
        assert config.sync.backup_file_name == BACKUP_FILE_NAME
        assert config.sync.timeout_seconds == 30

    def test_reads_sync_section(self, tmp_home: Path):
        path = config_path(tmp_home)
        path.parent.mkdir(parents=True)
        path.write_text(
            "sync:\n"
            "  token_command: gcloud auth print-access-token\n"
            "  autosave_delay_seconds: 2\n"
        )

        config = load_config(tmp_home)

        assert config.sync.token_command == "gcloud auth print-access-token"
        assert config.sync.autosave_delay_seconds == 2
        assert config.sync.backup_file_name == BACKUP_FILE_NAME

    def test_bad_yaml_falls_back(self, tmp_home: Path):
        path = config_path(tmp_home)
        path.parent.mkdir(parents=True)
        path.write_text("sync: [unclosed\n")
        assert load_config(tmp_home) == AppConfig()

    def test_invalid_values_fall_back(self, tmp_home: Path):
        path = config_path(tmp_home)
        path.parent.mkdir(parents=True)
        path.write_text("sync:\n  timeout_seconds: -1\n")
        assert load_config(tmp_home).sync.timeout_seconds == 30

    def test_save_round_trip(self, tmp_home: Path):
        config = AppConfig(sync=SyncConfig(backup_file_name="other.json"))
        save_config(config, tmp_home)
        assert load_config(tmp_home).sync.backup_file_name == "other.json"


class TestCreateSupplier:
    """Tests for picking a credential supplier from config."""

    def test_env_by_default(self):
        supplier = create_supplier(SyncConfig())
        assert isinstance(supplier, EnvTokenSupplier)
        assert supplier.env_var == "TRADEMIND_DRIVE_TOKEN"

    def test_command_when_configured(self):
        supplier = create_supplier(SyncConfig(token_command="echo tok"))
        assert isinstance(supplier, CommandTokenSupplier)
        assert supplier.command == "echo tok"
