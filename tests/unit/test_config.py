# =============================================================================
# tests/unit/test_config.py
# Unit Tests for configuration loading and bootstrap
# =============================================================================

import logging
from pathlib import Path

import pytest

from lab_core import bootstrap, config as config_module
from lab_core.config import MODE_CLOUD, MODE_LOCAL, LabConfig, load_config
from lab_core.errors import ConfigurationError


@pytest.fixture
def no_secrets(monkeypatch):
    """Pretend .streamlit/secrets.toml is absent and the env is clean"""
    monkeypatch.setattr(config_module, "_read_secrets_section", lambda name: {})
    monkeypatch.setattr(config_module, "load_dotenv", lambda: False)
    for var in ("SUPABASE_URL", "SUPABASE_KEY", "LAB_DATA_MODE", "LAB_DB_PATH",
                "LAB_LOG_LEVEL", "LAB_LOG_DIR"):
        monkeypatch.delenv(var, raising=False)


class TestLoadConfig:

    def test_defaults_to_local_without_credentials(self, no_secrets):
        assert load_config().mode == MODE_LOCAL

    def test_defaults_to_cloud_with_credentials(self, no_secrets, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
        monkeypatch.setenv("SUPABASE_KEY", "anon")

        config = load_config()

        assert config.mode == MODE_CLOUD
        assert config.has_supabase

    def test_env_selects_mode_and_path(self, no_secrets, monkeypatch, tmp_path):
        monkeypatch.setenv("LAB_DATA_MODE", "local")
        monkeypatch.setenv("LAB_DB_PATH", str(tmp_path / "x.db"))

        config = load_config()

        assert config.db_path == Path(tmp_path / "x.db")

    def test_secrets_win_over_env(self, monkeypatch):
        sections = {"lab": {"mode": "local", "org_domain": "lab.org"}}
        monkeypatch.setattr(config_module, "_read_secrets_section", lambda name: sections.get(name, {}))
        monkeypatch.setattr(config_module, "load_dotenv", lambda: False)
        monkeypatch.setenv("LAB_DATA_MODE", "cloud")

        config = load_config()

        assert config.mode == MODE_LOCAL
        assert config.org_domain == "lab.org"

    def test_cloud_without_credentials_is_rejected(self, no_secrets):
        with pytest.raises(ConfigurationError):
            load_config(mode=MODE_CLOUD)

    def test_unknown_mode_is_rejected(self):
        with pytest.raises(ConfigurationError):
            LabConfig(mode="hybrid").validate()

    def test_env_log_level_and_dir(self, no_secrets, monkeypatch, tmp_path):
        monkeypatch.setenv("LAB_LOG_LEVEL", "debug")
        monkeypatch.setenv("LAB_LOG_DIR", str(tmp_path))

        config = load_config()

        assert config.log_level == logging.DEBUG
        assert config.log_dir == tmp_path

    def test_unknown_log_level_is_rejected(self, no_secrets, monkeypatch):
        monkeypatch.setenv("LAB_LOG_LEVEL", "chatty")

        with pytest.raises(ConfigurationError) as exc_info:
            load_config()
        assert exc_info.value.details["config_key"] == "log_level"


class TestBootstrap:

    async def test_local_service(self, tmp_path):
        service = await bootstrap.build_data_service(LabConfig(db_path=tmp_path / "lab.db"))

        assert service.mode == "local"
        assert len(service.get_components()) == 8

    async def test_cloud_service_with_injected_client(self, tmp_path, fake_client):
        config = LabConfig(mode=MODE_CLOUD, supabase_url="https://x", supabase_key="k",
                           db_path=tmp_path / "lab.db")

        service = await bootstrap.build_data_service(config, client=fake_client)
        gate = bootstrap.build_auth_gate(service)
        session = await gate.login("admin@issacasimov.in", "ralab")

        assert service.is_cloud
        assert session.user.is_admin
        await gate.logout(session)
