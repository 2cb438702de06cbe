# =============================================================================
# lab_core/config.py
# Runtime configuration (Streamlit secrets, .env, environment)
# =============================================================================
"""
Configuration for the data layer.

Expected secrets in .streamlit/secrets.toml:

    [supabase]
    url = "https://your-project.supabase.co"
    key = "your-anon-key"

    [lab]
    mode = "cloud"            # or "local"
    db_path = "local_data/lab_tracker.db"
    log_level = "DEBUG"
    log_dir = "logs"

Environment variables (or a .env file) override nothing that secrets set;
they fill the gaps: SUPABASE_URL, SUPABASE_KEY, LAB_DATA_MODE, LAB_DB_PATH,
LAB_LOG_LEVEL, LAB_LOG_DIR.
"""

from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import streamlit as st
from dotenv import load_dotenv

from lab_core.errors import ConfigurationError

logger = logging.getLogger(__name__)

MODE_CLOUD = "cloud"
MODE_LOCAL = "local"

DEFAULT_DB_PATH = Path(__file__).parent.parent / "local_data" / "lab_tracker.db"


@dataclass
class LabConfig:
    """Settings resolved once at startup; mode never changes afterwards."""
    mode: str = MODE_LOCAL
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    db_path: Path = DEFAULT_DB_PATH
    org_domain: str = "issacasimov.in"
    admin_email: str = "admin@issacasimov.in"
    admin_password: str = "ralab"
    student_password: str = "issacasimov"
    log_level: int = logging.INFO
    log_dir: Optional[Path] = None

    @property
    def has_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    def validate(self) -> LabConfig:
        """
        Raises:
            ConfigurationError: Unknown mode, or cloud mode without credentials
        """
        if self.mode not in (MODE_CLOUD, MODE_LOCAL):
            raise ConfigurationError(
                f"Unknown data mode: {self.mode}",
                config_key="mode",
                expected_type="'cloud' or 'local'",
            )
        if self.mode == MODE_CLOUD and not self.has_supabase:
            raise ConfigurationError(
                "Cloud mode requires Supabase url and key",
                config_key="supabase",
            )
        return self


def _parse_log_level(value: Any) -> int:
    """Accept a level number or name ('debug', 'INFO', ...)."""
    if isinstance(value, int):
        return value
    level = logging.getLevelName(str(value).upper())
    if not isinstance(level, int):
        raise ConfigurationError(
            f"Unknown log level: {value}",
            config_key="log_level",
            expected_type="DEBUG, INFO, WARNING, ERROR or CRITICAL",
        )
    return level


def _read_secrets_section(name: str) -> Dict[str, Any]:
    """Read one section of st.secrets; missing file or section yields {}."""
    try:
        if name in st.secrets:
            return dict(st.secrets[name])
    except (FileNotFoundError, KeyError) as e:
        logger.debug(f"No Streamlit secrets for [{name}]: {e}")
    return {}


def load_config(**overrides: Any) -> LabConfig:
    """
    Build the configuration from Streamlit secrets, then .env/environment.

    Args:
        **overrides: Field values that win over every other source

    Returns:
        Validated LabConfig
    """
    load_dotenv()

    supabase = _read_secrets_section("supabase")
    lab = _read_secrets_section("lab")

    url = supabase.get("url") or os.getenv("SUPABASE_URL")
    key = supabase.get("key") or os.getenv("SUPABASE_KEY")
    mode = lab.get("mode") or os.getenv("LAB_DATA_MODE")
    if not mode:
        mode = MODE_CLOUD if (url and key) else MODE_LOCAL

    values: Dict[str, Any] = {
        "mode": mode,
        "supabase_url": url,
        "supabase_key": key,
    }

    db_path = lab.get("db_path") or os.getenv("LAB_DB_PATH")
    if db_path:
        values["db_path"] = Path(db_path)

    log_level = lab.get("log_level") or os.getenv("LAB_LOG_LEVEL")
    if log_level:
        values["log_level"] = _parse_log_level(log_level)

    log_dir = lab.get("log_dir") or os.getenv("LAB_LOG_DIR")
    if log_dir:
        values["log_dir"] = Path(log_dir)

    for name in ("org_domain", "admin_email", "admin_password", "student_password"):
        if lab.get(name):
            values[name] = lab[name]

    values.update(overrides)
    config = LabConfig(**values).validate()
    logger.info(f"Configuration loaded. Mode: {config.mode}")
    return config
