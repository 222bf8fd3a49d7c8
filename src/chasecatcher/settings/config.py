"""Configuration loader for chasecatcher using Pydantic settings.

Config precedence (highest wins):
  1. CLI flags (where applicable)
  2. Environment variables (CHASECATCHER_* with __ for nesting)
  3. settings.local.toml
  4. settings.<env>.toml
  5. settings.default.toml
"""

from __future__ import annotations

import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

_THIS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = Path(os.getenv("CHASECATCHER_PROJECT_ROOT", _THIS_DIR.parents[2]))
CONFIG_DIR = PROJECT_ROOT / "config"

ENV_VAR_NAME = "CHASECATCHER_ENV"
DEFAULT_ENV = "default"
_FIXED_LAYERS = ("default", "local")


def _resolve_env() -> str:
    return (os.getenv(ENV_VAR_NAME) or DEFAULT_ENV).strip()


def _load_toml(path: Path) -> dict[str, Any]:
    if path.is_file():
        with open(path, "rb") as f:
            return tomllib.load(f)
    return {}


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class TimingSettings(BaseSettings):
    """Pacing and readiness-polling intervals, all in milliseconds."""

    model_config = SettingsConfigDict(env_prefix="CHASECATCHER_TIMING__")

    after_click_ms: int = Field(default=1500, ge=0)
    random_extra_ms: int = Field(default=400, ge=0)
    min_delay_ms: int = Field(default=500, ge=0)
    check_interval_ms: int = Field(default=50, gt=0)
    settle_ms: int = Field(default=100, ge=0)
    ready_timeout_ms: int = Field(default=3000, ge=0)
    fallback_ready_timeout_ms: int = Field(default=2000, ge=0)


class BrowserSettings(BaseSettings):
    """Playwright browser settings."""

    model_config = SettingsConfigDict(env_prefix="CHASECATCHER_BROWSER__")

    headless: bool = False
    timeout_ms: int = 30_000
    action_timeout_ms: int = 5_000
    navigation_timeout_ms: int = 15_000
    user_data_dir: str = "data/browser-profile"
    channel: str = ""  # "" = bundled Chromium, "chrome" = installed Chrome


class SiteSettings(BaseSettings):
    """Expected target site for the control surface."""

    model_config = SettingsConfigDict(env_prefix="CHASECATCHER_SITE__")

    domain: str = "chase.com"
    require_https: bool = True
    path_prefixes: list[str] = Field(default_factory=list)
    offers_url: str = "https://secure.chase.com/web/auth/dashboard#/dashboard/merchantOffers/offer-hub"


class LayoutSettings(BaseSettings):
    """Where offer layouts (markup variants) are loaded from."""

    model_config = SettingsConfigDict(env_prefix="CHASECATCHER_LAYOUTS__")

    layouts_dir: str = "config/layouts"
    include_builtin: bool = True


class ChannelSettings(BaseSettings):
    """Controller-to-agent message channel."""

    model_config = SettingsConfigDict(env_prefix="CHASECATCHER_CHANNEL__")

    request_timeout_ms: int = 5_000


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    """Root chasecatcher settings with nested sections."""

    model_config = SettingsConfigDict(
        env_prefix="CHASECATCHER_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    env: str = Field(default_factory=_resolve_env)
    project_root: Path = Field(default=PROJECT_ROOT)
    debug: bool = False

    timing: TimingSettings = Field(default_factory=TimingSettings)
    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    site: SiteSettings = Field(default_factory=SiteSettings)
    layouts: LayoutSettings = Field(default_factory=LayoutSettings)
    channel: ChannelSettings = Field(default_factory=ChannelSettings)

    @model_validator(mode="before")
    @classmethod
    def _merge_toml_files(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Layer TOML config files before env var overrides."""
        defaults = _load_toml(CONFIG_DIR / "settings.default.toml")
        env_name = (values.get("env") or os.getenv(ENV_VAR_NAME) or DEFAULT_ENV).strip()
        env_overrides: dict[str, Any] = {}
        if env_name not in _FIXED_LAYERS:
            env_overrides = _load_toml(CONFIG_DIR / f"settings.{env_name}.toml")
        local_overrides = _load_toml(CONFIG_DIR / "settings.local.toml")

        # Merge: defaults < env-specific < local < explicit values
        merged: dict[str, Any] = {}
        for layer in (defaults, env_overrides, local_overrides, values):
            for key, val in layer.items():
                if isinstance(val, dict) and isinstance(merged.get(key), dict):
                    merged[key] = {**merged[key], **val}
                else:
                    merged[key] = val
        return merged

    @model_validator(mode="after")
    def _resolve_paths(self) -> "Settings":
        """Normalize relative paths against project_root."""
        root = self.project_root
        if not Path(self.browser.user_data_dir).is_absolute():
            self.browser.user_data_dir = str(root / self.browser.user_data_dir)
        if not Path(self.layouts.layouts_dir).is_absolute():
            self.layouts.layouts_dir = str(root / self.layouts.layouts_dir)
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the singleton settings instance (cached)."""
    return Settings()
