"""Startup configuration for the repository file browser.

Everything is read from environment variables exactly once, when the
process starts, and frozen into a :class:`Settings` value that the app
hands to every component.
"""

import os
from typing import Any, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

DEFAULT_API_BASE = "https://api.github.com/repos/{owner}/{repo}/contents"
DEFAULT_RAW_BASE = "https://raw.githubusercontent.com"
DEFAULT_EXTENSIONS = (".txt", ".pdf", ".zip", ".mp4")


class ConfigError(ValueError):
    """Raised when the environment does not describe a usable deployment."""


class Settings(BaseModel):
    """Immutable deployment settings."""
    model_config = ConfigDict(frozen=True)

    owner: str = Field(min_length=1, description="Repository owner (user or organisation)")
    repo: str = Field(min_length=1, description="Repository name")
    branch: str = Field("main", min_length=1, description="Branch or ref that is browsed")
    public_domain: str = Field(
        "localhost:8000",
        description="Public host name used for absolute links in listings"
    )
    public_scheme: str = "https"
    listing_base: str = Field(
        "",
        description="Contents API base; defaults to the GitHub contents endpoint of owner/repo"
    )
    raw_base: str = DEFAULT_RAW_BASE
    user_agent: str = "Repo-File-Browser"
    classifier: Literal["structural", "allowlist"] = "structural"
    allowed_extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    cache_max_age: int = Field(3600, ge=0)
    upstream_timeout: float | None = 30.0
    rate_limit: str = ""
    health_path: str = ""
    log_level: str = "INFO"

    @model_validator(mode="before")
    @classmethod
    def _default_listing_base(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("listing_base"):
            data = dict(data)
            data["listing_base"] = DEFAULT_API_BASE.format(
                owner=data.get("owner", ""), repo=data.get("repo", "")
            )
        return data

    @property
    def public_root(self) -> str:
        return f"{self.public_scheme}://{self.public_domain}"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ

        def get(name: str, default: str = "") -> str:
            return env.get(name, default).strip()

        if not get("GITHUB_OWNER") or not get("GITHUB_REPO"):
            raise ConfigError("GITHUB_OWNER and GITHUB_REPO must be set")

        try:
            cache_max_age = int(get("CACHE_MAX_AGE", "3600"))
        except ValueError:
            raise ConfigError("CACHE_MAX_AGE must be an integer number of seconds")

        timeout_raw = get("UPSTREAM_TIMEOUT", "30")
        if timeout_raw.lower() in ("", "none", "0"):
            upstream_timeout = None
        else:
            try:
                upstream_timeout = float(timeout_raw)
            except ValueError:
                raise ConfigError("UPSTREAM_TIMEOUT must be a number of seconds or 'none'")

        extensions = tuple(
            ext if ext.startswith(".") else f".{ext}"
            for ext in (e.strip().lower() for e in get("ALLOWED_EXTENSIONS").split(","))
            if ext
        ) or DEFAULT_EXTENSIONS

        try:
            return cls(
                owner=get("GITHUB_OWNER"),
                repo=get("GITHUB_REPO"),
                branch=get("GITHUB_BRANCH") or "main",
                public_domain=get("PUBLIC_DOMAIN") or "localhost:8000",
                public_scheme=get("PUBLIC_SCHEME") or "https",
                listing_base=get("GITHUB_API_BASE").rstrip("/"),
                raw_base=(get("GITHUB_RAW_BASE") or DEFAULT_RAW_BASE).rstrip("/"),
                user_agent=get("USER_AGENT") or "Repo-File-Browser",
                classifier=(get("CLASSIFIER") or "structural").lower(),
                allowed_extensions=extensions,
                cache_max_age=cache_max_age,
                upstream_timeout=upstream_timeout,
                rate_limit=get("RATE_LIMIT"),
                health_path=get("HEALTH_PATH"),
                log_level=(get("LOG_LEVEL") or "INFO").upper(),
            )
        except ValidationError as e:
            raise ConfigError(str(e)) from e
