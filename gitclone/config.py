import logging
import os
from dataclasses import dataclass

from gitclone import __version__

__all__ = ["Settings"]

_FALSY = {"", "0", "false", "no", "off"}


@dataclass(frozen=True, kw_only=True)
class Settings:
    log_level: int = logging.WARNING
    user_agent: str = f"git/gitclone-{__version__}"
    http_timeout: float | None = None
    default_branch: str = "master"

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        """Build settings from GITCLONE_* variables; GIT_TRACE turns on debug logs."""
        env = os.environ if environ is None else environ

        level_name = env.get("GITCLONE_LOG_LEVEL", "WARNING").upper()
        log_level = logging.getLevelName(level_name)
        if not isinstance(log_level, int):
            raise ValueError(f"Invalid GITCLONE_LOG_LEVEL: {level_name}")
        if env.get("GIT_TRACE", "").lower() not in _FALSY:
            log_level = logging.DEBUG

        timeout = env.get("GITCLONE_HTTP_TIMEOUT")
        return cls(
            log_level=log_level,
            user_agent=env.get("GITCLONE_USER_AGENT", cls.user_agent),
            http_timeout=float(timeout) if timeout else None,
            default_branch=env.get("GITCLONE_DEFAULT_BRANCH", cls.default_branch),
        )
