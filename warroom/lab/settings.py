"""Service configuration loaded from WARROOM_* environment variables."""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class WarRoomSettings(BaseSettings):
    """War Room settings.

    All fields are read from environment variables with the ``WARROOM_``
    prefix.  For example, ``WARROOM_MAX_ITERATIONS=3`` maps to
    ``max_iterations``.

    Model names and provider keys are **not** managed here -- they belong to
    the executor adapter, which decides what a persona without an explicit
    ``model`` runs on.
    """

    model_config = SettingsConfigDict(
        env_prefix="WARROOM_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"

    # -- Data storage ----------------------------------------------------------
    data_root: str = "./data"
    """Root directory for lab records (personas, projects, pipelines)."""

    data_prefix: str | None = None
    """Optional namespace inserted as ``{data_root}/{data_prefix}/lab/...``."""

    # -- Pipeline --------------------------------------------------------------
    max_iterations: int = 2
    """Default fix-cycle budget for new pipelines (builds run ``max_iterations + 1`` times at most)."""

    builder_model: str | None = None
    """Model identifier handed to the executor for build / iterate runs."""

    # -- Streaming -------------------------------------------------------------
    stream_progress: bool = True
    """Run agents through the progress stream; ``False`` uses run-to-completion."""

    progress_throttle_ms: int = 200
    max_log_length: int = 4000
    watchdog_interval: float = 3.0
    """Seconds between watchdog ticks."""

    silence_timeout: float = 120.0
    """Seconds without any executor event before a run is aborted as stuck."""

    command_preview_chars: int = 120

    # -- Events ----------------------------------------------------------------
    event_buffer_size: int = 256
    """Capacity of ``BufferedEventSink`` before events are dropped."""

    # -- CLI -------------------------------------------------------------------
    executor: str | None = None
    """Dotted ``module:attr`` path of the executor factory used by ``warroom run``."""


def get_settings() -> WarRoomSettings:
    """Return a cached settings instance.

    Reads from environment variables and ``.env`` on first call, then returns
    the same object.  Call ``_get_settings_cached.cache_clear()`` in tests to
    force a re-read after overriding env vars.
    """
    return _get_settings_cached()


@lru_cache(maxsize=1)
def _get_settings_cached() -> WarRoomSettings:
    return WarRoomSettings()
