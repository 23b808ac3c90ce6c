"""Shared fixtures for lab tests.

No database or Docker required -- stores live in a temporary directory and
agents are scripted fakes.
"""

from __future__ import annotations

import pytest

from tests.lab.helpers import make_personas, make_project
from warroom.lab.models import Persona, Project
from warroom.lab.settings import WarRoomSettings
from warroom.lab.store.local import LocalLabStore


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def store(tmp_path) -> LocalLabStore:
    return LocalLabStore(tmp_path)


@pytest.fixture
def settings(tmp_path) -> WarRoomSettings:
    # Long watchdog interval: pipeline tests use real time and never go quiet.
    return WarRoomSettings(data_root=str(tmp_path), watchdog_interval=60.0, progress_throttle_ms=0)


@pytest.fixture
def personas() -> list[Persona]:
    return make_personas(3)


@pytest.fixture
def project(personas: list[Persona]) -> Project:
    return make_project(personas)
