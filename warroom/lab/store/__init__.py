"""Lab record stores."""

from warroom.lab.store.base import LabStore
from warroom.lab.store.local import LocalLabStore

__all__ = ["LabStore", "LocalLabStore"]
