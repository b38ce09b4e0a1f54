"""Result records and errors for save/load operations."""

from typing import Any, Optional

from pydantic import BaseModel, Field


class SaveLoadError(Exception):
    """Raised inside the persistence layer; never escapes it."""


class SaveResult(BaseModel):
    """Outcome of a save, load, import or delete."""

    success: bool
    slot: Optional[str] = None
    error: Optional[str] = None
    data: Optional[dict[str, Any]] = Field(default=None, description="Snapshot that was written or read")

    @classmethod
    def ok(cls, slot: Optional[str] = None, data: Optional[dict[str, Any]] = None) -> "SaveResult":
        return cls(success=True, slot=slot, data=data)

    @classmethod
    def failed(cls, error: str, slot: Optional[str] = None) -> "SaveResult":
        return cls(success=False, slot=slot, error=error)


def is_compatible_version(version: Optional[str], current: str) -> bool:
    """Saves load only when the major version matches."""
    if not version:
        return False
    return str(version).split(".")[0] == current.split(".")[0]
