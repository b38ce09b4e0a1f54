"""Save slots on disk.

Each slot is one JSON file, ``ashfall_{slot}.json``, holding the engine's
exported snapshot. Every public method returns a record; file and JSON
errors are turned into failed results here.
"""

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Union

from .. import config
from ..events import Events
from .results import SaveLoadError, SaveResult, is_compatible_version

if TYPE_CHECKING:
    from ..engine.rule_engine import RuleEngine

logger = logging.getLogger(__name__)


class SaveManager:
    """Reads and writes save slots for a rule engine."""

    def __init__(self, engine: "RuleEngine", save_dir: Union[str, Path] = config.SAVES_DIR):
        self.engine = engine
        self.save_dir = Path(save_dir)
        self.version = config.SAVE_VERSION

    def slot_path(self, slot: str) -> Path:
        return self.save_dir / f"{config.SAVE_FILE_PREFIX}{slot}.json"

    # -------------------------------------------------------------------------
    # Save
    # -------------------------------------------------------------------------

    def save(self, slot: str = "manual_1") -> SaveResult:
        try:
            self._check_slot(slot)
            data = self.engine.export_state(slot=slot)
            self.save_dir.mkdir(parents=True, exist_ok=True)
            with open(self.slot_path(slot), "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
        except (SaveLoadError, OSError, TypeError, ValueError) as e:
            logger.error("Save to slot %s failed: %s", slot, e)
            return SaveResult.failed(str(e), slot=slot)

        self.engine.events.emit(Events.GAME_SAVE, {"slot": slot, "day": data["time"]["day"]})
        logger.info("Game saved to slot %s", slot)
        return SaveResult.ok(slot=slot, data=data)

    def auto_save(self) -> SaveResult:
        return self.save("autosave")

    def quick_save(self) -> SaveResult:
        return self.save("quicksave")

    # -------------------------------------------------------------------------
    # Load
    # -------------------------------------------------------------------------

    def load(self, slot: str) -> SaveResult:
        try:
            self._check_slot(slot)
            data = self._read(slot)
        except SaveLoadError as e:
            logger.warning("Load from slot %s failed: %s", slot, e)
            return SaveResult.failed(str(e), slot=slot)

        result = self.engine.import_state(data)
        if not result.success:
            return SaveResult.failed(result.error or "Load failed", slot=slot)

        logger.info("Game loaded from slot %s", slot)
        return SaveResult.ok(slot=slot, data=data)

    def quick_load(self) -> SaveResult:
        return self.load("quicksave")

    def load_auto_save(self) -> SaveResult:
        return self.load("autosave")

    def _read(self, slot: str) -> dict[str, Any]:
        path = self.slot_path(slot)
        if not path.exists():
            raise SaveLoadError("Save not found")
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise SaveLoadError(f"Unreadable save: {e}") from e
        if not isinstance(data, dict):
            raise SaveLoadError("Save data is not an object")
        if not is_compatible_version((data.get("meta") or {}).get("version"), self.version):
            raise SaveLoadError("Incompatible save version")
        return data

    def _check_slot(self, slot: str) -> None:
        if slot not in config.SAVE_SLOTS:
            raise SaveLoadError(f"Unknown save slot '{slot}'")

    # -------------------------------------------------------------------------
    # Slots
    # -------------------------------------------------------------------------

    def get_save_info(self, slot: str) -> dict[str, Any]:
        """Summary of a slot for menus."""
        path = self.slot_path(slot)
        if not path.exists():
            return {"empty": True}
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return {
                "empty": False,
                "saved_at": data["meta"].get("saved_at"),
                "play_time": data["meta"].get("play_time"),
                "day": data["time"]["day"],
                "act": data["narrative"]["current_act"],
                "location": data["player"]["location"],
                "tension": data["narrative"]["tension"],
            }
        except (OSError, json.JSONDecodeError, KeyError, TypeError, AttributeError):
            return {"empty": True, "corrupted": True}

    def get_save_slots(self) -> list[dict[str, Any]]:
        return [{"slot": slot, **self.get_save_info(slot)} for slot in config.SAVE_SLOTS]

    def delete_save(self, slot: str) -> SaveResult:
        try:
            self.slot_path(slot).unlink(missing_ok=True)
        except OSError as e:
            return SaveResult.failed(str(e), slot=slot)
        return SaveResult.ok(slot=slot)

    def has_save(self, slot: str) -> bool:
        return self.slot_path(slot).exists()

    def has_any_save(self) -> bool:
        return any(not info["empty"] for info in self.get_save_slots())


def format_play_time(seconds: float) -> str:
    """Render play time as ``1h 5m`` or ``12m``."""
    total = int(seconds)
    hours, minutes = total // 3600, (total % 3600) // 60
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"
