import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional

from config import DATA_DIR, SNAPSHOT_FILE

logger = logging.getLogger("pos.database")


class SnapshotRepository:
    """
    JSON documents on disk: the persisted POS snapshot, the shop settings and
    dated full backups. Reads never raise; a missing or unreadable document
    comes back as None so the caller keeps its last-known-good state. An
    unreadable document is moved aside first, so the next save cannot
    overwrite it.
    """

    def __init__(self, storage_dir: Path = DATA_DIR):
        self.storage_dir = Path(storage_dir)
        self.storage_dir.mkdir(parents=True, exist_ok=True)

    def _file_path(self, filename: str) -> Path:
        return self.storage_dir / filename

    def _set_aside(self, filename: str) -> Optional[Path]:
        path = self._file_path(filename)
        if not path.exists():
            return None
        target = path.with_name(f"{path.name}.corrupt-{datetime.now():%Y%m%d%H%M%S%f}")
        try:
            path.replace(target)
        except OSError:
            logger.exception("Could not move %s aside", path)
            return None
        logger.warning("Moved unusable %s to %s", path.name, target.name)
        return target

    def _read_json(self, filename: str) -> Optional[Any]:
        path = self._file_path(filename)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                text = f.read().strip()
                if text == "":
                    return None
                return json.loads(text)
        except (OSError, ValueError) as e:
            logger.warning("Could not read %s, ignoring it: %s", path, e)
            self._set_aside(filename)
            return None

    def _write_json(self, filename: str, data: Any) -> Path:
        # Write to a sibling temp file first so a crash never leaves half a document
        path = self._file_path(filename)
        tmp = path.with_suffix(path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        tmp.replace(path)
        return path

    def load(self) -> Optional[dict]:
        data = self._read_json(SNAPSHOT_FILE)
        if isinstance(data, dict):
            return data
        if data is not None:
            logger.warning("Snapshot is not a JSON object, ignoring it")
            self.set_aside_snapshot()
        return None

    def save(self, snapshot: dict) -> None:
        self._write_json(SNAPSHOT_FILE, snapshot)

    def set_aside_snapshot(self) -> Optional[Path]:
        return self._set_aside(SNAPSHOT_FILE)

    def load_settings(self) -> Optional[dict]:
        data = self._read_json("settings.json")
        return data if isinstance(data, dict) else None

    def save_settings(self, settings: dict) -> None:
        self._write_json("settings.json", settings)

    def write_backup(self, backup: dict, day: Optional[date] = None) -> Path:
        day = day or date.today()
        return self._write_json(f"Full_POS_Backup_{day.isoformat()}.json", backup)
