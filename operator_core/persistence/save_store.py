"""
Save Store — one OperatorSaveData document per save slot.

Behavioral Contract:
- Each slot holds exactly one JSON document; saving replaces it
- Recording a night result replaces any earlier result for that night,
  replaces the persistent flag list, advances the night index and drops
  the mid-night snapshot
- The store only persists records; it never reads or writes core state
"""

import logging
import sqlite3
from datetime import datetime
from typing import List, Optional

from operator_core.models.end_state import EndStateType
from operator_core.models.flags import FlagState
from operator_core.models.persistence import (
    MidNightSnapshot,
    NightResultRecord,
    OperatorSaveData,
)

logger = logging.getLogger(__name__)

DEFAULT_SLOT = "default"


class SaveStore:
    """
    SQLite-backed save slots.
    Defaults to an in-memory database.
    """

    def __init__(self, db_path: str = ":memory:"):
        self.db_path = db_path
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self) -> None:
        """Create the saves table if it doesn't exist."""
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS saves (
                slot_id TEXT PRIMARY KEY,
                current_night_index INTEGER NOT NULL DEFAULT 0,
                saved_at TEXT,
                save_json TEXT NOT NULL
            )
        """)
        self._conn.commit()

    # --- Slots ---

    def save(self, data: OperatorSaveData, slot_id: str = DEFAULT_SLOT) -> OperatorSaveData:
        """Write a save document, stamping the save time."""
        data.saved_at = datetime.utcnow()
        self._conn.execute(
            """
            INSERT INTO saves (slot_id, current_night_index, saved_at, save_json)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(slot_id) DO UPDATE SET
                current_night_index = excluded.current_night_index,
                saved_at = excluded.saved_at,
                save_json = excluded.save_json
            """,
            (
                slot_id,
                data.current_night_index,
                data.saved_at.isoformat(),
                data.model_dump_json(),
            ),
        )
        self._conn.commit()
        logger.info("Saved slot %s at night index %d", slot_id, data.current_night_index)
        return data

    def load(self, slot_id: str = DEFAULT_SLOT) -> Optional[OperatorSaveData]:
        row = self._conn.execute(
            "SELECT save_json FROM saves WHERE slot_id = ?", (slot_id,)
        ).fetchone()
        return OperatorSaveData.model_validate_json(row["save_json"]) if row else None

    def has_save(self, slot_id: str = DEFAULT_SLOT) -> bool:
        return self.load(slot_id) is not None

    def delete(self, slot_id: str = DEFAULT_SLOT) -> bool:
        cursor = self._conn.execute("DELETE FROM saves WHERE slot_id = ?", (slot_id,))
        self._conn.commit()
        if cursor.rowcount:
            logger.info("Deleted save slot %s", slot_id)
        return cursor.rowcount > 0

    def list_slots(self) -> List[str]:
        rows = self._conn.execute("SELECT slot_id FROM saves ORDER BY slot_id").fetchall()
        return [r["slot_id"] for r in rows]

    def _load_or_new(self, slot_id: str) -> OperatorSaveData:
        return self.load(slot_id) or OperatorSaveData()

    # --- Night results ---

    def record_night_result(
        self,
        night_id: str,
        end_state: EndStateType,
        persistent_flags: List[FlagState],
        slot_id: str = DEFAULT_SLOT,
    ) -> OperatorSaveData:
        """Store a finished night and move the slot on to the next night."""
        data = self._load_or_new(slot_id)
        record = NightResultRecord(
            night_id=night_id,
            end_state=end_state,
            completed_at=datetime.utcnow(),
        )

        data.night_results = [r for r in data.night_results if r.night_id != night_id]
        data.night_results.append(record)
        data.persistent_flags = [f.model_copy() for f in persistent_flags if f.is_set]
        data.current_night_index += 1
        data.mid_night_save = None
        return self.save(data, slot_id)

    def get_completed_nights(self, slot_id: str = DEFAULT_SLOT) -> List[str]:
        data = self.load(slot_id)
        return [r.night_id for r in data.night_results] if data else []

    def get_night_end_state(self, night_id: str, slot_id: str = DEFAULT_SLOT) -> Optional[EndStateType]:
        data = self.load(slot_id)
        if data is None:
            return None
        record = next((r for r in data.night_results if r.night_id == night_id), None)
        return record.end_state if record else None

    def get_persistent_flags(self, slot_id: str = DEFAULT_SLOT) -> List[FlagState]:
        data = self.load(slot_id)
        return data.persistent_flags if data else []

    def get_current_night_index(self, slot_id: str = DEFAULT_SLOT) -> int:
        data = self.load(slot_id)
        return data.current_night_index if data else 0

    # --- Mid-night snapshots ---

    def store_mid_night_snapshot(
        self, snapshot: MidNightSnapshot, slot_id: str = DEFAULT_SLOT
    ) -> OperatorSaveData:
        data = self._load_or_new(slot_id)
        data.mid_night_save = snapshot
        return self.save(data, slot_id)

    def get_mid_night_snapshot(self, slot_id: str = DEFAULT_SLOT) -> Optional[MidNightSnapshot]:
        data = self.load(slot_id)
        return data.mid_night_save if data else None

    def clear_mid_night_snapshot(self, slot_id: str = DEFAULT_SLOT) -> None:
        data = self.load(slot_id)
        if data is None or data.mid_night_save is None:
            return
        data.mid_night_save = None
        self.save(data, slot_id)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
