"""Save slots: XML snapshots of a character stored in SQLite."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from core.rule_based_ai import RuleBasedAI
from memory.schemas import SaveSlotRecord
from memory.stores.sql_store import SQLStore

logger = logging.getLogger("npc.persistence")


class SaveSlotManager:
    """Stores and restores RuleBasedAI snapshots."""

    def __init__(self, sql_store: SQLStore, max_slots_per_character: int | None = None) -> None:
        self.sql_store = sql_store
        self.max_slots_per_character = max_slots_per_character

    def save(self, ai: RuleBasedAI, label: str = "") -> dict[str, Any]:
        record = SaveSlotRecord(
            character_id=ai.self_id,
            label=label,
            time_in_seconds=ai.clock.now(),
            xml=ai.save_to_xml(),
        )
        with self.sql_store.session() as sess:
            sess.add(record)
            sess.flush()
            payload = self._slot_to_dict(record)
            pruned = self._prune(sess, ai.self_id)
        logger.info("Saved %s at t=%d as slot %d", ai.self_id, ai.clock.now(), payload["id"])
        if pruned:
            logger.info("Dropped %d old slot(s) of %s", pruned, ai.self_id)
        return payload

    def list_slots(self, character_id: str | None = None, limit: int = 20) -> list[dict[str, Any]]:
        with self.sql_store.session() as sess:
            query = sess.query(SaveSlotRecord)
            if character_id is not None:
                query = query.filter(SaveSlotRecord.character_id == character_id)
            rows = query.order_by(SaveSlotRecord.id.desc()).limit(limit).all()
            return [self._slot_to_dict(row) for row in rows]

    def get(self, slot_id: int) -> dict[str, Any] | None:
        with self.sql_store.session() as sess:
            row = sess.get(SaveSlotRecord, slot_id)
            if row is None:
                return None
            return self._slot_to_dict(row, include_xml=True)

    def load_latest(self, ai: RuleBasedAI) -> bool:
        """Restore ``ai`` from its newest slot; False when it has never been saved."""
        with self.sql_store.session() as sess:
            row = (
                sess.query(SaveSlotRecord)
                .filter(SaveSlotRecord.character_id == ai.self_id)
                .order_by(SaveSlotRecord.id.desc())
                .first()
            )
            xml = row.xml if row is not None else None
        if xml is None:
            return False
        ai.restore_from_xml(xml)
        return True

    def _prune(self, sess: Session, character_id: str) -> int:
        """Delete a character's slots beyond the newest ``max_slots_per_character``."""
        if not self.max_slots_per_character:
            return 0
        stale = [
            row.id
            for row in sess.query(SaveSlotRecord.id)
            .filter(SaveSlotRecord.character_id == character_id)
            .order_by(SaveSlotRecord.id.desc())
            .offset(self.max_slots_per_character)
        ]
        if stale:
            sess.query(SaveSlotRecord).filter(SaveSlotRecord.id.in_(stale)).delete(
                synchronize_session=False
            )
        return len(stale)

    @staticmethod
    def _slot_to_dict(row: SaveSlotRecord, include_xml: bool = False) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": row.id,
            "character_id": row.character_id,
            "label": row.label,
            "time_in_seconds": row.time_in_seconds,
            "created_at": row.created_at.isoformat() if row.created_at else None,
        }
        if include_xml:
            payload["xml"] = row.xml
        return payload
