"""
SQLite persistence for drafts and decks.

Two tables:
  saved_drafts(id, name, created_at, draft_state_json)
  saved_decks(id, name, created_at, total_cards, cards_json, draft_id)

The in-progress draft is autosaved as the saved_drafts row named "Current Draft".
save/load/clear are best-effort: failures are logged and never raised, so a broken
disk never interrupts drafting. Explicit operations (named saves, deck edits,
database import/export) raise PersistenceFailure.
"""
from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import closing, contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

from sealed_draft.cards import Card
from sealed_draft.exceptions import PersistenceFailure
from sealed_draft.state import DraftState

logger = logging.getLogger(__name__)

CURRENT_DRAFT_NAME = "Current Draft"

SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS saved_decks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        created_at TEXT NOT NULL,
        total_cards INTEGER NOT NULL,
        cards_json TEXT NOT NULL,
        draft_id INTEGER
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS saved_drafts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        created_at TEXT NOT NULL,
        draft_state_json TEXT NOT NULL
    )
    """,
]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class SavedDraft:
    id: int
    name: str
    created_at: str
    draft_state_json: str

    def state(self) -> DraftState:
        return DraftState.from_dict(json.loads(self.draft_state_json))


@dataclass
class SavedDeck:
    id: int
    name: str
    created_at: str
    total_cards: int
    cards_json: str
    draft_id: Optional[int]

    def cards(self) -> List[Card]:
        return [Card.from_record(r) for r in json.loads(self.cards_json)]


class DraftStore:
    def __init__(self, db_path: Path | str):
        self.db_path = Path(db_path)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            with closing(sqlite3.connect(self.db_path)) as con:
                con.row_factory = sqlite3.Row
                self._ensure_schema(con)
                with con:
                    yield con
        except (sqlite3.Error, OSError) as e:
            raise PersistenceFailure(f"{self.db_path}: {e}") from e

    @staticmethod
    def _ensure_schema(con: sqlite3.Connection) -> None:
        for stmt in SCHEMA:
            con.execute(stmt)
        # databases written before decks were linked to drafts lack draft_id
        cols = {row[1] for row in con.execute("PRAGMA table_info(saved_decks)")}
        if "draft_id" not in cols:
            con.execute("ALTER TABLE saved_decks ADD COLUMN draft_id INTEGER")
        con.commit()

    # -------- current draft (autosave) --------

    def save(self, state: DraftState) -> None:
        payload = json.dumps(state.to_dict())
        try:
            with self._connect() as con:
                row = con.execute(
                    "SELECT id FROM saved_drafts WHERE name = ? LIMIT 1", (CURRENT_DRAFT_NAME,)
                ).fetchone()
                if row is not None:
                    con.execute(
                        "UPDATE saved_drafts SET draft_state_json = ?, created_at = ? WHERE id = ?",
                        (payload, _now(), row["id"]),
                    )
                else:
                    con.execute(
                        "INSERT INTO saved_drafts (name, created_at, draft_state_json) VALUES (?, ?, ?)",
                        (CURRENT_DRAFT_NAME, _now(), payload),
                    )
        except PersistenceFailure as e:
            logger.error("failed to save draft state: %s", e)

    def load(self) -> Optional[DraftState]:
        """Most recently written draft, or None."""
        try:
            with self._connect() as con:
                row = con.execute(
                    "SELECT draft_state_json FROM saved_drafts ORDER BY created_at DESC LIMIT 1"
                ).fetchone()
        except PersistenceFailure as e:
            logger.error("failed to load draft state: %s", e)
            return None
        if row is None:
            return None
        try:
            return DraftState.from_dict(json.loads(row["draft_state_json"]))
        except (ValueError, KeyError, TypeError) as e:
            logger.error("stored draft state is unreadable: %s", e)
            return None

    def clear(self) -> None:
        try:
            with self._connect() as con:
                con.execute("DELETE FROM saved_drafts WHERE name = ?", (CURRENT_DRAFT_NAME,))
        except PersistenceFailure as e:
            logger.error("failed to clear draft state: %s", e)

    # -------- named drafts --------

    def save_draft(self, name: str, state: DraftState) -> int:
        with self._connect() as con:
            cur = con.execute(
                "INSERT INTO saved_drafts (name, created_at, draft_state_json) VALUES (?, ?, ?)",
                (name, _now(), json.dumps(state.to_dict())),
            )
            return int(cur.lastrowid)

    def list_drafts(self) -> List[SavedDraft]:
        with self._connect() as con:
            rows = con.execute("SELECT * FROM saved_drafts ORDER BY created_at DESC").fetchall()
        return [SavedDraft(**dict(r)) for r in rows]

    def get_draft(self, draft_id: int) -> Optional[SavedDraft]:
        with self._connect() as con:
            row = con.execute("SELECT * FROM saved_drafts WHERE id = ?", (draft_id,)).fetchone()
        return SavedDraft(**dict(row)) if row is not None else None

    def rename_draft(self, draft_id: int, name: str) -> None:
        with self._connect() as con:
            con.execute("UPDATE saved_drafts SET name = ? WHERE id = ?", (name, draft_id))

    def delete_draft(self, draft_id: int) -> None:
        with self._connect() as con:
            con.execute("DELETE FROM saved_drafts WHERE id = ?", (draft_id,))

    # -------- decks --------

    def save_deck(self, name: str, cards: Sequence[Card], draft_id: Optional[int] = None) -> int:
        cards_json = json.dumps([c.to_record() for c in cards])
        with self._connect() as con:
            cur = con.execute(
                "INSERT INTO saved_decks (name, created_at, total_cards, cards_json, draft_id) VALUES (?, ?, ?, ?, ?)",
                (name, _now(), len(cards), cards_json, draft_id),
            )
            return int(cur.lastrowid)

    def list_decks(self) -> List[SavedDeck]:
        with self._connect() as con:
            rows = con.execute("SELECT * FROM saved_decks ORDER BY created_at DESC").fetchall()
        return [SavedDeck(**dict(r)) for r in rows]

    def get_deck(self, deck_id: int) -> Optional[SavedDeck]:
        with self._connect() as con:
            row = con.execute("SELECT * FROM saved_decks WHERE id = ?", (deck_id,)).fetchone()
        return SavedDeck(**dict(row)) if row is not None else None

    def rename_deck(self, deck_id: int, name: str) -> None:
        with self._connect() as con:
            con.execute("UPDATE saved_decks SET name = ? WHERE id = ?", (name, deck_id))

    def update_deck_cards(self, deck_id: int, cards: Sequence[Card]) -> None:
        cards_json = json.dumps([c.to_record() for c in cards])
        with self._connect() as con:
            con.execute(
                "UPDATE saved_decks SET cards_json = ?, total_cards = ? WHERE id = ?",
                (cards_json, len(cards), deck_id),
            )

    def delete_deck(self, deck_id: int) -> None:
        with self._connect() as con:
            con.execute("DELETE FROM saved_decks WHERE id = ?", (deck_id,))

    def delete_unassigned_decks(self) -> int:
        """Delete decks not linked to any draft; returns how many were removed."""
        with self._connect() as con:
            cur = con.execute("DELETE FROM saved_decks WHERE draft_id IS NULL")
            return int(cur.rowcount)

    # -------- whole database --------

    def export_database(self, dest: Path | str) -> Path:
        dest = Path(dest)
        with self._connect() as con:
            try:
                with closing(sqlite3.connect(dest)) as out:
                    con.backup(out)
            except sqlite3.Error as e:
                raise PersistenceFailure(f"failed to export database to {dest}: {e}") from e
        return dest

    def import_database(self, src: Path | str) -> None:
        """Replace every saved draft and deck with the contents of another database file."""
        src = Path(src)
        if not src.exists():
            raise PersistenceFailure(f"{src} does not exist")
        try:
            with closing(sqlite3.connect(src)) as incoming:
                tables = {
                    row[0]
                    for row in incoming.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
                }
                for required in ("saved_decks", "saved_drafts"):
                    if required not in tables:
                        raise PersistenceFailure(f"invalid database file: missing {required} table")
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
                with closing(sqlite3.connect(self.db_path)) as con:
                    incoming.backup(con)
        except sqlite3.Error as e:
            raise PersistenceFailure(f"invalid database file: {e}") from e
        logger.info("imported database from %s", src)


__all__ = ["DraftStore", "SavedDraft", "SavedDeck", "CURRENT_DRAFT_NAME"]
