import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from typing import Iterable, List, Optional

from models.card import Card, CardFace, CardStateUpdate, FlashcardStats
from utils.errors import NotFound, PersistenceFailure
from utils.mastery import DEFAULT_MASTERY_RULES, mastery_percent, mastery_status_from_rules, review_stage
from . import database

logger = logging.getLogger(__name__)

DEFAULT_EASE_FACTOR = 2.5

CARD_COLUMNS = """
    id, user_id, content_id, content_type, front, back, category,
    interval_days, repetitions, ease_factor, due_at, last_reviewed_at, created_at
"""


def row_to_card(row: sqlite3.Row, rules: Optional[dict] = None) -> Card:
    data = dict(row)
    data["due_at"] = database.from_db_timestamp(data["due_at"])
    data["last_reviewed_at"] = database.from_db_timestamp(data["last_reviewed_at"])
    data["created_at"] = database.from_db_timestamp(data["created_at"])
    data["mastery_status"] = mastery_status_from_rules(
        data["repetitions"], data["ease_factor"], rules
    )
    data["stage"] = review_stage(data["repetitions"])
    return Card.model_validate(data)


class FlashcardStore:
    """SQLite storage for flashcards. Every query is scoped to the owning user."""

    def __init__(self, mastery_rules: Optional[dict] = None):
        self.mastery_rules = mastery_rules or DEFAULT_MASTERY_RULES.copy()

    @contextmanager
    def _cursor(self, action: str):
        # database.get_conn is looked up per call so tests can repoint DB_PATH
        try:
            with database.get_conn() as conn:
                cursor = conn.cursor()
                yield cursor
                conn.commit()
        except sqlite3.Error as e:
            logger.error("Flashcard store failed to %s: %s", action, e)
            raise PersistenceFailure(f"Failed to {action}: {e}") from e

    def load_due_cards(self, user_id: str, limit: int, now: Optional[datetime] = None) -> List[Card]:
        """Cards due at ``now``, oldest first, at most ``limit``."""
        cutoff = database.to_db_timestamp(now or database.utc_now())
        with self._cursor("load due cards") as cursor:
            cursor.execute(
                f"""
                SELECT {CARD_COLUMNS} FROM flashcards
                WHERE user_id = ? AND due_at <= ?
                ORDER BY due_at ASC, id ASC
                LIMIT ?
                """,
                (user_id, cutoff, int(limit)),
            )
            rows = cursor.fetchall()
        return [row_to_card(row, self.mastery_rules) for row in rows]

    def get_card(self, card_id: int, user_id: str) -> Card:
        with self._cursor("load card") as cursor:
            cursor.execute(
                f"SELECT {CARD_COLUMNS} FROM flashcards WHERE id = ? AND user_id = ?",
                (card_id, user_id),
            )
            row = cursor.fetchone()
        if not row:
            raise NotFound(f"Flashcard {card_id} not found")
        return row_to_card(row, self.mastery_rules)

    def update_card(self, card_id: int, user_id: str, state: CardStateUpdate) -> Card:
        """Persist new review state and return the stored card."""
        with self._cursor("update card") as cursor:
            cursor.execute(
                """
                UPDATE flashcards
                SET interval_days = ?, repetitions = ?, ease_factor = ?,
                    due_at = ?, last_reviewed_at = ?, updated_at = ?
                WHERE id = ? AND user_id = ?
                """,
                (
                    state.interval_days,
                    state.repetitions,
                    state.ease_factor,
                    database.to_db_timestamp(state.due_at),
                    database.to_db_timestamp(state.last_reviewed_at),
                    database.to_db_timestamp(database.utc_now()),
                    card_id,
                    user_id,
                ),
            )
            if cursor.rowcount == 0:
                raise NotFound(f"Flashcard {card_id} not found")
            cursor.execute(
                f"SELECT {CARD_COLUMNS} FROM flashcards WHERE id = ?",
                (card_id,),
            )
            row = cursor.fetchone()
        return row_to_card(row, self.mastery_rules)

    def create_cards(
        self,
        user_id: str,
        content_id: str,
        content_type: str,
        cards: Iterable[CardFace],
        category: Optional[str] = None,
    ) -> List[Card]:
        """Insert cards with default state, due immediately."""
        now = database.to_db_timestamp(database.utc_now())
        created_ids = []
        with self._cursor("create cards") as cursor:
            for face in cards:
                cursor.execute(
                    """
                    INSERT INTO flashcards (
                        user_id, content_id, content_type, front, back, category,
                        interval_days, repetitions, ease_factor, due_at, last_reviewed_at,
                        created_at, updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, 0, 0, ?, ?, NULL, ?, ?)
                    """,
                    (
                        user_id, content_id, content_type, face.front.strip(), face.back.strip(),
                        category, DEFAULT_EASE_FACTOR, now, now, now,
                    ),
                )
                created_ids.append(cursor.lastrowid)
            if not created_ids:
                return []
            placeholders = ",".join("?" for _ in created_ids)
            cursor.execute(
                f"SELECT {CARD_COLUMNS} FROM flashcards WHERE id IN ({placeholders}) ORDER BY id",
                created_ids,
            )
            rows = cursor.fetchall()
        logger.info("Created %d flashcards for user %s from %s %s",
                    len(rows), user_id, content_type, content_id)
        return [row_to_card(row, self.mastery_rules) for row in rows]

    def list_cards(
        self,
        user_id: str,
        content_id: Optional[str] = None,
        content_type: Optional[str] = None,
        due_only: bool = False,
        now: Optional[datetime] = None,
    ) -> List[Card]:
        clauses = ["user_id = ?"]
        params: list = [user_id]
        if content_id:
            clauses.append("content_id = ?")
            params.append(content_id)
        if content_type:
            clauses.append("content_type = ?")
            params.append(content_type)
        if due_only:
            clauses.append("due_at <= ?")
            params.append(database.to_db_timestamp(now or database.utc_now()))
        where = " AND ".join(clauses)
        with self._cursor("list cards") as cursor:
            cursor.execute(
                f"""
                SELECT {CARD_COLUMNS} FROM flashcards
                WHERE {where}
                ORDER BY due_at ASC, id ASC
                """,
                params,
            )
            rows = cursor.fetchall()
        return [row_to_card(row, self.mastery_rules) for row in rows]

    def delete_card(self, card_id: int, user_id: str) -> None:
        with self._cursor("delete card") as cursor:
            cursor.execute(
                "DELETE FROM flashcards WHERE id = ? AND user_id = ?",
                (card_id, user_id),
            )
            if cursor.rowcount == 0:
                raise NotFound(f"Flashcard {card_id} not found")

    def get_stats(self, user_id: str, now: Optional[datetime] = None) -> FlashcardStats:
        cutoff = database.to_db_timestamp(now or database.utc_now())
        with self._cursor("load stats") as cursor:
            cursor.execute(
                """
                SELECT
                    COUNT(*) AS total,
                    COALESCE(SUM(CASE WHEN due_at <= ? THEN 1 ELSE 0 END), 0) AS due,
                    COALESCE(SUM(CASE WHEN repetitions >= ? AND ease_factor >= ? THEN 1 ELSE 0 END), 0) AS mastered
                FROM flashcards
                WHERE user_id = ?
                """,
                (
                    cutoff,
                    self.mastery_rules["min_repetitions"],
                    self.mastery_rules["min_ease_factor"],
                    user_id,
                ),
            )
            row = cursor.fetchone()
        total, due, mastered = int(row["total"]), int(row["due"]), int(row["mastered"])
        return FlashcardStats(
            due=due,
            total=total,
            mastered=mastered,
            mastery_percent=mastery_percent(mastered, total),
        )
