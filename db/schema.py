# SQL schema for FlashDeck database

SCHEMA_VERSION = 1

SCHEMA_SQL = """
-- Flashcards (with SM-2 fields)
CREATE TABLE IF NOT EXISTS flashcards (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    content_id TEXT NOT NULL,
    content_type TEXT NOT NULL CHECK(content_type IN ('article', 'course', 'entity')),
    front TEXT NOT NULL,
    back TEXT NOT NULL,
    category TEXT,
    interval_days INTEGER NOT NULL DEFAULT 0 CHECK(interval_days >= 0),
    repetitions INTEGER NOT NULL DEFAULT 0 CHECK(repetitions >= 0),
    ease_factor REAL NOT NULL DEFAULT 2.5 CHECK(ease_factor >= 1.3 AND ease_factor <= 2.6),
    due_at TEXT NOT NULL,
    last_reviewed_at TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""

# Indexes for performance
INDEXES_SQL = """
CREATE INDEX IF NOT EXISTS idx_flashcards_user_due ON flashcards (user_id, due_at);
CREATE INDEX IF NOT EXISTS idx_flashcards_content ON flashcards (content_id, content_type);
"""
