"""SQLite schema migrations."""
from __future__ import annotations

import os
import sqlite3
from typing import Iterable

SCHEMA: Iterable[str] = [
    """
CREATE TABLE IF NOT EXISTS interview_sessions (
  id TEXT PRIMARY KEY,
  user_id TEXT NOT NULL,
  tab_id TEXT NOT NULL,
  status TEXT NOT NULL,
  stage TEXT NOT NULL,
  exchange_count INTEGER NOT NULL,
  threshold_score REAL NOT NULL,
  snapshot_json TEXT NOT NULL,
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL,
  completed_at TEXT
);
""",
    """
CREATE INDEX IF NOT EXISTS idx_interview_sessions_user ON interview_sessions (user_id, status);
""",
    """
CREATE TABLE IF NOT EXISTS global_contexts (
  user_id TEXT PRIMARY KEY,
  context_text TEXT NOT NULL,
  skills_json TEXT NOT NULL,
  workflows_json TEXT NOT NULL,
  last_session_id TEXT,
  version INTEGER NOT NULL,
  updated_at TEXT NOT NULL
);
""",
    """
CREATE TABLE IF NOT EXISTS user_profiles (
  user_id TEXT PRIMARY KEY,
  name TEXT,
  email TEXT,
  skills_json TEXT NOT NULL DEFAULT '[]',
  linkedin_connected INTEGER NOT NULL DEFAULT 0,
  updated_at TEXT NOT NULL
);
""",
    """
CREATE TABLE IF NOT EXISTS datasets (
  id TEXT PRIMARY KEY,
  user_id TEXT NOT NULL,
  session_id TEXT NOT NULL,
  name TEXT NOT NULL,
  description TEXT NOT NULL,
  instance_count INTEGER NOT NULL,
  average_quality_score REAL NOT NULL,
  created_at TEXT NOT NULL
);
""",
    """
CREATE TABLE IF NOT EXISTS generated_instances (
  id TEXT PRIMARY KEY,
  dataset_id TEXT NOT NULL,
  user_id TEXT NOT NULL,
  session_id TEXT NOT NULL,
  question TEXT NOT NULL,
  answer TEXT NOT NULL,
  tags_json TEXT NOT NULL,
  category TEXT,
  difficulty TEXT,
  quality_score REAL NOT NULL,
  skills_referenced_json TEXT NOT NULL,
  workflows_referenced_json TEXT NOT NULL,
  generated_at TEXT NOT NULL
);
""",
    """
CREATE TABLE IF NOT EXISTS user_quotas (
  user_id TEXT PRIMARY KEY,
  tier TEXT NOT NULL,
  daily_limit INTEGER NOT NULL,
  used INTEGER NOT NULL,
  window_start TEXT NOT NULL
);
""",
    """
CREATE TABLE IF NOT EXISTS workflow_executions (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  timestamp TEXT NOT NULL,
  user_id TEXT NOT NULL,
  session_id TEXT NOT NULL,
  node_name TEXT NOT NULL,
  next_node TEXT,
  execution_ms INTEGER NOT NULL,
  output_json TEXT NOT NULL,
  error_message TEXT
);
""",
    """
CREATE TABLE IF NOT EXISTS context_compactions (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  timestamp TEXT NOT NULL,
  user_id TEXT NOT NULL,
  session_id TEXT NOT NULL,
  original_length INTEGER NOT NULL,
  compacted_length INTEGER NOT NULL,
  compression_ratio REAL NOT NULL,
  skills_preserved INTEGER NOT NULL,
  workflows_preserved INTEGER NOT NULL
);
""",
]


def migrate(db_path: str = "data/knowledge.db") -> None:
    """Apply schema migrations to the SQLite database."""

    directory = os.path.dirname(db_path) or "."
    os.makedirs(directory, exist_ok=True)
    conn = sqlite3.connect(db_path)
    try:
        cur = conn.cursor()
        for stmt in SCHEMA:
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()


if __name__ == "__main__":
    migrate()
