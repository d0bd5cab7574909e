"""Command-line views over the workflow audit tables.

    python -m observability.admin_cli --tail-executions 20
    python -m observability.admin_cli --tail-compactions 5 --user u-123
    python -m observability.admin_cli --user-report u-123
"""
from __future__ import annotations

import argparse
import sqlite3
from typing import List, Optional

from services.quota import SqliteQuotaService
from storage.sqlite import get_conn
from storage.store import SqliteStore


def _recent(table: str, columns: str, limit: int, user_id: Optional[str]) -> List[sqlite3.Row]:
    query = f"SELECT {columns} FROM {table}"
    params: list = []
    if user_id:
        query += " WHERE user_id = ?"
        params.append(user_id)
    query += " ORDER BY id DESC LIMIT ?"
    params.append(limit)
    with get_conn() as conn:
        return conn.execute(query, params).fetchall()


def format_execution(row: sqlite3.Row) -> str:
    line = (
        f"[{row['timestamp']}] {row['user_id']}/{row['session_id']} "
        f"{row['node_name']} -> {row['next_node']} ({row['execution_ms']}ms)"
    )
    if row["error_message"]:
        line += f" error={row['error_message']}"
    return line


def format_compaction(row: sqlite3.Row) -> str:
    return (
        f"[{row['timestamp']}] {row['user_id']}/{row['session_id']} "
        f"{row['original_length']} -> {row['compacted_length']} chars ratio={row['compression_ratio']:.2f} "
        f"skills={row['skills_preserved']} workflows={row['workflows_preserved']}"
    )


def tail_executions(limit: int = 20, user_id: Optional[str] = None) -> List[str]:
    rows = _recent(
        "workflow_executions",
        "timestamp, user_id, session_id, node_name, next_node, execution_ms, error_message",
        limit,
        user_id,
    )
    return [format_execution(row) for row in rows]


def tail_compactions(limit: int = 20, user_id: Optional[str] = None) -> List[str]:
    rows = _recent(
        "context_compactions",
        "timestamp, user_id, session_id, original_length, compacted_length, compression_ratio, "
        "skills_preserved, workflows_preserved",
        limit,
        user_id,
    )
    return [format_compaction(row) for row in rows]


def user_report(user_id: str) -> List[str]:
    """Stored sessions for ``user_id`` followed by the remaining daily quota."""

    lines = [
        f"{row['id']} tab={row['tab_id']} status={row['status']} stage={row['stage']} "
        f"exchanges={row['exchange_count']} score={row['threshold_score']:.1f}"
        for row in SqliteStore().list_sessions(user_id)
    ]
    decision = SqliteQuotaService().status(user_id)
    lines.append(f"quota remaining={decision.remaining}/{decision.limit} resets={decision.reset_at}")
    return lines


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Inspect knowledge interview audit tables")
    parser.add_argument("--tail-executions", type=int, help="Show the latest workflow node executions")
    parser.add_argument("--tail-compactions", type=int, help="Show the latest context compactions")
    parser.add_argument("--user", help="Only show rows for this user id")
    parser.add_argument("--user-report", metavar="USER_ID", help="Show stored sessions and quota for one user")
    args = parser.parse_args(argv)

    if args.tail_executions:
        for line in tail_executions(args.tail_executions, args.user):
            print(line)
    if args.tail_compactions:
        for line in tail_compactions(args.tail_compactions, args.user):
            print(line)
    if args.user_report:
        for line in user_report(args.user_report):
            print(line)


if __name__ == "__main__":
    main()
