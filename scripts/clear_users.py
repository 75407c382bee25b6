import argparse
import os
import sqlite3
from pathlib import Path
from typing import Optional


# Deleted before "users"; all keyed by user_id.
USER_TABLES = ["message_logs", "meals", "preferences"]


def resolve_db_path(override: Optional[str]) -> Path:
    return Path(override or os.getenv("DB_PATH") or "./food_coach.db").expanduser().resolve()


def normalize_phone(raw: str, country_code: str) -> str:
    cleaned = "".join(ch for ch in raw if ch.isdigit() or ch == "+")
    if cleaned.startswith("+"):
        return cleaned
    if cleaned.startswith("0"):
        return f"+{country_code}{cleaned[1:]}"
    if not cleaned.startswith(country_code):
        return f"+{country_code}{cleaned}"
    return f"+{cleaned}"


def find_user_ids(conn: sqlite3.Connection, phones: list[str]) -> list[int]:
    if not phones:
        return []
    placeholders = ",".join("?" for _ in phones)
    rows = conn.execute(f"SELECT id FROM users WHERE phone IN ({placeholders})", phones).fetchall()
    return [int(r[0]) for r in rows]


def _rowcount(cur: sqlite3.Cursor) -> int:
    return cur.rowcount if cur.rowcount is not None else 0


def delete_users(conn: sqlite3.Connection, user_ids: Optional[list[int]]) -> dict[str, int]:
    """Delete the given users (or every user when user_ids is None) and their rows."""
    if user_ids is not None and not user_ids:
        return {t: 0 for t in USER_TABLES + ["users"]}
    counts: dict[str, int] = {}
    if user_ids is None:
        for table in USER_TABLES:
            counts[table] = _rowcount(conn.execute(f"DELETE FROM {table}"))
        counts["users"] = _rowcount(conn.execute("DELETE FROM users"))
        return counts
    placeholders = ",".join("?" for _ in user_ids)
    for table in USER_TABLES:
        counts[table] = _rowcount(conn.execute(f"DELETE FROM {table} WHERE user_id IN ({placeholders})", user_ids))
    counts["users"] = _rowcount(conn.execute(f"DELETE FROM users WHERE id IN ({placeholders})", user_ids))
    return counts


def main() -> int:
    parser = argparse.ArgumentParser(description="Remove WhatsApp users and their meal history from the SQLite DB.")
    parser.add_argument("--phone", action="append", default=[], help="User phone number to delete (repeatable).")
    parser.add_argument("--all", action="store_true", help="Delete every user, meal and message log.")
    parser.add_argument("--db-path", default=None, help="Override SQLite DB path. Defaults to DB_PATH env.")
    parser.add_argument(
        "--country-code",
        default=os.getenv("DEFAULT_PHONE_COUNTRY_CODE", "972"),
        help="Country code applied to local numbers.",
    )
    parser.add_argument("--dry-run", action="store_true", help="Show matched users only; do not delete.")
    parser.add_argument("--yes", action="store_true", help="Confirm destructive operation.")
    args = parser.parse_args()

    if not args.all and not args.phone:
        parser.error("Use --phone <number> or --all")
    if not args.dry_run and not args.yes:
        parser.error("Add --yes to confirm deletion")

    db_path = resolve_db_path(args.db_path)
    if not db_path.exists():
        print(f"DB not found: {db_path}")
        return 1

    conn = sqlite3.connect(str(db_path))
    try:
        print(f"Target DB: {db_path}")
        if args.all:
            user_ids = None
            total = conn.execute("SELECT COUNT(*) FROM users").fetchone()[0]
            print(f"Matched users: {total} (all)")
        else:
            phones = [normalize_phone(p, args.country_code) for p in args.phone if p.strip()]
            user_ids = find_user_ids(conn, phones)
            print(f"Requested phones: {', '.join(phones)}")
            print(f"Matched users: {len(user_ids)}")
        if args.dry_run:
            return 0

        counts = delete_users(conn, user_ids)
        conn.commit()
        print("Deleted rows:")
        for table, count in counts.items():
            print(f"  {table}: {count}")
    finally:
        conn.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
