# yourvoice/services/store.py
from __future__ import annotations

import json
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from yourvoice.core.errors import UpstreamFailure

FEEDBACK = "feedback"
MOODS = "moods"

_ID_PREFIX = {FEEDBACK: "fb", MOODS: "mood"}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(ts: datetime) -> str:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _connect(sqlite_path: Path) -> sqlite3.Connection:
    try:
        con = sqlite3.connect(str(sqlite_path))
    except sqlite3.Error as e:
        raise UpstreamFailure(f"Document store unavailable: {type(e).__name__}: {e}")
    con.row_factory = sqlite3.Row
    return con


def _store_error(e: sqlite3.Error) -> UpstreamFailure:
    return UpstreamFailure(f"Document store error: {type(e).__name__}: {e}")


# -------------------------
# DB initialization
# -------------------------
def init_db(sqlite_path: Path) -> None:
    sqlite_path.parent.mkdir(parents=True, exist_ok=True)

    con = _connect(sqlite_path)
    try:
        cur = con.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS documents (
              collection TEXT NOT NULL,
              id TEXT NOT NULL,
              created TEXT NOT NULL,      -- ISO-8601 UTC, sortable
              updated TEXT NOT NULL,
              body TEXT NOT NULL,         -- JSON document
              PRIMARY KEY (collection, id)
            )
            """
        )
        cur.execute(
            "CREATE INDEX IF NOT EXISTS ix_documents_created ON documents (collection, created)"
        )
        con.commit()
    except sqlite3.Error as e:
        raise _store_error(e)
    finally:
        con.close()


def _row_to_doc(row: sqlite3.Row) -> Dict[str, Any]:
    return json.loads(row["body"])


def new_id(collection: str) -> str:
    return f"{_ID_PREFIX.get(collection, 'doc')}_{uuid.uuid4().hex[:24]}"


# -------------------------
# Core persistence
# -------------------------
def create_document(
    sqlite_path: Path,
    collection: str,
    doc: Dict[str, Any],
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Insert a new document. `id` is generated when missing; `created_at` and
    `updated_at` are always stamped with `now`. Returns the stored document.
    """
    init_db(sqlite_path)
    now = now or utcnow()

    out = dict(doc)
    out.setdefault("id", new_id(collection))
    # the created column drives ordering and `since` filters
    out["created_at"] = _iso(now)
    out["updated_at"] = out["created_at"]

    con = _connect(sqlite_path)
    try:
        cur = con.cursor()
        cur.execute(
            """
            INSERT INTO documents (collection, id, created, updated, body)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                collection,
                out["id"],
                out["created_at"],
                out["updated_at"],
                json.dumps(out, ensure_ascii=False, default=str),
            ),
        )
        con.commit()
        return out
    except sqlite3.Error as e:
        raise _store_error(e)
    finally:
        con.close()


def find_by_id(sqlite_path: Path, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
    init_db(sqlite_path)

    con = _connect(sqlite_path)
    try:
        cur = con.cursor()
        cur.execute(
            "SELECT body FROM documents WHERE collection = ? AND id = ?",
            (collection, doc_id),
        )
        row = cur.fetchone()
        if not row:
            return None
        return _row_to_doc(row)
    except sqlite3.Error as e:
        raise _store_error(e)
    finally:
        con.close()


def find_all(
    sqlite_path: Path,
    collection: str,
    *,
    newest_first: bool = True,
    since: Optional[datetime] = None,
    where: Optional[Dict[str, Any]] = None,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """
    List documents sorted by creation time. `since` keeps documents created at
    or after the given instant; `where` is an equality match on top-level
    document fields.
    """
    init_db(sqlite_path)

    sql = "SELECT body FROM documents WHERE collection = ?"
    params: List[Any] = [collection]
    if since is not None:
        sql += " AND created >= ?"
        params.append(_iso(since))
    sql += " ORDER BY created DESC" if newest_first else " ORDER BY created ASC"

    con = _connect(sqlite_path)
    try:
        cur = con.cursor()
        cur.execute(sql, params)
        docs = [_row_to_doc(r) for r in cur.fetchall()]
    except sqlite3.Error as e:
        raise _store_error(e)
    finally:
        con.close()

    if where:
        docs = [d for d in docs if all(d.get(k) == v for k, v in where.items())]
    if limit is not None:
        docs = docs[: max(0, int(limit))]
    return docs


def find_one(
    sqlite_path: Path,
    collection: str,
    *,
    since: Optional[datetime] = None,
    where: Optional[Dict[str, Any]] = None,
) -> Optional[Dict[str, Any]]:
    docs = find_all(sqlite_path, collection, since=since, where=where, limit=1)
    return docs[0] if docs else None


def update_by_id(
    sqlite_path: Path,
    collection: str,
    doc_id: str,
    changes: Dict[str, Any],
    now: Optional[datetime] = None,
) -> Optional[Dict[str, Any]]:
    """
    Merge `changes` into the stored document. Returns the updated document or
    None when the id is unknown. Read-modify-write without locking: the last
    writer wins.
    """
    init_db(sqlite_path)
    now = now or utcnow()

    con = _connect(sqlite_path)
    try:
        cur = con.cursor()
        cur.execute(
            "SELECT body FROM documents WHERE collection = ? AND id = ?",
            (collection, doc_id),
        )
        row = cur.fetchone()
        if not row:
            return None

        doc = _row_to_doc(row)
        doc.update(changes)
        doc["id"] = doc_id
        doc["updated_at"] = _iso(now)

        cur.execute(
            """
            UPDATE documents
            SET body = ?, updated = ?
            WHERE collection = ? AND id = ?
            """,
            (json.dumps(doc, ensure_ascii=False, default=str), doc["updated_at"], collection, doc_id),
        )
        con.commit()
        return doc
    except sqlite3.Error as e:
        raise _store_error(e)
    finally:
        con.close()


def delete_by_id(sqlite_path: Path, collection: str, doc_id: str) -> bool:
    init_db(sqlite_path)

    con = _connect(sqlite_path)
    try:
        cur = con.cursor()
        cur.execute(
            "DELETE FROM documents WHERE collection = ? AND id = ?",
            (collection, doc_id),
        )
        con.commit()
        return cur.rowcount > 0
    except sqlite3.Error as e:
        raise _store_error(e)
    finally:
        con.close()


def count_documents(sqlite_path: Path, collection: str) -> int:
    init_db(sqlite_path)

    con = _connect(sqlite_path)
    try:
        cur = con.cursor()
        cur.execute("SELECT COUNT(*) AS n FROM documents WHERE collection = ?", (collection,))
        return int(cur.fetchone()["n"])
    except sqlite3.Error as e:
        raise _store_error(e)
    finally:
        con.close()
