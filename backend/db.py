import os
import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Optional

DEFAULT_DB_PATH = Path(__file__).parent / 'durham.db'


def db_path() -> Path:
    """Return the sqlite file to use; `DURHAM_DB_PATH` overrides the default.

    The variable is read on every call so tests can point the app at a
    temporary file after import.
    """
    return Path(os.environ.get('DURHAM_DB_PATH') or DEFAULT_DB_PATH)


def get_conn():
    """Return a new sqlite3 connection configured to return rows as dict-like objects.

    We create a fresh connection per-call. For the small scale of this project
    this simple approach is fine.
    """
    conn = sqlite3.connect(str(db_path()))
    conn.row_factory = sqlite3.Row
    return conn


def init_db():
    """Ensure the database file and required tables exist.

    This is idempotent and safe to call at application startup.
    """
    db_path().parent.mkdir(parents=True, exist_ok=True)
    conn = get_conn()
    cur = conn.cursor()
    cur.execute('''
    CREATE TABLE IF NOT EXISTS Scripts (
      script_id INTEGER PRIMARY KEY,
      title TEXT NOT NULL,
      code_text TEXT NOT NULL,
      created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    ''')
    cur.execute('''
    CREATE TABLE IF NOT EXISTS Runs (
      run_id INTEGER PRIMARY KEY,
      script_id INTEGER NULL,
      success INTEGER NOT NULL,
      output_chars INTEGER,
      duration_ms INTEGER,
      created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    ''')
    conn.commit()
    conn.close()


def save_script(title: str, code_text: str) -> int:
    """Persist a Durham script and return the new script_id."""
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        'INSERT INTO Scripts (title, code_text) VALUES (?, ?)',
        (title, code_text),
    )
    script_id = cur.lastrowid
    conn.commit()
    conn.close()
    return script_id


def list_scripts() -> List[Dict[str, Any]]:
    """Return a list of saved scripts (id, title, created_at) ordered by newest."""
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        'SELECT script_id, title, created_at FROM Scripts '
        'ORDER BY created_at DESC, script_id DESC'
    )
    rows = cur.fetchall()
    conn.close()
    return [dict(r) for r in rows]


def get_script(script_id: int) -> Optional[Dict[str, Any]]:
    """Fetch a single script by id, returning None if not found."""
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        'SELECT script_id, title, code_text, created_at FROM Scripts '
        'WHERE script_id = ?',
        (script_id,),
    )
    row = cur.fetchone()
    conn.close()
    return dict(row) if row else None


def save_run(
    script_id: Optional[int],
    success: bool,
    output_chars: Optional[int],
    duration_ms: Optional[int],
) -> int:
    """Persist a run row and return its run_id.

    Callers should treat this operation as non-fatal: if saving fails, the API
    still returns the interpreter result.
    """
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        """
        INSERT INTO Runs (script_id, success, output_chars, duration_ms)
        VALUES (?, ?, ?, ?)
        """,
        (script_id, int(bool(success)), output_chars, duration_ms),
    )
    run_id = cur.lastrowid
    conn.commit()
    conn.close()
    return run_id


def list_runs(script_id: Optional[int] = None) -> List[Dict[str, Any]]:
    """List run rows, newest first, optionally filtering by script_id."""
    conn = get_conn()
    cur = conn.cursor()
    columns = "run_id, script_id, success, output_chars, duration_ms, created_at"
    if script_id:
        cur.execute(
            f"SELECT {columns} FROM Runs WHERE script_id = ? ORDER BY created_at DESC, run_id DESC",
            (script_id,),
        )
    else:
        cur.execute(f"SELECT {columns} FROM Runs ORDER BY created_at DESC, run_id DESC")
    rows = cur.fetchall()
    conn.close()
    out = []
    for r in rows:
        d = dict(r)
        d['success'] = bool(d['success'])
        out.append(d)
    return out
