"""FastAPI application entrypoints for the Durham playground.

This module exposes HTTP endpoints used by the web editor and tests. Each
`/run` request constructs a fresh `Interpreter` so no variable or function
table is shared between requests. Server-side caps are enforced so clients
can lower runtime limits but never raise them.
"""

import logging
import time
from typing import Any, Dict, Optional

from fastapi import FastAPI
from pydantic import BaseModel

from .. import db
from ..durham.interpreter import Interpreter

logger = logging.getLogger(__name__)

app = FastAPI(title="Durham API", version="0.1")


def _cap_settings(settings: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Enforce server-side safe caps for runtime tunables.

    A fresh `Interpreter()` supplies the ceilings; the client's requested
    values are applied up to those ceilings. `use_subprocess` and `timeout_s`
    pass through, the latter clamped to 5 seconds.

    Returns a dict suitable for passing directly into `Interpreter.run`.
    """
    defaults = Interpreter()
    safe = {
        "max_loop": defaults.max_loop,
        "max_output_chars": defaults.max_output_chars,
    }
    if not settings:
        return safe
    caps = {}
    caps["max_loop"] = min(int(settings.get("max_loop", safe["max_loop"])), safe["max_loop"])
    caps["max_output_chars"] = min(int(settings.get("max_output_chars", safe["max_output_chars"])), safe["max_output_chars"])
    if settings.get("use_subprocess"):
        caps["use_subprocess"] = True
        caps["timeout_s"] = min(int(settings.get("timeout_s", 2)), 5)
    return caps


@app.on_event('startup')
def startup():
    """FastAPI startup event: initialize the database schema."""
    db.init_db()


class RunRequest(BaseModel):
    """Request body for `/run`.

    Fields:
        code: Durham source text.
        settings: optional runtime tunables; capped server-side.
        script_id: optional id to associate this run with a saved script.
    """
    code: str
    settings: Optional[Dict[str, Any]] = None
    script_id: Optional[int] = None


@app.post("/run")
def run_code(req: RunRequest):
    """Run Durham code with a per-request interpreter.

    A plain function so FastAPI runs it in its threadpool; subprocess mode
    waits on the worker process.

    The body always has the shape {success, output, warnings, errors,
    duration_ms}. A failed Durham program is still a normal response
    (`success` false, message in `output`); `errors` is only set when the
    server itself failed.
    """
    start = time.time()
    try:
        capped = _cap_settings(req.settings or {})
        it = Interpreter()
        it.max_loop = capped.get("max_loop", it.max_loop)
        it.max_output_chars = capped.get("max_output_chars", it.max_output_chars)
        result = it.run(req.code, settings=capped)
    except Exception as e:
        logger.exception("run failed")
        return {
            "success": False,
            "output": "",
            "warnings": [],
            "duration_ms": int((time.time() - start) * 1000),
            "errors": {"code": "SERVER_ERROR", "message": str(e)},
        }
    result["duration_ms"] = int((time.time() - start) * 1000)
    result["warnings"] = []
    result["errors"] = None

    # persist the run (non-fatal; on failure we append a warning)
    try:
        db.save_run(
            req.script_id,
            result["success"],
            len(result["output"]),
            result["duration_ms"],
        )
    except Exception as e:
        result["warnings"].append(f"Failed to persist run: {e}")

    return result


class SaveScriptRequest(BaseModel):
    title: str
    code: str


@app.post('/save')
async def save_script(req: SaveScriptRequest):
    try:
        script_id = db.save_script(req.title, req.code)
    except Exception as e:
        return {'error': str(e)}
    return {'script_id': script_id}


@app.get('/scripts')
async def list_scripts():
    return db.list_scripts()


@app.get('/scripts/{script_id}')
async def get_script(script_id: int):
    s = db.get_script(script_id)
    if not s:
        return {'error': 'not found'}
    return s


@app.get('/stats')
async def list_stats(script_id: Optional[int] = None):
    return db.list_runs(script_id)
