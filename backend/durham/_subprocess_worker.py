"""Subprocess worker that runs one Durham program.

This module is executed as a short-lived subprocess (`python -m
backend.durham._subprocess_worker`). It reads a single JSON object from stdin
with shape {"code": "...", "max_loop": 10000}, runs the code with a fresh
`Interpreter` and writes the run result {"success": ..., "output": ...} to
stdout as JSON.

The calling process enforces wall-clock timeouts and resource caps.
"""

import json
import sys
from typing import Any, Dict

from backend.durham.interpreter import Interpreter


def run_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    it = Interpreter()
    if "max_loop" in payload:
        it.max_loop = int(payload["max_loop"])
    return it.run(str(payload.get("code", "")))


def main() -> None:
    raw = sys.stdin.read()
    try:
        payload = json.loads(raw)
    except ValueError as e:
        print(json.dumps({"success": False, "output": f"Error: bad payload: {e}"}))
        sys.exit(1)

    print(json.dumps(run_payload(payload)))


if __name__ == "__main__":
    main()
