"""Durham interpreter module.

This module runs Durham programs: source text is preprocessed into
period-delimited statements, parsed into statement variants (see
`parser.py`) and executed by a per-run `Session` that owns the variable
tables, the function table and the output buffer.

Values are plain Python `int` (Number) or `str` (Text). Expressions are
resolved by a fixed, ordered list of rules; the order of the operator checks
*is* the operator precedence, so `a durham b york c` always concatenates
first, whatever arithmetic convention would say.

Almost nothing is an error. Unknown statements are skipped, unknown names
evaluate to their own text (and to 0 inside arithmetic), unknown functions
return 0. Only a runaway for-loop, an oversized output, or an exception raised
while evaluating (division by zero, unbounded recursion) ends a run, and
`Interpreter.run` turns that into a failure result.
"""

import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Union

from . import subprocess_runner
from .parser import (
    Assign,
    Declare,
    ExprStmt,
    For,
    FunctionDecl,
    If,
    Print,
    Return,
    Statement,
    parse,
    split_call,
)
from .preprocessor import preprocess

logger = logging.getLogger(__name__)

Value = Union[int, str]

# Durham colleges, in numeral order
NUMERALS: Dict[str, int] = {
    "butler": 0,
    "chads": 1,
    "marys": 2,
    "collingwood": 3,
    "johns": 4,
    "castle": 5,
    "cuths": 6,
    "trevs": 7,
    "aidans": 8,
    "snow": 9,
    "grey": 10,
    "stephenson": 11,
    "hatfield": 12,
    "hildbede": 13,
    "south": 14,
    "vanmildert": 15,
    "ustinov": 16,
}

INT_LITERAL = re.compile(r"[+-]?\d+")
STRING_LITERAL = re.compile(r'"([^"]*)"', re.S)
STRING_WRAPPER = re.compile(r'begin\s+"([^"]*)"\s+end', re.S)
RELATIONS = ("lesser", "greater", "equals")


class DurhamError(Exception):
    """Raised for runtime failures that abort a whole Durham run."""


class LoopLimitExceeded(DurhamError):
    def __init__(self, limit: int):
        super().__init__("Loop exceeded maximum iterations")
        self.limit = limit


class _ReturnSignal(Exception):
    # unwinds a function body on `mcs begin ... end`
    def __init__(self, value: Value):
        super().__init__()
        self.value = value


def to_text(value: Value) -> str:
    return value if isinstance(value, str) else str(value)


def parse_int(text: str) -> Optional[int]:
    text = text.strip()
    return int(text) if INT_LITERAL.fullmatch(text) else None


def to_number(value: Value) -> int:
    """Coerce a value for arithmetic; text that is not an integer literal is 0."""
    if isinstance(value, int):
        return value
    n = parse_int(value)
    return 0 if n is None else n


def compose_numeral(text: str) -> Optional[int]:
    """Join comma-separated college names digit-string-wise: `marys, marys` -> 22.

    Unknown components contribute nothing. Components worth 10 or more add
    two digits each (`grey, chads` -> 101).
    """
    digits = "".join(str(NUMERALS[p.strip()]) for p in text.split(",") if p.strip() in NUMERALS)
    return int(digits) if digits else None


class Environment:
    """Variable and function tables for one run.

    `numeric_vars` is the general binding table written by `number` and by
    plain `x is ...` assignments; it is the table a function call snapshots
    and restores. `text_vars` is only written by `text` declarations and is
    never restored.
    """

    def __init__(self):
        self.numeric_vars: Dict[str, Value] = {}
        self.text_vars: Dict[str, str] = {}
        self.functions: Dict[str, FunctionDecl] = {}


class Session:
    """Executes one parsed program against a fresh Environment."""

    def __init__(self, max_loop: int, max_output_chars: int):
        self.env = Environment()
        self.output: List[str] = []
        self.max_loop = max_loop
        self.max_output_chars = max_output_chars
        self._output_chars = 0
        self._call_depth = 0
        self._handlers: Dict[type, Callable[[Any], None]] = {
            Print: self._exec_print,
            Declare: self._exec_declare,
            Assign: self._exec_assign,
            If: self._exec_if,
            For: self._exec_for,
            FunctionDecl: self._exec_function_decl,
            Return: self._exec_return,
            ExprStmt: self._exec_call,
        }

    # --- Dispatcher ----------------------------------------------------
    def execute(self, statements: List[Statement]) -> None:
        for stmt in statements:
            logger.debug("exec %s", stmt)
            self._handlers[type(stmt)](stmt)

    def _emit(self, text: str) -> None:
        self._output_chars += len(text)
        if self._output_chars > self.max_output_chars:
            raise DurhamError("Output length limit reached")
        self.output.append(text)

    def _exec_print(self, stmt: Print) -> None:
        self._emit(to_text(self.evaluate(stmt.expr)))

    def _exec_declare(self, stmt: Declare) -> None:
        value = self.evaluate(stmt.expr)
        if stmt.kind == "text":
            self.env.text_vars[stmt.name] = to_text(value)
        else:
            self.env.numeric_vars[stmt.name] = value

    def _exec_assign(self, stmt: Optional[Assign]) -> None:
        if stmt is None:
            return
        self.env.numeric_vars[stmt.name] = self.evaluate(stmt.expr)

    def _exec_if(self, stmt: If) -> None:
        if self.condition(stmt.condition):
            self.execute(stmt.then)
        elif stmt.otherwise:
            self.execute(stmt.otherwise)

    def _exec_for(self, stmt: For) -> None:
        self._exec_assign(stmt.init)
        iterations = 0
        while self.condition(stmt.condition):
            if iterations >= self.max_loop:
                raise LoopLimitExceeded(self.max_loop)
            self.execute(stmt.body)
            self._exec_assign(stmt.increment)
            iterations += 1

    def _exec_function_decl(self, stmt: FunctionDecl) -> None:
        if stmt.name in self.env.functions:
            logger.debug("redefining function %s", stmt.name)
        self.env.functions[stmt.name] = stmt

    def _exec_return(self, stmt: Return) -> None:
        if self._call_depth == 0:
            # nothing to return from at top level
            return
        raise _ReturnSignal(self.evaluate(stmt.expr))

    def _exec_call(self, stmt: ExprStmt) -> None:
        if stmt.name in self.env.functions:
            self.call(stmt.name, [self.evaluate(a) for a in stmt.args])

    # --- Function invoker ------------------------------------------------
    def call(self, name: str, args: List[Value]) -> Value:
        """Invoke a declared function with dynamic scope over numeric_vars.

        Parameters are bound into the live numeric table; the whole table is
        restored to its pre-call contents afterwards. Text variables changed
        by the body stay changed.
        """
        func = self.env.functions.get(name)
        if func is None:
            return 0
        saved = dict(self.env.numeric_vars)
        for idx, param in enumerate(func.params):
            self.env.numeric_vars[param] = args[idx] if idx < len(args) else 0
        logger.debug("call %s(%s)", name, ", ".join(to_text(a) for a in args))
        self._call_depth += 1
        try:
            self.execute(func.body)
        except _ReturnSignal as ret:
            return ret.value
        finally:
            self._call_depth -= 1
            self.env.numeric_vars = saved
        return 0

    # --- Expression evaluator --------------------------------------------
    def evaluate(self, expr: str) -> Value:  # noqa: C901
        expr = expr.strip()

        m = STRING_LITERAL.fullmatch(expr)
        if m:
            return m.group(1)

        m = STRING_WRAPPER.fullmatch(expr)
        if m:
            return m.group(1)

        if " durham " in expr:
            return "".join(to_text(self.evaluate(p)) for p in expr.split(" durham "))

        if " york " in expr:
            return self._fold(expr, " york ", lambda a, b: a * b)

        if " edinburgh " in expr:
            return self._fold(expr, " edinburgh ", lambda a, b: a // b)

        if " newcastle " in expr:
            return self._fold(expr, " newcastle ", lambda a, b: a - b)

        call = split_call(expr)
        if call and call[0] in self.env.functions:
            name, arg_texts = call
            return self.call(name, [self.evaluate(a) for a in arg_texts])

        if expr in self.env.text_vars:
            return self.env.text_vars[expr]
        if expr in self.env.numeric_vars:
            return self.env.numeric_vars[expr]

        if "," in expr:
            composed = compose_numeral(expr)
            if composed is not None:
                return composed

        if expr in NUMERALS:
            return NUMERALS[expr]

        n = parse_int(expr)
        if n is not None:
            return n

        return expr

    def _fold(self, expr: str, op: str, combine: Callable[[int, int], int]) -> int:
        # every operand is evaluated left to right and combined from the left
        operands = [to_number(self.evaluate(p)) for p in expr.split(op)]
        result = operands[0]
        for operand in operands[1:]:
            result = combine(result, operand)
        return result

    # --- Condition evaluator ---------------------------------------------
    def condition(self, cond: str) -> bool:
        for relation in RELATIONS:
            sep = f" {relation} "
            if sep in cond:
                left, right = cond.split(sep, 1)
                return compare(relation, self.evaluate(left), self.evaluate(right))
        return False


def compare(relation: str, left: Value, right: Value) -> bool:
    """Compare two values; `equals` is strict about type.

    A Number against a Text compares numerically when the text is an integer
    literal and is otherwise false.
    """
    if relation == "equals":
        return type(left) is type(right) and left == right
    if isinstance(left, int) != isinstance(right, int):
        left_n = left if isinstance(left, int) else parse_int(left)
        right_n = right if isinstance(right, int) else parse_int(right)
        if left_n is None or right_n is None:
            return False
        left, right = left_n, right_n
    if relation == "lesser":
        return left < right  # type: ignore[operator]
    return left > right  # type: ignore[operator]


class Interpreter:
    """Top-level Durham interpreter.

    Tunable attributes (defaults are set in __init__):
    - max_loop: iteration ceiling for a single for-loop
    - max_output_chars: cap on the total printed text of one run

    `run` can be called repeatedly; every call starts from empty tables.
    """

    def __init__(self):
        self.max_loop = 10000
        self.max_output_chars = 100000

    def run(self, code: str, settings: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Run Durham source text and return `{"success": bool, "output": str}`.

        On success `output` is the printed values joined by newlines. On
        failure it is `"Error: <message>"` and nothing printed before the
        failure is returned.
        """
        settings = settings or {}
        if settings.get("use_subprocess"):
            return self._run_in_subprocess(code, settings)

        session = Session(
            max_loop=int(settings.get("max_loop", self.max_loop)),
            max_output_chars=int(settings.get("max_output_chars", self.max_output_chars)),
        )
        try:
            statements = preprocess(code)
            logger.debug("preprocessed %d statements", len(statements))
            session.execute(parse(statements))
        except Exception as e:
            logger.warning("durham run failed: %s", e)
            return {"success": False, "output": f"Error: {e}"}
        return {"success": True, "output": "\n".join(session.output)}

    def _run_in_subprocess(self, code: str, settings: Dict[str, Any]) -> Dict[str, Any]:
        # Same contract as `run`, but executed by a resource-limited child
        # process so runaway recursion cannot take the caller down with it.
        try:
            rc, out, err = subprocess_runner.run_code_in_subprocess(
                code,
                timeout_s=int(settings.get("timeout_s", 2)),
                max_loop=int(settings.get("max_loop", self.max_loop)),
            )
        except Exception as e:
            return {"success": False, "output": f"Error: {e}"}
        if rc == -1:
            return {"success": False, "output": "Error: Time limit exceeded"}
        try:
            payload = json.loads(out)
        except ValueError:
            return {"success": False, "output": f"Error: {err.strip() or 'worker failed'}"}
        return {"success": bool(payload.get("success")), "output": str(payload.get("output", ""))}
