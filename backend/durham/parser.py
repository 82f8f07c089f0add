"""Statement parser and block scanners for Durham.

`parse` turns the flat statement list produced by the preprocessor into a
tree of statement variants. Compound forms (if / for / function) own their
child statement lists, which are located with `find_block`: a forward scan
that counts nested openers until the matching `back` terminator.

Malformed input is never an error here. A statement that fits no form is
dropped, and a block whose header does not match consumes only the header
statement so that the following statements are parsed as ordinary ones.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple, Union

logger = logging.getLogger(__name__)

TERMINATOR = "back"
ELSE_MARKER = "back else front"
HEADER_END = "end front"

# if and for bodies nest on these openers; function bodies on their own set
BLOCK_OPENERS = ("if begin", "for begin", "while begin")
FUNCTION_OPENERS = ("function ", "for begin", "if begin")

PRINT_FULL = re.compile(r"tlc\s+begin\s+(.+)\s+end", re.S)
PRINT_SHORT = re.compile(r"tlc\s+begin\s+(.+?)\s+end", re.S)
RETURN_FULL = re.compile(r"mcs\s+begin\s+(.+)\s+end", re.S)
RETURN_SHORT = re.compile(r"mcs\s+begin\s+(.+?)\s+end", re.S)
NUMBER_DECL = re.compile(r"number\s+(\w+)\s+is\s+(.+)", re.S)
TEXT_DECL = re.compile(r"text\s+(\w+)\s+is\s+(.+)", re.S)
IF_HEADER = re.compile(r"if begin (.+?) end front", re.S)
FOR_HEADER = re.compile(r"for begin\s+(.+?)\s+end\s+front", re.S)
FUNCTION_HEADER = re.compile(r"function\s+(\w+)\s+begin\s+(.+?)\s+end\s+front", re.S)
CALL_FORM = re.compile(r"(\w+)\s+begin\s+(.+)\s+end", re.S)


@dataclass
class Print:
    expr: str


@dataclass
class Declare:
    kind: str  # "number" or "text"
    name: str
    expr: str


@dataclass
class Assign:
    name: str
    expr: str


@dataclass
class If:
    condition: str
    then: List["Statement"] = field(default_factory=list)
    otherwise: List["Statement"] = field(default_factory=list)


@dataclass
class For:
    init: Optional[Assign]
    condition: str
    increment: Optional[Assign]
    body: List["Statement"] = field(default_factory=list)


@dataclass
class FunctionDecl:
    name: str
    params: List[str]
    body: List["Statement"] = field(default_factory=list)


@dataclass
class Return:
    expr: str


@dataclass
class ExprStmt:
    """A bare call `name begin a and b end`, kept for its side effects."""
    name: str
    args: List[str]


Statement = Union[Print, Declare, Assign, If, For, FunctionDecl, Return, ExprStmt]


def split_call(text: str) -> Optional[Tuple[str, List[str]]]:
    """Split `name begin a and b end` into the name and trimmed argument texts."""
    m = CALL_FORM.fullmatch(text.strip())
    if not m:
        return None
    return m.group(1), [a.strip() for a in m.group(2).split(" and ")]


def parse_assignment(text: str) -> Optional[Assign]:
    parts = text.split(" is ")
    if len(parts) != 2:
        return None
    return Assign(parts[0].strip(), parts[1].strip())


def _extract(full: "re.Pattern", short: "re.Pattern", stmt: str) -> Optional[str]:
    # prefer everything up to the last `end`; fall back to the first one
    m = full.fullmatch(stmt) or short.search(stmt)
    return m.group(1).strip() if m else None


def find_block(
    statements: Sequence[str],
    start: int,
    openers: Tuple[str, ...],
    split_else: bool = False,
) -> Tuple[List[str], List[str], int]:
    """Collect a block body starting at `start` until its matching terminator.

    Depth starts at 1; every statement beginning with one of `openers` opens a
    nested block and every bare `back` closes one. With `split_else`, a
    `back else front` at depth 1 separates the first branch from the second.

    Returns (first_branch, second_branch, terminator_index). When the block is
    never closed the terminator index is `len(statements)`.
    """
    branches: List[List[str]] = [[]]
    depth = 1
    i = start
    while i < len(statements):
        s = statements[i].strip()
        if s.startswith(openers):
            depth += 1
        if s == TERMINATOR:
            depth -= 1
            if depth == 0:
                break
        if split_else and s == ELSE_MARKER and depth == 1:
            if len(branches) == 1:
                branches.append([])
            i += 1
            continue
        branches[-1].append(s)
        i += 1
    second = branches[1] if len(branches) > 1 else []
    return branches[0], second, i


def _scan_if(statements: Sequence[str], start: int) -> Tuple[Optional[If], int]:
    m = IF_HEADER.search(statements[start])
    if not m:
        return None, start
    then, otherwise, end = find_block(statements, start + 1, BLOCK_OPENERS, split_else=True)
    logger.debug("if block %d..%d (then=%d, else=%d)", start, end, len(then), len(otherwise))
    return If(m.group(1), parse(then), parse(otherwise)), end


def _scan_for(statements: Sequence[str], start: int) -> Tuple[Optional[For], int]:
    # the header's own periods were consumed by the preprocessor; glue it back
    header = statements[start]
    header_end = start
    while header_end < len(statements) and HEADER_END not in header:
        header_end += 1
        if header_end < len(statements):
            header += ". " + statements[header_end]

    remainder = ""
    pos = header.find(HEADER_END)
    if pos != -1:
        remainder = header[pos + len(HEADER_END):].strip()
        header = header[: pos + len(HEADER_END)]

    m = FOR_HEADER.search(header)
    if not m:
        return None, start
    clauses = [c.strip() for c in re.split(r"\.\s*", m.group(1).strip())]
    if len(clauses) < 3:
        logger.debug("for header needs 3 clauses, got %r", clauses)
        return None, header_end

    body, _, end = find_block(statements, header_end + 1, BLOCK_OPENERS)
    if remainder:
        body.insert(0, remainder)
    logger.debug("for block %d..%d (body=%d)", start, end, len(body))
    init, condition, increment = clauses[:3]
    return For(parse_assignment(init), condition, parse_assignment(increment), parse(body)), end


def _scan_function(statements: Sequence[str], start: int) -> Tuple[Optional[FunctionDecl], int]:
    m = FUNCTION_HEADER.search(statements[start])
    if not m:
        return None, start
    params = [p.strip() for p in m.group(2).split(" and ")]
    body, _, end = find_block(statements, start + 1, FUNCTION_OPENERS)
    logger.debug("function %s(%s) %d..%d", m.group(1), ", ".join(params), start, end)
    return FunctionDecl(m.group(1), params, parse(body)), end


def _parse_simple(stmt: str) -> Optional[Statement]:
    if stmt.startswith("tlc begin"):
        expr = _extract(PRINT_FULL, PRINT_SHORT, stmt)
        return Print(expr) if expr is not None else None
    if stmt.startswith("number "):
        m = NUMBER_DECL.match(stmt)
        return Declare("number", m.group(1), m.group(2).strip()) if m else None
    if stmt.startswith("text "):
        m = TEXT_DECL.match(stmt)
        return Declare("text", m.group(1), m.group(2).strip()) if m else None
    if stmt.startswith("mcs begin"):
        expr = _extract(RETURN_FULL, RETURN_SHORT, stmt)
        return Return(expr) if expr is not None else None
    if " is " in stmt:
        return parse_assignment(stmt)
    call = split_call(stmt)
    if call:
        return ExprStmt(*call)
    return None


def parse(statements: Sequence[str]) -> List[Statement]:
    """Parse a statement list into statement variants, dropping unknown ones."""
    tree: List[Statement] = []
    i = 0
    while i < len(statements):
        stmt = statements[i].strip()
        if stmt.startswith("function "):
            node, i = _scan_function(statements, i)
        elif stmt.startswith("if begin"):
            node, i = _scan_if(statements, i)
        elif stmt.startswith("for begin"):
            node, i = _scan_for(statements, i)
        else:
            node = _parse_simple(stmt)
        if node is None:
            logger.debug("skipping statement %r", stmt)
        else:
            tree.append(node)
        i += 1
    return tree
