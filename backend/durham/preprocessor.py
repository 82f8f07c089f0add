"""Source preprocessing for Durham programs.

Durham has no lexer: a program is cut into statements on every period after
whole-line comments (a line holding nothing but a double-quoted string) have
been removed. A period inside a string literal still ends the statement.
"""

import re
from typing import List

COMMENT_LINE = re.compile(r'^"[^"]*"$')


def strip_comments(source: str) -> str:
    """Drop lines whose trimmed text is exactly one quoted string."""
    kept = [line for line in source.split("\n") if not COMMENT_LINE.match(line.strip())]
    return "\n".join(kept)


def preprocess(source: str) -> List[str]:
    """Return the ordered, trimmed, non-empty statements of `source`."""
    cleaned = strip_comments(source)
    return [s.strip() for s in cleaned.split(".") if s.strip()]
