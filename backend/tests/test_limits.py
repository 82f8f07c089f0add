"""Tests for interpreter runtime limits (loop ceiling, output caps)."""

import pytest

from backend.durham.interpreter import Interpreter, LoopLimitExceeded, Session
from backend.durham.parser import parse
from backend.durham.preprocessor import preprocess

ENDLESS = (
    'tlc begin "start" end.\n'
    'for begin i is butler. butler lesser chads. i is i end front.\n'
    '  tlc begin "x" end.\n'
    'back.\n'
)

COUNT_TO_SIX = 'for begin i is butler. i lesser trevs. i is i newcastle -1 end front.\ntlc begin i end.\nback.'


def test_loop_ceiling_fails_whole_run():
    it = Interpreter()
    assert it.max_loop == 10000
    res = it.run(ENDLESS)
    assert res == {"success": False, "output": "Error: Loop exceeded maximum iterations"}


def test_loop_ceiling_raises_from_session():
    s = Session(max_loop=3, max_output_chars=1000)
    with pytest.raises(LoopLimitExceeded):
        s.execute(parse(preprocess(ENDLESS)))
    assert s.output[:4] == ["start", "x", "x", "x"]


def test_loop_cap_attribute_and_settings():
    it = Interpreter()
    it.max_loop = 3
    assert it.run(COUNT_TO_SIX)["success"] is False
    assert Interpreter().run(COUNT_TO_SIX, settings={"max_loop": 7})["success"] is True
    assert Interpreter().run(COUNT_TO_SIX, settings={"max_loop": 6})["success"] is False


def test_output_limit():
    it = Interpreter()
    it.max_output_chars = 10
    code = "\n".join(['tlc begin "abcdefghij" end.'] * 5)
    res = it.run(code)
    assert res["success"] is False
    assert res["output"] == "Error: Output length limit reached"
