"""Unit tests for expression evaluation, printing and declarations."""

import pytest

from backend.durham.interpreter import NUMERALS, Interpreter, Session


def _out(code):
    res = Interpreter().run(code)
    assert res['success'], res['output']
    return res['output']


@pytest.mark.parametrize("name,value", sorted(NUMERALS.items()))
def test_numeral_keywords(name, value):
    assert _out(f'tlc begin {name} end.') == str(value)


def test_numeral_table_is_complete():
    assert len(NUMERALS) == 17
    assert sorted(NUMERALS.values()) == list(range(17))


def test_comma_joined_numerals_concatenate_digits():
    s = Session(max_loop=10, max_output_chars=100)
    assert s.evaluate('marys, marys') == 22
    assert s.evaluate('chads,butler,butler') == 100
    # components above nine contribute two digits
    assert s.evaluate('grey, chads') == 101


def test_string_literal_prints_verbatim():
    assert _out('tlc begin "Hello, World!" end.') == 'Hello, World!'
    assert _out('tlc begin "a \\n b" end.') == 'a \\n b'


def test_durham_concatenates_in_order():
    assert _out('tlc begin "a" durham castle end.') == 'a5'
    assert _out('tlc begin castle durham "a" end.') == '5a'
    assert _out('tlc begin "Hello" durham " " durham "World" end.') == 'Hello World'
    assert _out('number x is chads durham marys.\ntlc begin x end.') == '12'


def test_arithmetic_operators():
    assert _out('tlc begin castle york marys end.') == '10'
    assert _out('tlc begin snow edinburgh marys end.') == '4'
    assert _out('tlc begin marys newcastle castle end.') == '-3'
    assert _out('tlc begin -7 edinburgh marys end.') == '-4'


def test_operator_check_order_is_precedence():
    # concatenation is checked before multiplication
    assert _out('tlc begin marys durham marys york marys end.') == '24'
    # multiplication is checked before subtraction
    assert _out('tlc begin castle newcastle marys york marys end.') == '6'


def test_chained_operators_fold_left():
    assert _out('tlc begin 10 newcastle 3 newcastle 2 end.') == '5'
    assert _out('tlc begin 100 edinburgh 10 edinburgh 2 end.') == '5'
    assert _out('tlc begin marys york collingwood york johns end.') == '24'
    # each operand may itself use a later-checked operator
    assert _out('tlc begin 20 edinburgh castle newcastle chads edinburgh marys end.') == '2'


def test_division_by_zero_fails_run():
    res = Interpreter().run('tlc begin "before" end.\ntlc begin castle edinburgh butler end.')
    assert res['success'] is False
    assert res['output'].startswith('Error:')
    assert 'before' not in res['output']


def test_arithmetic_on_non_numeric_text_counts_as_zero():
    assert _out('tlc begin "abc" york marys end.') == '0'
    code = 'tlc begin "before" end.\ntlc begin y york marys end.\ntlc begin "after" end.'
    assert _out(code) == 'before\n0\nafter'
    assert _out('tlc begin castle newcastle nobody end.') == '5'


def test_unknown_identifier_falls_back_to_text():
    assert _out('tlc begin hello end.') == 'hello'
    assert _out('tlc begin some words end.') == 'some words'


def test_integer_literals():
    assert _out('tlc begin 42 end.') == '42'
    assert _out('number n is 10.\ntlc begin n york 3 end.') == '30'


def test_text_declaration_forms():
    code = (
        'text name is begin "Durham" end.\n'
        'text greeting is "Hi " durham name.\n'
        'tlc begin greeting end.\n'
    )
    assert _out(code) == 'Hi Durham'


def test_text_variables_shadow_numeric_ones():
    code = 'number v is castle.\ntext v is begin "five" end.\ntlc begin v end.\ntlc begin v york marys end.'
    # the text binding is seen first, and non-numeric text counts as 0
    assert _out(code) == 'five\n0'


def test_generic_assignment_writes_numeric():
    assert _out('number x is castle.\nx is x newcastle chads.\ntlc begin x end.') == '4'
    assert _out('y is trevs.\ntlc begin y end.') == '7'


def test_unrecognized_statements_are_skipped():
    code = 'this is not valid is it.\nwibble.\nback.\ntlc begin "ok" end.'
    assert _out(code) == 'ok'


def test_empty_program_succeeds_with_no_output():
    res = Interpreter().run('')
    assert res == {'success': True, 'output': ''}


def test_each_run_starts_fresh():
    it = Interpreter()
    assert it.run('number x is castle.\ntlc begin x end.')['output'] == '5'
    assert it.run('tlc begin x end.')['output'] == 'x'


def test_whole_line_comment_has_no_effect():
    code = '"a comment. with a period"\ntlc begin "visible" end.\n   "indented comment"   \n'
    assert _out(code) == 'visible'


def test_conditions():
    s = Session(max_loop=10, max_output_chars=100)
    assert s.condition('castle greater marys') is True
    assert s.condition('castle lesser marys') is False
    assert s.condition('castle equals castle') is True
    # equals never matches across types
    assert s.condition('"5" equals castle') is False
    # mixed comparison uses the text's integer value
    assert s.condition('"3" lesser castle') is True
    assert s.condition('"abc" lesser castle') is False
    assert s.condition('castle') is False
