"""Tests for clause list parsing."""

import pytest

from pytest_dbtest.core import parse_clauses
from pytest_dbtest.errors import ClauseSyntaxError
from pytest_dbtest.schema import (
    BoolLiteral,
    ListClause,
    NameValueClause,
    NumberLiteral,
    PathClause,
    PathLiteral,
    StrLiteral,
)


@pytest.mark.parametrize('source', ('', '   ', '\n\t'))
def test_parse_empty(source: str) -> None:
    """Blank clause text yields no clauses."""
    assert parse_clauses(source) == ()


def test_parse_list_clause() -> None:
    """Parse a list clause with mixed quoting."""
    source = '''fixtures("users", 'posts')'''

    (clause,) = parse_clauses(source)

    assert isinstance(clause, ListClause)
    assert clause.name == 'fixtures'
    assert [item.value for item in clause.items] == ['users', 'posts']
    assert all(isinstance(item, StrLiteral) for item in clause.items)
    assert (clause.span.start, clause.span.end) == (0, len(source))
    assert (clause.name_span.start, clause.name_span.end) == (0, 8)


@pytest.mark.parametrize('source, literal_type, value', (
    pytest.param('migrations = false', BoolLiteral, False, id='false'),
    pytest.param('migrations = True', BoolLiteral, True, id='capitalized true'),
    pytest.param('migrations = "db/migrations"', StrLiteral, 'db/migrations', id='string'),
    pytest.param('migrator = "tests.db:migrator"', StrLiteral, 'tests.db:migrator', id='reference'),
    pytest.param('migrations = 5', NumberLiteral, 5, id='integer'),
    pytest.param('migrations = -1.5', NumberLiteral, -1.5, id='decimal'),
    pytest.param('migrator = tests::db::migrator', PathLiteral, 'tests::db::migrator', id='path'),
    pytest.param(r'migrations = "a\"b"', StrLiteral, 'a"b', id='escaped'),
))
def test_parse_name_value_clause(source: str, literal_type: type, value: object) -> None:
    """Parse name-value clauses with every literal kind."""
    (clause,) = parse_clauses(source)

    assert isinstance(clause, NameValueClause)
    assert isinstance(clause.value, literal_type)
    assert clause.value.value == value
    assert clause.span.end == len(source)


def test_parse_path_clause() -> None:
    """A bare name is parsed as a path clause."""
    (clause,) = parse_clauses('migrations')

    assert isinstance(clause, PathClause)
    assert clause.name == 'migrations'


def test_parse_preserves_order_and_trailing_commas() -> None:
    """Clauses keep their written order and trailing commas are accepted."""
    clauses = parse_clauses('fixtures("a",), migrations = false, fixtures("b"),')

    assert [clause.name for clause in clauses] == ['fixtures', 'migrations', 'fixtures']
    assert len(clauses[0].items) == 1  # type: ignore[union-attr]


def test_parse_multiline_spans() -> None:
    """Spans carry zero-based line and column positions."""
    _, clause = parse_clauses('fixtures("a"),\n  migrations = false')

    assert clause.span.line == 1
    assert clause.span.column == 2
    assert clause.span.start == 17


def test_parse_empty_list() -> None:
    """An empty list clause is valid syntax."""
    (clause,) = parse_clauses('fixtures()')

    assert isinstance(clause, ListClause)
    assert clause.items == ()


@pytest.mark.parametrize('source, pattern, start', (
    pytest.param('fixtures("a"', r'Unclosed `\(`', 8, id='unclosed list'),
    pytest.param('fixtures("a" "b")', r'Expected `,` or `\)`, found \'"b"\'', 13, id='missing item separator'),
    pytest.param('migrations = ', r'Expected literal value, found end of input', 13, id='missing value'),
    pytest.param('migrations = "x', r'Unterminated string literal', 13, id='unterminated string'),
    pytest.param('fixtures("a") migrations = false', r'Expected `,` between clauses', 14, id='missing separator'),
    pytest.param(', fixtures("a")', r'Expected clause name', 0, id='leading comma'),
    pytest.param('= 1', r'Expected clause name', 0, id='missing name'),
    pytest.param('fixtures("a"); x', r"Unexpected character ';'", 13, id='unexpected character'),
    pytest.param(r'migrations = "\N"', r'Invalid string literal', 13, id='invalid escape'),
    pytest.param('migrations = (', r'Expected literal value', 13, id='nested list'),
))
def test_parse_syntax_errors(source: str, pattern: str, start: int) -> None:
    """Malformed clause lists are reported at the offending token."""
    with pytest.raises(ClauseSyntaxError, match=pattern) as info:
        parse_clauses(source)

    assert info.value.context is not None
    assert info.value.context['span'].start == start
    assert info.value.context['source'] == source
