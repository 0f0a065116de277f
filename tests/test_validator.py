"""Tests for clause validation and configuration building."""

from typing import TYPE_CHECKING

import pytest

from pytest_dbtest.core import build_config, parse_clauses
from pytest_dbtest.errors import (
    ClauseSyntaxError,
    DuplicateOptionError,
    ExpansionError,
    InvalidOptionValueError,
    RedundantOptionError,
)
from pytest_dbtest.names import is_reference
from pytest_dbtest.schema import Disabled, ExplicitMigrator, ExplicitPath, Inferred, TestConfig

if TYPE_CHECKING:
    from pytest_dbtest.schema import MigrationsOption


def config_of(source: str) -> TestConfig:
    """Parse and validate clause text."""
    return build_config(parse_clauses(source), source)


def test_default_config() -> None:
    """No clauses yield no fixtures and inferred migrations."""
    config = config_of('')

    assert config.fixtures == ()
    assert isinstance(config.migrations, Inferred)


def test_fixtures_keep_order_and_duplicates() -> None:
    """Fixture names are collected in order and never deduplicated."""
    config = config_of('fixtures("users", "posts", "users")')

    assert config.fixtures == ('users', 'posts', 'users')
    assert [span.start for span in config.fixture_spans] == [9, 18, 27]


@pytest.mark.parametrize('source, expected', (
    pytest.param('migrations = false', Disabled(), id='disabled'),
    pytest.param('migrations = "db/migrations"', ExplicitPath(path='db/migrations'), id='path'),
    pytest.param('migrator = "tests.db:migrator"', ExplicitMigrator(reference='tests.db:migrator'), id='reference'),
    pytest.param('migrator = "tests.db.migrator"', ExplicitMigrator(reference='tests.db.migrator'), id='dotted'),
))
def test_migrations_option(source: str, expected: 'MigrationsOption') -> None:
    """Each migrations clause selects exactly one variant."""
    option = config_of(source).migrations

    assert type(option) is type(expected)
    assert option.model_dump() == expected.model_dump()


def test_config_combines_options() -> None:
    """Fixtures and a migrations source can be combined."""
    config = config_of('migrations = false, fixtures("users")')

    assert config.fixtures == ('users',)
    assert isinstance(config.migrations, Disabled)


def test_config_dump_excludes_diagnostics() -> None:
    """Spans and clause text are not part of the dumped configuration."""
    config = config_of('fixtures("users"), migrations = "db"')

    assert config.model_dump(mode='json') == {
        'fixtures': ['users'],
        'migrations': {'kind': 'path', 'path': 'db'},
    }


@pytest.mark.parametrize('source, error, start', (
    pytest.param('fixtures("a"), fixtures("b")', DuplicateOptionError, 15, id='two fixtures'),
    pytest.param('fixtures(), fixtures("b")', DuplicateOptionError, 12, id='empty fixtures first'),
    pytest.param('migrations = "x", migrator = "a.b"', DuplicateOptionError, 18, id='migrations then migrator'),
    pytest.param('migrator = "a.b", migrations = false', DuplicateOptionError, 18, id='migrator then migrations'),
    pytest.param('migrations = false, migrations = false', DuplicateOptionError, 20, id='two migrations'),
    pytest.param('migrations = "x", migrations = true', DuplicateOptionError, 18, id='duplicate before redundant'),
    pytest.param('migrations = true', RedundantOptionError, 13, id='redundant'),
    pytest.param('fixtures("a"), migrations = true', RedundantOptionError, 28, id='redundant with fixtures'),
    pytest.param('migrations = 1', InvalidOptionValueError, 13, id='number'),
    pytest.param('migrations = other', InvalidOptionValueError, 13, id='path literal'),
    pytest.param('migrator = false', InvalidOptionValueError, 11, id='migrator bool'),
    pytest.param('migrator = tests.db', InvalidOptionValueError, 11, id='migrator path literal'),
    pytest.param('migrator = "not a reference"', InvalidOptionValueError, 11, id='migrator invalid'),
    pytest.param('migrator = "module"', InvalidOptionValueError, 11, id='migrator module only'),
    pytest.param('fixtures(users)', ClauseSyntaxError, 9, id='fixture not a string'),
    pytest.param('unknown = 1', ClauseSyntaxError, 0, id='unknown option'),
    pytest.param('fixtures = "a"', ClauseSyntaxError, 0, id='fixtures as value'),
    pytest.param('migrations("a")', ClauseSyntaxError, 0, id='migrations as list'),
    pytest.param('migrations', ClauseSyntaxError, 0, id='bare migrations'),
))
def test_invalid_config(source: str, error: type[ExpansionError], start: int) -> None:
    """Invalid clause combinations fail fast at the offending span."""
    with pytest.raises(error) as info:
        config_of(source)

    assert info.value.context is not None
    assert info.value.context['span'].start == start


def test_unknown_clause_enumerates_grammar() -> None:
    """Unknown clauses report the accepted grammar."""
    with pytest.raises(ClauseSyntaxError, match=r'expected `fixtures\("<filename>", \.\.\.\)`'):
        config_of('fixture("users")')


@pytest.mark.parametrize('value, expected', (
    ('tests.db:migrator', True),
    ('tests.db.migrator', True),
    ('tests:db.migrator', True),
    ('_private.module:attr', True),
    ('module', False),
    ('tests::db', False),
    ('tests db', False),
    ('1tests.db', False),
    ('', False),
))
def test_is_reference(value: str, expected: bool) -> None:
    """Validate code reference detection."""
    assert is_reference(value) is expected
