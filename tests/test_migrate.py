"""Tests for compiling migrations directories."""

from hashlib import sha384
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from pytest_dbtest.errors import MigrateError, MigrateWarning
from pytest_dbtest.migrate import compile_migrator, read_migration

if TYPE_CHECKING:
    from pyfakefs.fake_filesystem import FakeFilesystem

MIGRATIONS = Path('/project/migrations')


def test_compile_migrator_orders_migrations(fs: 'FakeFilesystem') -> None:
    """Applying migrations come first by version, reverting ones after."""
    fs.create_file(MIGRATIONS / '2_add_posts.sql', contents='CREATE TABLE posts ();')
    fs.create_file(MIGRATIONS / '1_create_users.up.sql', contents='CREATE TABLE users ();')
    fs.create_file(MIGRATIONS / '1_create_users.down.sql', contents='DROP TABLE users;')

    migrator = compile_migrator(MIGRATIONS)

    assert migrator.source == str(MIGRATIONS)
    assert migrator.versions == (1, 2)
    assert [(item.version, item.kind) for item in migrator.migrations] == [
        (1, 'up'),
        (2, 'simple'),
        (1, 'down'),
    ]


def test_read_migration(fs: 'FakeFilesystem') -> None:
    """A migration keeps its description, text and SHA-384 checksum."""
    sql = 'CREATE TABLE users (id INTEGER PRIMARY KEY);\n'
    path = MIGRATIONS / '20240101120000_create_users_table.sql'
    fs.create_file(path, contents=sql)

    migration = read_migration(path)

    assert migration.version == 20240101120000
    assert migration.description == 'create users table'
    assert migration.kind == 'simple'
    assert migration.sql == sql
    assert migration.checksum == sha384(sql.encode('utf-8')).digest()


def test_compile_migrator_empty_directory(fs: 'FakeFilesystem') -> None:
    """An empty directory compiles into a migrator without migrations."""
    fs.create_dir(MIGRATIONS)

    assert compile_migrator(MIGRATIONS).migrations == ()


def test_compile_migrator_skips_other_entries(fs: 'FakeFilesystem') -> None:
    """Non-SQL files and directories are skipped with a warning."""
    fs.create_file(MIGRATIONS / '1_init.sql', contents='SELECT 1;')
    fs.create_file(MIGRATIONS / 'README.md', contents='# Migrations')
    fs.create_dir(MIGRATIONS / 'drafts')

    with pytest.warns(MigrateWarning, match=r"Skipping 'README\.md'"):
        migrator = compile_migrator(MIGRATIONS)

    assert migrator.versions == (1,)


@pytest.mark.parametrize('files, pattern', (
    pytest.param(('1_a.sql', '1_b.up.sql'), r'Duplicate migration version 1', id='duplicate version'),
    pytest.param(('1_a.up.sql', '1_b.up.sql'), r'Duplicate migration version 1', id='duplicate up'),
    pytest.param(('create_users.sql',), r"Invalid migration filename 'create_users\.sql'", id='no version'),
    pytest.param(('1.sql',), r"Invalid migration filename '1\.sql'", id='no description'),
))
def test_compile_migrator_errors(files: tuple[str, ...], pattern: str,
                                 fs: 'FakeFilesystem') -> None:
    """Malformed migrations directories fail compilation."""
    for name in files:
        fs.create_file(MIGRATIONS / name, contents='SELECT 1;')

    with pytest.raises(MigrateError, match=pattern):
        compile_migrator(MIGRATIONS)


def test_compile_migrator_missing_directory(fs: 'FakeFilesystem') -> None:  # noqa: ARG001
    """A missing directory cannot be compiled."""
    with pytest.raises(MigrateError, match=r'Error reading migrations directory'):
        compile_migrator(MIGRATIONS)
