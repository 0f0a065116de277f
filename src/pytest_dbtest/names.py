"""Name primitives and validation rules.

This module defines identifier patterns shared by the clause parser,
the validator, and the runtime reference importer.
"""

from re import ASCII
from re import compile as regexp

#: Base pattern for identifiers.
#: Identifiers start with a letter or underscore and may contain letters,
#: digits, or underscores.
_NAME_PATTERN = r'[A-Za-z_]\w*'

#: Dotted module path, for example `tests.support.db`.
_MODULE_PATTERN = rf'{_NAME_PATTERN}(\.{_NAME_PATTERN})*'

#: Compiled pattern for clause paths.
#: Accepts both dotted (`a.b`) and double-colon (`a::b`) separators.
PATH_PATTERN = regexp(
    rf'{_NAME_PATTERN}((\.|::){_NAME_PATTERN})*',
    flags=ASCII,
)

#: Compiled pattern for code references.
#: Supports both entry point notation (`pkg.module:attr`) and plain
#: dotted notation (`pkg.module.attr`).
REFERENCE_PATTERN = regexp(
    rf'^(?P<module>{_MODULE_PATTERN})'
    rf'(:(?P<attr>{_NAME_PATTERN}(\.{_NAME_PATTERN})*))?$',
    flags=ASCII,
)

#: Compiled pattern for migration file names.
#: For example `20240101120000_create_users.up.sql`.
MIGRATION_PATTERN = regexp(
    r'^(?P<version>\d+)_(?P<description>.+?)(\.(?P<kind>up|down))?\.sql$',
    flags=ASCII,
)

#: Conventional migrations directory relative to the project root.
MIGRATIONS_DIRECTORY = 'migrations'

#: Conventional fixtures directory relative to the project root.
FIXTURES_DIRECTORY = 'fixtures'


def fixture_path(name: str) -> str:
    """Return the conventional project-relative path of a fixture.

    Args:
        name: Fixture name as written in the `fixtures(...)` clause.

    Returns:
        Path in the form `fixtures/<name>.sql`.
    """
    return f'{FIXTURES_DIRECTORY}/{name}.sql'


def is_reference(value: str) -> bool:
    """Check whether a string is a valid code reference."""
    match = REFERENCE_PATTERN.match(value)
    if not match:
        return False

    return match['attr'] is not None or '.' in match['module']
