"""Migration compiler.

Reads a migrations directory during expansion and produces an immutable
`Migrator` that generated tests hand over to the test runner. Applying
migrations is the runner's job.

File naming follows the `<version>_<description>.sql` convention, with
`.up.sql` and `.down.sql` suffixes for reversible migrations.
"""

from hashlib import sha384
from logging import getLogger
from typing import TYPE_CHECKING, Literal
from warnings import warn

from pydantic import Field

from pytest_dbtest.errors import MigrateError, MigrateWarning
from pytest_dbtest.models import SchemaModel
from pytest_dbtest.names import MIGRATION_PATTERN

if TYPE_CHECKING:
    from pathlib import Path

logger = getLogger(__name__)

type MigrationKind = Literal['simple', 'up', 'down']

_KIND_ORDER = {'simple': 0, 'up': 0, 'down': 1}


class Migration(SchemaModel):
    """Single migration script."""

    version: int = Field(ge=0)
    description: str
    kind: MigrationKind = 'simple'

    sql: str = Field(repr=False)
    checksum: bytes = Field(repr=False)

    @property
    def is_down(self) -> bool:
        """Whether the migration reverts a version."""
        return self.kind == 'down'


class Migrator(SchemaModel):
    """Ordered set of migrations compiled from a directory."""

    source: str = Field(
        title='Migrations source',
        description='Absolute path of the migrations directory.',
    )

    migrations: tuple[Migration, ...] = ()

    @property
    def versions(self) -> tuple[int, ...]:
        """Versions of the applying migrations, in order."""
        return tuple(
            migration.version
            for migration in self.migrations
            if not migration.is_down
        )


def read_migration(path: 'Path') -> Migration:
    """Read a single migration file.

    Args:
        path: Path of a `.sql` file.

    Returns:
        Parsed migration.

    Raises:
        MigrateError: If the name is malformed or the file cannot be read.
    """
    match = MIGRATION_PATTERN.match(path.name)
    if not match:
        raise MigrateError(
            f'Invalid migration filename {path.name!r}, '
            'expected "<version>_<description>.sql"',
        )

    try:
        sql = path.read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as base:
        raise MigrateError(f'Error reading migration {str(path)!r}: {base}') from base

    return Migration(
        version=int(match['version']),
        description=match['description'].replace('_', ' '),
        kind=match['kind'] or 'simple',
        sql=sql,
        checksum=sha384(sql.encode('utf-8')).digest(),
    )


def compile_migrator(directory: 'Path') -> Migrator:
    """Compile a migrations directory into a migrator.

    Args:
        directory: Absolute path of the migrations directory.

    Returns:
        Migrator with migrations sorted by version, applying ones first.

    Raises:
        MigrateError: If the directory cannot be listed, a migration is
            malformed, or a version is defined twice.
    """
    try:
        entries = sorted(directory.iterdir())
    except OSError as base:
        raise MigrateError(
            f'Error reading migrations directory {str(directory)!r}: {base}',
        ) from base

    migrations: dict[tuple[int, bool], Migration] = {}

    for entry in entries:
        if not entry.is_file() or entry.suffix != '.sql':
            warn(
                f'Skipping {entry.name!r} in migrations directory {str(directory)!r}',
                category=MigrateWarning,
                stacklevel=2,
            )
            continue

        migration = read_migration(entry)

        key = (migration.version, migration.is_down)
        if key in migrations:
            raise MigrateError(
                f'Duplicate migration version {migration.version} '
                f'in {str(directory)!r}',
            )

        migrations[key] = migration

    ordered = tuple(sorted(
        migrations.values(),
        key=lambda item: (_KIND_ORDER[item.kind], item.version),
    ))

    logger.debug('Compiled %d migrations from %s', len(ordered), directory)

    return Migrator(source=str(directory), migrations=ordered)
