"""Filesystem resolution of migrations and fixtures.

All paths are resolved against the project root. Resolution is
read-only: it checks directory existence, lists migrations, and reads
fixture scripts, but never writes.
"""

from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING

from pytest_dbtest.errors import FixtureIOError, MigrateError
from pytest_dbtest.migrate import Migrator, compile_migrator
from pytest_dbtest.names import FIXTURES_DIRECTORY, MIGRATIONS_DIRECTORY, fixture_path
from pytest_dbtest.schema import ExplicitPath, FixtureRecord, Inferred

if TYPE_CHECKING:
    from pytest_dbtest.schema import Span, TestConfig
    from pytest_dbtest.settings import Settings

logger = getLogger(__name__)


class PathResolver:
    """Resolver of project-relative resources."""

    def __init__(self, root: Path) -> None:
        """Initialize the resolver.

        Args:
            root: Absolute project root.
        """
        self.root = root

    @classmethod
    def from_settings(cls, settings: 'Settings') -> 'PathResolver':
        """Create a resolver bound to the configured project root."""
        return cls(settings.project_root)

    def resolve(self, path: str | Path) -> Path:
        """Resolve a path against the project root.

        Absolute paths are returned unchanged.
        """
        return self.root / path

    def migrator_for(self, config: 'TestConfig') -> Migrator | None:
        """Compile the migrator selected by a managed-mode configuration.

        Args:
            config: Validated test configuration.

        Returns:
            Compiled migrator for an explicit path or an existing conventional
            directory; `None` for a disabled, referenced, or absent source.

        Raises:
            MigrateError: If an explicit path is invalid or any migration
                cannot be compiled.
        """
        option = config.migrations

        if isinstance(option, ExplicitPath):
            return self.explicit_migrations(option.path, config.source, option.span)

        if isinstance(option, Inferred):
            return self.infer_migrations()

        return None

    def infer_migrations(self) -> Migrator | None:
        """Compile the conventional migrations directory if it exists.

        Returns:
            Compiled migrator, or `None` if there is no such directory.
        """
        directory = self.resolve(MIGRATIONS_DIRECTORY)
        if not directory.is_dir():
            logger.debug('No migrations directory at %s', directory)
            return None

        return compile_migrator(directory)

    def explicit_migrations(self, path: str, source: str = '',
                            span: 'Span | None' = None) -> Migrator:
        """Compile an explicitly named migrations directory.

        Args:
            path: Directory path, relative to the project root or absolute.
            source: Clause text, for diagnostics.
            span: Span of the path literal, for diagnostics.

        Returns:
            Compiled migrator.

        Raises:
            MigrateError: If the path is not a directory or cannot be compiled.
        """
        directory = self.resolve(path)

        try:
            if not directory.is_dir():
                raise MigrateError(f'Migrations directory {str(directory)!r} does not exist')
            return compile_migrator(directory)

        except MigrateError as error:
            if span is None:
                raise
            raise MigrateError.from_span(error.message, source, span) from error

    def load_fixtures(self, config: 'TestConfig') -> tuple[FixtureRecord, ...]:
        """Read every fixture listed in a configuration.

        Args:
            config: Validated test configuration.

        Returns:
            Fixture records in declaration order.

        Raises:
            FixtureIOError: If a fixture file is missing or unreadable, or
                its name leads outside of the fixtures directory.
        """
        directory = self.resolve(FIXTURES_DIRECTORY).resolve()
        records = []

        for position, name in enumerate(config.fixtures):
            relative = fixture_path(name)
            path = self.resolve(relative).resolve()

            if not path.is_relative_to(directory):
                raise self.fixture_error(
                    config,
                    position,
                    f'Fixture {name!r} is outside of the {FIXTURES_DIRECTORY!r} directory',
                )

            try:
                contents = path.read_text(encoding='utf-8')

            except (OSError, UnicodeDecodeError) as base:
                message = f'Can not read fixture {name!r} from {relative!r}: {base}'
                raise self.fixture_error(config, position, message) from base

            records.append(FixtureRecord(name=name, path=relative, contents=contents))

        return tuple(records)

    @staticmethod
    def fixture_error(config: 'TestConfig', position: int, message: str) -> FixtureIOError:
        """Create a fixture error attributed to the literal at `position`."""
        if (span := config.fixture_span(position)) is not None:
            return FixtureIOError.from_span(message, config.source, span)

        return FixtureIOError(message)
