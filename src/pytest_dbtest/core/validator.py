"""Clause validation and configuration building.

The validator walks parsed clause nodes once, in order, and folds them
into a single `TestConfig`. It enforces that the migrations source is
assigned at most once, no matter whether a `migrations` or a `migrator`
clause assigned it, and that `fixtures(...)` appears at most once.
"""

from typing import TYPE_CHECKING

from pytest_dbtest.errors import (
    EXPECTED_GRAMMAR,
    ClauseSyntaxError,
    DuplicateOptionError,
    InvalidOptionValueError,
    RedundantOptionError,
)
from pytest_dbtest.names import is_reference
from pytest_dbtest.schema import (
    BoolLiteral,
    Disabled,
    ExplicitMigrator,
    ExplicitPath,
    Inferred,
    ListClause,
    NameValueClause,
    StrLiteral,
    TestConfig,
)

if TYPE_CHECKING:
    from pytest_dbtest.schema import Clause, MigrationsOption, Span


class ConfigBuilder:
    """Single-pass builder of a `TestConfig` from clause nodes.

    The builder is stateful and bound to one clause text; create a new
    instance for every expansion.
    """

    def __init__(self, source: str) -> None:
        """Initialize the builder.

        Args:
            source: Raw clause text the nodes were parsed from.
        """
        self.source = source

        self.fixtures: list[str] = []
        self.fixture_spans: list[Span] = []
        self.has_fixtures = False

        self.migrations: MigrationsOption = Inferred()

    def build(self, clauses: 'tuple[Clause, ...]') -> TestConfig:
        """Consume clause nodes and build the configuration.

        Args:
            clauses: Parsed clause nodes in declaration order.

        Returns:
            Validated test configuration.

        Raises:
            ClauseSyntaxError: On an unknown clause or a non-string fixture.
            DuplicateOptionError: On a repeated option.
            InvalidOptionValueError: On an option value of the wrong kind.
            RedundantOptionError: On `migrations = true`.
        """
        for clause in clauses:
            self.consume(clause)

        return TestConfig(
            fixtures=tuple(self.fixtures),
            migrations=self.migrations,
            source=self.source,
            fixture_spans=tuple(self.fixture_spans),
        )

    def consume(self, clause: 'Clause') -> None:
        """Apply a single clause to the builder state."""
        if isinstance(clause, ListClause) and clause.name == 'fixtures':
            self.consume_fixtures(clause)

        elif isinstance(clause, NameValueClause) and clause.name == 'migrations':
            self.ensure_migrations_unset(clause.name_span)
            self.migrations = self.migrations_option(clause)

        elif isinstance(clause, NameValueClause) and clause.name == 'migrator':
            self.ensure_migrations_unset(clause.name_span)
            self.migrations = self.migrator_option(clause)

        else:
            raise ClauseSyntaxError.from_span(
                f'Unexpected clause {clause.name!r}: {EXPECTED_GRAMMAR}',
                self.source,
                clause.span,
            )

    def consume_fixtures(self, clause: ListClause) -> None:
        """Collect fixture names from a `fixtures(...)` clause."""
        if self.has_fixtures:
            raise DuplicateOptionError.from_span(
                'Duplicate `fixtures` option',
                self.source,
                clause.name_span,
            )

        self.has_fixtures = True

        for item in clause.items:
            if not isinstance(item, StrLiteral):
                raise ClauseSyntaxError.from_span(
                    'Expected string literal',
                    self.source,
                    item.span,
                )
            self.fixtures.append(item.value)
            self.fixture_spans.append(item.span)

    def ensure_migrations_unset(self, span: 'Span') -> None:
        """Fail if the migrations source has left its initial state."""
        if not isinstance(self.migrations, Inferred):
            raise DuplicateOptionError.from_span(
                'Cannot have more than one `migrations` or `migrator` option',
                self.source,
                span,
            )

    def migrations_option(self, clause: NameValueClause) -> 'MigrationsOption':
        """Interpret a `migrations = ...` clause."""
        value = clause.value

        if isinstance(value, BoolLiteral) and not value.value:
            return Disabled()

        if isinstance(value, BoolLiteral):
            raise RedundantOptionError.from_span(
                '`migrations = true` is redundant; '
                'the default migrations directory is used when present',
                self.source,
                value.span,
            )

        if isinstance(value, StrLiteral):
            return ExplicitPath(path=value.value, span=value.span)

        raise InvalidOptionValueError.from_span(
            'Expected string or `false`',
            self.source,
            value.span,
        )

    def migrator_option(self, clause: NameValueClause) -> 'MigrationsOption':
        """Interpret a `migrator = ...` clause."""
        value = clause.value

        if not isinstance(value, StrLiteral):
            raise InvalidOptionValueError.from_span(
                'Expected string',
                self.source,
                value.span,
            )

        if not is_reference(value.value):
            raise InvalidOptionValueError.from_span(
                f'{value.value!r} is not a code reference, '
                'expected "<module>:<attribute>" or "<module>.<attribute>"',
                self.source,
                value.span,
            )

        return ExplicitMigrator(reference=value.value, span=value.span)


def build_config(clauses: 'tuple[Clause, ...]', source: str = '') -> TestConfig:
    """Validate clause nodes and build a test configuration.

    Args:
        clauses: Parsed clause nodes in declaration order.
        source: Raw clause text, used for diagnostics.

    Returns:
        Validated test configuration; an empty clause tuple yields
        the default configuration with no fixtures and inferred migrations.
    """
    return ConfigBuilder(source).build(clauses)
