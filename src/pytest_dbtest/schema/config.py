"""Validated test configuration models.

`TestConfig` is constructed once per decorated function, consumed
immediately by the code generator, and never persisted.
"""

from typing import Annotated, Literal

from pydantic import Field

from pytest_dbtest.models import SchemaModel

from .clauses import Span  # noqa: TC001


class Inferred(SchemaModel):
    """Default: use the conventional migrations directory if it exists."""

    kind: Literal['inferred'] = 'inferred'


class ExplicitPath(SchemaModel):
    """Compile migrations from an explicit directory."""

    kind: Literal['path'] = 'path'

    path: str
    span: Span | None = Field(default=None, exclude=True, repr=False)


class ExplicitMigrator(SchemaModel):
    """Use an existing migrator object referenced by import path."""

    kind: Literal['migrator'] = 'migrator'

    reference: str
    span: Span | None = Field(default=None, exclude=True, repr=False)


class Disabled(SchemaModel):
    """Run the test without any migrations."""

    kind: Literal['disabled'] = 'disabled'


#: Migrations source of a test, exactly one variant is active.
type MigrationsOption = Annotated[
    Inferred | ExplicitPath | ExplicitMigrator | Disabled,
    Field(discriminator='kind'),
]


class TestConfig(SchemaModel):
    """Validated configuration of a managed database test.

    The configuration lists fixture names in declaration order (duplicates
    are kept as written) and the selected migrations source. Spans and
    the clause text are retained only for diagnostics and are excluded
    from dumps.
    """

    __test__ = False

    fixtures: tuple[str, ...] = Field(
        default=(),
        title='Fixtures',
        description='Fixture names, each resolved to `fixtures/<name>.sql`.',
    )

    migrations: MigrationsOption = Field(
        default_factory=Inferred,
        title='Migrations',
        description='Selected migrations source.',
    )

    source: str = Field(default='', exclude=True, repr=False)
    fixture_spans: tuple[Span, ...] = Field(default=(), exclude=True, repr=False)

    def fixture_span(self, position: int) -> Span | None:
        """Return the span of the fixture literal at `position`, if known."""
        if 0 <= position < len(self.fixture_spans):
            return self.fixture_spans[position]

        return None


class FixtureRecord(SchemaModel):
    """A fixture script resolved and read during expansion.

    The contents are embedded verbatim into the generated test, so the
    runner never touches the filesystem to load them.
    """

    name: str = Field(
        title='Fixture name',
        description='Name as written in the `fixtures(...)` clause.',
    )

    path: str = Field(
        title='Fixture path',
        description='Project-relative path in the form `fixtures/<name>.sql`.',
    )

    contents: str = Field(
        title='Fixture contents',
        description='SQL script text, read once during expansion.',
    )
