"""Clause nodes produced by the clause parser.

A clause list such as `fixtures("users"), migrations = false` is parsed
into an ordered tuple of nodes. Each node keeps the span of its name
and of the whole clause, and every literal keeps its own span.
"""

from typing import Annotated, Literal, Self

from pydantic import Field

from pytest_dbtest.models import SchemaModel


class Span(SchemaModel):
    """Location of a token range within the clause text.

    Offsets are zero-based character positions; `end` is exclusive.
    Line and column describe the `start` position and are zero-based.
    """

    start: int = Field(ge=0)
    end: int = Field(ge=0)

    line: int = Field(default=0, ge=0)
    column: int = Field(default=0, ge=0)

    @classmethod
    def at(cls, source: str, start: int, end: int) -> Self:
        """Build a span for a range of the source text.

        Args:
            source: Full clause text.
            start: Start offset.
            end: End offset (exclusive).

        Returns:
            A span with line and column computed from `start`.
        """
        line_start = source.rfind('\n', 0, start) + 1

        return cls(
            start=start,
            end=end,
            line=source.count('\n', 0, start),
            column=start - line_start,
        )

    def join(self, other: 'Span') -> 'Span':
        """Return a span covering this span up to the end of `other`."""
        return Span(
            start=self.start,
            end=other.end,
            line=self.line,
            column=self.column,
        )


class StrLiteral(SchemaModel):
    """String literal, for example `"users"`."""

    kind: Literal['str'] = 'str'

    value: str
    span: Span


class BoolLiteral(SchemaModel):
    """Boolean literal: `true`, `false` or their capitalized forms."""

    kind: Literal['bool'] = 'bool'

    value: bool
    span: Span


class NumberLiteral(SchemaModel):
    """Integer or decimal literal."""

    kind: Literal['number'] = 'number'

    value: int | float
    span: Span


class PathLiteral(SchemaModel):
    """Bare identifier path, for example `tests.db.migrator`."""

    kind: Literal['path'] = 'path'

    value: str
    span: Span


#: Any literal value accepted by the clause grammar.
type LiteralValue = Annotated[
    StrLiteral | BoolLiteral | NumberLiteral | PathLiteral,
    Field(discriminator='kind'),
]


class ListClause(SchemaModel):
    """Clause of the form `name(value, ...)`."""

    kind: Literal['list'] = 'list'

    name: str
    name_span: Span

    items: tuple[LiteralValue, ...] = ()
    span: Span


class NameValueClause(SchemaModel):
    """Clause of the form `name = value`."""

    kind: Literal['name_value'] = 'name_value'

    name: str
    name_span: Span

    value: LiteralValue
    span: Span


class PathClause(SchemaModel):
    """Clause consisting of a bare name."""

    kind: Literal['path'] = 'path'

    name: str
    name_span: Span

    span: Span


#: Any clause node.
type Clause = ListClause | NameValueClause | PathClause
