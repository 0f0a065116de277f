"""Immutable models describing parsed clauses and test configurations.

Clause nodes are produced by the clause parser and keep the exact span
of every token so diagnostics can point at the offending text. The
configuration models are the validated, span-free view consumed by the
code generator.
"""

from .clauses import (
    BoolLiteral,
    Clause,
    ListClause,
    LiteralValue,
    NameValueClause,
    NumberLiteral,
    PathClause,
    PathLiteral,
    Span,
    StrLiteral,
)
from .config import (
    Disabled,
    ExplicitMigrator,
    ExplicitPath,
    FixtureRecord,
    Inferred,
    MigrationsOption,
    TestConfig,
)

__all__ = (
    'BoolLiteral',
    'Clause',
    'Disabled',
    'ExplicitMigrator',
    'ExplicitPath',
    'FixtureRecord',
    'Inferred',
    'ListClause',
    'LiteralValue',
    'MigrationsOption',
    'NameValueClause',
    'NumberLiteral',
    'PathClause',
    'PathLiteral',
    'Span',
    'StrLiteral',
    'TestConfig',
)
