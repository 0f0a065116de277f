"""Test entry point code generation.

The generator selects one of two strategies purely by the arity of the
original function:

- simple mode (no parameters): the wrapper runs the original body through
  `block_on` and nothing else; no configuration is built;
- managed mode (one or more parameters): the wrapper packs the unique test
  identifier, the migrator and the fixtures into `TestArgs`, coerces the
  original function into a `TestFn`, and delegates to the test runner.

The product is Python source text plus the namespace it must be executed
in. Identical clauses, signatures and filesystem state yield
byte-identical source.
"""

from logging import getLogger
from typing import TYPE_CHECKING, Any, Literal

from pydantic import Field

from pytest_dbtest.core.validator import build_config
from pytest_dbtest.errors import MissingCapabilityError, UnsupportedCombinationError
from pytest_dbtest.models import SchemaModel
from pytest_dbtest.schema import ExplicitMigrator, TestConfig

if TYPE_CHECKING:
    from pytest_dbtest.core.resolver import PathResolver
    from pytest_dbtest.core.signature import FunctionSignature
    from pytest_dbtest.migrate import Migrator
    from pytest_dbtest.schema import Clause, FixtureRecord

logger = getLogger(__name__)

#: Namespace name of the original function.
INNER_NAME = '__dbtest_inner__'

#: Namespace name of a migrator compiled during expansion.
MIGRATOR_NAME = '__dbtest_migrator__'

#: Module generated tests import their helpers from.
HELPERS_MODULE = 'pytest_dbtest.testing'

INDENT = ' ' * 4

type Mode = Literal['simple', 'managed']


class Expansion(SchemaModel):
    """Generated replacement of a decorated function."""

    name: str
    mode: Mode

    source: str = Field(
        title='Generated source',
        description='Python source defining a single function named `name`.',
    )

    namespace: dict[str, Any] = Field(
        default_factory=dict,
        repr=False,
        title='Namespace',
        description='Globals the generated source must be executed with.',
    )

    config: TestConfig | None = None


class CodeGenerator:
    """Generator of test entry points."""

    def __init__(self, resolver: 'PathResolver', *, migrate: bool = True) -> None:
        """Initialize the generator.

        Args:
            resolver: Resolver for migrations and fixtures.
            migrate: Whether the managed mode capability is available.
        """
        self.resolver = resolver
        self.migrate = migrate

    def generate(self, clauses: 'tuple[Clause, ...]', source: str,
                 signature: 'FunctionSignature', inner: Any = None) -> Expansion:  # noqa: ANN401
        """Generate the replacement for a decorated function.

        Args:
            clauses: Parsed clause nodes.
            source: Raw clause text.
            signature: Signature of the original function.
            inner: The original function object, bound into the namespace.

        Returns:
            Generated expansion.

        Raises:
            UnsupportedCombinationError: If clauses are given to a function
                without parameters.
            MissingCapabilityError: If the function has parameters and the
                `migrate` capability is disabled.
            ExpansionError: Any validation or resolution failure.
        """
        if not signature.parameters:
            if clauses:
                raise UnsupportedCombinationError.from_span(
                    self.unsupported_message(),
                    source,
                    clauses[0].span,
                )
            return self.simple(signature, inner)

        if not self.migrate:
            raise MissingCapabilityError('`migrate` capability required')

        config = build_config(clauses, source)

        return self.managed(signature, config, inner)

    def unsupported_message(self) -> str:
        """Message for clauses given to a function without parameters."""
        if self.migrate:
            return (
                'Control options are not allowed unless the `migrate` capability '
                'is enabled and automatic test database management is used: '
                'the test function must take parameters'
            )

        return (
            'Control options are not allowed unless automatic test database '
            'management is used, which requires the optional `migrate` capability'
        )

    def simple(self, signature: 'FunctionSignature', inner: Any = None) -> Expansion:  # noqa: ANN401
        """Generate a wrapper that only runs the original body."""
        logger.debug('Expanding %s in simple mode', signature.unique_id)

        receiver = signature.receiver or ''

        lines = [
            f'def {signature.name}({receiver}):',
            f'{INDENT}from {HELPERS_MODULE} import block_on',
            f'{INDENT}return block_on({INNER_NAME}({receiver}))',
        ]

        return Expansion(
            name=signature.name,
            mode='simple',
            source=self.join(lines),
            namespace={INNER_NAME: inner},
        )

    def managed(self, signature: 'FunctionSignature', config: TestConfig,
                inner: Any = None) -> Expansion:  # noqa: ANN401
        """Generate a wrapper that delegates to the test runner.

        Args:
            signature: Signature of the original function.
            config: Validated test configuration.
            inner: The original function object.

        Returns:
            Generated expansion.

        Raises:
            MigrateError: If migrations cannot be compiled.
            FixtureIOError: If a fixture cannot be read.
        """
        logger.debug('Expanding %s in managed mode', signature.unique_id)

        namespace: dict[str, Any] = {INNER_NAME: inner}
        helpers = {'FixtureRecord', 'TestArgs', 'TestFn', 'run_test'}

        migrator = self.resolver.migrator_for(config)
        fixtures = self.resolver.load_fixtures(config)

        if isinstance(config.migrations, ExplicitMigrator):
            helpers.add('import_reference')
            migrator_expr = f'import_reference({config.migrations.reference!r})'
        elif migrator is not None:
            namespace[MIGRATOR_NAME] = migrator
            migrator_expr = MIGRATOR_NAME
        else:
            migrator_expr = 'None'

        if not fixtures:
            helpers.discard('FixtureRecord')

        lines = [
            f'def {signature.name}({signature.receiver or ""}):',
            *self.inner_lines(signature, helpers),
            f'{INDENT}args = TestArgs(',
            f'{INDENT * 2}test_path={signature.unique_id!r},',
            f'{INDENT * 2}migrator={migrator_expr},',
            *self.fixtures_lines(fixtures),
            f'{INDENT})',
            f'{INDENT}f: TestFn = TestFn(inner, arity={signature.arity})',
            f'{INDENT}return run_test(f, args)',
        ]

        return Expansion(
            name=signature.name,
            mode='managed',
            source=self.join(lines),
            namespace=namespace,
            config=config,
        )

    @staticmethod
    def inner_lines(signature: 'FunctionSignature', helpers: set[str]) -> list[str]:
        """Render the imports and the binding of the original function.

        Test methods bind the original function to the instance pytest
        passes as receiver.
        """
        lines = [f'{INDENT}from {HELPERS_MODULE} import {", ".join(sorted(helpers))}']

        if signature.receiver is None:
            return [*lines, f'{INDENT}inner = {INNER_NAME}']

        return [
            f'{INDENT}from types import MethodType',
            *lines,
            f'{INDENT}inner = MethodType({INNER_NAME}, {signature.receiver})',
        ]

    @staticmethod
    def fixtures_lines(fixtures: 'tuple[FixtureRecord, ...]') -> list[str]:
        """Render the `fixtures=` argument with contents embedded verbatim."""
        if not fixtures:
            return [f'{INDENT * 2}fixtures=(),']

        return [
            f'{INDENT * 2}fixtures=(',
            *(
                f'{INDENT * 3}FixtureRecord(name={fixture.name!r}, '
                f'path={fixture.path!r}, contents={fixture.contents!r}),'
                for fixture in fixtures
            ),
            f'{INDENT * 2}),',
        ]

    @staticmethod
    def join(lines: list[str]) -> str:
        """Join source lines into a module body."""
        return '\n'.join(lines) + '\n'
