"""Expansion pipeline and the `db_test` decorator.

An expansion parses the clause text, lets the code generator select
the simple or managed strategy, and compiles the generated source into
the replacement function. Every expansion is independent: it shares no
mutable state with others, and a failure aborts only the function being
decorated.
"""

from typing import TYPE_CHECKING, Any, overload

from pytest_dbtest.errors import ExpansionError

from .generator import CodeGenerator, Expansion
from .parser import parse_clauses
from .resolver import PathResolver
from .signature import FunctionSignature

if TYPE_CHECKING:
    from collections.abc import Callable
    from typing import Self

    from pytest_dbtest.settings import Settings

#: Attributes never copied from the original function.
_SKIPPED_ATTRIBUTES = frozenset(('__wrapped__',))


class Expander:
    """Expansion pipeline bound to a resolver and a capability flag."""

    def __init__(self, generator: CodeGenerator) -> None:
        """Initialize the expander.

        Args:
            generator: Code generator to use.
        """
        self.generator = generator

    @classmethod
    def from_settings(cls, settings: 'Settings | None' = None) -> 'Self':
        """Create an expander from settings.

        Args:
            settings: Settings to use; the process-wide settings by default.
        """
        if settings is None:
            from pytest_dbtest.settings import get_settings  # noqa: PLC0415
            settings = get_settings()

        return cls(CodeGenerator(
            PathResolver.from_settings(settings),
            migrate=settings.migrate,
        ))

    def expand(self, source: str, signature: FunctionSignature,
               inner: Any = None) -> Expansion:  # noqa: ANN401
        """Expand clause text for a function signature.

        Args:
            source: Raw clause text.
            signature: Signature of the original function.
            inner: The original function object.

        Returns:
            Generated expansion.

        Raises:
            ExpansionError: Any diagnostic, located at the decorated function.
        """
        try:
            clauses = parse_clauses(source)
            return self.generator.generate(clauses, source, signature, inner)

        except ExpansionError as error:
            error.locate(
                filename=signature.filename,
                line_num=signature.line_num,
                function=signature.qualname,
            )
            raise

    def decorate(self, fn: 'Callable[..., Any]', source: str = '') -> 'Callable[[], Any]':
        """Replace a test function by its generated entry point.

        Args:
            fn: Original test function.
            source: Raw clause text.

        Returns:
            The compiled entry point, carrying the original metadata.
        """
        signature = FunctionSignature.from_callable(fn)
        expansion = self.expand(source, signature, fn)

        wrapper = self.compile(expansion, signature)

        wrapper.__doc__ = fn.__doc__
        wrapper.__module__ = fn.__module__
        wrapper.__qualname__ = fn.__qualname__
        wrapper.__dict__.update({
            key: value
            for key, value in fn.__dict__.items()
            if key not in _SKIPPED_ATTRIBUTES
        })

        if 'return' in getattr(fn, '__annotations__', {}):
            wrapper.__annotations__ = {'return': fn.__annotations__['return']}

        wrapper.__test__ = True  # type: ignore[attr-defined]
        wrapper.__dbtest_source__ = expansion.source  # type: ignore[attr-defined]
        wrapper.__dbtest_config__ = expansion.config  # type: ignore[attr-defined]

        return wrapper

    @staticmethod
    def compile(expansion: Expansion, signature: FunctionSignature) -> 'Callable[[], Any]':
        """Compile generated source into a function object.

        Args:
            expansion: Generated expansion.
            signature: Signature of the original function.

        Returns:
            The generated function.
        """
        namespace = dict(expansion.namespace)
        code = compile(expansion.source, f'<dbtest {signature.unique_id}>', 'exec')
        exec(code, namespace)  # noqa: S102

        return namespace[expansion.name]  # type: ignore[no-any-return]


@overload
def db_test(fn: 'Callable[..., Any]', /) -> 'Callable[[], Any]':
    ...  # pragma: no cover


@overload
def db_test(*clauses: str) -> 'Callable[[Callable[..., Any]], Callable[[], Any]]':
    ...  # pragma: no cover


def db_test(*clauses: Any) -> Any:  # noqa: ANN401
    """Mark a function as a database test.

    Functions without parameters run as they are. Functions with
    parameters run in managed mode: the configured test runner provisions
    a database, applies migrations, loads fixtures, and passes the
    connection arguments.

    Clauses:
        fixtures("<name>", ...): load `fixtures/<name>.sql` in order;
        migrations = "<path>": compile migrations from a directory;
        migrations = false: run without migrations;
        migrator = "<module:attribute>": use an existing migrator object.

    Examples:
        >>> @db_test('fixtures("users", "posts")', 'migrations = false')
        ... def test_posts(connection): ...

    Args:
        *clauses: Clause strings, joined with `, ` into one clause list.
            May also be the decorated function itself for bare usage.

    Returns:
        A decorator, or the generated entry point for bare usage.

    Raises:
        ExpansionError: If the clauses are invalid or resources cannot
            be resolved.
        TypeError: If a clause is not a string.
    """
    if len(clauses) == 1 and callable(clauses[0]):
        return Expander.from_settings().decorate(clauses[0])

    for clause in clauses:
        if not isinstance(clause, str):
            raise TypeError(f'Clauses must be strings, got {clause!r}')

    source = ', '.join(clauses)

    def decorator(fn: 'Callable[..., Any]') -> 'Callable[[], Any]':
        return Expander.from_settings().decorate(fn, source)

    return decorator
