"""Runtime interface between generated tests and test runners.

Generated tests import their helpers from this module. A managed test
packs its unique identifier, migrator and fixtures into `TestArgs`,
coerces the original function into a `TestFn`, and delegates both to
the configured `TestRunner`. Database provisioning, migration
application, fixture loading, and teardown belong to the runner.
"""

from asyncio import get_running_loop, run
from importlib.metadata import EntryPoint, entry_points
from inspect import isawaitable, iscoroutine
from logging import getLogger
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from pydantic import Field

from pytest_dbtest.errors import RunnerError
from pytest_dbtest.models import SchemaModel
from pytest_dbtest.names import is_reference
from pytest_dbtest.schema import FixtureRecord
from pytest_dbtest.settings import get_settings

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = getLogger(__name__)

#: Entry point group for runner discovery.
RUNNERS_GROUP = 'dbtest_runners'


class TestArgs(SchemaModel):
    """Arguments handed from a generated test to the runner."""

    __test__ = False

    test_path: str = Field(
        title='Test path',
        description='Unique identifier of the test: module path plus qualified name.',
    )

    migrator: Any = Field(
        default=None,
        title='Migrator',
        description='Compiled or referenced migrator, `None` to skip migrations.',
    )

    fixtures: tuple[FixtureRecord, ...] = Field(
        default=(),
        title='Fixtures',
        description='Fixture scripts to load, in declaration order.',
    )


class TestFn:
    """Coerced test function.

    Adapts the original function to the runner calling convention: the
    runner calls it with exactly `arity` positional arguments. Called
    from synchronous code, asynchronous functions are driven to completion
    before returning; called from a running event loop, the awaitable is
    returned for the runner to await.
    """

    __test__ = False

    def __init__(self, fn: 'Callable[..., Any]', arity: int) -> None:
        """Initialize the coerced function.

        Args:
            fn: Original test function.
            arity: Number of positional parameters of `fn`.
        """
        self.fn = fn
        self.arity = arity

    def __call__(self, *args: Any) -> Any:  # noqa: ANN401
        """Invoke the original function.

        Raises:
            TypeError: If the runner passes a wrong number of arguments.
        """
        if len(args) != self.arity:
            raise TypeError(
                f'{self.fn.__qualname__}() takes {self.arity} arguments '
                f'but the runner passed {len(args)}',
            )

        result = self.fn(*args)

        try:
            get_running_loop()
        except RuntimeError:
            return block_on(result)

        return result

    def __repr__(self) -> str:
        """String representation."""
        return f'TestFn({self.fn.__qualname__!r}, arity={self.arity})'


@runtime_checkable
class TestRunner(Protocol):
    """Protocol of database test runners."""

    def run(self, args: TestArgs, test_fn: TestFn) -> Any:  # noqa: ANN401
        """Provision a database, apply migrations and fixtures, run the test."""
        ...  # pragma: no cover


async def _await[T](value: 'Awaitable[T]') -> T:
    """Await an arbitrary awaitable."""
    return await value


def block_on(value: Any) -> Any:  # noqa: ANN401
    """Drive an awaitable to completion, pass other values through.

    Args:
        value: Result of calling a test body.

    Returns:
        The awaited result for coroutines and awaitables, otherwise `value`.
    """
    if iscoroutine(value):
        return run(value)

    if isawaitable(value):
        return run(_await(value))

    return value


def import_reference(reference: str) -> Any:  # noqa: ANN401
    """Import an object by code reference.

    Args:
        reference: `pkg.module:attr` or `pkg.module.attr`.

    Returns:
        The referenced object.

    Raises:
        RunnerError: If the reference is malformed or cannot be imported.
    """
    if not is_reference(reference):
        raise RunnerError(f'{reference!r} is not a code reference')

    value = reference
    if ':' not in value:
        value = ':'.join(value.rsplit('.', 1))

    try:
        return EntryPoint(name=reference, value=value, group='dbtest').load()

    except (ImportError, AttributeError) as base:
        raise RunnerError(f'Can not import {reference!r}') from base


def get_runner() -> TestRunner:
    """Resolve the configured test runner.

    The `runner` setting wins. Otherwise exactly one runner must be
    registered in the `dbtest_runners` entry point group. Runner classes
    are instantiated without arguments.

    Returns:
        Test runner instance.

    Raises:
        RunnerError: If no runner or more than one runner is available,
            or the resolved object is not a runner.
    """
    if reference := get_settings().runner:
        runner = import_reference(reference)

    else:
        candidates = tuple(entry_points().select(group=RUNNERS_GROUP))
        if not candidates:
            raise RunnerError(
                'No test runner configured; set the `dbtest_runner` ini option, '
                f'`DBTEST_RUNNER` or register a {RUNNERS_GROUP!r} entry point',
            )
        if len(candidates) > 1:
            names = ', '.join(sorted(candidate.name for candidate in candidates))
            raise RunnerError(
                f'Multiple test runners registered ({names}); '
                'select one with the `dbtest_runner` ini option',
            )
        try:
            runner = candidates[0].load()
        except Exception as base:
            raise RunnerError(f'Failed to load runner {candidates[0].name!r}') from base

    if isinstance(runner, type):
        runner = runner()

    if not isinstance(runner, TestRunner):
        raise RunnerError(f'{runner!r} is not a test runner')

    return runner


def run_test(test_fn: TestFn, args: TestArgs) -> Any:  # noqa: ANN401
    """Delegate a managed test to the configured runner.

    Args:
        test_fn: Coerced test function.
        args: Test identifier, migrator and fixtures.

    Returns:
        The runner outcome, awaited if the runner is asynchronous.
    """
    runner = get_runner()
    logger.debug('Running %s with %r', args.test_path, runner)

    return block_on(runner.run(args, test_fn))
