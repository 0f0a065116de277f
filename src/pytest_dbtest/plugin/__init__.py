"""Pytest plugin for database tests.

This module integrates `pytest-dbtest` with pytest by:
- registering ini and command-line options;
- installing process-wide settings before test modules are imported,
  with the pytest root directory as the default project root.

Test modules are imported during collection, after `pytest_configure`,
so every `db_test` expansion sees the configured settings.
"""

from pathlib import Path
from typing import TYPE_CHECKING, Any

from pytest_dbtest.settings import Settings, use_settings

if TYPE_CHECKING:
    from _pytest.config import Config
    from _pytest.config.argparsing import Parser


def pytest_addoption(parser: 'Parser') -> None:
    """Register pytest options for pytest-dbtest.

    Args:
        parser: Pytest argument parser.
    """
    parser.addini(
        'dbtest_root',
        help=(
            'Project root that `migrations/` and `fixtures/` are resolved against. '
            'Relative to the pytest root directory; defaults to it.'
        ),
        default='',
    )
    parser.addini(
        'dbtest_runner',
        help='Code reference of the test runner, for example `tests.db:runner`.',
        default='',
    )
    parser.addini(
        'dbtest_migrate',
        type='bool',
        help='Enable managed database tests (the `migrate` capability).',
        default=True,
    )
    parser.addoption(
        '--dbtest-runner',
        action='store',
        dest='dbtest_runner',
        default=None,
        help='Code reference of the test runner; overrides the ini option.',
    )


def pytest_configure(config: 'Config') -> None:
    """Install settings for expansions performed during collection.

    Ini options override environment variables; the pytest root
    directory is used when neither sets a project root.

    Args:
        config: Pytest configuration object.
    """
    overrides: dict[str, Any] = {}

    if root := config.getini('dbtest_root'):
        overrides['root'] = config.rootpath / Path(root)

    if runner := config.getoption('dbtest_runner') or config.getini('dbtest_runner'):
        overrides['runner'] = runner

    if not config.getini('dbtest_migrate'):
        overrides['migrate'] = False

    settings = Settings(**overrides)
    if settings.root is None:
        settings = settings.model_copy(update={'root': config.rootpath})

    use_settings(settings)


def pytest_unconfigure(config: 'Config') -> None:  # noqa: ARG001
    """Drop the installed settings."""
    use_settings(None)
