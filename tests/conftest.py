"""Tests configurations and fixtures."""

from importlib.metadata import EntryPoint, EntryPoints
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from pytest_dbtest.settings import Settings, get_settings, use_settings
from tests.examples.runners import RecordingRunner

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from pyfakefs.fake_filesystem import FakeFilesystem
    from pytest_mock import MockerFixture, MockType

PROJECT_ROOT = Path('/project')


@pytest.fixture(autouse=True)
def configure() -> 'Iterator[Callable[..., Settings]]':
    """Provide a factory installing process-wide settings.

    Settings installed during a test are restored afterwards, so tests
    never leak a project root, runner or capability flag into others.
    """
    previous = get_settings()

    def install(**values: object) -> Settings:
        """Install settings built from explicit values."""
        settings = Settings(**values)
        use_settings(settings)
        return settings

    yield install

    use_settings(previous)


@pytest.fixture
def project(fs: 'FakeFilesystem', configure: 'Callable[..., Settings]') -> Path:
    """Provide an empty project root on a fake filesystem.

    Returns:
        Absolute path of the project root, installed as settings root.
    """
    fs.create_dir(PROJECT_ROOT)
    configure(root=PROJECT_ROOT, runner=None)

    return PROJECT_ROOT


@pytest.fixture
def runner(mocker: 'MockerFixture') -> RecordingRunner:
    """Provide a recording runner used by every generated managed test."""
    instance = RecordingRunner()
    mocker.patch('pytest_dbtest.testing.get_runner', return_value=instance)

    return instance


@pytest.fixture
def patch_entrypoints(mocker: 'MockerFixture') -> 'Callable[..., MockType]':
    """Provide a factory for mocking runner entry points discovery.

    The returned factory allows configuring:
    - loadable runners,
    - or an exception raised during runner loading,
    - or an empty entry point list.
    """
    def patch(*runners: object, raises: Exception | None = None) -> 'MockType':
        """Patch `entry_points` with a controlled runner configuration.

        Args:
            runners: Objects to be returned by `EntryPoint.load()`.
                If empty, no entry points are registered.
            raises: Exception to raise when `EntryPoint.load()` is called.

        Returns:
            A mock patch object replacing `entry_points`.
        """
        entrypoints = []
        for position, item in enumerate(runners):
            ep = mocker.Mock(spec=EntryPoint)
            ep.group = 'dbtest_runners'
            ep.name = f'runner{position}'
            ep.value = f'tests.runners:runner{position}'
            ep.load.return_value = item
            if raises is not None:
                ep.load.side_effect = raises
            entrypoints.append(ep)

        return mocker.patch(
            'pytest_dbtest.testing.entry_points',
            return_value=EntryPoints(entrypoints),
        )

    return patch
