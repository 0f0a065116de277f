"""Process-wide settings.

Settings are read from environment variables prefixed with `DBTEST_`
and may be replaced as a whole, which the pytest plugin does during
`pytest_configure` to apply ini options and the pytest root directory.
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from pytest_dbtest.models import SettingsModel


class Settings(SettingsModel):
    """Runtime settings of pytest-dbtest."""

    model_config = SettingsConfigDict(
        env_prefix='DBTEST_',
        frozen=True,
        extra='ignore',
    )

    root: Path | None = Field(
        default=None,
        title='Project root',
        description=(
            'Directory that `migrations/` and `fixtures/` are resolved against. '
            'Defaults to the current working directory.'
        ),
    )

    migrate: bool = Field(
        default=True,
        title='Migrate capability',
        description=(
            'Whether managed database tests are available. '
            'When disabled, functions with parameters cannot be expanded.'
        ),
    )

    runner: str | None = Field(
        default=None,
        title='Test runner',
        description=(
            'Code reference of the test runner, for example `tests.db:runner`. '
            'If unset, the single runner registered in the `dbtest_runners` '
            'entry point group is used.'
        ),
    )

    @property
    def project_root(self) -> Path:
        """Return the absolute project root."""
        return (self.root or Path.cwd()).resolve()


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the process-wide settings, reading the environment on first use."""
    global _settings  # noqa: PLW0603

    if _settings is None:
        _settings = Settings()

    return _settings


def use_settings(settings: Settings | None) -> None:
    """Replace the process-wide settings.

    Args:
        settings: New settings, or `None` to re-read the environment
            on next access.
    """
    global _settings  # noqa: PLW0603

    _settings = settings
