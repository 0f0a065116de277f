"""Base Pydantic models for expansion artifacts.

This module defines the foundational model classes used by clause nodes,
test configurations, migrators, and runner arguments. It enforces
immutability and strict schema validation so that every expansion is
deterministic and carries no hidden state.
"""

from pydantic import BaseModel, ConfigDict
from pydantic_settings import BaseSettings, SettingsConfigDict


class SchemaModel(BaseModel):
    """Base immutable model for all expansion artifacts.

    Design principles enforced by this model:
        - Immutability: parsed clauses and built configurations cannot be
          modified after creation. An expansion consumes them once and
          never mutates them.
        - Strict schema validation: unknown or extra fields are rejected
          to avoid silent errors caused by typos.

    All models of the package must inherit from this class.
    """

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        frozen=True,
        extra='forbid',
    )


class SettingsModel(BaseSettings):
    """Base immutable model for runtime settings.

    Settings are resolved from environment variables and explicit
    overrides (for example, pytest ini options).

    Design principles enforced by this model:
        - Immutability: resolved settings cannot be modified after creation.
        - Tolerant schema handling: unknown or extra fields are ignored,
          so unrelated environment variables never break resolution.
    """

    model_config = SettingsConfigDict(
        frozen=True,
        extra='ignore',
    )
