"""Base Pydantic models for library values.

This module defines the foundational model classes used by value types
such as outcomes, node identifiers, source locations, and reports. It
enforces immutability and strict schema validation so that values handed
to hooks and sinks can not be altered along the way.
"""

from pydantic import BaseModel, ConfigDict
from pydantic_settings import BaseSettings, SettingsConfigDict


class SchemaModel(BaseModel):
    """Base immutable model for all value types.

    Design principles enforced by this model:
        - Immutability: values can not be modified after creation.
          An outcome passed to one hook is the same for the next one.
        - Strict schema validation: unknown or extra fields are rejected
          to avoid silent errors caused by typos.
        - Arbitrary types: exceptions and failures are carried as-is.

    All value models must inherit from this class.
    """

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        frozen=True,
        extra='forbid',
    )


class SettingsModel(BaseSettings):
    """Base immutable model for runtime settings.

    Design principles enforced by this model:
        - Immutability: resolved settings cannot be modified after creation.
        - Tolerant schema handling: unknown or extra fields are ignored.
          This allows the surrounding environment to contain unrelated
          variables without breaking configuration resolution.
    """

    model_config = SettingsConfigDict(
        frozen=True,
        extra='ignore',
    )
