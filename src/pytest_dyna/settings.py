"""Runtime settings resolved from the environment.

Settings are read from `DYNA_*` environment variables. The pytest plugin
and the command-line interface may override individual values with their
own options.
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from pytest_dyna.models import SettingsModel
from pytest_dyna.names import ENGINE_KIND


class DynaSettings(SettingsModel):
    """Settings shared by the pytest plugin and the embedded driver."""

    model_config = SettingsConfigDict(
        env_prefix='DYNA_',
        frozen=True,
        extra='ignore',
    )

    engine_id: str = Field(
        default='dyna',
        min_length=1,
        title='Engine identifier',
        description=(
            f'Value of the leading `{ENGINE_KIND}` segment of every node identifier.'
        ),
    )

    skip_reason: str = Field(
        default='disabled',
        title='Skip reason',
        description='Reason reported for tests and groups that are disabled.',
    )

    keep_temp_dirs: bool = Field(
        default=True,
        title='Keep temporary directories',
        description=(
            'Default for `with_temp_dir`: keep the directory of a failed test '
            'so that it can be inspected.'
        ),
    )

    strict: bool = Field(
        default=False,
        title='Strict build',
        description=(
            'Report a root that fails to build as a pytest collection error '
            'instead of a failing test item.'
        ),
    )
