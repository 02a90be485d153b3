"""Node names and node kinds.

This module defines the rules for naming tree nodes and the kind tags
used in hierarchical node identifiers. The rules form part of the public
contract and are relied upon by the tree model, the engine, and any host
tooling that displays node identifiers.
"""

from typing import Annotated, Literal

from pydantic import Field, TypeAdapter, ValidationError

from pytest_dyna.errors import InvalidNameError

#: Kind tag of the leading identifier segment.
ENGINE_KIND = 'engine'
#: Kind tag of the segment naming the module that declares a root.
MODULE_KIND = 'module'
#: Kind tag of a group segment.
GROUP_KIND = 'group'
#: Kind tag of a test segment.
TEST_KIND = 'test'

type NodeKind = Literal['group', 'test']

NodeName = Annotated[
    str, Field(
        min_length=1,
        strict=True,
        title='Node name',
        description=(
            'Name of a test or a group. Must be non-empty and unique among '
            'the children of the same group; comparison is exact and '
            'case-sensitive.'
        ),
        examples=[
            'adds two numbers',
            'Calculator',
        ],
    ),
]

_NODE_NAME = TypeAdapter(NodeName)


def validate_name(name: object) -> str:
    """Validate a node name.

    Args:
        name: Candidate node name.

    Returns:
        The validated name.

    Raises:
        InvalidNameError: If the name is not a non-empty string.
    """
    try:
        return _NODE_NAME.validate_python(name)
    except ValidationError as base:
        raise InvalidNameError(f'Invalid test/group name {name!r}') from base
