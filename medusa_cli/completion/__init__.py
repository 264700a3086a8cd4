"""Shell completion script generation module."""

from .completion import (
    complete,
    get_set_flags,
    render,
    Action,
    CommandMapping,
    CommandTree,
    CompGen,
    Option,
    OptionArgument,
)

__all__ = [
    "complete",
    "get_set_flags",
    "render",
    "Action",
    "CommandMapping",
    "CommandTree",
    "CompGen",
    "Option",
    "OptionArgument",
]
