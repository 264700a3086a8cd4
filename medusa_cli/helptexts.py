# Copyright 2021-2022 Canonical Ltd.
#
# This program is free software; you can redistribute it and/or
# modify it under the terms of the GNU Lesser General Public
# License version 3 as published by the Free Software Foundation.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the GNU
# Lesser General Public License for more details.
#
# You should have received a copy of the GNU Lesser General Public License
# along with this program; if not, write to the Free Software Foundation,
# Inc., 51 Franklin Street, Fifth Floor, Boston, MA  02110-1301, USA.

"""Plain text help: the application's usage line, its full help, and each command's help."""

from __future__ import annotations

import argparse
import textwrap
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from medusa_cli.dispatcher import BaseCommand, CommandGroup

# the help text of arguments (global ones or those of a command) which must be left out from
# help messages and completion scripts
HIDDEN = argparse.SUPPRESS

TERMINAL_WIDTH = 72

# indentation of the titles, and what goes between them and their texts
_INDENT = "    "
_SEPARATOR = ":  "

USAGE = """\
Usage: {appname} [options] command [args]...
Try '{full_command} -h' for help.

Error: {error_message}
"""


def _format_entry(title: str, text: str, width: int) -> list[str]:
    """Right-align the title in the given width and wrap the text to its right."""
    margin = len(_INDENT) + width + len(_SEPARATOR)
    lines = textwrap.wrap(text, TERMINAL_WIDTH - margin)
    if not lines:
        return []
    first = f"{_INDENT}{title:>{width}}{_SEPARATOR}{lines[0]}"
    return [first] + [" " * margin + line for line in lines[1:]]


def _section(header: str, entries: list[tuple[str, str]], width: int) -> str:
    """Build a titled block with all the visible entries aligned."""
    lines = [f"{header}:"]
    for title, text in entries:
        if text is not HIDDEN:
            lines.extend(_format_entry(title, text, width))
    return "\n".join(lines)


def _join_blocks(blocks: list[str]) -> str:
    """Put the blocks together, separated by exactly one empty line."""
    return "\n\n".join(block.strip() for block in blocks) + "\n"


class HelpBuilder:
    """Produce the different help texts for an application and its commands.

    :param appname: the name of the application, as typed by the user
    :param general_summary: a multiline text presenting the application
    :param command_groups: the groups of commands to list; shared with the dispatcher, so
        groups added after building are included too
    """

    def __init__(
        self,
        appname: str,
        general_summary: str,
        command_groups: list[CommandGroup],
    ) -> None:
        self.appname = appname
        self.general_summary = general_summary
        self.command_groups = command_groups

    def get_usage_message(self, error_message: str, command: str = "") -> str:
        """Build the short usage text that goes with an error.

        The "Try ... -h" hint points to the command's help when ``command`` is given
        (e.g. "medusa completion -h"), otherwise to the application's one.
        """
        full_command = f"{self.appname} {command}" if command else self.appname
        return USAGE.format(
            appname=self.appname, full_command=full_command, error_message=error_message
        )

    def get_full_help(self, global_options: list[tuple[str, str]]) -> str:
        """Produce the application's help: summary, global options and command groups.

        :param global_options: the (flags, description) of each global option
        """
        titles = [title for title, _ in global_options]
        titles.extend(cmd.name for group in self.command_groups for cmd in group.commands)
        width = max((len(title) for title in titles), default=0)

        blocks = [
            f"Usage:\n{_INDENT}{self.appname} [help] <command>",
            "Summary:" + textwrap.indent(self.general_summary, _INDENT),
            _section("Global options", global_options, width),
        ]
        for group in self.command_groups:
            visible = [cmd for cmd in group.commands if not cmd.hidden]
            if not group.ordered:
                visible.sort(key=lambda cmd: cmd.name)
            entries = [(cmd.name, cmd.help_msg) for cmd in visible]
            blocks.append(_section(group.name, entries, width))
        blocks.append(
            f"For more information about a command, run '{self.appname} help <command>'."
        )
        return _join_blocks(blocks)

    def get_command_help(self, command: BaseCommand, arguments: list[tuple[str, str]]) -> str:
        """Produce a command's help: usage, overview, parameters and options.

        :param command: the instantiated command
        :param arguments: the (name, description) of each of the command's options and
            positional parameters; the ones with a ``HIDDEN`` description are left out
        """
        visible = [(name, text) for name, text in arguments if text is not HIDDEN]
        parameters = [item for item in visible if not item[0].startswith("-")]
        options = [item for item in visible if item[0].startswith("-")]

        usage = f"{self.appname} {command.name} [options]"
        for name, _ in parameters:
            usage += f" <{name}>"

        width = max((len(name) for name, _ in visible), default=0)
        blocks = [
            f"Usage:\n{_INDENT}{usage}",
            "Summary:" + textwrap.indent(command.overview, _INDENT),
        ]
        if parameters:
            blocks.append(_section("Positional arguments", parameters, width))
        blocks.append(_section("Options", options, width))
        blocks.append(f"For a summary of all commands, run '{self.appname} help'.")
        return _join_blocks(blocks)
