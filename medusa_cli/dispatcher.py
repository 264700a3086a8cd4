# Copyright 2022-2023 Canonical Ltd.
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

"""The command tree: commands, global arguments, and the Dispatcher that runs them."""

from __future__ import annotations

import argparse
import difflib
from typing import Any, Literal, NamedTuple, NoReturn, Optional, Sequence, TextIO

from medusa_cli.completion.completion import CommandTree, render
from medusa_cli.errors import ArgumentParsingError, ProvideHelpException
from medusa_cli.helptexts import HelpBuilder
from medusa_cli.messages import EmitterMode, emit
from medusa_cli.utils import humanize_list, quote_all


class CommandGroup(NamedTuple):
    """A titled set of commands, as listed together in the application's help."""

    name: str
    """The title of the group in the help."""

    commands: Sequence[type[BaseCommand]]
    """The commands in the group."""

    ordered: bool = False
    """Keep the commands in the given order in the help, instead of sorting them by name."""


class GlobalArgument(NamedTuple):
    """An argument that is valid before or after any command, handled by the Dispatcher."""

    name: str
    """The key for this argument in what ``Dispatcher.pre_parse_args`` returns."""

    type: Literal["flag", "option"]
    """A ``flag`` is True when present (False otherwise); an ``option`` needs a value."""

    short_option: str | None
    """The short form, like ``-q``, if any."""

    long_option: str
    """The long form, like ``--quiet``."""

    help_message: str
    """The one-line description for the help texts (``HIDDEN`` to leave it out)."""

    choices: Sequence[str] | None = None
    """The valid values for an ``option``, offered by the completion scripts."""


_VERBOSITY_LEVELS = [mode.name.lower() for mode in EmitterMode]

_DEFAULT_GLOBAL_ARGS = [
    GlobalArgument("help", "flag", "-h", "--help", "Show this help message and exit"),
    GlobalArgument(
        "verbose", "flag", "-v", "--verbose", "Show debug information and be more verbose"
    ),
    GlobalArgument(
        "quiet", "flag", "-q", "--quiet", "Only show warnings and errors, not progress"
    ),
    GlobalArgument(
        "verbosity",
        "option",
        None,
        "--verbosity",
        f"Set the verbosity level to {humanize_list(quote_all(_VERBOSITY_LEVELS), 'or')}",
        choices=_VERBOSITY_LEVELS,
    ),
]

# the global arguments that set the emitter mode, only one of them can be used at a time
_MODE_ARGS = ("quiet", "verbose", "verbosity")


class BaseCommand:
    """Base class for the application's commands.

    Subclasses must define ``name``, ``help_msg`` and ``overview``, may change the
    defaults of ``hidden``, ``silence_usage`` and ``parameter_choices``, and override
    ``run`` (and ``fill_parser`` if the command has arguments). Then they are given to the
    Dispatcher inside a ``CommandGroup``.
    """

    name: str
    """What the user types to run the command, like "completion"."""

    help_msg: str
    """A one-line description, for the application's help."""

    overview: str
    """The long, multi-line description, for the command's help."""

    hidden: bool = False
    """Leave the command out of help texts and completion scripts."""

    silence_usage: bool = False
    """Report this command's argument errors as the bare message, without the usage text."""

    parameter_choices: dict[str, Sequence[str]] = {}
    """The words the completion scripts offer for each positional parameter (by its dest),
      for those which validate their values in the command itself instead of with argparse
      choices."""

    def __init__(self, config: dict[str, Any] | None, *, root: Dispatcher | None = None) -> None:
        self.config = config
        self.root = root

        for attr_name in ("name", "help_msg", "overview"):
            if getattr(self, attr_name, None) is None:
                raise ValueError(f"Bad command configuration: missing value in '{attr_name}'.")

    def fill_parser(self, parser: _CustomArgumentParser) -> None:
        """Declare the command's own options and parameters in the given parser.

        Do nothing by default (a command without arguments). The global arguments are
        handled by the Dispatcher, see :meth:`Dispatcher.pre_parse_args`.
        """

    def run(self, parsed_args: argparse.Namespace) -> Optional[int]:  # noqa: UP007
        """Do what the command is for; it must be overridden.

        :param parsed_args: the values of the arguments declared in :meth:`fill_parser`
        :return: None, or the process' return code
        """
        raise NotImplementedError


class _CustomArgumentParser(argparse.ArgumentParser):
    """An ArgumentParser that raises the errors instead of exiting."""

    def __init__(
        self,
        help_builder: HelpBuilder,
        *args: Any,
        silence_usage: bool = False,
        **kwargs: Any,
    ) -> None:
        self._help_builder = help_builder
        self._silence_usage = silence_usage
        super().__init__(*args, **kwargs)

    def error(self, message: str) -> NoReturn:
        """Raise the error, with the command's usage unless silenced."""
        if not self._silence_usage:
            message = self._help_builder.get_usage_message(message, command=self.prog)
        raise ArgumentParsingError(message)


def _add_commands(commands: dict[str, type[BaseCommand]], command_group: CommandGroup) -> None:
    """Index the group's commands by name, refusing repeated names (leaving all untouched)."""
    new_commands: dict[str, type[BaseCommand]] = {}
    for cmd_class in command_group.commands:
        stored = commands.get(cmd_class.name) or new_commands.get(cmd_class.name)
        if stored is not None:
            raise RuntimeError(
                f"Multiple commands with same name: {cmd_class.__name__} and {stored.__name__}"
            )
        new_commands[cmd_class.name] = cmd_class
    commands.update(new_commands)


class Dispatcher:
    """Parse the command line and run the requested command.

    It is the root of the command tree: it knows every command and global argument, so
    it also produces the shell completion scripts.

    :param appname: the name of the application
    :param commands_groups: the groups of commands available to the user
    :param summary: the presentation of the application, for the help
    :param extra_global_args: global arguments to handle besides the default ones
    :param default_command: the command to run when none is given in the command line
    """

    def __init__(
        self,
        appname: str,
        commands_groups: list[CommandGroup],
        *,
        summary: str = "",
        extra_global_args: list[GlobalArgument] | None = None,
        default_command: type[BaseCommand] | None = None,
    ) -> None:
        self.appname = appname
        self.commands_groups = list(commands_groups)
        self.global_arguments = _DEFAULT_GLOBAL_ARGS + (extra_global_args or [])
        self.commands: dict[str, type[BaseCommand]] = {}
        for group in self.commands_groups:
            _add_commands(self.commands, group)

        self._default_command = default_command
        # the builder shares the groups list, so it also shows the ones added later
        self._help_builder = HelpBuilder(appname, summary, self.commands_groups)

        # filled while parsing and loading
        self._app_config: Any = None
        self._command_class: type[BaseCommand] | None = None
        self._command_args: list[str] | None = None
        self._loaded_command: BaseCommand | None = None
        self._parsed_command_args: argparse.Namespace | None = None

    def add_commands_group(self, command_group: CommandGroup) -> None:
        """Attach more commands to the application after the Dispatcher was built."""
        _add_commands(self.commands, command_group)
        self.commands_groups.append(command_group)

    def _usage_error(self, text: str) -> ArgumentParsingError:
        return ArgumentParsingError(self._help_builder.get_usage_message(text))

    def _get_global_options(self) -> list[tuple[str, str]]:
        """Return the (flags, description) of each global argument, for the help texts."""
        options = []
        for arg in self.global_arguments:
            flags = arg.long_option
            if arg.short_option is not None:
                flags = f"{arg.short_option}, {flags}"
            options.append((flags, arg.help_message))
        return options

    def _split_global_args(self, sysargs: list[str]) -> tuple[dict[str, Any], list[str]]:
        """Take the global arguments out of the command line, wherever they are.

        Return the value of every global argument, and the rest of the command line.
        """
        by_flag: dict[str, GlobalArgument] = {}
        values: dict[str, Any] = {}
        for arg in self.global_arguments:
            if arg.type not in ("flag", "option"):
                raise ValueError("Bad args structure.")
            by_flag[arg.long_option] = arg
            if arg.short_option is not None:
                by_flag[arg.short_option] = arg
            values[arg.name] = False if arg.type == "flag" else None
        valued_long_options = {
            arg.long_option: arg for arg in self.global_arguments if arg.type == "option"
        }

        remaining = []
        sysargs_it = iter(sysargs)
        for sysarg in sysargs_it:
            flag, equal_sign, value = sysarg.partition("=")
            arg = by_flag.get(sysarg)
            if arg is not None and arg.type == "flag":
                values[arg.name] = True
                continue
            if arg is not None:
                value = next(sysargs_it, "")
            elif equal_sign and flag in valued_long_options:
                # the "--option=value" form
                arg = valued_long_options[flag]
            else:
                remaining.append(sysarg)
                continue
            if not value:
                raise self._usage_error(f"The {arg.name!r} option expects one argument.")
            values[arg.name] = value
        return values, remaining

    def _set_emitter_mode(self, global_args: dict[str, Any]) -> None:
        """Apply the mode indicated by the quiet, verbose or verbosity global arguments."""
        if sum(1 for key in _MODE_ARGS if global_args[key]) > 1:
            raise self._usage_error(
                "The 'verbose', 'quiet' and 'verbosity' options are mutually exclusive."
            )

        if global_args["quiet"]:
            emit.set_mode(EmitterMode.QUIET)
        elif global_args["verbose"]:
            emit.set_mode(EmitterMode.VERBOSE)
        elif global_args["verbosity"]:
            level = global_args["verbosity"].lower()
            if level not in _VERBOSITY_LEVELS:
                valid = humanize_list(quote_all(_VERBOSITY_LEVELS))
                raise self._usage_error(f"Bad verbosity level; valid values are {valid}.")
            emit.set_mode(EmitterMode[level.upper()])

    def _get_command_help(self, cmd_class: type[BaseCommand]) -> str:
        """Produce the help of a command, listing its arguments after the global ones."""
        command = cmd_class(None, root=self)
        parser = _CustomArgumentParser(self._help_builder, prog=command.name, add_help=False)
        command.fill_parser(parser)

        arguments = self._get_global_options()
        for action in parser._actions:
            if action.option_strings:
                title = ", ".join(action.option_strings)
            elif isinstance(action.metavar, str):
                title = action.metavar
            else:
                title = action.dest
            arguments.append((title, action.help or ""))
        return self._help_builder.get_command_help(command, arguments)

    def _get_requested_help(self, parameters: list[str]) -> str:
        """Produce the full help, or the help of the one command in the parameters."""
        if not parameters:
            return self._help_builder.get_full_help(self._get_global_options())
        if len(parameters) > 1:
            raise self._usage_error(
                "Too many parameters when requesting help; pass a command or leave it empty"
            )

        (cmdname,) = parameters
        if cmdname not in self.commands:
            raise self._usage_error(f"command {cmdname!r} not found to provide help for")
        return self._get_command_help(self.commands[cmdname])

    def _unknown_command_message(self, command: str) -> str:
        """Build the error for a command that does not exist, suggesting similar ones."""
        msg = f"no such command {command!r}"
        similar = difflib.get_close_matches(command, self.commands)
        if similar:
            msg += f", maybe you meant {humanize_list(quote_all(similar), 'or')}"
        return self._help_builder.get_usage_message(msg)

    def pre_parse_args(self, sysargs: list[str]) -> dict[str, Any]:
        """Handle the global arguments and find out which command to run.

        The global arguments are applied (the emitter mode) and returned; help requests
        and an invalid command end here with ``ProvideHelpException`` or
        ``ArgumentParsingError``. The command's own arguments are only parsed when
        loading it.
        """
        global_args, remaining = self._split_global_args(sysargs)
        self._set_emitter_mode(global_args)
        emit.trace(f"Raw pre-parsed sysargs: args={global_args} filtered={remaining}")

        if global_args["help"]:
            raise ProvideHelpException(self._get_requested_help(remaining))

        if not remaining or remaining[0].startswith("-"):
            if self._default_command is None:
                raise ArgumentParsingError(
                    self._help_builder.get_full_help(self._get_global_options())
                )
            emit.trace(f"Using default command: {self._default_command.name!r}")
            remaining.insert(0, self._default_command.name)

        command, *cmd_args = remaining
        if command == "help":
            raise ProvideHelpException(self._get_requested_help(cmd_args))
        if command not in self.commands:
            raise ArgumentParsingError(self._unknown_command_message(command))

        self._command_class = self.commands[command]
        self._command_args = cmd_args
        emit.trace(f"General parsed sysargs: command={command!r} args={cmd_args}")
        return global_args

    def load_command(self, app_config: Any) -> BaseCommand:
        """Instantiate the command found when pre-parsing, and parse its arguments."""
        if self._command_class is None:
            raise RuntimeError(
                "Need to parse arguments (call 'pre_parse_args') before loading the command."
            )
        self._app_config = app_config
        command = self._command_class(app_config, root=self)

        parser = _CustomArgumentParser(
            self._help_builder, prog=command.name, silence_usage=command.silence_usage
        )
        command.fill_parser(parser)
        self._parsed_command_args = parser.parse_args(self._command_args)
        emit.trace(f"Command parsed sysargs: {self._parsed_command_args}")
        self._loaded_command = command
        return command

    def parsed_args(self) -> argparse.Namespace:
        """Get the parsed arguments of the loaded command."""
        if self._parsed_command_args is None:
            raise RuntimeError(
                "Need to load the command (call 'load_command') before retrieving the parsed "
                "arguments."
            )
        return self._parsed_command_args

    def run(self) -> int | None:
        """Run the loaded command, returning its return code (if any)."""
        if self._loaded_command is None or self._parsed_command_args is None:
            raise RuntimeError("Need to load the command (call 'load_command') before running it.")
        return self._loaded_command.run(self._parsed_command_args)

    # -- completion capabilities, each one writes a whole script for this command tree

    def _write_completion(self, out: TextIO, shell: str, *, descriptions: bool) -> None:
        tree = CommandTree.from_dispatcher(self, self._app_config)
        out.write(render(shell, tree, descriptions=descriptions))

    def generate_bash_completion(self, out: TextIO, *, descriptions: bool = True) -> None:
        """Write a bash completion script (v2 style) to the given stream."""
        self._write_completion(out, "bash", descriptions=descriptions)

    def generate_zsh_completion(self, out: TextIO) -> None:
        """Write a zsh completion script to the given stream."""
        self._write_completion(out, "zsh", descriptions=True)

    def generate_powershell_completion(self, out: TextIO, *, descriptions: bool = True) -> None:
        """Write a PowerShell completion script to the given stream."""
        self._write_completion(out, "powershell", descriptions=descriptions)
