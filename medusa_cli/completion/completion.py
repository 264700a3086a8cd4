# Copyright 2024 Canonical Ltd.
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

"""Shell completion scripts for the whole command tree of a dispatcher."""

from __future__ import annotations

import argparse
import dataclasses
import enum
import importlib
import re
import shlex
import sys
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any

import jinja2
from typing_extensions import Self

from medusa_cli.helptexts import HIDDEN
from medusa_cli.messages import EmitterMode, emit

if TYPE_CHECKING:
    from medusa_cli.dispatcher import Dispatcher, GlobalArgument

TEMPLATES = {
    "bash": "bash_completion.sh.j2",
    "zsh": "zsh_completion.zsh.j2",
    "powershell": "powershell_completion.ps1.j2",
}

DispatcherAndConfig = tuple["Dispatcher", "dict[str, Any] | None"]


class Option(enum.Flag):
    """The ``-o`` settings of ``compgen``."""

    bashdefault = enum.auto()
    default = enum.auto()
    dirnames = enum.auto()
    filenames = enum.auto()
    noquote = enum.auto()
    nosort = enum.auto()
    nospace = enum.auto()
    plusdirs = enum.auto()


class Action(enum.Flag):
    """The ``-A`` word sources of ``compgen``."""

    alias = enum.auto()
    command = enum.auto()
    directory = enum.auto()
    export = enum.auto()
    file = enum.auto()
    function = enum.auto()
    group = enum.auto()
    hostname = enum.auto()
    service = enum.auto()
    user = enum.auto()
    variable = enum.auto()


def get_set_flags(flags: enum.Flag) -> list[enum.Flag]:
    """Split a combination of flags into the single flags it holds, in definition order."""
    return [member for member in type(flags) if member in flags]


@dataclasses.dataclass
class CompGen:
    """The candidates for a word, written as a bash ``compgen`` call by ``str()``.

    Only the options that produce words are supported; running a function (``-F``) or a
    command (``-C``) is done in the scripts with ``$(...)``.
    """

    options: Option | None = None
    actions: Action | None = None
    glob_pattern: str | None = None
    prefix: str | None = None
    suffix: str | None = None
    words: list[str] = dataclasses.field(default_factory=list)
    filter_pattern: str | None = None

    def __str__(self) -> str:
        """Build the ``compgen`` command line, safely quoted."""
        cmd = ["compgen"]
        for option in get_set_flags(self.options) if self.options else []:
            cmd += ["-o", str(option.name)]
        for action in get_set_flags(self.actions) if self.actions else []:
            cmd += ["-A", str(action.name)]
        valued = (
            ("-G", self.glob_pattern),
            ("-P", self.prefix),
            ("-S", self.suffix),
            ("-W", " ".join(self.words)),
            ("-X", self.filter_pattern),
        )
        for flag, value in valued:
            if value:
                cmd += [flag, value]
        return shlex.join(cmd)


def _zsh_escape(text: str) -> str:
    """Escape the chars that have a meaning inside an ``_arguments`` spec."""
    return re.sub(r"([\\\[\]:])", r"\\\1", text)


def _zsh_action(compgen: CompGen) -> str:
    """Translate what a compgen would offer into a zsh completion action."""
    if compgen.words:
        return "(" + " ".join(compgen.words) + ")"
    if compgen.actions and compgen.actions & Action.file:
        return "_files"
    if compgen.actions and compgen.actions & Action.directory:
        return "_files -/"
    return "_default"


def _get_compgen(choices: Any, value_type: Any) -> CompGen:
    if choices:
        return CompGen(words=[str(choice) for choice in choices])
    if value_type is Path:
        return CompGen(actions=Action.file)
    return CompGen()


@dataclasses.dataclass
class OptionArgument:
    """An option of the application or of a command, as the scripts offer it."""

    flags: list[str]
    completion_command: CompGen
    description: str = ""
    takes_value: bool = False

    @classmethod
    def from_global_argument(cls, argument: GlobalArgument) -> Self:
        """Build it from one of the Dispatcher's global arguments (long flag first)."""
        flags = [argument.long_option]
        if argument.short_option:
            flags.append(argument.short_option)
        return cls(
            flags=flags,
            completion_command=_get_compgen(argument.choices, None),
            description=argument.help_message,
            takes_value=argument.type == "option",
        )

    @classmethod
    def from_action(cls, action: argparse.Action) -> Self:
        """Build it from an option declared by a command in its parser."""
        return cls(
            flags=list(action.option_strings),
            completion_command=_get_compgen(action.choices, action.type),
            description=action.help or "",
            takes_value=action.nargs != 0,
        )

    @property
    def flag_list(self) -> str:
        """All the flags as a bash ``case`` pattern."""
        return "|".join(self.flags)

    @property
    def zsh_specs(self) -> list[str]:
        """One ``_arguments`` spec per flag."""
        description = _zsh_escape(self.description)
        specs = []
        for flag in self.flags:
            spec = f"{flag}[{description}]"
            if self.takes_value:
                spec += f":{flag.lstrip('-')}:{_zsh_action(self.completion_command)}"
            specs.append(spec)
        return specs


@dataclasses.dataclass
class CommandMapping:
    """What a command offers: its description, its options and its positional parameters."""

    description: str
    options: list[OptionArgument]
    params: CompGen

    @property
    def value_options(self) -> list[OptionArgument]:
        """The options that need a value after them."""
        return [option for option in self.options if option.takes_value]

    @property
    def zsh_params(self) -> str:
        """The ``_arguments`` spec for the positional parameters."""
        return f"*: :{_zsh_action(self.params)}"


def _get_command_mapping(
    cmd_cls: Any, app_config: dict[str, Any] | None, dispatcher: Dispatcher
) -> CommandMapping:
    """Fill the command's parser and collect what it accepts."""
    # a bare parser, the help and error handling of the dispatcher's one are not needed
    parser = argparse.ArgumentParser(add_help=False)
    cmd_cls(app_config, root=dispatcher).fill_parser(parser)

    options: list[OptionArgument] = []
    words: list[str] = []
    actions = Action(0)
    for action in parser._actions:
        if action.help is HIDDEN:
            continue
        if action.option_strings:
            options.append(OptionArgument.from_action(action))
            continue
        compgen = _get_compgen(action.choices, action.type)
        words += compgen.words
        words += cmd_cls.parameter_choices.get(action.dest, [])
        if compgen.actions:
            actions |= compgen.actions

    if words:
        params = CompGen(words=words)
    else:
        params = CompGen(actions=actions or None, options=Option.bashdefault)
    return CommandMapping(cmd_cls.help_msg, options, params)


@dataclasses.dataclass
class CommandTree:
    """Everything a completion script needs to know about an application."""

    shell_cmd: str
    commands: dict[str, CommandMapping]
    global_opts: list[OptionArgument]

    @property
    def function_name(self) -> str:
        """A shell-safe identifier derived from the command name."""
        return re.sub(r"\W", "_", self.shell_cmd)

    @property
    def global_value_flags(self) -> list[str]:
        """The flags of the global options that need a value after them."""
        return [flag for option in self.global_opts if option.takes_value for flag in option.flags]

    @classmethod
    def from_dispatcher(
        cls,
        dispatcher: Dispatcher,
        app_config: dict[str, Any] | None = None,
        shell_cmd: str | None = None,
    ) -> Self:
        """Collect the (not hidden) commands and global options of the dispatcher.

        :param dispatcher: the populated dispatcher
        :param app_config: the config the commands are instantiated with
        :param shell_cmd: the name the user types, the application's name by default
        """
        commands = {
            name: _get_command_mapping(cmd_cls, app_config, dispatcher)
            for name, cmd_cls in dispatcher.commands.items()
            if not cmd_cls.hidden
        }
        global_opts = [
            OptionArgument.from_global_argument(arg)
            for arg in dispatcher.global_arguments
            if arg.help_message is not HIDDEN
        ]
        return cls(
            shell_cmd=shell_cmd or dispatcher.appname,
            commands=commands,
            global_opts=global_opts,
        )


def _powershell_quote(text: str) -> str:
    return "'" + text.replace("'", "''") + "'"


def _get_environment() -> jinja2.Environment:
    # "#{ ... #}" for template comments, as "{# ... #}" clashes with the shells' syntax
    env = jinja2.Environment(
        loader=jinja2.FileSystemLoader(Path(__file__).parent),
        comment_start_string="#{",
        comment_end_string="#}",
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        autoescape=jinja2.select_autoescape(),
        undefined=jinja2.StrictUndefined,
    )
    env.filters["shell_quote"] = shlex.quote
    env.filters["ps_quote"] = _powershell_quote
    return env


def render(shell: str, tree: CommandTree, *, descriptions: bool = True) -> str:
    """Render the completion script for the given shell.

    :param shell: One of the keys in :data:`TEMPLATES`
    :param tree: The application's command tree
    :param descriptions: Whether to offer the help text together with each candidate
    :return: The complete script, ready to be sourced
    """
    try:
        template_name = TEMPLATES[shell]
    except KeyError:
        raise ValueError(f"No completion template for shell {shell!r}") from None
    template = _get_environment().get_template(template_name)
    return template.render(tree=tree, descriptions=descriptions)


def complete(
    shell_cmd: str, get_app_info: Callable[[], DispatcherAndConfig], shell: str = "bash"
) -> str:
    """Generate the completion script of any application built on the Dispatcher.

    :param shell_cmd: the name of the command being completed
    :param get_app_info: returns the populated dispatcher and the config its commands
        are created with
    :param shell: the shell to generate the script for
    """
    dispatcher, app_config = get_app_info()
    tree = CommandTree.from_dispatcher(dispatcher, app_config, shell_cmd=shell_cmd)
    return render(shell, tree)


def _validate_app_info(raw_ref: str) -> Callable[[], DispatcherAndConfig]:
    """Import the function from a "package.module:function" reference."""
    mod_path, colon, func_name = raw_ref.partition(":")
    if not colon or not func_name:
        raise ValueError(f"Not a 'module:function' reference: {raw_ref!r}")

    module = importlib.import_module(mod_path)
    # it can not be verified further without annotations, trust it
    return getattr(module, func_name)  # type: ignore[no-any-return]


def main() -> None:
    """Print the completion script of the application given in the command line."""
    parser = argparse.ArgumentParser(
        prog="medusa_cli.completion",
        description="Write the shell completion script of an application built on medusa_cli.",
    )
    parser.add_argument(
        "shell_cmd",
        metavar="SHELL_CMD",
        help="The name the user types to run the application.",
    )
    parser.add_argument(
        "app_info",
        type=_validate_app_info,
        metavar="APP_INFO_FUNC",
        help="The function that returns the populated dispatcher and the app config, "
        "like some.python.module:get_app_info",
    )
    parser.add_argument("--shell", choices=list(TEMPLATES), default="bash")
    args = parser.parse_args(sys.argv[1:])

    # the application's code may use the emitter when building its dispatcher
    emit.init(EmitterMode.QUIET, "medusa-completion", "Generating completion scripts...")
    print(complete(args.shell_cmd, args.app_info, args.shell), end="")
    emit.ended_ok()
