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

"""The 'completion' command, to write the shell completion script for the application."""

from __future__ import annotations

import argparse
import enum
import logging
import sys
import textwrap
from typing import TYPE_CHECKING, Callable, Sequence, TextIO

from overrides import override

from medusa_cli.dispatcher import BaseCommand, CommandGroup
from medusa_cli.errors import (
    CompletionGenerationError,
    InternalInconsistencyError,
    InvalidArgumentCountError,
    UnsupportedShellError,
)

if TYPE_CHECKING:
    from medusa_cli.dispatcher import Dispatcher

logger = logging.getLogger(__name__)


class Shell(str, enum.Enum):
    """The shells a completion script can be generated for."""

    BASH = "bash"
    ZSH = "zsh"
    POWERSHELL = "powershell"


SUPPORTED_SHELLS = [shell.value for shell in Shell]


def _get_generators(root: Dispatcher) -> dict[Shell, Callable[[TextIO], None]]:
    """Map each shell to the root's capability that writes its script."""
    return {
        Shell.BASH: lambda out: root.generate_bash_completion(out, descriptions=True),
        Shell.ZSH: root.generate_zsh_completion,
        Shell.POWERSHELL: lambda out: root.generate_powershell_completion(out, descriptions=True),
    }


class CompletionCommand(BaseCommand):
    """Write the autocompletion script for the requested shell to stdout."""

    name = "completion"
    help_msg = "Generate the autocompletion script for medusa for the specific shell"
    overview = textwrap.dedent(
        """
        Generate the autocompletion script for medusa for the specified shell.
        See each shell's section below on how to use the generated script.

        Bash:

        This script depends on the 'bash-completion' package. To load completions
        in your current shell session:

            $ source <(medusa completion bash)

        To load completions for every new session, execute once:

            # Linux:
            $ medusa completion bash > /etc/bash_completion.d/medusa

            # macOS:
            $ medusa completion bash > /usr/local/etc/bash_completion.d/medusa

        Zsh:

        If shell completion is not already enabled in your environment, you will
        need to enable it. You can execute the following once:

            $ echo "autoload -U compinit; compinit" >> ~/.zshrc

        To load completions in your current shell session:

            $ source <(medusa completion zsh)

        To load completions for every new session, execute once:

            $ medusa completion zsh > "${fpath[1]}/_medusa"

        You will need to start a new shell for this setup to take effect.

        PowerShell:

        To load completions in your current shell session:

            PS> medusa completion powershell | Out-String | Invoke-Expression

        To load completions for every new session, add the output of the above
        command to your PowerShell profile.
        """
    )
    silence_usage = True
    # the shell is validated by the command, not by argparse, to report better errors
    parameter_choices = {"shell": SUPPORTED_SHELLS}

    @override
    def fill_parser(self, parser: argparse.ArgumentParser) -> None:
        """Add own parameters to the general parser."""
        parser.add_argument(
            "shell",
            nargs="*",
            metavar="shell",
            help=f"The shell to generate the script for ({', '.join(SUPPORTED_SHELLS)})",
        )

    def validate(self, args: Sequence[str]) -> Shell:
        """Verify that exactly one supported shell was requested, and return it."""
        try:
            if len(args) != 1:
                raise InvalidArgumentCountError(SUPPORTED_SHELLS)
            try:
                return Shell(args[0])
            except ValueError:
                raise UnsupportedShellError(args[0]) from None
        except (InvalidArgumentCountError, UnsupportedShellError) as exc:
            logger.error("Failed to validate args for completion command: %s", exc)
            raise

    def execute(self, shell: Shell) -> None:
        """Write the script for the given shell to the current stdout."""
        if self.root is None:
            raise RuntimeError("The completion command needs to be attached to a dispatcher.")

        generator = _get_generators(self.root).get(shell)
        if generator is None:
            logger.critical("%s is not a supported shell type", shell.value)
            raise InternalInconsistencyError(shell.value)

        try:
            generator(sys.stdout)
        except Exception as exc:
            logger.error("Failed to run the completion command: %s", exc)
            raise CompletionGenerationError(shell.value, exc) from exc

    @override
    def run(self, parsed_args: argparse.Namespace) -> None:
        """Run the command."""
        shell = self.validate(parsed_args.shell)
        self.execute(shell)


def add_completion_command(dispatcher: Dispatcher) -> None:
    """Attach the completion command to the application's dispatcher."""
    dispatcher.add_commands_group(CommandGroup("Shell", [CompletionCommand]))
