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

"""Application startup: build the command tree and run the requested command."""

from __future__ import annotations

import sys
import textwrap
from typing import Any

from medusa_cli import __version__
from medusa_cli.commands import add_completion_command
from medusa_cli.dispatcher import Dispatcher
from medusa_cli.errors import (
    EX_SOFTWARE,
    EX_USAGE,
    ArgumentParsingError,
    MedusaError,
    ProvideHelpException,
)
from medusa_cli.messages import EmitterMode, emit

APPNAME = "medusa"

SUMMARY = textwrap.dedent(
    """
    Medusa is a fuzzing tool for smart contracts.

    See `medusa help <command>` for details on each command.
    """
)

# the usual exit code for a process terminated by SIGINT
_EX_INTERRUPTED = 130

BUG_REPORT_HINT = f"This is a bug in {APPNAME}, please report it attaching the execution log."


def get_dispatcher() -> Dispatcher:
    """Build the dispatcher with all the application's commands attached."""
    dispatcher = Dispatcher(APPNAME, [], summary=SUMMARY)
    add_completion_command(dispatcher)
    return dispatcher


def get_app_info() -> tuple[Dispatcher, dict[str, Any]]:
    """Provide the dispatcher and its config, as ``python -m medusa_cli.completion`` needs."""
    return get_dispatcher(), {}


def _report_error(error: MedusaError) -> None:
    if error.reportable:
        # only to the log, the user still gets the single error line
        emit.debug(BUG_REPORT_HINT)
    emit.error(error)


def _run_dispatcher(dispatcher: Dispatcher, argv: list[str]) -> int:
    dispatcher.pre_parse_args(argv)
    dispatcher.load_command({})
    return dispatcher.run() or 0


def main(argv: list[str] | None = None) -> int:
    """Run the application, returning the process' exit code."""
    if argv is None:
        argv = sys.argv[1:]

    emit.init(EmitterMode.BRIEF, APPNAME, f"Starting {APPNAME} version {__version__}")
    dispatcher = get_dispatcher()
    try:
        retcode = _run_dispatcher(dispatcher, argv)
    except ProvideHelpException as exc:
        print(exc, file=sys.stdout)
        emit.ended_ok()
        retcode = 0
    except ArgumentParsingError as exc:
        print(exc, file=sys.stderr)
        emit.ended_ok()
        retcode = EX_USAGE
    except MedusaError as err:
        _report_error(err)
        retcode = err.retcode
    except KeyboardInterrupt as exc:
        error = MedusaError("Interrupted.", retcode=_EX_INTERRUPTED, reportable=False)
        error.__cause__ = exc
        emit.error(error)
        retcode = _EX_INTERRUPTED
    except Exception as exc:  # noqa: BLE001 (blind exception, all is reported to the user)
        error = MedusaError(
            f"Internal error while running {APPNAME}: {exc!r}", retcode=EX_SOFTWARE
        )
        error.__cause__ = exc
        _report_error(error)
        retcode = EX_SOFTWARE
    else:
        emit.ended_ok()
    return retcode
