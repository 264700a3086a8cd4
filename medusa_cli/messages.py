# Copyright 2021-2023 Canonical Ltd.
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

"""The Emitter: every message for the user, to the screen and to the log file."""

from __future__ import annotations

__all__ = [
    "EmitterMode",
    "TESTMODE",
    "emit",
]

import enum
import functools
import logging
import pathlib
import sys
import traceback
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, TextIO, TypeVar, cast

import platformdirs

from medusa_cli.printer import Printer

if TYPE_CHECKING:
    from collections.abc import Iterator

    from medusa_cli import errors


EmitterMode = enum.Enum("EmitterMode", "QUIET BRIEF VERBOSE DEBUG TRACE")
"""How much the Emitter shows on screen (everything goes to the log anyway)."""

# how many log files are kept for each application
_MAX_LOG_FILES = 5

# modes in which the user only sees the essentials, and the ones meant for developers
# (where everything carries a timestamp)
_QUIET_MODES = (EmitterMode.QUIET, EmitterMode.BRIEF)
_DEVELOPER_MODES = (EmitterMode.DEBUG, EmitterMode.TRACE)

# the lowest level of logging records that reach the screen in each mode
_SCREEN_LOG_LEVEL = {
    EmitterMode.VERBOSE: logging.DEBUG + 1,
    EmitterMode.DEBUG: logging.DEBUG,
    EmitterMode.TRACE: logging.NOTSET,
}

# set while running the tests of an application, so the Emitter can be initiated many times
# (see medusa_cli/pytest_plugin.py)
TESTMODE = False


def _get_log_filepath(appname: str) -> pathlib.Path:
    """Return a new log file path for this run, rotating out the oldest files.

    Logs live in the platform's user log directory for the application, named after the
    application and the starting time (to the microsecond, so they sort by age). Only the
    newest :data:`_MAX_LOG_FILES` are kept, counting the one about to be created; other
    files in that directory are never touched.
    """
    logdir = pathlib.Path(platformdirs.user_log_dir(appname))
    logdir.mkdir(parents=True, exist_ok=True)

    previous = sorted(logdir.glob(f"{appname}-*.log"))
    keep = _MAX_LOG_FILES - 1
    if len(previous) > keep:
        for old_log in previous[: len(previous) - keep]:
            # a concurrent run may have removed it already
            old_log.unlink(missing_ok=True)

    return logdir / f"{appname}-{datetime.now():%Y%m%d-%H%M%S.%f}.log"


def _get_traceback_lines(exc: BaseException) -> Iterator[str]:
    """Yield the lines of the formatted traceback of the exception."""
    for chunk in traceback.format_exception(type(exc), exc, exc.__traceback__):
        yield from chunk.rstrip().split("\n")


class _Handler(logging.Handler):
    """Forward the records from the logging machinery to the Printer.

    Every record is logged (except those under DEBUG level, only kept in trace mode), and
    also shown in stderr if the current mode is detailed enough for its level.
    """

    def __init__(self, printer: Printer) -> None:
        # no level filtering here, the mode decides
        super().__init__(level=logging.NOTSET)
        self.printer = printer
        self.mode = EmitterMode.QUIET

    def emit(self, record: logging.LogRecord) -> None:
        """Log the record's message, and maybe show it."""
        if record.levelno < logging.DEBUG and self.mode != EmitterMode.TRACE:
            return

        screen_level = _SCREEN_LOG_LEVEL.get(self.mode)
        shown = screen_level is not None and record.levelno >= screen_level
        self.printer.show(
            sys.stderr if shown else None,
            record.getMessage(),
            use_timestamp=self.mode in _DEVELOPER_MODES,
        )


FuncT = TypeVar("FuncT", bound=Callable[..., Any])


def _when_active(*, skip_if_stopped: bool = False) -> Callable[[FuncT], FuncT]:
    """Allow the decorated Emitter method only between ``init`` and the end.

    Once stopped the call is an error, unless ``skip_if_stopped`` is set, which makes it
    a no-op (so the machinery can be ended twice).
    """

    def decorator(method: FuncT) -> FuncT:
        @functools.wraps(method)
        def guarded(self: Emitter, *args: Any, **kwargs: Any) -> Any:
            if not self._initiated:
                raise RuntimeError("Emitter needs to be initiated first")
            if not self._stopped:
                return method(self, *args, **kwargs)
            if skip_if_stopped:
                return None
            raise RuntimeError("Emitter is stopped already")

        return cast(FuncT, guarded)

    return decorator


class Emitter:
    """Main interface to all the messages emitting functionality.

    Applications do not instantiate it, they use the ``emit`` object from this module:

    - ``message``: the final output of a command, in stdout
    - ``progress``: what the command is doing, in stderr
    - ``verbose``, ``debug`` and ``trace``: increasingly detailed information, only shown
      in the corresponding modes (and mostly always logged)
    - ``error`` or ``ended_ok``: one of them closes the machinery at the end of the run
    """

    def __init__(self) -> None:
        # all set in `init`
        self._greeting: str = None  # type: ignore[assignment]
        self._printer: Printer = None  # type: ignore[assignment]
        self._mode: EmitterMode = None  # type: ignore[assignment]
        self._log_filepath: pathlib.Path = None  # type: ignore[assignment]
        self._log_handler: _Handler = None  # type: ignore[assignment]
        self._initiated = False
        self._stopped = False

    def init(
        self,
        mode: EmitterMode,
        appname: str,
        greeting: str,
        log_filepath: pathlib.Path | None = None,
    ) -> None:
        """Start the machinery; it must be called once, before any other method."""
        root_logger = logging.getLogger()
        if self._initiated:
            if not TESTMODE:
                raise RuntimeError("Double Emitter init detected!")
            self._stop()
            root_logger.removeHandler(self._log_handler)

        self._greeting = greeting
        self._log_filepath = log_filepath or _get_log_filepath(appname)

        # the greeting is the first line of every log
        self._printer = Printer(self._log_filepath)
        self._printer.show(None, greeting)

        self._log_handler = _Handler(self._printer)
        root_logger.addHandler(self._log_handler)

        self._initiated = True
        self._stopped = False
        self.set_mode(mode)

    @_when_active()
    def get_mode(self) -> EmitterMode:
        """Return the mode of the emitter."""
        return self._mode

    @_when_active()
    def set_mode(self, mode: EmitterMode) -> None:
        """Change the mode; in the verbose ones, first tell the user where the log is."""
        self._mode = mode
        self._log_handler.mode = mode
        if mode in _QUIET_MODES:
            return

        log_location = f"Logging execution to {str(self._log_filepath)!r}"
        for text in (self._greeting, log_location):
            self._printer.show(
                sys.stderr,
                text,
                use_timestamp=mode in _DEVELOPER_MODES,
                avoid_logging=True,
                end_line=True,
            )

    @_when_active()
    def message(self, text: str) -> None:
        """Show the result of the command."""
        stream = None if self._mode == EmitterMode.QUIET else sys.stdout
        self._printer.show(stream, text, end_line=True)

    @_when_active()
    def progress(self, text: str) -> None:
        """Tell the user which step the command is running."""
        stream = None if self._mode == EmitterMode.QUIET else sys.stderr
        use_timestamp = self._mode in _DEVELOPER_MODES
        self._printer.show(stream, text, use_timestamp=use_timestamp, end_line=True)

    @_when_active()
    def verbose(self, text: str) -> None:
        """Extra information, too much for the brief mode."""
        stream = None if self._mode in _QUIET_MODES else sys.stderr
        self._printer.show(stream, text, use_timestamp=self._mode in _DEVELOPER_MODES)

    @_when_active()
    def debug(self, text: str) -> None:
        """Information for the developers to understand why things failed."""
        stream = sys.stderr if self._mode in _DEVELOPER_MODES else None
        self._printer.show(stream, text, use_timestamp=True)

    @_when_active()
    def trace(self, text: str) -> None:
        """The finest detail, only shown (and logged) in trace mode."""
        if self._mode == EmitterMode.TRACE:
            self._printer.show(sys.stderr, text, use_timestamp=True)

    def _stop(self) -> None:
        self._printer.stop()
        self._stopped = True

    @_when_active(skip_if_stopped=True)
    def ended_ok(self) -> None:
        """Close the machinery after a successful run."""
        self._stop()

    def _error_lines(self, error: errors.MedusaError) -> Iterator[tuple[TextIO | None, str]]:
        """Produce the lines that describe the error, each with where it is shown.

        The message and the hints are always shown; the details and the original
        traceback only in the developer modes (they are always logged).
        """
        detail_stream = sys.stderr if self._mode in _DEVELOPER_MODES else None

        yield sys.stderr, str(error)
        if error.details:
            yield detail_stream, f"Detailed information: {error.details}"
        if error.__cause__:
            for line in _get_traceback_lines(error.__cause__):
                yield detail_stream, line
        if error.resolution:
            yield sys.stderr, f"Recommended resolution: {error.resolution}"
        if error.docs_url:
            yield sys.stderr, f"For more information, check out: {error.docs_url}"
        if error.logpath_report:
            yield sys.stderr, f"Full execution log: {str(self._log_filepath)!r}"

    @_when_active(skip_if_stopped=True)
    def error(self, error: errors.MedusaError) -> None:
        """Report the error to the user and close the machinery."""
        use_timestamp = self._mode in _DEVELOPER_MODES
        for stream, text in self._error_lines(error):
            self._printer.show(stream, text, use_timestamp=use_timestamp, end_line=True)
        self._stop()


# the only Emitter of the process, which all the code uses
emit = Emitter()
