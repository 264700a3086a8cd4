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

"""Write the messages to the screen (a terminal or a captured stream) and to the log file."""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, TextIO

if TYPE_CHECKING:
    import pathlib

# set while running the tests of an application, so the output is always treated as captured
TESTMODE = False


@dataclass
class _MessageInfo:
    """A message as received by the Printer, to be shown and logged."""

    stream: TextIO | None
    text: str
    use_timestamp: bool = False
    end_line: bool = False
    created_at: datetime = field(default_factory=datetime.now, compare=False)

    def render(self) -> str:
        """Return the text to write, prefixed with its creation time if requested."""
        if self.use_timestamp:
            return f"{_format_timestamp(self.created_at)} {self.text}"
        return self.text


def _get_terminal_width() -> int:
    """Return the columns of the controlling terminal."""
    return shutil.get_terminal_size().columns


def _stream_is_terminal(stream: TextIO | None) -> bool:
    """Tell if the stream is an interactive terminal with room to write in."""
    if TESTMODE or not hasattr(stream, "isatty"):
        return False
    return bool(stream.isatty()) and _get_terminal_width() > 0  # type: ignore[union-attr]


def _format_timestamp(moment: datetime) -> str:
    return moment.isoformat(sep=" ", timespec="milliseconds")


class Printer:
    """Send each message to its stream, and every one of them to the log file.

    In a terminal a line may be left open (without its newline) so a later message can
    complete it; captured streams always get whole lines.
    """

    def __init__(self, log_filepath: pathlib.Path) -> None:
        # closed explicitly in `stop`
        self.log = log_filepath.open("at", encoding="utf8")

        # the last message shown, and the terminal stream whose line is still open (if any)
        self.prv_msg: _MessageInfo | None = None
        self.unfinished_stream: TextIO | None = None
        self.stopped = False

    def _close_open_line(self) -> None:
        if self.unfinished_stream is not None:
            print(flush=True, file=self.unfinished_stream)
            self.unfinished_stream = None

    def _write_line_terminal(self, message: _MessageInfo) -> None:
        """Write the message in a terminal, leaving the line open unless it ends there."""
        if self.unfinished_stream is not message.stream:
            self._close_open_line()

        print(message.render(), end="", flush=True, file=message.stream)
        if message.end_line:
            print(flush=True, file=message.stream)
            self.unfinished_stream = None
        else:
            self.unfinished_stream = message.stream

    def _write_line_captured(self, message: _MessageInfo) -> None:
        """Write the message as a whole line to a stream that is not a terminal."""
        print(message.render(), file=message.stream)

    def _show(self, message: _MessageInfo) -> None:
        if message.stream is None:
            return
        if _stream_is_terminal(message.stream):
            self._write_line_terminal(message)
        else:
            self._write_line_captured(message)
        self.prv_msg = message

    def _log(self, message: _MessageInfo) -> None:
        """Append the message to the log file, always with its timestamp."""
        self.log.write(f"{_format_timestamp(message.created_at)} {message.text}\n")
        # nothing is lost if the process dies afterwards
        self.log.flush()

    def show(
        self,
        stream: TextIO | None,
        text: str,
        *,
        use_timestamp: bool = False,
        end_line: bool = False,
        avoid_logging: bool = False,
    ) -> None:
        """Show the text in the stream (none means "only log it"); ignored once stopped."""
        if self.stopped:
            return

        message = _MessageInfo(stream, text.rstrip(), use_timestamp, end_line)
        self._show(message)
        if not avoid_logging:
            self._log(message)

    def stop(self) -> None:
        """Leave the terminal in a clean line and close the log file."""
        self._close_open_line()
        self.log.close()
        self.stopped = True
