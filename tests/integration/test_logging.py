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

"""Check that the Python logging records end up in the application's log."""

import logging
from textwrap import dedent

import pytest

from medusa_cli import EmitterMode, emit

logger = logging.getLogger()


def strip_timestamps(text: str) -> str:
    lines = []
    for line in text.splitlines():
        lines.append(line.split(" ", maxsplit=2)[-1])
    return "\n".join(lines)


@pytest.fixture
def emitter_log(tmp_path):
    logger.setLevel(logging.INFO)
    log_filepath = tmp_path / "emitter_log.txt"
    emit.init(mode=EmitterMode.QUIET, appname="testapp", greeting="hi", log_filepath=log_filepath)
    yield log_filepath
    logger.setLevel(logging.WARNING)


def test_logging_goes_to_logfile(emitter_log, capsys):
    """Records are logged in order, and nothing is shown in quiet mode."""
    logger.info("Message 1 from the application")
    logging.getLogger("medusa_cli.commands.completion").error("Message 2 from a command")
    logger.debug("Message 3 is below the logger level")
    emit.ended_ok()

    expected_text = dedent(
        """\
        hi
        Message 1 from the application
        Message 2 from a command"""
    )
    assert strip_timestamps(emitter_log.read_text()) == expected_text

    out, err = capsys.readouterr()
    assert not out
    assert not err


def test_logging_shown_in_verbose_mode(emitter_log, capsys):
    """Records above debug level are also shown in stderr when verbose."""
    emit.set_mode(EmitterMode.VERBOSE)
    logger.warning("Something to see")
    emit.ended_ok()

    out, err = capsys.readouterr()
    assert not out
    assert err.startswith("hi\nLogging execution to ")
    assert err.endswith("\nSomething to see\n")
