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

"""Fixtures for the tests of applications built with medusa_cli.

The plugin is registered through the ``pytest11`` entry point, so installing the package
is enough for the fixtures to be available.
"""

from __future__ import annotations

import re
from unittest.mock import call

import pytest

from medusa_cli import messages, printer

_RECORDED_METHODS = ("message", "progress", "verbose", "debug", "trace")


@pytest.fixture(autouse=True)
def init_emitter(monkeypatch, tmp_path_factory):
    """Have ``emit`` initiated, in test mode, for every test.

    The log goes to its own temporary directory, so each test's ``tmp_path`` is left empty.
    """
    monkeypatch.setattr(messages, "TESTMODE", True)
    monkeypatch.setattr(printer, "TESTMODE", True)
    log_filepath = tmp_path_factory.mktemp("emitter-logs") / "emitter.log"
    messages.emit.init(
        messages.EmitterMode.QUIET, "test-emitter", "Hello world", log_filepath=log_filepath
    )
    yield
    # the test may have ended it already, ending twice is fine
    messages.emit.ended_ok()


class RecordingEmitter:
    """Keep every call done to the emitter's showing methods, to be verified later.

    Use it through the ``emitter`` fixture, which hooks it into ``emit``.
    """

    def __init__(self) -> None:
        self.interactions: list = []

    def record(self, method_name, args, kwargs):
        """Store a call to one of the emitter's methods."""
        self.interactions.append(call(method_name, *args, **kwargs))

    def _find(self, method_name, expected_text, regex):
        """Return the text of the first call to the method with the expected text."""
        for recorded in self.interactions:
            method, *args = recorded.args
            if method != method_name or not args:
                continue
            text = args[0]
            if regex:
                matched = re.fullmatch(expected_text, text, re.DOTALL) is not None
            else:
                matched = text == expected_text
            if matched:
                return text
        raise AssertionError(
            f"Expected {method_name}({expected_text!r}) not found in {self.interactions}"
        )

    def assert_message(self, expected_text, regex=False):
        """Check that ``message`` was called with the text (a regex, if indicated)."""
        return self._find("message", expected_text, regex)

    def assert_progress(self, expected_text, regex=False):
        """Check that ``progress`` was called with the text (a regex, if indicated)."""
        return self._find("progress", expected_text, regex)

    def assert_verbose(self, expected_text, regex=False):
        """Check that ``verbose`` was called with the text (a regex, if indicated)."""
        return self._find("verbose", expected_text, regex)

    def assert_debug(self, expected_text, regex=False):
        """Check that ``debug`` was called with the text (a regex, if indicated)."""
        return self._find("debug", expected_text, regex)

    def assert_trace(self, expected_text, regex=False):
        """Check that ``trace`` was called with the text (a regex, if indicated)."""
        return self._find("trace", expected_text, regex)

    def assert_interactions(self, expected_call_list):
        """Check that the expected calls happened, consecutively and in that order.

        Pass None to check that nothing was emitted at all.
        """
        if expected_call_list is None:
            if self.interactions:
                show_interactions = "\n".join(map(str, self.interactions))
                raise AssertionError("Expected no call but really got:\n" + show_interactions)
            return

        try:
            start = self.interactions.index(expected_call_list[0])
        except ValueError:
            raise AssertionError(
                f"Expected call {expected_call_list[0]} not found in {self.interactions}"
            ) from None
        stored = self.interactions[start : start + len(expected_call_list)]
        assert stored == expected_call_list


@pytest.fixture
def emitter(monkeypatch):
    """Record what is shown through ``emit``, instead of really showing it."""
    recording_emitter = RecordingEmitter()
    for method_name in _RECORDED_METHODS:

        def recorder(*args, _name=method_name, **kwargs):
            recording_emitter.record(_name, args, kwargs)

        monkeypatch.setattr(messages.emit, method_name, recorder)
    return recording_emitter
