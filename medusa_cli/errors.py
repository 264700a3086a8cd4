#
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

"""The errors reported to the user, and the ones that stop the parsing of the command line."""

from __future__ import annotations

__all__ = [
    "ArgumentParsingError",
    "CompletionGenerationError",
    "InternalInconsistencyError",
    "InvalidArgumentCountError",
    "MedusaError",
    "ProvideHelpException",
    "UnsupportedShellError",
]

import os

# exit codes from sysexits.h
EX_USAGE = getattr(os, "EX_USAGE", 64)
EX_SOFTWARE = getattr(os, "EX_SOFTWARE", 70)


class MedusaError(Exception):
    """An error to be reported to the user, with everything needed to present it.

    The Emitter decides which of these parts are shown on screen, depending on its mode;
    all of them go to the log.
    """

    message: str
    """The first line shown to the user, and in the regular modes the only one besides
      the hints."""

    details: str | None
    """The full information about the failure, like what a third party returned."""

    resolution: str | None
    """A hint on how to fix or avoid the error."""

    docs_url: str | None
    """Where to read more about the error."""

    logpath_report: bool
    """Whether to end the report with the location of the log file."""

    reportable: bool
    """Whether the error is worth reporting to the developers (a bug, not a user mistake)."""

    retcode: int
    """The exit code of the process."""

    def __init__(  # noqa: PLR0913 (too many arguments)
        self,
        message: str,
        *,
        details: str | None = None,
        resolution: str | None = None,
        docs_url: str | None = None,
        logpath_report: bool = True,
        reportable: bool = True,
        retcode: int = 1,
    ) -> None:
        super().__init__(message)
        self.details = details
        self.resolution = resolution
        self.docs_url = docs_url
        self.logpath_report = logpath_report
        self.reportable = reportable
        self.retcode = retcode

    def _fields(self) -> tuple:
        return (
            type(self),
            self.args,
            self.details,
            self.resolution,
            self.docs_url,
            self.logpath_report,
            self.reportable,
            self.retcode,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MedusaError):
            return NotImplemented
        return self._fields() == other._fields()

    __hash__ = Exception.__hash__


class InvalidArgumentCountError(MedusaError):
    """The completion command received zero or more than one shell argument."""

    def __init__(self, supported_shells: list[str]) -> None:
        shells = ", ".join(supported_shells)
        super().__init__(
            f"completion requires only 1 shell argument (options: {shells})",
            logpath_report=False,
            reportable=False,
            retcode=EX_USAGE,
        )


class UnsupportedShellError(MedusaError):
    """The completion command received a shell it cannot generate a script for."""

    def __init__(self, shell: str) -> None:
        super().__init__(
            f"{shell} is not a supported shell",
            logpath_report=False,
            reportable=False,
            retcode=EX_USAGE,
        )
        self.shell = shell


class CompletionGenerationError(MedusaError):
    """Writing the completion script failed; the message is the original failure's."""

    def __init__(self, shell: str, error: Exception) -> None:
        super().__init__(
            str(error) or repr(error),
            details=f"Failed to generate the {shell} completion script",
            logpath_report=False,
            reportable=False,
        )


class InternalInconsistencyError(MedusaError):
    """A shell passed validation but there is no generator to dispatch it to."""

    def __init__(self, shell: str) -> None:
        super().__init__(
            f"{shell} is not a supported shell type",
            logpath_report=False,
            retcode=EX_SOFTWARE,
        )


class ArgumentParsingError(Exception):
    """Exception used when an argument parsing error is found."""


class ProvideHelpException(Exception):  # noqa: N818 (Exception should have an Error suffix)
    """Exception used to provide help to the user."""
