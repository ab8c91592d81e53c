# Copyright 2024 Canonical Ltd.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Errors raised while configuring a root filesystem."""

from __future__ import annotations

from typing import Sequence


class Error(Exception):
    """Base class of most errors raised by this library."""

    def __repr__(self):
        """Represent the Error."""
        return f"<{type(self).__module__}.{type(self).__name__} {self.args}>"

    @property
    def name(self):
        """Return a string representation of the model plus class."""
        return f"<{type(self).__module__}.{type(self).__name__}>"

    @property
    def message(self):
        """Return the message passed as an argument."""
        return self.args[0]


class FileOperationError(Error):
    """Raised when a file or directory in the rootfs cannot be created, read or written."""

    def __init__(self, message: str, *, path: str) -> None:
        super().__init__(message, path)
        self.path = path


class ExternalCommandError(Error):
    """Raised when an external executable fails to start or exits non-zero."""

    def __init__(
        self,
        message: str,
        *,
        cmd: Sequence[str],
        returncode: int | None = None,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        super().__init__(message, list(cmd), returncode)
        self.cmd = list(cmd)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


class UnsupportedOperationError(Error):
    """Raised when an operation has no valid behavior for the selected target or manager."""


class ManagerError(Error):
    """Raised when a package manager cannot be selected or loaded."""
