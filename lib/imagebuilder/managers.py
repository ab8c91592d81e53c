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

"""Package manager drivers.

Every supported package manager family is driven through the same small
vocabulary: install, remove, refresh, update, clean and repository
management. A `CommandTable` maps each operation to an executable and its
flags; `PackageManager` turns it into command lines. Exactly one manager is
selected per build:

```python
from imagebuilder import managers

mgr = managers.load("apt", rootfs="/build/rootfs")
mgr.manage_repositories(repositories)
mgr.manage_packages(package_sets, update=True, cleanup=True)
```

When `rootfs` is not `/`, commands are executed with `chroot <rootfs>` so they
act on the image being built rather than the host.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Type, TypeVar

from .command import run_command
from .definition import CustomManagerDefinition, PackageSet, RepositoryDeclaration
from .errors import ManagerError, UnsupportedOperationError

logger = logging.getLogger(__name__)

OPERATIONS = ("clean", "install", "refresh", "remove", "update")


@dataclass(frozen=True)
class Command:
    """An executable and the flags specific to one operation."""

    executable: str
    flags: Tuple[str, ...] = ()


@dataclass(frozen=True)
class CommandTable:
    """Executable and flags for each operation of one package manager family."""

    clean: Command
    install: Command
    refresh: Command
    remove: Command
    update: Command
    global_flags: Tuple[str, ...] = ()

    def argv(self, operation: str, *args: str) -> List[str]:
        """Build the command line for an operation.

        Args:
            operation: one of `OPERATIONS`
            *args: extra flags and package names appended after the operation flags
        """
        command: Command = getattr(self, operation)
        return [command.executable, *self.global_flags, *command.flags, *args]


class PackageManager:
    """Base class for package manager drivers.

    Subclasses implement `load` and, where the family supports it,
    `manage_repository`.
    """

    name = ""
    env: Mapping[str, str] = {}

    def __init__(self, rootfs: str = "/") -> None:
        self.rootfs = rootfs
        self.commands = self.load()

    def __repr__(self):
        """Represent the manager."""
        return f"<{self.__module__}.{type(self).__name__}: {self.rootfs}>"

    def load(self) -> CommandTable:
        """Return the command table for this package manager family."""
        raise NotImplementedError

    def manage_repository(self, repo: RepositoryDeclaration) -> None:
        """Configure a package repository and its key inside the rootfs."""
        raise UnsupportedOperationError(
            f"Repository management is not supported by the {self.name} package manager"
        )

    def install_packages(self, packages: Sequence[str], flags: Sequence[str] = ()) -> None:
        """Install packages.

        Args:
            packages: package names, nothing is run when empty
            flags: extra flags placed before the package names
        """
        if not packages:
            logger.debug("no packages to install")
            return
        self._run_operation("install", *flags, *packages)

    def remove_packages(self, packages: Sequence[str], flags: Sequence[str] = ()) -> None:
        """Remove packages.

        Args:
            packages: package names, nothing is run when empty
            flags: extra flags placed before the package names
        """
        if not packages:
            logger.debug("no packages to remove")
            return
        self._run_operation("remove", *flags, *packages)

    def refresh(self) -> None:
        """Refresh the package lists."""
        self._run_operation("refresh")

    def update(self) -> None:
        """Upgrade all installed packages."""
        self._run_operation("update")

    def clean(self) -> None:
        """Remove cached package files."""
        self._run_operation("clean")

    def manage_repositories(self, repos: Iterable[RepositoryDeclaration]) -> None:
        """Configure repositories one after another, in the order given."""
        for repo in repos:
            self.manage_repository(repo)

    def manage_packages(
        self, package_sets: Iterable[PackageSet], update: bool = False, cleanup: bool = False
    ) -> None:
        """Apply package sets to the rootfs.

        Args:
            package_sets: sets installed or removed in the order given
            update: refresh the package lists and upgrade everything first
            cleanup: clean the package cache afterwards
        """
        if update:
            self.refresh()
            self.update()

        for package_set in package_sets:
            if package_set.action == "install":
                self.install_packages(package_set.packages, package_set.flags)
            else:
                self.remove_packages(package_set.packages, package_set.flags)

        if cleanup:
            self.clean()

    def _path(self, path: str) -> str:
        """Return `path` inside the rootfs."""
        return os.path.join(self.rootfs, path.lstrip("/"))

    def _run_operation(self, operation: str, *args: str) -> str:
        return self._run(self.commands.argv(operation, *args))

    def _run(self, cmd: Sequence[str]) -> str:
        cmd = list(cmd)
        if os.path.normpath(self.rootfs) != "/":
            cmd = ["chroot", self.rootfs, *cmd]
        return run_command(cmd, env=self.env)


class CustomManager(PackageManager):
    """A package manager described by the image definition."""

    name = "custom"

    def __init__(self, rootfs: str = "/", definition: Optional[CustomManagerDefinition] = None):
        self.definition = definition
        super().__init__(rootfs)

    def load(self) -> CommandTable:
        """Build the command table from the definition.

        Raises:
            ManagerError: the definition is missing or lacks a command for an operation
        """
        if self.definition is None:
            raise ManagerError("The custom package manager requires a definition")

        missing = [op for op in OPERATIONS if not getattr(self.definition, op).command]
        if missing:
            raise ManagerError(
                f"Custom package manager is missing commands for: {', '.join(missing)}"
            )

        commands = {
            op: Command(
                getattr(self.definition, op).command, tuple(getattr(self.definition, op).flags)
            )
            for op in OPERATIONS
        }
        return CommandTable(global_flags=tuple(self.definition.flags), **commands)


_managers: Dict[str, Type[PackageManager]] = {}


_M = TypeVar("_M", bound=Type[PackageManager])


def register(cls: _M) -> _M:
    """Make a package manager class available to `load` under its name."""
    _managers[cls.name] = cls
    return cls


register(CustomManager)


def load(
    name: str, rootfs: str = "/", custom: Optional[CustomManagerDefinition] = None
) -> PackageManager:
    """Select the package manager for a build.

    Args:
        name: package manager family, e.g. "apt" or "dnf"
        rootfs: root of the filesystem being built
        custom: definition used when `name` is "custom"

    Raises:
        ManagerError: the family is unknown or cannot be loaded
    """
    # Importing the family modules registers their managers.
    from . import apt, dnf  # noqa: F401

    try:
        cls = _managers[name]
    except KeyError:
        raise ManagerError(f"Unknown package manager '{name}'") from None

    if cls is CustomManager:
        manager: PackageManager = CustomManager(rootfs, definition=custom)
    else:
        manager = cls(rootfs)
    logger.debug("loaded package manager %r", manager)
    return manager
