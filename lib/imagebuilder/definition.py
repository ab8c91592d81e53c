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

"""Values read from an image definition.

The image definition itself is loaded and validated elsewhere. The classes here are
the immutable pieces this library consumes: repositories to configure, package sets
to install or remove, an optional user-defined package manager, generators to run,
and the build target they run against.

```python
repo = RepositoryDeclaration.from_dict(
    {"name": "my-repo", "url": "deb https://example.test/ stable main", "key": "ABCD1234"}
)
target = target_from_dict({"type": "vm", "filesystem": "btrfs"})
```
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Tuple, Union

PACKAGE_ACTIONS = ("install", "remove")


@dataclass(frozen=True)
class RepositoryDeclaration:
    """A package source and optional signing key to install into the rootfs.

    `url` holds one or more source lines exactly as they should appear in the
    package manager's configuration. `key` is either an ASCII armored public key
    block or a bare key ID to look up on a key server.
    """

    name: str
    url: str
    key: str = ""

    def __post_init__(self):
        if not self.name:
            raise ValueError("repository name must not be empty")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RepositoryDeclaration:
        """Build a declaration from an image definition entry."""
        return cls(
            name=data["name"],
            url=data.get("url", ""),
            key=data.get("key") or "",
        )


@dataclass(frozen=True)
class PackageSet:
    """Packages installed or removed together with the same extra flags."""

    packages: Tuple[str, ...]
    action: str = "install"
    flags: Tuple[str, ...] = ()

    def __post_init__(self):
        if self.action not in PACKAGE_ACTIONS:
            raise ValueError(f"unknown package action {self.action!r}")
        object.__setattr__(self, "packages", tuple(self.packages))
        object.__setattr__(self, "flags", tuple(self.flags))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PackageSet:
        """Build a package set from an image definition entry."""
        return cls(
            packages=tuple(data.get("packages", ())),
            action=data.get("action", "install"),
            flags=tuple(data.get("flags", ())),
        )


@dataclass(frozen=True)
class CustomCommand:
    """Executable and flags for one operation of a user-defined package manager."""

    command: str = ""
    flags: Tuple[str, ...] = ()


@dataclass(frozen=True)
class CustomManagerDefinition:
    """A package manager described entirely by the image definition."""

    clean: CustomCommand = field(default_factory=CustomCommand)
    install: CustomCommand = field(default_factory=CustomCommand)
    refresh: CustomCommand = field(default_factory=CustomCommand)
    remove: CustomCommand = field(default_factory=CustomCommand)
    update: CustomCommand = field(default_factory=CustomCommand)
    flags: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CustomManagerDefinition:
        """Build a custom manager definition from an image definition entry."""
        operations: Dict[str, CustomCommand] = {}
        for op in ("clean", "install", "refresh", "remove", "update"):
            entry = data.get(op) or {}
            operations[op] = CustomCommand(
                command=entry.get("cmd", ""), flags=tuple(entry.get("flags", ()))
            )
        return cls(flags=tuple(data.get("flags", ())), **operations)


@dataclass(frozen=True)
class GeneratorDefinition:
    """A generator entry: which generator to run and its arguments."""

    generator: str
    path: str = ""
    content: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> GeneratorDefinition:
        """Build a generator definition from an image definition entry."""
        return cls(
            generator=data["generator"],
            path=data.get("path", ""),
            content=data.get("content", ""),
        )


@dataclass(frozen=True)
class ContainerTarget:
    """Build output is a container image."""

    kind = "container"


@dataclass(frozen=True)
class VirtualMachineTarget:
    """Build output is a virtual machine image.

    An empty `filesystem` means the default root filesystem type.
    """

    filesystem: str = ""

    kind = "vm"


Target = Union[ContainerTarget, VirtualMachineTarget]


def target_from_dict(data: Mapping[str, Any]) -> Target:
    """Select the target variant named by an image definition entry.

    Raises:
        ValueError: the target type is unknown
    """
    target_type = data.get("type")
    if target_type == ContainerTarget.kind:
        return ContainerTarget()
    if target_type in (VirtualMachineTarget.kind, "virtual-machine"):
        return VirtualMachineTarget(filesystem=data.get("filesystem") or "")
    raise ValueError(f"unknown target type {target_type!r}")
