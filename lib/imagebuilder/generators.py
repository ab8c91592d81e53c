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

"""Generators that write target-specific files into a rootfs.

Each generator has one entry point per build target. `dispatch` picks the one
matching the target; a generator that has nothing sensible to do for a target
raises `UnsupportedOperationError` from that entry point and reports it through
`supports`, which `run_generators` uses to skip it.

```python
gens = [generators.load("fstab", "/build/rootfs", GeneratorDefinition("fstab"))]
generators.run_generators(gens, VirtualMachineTarget(filesystem="btrfs"))
```
"""

from __future__ import annotations

import logging
import os
from typing import Dict, Iterable, Type

from .definition import (
    ContainerTarget,
    GeneratorDefinition,
    Target,
    VirtualMachineTarget,
)
from .errors import FileOperationError, UnsupportedOperationError

logger = logging.getLogger(__name__)


class Generator:
    """Base class for generators.

    Args:
        source_dir: root of the filesystem being built
        definition: the generator entry from the image definition
    """

    name = ""
    targets: tuple = ()

    def __init__(self, source_dir: str, definition: GeneratorDefinition) -> None:
        self.source_dir = source_dir
        self.definition = definition

    def supports(self, target: Target) -> bool:
        """Return whether the generator has behavior for `target`."""
        return getattr(target, "kind", None) in self.targets

    def run(self) -> None:
        """Apply the generator to a plain rootfs. Does nothing by default."""

    def run_container(self, target: ContainerTarget) -> None:
        """Apply the generator to a container image."""
        raise UnsupportedOperationError(f"{self.name} generator not supported for containers")

    def run_virtual_machine(self, target: VirtualMachineTarget) -> None:
        """Apply the generator to a virtual machine image."""
        raise UnsupportedOperationError(
            f"{self.name} generator not supported for virtual machines"
        )

    def _path(self, path: str) -> str:
        return os.path.join(self.source_dir, path.lstrip("/"))


class FstabGenerator(Generator):
    """Write `/etc/fstab` for virtual machines."""

    name = "fstab"
    targets = (VirtualMachineTarget.kind,)

    template = (
        "LABEL=rootfs  /         {fs}  {options}  0 0\n"
        "LABEL=UEFI    /boot/efi vfat  defaults  0 0\n"
    )

    @staticmethod
    def render(filesystem: str = "") -> str:
        """Render the mount table for a root filesystem type."""
        fs = filesystem or "ext4"
        options = "defaults"
        if fs == "btrfs":
            options = f"{options},subvol=@"
        return FstabGenerator.template.format(fs=fs, options=options)

    def run_virtual_machine(self, target: VirtualMachineTarget) -> None:
        """Write the mount table for the root and EFI partitions.

        Raises:
            FileOperationError: /etc/fstab could not be written
        """
        path = self._path("/etc/fstab")
        try:
            with open(path, "w", encoding="utf-8") as f:
                f.write(self.render(target.filesystem))
        except OSError as e:
            raise FileOperationError(f"Failed to write file '{path}': {e}", path=path) from e
        logger.info("wrote %s", path)


class DumpGenerator(Generator):
    """Write the content given in the definition to a file."""

    name = "dump"
    targets = (ContainerTarget.kind, VirtualMachineTarget.kind)

    def run(self) -> None:
        """Write `definition.content` to `definition.path` inside the rootfs.

        Raises:
            FileOperationError: the file or its parent directory could not be written
        """
        path = self._path(self.definition.path)
        content = self.definition.content
        if not content.endswith("\n"):
            content += "\n"

        try:
            os.makedirs(os.path.dirname(path), mode=0o755, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                f.write(content)
        except OSError as e:
            raise FileOperationError(f"Failed to write file '{path}': {e}", path=path) from e
        logger.info("wrote %s", path)

    def run_container(self, target: ContainerTarget) -> None:
        """Same as `run`."""
        self.run()

    def run_virtual_machine(self, target: VirtualMachineTarget) -> None:
        """Same as `run`."""
        self.run()


_generators: Dict[str, Type[Generator]] = {
    FstabGenerator.name: FstabGenerator,
    DumpGenerator.name: DumpGenerator,
}


def load(name: str, source_dir: str, definition: GeneratorDefinition) -> Generator:
    """Return the generator called `name`.

    Raises:
        UnsupportedOperationError: no generator has that name
    """
    try:
        cls = _generators[name]
    except KeyError:
        raise UnsupportedOperationError(f"Unknown generator '{name}'") from None
    return cls(source_dir, definition)


def dispatch(generator: Generator, target: Target) -> None:
    """Run the entry point of `generator` matching the target variant.

    Raises:
        UnsupportedOperationError: the generator has no behavior for the target
    """
    if isinstance(target, VirtualMachineTarget):
        generator.run_virtual_machine(target)
    elif isinstance(target, ContainerTarget):
        generator.run_container(target)
    else:
        raise UnsupportedOperationError(f"Unknown target {target!r}")


def run_generators(generators: Iterable[Generator], target: Target) -> None:
    """Run generators in order, skipping those that do not apply to the target."""
    for generator in generators:
        if not generator.supports(target):
            logger.info("skipping %s generator: not supported for %s", generator.name, target)
            continue
        dispatch(generator, target)
