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

"""Debian/Ubuntu package manager driver.

Packages are handled with `apt-get`. Repositories are written to
`/etc/apt/sources.list.d/<name>.list`, or to `/etc/apt/sources.list` itself when
the repository is named "sources.list". Keys go to
`/etc/apt/trusted.gpg.d/<name>.asc`.

```python
apt = AptManager(rootfs="/build/rootfs")
apt.manage_repository(
    RepositoryDeclaration(
        name="my-repo", url="deb https://example.test/ stable main", key="ABCD1234"
    )
)
apt.refresh()
apt.install_packages(["vim", "htop"])
```
"""

from __future__ import annotations

import os

from .definition import RepositoryDeclaration
from .managers import Command, CommandTable, PackageManager, register
from .repository import configure_repository


@register
class AptManager(PackageManager):
    """Driver for `apt-get` based systems."""

    name = "apt"
    env = {"DEBIAN_FRONTEND": "noninteractive"}

    _apt_dir = "/etc/apt"
    _sources_subdir = "sources.list.d"
    _default_list_name = "sources.list"
    _key_subdir = "trusted.gpg.d"

    def load(self) -> CommandTable:
        """Return the `apt-get` command table."""
        return CommandTable(
            clean=Command("apt-get", ("clean",)),
            install=Command("apt-get", ("install",)),
            refresh=Command("apt-get", ("update",)),
            remove=Command("apt-get", ("remove", "--auto-remove")),
            update=Command("apt-get", ("dist-upgrade",)),
            global_flags=("-y",),
        )

    def repository_file(self, name: str) -> str:
        """Return the list file a repository named `name` is written to."""
        if name == self._default_list_name:
            return self._path(os.path.join(self._apt_dir, self._default_list_name))

        filename = name if name.endswith(".list") else f"{name}.list"
        return self._path(os.path.join(self._apt_dir, self._sources_subdir, filename))

    def key_file(self, name: str) -> str:
        """Return the file the key of a repository named `name` is written to."""
        return self._path(os.path.join(self._apt_dir, self._key_subdir, f"{name}.asc"))

    def manage_repository(self, repo: RepositoryDeclaration) -> None:
        """Add a repository to its list file and install its key, if any.

        Raises:
            FileOperationError: a file or directory could not be written
            ExternalCommandError: the key could not be fetched with gpg
        """
        configure_repository(
            repo,
            repo_file=self.repository_file(repo.name),
            key_file=self.key_file(repo.name),
            run=self._run,
        )
