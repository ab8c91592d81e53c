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

"""Enterprise Linux package manager drivers.

CentOS Stream, AlmaLinux, Rocky Linux and Fedora images use `dnf`; older
releases use `yum`. Both read repositories from `/etc/yum.repos.d/<name>.repo`
and keep keys in `/etc/pki/rpm-gpg/RPM-GPG-KEY-<name>`, so a repository entry
looks like:

```python
RepositoryDeclaration(
    name="epel",
    url="[epel]\\nname=EPEL\\nbaseurl=https://example.test/epel/9/\\n"
    "gpgkey=file:///etc/pki/rpm-gpg/RPM-GPG-KEY-epel\\n",
    key="-----BEGIN PGP PUBLIC KEY BLOCK-----\\n...",
)
```
"""

from __future__ import annotations

import os

from .definition import RepositoryDeclaration
from .managers import Command, CommandTable, PackageManager, register
from .repository import configure_repository


@register
class DnfManager(PackageManager):
    """Driver for `dnf` based systems."""

    name = "dnf"

    _repo_dir = "/etc/yum.repos.d"
    _key_dir = "/etc/pki/rpm-gpg"

    def load(self) -> CommandTable:
        """Return the `dnf` command table."""
        return CommandTable(
            clean=Command("dnf", ("clean", "all")),
            install=Command("dnf", ("install",)),
            refresh=Command("dnf", ("makecache",)),
            remove=Command("dnf", ("remove",)),
            update=Command("dnf", ("upgrade",)),
            global_flags=("-y",),
        )

    def repository_file(self, name: str) -> str:
        """Return the repo file a repository named `name` is written to."""
        filename = name if name.endswith(".repo") else f"{name}.repo"
        return self._path(os.path.join(self._repo_dir, filename))

    def key_file(self, name: str) -> str:
        """Return the file the key of a repository named `name` is written to."""
        return self._path(os.path.join(self._key_dir, f"RPM-GPG-KEY-{name}"))

    def manage_repository(self, repo: RepositoryDeclaration) -> None:
        """Add a repository to its repo file and install its key, if any."""
        configure_repository(
            repo,
            repo_file=self.repository_file(repo.name),
            key_file=self.key_file(repo.name),
            run=self._run,
        )


@register
class YumManager(DnfManager):
    """Driver for `yum` based systems."""

    name = "yum"

    def load(self) -> CommandTable:
        """Return the `yum` command table."""
        return CommandTable(
            clean=Command("yum", ("clean", "all")),
            install=Command("yum", ("install",)),
            refresh=Command("yum", ("makecache",)),
            remove=Command("yum", ("remove",)),
            update=Command("yum", ("update",)),
            global_flags=("-y",),
        )
