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

"""Write package manager repository files and their signing keys into a rootfs.

Repository files written by this module start with `GENERATED_HEADER`. A file
that starts with the header is owned by this library and further repository
lines are appended to it, so several declarations may share one file. A file
without the header holds content from somewhere else (the base rootfs, a manual
edit) and is replaced on the first write.

Keys are written to their own file next to the repository configuration. An
ASCII armored key is written as provided. A bare key ID is looked up on a key
server with `gpg --recv-keys` and exported with `gpg --export --armor`:

```python
configure_repository(
    RepositoryDeclaration(name="my-repo", url="deb https://example.test/ stable main"),
    repo_file="/etc/apt/sources.list.d/my-repo.list",
    key_file="/etc/apt/trusted.gpg.d/my-repo.asc",
    run=run_command,
)
```
"""

from __future__ import annotations

import logging
import os
from typing import Callable, List, Optional, Sequence

from .definition import RepositoryDeclaration
from .errors import FileOperationError

logger = logging.getLogger(__name__)

GENERATED_HEADER = "# Generated by imagebuilder\n"
PGP_PUBLIC_KEY_HEADER = "-----BEGIN PGP PUBLIC KEY BLOCK-----"
# When unset, gpg uses the key server from its own configuration.
DEFAULT_KEYSERVER: Optional[str] = None

Runner = Callable[[Sequence[str]], str]


def configure_repository(
    repo: RepositoryDeclaration,
    *,
    repo_file: str,
    key_file: str,
    run: Runner,
    keyserver: Optional[str] = DEFAULT_KEYSERVER,
) -> str:
    """Add a repository to its list file and install its key, if any.

    Nothing is rolled back on failure: if the key cannot be fetched, the
    repository line stays in place.

    Args:
        repo: the repository to configure
        repo_file: path of the repository file inside the rootfs
        key_file: path the repository key is written to
        run: executes a command and returns its stdout
        keyserver: key server queried for bare key IDs

    Returns:
        The path of the repository file written.

    Raises:
        FileOperationError: a file or directory could not be written
        ExternalCommandError: the key could not be fetched from the key server
    """
    _ensure_directory(os.path.dirname(repo_file))
    write_repository_file(repo_file, repo.url)
    logger.info("configured repository '%s' in %s", repo.name, repo_file)

    if not repo.key:
        return repo_file

    key_material = resolve_key(repo.key, run=run, keyserver=keyserver)
    _ensure_directory(os.path.dirname(key_file))
    write_key_file(key_file, key_material)
    return repo_file


def write_repository_file(path: str, lines: str) -> None:
    """Append repository lines to a file owned by this library.

    The first line is compared against `GENERATED_HEADER` before anything is
    written. Without it the file is truncated and the header written first.

    Raises:
        FileOperationError: the file could not be opened, read or written
    """
    try:
        fd = os.open(path, os.O_CREAT | os.O_RDWR, 0o644)
    except OSError as e:
        raise FileOperationError(f"Failed to open file '{path}': {e}", path=path) from e

    try:
        f = os.fdopen(fd, "r+b")
    except BaseException:
        os.close(fd)
        raise

    # Compared as bytes: foreign files need not be valid UTF-8.
    header = GENERATED_HEADER.encode("utf-8")
    with f:
        try:
            content = f.read()
        except OSError as e:
            raise FileOperationError(f"Failed to read from file '{path}': {e}", path=path) from e

        try:
            if content.startswith(header):
                logger.debug("%s was generated by imagebuilder, appending", path)
                f.seek(0, os.SEEK_END)
            else:
                if content:
                    logger.debug("%s was not generated by imagebuilder, replacing it", path)
                f.seek(0)
                f.truncate()
                f.write(header)

            f.write(lines.encode("utf-8"))
            if not lines.endswith("\n"):
                f.write(b"\n")
            f.flush()
        except OSError as e:
            raise FileOperationError(f"Failed to write to file '{path}': {e}", path=path) from e


def resolve_key(key: str, *, run: Runner, keyserver: Optional[str] = DEFAULT_KEYSERVER) -> str:
    """Return ASCII armored key material for a key block or a key ID.

    Raises:
        ExternalCommandError: gpg could not receive or export the key
    """
    if key.startswith(PGP_PUBLIC_KEY_HEADER):
        logger.debug("PGP key found (ASCII armor format)")
        return key

    logger.warning(
        "PGP key found (looks like a key ID). Importing key %s from a key server; "
        "full key not provided.",
        key,
    )
    recv_cmd: List[str] = ["gpg"]
    if keyserver:
        recv_cmd += ["--keyserver", keyserver]
    recv_cmd += ["--recv-keys", key]
    run(recv_cmd)
    return run(["gpg", "--export", "--armor", key])


def write_key_file(path: str, key_material: str) -> None:
    """Write key material to `path`, replacing any previous key.

    Raises:
        FileOperationError: the key file could not be written
    """
    try:
        with open(path, "w", encoding="utf-8") as f:
            f.write(key_material)
    except OSError as e:
        raise FileOperationError(f"Failed to write key file '{path}': {e}", path=path) from e
    logger.info("wrote repository key to %s", path)


def _ensure_directory(path: str) -> None:
    if os.path.isdir(path):
        return
    try:
        os.makedirs(path, mode=0o755, exist_ok=True)
    except OSError as e:
        raise FileOperationError(f"Failed to create directory '{path}': {e}", path=path) from e
