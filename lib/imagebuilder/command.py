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

"""Run external executables on behalf of the package managers and generators."""

from __future__ import annotations

import logging
import os
import subprocess
from typing import Mapping, Sequence

from .errors import ExternalCommandError

logger = logging.getLogger(__name__)


def run_command(
    cmd: Sequence[str],
    *,
    input: str | None = None,
    env: Mapping[str, str] | None = None,
) -> str:
    """Execute a command and return its captured stdout.

    Args:
        cmd: the executable followed by its arguments
        input: optional text fed to the command on stdin
        env: extra environment variables layered over the current environment

    Raises:
        ExternalCommandError: the executable could not be started or exited non-zero
    """
    cmd = list(cmd)
    logger.debug("executing command: %s", cmd)
    environ = os.environ.copy()
    if env:
        environ.update(env)
    try:
        return subprocess.run(
            cmd,
            input=input,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            check=True,
            env=environ,
        ).stdout
    except FileNotFoundError:
        raise ExternalCommandError(
            f"{cmd[0]} not found on PATH {environ.get('PATH')}", cmd=cmd
        ) from None
    except OSError as e:
        raise ExternalCommandError(f"Failed to execute {cmd}: {e}", cmd=cmd) from e
    except subprocess.CalledProcessError as e:
        logger.error("%s:\nstdout:\n%s\nstderr:\n%s", " ".join(cmd), e.stdout, e.stderr)
        raise ExternalCommandError(
            f"Command {cmd} failed with exit code {e.returncode}: {e.stderr}",
            cmd=cmd,
            returncode=e.returncode,
            stdout=e.stdout or "",
            stderr=e.stderr or "",
        ) from None
