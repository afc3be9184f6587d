# repo.py -- Repository handle
# Copyright (C) 2026 The gitrefs contributors
#
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later
# gitrefs is dual-licensed under the Apache License, Version 2.0 and the GNU
# General Public License as published by the Free Software Foundation; version 2.0
# or (at your option) any later version. You can redistribute it and/or
# modify it under the terms of either of these two licenses.
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# You should have received a copy of the licenses; if not, see
# <http://www.gnu.org/licenses/> for a copy of the GNU General Public License
# and <http://www.apache.org/licenses/LICENSE-2.0> for a copy of the Apache
# License, Version 2.0.
#

"""Opening and creating repositories.

A Repo only owns the reference side of a git directory: its configuration,
its refs and its reflogs. Objects live in an external object store that may
be handed in for target validation.
"""

__all__ = [
    "BASE_DIRECTORIES",
    "CONTROLDIR",
    "Repo",
]

import os
from types import TracebackType
from typing import Optional, Union

from .config import ConfigFile
from .errors import NotGitRepository
from .log_utils import getLogger
from .object_format import get_object_format
from .object_store import ObjectContainer
from .refs import HEADREF, LOCAL_BRANCH_PREFIX, RefName, Symbolic
from .store import ReferenceStore

logger = getLogger(__name__)

CONTROLDIR = ".git"
REFSDIR = "refs"
REFSDIR_TAGS = "tags"
REFSDIR_HEADS = "heads"
LOGSDIR = "logs"

BASE_DIRECTORIES = [
    [REFSDIR],
    [REFSDIR, REFSDIR_TAGS],
    [REFSDIR, REFSDIR_HEADS],
    [LOGSDIR],
]

DEFAULT_BRANCH = b"master"


def _is_git_dir(path: str) -> bool:
    return os.path.isfile(os.path.join(path, "HEAD")) and os.path.isdir(
        os.path.join(path, REFSDIR)
    )


class Repo:
    """A git repository on local disk, as far as its references go.

    To open an existing repository, call the constructor with the path of
    the repository (its working tree or, if bare, the git directory itself).
    """

    def __init__(
        self,
        root: Union[str, bytes, os.PathLike],
        object_store: Optional[ObjectContainer] = None,
    ) -> None:
        """Open a repository.

        Raises:
          NotGitRepository: if root is neither a git directory nor contains
            one
        """
        root = os.fsdecode(os.fspath(root))
        hidden_path = os.path.join(root, CONTROLDIR)
        if os.path.isfile(hidden_path):
            # A gitfile: "gitdir: <path>"
            with open(hidden_path, "rb") as f:
                contents = f.read().strip()
            if not contents.startswith(b"gitdir: "):
                raise NotGitRepository(f"invalid .git file at {hidden_path}")
            controldir = os.path.join(root, os.fsdecode(contents[len(b"gitdir: ") :]))
            self.bare = False
        elif _is_git_dir(hidden_path):
            controldir = hidden_path
            self.bare = False
        elif _is_git_dir(root):
            controldir = root
            self.bare = True
        else:
            raise NotGitRepository(f"No git repository was found at {root}")
        self.path = root
        self._controldir = controldir
        self.object_store = object_store
        self._config = self._read_config()
        self.refs = ReferenceStore(controldir, self._config, object_store)

    def __repr__(self) -> str:
        return f"<Repo at {self.path!r}>"

    def controldir(self) -> str:
        """Return the path of the control directory."""
        return self._controldir

    def _read_config(self) -> ConfigFile:
        path = os.path.join(self._controldir, "config")
        try:
            return ConfigFile.from_path(path)
        except FileNotFoundError:
            ret = ConfigFile()
            ret.path = path
            return ret

    def get_config(self) -> ConfigFile:
        """Retrieve the config object."""
        return self._config

    @classmethod
    def discover(cls, start: Union[str, os.PathLike] = ".") -> "Repo":
        """Open the first repository found in start or its parents."""
        path = os.path.abspath(start)
        while True:
            try:
                return cls(path)
            except NotGitRepository:
                parent = os.path.dirname(path)
                if parent == path:
                    break
                path = parent
        raise NotGitRepository(f"No git repository was found at {os.fspath(start)}")

    @classmethod
    def init(
        cls,
        path: Union[str, bytes, os.PathLike],
        bare: bool = False,
        mkdir: bool = False,
        default_branch: bytes = DEFAULT_BRANCH,
        object_format: Optional[str] = None,
    ) -> "Repo":
        """Create a new repository.

        Args:
          path: Path in which to create the repository
          bare: Create the git directory at path itself
          mkdir: Whether to create path first
          default_branch: Branch HEAD points at
          object_format: ``"sha1"`` (default) or ``"sha256"``
        Returns: `Repo` instance
        """
        path = os.fsdecode(os.fspath(path))
        if mkdir:
            os.mkdir(path)
        controldir = path if bare else os.path.join(path, CONTROLDIR)
        if not bare:
            os.mkdir(controldir)
        for d in BASE_DIRECTORIES:
            os.mkdir(os.path.join(controldir, *d))
        hash_alg = get_object_format(object_format)

        config = ConfigFile()
        config.set(b"core", b"repositoryformatversion", 0 if hash_alg.name == "sha1" else 1)
        config.set(b"core", b"filemode", True)
        config.set(b"core", b"bare", bare)
        config.set(b"core", b"logallrefupdates", True)
        if hash_alg.name != "sha1":
            config.set(b"extensions", b"objectformat", hash_alg.name)
        config.write_to_path(os.path.join(controldir, "config"))

        head = Symbolic(RefName(LOCAL_BRANCH_PREFIX + default_branch))
        store = ReferenceStore(controldir, config)
        store.loose.write(RefName(HEADREF), head)
        logger.debug("initialized repository at %s", path)
        return cls(path)

    def close(self) -> None:
        """Close the repository. All writes are durable already."""

    def __enter__(self) -> "Repo":
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        self.close()
