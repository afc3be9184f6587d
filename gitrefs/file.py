# file.py -- Lock files and atomic replacement
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

"""Safe access to files shared between processes.

Writers coordinate through lock markers: an empty ``<file>.lock`` sibling
whose exclusive creation grants ownership and whose removal releases it.
New contents are written to a temporary sibling and renamed over the
target, so readers see either the old or the new contents, never a mix.
"""

__all__ = [
    "FileLocked",
    "LockFile",
    "atomic_write",
    "ensure_dir_exists",
]

import os
import random
import tempfile
import time
import warnings
from types import TracebackType

from .log_utils import getLogger

logger = getLogger(__name__)

# Backoff between attempts to take a contended lock, in seconds.
_INITIAL_BACKOFF = 0.001
_MAX_BACKOFF = 0.1


def ensure_dir_exists(
    dirname: str | bytes | os.PathLike[str] | os.PathLike[bytes],
) -> None:
    """Ensure a directory exists, creating if necessary."""
    try:
        os.makedirs(dirname)
    except FileExistsError:
        pass


class FileLocked(Exception):
    """File is already locked."""

    def __init__(
        self,
        filename: str | bytes | os.PathLike[str] | os.PathLike[bytes],
        lockfilename: str | bytes,
    ) -> None:
        """Initialize FileLocked.

        Args:
          filename: Name of the file that is locked
          lockfilename: Name of the lock file
        """
        self.filename = filename
        self.lockfilename = lockfilename
        super().__init__(filename, lockfilename)


class LockFile:
    """Exclusive lock on a file, held through a ``.lock`` marker.

    Works as a context manager. The lock is advisory: it only excludes other
    writers that follow the same protocol.

    Note: You *must* call release() (or leave the ``with`` block) for the
        lock to be dropped; a stale marker blocks all further writers until it
        is removed manually.
    """

    def __init__(
        self,
        filename: str | bytes | os.PathLike[str] | os.PathLike[bytes],
        timeout: float | None = 0,
        mask: int = 0o644,
    ) -> None:
        """Initialize a LockFile.

        Args:
          filename: Path of the file to protect
          timeout: Seconds to keep retrying while another writer holds the
            lock. 0 fails immediately; None waits indefinitely.
          mask: Mode for the marker file
        """
        self._filename: str | bytes = os.fspath(filename)
        if isinstance(self._filename, bytes):
            self._lockfilename: str | bytes = self._filename + b".lock"
        else:
            self._lockfilename = self._filename + ".lock"
        self._timeout = timeout
        self._mask = mask
        self._locked = False

    @property
    def filename(self) -> str | bytes:
        return self._filename

    @property
    def lockfilename(self) -> str | bytes:
        return self._lockfilename

    @property
    def locked(self) -> bool:
        """Return whether this object currently owns the lock."""
        return self._locked

    def _try_acquire(self) -> bool:
        try:
            fd = os.open(
                self._lockfilename,
                os.O_RDWR | os.O_CREAT | os.O_EXCL | getattr(os, "O_BINARY", 0),
                self._mask,
            )
        except FileExistsError:
            return False
        os.close(fd)
        return True

    def acquire(self) -> None:
        """Take the lock, waiting up to the configured timeout.

        Raises:
          FileLocked: if another writer kept the lock for the whole wait
          OSError: if the marker could not be created for another reason
        """
        if self._locked:
            raise RuntimeError(f"{self._lockfilename!r} is already held")
        deadline = None
        if self._timeout is not None:
            deadline = time.monotonic() + max(self._timeout, 0)
        backoff = _INITIAL_BACKOFF
        while not self._try_acquire():
            now = time.monotonic()
            if deadline is not None and now >= deadline:
                raise FileLocked(self._filename, self._lockfilename)
            logger.debug("waiting for lock %r", self._lockfilename)
            wait = backoff * random.uniform(0.75, 1.25)
            if deadline is not None:
                wait = min(wait, deadline - now)
            time.sleep(wait)
            backoff = min(backoff * 2, _MAX_BACKOFF)
        self._locked = True

    def release(self) -> None:
        """Drop the lock. If the lock is not held, this is a no-op."""
        if not self._locked:
            return
        try:
            os.remove(self._lockfilename)
        except FileNotFoundError:
            # The marker may have been removed by hand, which is ok.
            pass
        self._locked = False

    def __enter__(self) -> "LockFile":
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.release()

    def __del__(self) -> None:
        if getattr(self, "_locked", False):
            warnings.warn(f"unreleased {self!r}", ResourceWarning, stacklevel=2)
            self.release()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._filename!r})"


def atomic_write(
    filename: str | bytes | os.PathLike[str] | os.PathLike[bytes],
    data: bytes,
    mask: int = 0o644,
    fsync: bool = True,
) -> None:
    """Replace the contents of a file atomically.

    The data is written to a temporary file in the same directory, which is
    then renamed over ``filename``. The temporary name starts with ``.tmp-``.

    Args:
      filename: Path of the file to replace
      data: New contents
      mask: Mode of the resulting file
      fsync: Whether to call fsync() before renaming
    """
    path = os.fspath(filename)
    dirname = os.path.dirname(path)
    if isinstance(path, bytes):
        fd, tmpname = tempfile.mkstemp(prefix=b".tmp-", dir=dirname or b".")
    else:
        fd, tmpname = tempfile.mkstemp(prefix=".tmp-", dir=dirname or ".")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            if fsync:
                os.fsync(f.fileno())
        os.chmod(tmpname, mask)
        os.replace(tmpname, path)
    except BaseException:
        try:
            os.remove(tmpname)
        except FileNotFoundError:
            pass
        raise
