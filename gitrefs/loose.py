# loose.py -- One-file-per-reference storage
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

"""Loose refs: each reference stored in its own file below the git dir.

Every update follows the same discipline: take the per-name lock, re-read
the current value while holding it, compare it against what the caller
expected, then atomically replace (or remove) the record and release the
lock. Readers never lock; they see either the old or the new record.
"""

import os
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Optional, Union

from .errors import (
    AlreadyExists,
    Conflict,
    IoFailure,
    LockTimeout,
    NotFound,
    PackedRefDeleteRejected,
)
from .file import FileLocked, LockFile, atomic_write, ensure_dir_exists
from .log_utils import getLogger
from .packed_refs import PackedRefsFile
from .refs import (
    REFS_PREFIX,
    Direct,
    Reference,
    RefName,
    Target,
    check_ref_format,
    parse_ref_value,
    serialize_ref_value,
)

logger = getLogger(__name__)

DELETE_PACKED_REWRITE = "rewrite"
DELETE_PACKED_REJECT = "reject"
DELETE_PACKED_POLICIES = (DELETE_PACKED_REWRITE, DELETE_PACKED_REJECT)


class _Missing:
    """Expectation that a reference does not exist yet."""

    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()

Expectation = Union[Target, _Missing, None]

RefLogger = Callable[[RefName, Optional[Target], Optional[Target]], None]


class LooseRefStore:
    """Reference records stored as individual files."""

    def __init__(
        self,
        path: Union[str, bytes, os.PathLike],
        packed: Optional[PackedRefsFile] = None,
        lock_timeout: Optional[float] = 0.1,
        fsync: bool = True,
        delete_packed: str = DELETE_PACKED_REWRITE,
    ) -> None:
        """Initialize a LooseRefStore.

        Args:
          path: The git directory containing ``HEAD`` and ``refs/``
          packed: The packed-refs file underneath this store. Updates compare
            against it when no loose record exists.
          lock_timeout: Seconds to wait for a per-name lock; 0 fails at once,
            None waits indefinitely
          fsync: Whether to fsync records before renaming them into place
          delete_packed: What delete() does with a name that is in the packed
            table: ``"rewrite"`` drops it from packed-refs, ``"reject"``
            raises PackedRefDeleteRejected
        """
        if delete_packed not in DELETE_PACKED_POLICIES:
            raise ValueError(f"unknown delete policy {delete_packed!r}")
        self.path = os.fsencode(os.fspath(path))
        self.packed = packed
        self.lock_timeout = lock_timeout
        self.fsync = fsync
        self.delete_packed = delete_packed

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.path!r})"

    def refpath(self, name: bytes) -> bytes:
        """Return the disk path of a ref."""
        path = bytes(name)
        if os.path.sep != "/":
            path = path.replace(b"/", os.fsencode(os.path.sep))
        return os.path.join(self.path, path)

    def read(self, name: RefName) -> Optional[Reference]:
        """Read the loose record for name.

        Returns: The reference, or None if there is no loose record
        Raises:
          Corrupt: if the record exists but cannot be parsed
          IoFailure: if the record could not be read
        """
        filename = self.refpath(name)
        try:
            with open(filename, "rb") as f:
                contents = f.read()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            return None
        except OSError as exc:
            raise IoFailure(filename, exc) from exc
        return Reference(name, parse_ref_value(contents, filename))

    def _packed_value(self, name: RefName) -> Optional[Direct]:
        if self.packed is None:
            return None
        identifier = self.packed.get().lookup(name)
        if identifier is None:
            return None
        return Direct(identifier)

    def current(self, name: RefName) -> Optional[Target]:
        """Return the value name currently has, loose or packed."""
        ref = self.read(name)
        if ref is not None:
            return ref.target
        return self._packed_value(name)

    @contextmanager
    def lock(self, name: RefName) -> Iterator[None]:
        """Hold the per-name lock of a reference.

        Raises:
          LockTimeout: if another writer held the lock for the whole wait
        """
        filename = self.refpath(name)
        lock = LockFile(filename, timeout=self.lock_timeout)
        # The parent directory can vanish under us when a concurrent delete
        # prunes empty directories; recreate it and try again.
        for attempt in range(3):
            try:
                ensure_dir_exists(os.path.dirname(filename))
                lock.acquire()
            except FileLocked as exc:
                logger.debug("lock on %r is held by another writer", name)
                raise LockTimeout(name, exc.lockfilename) from exc
            except FileNotFoundError as exc:
                if attempt == 2:
                    raise IoFailure(lock.lockfilename, exc) from exc
                continue
            except OSError as exc:
                raise IoFailure(lock.lockfilename, exc) from exc
            break
        try:
            yield
        finally:
            lock.release()

    def _check_no_conflicting_names(self, name: RefName) -> None:
        """Refuse to create name if a parent or child name exists.

        A ref cannot be both a file and a directory, so ``refs/heads/a`` and
        ``refs/heads/a/b`` are mutually exclusive.
        """
        packed = self.packed.get() if self.packed is not None else None
        for parent in name.parents():
            if os.path.isfile(self.refpath(parent)):
                raise AlreadyExists(name, parent)
            if packed is not None and parent in packed:
                raise AlreadyExists(name, parent)
        if packed is not None:
            for other in packed.list(bytes(name) + b"/"):
                raise AlreadyExists(name, other)
        filename = self.refpath(name)
        if os.path.isdir(filename):
            for root, dirs, files in os.walk(filename):
                for f in files:
                    child = os.path.relpath(os.path.join(root, f), self.path)
                    raise AlreadyExists(name, child.replace(os.fsencode(os.path.sep), b"/"))
            self._remove_empty_tree(filename)

    def _remove_empty_tree(self, dirname: bytes) -> None:
        for root, dirs, files in os.walk(dirname, topdown=False):
            try:
                os.rmdir(root)
            except OSError as exc:
                raise IoFailure(root, exc) from exc

    def _check_expected(
        self, name: RefName, expected_old: Expectation, current: Optional[Target]
    ) -> None:
        if expected_old is None:
            return
        if isinstance(expected_old, _Missing):
            if current is not None:
                raise AlreadyExists(name)
            return
        if current != expected_old:
            logger.debug(
                "compare-and-swap on %r failed: expected %r, found %r",
                name,
                expected_old,
                current,
            )
            raise Conflict(name, expected_old, current)

    def write(
        self,
        name: RefName,
        target: Target,
        expected_old: Expectation = None,
        log_update: Optional[RefLogger] = None,
    ) -> Optional[Target]:
        """Set name to target if its current value is expected_old.

        Args:
          name: The reference to write
          target: The new value
          expected_old: The value the reference must currently have, MISSING
            if it must not exist, or None to write unconditionally
          log_update: Called as ``log_update(name, old, new)`` after the new record is
            in place, while the lock is still held
        Returns: The previous value (loose or packed), or None
        Raises:
          Conflict: if the current value differs from expected_old
          AlreadyExists: if expected_old is MISSING and the name exists, or a
            parent or child name exists
          LockTimeout: if the per-name lock could not be acquired
        """
        filename = self.refpath(name)
        if self.current(name) is None:
            self._check_no_conflicting_names(name)
        with self.lock(name):
            current = self.current(name)
            self._check_expected(name, expected_old, current)
            try:
                atomic_write(filename, serialize_ref_value(target), fsync=self.fsync)
            except OSError as exc:
                raise IoFailure(filename, exc) from exc
            if log_update is not None:
                log_update(name, current, target)
        return current

    def delete(
        self,
        name: RefName,
        expected_old: Optional[Target] = None,
        log_update: Optional[RefLogger] = None,
    ) -> Target:
        """Remove name if its current value is expected_old.

        Args:
          name: The reference to delete
          expected_old: The value the reference must currently have, or None
            to delete unconditionally
          log_update: Called as ``log_update(name, old, None)`` after the record is
            gone, while the lock is still held
        Returns: The value the reference had
        Raises:
          NotFound: if there is neither a loose nor a packed record
          Conflict: if the current value differs from expected_old
          PackedRefDeleteRejected: if the name is packed and the policy is
            ``"reject"``
        """
        filename = self.refpath(name)
        with self.lock(name):
            loose = self.read(name)
            packed = self._packed_value(name)
            current = loose.target if loose is not None else packed
            if current is None:
                raise NotFound(name)
            self._check_expected(name, expected_old, current)
            if packed is not None and self.delete_packed == DELETE_PACKED_REJECT:
                raise PackedRefDeleteRejected(name, current)
            if loose is not None:
                try:
                    os.remove(filename)
                except FileNotFoundError:
                    pass
                except OSError as exc:
                    raise IoFailure(filename, exc) from exc
            if packed is not None:
                assert self.packed is not None
                self.packed.remove(name)
            if log_update is not None:
                log_update(name, current, None)
        self.prune_parents(name)
        return current

    def unlink(self, name: RefName) -> None:
        """Remove the loose record of name without any checks.

        The caller must hold the lock of name.
        """
        filename = self.refpath(name)
        try:
            os.remove(filename)
        except FileNotFoundError:
            pass
        except OSError as exc:
            raise IoFailure(filename, exc) from exc

    def prune_parents(self, name: bytes) -> None:
        """Remove the now-empty directories above name.

        The top two levels (``refs/heads``, ``refs/tags``, ...) are kept.
        """
        parent = bytes(name)
        while parent.count(b"/") > 1:
            parent = parent.rsplit(b"/", 1)[0]
            if parent.count(b"/") < 2:
                break
            try:
                os.rmdir(self.refpath(parent))
            except OSError:
                # Not empty, or removed by another process.
                break

    def list(self, prefix: Optional[bytes] = None) -> Iterator[RefName]:
        """Iterate over loose reference names under ``refs/``.

        Args:
          prefix: Only yield names whose raw bytes start with prefix
        Returns: Names in filesystem enumeration order
        """
        base = REFS_PREFIX
        if prefix is not None:
            if prefix.startswith(REFS_PREFIX):
                base = prefix[: prefix.rfind(b"/") + 1]
            elif not REFS_PREFIX.startswith(prefix):
                return
        top = os.path.join(self.path, base.rstrip(b"/").replace(b"/", os.fsencode(os.path.sep)))
        prefix_len = len(os.path.join(self.path, b""))
        for root, dirs, files in os.walk(top):
            directory = root[prefix_len:]
            if os.path.sep != "/":
                directory = directory.replace(os.fsencode(os.path.sep), b"/")
            for filename in files:
                refname = b"/".join([directory, filename])
                if not check_ref_format(refname):
                    if not filename.endswith(b".lock") and not filename.startswith(b".tmp-"):
                        logger.debug("ignoring invalid loose ref %r", refname)
                    continue
                if prefix is None or refname.startswith(prefix):
                    yield RefName(refname)
