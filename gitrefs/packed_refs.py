# packed_refs.py -- Reading and writing packed-refs files
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

"""Packed refs: many direct references compacted into a single file.

The format is line oriented::

    # pack-refs with: peeled fully-peeled sorted
    <hex> <SP> <refname>
    ^<hex>

where the optional ``^`` line carries the peeled value of the annotated tag
on the line above it.
"""

import os
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from io import BytesIO
from typing import IO, Optional, Union

from .errors import (
    InvalidIdentifier,
    InvalidRefName,
    IoFailure,
    LockTimeout,
    PackedRefsException,
)
from .file import FileLocked, LockFile, atomic_write
from .log_utils import getLogger
from .objects import Identifier
from .refs import LOCAL_TAG_PREFIX, RefName

logger = getLogger(__name__)

PACKED_REFS_FILENAME = b"packed-refs"
PACKED_REFS_HEADER = b"# pack-refs with: "
DEFAULT_TRAITS = frozenset([b"peeled", b"sorted"])


def _split_ref_line(
    line: bytes, path: Optional[Union[str, bytes]] = None
) -> tuple[Identifier, RefName]:
    """Split a single ref line into a tuple of identifier and name."""
    fields = line.rstrip(b"\n\r").split(b" ")
    if len(fields) != 2:
        raise PackedRefsException("invalid ref line", path, line)
    sha, name = fields
    try:
        identifier = Identifier.parse(sha)
    except InvalidIdentifier as exc:
        raise PackedRefsException("invalid hex sha", path, line) from exc
    try:
        refname = RefName(name)
    except InvalidRefName as exc:
        raise PackedRefsException(f"invalid ref name: {exc.reason}", path, line) from exc
    return (identifier, refname)


def read_packed_refs(
    f: Iterable[bytes], path: Optional[Union[str, bytes]] = None
) -> Iterator[tuple[Identifier, RefName, Optional[Identifier]]]:
    """Read the entries of a packed refs file.

    A header line is skipped; use parse_traits() to interpret it.

    Args:
      f: Iterable of lines, e.g. a file opened in binary mode
      path: Path of the file, for error reporting
    Returns: Iterator over (identifier, name, peeled) tuples; peeled is None
        when the entry has no ``^`` line.
    Raises:
      PackedRefsException: on the first malformed line
    """
    last: Optional[tuple[Identifier, RefName]] = None
    for lineno, line in enumerate(f):
        if lineno == 0 and line.startswith(b"#"):
            continue
        line = line.rstrip(b"\r\n")
        if line.startswith(b"^"):
            if last is None:
                raise PackedRefsException("unexpected peeled ref line", path, line)
            try:
                peeled = Identifier.parse(line[1:])
            except InvalidIdentifier as exc:
                raise PackedRefsException("invalid peeled sha", path, line) from exc
            yield (last[0], last[1], peeled)
            last = None
        else:
            if last is not None:
                yield (last[0], last[1], None)
            last = _split_ref_line(line, path)
    if last is not None:
        yield (last[0], last[1], None)


def parse_traits(first_line: bytes) -> frozenset[bytes]:
    """Return the traits announced by a packed-refs header line."""
    line = first_line.rstrip(b"\r\n")
    if not line.startswith(PACKED_REFS_HEADER):
        return frozenset()
    return frozenset(line[len(PACKED_REFS_HEADER) :].split())


def write_packed_refs(
    f: IO[bytes],
    packed_refs: Mapping[bytes, Identifier],
    peeled_refs: Optional[Mapping[bytes, Identifier]] = None,
    traits: Iterable[bytes] = DEFAULT_TRAITS,
) -> None:
    """Write a packed refs file.

    Args:
      f: empty file-like object to write to
      packed_refs: dict of refname to identifier of packed refs to write
      peeled_refs: dict of refname to peeled value of the identifier
      traits: traits to announce in the header; no header if empty
    """
    if peeled_refs is None:
        peeled_refs = {}
    traits = sorted(traits)
    if traits:
        f.write(PACKED_REFS_HEADER + b" ".join(traits) + b"\n")
    for refname in sorted(packed_refs.keys()):
        f.write(packed_refs[refname].hex + b" " + bytes(refname) + b"\n")
        if refname in peeled_refs:
            f.write(b"^" + peeled_refs[refname].hex + b"\n")


class PackedRefsTable:
    """An immutable snapshot of a packed-refs file."""

    def __init__(
        self,
        refs: Optional[Mapping[RefName, Identifier]] = None,
        peeled: Optional[Mapping[RefName, Identifier]] = None,
        traits: Iterable[bytes] = DEFAULT_TRAITS,
    ) -> None:
        self._refs: dict[RefName, Identifier] = dict(refs or {})
        self._peeled: dict[RefName, Identifier] = dict(peeled or {})
        self.traits = frozenset(traits)

    @classmethod
    def from_file(
        cls, f: IO[bytes], path: Optional[Union[str, bytes]] = None
    ) -> "PackedRefsTable":
        """Parse a packed-refs file.

        Raises:
          PackedRefsException: if any line is malformed or a name repeats
        """
        data = f.read()
        lines = data.splitlines(keepends=True)
        traits = parse_traits(lines[0]) if lines else frozenset()
        refs: dict[RefName, Identifier] = {}
        peeled: dict[RefName, Identifier] = {}
        for identifier, name, peeled_identifier in read_packed_refs(lines, path):
            if name in refs:
                raise PackedRefsException("duplicate ref", path, bytes(name))
            refs[name] = identifier
            if peeled_identifier is not None:
                peeled[name] = peeled_identifier
        return cls(refs, peeled, traits)

    @classmethod
    def load(cls, path: Union[str, bytes, os.PathLike]) -> "PackedRefsTable":
        """Load a packed-refs file; a missing file yields an empty table."""
        try:
            f = open(path, "rb")
        except FileNotFoundError:
            return cls()
        with f:
            return cls.from_file(f, os.fspath(path))

    def lookup(self, name: bytes) -> Optional[Identifier]:
        """Return the identifier stored for name, or None."""
        return self._refs.get(name)  # type: ignore[call-overload]

    def get_peeled(self, name: bytes) -> Optional[Identifier]:
        """Return the peeled value recorded for name, if any."""
        return self._peeled.get(name)  # type: ignore[call-overload]

    def list(self, prefix: Optional[bytes] = None) -> Iterator[RefName]:
        """Iterate over the names in the table starting with prefix."""
        for name in self._refs:
            if prefix is None or name.startswith(prefix):
                yield name

    def items(self) -> Iterator[tuple[RefName, Identifier]]:
        return iter(self._refs.items())

    def updated(
        self,
        changes: Mapping[RefName, Optional[Identifier]],
        peeled: Optional[Mapping[RefName, Optional[Identifier]]] = None,
    ) -> "PackedRefsTable":
        """Return a new table with changes applied.

        The traits of this table are kept, except that ``peeled`` and
        ``fully-peeled`` are dropped once an entry they cover is added
        without a known peeled value.

        Args:
          changes: mapping of names to new identifiers; None removes the name
          peeled: peeled values of changed names, where known; None for a
            name known not to point at an annotated tag
        """
        if peeled is None:
            peeled = {}
        refs = dict(self._refs)
        new_peeled = dict(self._peeled)
        traits = set(self.traits)
        for name, identifier in changes.items():
            new_peeled.pop(name, None)
            if identifier is None:
                refs.pop(name, None)
                continue
            refs[name] = identifier
            if name in peeled:
                peeled_identifier = peeled[name]
                if peeled_identifier is not None:
                    new_peeled[name] = peeled_identifier
            else:
                traits.discard(b"fully-peeled")
                if name.startswith(LOCAL_TAG_PREFIX):
                    traits.discard(b"peeled")
        # write_packed_refs always sorts.
        traits.add(b"sorted")
        return PackedRefsTable(refs, new_peeled, traits)

    def serialize(self) -> bytes:
        f = BytesIO()
        write_packed_refs(f, self._refs, self._peeled, self.traits)
        return f.getvalue()

    def __contains__(self, name: object) -> bool:
        return name in self._refs

    def __len__(self) -> int:
        return len(self._refs)

    def __iter__(self) -> Iterator[RefName]:
        return iter(self._refs)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PackedRefsTable):
            return NotImplemented
        return self._refs == other._refs and self._peeled == other._peeled

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({len(self._refs)} refs)"


def _stat_signature(path: bytes) -> Optional[tuple[int, int, int]]:
    try:
        st = os.stat(path)
    except FileNotFoundError:
        return None
    return (st.st_mtime_ns, st.st_size, st.st_ino)


class PackedRefsFile:
    """The packed-refs file of a repository.

    The parsed table is cached and reloaded whenever the file on disk
    changes. Rewrites happen under ``packed-refs.lock``, the store-wide lock.
    """

    def __init__(
        self,
        path: Union[str, bytes, os.PathLike],
        timeout: Optional[float] = 1.0,
        fsync: bool = True,
    ) -> None:
        self.path = os.fsencode(os.fspath(path))
        self._timeout = timeout
        self._fsync = fsync
        self._cache: Optional[tuple[Optional[tuple[int, int, int]], PackedRefsTable]] = None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.path!r})"

    def get(self) -> PackedRefsTable:
        """Return the current table, reloading it if the file changed."""
        signature = _stat_signature(self.path)
        cache = self._cache
        if cache is not None and cache[0] == signature:
            return cache[1]
        if signature is None:
            table = PackedRefsTable()
        else:
            logger.debug("loading %r", self.path)
            try:
                table = PackedRefsTable.load(self.path)
            except OSError as exc:
                raise IoFailure(self.path, exc) from exc
        self._cache = (signature, table)
        return table

    def invalidate(self) -> None:
        self._cache = None

    @contextmanager
    def locked(self) -> Iterator[None]:
        """Hold the store-wide packed-refs lock.

        Raises:
          LockTimeout: if the lock could not be taken in time
        """
        lock = LockFile(self.path, timeout=self._timeout)
        try:
            lock.acquire()
        except FileLocked as exc:
            logger.debug("packed-refs is locked by another writer")
            raise LockTimeout(PACKED_REFS_FILENAME, exc.lockfilename) from exc
        except OSError as exc:
            raise IoFailure(lock.lockfilename, exc) from exc
        try:
            yield
        finally:
            lock.release()

    def write(self, table: PackedRefsTable) -> None:
        """Replace the file with table. The caller must hold locked()."""
        try:
            if len(table) == 0:
                try:
                    os.remove(self.path)
                except FileNotFoundError:
                    pass
            else:
                atomic_write(self.path, table.serialize(), fsync=self._fsync)
        except OSError as exc:
            raise IoFailure(self.path, exc) from exc
        self.invalidate()

    def update(
        self,
        changes: Mapping[RefName, Optional[Identifier]],
        peeled: Optional[Mapping[RefName, Optional[Identifier]]] = None,
    ) -> PackedRefsTable:
        """Apply changes to the file under the packed-refs lock.

        See PackedRefsTable.updated for the arguments.

        Returns: the table as written
        """
        with self.locked():
            self.invalidate()
            table = self.get().updated(changes, peeled)
            self.write(table)
        return table

    def remove(self, name: RefName) -> bool:
        """Drop name from the file.

        Returns: True if the name was present
        """
        with self.locked():
            self.invalidate()
            table = self.get()
            if name not in table:
                return False
            self.write(table.updated({name: None}))
        return True
