# reflog.py -- Parsing and writing reflog files
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

"""Utilities for reading and writing reflogs.

Each reference has its own log under ``logs/<refname>``, one entry per line::

    <old-hex> <new-hex> <name> <<email>> <unix-time> <tz-offset>[<TAB><message>]

Entries are only ever appended; the first entry of a new reference has the
all-zero identifier as its old value.
"""

import datetime
import os
import re
import time
from collections.abc import Iterable, Iterator, Sequence
from typing import IO, NamedTuple, Optional, Union

from .errors import Corrupt, InvalidIdentifier, InvalidUserIdentity, IoFailure
from .file import atomic_write, ensure_dir_exists
from .log_utils import getLogger
from .objects import Identifier, format_timezone, parse_timezone
from .refs import RefName, check_ref_format

logger = getLogger(__name__)

_IDENTITY_RE = re.compile(rb"^(.*?) ?<([^<>]*)>$")
_BAD_IDENTITY_CHARS = "<>\n\t\0"


def _decode(value: bytes) -> str:
    return value.decode("utf-8", "surrogateescape")


def _encode(value: str) -> bytes:
    return value.encode("utf-8", "surrogateescape")


def check_user_identity(committer: "Committer") -> None:
    """Verify that a committer can be written to a reflog line.

    Raises:
      InvalidUserIdentity: if the name or email contains a character that
        would break the line
    """
    for field, value in (("name", committer.name), ("email", committer.email)):
        bad = [c for c in _BAD_IDENTITY_CHARS if c in value]
        if bad:
            raise InvalidUserIdentity(
                f"{committer.name} <{committer.email}>",
                f"{field} contains {bad[0]!r}",
            )


def local_timezone(timestamp: Optional[float] = None) -> int:
    """Return the local UTC offset in seconds at the given time."""
    if timestamp is None:
        timestamp = time.time()
    offset = datetime.datetime.fromtimestamp(timestamp).astimezone().utcoffset()
    if offset is None:
        return 0
    return int(offset.total_seconds())


class Committer(NamedTuple):
    """Who made a change, and when."""

    name: str
    email: str
    time: int
    timezone: int = 0

    @classmethod
    def now(cls, name: str, email: str) -> "Committer":
        """Create a committer stamped with the current local time."""
        now = int(time.time())
        return cls(name, email, now, local_timezone(now))

    @property
    def identity(self) -> bytes:
        """The ``Name <email>`` form used in reflog lines."""
        return _encode(self.name) + b" <" + _encode(self.email) + b">"

    @property
    def when(self) -> datetime.datetime:
        """The timestamp as an aware datetime in the recorded offset."""
        tz = datetime.timezone(datetime.timedelta(seconds=self.timezone))
        return datetime.datetime.fromtimestamp(self.time, tz)


class Entry(NamedTuple):
    """A single reflog entry."""

    old: Identifier
    new: Identifier
    committer: Committer
    message: Optional[str] = None


def format_reflog_line(
    old: Optional[Identifier],
    new: Identifier,
    committer: Committer,
    message: Optional[str] = None,
) -> bytes:
    """Generate a single reflog line, without the trailing newline.

    Args:
      old: Previous identifier; None is written as the zero identifier
      new: New identifier
      committer: Who made the change, and when
      message: Optional message; newlines are folded into spaces
    """
    check_user_identity(committer)
    if old is None:
        old = Identifier.zero(new.object_format)
    line = (
        old.hex
        + b" "
        + new.hex
        + b" "
        + committer.identity
        + b" "
        + str(int(committer.time)).encode("ascii")
        + b" "
        + format_timezone(committer.timezone)
    )
    if message is not None:
        line += b"\t" + _encode(message).replace(b"\n", b" ")
    return line


def parse_reflog_line(
    line: bytes, path: Optional[Union[str, bytes]] = None
) -> Entry:
    """Parse a reflog line.

    Args:
      line: Line to parse, without the trailing newline
      path: Path of the reflog, for error reporting
    Returns: The parsed entry; the message is None when the line has no TAB
    Raises:
      Corrupt: if the line is malformed
    """
    message: Optional[str]
    if b"\t" in line:
        begin, raw_message = line.split(b"\t", 1)
        message = _decode(raw_message)
    else:
        begin, message = line, None
    try:
        (old_hex, new_hex, rest) = begin.split(b" ", 2)
        (identity, timestamp_str, timezone_str) = rest.rsplit(b" ", 2)
        old = Identifier.parse(old_hex)
        new = Identifier.parse(new_hex)
        timestamp = int(timestamp_str)
        timezone = parse_timezone(timezone_str)
    except (ValueError, InvalidIdentifier) as exc:
        raise Corrupt(f"malformed reflog line: {exc}", path, line) from exc
    m = _IDENTITY_RE.match(identity)
    if m is None:
        raise Corrupt("malformed committer identity", path, line)
    committer = Committer(_decode(m.group(1)), _decode(m.group(2)), timestamp, timezone)
    return Entry(old, new, committer, message)


def read_reflog(
    f: Iterable[bytes], path: Optional[Union[str, bytes]] = None
) -> Iterator[Entry]:
    """Read reflog.

    Args:
      f: File-like object
      path: Path of the reflog, for error reporting
    Returns: Iterator over Entry objects, oldest first
    """
    for line in f:
        line = line.rstrip(b"\n")
        if not line:
            continue
        yield parse_reflog_line(line, path)


def check_reflog_continuity(entries: Sequence[Entry]) -> list[int]:
    """Find entries whose old value is not the previous entry's new value.

    Logs written by other tools, or edited by hand, need not form an unbroken
    chain; this is a diagnostic and never a reason to reject a log.

    Returns: Indices of the entries that break the chain
    """
    breaks = []
    for i in range(1, len(entries)):
        if entries[i].old != entries[i - 1].new:
            breaks.append(i)
    if breaks:
        logger.debug("reflog chain broken at entries %r", breaks)
    return breaks


class Reflog:
    """The reflogs of a repository, stored below ``logs/``."""

    def __init__(self, path: Union[str, bytes, os.PathLike], fsync: bool = False) -> None:
        """Initialize a Reflog.

        Args:
          path: The git directory; logs live in its ``logs`` subdirectory
          fsync: Whether to fsync each appended entry
        """
        self.path = os.path.join(os.fsencode(os.fspath(path)), b"logs")
        self.fsync = fsync

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.path!r})"

    def logpath(self, name: bytes) -> bytes:
        """Return the path of the reflog for name."""
        path = bytes(name)
        if os.path.sep != "/":
            path = path.replace(b"/", os.fsencode(os.path.sep))
        return os.path.join(self.path, path)

    def append(
        self,
        name: RefName,
        old: Optional[Identifier],
        new: Identifier,
        committer: Committer,
        message: Optional[str] = None,
    ) -> Entry:
        """Append an entry to the reflog of name, creating the log if needed.

        Returns: The entry as written
        Raises:
          IoFailure: if the log could not be written
        """
        if old is None:
            old = Identifier.zero(new.object_format)
        line = format_reflog_line(old, new, committer, message)
        path = self.logpath(name)
        try:
            ensure_dir_exists(os.path.dirname(path))
            with open(path, "ab") as f:
                f.write(line + b"\n")
                f.flush()
                if self.fsync:
                    os.fsync(f.fileno())
        except OSError as exc:
            raise IoFailure(path, exc) from exc
        return Entry(old, new, committer, message.replace("\n", " ") if message else message)

    def read(self, name: RefName) -> list[Entry]:
        """Read all entries for name, oldest first.

        A reference without a log has no entries.
        """
        path = self.logpath(name)
        try:
            f: IO[bytes] = open(path, "rb")
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            return []
        except OSError as exc:
            raise IoFailure(path, exc) from exc
        with f:
            return list(read_reflog(f, path))

    def exists(self, name: RefName) -> bool:
        return os.path.isfile(self.logpath(name))

    def copy(self, old_name: RefName, new_name: RefName) -> None:
        """Make the log of new_name a copy of the log of old_name.

        Any existing log of new_name is replaced.
        """
        src = self.logpath(old_name)
        dst = self.logpath(new_name)
        try:
            with open(src, "rb") as f:
                data = f.read()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise IoFailure(src, exc) from exc
        try:
            ensure_dir_exists(os.path.dirname(dst))
            atomic_write(dst, data, fsync=self.fsync)
        except OSError as exc:
            raise IoFailure(dst, exc) from exc

    def delete(self, name: RefName) -> None:
        """Remove the log of name, if any, and prune empty directories."""
        path = self.logpath(name)
        try:
            os.remove(path)
        except (FileNotFoundError, IsADirectoryError):
            return
        except OSError as exc:
            raise IoFailure(path, exc) from exc
        parent = os.path.dirname(path)
        while parent != self.path and parent.startswith(self.path):
            try:
                os.rmdir(parent)
            except OSError:
                break
            parent = os.path.dirname(parent)

    def iter_reflogs(self) -> Iterator[RefName]:
        """Iterate over the names of all references that have a log."""
        prefix_len = len(os.path.join(self.path, b""))
        for root, dirs, files in os.walk(self.path):
            directory = root[prefix_len:]
            if os.path.sep != "/":
                directory = directory.replace(os.fsencode(os.path.sep), b"/")
            for filename in files:
                name = b"/".join([directory, filename]) if directory else filename
                if check_ref_format(name):
                    yield RefName(name)
