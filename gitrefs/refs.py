# refs.py -- Reference names and targets
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

"""Ref names, targets and the loose record format."""

from dataclasses import dataclass
from typing import Optional, Union

from .errors import Corrupt, InvalidIdentifier, InvalidRefName
from .objects import Identifier, valid_hexsha

HEADREF = b"HEAD"
SYMREF = b"ref: "
LOCAL_BRANCH_PREFIX = b"refs/heads/"
LOCAL_TAG_PREFIX = b"refs/tags/"
REFS_PREFIX = b"refs/"
LOCK_SUFFIX = b".lock"
BAD_REF_CHARS = set(b"\177 ~^:?*[\\")


def ref_format_error(refname: bytes) -> Optional[str]:
    """Explain why a refname is invalid.

    Args:
      refname: The refname to check
    Returns: A description of the first violated rule, or None if the name
        is valid
    """
    if not refname:
        return "empty name"
    if refname.startswith(b"/"):
        return "leading slash"
    if refname.endswith(b"/"):
        return "trailing slash"
    if b"//" in refname:
        return "consecutive slashes"
    for c in refname:
        if c < 0o40 or c in BAD_REF_CHARS:
            return f"forbidden character {bytes([c])!r}"
    if b".." in refname:
        return "contains '..'"
    for component in refname.split(b"/"):
        if component == b".":
            return f"component {component!r} not allowed"
        if component.startswith(b"."):
            return "component begins with '.'"
        if component.endswith(LOCK_SUFFIX):
            return "component ends with '.lock'"
    if refname.endswith(b"."):
        return "trailing dot"
    if b"@{" in refname:
        return "contains '@{'"
    if refname == b"@":
        return "name is '@'"
    return None


def check_ref_format(refname: bytes) -> bool:
    """Check if a refname is correctly formatted.

    Args:
      refname: The refname to check
    Returns: True if refname is valid, False otherwise
    """
    return ref_format_error(refname) is None


class RefName(bytes):
    """A validated reference name.

    The name is kept as the exact UTF-8 bytes it was given; no case folding
    or Unicode normalisation is applied, so comparison and sorting are
    byte-wise.
    """

    __slots__ = ()

    def __new__(cls, name: Union[bytes, str]) -> "RefName":
        if isinstance(name, RefName):
            return name
        if isinstance(name, str):
            try:
                name = name.encode("utf-8")
            except UnicodeEncodeError as exc:
                raise InvalidRefName(name, "not encodable as UTF-8") from exc
        elif not isinstance(name, bytes):
            raise TypeError(f"expected bytes or str, got {type(name).__name__}")
        reason = ref_format_error(name)
        if reason is not None:
            raise InvalidRefName(name, reason)
        return super().__new__(cls, name)

    @classmethod
    def parse(cls, name: Union[bytes, str]) -> "RefName":
        """Parse and validate a reference name.

        Raises:
          InvalidRefName: if the name violates the naming grammar
        """
        return cls(name)

    @property
    def components(self) -> list[bytes]:
        return self.split(b"/")

    def parents(self) -> list[bytes]:
        """Return the ancestor names of this ref, nearest first.

        For ``refs/heads/a/b`` this is ``refs/heads/a``, ``refs/heads`` and
        ``refs``. The ancestors are plain bytes: ``refs/a./b`` is a valid name
        while ``refs/a.`` is not.
        """
        ret = []
        name = bytes(self)
        while b"/" in name:
            name = name.rsplit(b"/", 1)[0]
            ret.append(name)
        return ret

    def __str__(self) -> str:
        return self.decode("utf-8", "surrogateescape")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({str(self)!r})"

    def __reduce__(self) -> tuple[type, tuple[bytes]]:
        return (self.__class__, (bytes(self),))


@dataclass(frozen=True)
class Direct:
    """A target naming an object by identifier."""

    id: Identifier

    def __str__(self) -> str:
        return str(self.id)


@dataclass(frozen=True)
class Symbolic:
    """A target naming another reference."""

    name: RefName

    def __str__(self) -> str:
        return str(self.name)


Target = Union[Direct, Symbolic]


@dataclass(frozen=True)
class Reference:
    """A named reference together with its stored (unresolved) target."""

    name: RefName
    target: Target

    @property
    def type(self) -> str:
        """Either ``"direct"`` or ``"symbolic"``."""
        if isinstance(self.target, Direct):
            return "direct"
        elif isinstance(self.target, Symbolic):
            return "symbolic"
        raise TypeError(self.target)

    @property
    def is_symbolic(self) -> bool:
        return isinstance(self.target, Symbolic)


def parse_symref_value(contents: bytes) -> bytes:
    """Parse a symref value.

    Args:
      contents: Contents to parse
    Returns: Destination
    """
    if contents.startswith(SYMREF):
        return contents[len(SYMREF) :].rstrip(b"\r\n")
    raise ValueError(contents)


def parse_ref_value(contents: bytes, path: Optional[Union[str, bytes]] = None) -> Target:
    """Parse the contents of a loose ref record.

    Args:
      contents: Raw file contents
      path: Path the contents were read from, for error reporting
    Returns: The stored target
    Raises:
      Corrupt: if the record is neither a hex identifier nor a symref line
    """
    line = contents.split(b"\n", 1)[0].rstrip(b"\r")
    if line.startswith(SYMREF):
        try:
            return Symbolic(RefName(parse_symref_value(line)))
        except InvalidRefName as exc:
            raise Corrupt(f"invalid symbolic target: {exc.reason}", path, line) from exc
    if not valid_hexsha(line):
        raise Corrupt("not a reference record", path, line)
    try:
        return Direct(Identifier.parse(line))
    except InvalidIdentifier as exc:
        raise Corrupt("invalid identifier", path, line) from exc


def serialize_ref_value(target: Target) -> bytes:
    """Serialize a target as the contents of a loose ref record."""
    if isinstance(target, Direct):
        return target.id.hex + b"\n"
    elif isinstance(target, Symbolic):
        return SYMREF + bytes(target.name) + b"\n"
    raise TypeError(f"not a reference target: {target!r}")


TargetLike = Union[Direct, Symbolic, Identifier, RefName, bytes, str]


def parse_target(value: TargetLike) -> Target:
    """Coerce a user-supplied value into a target.

    Identifiers and ref names are wrapped; strings are parsed as an identifier
    when they are valid hex of a supported width and as a symbolic ref name
    otherwise. A ``ref: `` prefix is accepted on strings.
    """
    if isinstance(value, (Direct, Symbolic)):
        return value
    if isinstance(value, Identifier):
        return Direct(value)
    if isinstance(value, RefName):
        return Symbolic(value)
    if isinstance(value, str):
        value = value.encode("utf-8")
    if not isinstance(value, bytes):
        raise TypeError(f"not a reference target: {value!r}")
    if value.startswith(SYMREF):
        return Symbolic(RefName(parse_symref_value(value)))
    if valid_hexsha(value):
        return Direct(Identifier.parse(value))
    return Symbolic(RefName(value))
