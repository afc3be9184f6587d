# objects.py -- Object identifiers
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

"""Object identifiers and small helpers for the text formats that carry them."""

import binascii
import functools
from typing import Any, Optional, Union

from .errors import InvalidIdentifier
from .object_format import (
    DEFAULT_OBJECT_FORMAT,
    ObjectFormat,
    object_format_for_hex_length,
)

ZERO_SHA = b"0" * 40

_HEX_DIGITS = frozenset(b"0123456789abcdefABCDEF")


def valid_hexsha(hex: Union[bytes, str], object_format: Optional[ObjectFormat] = None) -> bool:
    """Check whether a string is a well-formed hex identifier.

    Args:
      hex: Candidate hex string
      object_format: Required format; if None any supported width is accepted
    """
    if isinstance(hex, str):
        try:
            hex = hex.encode("ascii")
        except UnicodeEncodeError:
            return False
    if object_format is not None:
        if len(hex) != object_format.hex_length:
            return False
    elif object_format_for_hex_length(len(hex)) is None:
        return False
    return all(c in _HEX_DIGITS for c in hex)


def hex_to_sha(hex: bytes) -> bytes:
    """Takes a hex sha and returns a binary sha."""
    try:
        return binascii.unhexlify(hex)
    except (TypeError, binascii.Error) as exc:
        raise InvalidIdentifier(hex, str(exc)) from exc


def sha_to_hex(sha: bytes) -> bytes:
    """Takes a binary sha and returns its lowercase hex form."""
    return binascii.hexlify(sha)


@functools.total_ordering
class Identifier:
    """An immutable, fixed-width object identifier.

    Equality and ordering are on the raw digest bytes. The canonical text form
    is lowercase hex.
    """

    __slots__ = ("_sha",)

    _sha: bytes

    def __init__(self, sha: bytes) -> None:
        """Create an identifier from a binary digest.

        Args:
          sha: Raw digest (20 bytes for SHA-1, 32 bytes for SHA-256)
        """
        if not isinstance(sha, bytes):
            raise TypeError(f"expected bytes, got {type(sha).__name__}")
        if object_format_for_hex_length(len(sha) * 2) is None:
            raise InvalidIdentifier(
                sha_to_hex(sha), f"unsupported digest length {len(sha)}"
            )
        object.__setattr__(self, "_sha", sha)

    @classmethod
    def parse(
        cls,
        hex: Union[bytes, str],
        object_format: Optional[ObjectFormat] = None,
    ) -> "Identifier":
        """Parse a hex identifier.

        Args:
          hex: Hex string, either case
          object_format: Required format; if None, any supported width
        Raises:
          InvalidIdentifier: if the length or character set is wrong
        """
        if isinstance(hex, str):
            try:
                hexb = hex.encode("ascii")
            except UnicodeEncodeError as exc:
                raise InvalidIdentifier(hex, "non-ASCII characters") from exc
        elif isinstance(hex, bytes):
            hexb = hex
        else:
            raise TypeError(f"expected bytes or str, got {type(hex).__name__}")
        if not valid_hexsha(hexb, object_format):
            if object_format is not None and len(hexb) != object_format.hex_length:
                reason = f"expected {object_format.hex_length} hex digits"
            elif object_format_for_hex_length(len(hexb)) is None:
                reason = f"unsupported length {len(hexb)}"
            else:
                reason = "not a hex string"
            raise InvalidIdentifier(hex, reason)
        return cls(hex_to_sha(hexb))

    from_hex = parse

    @classmethod
    def zero(cls, object_format: ObjectFormat = DEFAULT_OBJECT_FORMAT) -> "Identifier":
        """Return the all-zero sentinel meaning "no prior value"."""
        return cls(object_format.zero_oid_bin)

    @property
    def raw(self) -> bytes:
        """The binary digest."""
        return self._sha

    @property
    def hex(self) -> bytes:
        """The canonical lowercase hex form, as ASCII bytes."""
        return sha_to_hex(self._sha)

    @property
    def object_format(self) -> ObjectFormat:
        fmt = object_format_for_hex_length(len(self._sha) * 2)
        assert fmt is not None
        return fmt

    def is_zero(self) -> bool:
        """Check whether this is the all-zero sentinel."""
        return self._sha.count(0) == len(self._sha)

    def __setattr__(self, name: str, value: Any) -> None:  # noqa: ANN401
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Identifier):
            return NotImplemented
        return self._sha == other._sha

    def __lt__(self, other: "Identifier") -> bool:
        if not isinstance(other, Identifier):
            return NotImplemented
        return self._sha < other._sha

    def __hash__(self) -> int:
        return hash(self._sha)

    def __str__(self) -> str:
        return self.hex.decode("ascii")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({str(self)!r})"

    def __reduce__(self) -> tuple[type, tuple[bytes]]:
        return (self.__class__, (self._sha,))


def parse_timezone(text: bytes) -> int:
    """Parse a timezone text fragment (e.g. b'+0100').

    Args:
      text: Text to parse.
    Returns: Offset from UTC in seconds
    """
    # cgit parses the first character as the sign, and the rest
    # as an integer (using strtol), which could also be negative.
    # We do the same for compatibility. See #697828.
    if text[:1] not in b"+-":
        raise ValueError(f"Timezone must start with + or - ({text!r})")
    sign = text[:1]
    offset = int(text[1:])
    if sign == b"-":
        offset = -offset
    signum = (offset < 0) and -1 or 1
    offset = abs(offset)
    hours = int(offset / 100)
    minutes = offset % 100
    return signum * (hours * 3600 + minutes * 60)


def format_timezone(offset: int) -> bytes:
    """Format a timezone for reflog and commit lines.

    Args:
      offset: Timezone offset as seconds difference to UTC
    """
    if offset % 60 != 0:
        raise ValueError("Unable to handle non-minute offset.")
    if offset < 0:
        offset = -offset
        sign = "-"
    else:
        sign = "+"
    return ("%c%02d%02d" % (sign, offset / 3600, (offset / 60) % 60)).encode("ascii")  # noqa: UP031
