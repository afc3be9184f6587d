# config.py -- Reading and writing repository configuration
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

"""Reading and writing git-style configuration files.

Supports sections with optional quoted subsections, ``#`` and ``;``
comments, quoted values with escapes and backslash line continuations.
Section and variable names are case-insensitive; subsection names are not.

The settings that govern the reference store are collected in
RefStoreConfig.
"""

__all__ = [
    "Config",
    "ConfigFile",
    "RefStoreConfig",
]

import os
from collections.abc import Iterator
from dataclasses import dataclass
from io import BytesIO
from typing import IO, Optional, Union

from .file import atomic_write
from .log_utils import getLogger

logger = getLogger(__name__)

Name = bytes
NameLike = Union[bytes, str]
Section = tuple[bytes, ...]
SectionLike = Union[bytes, str, tuple[Union[bytes, str], ...]]
Value = bytes
ValueLike = Union[bytes, str]


def _lower_section(section: Section) -> Section:
    # Only the section name folds case; subsections are compared exactly.
    return (section[0].lower(), *section[1:])


class Config:
    """A git configuration."""

    def get(self, section: SectionLike, name: NameLike) -> Value:
        """Retrieve the contents of a configuration setting.

        Args:
          section: Tuple with section name and optional subsection name
          name: Variable name
        Returns:
          Contents of the setting
        Raises:
          KeyError: if the value is not set
        """
        raise NotImplementedError(self.get)

    def set(self, section: SectionLike, name: NameLike, value: Union[ValueLike, bool, int]) -> None:
        raise NotImplementedError(self.set)

    def sections(self) -> Iterator[Section]:
        raise NotImplementedError(self.sections)

    def get_boolean(
        self, section: SectionLike, name: NameLike, default: Optional[bool] = None
    ) -> Optional[bool]:
        """Retrieve a configuration setting as boolean.

        Accepts the spellings git does: true/yes/on/1 and false/no/off/0.
        """
        try:
            value = self.get(section, name)
        except KeyError:
            return default
        lowered = value.lower()
        if lowered in (b"true", b"yes", b"on", b"1"):
            return True
        elif lowered in (b"false", b"no", b"off", b"0", b""):
            return False
        raise ValueError(f"not a valid boolean string: {value!r}")

    def get_int(
        self, section: SectionLike, name: NameLike, default: Optional[int] = None
    ) -> Optional[int]:
        """Retrieve a configuration setting as an integer.

        A ``k``, ``m`` or ``g`` suffix scales by 1024, 1024**2 or 1024**3.
        """
        try:
            value = self.get(section, name).strip()
        except KeyError:
            return default
        scale = 1
        suffix = value[-1:].lower()
        if suffix in (b"k", b"m", b"g"):
            scale = 1024 ** (b"kmg".index(suffix) + 1)
            value = value[:-1]
        try:
            return int(value) * scale
        except ValueError as exc:
            raise ValueError(f"not a valid integer: {value!r}") from exc


class ConfigDict(Config):
    """Git configuration stored in a dictionary."""

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding
        # lowered section -> (section as written, {lowered name: (name, value)})
        self._values: dict[Section, tuple[Section, dict[Name, tuple[Name, Value]]]] = {}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._values!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, self.__class__) and other._values == self._values

    def _check_section_and_name(
        self, section: SectionLike, name: NameLike
    ) -> tuple[Section, Name]:
        if not isinstance(section, tuple):
            section = (section,)
        checked = tuple(
            s if isinstance(s, bytes) else s.encode(self.encoding) for s in section
        )
        if not isinstance(name, bytes):
            name = name.encode(self.encoding)
        return checked, name

    def _section(self, section: Section) -> dict[Name, tuple[Name, Value]]:
        key = _lower_section(section)
        if key not in self._values:
            self._values[key] = (section, {})
        return self._values[key][1]

    def get(self, section: SectionLike, name: NameLike) -> Value:
        section, name = self._check_section_and_name(section, name)
        try:
            return self._values[_lower_section(section)][1][name.lower()][1]
        except KeyError:
            if len(section) > 1:
                return self.get(section[:1], name)
            raise

    def set(self, section: SectionLike, name: NameLike, value: Union[ValueLike, bool, int]) -> None:
        """Set a configuration value, replacing any previous value."""
        section, name = self._check_section_and_name(section, name)
        if isinstance(value, bool):
            value = b"true" if value else b"false"
        elif isinstance(value, int):
            value = str(value).encode("ascii")
        elif not isinstance(value, bytes):
            value = value.encode(self.encoding)
        self._section(section)[name.lower()] = (name, value)

    def remove(self, section: SectionLike, name: NameLike) -> None:
        """Remove a configuration setting.

        Raises:
          KeyError: If the section or name doesn't exist
        """
        section, name = self._check_section_and_name(section, name)
        del self._values[_lower_section(section)][1][name.lower()]

    def items(self, section: SectionLike) -> Iterator[tuple[Name, Value]]:
        section, _ = self._check_section_and_name(section, b"")
        entry = self._values.get(_lower_section(section))
        if entry is None:
            return iter([])
        return iter(entry[1].values())

    def sections(self) -> Iterator[Section]:
        return iter(original for original, _ in self._values.values())


_ESCAPE_TABLE = {
    ord(b"\\"): ord(b"\\"),
    ord(b'"'): ord(b'"'),
    ord(b"n"): ord(b"\n"),
    ord(b"t"): ord(b"\t"),
    ord(b"b"): ord(b"\b"),
}
_COMMENT_CHARS = (ord(b"#"), ord(b";"))
_WHITESPACE_CHARS = (ord(b"\t"), ord(b" "))


def _parse_string(value: bytes) -> bytes:
    """Unquote and unescape a raw value, dropping a trailing comment."""
    data = value.strip()
    ret = bytearray()
    pending = bytearray()
    in_quotes = False
    i = 0
    while i < len(data):
        c = data[i]
        if c == ord(b"\\") and i + 1 < len(data) and data[i + 1] in _ESCAPE_TABLE:
            ret.extend(pending)
            pending.clear()
            ret.append(_ESCAPE_TABLE[data[i + 1]])
            i += 2
            continue
        if c == ord(b'"'):
            in_quotes = not in_quotes
        elif c in _COMMENT_CHARS and not in_quotes:
            break
        elif c in _WHITESPACE_CHARS and not in_quotes:
            # Inner whitespace is kept, trailing whitespace is not.
            pending.append(c)
        else:
            ret.extend(pending)
            pending.clear()
            ret.append(c)
        i += 1
    if in_quotes:
        raise ValueError("missing end quote")
    return bytes(ret)


def _escape_value(value: bytes) -> bytes:
    for raw, escaped in (
        (b"\\", b"\\\\"),
        (b"\n", b"\\n"),
        (b"\t", b"\\t"),
        (b'"', b'\\"'),
    ):
        value = value.replace(raw, escaped)
    return value


def _format_string(value: bytes) -> bytes:
    if value[:1] in (b" ", b"\t") or value[-1:] in (b" ", b"\t") or b"#" in value or b";" in value:
        return b'"' + _escape_value(value) + b'"'
    return _escape_value(value)


def _check_variable_name(name: bytes) -> bool:
    return bool(name) and all(c.isalnum() or c == "-" for c in name.decode("latin-1"))


def _check_section_name(name: bytes) -> bool:
    return bool(name) and all(c.isalnum() or c in "-." for c in name.decode("latin-1"))


def _strip_comments(line: bytes) -> bytes:
    string_open = False
    for i, c in enumerate(line):
        if c == ord(b'"'):
            string_open = not string_open
        elif not string_open and c in _COMMENT_CHARS:
            return line[:i]
    return line


def _continues(value: bytes) -> bool:
    """Return whether a raw value ends in an unescaped backslash."""
    content = value.rstrip(b"\r\n")
    if content == value:
        return False
    return (len(content) - len(content.rstrip(b"\\"))) % 2 == 1


def _parse_section_header_line(line: bytes) -> tuple[Section, bytes]:
    line = _strip_comments(line).rstrip()
    end = line.find(b"]")
    if b'"' in line:
        end = line.find(b"]", line.rfind(b'"'))
    if end == -1:
        raise ValueError("expected trailing ]")
    header, rest = line[1:end], line[end + 1 :]
    parts = header.split(b" ", 1)
    if not _check_section_name(parts[0]):
        raise ValueError(f"invalid section name {parts[0]!r}")
    if len(parts) == 2:
        subsection = parts[1].strip()
        if not (len(subsection) >= 2 and subsection[:1] == b'"' and subsection[-1:] == b'"'):
            raise ValueError(f"invalid subsection {parts[1]!r}")
        return (parts[0], subsection[1:-1].replace(b'\\"', b'"').replace(b"\\\\", b"\\")), rest
    # Deprecated [section.subsection] syntax
    dotted = parts[0].split(b".", 1)
    return tuple(dotted), rest


class ConfigFile(ConfigDict):
    """A git configuration file, like .git/config."""

    def __init__(self, encoding: str = "utf-8") -> None:
        super().__init__(encoding=encoding)
        self.path: Optional[str] = None

    @classmethod
    def from_file(cls, f: IO[bytes]) -> "ConfigFile":
        """Read configuration from a file-like object.

        Raises:
          ValueError: if the file is malformed
        """
        ret = cls()
        section: Optional[Section] = None
        setting: Optional[bytes] = None
        continuation = b""
        for lineno, line in enumerate(f.readlines()):
            if lineno == 0 and line.startswith(b"\xef\xbb\xbf"):
                line = line[3:]
            if setting is not None:
                if _continues(line):
                    continuation += line.rstrip(b"\r\n")[:-1]
                    continue
                assert section is not None
                ret.set(section, setting, _parse_string(continuation + line))
                setting = None
                continue
            line = line.lstrip()
            if line[:1] == b"[":
                section, line = _parse_section_header_line(line)
                ret._section(section)
            if _strip_comments(line).strip() == b"":
                continue
            if section is None:
                raise ValueError(f"setting {line!r} without section")
            if b"=" in line:
                name, value = line.split(b"=", 1)
            else:
                # A bare name is shorthand for "name = true".
                name, value = line, b"true"
            name = name.strip()
            if not _check_variable_name(name):
                raise ValueError(f"invalid variable name {name!r}")
            if _continues(value):
                setting = name
                continuation = value.rstrip(b"\r\n")[:-1]
            else:
                ret.set(section, name, _parse_string(value))
        if setting is not None:
            assert section is not None
            ret.set(section, setting, _parse_string(continuation))
        return ret

    @classmethod
    def from_path(cls, path: Union[str, os.PathLike]) -> "ConfigFile":
        """Read configuration from a file on disk."""
        with open(path, "rb") as f:
            ret = cls.from_file(f)
        ret.path = os.fspath(path)
        return ret

    def write_to_file(self, f: IO[bytes]) -> None:
        """Write configuration to a file-like object."""
        for section, values in self._values.values():
            if len(section) == 1:
                f.write(b"[" + section[0] + b"]\n")
            else:
                subsection = section[1].replace(b"\\", b"\\\\").replace(b'"', b'\\"')
                f.write(b"[" + section[0] + b' "' + subsection + b'"]\n')
            for name, value in values.values():
                f.write(b"\t" + name + b" = " + _format_string(value) + b"\n")

    def write_to_path(self, path: Optional[Union[str, os.PathLike]] = None) -> None:
        """Write configuration to a file on disk, replacing it atomically."""
        if path is None:
            if self.path is None:
                raise ValueError("No path specified and no default path available")
            path = self.path
        buf = BytesIO()
        self.write_to_file(buf)
        atomic_write(path, buf.getvalue())


def _timeout_from_ms(ms: int) -> Optional[float]:
    # Negative means wait indefinitely.
    if ms < 0:
        return None
    return ms / 1000.0


@dataclass
class RefStoreConfig:
    """Settings of a reference store.

    Timeouts are in seconds; None waits indefinitely and 0 fails at once.
    """

    lock_timeout: Optional[float] = 0.1
    packed_refs_timeout: Optional[float] = 1.0
    log_all_ref_updates: bool = True
    fsync: bool = True
    delete_packed: str = "rewrite"
    verify_targets: bool = False
    max_symref_depth: int = 5

    @classmethod
    def from_config(cls, config: Optional[Config]) -> "RefStoreConfig":
        """Collect the reference store settings from a configuration.

        Missing settings keep their defaults.

        Raises:
          ValueError: if a setting has an invalid value
        """
        ret = cls()
        if config is None:
            return ret
        lock_ms = config.get_int(b"core", b"filesRefLockTimeout")
        if lock_ms is not None:
            ret.lock_timeout = _timeout_from_ms(lock_ms)
        packed_ms = config.get_int(b"core", b"packedRefsTimeout")
        if packed_ms is not None:
            ret.packed_refs_timeout = _timeout_from_ms(packed_ms)
        try:
            log_all = config.get(b"core", b"logAllRefUpdates")
        except KeyError:
            pass
        else:
            # "always" also logs refs outside the usual namespaces.
            ret.log_all_ref_updates = log_all.lower() == b"always" or bool(
                config.get_boolean(b"core", b"logAllRefUpdates")
            )
        ret.fsync = bool(config.get_boolean(b"core", b"fsyncRefFiles", ret.fsync))
        try:
            policy = config.get(b"refstore", b"deletePacked").decode("ascii").lower()
        except KeyError:
            pass
        else:
            if policy not in ("rewrite", "reject"):
                raise ValueError(f"invalid refstore.deletePacked: {policy!r}")
            ret.delete_packed = policy
        ret.verify_targets = bool(
            config.get_boolean(b"refstore", b"verifyTargets", ret.verify_targets)
        )
        depth = config.get_int(b"refstore", b"maxSymrefDepth")
        if depth is not None:
            if depth < 0:
                raise ValueError(f"invalid refstore.maxSymrefDepth: {depth}")
            ret.max_symref_depth = depth
        logger.debug("reference store settings: %r", ret)
        return ret
