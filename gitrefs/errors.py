# errors.py -- errors for gitrefs
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

"""Exception classes raised by the reference store."""

import os
from collections.abc import Sequence
from typing import Optional, Union


def _display(value: object) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", "replace")
    return str(value)


class RefStoreError(Exception):
    """Base class for all reference store errors."""


class InvalidRefName(RefStoreError, ValueError):
    """Indicates an invalid reference name."""

    def __init__(self, name: Union[bytes, str], reason: Optional[str] = None) -> None:
        """Initialize an InvalidRefName exception.

        Args:
            name: The rejected name.
            reason: Optional description of the violated rule.
        """
        self.name = name
        self.reason = reason
        message = f"invalid reference name {_display(name)!r}"
        if reason is not None:
            message += f": {reason}"
        super().__init__(message)


class InvalidIdentifier(RefStoreError, ValueError):
    """Indicates a malformed object identifier."""

    def __init__(self, value: Union[bytes, str], reason: Optional[str] = None) -> None:
        """Initialize an InvalidIdentifier exception.

        Args:
            value: The rejected hex string.
            reason: Optional description of the problem.
        """
        self.value = value
        self.reason = reason
        message = f"invalid object identifier {_display(value)!r}"
        if reason is not None:
            message += f": {reason}"
        super().__init__(message)


class InvalidUserIdentity(RefStoreError, ValueError):
    """User identity can not be written as ``Name <email>``."""

    def __init__(self, identity: str, reason: str) -> None:
        """Initialize an InvalidUserIdentity exception.

        Args:
            identity: The rejected identity.
            reason: Description of the problem.
        """
        self.identity = identity
        self.reason = reason
        super().__init__(f"invalid user identity {identity!r}: {reason}")


class NotFound(RefStoreError):
    """A reference (or target object) does not exist."""

    def __init__(self, name: bytes, detail: Optional[str] = None) -> None:
        self.name = name
        message = f"reference {_display(name)!r} not found"
        if detail is not None:
            message = f"{_display(name)!r}: {detail}"
        super().__init__(message)


class AlreadyExists(RefStoreError):
    """A reference that must not exist already does."""

    def __init__(self, name: bytes, conflicting: Optional[bytes] = None) -> None:
        """Initialize an AlreadyExists exception.

        Args:
            name: The name that was to be created.
            conflicting: The existing name blocking the creation, if it is not
                ``name`` itself (directory/file conflicts).
        """
        self.name = name
        self.conflicting = conflicting
        if conflicting is None or conflicting == name:
            message = f"reference {_display(name)!r} already exists"
        else:
            message = (
                f"cannot create {_display(name)!r}: "
                f"{_display(conflicting)!r} exists"
            )
        super().__init__(message)


class Conflict(RefStoreError):
    """Compare-and-swap failed; the current value is not the expected one."""

    def __init__(self, name: bytes, expected: object, actual: object) -> None:
        """Initialize a Conflict exception.

        Args:
            name: Name of the reference.
            expected: The value the caller expected.
            actual: The value found on disk while holding the lock.
        """
        self.name = name
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"reference {_display(name)!r} is at {actual!r}, expected {expected!r}"
        )


class PackedRefDeleteRejected(Conflict):
    """A packed-only reference may not be deleted under the current policy."""

    def __init__(self, name: bytes, actual: object) -> None:
        super().__init__(name, None, actual)

    def __str__(self) -> str:
        return (
            f"reference {_display(self.name)!r} only exists in packed-refs; "
            "run pack-refs or set refstore.deletePacked=rewrite"
        )


class FileFormatException(RefStoreError):
    """Base class for exceptions relating to reading on-disk formats."""


class Corrupt(FileFormatException):
    """An on-disk record could not be parsed."""

    def __init__(
        self,
        detail: str,
        path: Optional[Union[str, bytes]] = None,
        line: Optional[bytes] = None,
    ) -> None:
        """Initialize a Corrupt exception.

        Args:
            detail: Description of the problem.
            path: File the record was read from, if known.
            line: The offending raw line, if known.
        """
        self.detail = detail
        self.path = path
        self.line = line
        message = detail
        if path is not None:
            message = f"{_display(os.fsdecode(path))}: {detail}"
        if line is not None:
            message += f" ({line!r})"
        super().__init__(message)


class PackedRefsException(Corrupt):
    """Indicates an error parsing a packed-refs file."""


class LockTimeout(RefStoreError):
    """The lock for a reference could not be acquired in time."""

    def __init__(self, name: bytes, lockfilename: Union[str, bytes]) -> None:
        self.name = name
        self.lockfilename = lockfilename
        super().__init__(
            f"unable to lock {_display(name)!r}: "
            f"{_display(os.fsdecode(lockfilename))} exists"
        )


class ResolutionCycle(RefStoreError):
    """There is a loop between one or more symbolic references."""

    def __init__(self, name: bytes, chain: Sequence[bytes]) -> None:
        self.name = name
        self.chain = list(chain)
        super().__init__(
            "symbolic reference loop: "
            + " -> ".join(_display(n) for n in self.chain)
        )


class ResolutionTooDeep(RefStoreError):
    """A symbolic reference chain exceeds the configured depth."""

    def __init__(self, name: bytes, depth: int) -> None:
        self.name = name
        self.depth = depth
        super().__init__(
            f"symbolic reference {_display(name)!r} nested deeper than {depth}"
        )


class IoFailure(RefStoreError):
    """The persistence layer failed.

    The original exception is available as ``error`` and ``__cause__``.
    """

    def __init__(self, path: Union[str, bytes], error: OSError) -> None:
        self.path = path
        self.error = error
        super().__init__(f"{_display(os.fsdecode(path))}: {error.strerror or error}")


class RenameIncomplete(RefStoreError):
    """A rename created the new name but could not remove the old one."""

    def __init__(self, old_name: bytes, new_name: bytes, reason: Exception) -> None:
        """Initialize a RenameIncomplete exception.

        Args:
            old_name: Name that should have been removed.
            new_name: Name that was created.
            reason: The error raised by the delete step.
        """
        self.old_name = old_name
        self.new_name = new_name
        self.reason = reason
        super().__init__(
            f"renamed {_display(old_name)!r} to {_display(new_name)!r} but "
            f"could not remove the old name: {reason}"
        )


class NotGitRepository(Exception):
    """Indicates that no Git repository was found."""

    def __init__(self, *args: object, **kwargs: object) -> None:
        """Initialize a NotGitRepository exception.

        Args:
            *args: Error message and additional positional arguments.
            **kwargs: Additional keyword arguments.
        """
        Exception.__init__(self, *args, **kwargs)
