# store.py -- The reference store
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

"""The reference store: lookup, listing and logged updates of references.

ReferenceStore ties together the loose records, the packed-refs file, the
resolver and the reflogs of one git directory. Every mutation is a
compare-and-swap on a single loose record, performed under that record's
lock, followed (still under the lock) by the matching reflog update.
"""

__all__ = [
    "ReferenceStore",
    "get_committer_identity",
]

import builtins
import os
import re
import socket
from collections.abc import Callable, Iterator
from contextlib import ExitStack
from typing import Optional, Union

from .config import Config, RefStoreConfig
from .errors import (
    AlreadyExists,
    NotFound,
    RefStoreError,
    RenameIncomplete,
    ResolutionCycle,
    ResolutionTooDeep,
)
from .log_utils import getLogger
from .loose import MISSING, Expectation, LooseRefStore, RefLogger
from .object_store import ObjectContainer, ObjectKind
from .objects import Identifier
from .packed_refs import PACKED_REFS_FILENAME, PackedRefsFile
from .reflog import Committer, Entry, Reflog, check_user_identity
from .refs import (
    LOCAL_TAG_PREFIX,
    Direct,
    Reference,
    RefName,
    Target,
    TargetLike,
    parse_target,
)
from .resolver import ReferenceResolver

logger = getLogger(__name__)

NameLike = Union[RefName, bytes, str]
RefFilter = Union[str, bytes, "re.Pattern[str]", "re.Pattern[bytes]", Callable[[RefName], bool]]


def _get_default_identity() -> tuple[str, str]:
    for var in ("LOGNAME", "USER", "LNAME", "USERNAME"):
        username = os.environ.get(var)
        if username:
            break
    else:
        username = None
    fullname = None
    try:
        import pwd
    except ImportError:
        pass
    else:
        try:
            entry = pwd.getpwuid(os.getuid())
        except KeyError:
            pass
        else:
            if entry.pw_gecos:
                fullname = entry.pw_gecos.split(",")[0]
            if username is None:
                username = entry.pw_name
    if username is None:
        username = "unknown"
    email = os.environ.get("EMAIL") or f"{username}@{socket.gethostname()}"
    return (fullname or username, email)


def get_committer_identity(config: Optional[Config] = None) -> tuple[str, str]:
    """Determine the name and email to record in reflog entries.

    ``GIT_COMMITTER_NAME`` and ``GIT_COMMITTER_EMAIL`` take precedence, then
    ``user.name`` and ``user.email`` from config, then the identity of the
    current user as known to the host system.
    """
    name = os.environ.get("GIT_COMMITTER_NAME")
    email = os.environ.get("GIT_COMMITTER_EMAIL")
    if config is not None:
        if name is None:
            try:
                name = config.get(b"user", b"name").decode("utf-8", "surrogateescape")
            except KeyError:
                pass
        if email is None:
            try:
                email = config.get(b"user", b"email").decode("utf-8", "surrogateescape")
            except KeyError:
                pass
    if name is None or email is None:
        default_name, default_email = _get_default_identity()
        name = default_name if name is None else name
        email = default_email if email is None else email
    if email.startswith("<") and email.endswith(">"):
        email = email[1:-1]
    return (name, email)


def _as_refname(name: NameLike) -> RefName:
    if isinstance(name, RefName):
        return name
    return RefName(name)


def _as_prefix(prefix: Optional[Union[bytes, str]]) -> Optional[bytes]:
    if isinstance(prefix, str):
        return prefix.encode("utf-8")
    return prefix


def _matcher(filter: Optional[RefFilter]) -> Callable[[RefName], bool]:
    if filter is None:
        return lambda name: True
    if isinstance(filter, str):
        filter = filter.encode("utf-8")
    if isinstance(filter, bytes):
        needle = filter
        return lambda name: needle in name
    if isinstance(filter, re.Pattern):
        pattern = filter
        if isinstance(pattern.pattern, str):
            return lambda name: pattern.search(str(name)) is not None
        return lambda name: pattern.search(name) is not None
    if callable(filter):
        return filter
    raise TypeError(f"unsupported reference filter: {filter!r}")


class ReferenceStore:
    """The references of a single git directory."""

    def __init__(
        self,
        path: Union[str, bytes, os.PathLike],
        config: Optional[Config] = None,
        object_store: Optional[ObjectContainer] = None,
        settings: Optional[RefStoreConfig] = None,
    ) -> None:
        """Initialize a ReferenceStore.

        Args:
          path: The git directory
          config: Repository configuration, for settings and the default
            committer identity
          object_store: Used to check direct targets when
            ``refstore.verifyTargets`` is set
          settings: Explicit settings; read from config when omitted
        """
        self.path = os.fsencode(os.fspath(path))
        self.config = config
        self.settings = settings or RefStoreConfig.from_config(config)
        self.object_store = object_store
        self.packed = PackedRefsFile(
            os.path.join(self.path, PACKED_REFS_FILENAME),
            timeout=self.settings.packed_refs_timeout,
            fsync=self.settings.fsync,
        )
        self.loose = LooseRefStore(
            self.path,
            self.packed,
            lock_timeout=self.settings.lock_timeout,
            fsync=self.settings.fsync,
            delete_packed=self.settings.delete_packed,
        )
        self.resolver = ReferenceResolver(
            self.loose, self.packed, max_depth=self.settings.max_symref_depth
        )
        self.reflog = Reflog(self.path, fsync=self.settings.fsync)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.path!r})"

    # Reads

    def lookup(self, name: NameLike) -> Optional[Reference]:
        """Return the stored value of name without following symrefs."""
        return self.resolver.lookup(_as_refname(name))

    def resolve(self, name: NameLike) -> Optional[Reference]:
        """Return the direct reference name ultimately points at.

        Returns: None when name is missing or its chain is dangling
        Raises:
          ResolutionCycle: if the chain loops
          ResolutionTooDeep: if the chain is longer than allowed
        """
        return self.resolver.resolve(_as_refname(name))

    def follow(self, name: NameLike) -> tuple[list[RefName], Optional[Reference]]:
        return self.resolver.follow(_as_refname(name))

    def exists(self, name: NameLike) -> bool:
        return self.resolver.exists(_as_refname(name))

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, (bytes, str)):
            return False
        return self.exists(name)

    def get_peeled(self, name: NameLike) -> Optional[Identifier]:
        """Return the peeled value recorded for a packed tag, if known."""
        return self.resolver.get_peeled(_as_refname(name))

    def list(
        self,
        filter: Optional[RefFilter] = None,
        prefix: Optional[Union[bytes, str]] = None,
    ) -> list[RefName]:
        """List reference names under ``refs/``.

        Args:
          filter: Substring (str or bytes), compiled regular expression
            (matched with search()) or predicate on the name
          prefix: Only names whose raw bytes start with prefix
        Returns: Matching names, loose and packed, sorted by raw bytes
        """
        match = _matcher(filter)
        names = self.resolver.list(_as_prefix(prefix))
        return sorted(name for name in names if match(name))

    def references(
        self,
        filter: Optional[RefFilter] = None,
        prefix: Optional[Union[bytes, str]] = None,
    ) -> Iterator[Reference]:
        """Iterate over references in the order of list().

        Names deleted while iterating are skipped.
        """
        for name in self.list(filter, prefix):
            ref = self.resolver.lookup(name)
            if ref is not None:
                yield ref

    def log(self, name: NameLike) -> builtins.list[Entry]:
        """Return the reflog of name, oldest entry first."""
        return self.reflog.read(_as_refname(name))

    # Mutations

    def _committer(self, committer: Optional[Committer]) -> Committer:
        if committer is None:
            committer = Committer.now(*get_committer_identity(self.config))
        # Rejected before any record is written.
        check_user_identity(committer)
        return committer

    def _target_id(self, target: Optional[Target]) -> Optional[Identifier]:
        if target is None:
            return None
        if isinstance(target, Direct):
            return target.id
        try:
            return self.resolver.resolve_id(target.name)
        except (ResolutionCycle, ResolutionTooDeep):
            return None

    def _log_entry(
        self,
        name: RefName,
        old: Optional[Target],
        new: Optional[Target],
        committer: Committer,
        message: Optional[str],
    ) -> None:
        old_id = self._target_id(old)
        new_id = self._target_id(new)
        if new_id is None:
            new_id = Identifier.zero(old_id.object_format) if old_id else Identifier.zero()
        self.reflog.append(name, old_id, new_id, committer, message)

    def _log_update(
        self, committer: Optional[Committer], message: Optional[str]
    ) -> Optional[RefLogger]:
        if not self.settings.log_all_ref_updates:
            return None
        who = self._committer(committer)

        def log_update(name: RefName, old: Optional[Target], new: Optional[Target]) -> None:
            self._log_entry(name, old, new, who, message)

        return log_update

    def _verify_target(self, name: RefName, target: Target) -> None:
        if not self.settings.verify_targets or self.object_store is None:
            return
        if isinstance(target, Direct) and not self.object_store.identifier_exists(target.id):
            raise NotFound(name, f"target object {target.id} does not exist")

    def create(
        self,
        name: NameLike,
        target: TargetLike,
        force: bool = False,
        committer: Optional[Committer] = None,
        message: Optional[str] = None,
    ) -> Reference:
        """Create a reference.

        Args:
          name: Name of the new reference
          target: Its value: an identifier, a ref name, or a string parsed as
            one of the two
          force: Overwrite an existing reference instead of failing
          committer: Who to record in the reflog; the default identity if None
          message: Reflog message
        Returns: The created reference
        Raises:
          AlreadyExists: if name exists and force is not set
          InvalidUserIdentity: if the committer can not be logged
        """
        refname = _as_refname(name)
        value = parse_target(target)
        self._verify_target(refname, value)
        expected: Expectation = None if force else MISSING
        self.loose.write(refname, value, expected, self._log_update(committer, message))
        return Reference(refname, value)

    def set_target(
        self,
        name: NameLike,
        target: TargetLike,
        expected_old: Optional[TargetLike] = None,
        committer: Optional[Committer] = None,
        message: Optional[str] = None,
    ) -> Reference:
        """Point an existing reference somewhere else.

        Args:
          name: Name of the reference
          target: The new value
          expected_old: The value the caller last saw; defaults to the
            value read just before the update
        Raises:
          NotFound: if name does not exist
          Conflict: if the value changed from expected_old
        """
        refname = _as_refname(name)
        value = parse_target(target)
        if expected_old is None:
            current = self.resolver.lookup(refname)
            if current is None:
                raise NotFound(refname)
            expected: Expectation = current.target
        else:
            expected = parse_target(expected_old)
        self._verify_target(refname, value)
        self.loose.write(refname, value, expected, self._log_update(committer, message))
        return Reference(refname, value)

    def delete(
        self, name: NameLike, expected_old: Optional[TargetLike] = None
    ) -> Target:
        """Delete a reference together with its reflog.

        Args:
          name: Name of the reference
          expected_old: The value the caller last saw, or None to delete
            whatever is there
        Returns: The value the reference had
        Raises:
          NotFound: if there is no such reference
          Conflict: if the value differs from expected_old
          PackedRefDeleteRejected: if the name is packed and packed deletes
            are rejected
        """
        refname = _as_refname(name)
        expected = parse_target(expected_old) if expected_old is not None else None

        def drop_log(name: RefName, old: Optional[Target], new: Optional[Target]) -> None:
            self.reflog.delete(name)

        return self.loose.delete(refname, expected, drop_log)

    def rename(
        self,
        old_name: NameLike,
        new_name: NameLike,
        force: bool = False,
        committer: Optional[Committer] = None,
        message: Optional[str] = None,
    ) -> Reference:
        """Rename a reference, carrying its reflog along.

        The new name is created first, then the old one deleted. If the
        delete fails, the new name stays and RenameIncomplete is raised.

        Raises:
          NotFound: if old_name does not exist
          AlreadyExists: if new_name exists and force is not set
          RenameIncomplete: if old_name could not be removed
        """
        old = _as_refname(old_name)
        new = _as_refname(new_name)
        ref = self.resolver.lookup(old)
        if ref is None:
            raise NotFound(old)
        if old == new:
            if not force:
                raise AlreadyExists(new)
            return ref
        if message is None:
            message = f"renamed {old} to {new}"
        who = self._committer(committer)

        def carry_log(name: RefName, previous: Optional[Target], target: Optional[Target]) -> None:
            self.reflog.copy(old, new)
            if self.settings.log_all_ref_updates:
                ident = self._target_id(target)
                if ident is not None:
                    self.reflog.append(new, ident, ident, who, message)

        expected: Expectation = None if force else MISSING
        self.loose.write(new, ref.target, expected, carry_log)
        logger.debug("renamed %r to %r, removing old name", old, new)
        try:
            self.delete(old, ref.target)
        except RefStoreError as exc:
            raise RenameIncomplete(old, new, exc) from exc
        return Reference(new, ref.target)

    def log_append(
        self,
        name: NameLike,
        committer: Optional[Committer] = None,
        message: Optional[str] = None,
    ) -> Entry:
        """Append an entry for the current value of name to its reflog.

        The entry's old value is the new value of the last entry, or the
        zero identifier if the log is empty.

        Raises:
          NotFound: if name does not exist
        """
        refname = _as_refname(name)
        who = self._committer(committer)
        with self.loose.lock(refname):
            ref = self.resolver.lookup(refname)
            if ref is None:
                raise NotFound(refname)
            new = self._target_id(ref.target) or Identifier.zero()
            entries = self.reflog.read(refname)
            old = entries[-1].new if entries else Identifier.zero(new.object_format)
            return self.reflog.append(refname, old, new, who, message)

    # Maintenance

    def _known_peeled(
        self, changes: dict[RefName, Identifier]
    ) -> dict[RefName, Optional[Identifier]]:
        # Tag objects are not read, so only non-tags have a known peeled value.
        known: dict[RefName, Optional[Identifier]] = {}
        if self.object_store is None:
            return known
        for name, identifier in changes.items():
            try:
                kind = self.object_store.identifier_kind(identifier)
            except KeyError:
                continue
            if kind is not ObjectKind.TAG:
                known[name] = None
        return known

    def pack_refs(self, all: bool = False) -> builtins.list[RefName]:
        """Move loose direct references into packed-refs.

        Args:
          all: Pack every reference under ``refs/``; by default only tags
        Returns: The names that were packed
        """
        candidates = sorted(
            name
            for name in self.loose.list()
            if all or name.startswith(LOCAL_TAG_PREFIX)
        )
        packed: list[RefName] = []
        with ExitStack() as stack:
            for name in candidates:
                stack.enter_context(self.loose.lock(name))
            stack.enter_context(self.packed.locked())
            changes: dict[RefName, Identifier] = {}
            for name in candidates:
                ref = self.loose.read(name)
                if ref is not None and isinstance(ref.target, Direct):
                    changes[name] = ref.target.id
            if changes:
                self.packed.invalidate()
                table = self.packed.get().updated(changes, self._known_peeled(changes))
                self.packed.write(table)
                for name in changes:
                    self.loose.unlink(name)
                    packed.append(name)
        for name in packed:
            self.loose.prune_parents(name)
        logger.debug("packed %d references", len(packed))
        return packed

