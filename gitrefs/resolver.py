# resolver.py -- Lookup and symbolic reference resolution
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

"""Resolving reference names to values, loose records first."""

from collections.abc import Iterator
from typing import Optional

from .errors import ResolutionCycle, ResolutionTooDeep
from .log_utils import getLogger
from .loose import LooseRefStore
from .objects import Identifier
from .packed_refs import PackedRefsFile
from .refs import Direct, Reference, RefName, Symbolic

logger = getLogger(__name__)

DEFAULT_MAX_DEPTH = 5


class ReferenceResolver:
    """Combines the loose store and the packed table for reads.

    A loose record shadows a packed entry of the same name.
    """

    def __init__(
        self,
        loose: LooseRefStore,
        packed: Optional[PackedRefsFile] = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        """Initialize a ReferenceResolver.

        Args:
          loose: The loose reference store
          packed: The packed-refs file, if any
          max_depth: Maximum number of symbolic hops resolve() follows
        """
        self.loose = loose
        self.packed = packed
        self.max_depth = max_depth

    def lookup(self, name: RefName) -> Optional[Reference]:
        """Return the stored, unresolved reference for name, or None."""
        ref = self.loose.read(name)
        if ref is not None:
            return ref
        if self.packed is not None:
            identifier = self.packed.get().lookup(name)
            if identifier is not None:
                return Reference(name, Direct(identifier))
        return None

    def follow(self, name: RefName) -> tuple[list[RefName], Optional[Reference]]:
        """Follow a reference name through its symbolic chain.

        Args:
          name: Name to start from
        Returns: a tuple of (names visited, terminal direct reference). The
            terminal reference is None when the chain ends at a name that
            does not exist.
        Raises:
          ResolutionCycle: if a name repeats along the chain
          ResolutionTooDeep: if the chain has more than max_depth hops
        """
        chain = [name]
        hops = 0
        while True:
            ref = self.lookup(chain[-1])
            if ref is None:
                return chain, None
            if isinstance(ref.target, Direct):
                return chain, ref
            assert isinstance(ref.target, Symbolic)
            target = ref.target.name
            if target in chain:
                raise ResolutionCycle(name, chain + [target])
            hops += 1
            if hops > self.max_depth:
                logger.debug("giving up on %r after %d hops", name, self.max_depth)
                raise ResolutionTooDeep(name, self.max_depth)
            chain.append(target)

    def resolve(self, name: RefName) -> Optional[Reference]:
        """Resolve name to the direct reference at the end of its chain.

        Returns: The terminal reference, or None if name is missing or
            dangling
        """
        return self.follow(name)[1]

    def resolve_id(self, name: RefName) -> Optional[Identifier]:
        ref = self.resolve(name)
        if ref is None:
            return None
        assert isinstance(ref.target, Direct)
        return ref.target.id

    def exists(self, name: RefName) -> bool:
        """Return whether name has a loose or packed record.

        A dangling symbolic reference exists.
        """
        return self.lookup(name) is not None

    def get_peeled(self, name: RefName) -> Optional[Identifier]:
        """Return the peeled value recorded in packed-refs for name.

        Only available while name has no loose record, since a loose record
        supersedes whatever was packed.
        """
        if self.packed is None or self.loose.read(name) is not None:
            return None
        return self.packed.get().get_peeled(name)

    def list(self, prefix: Optional[bytes] = None) -> Iterator[RefName]:
        """Iterate over loose and packed names, each name once.

        Order is unspecified.
        """
        seen = set()
        for name in self.loose.list(prefix):
            seen.add(name)
            yield name
        if self.packed is not None:
            for name in self.packed.get().list(prefix):
                if name not in seen:
                    yield name
