# object_store.py -- Object store interface used to validate targets
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

"""The object store as seen by the reference store.

Storing objects is not the business of this package; the reference store
only asks whether an identifier exists and what kind of object it names.
"""

import enum
from typing import Optional

from .object_format import DEFAULT_OBJECT_FORMAT, ObjectFormat
from .objects import Identifier


class ObjectKind(enum.Enum):
    """The kinds of object a git object store holds."""

    COMMIT = "commit"
    TREE = "tree"
    BLOB = "blob"
    TAG = "tag"


class ObjectContainer:
    """Object container interface."""

    def identifier_exists(self, identifier: Identifier) -> bool:
        """Check whether an object exists."""
        raise NotImplementedError(self.identifier_exists)

    def identifier_kind(self, identifier: Identifier) -> ObjectKind:
        """Return the kind of an object.

        Raises:
          KeyError: if the object does not exist
        """
        raise NotImplementedError(self.identifier_kind)

    def __contains__(self, identifier: object) -> bool:
        return isinstance(identifier, Identifier) and self.identifier_exists(identifier)


class MemoryObjectStore(ObjectContainer):
    """Object store that keeps all objects in memory."""

    def __init__(self, object_format: Optional[ObjectFormat] = None) -> None:
        self.object_format = object_format or DEFAULT_OBJECT_FORMAT
        self._data: dict[Identifier, tuple[ObjectKind, bytes]] = {}

    def add_object(self, kind: ObjectKind, data: bytes) -> Identifier:
        """Add an object and return its identifier.

        The identifier is computed the way git does, over the
        ``<kind> <length>\\0`` header followed by the data.
        """
        header = kind.value.encode("ascii") + b" " + str(len(data)).encode("ascii") + b"\0"
        identifier = Identifier(self.object_format.hash_object(header + data))
        self._data[identifier] = (kind, data)
        return identifier

    def identifier_exists(self, identifier: Identifier) -> bool:
        return identifier in self._data

    def identifier_kind(self, identifier: Identifier) -> ObjectKind:
        return self._data[identifier][0]

    def __len__(self) -> int:
        return len(self._data)
