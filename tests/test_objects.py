# test_objects.py -- tests for identifiers
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

"""Tests for gitrefs.objects and gitrefs.object_format."""

import pickle

from gitrefs.errors import InvalidIdentifier
from gitrefs.object_format import (
    SHA1,
    SHA256,
    get_object_format,
    object_format_for_hex_length,
)
from gitrefs.objects import (
    ZERO_SHA,
    Identifier,
    format_timezone,
    parse_timezone,
    valid_hexsha,
)

from . import TestCase

a_sha = b"6f670c0fb53f9463760b7295fbb814e965fb20c8"
b_sha = b"2969be3e8ee1c0222396a5611407e4769f14e54b"


class ValidHexshaTests(TestCase):
    def test_valid(self) -> None:
        self.assertTrue(valid_hexsha(a_sha))
        self.assertTrue(valid_hexsha(a_sha.upper()))
        self.assertTrue(valid_hexsha(a_sha.decode("ascii")))
        self.assertTrue(valid_hexsha(b"a" * 64))

    def test_invalid(self) -> None:
        self.assertFalse(valid_hexsha(b""))
        self.assertFalse(valid_hexsha(a_sha[:-1]))
        self.assertFalse(valid_hexsha(b"g" * 40))
        self.assertFalse(valid_hexsha("é" * 40))
        self.assertFalse(valid_hexsha(a_sha, SHA256))


class IdentifierTests(TestCase):
    def test_parse_lowercases(self) -> None:
        ident = Identifier.parse(a_sha.upper())
        self.assertEqual(a_sha, ident.hex)
        self.assertEqual(a_sha.decode("ascii"), str(ident))

    def test_parse_str(self) -> None:
        self.assertEqual(Identifier.parse(a_sha), Identifier.parse(a_sha.decode("ascii")))

    def test_parse_wrong_length(self) -> None:
        with self.assertRaises(InvalidIdentifier) as cm:
            Identifier.parse(a_sha[:10])
        self.assertEqual(a_sha[:10], cm.exception.value)

    def test_parse_bad_chars(self) -> None:
        self.assertRaises(InvalidIdentifier, Identifier.parse, b"z" * 40)

    def test_parse_format_mismatch(self) -> None:
        self.assertRaises(InvalidIdentifier, Identifier.parse, a_sha, SHA256)

    def test_invalid_identifier_is_value_error(self) -> None:
        self.assertRaises(ValueError, Identifier.parse, b"nothex")

    def test_sha256(self) -> None:
        ident = Identifier.parse(b"ab" * 32)
        self.assertEqual(SHA256, ident.object_format)
        self.assertEqual(32, len(ident.raw))

    def test_raw_digest_length(self) -> None:
        self.assertRaises(InvalidIdentifier, Identifier, b"\x00" * 19)

    def test_zero(self) -> None:
        zero = Identifier.zero()
        self.assertTrue(zero.is_zero())
        self.assertEqual(ZERO_SHA, zero.hex)
        self.assertEqual(b"0" * 64, Identifier.zero(SHA256).hex)
        self.assertFalse(Identifier.parse(a_sha).is_zero())

    def test_equality_and_hash(self) -> None:
        self.assertEqual(Identifier.parse(a_sha), Identifier.parse(a_sha))
        self.assertNotEqual(Identifier.parse(a_sha), Identifier.parse(b_sha))
        self.assertEqual(1, len({Identifier.parse(a_sha), Identifier.parse(a_sha.upper())}))
        self.assertNotEqual(Identifier.parse(a_sha), a_sha)

    def test_ordering(self) -> None:
        self.assertLess(Identifier.parse(b_sha), Identifier.parse(a_sha))
        self.assertEqual(
            [Identifier.parse(b_sha), Identifier.parse(a_sha)],
            sorted([Identifier.parse(a_sha), Identifier.parse(b_sha)]),
        )

    def test_immutable(self) -> None:
        ident = Identifier.parse(a_sha)
        self.assertRaises(AttributeError, setattr, ident, "_sha", b"\x00" * 20)

    def test_repr(self) -> None:
        self.assertEqual(
            f"Identifier('{a_sha.decode('ascii')}')", repr(Identifier.parse(a_sha))
        )

    def test_pickle(self) -> None:
        ident = Identifier.parse(a_sha)
        self.assertEqual(ident, pickle.loads(pickle.dumps(ident)))


class ObjectFormatTests(TestCase):
    def test_get_object_format(self) -> None:
        self.assertIs(SHA1, get_object_format())
        self.assertIs(SHA256, get_object_format("SHA256"))
        self.assertRaises(ValueError, get_object_format, "md5")

    def test_for_hex_length(self) -> None:
        self.assertIs(SHA1, object_format_for_hex_length(40))
        self.assertIs(SHA256, object_format_for_hex_length(64))
        self.assertIsNone(object_format_for_hex_length(41))


class TimezoneTests(TestCase):
    def test_parse(self) -> None:
        self.assertEqual(0, parse_timezone(b"+0000"))
        self.assertEqual(3600, parse_timezone(b"+0100"))
        self.assertEqual(-(2 * 3600 + 30 * 60), parse_timezone(b"-0230"))

    def test_parse_missing_sign(self) -> None:
        self.assertRaises(ValueError, parse_timezone, b"0100")

    def test_format(self) -> None:
        self.assertEqual(b"+0000", format_timezone(0))
        self.assertEqual(b"+0100", format_timezone(3600))
        self.assertEqual(b"-0230", format_timezone(-(2 * 3600 + 30 * 60)))

    def test_format_rejects_seconds(self) -> None:
        self.assertRaises(ValueError, format_timezone, 30)
