# test_refs.py -- tests for reference names and records
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

"""Tests for gitrefs.refs."""

import pickle

from gitrefs.errors import Corrupt, InvalidRefName
from gitrefs.objects import Identifier
from gitrefs.refs import (
    Direct,
    Reference,
    RefName,
    Symbolic,
    check_ref_format,
    parse_ref_value,
    parse_symref_value,
    parse_target,
    ref_format_error,
    serialize_ref_value,
)

from . import TestCase

ONES = b"1" * 40


class CheckRefFormatTests(TestCase):
    """Tests for the ref name grammar."""

    def test_valid(self) -> None:
        self.assertTrue(check_ref_format(b"HEAD"))
        self.assertTrue(check_ref_format(b"heads/foo"))
        self.assertTrue(check_ref_format(b"refs/heads/foo/bar"))
        self.assertTrue(check_ref_format(b"refs/heads/foo.bar"))
        self.assertTrue(check_ref_format(b"refs/tags/v1.0-rc1"))
        self.assertTrue(check_ref_format("refs/heads/Ångström".encode()))

    def test_invalid(self) -> None:
        for name in [
            b"",
            b"/refs/heads/foo",
            b"refs/heads/foo/",
            b"refs//heads",
            b"refs/heads/foo bar",
            b"refs/heads/a\tb",
            b"refs/heads/a\x7fb",
            b"refs/heads/~",
            b"refs/heads/^1",
            b"refs/heads/a:b",
            b"refs/heads/a?",
            b"refs/heads/a*",
            b"refs/heads/[a",
            b"refs/heads/a\\b",
            b"refs/heads/foo..bar",
            b"refs/heads/.hidden",
            b"refs/./heads",
            b"refs/heads/foo.",
            b"refs/heads/foo.lock",
            b"refs/heads/foo.lock/bar",
            b"refs/heads/foo@{1}",
            b"@",
        ]:
            self.assertFalse(check_ref_format(name), name)

    def test_error_reason(self) -> None:
        self.assertIsNone(ref_format_error(b"refs/heads/master"))
        self.assertEqual("empty name", ref_format_error(b""))
        self.assertEqual("consecutive slashes", ref_format_error(b"a//b"))
        self.assertEqual("component ends with '.lock'", ref_format_error(b"a/b.lock"))


class RefNameTests(TestCase):
    def test_str_and_bytes(self) -> None:
        name = RefName("refs/heads/master")
        self.assertEqual(b"refs/heads/master", name)
        self.assertEqual("refs/heads/master", str(name))
        self.assertIsInstance(name, bytes)

    def test_parse_rejects(self) -> None:
        with self.assertRaises(InvalidRefName) as cm:
            RefName.parse("refs/heads/a..b")
        self.assertEqual("contains '..'", cm.exception.reason)

    def test_rejects_other_types(self) -> None:
        self.assertRaises(TypeError, RefName, 42)

    def test_unicode_not_normalised(self) -> None:
        decomposed = RefName("refs/heads/A\u030angstro\u0308m")
        composed = RefName("refs/heads/\u00c5ngstr\u00f6m")
        self.assertNotEqual(decomposed, composed)
        self.assertEqual("refs/heads/A\u030angstro\u0308m", str(decomposed))

    def test_components(self) -> None:
        self.assertEqual(
            [b"refs", b"heads", b"a"], RefName(b"refs/heads/a").components
        )

    def test_parents(self) -> None:
        self.assertEqual(
            [b"refs/heads/a", b"refs/heads", b"refs"],
            RefName(b"refs/heads/a/b").parents(),
        )
        self.assertEqual([], RefName(b"HEAD").parents())

    def test_parents_need_not_be_valid(self) -> None:
        self.assertEqual([b"refs/a.", b"refs"], RefName(b"refs/a./b").parents())

    def test_sorting_is_bytewise(self) -> None:
        names = [RefName(b"refs/heads/b"), RefName(b"refs/heads/B"), RefName(b"refs/heads/a")]
        self.assertEqual(
            [b"refs/heads/B", b"refs/heads/a", b"refs/heads/b"], sorted(names)
        )

    def test_repr(self) -> None:
        self.assertEqual("RefName('HEAD')", repr(RefName(b"HEAD")))

    def test_pickle(self) -> None:
        name = RefName(b"refs/heads/master")
        copy = pickle.loads(pickle.dumps(name))
        self.assertEqual(name, copy)
        self.assertIsInstance(copy, RefName)


class ReferenceTests(TestCase):
    def test_type(self) -> None:
        direct = Reference(RefName(b"refs/heads/a"), Direct(Identifier.parse(ONES)))
        symbolic = Reference(RefName(b"HEAD"), Symbolic(RefName(b"refs/heads/a")))
        self.assertEqual("direct", direct.type)
        self.assertFalse(direct.is_symbolic)
        self.assertEqual("symbolic", symbolic.type)
        self.assertTrue(symbolic.is_symbolic)

    def test_equality(self) -> None:
        self.assertEqual(
            Direct(Identifier.parse(ONES)), Direct(Identifier.parse(ONES.upper()))
        )
        self.assertNotEqual(
            Direct(Identifier.parse(ONES)), Symbolic(RefName(b"refs/heads/a"))
        )


class RecordFormatTests(TestCase):
    def test_parse_symref_value(self) -> None:
        self.assertEqual(b"refs/heads/master", parse_symref_value(b"ref: refs/heads/master\n"))
        self.assertRaises(ValueError, parse_symref_value, b"foo")

    def test_parse_direct(self) -> None:
        self.assertEqual(
            Direct(Identifier.parse(ONES)), parse_ref_value(ONES + b"\n")
        )

    def test_parse_crlf(self) -> None:
        self.assertEqual(
            Symbolic(RefName(b"refs/heads/master")),
            parse_ref_value(b"ref: refs/heads/master\r\n"),
        )

    def test_parse_sha256(self) -> None:
        target = parse_ref_value(b"ab" * 32 + b"\n")
        assert isinstance(target, Direct)
        self.assertEqual(32, len(target.id.raw))

    def test_parse_garbage(self) -> None:
        self.assertRaises(Corrupt, parse_ref_value, b"not a ref\n")
        self.assertRaises(Corrupt, parse_ref_value, b"")
        self.assertRaises(Corrupt, parse_ref_value, b"ref: refs/heads/a..b\n")

    def test_serialize(self) -> None:
        self.assertEqual(ONES + b"\n", serialize_ref_value(Direct(Identifier.parse(ONES))))
        self.assertEqual(
            b"ref: refs/heads/master\n",
            serialize_ref_value(Symbolic(RefName(b"refs/heads/master"))),
        )
        self.assertRaises(TypeError, serialize_ref_value, ONES)


class ParseTargetTests(TestCase):
    def test_identifier(self) -> None:
        ident = Identifier.parse(ONES)
        self.assertEqual(Direct(ident), parse_target(ident))
        self.assertEqual(Direct(ident), parse_target(ONES.decode("ascii")))

    def test_refname(self) -> None:
        self.assertEqual(
            Symbolic(RefName(b"refs/heads/a")), parse_target(RefName(b"refs/heads/a"))
        )
        self.assertEqual(Symbolic(RefName(b"refs/heads/a")), parse_target("refs/heads/a"))
        self.assertEqual(
            Symbolic(RefName(b"refs/heads/a")), parse_target(b"ref: refs/heads/a")
        )

    def test_passthrough(self) -> None:
        target = Symbolic(RefName(b"HEAD"))
        self.assertIs(target, parse_target(target))

    def test_invalid(self) -> None:
        self.assertRaises(InvalidRefName, parse_target, "refs/heads/a b")
        self.assertRaises(TypeError, parse_target, 42)
