# test_cli.py -- tests for the command-line interface
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

"""Tests for gitrefs.cli."""

import io
import os
import sys

from gitrefs import cli
from gitrefs.objects import Identifier
from gitrefs.refs import Direct, RefName, Symbolic
from gitrefs.repo import Repo

from . import TestCase
from .utils import (
    MASTER_SHA,
    PACKED_SHA,
    TAG_PEELED_SHA,
    TAG_SHA,
    make_test_repo,
    tear_down_repo,
)

OTHER_SHA = "1" * 40


class GitrefsCliTestCase(TestCase):
    """Base class for CLI tests."""

    def setUp(self) -> None:
        super().setUp()
        self.overrideEnv("GIT_COMMITTER_NAME", "Test User")
        self.overrideEnv("GIT_COMMITTER_EMAIL", "test@example.com")
        self.repo = make_test_repo()
        self.addCleanup(tear_down_repo, self.repo)
        self.repo_path = self.repo.path

    def _run_cli(self, *args: str) -> tuple[object, str, str]:
        """Run a CLI command in the test repository and capture its output."""
        old_stdout = sys.stdout
        old_stderr = sys.stderr
        old_cwd = os.getcwd()
        try:
            sys.stdout = io.StringIO()
            sys.stderr = io.StringIO()
            os.chdir(self.repo_path)
            result = cli.main(list(args))
            return result, sys.stdout.getvalue(), sys.stderr.getvalue()
        finally:
            sys.stdout = old_stdout
            sys.stderr = old_stderr
            os.chdir(old_cwd)

    def _output(self, *args: str) -> tuple[object, list[str]]:
        with self.assertLogs("gitrefs.cli", level="INFO") as cm:
            result, _stdout, _stderr = self._run_cli(*args)
        return result, [record.getMessage() for record in cm.records]


class MainTests(GitrefsCliTestCase):
    def test_no_arguments(self) -> None:
        result, output = self._output()
        self.assertEqual(1, result)
        self.assertIn("usage", output[0])

    def test_unknown_command(self) -> None:
        result, output = self._output("frobnicate")
        self.assertEqual(1, result)
        self.assertIn("frobnicate", output[0])

    def test_not_a_repository(self) -> None:
        self.repo_path = self.make_tempdir()
        result, output = self._output("show-ref")
        self.assertEqual(128, result)
        self.assertTrue(output[0].startswith("fatal: "))

    def test_help(self) -> None:
        result, output = self._output("help")
        self.assertEqual(0, result)
        self.assertTrue(any("show-ref" in line for line in output))


class InitCommandTest(GitrefsCliTestCase):
    def test_init(self) -> None:
        path = os.path.join(self.make_tempdir(), "new")
        result, output = self._output("init", path)
        self.assertEqual(0, result)
        self.assertEqual(
            [f"Initialized empty repository in {os.path.join(path, '.git')}"], output
        )
        self.assertFalse(Repo(path).bare)

    def test_init_bare_sha256(self) -> None:
        path = self.make_tempdir()
        result, _output = self._output("init", "--bare", "--objectformat", "sha256", path)
        self.assertEqual(0, result)
        config = Repo(path).get_config()
        self.assertEqual(b"sha256", config.get(b"extensions", b"objectformat"))


class ShowRefCommandTest(GitrefsCliTestCase):
    def test_all(self) -> None:
        result, output = self._output("show-ref")
        self.assertEqual(0, result)
        self.assertEqual(
            [
                f"{MASTER_SHA.decode()} refs/heads/master",
                f"{PACKED_SHA.decode()} refs/heads/packed",
                f"{TAG_SHA.decode()} refs/tags/v0.9",
            ],
            output[:3],
        )
        self.assertEqual(4, len(output))

    def test_head(self) -> None:
        _result, output = self._output("show-ref", "--head")
        self.assertEqual(f"{MASTER_SHA.decode()} HEAD", output[0])

    def test_pattern(self) -> None:
        _result, output = self._output("show-ref", "master")
        self.assertEqual([f"{MASTER_SHA.decode()} refs/heads/master"], output)

    def test_branches(self) -> None:
        _result, output = self._output("show-ref", "--branches")
        self.assertEqual(2, len(output))
        self.assertTrue(all("refs/heads/" in line for line in output))

    def test_tags_dereference(self) -> None:
        _result, output = self._output("show-ref", "--tags", "-d")
        self.assertIn(f"{TAG_PEELED_SHA.decode()} refs/tags/v0.9^{{}}", output)
        self.assertEqual(3, len(output))

    def test_hash(self) -> None:
        _result, output = self._output("show-ref", "--hash", "packed")
        self.assertEqual([PACKED_SHA.decode()], output)

    def test_no_match(self) -> None:
        result, _stdout, _stderr = self._run_cli("show-ref", "nonexistent")
        self.assertEqual(1, result)


class SymbolicRefCommandTest(GitrefsCliTestCase):
    def test_read(self) -> None:
        result, output = self._output("symbolic-ref", "HEAD")
        self.assertEqual(0, result)
        self.assertEqual(["refs/heads/master"], output)

    def test_read_not_symbolic(self) -> None:
        result, output = self._output("symbolic-ref", "refs/heads/master")
        self.assertEqual(1, result)
        self.assertIn("is not a symbolic ref", output[0])

    def test_set(self) -> None:
        result, _stdout, _stderr = self._run_cli(
            "symbolic-ref", "-m", "switch", "HEAD", "refs/heads/packed"
        )
        self.assertEqual(0, result)
        repo = Repo(self.repo_path)
        self.assertEqual(Symbolic(RefName(b"refs/heads/packed")), repo.refs.lookup("HEAD").target)
        self.assertEqual("switch", repo.refs.log("HEAD")[-1].message)

    def test_set_invalid(self) -> None:
        result, output = self._output("symbolic-ref", "HEAD", "refs/heads/a..b")
        self.assertEqual(1, result)
        self.assertTrue(output[0].startswith("fatal: "))

    def test_delete(self) -> None:
        self.repo.refs.create("refs/heads/sym", "refs/heads/master")
        result, _stdout, _stderr = self._run_cli("symbolic-ref", "-d", "refs/heads/sym")
        self.assertEqual(0, result)
        refs = Repo(self.repo_path).refs
        self.assertIsNone(refs.lookup("refs/heads/sym"))
        self.assertEqual(Direct(Identifier.parse(MASTER_SHA)), refs.resolve("HEAD").target)

    def test_delete_head_refused(self) -> None:
        result, output = self._output("symbolic-ref", "-d", "HEAD")
        self.assertEqual(1, result)
        self.assertEqual(["fatal: deleting 'HEAD' is not allowed"], output)
        self.assertEqual(
            Symbolic(RefName(b"refs/heads/master")),
            Repo(self.repo_path).refs.lookup("HEAD").target,
        )

    def test_delete_not_symbolic(self) -> None:
        result, output = self._output("symbolic-ref", "-d", "refs/heads/master")
        self.assertEqual(1, result)
        self.assertIn("is not a symbolic ref", output[0])
        self.assertIsNotNone(Repo(self.repo_path).refs.lookup("refs/heads/master"))


class UpdateRefCommandTest(GitrefsCliTestCase):
    def test_create(self) -> None:
        result, _stdout, _stderr = self._run_cli(
            "update-ref", "-m", "created", "refs/heads/new", OTHER_SHA
        )
        self.assertEqual(0, result)
        refs = Repo(self.repo_path).refs
        self.assertEqual(Direct(Identifier.parse(OTHER_SHA)), refs.lookup("refs/heads/new").target)
        [entry] = refs.log("refs/heads/new")
        self.assertEqual("Test User", entry.committer.name)
        self.assertEqual("created", entry.message)

    def test_update_checked(self) -> None:
        result, _stdout, _stderr = self._run_cli(
            "update-ref", "refs/heads/master", OTHER_SHA, MASTER_SHA.decode()
        )
        self.assertEqual(0, result)
        self.assertEqual(
            Direct(Identifier.parse(OTHER_SHA)),
            Repo(self.repo_path).refs.lookup("refs/heads/master").target,
        )

    def test_update_conflict(self) -> None:
        result, output = self._output(
            "update-ref", "refs/heads/master", OTHER_SHA, PACKED_SHA.decode()
        )
        self.assertEqual(1, result)
        self.assertTrue(output[0].startswith("fatal: "))

    def test_create_with_zero_old(self) -> None:
        result, output = self._output(
            "update-ref", "refs/heads/master", OTHER_SHA, "0" * 40
        )
        self.assertEqual(1, result)
        self.assertIn("already exists", output[0])

    def test_invalid_identifier(self) -> None:
        result, _output = self._output("update-ref", "refs/heads/new", "xyz")
        self.assertEqual(1, result)

    def test_delete(self) -> None:
        result, _stdout, _stderr = self._run_cli("update-ref", "-d", "refs/heads/packed")
        self.assertEqual(0, result)
        self.assertIsNone(Repo(self.repo_path).refs.lookup("refs/heads/packed"))


class RenameRefCommandTest(GitrefsCliTestCase):
    def test_rename(self) -> None:
        result, _stdout, _stderr = self._run_cli("rename-ref", "refs/heads/master", "refs/heads/main")
        self.assertEqual(0, result)
        refs = Repo(self.repo_path).refs
        self.assertIsNone(refs.lookup("refs/heads/master"))
        self.assertEqual(3, len(refs.log("refs/heads/main")))

    def test_rename_existing(self) -> None:
        result, output = self._output("rename-ref", "refs/heads/master", "refs/heads/packed")
        self.assertEqual(1, result)
        self.assertIn("already exists", output[0])

    def test_rename_force(self) -> None:
        result, _stdout, _stderr = self._run_cli(
            "rename-ref", "-f", "refs/heads/master", "refs/heads/packed"
        )
        self.assertEqual(0, result)


class RevParseCommandTest(GitrefsCliTestCase):
    def test_resolve(self) -> None:
        result, output = self._output("rev-parse", "HEAD")
        self.assertEqual(0, result)
        self.assertEqual([MASTER_SHA.decode()], output)

    def test_symbolic_full_name(self) -> None:
        _result, output = self._output("rev-parse", "--symbolic-full-name", "HEAD")
        self.assertEqual(["refs/heads/master"], output)

    def test_unknown(self) -> None:
        result, output = self._output("rev-parse", "refs/heads/missing")
        self.assertEqual(1, result)
        self.assertIn("unknown revision", output[0])


class ReflogCommandTest(GitrefsCliTestCase):
    def test_reflog(self) -> None:
        result, output = self._output("reflog", "refs/heads/master")
        self.assertEqual(0, result)
        self.assertEqual(
            [
                "36060c5 refs/heads/master@{0}: commit: Second",
                "8496071 refs/heads/master@{1}: commit (initial): Initial",
            ],
            output,
        )

    def test_reflog_all(self) -> None:
        self._run_cli("update-ref", "-m", "created", "refs/heads/new", OTHER_SHA)
        _result, output = self._output("reflog", "--all")
        self.assertEqual(3, len(output))
        self.assertEqual("1111111 refs/heads/new@{0}: created", output[2])


class PackRefsCommandTest(GitrefsCliTestCase):
    def test_pack_refs_all(self) -> None:
        result, _stdout, _stderr = self._run_cli("pack-refs", "--all")
        self.assertEqual(0, result)
        self.assertFalse(
            os.path.exists(os.path.join(self.repo_path, "refs", "heads", "master"))
        )
        self.assertEqual(
            Direct(Identifier.parse(MASTER_SHA)),
            Repo(self.repo_path).refs.resolve("HEAD").target,
        )
