# utils.py -- Test utilities for gitrefs
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

"""Utility functions common to gitrefs tests."""

import os
import shutil
import tempfile

from gitrefs.objects import Identifier
from gitrefs.reflog import Committer, format_reflog_line
from gitrefs.repo import Repo

MASTER_SHA = b"36060c58702ed4c2a40832c51758d5344201d89a"
PACKED_SHA = b"41bc8c69075bbdb46c5c6f0566cc8cc5b46e8bd9"
TAG_SHA = b"5b5b025afb0b4c913b4c338a42934a3863bf3644"
TAG_PEELED_SHA = b"e90810b8df3e80c413d903f631643c716887138d"
LOOSE_TAG_SHA = b"0c37a5391bbff43c37f0d0371823a5509eed5b1d"
PREVIOUS_MASTER_SHA = b"8496071c1b46c854b31185ea97743be6a8774479"

PACKED_REFS = (
    b"# pack-refs with: peeled fully-peeled sorted \n"
    + PACKED_SHA
    + b" refs/heads/packed\n"
    + TAG_SHA
    + b" refs/tags/v0.9\n"
    + b"^"
    + TAG_PEELED_SHA
    + b"\n"
)

TEST_COMMITTER = Committer("Test User", "test@example.com", 1446552482, 0)


def _write(path: str, data: bytes) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as f:
        f.write(data)


def make_test_repo(bare: bool = True) -> Repo:
    """Create a repository with a small, known set of references.

    ``HEAD`` points at ``refs/heads/master``, which is loose and has a
    two-entry reflog. ``refs/heads/packed`` and ``refs/tags/v0.9`` only
    exist in packed-refs; ``refs/tags/v1.0`` is loose.

    Returns: The opened repository; tear it down with tear_down_repo()
    """
    path = tempfile.mkdtemp()
    try:
        repo = Repo.init(path, bare=bare)
        gitdir = repo.controldir()
        _write(os.path.join(gitdir, "refs", "heads", "master"), MASTER_SHA + b"\n")
        _write(os.path.join(gitdir, "refs", "tags", "v1.0"), LOOSE_TAG_SHA + b"\n")
        _write(os.path.join(gitdir, "packed-refs"), PACKED_REFS)
        log = [
            format_reflog_line(
                None,
                Identifier.parse(PREVIOUS_MASTER_SHA),
                TEST_COMMITTER,
                "commit (initial): Initial",
            ),
            format_reflog_line(
                Identifier.parse(PREVIOUS_MASTER_SHA),
                Identifier.parse(MASTER_SHA),
                TEST_COMMITTER._replace(time=TEST_COMMITTER.time + 60),
                "commit: Second",
            ),
        ]
        _write(
            os.path.join(gitdir, "logs", "refs", "heads", "master"),
            b"".join(line + b"\n" for line in log),
        )
    except BaseException:
        shutil.rmtree(path)
        raise
    return Repo(path)


def tear_down_repo(repo: Repo) -> None:
    """Tear down a test repository."""
    repo.close()
    shutil.rmtree(repo.path)
