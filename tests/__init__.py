# __init__.py -- Tests for gitrefs
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

"""Tests for gitrefs."""

__all__ = [
    "SkipTest",
    "TestCase",
]

import os
import shutil
import tempfile
import unittest
from unittest import SkipTest, TestCase as _TestCase


class TestCase(_TestCase):
    """Test case that isolates the environment from the user's settings."""

    def setUp(self) -> None:
        super().setUp()
        self.overrideEnv("HOME", "/nonexistent")
        for var in ("GIT_COMMITTER_NAME", "GIT_COMMITTER_EMAIL", "GITREFS_TRACE", "GIT_TRACE"):
            self.overrideEnv(var, None)

    def overrideEnv(self, name: str, value: str | None) -> None:
        def restore() -> None:
            if oldval is not None:
                os.environ[name] = oldval
            else:
                os.environ.pop(name, None)

        oldval = os.environ.get(name)
        if value is not None:
            os.environ[name] = value
        else:
            os.environ.pop(name, None)
        self.addCleanup(restore)

    def make_tempdir(self) -> str:
        path = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, path)
        return path


def self_test_suite() -> unittest.TestSuite:
    names = [
        "__init__",
        "cli",
        "config",
        "file",
        "log_utils",
        "loose",
        "object_store",
        "objects",
        "packed_refs",
        "reflog",
        "refs",
        "repo",
        "resolver",
        "store",
    ]
    module_names = ["tests.test_" + name for name in names]
    loader = unittest.TestLoader()
    return loader.loadTestsFromNames(module_names)


def test_suite() -> unittest.TestSuite:
    return self_test_suite()
