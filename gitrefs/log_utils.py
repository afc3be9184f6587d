# log_utils.py -- Logging utilities for gitrefs
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

"""Logging utilities for gitrefs.

gitrefs is a library, so by default nothing is printed: a null handler is
attached to the ``gitrefs`` logger. Applications either configure logging
themselves (calling remove_null_handler() first) or call
default_logging_config(), which honours the trace environment variables.

Tracing is controlled by ``GITREFS_TRACE`` or, if that is unset, by
``GIT_TRACE``:

- ``1``, ``2`` or ``true``: debug output to stderr
- an integer 3-9: debug output to that file descriptor
- an absolute path: debug output appended to that file, or to
  ``trace.<pid>`` inside it if it is a directory
- anything else (including ``0`` and ``false``): tracing disabled
"""

import logging
import os
import sys
from collections.abc import Mapping
from typing import Optional, Union

getLogger = logging.getLogger

TRACE_FORMAT = "%(asctime)s %(name)s %(levelname)s: %(message)s"

_NULL_HANDLER = logging.NullHandler()
_GITREFS_LOGGER = getLogger("gitrefs")
_GITREFS_LOGGER.addHandler(_NULL_HANDLER)


def _trace_setting(env: Optional[Mapping[str, str]] = None) -> str:
    if env is None:
        env = os.environ
    value = env.get("GITREFS_TRACE")
    if value is None:
        value = env.get("GIT_TRACE", "")
    return value.strip()


def get_trace_target(
    env: Optional[Mapping[str, str]] = None,
) -> Optional[Union[str, int]]:
    """Work out where trace output should go.

    Returns:
        None if tracing is disabled, 2 for stderr, an int 3-9 for a file
        descriptor, or an absolute path.
    """
    value = _trace_setting(env)
    if not value or value.lower() in ("0", "false"):
        return None
    if value.lower() in ("1", "2", "true"):
        return 2
    if value.isdigit() and 3 <= int(value) <= 9:
        return int(value)
    if os.path.isabs(value):
        return value
    return None


def _configure_logging_from_trace(env: Optional[Mapping[str, str]] = None) -> bool:
    """Configure debug logging if tracing is requested.

    Returns True if trace output was set up, False otherwise.
    """
    target = get_trace_target(env)
    if target is None:
        return False

    try:
        if target == 2:
            logging.basicConfig(
                level=logging.DEBUG, stream=sys.stderr, format=TRACE_FORMAT
            )
        elif isinstance(target, int):
            stream = os.fdopen(target, "w", buffering=1)
            logging.basicConfig(level=logging.DEBUG, stream=stream, format=TRACE_FORMAT)
        else:
            if os.path.isdir(target):
                target = os.path.join(target, f"trace.{os.getpid()}")
            logging.basicConfig(
                level=logging.DEBUG, filename=target, filemode="a", format=TRACE_FORMAT
            )
    except OSError as e:
        sys.stderr.write(f"Warning: unable to open trace target {target}: {e}\n")
        return False
    return True


def default_logging_config() -> None:
    """Set up the default gitrefs loggers.

    Uses the trace settings if present, otherwise logs INFO and above to
    stderr.
    """
    remove_null_handler()
    if not _configure_logging_from_trace():
        logging.basicConfig(
            level=logging.INFO,
            stream=sys.stderr,
            format="%(asctime)s %(levelname)s: %(message)s",
        )


def remove_null_handler() -> None:
    """Remove the null handler from the gitrefs loggers.

    If a caller wants to set up logging using something other than
    default_logging_config, calling this function first is a minor optimization
    to avoid the overhead of using the null handler.
    """
    _GITREFS_LOGGER.removeHandler(_NULL_HANDLER)
