#!/usr/bin/env python3
# cli.py -- Command-line interface to the reference store
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

"""Simple command-line interface to gitrefs.

The commands mirror the git plumbing commands that deal with references.
Output is written through the ``gitrefs.cli`` logger at INFO level.
"""

__all__ = [
    "Command",
    "main",
]

import argparse
import logging
import os
import sys
from collections.abc import Sequence
from typing import Optional

from .errors import NotGitRepository, RefStoreError
from .log_utils import _configure_logging_from_trace
from .objects import Identifier
from .refs import (
    HEADREF,
    LOCAL_BRANCH_PREFIX,
    LOCAL_TAG_PREFIX,
    Direct,
    RefName,
    Symbolic,
)
from .repo import Repo

logger = logging.getLogger(__name__)


def to_display_str(value: bytes) -> str:
    return value.decode("utf-8", "replace")


class Command:
    """A gitrefs subcommand."""

    def run(self, args: Sequence[str]) -> Optional[int]:
        """Run the command."""
        raise NotImplementedError(self.run)


class cmd_init(Command):
    """Create an empty repository."""

    def run(self, args: Sequence[str]) -> Optional[int]:
        parser = argparse.ArgumentParser(prog="gitrefs init")
        parser.add_argument("--bare", action="store_true", help="Create a bare repository")
        parser.add_argument(
            "--objectformat",
            choices=["sha1", "sha256"],
            help="Object format to use (sha1 or sha256)",
        )
        parser.add_argument("path", nargs="?", default=os.getcwd(), help="Repository path")
        parsed_args = parser.parse_args(args)
        if not os.path.exists(parsed_args.path):
            os.makedirs(parsed_args.path)
        with Repo.init(
            parsed_args.path,
            bare=parsed_args.bare,
            object_format=parsed_args.objectformat,
        ) as repo:
            logger.info("Initialized empty repository in %s", repo.controldir())
        return 0


class cmd_show_ref(Command):
    """List references in a local repository."""

    def run(self, args: Sequence[str]) -> Optional[int]:
        parser = argparse.ArgumentParser(prog="gitrefs show-ref")
        parser.add_argument("--head", action="store_true", help="Show the HEAD reference")
        parser.add_argument("--branches", action="store_true", help="Limit to local branches")
        parser.add_argument("--tags", action="store_true", help="Limit to local tags")
        parser.add_argument(
            "-d",
            "--dereference",
            action="store_true",
            help="Also show the peeled value of packed tags",
        )
        parser.add_argument(
            "-s", "--hash", action="store_true", help="Only show the identifier"
        )
        parser.add_argument("patterns", nargs="*", help="Only show matching names")
        parsed_args = parser.parse_args(args)

        with Repo(".") as repo:
            names = []
            if parsed_args.head and repo.refs.exists(HEADREF):
                names.append(HEADREF)
            prefixes = []
            if parsed_args.branches:
                prefixes.append(LOCAL_BRANCH_PREFIX)
            if parsed_args.tags:
                prefixes.append(LOCAL_TAG_PREFIX)
            for name in repo.refs.list():
                if prefixes and not name.startswith(tuple(prefixes)):
                    continue
                if parsed_args.patterns and not any(
                    name == p.encode() or name.endswith(b"/" + p.encode())
                    for p in parsed_args.patterns
                ):
                    continue
                names.append(name)

            shown = 0
            for name in names:
                ref = repo.refs.resolve(name)
                if ref is None:
                    continue
                assert isinstance(ref.target, Direct)
                hexsha = to_display_str(ref.target.id.hex)
                if parsed_args.hash:
                    logger.info(hexsha)
                else:
                    logger.info("%s %s", hexsha, to_display_str(name))
                shown += 1
                if parsed_args.dereference:
                    peeled = repo.refs.get_peeled(name)
                    if peeled is not None:
                        logger.info("%s %s^{}", peeled, to_display_str(name))
        return 0 if shown else 1


class cmd_symbolic_ref(Command):
    """Read, modify and delete symbolic refs."""

    def run(self, args: Sequence[str]) -> Optional[int]:
        parser = argparse.ArgumentParser(prog="gitrefs symbolic-ref")
        parser.add_argument("name", help="Symbolic reference name")
        parser.add_argument("ref", nargs="?", help="Target reference")
        parser.add_argument("-d", "--delete", action="store_true", help="Delete the symbolic ref")
        parser.add_argument("-m", dest="message", help="Reflog message")
        parsed_args = parser.parse_args(args)

        with Repo(".") as repo:
            if parsed_args.delete:
                if os.fsencode(parsed_args.name) == HEADREF:
                    logger.error("fatal: deleting '%s' is not allowed", parsed_args.name)
                    return 1
                current = repo.refs.lookup(parsed_args.name)
                if current is None or not current.is_symbolic:
                    logger.error("fatal: ref '%s' is not a symbolic ref", parsed_args.name)
                    return 1
                repo.refs.delete(parsed_args.name, current.target)
                return 0
            if parsed_args.ref:
                repo.refs.create(
                    parsed_args.name,
                    Symbolic(RefName(parsed_args.ref)),
                    force=True,
                    message=parsed_args.message,
                )
                return 0
            current = repo.refs.lookup(parsed_args.name)
            if current is None or not isinstance(current.target, Symbolic):
                logger.error("fatal: ref '%s' is not a symbolic ref", parsed_args.name)
                return 1
            logger.info(str(current.target.name))
        return 0


class cmd_update_ref(Command):
    """Update the value stored in a reference, optionally checking the old one."""

    def run(self, args: Sequence[str]) -> Optional[int]:
        parser = argparse.ArgumentParser(prog="gitrefs update-ref")
        parser.add_argument("-d", "--delete", action="store_true", help="Delete the reference")
        parser.add_argument("-m", dest="message", help="Reflog message")
        parser.add_argument("name", help="Reference to update")
        parser.add_argument("values", nargs="*", help="<newvalue> [<oldvalue>], or [<oldvalue>] with -d")
        parsed_args = parser.parse_args(args)

        values = list(parsed_args.values)
        with Repo(".") as repo:
            if parsed_args.delete:
                if len(values) > 1:
                    parser.error("too many arguments")
                repo.refs.delete(parsed_args.name, values[0] if values else None)
                return 0
            if not values or len(values) > 2:
                parser.error("expected <newvalue> [<oldvalue>]")
            new = Identifier.parse(values[0])
            if len(values) == 1:
                repo.refs.create(parsed_args.name, new, force=True, message=parsed_args.message)
                return 0
            old = Identifier.parse(values[1])
            if old.is_zero():
                repo.refs.create(parsed_args.name, new, message=parsed_args.message)
            else:
                repo.refs.set_target(
                    parsed_args.name, new, expected_old=old, message=parsed_args.message
                )
        return 0


class cmd_rename_ref(Command):
    """Rename a reference, keeping its reflog."""

    def run(self, args: Sequence[str]) -> Optional[int]:
        parser = argparse.ArgumentParser(prog="gitrefs rename-ref")
        parser.add_argument("-f", "--force", action="store_true", help="Overwrite the new name")
        parser.add_argument("-m", dest="message", help="Reflog message")
        parser.add_argument("old", help="Current name")
        parser.add_argument("new", help="New name")
        parsed_args = parser.parse_args(args)

        with Repo(".") as repo:
            repo.refs.rename(
                parsed_args.old,
                parsed_args.new,
                force=parsed_args.force,
                message=parsed_args.message,
            )
        return 0


class cmd_rev_parse(Command):
    """Resolve a reference name to an object identifier."""

    def run(self, args: Sequence[str]) -> Optional[int]:
        parser = argparse.ArgumentParser(prog="gitrefs rev-parse")
        parser.add_argument(
            "--symbolic-full-name",
            action="store_true",
            help="Print the name the reference resolves through instead",
        )
        parser.add_argument("name", help="Reference name")
        parsed_args = parser.parse_args(args)

        with Repo(".") as repo:
            chain, ref = repo.refs.follow(parsed_args.name)
            if ref is None:
                logger.error(
                    "fatal: ambiguous argument '%s': unknown revision", parsed_args.name
                )
                return 1
            if parsed_args.symbolic_full_name:
                logger.info(str(chain[-1]))
            else:
                assert isinstance(ref.target, Direct)
                logger.info(str(ref.target.id))
        return 0


class cmd_reflog(Command):
    """Show the reflog of a reference, newest entry first."""

    def run(self, args: Sequence[str]) -> Optional[int]:
        parser = argparse.ArgumentParser(prog="gitrefs reflog")
        parser.add_argument("ref", nargs="?", default="HEAD", help="Reference to show reflog for")
        parser.add_argument("--all", action="store_true", help="Show reflogs for all refs")
        parsed_args = parser.parse_args(args)

        with Repo(".") as repo:
            if parsed_args.all:
                names = sorted(repo.refs.reflog.iter_reflogs())
            else:
                names = [parsed_args.ref.encode("utf-8")]
            for name in names:
                entries = repo.refs.log(name)
                for i, entry in enumerate(reversed(entries)):
                    short = to_display_str(entry.new.hex[:7])
                    logger.info(
                        "%s %s@{%d}: %s",
                        short,
                        to_display_str(name),
                        i,
                        entry.message or "",
                    )
        return 0


class cmd_pack_refs(Command):
    """Pack references for efficient repository access."""

    def run(self, argv: Sequence[str]) -> Optional[int]:
        parser = argparse.ArgumentParser(prog="gitrefs pack-refs")
        parser.add_argument("--all", action="store_true", help="Pack all refs, not just tags")
        args = parser.parse_args(argv)

        with Repo(".") as repo:
            repo.refs.pack_refs(all=args.all)
        return 0


class cmd_help(Command):
    """Display help information about the available commands."""

    def run(self, args: Sequence[str]) -> Optional[int]:
        logger.info("The available commands are:")
        for name in sorted(commands):
            logger.info("  %-13s %s", name, (commands[name].__doc__ or "").strip())
        return 0


commands = {
    "help": cmd_help,
    "init": cmd_init,
    "pack-refs": cmd_pack_refs,
    "reflog": cmd_reflog,
    "rename-ref": cmd_rename_ref,
    "rev-parse": cmd_rev_parse,
    "show-ref": cmd_show_ref,
    "symbolic-ref": cmd_symbolic_ref,
    "update-ref": cmd_update_ref,
}


def main(argv: Optional[Sequence[str]] = None) -> Optional[int]:
    """Main entry point for the gitrefs CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    if argv is None:
        argv = sys.argv[1:]
    if not argv:
        logger.error("usage: gitrefs <command> [<args>]")
        return 1

    if not _configure_logging_from_trace():
        logging.basicConfig(level=logging.INFO, format="%(message)s")

    cmd = argv[0]
    try:
        cmd_kls = commands[cmd]
    except KeyError:
        logger.fatal("No such subcommand: %s", cmd)
        return 1
    try:
        return cmd_kls().run(argv[1:])
    except NotGitRepository as exc:
        logger.error("fatal: %s", exc)
        return 128
    except RefStoreError as exc:
        logger.error("fatal: %s", exc)
        return 1


def _main() -> None:
    sys.exit(main())


if __name__ == "__main__":
    _main()
