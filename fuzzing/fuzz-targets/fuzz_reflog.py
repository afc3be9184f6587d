import sys
from typing import Optional

import atheris
from test_utils import EnhancedFuzzedDataProvider

with atheris.instrument_imports():
    from gitrefs.errors import Corrupt
    from gitrefs.reflog import format_reflog_line, parse_reflog_line


def TestOneInput(data) -> Optional[int]:
    fdp = EnhancedFuzzedDataProvider(data)
    line = fdp.ConsumeRandomBytes().split(b"\n", 1)[0]
    try:
        entry = parse_reflog_line(line)
    except Corrupt:
        return -1
    try:
        formatted = format_reflog_line(
            entry.old, entry.new, entry.committer, entry.message
        )
    except ValueError:
        # NUL bytes in the identity and offsets that are not whole minutes
        # cannot be written back.
        return -1
    assert parse_reflog_line(formatted).new == entry.new
    return None


def main() -> None:
    atheris.Setup(sys.argv, TestOneInput)
    atheris.Fuzz()


if __name__ == "__main__":
    main()
