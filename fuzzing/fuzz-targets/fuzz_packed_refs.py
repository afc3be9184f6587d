import sys
from io import BytesIO
from typing import Optional

import atheris

with atheris.instrument_imports():
    from gitrefs.errors import PackedRefsException
    from gitrefs.packed_refs import PackedRefsTable


def TestOneInput(data) -> Optional[int]:
    try:
        table = PackedRefsTable.from_file(BytesIO(data))
    except PackedRefsException:
        return -1
    reparsed = PackedRefsTable.from_file(BytesIO(table.serialize()))
    assert reparsed == table
    return None


def main() -> None:
    atheris.Setup(sys.argv, TestOneInput)
    atheris.Fuzz()


if __name__ == "__main__":
    main()
