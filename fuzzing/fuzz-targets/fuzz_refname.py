import sys
from typing import Optional

import atheris

with atheris.instrument_imports():
    from gitrefs.errors import InvalidRefName
    from gitrefs.refs import RefName, check_ref_format


def TestOneInput(data) -> Optional[int]:
    try:
        name = RefName(data)
    except InvalidRefName:
        assert not check_ref_format(data)
        return -1
    assert check_ref_format(data)
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError:
        pass
    else:
        assert RefName(text) == name
    for parent in name.parents():
        assert name.startswith(parent + b"/")
    return None


def main() -> None:
    atheris.Setup(sys.argv, TestOneInput)
    atheris.Fuzz()


if __name__ == "__main__":
    main()
