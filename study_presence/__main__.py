"""Allow ``python -m study_presence`` to launch the study timer."""

from __future__ import annotations

import sys


def main() -> None:
    from study_presence import run

    try:
        run(sys.argv[1:])
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
