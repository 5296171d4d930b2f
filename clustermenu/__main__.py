"""Module entrypoint for ``python -m clustermenu``.

All argument parsing and runtime setup happen in ``clustermenu.cli``.
"""

from .cli import main


if __name__ == "__main__":
    main()
