"""Allow running tabwright with ``python -m tabwright``."""

from tabwright.cli.cli import main

if __name__ == "__main__":
    main()
