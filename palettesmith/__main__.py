"""Entry point for `python -m palettesmith`."""

import sys


def main():
    from palettesmith.app import main as run
    sys.exit(run())


if __name__ == "__main__":
    main()
