"""Entry point for python -m addrhunt."""

import sys

from addrhunt.cli import main

if __name__ == "__main__":
    sys.exit(main())
