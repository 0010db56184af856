"""Main entry point for chunkvault."""

import sys

from chunkvault.cli import main


if __name__ == "__main__":
    sys.exit(main())
