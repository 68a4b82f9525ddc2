"""Allow ``python -m depositor``."""

import sys

from depositor.cli import main

if __name__ == "__main__":
    sys.exit(main())
