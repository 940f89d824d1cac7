"""Entry point for running the CLI as module: python -m solswap.cli"""

import sys

from solswap.cli.main import main

if __name__ == "__main__":
    sys.exit(main())
