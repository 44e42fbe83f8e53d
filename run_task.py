#!/usr/bin/env python3
"""CLI script for listing, registering and running recurring jobs on demand."""

import sys

from jobhost.cli import main

if __name__ == "__main__":
    sys.exit(main())
