#!/usr/bin/env python3
"""Run script for goalcron (one automation pass, for cron)."""

import sys

from goalcron.cli import main

if __name__ == "__main__":
    sys.exit(main(["run", *sys.argv[1:]]))
