#!/usr/bin/env python3
"""
SRW Lite - turn-based mobile suit battles.

Thin wrapper around the command line front end in ``srwlite.cli``.

To run: python main.py [--new] [--auto N] [--seed S]
"""
import sys

from srwlite.cli import run

if __name__ == "__main__":
    sys.exit(run())
