#!/usr/bin/env python3
"""
tasklist - Main entry point

Allows running the CLI with ``python -m tasklist``.
"""
import sys

from tasklist.cli import cli


def main():
    """Main entry point for the tasklist package."""
    return cli(prog_name="tasklist")


if __name__ == "__main__":
    sys.exit(main())
