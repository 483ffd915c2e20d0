"""
Main Entry Point for framelint CLI.

This module handles argument parsing and dispatches to specific command
handlers defined in `framelint.cli.commands`.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from framelint.cli import commands
from framelint import __version__


def _positive_int(value: str) -> int:
  number = int(value)
  if number < 1:
    raise argparse.ArgumentTypeError("must be at least 1")
  return number


def _positive_float(value: str) -> float:
  number = float(value)
  if number <= 0:
    raise argparse.ArgumentTypeError("must be greater than 0")
  return number


def main(argv: Optional[List[str]] = None) -> int:
  """
  Main CLI entry point.

  Parses arguments via argparse and calls the appropriate handler function.

  Args:
      argv: Optional list of command line arguments (defaults to sys.argv).

  Returns:
      int: Exit code (0 clean, 1 findings, 2 failure).
  """
  parser = argparse.ArgumentParser(description="framelint: Static analysis for data frame scripts")
  parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

  subparsers = parser.add_subparsers(dest="command", required=True)

  # --- Command: CHECK ---
  cmd_check = subparsers.add_parser("check", help="Analyse Python files or directories")
  cmd_check.add_argument("paths", nargs="+", type=Path, help="Input source files or directories")
  cmd_check.add_argument("--select", default=None, help="Only enable these rules (e.g. FL001,FL004)")
  cmd_check.add_argument("--ignore", default=None, help="Disable these rules (e.g. FL003)")
  cmd_check.add_argument("--json", action="store_true", help="Print results as JSON")
  cmd_check.add_argument("--jobs", type=_positive_int, default=None, help="Files analysed in parallel (default: from toml or 1)")
  cmd_check.add_argument(
    "--deadline",
    type=_positive_float,
    default=None,
    help="Per-file time limit in seconds; slower files are reported incomplete",
  )

  # --- Command: RULES ---
  subparsers.add_parser("rules", help="List the rule catalog")

  args = parser.parse_args(argv)

  if args.command == "check":
    return commands.handle_check(args.paths, args.select, args.ignore, args.json, args.jobs, args.deadline)

  elif args.command == "rules":
    return commands.handle_rules()

  return 1


if __name__ == "__main__":
  sys.exit(main())
