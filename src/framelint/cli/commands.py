"""
Command Handlers.

Implementation of the ``check`` and ``rules`` commands dispatched by
``framelint.cli.__main__``.
"""

from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError
from rich.markup import escape

from framelint.cli.reporter import exit_code, render_json, render_text, rules_table
from framelint.cli.runner import lint_paths
from framelint.config import LintConfig, parse_rule_list
from framelint.core.engine import MatchEngine
from framelint.rules import CATALOG
from framelint.utils.console import console, log_error, log_info, log_success, log_to_stderr, log_warning, reset_console


def handle_check(
  paths: List[Path],
  select: Optional[str] = None,
  ignore: Optional[str] = None,
  json_mode: bool = False,
  jobs: Optional[int] = None,
  deadline: Optional[float] = None,
) -> int:
  """
  Analyses files and directories and prints the diagnostics.

  Args:
      paths: Input files or directories.
      select: Comma separated rule ids to enable exclusively.
      ignore: Comma separated rule ids to disable.
      json_mode: If True, output JSON to stdout and send Rich logs to stderr.
      jobs: Number of files analysed in parallel.
      deadline: Wall-clock bound per file in seconds.

  Returns:
      int: 0 if clean, 1 if diagnostics were reported, 2 if a file failed,
      ran past the deadline, or the invocation was invalid.
  """
  if not json_mode:
    return _check(paths, select, ignore, False, jobs, deadline)

  # stdout carries only the JSON document.
  log_to_stderr()
  try:
    return _check(paths, select, ignore, True, jobs, deadline)
  finally:
    reset_console()


def _check(
  paths: List[Path],
  select: Optional[str],
  ignore: Optional[str],
  json_mode: bool,
  jobs: Optional[int],
  deadline: Optional[float],
) -> int:
  missing = [path for path in paths if not path.exists()]
  if missing:
    for path in missing:
      log_error(f"Path not found: [path]{escape(str(path))}[/path]")
    return 2

  try:
    config = LintConfig.load(
      select=parse_rule_list(select),
      ignore=parse_rule_list(ignore),
      deadline_seconds=deadline,
      jobs=jobs,
    )
  except ValidationError as e:
    log_error(f"Invalid configuration: {escape(str(e))}")
    return 2

  results = lint_paths(paths, config=config, engine=MatchEngine(config=config))
  code = exit_code(results)

  if json_mode:
    print(render_json(results))
    return code

  log_info(f"Checked {len(results)} files")
  for line in render_text(results):
    print(line)

  total = sum(len(result.diagnostics) for result in results)
  if code == 0:
    log_success("No issues found.")
  elif code == 1:
    log_warning(f"Found {total} issue(s) in {sum(1 for r in results if r.has_findings)} file(s).")
  else:
    log_error("Some files could not be fully analysed.")
  return code


def handle_rules() -> int:
  """
  Lists the rule catalog.

  Returns:
      int: Always 0.
  """
  console.print(rules_table(CATALOG))
  return 0
