"""
Result Reporting.

Renders analysis results for the terminal (``path:line:col: FL001 [warning]
message``), as JSON (camelCase diagnostics per file) or, for the catalog, as a
Rich table.
"""

import json
from typing import Any, Dict, List, Sequence

from rich.table import Table

from framelint.core.diagnostics import AnalysisResult, Diagnostic
from framelint.enums import AnalysisStatus
from framelint.rules import Rule


def format_diagnostic(path: str, diagnostic: Diagnostic) -> str:
  """Formats one diagnostic as a single line."""
  return (
    f"{path}:{diagnostic.start_line}:{diagnostic.start_column}: "
    f"{diagnostic.rule_id} [{diagnostic.severity.value}] {diagnostic.message}"
  )


def render_text(results: Sequence[AnalysisResult]) -> List[str]:
  """
  Renders results as report lines.

  Failed and incomplete files contribute one line per error.
  """
  lines: List[str] = []
  for result in results:
    path = result.path or "<input>"
    for diagnostic in result.diagnostics:
      lines.append(format_diagnostic(path, diagnostic))
    if result.status != AnalysisStatus.COMPLETE:
      for error in result.errors:
        lines.append(f"{path}: {result.status.value}: {error}")
  return lines


def to_json(results: Sequence[AnalysisResult]) -> List[Dict[str, Any]]:
  """Serializes results with camelCase diagnostic keys."""
  return [
    {
      "path": result.path,
      "status": result.status.value,
      "diagnostics": [d.model_dump(mode="json", by_alias=True, exclude_none=True) for d in result.diagnostics],
      "errors": list(result.errors),
    }
    for result in results
  ]


def render_json(results: Sequence[AnalysisResult]) -> str:
  return json.dumps(to_json(results), indent=2)


def rules_table(catalog: Sequence[Rule]) -> Table:
  """
  Builds the catalog listing.

  Args:
      catalog: Rules to list, in catalog order.

  Returns:
      Table: Id, title and default severity per rule.
  """
  table = Table(title="framelint rules")
  table.add_column("Id", style="rule", no_wrap=True)
  table.add_column("Title")
  table.add_column("Severity")
  for rule in catalog:
    severity = rule.severity.value
    table.add_row(rule.id, rule.title, f"[severity.{severity}]{severity}[/severity.{severity}]")
  return table


def exit_code(results: Sequence[AnalysisResult]) -> int:
  """
  Computes the process exit code.

  Returns:
      int: 2 if any file failed or is incomplete, 1 if any diagnostics were
      reported, 0 otherwise.
  """
  if any(result.status != AnalysisStatus.COMPLETE for result in results):
    return 2
  if any(result.has_findings for result in results):
    return 1
  return 0
