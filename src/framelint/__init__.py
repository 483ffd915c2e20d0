"""
framelint Package.

A rule-based static analyser for Python scripts that manipulate tabular data
frames (pandas-style). It flags fragile idioms: attribute column access,
in-place mutation, unpinned schemas, merges without explicit contracts, filler
literals for new columns and mutation of frame arguments.

Usage
-----

Simple String Check
^^^^^^^^^^^^^^^^^^^

.. code-block:: python

    import framelint
    for diagnostic in framelint.check("df = pd.read_csv('a.csv')\\ndf.price"):
        print(diagnostic.rule_id, diagnostic.message)

Advanced Usage (Match Engine)
^^^^^^^^^^^^^^^^^^^^^^^^^^^^^

.. code-block:: python

    from framelint import LintConfig, MatchEngine, lint_source

    engine = MatchEngine(config=LintConfig(disable=["FL003"]), deadline_seconds=5)
    result = lint_source(code, path="etl.py", engine=engine)

    if result.complete:
        print(result.diagnostics)
    else:
        print(f"Errors: {result.errors}")
"""

from typing import List, Optional

from framelint.config import LintConfig
from framelint.core.diagnostics import AnalysisResult, Diagnostic
from framelint.core.engine import MatchEngine, lint_mapping, lint_source

__version__ = "0.0.1"


def check(
  code: str,
  select: Optional[List[str]] = None,
  ignore: Optional[List[str]] = None,
) -> List[Diagnostic]:
  """
  Analyses a string of Python code with the full rule catalog.

  This is a high-level convenience wrapper around `MatchEngine`. For files and
  batch runs, use `framelint.cli` or `lint_source` with a shared engine.

  Args:
      code (str): The source code to analyse.
      select (list, optional): Only report these rule ids.
      ignore (list, optional): Rule ids to drop.

  Returns:
      List[Diagnostic]: Ordered diagnostics (possibly empty).

  Raises:
      ValueError: If the code cannot be analysed (e.g. syntax errors).
  """
  config = LintConfig(select=select, disable=ignore or [])
  result = lint_source(code, config=config)

  if not result.complete:
    error_msg = "\n".join(result.errors)
    raise ValueError(f"Analysis failed:\n{error_msg}")

  return result.diagnostics


__all__ = [
  "AnalysisResult",
  "Diagnostic",
  "LintConfig",
  "MatchEngine",
  "check",
  "lint_mapping",
  "lint_source",
  "__version__",
]
