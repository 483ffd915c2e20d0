"""
Batch Runner.

Collects Python files from paths and analyses them. Files are independent, so
they are analysed in parallel with a thread pool sharing one `MatchEngine`
(each run builds its own tracker). Results are returned in path order
regardless of completion order.
"""

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, List, Optional

from rich.markup import escape

from framelint.config import LintConfig
from framelint.core.diagnostics import AnalysisResult
from framelint.core.engine import MatchEngine, lint_source
from framelint.enums import AnalysisStatus
from framelint.utils.console import log_error


def collect_files(paths: Iterable[Path]) -> List[Path]:
  """
  Expands directories into their ``*.py`` files.

  Args:
      paths: Files and directories, in command line order.

  Returns:
      Files in input order; each directory contributes its files sorted.
  """
  files: List[Path] = []
  seen = set()
  for path in paths:
    candidates = sorted(path.rglob("*.py")) if path.is_dir() else [path]
    for candidate in candidates:
      if candidate not in seen:
        seen.add(candidate)
        files.append(candidate)
  return files


def lint_file(path: Path, engine: MatchEngine) -> AnalysisResult:
  """
  Reads and analyses one file.

  Returns:
      AnalysisResult: ``failed`` if the file cannot be read or parsed.
  """
  try:
    code = path.read_text("utf-8")
  except (OSError, UnicodeDecodeError) as e:
    log_error(f"Failed to read [path]{escape(str(path))}[/path]: {escape(str(e))}")
    return AnalysisResult(path=str(path), status=AnalysisStatus.FAILED, errors=[str(e)])
  return lint_source(code, path=str(path), engine=engine)


def lint_paths(
  paths: Iterable[Path],
  config: Optional[LintConfig] = None,
  jobs: Optional[int] = None,
  engine: Optional[MatchEngine] = None,
) -> List[AnalysisResult]:
  """
  Analyses every Python file under `paths`.

  Args:
      paths: Files and directories.
      config: Configuration for the shared engine.
      jobs: Worker threads (defaults to ``config.jobs``).
      engine: Engine to use instead of building one from `config`.

  Returns:
      One result per file, in path order.
  """
  config = config or LintConfig()
  engine = engine or MatchEngine(config=config)
  files = collect_files(paths)
  workers = jobs or config.jobs

  if workers <= 1 or len(files) <= 1:
    return [lint_file(f, engine) for f in files]

  with ThreadPoolExecutor(max_workers=workers) as executor:
    futures = [executor.submit(lint_file, f, engine) for f in files]
    return [future.result() for future in futures]
