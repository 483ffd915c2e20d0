"""
Diagnostic Model and Suppression Resolver.

This module defines the Pydantic models returned to the host, `Diagnostic`
and `AnalysisResult`, and the `SuppressionResolver` that turns the engine's
raw diagnostics into the final ordered sequence.

Resolution steps:

1.  Drop diagnostics whose rule is disabled in the configuration. A crash
    diagnostic is dropped when the rule that crashed is disabled.
2.  Drop diagnostics whose start line suppresses their rule id (host query).
3.  Apply configured severity overrides.
4.  Remove duplicate identities (rule id, span, subject).
5.  Sort by (start line, start column, rule id, subject).
"""

from typing import Callable, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from framelint.analysis.adapter import Span
from framelint.config import ResolvedConfig
from framelint.enums import AnalysisStatus, Severity

SuppressionQuery = Callable[[int, str], bool]
"""Host predicate: does line L suppress rule R."""


class Diagnostic(BaseModel):
  """
  One reported rule violation.

  Serializes with camelCase keys (``ruleId``, ``startLine`` ...) via
  ``model_dump(by_alias=True)``.
  """

  model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

  rule_id: str = Field(description="Catalog id of the rule (``FL001``).")
  severity: Severity = Field(description="Effective severity.")
  start_line: int
  start_column: int
  end_line: int
  end_column: int
  message: str
  fix_text: Optional[str] = Field(default=None, description="Suggested replacement, if derivable.")
  subject: str = Field(default="", description="Binding or argument the finding concerns.")

  @classmethod
  def at(
    cls,
    rule_id: str,
    severity: Severity,
    span: Span,
    message: str,
    fix_text: Optional[str] = None,
    subject: str = "",
  ) -> "Diagnostic":
    """Builds a diagnostic located at `span`."""
    return cls(
      rule_id=rule_id,
      severity=severity,
      start_line=span.start_line,
      start_column=span.start_column,
      end_line=span.end_line,
      end_column=span.end_column,
      message=message,
      fix_text=fix_text,
      subject=subject,
    )

  @property
  def span(self) -> Span:
    return Span(self.start_line, self.start_column, self.end_line, self.end_column)

  @property
  def identity(self) -> Tuple[str, int, int, int, int, str]:
    """Key under which no two reported diagnostics may collide."""
    return (self.rule_id, self.start_line, self.start_column, self.end_line, self.end_column, self.subject)

  @property
  def sort_key(self) -> Tuple[int, int, str, str]:
    return (self.start_line, self.start_column, self.rule_id, self.subject)


class AnalysisResult(BaseModel):
  """
  Structured result of analysing one file.
  """

  path: Optional[str] = Field(default=None, description="File the result belongs to, if any.")
  status: AnalysisStatus = Field(default=AnalysisStatus.COMPLETE, description="Whether analysis ran to completion.")
  diagnostics: List[Diagnostic] = Field(default_factory=list, description="Ordered diagnostics.")
  errors: List[str] = Field(default_factory=list, description="Adapter or deadline errors.")

  @property
  def complete(self) -> bool:
    """True if the whole file was analysed."""
    return self.status == AnalysisStatus.COMPLETE

  @property
  def has_findings(self) -> bool:
    return len(self.diagnostics) > 0


class SuppressionResolver:
  """
  Filters, deduplicates and orders raw diagnostics.
  """

  def __init__(
    self,
    config: Optional[ResolvedConfig] = None,
    suppressed: Optional[SuppressionQuery] = None,
    crash_rule_id: str = "",
  ):
    """
    Args:
        config: Rule enable flags and severity overrides (defaults: all on).
        suppressed: Host predicate for inline suppressions.
        crash_rule_id: Id of internal crash diagnostics; their `subject`
            names the rule that crashed.
    """
    self.config = config or ResolvedConfig()
    self.suppressed = suppressed
    self.crash_rule_id = crash_rule_id

  def _keep(self, diagnostic: Diagnostic) -> bool:
    if not self.config.is_enabled(diagnostic.rule_id):
      return False
    if self.crash_rule_id and diagnostic.rule_id == self.crash_rule_id:
      if not self.config.is_enabled(diagnostic.subject):
        return False
    if self.suppressed is not None and self.suppressed(diagnostic.start_line, diagnostic.rule_id):
      return False
    return True

  def resolve(self, raw: Iterable[Diagnostic]) -> List[Diagnostic]:
    """
    Produces the final diagnostic sequence.

    Args:
        raw: Diagnostics in traversal order.

    Returns:
        Kept diagnostics sorted by (start line, start column, rule id, subject).
    """
    seen = set()
    kept: List[Diagnostic] = []
    for diagnostic in raw:
      if not self._keep(diagnostic):
        continue
      if diagnostic.identity in seen:
        continue
      seen.add(diagnostic.identity)
      severity = self.config.severity_for(diagnostic.rule_id, diagnostic.severity)
      if severity != diagnostic.severity:
        diagnostic = diagnostic.model_copy(update={"severity": severity})
      kept.append(diagnostic)
    return sorted(kept, key=lambda d: d.sort_key)
