"""
Tests for the Diagnostic model and the Suppression Resolver.
"""

from framelint.analysis.adapter import Span
from framelint.config import ResolvedConfig
from framelint.core.diagnostics import AnalysisResult, Diagnostic, SuppressionResolver
from framelint.enums import AnalysisStatus, Severity


def make(rule_id: str = "FL001", line: int = 1, column: int = 1, subject: str = "", **kwargs) -> Diagnostic:
  span = Span(line, column, line, column + 4)
  return Diagnostic.at(rule_id, kwargs.pop("severity", Severity.WARNING), span, "message", subject=subject, **kwargs)


def test_camel_case_serialization():
  diagnostic = make(fix_text='df["a"]', subject="df")
  data = diagnostic.model_dump(mode="json", by_alias=True)
  assert data["ruleId"] == "FL001"
  assert data["startLine"] == 1
  assert data["endColumn"] == 5
  assert data["fixText"] == 'df["a"]'
  assert data["severity"] == "warning"


def test_parses_from_aliases():
  diagnostic = Diagnostic.model_validate(
    {
      "ruleId": "FL002",
      "severity": "error",
      "startLine": 3,
      "startColumn": 1,
      "endLine": 3,
      "endColumn": 9,
      "message": "m",
    }
  )
  assert diagnostic.rule_id == "FL002"
  assert diagnostic.span == Span(3, 1, 3, 9)
  assert diagnostic.fix_text is None


def test_result_flags():
  assert AnalysisResult().complete
  assert not AnalysisResult().has_findings
  assert not AnalysisResult(status=AnalysisStatus.INCOMPLETE).complete


def test_sorted_by_position_rule_and_subject():
  raw = [
    make("FL005", line=2, subject="validate"),
    make("FL005", line=2, subject="how"),
    make("FL001", line=2),
    make("FL004", line=1, column=7),
    make("FL006", line=1, column=1),
  ]
  resolved = SuppressionResolver().resolve(raw)
  assert [(d.start_line, d.rule_id, d.subject) for d in resolved] == [
    (1, "FL006", ""),
    (1, "FL004", ""),
    (2, "FL001", ""),
    (2, "FL005", "how"),
    (2, "FL005", "validate"),
  ]


def test_duplicate_identities_are_removed():
  raw = [make("FL004", subject="x"), make("FL004", subject="x"), make("FL004", subject="y")]
  resolved = SuppressionResolver().resolve(raw)
  assert [d.subject for d in resolved] == ["x", "y"]


def test_disabled_rules_are_dropped():
  config = ResolvedConfig(disabled=frozenset({"FL001"}))
  resolved = SuppressionResolver(config=config).resolve([make("FL001"), make("FL002")])
  assert [d.rule_id for d in resolved] == ["FL002"]


def test_suppression_query_is_consulted_per_line_and_rule():
  calls = []

  def suppressed(line: int, rule_id: str) -> bool:
    calls.append((line, rule_id))
    return line == 2 and rule_id == "FL001"

  raw = [make("FL001", line=2), make("FL003", line=2), make("FL001", line=3)]
  resolved = SuppressionResolver(suppressed=suppressed).resolve(raw)
  assert [(d.start_line, d.rule_id) for d in resolved] == [(2, "FL003"), (3, "FL001")]
  assert (2, "FL001") in calls


def test_severity_override_applies():
  config = ResolvedConfig(severities={"FL001": Severity.INFO})
  resolved = SuppressionResolver(config=config).resolve([make("FL001"), make("FL002")])
  assert [d.severity for d in resolved] == [Severity.INFO, Severity.WARNING]


def test_crash_diagnostic_follows_crashed_rule():
  config = ResolvedConfig(disabled=frozenset({"FL004"}))
  resolver = SuppressionResolver(config=config, crash_rule_id="FL000")
  raw = [make("FL000", subject="FL004"), make("FL000", line=2, subject="FL005")]
  assert [d.subject for d in resolver.resolve(raw)] == ["FL005"]
