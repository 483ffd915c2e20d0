"""
Tests for the Match Engine.

Covers:
1.  End-to-end scenarios over source text.
2.  Determinism and identity uniqueness of the output.
3.  Conservative branch handling for FL004 and FL007.
4.  Failure containment (rule crash), the deadline and adapter failures.
5.  Configuration errors reported once while valid entries still apply.
"""

import itertools
from typing import Iterator, List

from framelint import LintConfig, MatchEngine, lint_mapping, lint_source
from framelint.analysis.adapter import ScriptNode, adapt_source
from framelint.analysis.dataflow import TrackerView
from framelint.enums import AnalysisStatus, NodeKind, Severity
from framelint.rules import CATALOG, Finding, Rule


def rule_ids(code: str, **kwargs) -> List[str]:
  result = lint_source(code, **kwargs)
  assert result.complete, result.errors
  return [d.rule_id for d in result.diagnostics]


# --- Scenarios ---


def test_scenario_read_then_column_read():
  result = lint_source("x = read_source()\ny = x['col']\n")
  fl004 = [d for d in result.diagnostics if d.rule_id == "FL004"]
  assert len(fl004) == 1
  assert fl004[0].subject == "x"


def test_scenario_merge_contract():
  assert "FL005" not in rule_ids("z = a.merge(b, how='inner', on='k', validate='1:1')\n")
  assert rule_ids("z = a.merge(b)\n").count("FL005") == 3


def test_scenario_filler_column():
  assert rule_ids("df['n'] = 0\n") == ["FL006"]
  assert rule_ids("df['n'] = MISSING\n") == []


def test_scenario_parameter_mutation():
  code = "def f(df):\n    df['n'] = 1\n    return df\n"
  result = lint_source(code)
  assert [(d.rule_id, d.start_line) for d in result.diagnostics] == [("FL007", 2)]


def test_clean_script_is_complete_with_no_diagnostics():
  code = """
orders = pd.read_csv("orders.csv")
orders = orders[["id", "amount", "customer"]]
orders = orders.loc[orders["amount"] > 0]
orders["discount"] = pd.NA
summary = orders.merge(customers, how="left", on="customer", validate="m:1")
"""
  result = lint_source(code)
  assert result.status == AnalysisStatus.COMPLETE
  assert result.diagnostics == []
  assert not result.has_findings


# --- Output properties ---


def test_diagnostics_are_deterministic_and_ordered():
  code = """
df = pd.read_csv("a.csv")
df.dropna(inplace=True)
print(df.price)
big = df[df.price > 1]
z = df.merge(other)
"""
  root = adapt_source(code)
  engine = MatchEngine()
  first = engine.run(root).diagnostics
  second = engine.run(root).diagnostics
  assert first == second
  assert [d.sort_key for d in first] == sorted(d.sort_key for d in first)
  identities = [d.identity for d in first]
  assert len(identities) == len(set(identities))


def test_runs_do_not_share_bindings():
  engine = MatchEngine()
  engine.run(adapt_source("x = pd.read_csv('a')\n"))
  result = engine.run(adapt_source("save(x)\n"))
  assert result.diagnostics == []


# --- Control flow ---


def test_pinned_on_one_branch_only_is_not_trusted():
  code = """
x = pd.read_csv("a.csv")
if flag:
    x = x[["a", "b"]]
save(x)
"""
  assert "FL004" not in rule_ids(code)


def test_unpinned_on_every_path_still_fires():
  code = """
if flag:
    x = pd.read_csv("a.csv")
else:
    x = pd.read_csv("a.csv")
save(x)
"""
  assert rule_ids(code).count("FL004") == 1


def test_pinned_on_every_path_is_trusted():
  code = """
x = pd.read_csv("a.csv")
if flag:
    x = x[["a"]]
else:
    x = x[["a"]]
save(x)
"""
  assert "FL004" not in rule_ids(code)


def test_conditional_copy_suppresses_parameter_mutation():
  code = """
def f(df):
    if cond:
        df = df.copy()
    df["a"] = 1
    return df
"""
  assert "FL007" not in rule_ids(code)


def test_loop_and_try_bodies_are_visited():
  code = """
for path in paths:
    df.fillna(0, inplace=True)
while running:
    df["n"] = 0
try:
    z = a.merge(b, how="inner", on="k")
except ValueError:
    pass
finally:
    print(df.price)
"""
  ids = rule_ids(code)
  assert {"FL001", "FL002", "FL005", "FL006"} <= set(ids)


def test_loop_target_is_rebound():
  code = """
for df in items:
    df.price
"""
  assert "FL001" not in rule_ids(code)


def test_class_scope_is_isolated():
  code = """
class Loader:
    x = pd.read_csv("a.csv")
save(x)
"""
  assert "FL004" not in rule_ids(code)


# --- Failure containment ---


def crash_on_calls(node: ScriptNode, view: TrackerView) -> Iterator[Finding]:
  if node.kind == NodeKind.CALL:
    raise RuntimeError("boom")
  return iter(())


def test_rule_crash_is_contained():
  catalog = (Rule("FL999", "Crashing rule", crash_on_calls, Severity.WARNING), *CATALOG)
  root = adapt_source("print(df.price)\n")
  result = MatchEngine(catalog=catalog).run(root)

  assert result.complete
  crashes = [d for d in result.diagnostics if d.rule_id == "FL000"]
  assert len(crashes) == 1
  assert crashes[0].subject == "FL999"
  assert crashes[0].severity == Severity.ERROR
  assert "FL001" in [d.rule_id for d in result.diagnostics]


def test_crash_of_disabled_rule_is_dropped():
  catalog = (Rule("FL999", "Crashing rule", crash_on_calls, Severity.WARNING), *CATALOG)
  engine = MatchEngine(catalog=catalog, config=LintConfig(disable=["FL999"]))
  result = engine.run(adapt_source("print(df.price)\n"))
  assert "FL000" not in [d.rule_id for d in result.diagnostics]


def test_deadline_exceeded_is_incomplete():
  ticks = itertools.count()
  engine = MatchEngine(deadline_seconds=0.5, clock=lambda: float(next(ticks)))
  result = engine.run(adapt_source("df.price\ndf.amount\n"), path="slow.py")
  assert result.status == AnalysisStatus.INCOMPLETE
  assert result.diagnostics == []
  assert "deadline" in result.errors[0]


def test_deadline_from_config():
  engine = MatchEngine(config=LintConfig(deadline_seconds=30))
  assert engine.deadline_seconds == 30
  assert engine.run(adapt_source("df.price\n")).complete


def test_syntax_error_is_failed():
  result = lint_source("def broken(:\n", path="broken.py")
  assert result.status == AnalysisStatus.FAILED
  assert result.path == "broken.py"
  assert result.errors and "Syntax error" in result.errors[0]
  assert result.diagnostics == []


def test_malformed_mapping_is_failed():
  result = lint_mapping({"kind": "module"})
  assert result.status == AnalysisStatus.FAILED
  assert "span" in result.errors[0]


# --- Configuration ---


def test_unknown_rule_reported_once_and_rest_applied():
  engine = MatchEngine(config=LintConfig(disable=["FL999", "FL001"]))
  assert len(engine.config_errors) == 1
  assert engine.config_errors[0].key == "FL999"
  result = lint_source("df['n'] = df.total\ndf['m'] = 0\n", engine=engine)
  assert [d.rule_id for d in result.diagnostics] == ["FL006"]


def test_severity_override():
  config = LintConfig(rules={"FL006": {"severity": "error"}})
  result = lint_source("df['n'] = 0\n", config=config)
  assert result.diagnostics[0].severity == Severity.ERROR


def test_inline_suppression_keeps_other_rules():
  result = lint_source("big = df[df.a > 1]  # noqa: FL001\n")
  assert [d.rule_id for d in result.diagnostics] == ["FL003"]
