"""
Tests for mutation rules (FL002, FL006, FL007).
"""

from typing import List

import pytest

from framelint import Diagnostic, LintConfig, lint_source
from framelint.enums import Severity


def findings(code: str, rule_id: str) -> List[Diagnostic]:
  """Runs a single rule over `code`."""
  result = lint_source(code, config=LintConfig(select=[rule_id]))
  assert result.complete, result.errors
  return result.diagnostics


# --- FL002 In-place mutation ---


def test_inplace_true_is_flagged_with_reassignment_fix():
  diags = findings("df.fillna(0, inplace=True)\n", "FL002")
  assert len(diags) == 1
  assert diags[0].fix_text == "df = df.fillna(0)"
  assert "use reassignment" in diags[0].message


def test_inplace_true_on_any_receiver():
  diags = findings("orders.drop(columns=['a'], inplace=True)\n", "FL002")
  assert len(diags) == 1
  assert diags[0].fix_text == "orders = orders.drop(columns=['a'])"


def test_discarded_result_of_frame_method():
  diags = findings("df.sort_values('a')\n", "FL002")
  assert len(diags) == 1
  assert "discarded" in diags[0].message
  assert diags[0].fix_text == "df = df.sort_values('a')"


def test_reassigned_result_is_accepted():
  code = """
df = df.sort_values("a")
df = df.dropna()
"""
  assert findings(code, "FL002") == []


def test_discarded_result_on_non_frame_is_ignored():
  assert findings("items.sort_values('a')\n", "FL002") == []


# --- FL006 Filler value for new column ---


@pytest.mark.parametrize("filler", ["0", "0.0", '""'])
def test_filler_literal_is_flagged(filler):
  diags = findings(f'df["n"] = {filler}\n', "FL006")
  assert len(diags) == 1
  assert diags[0].fix_text == 'df["n"] = pd.NA'
  assert diags[0].subject == "n"
  assert "missing-value sentinel" in diags[0].message


def test_sentinel_and_real_values_are_accepted():
  code = """
df["n"] = pd.NA
df["m"] = MISSING
df["k"] = 1
df["flag"] = False
"""
  assert findings(code, "FL006") == []


def test_chained_filler_assignment_locates_each_target():
  diags = findings("df['a'] = df['b'] = 0\n", "FL006")
  assert [(d.subject, d.start_column, d.end_column) for d in diags] == [("a", 1, 8), ("b", 11, 18)]
  assert len({d.span for d in diags}) == 2


def test_loc_column_assignment_is_flagged():
  diags = findings('df.loc[:, "n"] = 0\n', "FL006")
  assert len(diags) == 1


def test_non_frame_target_is_ignored():
  assert findings('counts["n"] = 0\n', "FL006") == []


# --- FL007 Frame parameter mutation ---


def test_parameter_mutated_and_returned():
  code = """
def add_total(df):
    df["total"] = 1
    return df
"""
  diags = findings(code, "FL007")
  assert len(diags) == 1
  assert diags[0].severity == Severity.ERROR
  assert diags[0].start_line == 3
  assert diags[0].fix_text == "df = df.copy()"


def test_annotated_parameter():
  code = """
def enrich(data: pd.DataFrame) -> pd.DataFrame:
    data.loc[data.a > 0, "b"] = 1
    return data.dropna()
"""
  diags = findings(code, "FL007")
  assert [d.subject for d in diags] == ["data"]


def test_copy_before_mutation_is_accepted():
  code = """
def add_total(df):
    df = df.copy()
    df["total"] = 1
    return df
"""
  assert findings(code, "FL007") == []


def test_function_without_frame_return_is_accepted():
  code = """
def add_total(df):
    df["total"] = 1
"""
  assert findings(code, "FL007") == []


def test_nested_function_does_not_see_outer_parameter_as_local():
  code = """
def outer(df):
    def inner(frame):
        df["a"] = 1
        return frame
    return df
"""
  assert findings(code, "FL007") == []


def test_chained_parameter_mutation_locates_each_target():
  code = """
def widen(df, other: pd.DataFrame):
    df["a"] = other["a"] = 1
    return df
"""
  diags = findings(code, "FL007")
  assert [(d.subject, d.start_column) for d in diags] == [("df", 5), ("other", 15)]
