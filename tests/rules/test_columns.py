"""
Tests for column and row selection rules (FL001, FL003).
"""

from typing import List

from framelint import Diagnostic, LintConfig, lint_source


def findings(code: str, rule_id: str) -> List[Diagnostic]:
  """Runs a single rule over `code`."""
  result = lint_source(code, config=LintConfig(select=[rule_id]))
  assert result.complete, result.errors
  return result.diagnostics


# --- FL001 Non-explicit column access ---


def test_attribute_column_on_read_frame():
  code = """
sales = pd.read_csv("sales.csv")
total = sales.price * 2
"""
  diags = findings(code, "FL001")
  assert len(diags) == 1
  assert diags[0].rule_id == "FL001"
  assert diags[0].fix_text == 'sales["price"]'
  assert "subscript selection" in diags[0].message
  assert (diags[0].start_line, diags[0].start_column) == (3, 9)


def test_attribute_column_on_conventional_name():
  diags = findings("print(df.amount)\n", "FL001")
  assert [d.subject for d in diags] == ["df"]


def test_methods_and_reserved_attributes_are_ignored():
  code = """
df = pd.read_csv("a.csv")
df.shape
df.columns
df.groupby("k").sum()
df.loc[0]
df._private
"""
  assert findings(code, "FL001") == []


def test_non_frame_receiver_is_ignored():
  code = """
config = load()
config.price
"""
  assert findings(code, "FL001") == []


def test_rebound_name_is_no_longer_a_frame():
  code = """
df = compute()
df.price
"""
  assert findings(code, "FL001") == []


# --- FL003 Ambiguous boolean filtering ---


def test_bare_boolean_mask():
  diags = findings("big = df[df.amount > 100]\n", "FL003")
  assert len(diags) == 1
  assert diags[0].fix_text == "df.loc[df.amount > 100]"
  assert "explicit row accessor" in diags[0].message


def test_mask_with_subscript_operand():
  diags = findings('big = df[df["amount"] > 100]\n', "FL003")
  assert len(diags) == 1


def test_loc_mask_is_accepted():
  assert findings("big = df.loc[df.amount > 100]\n", "FL003") == []


def test_comparison_on_other_variable_is_ignored():
  assert findings("big = df[limit > 100]\n", "FL003") == []
