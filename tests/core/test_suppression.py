"""
Tests for inline suppression comments.
"""

import pytest

from framelint.core.suppression import ALL_RULES, InlineSuppressions, parse_comment


@pytest.mark.parametrize(
  "comment, expected",
  [
    ("# noqa", {ALL_RULES}),
    ("# NOQA", {ALL_RULES}),
    ("# noqa: FL001", {"FL001"}),
    ("# noqa: FL001, fl004", {"FL001", "FL004"}),
    ("# framelint: disable=FL006", {"FL006"}),
    ("# framelint: disable=FL006,FL007", {"FL006", "FL007"}),
    ("# regular comment", None),
    ("# noqanda", None),
  ],
)
def test_parse_comment(comment, expected):
  result = parse_comment(comment)
  if expected is None:
    assert result is None
  else:
    assert result == frozenset(expected)


def test_query_from_source():
  code = """x = 1
df.price  # noqa: FL001
df["n"] = 0  # framelint: disable=FL006
y = 2  # noqa
"""
  suppressed = InlineSuppressions.from_source(code)
  assert suppressed(2, "FL001")
  assert not suppressed(2, "FL003")
  assert suppressed(3, "FL006")
  assert suppressed(4, "FL005")
  assert not suppressed(1, "FL001")


def test_comment_lines_outside_statements():
  code = """def f(df):
    # noqa: FL007
    df["a"] = 1
    return df
"""
  suppressed = InlineSuppressions.from_source(code)
  assert suppressed(2, "FL007")
  assert not suppressed(3, "FL007")


def test_unparsable_source_has_no_suppressions():
  suppressed = InlineSuppressions.from_source("def broken(:  # noqa\n")
  assert not suppressed(1, "FL001")
