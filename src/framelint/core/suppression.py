"""
Inline Suppression Comments.

The core only asks "does line L suppress rule R". This module is the default
answer, built from the comments of a LibCST module:

* ``# noqa``: suppresses every rule on the line.
* ``# noqa: FL001, FL004``: suppresses the listed rules.
* ``# framelint: disable=FL006``: suppresses the listed rules.
"""

import re
from typing import Dict, FrozenSet, Optional

import libcst as cst
from libcst.metadata import MetadataWrapper, PositionProvider

_NOQA = re.compile(r"#\s*noqa\b(?::\s*(?P<codes>[A-Za-z]+[0-9]+(?:\s*,\s*[A-Za-z]+[0-9]+)*))?", re.IGNORECASE)
_DISABLE = re.compile(r"#\s*framelint:\s*disable=(?P<codes>[A-Za-z]+[0-9]+(?:\s*,\s*[A-Za-z]+[0-9]+)*)")

ALL_RULES = "*"


def parse_comment(text: str) -> Optional[FrozenSet[str]]:
  """
  Extracts the rule ids a comment suppresses.

  Args:
      text: The comment, including the leading ``#``.

  Returns:
      A set of rule ids (``{"*"}`` for a bare ``noqa``), or None if the
      comment is not a suppression.
  """
  codes = set()
  matched = False
  for pattern in (_DISABLE, _NOQA):
    for match in pattern.finditer(text):
      matched = True
      listed = match.group("codes")
      if listed:
        codes.update(code.strip().upper() for code in listed.split(","))
      else:
        codes.add(ALL_RULES)
  return frozenset(codes) if matched else None


class _CommentCollector(cst.CSTVisitor):
  METADATA_DEPENDENCIES = (PositionProvider,)

  def __init__(self) -> None:
    self.by_line: Dict[int, set] = {}

  def visit_Comment(self, node: cst.Comment) -> None:
    codes = parse_comment(node.value)
    if codes is None:
      return
    line = self.get_metadata(PositionProvider, node).start.line
    self.by_line.setdefault(line, set()).update(codes)


class InlineSuppressions:
  """
  Suppression query over the comments of one file. Instances are callable
  as ``(line, rule_id) -> bool``.
  """

  def __init__(self, by_line: Optional[Dict[int, FrozenSet[str]]] = None):
    self.by_line: Dict[int, FrozenSet[str]] = dict(by_line or {})

  @classmethod
  def from_module(cls, module: cst.Module) -> "InlineSuppressions":
    """Collects suppression comments from a parsed module."""
    collector = _CommentCollector()
    MetadataWrapper(module).visit(collector)
    return cls({line: frozenset(codes) for line, codes in collector.by_line.items()})

  @classmethod
  def from_source(cls, code: str) -> "InlineSuppressions":
    """
    Collects suppression comments from source text.

    Unparsable source yields no suppressions; the adapter reports the error.
    """
    try:
      module = cst.parse_module(code)
    except cst.ParserSyntaxError:
      return cls()
    return cls.from_module(module)

  def __call__(self, line: int, rule_id: str) -> bool:
    codes = self.by_line.get(line)
    if not codes:
      return False
    return ALL_RULES in codes or rule_id in codes
