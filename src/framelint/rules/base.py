"""
Rule and Finding definitions.

A `Rule` pairs an identifier and default severity with a pure matcher
function. Matchers receive the current node and a read-only `TrackerView`
and yield zero or more `Finding`s; they keep no state of their own, so the
order of the catalog never changes the result.
"""

from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from framelint.analysis.adapter import Role, ScriptNode, Span
from framelint.analysis.dataflow import TrackerView
from framelint.enums import NodeKind, Severity


@dataclass(frozen=True)
class Finding:
  """
  One violation produced by a matcher at the node it was invoked on.

  Attributes:
      message: Human readable description.
      subject: The binding or argument the finding concerns.
      fix: Suggested replacement text, when one can be derived from source.
      span: Location of the finding when narrower than the node (one target
          of a chained assignment); None means the node's span.
  """

  message: str
  subject: str = ""
  fix: Optional[str] = None
  span: Optional[Span] = None


Matcher = Callable[[ScriptNode, TrackerView], Iterator[Finding]]


@dataclass(frozen=True)
class Rule:
  """
  A catalog entry.

  Attributes:
      id: Stable identifier (``FL001``).
      title: Short title shown in listings.
      matcher: Pure function from (node, tracker view) to findings.
      severity: Default severity.
  """

  id: str
  title: str
  matcher: Matcher
  severity: Severity

  def match(self, node: ScriptNode, view: TrackerView) -> Iterator[Finding]:
    """Runs the matcher on one node."""
    return iter(self.matcher(node, view))


def text_of(node: Optional[ScriptNode]) -> Optional[str]:
  """Source text of a node for fix suggestions, or None without source."""
  if node is None:
    return None
  return node.text


def root_name(node: Optional[ScriptNode]) -> Optional[ScriptNode]:
  """
  The NAME at the root of an access chain.

  ``df`` for ``df``, ``df["a"]``, ``df.a.str.len()``; None for anything else.
  """
  while node is not None:
    if node.kind == NodeKind.NAME:
      return node
    if node.kind in (NodeKind.ATTRIBUTE, NodeKind.SUBSCRIPT):
      node = node.child(Role.RECEIVER)
    elif node.kind == NodeKind.CALL:
      node = node.child(Role.FUNC)
    else:
      return None
  return None
