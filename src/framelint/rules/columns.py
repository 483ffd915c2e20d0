"""
Column and row selection rules.

* ``FL001``: columns read as attributes (``df.price``) instead of by subscript.
* ``FL003``: boolean masks applied with a bare subscript (``df[df.a > 1]``)
  instead of the explicit ``.loc`` row accessor.
"""

from typing import Iterator

from framelint.analysis.adapter import Role, ScriptNode
from framelint.analysis.dataflow import TrackerView
from framelint.analysis.patterns import RESERVED_ATTRIBUTES
from framelint.enums import NodeKind
from framelint.rules.base import Finding, root_name, text_of


def non_explicit_column_access(node: ScriptNode, view: TrackerView) -> Iterator[Finding]:
  """
  Flags ``frame.column`` where ``column`` is not a native frame attribute.

  Method calls are skipped: a column is never called.
  """
  if node.kind != NodeKind.ATTRIBUTE or node.role == Role.FUNC:
    return
  binding = view.frame_of(node.child(Role.RECEIVER))
  if binding is None:
    return
  attr = node.name or ""
  if not attr or attr.startswith("_") or attr in RESERVED_ATTRIBUTES:
    return
  selection = f'{binding.name}["{attr}"]'
  yield Finding(
    message=f"Column '{attr}' of frame '{binding.name}' is accessed as an attribute; use subscript selection {selection}",
    subject=binding.name,
    fix=selection,
  )


def _compares_frame(compare: ScriptNode, name: str) -> bool:
  operands = [compare.child(Role.LEFT), *compare.children_with(Role.COMPARATOR)]
  for operand in operands:
    root = root_name(operand)
    if root is not None and root.name == name:
      return True
  return False


def ambiguous_boolean_filter(node: ScriptNode, view: TrackerView) -> Iterator[Finding]:
  """
  Flags ``frame[<comparison on frame>]``.

  ``frame.loc[...]`` never matches because its receiver is the accessor, not
  the frame.
  """
  if node.kind != NodeKind.SUBSCRIPT:
    return
  binding = view.frame_of(node.child(Role.RECEIVER))
  index = node.child(Role.INDEX)
  if binding is None or index is None or index.kind != NodeKind.COMPARE:
    return
  if not _compares_frame(index, binding.name):
    return
  mask = text_of(index)
  yield Finding(
    message=f"Boolean filter on frame '{binding.name}' bypasses an explicit row accessor; use explicit row accessor {binding.name}.loc[...]",
    subject=binding.name,
    fix=f"{binding.name}.loc[{mask}]" if mask is not None else None,
  )
