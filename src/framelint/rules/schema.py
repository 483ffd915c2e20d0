"""
Schema contract rules.

* ``FL004``: a frame read from a source (or built from records) is used
  before its column set is pinned by an explicit selection.
* ``FL005``: a merge/join leaves its join type, keys or cardinality implicit.
"""

from typing import Iterator, Optional

from framelint.analysis.adapter import Role, ScriptNode
from framelint.analysis.dataflow import TrackerView
from framelint.analysis.patterns import (
  JOIN_CALLEES,
  MERGE_CALLEES,
  NON_FRAME_MERGE_RECEIVERS,
  callee_name,
  is_column_key,
  method_receiver,
)
from framelint.enums import NodeKind, Origin
from framelint.rules.base import Finding

_UNPINNED_ORIGINS = (Origin.READ, Origin.CONSTRUCTION)

_ARGUMENT_LABELS = {
  "how": "join type",
  "on": "join key",
  "validate": "cardinality validation",
}


def _use_point(node: ScriptNode) -> Optional[str]:
  """Describes how a NAME is used, if the use requires a pinned schema."""
  parent = node.parent
  if parent is None:
    return None
  if node.role == Role.ARG and parent.kind == NodeKind.CALL:
    return "a call argument"
  if node.role == Role.VALUE and parent.kind == NodeKind.KEYWORD:
    return "a call argument"
  if node.role == Role.VALUE and parent.kind == NodeKind.RETURN:
    return "a return value"
  if node.role == Role.RECEIVER and parent.kind == NodeKind.ATTRIBUTE:
    if parent.role == Role.FUNC and parent.name in MERGE_CALLEES | JOIN_CALLEES:
      return "a merge"
    return None
  if node.role == Role.RECEIVER and parent.kind == NodeKind.SUBSCRIPT and parent.role != Role.TARGET:
    if is_column_key(parent.child(Role.INDEX)):
      return "a column read"
  return None


def unpinned_schema(node: ScriptNode, view: TrackerView) -> Iterator[Finding]:
  """
  Flags uses of an unpinned Read/Construction frame.

  Pin with an explicit column list, e.g. ``x = x[["a", "b"]]``.
  """
  if node.kind != NodeKind.NAME:
    return
  binding = view.frame_of(node)
  if binding is None or binding.pinned or binding.origin not in _UNPINNED_ORIGINS:
    return
  use = _use_point(node)
  if use is None:
    return
  yield Finding(
    message=(
      f"Frame '{binding.name}' ({binding.origin.value}) reaches {use} before its columns are selected; "
      f"pin schema explicitly with {binding.name} = {binding.name}[[...]]"
    ),
    subject=binding.name,
  )


def unsafe_merge(node: ScriptNode, view: TrackerView) -> Iterator[Finding]:
  """
  Flags merge/join calls missing ``how``, a key argument or ``validate``,
  one finding per missing argument.
  """
  if node.kind != NodeKind.CALL:
    return
  callee = callee_name(node)
  receiver = method_receiver(node)
  if callee in JOIN_CALLEES:
    if not view.is_frame(receiver):
      return
  elif callee in MERGE_CALLEES:
    if receiver is not None and receiver.is_name() and receiver.name in NON_FRAME_MERGE_RECEIVERS:
      return
  else:
    return
  for argument in view.missing_merge_arguments(node):
    yield Finding(
      message=f"'{callee}' does not state its {_ARGUMENT_LABELS[argument]}; pass '{argument}=' explicitly",
      subject=argument,
    )
