"""
Mutation rules.

* ``FL002``: in-place mutation via ``inplace=True``, and calls whose
  non-mutating result is silently discarded.
* ``FL006``: new columns initialised with a filler literal instead of a
  missing-value sentinel.
* ``FL007``: a function that mutates a frame parameter and returns a frame.
"""

from typing import Iterator, List, Optional, Tuple

from framelint.analysis.adapter import Role, ScriptNode
from framelint.analysis.dataflow import TrackerView
from framelint.analysis.patterns import (
  INPLACE_CAPABLE_METHODS,
  INPLACE_KEYWORD,
  MISSING_SENTINEL,
  RESERVED_ATTRIBUTES,
  ROW_ACCESSORS,
  callee_name,
  is_column_key,
  is_filler_literal,
  method_receiver,
)
from framelint.enums import NodeKind, Origin
from framelint.rules.base import Finding, text_of


def _reassignment_fix(call: ScriptNode) -> Optional[str]:
  receiver = text_of(method_receiver(call))
  func = text_of(call.child(Role.FUNC))
  if receiver is None or func is None:
    return None
  args: List[str] = []
  for child in call.children:
    if child.role == Role.ARG:
      text = text_of(child)
      if text is None:
        return None
      args.append(f"{child.attrs.get('star', '')}{text}")
    elif child.kind == NodeKind.KEYWORD and child.name != INPLACE_KEYWORD:
      text = text_of(child.child(Role.VALUE))
      if text is None:
        return None
      args.append(f"{child.name}={text}")
  return f"{receiver} = {func}({', '.join(args)})"


def inplace_mutation(node: ScriptNode, view: TrackerView) -> Iterator[Finding]:
  """
  Flags ``x.method(..., inplace=True)`` and discarded results of frame methods
  that only mutate when asked to (``df.dropna()`` as a bare statement).
  """
  if node.kind != NodeKind.CALL:
    return
  method = view.inplace_method(node)
  if method is not None:
    yield Finding(
      message=f"'{method}' mutates its receiver with inplace=True; use reassignment",
      subject=method,
      fix=_reassignment_fix(node),
    )
    return

  if node.role != Role.EXPR:
    return
  method = callee_name(node)
  if method not in INPLACE_CAPABLE_METHODS or not view.is_frame(method_receiver(node)):
    return
  yield Finding(
    message=f"Result of '{method}' is discarded and the frame is left unchanged; use reassignment",
    subject=method,
    fix=_reassignment_fix(node),
  )


def _assigned_column(target: ScriptNode) -> Optional[Tuple[ScriptNode, str]]:
  """
  The frame name and column label of a column assignment target.

  Matches ``frame["col"]`` and ``frame.loc[:, "col"]``.
  """
  if target.kind != NodeKind.SUBSCRIPT:
    return None
  receiver = target.child(Role.RECEIVER)
  index = target.child(Role.INDEX)
  if receiver is None or index is None:
    return None
  if receiver.kind == NodeKind.NAME and is_column_key(index):
    return receiver, index.literal
  if receiver.kind == NodeKind.ATTRIBUTE and receiver.name == "loc":
    frame = receiver.child(Role.RECEIVER)
    if frame is None or frame.kind != NodeKind.NAME:
      return None
    if index.kind == NodeKind.SEQUENCE and len(index.children) == 2 and is_column_key(index.children[1]):
      return frame, index.children[1].literal
  return None


def filler_new_column(node: ScriptNode, view: TrackerView) -> Iterator[Finding]:
  """
  Flags ``frame["col"] = 0`` (or ``0.0``, ``""``).
  """
  if node.kind != NodeKind.ASSIGNMENT or node.tag == "AugAssign":
    return
  value = node.child(Role.VALUE)
  if value is None or not is_filler_literal(value):
    return
  shown = text_of(value) or repr(value.literal)
  for target in node.children_with(Role.TARGET):
    column = _assigned_column(target)
    if column is None:
      continue
    frame, label = column
    binding = view.frame_of(frame)
    if binding is None:
      continue
    yield Finding(
      message=f"New column '{label}' of frame '{binding.name}' is filled with {shown}; use missing-value sentinel {MISSING_SENTINEL}",
      subject=label,
      fix=f'{binding.name}["{label}"] = {MISSING_SENTINEL}',
      span=target.span,
    )


def _mutated_frame(target: ScriptNode) -> Optional[ScriptNode]:
  """
  The frame name a target writes into (``df`` in ``df["a"] = ...``,
  ``df.loc[m, "a"] = ...`` and ``df.a = ...``).
  """
  if target.kind == NodeKind.SUBSCRIPT:
    receiver = target.child(Role.RECEIVER)
    if receiver is not None and receiver.kind == NodeKind.ATTRIBUTE and receiver.name in ROW_ACCESSORS:
      receiver = receiver.child(Role.RECEIVER)
    if receiver is not None and receiver.kind == NodeKind.NAME:
      return receiver
  elif target.kind == NodeKind.ATTRIBUTE and target.name not in RESERVED_ATTRIBUTES:
    receiver = target.child(Role.RECEIVER)
    if receiver is not None and receiver.kind == NodeKind.NAME:
      return receiver
  return None


def frame_parameter_mutation(node: ScriptNode, view: TrackerView) -> Iterator[Finding]:
  """
  Flags column assignment on a frame parameter inside a function that
  returns a frame. The parameter must still be bound to the caller's object.
  """
  if node.kind != NodeKind.ASSIGNMENT:
    return
  summary = view.function
  if summary is None or not summary.returns_frame:
    return
  for target in node.children_with(Role.TARGET):
    frame = _mutated_frame(target)
    if frame is None:
      continue
    binding = view.local(frame.name)
    if binding is None or binding.origin != Origin.PARAMETER:
      continue
    yield Finding(
      message=(
        f"Frame parameter '{binding.name}' of '{summary.name}' is mutated and a frame is returned; "
        "avoid mutating and returning frame parameters"
      ),
      subject=binding.name,
      fix=f"{binding.name} = {binding.name}.copy()",
      span=target.span,
    )
