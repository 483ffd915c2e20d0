"""
Frame Provenance Tracking with Control Flow Support.

This module answers the questions the rules ask about a binding: is this
expression currently a frame, has its schema been pinned, does the enclosing
function return a frame. It does so without type inference:

1.  **Classification**: `classify_origin` matches call, attribute and
    subscript shapes against the tables in `framelint.analysis.patterns`.
    Shapes that match nothing are `Origin.UNKNOWN` and never trigger a rule.
2.  **Scopes**: `ScopeState` maps names to their latest `FrameBinding` and
    links to the enclosing scope; lookups walk the chain.
3.  **Control Flow**: `DataflowTracker.on_branch` evaluates every arm from a
    snapshot of the pre-branch state, then keeps only the facts true on every
    path. A name bound differently on any path becomes Unknown and unpinned.

Bindings are immutable. Reassignment replaces the binding; nothing updates a
binding in place.
"""

from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, Iterator, List, Optional, Sequence, Tuple

from framelint.analysis.adapter import Role, ScriptNode
from framelint.analysis import patterns
from framelint.enums import NodeKind, Origin


@dataclass(frozen=True)
class FrameBinding:
  """
  What is known about the value bound to a name.
  """

  name: str
  origin: Origin
  pinned: bool = False

  @property
  def is_frame(self) -> bool:
    """True unless the origin is Unknown."""
    return self.origin != Origin.UNKNOWN


@dataclass(frozen=True)
class Classification:
  """Origin and pinned state of an expression."""

  origin: Origin
  pinned: bool = False

  @property
  def is_frame(self) -> bool:
    return self.origin != Origin.UNKNOWN


UNKNOWN = Classification(Origin.UNKNOWN)

NameResolver = Callable[[str], Optional[FrameBinding]]


@dataclass(frozen=True)
class FunctionSummary:
  """
  Facts about a function gathered when its scope is entered.

  Attributes:
      name: Function name.
      parameters: Parameter names in declaration order.
      frame_parameters: Parameters classified as frames (by annotation or name).
      returns_frame: True if any return statement yields a frame.
  """

  name: str
  parameters: Tuple[str, ...]
  frame_parameters: FrozenSet[str]
  returns_frame: bool


class ScopeState:
  """
  Bindings of one lexical scope (module, class or function).
  """

  def __init__(
    self,
    parent: Optional["ScopeState"] = None,
    name: str = "<module>",
    summary: Optional[FunctionSummary] = None,
  ):
    """
    Args:
        parent: The enclosing scope (None for the module).
        name: Debug name for the scope.
        summary: Function facts when this is a function scope.
    """
    self.parent = parent
    self.name = name
    self.summary = summary
    self.bindings: Dict[str, FrameBinding] = {}

  def get(self, name: str) -> Optional[FrameBinding]:
    """Resolves a name, walking parent scopes."""
    if name in self.bindings:
      return self.bindings[name]
    if self.parent:
      return self.parent.get(name)
    return None

  def local(self, name: str) -> Optional[FrameBinding]:
    """Resolves a name in this scope only."""
    return self.bindings.get(name)

  def set(self, binding: FrameBinding) -> None:
    """Creates or replaces the binding of `binding.name`."""
    self.bindings[binding.name] = binding

  def snapshot(self) -> Dict[str, FrameBinding]:
    """Returns a shallow copy of the bindings for branching."""
    return self.bindings.copy()

  def restore(self, state: Dict[str, FrameBinding]) -> None:
    """Replaces the bindings with a copy of `state`."""
    self.bindings = state.copy()


def merge_states(states: Sequence[Dict[str, FrameBinding]]) -> Dict[str, FrameBinding]:
  """
  Merges the binding maps reached along alternative paths.

  A binding survives only if every path holds the identical binding. Any
  disagreement, including a name missing on some path, yields an Unknown,
  unpinned binding.

  Args:
      states: One binding map per path.

  Returns:
      The merged map.
  """
  merged: Dict[str, FrameBinding] = {}
  names = set()
  for state in states:
    names.update(state)
  for name in sorted(names):
    candidates = [state.get(name) for state in states]
    first = candidates[0]
    if first is not None and all(candidate == first for candidate in candidates):
      merged[name] = first
    else:
      merged[name] = FrameBinding(name, Origin.UNKNOWN)
  return merged


def frame_facts(node: Optional[ScriptNode], resolve: NameResolver) -> Optional[Classification]:
  """
  Classifies an expression and returns the result only if it is a frame.
  """
  if node is None:
    return None
  facts = classify_origin(node, resolve)
  return facts if facts.is_frame else None


def classify_origin(node: ScriptNode, resolve: NameResolver) -> Classification:
  """
  Classifies the value an expression produces.

  Args:
      node: The expression.
      resolve: Looks up the frame binding of a name (None if not a frame).

  Returns:
      The origin and pinned state; `UNKNOWN` for unrecognized shapes.
  """
  if node.kind == NodeKind.NAME:
    binding = resolve(node.name)
    if binding is None:
      return UNKNOWN
    return Classification(binding.origin, binding.pinned)
  if node.kind == NodeKind.CALL:
    return _classify_call(node, resolve)
  if node.kind == NodeKind.SUBSCRIPT:
    return _classify_subscript(node, resolve)
  return UNKNOWN


def _classify_call(node: ScriptNode, resolve: NameResolver) -> Classification:
  callee = patterns.callee_name(node)
  if callee is None:
    return UNKNOWN
  receiver = frame_facts(patterns.method_receiver(node), resolve)

  for pattern in patterns.ORIGIN_TABLE:
    if not pattern.matches(callee):
      continue
    if pattern.frame_receiver and receiver is None:
      continue
    if pattern.library_receiver and not patterns.is_library_call(node):
      continue
    return Classification(pattern.origin)

  if receiver is not None and callee in patterns.FRAME_RETURNING_METHODS:
    if patterns.is_true_literal(patterns.keyword_value(node, patterns.INPLACE_KEYWORD)):
      return UNKNOWN
    return Classification(Origin.DERIVED, receiver.pinned)
  return UNKNOWN


def _classify_subscript(node: ScriptNode, resolve: NameResolver) -> Classification:
  receiver = node.child(Role.RECEIVER)
  index = node.child(Role.INDEX)
  if receiver is None or index is None:
    return UNKNOWN

  if receiver.kind == NodeKind.ATTRIBUTE and receiver.name in patterns.ROW_ACCESSORS:
    base = frame_facts(receiver.child(Role.RECEIVER), resolve)
    if base is None or receiver.name in ("at", "iat"):
      return UNKNOWN
    if index.kind == NodeKind.SEQUENCE and index.tag == "Tuple" and len(index.children) == 2:
      columns = index.children[1]
      if patterns.is_column_list(columns):
        return Classification(Origin.SELECTION, pinned=True)
      if columns.kind == NodeKind.LITERAL:
        return UNKNOWN
    return Classification(Origin.DERIVED, base.pinned)

  base = frame_facts(receiver, resolve)
  if base is None:
    return UNKNOWN
  if patterns.is_column_list(index):
    return Classification(Origin.SELECTION, pinned=True)
  if index.kind == NodeKind.COMPARE:
    return Classification(Origin.DERIVED, base.pinned)
  return UNKNOWN


def _local_nodes(function: ScriptNode) -> Iterator[ScriptNode]:
  """Pre-order walk of a function body that does not enter nested scopes."""
  stack = list(reversed(function.children_with(Role.BODY)))
  while stack:
    node = stack.pop()
    yield node
    if node.kind in (NodeKind.FUNCTION_DEF, NodeKind.CLASS_DEF):
      continue
    stack.extend(reversed(node.children))


def summarize_function(function: ScriptNode, outer: NameResolver) -> FunctionSummary:
  """
  Collects the parameter and return facts of a function.

  The return analysis is flow-insensitive: a name counts as a frame if any
  assignment in the body binds it to a frame-producing expression.

  Args:
      function: A FUNCTION_DEF node.
      outer: Resolver for names of enclosing scopes.

  Returns:
      The function summary.
  """
  parameters = tuple(
    p.name for p in function.children_with(Role.PARAM) if p.name is not None and p.name not in ("self", "cls")
  )
  frame_parameters = frozenset(
    p.name
    for p in function.children_with(Role.PARAM)
    if p.name in parameters
    and not p.attrs.get("star")
    and (patterns.annotation_names_frame(p.child(Role.ANNOTATION)) or patterns.looks_like_frame_name(p.name))
  )

  local: Dict[str, FrameBinding] = {}
  for name in parameters:
    origin = Origin.PARAMETER if name in frame_parameters else Origin.UNKNOWN
    local[name] = FrameBinding(name, origin)

  def resolve(name: str) -> Optional[FrameBinding]:
    if name in local:
      binding = local[name]
      return binding if binding.is_frame else None
    return outer(name)

  returns_frame = False
  for node in _local_nodes(function):
    if node.kind == NodeKind.ASSIGNMENT and node.tag != "AugAssign":
      value = node.child(Role.VALUE)
      facts = classify_origin(value, resolve) if value is not None else UNKNOWN
      for target in node.children_with(Role.TARGET):
        if target.kind == NodeKind.NAME:
          local[target.name] = FrameBinding(target.name, facts.origin, facts.pinned)
    elif node.kind == NodeKind.RETURN:
      value = node.child(Role.VALUE)
      if value is not None and classify_origin(value, resolve).is_frame:
        returns_frame = True

  return FunctionSummary(
    name=function.name or "<lambda>",
    parameters=parameters,
    frame_parameters=frame_parameters,
    returns_frame=returns_frame,
  )


class DataflowTracker:
  """
  Scoped frame bindings driven incrementally by the match engine.
  """

  def __init__(self):
    """Initializes the tracker with an empty module scope."""
    self.root = ScopeState(name="<module>")
    self.current = self.root

  # --- Scoping ---

  def enter_scope(self, name: str, summary: Optional[FunctionSummary] = None) -> ScopeState:
    """Pushes a new scope whose parent is the current scope."""
    self.current = ScopeState(parent=self.current, name=name, summary=summary)
    return self.current

  def exit_scope(self) -> None:
    """Pops the current scope."""
    if self.current.parent:
      self.current = self.current.parent

  def enter_function(self, function: ScriptNode) -> ScopeState:
    """
    Enters a function scope and binds its parameters.

    Frame parameters are bound with origin ParameterPassthrough; the others
    are bound Unknown so that naming conventions no longer apply to them.
    """
    summary = summarize_function(function, self.resolve_frame)
    scope = self.enter_scope(function.name or "<lambda>", summary)
    for name in summary.parameters:
      origin = Origin.PARAMETER if name in summary.frame_parameters else Origin.UNKNOWN
      self.record_binding(name, origin)
    return scope

  # --- Bindings ---

  def record_binding(self, name: str, origin: Origin, pinned: bool = False) -> FrameBinding:
    """Creates or replaces a binding in the current scope."""
    binding = FrameBinding(name, origin, pinned)
    self.current.set(binding)
    return binding

  def lookup(self, name: str) -> Optional[FrameBinding]:
    """The binding of a name visible from the current scope, if any."""
    return self.current.get(name)

  def resolve_frame(self, name: str) -> Optional[FrameBinding]:
    """
    The frame binding of a name.

    Returns:
        The binding if it is a frame; a Convention binding if the name is
        unbound but follows frame naming; otherwise None.
    """
    binding = self.current.get(name)
    if binding is not None:
      return binding if binding.is_frame else None
    if patterns.looks_like_frame_name(name):
      return FrameBinding(name, Origin.CONVENTION)
    return None

  def bind_assignment(self, assignment: ScriptNode) -> None:
    """
    Records the bindings an assignment creates.

    Plain names take the classification of the value. Unpacked names and
    augmented assignments become Unknown.
    """
    value = assignment.child(Role.VALUE)
    if assignment.tag == "AugAssign" or value is None:
      facts = UNKNOWN
    else:
      facts = self.classify_origin(value)
    for target in assignment.children_with(Role.TARGET):
      self.bind_target(target, facts)

  def bind_target(self, target: ScriptNode, facts: Classification = UNKNOWN) -> None:
    """Binds a target expression; only names (and names inside unpacking) bind."""
    if target.kind == NodeKind.NAME:
      self.record_binding(target.name, facts.origin, facts.pinned)
    elif target.kind == NodeKind.SEQUENCE:
      for element in target.children:
        self.bind_target(element, UNKNOWN)

  # --- Queries ---

  def classify_origin(self, node: ScriptNode) -> Classification:
    """Classifies an expression against the current scope."""
    return classify_origin(node, self.resolve_frame)

  def frame_of(self, node: Optional[ScriptNode]) -> Optional[FrameBinding]:
    """The frame binding of a NAME node, or None."""
    if node is None or node.kind != NodeKind.NAME:
      return None
    return self.resolve_frame(node.name)

  def is_frame(self, node: Optional[ScriptNode]) -> bool:
    """True if the expression currently evaluates to a frame."""
    return frame_facts(node, self.resolve_frame) is not None

  def is_pinned(self, node: Optional[ScriptNode]) -> bool:
    """True if the expression is a frame whose schema has been pinned."""
    facts = frame_facts(node, self.resolve_frame)
    return facts is not None and facts.pinned

  def inplace_method(self, call: ScriptNode) -> Optional[str]:
    """
    The method name if the call mutates its receiver via ``inplace=True``.
    """
    if not patterns.is_true_literal(patterns.keyword_value(call, patterns.INPLACE_KEYWORD)):
      return None
    return patterns.callee_name(call) or "<call>"

  def missing_merge_arguments(self, call: ScriptNode) -> Tuple[str, ...]:
    """Contract arguments a merge/join call leaves implicit."""
    return patterns.missing_merge_arguments(call)

  # --- Control flow ---

  def on_branch(self, arms: Sequence[Callable[[], None]], fallthrough: bool = False) -> None:
    """
    Evaluates alternative paths and merges their outcomes conservatively.

    Args:
        arms: Callables that each advance the tracker along one path.
        fallthrough: Whether the pre-branch state is itself a possible outcome
            (an ``if`` without ``else``, a loop running zero times).
    """
    start = self.current.snapshot()
    outcomes: List[Dict[str, FrameBinding]] = []
    for arm in arms:
      self.current.restore(start)
      arm()
      outcomes.append(self.current.snapshot())
    if fallthrough or not outcomes:
      outcomes.append(start)
    self.current.restore(merge_states(outcomes))


class TrackerView:
  """
  Read-only view of a `DataflowTracker` handed to rule matchers.
  """

  def __init__(self, tracker: DataflowTracker):
    self._tracker = tracker

  def frame_of(self, node: Optional[ScriptNode]) -> Optional[FrameBinding]:
    """The frame binding of a NAME node, or None."""
    return self._tracker.frame_of(node)

  def lookup(self, name: str) -> Optional[FrameBinding]:
    """The visible binding of a name, frame or not."""
    return self._tracker.lookup(name)

  def local(self, name: str) -> Optional[FrameBinding]:
    """The binding of a name in the innermost scope only."""
    return self._tracker.current.local(name)

  def classify(self, node: ScriptNode) -> Classification:
    """Origin and pinned state of an expression."""
    return self._tracker.classify_origin(node)

  def is_frame(self, node: Optional[ScriptNode]) -> bool:
    return self._tracker.is_frame(node)

  def is_pinned(self, node: Optional[ScriptNode]) -> bool:
    return self._tracker.is_pinned(node)

  def inplace_method(self, call: ScriptNode) -> Optional[str]:
    return self._tracker.inplace_method(call)

  def missing_merge_arguments(self, call: ScriptNode) -> Tuple[str, ...]:
    return self._tracker.missing_merge_arguments(call)

  @property
  def function(self) -> Optional[FunctionSummary]:
    """Summary of the innermost scope if it is a function, else None."""
    return self._tracker.current.summary
