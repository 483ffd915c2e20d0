"""
AST Adapter: Normalized Script Nodes.

This module converts a parse tree produced by an external front end into the
uniform `ScriptNode` model consumed by the match engine and the dataflow
tracker. Two front ends are supported:

1.  **LibCST**: `adapt_module` / `adapt_source` walk a `libcst.Module` and
    resolve source spans through `PositionProvider`.
2.  **Mappings**: `adapt_mapping` accepts a JSON-like tree (for example one
    serialized by a non-Python front end) validated with Pydantic.

Every node carries a kind, a span, its ordered children and the `role` it
plays in its parent (``receiver``, ``func``, ``arg``, ``target`` ...). Rules
address children by role rather than by front-end field names.

A node without a span or a kind is malformed; the adapter raises
`AdapterError` and analysis of that file stops.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional

import libcst as cst
from libcst.metadata import MetadataWrapper, PositionProvider
from pydantic import BaseModel, Field, ValidationError

from framelint.enums import NodeKind


class AdapterError(Exception):
  """
  Raised when an input tree cannot be normalized.

  Attributes:
      path (str): Location of the offending node inside the tree, if known.
  """

  def __init__(self, message: str, path: str = ""):
    super().__init__(f"{message} (at {path})" if path else message)
    self.path = path


class Role:
  """Role names a child may play inside its parent."""

  RECEIVER = "receiver"
  FUNC = "func"
  ARG = "arg"
  KEYWORD = "keyword"
  VALUE = "value"
  INDEX = "index"
  TARGET = "target"
  LEFT = "left"
  COMPARATOR = "comparator"
  TEST = "test"
  ITER = "iter"
  BODY = "body"
  ORELSE = "orelse"
  HANDLER = "handler"
  FINALLY = "finally"
  CASE = "case"
  PARAM = "param"
  ANNOTATION = "annotation"
  DEFAULT = "default"
  ELEMENT = "element"
  EXPR = "expr"
  DECORATOR = "decorator"
  CHILD = "child"


@dataclass(frozen=True)
class Span:
  """
  A source range. Lines and columns are 1-based; the end column is exclusive.
  """

  start_line: int
  start_column: int
  end_line: int
  end_column: int

  def covering(self, other: "Span") -> "Span":
    """Returns the smallest span enclosing both spans."""
    start = min((self.start_line, self.start_column), (other.start_line, other.start_column))
    end = max((self.end_line, self.end_column), (other.end_line, other.end_column))
    return Span(start[0], start[1], end[0], end[1])


class SourceText:
  """
  Source lines of the analysed file, used to render fix suggestions.
  """

  def __init__(self, code: str):
    self._lines = code.splitlines(keepends=True)

  def slice(self, span: Span) -> Optional[str]:
    """
    Extracts the text covered by a span.

    Args:
        span: The range to extract.

    Returns:
        The covered text, or None if the span lies outside the source.
    """
    if span.start_line < 1 or span.end_line > len(self._lines) or span.end_line < span.start_line:
      return None
    first = self._lines[span.start_line - 1]
    if span.start_line == span.end_line:
      return first[span.start_column - 1 : span.end_column - 1]
    parts = [first[span.start_column - 1 :]]
    parts.extend(self._lines[span.start_line : span.end_line - 1])
    parts.append(self._lines[span.end_line - 1][: span.end_column - 1])
    return "".join(parts)


@dataclass(eq=False)
class ScriptNode:
  """
  A normalized syntax node.

  Attributes:
      kind: Kind classification.
      span: Source range of the node.
      children: Ordered child nodes; each child knows its `role`.
      name: Identifier carried by NAME, ATTRIBUTE, KEYWORD, FUNCTION_DEF,
          PARAMETER and CLASS_DEF nodes.
      literal: Value of a LITERAL node (meaningful when `has_literal` is set).
      role: Role this node plays in its parent.
      tag: Front-end node type (e.g. ``If``, ``List``, ``AugAssign``).
      attrs: Extra facts (e.g. ``operators`` of a comparison).
  """

  kind: NodeKind
  span: Span
  children: List["ScriptNode"] = field(default_factory=list)
  name: Optional[str] = None
  literal: Any = None
  has_literal: bool = False
  role: str = ""
  tag: str = ""
  attrs: Dict[str, Any] = field(default_factory=dict)
  parent: Optional["ScriptNode"] = field(default=None, repr=False)
  source: Optional[SourceText] = field(default=None, repr=False)

  def __post_init__(self) -> None:
    for child in self.children:
      child.parent = self

  def child(self, role: str) -> Optional["ScriptNode"]:
    """Returns the first child playing `role`, or None."""
    for node in self.children:
      if node.role == role:
        return node
    return None

  def children_with(self, role: str) -> List["ScriptNode"]:
    """Returns every child playing `role`, in source order."""
    return [node for node in self.children if node.role == role]

  def walk(self) -> Iterator["ScriptNode"]:
    """Pre-order iteration over this node and its descendants."""
    stack = [self]
    while stack:
      node = stack.pop()
      yield node
      stack.extend(reversed(node.children))

  def is_name(self, identifier: Optional[str] = None) -> bool:
    """True if this is a NAME node (optionally with the given identifier)."""
    return self.kind == NodeKind.NAME and (identifier is None or self.name == identifier)

  @property
  def text(self) -> Optional[str]:
    """Source text of the node, if source is attached."""
    if self.source is None:
      return None
    return self.source.slice(self.span)


def iter_nodes(root: ScriptNode) -> Iterator[ScriptNode]:
  """Pre-order iterator over a normalized tree."""
  return root.walk()


# --- LibCST front end ---

_COMPARE_OPERATORS = {
  "Equal": "==",
  "NotEqual": "!=",
  "LessThan": "<",
  "LessThanEqual": "<=",
  "GreaterThan": ">",
  "GreaterThanEqual": ">=",
  "In": "in",
  "NotIn": "not in",
  "Is": "is",
  "IsNot": "is not",
}

_NAMED_CONSTANTS = {"True": True, "False": False, "None": None}


class CstAdapter:
  """
  Converts a LibCST tree into `ScriptNode`s.

  Conversion dispatches on the LibCST class name (``_adapt_Call``,
  ``_adapt_If`` ...). Expression and statement types without a dedicated
  handler become OTHER nodes; syntactic wrappers (whitespace, commas,
  decorators, aliases) are transparent and contribute only their children.
  """

  def __init__(self, module: cst.Module, source: Optional[str] = None):
    """
    Args:
        module: The parsed LibCST module.
        source: Original text. Defaults to the module's own code.
    """
    self._wrapper = MetadataWrapper(module)
    self._positions = self._wrapper.resolve(PositionProvider)
    self._source = SourceText(source if source is not None else self._wrapper.module.code)

  def adapt(self) -> ScriptNode:
    """
    Converts the whole module.

    Returns:
        The MODULE root node.

    Raises:
        AdapterError: If a node has no resolvable span.
    """
    module = self._wrapper.module
    body = self._statements(module.body, Role.BODY)
    if body:
      span = self._span(module)
    else:
      span = Span(1, 1, 1, 1)
    return self._make(NodeKind.MODULE, span, body, tag="Module")

  # --- Helpers ---

  def _span(self, node: cst.CSTNode) -> Span:
    code_range = self._positions.get(node)
    if code_range is None:
      raise AdapterError(f"No source position for {type(node).__name__}")
    return Span(
      code_range.start.line,
      code_range.start.column + 1,
      code_range.end.line,
      code_range.end.column + 1,
    )

  def _make(self, kind: NodeKind, span: Span, children: List[ScriptNode], **kwargs: Any) -> ScriptNode:
    return ScriptNode(kind=kind, span=span, children=children, source=self._source, **kwargs)

  def _convert(self, node: cst.CSTNode, role: str) -> List[ScriptNode]:
    handler = getattr(self, f"_adapt_{type(node).__name__}", None)
    if handler is not None:
      return [handler(node, role)]
    if isinstance(node, (cst.BaseExpression, cst.BaseSmallStatement, cst.BaseCompoundStatement)):
      children = self._flatten(node.children, Role.CHILD)
      return [self._make(NodeKind.OTHER, self._span(node), children, role=role, tag=type(node).__name__)]
    return self._flatten(node.children, role)

  def _flatten(self, nodes: Any, role: str) -> List[ScriptNode]:
    result: List[ScriptNode] = []
    for item in nodes:
      result.extend(self._convert(item, role))
    return result

  def _expr(self, node: cst.BaseExpression, role: str) -> ScriptNode:
    converted = self._convert(node, role)
    if len(converted) != 1:
      raise AdapterError(f"Expression {type(node).__name__} did not normalize to a single node")
    return converted[0]

  def _statements(self, statements: Any, role: str) -> List[ScriptNode]:
    result: List[ScriptNode] = []
    for stmt in statements:
      if isinstance(stmt, cst.SimpleStatementLine):
        result.extend(self._flatten(stmt.body, role))
      else:
        result.extend(self._convert(stmt, role))
    return result

  def _block(self, suite: cst.CSTNode, role: str) -> ScriptNode:
    body = suite.body
    if isinstance(suite, (cst.Else, cst.Finally)):
      body = suite.body.body
    children = self._statements(body, Role.BODY)
    return self._make(NodeKind.BLOCK, self._span(suite), children, role=role, tag=type(suite).__name__)

  # --- Scopes ---

  def _adapt_FunctionDef(self, node: cst.FunctionDef, role: str) -> ScriptNode:
    children = self._flatten(node.decorators, Role.DECORATOR)
    params = node.params
    ordered = [*params.posonly_params, *params.params]
    if isinstance(params.star_arg, cst.Param):
      ordered.append(params.star_arg)
    ordered.extend(params.kwonly_params)
    if params.star_kwarg is not None:
      ordered.append(params.star_kwarg)
    children.extend(self._adapt_Param(p, Role.PARAM) for p in ordered)
    if node.returns is not None:
      children.append(self._expr(node.returns.annotation, Role.ANNOTATION))
    children.append(self._block(node.body, Role.BODY))
    return self._make(
      NodeKind.FUNCTION_DEF,
      self._span(node),
      children,
      role=role,
      name=node.name.value,
      tag="FunctionDef",
    )

  def _adapt_Param(self, node: cst.Param, role: str) -> ScriptNode:
    children: List[ScriptNode] = []
    if node.annotation is not None:
      children.append(self._expr(node.annotation.annotation, Role.ANNOTATION))
    if node.default is not None:
      children.append(self._expr(node.default, Role.DEFAULT))
    return self._make(
      NodeKind.PARAMETER,
      self._span(node),
      children,
      role=role,
      name=node.name.value,
      tag="Param",
      attrs={"star": node.star if isinstance(node.star, str) else ""},
    )

  def _adapt_ClassDef(self, node: cst.ClassDef, role: str) -> ScriptNode:
    children = self._flatten(node.decorators, Role.DECORATOR)
    children.extend(self._flatten(node.bases, Role.ARG))
    children.extend(self._flatten(node.keywords, Role.ARG))
    children.append(self._block(node.body, Role.BODY))
    return self._make(NodeKind.CLASS_DEF, self._span(node), children, role=role, name=node.name.value, tag="ClassDef")

  # --- Control flow ---

  def _adapt_If(self, node: cst.If, role: str) -> ScriptNode:
    children = [self._expr(node.test, Role.TEST), self._block(node.body, Role.BODY)]
    if isinstance(node.orelse, cst.If):
      children.append(self._adapt_If(node.orelse, Role.ORELSE))
    elif isinstance(node.orelse, cst.Else):
      children.append(self._block(node.orelse, Role.ORELSE))
    return self._make(NodeKind.BRANCH, self._span(node), children, role=role, tag="If")

  def _adapt_For(self, node: cst.For, role: str) -> ScriptNode:
    children = [
      self._expr(node.iter, Role.ITER),
      self._expr(node.target, Role.TARGET),
      self._block(node.body, Role.BODY),
    ]
    if node.orelse is not None:
      children.append(self._block(node.orelse, Role.ORELSE))
    return self._make(NodeKind.BRANCH, self._span(node), children, role=role, tag="For")

  def _adapt_While(self, node: cst.While, role: str) -> ScriptNode:
    children = [self._expr(node.test, Role.TEST), self._block(node.body, Role.BODY)]
    if node.orelse is not None:
      children.append(self._block(node.orelse, Role.ORELSE))
    return self._make(NodeKind.BRANCH, self._span(node), children, role=role, tag="While")

  def _adapt_Try(self, node: cst.CSTNode, role: str) -> ScriptNode:
    children = [self._block(node.body, Role.BODY)]
    for handler in node.handlers:
      handler_children: List[ScriptNode] = []
      if handler.type is not None:
        handler_children.append(self._expr(handler.type, Role.TEST))
      handler_children.append(self._block(handler.body, Role.BODY))
      children.append(
        self._make(NodeKind.BLOCK, self._span(handler), handler_children, role=Role.HANDLER, tag="ExceptHandler")
      )
    if node.orelse is not None:
      children.append(self._block(node.orelse, Role.ORELSE))
    if node.finalbody is not None:
      children.append(self._block(node.finalbody, Role.FINALLY))
    return self._make(NodeKind.BRANCH, self._span(node), children, role=role, tag="Try")

  _adapt_TryStar = _adapt_Try

  def _adapt_Match(self, node: cst.CSTNode, role: str) -> ScriptNode:
    children = [self._expr(node.subject, Role.TEST)]
    for case in node.cases:
      case_children: List[ScriptNode] = []
      if case.guard is not None:
        case_children.append(self._expr(case.guard, Role.TEST))
      case_children.append(self._block(case.body, Role.BODY))
      children.append(self._make(NodeKind.BLOCK, self._span(case), case_children, role=Role.CASE, tag="MatchCase"))
    return self._make(NodeKind.BRANCH, self._span(node), children, role=role, tag="Match")

  # --- Statements ---

  def _adapt_Expr(self, node: cst.Expr, role: str) -> ScriptNode:
    return self._make(NodeKind.STATEMENT, self._span(node), [self._expr(node.value, Role.EXPR)], role=role, tag="Expr")

  def _adapt_Assign(self, node: cst.Assign, role: str) -> ScriptNode:
    children = [self._expr(t.target, Role.TARGET) for t in node.targets]
    children.append(self._expr(node.value, Role.VALUE))
    return self._make(NodeKind.ASSIGNMENT, self._span(node), children, role=role, tag="Assign")

  def _adapt_AnnAssign(self, node: cst.AnnAssign, role: str) -> ScriptNode:
    children = [
      self._expr(node.target, Role.TARGET),
      self._expr(node.annotation.annotation, Role.ANNOTATION),
    ]
    if node.value is not None:
      children.append(self._expr(node.value, Role.VALUE))
    return self._make(NodeKind.ASSIGNMENT, self._span(node), children, role=role, tag="AnnAssign")

  def _adapt_AugAssign(self, node: cst.AugAssign, role: str) -> ScriptNode:
    children = [self._expr(node.target, Role.TARGET), self._expr(node.value, Role.VALUE)]
    return self._make(NodeKind.ASSIGNMENT, self._span(node), children, role=role, tag="AugAssign")

  def _adapt_Return(self, node: cst.Return, role: str) -> ScriptNode:
    children = [self._expr(node.value, Role.VALUE)] if node.value is not None else []
    return self._make(NodeKind.RETURN, self._span(node), children, role=role, tag="Return")

  # --- Expressions ---

  def _adapt_Call(self, node: cst.Call, role: str) -> ScriptNode:
    children = [self._expr(node.func, Role.FUNC)]
    for arg in node.args:
      if arg.keyword is not None:
        value = self._expr(arg.value, Role.VALUE)
        children.append(
          self._make(
            NodeKind.KEYWORD,
            self._span(arg),
            [value],
            role=Role.KEYWORD,
            name=arg.keyword.value,
            tag="Arg",
          )
        )
      else:
        converted = self._expr(arg.value, Role.ARG)
        if arg.star:
          converted.attrs["star"] = arg.star
        children.append(converted)
    return self._make(NodeKind.CALL, self._span(node), children, role=role, tag="Call")

  def _adapt_Attribute(self, node: cst.Attribute, role: str) -> ScriptNode:
    return self._make(
      NodeKind.ATTRIBUTE,
      self._span(node),
      [self._expr(node.value, Role.RECEIVER)],
      role=role,
      name=node.attr.value,
      tag="Attribute",
    )

  def _adapt_Subscript(self, node: cst.Subscript, role: str) -> ScriptNode:
    receiver = self._expr(node.value, Role.RECEIVER)
    elements = [self._slice(element.slice, Role.ELEMENT) for element in node.slice]
    if len(elements) == 1:
      index = elements[0]
      index.role = Role.INDEX
    else:
      span = elements[0].span.covering(elements[-1].span)
      index = self._make(NodeKind.SEQUENCE, span, elements, role=Role.INDEX, tag="Tuple")
    return self._make(NodeKind.SUBSCRIPT, self._span(node), [receiver, index], role=role, tag="Subscript")

  def _slice(self, node: cst.BaseSlice, role: str) -> ScriptNode:
    if isinstance(node, cst.Index):
      return self._expr(node.value, role)
    children = self._flatten(node.children, Role.CHILD)
    return self._make(NodeKind.OTHER, self._span(node), children, role=role, tag=type(node).__name__)

  def _adapt_Comparison(self, node: cst.Comparison, role: str) -> ScriptNode:
    children = [self._expr(node.left, Role.LEFT)]
    operators = []
    for target in node.comparisons:
      operators.append(_COMPARE_OPERATORS.get(type(target.operator).__name__, type(target.operator).__name__))
      children.append(self._expr(target.comparator, Role.COMPARATOR))
    return self._make(
      NodeKind.COMPARE,
      self._span(node),
      children,
      role=role,
      tag="Comparison",
      attrs={"operators": tuple(operators)},
    )

  def _sequence(self, node: cst.BaseExpression, role: str) -> ScriptNode:
    children = []
    for element in node.elements:
      converted = self._expr(element.value, Role.ELEMENT)
      if isinstance(element, cst.StarredElement):
        converted.attrs["star"] = "*"
      children.append(converted)
    return self._make(NodeKind.SEQUENCE, self._span(node), children, role=role, tag=type(node).__name__)

  _adapt_List = _sequence
  _adapt_Tuple = _sequence
  _adapt_Set = _sequence

  def _adapt_Name(self, node: cst.Name, role: str) -> ScriptNode:
    if node.value in _NAMED_CONSTANTS:
      return self._literal(node, _NAMED_CONSTANTS[node.value], role)
    return self._make(NodeKind.NAME, self._span(node), [], role=role, name=node.value, tag="Name")

  def _literal(self, node: cst.CSTNode, value: Any, role: str) -> ScriptNode:
    return self._make(
      NodeKind.LITERAL,
      self._span(node),
      [],
      role=role,
      literal=value,
      has_literal=True,
      tag=type(node).__name__,
    )

  def _evaluated(self, node: cst.BaseExpression, role: str) -> ScriptNode:
    return self._literal(node, node.evaluated_value, role)

  _adapt_Integer = _evaluated
  _adapt_Float = _evaluated
  _adapt_Imaginary = _evaluated
  _adapt_SimpleString = _evaluated

  def _adapt_ConcatenatedString(self, node: cst.ConcatenatedString, role: str) -> ScriptNode:
    value = node.evaluated_value
    if value is None:
      return self._make(NodeKind.OTHER, self._span(node), [], role=role, tag="ConcatenatedString")
    return self._literal(node, value, role)


def adapt_module(module: cst.Module, source: Optional[str] = None) -> ScriptNode:
  """
  Normalizes a LibCST module.

  Args:
      module: Parsed module.
      source: Original source text (defaults to the module's code).

  Returns:
      The MODULE root node.

  Raises:
      AdapterError: If the tree cannot be normalized.
  """
  return CstAdapter(module, source).adapt()


def parse_source(code: str) -> cst.Module:
  """
  Parses Python source with LibCST.

  Raises:
      AdapterError: If the source does not parse.
  """
  try:
    return cst.parse_module(code)
  except cst.ParserSyntaxError as e:
    raise AdapterError(f"Syntax error: {e.message}", path=f"line {e.raw_line}") from e


def adapt_source(code: str) -> ScriptNode:
  """
  Parses Python source with LibCST and normalizes it.

  Args:
      code: Python source code.

  Returns:
      The MODULE root node.

  Raises:
      AdapterError: If the source does not parse or cannot be normalized.
  """
  return adapt_module(parse_source(code), code)


# --- Mapping front end ---


class _RawSpan(BaseModel):
  start_line: int = Field(ge=1)
  start_column: int = Field(ge=1)
  end_line: int = Field(ge=1)
  end_column: int = Field(ge=1)


class _RawNode(BaseModel):
  """Schema of one node in an externally serialized tree."""

  kind: NodeKind
  span: _RawSpan
  children: List["_RawNode"] = Field(default_factory=list)
  name: Optional[str] = None
  literal: Any = None
  role: str = ""
  tag: str = ""
  attrs: Dict[str, Any] = Field(default_factory=dict)


_RawNode.model_rebuild()


def _from_raw(raw: _RawNode, source: Optional[SourceText]) -> ScriptNode:
  return ScriptNode(
    kind=raw.kind,
    span=Span(raw.span.start_line, raw.span.start_column, raw.span.end_line, raw.span.end_column),
    children=[_from_raw(child, source) for child in raw.children],
    name=raw.name,
    literal=raw.literal,
    has_literal="literal" in raw.model_fields_set,
    role=raw.role,
    tag=raw.tag,
    attrs=dict(raw.attrs),
    source=source,
  )


def adapt_mapping(data: Mapping[str, Any], source: Optional[str] = None) -> ScriptNode:
  """
  Normalizes an externally serialized tree.

  Each node is a mapping with a required ``kind`` (a `NodeKind` value) and
  ``span`` (``start_line``, ``start_column``, ``end_line``, ``end_column``),
  and optional ``children``, ``name``, ``literal``, ``role``, ``tag`` and
  ``attrs``.

  Args:
      data: The root node mapping.
      source: Optional source text for fix suggestions.

  Returns:
      The normalized root.

  Raises:
      AdapterError: If any node lacks a valid kind or span.
  """
  try:
    raw = _RawNode.model_validate(data)
  except ValidationError as e:
    first = e.errors()[0]
    path = ".".join(str(part) for part in first["loc"])
    raise AdapterError(f"Malformed node: {first['msg']}", path=path or "<root>") from e
  return _from_raw(raw, SourceText(source) if source is not None else None)
