"""
Data-Driven Classification Tables.

Every shape the tracker and the rules recognise is declared here as data:
callee names that produce frames, methods that return a new frame, methods
that accept ``inplace=``, the attributes a frame exposes natively, and the
argument contract of a merge. New conventions are added by editing these
tables; the engine and the matchers only consult them.
"""

import re
from dataclasses import dataclass
from typing import FrozenSet, Optional, Tuple

from framelint.analysis.adapter import Role, ScriptNode
from framelint.enums import NodeKind, Origin


@dataclass(frozen=True)
class CallPattern:
  """
  Maps a callee shape to an origin.

  Attributes:
      origin: Origin assigned to the call result.
      names: Terminal callee names that match exactly (``read_csv`` in ``pd.read_csv``).
      prefixes: Terminal name prefixes that match (``read_``).
      frame_receiver: Only match methods called on a known frame.
      library_receiver: Only match bare calls (``read_source()``) or calls
          rooted at a frame library (``pd.read_csv``, ``pd.DataFrame.from_dict``).
  """

  origin: Origin
  names: FrozenSet[str] = frozenset()
  prefixes: Tuple[str, ...] = ()
  frame_receiver: bool = False
  library_receiver: bool = False

  def matches(self, callee: str) -> bool:
    """True if the terminal callee name matches this pattern."""
    return callee in self.names or any(callee.startswith(p) for p in self.prefixes)


# Names a frame library is conventionally imported or exposed as.
FRAME_MODULES: FrozenSet[str] = frozenset(
  {"pd", "pandas", "pl", "polars", "dd", "gpd", "geopandas", "mpd", "DataFrame"}
)

ORIGIN_TABLE: Tuple[CallPattern, ...] = (
  CallPattern(Origin.READ, prefixes=("read_",), library_receiver=True),
  CallPattern(
    Origin.CONSTRUCTION,
    names=frozenset({"DataFrame", "from_records", "from_dict", "from_arrays", "json_normalize"}),
    library_receiver=True,
  ),
  CallPattern(Origin.MERGE, names=frozenset({"merge", "merge_asof", "merge_ordered"})),
  CallPattern(Origin.MERGE, names=frozenset({"join"}), frame_receiver=True),
)

# Methods on a frame that return a new frame and leave the receiver untouched.
FRAME_RETURNING_METHODS: FrozenSet[str] = frozenset(
  {
    "assign",
    "astype",
    "bfill",
    "clip",
    "convert_dtypes",
    "copy",
    "drop",
    "drop_duplicates",
    "dropna",
    "explode",
    "ffill",
    "fillna",
    "head",
    "infer_objects",
    "interpolate",
    "mask",
    "melt",
    "nlargest",
    "nsmallest",
    "pipe",
    "query",
    "reindex",
    "rename",
    "replace",
    "reset_index",
    "round",
    "sample",
    "set_axis",
    "set_index",
    "sort_index",
    "sort_values",
    "tail",
    "where",
  }
)

# Methods that accept ``inplace=`` and otherwise return a new frame.
INPLACE_CAPABLE_METHODS: FrozenSet[str] = frozenset(
  {
    "bfill",
    "clip",
    "drop",
    "drop_duplicates",
    "dropna",
    "eval",
    "ffill",
    "fillna",
    "interpolate",
    "mask",
    "query",
    "rename",
    "rename_axis",
    "replace",
    "reset_index",
    "set_axis",
    "set_index",
    "sort_index",
    "sort_values",
    "where",
  }
)

INPLACE_KEYWORD = "inplace"

ROW_ACCESSORS: FrozenSet[str] = frozenset({"loc", "iloc", "at", "iat"})

# Native attributes of a frame; anything else accessed as an attribute is a column.
RESERVED_ATTRIBUTES: FrozenSet[str] = frozenset(
  {
    "T",
    "abs",
    "add",
    "add_prefix",
    "add_suffix",
    "agg",
    "aggregate",
    "align",
    "all",
    "any",
    "apply",
    "applymap",
    "map",
    "asfreq",
    "assign",
    "astype",
    "at",
    "attrs",
    "axes",
    "bfill",
    "boxplot",
    "clip",
    "columns",
    "combine",
    "combine_first",
    "compare",
    "convert_dtypes",
    "copy",
    "corr",
    "corrwith",
    "count",
    "cov",
    "cummax",
    "cummin",
    "cumprod",
    "cumsum",
    "describe",
    "diff",
    "div",
    "divide",
    "dot",
    "drop",
    "drop_duplicates",
    "droplevel",
    "dropna",
    "dtypes",
    "duplicated",
    "empty",
    "eq",
    "equals",
    "eval",
    "explode",
    "ffill",
    "fillna",
    "filter",
    "first_valid_index",
    "flags",
    "floordiv",
    "ge",
    "get",
    "groupby",
    "gt",
    "head",
    "hist",
    "iat",
    "idxmax",
    "idxmin",
    "iloc",
    "index",
    "infer_objects",
    "info",
    "insert",
    "interpolate",
    "isin",
    "isna",
    "isnull",
    "items",
    "iterrows",
    "itertuples",
    "join",
    "keys",
    "kurt",
    "last_valid_index",
    "le",
    "loc",
    "lt",
    "mask",
    "max",
    "mean",
    "median",
    "melt",
    "memory_usage",
    "merge",
    "min",
    "mod",
    "mode",
    "mul",
    "multiply",
    "ndim",
    "ne",
    "nlargest",
    "notna",
    "notnull",
    "nsmallest",
    "nunique",
    "pct_change",
    "pipe",
    "pivot",
    "pivot_table",
    "plot",
    "pop",
    "pow",
    "prod",
    "quantile",
    "query",
    "rank",
    "reindex",
    "rename",
    "rename_axis",
    "reorder_levels",
    "replace",
    "resample",
    "reset_index",
    "rolling",
    "round",
    "sample",
    "select_dtypes",
    "sem",
    "set_axis",
    "set_index",
    "shape",
    "shift",
    "size",
    "skew",
    "sort_index",
    "sort_values",
    "sparse",
    "squeeze",
    "stack",
    "std",
    "style",
    "sub",
    "subtract",
    "sum",
    "swaplevel",
    "tail",
    "take",
    "to_csv",
    "to_dict",
    "to_excel",
    "to_json",
    "to_numpy",
    "to_parquet",
    "to_records",
    "to_sql",
    "to_string",
    "transform",
    "transpose",
    "truncate",
    "unstack",
    "update",
    "value_counts",
    "values",
    "var",
    "where",
    "xs",
  }
)

FRAME_NAME_PATTERN = re.compile(r"^(df|frame|dataframe)$|^df_|_df$|_frame$")

FRAME_ANNOTATIONS: FrozenSet[str] = frozenset({"DataFrame"})

# (required argument, keywords that satisfy it)
MERGE_CONTRACT: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
  ("how", ("how",)),
  ("on", ("on", "left_on", "right_on", "left_index", "right_index")),
  ("validate", ("validate",)),
)

MERGE_CALLEES: FrozenSet[str] = frozenset({"merge"})
JOIN_CALLEES: FrozenSet[str] = frozenset({"join"})

# Modules whose ``merge`` is not a frame merge.
NON_FRAME_MERGE_RECEIVERS: FrozenSet[str] = frozenset({"heapq", "itertools", "dict", "collections"})

MISSING_SENTINEL = "pd.NA"


def callee_name(call: ScriptNode) -> Optional[str]:
  """
  Terminal name of a call's callee (``read_csv`` for ``pd.read_csv(...)``).

  Returns:
      The name, or None if the callee is not a name or attribute.
  """
  func = call.child(Role.FUNC)
  if func is None:
    return None
  if func.kind in (NodeKind.NAME, NodeKind.ATTRIBUTE):
    return func.name
  return None


def method_receiver(call: ScriptNode) -> Optional[ScriptNode]:
  """Receiver of a method call (``df`` in ``df.merge(...)``), or None."""
  func = call.child(Role.FUNC)
  if func is not None and func.kind == NodeKind.ATTRIBUTE:
    return func.child(Role.RECEIVER)
  return None


def is_library_call(call: ScriptNode) -> bool:
  """
  True for a bare call (``read_source()``) or one whose receiver chain is
  rooted at a frame library name (``pd.read_csv``, ``pd.DataFrame.from_dict``).

  ``Path(p).read_text()`` and ``Settings.from_dict(d)`` are not.
  """
  node = method_receiver(call)
  if node is None:
    func = call.child(Role.FUNC)
    return func is not None and func.kind == NodeKind.NAME
  while node.kind == NodeKind.ATTRIBUTE:
    receiver = node.child(Role.RECEIVER)
    if receiver is None:
      return False
    node = receiver
  return node.kind == NodeKind.NAME and node.name in FRAME_MODULES


def keyword_value(call: ScriptNode, name: str) -> Optional[ScriptNode]:
  """Value node of a keyword argument, or None."""
  for node in call.children_with(Role.KEYWORD):
    if node.name == name:
      return node.child(Role.VALUE)
  return None


def has_keyword_splat(call: ScriptNode) -> bool:
  """True if the call forwards ``**kwargs`` (its keywords are unknowable)."""
  return any(node.attrs.get("star") == "**" for node in call.children_with(Role.ARG))


def is_true_literal(node: Optional[ScriptNode]) -> bool:
  """True for the literal ``True``."""
  return node is not None and node.kind == NodeKind.LITERAL and node.literal is True


def is_filler_literal(node: ScriptNode) -> bool:
  """True for literal defaults that masquerade as data: ``0``, ``0.0`` and ``""``."""
  if node.kind != NodeKind.LITERAL or not node.has_literal:
    return False
  value = node.literal
  if isinstance(value, bool):
    return False
  if isinstance(value, (int, float)):
    return value == 0
  return isinstance(value, str) and value == ""


def is_column_list(node: Optional[ScriptNode]) -> bool:
  """True for a list literal of string column names (``["a", "b"]``)."""
  if node is None or node.kind != NodeKind.SEQUENCE or node.tag != "List":
    return False
  return all(
    child.kind == NodeKind.LITERAL and isinstance(child.literal, str) and not child.attrs.get("star")
    for child in node.children
  )


def is_column_key(node: Optional[ScriptNode]) -> bool:
  """True for a single string column key (``"a"``)."""
  return node is not None and node.kind == NodeKind.LITERAL and isinstance(node.literal, str)


def looks_like_frame_name(name: str) -> bool:
  """True if an identifier follows the conventional frame naming (``df``, ``sales_df``)."""
  return bool(FRAME_NAME_PATTERN.search(name))


def annotation_names_frame(node: Optional[ScriptNode]) -> bool:
  """True if a type annotation names a frame type (``pd.DataFrame``)."""
  if node is None:
    return False
  if node.kind in (NodeKind.NAME, NodeKind.ATTRIBUTE):
    return node.name in FRAME_ANNOTATIONS
  if node.kind == NodeKind.LITERAL and isinstance(node.literal, str):
    return node.literal.rsplit(".", 1)[-1] in FRAME_ANNOTATIONS
  return False


def missing_merge_arguments(call: ScriptNode) -> Tuple[str, ...]:
  """
  Names the contract arguments a merge/join call leaves implicit.

  Args:
      call: A CALL node.

  Returns:
      Missing argument names in contract order; empty if the call forwards
      ``**kwargs``.
  """
  if has_keyword_splat(call):
    return ()
  present = {node.name for node in call.children_with(Role.KEYWORD)}
  return tuple(required for required, accepted in MERGE_CONTRACT if not present.intersection(accepted))
