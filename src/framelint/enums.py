"""
Enumerations for framelint.

This module defines the standard enumerations shared by the adapter, the
dataflow tracker, the rule catalog and the reporting layer.
"""

from enum import Enum


class Severity(str, Enum):
  """
  Severity attached to a diagnostic.

  Rules declare a default severity; configuration may override it per rule id.
  """

  ERROR = "error"
  WARNING = "warning"
  INFO = "info"


class Origin(str, Enum):
  """
  Provenance of a frame binding.

  Only bindings whose origin is not ``UNKNOWN`` are treated as frames.
  """

  READ = "read"  # read_csv(), read_parquet(), read_source()
  CONSTRUCTION = "construction"  # DataFrame(...), from_records(...)
  MERGE = "merge"  # a.merge(b), pd.merge(a, b)
  SELECTION = "selection"  # x[["a", "b"]], x.loc[:, ["a"]]
  DERIVED = "derived"  # x.dropna(), x.loc[mask]
  PARAMETER = "parameter_passthrough"  # def f(df): ...
  CONVENTION = "convention"  # unbound name that looks like a frame (df, sales_df)
  UNKNOWN = "unknown"


class NodeKind(str, Enum):
  """
  Kind classification of a normalized script node.

  The first eight kinds are the ones rules match on. The remaining kinds carry
  structure (scopes, blocks, branches) and leaf values.
  """

  CALL = "call"
  SUBSCRIPT = "subscript"
  ATTRIBUTE = "attribute"
  ASSIGNMENT = "assignment"
  COMPARE = "compare"
  FUNCTION_DEF = "function_def"
  PARAMETER = "parameter"
  RETURN = "return"

  MODULE = "module"
  CLASS_DEF = "class_def"
  BLOCK = "block"
  BRANCH = "branch"
  STATEMENT = "statement"
  NAME = "name"
  LITERAL = "literal"
  KEYWORD = "keyword"
  SEQUENCE = "sequence"
  OTHER = "other"


class AnalysisStatus(str, Enum):
  """
  Outcome of analysing one file.

  ``INCOMPLETE`` is distinct from a ``COMPLETE`` run that found nothing.
  """

  COMPLETE = "complete"
  INCOMPLETE = "incomplete"
  FAILED = "failed"
