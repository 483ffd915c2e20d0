"""
Rule Catalog.

The catalog is an immutable tuple built once at import time. Each entry is
independent; no matcher reads another's output.

Modules:
    - ``base``: `Rule` and `Finding`.
    - ``columns``: FL001 (attribute column access), FL003 (bare boolean mask).
    - ``mutation``: FL002 (in-place mutation), FL006 (filler literal),
      FL007 (frame parameter mutation).
    - ``schema``: FL004 (unpinned schema), FL005 (unsafe merge).
"""

from typing import Dict, Optional, Tuple

from framelint.enums import Severity
from framelint.rules.base import Finding, Rule
from framelint.rules.columns import ambiguous_boolean_filter, non_explicit_column_access
from framelint.rules.mutation import filler_new_column, frame_parameter_mutation, inplace_mutation
from framelint.rules.schema import unpinned_schema, unsafe_merge

# Internal id of the diagnostic emitted when a matcher raises.
RULE_CRASH_ID = "FL000"

CATALOG: Tuple[Rule, ...] = (
  Rule("FL001", "Non-explicit column access", non_explicit_column_access, Severity.WARNING),
  Rule("FL002", "In-place mutation", inplace_mutation, Severity.WARNING),
  Rule("FL003", "Ambiguous boolean filtering", ambiguous_boolean_filter, Severity.WARNING),
  Rule("FL004", "Unpinned schema", unpinned_schema, Severity.WARNING),
  Rule("FL005", "Unsafe merge", unsafe_merge, Severity.WARNING),
  Rule("FL006", "Filler value for new column", filler_new_column, Severity.WARNING),
  Rule("FL007", "Frame parameter mutation", frame_parameter_mutation, Severity.ERROR),
)

_BY_ID: Dict[str, Rule] = {rule.id: rule for rule in CATALOG}

RULE_IDS: Tuple[str, ...] = tuple(_BY_ID)


def get_rule(rule_id: str) -> Optional[Rule]:
  """Looks up a catalog rule by id."""
  return _BY_ID.get(rule_id)


__all__ = ["CATALOG", "RULE_CRASH_ID", "RULE_IDS", "Finding", "Rule", "get_rule"]
