"""
Tests for Frame Provenance Tracking.

Verifies:
1.  Origin classification of reads, constructions, merges, selections and
    derived frames.
2.  Pinned-flag propagation and idempotence.
3.  Scope chains, conservative branch merging and function summaries.
"""

from framelint.analysis.adapter import Role, adapt_source
from framelint.analysis.dataflow import (
  DataflowTracker,
  FrameBinding,
  TrackerView,
  merge_states,
  summarize_function,
)
from framelint.enums import Origin


def run_assignments(code: str) -> DataflowTracker:
  """Binds every top-level assignment of `code` in order."""
  tracker = DataflowTracker()
  for statement in adapt_source(code).children:
    tracker.bind_assignment(statement)
  return tracker


def binding(tracker: DataflowTracker, name: str) -> FrameBinding:
  result = tracker.lookup(name)
  assert result is not None, f"{name} is unbound"
  return result


def test_read_and_construction_origins():
  tracker = run_assignments("a = pd.read_csv('a.csv')\nb = pd.DataFrame(rows)\nc = read_source()\n")
  assert binding(tracker, "a") == FrameBinding("a", Origin.READ)
  assert binding(tracker, "b").origin == Origin.CONSTRUCTION
  assert binding(tracker, "c").origin == Origin.READ


def test_library_constructors_keep_their_origin():
  tracker = run_assignments("a = pl.read_parquet(p)\nb = pd.DataFrame.from_dict(d)\nc = DataFrame(rows)\n")
  assert binding(tracker, "a").origin == Origin.READ
  assert binding(tracker, "b").origin == Origin.CONSTRUCTION
  assert binding(tracker, "c").origin == Origin.CONSTRUCTION


def test_read_and_from_methods_of_other_objects_are_unknown():
  tracker = run_assignments(
    "text = Path(p).read_text()\nini = cfg.read_string(s)\nblob = f.read_bytes()\nmodel = Model.from_dict(d)\n"
  )
  for name in ("text", "ini", "blob", "model"):
    assert binding(tracker, name).origin == Origin.UNKNOWN


def test_merge_origin():
  tracker = run_assignments("x = pd.read_csv('a')\nm = x.merge(y)\nj = x.join(y)\n")
  assert binding(tracker, "m").origin == Origin.MERGE
  assert binding(tracker, "j").origin == Origin.MERGE


def test_join_on_non_frame_is_unknown():
  tracker = run_assignments("s = ','.join(parts)\n")
  assert binding(tracker, "s").origin == Origin.UNKNOWN


def test_column_list_selection_pins():
  tracker = run_assignments("x = pd.read_csv('a')\nx = x[['a', 'b']]\n")
  assert binding(tracker, "x") == FrameBinding("x", Origin.SELECTION, pinned=True)


def test_loc_column_list_pins():
  tracker = run_assignments("x = pd.read_csv('a')\ny = x.loc[:, ['a']]\n")
  assert binding(tracker, "y").pinned


def test_pinning_is_idempotent():
  tracker = run_assignments("x = pd.read_csv('a')\nx = x[['a', 'b']]\nx = x[['a', 'b']]\n")
  assert binding(tracker, "x") == FrameBinding("x", Origin.SELECTION, pinned=True)


def test_derived_inherits_pinned_flag():
  tracker = run_assignments(
    "x = pd.read_csv('a')\nraw = x.dropna()\nx = x[['a']]\nclean = x.dropna()\nmask = x[x.a > 1]\n"
  )
  assert binding(tracker, "raw") == FrameBinding("raw", Origin.DERIVED, pinned=False)
  assert binding(tracker, "clean") == FrameBinding("clean", Origin.DERIVED, pinned=True)
  assert binding(tracker, "mask").pinned


def test_single_column_and_inplace_results_are_unknown():
  tracker = run_assignments("x = pd.read_csv('a')\ncol = x['a']\nnothing = x.dropna(inplace=True)\n")
  assert binding(tracker, "col").origin == Origin.UNKNOWN
  assert binding(tracker, "nothing").origin == Origin.UNKNOWN


def test_reassignment_replaces_binding():
  tracker = run_assignments("x = pd.read_csv('a')\nx = 5\n")
  assert binding(tracker, "x").origin == Origin.UNKNOWN
  assert not tracker.is_frame(adapt_source("x\n").children[0].child(Role.EXPR))


def test_unpacking_binds_unknown():
  tracker = run_assignments("a, b = pd.read_csv('a'), pd.read_csv('b')\n")
  assert binding(tracker, "a").origin == Origin.UNKNOWN
  assert binding(tracker, "b").origin == Origin.UNKNOWN


def test_convention_applies_to_unbound_names_only():
  tracker = DataflowTracker()
  assert tracker.resolve_frame("sales_df") == FrameBinding("sales_df", Origin.CONVENTION)
  assert tracker.resolve_frame("total") is None
  tracker.record_binding("df", Origin.UNKNOWN)
  assert tracker.resolve_frame("df") is None


def test_scope_chain_lookup_and_exit():
  tracker = DataflowTracker()
  tracker.record_binding("x", Origin.READ)
  tracker.enter_scope("inner")
  assert tracker.lookup("x").origin == Origin.READ
  tracker.record_binding("x", Origin.UNKNOWN)
  assert tracker.lookup("x").origin == Origin.UNKNOWN
  tracker.exit_scope()
  assert tracker.lookup("x").origin == Origin.READ


# --- Control flow ---


def test_merge_states_keeps_agreement_only():
  same = FrameBinding("a", Origin.READ)
  merged = merge_states(
    [
      {"a": same, "b": FrameBinding("b", Origin.SELECTION, True)},
      {"a": same, "b": FrameBinding("b", Origin.READ)},
    ]
  )
  assert merged["a"] == same
  assert merged["b"] == FrameBinding("b", Origin.UNKNOWN)


def test_merge_states_missing_on_one_path_is_unknown():
  merged = merge_states([{"a": FrameBinding("a", Origin.READ)}, {}])
  assert merged["a"] == FrameBinding("a", Origin.UNKNOWN)


def test_branch_pinned_on_one_arm_becomes_unknown():
  tracker = DataflowTracker()
  tracker.record_binding("x", Origin.READ)
  tracker.on_branch([lambda: tracker.record_binding("x", Origin.SELECTION, True)], fallthrough=True)
  assert tracker.lookup("x") == FrameBinding("x", Origin.UNKNOWN)


def test_branch_agreeing_arms_keep_binding():
  tracker = DataflowTracker()
  arms = [
    lambda: tracker.record_binding("x", Origin.SELECTION, True),
    lambda: tracker.record_binding("x", Origin.SELECTION, True),
  ]
  tracker.on_branch(arms)
  assert tracker.lookup("x") == FrameBinding("x", Origin.SELECTION, True)


def test_arms_start_from_pre_branch_state():
  tracker = DataflowTracker()
  tracker.record_binding("x", Origin.READ)
  seen = []

  def first():
    tracker.record_binding("x", Origin.UNKNOWN)

  def second():
    seen.append(tracker.lookup("x"))

  tracker.on_branch([first, second])
  assert seen == [FrameBinding("x", Origin.READ)]


# --- Functions ---


def test_summarize_function_parameters_and_return():
  code = """
def f(self, df, data: pd.DataFrame, count, *args):
    out = df.dropna()
    return out
"""
  summary = summarize_function(adapt_source(code).children[0], lambda name: None)
  assert summary.name == "f"
  assert summary.parameters == ("df", "data", "count", "args")
  assert summary.frame_parameters == frozenset({"df", "data"})
  assert summary.returns_frame


def test_summarize_function_without_frame_return():
  code = """
def g(df):
    n = len(df)
    return n
"""
  summary = summarize_function(adapt_source(code).children[0], lambda name: None)
  assert not summary.returns_frame


def test_summary_ignores_nested_functions():
  code = """
def outer(count):
    def inner(df):
        return df
    return count
"""
  summary = summarize_function(adapt_source(code).children[0], lambda name: None)
  assert not summary.returns_frame


def test_enter_function_binds_parameters():
  code = """
def f(df, total):
    return df
"""
  tracker = DataflowTracker()
  tracker.enter_function(adapt_source(code).children[0])
  view = TrackerView(tracker)
  assert view.local("df").origin == Origin.PARAMETER
  assert view.local("total").origin == Origin.UNKNOWN
  assert view.function.returns_frame
  tracker.exit_scope()
  assert TrackerView(tracker).function is None
