"""
Match Engine.

This module provides the `MatchEngine`, the driver of a lint run over one
normalized tree. A run consists of:

1.  **Traversal**: a single depth-first, pre-order walk. At every node each
    catalog rule is invoked with the node and a read-only `TrackerView`; each
    finding becomes one raw `Diagnostic` located at the node's span, or at
    the narrower span the finding names.
2.  **Dataflow**: the walk drives a fresh `DataflowTracker`. Scopes are pushed
    at functions and classes, branch arms are evaluated from snapshots and
    merged, and assignments bind after their children are visited.
3.  **Containment**: every matcher invocation has its own error boundary. A
    crash becomes an ``FL000`` diagnostic and the walk continues.
4.  **Resolution**: raw diagnostics pass through the `SuppressionResolver`.

An optional wall-clock deadline turns an overlong run into an ``incomplete``
result whose partial diagnostics are discarded.

The `lint_source` and `lint_mapping` helpers wrap parsing, adaptation and the
run, turning an `AdapterError` into a ``failed`` result.
"""

import logging
import time
from typing import Any, Callable, List, Mapping, Optional, Sequence

from rich.markup import escape

from framelint.analysis.adapter import AdapterError, Role, ScriptNode, adapt_mapping, adapt_module, parse_source
from framelint.analysis.dataflow import DataflowTracker, TrackerView
from framelint.config import LintConfig
from framelint.core.diagnostics import AnalysisResult, Diagnostic, SuppressionQuery, SuppressionResolver
from framelint.core.suppression import InlineSuppressions
from framelint.enums import AnalysisStatus, NodeKind, Origin, Severity
from framelint.rules import CATALOG, RULE_CRASH_ID, Rule
from framelint.utils.console import log_error, log_warning

logger = logging.getLogger(__name__)


class DeadlineExceeded(Exception):
  """Raised inside a run when the wall-clock bound is passed."""


class _Traversal:
  """
  State of one engine run: the tracker, the raw diagnostics and the deadline.
  """

  def __init__(
    self,
    catalog: Sequence[Rule],
    deadline: Optional[float],
    clock: Callable[[], float],
  ):
    self.catalog = catalog
    self.deadline = deadline
    self.clock = clock
    self.tracker = DataflowTracker()
    self.view = TrackerView(self.tracker)
    self.raw: List[Diagnostic] = []

  def _check_deadline(self) -> None:
    if self.deadline is not None and self.clock() > self.deadline:
      raise DeadlineExceeded()

  def _apply_rules(self, node: ScriptNode) -> None:
    for rule in self.catalog:
      try:
        findings = list(rule.match(node, self.view))
      except Exception as e:
        logger.debug("Rule %s raised at %s", rule.id, node.span, exc_info=True)
        log_error(f"Rule [rule]{rule.id}[/rule] crashed at line {node.span.start_line}: {escape(repr(e))}")
        self.raw.append(
          Diagnostic.at(
            RULE_CRASH_ID,
            Severity.ERROR,
            node.span,
            f"Rule {rule.id} crashed: {e!r}",
            subject=rule.id,
          )
        )
        continue
      for finding in findings:
        span = finding.span or node.span
        self.raw.append(Diagnostic.at(rule.id, rule.severity, span, finding.message, finding.fix, finding.subject))

  # --- Traversal ---

  def visit(self, node: ScriptNode) -> None:
    self._check_deadline()
    self._apply_rules(node)

    if node.kind == NodeKind.FUNCTION_DEF:
      self._visit_function(node)
    elif node.kind == NodeKind.CLASS_DEF:
      self._visit_class(node)
    elif node.kind == NodeKind.BRANCH:
      self._visit_branch(node)
    elif node.kind == NodeKind.ASSIGNMENT:
      self._visit_all(node.children)
      self.tracker.bind_assignment(node)
    else:
      self._visit_all(node.children)

  def _visit_all(self, nodes: Sequence[ScriptNode]) -> None:
    for child in nodes:
      self.visit(child)

  def _visit_function(self, node: ScriptNode) -> None:
    # Decorators, annotations and defaults evaluate in the enclosing scope.
    self._visit_all([c for c in node.children if c.role != Role.BODY])
    self.tracker.enter_function(node)
    try:
      self._visit_all(node.children_with(Role.BODY))
    finally:
      self.tracker.exit_scope()
    if node.name:
      self.tracker.record_binding(node.name, Origin.UNKNOWN)

  def _visit_class(self, node: ScriptNode) -> None:
    self._visit_all([c for c in node.children if c.role != Role.BODY])
    self.tracker.enter_scope(node.name or "<class>")
    try:
      self._visit_all(node.children_with(Role.BODY))
    finally:
      self.tracker.exit_scope()
    if node.name:
      self.tracker.record_binding(node.name, Origin.UNKNOWN)

  def _visit_branch(self, node: ScriptNode) -> None:
    handler = getattr(self, f"_branch_{node.tag}", None)
    if handler is None:
      self._visit_all(node.children)
    else:
      handler(node)

  def _arm(self, *nodes: Optional[ScriptNode]) -> Callable[[], None]:
    present = [n for n in nodes if n is not None]
    return lambda: self._visit_all(present)

  def _branch_If(self, node: ScriptNode) -> None:
    self._visit_all(node.children_with(Role.TEST))
    orelse = node.child(Role.ORELSE)
    arms = [self._arm(node.child(Role.BODY))]
    if orelse is not None:
      arms.append(self._arm(orelse))
    self.tracker.on_branch(arms, fallthrough=orelse is None)

  def _branch_For(self, node: ScriptNode) -> None:
    self._visit_all(node.children_with(Role.ITER))
    target = node.child(Role.TARGET)

    def arm() -> None:
      if target is not None:
        self.visit(target)
        self.tracker.bind_target(target)
      self._visit_all([c for c in node.children if c.role in (Role.BODY, Role.ORELSE)])

    self.tracker.on_branch([arm], fallthrough=True)

  def _branch_While(self, node: ScriptNode) -> None:
    self._visit_all(node.children_with(Role.TEST))
    self.tracker.on_branch([self._arm(node.child(Role.BODY), node.child(Role.ORELSE))], fallthrough=True)

  def _branch_Try(self, node: ScriptNode) -> None:
    arms = [self._arm(node.child(Role.BODY), node.child(Role.ORELSE))]
    arms.extend(self._arm(handler) for handler in node.children_with(Role.HANDLER))
    self.tracker.on_branch(arms)
    self._visit_all(node.children_with(Role.FINALLY))

  def _branch_Match(self, node: ScriptNode) -> None:
    self._visit_all(node.children_with(Role.TEST))
    arms = [self._arm(case) for case in node.children_with(Role.CASE)]
    self.tracker.on_branch(arms, fallthrough=True)


class MatchEngine:
  """
  Runs the rule catalog over normalized trees.

  An engine holds only immutable inputs (catalog, resolved configuration,
  suppression query). Every `run` builds its own tracker, so one engine may
  serve many files, including from several threads.
  """

  def __init__(
    self,
    catalog: Sequence[Rule] = CATALOG,
    config: Optional[LintConfig] = None,
    suppressed: Optional[SuppressionQuery] = None,
    deadline_seconds: Optional[float] = None,
    clock: Callable[[], float] = time.monotonic,
  ):
    """
    Initializes the Engine.

    Invalid configuration entries are logged once, kept in `config_errors`
    and ignored; the rest of the configuration applies.

    Args:
        catalog: Rules to run (defaults to the full catalog).
        config: Rule enable flags, severity overrides and deadline.
        suppressed: Default suppression query used when `run` gets none.
        deadline_seconds: Wall-clock bound per run. Overrides the config.
        clock: Monotonic time source in seconds.
    """
    self.catalog = tuple(catalog)
    self.config = config or LintConfig()
    self.resolved, self.config_errors = self.config.resolve(rule.id for rule in self.catalog)
    for error in self.config_errors:
      log_warning(f"Ignoring configuration entry: {escape(str(error))}")
    self.suppressed = suppressed
    self.deadline_seconds = deadline_seconds if deadline_seconds is not None else self.config.deadline_seconds
    self.clock = clock

  def run(
    self,
    root: ScriptNode,
    path: Optional[str] = None,
    suppressed: Optional[SuppressionQuery] = None,
  ) -> AnalysisResult:
    """
    Analyses one normalized tree.

    Args:
        root: The MODULE node.
        path: File name recorded on the result.
        suppressed: Suppression query for this file (defaults to the engine's).

    Returns:
        AnalysisResult: Ordered diagnostics, or an ``incomplete`` status with
        no diagnostics if the deadline passed.
    """
    deadline = None
    if self.deadline_seconds is not None:
      deadline = self.clock() + self.deadline_seconds

    traversal = _Traversal(self.catalog, deadline, self.clock)
    try:
      traversal.visit(root)
    except DeadlineExceeded:
      message = f"Analysis exceeded the deadline of {self.deadline_seconds}s"
      log_warning(f"[path]{escape(path or '<input>')}[/path]: {message}")
      return AnalysisResult(path=path, status=AnalysisStatus.INCOMPLETE, errors=[message])

    resolver = SuppressionResolver(
      config=self.resolved,
      suppressed=suppressed if suppressed is not None else self.suppressed,
      crash_rule_id=RULE_CRASH_ID,
    )
    return AnalysisResult(path=path, status=AnalysisStatus.COMPLETE, diagnostics=resolver.resolve(traversal.raw))


def _failed(path: Optional[str], error: AdapterError) -> AnalysisResult:
  log_error(f"[path]{escape(path or '<input>')}[/path]: {escape(str(error))}")
  return AnalysisResult(path=path, status=AnalysisStatus.FAILED, errors=[str(error)])


def lint_source(
  code: str,
  path: Optional[str] = None,
  config: Optional[LintConfig] = None,
  engine: Optional[MatchEngine] = None,
) -> AnalysisResult:
  """
  Parses, adapts and analyses Python source.

  Inline ``noqa`` / ``framelint: disable=`` comments are honoured.

  Args:
      code: Python source text.
      path: File name recorded on the result.
      config: Configuration for a new engine (ignored if `engine` is given).
      engine: Engine to reuse across files.

  Returns:
      AnalysisResult: ``failed`` with the error text if the source does not
      parse or normalize.
  """
  engine = engine or MatchEngine(config=config)
  try:
    module = parse_source(code)
    root = adapt_module(module, code)
  except AdapterError as e:
    return _failed(path, e)
  return engine.run(root, path=path, suppressed=InlineSuppressions.from_module(module))


def lint_mapping(
  data: Mapping[str, Any],
  source: Optional[str] = None,
  path: Optional[str] = None,
  config: Optional[LintConfig] = None,
  suppressed: Optional[SuppressionQuery] = None,
  engine: Optional[MatchEngine] = None,
) -> AnalysisResult:
  """
  Analyses an externally serialized tree.

  Args:
      data: Root node mapping (see `adapt_mapping`).
      source: Optional source text for fix suggestions.
      path: File name recorded on the result.
      config: Configuration for a new engine (ignored if `engine` is given).
      suppressed: Host suppression query.
      engine: Engine to reuse.

  Returns:
      AnalysisResult: ``failed`` if the tree is malformed.
  """
  engine = engine or MatchEngine(config=config)
  try:
    root = adapt_mapping(data, source)
  except AdapterError as e:
    return _failed(path, e)
  return engine.run(root, path=path, suppressed=suppressed)


__all__ = ["DeadlineExceeded", "MatchEngine", "lint_mapping", "lint_source"]
