"""
Runtime Configuration Store.

Rule configuration is a mapping from rule id to an enabled flag and an
optional severity override. It is read from ``[tool.framelint]`` in the
nearest ``pyproject.toml`` and overridden by CLI arguments:

.. code-block:: toml

    [tool.framelint]
    disable = ["FL003"]
    deadline_seconds = 10

    [tool.framelint.rules.FL004]
    severity = "error"

Entries naming unknown rules, or carrying invalid settings, do not abort
loading. `LintConfig.resolve` reports each as a `ConfigError` and applies the
rest.
"""

import sys
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

from pydantic import BaseModel, Field, PrivateAttr, ValidationError

from framelint.enums import Severity

if sys.version_info >= (3, 11):
  import tomllib
else:
  import tomli as tomllib


class ConfigError(Exception):
  """
  An invalid configuration entry.

  Attributes:
      key: The rule id or setting the error concerns.
  """

  def __init__(self, message: str, key: str = ""):
    super().__init__(message)
    self.key = key


class RuleSetting(BaseModel):
  """
  Per-rule settings.
  """

  enabled: bool = Field(True, description="If False, the rule's diagnostics are dropped.")
  severity: Optional[Severity] = Field(None, description="Overrides the rule's default severity.")


class ResolvedConfig:
  """
  Validated rule configuration queried by the suppression resolver.
  """

  def __init__(self, disabled: FrozenSet[str] = frozenset(), severities: Optional[Dict[str, Severity]] = None):
    """
    Args:
        disabled: Rule ids whose diagnostics are dropped.
        severities: Severity overrides by rule id.
    """
    self.disabled = disabled
    self.severities = dict(severities or {})

  def is_enabled(self, rule_id: str) -> bool:
    """True unless the rule is disabled."""
    return rule_id not in self.disabled

  def severity_for(self, rule_id: str, default: Severity) -> Severity:
    """The configured severity of a rule, or `default`."""
    return self.severities.get(rule_id, default)


class LintConfig(BaseModel):
  """
  Global configuration container for a lint run.
  """

  rules: Dict[str, Any] = Field(default_factory=dict, description="Raw per-rule settings keyed by rule id.")
  select: Optional[List[str]] = Field(None, description="If set, only these rules are enabled.")
  disable: List[str] = Field(default_factory=list, description="Rule ids to disable.")
  deadline_seconds: Optional[float] = Field(None, gt=0, description="Wall-clock bound per file.")
  jobs: int = Field(1, ge=1, description="Number of files analysed in parallel.")

  # Entries of [tool.framelint] rejected by `load`, reported by `resolve`.
  _load_errors: List[ConfigError] = PrivateAttr(default_factory=list)

  def resolve(self, known_ids: Iterable[str]) -> Tuple[ResolvedConfig, List[ConfigError]]:
    """
    Validates the configuration against the rule catalog.

    Args:
        known_ids: Ids of the catalog rules.

    Returns:
        The usable configuration and one `ConfigError` per rejected entry.
    """
    known = list(known_ids)
    errors: List[ConfigError] = list(self._load_errors)
    disabled = set()
    severities: Dict[str, Severity] = {}

    def check(rule_id: str, where: str) -> bool:
      if rule_id in known:
        return True
      errors.append(ConfigError(f"Unknown rule id '{rule_id}' in {where}", key=rule_id))
      return False

    if self.select is not None:
      selected = {rule_id for rule_id in self.select if check(rule_id, "select")}
      disabled.update(rule_id for rule_id in known if rule_id not in selected)

    for rule_id in self.disable:
      if check(rule_id, "disable"):
        disabled.add(rule_id)

    for rule_id in sorted(self.rules):
      if not check(rule_id, "rules"):
        continue
      try:
        setting = RuleSetting.model_validate(self.rules[rule_id])
      except ValidationError as e:
        errors.append(ConfigError(f"Invalid settings for '{rule_id}': {e.errors()[0]['msg']}", key=rule_id))
        continue
      if not setting.enabled:
        disabled.add(rule_id)
      if setting.severity is not None:
        severities[rule_id] = setting.severity

    return ResolvedConfig(frozenset(disabled), severities), errors

  @classmethod
  def load(
    cls,
    select: Optional[List[str]] = None,
    ignore: Optional[List[str]] = None,
    deadline_seconds: Optional[float] = None,
    jobs: Optional[int] = None,
    search_path: Optional[Path] = None,
  ) -> "LintConfig":
    """
    Loads configuration from pyproject.toml and overrides with CLI arguments.

    Args:
        select: Override: only enable these rules.
        ignore: Additional rules to disable.
        deadline_seconds: Override for the per-file wall-clock bound.
        jobs: Override for parallelism.
        search_path: Directory to start searching for TOML config.

    Returns:
        LintConfig: The fully resolved configuration object.
    """
    toml_config, load_errors = cls._checked_settings(_load_toml_settings(search_path or Path.cwd()))

    final_select = select if select is not None else toml_config.get("select")
    final_disable = [*toml_config.get("disable", []), *(ignore or [])]

    final_deadline = deadline_seconds
    if final_deadline is None:
      final_deadline = toml_config.get("deadline_seconds")

    final_jobs = jobs if jobs is not None else toml_config.get("jobs", 1)

    config = cls(
      rules=toml_config.get("rules", {}),
      select=final_select,
      disable=final_disable,
      deadline_seconds=final_deadline,
      jobs=final_jobs,
    )
    config._load_errors = load_errors
    return config

  @classmethod
  def _checked_settings(cls, raw: Dict[str, Any]) -> Tuple[Dict[str, Any], List[ConfigError]]:
    """
    Validates each ``[tool.framelint]`` key on its own so one bad entry does
    not discard the others.

    Returns:
        The accepted settings and one `ConfigError` per rejected key.
    """
    settings: Dict[str, Any] = {}
    errors: List[ConfigError] = []
    for key, value in raw.items():
      if key not in cls.model_fields:
        errors.append(ConfigError(f"Unknown setting '{key}' in [tool.framelint]", key=key))
        continue
      try:
        cls.model_validate({key: value})
      except ValidationError as e:
        errors.append(ConfigError(f"Invalid value for '{key}' in [tool.framelint]: {e.errors()[0]['msg']}", key=key))
        continue
      settings[key] = value
    return settings, errors


def _load_toml_settings(start_path: Path) -> Dict[str, Any]:
  """
  Searches `start_path` and its parents for ``pyproject.toml`` and extracts
  the ``[tool.framelint]`` table.

  Args:
      start_path (Path): Directory to start search from.

  Returns:
      Dict: The table, or an empty dict if none is found or the file is invalid.
  """
  current = start_path.resolve()

  for parent in [current, *current.parents]:
    toml_path = parent / "pyproject.toml"
    if toml_path.exists() and toml_path.is_file():
      try:
        with open(toml_path, "rb") as f:
          data = tomllib.load(f)
      except (OSError, tomllib.TOMLDecodeError):
        return {}
      table = data.get("tool", {}).get("framelint", {})
      return table if isinstance(table, dict) else {}

  return {}


def parse_rule_list(raw: Optional[str]) -> Optional[List[str]]:
  """
  Parses a comma separated CLI list (``"FL001, FL004"``).

  Args:
      raw: The raw argument, or None.

  Returns:
      List of upper-cased ids, or None if `raw` is None.
  """
  if raw is None:
    return None
  return [item.strip().upper() for item in raw.split(",") if item.strip()]
