"""
Central Logging and Console Utilities.

Output goes through the standard `logging` library, rendered by `rich`.

1.  **Logging**: `log_info`, `log_success`, `log_warning` and `log_error`
    route to the root logger, whose `RichHandler` writes to the active console.
2.  **Console Injection**: the module-level `console` is a proxy whose backend
    can be swapped with `set_console` (for example to capture a report in a
    buffer); logging handlers follow the swap.

Attributes:
    console (_ConsoleProxy): Stable reference to the active Rich Console.
"""

import logging
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

SUCCESS_LEVEL_NUM = 25
logging.addLevelName(SUCCESS_LEVEL_NUM, "SUCCESS")

_THEME = Theme(
  {
    "logging.level.success": "green",
    "info": "dim cyan",
    "warning": "yellow",
    "error": "bold red",
    "success": "green",
    "path": "bold blue",
    "rule": "bold magenta",
    "severity.error": "bold red",
    "severity.warning": "yellow",
    "severity.info": "cyan",
  }
)


class _ConsoleProxy:
  """
  Forwards printing to a swappable `rich.console.Console`.

  Modules import the proxy once; `set_backend` changes where everything,
  including log records, is written.
  """

  def __init__(self) -> None:
    self._backend: Console = Console(theme=_THEME)
    self._configure_logging()

  def set_backend(self, new_console: Console) -> None:
    """
    Injects a new Console backend and updates logging handlers.

    Args:
        new_console (Console): The new Rich Console instance to use.
    """
    self._backend = new_console
    self._configure_logging()

  def reset(self) -> None:
    """Resets the proxy to a fresh standard output console."""
    self._backend = Console(theme=_THEME)
    self._configure_logging()

  @property
  def backend(self) -> Console:
    """The currently active console."""
    return self._backend

  def _configure_logging(self) -> None:
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
      if isinstance(handler, RichHandler):
        root_logger.removeHandler(handler)

    rich_handler = RichHandler(
      console=self._backend,
      show_time=False,
      omit_repeated_times=False,
      show_path=False,
      markup=True,
      rich_tracebacks=True,
    )

    root_logger.setLevel(logging.INFO)
    root_logger.addHandler(rich_handler)

  def print(self, *args: Any, **kwargs: Any) -> None:
    """Forwards `print` calls to the active backend."""
    self._backend.print(*args, **kwargs)

  def __getattr__(self, name: str) -> Any:
    return getattr(self._backend, name)


console = _ConsoleProxy()


def set_console(new_console: Console) -> None:
  """
  Redirects console output and logging to `new_console`.

  Args:
      new_console (Console): The configured Rich console to use globally.
  """
  console.set_backend(new_console)


def reset_console() -> None:
  """Resets logging and console to standard output."""
  console.reset()


def log_info(msg: str) -> None:
  """Logs an informational message."""
  logging.info(msg, extra={"markup": True})


def log_success(msg: str) -> None:
  """Logs a success message."""
  logging.log(SUCCESS_LEVEL_NUM, msg, extra={"markup": True})


def log_warning(msg: str) -> None:
  """Logs a warning message."""
  logging.warning(msg, extra={"markup": True})


def log_error(msg: str) -> None:
  """Logs an error message."""
  logging.error(msg, extra={"markup": True})


def make_console(**kwargs: Any) -> Console:
  """
  Builds a Console carrying the framelint theme.

  Args:
      **kwargs: Passed to `rich.console.Console` (e.g. `record=True`, `stderr=True`).
  """
  return Console(theme=_THEME, **kwargs)


def log_to_stderr() -> None:
  """Sends console output and logging to standard error, keeping stdout for reports."""
  console.set_backend(make_console(stderr=True))
