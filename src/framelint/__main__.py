"""
Entry point for module execution (``python -m framelint``).

This module delegates execution to the CLI handler in ``framelint.cli.__main__``.
"""

import sys
from framelint.cli.__main__ import main

if __name__ == "__main__":
  sys.exit(main())
