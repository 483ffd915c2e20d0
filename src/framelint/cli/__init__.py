"""
CLI Subpackage.

Contains the application entry-points for the command-line interface.

Modules:
    - ``__main__``: The argparse definition and dispatcher.
    - ``commands``: Handlers for the ``check`` and ``rules`` commands.
    - ``runner``: Parallel analysis of files and directories.
    - ``reporter``: Text, JSON and table rendering of results.
"""
