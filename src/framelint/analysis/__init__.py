"""
Static Analysis Package.

This package normalizes parse trees and tracks what is known about frame
bindings while the match engine walks a file.

Modules:
    - ``adapter``: LibCST and mapping front ends producing `ScriptNode` trees.
    - ``patterns``: Data-driven tables classifying calls and attributes.
    - ``dataflow``: Scoped, branch-sensitive frame provenance.
"""
