"""Node runtime: schemas, exec approval policy, command runners and capabilities.

Use ``execnode.node.factory`` to wire the pieces from ``Settings``.
"""
