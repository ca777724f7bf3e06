"""execnode.

This package contains the policy-gated command execution node: the part of a
remote-controlled host that receives structured invocation envelopes, decides
whether a shell command may run, runs it, and reports a bounded result.

High-level architecture
-----------------------

- **Capabilities** group remote-invocable commands under a category prefix
  (``system.run``, ``system.which`` ...). A ``CapabilityRegistry`` routes each
  ``NodeInvokeRequest`` to the first capability that claims the command name.
- **Exec approval policy** is an ordered list of glob rules persisted as JSON.
  It is consulted before any process is started.
- **Command runners** execute one command line and always return, even when
  the started program leaves orphaned children holding its output pipes.

Core subpackages
----------------

- ``execnode.core``: settings and logging configuration.
- ``execnode.node``: schemas, policy, runners, capabilities and wiring.

Typical workflow
----------------

1. Build a registry with ``execnode.node.factory.build_default_registry()``.
2. Feed it envelopes received from the transport with ``await registry.dispatch(request)``.
3. Send the returned ``NodeInvokeResponse`` back over the transport.

The transport itself is not part of this package.
"""
