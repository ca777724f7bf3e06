"""Exec approval policy for shell commands.

The policy layer decides, before any process is started, whether a command
line may run:

- ``ExecApprovalRule``: glob pattern + action (allow/deny/prompt) + optional
  shell filter.
- ``ExecApprovalPolicyData``: default action + ordered rules; the persisted
  document.
- ``ExecApprovalPolicy``: evaluation, mutation and JSON persistence.
- ``default_policy_data``: the built-in allow-list seed.
"""

from .defaults import default_policy_data, default_rules
from .exec_approval import POLICY_FILE_NAME, ExecApprovalPolicy, matches_pattern
from .models import (
    ExecApprovalAction,
    ExecApprovalPolicyData,
    ExecApprovalResult,
    ExecApprovalRule,
)

__all__ = [
    "POLICY_FILE_NAME",
    "ExecApprovalAction",
    "ExecApprovalPolicy",
    "ExecApprovalPolicyData",
    "ExecApprovalResult",
    "ExecApprovalRule",
    "default_policy_data",
    "default_rules",
    "matches_pattern",
]
