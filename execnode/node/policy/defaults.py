"""Built-in exec approval rules.

The seed policy is an allow-list: destructive or system-altering verbs are
denied explicitly (listed first, so they win over broader allow patterns),
read-only and informational commands are allowed, and everything else falls
through to ``deny``.
"""

from __future__ import annotations

from typing import List, Tuple

from .models import ExecApprovalAction, ExecApprovalPolicyData, ExecApprovalRule

_DENY: Tuple[Tuple[str, str], ...] = (
    # File deletion
    ("rm *", "Delete files"),
    ("rmdir *", "Delete directories"),
    ("del *", "Delete files"),
    ("erase *", "Delete files"),
    ("rd *", "Delete directories"),
    ("Remove-Item*", "Delete files or registry keys"),
    ("format *", "Format a volume"),
    ("Format-Volume*", "Format a volume"),
    # Power state
    ("shutdown*", "Shut down the machine"),
    ("reboot*", "Reboot the machine"),
    ("halt*", "Halt the machine"),
    ("poweroff*", "Power off the machine"),
    ("Stop-Computer*", "Shut down the machine"),
    ("Restart-Computer*", "Reboot the machine"),
    # Registry and system configuration
    ("reg *", "Edit the registry"),
    ("regedit*", "Edit the registry"),
    ("Set-ItemProperty*", "Edit registry values"),
    ("New-ItemProperty*", "Edit registry values"),
    ("bcdedit*", "Edit boot configuration"),
    ("diskpart*", "Edit disk partitions"),
    # Arbitrary downloads and code execution
    ("Invoke-WebRequest*", "Download from the network"),
    ("Invoke-RestMethod*", "Download from the network"),
    ("iwr *", "Download from the network"),
    ("irm *", "Download from the network"),
    ("Start-BitsTransfer*", "Download from the network"),
    ("curl *", "Download from the network"),
    ("wget *", "Download from the network"),
    ("certutil*", "Download or decode files"),
    ("Invoke-Expression*", "Evaluate arbitrary code"),
    ("iex *", "Evaluate arbitrary code"),
)

_ALLOW: Tuple[Tuple[str, str], ...] = (
    ("echo *", "Print text"),
    ("Write-Output *", "Print text"),
    ("hostname", "Show host name"),
    ("whoami", "Show current user"),
    ("pwd", "Show working directory"),
    ("date", "Show date"),
    ("uptime", "Show uptime"),
    ("uname", "Show system information"),
    ("uname *", "Show system information"),
    ("ver", "Show OS version"),
    ("systeminfo", "Show system information"),
    ("ipconfig", "Show network configuration"),
    ("dir", "List directory"),
    ("dir *", "List directory"),
    ("ls", "List directory"),
    ("ls *", "List directory"),
    ("where *", "Locate executables"),
    ("which *", "Locate executables"),
    ("Get-*", "PowerShell read-only cmdlets"),
    ("Test-*", "PowerShell test cmdlets"),
    ("Resolve-*", "PowerShell resolve cmdlets"),
    ("Select-*", "PowerShell selection cmdlets"),
    ("git status*", "Show repository status"),
    ("git log*", "Show repository history"),
    ("git diff*", "Show repository changes"),
)


def default_rules() -> List[ExecApprovalRule]:
    """Return a fresh copy of the built-in rule list."""
    rules = [ExecApprovalRule(pattern=p, action=ExecApprovalAction.deny, description=d) for p, d in _DENY]
    rules.extend(ExecApprovalRule(pattern=p, action=ExecApprovalAction.allow, description=d) for p, d in _ALLOW)
    return rules


def default_policy_data() -> ExecApprovalPolicyData:
    """Return the seed policy document: built-in rules with a ``deny`` default."""
    return ExecApprovalPolicyData(default_action=ExecApprovalAction.deny, rules=default_rules())
