"""Exec approval policy: ordered glob rules gating ``system.run``.

``ExecApprovalPolicy`` is consulted before any process is started. It owns a
single JSON document (``exec-policy.json``) in its storage directory:

- the document is loaded once at construction,
- it is only changed through the mutation methods (``set_rules``,
  ``add_rule``, ``insert_rule``, ``remove_rule``),
- every mutation is written to disk before the call returns.

Only one instance should own a given directory; the file is not designed for
concurrent writers.

Evaluation walks the rules top to bottom. Disabled rules and rules restricted
to other shells are skipped; the first rule whose pattern matches the whole
command decides. When nothing matches, the default action applies.
"""

from __future__ import annotations

import os
import re
import tempfile
import threading
from functools import lru_cache
from pathlib import Path
from typing import Iterable, List, Optional, Union

from execnode.core.logging_config import get_logger
from execnode.errors import PolicyPersistenceError

from ..shells import resolve_shell
from .defaults import default_policy_data
from .models import ExecApprovalAction, ExecApprovalPolicyData, ExecApprovalResult, ExecApprovalRule

logger = get_logger(__name__)

POLICY_FILE_NAME = "exec-policy.json"


@lru_cache(maxsize=512)
def _compile_glob(pattern: str) -> "re.Pattern[str]":
    parts: List[str] = []
    for ch in pattern:
        if ch == "*":
            parts.append(".*")
        elif ch == "?":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
    return re.compile("".join(parts), re.IGNORECASE | re.DOTALL)


def matches_pattern(text: Optional[str], pattern: Optional[str]) -> bool:
    """
    Case-insensitive whole-string glob match.

    ``*`` matches any run of characters (including none) and ``?`` matches
    exactly one character; everything else is literal. ``"rm"`` therefore only
    matches ``"rm"``; use ``"*rm*"`` for "contains" semantics.
    """
    if text is None or pattern is None:
        return False
    return _compile_glob(pattern).fullmatch(text) is not None


class ExecApprovalPolicy:
    """Persisted, ordered allow/deny/prompt rules for shell commands."""

    def __init__(self, directory: Union[str, Path], *, default_shell: Optional[str] = None) -> None:
        """
        Load (or seed) the policy stored in ``directory``.

        Args:
            directory: Directory owning ``exec-policy.json``. Created on first write.
            default_shell: Shell assumed when ``evaluate`` is called without one, or
                with one no runner knows. Defaults to the platform shell
                (``powershell`` on Windows, ``sh`` elsewhere).
        """
        self._path = Path(directory) / POLICY_FILE_NAME
        self._default_shell = default_shell
        self._lock = threading.RLock()
        self._data = self._load()

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def path(self) -> Path:
        """Location of the backing JSON document."""
        return self._path

    @property
    def rules(self) -> List[ExecApprovalRule]:
        """Copy of the current rules, in evaluation order."""
        with self._lock:
            return [rule.model_copy(deep=True) for rule in self._data.rules]

    @property
    def default_action(self) -> ExecApprovalAction:
        with self._lock:
            return self._data.default_action

    def get_policy_data(self) -> ExecApprovalPolicyData:
        """Snapshot of the default action and all rules."""
        with self._lock:
            return self._data.model_copy(deep=True)

    def matches_pattern(self, text: Optional[str], pattern: Optional[str]) -> bool:
        """See :func:`matches_pattern`."""
        return matches_pattern(text, pattern)

    def evaluate(self, command: Optional[str], shell: Optional[str] = None) -> ExecApprovalResult:
        """
        Decide whether ``command`` may run under ``shell``.

        Returns:
            ExecApprovalResult: ``allowed`` is only True for an ``allow`` verdict.
            A ``prompt`` verdict is reported with ``requires_prompt`` set so the
            caller can hand it to an approver instead of treating it as final.
        """
        if command is None or not command.strip():
            return ExecApprovalResult(allowed=False, reason="Empty command")

        text = command.strip()
        shell_name = resolve_shell(shell, self._default_shell)

        with self._lock:
            rules = list(self._data.rules)
            default_action = self._data.default_action

        for rule in rules:
            if not rule.enabled or not rule.applies_to_shell(shell_name):
                continue
            if not matches_pattern(text, rule.pattern):
                continue
            logger.debug(f"Exec policy: '{text}' ({shell_name}) matched '{rule.pattern}' -> {rule.action.value}")
            return _verdict(rule.action, rule.pattern, _rule_reason(rule))

        logger.debug(f"Exec policy: '{text}' ({shell_name}) matched no rule -> default {default_action.value}")
        return _verdict(default_action, None, f"No matching rule (default action: {default_action.value})")

    # ------------------------------------------------------------------
    # Mutations (each one persisted before returning)
    # ------------------------------------------------------------------

    def set_rules(
        self,
        rules: Iterable[ExecApprovalRule],
        default_action: Optional[ExecApprovalAction] = None,
    ) -> None:
        """Replace all rules, and the default action when given, in one step."""
        with self._lock:
            data = ExecApprovalPolicyData(
                default_action=default_action if default_action is not None else self._data.default_action,
                rules=[rule.model_copy(deep=True) for rule in rules],
            )
            self._commit(data)
        logger.info(f"Exec policy replaced: {len(data.rules)} rules, default={data.default_action.value}")

    def add_rule(self, rule: ExecApprovalRule) -> None:
        """Append ``rule`` at the end of the list."""
        with self._lock:
            self.insert_rule(len(self._data.rules), rule)

    def insert_rule(self, index: int, rule: ExecApprovalRule) -> None:
        """Insert ``rule`` at ``index``, clamped into ``[0, len(rules)]``."""
        with self._lock:
            rules = list(self._data.rules)
            position = min(max(index, 0), len(rules))
            rules.insert(position, rule.model_copy(deep=True))
            self._commit(self._data.model_copy(update={"rules": rules}))
        logger.info(f"Exec policy rule '{rule.pattern}' ({rule.action.value}) inserted at {position}")

    def remove_rule(self, index: int) -> bool:
        """Remove the rule at ``index``; out-of-range indexes are a no-op returning False."""
        with self._lock:
            rules = list(self._data.rules)
            if index < 0 or index >= len(rules):
                return False
            removed = rules.pop(index)
            self._commit(self._data.model_copy(update={"rules": rules}))
        logger.info(f"Exec policy rule '{removed.pattern}' removed from {index}")
        return True

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _commit(self, data: ExecApprovalPolicyData) -> None:
        # Write first: a failed write leaves the in-memory policy untouched.
        self._write(data)
        self._data = data

    def _load(self) -> ExecApprovalPolicyData:
        if not self._path.exists():
            data = default_policy_data()
            try:
                self._write(data)
                logger.info(f"Exec policy seeded with {len(data.rules)} built-in rules at {self._path}")
            except PolicyPersistenceError as e:
                logger.warning(f"{e}; using built-in defaults in memory")
            return data

        try:
            data = ExecApprovalPolicyData.model_validate_json(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Exec policy at {self._path} is unreadable, falling back to built-in defaults: {e}")
            return default_policy_data()

        logger.info(f"Exec policy loaded from {self._path}: {len(data.rules)} rules")
        return data

    def _write(self, data: ExecApprovalPolicyData) -> None:
        tmp_path: Optional[str] = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=".exec-policy-", suffix=".tmp", dir=self._path.parent)
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(data.model_dump_json(by_alias=True, indent=2))
            os.replace(tmp_path, self._path)
        except OSError as e:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise PolicyPersistenceError(self._path, str(e)) from e


def _rule_reason(rule: ExecApprovalRule) -> str:
    label = {
        ExecApprovalAction.allow: "Allowed by rule",
        ExecApprovalAction.deny: "Denied by rule",
        ExecApprovalAction.prompt: "Approval required by rule",
    }[rule.action]
    if rule.description:
        return f"{label} '{rule.pattern}' ({rule.description})"
    return f"{label} '{rule.pattern}'"


def _verdict(action: ExecApprovalAction, pattern: Optional[str], reason: str) -> ExecApprovalResult:
    return ExecApprovalResult(
        allowed=action == ExecApprovalAction.allow,
        reason=reason,
        action=action,
        matched_pattern=pattern,
    )
