from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from pydantic import Field, field_validator

from ..schemas.base import BaseSchema


class ExecApprovalAction(str, Enum):
    """
    Verdict attached to an approval rule (and to the policy default).

    Attributes:
        allow: Run the command without asking.
        deny: Refuse the command.
        prompt: The command needs an explicit confirmation from an external approver.
    """
    allow = "allow"
    deny = "deny"
    prompt = "prompt"

    @classmethod
    def parse(cls, text: Optional[str]) -> "ExecApprovalAction":
        """Map free-form action text to an action; anything unrecognized is ``deny``."""
        value = (text or "").strip().lower()
        if value == "allow":
            return cls.allow
        if value == "prompt":
            return cls.prompt
        return cls.deny


class ExecApprovalRule(BaseSchema):
    """
    One ordered entry of the exec approval policy.

    ``pattern`` is a case-insensitive whole-string glob over the command text
    (``*`` any run of characters, ``?`` exactly one). An empty ``shells`` list
    means the rule applies to every shell.
    """
    pattern: str = Field(default="*", description="Glob matched against the whole command text.")
    action: ExecApprovalAction = ExecApprovalAction.deny
    shells: List[str] = Field(
        default_factory=list,
        description="Shell names this rule is restricted to; empty means any shell.",
    )
    description: Optional[str] = None
    enabled: bool = True

    @field_validator("shells", mode="before")
    @classmethod
    def _none_shells_to_empty(cls, value):
        return [] if value is None else value

    def applies_to_shell(self, shell: str) -> bool:
        """Return True when the rule has no shell filter or lists ``shell`` (case-insensitive)."""
        if not self.shells:
            return True
        return any(s.strip().lower() == shell for s in self.shells)


class ExecApprovalPolicyData(BaseSchema):
    """
    Durable state of an ``ExecApprovalPolicy``.

    This is exactly the document written to ``exec-policy.json``; rule order is
    preserved as written.
    """
    default_action: ExecApprovalAction = ExecApprovalAction.deny
    rules: List[ExecApprovalRule] = Field(default_factory=list)


@dataclass(frozen=True)
class ExecApprovalResult:
    """
    Result of evaluating one command line against the policy.

    Attributes:
        allowed: Whether the command may run right away.
        reason: Human-readable explanation of the verdict.
        action: The action that produced the verdict (``None`` for an empty command).
        matched_pattern: Pattern of the winning rule, ``None`` when the default applied.
    """
    allowed: bool
    reason: str
    action: Optional[ExecApprovalAction] = None
    matched_pattern: Optional[str] = None

    @property
    def requires_prompt(self) -> bool:
        """True when the verdict is ``prompt``: neither allowed nor definitively denied."""
        return self.action == ExecApprovalAction.prompt
