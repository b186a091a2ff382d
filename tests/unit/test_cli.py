"""Tests for argument parsing and validation in the CLI."""

from __future__ import annotations

from pathlib import Path

import pytest

from loks.cli import build_parser, main, options_from_args
from loks.exceptions import ConfigurationError
from loks.validation import (
    validate_host, validate_log_level, validate_output_dir, validate_patterns, validate_port, validate_timeout,
)


class TestOptions:
    def test_defaults_are_open_filters(self) -> None:
        options = options_from_args(build_parser().parse_args([]))
        assert options.label_selector is None
        assert options.namespaces == ()
        assert options.resource_names == ()
        assert options.container_names == ()
        assert not options.running_only
        assert not options.one_shot

    def test_all_filters(self) -> None:
        args = build_parser().parse_args(
            ["web-*", "api", "-n", "prod", "-n", "qa,dev", "-c", "app", "-l", "app=web", "--running", "--oneshot"]
        )
        options = options_from_args(args)
        assert options.resource_names == ("web-*", "api")
        assert options.namespaces == ("prod", "qa", "dev")
        assert options.container_names == ("app",)
        assert str(options.label_selector) == "app=web"
        assert options.running_only and options.one_shot

    def test_status_port_from_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("LOKS_STATUS_PORT", "9090")
        assert build_parser().parse_args([]).status_port == 9090

    def test_invalid_selector_exits_with_2(self, capsys) -> None:
        with pytest.raises(SystemExit) as info:
            main(["-l", "app in (web"])
        assert info.value.code == 2
        assert "Configuration error" in capsys.readouterr().err

    def test_invalid_port_exits_with_2(self) -> None:
        with pytest.raises(SystemExit) as info:
            main(["--status-port", "70000"])
        assert info.value.code == 2


class TestValidation:
    def test_patterns(self) -> None:
        assert validate_patterns(["a,b", " c ", "a"], "pod") == ("a", "b", "c")
        assert validate_patterns(None, "pod") == ()
        with pytest.raises(ConfigurationError):
            validate_patterns(["a,,b"], "pod")

    def test_port(self) -> None:
        assert validate_port(0) == 0
        assert validate_port(8080) == 8080
        with pytest.raises(ConfigurationError):
            validate_port(-1)

    def test_host(self) -> None:
        assert validate_host(" localhost ") == "localhost"
        with pytest.raises(ConfigurationError):
            validate_host("  ")

    def test_timeout(self) -> None:
        assert validate_timeout(None) is None
        assert validate_timeout(5) == 5.0
        with pytest.raises(ConfigurationError):
            validate_timeout(0)

    def test_output_dir(self, tmp_path: Path) -> None:
        target = tmp_path / "logs" / "nested"
        assert validate_output_dir(str(target)) == target
        assert target.is_dir()
        assert validate_output_dir(None) is None

        blocker = tmp_path / "file"
        blocker.write_text("x")
        with pytest.raises(ConfigurationError):
            validate_output_dir(str(blocker))

    def test_log_level(self) -> None:
        assert validate_log_level("debug") == "DEBUG"
        with pytest.raises(ConfigurationError):
            validate_log_level("verbose")
