"""Tests for ${env:NAME} interpolation and env assignment steps."""

import pytest

from matrixci import variables
from matrixci.model import Step
from matrixci.variables import apply_assignment, expand_value, parse_assignment, substitute


def step(run, shell="default"):
    return Step(phase="install", index=0, run=run, shell=shell)


def test_substitute_known_variable():
    url = "https://static.rust-lang.org/dist/rust-${env:TARGET}.exe"
    assert substitute(url, {"TARGET": "nightly-i686-pc-windows-gnu"}) == (
        "https://static.rust-lang.org/dist/rust-nightly-i686-pc-windows-gnu.exe"
    )


def test_substitute_leaves_unknown_names():
    assert substitute("echo ${env:HOME} ${env:X}", {"X": "1"}) == "echo ${env:HOME} 1"


def test_substitute_escape():
    assert substitute("echo $${env:X}", {"X": "1"}) == "echo ${env:X}"


def test_substitute_does_not_touch_bare_ps_references():
    assert substitute("$env:PATH", {"PATH": "nope"}) == "$env:PATH"


def test_parse_powershell_assignment():
    a = parse_assignment(step('$env:PATH="$env:PATH;C:\\rust\\bin"', shell="ps"))
    assert a is not None
    assert a.name == "PATH"
    assert a.value == "$env:PATH;C:\\rust\\bin"
    assert a.expand


def test_parse_powershell_single_quoted_is_literal():
    a = parse_assignment(step("$env:GREETING = '$env:USER'", shell="ps"))
    assert a is not None
    assert not a.expand
    assert expand_value(a, {"USER": "x"}) == "$env:USER"


@pytest.mark.parametrize("run", [
    "Set-WinSystemLocale ja-JP",
    '$env:X = "a" + "b"',
    "$env:X = 1; Write-Host hi",
    '$env:X="a"\n$env:Y="b"',
])
def test_parse_powershell_non_assignments(run):
    assert parse_assignment(step(run, shell="ps")) is None


def test_parse_cmd_assignment():
    a = parse_assignment(step("set PATH=%PATH%;C:\\tools", shell="cmd"))
    assert a is not None
    assert expand_value(a, {"PATH": "C:\\bin"}) == "C:\\bin;C:\\tools"


def test_parse_cmd_quoted_assignment():
    a = parse_assignment(step('set "RUSTFLAGS=-D warnings"', shell="cmd"))
    assert a is not None
    assert a.name == "RUSTFLAGS"
    assert a.value == "-D warnings"


def test_parse_export_assignment():
    a = parse_assignment(step('export PATH="$HOME/bin:${PATH}"', shell="sh"))
    assert a is not None
    assert expand_value(a, {"HOME": "/h", "PATH": "/usr/bin"}) == "/h/bin:/usr/bin"


def test_default_shell_on_posix_uses_export(monkeypatch):
    monkeypatch.setattr(variables, "WINDOWS", False)
    assert parse_assignment(step("export A=1")).name == "A"
    # `set` under sh sets positional parameters, not the environment
    assert parse_assignment(step("set B=2")) is None
    assert parse_assignment(step("set -e")) is None


def test_default_shell_on_windows_uses_set(monkeypatch):
    monkeypatch.setattr(variables, "WINDOWS", True)
    a = parse_assignment(step("set B=%B%;x"))
    assert a.name == "B"
    assert a.style == "cmd"
    assert parse_assignment(step("export A=1")) is None


@pytest.mark.parametrize("run", [
    "set X=1 && touch marker",
    "set X=1 & echo hi",
    "set X=1 | more",
    "set X=1 > out.txt",
    "set X=^&",
])
def test_compound_cmd_set_is_not_an_assignment(run):
    assert parse_assignment(step(run, shell="cmd")) is None


@pytest.mark.parametrize("run", [
    "export X=1 && touch marker",
    "export X=1;touch marker",
    "export X=1>out.txt",
])
def test_compound_export_is_not_an_assignment(run):
    assert parse_assignment(step(run, shell="sh")) is None


def test_expand_falls_back_to_process_environment(monkeypatch):
    monkeypatch.setenv("MATRIXCI_TEST_BASE", "base")
    a = parse_assignment(step('$env:X="$env:MATRIXCI_TEST_BASE;more"', shell="ps"))
    assert expand_value(a, {}) == "base;more"


def test_apply_assignment_returns_new_map():
    env = {"PATH": "a"}
    a = parse_assignment(step('$env:PATH="$env:PATH;b"', shell="ps"))
    updated = apply_assignment(a, env)
    assert updated == {"PATH": "a;b"}
    assert env == {"PATH": "a"}
