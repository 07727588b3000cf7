"""Tests for build config parsing."""

import pytest

from matrixci.config import ConfigError, load_config, parse_config

APPVEYOR = r"""
platform:
  - x64

init:
  - ps: Set-WinSystemLocale ja-JP
  - ps: Start-Sleep -s 5

environment:
  matrix:
  - TARGET: nightly-x86_64-pc-windows-msvc
  - TARGET: nightly-i686-pc-windows-msvc
  - TARGET: nightly-x86_64-pc-windows-gnu
  - TARGET: nightly-i686-pc-windows-gnu

install:
  - chcp
  - ps: Start-FileDownload "https://static.rust-lang.org/dist/rust-${env:TARGET}.exe" -FileName "rust-install.exe"
  - ps: $env:PATH="$env:PATH;C:\rust\bin"
  - rustc -vV
  - cargo -vV

build_script:
  - cargo build

test_script:
  - cargo test
"""


def test_valid_config():
    config = parse_config(APPVEYOR)
    assert config.platforms == ["x64"]
    assert len(config.matrix) == 4
    assert config.matrix[1] == {"TARGET": "nightly-i686-pc-windows-msvc"}
    assert [s.shell for s in config.init] == ["ps", "ps"]
    assert len(config.install) == 5
    assert config.install[0].shell == "default"
    assert config.install[2].run == '$env:PATH="$env:PATH;C:\\rust\\bin"'
    assert config.build[0].run == "cargo build"
    assert config.test[0].phase == "test"


def test_step_indices_follow_declaration_order():
    config = parse_config(APPVEYOR)
    assert [s.index for s in config.install] == [0, 1, 2, 3, 4]
    assert config.install[3].name == "install[3]"


def test_global_environment_and_matrix():
    config = parse_config("""
environment:
  RUST_BACKTRACE: 1
  VERBOSE: true
  matrix:
    - TARGET: a
    - TARGET: b
      EXTRA: 2
test_script:
  - cargo test
""")
    assert config.env == {"RUST_BACKTRACE": "1", "VERBOSE": "true"}
    assert config.matrix == [{"TARGET": "a"}, {"TARGET": "b", "EXTRA": "2"}]


def test_environment_as_bare_matrix_list():
    config = parse_config("""
environment:
  - TARGET: a
  - TARGET: b
build_script: make
""")
    assert config.env == {}
    assert len(config.matrix) == 2
    assert config.build[0].run == "make"


def test_single_platform_string():
    config = parse_config("platform: x86\ntest_script: [make check]\n")
    assert config.platforms == ["x86"]


def test_build_off_disables_phase():
    config = parse_config("""
build: off
build_script:
  - cargo build
test_script:
  - cargo test
""")
    assert config.build == ()
    assert len(config.test) == 1


def test_allow_failures():
    config = parse_config("""
environment:
  matrix:
    - TARGET: stable
    - TARGET: nightly
matrix:
  allow_failures:
    - TARGET: nightly
test_script: cargo test
""")
    assert config.allow_failures == [{"TARGET": "nightly"}]


def test_unknown_shell():
    with pytest.raises(ConfigError, match="unknown shell 'bash'"):
        parse_config("install:\n  - bash: echo hi\n")


def test_step_mapping_with_two_keys():
    with pytest.raises(ConfigError, match=r"install\[0\] must have exactly one shell key"):
        parse_config("install:\n  - {ps: a, cmd: b}\n")


def test_bad_matrix_entry():
    with pytest.raises(ConfigError, match=r"environment.matrix\[1\] must be a mapping"):
        parse_config("""
environment:
  matrix:
    - TARGET: a
    - just-a-string
test_script: make
""")


def test_no_steps():
    with pytest.raises(ConfigError, match="no steps"):
        parse_config("platform: x64\n")


def test_empty_config():
    with pytest.raises(ConfigError, match="Empty"):
        parse_config("")


def test_invalid_yaml():
    with pytest.raises(ConfigError, match="Invalid YAML"):
        parse_config("install: [unclosed\n")


def test_load_config_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "appveyor.yml")


def test_load_config_from_disk(tmp_path):
    path = tmp_path / "appveyor.yml"
    path.write_text(APPVEYOR, encoding="utf-8")
    assert len(load_config(path).matrix) == 4


def test_yaml_booleans_become_true_false():
    config = parse_config("""
environment:
  matrix:
    - TARGET: off
    - TARGET: yes
test_script: make
""")
    assert config.matrix == [{"TARGET": "false"}, {"TARGET": "true"}]
