"""Tests for the atos subprocess backend."""
import subprocess
from unittest.mock import patch

import pytest

from crash_symbolicator.backends import AtosBackend
from crash_symbolicator.exceptions import OutputDecodeError, ProcessInvocationError

from conftest import SYMBOL, make_script, requires_posix_shell


def test_build_command():
    backend = AtosBackend("/usr/bin/atos")
    cmd = backend.build_command("/d/App", 0x102514000, ["0x0000000103450b5c"])
    assert cmd == ["/usr/bin/atos", "-o", "/d/App", "-l", "0x102514000", "0x0000000103450b5c"]


def test_build_command_with_arch_and_several_addresses():
    backend = AtosBackend("atos", arch="arm64")
    cmd = backend.build_command("/d/App", 0x1000, ["0x1010", "0x1020"])
    assert cmd == ["atos", "-o", "/d/App", "-arch", "arm64", "-l", "0x1000", "0x1010", "0x1020"]


@requires_posix_shell
def test_returns_tool_stdout(tmp_path):
    atos = make_script(tmp_path / "atos", f'echo "{SYMBOL}"')
    output = AtosBackend(str(atos))("/d/App", 0x1000, "0x1010")
    assert output.strip() == SYMBOL


@requires_posix_shell
def test_passes_arguments_in_order(tmp_path):
    atos = make_script(tmp_path / "atos", 'echo "$@"')
    output = AtosBackend(str(atos))("/d/App", 0x102514000, "0x0000000103450b5c")
    assert output.strip() == "-o /d/App -l 0x102514000 0x0000000103450b5c"


def test_missing_executable_raises(tmp_path):
    backend = AtosBackend(str(tmp_path / "does-not-exist"))
    with pytest.raises(ProcessInvocationError):
        backend("/d/App", 0x1000, "0x1010")


@requires_posix_shell
def test_non_utf8_output_raises_decode_error(tmp_path):
    atos = make_script(tmp_path / "atos", r"printf '\377\376\n'")
    with pytest.raises(OutputDecodeError):
        AtosBackend(str(atos))("/d/App", 0x1000, "0x1010")


@requires_posix_shell
def test_failing_tool_without_output_raises(tmp_path):
    atos = make_script(tmp_path / "atos", 'echo "atos cannot load symbols" >&2; exit 3')
    with pytest.raises(ProcessInvocationError) as exc:
        AtosBackend(str(atos))("/d/App", 0x1000, "0x1010")
    assert "status 3" in str(exc.value)


def test_timeout_raises_invocation_error():
    backend = AtosBackend("/usr/bin/atos", timeout=1)
    with patch("crash_symbolicator.backends.subprocess.run",
               side_effect=subprocess.TimeoutExpired(cmd="atos", timeout=1)):
        with pytest.raises(ProcessInvocationError):
            backend("/d/App", 0x1000, "0x1010")


@requires_posix_shell
def test_symbolicate_many_splits_lines(tmp_path):
    atos = make_script(tmp_path / "atos", 'echo "first (in App)"; echo "second (in App)"')
    lines = AtosBackend(str(atos)).symbolicate_many("/d/App", 0x1000, ["0x1010", "0x1020"])
    assert lines == ["first (in App)", "second (in App)"]


@requires_posix_shell
def test_symbolicate_many_line_count_mismatch(tmp_path):
    atos = make_script(tmp_path / "atos", 'echo "only one"')
    with pytest.raises(OutputDecodeError):
        AtosBackend(str(atos)).symbolicate_many("/d/App", 0x1000, ["0x1010", "0x1020"])


def test_symbolicate_many_empty():
    assert AtosBackend("/usr/bin/atos").symbolicate_many("/d/App", 0x1000, []) == []
