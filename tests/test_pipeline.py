"""End-to-end tests for the symbolication pipeline with a stub resolver."""
import os

import pytest

from crash_symbolicator.backends import AtosBackend
from crash_symbolicator.config import Settings
from crash_symbolicator.exceptions import FileReadError, SymbolicationCancelled
from crash_symbolicator.locators import ArtifactLocator, ToolLocator
from crash_symbolicator.pipeline import SymbolicationPipeline, read_crash_text
from crash_symbolicator.resolver import SymbolResolver

from conftest import SYMBOL, BatchStubBackend, StubBackend

FRAME = "frame 0  0x0000000103450b5c 0x0000000102514000 + 1000"

CRASH = """Incident Identifier: 6A3C5B1E
Exception Type:  EXC_CRASH (SIGABRT)

Thread 0 Crashed:
0   App    0x0000000100001000 0x0000000100000000 + 4096
1   App    0x0000000100002000 0x0000000100000000 + 8192
2   App    0x0000000100001000 0x0000000100000000 + 4096
"""


def make_pipeline(tool_file, backend, dsym=True, tool=True, **kwargs):
    artifact_locator = ArtifactLocator() if dsym else ArtifactLocator(strategies=[])
    resolver = SymbolResolver(
        artifact_locator=artifact_locator,
        tool_locator=ToolLocator(candidates=[str(tool_file)] if tool else []),
        backend_factory=lambda tool_path: backend,
    )
    return SymbolicationPipeline(resolver=resolver, **kwargs)


def write_crash(tmp_path, text, name="App.crash"):
    path = tmp_path / name
    path.write_bytes(text.encode("utf-8"))
    return path


def test_end_to_end_single_frame(tmp_path, tool_file, dsym_bundle):
    backend = StubBackend(output="  " + SYMBOL + "\n")
    crash = write_crash(tmp_path, FRAME)

    output = make_pipeline(tool_file, backend).run(str(crash), str(dsym_bundle))

    assert output == "frame 0  " + SYMBOL + " 0x0000000102514000 + 1000"
    artifact, base, address = backend.calls[0]
    assert artifact.endswith(os.path.join("App.app.dSYM", "Contents", "Resources", "DWARF", "App"))
    assert base == 0x103450b5c - 0x3e8
    assert address == "0x0000000103450b5c"


def test_every_address_resolved_in_place(tmp_path, tool_file, dsym_bundle):
    backend = StubBackend(output=lambda address: f"sym_{address}\n")
    crash = write_crash(tmp_path, CRASH)

    output = make_pipeline(tool_file, backend).run(str(crash), str(dsym_bundle))

    assert "0   App    sym_0x0000000100001000 0x0000000100000000 + 4096\n" in output
    assert "1   App    sym_0x0000000100002000 0x0000000100000000 + 8192\n" in output
    assert "2   App    sym_0x0000000100001000 0x0000000100000000 + 4096\n" in output
    assert output.startswith("Incident Identifier: 6A3C5B1E\nException Type:  EXC_CRASH (SIGABRT)\n")
    assert len(backend.calls) == 3


def test_empty_crash_text(tmp_path, tool_file, dsym_bundle):
    backend = StubBackend()
    crash = write_crash(tmp_path, "")
    assert make_pipeline(tool_file, backend).run(str(crash), str(dsym_bundle)) == ""
    assert backend.calls == []


def test_missing_artifact_completes_with_messages(tmp_path, tool_file):
    backend = StubBackend()
    crash = write_crash(tmp_path, "a 0x10 1\nb 0x20 2\n")
    bundle = tmp_path / "Missing.app.dSYM"

    output = make_pipeline(tool_file, backend).run(str(crash), str(bundle))

    assert output == "a DWARF file not found in dSYM\nb DWARF file not found in dSYM\n"
    assert backend.calls == []


def test_missing_tool_completes_with_messages(tmp_path, tool_file, dsym_bundle):
    crash = write_crash(tmp_path, "a 0x10 1\nb 0x20 2\n")
    output = make_pipeline(tool_file, StubBackend(), tool=False).run(str(crash), str(dsym_bundle))
    assert output == "a atos command not found\nb atos command not found\n"


def test_partial_failure_stays_local(tmp_path, tool_file, dsym_bundle):
    crash = write_crash(tmp_path, "ok 0x1010 16\nbad 0x10 100\n")
    output = make_pipeline(tool_file, StubBackend(output="main\n")).run(str(crash), str(dsym_bundle))
    assert output == "ok main 16\nbad Invalid address or offset\n"


def test_unreadable_crash_file(tmp_path, tool_file, dsym_bundle):
    pipeline = make_pipeline(tool_file, StubBackend())
    with pytest.raises(FileReadError):
        pipeline.run(str(tmp_path / "missing.crash"), str(dsym_bundle))


def test_non_utf8_crash_file(tmp_path):
    crash = tmp_path / "bad.crash"
    crash.write_bytes(b"\xff\xfe\x00garbage")
    with pytest.raises(FileReadError):
        read_crash_text(str(crash))


def test_line_endings_preserved(tmp_path, tool_file, dsym_bundle):
    crash = write_crash(tmp_path, "x 0x1010 16\r\ny\r\n")
    output = make_pipeline(tool_file, StubBackend(output="main")).run(str(crash), str(dsym_bundle))
    assert output == "x main 16\r\ny\r\n"


def test_runs_are_idempotent(tmp_path, tool_file, dsym_bundle):
    crash = write_crash(tmp_path, CRASH)
    pipeline = make_pipeline(tool_file, StubBackend(output=lambda a: f"sym_{a}"))
    first = pipeline.run(str(crash), str(dsym_bundle))
    second = pipeline.run(str(crash), str(dsym_bundle))
    assert first == second


def test_parallel_resolution_preserves_order(tmp_path, tool_file, dsym_bundle):
    lines = [f"{i} 0x{0x1000 + i:x} {i}" for i in range(1, 21)]
    crash = write_crash(tmp_path, "\n".join(lines))
    pipeline = make_pipeline(tool_file, StubBackend(output=lambda a: f"sym_{a}"), max_workers=8)

    resolutions = pipeline.resolve_all(pipeline.extract(read_crash_text(str(crash))), str(dsym_bundle))

    assert [r.symbol for r in resolutions] == [f"sym_0x{0x1000 + i:x}" for i in range(1, 21)]


def test_sequential_and_parallel_agree(tmp_path, tool_file, dsym_bundle):
    crash = write_crash(tmp_path, CRASH)
    backend = StubBackend(output=lambda a: f"sym_{a}")
    sequential = make_pipeline(tool_file, backend, max_workers=1).run(str(crash), str(dsym_bundle))
    parallel = make_pipeline(tool_file, backend, max_workers=4).run(str(crash), str(dsym_bundle))
    assert sequential == parallel


def test_batch_mode(tmp_path, tool_file, dsym_bundle):
    backend = BatchStubBackend()
    crash = write_crash(tmp_path, CRASH)

    output = make_pipeline(tool_file, backend, batch=True).run(str(crash), str(dsym_bundle))

    assert "sym_0x0000000100002000 0x0000000100000000 + 8192" in output
    assert len(backend.batch_calls) == 1
    assert backend.batch_calls[0][1] == 0x100000000
    assert backend.calls == []


def test_abort_check_cancels_run(tmp_path, tool_file, dsym_bundle):
    crash = write_crash(tmp_path, CRASH)
    pipeline = make_pipeline(tool_file, StubBackend(), abort_check=lambda: True)
    with pytest.raises(SymbolicationCancelled):
        pipeline.run(str(crash), str(dsym_bundle))


def test_progress_callback(tmp_path, tool_file, dsym_bundle):
    events = []
    crash = write_crash(tmp_path, CRASH)
    pipeline = make_pipeline(tool_file, StubBackend(), max_workers=1)
    pipeline.set_progress_callback(lambda message, current, total: events.append((current, total)))

    pipeline.run(str(crash), str(dsym_bundle))

    assert events == [(1, 3), (2, 3), (3, 3)]


def test_progress_callback_errors_are_ignored(tmp_path, tool_file, dsym_bundle):
    def broken(message, current, total):
        raise RuntimeError("ui gone")

    crash = write_crash(tmp_path, "0x1010 16")
    pipeline = make_pipeline(tool_file, StubBackend(output="main"), progress_callback=broken)
    assert pipeline.run(str(crash), str(dsym_bundle)) == "main 16"


def test_from_settings_wires_atos_backend(tool_file):
    settings = Settings(atos_path=str(tool_file), max_workers=2, timeout=5.0,
                        arch="arm64", batch=True)
    pipeline = SymbolicationPipeline.from_settings(settings)

    assert pipeline.max_workers == 2
    assert pipeline.batch is True
    assert pipeline.resolver.tool_locator.candidates[0] == str(tool_file)
    backend = pipeline.resolver.backend_factory(str(tool_file))
    assert isinstance(backend, AtosBackend)
    assert backend.timeout == 5.0
    assert backend.arch == "arm64"


def test_batch_mode_cancel_between_invocations(tmp_path, tool_file, dsym_bundle):
    backend = StubBackend(output=lambda a: f"sym_{a}")
    crash = write_crash(tmp_path, "a 0x1010 16\nb 0x2010 16\nc 0x3010 16\n")
    pipeline = make_pipeline(tool_file, backend, batch=True, max_workers=1,
                             abort_check=lambda: len(backend.calls) >= 1)

    with pytest.raises(SymbolicationCancelled):
        pipeline.run(str(crash), str(dsym_bundle))

    assert len(backend.calls) == 1


def test_batch_mode_cancel_between_groups(tmp_path, tool_file, dsym_bundle):
    backend = BatchStubBackend()
    crash = write_crash(tmp_path, "0x1010 16\n0x1020 32\n0x2010 16\n0x2020 32\n")
    pipeline = make_pipeline(tool_file, backend, batch=True,
                             abort_check=lambda: len(backend.batch_calls) >= 1)

    with pytest.raises(SymbolicationCancelled):
        pipeline.run(str(crash), str(dsym_bundle))

    assert [call[1] for call in backend.batch_calls] == [0x1000]


def test_batch_mode_reports_progress_per_address(tmp_path, tool_file, dsym_bundle):
    events = []
    crash = write_crash(tmp_path, "a 0x1010 16\nb 0x2010 16\nc 0x3010 16\n")
    pipeline = make_pipeline(tool_file, StubBackend(), batch=True, max_workers=1)
    pipeline.set_progress_callback(lambda message, current, total: events.append((current, total)))

    pipeline.run(str(crash), str(dsym_bundle))

    assert events == [(1, 3), (2, 3), (3, 3)]


def test_batch_group_reports_each_member(tmp_path, tool_file, dsym_bundle):
    events = []
    crash = write_crash(tmp_path, CRASH)
    pipeline = make_pipeline(tool_file, BatchStubBackend(), batch=True)
    pipeline.set_progress_callback(lambda message, current, total: events.append((current, total)))

    pipeline.run(str(crash), str(dsym_bundle))

    assert events == [(1, 3), (2, 3), (3, 3)]
