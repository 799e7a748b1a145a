"""
Tests for self-extracting archive generation.
"""

import os
from pathlib import Path

import pytest

from agents_shar.build.shar import build_shar, render_shar, strip_default_exit
from agents_shar.core.exceptions import ToolError


def test_strip_default_exit():
    body = b"echo a\nexit 0\necho b\nexit 0 # done\n"
    assert strip_default_exit(body) == b"echo a\necho b\n"


def test_strip_keeps_other_exits():
    body = b"  exit 0\nexit 1\n"
    assert strip_default_exit(body) == body


def test_render_shar_wraps_body():
    out = render_shar(b"#!/bin/sh\nsed x\nexit 0\n", "20230601T000000Z").decode()
    lines = out.splitlines()

    assert lines[0] == "#!/bin/sh"
    assert lines[1] == "cd /var/tmp"
    assert "sed x" in lines
    assert lines[-1] == "exit 0"
    assert out.count("exit 0") == 1
    assert "if [ -f 20230601T000000Z/install.sh ]; then" in lines
    assert "rm -rf /var/tmp/20230601T000000Z" in lines
    assert lines.index("rm -rf /var/tmp/20230601T000000Z") > lines.index("sed x")


def test_render_shar_body_without_trailing_newline():
    out = render_shar(b"echo last", "stage")
    assert b"echo last\nif [ -f stage/install.sh ]" in out


def test_build_shar_writes_executable(tmp_path: Path, fake_runner):
    stage = tmp_path / "20230601T000000Z"
    stage.mkdir()
    (stage / "install.sh").write_text("#!/bin/bash\n")
    dest = tmp_path / "agents.sh"

    out = build_shar(stage, dest, runner=fake_runner)

    assert out == dest
    assert os.access(dest, os.X_OK)
    content = dest.read_text()
    assert "# file 20230601T000000Z/install.sh" in content
    assert content.endswith("exit 0\n")
    cmd, cwd = fake_runner.calls[0]
    assert cmd == ["shar", "-D", "-n", "agents", "20230601T000000Z"]
    assert cwd == tmp_path


def test_build_shar_tool_failure(tmp_path: Path, make_runner):
    stage = tmp_path / "stage"
    stage.mkdir()

    with pytest.raises(ToolError):
        build_shar(stage, tmp_path / "out.sh", runner=make_runner(fail_on="shar"))
    assert not (tmp_path / "out.sh").exists()
