"""
Pytest configuration and fixtures for agents-shar tests.
"""

from pathlib import Path

import pytest
import structlog


@pytest.fixture(autouse=True)
def set_store_env(monkeypatch):
    """
    Automatically provide the object store environment for all tests.

    Tests can remove a variable with monkeypatch.delenv() to exercise the
    missing-configuration path.
    """
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "test-key")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "test-secret")
    monkeypatch.setenv("S3_ENDPOINT_URL", "https://store.example.com")
    yield
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


@pytest.fixture
def package_tree(tmp_path: Path) -> Path:
    """Local source with two master builds and one release build of foo."""
    root = tmp_path / "source"
    foo = root / "agents" / "foo"
    foo.mkdir(parents=True)
    (foo / "foo-master-20230101T000000Z-abc123.tar.gz").write_bytes(b"old foo")
    (foo / "foo-master-20230601T000000Z-def456.tar.gz").write_bytes(b"new foo")
    (foo / "foo-release-20220101T000000Z-aaa111.tar.gz").write_bytes(b"release foo")
    bar = root / "agents" / "bar"
    bar.mkdir(parents=True)
    (bar / "bar-master-20230301T000000Z-bbb222.tar.gz").write_bytes(b"bar")
    return root


class FakeRunner:
    """Stands in for git and shar."""

    def __init__(self, describe: bytes = b"heads/master-0-g1a2b3c4\n", fail_on=None):
        self.describe = describe
        self.fail_on = fail_on
        self.calls = []

    def __call__(self, cmd, cwd=None):
        from agents_shar.core.exceptions import ToolError

        self.calls.append((list(cmd), cwd))
        if self.fail_on and cmd[0] == self.fail_on:
            raise ToolError(cmd, 1, "boom")
        if cmd[0] == "git":
            return self.describe
        if cmd[0] == "shar":
            stage = Path(cwd) / cmd[-1]
            names = sorted(p.name for p in stage.iterdir())
            body = "".join(f"# file {stage.name}/{name}\n" for name in names)
            return ("#!/bin/sh\n" + body + "exit 0\n").encode("utf-8")
        raise AssertionError(f"unexpected command {cmd}")


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def make_runner():
    return FakeRunner
