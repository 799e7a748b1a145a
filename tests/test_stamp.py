"""
Tests for build stamp computation.
"""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from agents_shar.build.stamp import make_build_stamp, parse_describe, utc_timestamp
from agents_shar.core.exceptions import ToolError
from agents_shar.core.models import BuildStamp


def test_utc_timestamp_format():
    now = datetime(2023, 6, 1, 12, 30, 5, tzinfo=timezone.utc)
    assert utc_timestamp(now) == "20230601T123005Z"


def test_utc_timestamp_converts_offset():
    now = datetime(2023, 6, 1, 14, 30, 5, tzinfo=timezone(timedelta(hours=2)))
    assert utc_timestamp(now) == "20230601T123005Z"


@pytest.mark.parametrize("output,expected", [
    ("heads/master-0-g1a2b3c4\n", "1a2b3c4"),
    ("heads/master-0-g1a2b3c4-dirty\n", "1a2b3c4-dirty"),
    ("tags/release-gold-3-gdeadbee", "deadbee"),
])
def test_parse_describe(output, expected):
    assert parse_describe(output) == expected


def test_make_build_stamp(fake_runner):
    now = datetime(2023, 6, 1, tzinfo=timezone.utc)

    stamp = make_build_stamp("feature1", runner=fake_runner, now=now)

    assert stamp.stamp == "feature1-20230601T000000Z-g1a2b3c4"
    assert stamp.artifact_name("sh") == "agents-feature1-20230601T000000Z-g1a2b3c4.sh"
    assert fake_runner.calls[0][0] == ["git", "describe", "--all", "--long", "--dirty"]


def test_make_build_stamp_git_failure(make_runner):
    with pytest.raises(ToolError):
        make_build_stamp("master", runner=make_runner(fail_on="git"))


def test_artifact_names_share_stamp():
    stamp = BuildStamp(build_name="master", timestamp="20230601T000000Z", commit="abc")
    names = [stamp.artifact_name(ext) for ext in ("sh", "md5sum", "manifest")]
    assert {name.rsplit(".", 1)[0] for name in names} == {"agents-master-20230601T000000Z-gabc"}


def test_build_stamp_rejects_bad_timestamp():
    with pytest.raises(ValidationError):
        BuildStamp(build_name="master", timestamp="2023-06-01", commit="abc")
