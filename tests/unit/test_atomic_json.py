"""Unit tests for atomic report writing."""

import json
from unittest.mock import patch

from ecoaudit.utils.atomic import TEMP_PREFIX, write_json_atomic


def test_write_json_atomic_success(tmp_path):
    """Report is written in full and no temp files remain."""
    target = tmp_path / "reports" / "result.json"
    data = {"score": 85.09, "grade": "A", "nested": {"urls": ["https://example.com/"]}}

    assert write_json_atomic(data, target) is True
    assert json.loads(target.read_text(encoding="utf-8")) == data
    assert list(target.parent.glob(f"{TEMP_PREFIX}*")) == []


def test_write_json_atomic_replaces_existing(tmp_path):
    target = tmp_path / "result.json"
    target.write_text('{"old": true}')

    assert write_json_atomic({"new": True}, target) is True
    assert json.loads(target.read_text()) == {"new": True}


def test_unserialisable_data_is_rejected(tmp_path):
    target = tmp_path / "result.json"
    assert write_json_atomic({"bad": object()}, target) is False
    assert not target.exists()


def test_replace_failure_cleans_up(tmp_path):
    target = tmp_path / "result.json"
    with patch("ecoaudit.utils.atomic.os.replace", side_effect=OSError("disk full")):
        assert write_json_atomic({"a": 1}, target) is False

    assert not target.exists()
    assert list(tmp_path.iterdir()) == []

