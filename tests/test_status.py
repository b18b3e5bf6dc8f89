"""Tests for CameraStatus snapshots and status deltas."""

import pytest

from gopro_mcp.devices.status import (
    CameraStatus,
    StatusChange,
    StatusUpdate,
    UpdateKind,
    diff_status,
)


class TestCameraStatus:
    """CameraStatus is a read-only mapping."""

    def test_mapping_access(self):
        status = CameraStatus({"CameraMode": "Video", "BatteryLevel": 80})
        assert status["CameraMode"] == "Video"
        assert len(status) == 2
        assert set(status) == {"CameraMode", "BatteryLevel"}

    def test_not_assignable(self):
        status = CameraStatus({"CameraMode": "Video"})
        with pytest.raises(TypeError):
            status["CameraMode"] = "Photo"  # type: ignore[index]

    def test_source_mutation_does_not_leak(self):
        source = {"CameraMode": "Video"}
        status = CameraStatus(source)
        source["CameraMode"] = "Photo"
        assert status["CameraMode"] == "Video"

    def test_to_dict_is_a_copy(self):
        status = CameraStatus({"BatteryLevel": 80})
        copy = status.to_dict()
        copy["BatteryLevel"] = 10
        assert status["BatteryLevel"] == 80

    def test_equality_with_mappings(self):
        assert CameraStatus({"a": 1}) == CameraStatus({"a": 1})
        assert CameraStatus({"a": 1}) == {"a": 1}
        assert CameraStatus({"a": 1}) != {"a": 2}

    def test_unhashable(self):
        with pytest.raises(TypeError):
            hash(CameraStatus({}))


class TestDiffStatus:
    """Deltas between consecutive snapshots."""

    def test_single_changed_key(self):
        """Mode change with unchanged battery yields exactly one change."""
        delta = diff_status(
            {"mode": "Video", "battery": 80},
            {"mode": "Photo", "battery": 80},
        )
        assert delta == (StatusChange("mode", "Video", "Photo"),)

    def test_no_previous_is_full_populate(self):
        delta = diff_status(None, {"mode": "Video", "battery": 80})
        assert delta == (
            StatusChange("mode", None, "Video"),
            StatusChange("battery", None, 80),
        )

    def test_identical_snapshots(self):
        assert diff_status({"mode": "Video"}, {"mode": "Video"}) == ()

    def test_added_and_removed_keys(self):
        delta = diff_status({"old": 1, "same": 2}, {"same": 2, "new": 3})
        assert delta == (
            StatusChange("new", None, 3),
            StatusChange("old", 1, None),
        )


class TestStatusUpdate:
    """StatusUpdate payload."""

    def test_changed_and_to_dict(self):
        snapshot = CameraStatus({"mode": "Photo"})
        update = StatusUpdate(
            UpdateKind.UPDATE, snapshot, (StatusChange("mode", "Video", "Photo"),)
        )
        data = update.to_dict()

        assert update.changed
        assert data["kind"] == "update"
        assert data["status"] == {"mode": "Photo"}
        assert data["changes"] == [{"key": "mode", "old": "Video", "new": "Photo"}]

    def test_unchanged(self):
        update = StatusUpdate(UpdateKind.UPDATE, CameraStatus({}), ())
        assert not update.changed
