"""Tests for the check lifecycle and device catalog."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from checkplan.errors import InvalidTransition, NotFound, StorageError, ValidationError
from checkplan.scheduling import (
    CheckLifecycleManager,
    CheckRepository,
    CheckStatus,
    DeviceCatalog,
    DeviceRepository,
    PlanRepository,
)
from checkplan.scheduling.models import check_key


class TestCreateChecksForPlan:
    def test_creates_one_pending_check_per_device(self, lifecycle, checks):
        created = lifecycle.create_checks_for_plan(2025, 10, ["D1", "D2"], "manager")
        assert [c.id for c in created] == ["check:2025:10:D1", "check:2025:10:D2"]
        stored = checks.list_for_week(2025, 10)
        assert len(stored) == 2
        assert all(c.status == CheckStatus.PENDING for c in stored)
        assert all(c.assigned_by == "manager" for c in stored)

    def test_idempotent(self, lifecycle, checks):
        lifecycle.create_checks_for_plan(2025, 10, ["D1", "D2"], "manager")
        lifecycle.create_checks_for_plan(2025, 10, ["D1", "D2"], "manager")
        assert len(checks.list_all()) == 2

    def test_duplicate_ids_in_one_call(self, lifecycle, checks):
        lifecycle.create_checks_for_plan("2025", "10", ["D1", "D1"], "manager")
        assert len(checks.list_all()) == 1

    def test_assigned_at_uses_clock(self, lifecycle, checks, clock):
        lifecycle.create_checks_for_plan(2025, 10, ["D1"], "manager")
        assert checks.get("check:2025:10:D1").assigned_at == clock.now.isoformat()


class TestCreatePlan:
    def test_stores_plan_and_checks(self, lifecycle, plans, checks):
        plan, created = lifecycle.create_plan("2025", "10", ["D1", "D2"], "manager")
        assert plan.id == "plan:2025:10"
        assert plans.get(2025, 10).device_ids == ["D1", "D2"]
        assert len(created) == 2
        assert len(checks.list_for_week(2025, 10)) == 2

    def test_overlapping_plans_last_writer_wins(self, lifecycle, checks):
        lifecycle.create_plan(2025, 10, ["D1", "D2"], "alice")
        lifecycle.create_plan(2025, 10, ["D2", "D3"], "bob")

        d2_checks = [c for c in checks.list_for_week(2025, 10) if c.device_id == "D2"]
        assert len(d2_checks) == 1
        assert d2_checks[0].assigned_by == "bob"
        assert checks.get("check:2025:10:D1").assigned_by == "alice"

    @pytest.mark.parametrize(
        ("kwargs", "field"),
        [
            ({"week": 0}, "week"),
            ({"year": "abc"}, "year"),
            ({"device_ids": []}, "deviceIds"),
            ({"device_ids": None}, "deviceIds"),
            ({"device_ids": "D1"}, "deviceIds"),
            ({"device_ids": ["D1", ""]}, "deviceIds"),
            ({"device_ids": [1]}, "deviceIds"),
            ({"device_ids": 5}, "deviceIds"),
            ({"week": 10.5}, "week"),
            ({"assigned_by": ""}, "assignedBy"),
            ({"assigned_by": None}, "assignedBy"),
        ],
    )
    def test_validation(self, lifecycle, checks, kwargs, field):
        args = {"year": 2025, "week": 10, "device_ids": ["D1"], "assigned_by": "manager"}
        args.update(kwargs)
        with pytest.raises(ValidationError) as exc_info:
            lifecycle.create_plan(**args)
        assert exc_info.value.field == field
        assert checks.list_all() == []


class TestCompleteCheck:
    def test_concrete_scenario(self, lifecycle, checks, make_device, clock):
        make_device("D1", frequency=1)
        lifecycle.create_plan(2025, 10, ["D1"], "manager")

        clock.set(2025, 3, 10, 8, 0)  # Monday of week 11
        result = lifecycle.complete_check("check:2025:10:D1", "E1", "")

        assert result.check.status == CheckStatus.COMPLETED
        assert result.check.completed_by == "E1"
        assert result.check.completed_at == clock.now.isoformat()
        assert result.check.comment == ""

        successor = checks.get("check:2025:12:D1")
        assert successor is not None
        assert successor.status == CheckStatus.PENDING
        assert successor.assigned_by == "system"
        assert result.next_check.id == successor.id

    def test_successor_independent_of_delay(self, lifecycle, checks, make_device, clock):
        make_device("D1", frequency=3)
        lifecycle.create_plan(2025, 2, ["D1"], "manager")

        clock.set(2025, 3, 10, 8, 0)  # eight weeks late
        result = lifecycle.complete_check("check:2025:2:D1", "E1", "late")

        assert (result.next_check.year, result.next_check.week) == ("2025", "14")
        assert result.scheduled_for == datetime(2025, 3, 31, 8, 0, tzinfo=timezone.utc)
        pending = [c for c in checks.list_all() if c.is_pending]
        assert [c.id for c in pending] == ["check:2025:14:D1"]

    def test_successor_crosses_iso_year(self, lifecycle, checks, make_device, clock):
        make_device("D1", frequency=1)
        lifecycle.create_checks_for_plan(2025, 52, ["D1"], "manager")

        clock.set(2025, 12, 22, 12, 0)
        result = lifecycle.complete_check("check:2025:52:D1", "E1")

        assert result.next_check.id == "check:2026:1:D1"
        assert checks.get("check:2026:1:D1") is not None

    def test_successor_uses_iso_year_not_calendar_year(self, lifecycle, make_device, clock):
        make_device("D1", frequency=1)
        lifecycle.create_checks_for_plan(2025, 52, ["D1"], "manager")

        clock.set(2025, 12, 23, 12, 0)  # +7 days = 2025-12-30, ISO week 1 of 2026
        result = lifecycle.complete_check("check:2025:52:D1", "E1")
        assert (result.next_check.year, result.next_check.week) == ("2026", "1")

    def test_updates_device_last_checked(self, lifecycle, devices, make_device, clock):
        make_device("D1")
        lifecycle.create_checks_for_plan(2025, 10, ["D1"], "manager")
        lifecycle.complete_check("check:2025:10:D1", "E7", "ok")

        device = devices.get("D1")
        assert device.last_checked_by == "E7"
        assert device.last_checked_at == clock.now.isoformat()

    def test_result_to_dict(self, lifecycle, make_device):
        make_device("D1", frequency=2)
        lifecycle.create_checks_for_plan(2025, 10, ["D1"], "manager")
        payload = lifecycle.complete_check("check:2025:10:D1", "E1", "fine").to_dict()

        assert payload["check"]["status"] == "completed"
        assert payload["check"]["comment"] == "fine"
        assert payload["nextCheckScheduled"] == {
            "checkId": "check:2025:12:D1",
            "week": 12,
            "year": 2025,
            "scheduledFor": "2025-03-17T09:00:00+00:00",
        }

    def test_missing_check(self, lifecycle, checks):
        with pytest.raises(NotFound) as exc_info:
            lifecycle.complete_check("check:2025:10:nope", "E1")
        assert exc_info.value.entity == "check"
        assert checks.list_all() == []

    def test_non_check_key_is_not_found(self, lifecycle, make_device):
        make_device("D1")
        with pytest.raises(NotFound):
            lifecycle.complete_check("device:D1", "E1")

    def test_missing_device_schedules_nothing(self, lifecycle, checks):
        lifecycle.create_checks_for_plan(2025, 10, ["ghost"], "manager")
        with pytest.raises(NotFound) as exc_info:
            lifecycle.complete_check("check:2025:10:ghost", "E1")

        assert exc_info.value.entity == "device"
        assert exc_info.value.entity_id == "ghost"
        remaining = checks.list_all()
        assert len(remaining) == 1
        assert remaining[0].status == CheckStatus.PENDING

    def test_completing_twice_is_rejected(self, lifecycle, checks, make_device):
        make_device("D1")
        lifecycle.create_checks_for_plan(2025, 10, ["D1"], "manager")
        lifecycle.complete_check("check:2025:10:D1", "E1")

        with pytest.raises(InvalidTransition):
            lifecycle.complete_check("check:2025:10:D1", "E2")
        assert checks.get("check:2025:10:D1").completed_by == "E1"

    def test_completed_by_required(self, lifecycle, checks, make_device):
        make_device("D1")
        lifecycle.create_checks_for_plan(2025, 10, ["D1"], "manager")
        with pytest.raises(ValidationError) as exc_info:
            lifecycle.complete_check("check:2025:10:D1", "  ")
        assert exc_info.value.field == "completedBy"
        assert checks.get("check:2025:10:D1").is_pending

    def test_delayed_comment_policy(self, devices, checks, plans, make_device, clock):
        strict = CheckLifecycleManager(devices, checks, plans, clock=clock, require_delayed_comment=True)
        make_device("D1")
        strict.create_checks_for_plan(2025, 10, ["D1"], "manager")

        clock.set(2025, 3, 20, 8, 0)  # week 12, so the check is delayed
        with pytest.raises(ValidationError) as exc_info:
            strict.complete_check("check:2025:10:D1", "E1", "")
        assert exc_info.value.field == "comment"

        result = strict.complete_check("check:2025:10:D1", "E1", "parts on backorder")
        assert result.check.comment == "parts on backorder"

    def test_delayed_comment_policy_ignores_on_time_checks(self, devices, checks, plans, make_device, clock):
        strict = CheckLifecycleManager(devices, checks, plans, clock=clock, require_delayed_comment=True)
        make_device("D1")
        strict.create_checks_for_plan(2025, 10, ["D1"], "manager")
        assert strict.complete_check("check:2025:10:D1", "E1").check.comment == ""

    def test_early_completion_keeps_completed_record(self, lifecycle, checks, make_device, clock):
        make_device("D1", frequency=1)
        lifecycle.create_plan(2025, 11, ["D1"], "manager")

        # still week 10: now + 1 week would land on the completed check itself
        result = lifecycle.complete_check("check:2025:11:D1", "E1", "done early")

        stored = checks.get("check:2025:11:D1")
        assert stored.status == CheckStatus.COMPLETED
        assert stored.comment == "done early"
        assert result.next_check.id == "check:2025:12:D1"
        assert result.scheduled_for == datetime(2025, 3, 17, 9, 0, tzinfo=timezone.utc)
        assert checks.get("check:2025:12:D1").is_pending

    def test_early_completion_counts_from_planned_week(self, lifecycle, make_device):
        make_device("D1", frequency=1)
        lifecycle.create_checks_for_plan(2025, 13, ["D1"], "manager")

        result = lifecycle.complete_check("check:2025:13:D1", "E1")
        assert result.next_check.id == "check:2025:14:D1"

    def test_none_comment_stored_as_empty(self, lifecycle, checks, make_device):
        make_device("D1")
        lifecycle.create_checks_for_plan(2025, 10, ["D1"], "manager")
        lifecycle.complete_check("check:2025:10:D1", "E1", None)
        assert checks.get("check:2025:10:D1").comment == ""

    def test_storage_failure_keeps_earlier_writes(self, failing_kv, clock):
        devices = DeviceRepository(failing_kv)
        checks = CheckRepository(failing_kv)
        manager = CheckLifecycleManager(
            devices, checks, PlanRepository(failing_kv), clock=clock, require_delayed_comment=False
        )
        DeviceCatalog(devices, checks, clock=clock).create_device(
            "Press", "HP-101", "Hall A", 1, device_id="D1"
        )
        manager.create_checks_for_plan(2025, 10, ["D1"], "manager")

        failing_kv.fail_key = "check:2025:11:D1"
        with pytest.raises(StorageError) as exc_info:
            manager.complete_check("check:2025:10:D1", "E1", "ok")

        assert exc_info.value.operation == "set"
        assert exc_info.value.key == "check:2025:11:D1"
        # no rollback: the check and device writes before the failure stay
        assert checks.get("check:2025:10:D1").status == CheckStatus.COMPLETED
        assert devices.get("D1").last_checked_by == "E1"
        assert checks.get("check:2025:11:D1") is None


class TestDeviceCatalog:
    def test_create_and_get(self, catalog, clock):
        device = catalog.create_device("Press", "HP-101", "Hall A", 4, plan_comment="seals")
        fetched = catalog.get_device(device.id)
        assert fetched.name == "Press"
        assert fetched.planned_frequency == 4
        assert fetched.plan_comment == "seals"
        assert fetched.status == "active"
        assert fetched.created_at == clock.now.isoformat()

    def test_frequency_from_string(self, catalog):
        assert catalog.create_device("Press", "HP-101", "Hall A", "2").planned_frequency == 2

    @pytest.mark.parametrize("frequency", [0, -1, "abc", None, 1.5, True])
    def test_rejects_bad_frequency(self, catalog, frequency):
        with pytest.raises(ValidationError) as exc_info:
            catalog.create_device("Press", "HP-101", "Hall A", frequency)
        assert exc_info.value.field == "plannedFrequency"

    def test_requires_name(self, catalog):
        with pytest.raises(ValidationError) as exc_info:
            catalog.create_device("", "HP-101", "Hall A", 1)
        assert exc_info.value.field == "name"

    def test_get_missing(self, catalog):
        with pytest.raises(NotFound):
            catalog.get_device("nope")

    def test_by_location(self, catalog):
        catalog.create_device("A", "1", "Hall A - Bay 2", 1)
        catalog.create_device("B", "2", "Hall B", 1)
        assert [d.name for d in catalog.devices_by_location("hall a")] == ["A"]

    def test_delete_cascades_checks(self, catalog, lifecycle, checks, make_device):
        make_device("D1")
        make_device("D2")
        lifecycle.create_checks_for_plan(2025, 10, ["D1", "D2"], "manager")
        lifecycle.create_checks_for_plan(2025, 11, ["D1"], "manager")

        assert catalog.delete_device("D1") == 2
        assert [c.device_id for c in checks.list_all()] == ["D2"]
        with pytest.raises(NotFound):
            catalog.get_device("D1")

    def test_delete_missing(self, catalog):
        with pytest.raises(NotFound):
            catalog.delete_device("nope")

    def test_last_check(self, catalog, lifecycle, make_device, clock):
        make_device("D1")
        lifecycle.create_checks_for_plan(2025, 10, ["D1"], "manager")
        lifecycle.complete_check("check:2025:10:D1", "E1")
        clock.advance(weeks=1)
        lifecycle.complete_check(check_key(2025, 11, "D1"), "E2")

        info = catalog.last_check("D1")
        assert info["hasBeenChecked"] is True
        assert info["totalChecksCompleted"] == 2
        assert info["lastCheck"]["completedBy"] == "E2"

    def test_last_check_never_checked(self, catalog, make_device):
        make_device("D1")
        info = catalog.last_check("D1")
        assert info["hasBeenChecked"] is False
        assert info["lastCheck"] is None
