"""Attendance test suite — geofenced check-in, late detection, check-out,
half-day derivation, duplicate guards, admin stats and access control.

Wall-clock time is pinned by patching ``hr_portal.common.timeutils.utcnow``.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from unittest.mock import patch
from zoneinfo import ZoneInfo

from sqlalchemy import select

from hr_portal.attendance.models import AttendanceRecord
from hr_portal.attendance.service import (
    AttendanceService,
    status_after_check_out,
    status_for_check_in,
    working_hours_between,
)
from hr_portal.common.constants import AttendanceStatus, AttendanceType, EmployeeStatus

IST = ZoneInfo("Asia/Kolkata")
MONDAY = date(2026, 10, 19)

INSIDE = {"latitude": 19.0765, "longitude": 72.8780}
OUTSIDE = {"latitude": 19.0860, "longitude": 72.8777}


def _at(hour: int, minute: int = 0):
    """Pin the clock to an office-local time on MONDAY."""
    local = datetime(MONDAY.year, MONDAY.month, MONDAY.day, hour, minute, tzinfo=IST)
    return patch(
        "hr_portal.common.timeutils.utcnow",
        return_value=local.astimezone(timezone.utc),
    )


async def _check_in(client, headers, *, hour=9, minute=0, **body):
    body.setdefault("attendance_type", "office")
    if body["attendance_type"] == "office":
        body.setdefault("location", INSIDE)
    with _at(hour, minute):
        return await client.post("/api/attendance/check-in", json=body, headers=headers)


async def _check_out(client, headers, record_id, *, hour, minute=0):
    with _at(hour, minute):
        return await client.post(
            f"/api/attendance/{record_id}/check-out",
            json={"location": INSIDE},
            headers=headers,
        )


# ═════════════════════════════════════════════════════════════════════
# Pure helpers
# ═════════════════════════════════════════════════════════════════════


class TestStatusRules:

    def test_on_time_is_present(self, settings):
        local = datetime(2026, 10, 19, 9, 30, tzinfo=IST)
        assert status_for_check_in(settings, AttendanceType.office, local) == AttendanceStatus.present

    def test_after_cutoff_is_late(self, settings):
        local = datetime(2026, 10, 19, 9, 31, tzinfo=IST)
        assert status_for_check_in(settings, AttendanceType.office, local) == AttendanceStatus.late

    def test_remote_is_wfh_regardless_of_time(self, settings):
        local = datetime(2026, 10, 19, 11, 0, tzinfo=IST)
        assert status_for_check_in(settings, AttendanceType.wfh, local) == AttendanceStatus.wfh

    def test_working_hours_rounded(self):
        start = datetime(2026, 10, 19, 4, 0, tzinfo=timezone.utc)
        end = datetime(2026, 10, 19, 12, 20, tzinfo=timezone.utc)
        assert working_hours_between(start, end) == 8.33

    def test_naive_values_treated_as_utc(self):
        start = datetime(2026, 10, 19, 4, 0)
        end = datetime(2026, 10, 19, 6, 30, tzinfo=timezone.utc)
        assert working_hours_between(start, end) == 2.5

    def test_short_office_day_becomes_half_day(self, settings):
        record = AttendanceRecord(status=AttendanceStatus.late, attendance_type=AttendanceType.office)
        assert status_after_check_out(settings, record, 3.5) == AttendanceStatus.half_day

    def test_short_wfh_day_keeps_status(self, settings):
        record = AttendanceRecord(status=AttendanceStatus.wfh, attendance_type=AttendanceType.wfh)
        assert status_after_check_out(settings, record, 2.0) == AttendanceStatus.wfh


# ═════════════════════════════════════════════════════════════════════
# Check-in
# ═════════════════════════════════════════════════════════════════════


class TestCheckIn:

    async def test_inside_geofence_on_time(self, client, employee, employee_headers):
        resp = await _check_in(client, employee_headers, hour=9, minute=0)
        assert resp.status_code == 201
        data = resp.json()
        assert data["status"] == "present"
        assert data["attendance_type"] == "office"
        assert data["date"] == MONDAY.isoformat()
        assert data["employee_id"] == str(employee.id)
        assert data["check_in_location"]["latitude"] == INSIDE["latitude"]

    async def test_late_after_cutoff(self, client, employee_headers):
        resp = await _check_in(client, employee_headers, hour=10, minute=15)
        assert resp.status_code == 201
        assert resp.json()["status"] == "late"

    async def test_wfh_needs_no_location(self, client, employee_headers):
        resp = await _check_in(client, employee_headers, hour=11, attendance_type="wfh")
        assert resp.status_code == 201
        assert resp.json()["status"] == "wfh"
        assert resp.json()["check_in_location"] is None

    async def test_outside_geofence_rejected(self, client, db, employee_headers):
        resp = await _check_in(client, employee_headers, location=OUTSIDE)
        assert resp.status_code == 422
        assert resp.json()["detail"] == (
            "You are 1112m away from the office. Check-in is only allowed within 100m radius. "
            "Please move closer to the office or select Work From Home."
        )

        result = await db.execute(select(AttendanceRecord))
        assert result.scalars().all() == []

    async def test_office_without_location_rejected(self, client, employee_headers):
        with _at(9):
            resp = await client.post(
                "/api/attendance/check-in",
                json={"attendance_type": "office"},
                headers=employee_headers,
            )
        assert resp.status_code == 422
        assert resp.json()["detail"] == "Location is required for office check-in."

    async def test_second_check_in_same_day_conflicts(self, client, employee_headers):
        first = await _check_in(client, employee_headers, hour=9)
        assert first.status_code == 201

        second = await _check_in(client, employee_headers, hour=13, attendance_type="wfh")
        assert second.status_code == 409
        assert second.json()["detail"] == "You have already checked in today."

    async def test_admin_cannot_check_in(self, client, admin_headers):
        resp = await _check_in(client, admin_headers)
        assert resp.status_code == 403

    async def test_requires_authentication(self, client):
        resp = await client.post("/api/attendance/check-in", json={"attendance_type": "wfh"})
        assert resp.status_code == 401


# ═════════════════════════════════════════════════════════════════════
# Check-out
# ═════════════════════════════════════════════════════════════════════


class TestCheckOut:

    async def test_full_day(self, client, employee_headers):
        record = (await _check_in(client, employee_headers, hour=9)).json()

        resp = await _check_out(client, employee_headers, record["id"], hour=18)
        assert resp.status_code == 200
        data = resp.json()
        assert data["working_hours"] == 9.0
        assert data["status"] == "present"
        assert data["check_out"] is not None

    async def test_short_office_day_is_half_day(self, client, employee_headers):
        record = (await _check_in(client, employee_headers, hour=10)).json()
        assert record["status"] == "late"

        resp = await _check_out(client, employee_headers, record["id"], hour=13, minute=30)
        assert resp.status_code == 200
        assert resp.json()["working_hours"] == 3.5
        assert resp.json()["status"] == "half-day"

    async def test_short_wfh_day_stays_wfh(self, client, employee_headers):
        record = (await _check_in(client, employee_headers, hour=9, attendance_type="wfh")).json()

        resp = await _check_out(client, employee_headers, record["id"], hour=11)
        assert resp.json()["status"] == "wfh"
        assert resp.json()["working_hours"] == 2.0

    async def test_double_check_out_conflicts(self, client, employee_headers):
        record = (await _check_in(client, employee_headers, hour=9)).json()
        await _check_out(client, employee_headers, record["id"], hour=18)

        resp = await _check_out(client, employee_headers, record["id"], hour=19)
        assert resp.status_code == 409
        assert resp.json()["detail"] == "You have already checked out today."

    async def test_other_employees_record_not_found(
        self, client, employee_headers, make_employee, headers_for,
    ):
        record = (await _check_in(client, employee_headers, hour=9)).json()
        other_headers = await headers_for(await make_employee(name="Ravi Kumar"))

        resp = await _check_out(client, other_headers, record["id"], hour=18)
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Attendance record not found."


# ═════════════════════════════════════════════════════════════════════
# Queries and admin operations
# ═════════════════════════════════════════════════════════════════════


class TestAttendanceQueries:

    async def test_today_before_and_after_check_in(self, client, employee_headers):
        with _at(8):
            resp = await client.get("/api/attendance/today", headers=employee_headers)
        assert resp.status_code == 200
        assert resp.json() is None

        await _check_in(client, employee_headers, hour=9)
        with _at(12):
            resp = await client.get("/api/attendance/today", headers=employee_headers)
        assert resp.json()["status"] == "present"

    async def test_stats_counts_unrecorded_as_absent(
        self, client, employee_headers, make_employee, admin_headers,
    ):
        await make_employee(name="No Show")
        await _check_in(client, employee_headers, hour=10)

        resp = await client.get(
            "/api/attendance/stats",
            params={"date": MONDAY.isoformat()},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        stats = resp.json()
        assert stats["late"] == 1
        assert stats["present"] == 0
        assert stats["absent"] == 1
        assert stats["total"] == 2

    async def test_stats_service_ignores_inactive(self, db, make_employee):
        await make_employee(status=EmployeeStatus.inactive)
        await make_employee()
        stats = await AttendanceService.get_stats(db, MONDAY)
        assert stats.absent == 1
        assert stats.total == 1

    async def test_list_is_admin_only(self, client, employee_headers):
        resp = await client.get("/api/attendance", headers=employee_headers)
        assert resp.status_code == 403

    async def test_admin_list_filters_by_date(self, client, employee_headers, admin_headers):
        await _check_in(client, employee_headers, hour=9)

        resp = await client.get(
            "/api/attendance", params={"date": MONDAY.isoformat()}, headers=admin_headers,
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["meta"]["total"] == 1
        assert body["data"][0]["date"] == MONDAY.isoformat()

        resp = await client.get(
            "/api/attendance", params={"date": "2026-10-20"}, headers=admin_headers,
        )
        assert resp.json()["meta"]["total"] == 0

    async def test_admin_correction_recomputes_hours(self, client, employee_headers, admin_headers):
        record = (await _check_in(client, employee_headers, hour=9)).json()

        resp = await client.patch(
            f"/api/attendance/{record['id']}",
            json={"check_out": "2026-10-19T11:30:00+00:00", "status": "present"},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        # check-in was 03:30 UTC
        assert resp.json()["working_hours"] == 8.0

    async def test_admin_correction_rederives_status(self, client, employee_headers, admin_headers):
        record = (await _check_in(client, employee_headers, hour=9)).json()
        assert record["status"] == "present"

        # 2 hours after the 03:30 UTC check-in
        resp = await client.patch(
            f"/api/attendance/{record['id']}",
            json={"check_out": "2026-10-19T05:30:00+00:00"},
            headers=admin_headers,
        )
        assert resp.json()["working_hours"] == 2.0
        assert resp.json()["status"] == "half-day"

        # Moving check-in to 10:00 IST and check-out to a full day
        resp = await client.patch(
            f"/api/attendance/{record['id']}",
            json={
                "check_in": "2026-10-19T04:30:00+00:00",
                "check_out": "2026-10-19T12:30:00+00:00",
            },
            headers=admin_headers,
        )
        assert resp.json()["working_hours"] == 8.0
        assert resp.json()["status"] == "late"

    async def test_admin_correction_keeps_explicit_status(self, client, employee_headers, admin_headers):
        record = (await _check_in(client, employee_headers, hour=9)).json()

        resp = await client.patch(
            f"/api/attendance/{record['id']}",
            json={"check_out": "2026-10-19T05:30:00+00:00", "status": "present"},
            headers=admin_headers,
        )
        assert resp.json()["status"] == "present"

    async def test_admin_delete(self, client, db, employee_headers, admin_headers):
        record = (await _check_in(client, employee_headers, hour=9)).json()

        resp = await client.delete(f"/api/attendance/{record['id']}", headers=admin_headers)
        assert resp.status_code == 204

        result = await db.execute(select(AttendanceRecord))
        assert result.scalars().all() == []

    async def test_geofence_preview(self, client, employee_headers):
        resp = await client.get(
            "/api/attendance/geofence", params=INSIDE, headers=employee_headers,
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["is_within"] is True
        assert data["distance"] == 64
        assert data["coordinates"] == "19.076500, 72.878000"
