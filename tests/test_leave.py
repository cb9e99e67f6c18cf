"""Leave test suite — day counting, balance checks, overlap detection,
review workflow with balance deduction, edits, deletes and documents.
"""

from __future__ import annotations

from datetime import date

import pytest
from sqlalchemy import select

from hr_portal.common.constants import LeaveStatus, LeaveType
from hr_portal.common.exceptions import ValidationException
from hr_portal.leave.models import LeaveRequest
from hr_portal.leave.service import LeaveService, calculate_days


def _payload(
    *,
    leave_type: str = "Casual Leave",
    from_date: str = "2026-11-02",
    to_date: str = "2026-11-03",
    subject: str = "Family function",
) -> dict:
    return {
        "leave_type": leave_type,
        "subject": subject,
        "description": "Travelling home",
        "from_date": from_date,
        "to_date": to_date,
    }


async def _apply(client, headers, **kwargs):
    return await client.post("/api/leaves", json=_payload(**kwargs), headers=headers)


async def _seed_leave(db, employee, *, days: int, leave_type=LeaveType.casual,
                      status=LeaveStatus.pending) -> LeaveRequest:
    leave = LeaveRequest(
        employee_id=employee.id,
        employee_name=employee.name,
        leave_type=leave_type,
        subject="Seeded",
        from_date=date(2026, 12, 1),
        to_date=date(2026, 12, days),
        days=days,
        status=status,
        applied_date=date(2026, 10, 18),
    )
    db.add(leave)
    await db.commit()
    return leave


# ═════════════════════════════════════════════════════════════════════
# Day counting
# ═════════════════════════════════════════════════════════════════════


class TestCalculateDays:

    def test_single_day(self):
        assert calculate_days(date(2026, 11, 2), date(2026, 11, 2)) == 1

    def test_inclusive_range(self):
        assert calculate_days(date(2026, 11, 2), date(2026, 11, 6)) == 5

    def test_spans_month_boundary(self):
        assert calculate_days(date(2026, 10, 30), date(2026, 11, 2)) == 4

    def test_end_before_start_rejected(self):
        with pytest.raises(ValidationException):
            calculate_days(date(2026, 11, 3), date(2026, 11, 2))


# ═════════════════════════════════════════════════════════════════════
# Applying
# ═════════════════════════════════════════════════════════════════════


class TestApplyLeave:

    async def test_creates_pending_request(self, client, employee, employee_headers):
        resp = await _apply(client, employee_headers)
        assert resp.status_code == 201
        data = resp.json()
        assert data["status"] == "pending"
        assert data["days"] == 2
        assert data["employee_name"] == employee.name
        assert data["employee_id"] == str(employee.id)
        assert data["reviewed_by"] is None

    async def test_insufficient_balance(self, client, make_employee, headers_for):
        employee = await make_employee(casual=1)
        headers = await headers_for(employee)

        resp = await _apply(client, headers, from_date="2026-11-02", to_date="2026-11-04")
        assert resp.status_code == 422
        assert resp.json()["detail"] == (
            "Insufficient leave balance. You have 1 days of Casual Leave remaining, "
            "but requested 3 days."
        )

    async def test_annual_leave_uses_earned_balance(self, client, make_employee, headers_for):
        employee = await make_employee(earned=2, casual=10)
        headers = await headers_for(employee)

        resp = await _apply(client, headers, leave_type="Annual Leave",
                            from_date="2026-11-02", to_date="2026-11-04")
        assert resp.status_code == 422
        assert "2 days of Annual Leave" in resp.json()["detail"]

    async def test_unmapped_type_is_unlimited(self, client, make_employee, headers_for):
        employee = await make_employee(casual=0, sick=0, earned=0)
        headers = await headers_for(employee)

        resp = await _apply(client, headers, leave_type="Unpaid Leave",
                            from_date="2026-11-02", to_date="2026-11-20")
        assert resp.status_code == 201
        assert resp.json()["days"] == 19

    async def test_reversed_dates_rejected(self, client, employee_headers):
        resp = await _apply(client, employee_headers, from_date="2026-11-05", to_date="2026-11-02")
        assert resp.status_code == 422

    async def test_overlapping_request_conflicts(self, client, employee_headers):
        first = await _apply(client, employee_headers, from_date="2026-11-02", to_date="2026-11-04")
        assert first.status_code == 201

        resp = await _apply(client, employee_headers, from_date="2026-11-04", to_date="2026-11-05")
        assert resp.status_code == 409
        assert resp.json()["detail"] == "You already have a leave request for overlapping dates."

    async def test_adjacent_range_allowed(self, client, employee_headers):
        await _apply(client, employee_headers, from_date="2026-11-02", to_date="2026-11-03")
        resp = await _apply(client, employee_headers, from_date="2026-11-04", to_date="2026-11-04")
        assert resp.status_code == 201

    async def test_rejected_request_does_not_block(self, client, db, employee, employee_headers):
        await _seed_leave(db, employee, days=3, status=LeaveStatus.rejected)

        resp = await _apply(client, employee_headers, from_date="2026-12-02", to_date="2026-12-02")
        assert resp.status_code == 201

    async def test_admin_cannot_apply(self, client, admin_headers):
        resp = await _apply(client, admin_headers)
        assert resp.status_code == 403


# ═════════════════════════════════════════════════════════════════════
# Review
# ═════════════════════════════════════════════════════════════════════


class TestReview:

    async def test_approve_deducts_balance(self, client, db, employee, employee_headers, admin, admin_headers):
        leave = (await _apply(client, employee_headers)).json()

        resp = await client.post(f"/api/leaves/{leave['id']}/approve", json={}, headers=admin_headers)
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "approved"
        assert data["comments"] == "Leave request approved."
        assert data["reviewer_name"] == admin.name
        assert data["reviewed_by"] == str(admin.account_id)
        assert data["reviewed_date"] is not None

        await db.refresh(employee)
        assert employee.casual_leave == 4

    async def test_balance_floors_at_zero(self, db, make_employee, admin):
        employee = await make_employee(casual=2)
        leave = await _seed_leave(db, employee, days=5)

        await LeaveService.approve_leave(db, leave.id, admin.account, admin.name)
        await db.commit()

        await db.refresh(employee)
        assert employee.casual_leave == 0

    async def test_unmapped_type_leaves_balance_untouched(self, db, make_employee, admin):
        employee = await make_employee(casual=6, sick=6, earned=12)
        leave = await _seed_leave(db, employee, days=4, leave_type=LeaveType.emergency)

        await LeaveService.approve_leave(db, leave.id, admin.account, admin.name, "Take care")
        await db.commit()

        await db.refresh(employee)
        assert (employee.casual_leave, employee.sick_leave, employee.earned_leave) == (6, 6, 12)
        assert leave.comments == "Take care"

    async def test_cannot_review_twice(self, client, employee_headers, admin_headers):
        leave = (await _apply(client, employee_headers)).json()
        await client.post(f"/api/leaves/{leave['id']}/approve", json={}, headers=admin_headers)

        resp = await client.post(
            f"/api/leaves/{leave['id']}/reject", json={"comments": "Too late"}, headers=admin_headers,
        )
        assert resp.status_code == 422
        assert resp.json()["detail"] == "This leave request has already been processed."

    async def test_reject_requires_reason(self, client, employee_headers, admin_headers):
        leave = (await _apply(client, employee_headers)).json()

        resp = await client.post(
            f"/api/leaves/{leave['id']}/reject", json={"comments": "   "}, headers=admin_headers,
        )
        assert resp.status_code == 422
        assert resp.json()["detail"] == "Please provide a reason for rejection."

    async def test_reject_keeps_balance(self, client, db, employee, employee_headers, admin_headers):
        leave = (await _apply(client, employee_headers)).json()

        resp = await client.post(
            f"/api/leaves/{leave['id']}/reject",
            json={"comments": "Release week"},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "rejected"
        assert resp.json()["comments"] == "Release week"

        await db.refresh(employee)
        assert employee.casual_leave == 6

    async def test_employee_cannot_approve(self, client, employee_headers):
        leave = (await _apply(client, employee_headers)).json()
        resp = await client.post(f"/api/leaves/{leave['id']}/approve", json={}, headers=employee_headers)
        assert resp.status_code == 403


# ═════════════════════════════════════════════════════════════════════
# Edits, deletes, documents and queries
# ═════════════════════════════════════════════════════════════════════


class TestLeaveMaintenance:

    async def test_update_recounts_days(self, client, employee_headers):
        leave = (await _apply(client, employee_headers)).json()

        resp = await client.patch(
            f"/api/leaves/{leave['id']}",
            json={"to_date": "2026-11-05"},
            headers=employee_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["days"] == 4

    async def test_update_overlap_excludes_self(self, client, employee_headers):
        first = (await _apply(client, employee_headers, from_date="2026-11-02", to_date="2026-11-03")).json()
        await _apply(client, employee_headers, from_date="2026-11-05", to_date="2026-11-05")

        ok = await client.patch(
            f"/api/leaves/{first['id']}", json={"from_date": "2026-11-01"}, headers=employee_headers,
        )
        assert ok.status_code == 200

        clash = await client.patch(
            f"/api/leaves/{first['id']}", json={"to_date": "2026-11-05"}, headers=employee_headers,
        )
        assert clash.status_code == 409

    async def test_employee_deletes_own_pending(self, client, db, employee_headers):
        leave = (await _apply(client, employee_headers)).json()

        resp = await client.delete(f"/api/leaves/{leave['id']}", headers=employee_headers)
        assert resp.status_code == 200
        assert resp.json()["success"] is True

        result = await db.execute(select(LeaveRequest))
        assert result.scalars().all() == []

    async def test_employee_cannot_delete_processed(self, client, employee_headers, admin_headers):
        leave = (await _apply(client, employee_headers)).json()
        await client.post(f"/api/leaves/{leave['id']}/approve", json={}, headers=admin_headers)

        resp = await client.delete(f"/api/leaves/{leave['id']}", headers=employee_headers)
        assert resp.status_code == 422

        resp = await client.delete(f"/api/leaves/{leave['id']}", headers=admin_headers)
        assert resp.status_code == 200

    async def test_cannot_view_other_employees_request(
        self, client, employee_headers, make_employee, headers_for,
    ):
        leave = (await _apply(client, employee_headers)).json()
        other_headers = await headers_for(await make_employee(name="Ravi Kumar"))

        resp = await client.get(f"/api/leaves/{leave['id']}", headers=other_headers)
        assert resp.status_code == 403

    async def test_upload_document(self, client, settings, employee_headers):
        leave = (await _apply(client, employee_headers, leave_type="Sick Leave")).json()

        resp = await client.post(
            f"/api/leaves/{leave['id']}/document",
            files={"file": ("certificate.pdf", b"%PDF-1.4 test", "application/pdf")},
            headers=employee_headers,
        )
        assert resp.status_code == 200
        url = resp.json()["document_url"]
        assert url.startswith("/uploads/leave-documents/")
        assert url.endswith(".pdf")

    async def test_upload_rejects_unknown_type(self, client, employee_headers):
        leave = (await _apply(client, employee_headers)).json()

        resp = await client.post(
            f"/api/leaves/{leave['id']}/document",
            files={"file": ("notes.txt", b"hello", "text/plain")},
            headers=employee_headers,
        )
        assert resp.status_code == 400

    async def test_balance_and_stats(self, client, employee_headers, admin_headers):
        first = (await _apply(client, employee_headers)).json()
        await _apply(client, employee_headers, from_date="2026-11-10", to_date="2026-11-10")
        await client.post(f"/api/leaves/{first['id']}/approve", json={}, headers=admin_headers)

        balance = (await client.get("/api/leaves/balance", headers=employee_headers)).json()
        assert balance == {"casual": 4.0, "sick": 6.0, "earned": 12.0, "total": 22.0}

        stats = (await client.get("/api/leaves/stats", headers=admin_headers)).json()
        assert stats == {"pending": 1, "approved": 1, "rejected": 0, "total": 2}

    async def test_admin_list_filters(self, client, employee_headers, admin_headers):
        await _apply(client, employee_headers)
        await _apply(client, employee_headers, leave_type="Sick Leave",
                     from_date="2026-11-20", to_date="2026-11-20")

        resp = await client.get(
            "/api/leaves", params={"leave_type": "Sick Leave"}, headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["meta"]["total"] == 1

        resp = await client.get(
            "/api/leaves", params={"from_date": "2026-11-15"}, headers=admin_headers,
        )
        assert resp.json()["meta"]["total"] == 1

    async def test_on_leave_for_day(self, db, employee):
        leave = await _seed_leave(db, employee, days=3, status=LeaveStatus.approved)

        on_leave = await LeaveService.on_leave(db, date(2026, 12, 2))
        assert [l.id for l in on_leave] == [leave.id]
        assert await LeaveService.on_leave(db, date(2026, 12, 4)) == []
