"""API endpoint integration tests.

Tests the FastAPI endpoints for salary, rate and worked-hours operations.
"""

import csv
import io
from decimal import Decimal
from uuid import uuid4

from httpx import AsyncClient

from academy_payroll.config import get_settings

from .conftest import ADMIN_HEADERS, FINANCIST_HEADERS, TEACHER_HEADERS, SeededData

MARCH = {"month": 3, "year": 2024}


async def calculate(client: AsyncClient, teacher_id) -> dict:
    response = await client.post(
        "/api/v1/salaries/calculate",
        headers=ADMIN_HEADERS,
        json={"teacher_id": str(teacher_id), **MARCH},
    )
    assert response.status_code == 200, response.text
    return response.json()


class TestHealthEndpoints:
    """Test health check endpoints."""

    async def test_health_check(self, client: AsyncClient):
        """Health endpoint should return 200."""
        response = await client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "healthy"
        assert "timestamp" in data

    async def test_readiness_check(self, client: AsyncClient):
        response = await client.get("/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    async def test_liveness_check(self, client: AsyncClient):
        response = await client.get("/live")
        assert response.status_code == 200
        assert response.json()["status"] == "alive"


class TestActorHeaders:
    """Test actor identity handling."""

    async def test_missing_actor_rejected(self, client: AsyncClient):
        response = await client.get("/api/v1/salaries")
        assert response.status_code == 400

    async def test_malformed_actor_rejected(self, client: AsyncClient):
        response = await client.get(
            "/api/v1/salaries", headers={"X-Actor-Id": "nope", "X-Actor-Role": "ADMIN"}
        )
        assert response.status_code == 400

    async def test_teacher_role_cannot_read_salaries(
        self, client: AsyncClient, seeded: SeededData
    ):
        """Salary data is restricted to ADMIN and FINANCIST."""
        salary = await calculate(client, seeded.full_rate_teacher)

        for url, params in [
            ("/api/v1/salaries", {}),
            ("/api/v1/salaries/export", MARCH),
            ("/api/v1/salaries/statistics", {}),
            ("/api/v1/salaries/pending-approvals", {}),
            (f"/api/v1/salaries/history/{seeded.full_rate_teacher}", {}),
            (f"/api/v1/salaries/{salary['salary_id']}", {}),
            (f"/api/v1/salaries/{salary['salary_id']}/workflow", {}),
        ]:
            response = await client.get(url, headers=TEACHER_HEADERS, params=params)
            assert response.status_code == 403, url
            assert response.json()["code"] == "PERMISSION_DENIED"

    async def test_teacher_role_cannot_calculate(
        self, client: AsyncClient, seeded: SeededData
    ):
        response = await client.post(
            "/api/v1/salaries/calculate",
            headers=TEACHER_HEADERS,
            json={"teacher_id": str(seeded.full_rate_teacher), **MARCH},
        )
        assert response.status_code == 403
        assert response.json()["code"] == "PERMISSION_DENIED"


class TestSalaryCalculation:
    """Test calculation endpoints."""

    async def test_calculate_and_adjust(self, client: AsyncClient, seeded: SeededData):
        """The worked example through the HTTP surface."""
        salary = await calculate(client, seeded.full_rate_teacher)
        assert salary["status"] == "DRAFT"
        assert salary["teacher_name"] == "Aigerim Sadykova"
        assert Decimal(salary["base_salary"]) == Decimal("1800000")

        response = await client.put(
            f"/api/v1/salaries/{salary['salary_id']}/adjustments",
            headers=FINANCIST_HEADERS,
            json={
                "allowances": [{"name": "Стаж", "amount": "2000"}],
                "bonuses": [{"name": "Премия", "amount": "5", "is_percentage": True}],
                "deductions": [
                    {"name": "Аванс", "amount": "100000"},
                    {"name": "", "amount": "0"},
                ],
            },
        )
        assert response.status_code == 200, response.text
        data = response.json()
        assert Decimal(data["total_gross"]) == Decimal("1892000")
        assert Decimal(data["total_net"]) == Decimal("1792000")
        assert len(data["deductions"]) == 1

    async def test_missing_rate_suggests_manual_entry(
        self, client: AsyncClient, seeded: SeededData
    ):
        response = await client.post(
            "/api/v1/salaries/calculate",
            headers=ADMIN_HEADERS,
            json={"teacher_id": str(seeded.no_rate_teacher), **MARCH},
        )

        assert response.status_code == 404
        data = response.json()
        assert data["code"] == "NOT_CONFIGURED"
        assert data["fallback"] == "manual_entry"

    async def test_patch_corrects_base_salary(self, client: AsyncClient, seeded: SeededData):
        salary = await calculate(client, seeded.full_rate_teacher)
        url = f"/api/v1/salaries/{salary['salary_id']}"

        denied = await client.patch(url, headers=TEACHER_HEADERS, json={"base_salary": "1"})
        assert denied.status_code == 403

        response = await client.patch(
            url, headers=FINANCIST_HEADERS, json={"base_salary": "1500000", "comment": "Corrected"}
        )
        assert response.status_code == 200, response.text
        data = response.json()
        assert Decimal(data["base_salary"]) == Decimal("1500000")
        assert Decimal(data["total_net"]) == Decimal("1500000")
        assert data["hourly_rate"] is None
        assert data["comment"] == "Corrected"

    async def test_batch_recalculation(self, client: AsyncClient, seeded: SeededData):
        """One teacher without a rate fails alone."""
        response = await client.post(
            "/api/v1/salaries/recalculate", headers=ADMIN_HEADERS, json=MARCH
        )

        assert response.status_code == 200, response.text
        data = response.json()
        assert (data["total"], data["successful"], data["failed"]) == (3, 2, 1)
        failed = [o for o in data["outcomes"] if not o["success"]]
        assert failed[0]["teacher_id"] == str(seeded.no_rate_teacher)
        assert failed[0]["error_code"] == "NOT_CONFIGURED"

        listing = await client.get(
            "/api/v1/salaries", headers=ADMIN_HEADERS, params=MARCH
        )
        assert listing.json()["total"] == 2

    async def test_manual_entry(self, client: AsyncClient, seeded: SeededData):
        payload = {
            "teacher_id": str(seeded.no_rate_teacher),
            **MARCH,
            "base_salary": "400000",
            "bonuses": [{"name": "Holiday", "amount": "10", "is_percentage": True}],
        }
        response = await client.post("/api/v1/salaries", headers=ADMIN_HEADERS, json=payload)
        assert response.status_code == 201, response.text
        assert Decimal(response.json()["total_net"]) == Decimal("440000")

        duplicate = await client.post("/api/v1/salaries", headers=ADMIN_HEADERS, json=payload)
        assert duplicate.status_code == 409
        assert duplicate.json()["code"] == "DUPLICATE_SALARY"

    async def test_negative_adjustment_is_unprocessable(
        self, client: AsyncClient, seeded: SeededData
    ):
        salary = await calculate(client, seeded.factor_teacher)

        response = await client.put(
            f"/api/v1/salaries/{salary['salary_id']}/adjustments",
            headers=ADMIN_HEADERS,
            json={"deductions": [{"name": "Fine", "amount": "-10"}]},
        )

        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_ERROR"


class TestSalaryWorkflow:
    """Test workflow transitions over HTTP."""

    async def test_approve_then_pay(self, client: AsyncClient, seeded: SeededData):
        salary = await calculate(client, seeded.factor_teacher)
        salary_id = salary["salary_id"]

        approved = await client.post(
            f"/api/v1/salaries/{salary_id}/approve", headers=FINANCIST_HEADERS
        )
        assert approved.status_code == 200
        assert approved.json()["status"] == "APPROVED"
        assert approved.json()["approved_by"] is not None

        paid = await client.post(
            f"/api/v1/salaries/{salary_id}/mark-paid", headers=FINANCIST_HEADERS
        )
        assert paid.status_code == 200
        assert paid.json()["status"] == "PAID"

        workflow = await client.get(
            f"/api/v1/salaries/{salary_id}/workflow", headers=ADMIN_HEADERS
        )
        data = workflow.json()
        assert data["status"] == "PAID"
        assert data["can_edit"] is False
        assert {e["action"] for e in data["events"]} == {"calculated", "approved", "paid"}

    async def test_mark_paid_on_draft_conflicts(self, client: AsyncClient, seeded: SeededData):
        salary = await calculate(client, seeded.factor_teacher)

        response = await client.post(
            f"/api/v1/salaries/{salary['salary_id']}/mark-paid", headers=ADMIN_HEADERS
        )

        assert response.status_code == 409
        assert response.json()["code"] == "INVALID_TRANSITION"

    async def test_reject_and_approve_cancelled(self, client: AsyncClient, seeded: SeededData):
        salary = await calculate(client, seeded.factor_teacher)
        salary_id = salary["salary_id"]

        rejected = await client.post(
            f"/api/v1/salaries/{salary_id}/reject",
            headers=ADMIN_HEADERS,
            json={"reason": "Hours disputed"},
        )
        assert rejected.status_code == 200
        assert rejected.json()["rejection_reason"] == "Hours disputed"

        approve = await client.post(
            f"/api/v1/salaries/{salary_id}/approve", headers=ADMIN_HEADERS
        )
        assert approve.status_code == 409

    async def test_delete_draft(self, client: AsyncClient, seeded: SeededData):
        salary = await calculate(client, seeded.factor_teacher)
        url = f"/api/v1/salaries/{salary['salary_id']}"

        response = await client.delete(url, headers=ADMIN_HEADERS)
        assert response.status_code == 204

        missing = await client.get(url, headers=ADMIN_HEADERS)
        assert missing.status_code == 404
        assert missing.json()["code"] == "SALARY_NOT_FOUND"

    async def test_unknown_salary(self, client: AsyncClient):
        response = await client.get(f"/api/v1/salaries/{uuid4()}", headers=ADMIN_HEADERS)
        assert response.status_code == 404


class TestReporting:
    """Test statistics, history and export."""

    async def test_statistics_and_lists(self, client: AsyncClient, seeded: SeededData):
        first = await calculate(client, seeded.full_rate_teacher)
        await calculate(client, seeded.factor_teacher)
        await client.post(f"/api/v1/salaries/{first['salary_id']}/approve", headers=ADMIN_HEADERS)

        stats = (
            await client.get("/api/v1/salaries/statistics", headers=ADMIN_HEADERS, params=MARCH)
        ).json()
        assert stats["employee_count"] == 2
        assert Decimal(stats["total_payroll"]) == Decimal("1800000") + Decimal("240000")

        pending = (
            await client.get("/api/v1/salaries/pending-approvals", headers=ADMIN_HEADERS)
        ).json()
        approved = (
            await client.get("/api/v1/salaries/approved", headers=ADMIN_HEADERS, params=MARCH)
        ).json()
        assert [s["teacher_id"] for s in pending] == [str(seeded.factor_teacher)]
        assert [s["salary_id"] for s in approved] == [first["salary_id"]]

        history = (
            await client.get(
                f"/api/v1/salaries/history/{seeded.full_rate_teacher}", headers=ADMIN_HEADERS
            )
        ).json()
        assert [s["salary_id"] for s in history] == [first["salary_id"]]

    async def test_export_csv(self, client: AsyncClient, seeded: SeededData):
        await calculate(client, seeded.full_rate_teacher)

        response = await client.get(
            "/api/v1/salaries/export", headers=ADMIN_HEADERS, params=MARCH
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        rows = list(csv.DictReader(io.StringIO(response.text)))
        assert len(rows) == 1
        assert rows[0]["teacher"] == "Aigerim Sadykova"
        assert rows[0]["total_net"] == "1800000"
        assert rows[0]["currency"] == get_settings().currency


class TestTeacherEndpoints:
    """Test rate and worked-hours endpoints."""

    async def test_get_and_put_salary_rate(self, client: AsyncClient, seeded: SeededData):
        url = f"/api/v1/teachers/{seeded.factor_teacher}/salary-rate"

        current = await client.get(url, headers=TEACHER_HEADERS)
        assert current.status_code == 200
        assert Decimal(current.json()["total_rate"]) == Decimal("12000")

        updated = await client.put(
            url,
            headers=ADMIN_HEADERS,
            json={"base_rate": "11000", "factors": [{"name": "Night", "amount": "1500"}]},
        )
        assert updated.status_code == 200, updated.text
        data = updated.json()
        assert Decimal(data["total_rate"]) == Decimal("12500")
        assert [f["name"] for f in data["factors"]] == ["Night"]

    async def test_rate_not_configured(self, client: AsyncClient, seeded: SeededData):
        response = await client.get(
            f"/api/v1/teachers/{seeded.no_rate_teacher}/salary-rate", headers=ADMIN_HEADERS
        )
        assert response.status_code == 404
        assert response.json()["code"] == "NOT_CONFIGURED"

    async def test_teacher_cannot_set_rate(self, client: AsyncClient, seeded: SeededData):
        response = await client.put(
            f"/api/v1/teachers/{seeded.factor_teacher}/salary-rate",
            headers=TEACHER_HEADERS,
            json={"base_rate": "1"},
        )
        assert response.status_code == 403

    async def test_worked_hours(self, client: AsyncClient, seeded: SeededData):
        response = await client.get(
            f"/api/v1/teachers/{seeded.full_rate_teacher}/worked-hours/2024/3",
            headers=ADMIN_HEADERS,
        )
        assert response.status_code == 200
        assert Decimal(response.json()["total_usable_hours"]) == Decimal("120")

        stats = await client.get(
            f"/api/v1/teachers/{seeded.full_rate_teacher}/worked-hours-stats/2024",
            headers=ADMIN_HEADERS,
        )
        assert stats.status_code == 200
        assert Decimal(stats.json()["total_worked"]) == Decimal("120")
        assert Decimal(stats.json()["efficiency"]) == Decimal("100")
