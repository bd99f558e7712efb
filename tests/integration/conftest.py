"""API test fixtures: app wired to the in-memory test database."""

from collections.abc import AsyncGenerator
from dataclasses import dataclass
from datetime import date, time
from decimal import Decimal
from uuid import UUID, uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from academy_payroll.api.app import create_app
from academy_payroll.api.dependencies import get_db_session
from academy_payroll.database import make_session_factory
from academy_payroll.models import LessonSlot, SalaryRate, SalaryRateFactor, Teacher

ADMIN_ID = UUID("00000000-0000-0000-0000-00000000a001")
TEACHER_USER_ID = UUID("00000000-0000-0000-0000-00000000b001")

ADMIN_HEADERS = {"X-Actor-Id": str(ADMIN_ID), "X-Actor-Role": "ADMIN"}
FINANCIST_HEADERS = {"X-Actor-Id": str(ADMIN_ID), "X-Actor-Role": "FINANCIST"}
TEACHER_HEADERS = {"X-Actor-Id": str(TEACHER_USER_ID), "X-Actor-Role": "TEACHER"}


@dataclass
class SeededData:
    full_rate_teacher: UUID
    factor_teacher: UUID
    no_rate_teacher: UUID


@pytest.fixture
async def client(engine: AsyncEngine) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app with the session dependency overridden."""
    app = create_app()
    factory = make_session_factory(engine)

    async def override_session() -> AsyncGenerator[AsyncSession, None]:
        async with factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def seeded(engine: AsyncEngine) -> SeededData:
    """Three teachers for March 2024.

    - 15,000/h with 30 four-hour lessons (120h)
    - 10,000/h plus a 2,000 factor with 10 two-hour lessons (20h)
    - lessons but no rate
    """
    data = SeededData(uuid4(), uuid4(), uuid4())
    async with make_session_factory(engine)() as session:
        session.add_all(
            [
                Teacher(teacher_id=data.full_rate_teacher, full_name="Aigerim Sadykova"),
                Teacher(teacher_id=data.factor_teacher, full_name="Daniyar Omarov"),
                Teacher(teacher_id=data.no_rate_teacher, full_name="Saule Bekova"),
            ]
        )
        session.add_all(
            [
                SalaryRate(teacher_id=data.full_rate_teacher, base_rate=Decimal("15000")),
                SalaryRate(
                    teacher_id=data.factor_teacher,
                    base_rate=Decimal("10000"),
                    factors=[
                        SalaryRateFactor(position=0, name="Category", amount=Decimal("2000"))
                    ],
                ),
            ]
        )
        for day in range(1, 31):
            session.add(_lesson(data.full_rate_teacher, day, hours=4))
        for day in range(1, 11):
            session.add(_lesson(data.factor_teacher, day, hours=2))
            session.add(_lesson(data.no_rate_teacher, day, hours=2))
        await session.commit()
    return data


def _lesson(teacher_id: UUID, day: int, hours: int) -> LessonSlot:
    return LessonSlot(
        teacher_id=teacher_id,
        lesson_date=date(2024, 3, day),
        start_time=time(9, 0),
        end_time=time(9 + hours, 0),
        status="COMPLETED",
    )
