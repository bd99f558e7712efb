"""Pytest fixtures for academy payroll tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import date, time
from decimal import Decimal
from uuid import UUID, uuid4

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from academy_payroll.database import make_session_factory
from academy_payroll.models import Base, LessonSlot, SalaryRate, SalaryRateFactor, Teacher
from academy_payroll.services.permissions import Actor

# In-memory SQLite shared across the connections of one engine
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh test database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # pysqlite defers BEGIN itself, which breaks SAVEPOINT; emit it explicitly
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with make_session_factory(engine)() as session:
        yield session
        await session.rollback()


@pytest.fixture
def admin() -> Actor:
    return Actor.with_roles(uuid4(), "ADMIN")


@pytest.fixture
def financist() -> Actor:
    return Actor.with_roles(uuid4(), "FINANCIST")


@pytest.fixture
def teacher_actor() -> Actor:
    return Actor.with_roles(uuid4(), "TEACHER")


@pytest.fixture
def make_teacher(session: AsyncSession) -> Callable[..., Awaitable[Teacher]]:
    """Factory for persisted teachers."""

    async def _make(full_name: str = "Aigerim Sadykova", is_active: bool = True) -> Teacher:
        teacher = Teacher(teacher_id=uuid4(), full_name=full_name, is_active=is_active)
        session.add(teacher)
        await session.flush()
        return teacher

    return _make


@pytest.fixture
async def teacher(make_teacher) -> Teacher:
    return await make_teacher()


@pytest.fixture
def give_rate(session: AsyncSession) -> Callable[..., Awaitable[SalaryRate]]:
    """Factory for a teacher's salary rate with optional (name, amount) factors."""

    async def _give(
        teacher_id: UUID,
        base_rate: str,
        factors: list[tuple[str, str]] | None = None,
    ) -> SalaryRate:
        rate = SalaryRate(
            teacher_id=teacher_id,
            base_rate=Decimal(base_rate),
            factors=[
                SalaryRateFactor(position=i, name=name, amount=Decimal(amount))
                for i, (name, amount) in enumerate(factors or [])
            ],
        )
        session.add(rate)
        await session.flush()
        return rate

    return _give


@pytest.fixture
def add_slot(session: AsyncSession) -> Callable[..., Awaitable[LessonSlot]]:
    """Factory for lesson slots. Defaults to a completed two-hour lesson."""

    async def _add(
        teacher_id: UUID,
        lesson_date: date,
        start: time = time(10, 0),
        end: time = time(12, 0),
        status: str = "COMPLETED",
        substitute_teacher_id: UUID | None = None,
    ) -> LessonSlot:
        slot = LessonSlot(
            slot_id=uuid4(),
            teacher_id=teacher_id,
            lesson_date=lesson_date,
            start_time=start,
            end_time=end,
            status=status,
            substitute_teacher_id=substitute_teacher_id,
        )
        session.add(slot)
        await session.flush()
        return slot

    return _add


@pytest.fixture
def add_lessons(add_slot) -> Callable[..., Awaitable[None]]:
    """Add ``count`` completed lessons of ``hours`` each on distinct days of a month."""

    async def _add(
        teacher_id: UUID, count: int, hours: int = 2, year: int = 2024, month: int = 3
    ) -> None:
        for day in range(1, count + 1):
            await add_slot(teacher_id, date(year, month, day), time(9, 0), time(9 + hours, 0))

    return _add
