"""
WorkZen Payroll - Test Configuration

Pytest fixtures and configuration.
"""

from datetime import date
from decimal import Decimal
from typing import AsyncGenerator, Optional
from uuid import uuid4

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from workzen.database import Base, get_async_session
from workzen.models import (
    Company,
    Employee,
    EmployeeRole,
    EmployeeStatus,
    PayrollConfiguration,
)
from main import app


# In-memory database shared by every connection of one test
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture(scope="function")
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh in-memory database for each test."""
    engine = create_async_engine(TEST_DATABASE_URL, poolclass=StaticPool)

    # pysqlite does not emit BEGIN itself; SAVEPOINT needs an explicit transaction
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with database session override."""

    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_async_session] = override_get_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ===========================================
# DATA FIXTURES
# ===========================================

async def create_employee(
    db: AsyncSession,
    company: Company,
    code: str,
    status: EmployeeStatus = EmployeeStatus.ACTIVE,
    role: EmployeeRole = EmployeeRole.EMPLOYEE,
    bank_account_number: Optional[str] = "50100012345678",
    manager_id=None,
) -> Employee:
    """Insert an employee and commit."""
    employee = Employee(
        id=uuid4(),
        company_id=company.id,
        employee_code=code,
        first_name="Test",
        last_name=code,
        email=f"{code.lower()}@workzen.test",
        designation="Engineer",
        date_of_join=date(2024, 4, 1),
        role=role,
        status=status,
        manager_id=manager_id,
        bank_account_number=bank_account_number,
        bank_name="HDFC Bank" if bank_account_number else None,
        ifsc_code="HDFC0000123" if bank_account_number else None,
    )
    db.add(employee)
    await db.commit()
    return employee


@pytest_asyncio.fixture
async def test_company(db_session: AsyncSession) -> Company:
    """Create a test company."""
    company = Company(id=uuid4(), name="Acme Software Pvt Ltd", currency="INR")
    db_session.add(company)
    await db_session.commit()
    return company


@pytest_asyncio.fixture
async def other_company(db_session: AsyncSession) -> Company:
    """A second tenant, for isolation checks."""
    company = Company(id=uuid4(), name="Globex Services LLP", currency="INR")
    db_session.add(company)
    await db_session.commit()
    return company


@pytest_asyncio.fixture
async def test_employee(db_session: AsyncSession, test_company: Company) -> Employee:
    """Create a test employee with bank details."""
    return await create_employee(db_session, test_company, "EMP001")


@pytest_asyncio.fixture
async def generous_configuration(db_session: AsyncSession, test_company: Company) -> PayrollConfiguration:
    """Configuration whose component ratios add up to more than the wage."""
    config = PayrollConfiguration(
        company_id=test_company.id,
        pf_employee_percent=Decimal("12"),
        pf_employer_percent=Decimal("12"),
        professional_tax=Decimal("200"),
        basic_percent=Decimal("50"),
        hra_percent_of_basic=Decimal("50"),
        standard_allowance_percent=Decimal("16.67"),
        performance_bonus_percent=Decimal("8.33"),
        lta_percent=Decimal("8.33"),
        currency="INR",
    )
    db_session.add(config)
    await db_session.commit()
    return config
