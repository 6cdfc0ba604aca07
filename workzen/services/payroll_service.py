"""
WorkZen Payroll - Payroll Service

Payroll configuration, payrun execution and payroll record lifecycle.

Payroll record lifecycle:
    pending -> processed -> paid
Payrun lifecycle:
    draft -> generated -> completed
"""

import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, func, and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from workzen.config import settings
from workzen.models.payroll import (
    Payroll,
    PayrollConfiguration,
    PayrollStatus,
    Payrun,
    PayrunStatus,
)
from workzen.services.payrun_generator import PayrunGenerator, month_bounds
from workzen.services.salary_calculator import DEFAULT_PAYROLL_RATES
from workzen.services.salary_structure_service import load_payroll_configuration
from workzen.utils.error_handling import (
    InvalidPercentageException,
    InvalidStatusTransitionException,
    PayrollConfigurationNotFoundException,
    PayrollNotFoundException,
    PayrunNotFoundException,
    PersistenceException,
)

logger = logging.getLogger(__name__)


# Fields of PayrollConfiguration that must be zero or greater
CONFIGURATION_FIELDS = (
    "pf_employee_percent",
    "pf_employer_percent",
    "professional_tax",
    "basic_percent",
    "hra_percent_of_basic",
    "standard_allowance_percent",
    "performance_bonus_percent",
    "lta_percent",
)


class PayrollService:
    """
    Payroll service for configuring payroll, running payruns and tracking
    payroll records.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    # ===========================================
    # CONFIGURATION
    # ===========================================

    async def create_configuration(
        self,
        company_id: uuid.UUID,
        data: Dict[str, Any],
        created_by_id: Optional[uuid.UUID] = None,
    ) -> PayrollConfiguration:
        """
        Create or replace the company's payroll configuration.

        Fields missing from data take the default ratios.
        """
        values: Dict[str, Any] = {}
        for name in CONFIGURATION_FIELDS:
            raw = data.get(name)
            if raw is None:
                raw = getattr(DEFAULT_PAYROLL_RATES, name)
            try:
                value = Decimal(str(raw))
            except (InvalidOperation, ValueError):
                raise InvalidPercentageException(name, raw)
            if not value.is_finite() or value < 0:
                raise InvalidPercentageException(name, raw)
            values[name] = value
        values["currency"] = data.get("currency") or settings.default_currency

        config = await load_payroll_configuration(self.db, company_id)
        if config is None:
            config = PayrollConfiguration(
                company_id=company_id,
                created_by_id=created_by_id,
                **values,
            )
            self.db.add(config)
        else:
            for name, value in values.items():
                setattr(config, name, value)
            config.updated_by_id = created_by_id

        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceException("save payroll configuration", original_error=e)

        logger.info(f"Payroll configuration saved for company {company_id}")
        return config

    async def get_configuration(self, company_id: uuid.UUID) -> PayrollConfiguration:
        config = await load_payroll_configuration(self.db, company_id)
        if config is None:
            raise PayrollConfigurationNotFoundException(company_id)
        return config

    # ===========================================
    # PAYRUNS
    # ===========================================

    async def create_payrun(
        self,
        company_id: uuid.UUID,
        month: str,
        initiated_by: Optional[uuid.UUID] = None,
    ) -> Payrun:
        """Generate payroll for the month. See PayrunGenerator.generate."""
        return await PayrunGenerator(self.db).generate(company_id, month, initiated_by)

    async def list_payruns(
        self,
        company_id: uuid.UUID,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Payrun], int]:
        """List payruns, newest first."""
        page = max(page, 1)
        limit = min(max(limit, 1), settings.max_page_size)

        query = select(Payrun).where(Payrun.company_id == company_id)

        count_result = await self.db.execute(
            select(func.count()).select_from(query.subquery())
        )
        total = count_result.scalar()

        query = query.order_by(Payrun.generated_at.desc(), Payrun.created_at.desc())
        query = query.offset((page - 1) * limit).limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def get_payrun(
        self,
        company_id: uuid.UUID,
        payrun_id: uuid.UUID,
    ) -> Payrun:
        result = await self.db.execute(
            select(Payrun).where(
                and_(
                    Payrun.id == payrun_id,
                    Payrun.company_id == company_id,
                )
            )
        )
        payrun = result.scalar_one_or_none()
        if payrun is None:
            raise PayrunNotFoundException(payrun_id)
        return payrun

    async def list_payrun_payrolls(
        self,
        company_id: uuid.UUID,
        payrun_id: uuid.UUID,
    ) -> List[Payroll]:
        """Payroll records of a payrun."""
        await self.get_payrun(company_id, payrun_id)

        result = await self.db.execute(
            select(Payroll)
            .where(
                and_(
                    Payroll.payrun_id == payrun_id,
                    Payroll.company_id == company_id,
                )
            )
            .order_by(Payroll.created_at)
        )
        return list(result.scalars().all())

    async def complete_payrun(
        self,
        company_id: uuid.UUID,
        payrun_id: uuid.UUID,
    ) -> Payrun:
        """Close a generated payrun."""
        payrun = await self.get_payrun(company_id, payrun_id)

        if payrun.status != PayrunStatus.GENERATED:
            raise InvalidStatusTransitionException(
                "payrun", payrun.status.value, PayrunStatus.COMPLETED.value
            )

        payrun.status = PayrunStatus.COMPLETED
        payrun.completed_at = datetime.now(timezone.utc)

        await self.db.commit()
        logger.info(f"Payrun {payrun_id} ({payrun.month}) completed")
        return payrun

    # ===========================================
    # PAYROLL RECORDS
    # ===========================================

    async def get_employee_payroll(
        self,
        company_id: uuid.UUID,
        employee_id: uuid.UUID,
        month: str,
    ) -> Payroll:
        """
        The employee's payroll for a month.

        A month can hold several payruns; the most recently generated record
        is returned.
        """
        month_bounds(month)

        result = await self.db.execute(
            select(Payroll)
            .where(
                and_(
                    Payroll.company_id == company_id,
                    Payroll.employee_id == employee_id,
                    Payroll.month == month,
                )
            )
            .order_by(Payroll.generated_at.desc())
            .limit(1)
        )
        payroll = result.scalar_one_or_none()
        if payroll is None:
            raise PayrollNotFoundException(employee_id=employee_id, month=month)
        return payroll

    async def mark_as_paid(
        self,
        company_id: uuid.UUID,
        payroll_id: uuid.UUID,
    ) -> Payroll:
        """Mark a payroll record as paid. Paying twice re-stamps paid_at."""
        result = await self.db.execute(
            select(Payroll).where(
                and_(
                    Payroll.id == payroll_id,
                    Payroll.company_id == company_id,
                )
            )
        )
        payroll = result.scalar_one_or_none()
        if payroll is None:
            raise PayrollNotFoundException(payroll_id)

        payroll.status = PayrollStatus.PAID
        payroll.paid_at = datetime.now(timezone.utc)

        await self.db.commit()
        logger.info(f"Payroll {payroll_id} marked as paid")
        return payroll

    async def find_orphaned_payrolls(self, company_id: uuid.UUID) -> List[Payroll]:
        """Payroll records whose payrun row does not exist."""
        result = await self.db.execute(
            select(Payroll)
            .outerjoin(Payrun, Payrun.id == Payroll.payrun_id)
            .where(
                and_(
                    Payroll.company_id == company_id,
                    Payrun.id.is_(None),
                )
            )
            .order_by(Payroll.month, Payroll.generated_at)
        )
        orphans = list(result.scalars().all())
        if orphans:
            logger.warning(f"Found {len(orphans)} orphaned payroll records for company {company_id}")
        return orphans
