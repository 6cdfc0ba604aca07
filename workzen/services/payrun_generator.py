"""
WorkZen Payroll - Payrun Generator

Generates one payroll record per eligible employee for a month and the
payrun summary that aggregates them.

Processing rules:
1. Roster = active employees of the company, excluding superadmins
2. Employees without an active salary structure are skipped
3. Each employee is written inside its own SAVEPOINT; a failed write is
   logged and the batch continues with the next employee
4. The payrun row is written after every payroll row it aggregates and
   everything is committed once, so a failed payrun write leaves nothing
   behind
"""

import asyncio
import logging
import re
import uuid
from calendar import monthrange
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional, Tuple

from sqlalchemy import select, and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from workzen.config import settings
from workzen.models.payroll import (
    ComponentCode,
    Payroll,
    PayrollStatus,
    Payrun,
    PayrunStatus,
    SalaryStructure,
)
from workzen.schemas.payroll import MONTH_PATTERN
from workzen.services.employee_service import EmployeeService, RosterEntry
from workzen.services.salary_calculator import (
    DEFAULT_PAYROLL_RATES,
    calculate_net_pay,
    compute_deductions,
)
from workzen.services.salary_structure_service import (
    SalaryStructureService,
    load_payroll_configuration,
)
from workzen.utils.error_handling import (
    DuplicatePayrunException,
    InvalidPeriodException,
    PayrunTimeoutException,
    PersistenceException,
)

logger = logging.getLogger(__name__)

# fullmatch: "$" alone also matches before a trailing newline
MONTH_REGEX = re.compile(MONTH_PATTERN)


def month_bounds(month: str) -> Tuple[date, date]:
    """
    First and last calendar day of a YYYY-MM month.

    Raises:
        InvalidPeriodException: not YYYY-MM, or month outside 01-12
    """
    match = MONTH_REGEX.fullmatch(month) if isinstance(month, str) else None
    if not match:
        raise InvalidPeriodException(month)

    year, month_number = int(match.group(1)), int(match.group(2))
    if year < 1:
        raise InvalidPeriodException(month)

    last_day = monthrange(year, month_number)[1]
    return date(year, month_number, 1), date(year, month_number, last_day)


class PayrunGenerator:
    """Runs the payroll batch for one company and month."""

    def __init__(
        self,
        db: AsyncSession,
        timeout_seconds: Optional[float] = None,
        enforce_unique_month: Optional[bool] = None,
    ):
        self.db = db
        self.employees = EmployeeService(db)
        self.structures = SalaryStructureService(db)
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else settings.payrun_timeout_seconds
        )
        self.enforce_unique_month = (
            enforce_unique_month if enforce_unique_month is not None
            else settings.enforce_unique_payrun_month
        )

    async def generate(
        self,
        company_id: uuid.UUID,
        month: str,
        initiated_by: Optional[uuid.UUID] = None,
    ) -> Payrun:
        """
        Generate payroll for every eligible employee and record the payrun.

        Raises:
            InvalidPeriodException: month is not a valid YYYY-MM value
            DuplicatePayrunException: month already has a payrun and
                uniqueness is enforced
            PersistenceException: roster could not be loaded or the payrun
                could not be written; nothing is persisted
            PayrunTimeoutException: generation exceeded the time limit;
                nothing is persisted
        """
        start_date, end_date = month_bounds(month)

        try:
            return await asyncio.wait_for(
                self._generate(company_id, month, start_date, end_date, initiated_by),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            await self.db.rollback()
            logger.error(
                f"Payrun generation for company {company_id}, {month} "
                f"timed out after {self.timeout_seconds}s; rolled back"
            )
            raise PayrunTimeoutException(month, self.timeout_seconds)

    async def _generate(
        self,
        company_id: uuid.UUID,
        month: str,
        start_date: date,
        end_date: date,
        initiated_by: Optional[uuid.UUID],
    ) -> Payrun:
        if self.enforce_unique_month:
            existing = await self._find_payrun_for_month(company_id, month)
            if existing is not None:
                raise DuplicatePayrunException(month, existing.id)

        config = await load_payroll_configuration(self.db, company_id)
        if config is None:
            logger.info(f"Company {company_id} has no payroll configuration; using defaults")
            config = DEFAULT_PAYROLL_RATES

        try:
            roster = await self.employees.list_active_employees(company_id)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to load roster for company {company_id}: {e}")
            raise PersistenceException("load employee roster", original_error=e)

        payrun_id = uuid.uuid4()
        generated_at = datetime.now(timezone.utc)

        processed_count = 0
        skipped_count = 0
        failed_count = 0
        missing_bank_count = 0
        missing_manager_count = 0
        total_payroll = Decimal("0.00")

        for entry in roster:
            try:
                async with self.db.begin_nested():
                    structure = await self.structures.get_active_structure(entry.id, company_id)
                    if structure is None:
                        skipped_count += 1
                        logger.info(f"Employee {entry.id} has no active salary structure; skipped")
                        continue

                    payroll = self._build_payroll(
                        entry=entry,
                        structure=structure,
                        config=config,
                        company_id=company_id,
                        payrun_id=payrun_id,
                        month=month,
                        initiated_by=initiated_by,
                        generated_at=generated_at,
                    )
                    self.db.add(payroll)
                    await self.db.flush()
            except SQLAlchemyError as e:
                failed_count += 1
                logger.warning(f"Payroll for employee {entry.id} in {month} not written: {e}")
                continue

            processed_count += 1
            total_payroll += payroll.net_pay
            if not entry.bank_account_present:
                missing_bank_count += 1
            if not entry.manager_present:
                missing_manager_count += 1

        payrun = Payrun(
            id=payrun_id,
            company_id=company_id,
            month=month,
            start_date=start_date,
            end_date=end_date,
            total_employees=len(roster),
            processed_count=processed_count,
            total_payroll=total_payroll,
            missing_bank_count=missing_bank_count,
            missing_manager_count=missing_manager_count,
            status=PayrunStatus.GENERATED,
            generated_by_id=initiated_by,
            generated_at=generated_at,
        )

        try:
            self.db.add(payrun)
            await self.db.flush()
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to write payrun {payrun_id} for {month}; batch rolled back: {e}")
            raise PersistenceException(
                "save payrun",
                original_error=e,
                details={"month": month, "processed_count": processed_count},
            )

        logger.info(
            f"Payrun {payrun.id} for {month}: {processed_count}/{len(roster)} processed, "
            f"{skipped_count} without structure, {failed_count} failed, "
            f"total {total_payroll}"
        )
        return payrun

    def _build_payroll(
        self,
        entry: RosterEntry,
        structure: SalaryStructure,
        config,
        company_id: uuid.UUID,
        payrun_id: uuid.UUID,
        month: str,
        initiated_by: Optional[uuid.UUID],
        generated_at: datetime,
    ) -> Payroll:
        """Snapshot a salary structure into a processed payroll record."""
        basic = structure.component(ComponentCode.BASIC_SALARY).amount
        deductions = compute_deductions(basic, config)
        total_deductions = deductions.total_employee_deductions
        gross = structure.total_earnings

        net_pay = calculate_net_pay(gross, total_deductions)
        if net_pay != gross - total_deductions:
            logger.warning(
                f"Deductions {total_deductions} exceed gross {gross} for employee {entry.id}; "
                f"net pay set to 0"
            )

        return Payroll(
            company_id=company_id,
            employee_id=entry.id,
            payrun_id=payrun_id,
            salary_structure_id=structure.id,
            month=month,
            currency=structure.currency,
            basic_salary=basic,
            house_rent_allowance=structure.component(ComponentCode.HOUSE_RENT_ALLOWANCE).amount,
            standard_allowance=structure.component(ComponentCode.STANDARD_ALLOWANCE).amount,
            performance_bonus=structure.component(ComponentCode.PERFORMANCE_BONUS).amount,
            leave_travel_allowance=structure.component(ComponentCode.LEAVE_TRAVEL_ALLOWANCE).amount,
            fixed_allowance=structure.component(ComponentCode.FIXED_ALLOWANCE).amount,
            gross_salary=gross,
            pf_employee=deductions.pf_employee,
            pf_employer=deductions.pf_employer,
            professional_tax=deductions.professional_tax,
            total_deductions=total_deductions,
            net_pay=net_pay,
            has_bank_account=entry.bank_account_present,
            has_manager=entry.manager_present,
            status=PayrollStatus.PROCESSED,
            generated_by_id=initiated_by,
            generated_at=generated_at,
        )

    async def _find_payrun_for_month(
        self,
        company_id: uuid.UUID,
        month: str,
    ) -> Optional[Payrun]:
        result = await self.db.execute(
            select(Payrun)
            .where(and_(Payrun.company_id == company_id, Payrun.month == month))
            .limit(1)
        )
        return result.scalar_one_or_none()
