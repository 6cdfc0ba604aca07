"""
WorkZen Payroll - Payroll Router

API endpoints for payroll configuration, payruns and payroll records.
"""

import math
import uuid

from fastapi import APIRouter, Depends, status, Query, Path
from sqlalchemy.ext.asyncio import AsyncSession

from workzen.config import settings
from workzen.database import get_async_session
from workzen.dependencies import get_current_company_id, get_current_user_id
from workzen.schemas.payroll import (
    MONTH_PATTERN,
    OrphanedPayrollReport,
    PayrollConfigurationCreate,
    PayrollConfigurationResponse,
    PayrollResponse,
    PayrunCreate,
    PayrunListResponse,
    PayrunResponse,
)
from workzen.services.payroll_service import PayrollService


router = APIRouter()


# ===========================================
# CONFIGURATION ENDPOINTS
# ===========================================

@router.post(
    "/payroll/configuration",
    response_model=PayrollConfigurationResponse,
    summary="Save payroll configuration",
    description="Create or replace the company's PF rates, professional tax and default salary ratios.",
)
async def save_configuration(
    data: PayrollConfigurationCreate,
    db: AsyncSession = Depends(get_async_session),
    company_id: uuid.UUID = Depends(get_current_company_id),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    service = PayrollService(db)
    config = await service.create_configuration(
        company_id=company_id,
        data=data.model_dump(),
        created_by_id=user_id,
    )
    return PayrollConfigurationResponse.model_validate(config)


@router.get(
    "/payroll/configuration",
    response_model=PayrollConfigurationResponse,
    summary="Get payroll configuration",
)
async def get_configuration(
    db: AsyncSession = Depends(get_async_session),
    company_id: uuid.UUID = Depends(get_current_company_id),
):
    service = PayrollService(db)
    config = await service.get_configuration(company_id)
    return PayrollConfigurationResponse.model_validate(config)


# ===========================================
# PAYRUN ENDPOINTS
# ===========================================

@router.post(
    "/payruns",
    response_model=PayrunResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Generate payrun",
    description="Generate payroll records for every active employee with a salary structure.",
)
async def create_payrun(
    data: PayrunCreate,
    db: AsyncSession = Depends(get_async_session),
    company_id: uuid.UUID = Depends(get_current_company_id),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    """Generate payroll for a month."""
    service = PayrollService(db)
    payrun = await service.create_payrun(
        company_id=company_id,
        month=data.month,
        initiated_by=user_id,
    )
    return PayrunResponse.model_validate(payrun)


@router.get(
    "/payruns",
    response_model=PayrunListResponse,
    summary="List payruns",
)
async def list_payruns(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    db: AsyncSession = Depends(get_async_session),
    company_id: uuid.UUID = Depends(get_current_company_id),
):
    """List payruns, newest first."""
    service = PayrollService(db)
    payruns, total = await service.list_payruns(company_id, page=page, limit=limit)

    return PayrunListResponse(
        items=[PayrunResponse.model_validate(p) for p in payruns],
        total=total,
        page=page,
        limit=limit,
        pages=math.ceil(total / limit) if total else 0,
    )


@router.get(
    "/payruns/{payrun_id}",
    response_model=PayrunResponse,
    summary="Get payrun",
)
async def get_payrun(
    payrun_id: uuid.UUID = Path(...),
    db: AsyncSession = Depends(get_async_session),
    company_id: uuid.UUID = Depends(get_current_company_id),
):
    service = PayrollService(db)
    payrun = await service.get_payrun(company_id, payrun_id)
    return PayrunResponse.model_validate(payrun)


@router.get(
    "/payruns/{payrun_id}/payrolls",
    response_model=list[PayrollResponse],
    summary="List payroll records of a payrun",
)
async def list_payrun_payrolls(
    payrun_id: uuid.UUID = Path(...),
    db: AsyncSession = Depends(get_async_session),
    company_id: uuid.UUID = Depends(get_current_company_id),
):
    service = PayrollService(db)
    payrolls = await service.list_payrun_payrolls(company_id, payrun_id)
    return [PayrollResponse.model_validate(p) for p in payrolls]


@router.patch(
    "/payruns/{payrun_id}/complete",
    response_model=PayrunResponse,
    summary="Complete payrun",
)
async def complete_payrun(
    payrun_id: uuid.UUID = Path(...),
    db: AsyncSession = Depends(get_async_session),
    company_id: uuid.UUID = Depends(get_current_company_id),
):
    service = PayrollService(db)
    payrun = await service.complete_payrun(company_id, payrun_id)
    return PayrunResponse.model_validate(payrun)


# ===========================================
# PAYROLL RECORD ENDPOINTS
# ===========================================

@router.get(
    "/payrolls/reconciliation/orphans",
    response_model=OrphanedPayrollReport,
    summary="Find payroll records without a payrun",
)
async def list_orphaned_payrolls(
    db: AsyncSession = Depends(get_async_session),
    company_id: uuid.UUID = Depends(get_current_company_id),
):
    service = PayrollService(db)
    orphans = await service.find_orphaned_payrolls(company_id)
    return OrphanedPayrollReport(
        count=len(orphans),
        items=[PayrollResponse.model_validate(p) for p in orphans],
    )


@router.get(
    "/payrolls/{employee_id}",
    response_model=PayrollResponse,
    summary="Get employee payroll for a month",
)
async def get_employee_payroll(
    employee_id: uuid.UUID = Path(...),
    month: str = Query(..., pattern=MONTH_PATTERN, description="YYYY-MM"),
    db: AsyncSession = Depends(get_async_session),
    company_id: uuid.UUID = Depends(get_current_company_id),
):
    service = PayrollService(db)
    payroll = await service.get_employee_payroll(company_id, employee_id, month)
    return PayrollResponse.model_validate(payroll)


@router.patch(
    "/payrolls/{payroll_id}/mark-paid",
    response_model=PayrollResponse,
    summary="Mark payroll as paid",
)
async def mark_payroll_paid(
    payroll_id: uuid.UUID = Path(...),
    db: AsyncSession = Depends(get_async_session),
    company_id: uuid.UUID = Depends(get_current_company_id),
):
    service = PayrollService(db)
    payroll = await service.mark_as_paid(company_id, payroll_id)
    return PayrollResponse.model_validate(payroll)
