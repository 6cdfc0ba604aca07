"""
WorkZen Payroll - Salary Structure Router

API endpoints for employee salary structures.
"""

import uuid
from typing import List

from fastapi import APIRouter, Depends, status, Path
from sqlalchemy.ext.asyncio import AsyncSession

from workzen.database import get_async_session
from workzen.dependencies import get_current_company_id, get_current_user_id
from workzen.schemas.payroll import (
    SalaryStructureCreate,
    SalaryStructureResponse,
    SalaryStructureUpdate,
)
from workzen.services.salary_structure_service import SalaryStructureService


router = APIRouter(prefix="/salary-structures")


@router.post(
    "",
    response_model=SalaryStructureResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create salary structure",
    description="Split a monthly wage into salary components and make it the employee's active structure.",
)
async def create_salary_structure(
    data: SalaryStructureCreate,
    db: AsyncSession = Depends(get_async_session),
    company_id: uuid.UUID = Depends(get_current_company_id),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    service = SalaryStructureService(db)
    structure = await service.create_salary_structure(
        company_id=company_id,
        employee_id=data.employee_id,
        monthly_wage=data.monthly_wage,
        effective_from=data.effective_from,
        created_by_id=user_id,
    )
    return SalaryStructureResponse.model_validate(structure)


@router.patch(
    "/{employee_id}",
    response_model=SalaryStructureResponse,
    summary="Change employee wage",
    description="Creates a new structure version; the previous one is kept as history.",
)
async def update_salary_structure(
    data: SalaryStructureUpdate,
    employee_id: uuid.UUID = Path(...),
    db: AsyncSession = Depends(get_async_session),
    company_id: uuid.UUID = Depends(get_current_company_id),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    service = SalaryStructureService(db)
    structure = await service.update_salary_structure(
        company_id=company_id,
        employee_id=employee_id,
        monthly_wage=data.monthly_wage,
        effective_from=data.effective_from,
        updated_by_id=user_id,
    )
    return SalaryStructureResponse.model_validate(structure)


@router.get(
    "/{employee_id}",
    response_model=SalaryStructureResponse,
    summary="Get active salary structure",
)
async def get_salary_structure(
    employee_id: uuid.UUID = Path(...),
    db: AsyncSession = Depends(get_async_session),
    company_id: uuid.UUID = Depends(get_current_company_id),
):
    service = SalaryStructureService(db)
    structure = await service.get_salary_structure(company_id, employee_id)
    return SalaryStructureResponse.model_validate(structure)


@router.get(
    "/{employee_id}/history",
    response_model=List[SalaryStructureResponse],
    summary="List salary structure versions",
)
async def list_structure_history(
    employee_id: uuid.UUID = Path(...),
    db: AsyncSession = Depends(get_async_session),
    company_id: uuid.UUID = Depends(get_current_company_id),
):
    service = SalaryStructureService(db)
    structures = await service.list_structure_history(company_id, employee_id)
    return [SalaryStructureResponse.model_validate(s) for s in structures]
