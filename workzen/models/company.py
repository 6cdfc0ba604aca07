"""
WorkZen Payroll - Company Model

A company is the tenant boundary: every employee, salary structure,
payroll configuration, payroll record and payrun carries a company_id.
"""

from typing import TYPE_CHECKING, List

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from workzen.models.base import BaseModel

if TYPE_CHECKING:
    from workzen.models.employee import Employee


class Company(BaseModel):
    """Tenant organization."""

    __tablename__ = "companies"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="INR", nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    employees: Mapped[List["Employee"]] = relationship(
        "Employee",
        back_populates="company",
        cascade="all, delete-orphan",
    )
