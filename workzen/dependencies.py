"""
WorkZen Payroll - FastAPI Dependencies

Caller identity for payroll endpoints.

Authentication happens at the gateway in front of this service, which
forwards the authenticated user and company as headers:
1. X-Company-ID: tenant the request acts on
2. X-User-ID: user performing the request
"""

import uuid
from typing import Optional

from fastapi import Header

from workzen.utils.error_handling import AuthenticationException


def _parse_identity(value: Optional[str], header: str) -> uuid.UUID:
    if not value:
        raise AuthenticationException(
            message=f"Missing {header} header",
            details={"header": header},
        )
    try:
        return uuid.UUID(value)
    except ValueError:
        raise AuthenticationException(
            message=f"Malformed {header} header",
            details={"header": header},
        )


async def get_current_company_id(
    x_company_id: Optional[str] = Header(None, alias="X-Company-ID"),
) -> uuid.UUID:
    """
    Get the company the caller acts on.

    Raises:
        AuthenticationException: header missing or not a UUID
    """
    return _parse_identity(x_company_id, "X-Company-ID")


async def get_current_user_id(
    x_user_id: Optional[str] = Header(None, alias="X-User-ID"),
) -> uuid.UUID:
    """Get the authenticated user's ID."""
    return _parse_identity(x_user_id, "X-User-ID")
