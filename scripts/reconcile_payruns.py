"""
Reconcile Payrun Records
========================
Lists payroll records whose payrun row is missing, per company.

Such rows come from deployments that wrote payroll records and the payrun
summary in separate transactions, or from external import tooling. The
script only reports; it does not modify data.

Usage:
    python scripts/reconcile_payruns.py [--company-id UUID]

Options:
    --company-id UUID   Only check this company (default: all companies)
"""

import argparse
import asyncio
import sys
import uuid
from collections import defaultdict
from decimal import Decimal
from typing import List

# Add project root to path
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from workzen.database import async_session_maker, close_db
from workzen.models.company import Company
from workzen.models.payroll import Payroll
from workzen.services.payroll_service import PayrollService


def summarize(orphans: List[Payroll]) -> None:
    by_payrun = defaultdict(list)
    for payroll in orphans:
        by_payrun[(payroll.payrun_id, payroll.month)].append(payroll)

    for (payrun_id, month), rows in sorted(by_payrun.items(), key=lambda item: item[0][1]):
        total = sum((row.net_pay for row in rows), Decimal("0.00"))
        print(f"  payrun {payrun_id} ({month}): {len(rows)} records, net pay {total}")


async def main():
    parser = argparse.ArgumentParser(description="Report payroll records without a payrun")
    parser.add_argument("--company-id", type=str, help="Check only this company")
    args = parser.parse_args()

    found = 0
    async with async_session_maker() as session:
        if args.company_id:
            company_ids = [uuid.UUID(args.company_id)]
        else:
            result = await session.execute(select(Company.id).order_by(Company.name))
            company_ids = list(result.scalars().all())

        service = PayrollService(session)
        for company_id in company_ids:
            orphans = await service.find_orphaned_payrolls(company_id)
            if not orphans:
                continue
            found += len(orphans)
            print(f"Company {company_id}: {len(orphans)} orphaned payroll records")
            summarize(orphans)

    await close_db()

    print("=" * 60)
    print(f"Checked {len(company_ids)} companies, {found} orphaned payroll records")
    return 1 if found else 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
