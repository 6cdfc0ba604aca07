"""Initial payroll schema

Revision ID: 20261018_0900_initial_payroll_schema
Revises:
Create Date: 2026-10-18 09:00:00.000000

This migration creates the payroll engine tables:
- companies, employees: tenant and roster (owned by the HRMS core)
- payroll_configurations: one row per company
- salary_structures, salary_components: versioned salary breakdowns
- payruns, payrolls: monthly batches and per-employee records
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '20261018_0900_initial_payroll_schema'
down_revision = None
branch_labels = None
depends_on = None


MONEY = sa.Numeric(precision=15, scale=2)
PERCENT = sa.Numeric(precision=7, scale=4)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _audit():
    return [
        sa.Column('created_by_id', sa.Uuid(), nullable=True),
        sa.Column('updated_by_id', sa.Uuid(), nullable=True),
    ]


def upgrade() -> None:
    """Create payroll tables."""

    employee_role = sa.Enum('SUPERADMIN', 'ADMIN', 'HR', 'PAYROLL', 'EMPLOYEE', name='employeerole')
    employee_status = sa.Enum('ACTIVE', 'INACTIVE', name='employeestatus')
    wage_type = sa.Enum('FIXED', 'VARIABLE', name='wagetype')
    component_kind = sa.Enum('PERCENTAGE', 'FIXED', name='componentkind')
    component_code = sa.Enum(
        'BASIC_SALARY', 'HOUSE_RENT_ALLOWANCE', 'STANDARD_ALLOWANCE',
        'PERFORMANCE_BONUS', 'LEAVE_TRAVEL_ALLOWANCE', 'FIXED_ALLOWANCE',
        name='componentcode',
    )
    payroll_status = sa.Enum('PENDING', 'PROCESSED', 'PAID', name='payrollstatus')
    payrun_status = sa.Enum('DRAFT', 'GENERATED', 'COMPLETED', name='payrunstatus')

    op.create_table(
        'companies',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_companies'),
    )

    op.create_table(
        'employees',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('company_id', sa.Uuid(), nullable=False),
        sa.Column('employee_code', sa.String(50), nullable=False, comment='Internal employee ID/staff number'),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('designation', sa.String(150), nullable=True),
        sa.Column('date_of_join', sa.Date(), nullable=True),
        sa.Column('role', employee_role, nullable=False),
        sa.Column('status', employee_status, nullable=False),
        sa.Column('manager_id', sa.Uuid(), nullable=True),
        sa.Column('bank_account_number', sa.String(34), nullable=True),
        sa.Column('bank_name', sa.String(150), nullable=True),
        sa.Column('ifsc_code', sa.String(11), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_employees'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], name='fk_employees_company_id_companies', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['manager_id'], ['employees.id'], name='fk_employees_manager_id_employees', ondelete='SET NULL'),
        sa.UniqueConstraint('company_id', 'employee_code', name='uq_employee_company_code'),
    )
    op.create_index('ix_employees_company_id', 'employees', ['company_id'])

    op.create_table(
        'payroll_configurations',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('company_id', sa.Uuid(), nullable=False),
        sa.Column('pf_employee_percent', PERCENT, nullable=False),
        sa.Column('pf_employer_percent', PERCENT, nullable=False),
        sa.Column('professional_tax', MONEY, nullable=False, comment='Flat monthly professional tax'),
        sa.Column('basic_percent', PERCENT, nullable=False, comment='% of monthly wage'),
        sa.Column('hra_percent_of_basic', PERCENT, nullable=False, comment='% of basic salary'),
        sa.Column('standard_allowance_percent', PERCENT, nullable=False, comment='% of monthly wage'),
        sa.Column('performance_bonus_percent', PERCENT, nullable=False, comment='% of monthly wage'),
        sa.Column('lta_percent', PERCENT, nullable=False, comment='% of monthly wage'),
        sa.Column('currency', sa.String(3), nullable=False),
        *_timestamps(),
        *_audit(),
        sa.PrimaryKeyConstraint('id', name='pk_payroll_configurations'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], name='fk_payroll_configurations_company_id_companies', ondelete='CASCADE'),
        sa.UniqueConstraint('company_id', name='uq_payroll_configurations_company_id'),
        sa.CheckConstraint(
            'pf_employee_percent >= 0 AND pf_employer_percent >= 0 AND professional_tax >= 0',
            name='ck_payroll_configurations_statutory_non_negative',
        ),
        sa.CheckConstraint(
            'basic_percent >= 0 AND hra_percent_of_basic >= 0 AND standard_allowance_percent >= 0 '
            'AND performance_bonus_percent >= 0 AND lta_percent >= 0',
            name='ck_payroll_configurations_ratios_non_negative',
        ),
    )

    op.create_table(
        'salary_structures',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('employee_id', sa.Uuid(), nullable=False),
        sa.Column('company_id', sa.Uuid(), nullable=False),
        sa.Column('wage_type', wage_type, nullable=False),
        sa.Column('monthly_wage', MONEY, nullable=False),
        sa.Column('yearly_wage', MONEY, nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('effective_from', sa.Date(), nullable=False),
        sa.Column('total_earnings', MONEY, nullable=False),
        sa.Column('total_deductions', MONEY, nullable=False, comment='Employee PF + professional tax'),
        sa.Column('net_pay', MONEY, nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        *_audit(),
        sa.PrimaryKeyConstraint('id', name='pk_salary_structures'),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], name='fk_salary_structures_employee_id_employees', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], name='fk_salary_structures_company_id_companies', ondelete='CASCADE'),
        sa.CheckConstraint('monthly_wage > 0', name='ck_salary_structures_positive_wage'),
    )
    op.create_index('ix_salary_structures_employee_id', 'salary_structures', ['employee_id'])
    op.create_index('ix_salary_structures_company_id', 'salary_structures', ['company_id'])
    op.create_index('ix_salary_structures_employee_active', 'salary_structures', ['employee_id', 'is_active'])

    op.create_table(
        'salary_components',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('structure_id', sa.Uuid(), nullable=False),
        sa.Column('code', component_code, nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('kind', component_kind, nullable=False),
        sa.Column('value', sa.Numeric(precision=15, scale=4), nullable=False, comment='Configured percentage, or the fixed amount'),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_salary_components'),
        sa.ForeignKeyConstraint(['structure_id'], ['salary_structures.id'], name='fk_salary_components_structure_id_salary_structures', ondelete='CASCADE'),
        sa.UniqueConstraint('structure_id', 'code', name='uq_salary_component_structure_code'),
    )
    op.create_index('ix_salary_components_structure_id', 'salary_components', ['structure_id'])

    op.create_table(
        'payruns',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('company_id', sa.Uuid(), nullable=False),
        sa.Column('month', sa.String(7), nullable=False, comment='YYYY-MM'),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('total_employees', sa.Integer(), nullable=False),
        sa.Column('processed_count', sa.Integer(), nullable=False),
        sa.Column('total_payroll', MONEY, nullable=False, comment='Sum of net pay over processed payroll records'),
        sa.Column('missing_bank_count', sa.Integer(), nullable=False),
        sa.Column('missing_manager_count', sa.Integer(), nullable=False),
        sa.Column('status', payrun_status, nullable=False),
        sa.Column('generated_by_id', sa.Uuid(), nullable=True),
        sa.Column('generated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_payruns'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], name='fk_payruns_company_id_companies', ondelete='CASCADE'),
        sa.CheckConstraint('processed_count <= total_employees', name='ck_payruns_processed_within_roster'),
    )
    op.create_index('ix_payruns_company_id', 'payruns', ['company_id'])
    op.create_index('ix_payruns_company_month', 'payruns', ['company_id', 'month'])

    op.create_table(
        'payrolls',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('company_id', sa.Uuid(), nullable=False),
        sa.Column('employee_id', sa.Uuid(), nullable=False),
        sa.Column('payrun_id', sa.Uuid(), nullable=False),
        sa.Column('salary_structure_id', sa.Uuid(), nullable=True),
        sa.Column('month', sa.String(7), nullable=False, comment='YYYY-MM'),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('basic_salary', MONEY, nullable=False),
        sa.Column('house_rent_allowance', MONEY, nullable=False),
        sa.Column('standard_allowance', MONEY, nullable=False),
        sa.Column('performance_bonus', MONEY, nullable=False),
        sa.Column('leave_travel_allowance', MONEY, nullable=False),
        sa.Column('fixed_allowance', MONEY, nullable=False),
        sa.Column('gross_salary', MONEY, nullable=False),
        sa.Column('pf_employee', MONEY, nullable=False),
        sa.Column('pf_employer', MONEY, nullable=False, comment='Employer contribution, not deducted from net pay'),
        sa.Column('professional_tax', MONEY, nullable=False),
        sa.Column('total_deductions', MONEY, nullable=False),
        sa.Column('net_pay', MONEY, nullable=False),
        sa.Column('has_bank_account', sa.Boolean(), nullable=False),
        sa.Column('has_manager', sa.Boolean(), nullable=False),
        sa.Column('working_days', sa.Integer(), nullable=False),
        sa.Column('present_days', sa.Integer(), nullable=False),
        sa.Column('leave_days', sa.Integer(), nullable=False),
        sa.Column('absent_days', sa.Integer(), nullable=False),
        sa.Column('status', payroll_status, nullable=False),
        sa.Column('generated_by_id', sa.Uuid(), nullable=True),
        sa.Column('generated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('payslip_url', sa.String(500), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_payrolls'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], name='fk_payrolls_company_id_companies', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], name='fk_payrolls_employee_id_employees', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['salary_structure_id'], ['salary_structures.id'], name='fk_payrolls_salary_structure_id_salary_structures', ondelete='SET NULL'),
    )
    op.create_index('ix_payrolls_company_id', 'payrolls', ['company_id'])
    op.create_index('ix_payrolls_employee_id', 'payrolls', ['employee_id'])
    op.create_index('ix_payrolls_payrun_id', 'payrolls', ['payrun_id'])
    op.create_index('ix_payrolls_employee_month', 'payrolls', ['employee_id', 'month'])


def downgrade() -> None:
    """Drop payroll tables."""
    op.drop_table('payrolls')
    op.drop_table('payruns')
    op.drop_table('salary_components')
    op.drop_table('salary_structures')
    op.drop_table('payroll_configurations')
    op.drop_table('employees')
    op.drop_table('companies')

    # Drop enums
    for enum_name in (
        'payrunstatus', 'payrollstatus', 'componentcode', 'componentkind',
        'wagetype', 'employeestatus', 'employeerole',
    ):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
