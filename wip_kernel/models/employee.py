"""
Module: wip_kernel.models.employee
Responsibility: ORM persistence for employees.  The engine reads the
    employee category to build the excluded-cost code set.
Architecture position: Kernel > Models.  May import from db/base.py only.
"""

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from wip_kernel.db.base import TimestampedBase


class EmployeeModel(TimestampedBase):
    """An employee who books time and disbursements."""

    __tablename__ = "employees"

    __table_args__ = (
        Index("idx_employee_category", "category_code"),
    )

    employee_code: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    # Partner categories such as CARL are excluded from cost figures
    category_code: Mapped[str | None] = mapped_column(String(16), nullable=True)

    def __repr__(self) -> str:
        return f"<EmployeeModel {self.employee_code} ({self.category_code})>"
