# Overview: Employee directory lookups (identity and home location).

from __future__ import annotations

from ..extensions import db
from ..models import Employee
from .errors import ValidationError


def resolve_employee(employee_ref: str) -> Employee:
    """
    Resolve an employee by id, falling back to an exact (case-insensitive) name.

    Raises:
        ValidationError: If the reference is empty, unknown or ambiguous.
    """
    if not employee_ref or not str(employee_ref).strip():
        raise ValidationError("employee is required")
    ref = str(employee_ref).strip()

    employee = db.session.get(Employee, ref)
    if employee is None:
        matches = (
            db.session.query(Employee)
            .filter(db.func.lower(Employee.name) == ref.lower())
            .all()
        )
        if len(matches) > 1:
            raise ValidationError(f"Employee name '{ref}' is ambiguous; use the employee id")
        employee = matches[0] if matches else None

    if employee is None:
        raise ValidationError(f"Employee '{ref}' not found")
    if not employee.is_active:
        raise ValidationError(f"Employee '{employee.name}' is inactive")
    return employee


def upsert_employee(*, employee_id: str, name: str, location: str | None = None, email: str | None = None) -> Employee:
    employee = db.session.get(Employee, employee_id)
    if employee is None:
        employee = Employee(employee_id=employee_id)
        db.session.add(employee)
    employee.name = name.strip()
    employee.location = location
    employee.email = email
    employee.is_active = True
    db.session.commit()
    return employee
