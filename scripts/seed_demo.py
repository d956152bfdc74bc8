"""
Seed a demo company with an HR admin, a manager, two employees, leave
policies and this year's balances.

Usage: python -m scripts.seed_demo
"""
from app.database import SessionLocal, init_db
from app.models.company import Company
from app.models.employee import Employee, EmployeeRole
from app.models.leave_policy import LeavePolicy
from app.services.leave_ledger import LeaveLedger

POLICIES = [
    ("CASUAL_LEAVE", 12.0, False),
    ("SICK_LEAVE", 10.0, False),
    ("EARNED_LEAVE", 15.0, True),
]

init_db()
db = SessionLocal()


def get_or_create_company(name):
    company = db.query(Company).filter(Company.name == name).first()
    if company:
        print(f"Company {name} already exists. Skipping.")
        return company
    company = Company(name=name)
    db.add(company)
    db.commit()
    db.refresh(company)
    print(f"Created company -> {name}")
    return company


def create_employee(company, email, full_name, role, manager=None):
    # Check if employee already exists to avoid unique constraint errors
    existing = db.query(Employee).filter(Employee.email == email).first()
    if existing:
        print(f"Employee {email} already exists. Skipping.")
        return existing

    employee = Employee(
        company_id=company.id,
        full_name=full_name,
        email=email,
        role=role,
        manager_id=manager.id if manager else None,
        is_active=True
    )
    db.add(employee)
    db.commit()
    db.refresh(employee)
    print(f"Created {role.value} -> {email} (id={employee.id})")
    return employee


try:
    company = get_or_create_company("Demo Corp")

    for leave_type, quota, requires_hr in POLICIES:
        if not db.query(LeavePolicy).filter_by(company_id=company.id, leave_type=leave_type).first():
            db.add(LeavePolicy(
                company_id=company.id,
                leave_type=leave_type,
                annual_quota=quota,
                requires_hr_approval=requires_hr,
            ))
    db.commit()

    hr = create_employee(company, "hr@example.com", "Hannah HR", EmployeeRole.HR_ADMIN)
    manager = create_employee(company, "manager@example.com", "Mark Manager", EmployeeRole.MANAGER)
    employee = create_employee(company, "employee@example.com", "Eve Employee", EmployeeRole.EMPLOYEE, manager)
    solo = create_employee(company, "solo@example.com", "Sam Solo", EmployeeRole.EMPLOYEE)

    ledger = LeaveLedger(db)
    for person in (hr, manager, employee, solo):
        balances = ledger.initialize_balances(person)
        print(f"Balances for {person.email}: " + ", ".join(f"{b.leave_type}={b.available}" for b in balances))
    db.commit()
finally:
    db.close()
