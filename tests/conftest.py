import pytest
import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["NOTIFY_IN_APP"] = "false"
os.environ["NOTIFY_EMAIL"] = "false"

from app.database import Base, get_db
from app.main import app
from app.routers.leave import get_entitlement_gate, get_notifier
from app.services.entitlements import StaticEntitlementGate
from app.services.notification import Notifier
from fastapi.testclient import TestClient

# SQLite in-memory database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

YEAR = 2025


class RecordingNotifier(Notifier):
    """Keeps every notification in memory so tests can assert on them."""

    def __init__(self):
        self.sent = []

    def notify(self, recipient_employee_id, kind, payload):
        self.sent.append((recipient_employee_id, kind, payload))

    @property
    def kinds(self):
        return [kind for _, kind, _ in self.sent]


@pytest.fixture(scope="function")
def engine():
    """
    Fresh in-memory database per test. The service layer commits on its own,
    so an outer rollback cannot isolate tests; the schema is rebuilt instead.
    """
    engine = create_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session(session_factory):
    """Get a database session for each test function."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(scope="function")
def company(db_session):
    """Create a default company for tests."""
    from app.models.company import Company
    company = Company(name="Alpha Corp")
    db_session.add(company)
    db_session.commit()
    return company


@pytest.fixture(scope="function")
def other_company(db_session):
    from app.models.company import Company
    company = Company(name="Beta Corp")
    db_session.add(company)
    db_session.commit()
    return company


@pytest.fixture(scope="function")
def make_employee(db_session, company):
    """Factory for employees of the default company."""
    from app.models.employee import Employee, EmployeeRole

    def _make_employee(email, role=EmployeeRole.EMPLOYEE, manager=None, company_id=None, is_active=True):
        employee = Employee(
            company_id=company_id or company.id,
            full_name=email.split("@")[0].title(),
            email=email,
            role=role,
            manager_id=manager.id if manager else None,
            is_active=is_active,
        )
        db_session.add(employee)
        db_session.commit()
        return employee
    return _make_employee


@pytest.fixture(scope="function")
def hr_admin(make_employee):
    from app.models.employee import EmployeeRole
    return make_employee("hr@alphacorp.com", role=EmployeeRole.HR_ADMIN)


@pytest.fixture(scope="function")
def manager(make_employee):
    from app.models.employee import EmployeeRole
    return make_employee("manager@alphacorp.com", role=EmployeeRole.MANAGER)


@pytest.fixture(scope="function")
def employee(make_employee, manager):
    """Employee reporting to `manager`."""
    return make_employee("emp@alphacorp.com", manager=manager)


@pytest.fixture(scope="function")
def solo_employee(make_employee):
    """Employee without a manager; HR decides alone."""
    return make_employee("solo@alphacorp.com")


@pytest.fixture(scope="function")
def make_policy(db_session, company):
    from app.models.leave_policy import LeavePolicy

    def _make_policy(leave_type="CASUAL_LEAVE", annual_quota=12.0, requires_hr_approval=False, company_id=None,
                     carry_forward=False, max_carry_forward=0.0, half_day_allowed=True):
        policy = LeavePolicy(
            company_id=company_id or company.id,
            leave_type=leave_type,
            annual_quota=annual_quota,
            carry_forward=carry_forward,
            max_carry_forward=max_carry_forward,
            half_day_allowed=half_day_allowed,
            requires_hr_approval=requires_hr_approval,
            active=True,
        )
        db_session.add(policy)
        db_session.commit()
        return policy
    return _make_policy


@pytest.fixture(scope="function")
def make_balance(db_session):
    """Seed a ledger bucket with a quota, optionally some days used, nothing pending."""
    from app.models.leave_balance import LeaveBalance

    def _make_balance(employee, leave_type="CASUAL_LEAVE", year=YEAR, total_quota=12.0, used=0.0):
        balance = LeaveBalance(
            employee_id=employee.id,
            leave_type=leave_type,
            year=year,
            total_quota=total_quota,
            used=used,
            pending=0.0,
            carried_forward=0.0,
            available=total_quota - used,
            version=1,
        )
        db_session.add(balance)
        db_session.commit()
        return balance
    return _make_balance


@pytest.fixture(scope="function")
def notifier():
    return RecordingNotifier()


@pytest.fixture(scope="function")
def service(db_session, notifier):
    """Leave service wired with an allow-all gate and the recording notifier."""
    from app.services.leave_application_service import LeaveApplicationService
    return LeaveApplicationService(db_session, entitlement_gate=StaticEntitlementGate(), notifier=notifier)


@pytest.fixture(scope="function")
def client(db_session, notifier):
    """Get a TestClient that uses the test database session via dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_entitlement_gate] = lambda: StaticEntitlementGate()
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def as_employee():
    """Headers carrying the forwarded identity of an employee."""
    def _as_employee(employee):
        return {"X-Employee-ID": str(employee.id)}
    return _as_employee
