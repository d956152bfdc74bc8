import pytest

from app.services.entitlements import (
    Capability,
    CompanySettingsEntitlementGate,
    EntitlementGate,
    StaticEntitlementGate,
)


def test_company_settings_gate_defaults_to_allow(db_session, company):
    decision = CompanySettingsEntitlementGate(db_session).check_allowed(company.id, Capability.CREATE_LEAVE_APPLICATION)
    assert decision.allowed is True
    assert decision.reason is None


def test_company_settings_gate_reads_disabled_capabilities(db_session, company):
    company.settings = '{"disabled_capabilities": ["attendance-rate-analytics"]}'
    db_session.commit()
    gate = CompanySettingsEntitlementGate(db_session)

    assert gate.check_allowed(company.id, Capability.CREATE_LEAVE_APPLICATION).allowed is True
    denied = gate.check_allowed(company.id, Capability.ATTENDANCE_RATE_ANALYTICS)
    assert denied.allowed is False
    assert "attendance-rate-analytics" in denied.reason


def test_company_settings_gate_ignores_malformed_settings(db_session, company):
    company.settings = "{not json"
    db_session.commit()

    assert CompanySettingsEntitlementGate(db_session).check_allowed(company.id, Capability.CREATE_LEAVE_APPLICATION).allowed


def test_unknown_company_is_denied(db_session):
    decision = CompanySettingsEntitlementGate(db_session).check_allowed(404, Capability.CREATE_LEAVE_APPLICATION)
    assert decision.allowed is False


def test_static_gate():
    gate = StaticEntitlementGate(denied=[Capability.CREATE_LEAVE_APPLICATION], reason="Trial expired")
    assert gate.check_allowed(1, Capability.CREATE_LEAVE_APPLICATION).reason == "Trial expired"
    assert gate.check_allowed(1, Capability.ATTENDANCE_RATE_ANALYTICS).allowed is True


def test_gate_interface_requires_check_allowed():
    class Incomplete(EntitlementGate):
        pass

    with pytest.raises(TypeError):
        Incomplete()
