# lg_core/common/tests/test_capabilities.py
import pytest

from lg_core.common import capabilities
from lg_core.common.capabilities import reset_capabilities, supports_field
from lg_core.iam.models import ClinicMembership

pytestmark = pytest.mark.django_db


def test_existing_column_is_supported():
    assert supports_field(ClinicMembership, "suspended_at") is True


def test_missing_column_is_detected(monkeypatch):
    from django.db import connections

    introspection = connections["default"].introspection
    real = introspection.get_table_description

    def without_suspended_at(cursor, table):
        return [c for c in real(cursor, table) if c.name != "suspended_at"]

    monkeypatch.setattr(introspection, "get_table_description", without_suspended_at)
    reset_capabilities()

    assert supports_field(ClinicMembership, "suspended_at") is False


def test_result_is_cached(monkeypatch):
    assert supports_field(ClinicMembership, "accepted_at") is True

    calls = []

    def boom(*args, **kwargs):
        calls.append(1)
        raise AssertionError("introspection should not run again")

    from django.db import connections

    monkeypatch.setattr(connections["default"].introspection, "get_table_description", boom)
    assert supports_field(ClinicMembership, "accepted_at") is True
    assert calls == []
    assert capabilities._CACHE
