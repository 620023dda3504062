# tests/test_config.py
import pytest

from medishop.config import BillingPolicy


def test_defaults():
    p = BillingPolicy()
    assert p.return_total_mode == "subtotal"
    assert p.reverse_customer_total_on_return is False
    assert p.default_gst_pct == 18.0


def test_unknown_return_mode_rejected():
    with pytest.raises(ValueError):
        BillingPolicy(return_total_mode="gross")


def test_from_env(monkeypatch):
    monkeypatch.setenv("MEDISHOP_RETURN_TOTAL_MODE", "NET")
    monkeypatch.setenv("MEDISHOP_REVERSE_CUSTOMER_TOTAL", "yes")
    monkeypatch.setenv("MEDISHOP_DEFAULT_GST", "12")
    p = BillingPolicy.from_env()
    assert p == BillingPolicy(return_total_mode="net", reverse_customer_total_on_return=True, default_gst_pct=12.0)


def test_from_env_without_variables(monkeypatch):
    for name in ("MEDISHOP_RETURN_TOTAL_MODE", "MEDISHOP_REVERSE_CUSTOMER_TOTAL", "MEDISHOP_DEFAULT_GST"):
        monkeypatch.delenv(name, raising=False)
    assert BillingPolicy.from_env() == BillingPolicy()


def test_bad_gst_in_env(monkeypatch):
    monkeypatch.setenv("MEDISHOP_DEFAULT_GST", "eighteen")
    with pytest.raises(ValueError):
        BillingPolicy.from_env()
