import math

import pytest

from repricer.pricing.cost_model import compute_breakdown, sanitize

def test_breakdown_matches_worked_example():
    b = compute_breakdown(120.0, 40.0, 5.0)
    assert b.price_ex_vat == pytest.approx(100.0)
    assert b.vat_amount == pytest.approx(20.0)
    assert b.clawback == pytest.approx(20.0)
    assert b.net_profit == pytest.approx(35.0)
    assert b.margin_percent == pytest.approx(35.0)
    assert b.total_costs == pytest.approx(65.0)

def test_zero_price_has_zero_margin():
    b = compute_breakdown(0.0, 10.0, 2.0)
    assert b.margin_percent == 0.0
    assert b.net_profit == pytest.approx(-12.0)

def test_non_finite_inputs_are_sanitized_and_recorded():
    anomalies = []
    b = compute_breakdown(math.inf, 10.0, 2.0, anomalies)
    for value in (b.selling_price, b.price_ex_vat, b.net_profit, b.margin_percent):
        assert value == 0.0
    fields = {a.field for a in anomalies}
    assert {"selling_price", "price_ex_vat", "net_profit"} <= fields
    assert anomalies[0].as_warning().endswith("non-finite value replaced with 0")

def test_nan_price_does_not_propagate():
    b = compute_breakdown(float("nan"), 10.0, 0.0)
    assert all(math.isfinite(v) for v in vars(b).values())

def test_sanitize_passes_finite_values_through():
    assert sanitize(12.5) == 12.5
    assert sanitize(float("-inf")) == 0.0
