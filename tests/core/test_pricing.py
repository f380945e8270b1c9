import pytest
from decimal import Decimal

from src.lingua_tutor_backend.core.pricing import calculate_pricing, teacher_earning, to_money
from src.lingua_tutor_backend.common.exceptions import InvalidPriceError, ValidationError


class TestCalculatePricing:

    def test_default_rates(self):
        """25.00 -> commission 5.00, tax 7% of 30.00, total 32.10."""
        pricing = calculate_pricing(Decimal("25"))

        assert pricing.base_price == Decimal("25.00")
        assert pricing.commission == Decimal("5.00")
        assert pricing.tax == Decimal("2.10")
        assert pricing.total_amount == Decimal("32.10")

    def test_total_is_sum_of_rounded_parts(self):
        pricing = calculate_pricing(Decimal("10.55"))

        assert pricing.commission == Decimal("2.11")
        # (10.55 + 2.11) * 0.07 = 0.8862
        assert pricing.tax == Decimal("0.89")
        assert pricing.total_amount == pricing.base_price + pricing.commission + pricing.tax
        assert pricing.total_amount == Decimal("13.55")

    def test_accepts_int_and_string_prices(self):
        assert calculate_pricing(100).total_amount == Decimal("128.40")
        assert calculate_pricing("100").total_amount == Decimal("128.40")

    def test_custom_rates(self):
        pricing = calculate_pricing(Decimal("100"), commission_rate=Decimal("0.10"), tax_rate=Decimal("0.05"))

        assert pricing.commission == Decimal("10.00")
        assert pricing.tax == Decimal("5.50")
        assert pricing.total_amount == Decimal("115.50")

    @pytest.mark.parametrize("price", [Decimal("0"), Decimal("-5"), Decimal("0.001")])
    def test_non_positive_price_rejected(self, price):
        with pytest.raises(InvalidPriceError) as e:
            calculate_pricing(price)
        assert isinstance(e.value, ValidationError)
        assert e.value.status_code == 400

    def test_total_grows_with_price(self):
        prices = [Decimal("1"), Decimal("9.99"), Decimal("10"), Decimal("25"), Decimal("60.50"), Decimal("250")]
        totals = [calculate_pricing(p).total_amount for p in prices]
        assert totals == sorted(totals)
        assert all(total > price for total, price in zip(totals, prices))


def test_teacher_earning_is_price_minus_commission():
    assert teacher_earning(Decimal("25.00"), Decimal("5.00")) == Decimal("20.00")


def test_to_money_rounds_half_up():
    assert to_money(Decimal("2.005")) == Decimal("2.01")
    assert to_money(1.1) == Decimal("1.10")
