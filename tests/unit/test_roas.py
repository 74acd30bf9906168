"""
Tests for origin_tracker.roas module.
"""
import pytest
from decimal import Decimal

from origin_tracker.models import OriginBucket, FB_ADS_LABEL, INSTAGRAM_LABEL
from origin_tracker.roas import RoasCalculator, compute_roas

PRICE = Decimal("19.00")


class TestComputeRoas:
    """Tests for compute_roas function."""

    def test_worked_example(self):
        """10 orders at 19.00 against 100.00 spend."""
        result = compute_roas(10, Decimal("100.00"), PRICE)

        assert result.facebook_sales == Decimal("190.00")
        assert result.roas == Decimal("1.9")
        assert result.cost_per_order == Decimal("10")
        assert result.profit_per_order == Decimal("9")
        assert result.total_profit == Decimal("90")
        assert round(result.profit_margin, 1) == Decimal("47.4")
        assert result.roas_display == "1.90:1"

    def test_zero_spend(self):
        """No spend: ROAS shows N/A and cost per order is 0."""
        result = compute_roas(10, Decimal("0"), PRICE)

        assert result.roas == 0
        assert result.roas_display == "N/A"
        assert result.cost_per_order == 0
        assert result.profit_per_order == PRICE
        assert result.total_profit == Decimal("190.00")

    def test_zero_orders(self):
        """Spend without orders never divides by zero."""
        result = compute_roas(0, Decimal("50"), PRICE)

        assert result.roas == 0
        assert result.cost_per_order == 0
        assert result.total_profit == 0
        assert result.has_facebook_sales is False

    def test_zero_price(self):
        result = compute_roas(3, Decimal("10"), Decimal("0"))
        assert result.profit_margin == 0

    def test_float_inputs_accepted(self):
        result = compute_roas(2, 20, 19.0)
        assert result.roas == Decimal("1.9")

    @pytest.mark.parametrize("spend,rating,color", [
        (Decimal("10"), "excellent", "#28a745"),   # 190 / 10 = 19
        (Decimal("95"), "good", "#ffc107"),        # 2.0
        (Decimal("100"), "poor", "#dc3545"),       # 1.9
        (Decimal("0"), "none", "#6c757d"),
    ])
    def test_rating(self, spend, rating, color):
        result = compute_roas(10, spend, PRICE)
        assert result.roas_rating == rating
        assert result.roas_color == color

    def test_instagram_excluded_from_math(self):
        """Instagram orders are reported but never enter ROAS."""
        with_instagram = compute_roas(10, Decimal("100"), PRICE, instagram_orders=5)
        without = compute_roas(10, Decimal("100"), PRICE)

        assert with_instagram.roas == without.roas
        assert with_instagram.instagram_sales == Decimal("95.00")

    def test_to_dict_rounds(self):
        data = compute_roas(10, Decimal("100"), PRICE).to_dict()
        assert data["profit_margin"] == 47.37
        assert data["facebook_sales"] == 190.0
        assert data["has_facebook_sales"] is True


class TestRoasCalculator:
    """Tests for RoasCalculator with the settings port."""

    @pytest.mark.asyncio
    async def test_uses_spend_for_range_key(self, settings):
        await settings.set_ad_spend("2026-03-01_to_2026-03-07", Decimal("100"))
        buckets = [OriginBucket(FB_ADS_LABEL, 10), OriginBucket(INSTAGRAM_LABEL, 4)]

        result = await RoasCalculator(settings, unit_price=PRICE).calculate(
            buckets, "2026-03-01", "2026-03-07"
        )

        assert result.facebook_orders == 10
        assert result.instagram_orders == 4
        assert result.ad_spend == Decimal("100")
        assert result.roas == Decimal("1.9")

    @pytest.mark.asyncio
    async def test_missing_spend_is_zero(self, settings):
        result = await RoasCalculator(settings, unit_price=PRICE).calculate(
            [OriginBucket(FB_ADS_LABEL, 3)], "2026-03-01", "2026-03-02"
        )
        assert result.ad_spend == 0
        assert result.roas_display == "N/A"

    @pytest.mark.asyncio
    async def test_no_facebook_bucket(self, settings):
        result = await RoasCalculator(settings, unit_price=PRICE).calculate(
            [OriginBucket("Direct", 5)], "2026-03-01", "2026-03-02"
        )
        assert result.facebook_orders == 0
        assert result.has_facebook_sales is False
