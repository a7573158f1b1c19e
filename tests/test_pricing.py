"""
Pricing rules for provider and branch held stock.
"""

import pytest

from data_common.pricing import calculate_selling_price, calculate_profit, calculate_cost_breakdown, \
    calculate_profit_margin, calculate_item_costs, calculate_optimal_lom_narxi_kirim, \
    calculate_price_adjustments, calculate_item_profit, round_som


class TestSellingPrice:
    def test_branch_stock_uses_intake_price(self):
        # (10 * 550000 + 10 * 50000) * 1.2
        assert calculate_selling_price(10, 500000, 550000, 50000, 20, False) == 7200000

    def test_provider_stock_uses_supplier_price(self):
        # (10 * 500000 + 10 * 50000) * 1.2
        assert calculate_selling_price(10, 500000, 550000, 50000, 20, True) == 6600000

    @pytest.mark.parametrize('weight', [0, -1, None])
    def test_non_positive_weight_prices_at_zero(self, weight):
        assert calculate_selling_price(weight, 500000, 550000, 50000, 20) == 0

    def test_rounds_half_up_to_whole_som(self):
        # 1.5 * (100 + 1) * 1.0 = 151.5
        assert calculate_selling_price(1.5, 100, 100, 1, 0) == 152
        assert round_som(2.5) == 3
        assert round_som(-0.4) == 0


class TestProfit:
    def test_profit_against_cost(self):
        profit = calculate_profit(7200000, 10, 500000, 550000, 50000)
        assert profit['profit_amount'] == 1200000
        assert profit['profit_percentage'] == 20.0

    def test_margin_without_cost(self):
        assert calculate_profit_margin(1000, 0) == 0

    def test_cost_breakdown(self):
        assert calculate_cost_breakdown(10, 500000, 550000, 50000, is_provider=True) == {
            'material_cost': 5000000,
            'labor_total': 500000,
            'total_cost': 5500000,
        }

    def test_item_costs_apply_quality_and_purity(self):
        costs = calculate_item_costs(10, 1000, 1100, 100, 20, quality='A', purity=585)
        assert costs['quality_multiplier'] == 1.1
        assert costs['purity_multiplier'] == 1.0
        assert costs['central']['material_cost'] == pytest.approx(11000)
        assert costs['central']['transfer_profit'] == pytest.approx(1100)

    def test_optimal_intake_price(self):
        assert calculate_optimal_lom_narxi_kirim(1000, 10) == pytest.approx(1100)

    def test_price_adjustments_follow_market_change(self):
        items = [{'weight': 10, 'lom_narxi': 1000, 'lom_narxi_kirim': 1100, 'labor_cost': 100,
                  'profit_percentage': 20, 'is_provider': False}]

        adjusted = calculate_price_adjustments(items, 1200)

        assert adjusted[0]['lom_narxi'] == 1200
        assert adjusted[0]['lom_narxi_kirim'] == pytest.approx(1320)
        # (10 * 1320 + 10 * 100) * 1.2
        assert adjusted[0]['selling_price'] == 17040


class TestItemProfit:
    def test_unsold_item_has_no_actual_profit(self):
        profit = calculate_item_profit({'weight': 10, 'lom_narxi': 1000, 'lom_narxi_kirim': 1100,
                                        'labor_cost': 100, 'status': 'available', 'selling_price': 15000})
        assert profit['supposed_profit'] == 1000
        assert profit['actual_revenue'] == 0
        assert profit['actual_profit'] == 0

    def test_sold_item_uses_paid_price(self):
        profit = calculate_item_profit({'weight': 10, 'lom_narxi': 1000, 'lom_narxi_kirim': 1100,
                                        'labor_cost': 100, 'payed_lom_narxi': 1050, 'status': 'sold',
                                        'selling_price': 15000, 'quantity': 1})
        assert profit['actual_cost'] == 11500
        assert profit['actual_profit'] == 3500
        assert profit['price_difference_impact'] == 500
