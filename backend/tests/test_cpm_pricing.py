import unittest
from decimal import ROUND_HALF_UP, Decimal

from brokerage.errors import ValidationError
from brokerage.money import cpm_amount, half, margin_percent, money, percent_of
from brokerage.services.cpm_pricing import (
    CPM_TABLE,
    lookup_cpm,
    normalize_size,
    partner_cost_breakdown,
    require_cpm,
)


class CpmAmountTests(unittest.TestCase):
    def test_reproduces_rate_times_quantity_over_thousand(self):
        for rates in CPM_TABLE.values():
            for qty in (1, 250, 1000, 4999, 5000, 12345, 100000):
                expected = (rates.print_cpm * qty / Decimal(1000)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
                self.assertEqual(cpm_amount(rates.print_cpm, qty), expected)

    def test_linear_in_quantity_on_whole_thousands(self):
        for rates in CPM_TABLE.values():
            one = cpm_amount(rates.cost_cpm_paper, 1000)
            for thousands in (2, 5, 40):
                self.assertEqual(cpm_amount(rates.cost_cpm_paper, thousands * 1000), one * thousands)

    def test_rounds_half_up_to_the_cent(self):
        self.assertEqual(cpm_amount(Decimal("15.46"), 125), Decimal("1.93"))  # 1.9325
        self.assertEqual(cpm_amount(Decimal("10.00"), 5), Decimal("0.05"))
        self.assertEqual(money("0.005"), Decimal("0.01"))

    def test_non_finite_values_are_rejected(self):
        for value in ("NaN", "sNaN", "Infinity", "-inf", float("nan")):
            with self.assertRaises(ValueError):
                money(value)

    def test_half_and_margin(self):
        self.assertEqual(half(Decimal("769.76")), Decimal("384.88"))
        self.assertEqual(half(Decimal("0.01")), Decimal("0.01"))
        self.assertEqual(margin_percent(Decimal("50"), Decimal("0")), Decimal("0"))
        self.assertEqual(margin_percent(Decimal("400"), Decimal("1000")), Decimal("40.00"))


class CpmTableTests(unittest.TestCase):
    def test_sell_cpm_is_cost_plus_eighteen_percent(self):
        rates = lookup_cpm("6 x 9")
        self.assertEqual(rates.sell_cpm_paper, Decimal("16.048"))
        for rates in CPM_TABLE.values():
            self.assertEqual(rates.sell_cpm_paper, rates.cost_cpm_paper * Decimal("1.18"))

    def test_sell_minus_cost_matches_markup_on_paper_cost(self):
        for rates in CPM_TABLE.values():
            for qty in (1000, 5000, 25000):
                paper_cost = cpm_amount(rates.cost_cpm_paper, qty)
                self.assertEqual(
                    cpm_amount(rates.sell_cpm_paper - rates.cost_cpm_paper, qty),
                    percent_of(paper_cost, Decimal("0.18")),
                )

    def test_lookup_is_exact(self):
        self.assertIsNotNone(lookup_cpm("6 x 9"))
        self.assertIsNone(lookup_cpm("6x9"))
        self.assertIsNone(lookup_cpm("6 X 9"))
        self.assertIsNone(lookup_cpm("11 x 17"))
        self.assertIsNone(lookup_cpm(None))

    def test_require_cpm_lists_known_sizes(self):
        with self.assertRaises(ValidationError) as ctx:
            require_cpm("11 x 17")
        self.assertIn("6 x 9", ctx.exception.details["known_sizes"])

    def test_partner_breakdown_for_six_by_nine(self):
        costs = partner_cost_breakdown(lookup_cpm("6 x 9"), 5000)
        self.assertEqual(costs.paper_cost, Decimal("68.00"))
        self.assertEqual(costs.paper_markup, Decimal("12.24"))
        self.assertEqual(costs.mfg_cost, Decimal("50.00"))
        self.assertEqual(costs.total_cost, Decimal("130.24"))
        self.assertEqual(costs.partner_buy_cost, Decimal("118.00"))


class NormalizeSizeTests(unittest.TestCase):
    def test_canonical_forms(self):
        self.assertEqual(normalize_size("6x9"), "6 x 9")
        self.assertEqual(normalize_size("9 X 6"), "6 x 9")
        self.assertEqual(normalize_size("  6 x 11 "), "6 x 11")
        self.assertEqual(normalize_size("8.5x17.5"), "8 1/2 x 17 1/2")
        self.assertEqual(normalize_size("7.25 x 16.375"), "7 1/4 x 16 3/8")
        self.assertEqual(normalize_size("22.125 x 9.75"), "9 3/4 x 22 1/8")

    def test_every_table_key_is_already_canonical(self):
        for size in CPM_TABLE:
            self.assertEqual(normalize_size(size), size)

    def test_unparseable_input_is_kept(self):
        self.assertEqual(normalize_size("Tabloid"), "Tabloid")
        self.assertIsNone(normalize_size(""))
        self.assertIsNone(normalize_size(None))


if __name__ == "__main__":
    unittest.main()
