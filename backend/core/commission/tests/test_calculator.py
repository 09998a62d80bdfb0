from decimal import Decimal

from django.test import SimpleTestCase

from commission.services.calculator import RATE_CALCULATORS, calculate_rate
from commission.services.types import LineOfBusiness, PayoutRow, PolicyDetails, RateRange


def _row(**fields) -> PayoutRow:
    return PayoutRow(table="test_grid", row_id=1, **fields)


def _range(min_value, max_value=None, rate="0", amount="0") -> RateRange:
    return RateRange.from_mapping(
        {
            "min_value": min_value,
            "max_value": max_value,
            "commission_rate": rate,
            "commission_amount": amount,
        }
    )


class StrategyTableTests(SimpleTestCase):
    def test_every_line_of_business_has_a_calculator(self):
        self.assertEqual(set(RATE_CALCULATORS), set(LineOfBusiness))

    def test_unknown_line_falls_back_to_generic(self):
        details = PolicyDetails.build(line_of_business="Marine Cargo", premium_amount="5000")
        self.assertIs(details.line_of_business, LineOfBusiness.OTHER)

        result = calculate_rate(_row(first_year_rate=Decimal("4")), details)

        self.assertEqual(result.commission_amount, Decimal("200"))

    def test_missing_premium_is_treated_as_zero(self):
        details = PolicyDetails.build(line_of_business="", premium_amount=None)

        result = calculate_rate(_row(first_year_rate=Decimal("10")), details)

        self.assertEqual(result.commission_amount, Decimal("0"))


class MotorCalculatorTests(SimpleTestCase):
    def test_commission_applies_to_own_damage_only(self):
        details = PolicyDetails.build(
            line_of_business="Motor",
            premium_amount="10000",
            od_premium="8000",
            tp_premium="2000",
        )

        result = calculate_rate(_row(first_year_rate=Decimal("10")), details)

        self.assertEqual(result.breakdown.od_commission, Decimal("800"))
        self.assertEqual(result.breakdown.tp_commission, Decimal("0"))
        self.assertEqual(result.commission_amount, Decimal("800"))
        self.assertEqual(result.rate_used, Decimal("10"))

    def test_third_party_commission_is_always_zero(self):
        for rate in ("0", "2.5", "15", "99"):
            details = PolicyDetails.build(
                line_of_business="Motor",
                premium_amount="5000",
                od_premium="1000",
                tp_premium="4000",
            )
            result = calculate_rate(_row(first_year_rate=Decimal(rate)), details)
            self.assertEqual(result.breakdown.tp_commission, Decimal("0"))

    def test_fixed_amount_is_used_outright(self):
        details = PolicyDetails.build(
            line_of_business="Motor",
            premium_amount="10000",
            od_premium="8000",
            tp_premium="2000",
        )

        result = calculate_rate(
            _row(first_year_rate=Decimal("10"), first_year_amount=Decimal("1250")),
            details,
        )

        self.assertEqual(result.commission_amount, Decimal("1250"))
        self.assertEqual(result.breakdown.base_commission, Decimal("1250"))
        self.assertEqual(result.breakdown.od_commission, Decimal("0"))

    def test_renewal_uses_renewal_terms(self):
        details = PolicyDetails.build(
            line_of_business="Motor",
            premium_amount="10000",
            od_premium="8000",
            is_renewal=True,
        )

        result = calculate_rate(
            _row(first_year_rate=Decimal("10"), renewal_rate=Decimal("5")),
            details,
        )

        self.assertEqual(result.commission_amount, Decimal("400"))
        self.assertEqual(result.rate_used, Decimal("5"))


class HealthCalculatorTests(SimpleTestCase):
    def test_monthly_individual_below_cap(self):
        details = PolicyDetails.build(
            line_of_business="Health",
            premium_amount="20000",
            plan_type="Individual",
            payment_frequency="Monthly",
        )

        result = calculate_rate(_row(first_year_rate=Decimal("20")), details)

        self.assertEqual(result.rate_used, Decimal("14"))
        self.assertEqual(result.commission_amount, Decimal("2800"))

    def test_group_rate_is_capped(self):
        details = PolicyDetails.build(
            line_of_business="Health",
            premium_amount="10000",
            plan_type="Group",
            payment_frequency="Annual",
        )

        result = calculate_rate(_row(first_year_rate=Decimal("10")), details)

        self.assertEqual(result.rate_used, Decimal("7.5"))
        self.assertEqual(result.commission_amount, Decimal("750"))

    def test_individual_rate_is_capped(self):
        details = PolicyDetails.build(
            line_of_business="Health",
            premium_amount="10000",
            plan_type="Individual",
        )

        result = calculate_rate(_row(first_year_rate=Decimal("20")), details)

        self.assertEqual(result.rate_used, Decimal("15"))
        self.assertEqual(result.commission_amount, Decimal("1500"))

    def test_caps_never_exceeded(self):
        for plan_type, ceiling in (("Group", Decimal("7.5")), ("Individual", Decimal("15"))):
            for rate in ("5", "7.5", "12", "40"):
                for frequency in ("Annual", "Semi-Annual", "Quarterly", "Monthly", ""):
                    details = PolicyDetails.build(
                        line_of_business="Health",
                        premium_amount="1000",
                        plan_type=plan_type,
                        payment_frequency=frequency,
                    )
                    result = calculate_rate(_row(first_year_rate=Decimal(rate)), details)
                    self.assertLessEqual(result.rate_used, ceiling)

    def test_other_plan_types_are_not_capped(self):
        details = PolicyDetails.build(
            line_of_business="Health",
            premium_amount="10000",
            plan_type="Family Floater",
        )

        result = calculate_rate(_row(first_year_rate=Decimal("20")), details)

        self.assertEqual(result.rate_used, Decimal("20"))

    def test_fixed_amount_wins(self):
        details = PolicyDetails.build(line_of_business="Health", premium_amount="10000")

        result = calculate_rate(
            _row(first_year_rate=Decimal("20"), first_year_amount=Decimal("900")),
            details,
        )

        self.assertEqual(result.commission_amount, Decimal("900"))


class LifeCalculatorTests(SimpleTestCase):
    def test_frequency_multiplier(self):
        details = PolicyDetails.build(
            line_of_business="Life",
            premium_amount="10000",
            payment_frequency="Quarterly",
        )

        result = calculate_rate(_row(first_year_rate=Decimal("20")), details)

        self.assertEqual(result.rate_used, Decimal("18"))
        self.assertEqual(result.commission_amount, Decimal("1800"))

    def test_unknown_frequency_keeps_rate(self):
        details = PolicyDetails.build(
            line_of_business="Life",
            premium_amount="10000",
            payment_frequency="Fortnightly",
        )

        result = calculate_rate(_row(first_year_rate=Decimal("20")), details)

        self.assertEqual(result.rate_used, Decimal("20"))

    def test_tier_by_policy_term_overrides_rate(self):
        row = _row(
            first_year_rate=Decimal("20"),
            ranges=(_range("0", "10", rate="25"), _range("11", None, rate="30")),
        )
        details = PolicyDetails.build(
            line_of_business="Life",
            premium_amount="10000",
            policy_term=15,
        )

        result = calculate_rate(row, details)

        self.assertEqual(result.rate_used, Decimal("30"))
        self.assertEqual(result.commission_amount, Decimal("3000"))
        self.assertEqual(result.breakdown.base_commission, Decimal("2000"))
        self.assertEqual(result.breakdown.tier_adjustment, Decimal("1000"))

    def test_first_matching_tier_wins(self):
        row = _row(
            first_year_rate=Decimal("20"),
            ranges=(_range("0", "20", rate="22"), _range("10", "30", rate="28")),
        )
        details = PolicyDetails.build(
            line_of_business="Life",
            premium_amount="10000",
            policy_term=15,
        )

        self.assertEqual(calculate_rate(row, details).rate_used, Decimal("22"))

    def test_tier_amount_is_used(self):
        row = _row(
            first_year_rate=Decimal("20"),
            ranges=(_range("0", "10", rate="25", amount="500"),),
        )
        details = PolicyDetails.build(
            line_of_business="Life",
            premium_amount="10000",
            policy_term=5,
        )

        result = calculate_rate(row, details)

        self.assertEqual(result.commission_amount, Decimal("500"))
        self.assertEqual(result.rate_used, Decimal("25"))

    def test_tier_falls_back_to_premium_without_term(self):
        row = _row(
            first_year_rate=Decimal("5"),
            ranges=(_range("0", "5000", rate="10"), _range("5001", None, rate="12")),
        )
        details = PolicyDetails.build(line_of_business="Life", premium_amount="10000")

        result = calculate_rate(row, details)

        self.assertEqual(result.commission_amount, Decimal("1200"))

    def test_no_tier_match_uses_fixed_amount(self):
        row = _row(
            first_year_rate=Decimal("20"),
            first_year_amount=Decimal("650"),
            ranges=(_range("30", "40", rate="25"),),
        )
        details = PolicyDetails.build(
            line_of_business="Life",
            premium_amount="10000",
            policy_term=10,
        )

        result = calculate_rate(row, details)

        self.assertEqual(result.commission_amount, Decimal("650"))
        self.assertIsNone(result.breakdown.tier_adjustment)


class CommercialCalculatorTests(SimpleTestCase):
    def test_tier_by_sum_assured(self):
        row = _row(
            first_year_rate=Decimal("3"),
            ranges=(_range("0", "500000", rate="5"), _range("500001", None, rate="8")),
        )
        details = PolicyDetails.build(
            line_of_business="Commercial",
            premium_amount="20000",
            sum_assured="1000000",
        )

        result = calculate_rate(row, details)

        self.assertEqual(result.rate_used, Decimal("8"))
        self.assertEqual(result.commission_amount, Decimal("1600"))

    def test_no_multiplier_applied(self):
        details = PolicyDetails.build(
            line_of_business="Commercial",
            premium_amount="20000",
            payment_frequency="Monthly",
        )

        result = calculate_rate(_row(first_year_rate=Decimal("3")), details)

        self.assertEqual(result.commission_amount, Decimal("600"))


class GenericCalculatorTests(SimpleTestCase):
    def test_base_reward_and_bonus_are_summed(self):
        details = PolicyDetails.build(line_of_business="Travel", premium_amount="10000")
        row = _row(
            first_year_rate=Decimal("10"),
            reward_rate=Decimal("2"),
            bonus_rate=Decimal("1"),
        )

        result = calculate_rate(row, details)

        self.assertEqual(result.total_rate, Decimal("13"))
        self.assertEqual(result.commission_amount, Decimal("1300"))

    def test_fixed_amount_wins(self):
        details = PolicyDetails.build(line_of_business="Travel", premium_amount="10000")
        row = _row(first_year_rate=Decimal("10"), first_year_amount=Decimal("750"))

        self.assertEqual(calculate_rate(row, details).commission_amount, Decimal("750"))


class IdempotenceTests(SimpleTestCase):
    def test_identical_inputs_yield_identical_results(self):
        row = _row(
            first_year_rate=Decimal("20"),
            ranges=(_range("0", "10", rate="25"),),
        )
        details = PolicyDetails.build(
            line_of_business="Life",
            premium_amount="12345.67",
            policy_term=7,
            payment_frequency="Monthly",
        )

        first = calculate_rate(row, details)
        second = calculate_rate(row, details)

        self.assertEqual(first, second)
        self.assertEqual(repr(first), repr(second))


class BreakdownTests(SimpleTestCase):
    def test_breakdown_values_are_rounded_to_cents(self):
        details = PolicyDetails.build(
            line_of_business="Motor",
            premium_amount="12345.67",
            od_premium="12345.67",
        )

        result = calculate_rate(_row(first_year_rate=Decimal("7.33")), details)

        self.assertEqual(result.commission_amount, Decimal("904.937611"))
        self.assertEqual(
            result.breakdown.as_dict(),
            {"baseCommission": "904.94", "odCommission": "904.94", "tpCommission": "0.00"},
        )
