from datetime import date, datetime
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import SimpleTestCase, override_settings

from finance.billing import (
    add_months,
    calculate_first_due_date,
    calculate_statement_period,
    generate_installment_schedule,
    quantize_money,
    split_amount,
)


class SplitAmountTests(SimpleTestCase):
    def test_remainder_goes_to_first_installments(self):
        amounts = split_amount(Decimal("1000.00"), 3)
        self.assertEqual(amounts, [Decimal("333.34"), Decimal("333.33"), Decimal("333.33")])
        self.assertEqual(sum(amounts), Decimal("1000.00"))

    def test_small_amount_spread_over_many_installments(self):
        amounts = split_amount(Decimal("0.05"), 7)
        self.assertEqual(sum(amounts), Decimal("0.05"))
        self.assertEqual(amounts[:5], [Decimal("0.01")] * 5)
        self.assertEqual(amounts[5:], [Decimal("0.00")] * 2)

    def test_exact_division(self):
        self.assertEqual(split_amount(Decimal("90"), 3), [Decimal("30.00")] * 3)

    def test_zero_count_is_rejected(self):
        with self.assertRaises(ValidationError):
            split_amount(Decimal("10"), 0)


class QuantizeMoneyTests(SimpleTestCase):
    def test_rounds_half_up(self):
        self.assertEqual(quantize_money("10.005"), Decimal("10.01"))

    def test_invalid_values(self):
        for value in ("abc", "NaN", "Infinity"):
            with self.subTest(value=value):
                with self.assertRaises(ValidationError):
                    quantize_money(value)


class AddMonthsTests(SimpleTestCase):
    def test_clamps_to_last_day(self):
        self.assertEqual(add_months(date(2024, 1, 31), 1), date(2024, 2, 29))
        self.assertEqual(add_months(date(2023, 1, 31), 1), date(2023, 2, 28))

    def test_anchor_day_survives_short_month(self):
        february = add_months(date(2024, 1, 31), 1, day=31)
        self.assertEqual(add_months(february, 1, day=31), date(2024, 3, 31))

    def test_crosses_year_boundary(self):
        self.assertEqual(add_months(date(2024, 11, 10), 3), date(2025, 2, 10))
        self.assertEqual(add_months(date(2024, 1, 10), -1), date(2023, 12, 10))


class FirstDueDateTests(SimpleTestCase):
    def test_purchase_before_closing_date(self):
        self.assertEqual(calculate_first_due_date(date(2024, 1, 20), 10, 7), date(2024, 2, 10))

    def test_purchase_on_closing_date_moves_to_next_cycle(self):
        self.assertEqual(calculate_first_due_date(date(2024, 2, 3), 10, 7), date(2024, 3, 10))

    def test_purchase_day_before_closing(self):
        self.assertEqual(calculate_first_due_date(date(2024, 2, 2), 10, 7), date(2024, 2, 10))

    def test_purchase_on_due_day(self):
        self.assertEqual(calculate_first_due_date(date(2024, 1, 10), 10, 7), date(2024, 2, 10))

    def test_due_day_beyond_month_length(self):
        self.assertEqual(calculate_first_due_date(date(2024, 2, 1), 31, 7), date(2024, 2, 29))


class StatementPeriodTests(SimpleTestCase):
    def test_period_window(self):
        start, end = calculate_statement_period(date(2024, 2, 10), 10, 7)
        self.assertEqual(start, date(2024, 1, 4))
        self.assertEqual(end, date(2024, 2, 3))

    def test_consecutive_periods_are_contiguous(self):
        _, first_end = calculate_statement_period(date(2024, 2, 10), 10, 7)
        second_start, _ = calculate_statement_period(date(2024, 3, 10), 10, 7)
        self.assertEqual((second_start - first_end).days, 1)

    def test_period_with_clamped_previous_due(self):
        start, end = calculate_statement_period(date(2024, 3, 31), 31, 5)
        self.assertEqual(end, date(2024, 3, 26))
        self.assertEqual(start, date(2024, 2, 25))


class InstallmentScheduleTests(SimpleTestCase):
    def test_schedule_conserves_total_and_orders_months(self):
        schedule = generate_installment_schedule(
            purchase_date=date(2024, 1, 20),
            total_amount=Decimal("1000.00"),
            installments_count=3,
            due_day=10,
            closing_offset_days=7,
        )
        self.assertEqual(schedule.total, Decimal("1000.00"))
        self.assertEqual([item.number for item in schedule.installments], [1, 2, 3])
        self.assertEqual(
            [item.due_date for item in schedule.installments],
            [date(2024, 2, 10), date(2024, 3, 10), date(2024, 4, 10)],
        )
        self.assertEqual(
            [item.competence_month for item in schedule.installments],
            [date(2024, 2, 1), date(2024, 3, 1), date(2024, 4, 1)],
        )
        self.assertEqual(schedule.first_installment_month, date(2024, 2, 1))

    def test_due_day_31_is_clamped_per_month(self):
        schedule = generate_installment_schedule(
            purchase_date=date(2024, 1, 5),
            total_amount="300",
            installments_count=3,
            due_day=31,
            closing_offset_days=7,
        )
        self.assertEqual(
            [item.due_date for item in schedule.installments],
            [date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31)],
        )

    def test_accepts_datetime_purchase_date(self):
        schedule = generate_installment_schedule(
            purchase_date=datetime(2024, 1, 20, 15, 30),
            total_amount="50",
            installments_count=1,
            due_day=10,
            closing_offset_days=7,
        )
        self.assertEqual(schedule.first_due_date, date(2024, 2, 10))

    @override_settings(BILLING_MAX_INSTALLMENTS=12)
    def test_invalid_input_reports_every_field(self):
        with self.assertRaises(ValidationError) as ctx:
            generate_installment_schedule(
                purchase_date=None,
                total_amount="-10",
                installments_count=13,
                due_day=10,
                closing_offset_days=7,
            )
        self.assertEqual(set(ctx.exception.message_dict), {"amount", "installments", "purchase_date"})

    def test_zero_amount_is_rejected(self):
        with self.assertRaises(ValidationError):
            generate_installment_schedule(
                purchase_date=date(2024, 1, 20),
                total_amount="0",
                installments_count=1,
                due_day=10,
                closing_offset_days=7,
            )


class ScheduleInvariantTests(SimpleTestCase):
    @override_settings(BILLING_MAX_INSTALLMENTS=48)
    def test_total_is_conserved_for_every_installment_count(self):
        total = Decimal("999.99")
        for count in range(1, 49):
            with self.subTest(count=count):
                schedule = generate_installment_schedule(
                    purchase_date=date(2024, 1, 20),
                    total_amount=total,
                    installments_count=count,
                    due_day=10,
                    closing_offset_days=7,
                )
                amounts = [item.amount for item in schedule.installments]
                self.assertEqual(len(amounts), count)
                self.assertEqual(sum(amounts), total)
                self.assertLessEqual(max(amounts) - min(amounts), Decimal("0.01"))

    @override_settings(BILLING_MAX_INSTALLMENTS=48)
    def test_due_dates_step_one_month_across_years(self):
        schedule = generate_installment_schedule(
            purchase_date=date(2023, 11, 28),
            total_amount=Decimal("4800.00"),
            installments_count=48,
            due_day=31,
            closing_offset_days=7,
        )
        items = schedule.installments
        self.assertEqual(items[0].due_date, date(2023, 12, 31))
        self.assertEqual(items[-1].due_date, date(2027, 11, 30))
        for previous, current in zip(items, items[1:]):
            self.assertEqual(current.due_date, add_months(previous.due_date, 1, day=31))
            self.assertGreater(current.due_date, previous.due_date)
            self.assertEqual(current.competence_month, current.due_date.replace(day=1))
