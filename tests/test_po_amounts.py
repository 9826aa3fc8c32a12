"""
Tests for line and header amount computation.
"""

from decimal import Decimal

from app.services.po_amounts import (
    Charge,
    D,
    check_line_inputs,
    compute_header,
    compute_line,
    round2,
)


def test_line_with_discount_and_split_gst():
    a = compute_line(10, 100, discount_percent=10, cgst_percent=9, sgst_percent=9)
    assert a.base_amount == Decimal("1000.00")
    assert a.dis_amount == Decimal("100.00")
    assert a.taxable_amount == Decimal("900.00")
    assert a.cgst_amount == Decimal("81.00")
    assert a.sgst_amount == Decimal("81.00")
    assert a.igst_amount == Decimal("0.00")
    assert a.amount == Decimal("1062.00")


def test_line_with_igst_only():
    a = compute_line("3", "33.33", igst_percent="18")
    # 99.99 * 18% = 17.9982 -> 18.00
    assert a.taxable_amount == Decimal("99.99")
    assert a.igst_amount == Decimal("18.00")
    assert a.amount == Decimal("117.99")


def test_round_half_up_at_the_cent():
    assert round2("0.125") == Decimal("0.13")
    assert round2("2.675") == Decimal("2.68")
    assert round2("-0.125") == Decimal("-0.13")


def test_bad_numbers_read_as_zero():
    assert D(None) == 0
    assert D("") == 0
    assert D("abc") == 0
    assert D("NaN") == 0
    assert D(True) == 0
    a = compute_line(None, "x")
    assert a.amount == Decimal("0.00")


def test_header_sums_lines():
    lines = [
        compute_line(10, 100, 10, 9, 9),
        compute_line(5, 40, 0, 0, 0, 12),
    ]
    h = compute_header(lines)
    assert h.lines_amount == Decimal("1286.00")
    assert h.total_discount == Decimal("100.00")
    assert h.total_cgst == Decimal("81.00")
    assert h.total_sgst == Decimal("81.00")
    assert h.total_igst == Decimal("24.00")
    assert h.charges_amount == Decimal("0.00")
    assert h.total_amount == Decimal("1286.00")


def test_header_total_equals_sum_of_line_amounts():
    lines = [compute_line(q, r, 5, 9, 9) for q, r in [(1, "10.10"), (7, "3.33"), ("2.5", "99.99")]]
    h = compute_header(lines)
    assert h.total_amount == sum(li.amount for li in lines)


def test_only_exclusive_charges_are_added():
    lines = [compute_line(10, 100, 10, 9, 9)]
    h = compute_header(
        lines,
        transit_insurance=Charge("EXCLUSIVE", "25.50"),
        transport_charge=Charge("INCLUSIVE", "500"),
        gst_reverse=Charge(None, "70"),
    )
    assert h.charges_amount == Decimal("25.50")
    assert h.total_amount == Decimal("1087.50")


def test_not_applicable_charge_is_ignored():
    h = compute_header([], transport_charge=Charge("NOT_APPLICABLE", "100"))
    assert h.total_amount == Decimal("0.00")


def test_header_reads_orm_like_rows():
    class Row:
        amount = Decimal("10.00")
        dis_amount = Decimal("1.00")
        cgst_amount = Decimal("0.45")
        sgst_amount = Decimal("0.45")
        igst_amount = Decimal("0")

    h = compute_header([Row(), Row()])
    assert h.total_amount == Decimal("20.00")
    assert h.total_cgst == Decimal("0.90")


def test_recompute_is_stable():
    first = compute_line("12.5", "47.35", "2.5", "6", "6")
    again = compute_line("12.5", "47.35", "2.5", "6", "6")
    assert first == again
    assert compute_header([first]) == compute_header([again])


def test_input_checks():
    assert check_line_inputs(10, 100, 10, 9, 9) == []
    assert "qty must be > 0" in check_line_inputs(0, 100)
    assert "rate must be >= 0" in check_line_inputs(1, -1)
    problems = check_line_inputs(1, 1, discount_percent=101, igst_percent=-1)
    assert "discount_percent must be between 0 and 100" in problems
    assert "igst_percent must be between 0 and 100" in problems
