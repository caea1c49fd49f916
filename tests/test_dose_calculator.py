import pytest

from dose_calculator import (DivisionByZero, DoseCalculationError, InvalidInput, basic_dose,
                             iv_drip_rate, weight_based_dose)


def test_basic_dose():
    result = basic_dose(500, "mg", 250, "mg", 5, "mL")
    assert result.amount == 10.0
    assert result.unit == "mL"
    assert result.display == "10.00 mL"
    assert result.formula == "(Dose Ordered / Dose on Hand) × Volume"
    assert result.steps[-1] == "= 10.00 mL"


def test_basic_dose_converts_mass_units():
    assert basic_dose(1, "g", 500, "mg", 2, "mL").amount == 4.0
    assert basic_dose(250, "mcg", 0.5, "mg", 1, "mL").amount == 0.5


def test_basic_dose_accepts_form_strings():
    assert basic_dose("500", "mg", "250", "mg", "5", "mL").amount == 10.0


def test_basic_dose_rounds_only_for_display():
    result = basic_dose(100, "mg", 30, "mg", 1, "mL")
    assert result.amount == 3.33
    assert result.display == "3.33 mL"


def test_zero_dose_on_hand_is_division_by_zero():
    with pytest.raises(DivisionByZero):
        basic_dose(500, "mg", 0, "mg", 5, "mL")


@pytest.mark.parametrize("bad", ["", None, "abc", -5, 0, float("nan"), float("inf")])
def test_invalid_ordered_dose(bad):
    with pytest.raises(InvalidInput):
        basic_dose(bad, "mg", 250, "mg", 5, "mL")


def test_unknown_unit_is_invalid_input():
    with pytest.raises(InvalidInput):
        basic_dose(500, "grains", 250, "mg", 5, "mL")


def test_errors_share_a_base_class():
    assert issubclass(InvalidInput, DoseCalculationError)
    assert issubclass(DivisionByZero, DoseCalculationError)
    assert not issubclass(DivisionByZero, InvalidInput)
    assert issubclass(DoseCalculationError, ValueError)


def test_weight_based_dose():
    # 20 kg x 5 mg/kg = 100 mg; 100 mg / 250 mg x 5 mL = 2 mL
    result = weight_based_dose(20, "kg", 5, 250, "mg", 5, "mL")
    assert result.amount == 2.0
    assert result.unit == "mL"
    assert result.steps[0] == "Total Dose = 20 kg × 5 mg/kg = 100.00 mg"


def test_weight_based_dose_in_pounds():
    result = weight_based_dose(44, "lbs", 1, 10, "mg", 1, "mL")
    assert result.amount == pytest.approx(2.0, abs=0.01)


def test_weight_based_dose_mcg_per_kg():
    # 10 kg x 50 mcg/kg = 0.5 mg; 0.5 mg / 1 mg x 1 mL
    assert weight_based_dose(10, "kg", 50, 1, "mg", 1, "mL", ordered_unit="mcg/kg").amount == 0.5


def test_weight_based_dose_zero_concentration():
    with pytest.raises(DivisionByZero):
        weight_based_dose(20, "kg", 5, 0, "mg", 5, "mL")


def test_iv_drip_rate():
    result = iv_drip_rate(1000, "mL", 8, "hr")
    assert result.amount == 125.0
    assert result.rate_ml_per_hr == 125.0
    assert result.display == "125.00 mL/hr"


def test_iv_drip_rate_units():
    assert iv_drip_rate(1, "L", 4, "hr").amount == 250.0
    assert iv_drip_rate(100, "mL", 30, "min").amount == 200.0


def test_iv_drip_rate_zero_time():
    with pytest.raises(DivisionByZero):
        iv_drip_rate(1000, "mL", 0, "hr")


def test_rate_only_on_drip_results():
    with pytest.raises(AttributeError):
        basic_dose(500, "mg", 250, "mg", 5, "mL").rate_ml_per_hr
