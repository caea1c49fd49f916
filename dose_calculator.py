# dose_calculator.py
"""
Unit-aware dose arithmetic for the dose calculator.

Three calculators, each returning the rounded amount plus the formula and
steps shown under "Show Work":

* basic dose:        (dose ordered / dose on hand) x volume
* weight-based dose: weight x dose per kg, then as basic dose
* IV drip rate:      volume / time, in mL/hr

Inputs may be numbers or the raw strings typed into the form. Computation runs
at full precision; only the returned amount and the trace are rounded.
"""
from dataclasses import dataclass, field
from typing import Dict, List

import numpy as np

from config import CALCULATOR_CONFIG

# Conversion factors to base units (mcg for mass, mL for volume, kg for weight, hr for time)
UNIT_CONVERSION_FACTORS: Dict[str, Dict[str, float]] = {
    'mass': {'g': 1_000_000, 'mg': 1000, 'mcg': 1},
    'volume': {'L': 1000, 'mL': 1},
    'weight': {'kg': 1, 'lbs': 0.453592},
    'time': {'hr': 1, 'min': 1 / 60},
}

# per-kg order units -> factor to mg
PER_KG_UNITS = {'mg/kg': 1.0, 'mcg/kg': 0.001}


class DoseCalculationError(ValueError):
    """Base class for calculator validation failures"""


class InvalidInput(DoseCalculationError):
    """Empty, non-numeric or non-positive field, or an unknown unit"""


class DivisionByZero(DoseCalculationError):
    """A denominator (dose on hand, infusion time) resolved to zero"""


@dataclass
class DoseResult:
    amount: float
    unit: str
    formula: str = ""
    steps: List[str] = field(default_factory=list)

    @property
    def display(self) -> str:
        return f"{_fmt(self.amount)} {self.unit}"

    @property
    def rate_ml_per_hr(self) -> float:
        if self.unit != 'mL/hr':
            raise AttributeError("rate_ml_per_hr is only set on IV drip results")
        return self.amount


def _fmt(value: float) -> str:
    return f"{value:.{CALCULATOR_CONFIG['display_decimals']}f}"


def _round(value: float) -> float:
    return float(np.round(value, CALCULATOR_CONFIG['display_decimals']))


def _number(value, name: str, denominator: bool = False) -> float:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidInput(f"{name} is required. Please fill all fields with valid, positive numbers.")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidInput(f"{name} must be a number. Please fill all fields with valid, positive numbers.")
    if not np.isfinite(number) or number < 0:
        raise InvalidInput(f"{name} must be a positive number.")
    if number == 0:
        if denominator:
            raise DivisionByZero(f"{name} cannot be zero.")
        raise InvalidInput(f"{name} must be a positive number.")
    return number


def _factor(kind: str, unit: str) -> float:
    try:
        return UNIT_CONVERSION_FACTORS[kind][unit]
    except KeyError:
        allowed = ", ".join(UNIT_CONVERSION_FACTORS[kind])
        raise InvalidInput(f"Unknown {kind} unit {unit!r}; expected one of {allowed}.")


def basic_dose(ordered_dose, ordered_unit: str, stock_dose, stock_unit: str,
               stock_volume, stock_volume_unit: str) -> DoseResult:
    ordered = _number(ordered_dose, "Dose ordered")
    stock = _number(stock_dose, "Dose on hand", denominator=True)
    volume = _number(stock_volume, "Volume")
    _factor('volume', stock_volume_unit)

    ordered_mcg = ordered * _factor('mass', ordered_unit)
    stock_mcg = stock * _factor('mass', stock_unit)
    if stock_mcg == 0:
        raise DivisionByZero("The dose on hand cannot be zero.")

    amount = (ordered_mcg / stock_mcg) * volume
    return DoseResult(
        amount=_round(amount),
        unit=stock_volume_unit,
        formula="(Dose Ordered / Dose on Hand) × Volume",
        steps=[
            f"({ordered_dose} {ordered_unit} / {stock_dose} {stock_unit}) × {stock_volume} {stock_volume_unit}",
            f"= {_fmt(amount)} {stock_volume_unit}",
        ],
    )


def weight_based_dose(weight, weight_unit: str, ordered_dose_per_kg, stock_dose, stock_unit: str,
                      stock_volume, stock_volume_unit: str, ordered_unit: str = 'mg/kg') -> DoseResult:
    kg = _number(weight, "Patient weight") * _factor('weight', weight_unit)
    per_kg = _number(ordered_dose_per_kg, "Dose ordered")
    stock = _number(stock_dose, "Concentration", denominator=True)
    volume = _number(stock_volume, "Per volume")
    _factor('volume', stock_volume_unit)
    if ordered_unit not in PER_KG_UNITS:
        raise InvalidInput(f"Unknown dose unit {ordered_unit!r}; expected mg/kg or mcg/kg.")

    total_mg = kg * per_kg * PER_KG_UNITS[ordered_unit]
    stock_mg = stock * (_factor('mass', stock_unit) / 1000)
    if stock_mg == 0:
        raise DivisionByZero("The dose on hand cannot be zero.")

    amount = (total_mg / stock_mg) * volume
    return DoseResult(
        amount=_round(amount),
        unit=stock_volume_unit,
        formula="Total Dose = Weight × Ordered Dose\nAdminister = (Total Dose / Concentration) × Volume",
        steps=[
            f"Total Dose = {weight} {weight_unit} × {ordered_dose_per_kg} {ordered_unit} = {_fmt(total_mg)} mg",
            f"Administer = ({_fmt(total_mg)} mg / {stock_dose} {stock_unit}) × {stock_volume} {stock_volume_unit}",
            f"= {_fmt(amount)} {stock_volume_unit}",
        ],
    )


def iv_drip_rate(volume, volume_unit: str, time, time_unit: str) -> DoseResult:
    ml = _number(volume, "Total volume") * _factor('volume', volume_unit)
    hours = _number(time, "Time", denominator=True) * _factor('time', time_unit)
    if hours == 0:
        raise DivisionByZero("Time cannot be zero.")

    rate = ml / hours
    return DoseResult(
        amount=_round(rate),
        unit='mL/hr',
        formula="Rate = Total Volume / Total Time",
        steps=[
            f"({volume} {volume_unit} / {time} {time_unit})",
            f"= {_fmt(rate)} mL/hr",
        ],
    )
