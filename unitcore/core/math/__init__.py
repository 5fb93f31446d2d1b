"""
Core math modules для unitcore

Численная политика точной и приближённой арифметики. Синтезатор
множителей конверсии импортируется напрямую из core.math.factors.
"""

from unitcore.core.math.numerical_safeguards import (
    EPS_FLOAT_COMPARE_ABS,
    EPS_FLOAT_COMPARE_REL,
    FLOAT_POWER_MAX_DENOMINATOR,
    IDENTITY_REL_TOL,
    MAX_EXACT_INT,
    ExactNumber,
    decimal_fraction,
    exact_power_fits,
    fits_exact_int,
    is_close,
    is_exact,
    is_identity_factor,
    is_valid_float,
    normalize_exact,
    normalize_power,
    rationalize,
)

__all__ = [
    "EPS_FLOAT_COMPARE_ABS",
    "EPS_FLOAT_COMPARE_REL",
    "FLOAT_POWER_MAX_DENOMINATOR",
    "IDENTITY_REL_TOL",
    "MAX_EXACT_INT",
    "ExactNumber",
    "decimal_fraction",
    "exact_power_fits",
    "fits_exact_int",
    "is_close",
    "is_exact",
    "is_identity_factor",
    "is_valid_float",
    "normalize_exact",
    "normalize_power",
    "rationalize",
]
