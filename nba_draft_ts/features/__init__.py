"""
Derived analytic columns and filtering rules.
"""

from .derivation import (
    DerivationConfig,
    DerivationResult,
    InvalidCategoryError,
    MalformedSeasonError,
    derive,
)

__all__ = [
    'DerivationConfig',
    'DerivationResult',
    'InvalidCategoryError',
    'MalformedSeasonError',
    'derive',
]
