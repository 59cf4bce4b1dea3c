"""
Post-fit diagnostics for fitted models.
"""

from .diagnostics import (
    multicollinearity,
    random_effect_diagnostics,
    residual_diagnostics,
)

__all__ = [
    'multicollinearity',
    'random_effect_diagnostics',
    'residual_diagnostics',
]
