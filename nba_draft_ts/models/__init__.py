"""
Model fitting and comparison for TS% by draft round.
"""

from .mixed_effects import (
    DomainError,
    FitBatch,
    FittedModel,
    ModelFitError,
    fit,
    fit_all,
    fit_spec,
)
from .comparison import (
    ComparisonResult,
    NonNestedModelsError,
    compare_models,
    likelihood_ratio_test,
)
from .specs import DEFAULT_MODEL_SPECS, get_spec

__all__ = [
    'DomainError',
    'FitBatch',
    'FittedModel',
    'ModelFitError',
    'fit',
    'fit_all',
    'fit_spec',
    'ComparisonResult',
    'NonNestedModelsError',
    'compare_models',
    'likelihood_ratio_test',
    'DEFAULT_MODEL_SPECS',
    'get_spec',
]
