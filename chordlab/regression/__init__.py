"""Regression cases and checks for the voicing engine."""

from .harness import (
    RegressionChecks,
    RegressionCase,
    RegressionFailure,
    RegressionReport,
    CheckOutcome,
    default_regression_cases,
    check_seventh_resolution,
    check_required_tones,
    check_dim_identity,
    check_aug5_resolution,
    run_case,
    run_all_cases,
    find_case,
)

__all__ = [
    'RegressionChecks',
    'RegressionCase',
    'RegressionFailure',
    'RegressionReport',
    'CheckOutcome',
    'default_regression_cases',
    'check_seventh_resolution',
    'check_required_tones',
    'check_dim_identity',
    'check_aug5_resolution',
    'run_case',
    'run_all_cases',
    'find_case',
]
