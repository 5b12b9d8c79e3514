"""
Reference coefficient data for the emission models
"""

from .coefficient_tables import (
    CoefficientError, MissingCoefficientError, CoefficientTable, MissingCoefficientTable,
    load_coefficient_table, get_coefficient_table, get_train_coefficients, get_road_coefficients,
    install_coefficient_table
)

__all__ = [
    'CoefficientError',
    'MissingCoefficientError',
    'CoefficientTable',
    'MissingCoefficientTable',
    'load_coefficient_table',
    'get_coefficient_table',
    'get_train_coefficients',
    'get_road_coefficients',
    'install_coefficient_table'
]
