"""
Run configuration and source table models for the emission engine

The source registry lives in models.source_registry and is imported from there.
"""

from .lden_config import LdenConfig, InputMode, RailSchema
from .table_source import (SourceSchema, RowView, TableSource,
                           DataFrameTableSource, SQLTableSource, to_geometry)

__all__ = [
	'LdenConfig',
	'InputMode',
	'RailSchema',
	'SourceSchema',
	'RowView',
	'TableSource',
	'DataFrameTableSource',
	'SQLTableSource',
	'to_geometry'
]
