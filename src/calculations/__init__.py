"""
Noise emission calculation engines for road and rail traffic

The emission models (road_emission, rail_emission, period_aggregator) read the
coefficient tables of the data package and are imported from their modules.
"""

# Common utilities (imported first for use by other modules)
from .acoustic_utilities import (
    AcousticConstants, SpectrumProcessor, FrequencyBandManager, db_to_w, w_to_db, band_of
)
from .debug_logger import debug_logger
from .geometry import TerrainProvider, compute_slope, segment_slope

__all__ = [
    # Geometry
    'TerrainProvider',
    'compute_slope',
    'segment_slope',
    # Common utilities
    'AcousticConstants',
    'SpectrumProcessor',
    'FrequencyBandManager',
    'db_to_w',
    'w_to_db',
    'band_of',
    'debug_logger'
]
