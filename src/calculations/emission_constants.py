"""
Emission Calculation Constants - Centralized definition of all magic numbers
Replaces hardcoded values throughout the emission calculation system
"""

from typing import Dict, List, Tuple

# =============================================================================
# ROAD TRAFFIC DEFAULTS
# =============================================================================

# Reference speed of the CNOSSOS-EU speed laws (km/h)
REFERENCE_SPEED_KMH: float = 70.0

# Temperature assumed when a row carries none (degrees C)
DEFAULT_TEMPERATURE_C: float = 20.0

# Virtual reference surface of the road coefficient document
DEFAULT_ROAD_SURFACE: str = "DEF"

# Junction influence vanishes at and beyond this distance (m)
DEFAULT_JUNCTION_DISTANCE_M: float = 100.0

# Studded tyre speed validity range (km/h)
STUDDED_TYRE_SPEED_RANGE: Tuple[float, float] = (50.0, 90.0)

# Road gradient is bounded to +/- 12 %
MAX_SLOPE_PERCENT: float = 12.0

# Rolling noise temperature coefficient K per category (dB / degree C)
TEMPERATURE_COEFFICIENTS: Dict[str, float] = {
    'LV': 0.08,
    'MV': 0.04,
    'HGV': 0.04,
    'WAV': 0.0,
    'WBV': 0.0,
}

# =============================================================================
# RAIL DEFAULTS
# =============================================================================

# Roughness wavelength ladder (mm), 32 bins
ROUGHNESS_WAVELENGTHS_MM: List[float] = [
    1000, 800, 630, 500, 400, 315, 250, 200, 160, 120, 100, 80, 63, 50, 40, 31.5,
    25, 20, 16, 12, 10, 8, 6.3, 5, 4, 3.2, 2.5, 2, 1.6, 1.2, 1, 0.8,
]

NUM_WAVELENGTH_BINS: int = 32

# Fallback key of every coefficient section
DEFAULT_COEFFICIENT_KEY: str = "Empty"

# Vehicle types used when the row names none
DEFAULT_ENGINE_TYPE: str = "BB22200"
DEFAULT_WAGON_TYPE: str = "Corail-FF"

DEFAULT_RAIL_ROUGHNESS_ID: int = 1
DEFAULT_TRACK_TRANSFER_ID: int = 1

# Source height classes
RAIL_HEIGHT_ROLLING: int = 0
RAIL_HEIGHT_AERODYNAMIC: int = 1

# =============================================================================
# LDEN COMBINATION
# =============================================================================

DAY_HOURS: float = 12.0
EVENING_HOURS: float = 4.0
NIGHT_HOURS: float = 8.0

EVENING_PENALTY_DB: float = 5.0
NIGHT_PENALTY_DB: float = 10.0

PERIODS: List[str] = ["D", "E", "N"]
