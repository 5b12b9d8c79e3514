"""
Road Traffic Emission Calculations
Based on CNOSSOS-EU, Commission Directive (EU) 2015/996, Annex II part 2.2

This module implements the sound power of a road traffic line source per
octave band and vehicle category:
- Rolling noise:     L_WR = A_R + B_R*log10(v/v_ref) + dL_WR
- Propulsion noise:  L_WP = A_P + B_P*(v - v_ref)/v_ref + dL_WP
- Vehicle level:     L_W  = 10*log10(10^(L_WR/10) + 10^(L_WP/10))
- Traffic flow:      L_W' = L_W + 10*log10(Q / (1000*v))

Rolling corrections dL_WR: road surface, air temperature, studded tyres,
acceleration near junctions. Propulsion corrections dL_WP: acceleration near
junctions, road gradient. Two-wheelers have no rolling term.

Categories are combined energetically into the band level of the road.
"""

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from data.coefficient_tables import CoefficientTable, get_road_coefficients
from .acoustic_utilities import AcousticConstants, FrequencyBandManager, SpectrumProcessor
from .emission_constants import (
    DEFAULT_JUNCTION_DISTANCE_M, DEFAULT_ROAD_SURFACE, DEFAULT_TEMPERATURE_C,
    MAX_SLOPE_PERCENT, REFERENCE_SPEED_KMH, STUDDED_TYRE_SPEED_RANGE,
    TEMPERATURE_COEFFICIENTS
)


class VehicleCategory(Enum):
    """CNOSSOS-EU road vehicle categories"""
    LV = "LV"     # 1  - light motor vehicles
    MV = "MV"     # 2  - medium heavy vehicles
    HGV = "HGV"   # 3  - heavy vehicles
    WAV = "WAV"   # 4a - two-wheel mopeds
    WBV = "WBV"   # 4b - motorcycles

    @property
    def is_two_wheeler(self) -> bool:
        return self in (VehicleCategory.WAV, VehicleCategory.WBV)


class JunctionType(Enum):
    """Kind of junction driving acceleration / deceleration"""
    CONTINUOUS = 0
    TRAFFIC_LIGHTS = 1
    ROUNDABOUT = 2

    @classmethod
    def from_code(cls, code) -> 'JunctionType':
        """Resolve a stored junction code; unknown codes mean free-flowing traffic"""
        try:
            return cls(int(code))
        except (TypeError, ValueError):
            return cls.CONTINUOUS


@dataclass
class RoadParameters:
    """Traffic descriptor of one road segment for one period and frequency"""
    lv_speed: float = 0.0
    mv_speed: float = 0.0
    hgv_speed: float = 0.0
    wav_speed: float = 0.0
    wbv_speed: float = 0.0
    lv_per_hour: float = 0.0
    mv_per_hour: float = 0.0
    hgv_per_hour: float = 0.0
    wav_per_hour: float = 0.0
    wbv_per_hour: float = 0.0
    frequency: int = 1000
    temperature: float = DEFAULT_TEMPERATURE_C
    road_surface: str = DEFAULT_ROAD_SURFACE
    ts_stud: float = 0.0    # months per year with studded tyres
    pm_stud: float = 0.0    # share of light vehicles fitted with studded tyres (0-1)
    junction_distance: float = DEFAULT_JUNCTION_DISTANCE_M
    junction_type: JunctionType = JunctionType.CONTINUOUS
    slope_percentage: float = 0.0

    def speed_of(self, category: VehicleCategory) -> float:
        return getattr(self, f"{category.value.lower()}_speed")

    def flow_of(self, category: VehicleCategory) -> float:
        return getattr(self, f"{category.value.lower()}_per_hour")

    def with_frequency(self, frequency: int) -> 'RoadParameters':
        return replace(self, frequency=frequency)


class RoadEmissionModel:
    """
    Road traffic sound power per octave band.

    The coefficient table defaults to the process-wide road document and is
    resolved on first use.
    """

    SPEED_REF = REFERENCE_SPEED_KMH

    def __init__(self, coefficients: Optional[CoefficientTable] = None):
        self._coefficients = coefficients

    @property
    def coefficients(self) -> CoefficientTable:
        if self._coefficients is None:
            self._coefficients = get_road_coefficients()
        return self._coefficients

    @staticmethod
    def octave_index(frequency: float) -> int:
        """Position of the octave coefficients used for a band frequency"""
        return FrequencyBandManager.nearest_index(frequency, AcousticConstants.OCTAVE_BANDS)

    # ------------------------------------------------------------------
    # Speed laws
    # ------------------------------------------------------------------

    @staticmethod
    def speed_law_level(base: float, speed: float, speed_ref: float, increment: float) -> float:
        """base + increment*log10(speed/speed_ref)"""
        return base + increment * math.log10(speed / speed_ref)

    def rolling_noise(self, category: VehicleCategory, speed: float, band: int,
                      params: RoadParameters) -> float:
        """Rolling noise level of one vehicle (dB), corrections included"""
        vehicle = self.coefficients.lookup('Vehicles', key=category.value)
        level = self.speed_law_level(vehicle['AR'][band], speed, self.SPEED_REF, vehicle['BR'][band])
        level += self.surface_correction(category, speed, band, params.road_surface)
        level += self.temperature_correction(category, params.temperature)
        if category == VehicleCategory.LV:
            level += self.studded_tyre_correction(speed, band, params.ts_stud, params.pm_stud)
        rolling_acc, _ = self.acceleration_correction(category, params.junction_type, params.junction_distance)
        return level + rolling_acc

    def propulsion_noise(self, category: VehicleCategory, speed: float, band: int,
                         params: RoadParameters) -> float:
        """Propulsion noise level of one vehicle (dB), corrections included"""
        vehicle = self.coefficients.lookup('Vehicles', key=category.value)
        level = vehicle['AP'][band] + vehicle['BP'][band] * (speed - self.SPEED_REF) / self.SPEED_REF
        _, propulsion_acc = self.acceleration_correction(category, params.junction_type, params.junction_distance)
        return level + propulsion_acc + self.slope_correction(category, speed, params.slope_percentage)

    # ------------------------------------------------------------------
    # Corrections
    # ------------------------------------------------------------------

    def surface_correction(self, category: VehicleCategory, speed: float, band: int, surface: str) -> float:
        """Road surface correction alpha + beta*log10(v/v_ref), unknown surfaces use the default entry"""
        if category.is_two_wheeler:
            return 0.0
        entry = self.coefficients.lookup('Surfaces', key=surface)
        alpha = entry['Alpha'][category.value][band]
        beta = entry['Beta'][category.value]
        return alpha + beta * math.log10(speed / self.SPEED_REF)

    @staticmethod
    def temperature_correction(category: VehicleCategory, temperature: float) -> float:
        """K*(20 - T); a cold road is louder"""
        return TEMPERATURE_COEFFICIENTS[category.value] * (DEFAULT_TEMPERATURE_C - temperature)

    def studded_tyre_correction(self, speed: float, band: int, ts_stud: float, pm_stud: float) -> float:
        """Energetic mix of studded and regular tyres for light vehicles"""
        ps = pm_stud * ts_stud / 12.0
        if ps <= 0:
            return 0.0
        ps = min(ps, 1.0)
        low, high = STUDDED_TYRE_SPEED_RANGE
        clamped = min(max(speed, low), high)
        studs = self.coefficients.section('StuddedTyres')
        delta = studs['A'][band] + studs['B'][band] * math.log10(clamped / self.SPEED_REF)
        return 10 * math.log10((1 - ps) + ps * 10 ** (delta / 10.0))

    def acceleration_correction(self, category: VehicleCategory, junction_type: JunctionType,
                                distance: float) -> Tuple[float, float]:
        """
        Acceleration / deceleration correction near a junction

        Returns:
            (rolling correction, propulsion correction) in dB
        """
        if junction_type == JunctionType.CONTINUOUS:
            return 0.0, 0.0
        factor = max(1.0 - abs(distance) / 100.0, 0.0)
        if factor == 0.0:
            return 0.0, 0.0
        entry = self.coefficients.lookup('Acceleration', key=junction_type.value)
        return entry['CR'][category.value] * factor, entry['CP'][category.value] * factor

    @staticmethod
    def slope_correction(category: VehicleCategory, speed: float, slope: float) -> float:
        """Road gradient correction on propulsion noise, slope in percent"""
        if category == VehicleCategory.LV:
            if slope < -6:
                return min(MAX_SLOPE_PERCENT, -slope) - 6
            if slope > 2:
                return (min(MAX_SLOPE_PERCENT, slope) - 2) / 1.5
            return 0.0
        if category == VehicleCategory.MV:
            if slope < -4:
                return (min(MAX_SLOPE_PERCENT, -slope) - 4) / 0.7 * (speed - 20) / 100
            if slope > 0:
                return min(MAX_SLOPE_PERCENT, slope) * speed / 100
            return 0.0
        if category == VehicleCategory.HGV:
            if slope < -4:
                return (min(MAX_SLOPE_PERCENT, -slope) - 4) / 0.5 * (speed - 10) / 100
            if slope > 0:
                return min(MAX_SLOPE_PERCENT, slope) / 0.8 * speed / 100
            return 0.0
        return 0.0

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    @staticmethod
    def flow_density(level: float, flow_per_hour: float, speed: float) -> float:
        """Level of a line source of flow_per_hour vehicles driving at speed (dB/m)"""
        return level + 10 * math.log10(flow_per_hour / (1000 * speed))

    def evaluate_category(self, category: VehicleCategory, params: RoadParameters) -> float:
        """
        Sound power level of one category at params.frequency

        Returns:
            Level in dB; -inf when the category has no flow or no speed
        """
        speed = params.speed_of(category)
        flow = params.flow_of(category)
        if not (flow > 0 and speed > 0):
            return float('-inf')
        band = self.octave_index(params.frequency)
        propulsion = self.propulsion_noise(category, speed, band, params)
        if category.is_two_wheeler:
            vehicle_level = propulsion
        else:
            rolling = self.rolling_noise(category, speed, band, params)
            vehicle_level = SpectrumProcessor.combine_noise_levels(rolling, propulsion)
        return self.flow_density(vehicle_level, flow, speed)

    def evaluate(self, params: RoadParameters) -> float:
        """
        Road emission at params.frequency, all categories combined energetically

        Returns:
            Level in dB; -inf for a road without traffic
        """
        levels = [self.evaluate_category(category, params) for category in VehicleCategory]
        return SpectrumProcessor.sum_levels(levels)

    def evaluate_levels(self, params: RoadParameters, frequencies: Sequence[int]) -> Dict[VehicleCategory, List[float]]:
        """Per-category band levels (dB), useful for reporting contributions"""
        return {
            category: [self.evaluate_category(category, params.with_frequency(f)) for f in frequencies]
            for category in VehicleCategory
        }

    def evaluate_spectrum(self, params: RoadParameters, frequencies: Sequence[int]) -> np.ndarray:
        """Linear-power spectrum of the road over a band axis"""
        levels = [self.evaluate(params.with_frequency(f)) for f in frequencies]
        return SpectrumProcessor.db_to_w(np.array(levels, dtype=float))
