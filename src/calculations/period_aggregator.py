"""
Period Aggregator - Day / Evening / Night emission spectra and Lden

For every source row exactly one input mode is active:
- REFERENCE:     constant reference level in every band (synthetic sources)
- LW_DEN:        sound power levels read per period and band from the row
- TRAFFIC_FLOW:  road traffic descriptors evaluated with the road model
- RAIL_FLOW:     rail traffic descriptors evaluated with the rail model

All spectra are linear power arrays on the configured band axis. Lden
applies the +5 dB evening and +10 dB night penalties and weights the periods
by their duration (12 h / 4 h / 8 h).
"""

from typing import Callable, Dict, Optional, Tuple

import numpy as np

from models.lden_config import InputMode, LdenConfig, RailSchema
from .acoustic_utilities import AcousticConstants, SpectrumProcessor
from .debug_logger import debug_logger
from .emission_constants import (
    DAY_HOURS, DEFAULT_ENGINE_TYPE, DEFAULT_JUNCTION_DISTANCE_M, DEFAULT_ROAD_SURFACE,
    DEFAULT_TEMPERATURE_C, DEFAULT_WAGON_TYPE, EVENING_HOURS, EVENING_PENALTY_DB,
    NIGHT_HOURS, NIGHT_PENALTY_DB, PERIODS
)
from .geometry import TerrainProvider, segment_slope
from .rail_emission import RailEmissionModel, TrainParameters
from .road_emission import JunctionType, RoadEmissionModel, RoadParameters


class EmissionEngineError(Exception):
    """Base exception for emission engine errors"""
    pass


class UnsupportedInputModeError(EmissionEngineError):
    """Raised when an input mode has no emission handler"""
    pass


# Rail flow column per period, GEOSTANDARD layout
RAIL_PERIOD_FLOW_FIELDS = {"D": "TDIURNE", "E": "TSOIR", "N": "TNUIT"}

Spectra = Tuple[np.ndarray, np.ndarray, np.ndarray]


def compute_lden(ld: np.ndarray, le: np.ndarray, ln: np.ndarray) -> np.ndarray:
    """
    Combine period spectra into the Lden spectrum

    Args:
        ld, le, ln: Day, evening and night linear power per band

    Returns:
        Lden linear power per band
    """
    evening = SpectrumProcessor.db_to_w(SpectrumProcessor.w_to_db(np.asarray(le, dtype=float)) + EVENING_PENALTY_DB)
    night = SpectrumProcessor.db_to_w(SpectrumProcessor.w_to_db(np.asarray(ln, dtype=float)) + NIGHT_PENALTY_DB)
    total_hours = DAY_HOURS + EVENING_HOURS + NIGHT_HOURS
    return (DAY_HOURS * np.asarray(ld, dtype=float) + EVENING_HOURS * evening + NIGHT_HOURS * night) / total_hours


class PeriodAggregator:
    """Per-row emission computation for one emission run"""

    def __init__(self, config: Optional[LdenConfig] = None,
                 road_model: Optional[RoadEmissionModel] = None,
                 rail_model: Optional[RailEmissionModel] = None,
                 terrain: Optional[TerrainProvider] = None):
        self.config = config or LdenConfig()
        self.road_model = road_model or RoadEmissionModel()
        self.rail_model = rail_model or RailEmissionModel()
        self.terrain = terrain
        self.frequencies = self.config.frequencies

        self._handlers: Dict[InputMode, Callable] = {
            InputMode.REFERENCE: self._compute_reference,
            InputMode.LW_DEN: self._compute_lw_den,
            InputMode.TRAFFIC_FLOW: self._compute_traffic_flow,
            InputMode.RAIL_FLOW: self._compute_rail_flow,
        }
        missing = [mode.name for mode in InputMode if mode not in self._handlers]
        if missing:
            raise UnsupportedInputModeError(f"No emission handler for input modes: {', '.join(missing)}")
        if self.config.input_mode not in self._handlers:
            raise UnsupportedInputModeError(f"Unsupported input mode: {self.config.input_mode!r}")

    @property
    def band_count(self) -> int:
        return len(self.frequencies)

    def compute_lw(self, row, geometry=None) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """
        Compute the emission spectra of one source row

        Args:
            row: RowView of the source
            geometry: Source geometry (shapely), used for the road slope

        Returns:
            (day, evening, night, lden) linear power arrays
        """
        ld, le, ln = self._handlers[self.config.input_mode](row, geometry)
        return ld, le, ln, compute_lden(ld, le, ln)

    # ------------------------------------------------------------------
    # Input mode handlers
    # ------------------------------------------------------------------

    def _compute_reference(self, row, geometry) -> Spectra:
        power = SpectrumProcessor.db_to_w(AcousticConstants.REFERENCE_LEVEL_DBA)
        return tuple(np.full(self.band_count, power) for _ in PERIODS)

    def _compute_lw_den(self, row, geometry) -> Spectra:
        prefix = self.config.lw_frequency_prepend
        spectra = []
        for period in PERIODS:
            levels = np.empty(self.band_count)
            for i, freq in enumerate(self.frequencies):
                column = f"{prefix}{period}{freq}"
                level = row.get_value(column)
                if level is None:
                    debug_logger.warning('PeriodAggregator', "Missing sound power column, band left silent",
                                         {'column': column})
                    levels[i] = float('-inf')
                else:
                    levels[i] = float(level)
            spectra.append(SpectrumProcessor.db_to_w(levels))
        return tuple(spectra)

    def _compute_traffic_flow(self, row, geometry) -> Spectra:
        slope = segment_slope(geometry, self.terrain)
        return tuple(
            self.road_model.evaluate_spectrum(self.road_parameters(row, period, slope), self.frequencies)
            for period in PERIODS
        )

    def _compute_rail_flow(self, row, geometry) -> Spectra:
        return tuple(self.rail_power(row, period) for period in PERIODS)

    # ------------------------------------------------------------------
    # Row decoding
    # ------------------------------------------------------------------

    def road_parameters(self, row, period: str, slope: float = 0.0) -> RoadParameters:
        """Road traffic descriptor of one period, with documented defaults for absent fields"""
        params = RoadParameters(
            lv_speed=row.get_double(f"LV_SPD_{period}"),
            mv_speed=row.get_double(f"MV_SPD_{period}"),
            hgv_speed=row.get_double(f"HGV_SPD_{period}"),
            wav_speed=row.get_double(f"WAV_SPD_{period}"),
            wbv_speed=row.get_double(f"WBV_SPD_{period}"),
            lv_per_hour=row.get_double(f"LV_{period}"),
            mv_per_hour=row.get_double(f"MV_{period}"),
            hgv_per_hour=row.get_double(f"HGV_{period}"),
            wav_per_hour=row.get_double(f"WAV_{period}"),
            wbv_per_hour=row.get_double(f"WBV_{period}"),
            temperature=row.get_double(f"TEMP_{period}", DEFAULT_TEMPERATURE_C),
            road_surface=row.get_string("PVMT", DEFAULT_ROAD_SURFACE),
            ts_stud=row.get_double("TS_STUD"),
            pm_stud=row.get_double("PM_STUD"),
            junction_distance=row.get_double("JUNC_DIST", DEFAULT_JUNCTION_DISTANCE_M),
            junction_type=JunctionType.from_code(row.get_int("JUNC_TYPE", JunctionType.CONTINUOUS.value)),
            slope_percentage=slope,
        )

        # Legacy total / heavy vehicle fields
        tv = row.get_double(f"TV_{period}")
        hv = row.get_double(f"HV_{period}")
        hv_speed = row.get_double(f"HV_SPD_{period}")
        if hv_speed > 0:
            params.hgv_speed = hv_speed
        if hv > 0:
            params.hgv_per_hour = hv
        if tv > 0:
            others = params.hgv_per_hour + params.mv_per_hour + params.wav_per_hour + params.wbv_per_hour
            params.lv_per_hour = max(tv - others, 0.0)
        return params

    def rail_parameters(self, row, period: str) -> Tuple[TrainParameters, Optional[TrainParameters]]:
        """
        Rail traffic descriptors of one period

        Returns:
            (engine descriptor, wagon descriptor or None when the train has no wagons)
        """
        config = self.config
        wagon_type = DEFAULT_WAGON_TYPE
        wagons = 0.0
        if config.rail_schema == RailSchema.SHORT:
            flow = row.get_double("Q")
            speed = row.get_double("SPEED")
            engine_type = row.get_string("NAME", DEFAULT_ENGINE_TYPE)
        else:
            flow = row.get_double(RAIL_PERIOD_FLOW_FIELDS[period])
            speed = row.get_double("VMAXINFRA")
            engine_type = row.get_string("ENGMOTEUR", DEFAULT_ENGINE_TYPE)
            wagon_type = row.get_string("TYPVOITWAG", DEFAULT_WAGON_TYPE)
            wagons = row.get_double("NBVOITWAG")

        has_wagons = wagons > 0
        speed = self.rail_model.evaluate_speed(engine_type, wagon_type if has_wagons else None, speed)
        engine = TrainParameters(
            train_type=engine_type,
            speed=speed,
            vehicles_per_hour=flow,
            rail_roughness_id=row.get_int("ROUGHNESS", config.rail_roughness_id),
            track_transfer_id=row.get_int("TRANSFER", config.track_transfer_id),
            height=config.train_height,
        )
        wagon = engine.with_type(wagon_type, flow * wagons) if has_wagons else None
        return engine, wagon

    def rail_power(self, row, period: str) -> np.ndarray:
        """Rail emission of one period: engine and wagons combined energetically"""
        engine, wagon = self.rail_parameters(row, period)
        power = self.rail_model.evaluate_power(engine, self.frequencies)
        if wagon is not None:
            power = power + self.rail_model.evaluate_power(wagon, self.frequencies)
        return power
