"""
Rail Traffic Emission Calculations
Based on CNOSSOS-EU, Commission Directive (EU) 2015/996, Annex II part 2.3

Rolling noise of a train is derived from the combined wheel/rail roughness:
- Roughness per wavelength:  L_R,tot(λ) = 10*log10(10^(L_wheel/10) + 10^(L_rail/10)) + A_3(λ)
- Excitation frequency:      f = v / λ   (v in km/h, λ in mm -> f = v/λ*1000/3.6 Hz)
- Sound power per vehicle:   L_W = L_R,tot(f) + L_H,track(f) + 10*log10(N_axles)
- Traffic flow:              L_W' = L_W + 10*log10(Q / (1000*v))

The 32-bin wavelength ladder is brought onto the band axis through a
WavelengthBandMapper. Traction and aerodynamic noise are extension points
that currently contribute no power.
"""

import math
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence

import numpy as np

from data.coefficient_tables import CoefficientTable, get_train_coefficients
from .acoustic_utilities import FrequencyBandManager, SpectrumProcessor
from .emission_constants import (
    DEFAULT_ENGINE_TYPE, DEFAULT_RAIL_ROUGHNESS_ID, DEFAULT_TRACK_TRANSFER_ID,
    NUM_WAVELENGTH_BINS, RAIL_HEIGHT_AERODYNAMIC, RAIL_HEIGHT_ROLLING,
    ROUGHNESS_WAVELENGTHS_MM
)


@dataclass
class TrainParameters:
    """Traffic descriptor of one rolling-stock type on a track section"""
    train_type: str = DEFAULT_ENGINE_TYPE
    speed: float = 0.0                     # km/h
    vehicles_per_hour: float = 0.0
    rail_roughness_id: int = DEFAULT_RAIL_ROUGHNESS_ID
    track_transfer_id: int = DEFAULT_TRACK_TRANSFER_ID
    height: int = RAIL_HEIGHT_ROLLING      # 0: rail head, 1: aerodynamic height

    def with_type(self, train_type: str, vehicles_per_hour: float) -> 'TrainParameters':
        return replace(self, train_type=train_type, vehicles_per_hour=vehicles_per_hour)


class WavelengthBandMapper:
    """Strategy bringing a wavelength-indexed spectrum onto a frequency band axis"""

    def map(self, levels: Sequence[float], excitation_frequencies: Sequence[float],
            frequencies: Sequence[int]) -> np.ndarray:
        """
        Args:
            levels: Roughness levels per wavelength bin (dB)
            excitation_frequencies: Excitation frequency of each bin (Hz)
            frequencies: Band centre frequencies of the target axis

        Returns:
            Roughness level per band (dB)
        """
        raise NotImplementedError


class NearestBandMapper(WavelengthBandMapper):
    """Each band takes the wavelength bin whose excitation frequency is nearest (log scale)"""

    def map(self, levels, excitation_frequencies, frequencies):
        levels = np.asarray(levels, dtype=float)
        log_excitation = np.log10(np.asarray(excitation_frequencies, dtype=float))
        mapped = np.empty(len(frequencies))
        for i, freq in enumerate(frequencies):
            mapped[i] = levels[int(np.argmin(np.abs(log_excitation - math.log10(freq))))]
        return mapped


class RailEmissionModel:
    """
    Rail traffic sound power per band.

    The coefficient table defaults to the process-wide train document and is
    resolved on first use, so an unavailable document only fails the rail
    computations that need it.
    """

    def __init__(self, coefficients: Optional[CoefficientTable] = None,
                 mapper: Optional[WavelengthBandMapper] = None):
        self._coefficients = coefficients
        self.mapper = mapper or NearestBandMapper()

    @property
    def coefficients(self) -> CoefficientTable:
        if self._coefficients is None:
            self._coefficients = get_train_coefficients()
        return self._coefficients

    # ------------------------------------------------------------------
    # Reference data access
    # ------------------------------------------------------------------

    def get_type_train(self, train_type: str) -> str:
        """Resolve a rolling-stock code; unknown codes resolve to "Empty" """
        definitions = self.coefficients.section('Train', 'Definition')
        return self.coefficients.resolve_key(definitions, train_type)

    def get_definition(self, train_type: str):
        return self.coefficients.lookup('Train', 'Definition', key=train_type)

    def get_vmax(self, train_type: str) -> float:
        return float(self.get_definition(train_type)['Vmax'])

    def get_axles_per_vehicle(self, train_type: str) -> float:
        return float(self.get_definition(train_type)['NbAxlePerVeh'])

    def get_wheel_roughness(self, train_type: str) -> List[float]:
        ref = self.get_definition(train_type)['RefRoughness']
        return list(self.coefficients.lookup('Train', 'WheelRoughness', key=ref)['Values'])

    def get_contact_filter(self, train_type: str) -> List[float]:
        ref = self.get_definition(train_type)['RefContact']
        return list(self.coefficients.lookup('Train', 'ContactFilter', key=ref)['Values'])

    def get_rail_roughness(self, rail_roughness_id: int) -> List[float]:
        return list(self.coefficients.lookup('Rail', 'RailRoughness', key=rail_roughness_id)['Values'])

    def get_track_transfer(self, track_transfer_id: int, frequency: int) -> float:
        """Track transfer level (dB) at the reference band of a frequency"""
        spectre = self.coefficients.lookup('TrackTransfer', key=track_transfer_id)['Spectre']
        return float(spectre[FrequencyBandManager.band_of(frequency)])

    # ------------------------------------------------------------------
    # Rolling noise
    # ------------------------------------------------------------------

    def roughness_spectrum(self, train_type: str, rail_roughness_id: int) -> np.ndarray:
        """Total effective roughness per wavelength bin (dB)"""
        wheel = np.asarray(self.get_wheel_roughness(train_type), dtype=float)
        rail = np.asarray(self.get_rail_roughness(rail_roughness_id), dtype=float)
        contact = np.asarray(self.get_contact_filter(train_type), dtype=float)
        if not (len(wheel) == len(rail) == len(contact) == NUM_WAVELENGTH_BINS):
            raise ValueError(f"Roughness spectra must have {NUM_WAVELENGTH_BINS} wavelength bins")
        return 10 * np.log10(np.power(10.0, wheel / 10.0) + np.power(10.0, rail / 10.0)) + contact

    @staticmethod
    def excitation_frequencies(speed: float) -> np.ndarray:
        """Excitation frequency (Hz) of every wavelength bin at speed (km/h)"""
        return speed / np.asarray(ROUGHNESS_WAVELENGTHS_MM, dtype=float) * 1000 / 3.6

    def rolling_noise(self, params: TrainParameters, frequencies: Sequence[int]) -> np.ndarray:
        """Rolling sound power level of one vehicle per band (dB)"""
        roughness = self.roughness_spectrum(params.train_type, params.rail_roughness_id)
        mapped = self.mapper.map(roughness, self.excitation_frequencies(params.speed), frequencies)
        transfer = np.array([self.get_track_transfer(params.track_transfer_id, f) for f in frequencies])
        return mapped + transfer + 10 * math.log10(self.get_axles_per_vehicle(params.train_type))

    def traction_noise(self, params: TrainParameters, frequencies: Sequence[int]) -> np.ndarray:
        """Traction sound power per band (W); no traction source data yet"""
        return np.zeros(len(frequencies))

    def aerodynamic_noise(self, params: TrainParameters, frequencies: Sequence[int]) -> np.ndarray:
        """Aerodynamic sound power per band (W); no aerodynamic source data yet"""
        return np.zeros(len(frequencies))

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def evaluate_speed(self, engine_type: str, wagon_type: Optional[str], speed: float) -> float:
        """Operating speed capped by the rolling stock maximum speed"""
        speed_max = self.get_vmax(engine_type)
        if wagon_type:
            speed_max = min(speed_max, self.get_vmax(wagon_type))
        return min(speed, speed_max)

    def evaluate_power(self, params: TrainParameters, frequencies: Sequence[int]) -> np.ndarray:
        """
        Sound power of a rolling-stock flow per band

        Args:
            params: Train descriptor (type, speed, flow, track)
            frequencies: Band centre frequencies of the output axis

        Returns:
            Linear power per band; zeros when the flow or the speed is not positive
        """
        if not (params.vehicles_per_hour > 0 and params.speed > 0):
            return np.zeros(len(frequencies))
        flow_term = 10 * math.log10(params.vehicles_per_hour / (1000 * params.speed))
        if params.height == RAIL_HEIGHT_AERODYNAMIC:
            per_vehicle = self.aerodynamic_noise(params, frequencies)
        else:
            rolling = SpectrumProcessor.db_to_w(self.rolling_noise(params, frequencies))
            per_vehicle = rolling + self.traction_noise(params, frequencies)
        return per_vehicle * 10 ** (flow_term / 10.0)

    def evaluate(self, params: TrainParameters, frequency: int) -> float:
        """Sound power level (dB) of a rolling-stock flow at one band frequency"""
        return SpectrumProcessor.w_to_db(float(self.evaluate_power(params, [frequency])[0]))
