"""
Acoustic Utilities - Centralized acoustic constants and common functions

This module consolidates the frequency band axes, A-weighting factors and the
decibel / linear-power conversions used across the emission calculation system.

All spectra handled by the engine are numpy arrays indexed by band *position*.
Conversions always use:
    W  = 10^(dB/10)
    dB = 10*log10(W)
"""

import math
from typing import Dict, List, Optional, Sequence, Union

import numpy as np


class AcousticConstants:
    """Centralized acoustic constants and reference data"""

    # Standard 1/1 octave band center frequencies (Hz)
    OCTAVE_BANDS = [63, 125, 250, 500, 1000, 2000, 4000, 8000]

    # Standard 1/3 octave band center frequencies (Hz), 24 positions
    THIRD_OCTAVE_BANDS = [50, 63, 80, 100, 125, 160, 200, 250, 315, 400, 500, 630,
                          800, 1000, 1250, 1600, 2000, 2500, 3150, 4000, 5000, 6300,
                          8000, 10000]

    # A-weighting adjustments for each third octave band (dB)
    A_WEIGHTING_THIRD_OCTAVE = [-30.2, -26.2, -22.5, -19.1, -16.1, -13.4, -10.9, -8.6,
                                -6.6, -4.8, -3.2, -1.9, -0.8, 0.0, 0.6, 1.0, 1.2, 1.3,
                                1.2, 1.0, 0.5, -0.1, -1.1, -2.5]

    # Reference level used by synthetic sources, dB(A)
    REFERENCE_LEVEL_DBA = 90.0


class SpectrumProcessor:
    """Common spectrum processing and conversion functions"""

    @staticmethod
    def db_to_w(level_db):
        """
        Convert a sound level (dB) or spectrum to linear power

        Args:
            level_db: scalar or sequence of levels in dB. -inf maps to 0.

        Returns:
            Linear power, same shape as the input (float for scalars)
        """
        values = np.asarray(level_db, dtype=float)
        power = np.power(10.0, values / 10.0)
        if power.ndim == 0:
            return float(power)
        return power

    @staticmethod
    def w_to_db(power):
        """
        Convert linear power to a sound level (dB)

        Zero power maps to -inf without raising a numpy warning.
        """
        values = np.asarray(power, dtype=float)
        with np.errstate(divide='ignore'):
            level = 10.0 * np.log10(values)
        if level.ndim == 0:
            return float(level)
        return level

    @staticmethod
    def sum_levels(levels_db: Sequence[float]) -> float:
        """
        Combine noise levels energetically

        Args:
            levels_db: Levels in dB. -inf entries contribute nothing.

        Returns:
            Combined level (dB), -inf when every contributor is silent
        """
        total = float(np.sum(SpectrumProcessor.db_to_w(list(levels_db)))) if len(levels_db) else 0.0
        return SpectrumProcessor.w_to_db(total)

    @staticmethod
    def combine_noise_levels(level1: float, level2: float) -> float:
        """Combine two noise levels using logarithmic addition"""
        return 10 * math.log10(10 ** (level1 / 10.0) + 10 ** (level2 / 10.0))

    @staticmethod
    def calculate_dba_from_power(spectrum_w: Sequence[float],
                                 frequencies: Optional[Sequence[int]] = None) -> float:
        """
        Calculate the overall A-weighted level of a linear-power spectrum

        Args:
            spectrum_w: Per-band linear power
            frequencies: Band centre frequencies of the spectrum; defaults to octaves

        Returns:
            A-weighted level dB(A), -inf for a silent spectrum
        """
        if frequencies is None:
            frequencies = AcousticConstants.OCTAVE_BANDS
        weights = FrequencyBandManager.a_weighting_for(frequencies)
        weighted = np.asarray(spectrum_w, dtype=float) * SpectrumProcessor.db_to_w(weights)
        return SpectrumProcessor.w_to_db(float(np.sum(weighted)))

    @staticmethod
    def validate_spectrum(spectrum: Sequence[float], band_count: int) -> bool:
        """
        Validate a linear-power spectrum

        Returns:
            True when the spectrum has band_count finite, non-negative values
        """
        values = np.asarray(spectrum, dtype=float)
        if values.shape != (band_count,):
            return False
        return bool(np.all(np.isfinite(values)) and np.all(values >= 0.0))


class FrequencyBandManager:
    """Utilities for frequency band management and conversion"""

    # Reference band table for rail track-transfer spectra. The aliasing of
    # 50/63/80 Hz onto 100/125/160 Hz and of 5000/8000/10000 Hz onto one
    # position is part of the reference data layout.
    BAND_INDEX = {
        50: 0, 63: 1, 80: 2,
        100: 0, 125: 1, 160: 2, 200: 3, 250: 4, 315: 5, 400: 6, 500: 7,
        630: 8, 800: 9, 1000: 10, 1250: 11, 1600: 12, 2000: 13, 2500: 14,
        3150: 15, 4000: 16, 5000: 17, 8000: 17, 10000: 17,
    }

    @staticmethod
    def band_of(frequency_hz: Union[int, float]) -> int:
        """
        Resolve a frequency to its reference band position

        Unrecognized frequencies resolve to position 0.
        """
        try:
            key = int(frequency_hz)
        except (TypeError, ValueError, OverflowError):
            return 0
        if key != frequency_hz:
            return 0
        return FrequencyBandManager.BAND_INDEX.get(key, 0)

    @staticmethod
    def nearest_index(frequency_hz: float, frequencies: Sequence[float]) -> int:
        """Index of the band whose centre is nearest on a logarithmic scale"""
        if frequency_hz <= 0:
            return 0
        log_f = math.log10(frequency_hz)
        distances = [abs(math.log10(f) - log_f) for f in frequencies]
        return int(np.argmin(distances))

    @staticmethod
    def a_weighting_for(frequencies: Sequence[int]) -> List[float]:
        """A-weighting correction (dB) for each band of an arbitrary axis"""
        table: Dict[int, float] = dict(zip(AcousticConstants.THIRD_OCTAVE_BANDS,
                                           AcousticConstants.A_WEIGHTING_THIRD_OCTAVE))
        weights = []
        for freq in frequencies:
            if freq in table:
                weights.append(table[freq])
            else:
                idx = FrequencyBandManager.nearest_index(freq, AcousticConstants.THIRD_OCTAVE_BANDS)
                weights.append(AcousticConstants.A_WEIGHTING_THIRD_OCTAVE[idx])
        return weights


# Convenience functions for backward compatibility
def db_to_w(level_db):
    """Convenience function for dB to linear power conversion"""
    return SpectrumProcessor.db_to_w(level_db)


def w_to_db(power):
    """Convenience function for linear power to dB conversion"""
    return SpectrumProcessor.w_to_db(power)


def band_of(frequency_hz: Union[int, float]) -> int:
    """Convenience function for reference band lookup"""
    return FrequencyBandManager.band_of(frequency_hz)


__all__ = [
    'AcousticConstants',
    'SpectrumProcessor',
    'FrequencyBandManager',
    'db_to_w',
    'w_to_db',
    'band_of',
]
