#!/usr/bin/env python3
"""
Tests for decibel / power conversions and frequency band lookup.
"""

import math
import os
import sys

import numpy as np
import pytest

# Add src directory to path
CURRENT_DIR = os.path.dirname(__file__)
SRC_DIR = os.path.join(CURRENT_DIR, 'src')
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from calculations.acoustic_utilities import (  # noqa: E402
    AcousticConstants, FrequencyBandManager, SpectrumProcessor, band_of, db_to_w, w_to_db
)


def test_db_power_round_trip():
    """dB -> W -> dB is the identity over the working range."""
    for level in range(-50, 201, 5):
        assert w_to_db(db_to_w(level)) == pytest.approx(level, abs=1e-9)
    levels = np.linspace(-50.0, 200.0, 26)
    assert np.allclose(w_to_db(db_to_w(levels)), levels)


def test_zero_power_is_silence():
    assert w_to_db(0.0) == float('-inf')
    assert db_to_w(float('-inf')) == 0.0
    spectrum = w_to_db(np.zeros(4))
    assert np.all(np.isneginf(spectrum))
    assert np.all(db_to_w(spectrum) == 0.0)


def test_scalar_conversions_return_floats():
    assert isinstance(db_to_w(90.0), float)
    assert db_to_w(90.0) == pytest.approx(1e9)
    assert isinstance(w_to_db(1e9), float)


def test_energetic_sum():
    assert SpectrumProcessor.sum_levels([60.0, 60.0]) == pytest.approx(60.0 + 10 * math.log10(2))
    assert SpectrumProcessor.sum_levels([70.0, float('-inf')]) == pytest.approx(70.0)
    assert SpectrumProcessor.sum_levels([]) == float('-inf')
    assert SpectrumProcessor.combine_noise_levels(50.0, 50.0) == pytest.approx(53.0103, abs=1e-4)


def test_band_of_reference_table():
    assert band_of(50) == 0
    assert band_of(100) == 0
    assert band_of(63) == 1
    assert band_of(125) == 1
    assert band_of(1000) == 10
    assert band_of(4000) == 16


def test_band_of_high_frequencies_share_one_position():
    assert band_of(5000) == band_of(8000) == band_of(10000) == 17


def test_band_of_unknown_frequency_defaults_to_zero():
    assert band_of(12345) == 0
    assert band_of(63.5) == 0
    assert band_of(float('nan')) == 0
    assert band_of(None) == 0
    assert band_of("abc") == 0
    assert band_of(1000.0) == 10


def test_nearest_octave_index():
    octaves = AcousticConstants.OCTAVE_BANDS
    assert FrequencyBandManager.nearest_index(1000, octaves) == 4
    assert FrequencyBandManager.nearest_index(1100, octaves) == 4
    assert FrequencyBandManager.nearest_index(10000, octaves) == 7
    assert FrequencyBandManager.nearest_index(50, octaves) == 0


def test_band_axes():
    assert len(AcousticConstants.OCTAVE_BANDS) == 8
    assert len(AcousticConstants.THIRD_OCTAVE_BANDS) == 24
    assert len(AcousticConstants.A_WEIGHTING_THIRD_OCTAVE) == 24


def test_a_weighted_level_of_spectrum():
    spectrum = np.zeros(8)
    spectrum[4] = db_to_w(60.0)  # 1000 Hz, no A-weighting
    assert SpectrumProcessor.calculate_dba_from_power(spectrum) == pytest.approx(60.0)
    spectrum[4] = 0.0
    spectrum[0] = db_to_w(60.0)  # 63 Hz
    assert SpectrumProcessor.calculate_dba_from_power(spectrum) == pytest.approx(60.0 - 26.2)
    assert SpectrumProcessor.calculate_dba_from_power(np.zeros(8)) == float('-inf')


def test_validate_spectrum():
    assert SpectrumProcessor.validate_spectrum(np.ones(8), 8)
    assert not SpectrumProcessor.validate_spectrum(np.ones(7), 8)
    assert not SpectrumProcessor.validate_spectrum([1.0, -1.0], 2)
    assert not SpectrumProcessor.validate_spectrum([1.0, float('nan')], 2)
