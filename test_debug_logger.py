#!/usr/bin/env python3
"""
Tests for the emission debug logger.
"""

import json
import logging
import os
import sys

# Add src directory to path
CURRENT_DIR = os.path.dirname(__file__)
SRC_DIR = os.path.join(CURRENT_DIR, 'src')
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from calculations.debug_logger import EmissionDebugLogger, debug_logger  # noqa: E402


def test_logger_is_a_singleton():
    assert EmissionDebugLogger() is debug_logger
    assert debug_logger.logger.name == 'noise_emission'


def test_debug_data_is_compact_json():
    formatted = debug_logger._format_debug_data({
        'lden_spectrum': [60.04, 61.27],
        'level_db': 70.123,
        'source_id': 'road-1',
    })
    data = json.loads(formatted)
    assert data['lden_spectrum'] == ['60.0', '61.3']
    assert data['level_db'] == '70.1dB'
    assert data['source_id'] == 'road-1'


def test_enabled_logger_emits_component_records(caplog):
    previous = debug_logger.debug_enabled
    debug_logger.debug_enabled = True
    try:
        with caplog.at_level(logging.DEBUG, logger='noise_emission'):
            debug_logger.log_source_emission('SourceRegistry', 'road-1', 0, 'traffic_flow', [60.0])
        records = [r for r in caplog.records if r.name == 'noise_emission']
        assert records
        assert records[-1].component == 'SourceRegistry'
        assert 'road-1' in records[-1].getMessage()
    finally:
        debug_logger.debug_enabled = previous


def test_disabled_logger_is_silent(caplog):
    previous = debug_logger.debug_enabled
    debug_logger.debug_enabled = False
    try:
        with caplog.at_level(logging.DEBUG, logger='noise_emission'):
            debug_logger.warning('PeriodAggregator', "Missing sound power column", {'column': 'LWD63'})
        assert not [r for r in caplog.records if r.name == 'noise_emission']
    finally:
        debug_logger.debug_enabled = previous
