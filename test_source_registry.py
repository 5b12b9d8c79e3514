#!/usr/bin/env python3
"""
Tests for source ordinals, stored emissions and the representative spectrum query.
"""

import dataclasses
import os
import sys

import numpy as np
import pandas as pd
import pytest

# Add src directory to path
CURRENT_DIR = os.path.dirname(__file__)
SRC_DIR = os.path.join(CURRENT_DIR, 'src')
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from calculations.acoustic_utilities import db_to_w  # noqa: E402
from calculations.period_aggregator import EmissionEngineError, PeriodAggregator  # noqa: E402
from calculations.rail_emission import RailEmissionModel  # noqa: E402
from data.coefficient_tables import MissingCoefficientError, MissingCoefficientTable  # noqa: E402
from models.lden_config import InputMode, LdenConfig  # noqa: E402
from models.source_registry import (  # noqa: E402
    DuplicateSourceError, SourceEmission, SourceRegistry, ingest_table
)
from models.table_source import DataFrameTableSource, RowView, SourceSchema  # noqa: E402


def _direct_row(day, evening, night):
    values = {}
    for period, level in (("D", day), ("E", evening), ("N", night)):
        for freq in (63, 125, 250, 500, 1000, 2000, 4000, 8000):
            values[f"LW{period}{freq}"] = level
    return RowView(SourceSchema(list(values.keys())), list(values.values()))


def _registry(**flags):
    return SourceRegistry(LdenConfig(input_mode=InputMode.LW_DEN, **flags))


def test_ordinals_follow_insertion_order():
    registry = _registry()
    assert registry.add_source("road-a", None, _direct_row(70, 65, 60)) == 0
    assert registry.add_source("road-b", None, _direct_row(70, 65, 60)) == 1
    assert registry.add_source(17, None, _direct_row(70, 65, 60)) == 2
    assert len(registry) == 3
    assert registry.ordinal_of("road-b") == 1
    assert registry.ordinal_of("unknown") is None


def test_duplicate_source_is_rejected():
    registry = _registry()
    registry.add_source("road-a", None, _direct_row(70, 65, 60))
    with pytest.raises(DuplicateSourceError):
        registry.add_source("road-a", None, _direct_row(70, 65, 60))
    assert issubclass(DuplicateSourceError, EmissionEngineError)
    assert len(registry) == 1


def test_maximal_source_power_priority():
    row = _direct_row(70, 65, 60)

    registry = _registry()
    registry.add_source(1, None, row)
    emission = registry.get_source_emission(0)
    assert np.array_equal(registry.get_maximal_source_power(0), emission.lden)

    registry = _registry(compute_lden=False)
    registry.add_source(1, None, row)
    assert np.allclose(registry.get_maximal_source_power(0), db_to_w(70.0))

    registry = _registry(compute_lden=False, compute_lday=False)
    registry.add_source(1, None, row)
    assert np.allclose(registry.get_maximal_source_power(0), db_to_w(65.0))

    registry = _registry(compute_lden=False, compute_lday=False, compute_levening=False)
    registry.add_source(1, None, row)
    assert np.allclose(registry.get_maximal_source_power(0), db_to_w(60.0))


def test_maximal_source_power_empty_cases():
    registry = _registry(compute_lden=False, compute_lday=False, compute_levening=False, compute_lnight=False)
    registry.add_source(1, None, _direct_row(70, 65, 60))
    assert registry.get_maximal_source_power(0).size == 0

    registry = _registry()
    assert registry.get_maximal_source_power(0).size == 0
    assert registry.get_maximal_source_power(-1).size == 0
    assert registry.get_source_emission(3) is None


def test_source_emission_is_immutable():
    emission = SourceEmission(np.ones(8), np.ones(8), np.ones(8), np.ones(8))
    assert emission.band_count == 8
    with pytest.raises(ValueError):
        emission.day[0] = 5.0
    with pytest.raises(dataclasses.FrozenInstanceError):
        emission.day = np.zeros(8)


def test_stored_spectra_are_copies():
    day = np.ones(8)
    emission = SourceEmission(day, day, day, day)
    day[0] = 42.0
    assert emission.day[0] == 1.0


def test_registry_uses_given_aggregator():
    aggregator = PeriodAggregator(LdenConfig(input_mode=InputMode.REFERENCE))
    registry = SourceRegistry(aggregator=aggregator)
    assert registry.config is aggregator.config
    registry.add_source("synthetic", None, RowView(SourceSchema([]), []))
    assert np.allclose(registry.get_source_emission(0).day, db_to_w(90.0))


def test_ingest_table_keeps_row_order():
    frame = pd.DataFrame({
        "PK": [f"src-{i}" for i in range(20)],
        "LV_D": [100.0 * (i + 1) for i in range(20)],
        "LV_SPD_D": [50.0] * 20,
    })
    registry = SourceRegistry(LdenConfig(input_mode=InputMode.TRAFFIC_FLOW))
    ordinals = ingest_table(DataFrameTableSource(frame, id_field="PK"), registry, max_workers=4)
    assert ordinals == list(range(20))
    assert registry.ordinal_of("src-7") == 7
    # Emission grows with the flow, so stored spectra follow the row order
    days = [registry.get_source_emission(i).day for i in range(20)]
    assert all(np.all(later > earlier) for earlier, later in zip(days, days[1:]))


def test_ingest_table_rejects_duplicate_ids():
    frame = pd.DataFrame({"PK": [1, 1], "LV_D": [10.0, 20.0]})
    registry = SourceRegistry(LdenConfig(input_mode=InputMode.TRAFFIC_FLOW))
    with pytest.raises(DuplicateSourceError):
        ingest_table(DataFrameTableSource(frame, id_field="PK"), registry)
    assert len(registry) == 0


def test_failed_ingest_leaves_registry_unchanged():
    frame = pd.DataFrame({"PK": [1, 2, 1], "LV_D": [10.0, 20.0, 30.0], "LV_SPD_D": [50.0] * 3})
    registry = SourceRegistry(LdenConfig(input_mode=InputMode.TRAFFIC_FLOW))
    with pytest.raises(DuplicateSourceError):
        ingest_table(DataFrameTableSource(frame, id_field="PK"), registry)
    assert len(registry) == 0
    assert registry.ordinal_of(1) is None and registry.ordinal_of(2) is None
    assert registry.get_source_emission(0) is None

    # The same ids can be registered once the table is fixed
    fixed = DataFrameTableSource(frame.iloc[:2], id_field="PK")
    assert ingest_table(fixed, registry) == [0, 1]
    assert registry.get_maximal_source_power(1).size == 8


def test_ingest_clashing_with_registered_source():
    registry = SourceRegistry(LdenConfig(input_mode=InputMode.TRAFFIC_FLOW))
    registry.add_source(2, None, RowView(SourceSchema(["LV_D", "LV_SPD_D"]), [10.0, 50.0]))
    frame = pd.DataFrame({"PK": [1, 2], "LV_D": [10.0, 20.0], "LV_SPD_D": [50.0] * 2})
    with pytest.raises(DuplicateSourceError):
        ingest_table(DataFrameTableSource(frame, id_field="PK"), registry)
    assert len(registry) == 1
    assert registry.ordinal_of(1) is None


def test_failed_computation_registers_nothing():
    rail = RailEmissionModel(coefficients=MissingCoefficientTable("missing.json", "not found"))
    config = LdenConfig(input_mode=InputMode.RAIL_FLOW)
    registry = SourceRegistry(aggregator=PeriodAggregator(config, rail_model=rail))
    row = RowView(SourceSchema(["TDIURNE", "VMAXINFRA"]), [1.0, 100.0])
    with pytest.raises(MissingCoefficientError):
        registry.add_source("rail-1", None, row)
    assert len(registry) == 0
    assert registry.ordinal_of("rail-1") is None

    frame = pd.DataFrame({"PK": ["rail-1", "rail-2"], "TDIURNE": [1.0, 2.0], "VMAXINFRA": [100.0, 120.0]})
    with pytest.raises(MissingCoefficientError):
        ingest_table(DataFrameTableSource(frame, id_field="PK"), registry, max_workers=2)
    assert len(registry) == 0

    # The id is free again once the emission can be computed
    working = SourceRegistry(config)
    assert working.add_source("rail-1", None, row) == 0
