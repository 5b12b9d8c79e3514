#!/usr/bin/env python3
"""
Tests for coefficient document loading, lookups and the process-wide tables.
"""

import os
import sys
import threading

import pytest

# Add src directory to path
CURRENT_DIR = os.path.dirname(__file__)
SRC_DIR = os.path.join(CURRENT_DIR, 'src')
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from data.coefficient_tables import (  # noqa: E402
    CoefficientError, CoefficientTable, MissingCoefficientError, MissingCoefficientTable,
    bundled_document_path, get_coefficient_table, get_road_coefficients, get_train_coefficients,
    install_coefficient_table, load_coefficient_table
)
from utils.settings_manager import reset_settings_manager  # noqa: E402


@pytest.fixture
def fresh_tables():
    """Forget process-wide tables and settings before and after the test"""
    for kind in ('train', 'road'):
        install_coefficient_table(kind, None)
    reset_settings_manager()
    yield
    for kind in ('train', 'road'):
        install_coefficient_table(kind, None)
    reset_settings_manager()


def test_bundled_documents_load():
    for kind in ('train', 'road'):
        table = load_coefficient_table(bundled_document_path(kind))
        assert table.is_available
    train = load_coefficient_table(bundled_document_path('train'))
    for section in ('WheelRoughness', 'ContactFilter'):
        for entry in train.section('Train', section).values():
            assert len(entry['Values']) == 32
    for entry in train.section('TrackTransfer').values():
        assert len(entry['Spectre']) == 18


def test_unknown_key_resolves_to_empty_entry():
    table = CoefficientTable({"Section": {"Empty": {"v": 0}, "A": {"v": 1}}})
    assert table.lookup("Section", key="A")["v"] == 1
    assert table.lookup("Section", key="B")["v"] == 0
    assert table.resolve_key(table.section("Section"), "B") == "Empty"
    assert table.has_key("Section", key="A")
    assert not table.has_key("Section", key="B")


def test_numeric_keys_are_matched_as_text():
    table = CoefficientTable({"Rail": {"Empty": [0], "2": [5]}})
    assert table.lookup("Rail", key=2) == (5,)


def test_missing_section_raises():
    table = CoefficientTable({"Section": {"A": 1}})
    with pytest.raises(MissingCoefficientError):
        table.section("Other")
    with pytest.raises(MissingCoefficientError):
        table.lookup("Section", key="B")


def test_tables_are_read_only():
    table = CoefficientTable({"Section": {"Empty": {"Values": [1, 2]}}})
    entry = table.lookup("Section", key="Empty")
    with pytest.raises(TypeError):
        entry["Values"] = [3]
    with pytest.raises(TypeError):
        entry["Values"][0] = 3


def test_unreadable_documents_give_sentinel(tmp_path):
    missing = load_coefficient_table(str(tmp_path / "absent.json"))
    assert isinstance(missing, MissingCoefficientTable)
    assert not missing.is_available

    corrupt_path = tmp_path / "corrupt.json"
    corrupt_path.write_text("{ not json")
    corrupt = load_coefficient_table(str(corrupt_path))
    assert not corrupt.is_available

    not_object = tmp_path / "list.json"
    not_object.write_text("[1, 2, 3]")
    assert not load_coefficient_table(str(not_object)).is_available


def test_sentinel_raises_on_every_query():
    table = MissingCoefficientTable("absent.json", "not found")
    with pytest.raises(MissingCoefficientError):
        table.section("Train", "Definition")
    with pytest.raises(MissingCoefficientError):
        table.lookup("TrackTransfer", key=1)
    assert issubclass(MissingCoefficientError, CoefficientError)
    assert issubclass(MissingCoefficientError, LookupError)


def test_process_tables_are_shared(fresh_tables):
    assert get_train_coefficients() is get_train_coefficients()
    assert get_road_coefficients() is get_coefficient_table('road')
    assert get_train_coefficients().is_available


def test_process_tables_load_once_under_concurrency(fresh_tables):
    results = []
    barrier = threading.Barrier(8)

    def worker():
        barrier.wait()
        results.append(get_road_coefficients())

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(results) == 8
    assert all(table is results[0] for table in results)


def test_environment_overrides_document_path(fresh_tables, monkeypatch, tmp_path):
    monkeypatch.setenv("NOISE_TRAIN_COEFFICIENTS", str(tmp_path / "absent.json"))
    reset_settings_manager()
    table = get_train_coefficients()
    assert not table.is_available
    # The road document is unaffected
    assert get_road_coefficients().is_available


def test_install_table(fresh_tables):
    custom = CoefficientTable({"TrackTransfer": {"Empty": {"Spectre": [0.0] * 18}}}, "custom")
    install_coefficient_table('train', custom)
    assert get_train_coefficients() is custom


def test_unknown_family_is_rejected():
    with pytest.raises(ValueError):
        get_coefficient_table('tram')
