"""
Source Registry - ordinal indexing and storage of source emission spectra

Sources receive consecutive ordinals in insertion order. The propagation stage
reads one representative spectrum per ordinal through get_maximal_source_power.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from calculations.acoustic_utilities import SpectrumProcessor
from calculations.debug_logger import debug_logger
from calculations.period_aggregator import EmissionEngineError, PeriodAggregator
from .lden_config import LdenConfig


class DuplicateSourceError(EmissionEngineError):
    """Raised when a source id is registered twice"""
    pass


def _read_only(values) -> np.ndarray:
    array = np.array(values, dtype=float, copy=True)
    array.setflags(write=False)
    return array


@dataclass(frozen=True)
class SourceEmission:
    """Linear power spectra of one source; arrays are read-only"""
    day: np.ndarray
    evening: np.ndarray
    night: np.ndarray
    lden: np.ndarray

    def __post_init__(self):
        for name in ('day', 'evening', 'night', 'lden'):
            object.__setattr__(self, name, _read_only(getattr(self, name)))

    @property
    def band_count(self) -> int:
        return len(self.day)


class SourceRegistry:
    """Append-only registry of source emissions for one emission run"""

    def __init__(self, config: Optional[LdenConfig] = None, aggregator: Optional[PeriodAggregator] = None):
        if config is None:
            config = aggregator.config if aggregator is not None else LdenConfig()
        self.config = config
        self.aggregator = aggregator or PeriodAggregator(config)
        self._lock = threading.Lock()
        self._ordinals: Dict[Any, int] = {}
        self._emissions: List[SourceEmission] = []

    def __len__(self):
        return len(self._emissions)

    def _check_new_ids(self, source_ids: Sequence[Any]):
        seen = set()
        for source_id in source_ids:
            if source_id in self._ordinals or source_id in seen:
                raise DuplicateSourceError(f"Source {source_id!r} is already registered")
            seen.add(source_id)

    def check_new_ids(self, source_ids: Sequence[Any]):
        """
        Raises:
            DuplicateSourceError: when an id is registered or repeated
        """
        with self._lock:
            self._check_new_ids(source_ids)

    def commit(self, entries: Sequence[Tuple[Any, SourceEmission]]) -> List[int]:
        """
        Register computed emissions as one block of consecutive ordinals

        Either every entry is registered or none is.

        Raises:
            DuplicateSourceError: when an id is registered or repeated
        """
        with self._lock:
            self._check_new_ids([source_id for source_id, _ in entries])
            first = len(self._emissions)
            for source_id, emission in entries:
                self._ordinals[source_id] = len(self._emissions)
                self._emissions.append(emission)
        return list(range(first, first + len(entries)))

    def compute(self, row, geometry=None) -> SourceEmission:
        ld, le, ln, lden = self.aggregator.compute_lw(row, geometry)
        return SourceEmission(ld, le, ln, lden)

    def add_source(self, source_id: Any, geometry, row) -> int:
        """
        Register a source and compute its emission

        Nothing is registered when the computation fails.

        Args:
            source_id: External source id, unique within the registry
            geometry: Source geometry (shapely), may be None
            row: RowView of the source attributes

        Returns:
            Ordinal of the source
        """
        self.check_new_ids([source_id])
        emission = self.compute(row, geometry)
        ordinal = self.commit([(source_id, emission)])[0]
        self._log_emission(source_id, ordinal, emission)
        return ordinal

    def _log_emission(self, source_id: Any, ordinal: int, emission: SourceEmission):
        debug_logger.log_source_emission('SourceRegistry', source_id, ordinal,
                                         self.config.input_mode.value,
                                         lden_spectrum=SpectrumProcessor.w_to_db(emission.lden).tolist())

    def ordinal_of(self, source_id: Any) -> Optional[int]:
        return self._ordinals.get(source_id)

    def get_source_emission(self, ordinal: int) -> Optional[SourceEmission]:
        if 0 <= ordinal < len(self._emissions):
            return self._emissions[ordinal]
        return None

    def get_maximal_source_power(self, ordinal: int) -> np.ndarray:
        """
        Representative spectrum of a source for the propagation stage

        Priority Lden > Day > Evening > Night among the active periods.

        Returns:
            Linear power per band; an empty array for an unknown ordinal or
            when no period is active
        """
        emission = self.get_source_emission(ordinal)
        if emission is None:
            return np.array([])
        config = self.config
        if config.compute_lden:
            return emission.lden
        if config.compute_lday:
            return emission.day
        if config.compute_levening:
            return emission.evening
        if config.compute_lnight:
            return emission.night
        return np.array([])


def ingest_table(table, registry: SourceRegistry, max_workers: Optional[int] = None) -> List[int]:
    """
    Register every row of a table source

    Ordinals follow the row order of the table; emissions are computed
    concurrently. A duplicate id or a failed row leaves the registry unchanged.

    Args:
        table: TableSource to read
        registry: Registry receiving the sources
        max_workers: Thread pool size, None for the executor default

    Returns:
        Ordinals of the registered rows, in row order
    """
    rows = list(table.rows())
    source_ids = [source_id for source_id, _ in rows]
    registry.check_new_ids(source_ids)

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        emissions = list(executor.map(lambda item: registry.compute(item[1], item[1].get_geometry()), rows))

    ordinals = registry.commit(list(zip(source_ids, emissions)))
    for source_id, ordinal, emission in zip(source_ids, ordinals, emissions):
        registry._log_emission(source_id, ordinal, emission)

    debug_logger.info('SourceRegistry', "Table ingested",
                      {'table': table.name, 'sources': len(ordinals)})
    return ordinals
