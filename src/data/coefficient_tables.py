"""
Coefficient Tables - Process-wide reference data for the emission models

Reference documents are JSON files bundled with the package:
    coefficients_train_cnossos.json  (rail: definitions, roughness, contact filter, track transfer)
    coefficients_road_cnossos.json   (road: rolling/propulsion, surfaces, studded tyres, acceleration)

Each table is loaded once, frozen, and shared read-only by every computation.
A document that cannot be read yields a MissingCoefficientTable; the failure
surfaces as MissingCoefficientError only when that table is actually queried.
"""

import json
import os
import threading
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from calculations.debug_logger import debug_logger
from calculations.emission_constants import DEFAULT_COEFFICIENT_KEY


class CoefficientError(Exception):
    """Base exception for coefficient table errors"""
    pass


class MissingCoefficientError(CoefficientError, LookupError):
    """Raised when a coefficient is requested from an unavailable table or section"""
    pass


BUNDLED_DOCUMENTS = {
    'train': 'coefficients_train_cnossos.json',
    'road': 'coefficients_road_cnossos.json',
}


def _freeze(node: Any) -> Any:
    """Recursively convert a parsed JSON document into read-only containers"""
    if isinstance(node, dict):
        return MappingProxyType({str(k): _freeze(v) for k, v in node.items()})
    if isinstance(node, list):
        return tuple(_freeze(v) for v in node)
    return node


class CoefficientTable:
    """Immutable nested reference data with "Empty" fallback entries"""

    def __init__(self, document: Mapping[str, Any], source: str = "<memory>"):
        self._root = _freeze(dict(document))
        self.source = source

    @property
    def is_available(self) -> bool:
        return True

    def section(self, *path: str) -> Mapping[str, Any]:
        """
        Walk to a nested section of the document

        Raises:
            MissingCoefficientError: when the section does not exist
        """
        node = self._root
        for name in path:
            if not isinstance(node, Mapping) or name not in node:
                raise MissingCoefficientError(
                    f"Section {'/'.join(path)} not found in coefficient table {self.source}"
                )
            node = node[name]
        return node

    def resolve_key(self, section: Mapping[str, Any], key: Any) -> str:
        """Return key when the section defines it, the "Empty" key otherwise"""
        key = str(key)
        if key in section:
            return key
        return DEFAULT_COEFFICIENT_KEY

    def lookup(self, *path: str, key: Any) -> Any:
        """
        Get an entry of a section, falling back to its "Empty" entry

        Args:
            path: Section names leading to the keyed mapping
            key: Entry key (type code, roughness id, ...)

        Returns:
            The entry for key, or the "Empty" entry for an unknown key
        """
        section = self.section(*path)
        resolved = self.resolve_key(section, key)
        if resolved not in section:
            raise MissingCoefficientError(
                f"No entry {key!r} and no {DEFAULT_COEFFICIENT_KEY!r} default in "
                f"{'/'.join(path)} of coefficient table {self.source}"
            )
        return section[resolved]

    def has_key(self, *path: str, key: Any) -> bool:
        """Whether a section defines key explicitly"""
        return str(key) in self.section(*path)


class MissingCoefficientTable(CoefficientTable):
    """Sentinel for a reference document that could not be loaded"""

    def __init__(self, source: str, reason: str):
        super().__init__({}, source)
        self.reason = reason

    @property
    def is_available(self) -> bool:
        return False

    def section(self, *path: str) -> Mapping[str, Any]:
        raise MissingCoefficientError(
            f"Coefficient table {self.source} is unavailable ({self.reason}); "
            f"cannot read {'/'.join(path)}"
        )


def load_coefficient_table(path: str) -> CoefficientTable:
    """
    Load a coefficient document

    Args:
        path: JSON document path

    Returns:
        CoefficientTable, or MissingCoefficientTable when the document is missing or corrupt
    """
    try:
        with open(path, 'r') as f:
            document = json.load(f)
    except (OSError, ValueError) as e:
        debug_logger.warning('CoefficientTables', "Coefficient document unavailable",
                             {'path': path, 'reason': str(e)})
        return MissingCoefficientTable(path, str(e))
    if not isinstance(document, dict):
        return MissingCoefficientTable(path, "document root is not an object")
    debug_logger.info('CoefficientTables', "Coefficient document loaded", {'path': path})
    return CoefficientTable(document, path)


def bundled_document_path(kind: str) -> str:
    """Path of the reference document shipped with the package"""
    return os.path.join(os.path.dirname(__file__), BUNDLED_DOCUMENTS[kind])


_tables: Dict[str, CoefficientTable] = {}
_tables_lock = threading.Lock()


def get_coefficient_table(kind: str) -> CoefficientTable:
    """
    Get the process-wide table of a model family, loading it on first use

    Args:
        kind: 'train' or 'road'
    """
    table = _tables.get(kind)
    if table is not None:
        return table
    if kind not in BUNDLED_DOCUMENTS:
        raise ValueError(f"Unknown coefficient family: {kind}")
    with _tables_lock:
        table = _tables.get(kind)
        if table is None:
            from utils.settings_manager import get_settings_manager
            path = get_settings_manager().get_coefficient_path(kind) or bundled_document_path(kind)
            table = load_coefficient_table(path)
            _tables[kind] = table
    return table


def get_train_coefficients() -> CoefficientTable:
    return get_coefficient_table('train')


def get_road_coefficients() -> CoefficientTable:
    return get_coefficient_table('road')


def install_coefficient_table(kind: str, table: Optional[CoefficientTable]) -> None:
    """Replace (or with None, forget) the process-wide table of a model family"""
    with _tables_lock:
        if table is None:
            _tables.pop(kind, None)
        else:
            _tables[kind] = table
