"""
Tabular source readers - pandas DataFrames and SQLAlchemy tables

Column names are matched case-insensitively. The schema of a table is
discovered once, on first use, and shared by every row of that table.
"""

import math
import threading
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

import pandas as pd
from shapely import wkb, wkt
from shapely.errors import ShapelyError
from shapely.geometry.base import BaseGeometry
from sqlalchemy import MetaData, Table, select
from sqlalchemy.engine import Engine

from calculations.debug_logger import debug_logger


# Geometry column names tried when none is configured
GEOMETRY_FIELD_CANDIDATES = ("THE_GEOM", "GEOM", "GEOMETRY")


class SourceSchema:
    """Upper-cased column name -> column position"""

    def __init__(self, field_names: Sequence[str]):
        self.field_names = [str(name) for name in field_names]
        self.positions: Dict[str, int] = {}
        for position, name in enumerate(self.field_names):
            self.positions.setdefault(name.upper(), position)

    def has(self, name: str) -> bool:
        return name.upper() in self.positions

    def position(self, name: str) -> Optional[int]:
        return self.positions.get(name.upper())

    def find_geometry_field(self) -> Optional[str]:
        for candidate in GEOMETRY_FIELD_CANDIDATES:
            if candidate in self.positions:
                return candidate
        return None

    def __len__(self):
        return len(self.field_names)


class RowView:
    """Typed, case-insensitive access to the values of one source row"""

    def __init__(self, schema: SourceSchema, values: Sequence[Any], geometry_field: Optional[str] = None):
        self.schema = schema
        self.values = values
        self.geometry_field = geometry_field

    def has(self, name: str) -> bool:
        return self.schema.has(name)

    def get_value(self, name: str, default: Any = None) -> Any:
        position = self.schema.position(name)
        if position is None:
            return default
        value = self.values[position]
        if value is None or (isinstance(value, float) and math.isnan(value)):
            return default
        return value

    def get_double(self, name: str, default: float = 0.0) -> float:
        value = self.get_value(name)
        if value is None:
            return default
        try:
            return float(value)
        except (TypeError, ValueError):
            return default

    def get_int(self, name: str, default: int = 0) -> int:
        value = self.get_value(name)
        if value is None:
            return default
        try:
            return int(float(value))
        except (TypeError, ValueError):
            return default

    def get_string(self, name: str, default: Optional[str] = None) -> Optional[str]:
        value = self.get_value(name)
        if value is None:
            return default
        return str(value)

    def get_geometry(self, name: Optional[str] = None) -> Optional[BaseGeometry]:
        """
        Geometry of the row

        Args:
            name: Geometry column; defaults to the table geometry column

        Returns:
            shapely geometry, or None when absent or unreadable
        """
        field_name = name or self.geometry_field
        if not field_name:
            return None
        return to_geometry(self.get_value(field_name))


def to_geometry(value: Any) -> Optional[BaseGeometry]:
    """Convert a shapely object, WKT text or WKB bytes to a shapely geometry"""
    if value is None or isinstance(value, BaseGeometry):
        return value
    try:
        if isinstance(value, (bytes, bytearray, memoryview)):
            return wkb.loads(bytes(value))
        if isinstance(value, str):
            text = value.strip()
            if text and all(c in "0123456789abcdefABCDEF" for c in text):
                return wkb.loads(text, hex=True)
            return wkt.loads(text)
    except (ShapelyError, ValueError, TypeError) as e:
        debug_logger.debug('TableSource', "Unreadable geometry", {'error': str(e)})
        return None
    return None


class TableSource:
    """
    Base class of a table of emission sources

    Subclasses provide the column names and an iterator over row values.
    """

    def __init__(self, name: str, id_field: Optional[str] = None, geometry_field: Optional[str] = None):
        self.name = name
        self.id_field = id_field
        self._geometry_field = geometry_field
        self._schema: Optional[SourceSchema] = None
        self._schema_lock = threading.Lock()
        self.schema_discoveries = 0

    def _discover_field_names(self) -> List[str]:
        raise NotImplementedError

    def _iter_values(self) -> Iterator[Sequence[Any]]:
        raise NotImplementedError

    @property
    def schema(self) -> SourceSchema:
        """Schema of the table, discovered once under concurrent first use"""
        schema = self._schema
        if schema is not None:
            return schema
        with self._schema_lock:
            if self._schema is None:
                self._schema = SourceSchema(self._discover_field_names())
                self.schema_discoveries += 1
                debug_logger.debug('TableSource', "Schema discovered",
                                   {'table': self.name, 'fields': self._schema.field_names})
            return self._schema

    @property
    def geometry_field(self) -> Optional[str]:
        return self._geometry_field or self.schema.find_geometry_field()

    def row_view(self, values: Sequence[Any]) -> RowView:
        return RowView(self.schema, values, self.geometry_field)

    def rows(self) -> Iterator[Tuple[Any, RowView]]:
        """
        Iterate over the table

        Yields:
            (source id, row) pairs; the id comes from id_field when the table
            has it, from the row position otherwise
        """
        schema = self.schema
        use_id_field = bool(self.id_field) and schema.has(self.id_field)
        for position, values in enumerate(self._iter_values()):
            row = self.row_view(values)
            source_id = row.get_value(self.id_field) if use_id_field else position
            yield source_id, row


class DataFrameTableSource(TableSource):
    """Sources held in a pandas DataFrame"""

    def __init__(self, frame: pd.DataFrame, name: str = "dataframe", id_field: Optional[str] = None,
                 geometry_field: Optional[str] = None):
        super().__init__(name, id_field, geometry_field)
        self.frame = frame

    def _discover_field_names(self) -> List[str]:
        return [str(column) for column in self.frame.columns]

    def _iter_values(self) -> Iterator[Sequence[Any]]:
        for values in self.frame.itertuples(index=False, name=None):
            yield values


class SQLTableSource(TableSource):
    """Sources stored in a database table, read through SQLAlchemy"""

    def __init__(self, engine: Engine, table_name: str, id_field: Optional[str] = None,
                 geometry_field: Optional[str] = None, schema_name: Optional[str] = None):
        super().__init__(table_name, id_field, geometry_field)
        self.engine = engine
        self.schema_name = schema_name
        self._table: Optional[Table] = None

    @property
    def table(self) -> Table:
        if self._table is None:
            self._table = Table(self.name, MetaData(), autoload_with=self.engine, schema=self.schema_name)
        return self._table

    def _discover_field_names(self) -> List[str]:
        return [column.name for column in self.table.columns]

    def _iter_values(self) -> Iterator[Sequence[Any]]:
        with self.engine.connect() as connection:
            result = connection.execute(select(self.table))
            for record in result:
                yield tuple(record)
