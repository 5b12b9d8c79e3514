"""
Geometry utilities for road sources

Derives the gradient of a road segment from its geometry and a terrain
elevation collaborator. Geometries are shapely objects.
"""

import math
from typing import Optional, Protocol

from shapely.geometry.base import BaseGeometry

from .debug_logger import debug_logger


class TerrainProvider(Protocol):
	"""Anything able to answer the ground elevation at a planar position"""

	def get_height_at_position(self, x: float, y: float) -> float:
		...


def compute_slope(z0: float, z1: float, length: float) -> float:
	"""Gradient in percent between two elevations separated by length metres.
	Returns 0 for a degenerate length.
	"""
	if not length or length <= 0:
		return 0.0
	return (z1 - z0) / length * 100.0


def segment_slope(geometry: Optional[BaseGeometry], terrain: Optional[TerrainProvider]) -> float:
	"""Slope (%) of a road source from the elevation of its first two vertices.

	- geometry: source line geometry (shapely)
	- terrain: elevation collaborator, may be None

	Any missing input, NaN elevation or terrain failure yields a flat road.
	"""
	if geometry is None or terrain is None or geometry.is_empty:
		return 0.0
	try:
		coords = list(geometry.coords)
	except (AttributeError, NotImplementedError):
		# Multi-part geometries have no direct coordinate sequence
		coords = [c for part in getattr(geometry, 'geoms', []) for c in part.coords]
	if len(coords) < 2:
		return 0.0
	try:
		z0 = terrain.get_height_at_position(coords[0][0], coords[0][1])
		z1 = terrain.get_height_at_position(coords[1][0], coords[1][1])
	except Exception as e:
		debug_logger.debug('Geometry', "Terrain lookup failed, using flat road", {'error': str(e)})
		return 0.0
	if z0 is None or z1 is None or math.isnan(z0) or math.isnan(z1):
		return 0.0
	return compute_slope(z0, z1, geometry.length)
