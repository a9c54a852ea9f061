"""
Core terrain and flight functionality.
"""

from .errors import InvalidArgumentError
from .heightfield import HeightFieldGenerator, generate_terrain, median_filter_3x3
from .mesh import TerrainMesh, build_mesh, calc_normals
from .collision import CollisionDetector, intersect_segment_triangle
from .flight import FlightCommand, FlightController, ViewpointState

__all__ = ['InvalidArgumentError', 'HeightFieldGenerator', 'generate_terrain', 'median_filter_3x3',
           'TerrainMesh', 'build_mesh', 'calc_normals',
           'CollisionDetector', 'intersect_segment_triangle',
           'FlightCommand', 'FlightController', 'ViewpointState']
