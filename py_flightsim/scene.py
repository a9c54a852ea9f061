"""Startup pipeline: terrain, mesh, normals and the flight controller."""

from dataclasses import dataclass
from typing import Optional, Union

import numpy as np
import structlog

from .config import Settings, settings as default_settings
from .core.collision import CollisionDetector
from .core.errors import InvalidArgumentError
from .core.flight import FlightCommand, FlightController, ViewpointState
from .core.heightfield import HeightFieldGenerator, validate_parameters
from .core.mesh import TerrainMesh, build_mesh, calc_normals
from .core import transforms
from .utils.random import RandomSource, get_random_source

logger = structlog.get_logger()


@dataclass
class TerrainScene:
    """
    Everything the renderer needs for one flight session.

    Grid, mesh and normals are generated once by ``build`` and never
    change; only the controller's viewpoint moves.
    """

    settings: Settings
    heights: np.ndarray
    mesh: TerrainMesh
    normals: np.ndarray
    height_range: float
    controller: FlightController

    @classmethod
    def build(
        cls, settings: Optional[Settings] = None, random: Optional[RandomSource] = None
    ) -> "TerrainScene":
        """
        Generate the terrain and place the viewpoint above its centre.

        Args:
            settings: Application settings, defaults to the module singleton
            random: Optional random source overriding ``settings.terrain_seed``

        Raises:
            InvalidArgumentError: If the terrain parameters are invalid
        """
        settings = settings or default_settings

        try:
            validate_parameters(settings.terrain_detail, settings.terrain_roughness)
        except InvalidArgumentError as e:
            logger.error("Refusing to start: invalid terrain parameters", error=str(e))
            raise

        if random is None:
            random = get_random_source(settings.terrain_seed)

        # Stage 1: Height field
        heights = HeightFieldGenerator(
            settings.terrain_detail, settings.terrain_roughness, random=random
        ).generate()

        # Stage 2: Mesh
        logger.info("Building terrain mesh")
        mesh = build_mesh(heights)
        mesh.vertices.setflags(write=False)
        mesh.indices.setflags(write=False)

        # Stage 3: Normals
        logger.info("Calculating vertex normals", vertices=mesh.vertex_count)
        normals = calc_normals(mesh.vertices, mesh.indices)
        normals.setflags(write=False)

        # Stage 4: Viewpoint just above the centre of the terrain
        centre = heights.shape[0] // 2
        start = np.array(mesh.vertices[centre * heights.shape[1] + centre, :3], dtype=np.float64)
        start[1] += settings.start_altitude
        state = ViewpointState(position=start, scale=settings.initial_scale)

        controller = FlightController(
            CollisionDetector(mesh, proximity_radius=settings.proximity_radius),
            state=state,
            rotation_step=settings.rotation_step,
            move_step=settings.move_step,
            collision_threshold=settings.collision_threshold,
            no_collision_distance=settings.no_collision_distance,
        )

        scene = cls(
            settings=settings,
            heights=heights,
            mesh=mesh,
            normals=normals,
            height_range=mesh.height_range(),
            controller=controller,
        )
        logger.info(
            "Terrain scene ready",
            indices=mesh.index_count,
            height_range=scene.height_range,
            start=start.tolist(),
        )
        return scene

    @property
    def vertices(self) -> np.ndarray:
        return self.mesh.vertices

    @property
    def indices(self) -> np.ndarray:
        return self.mesh.indices

    @property
    def viewpoint(self) -> ViewpointState:
        return self.controller.state

    def model_view(self) -> np.ndarray:
        return self.controller.model_view

    def projection(self, aspect: float) -> np.ndarray:
        """Perspective projection for a viewport of the given aspect ratio."""
        return transforms.perspective(
            self.settings.field_of_view, aspect, self.settings.near_plane, self.settings.far_plane
        )

    def handle_command(self, command: Union[FlightCommand, str]) -> bool:
        return self.controller.handle_command(command)
