"""Tests for the startup pipeline and configuration."""

import pytest
import numpy as np
from pydantic import ValidationError
from py_flightsim.config import Settings
from py_flightsim.core import FlightCommand
from py_flightsim.core.errors import InvalidArgumentError
from py_flightsim.scene import TerrainScene
from py_flightsim.utils.random import constant_source


class TestTerrainScene:
    """Test scene construction from settings."""

    @pytest.fixture
    def settings(self):
        return Settings(terrain_detail=4, terrain_roughness=0.003, terrain_seed=21)

    @pytest.fixture
    def scene(self, settings):
        return TerrainScene.build(settings)

    def test_buffers(self, scene):
        """Test the buffers handed to the renderer."""
        size = 17
        assert scene.heights.shape == (size, size)
        assert scene.vertices.shape == (size * size, 4)
        assert scene.normals.shape == (size * size, 4)
        assert len(scene.indices) == 2 * size * (size - 1) + 2 * (size - 2)
        assert scene.indices.max() < size * size

    def test_height_range(self, scene):
        heights = scene.vertices[:, 1]
        assert scene.height_range == pytest.approx(float(heights.max() - heights.min()))
        assert scene.height_range >= 0

    def test_buffers_are_read_only(self, scene):
        """Test that generated data cannot be modified after startup."""
        for array in (scene.heights, scene.vertices, scene.indices, scene.normals):
            assert not array.flags.writeable

    def test_start_position(self, scene, settings):
        """Test that the viewpoint starts just above the terrain centre."""
        centre = scene.heights[8, 8]
        np.testing.assert_allclose(
            scene.viewpoint.position, [0, float(centre) + settings.start_altitude, 0], atol=1e-6
        )
        assert scene.viewpoint.scale == settings.initial_scale

    def test_seed_reproduces_terrain(self, settings):
        first = TerrainScene.build(settings)
        second = TerrainScene.build(settings)

        np.testing.assert_array_equal(first.heights, second.heights)

    def test_explicit_random_source(self, settings):
        """Test that an injected source overrides the seed."""
        scene = TerrainScene.build(settings, random=constant_source(0.5))

        assert np.all(scene.heights == 0)
        assert scene.height_range == 0

    def test_projection(self, scene):
        p = scene.projection(4 / 3)
        assert p.shape == (4, 4)
        assert p[3, 2] == -1

    def test_commands_update_model_view(self, scene):
        before = scene.model_view().copy()

        assert scene.handle_command(FlightCommand.YAW_RIGHT)

        assert not np.array_equal(before, scene.model_view())

    def test_refuses_invalid_terrain_parameters(self):
        """Test that startup fails before generating anything."""
        bad = Settings.model_construct(terrain_detail=-1)

        with pytest.raises(InvalidArgumentError):
            TerrainScene.build(bad)


class TestSettings:
    """Test configuration loading and validation."""

    def test_defaults(self):
        settings = Settings()

        assert settings.terrain_detail == 7
        assert settings.terrain_roughness == 0.003
        assert settings.proximity_radius == 0.2
        assert settings.collision_threshold == 0.2
        assert settings.no_collision_distance == 1.0
        assert settings.rotation_step == 6.0
        assert settings.move_step == 0.05

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("FLIGHTSIM_TERRAIN_DETAIL", "5")
        monkeypatch.setenv("FLIGHTSIM_TERRAIN_SEED", "99")

        settings = Settings()

        assert settings.terrain_detail == 5
        assert settings.terrain_seed == 99

    @pytest.mark.parametrize("field,value", [
        ("terrain_detail", -1),
        ("terrain_roughness", 0),
        ("proximity_radius", -0.2),
        ("move_step", 0),
    ])
    def test_invalid_values(self, field, value):
        with pytest.raises(ValidationError):
            Settings(**{field: value})


class TestLogging:
    """Test structlog configuration."""

    @pytest.mark.parametrize("log_format", ["json", "plain"])
    def test_configure_logging(self, log_format):
        import structlog
        from py_flightsim.log_config import configure_logging

        configure_logging(Settings(log_format=log_format, log_level="DEBUG"))
        logger = structlog.get_logger("py_flightsim.test")

        logger.info("Logging configured", log_format=log_format)
        assert structlog.is_configured()
