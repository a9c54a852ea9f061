"""Configuration management."""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # Terrain generation
    terrain_detail: int = Field(
        default=7, ge=0, le=10, description="Subdivision depth, grid side is 2**detail + 1"
    )
    terrain_roughness: float = Field(
        default=0.003, gt=0, description="Displacement amplitude per unit of step size"
    )
    terrain_seed: Optional[int] = Field(
        default=None, description="Seed for the terrain random source"
    )

    # Collision
    proximity_radius: float = Field(
        default=0.2, gt=0, description="Broad-phase radius around the viewpoint"
    )
    collision_threshold: float = Field(
        default=0.2, gt=0, description="Closest allowed hit distance for a committed move"
    )
    no_collision_distance: float = Field(
        default=1.0, gt=0, description="Distance reported when nothing was hit"
    )

    # Flight
    rotation_step: float = Field(default=6.0, description="Degrees per rotation command")
    move_step: float = Field(default=0.05, gt=0, description="Distance per move command")
    start_altitude: float = Field(
        default=0.03, description="Height above the terrain centre at startup"
    )
    initial_scale: float = Field(default=1.0, gt=0, description="Uniform view scale")

    # Projection
    field_of_view: float = Field(default=45.0, gt=0, lt=180, description="Vertical FOV in degrees")
    near_plane: float = Field(default=0.01, gt=0, description="Near clipping distance")
    far_plane: float = Field(default=10.0, gt=0, description="Far clipping distance")

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(default="json", description="Logging format (plain or json)")

    class Config:
        env_file = ".env"
        env_prefix = "FLIGHTSIM_"


settings = Settings()
