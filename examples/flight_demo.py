#!/usr/bin/env python3
"""
Headless demo: build a terrain scene and fly a short scripted route.
"""

import numpy as np

from py_flightsim.config import Settings
from py_flightsim.core import FlightCommand
from py_flightsim.core.transforms import flatten
from py_flightsim.log_config import configure_logging
from py_flightsim.scene import TerrainScene

ROUTE = [
    FlightCommand.FORWARD,
    FlightCommand.FORWARD,
    FlightCommand.YAW_LEFT,
    FlightCommand.YAW_LEFT,
    FlightCommand.FORWARD,
    FlightCommand.PITCH_DOWN,
    FlightCommand.PITCH_DOWN,
    FlightCommand.PITCH_DOWN,
    FlightCommand.FORWARD,
    FlightCommand.FORWARD,
    FlightCommand.ROLL_RIGHT,
    FlightCommand.BACKWARD,
]


def main():
    """Demonstrate terrain generation and collision-gated flight."""
    settings = Settings(terrain_seed=1234, log_format="plain")
    configure_logging(settings)

    print("Py-FlightSim Demo")
    print("=" * 40)

    scene = TerrainScene.build(settings)
    heights = scene.heights

    print(f"\nGrid: {heights.shape[0]}x{heights.shape[1]}")
    print(f"Vertices: {scene.mesh.vertex_count}")
    print(f"Strip indices: {scene.mesh.index_count}")
    print(f"Height range: {scene.height_range:.4f}")
    print(f"Average height: {np.mean(heights):.4f}")

    print("\nRoute:")
    print("-" * 30)
    for command in ROUTE:
        moved = scene.handle_command(command)
        x, y, z = scene.viewpoint.position
        status = "ok" if moved else "BLOCKED"
        print(f"  {command.value:<11} {status:<8} pos=({x:+.3f}, {y:+.3f}, {z:+.3f})")

    mv = flatten(scene.model_view())
    proj = flatten(scene.projection(16 / 9))
    print(f"\nModel-view buffer: {mv.size} floats, projection buffer: {proj.size} floats")


if __name__ == "__main__":
    main()
