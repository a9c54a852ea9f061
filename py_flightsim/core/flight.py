"""
Viewpoint state and collision-gated flight control.

The viewpoint position is stored in model space (the same space as the
mesh vertices). The model-view transform moves the world by the negated
position, then applies the orientation and the uniform scale.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

import numpy as np
import structlog

from . import transforms
from .collision import CollisionDetector
from .errors import InvalidArgumentError

logger = structlog.get_logger()


class FlightCommand(str, Enum):
    """Discrete inputs understood by the flight controller."""

    FORWARD = "forward"
    BACKWARD = "backward"
    YAW_LEFT = "yaw_left"
    YAW_RIGHT = "yaw_right"
    PITCH_UP = "pitch_up"
    PITCH_DOWN = "pitch_down"
    ROLL_LEFT = "roll_left"
    ROLL_RIGHT = "roll_right"


@dataclass
class ViewpointState:
    """Orientation (degrees), model-space position and uniform scale."""

    pitch: float = 0.0
    yaw: float = 0.0
    roll: float = 0.0
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    scale: float = 1.0

    def __post_init__(self):
        self.position = np.array(self.position, dtype=np.float64).reshape(3)

    def orientation(self) -> np.ndarray:
        """Model-to-view rotation: roll . yaw . pitch."""
        return transforms.rotate_z(self.roll) @ transforms.rotate_y(self.yaw) @ transforms.rotate_x(self.pitch)

    def inverse_orientation(self) -> np.ndarray:
        """View-to-model rotation, the exact inverse of ``orientation``."""
        return transforms.rotate_x(-self.pitch) @ transforms.rotate_y(-self.yaw) @ transforms.rotate_z(-self.roll)

    def model_view(self) -> np.ndarray:
        x, y, z = self.position
        mv = self.orientation() @ transforms.translate(-x, -y, -z)
        return transforms.scale(self.scale, self.scale, self.scale) @ mv


class FlightController:
    """
    Turns flight commands into viewpoint changes.

    Rotations are applied directly. Translations are proposed as a segment
    from the current position and committed only when the nearest terrain
    intersection along it is further than ``collision_threshold``.
    """

    def __init__(
        self,
        detector: CollisionDetector,
        state: Optional[ViewpointState] = None,
        rotation_step: float = 6.0,
        move_step: float = 0.05,
        collision_threshold: float = 0.2,
        no_collision_distance: float = 1.0,
    ):
        self.detector = detector
        self.state = state if state is not None else ViewpointState()
        self.rotation_step = rotation_step
        self.move_step = move_step
        self.collision_threshold = collision_threshold
        self.no_collision_distance = no_collision_distance
        self._model_view = self.state.model_view()

    @property
    def model_view(self) -> np.ndarray:
        """Current model-view matrix, refreshed after every command."""
        return self._model_view

    def travel_vector(self, delta: float) -> np.ndarray:
        """Local (0, 0, delta) rotated into model space, as a 4-vector with w = 0."""
        return self.state.inverse_orientation() @ np.array([0.0, 0.0, delta, 0.0])

    def attempt_move(self, delta: float) -> bool:
        """
        Move ``delta`` along the local z axis unless terrain is in the way.

        Returns:
            True if the position changed
        """
        direction = self.travel_vector(delta)
        closest = self.detector.closest_hit_distance(
            self.state.position, direction, default=self.no_collision_distance
        )

        if closest > self.collision_threshold:
            self.state.position = self.state.position + direction[:3]
            logger.debug("Move committed", delta=delta, position=self.state.position.tolist())
            self._model_view = self.state.model_view()
            return True

        logger.info("Move blocked by terrain", delta=delta, distance=closest)
        return False

    def rotate(self, pitch: float = 0.0, yaw: float = 0.0, roll: float = 0.0) -> None:
        """Add orientation deltas in degrees. Never collision-checked."""
        self.state.pitch += pitch
        self.state.yaw += yaw
        self.state.roll += roll
        self._model_view = self.state.model_view()

    def set_scale(self, value: float) -> None:
        """Set the uniform view scale."""
        if value <= 0:
            raise InvalidArgumentError(f"scale must be > 0, got {value}")
        self.state.scale = float(value)
        self._model_view = self.state.model_view()

    def handle_command(self, command: Union[FlightCommand, str]) -> bool:
        """
        Apply one discrete command.

        Forward is a step along -z, the direction the camera looks.

        Returns:
            True if the viewpoint changed
        """
        try:
            command = FlightCommand(command)
        except ValueError:
            raise InvalidArgumentError(f"Unknown flight command: {command!r}") from None

        step = self.rotation_step
        if command is FlightCommand.FORWARD:
            return self.attempt_move(-self.move_step)
        if command is FlightCommand.BACKWARD:
            return self.attempt_move(self.move_step)
        if command is FlightCommand.YAW_LEFT:
            self.rotate(yaw=-step)
        elif command is FlightCommand.YAW_RIGHT:
            self.rotate(yaw=step)
        elif command is FlightCommand.PITCH_UP:
            self.rotate(pitch=-step)
        elif command is FlightCommand.PITCH_DOWN:
            self.rotate(pitch=step)
        elif command is FlightCommand.ROLL_LEFT:
            self.rotate(roll=-step)
        elif command is FlightCommand.ROLL_RIGHT:
            self.rotate(roll=step)
        return True
