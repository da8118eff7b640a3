"""
Speed model with bounded acceleration.

The body never jumps to a new speed: each tick the current speed moves
toward the target by at most ``acceleration_rate * dt``, and while paused it
decays toward zero at ``deceleration_rate``.
"""

from typing import Any, Dict


class KinematicState:
    """Current vs. target speed of the simulated body, in m/s."""

    def __init__(self, max_speed: float = 1.0, acceleration_rate: float = 0.3,
                 deceleration_rate: float = 0.5, epsilon: float = 0.01,
                 current_speed: float = 0.0, target_speed: float = 0.0):
        self.max_speed = max_speed
        self.acceleration_rate = acceleration_rate
        self.deceleration_rate = deceleration_rate
        self.epsilon = epsilon
        self.current_speed = max(0.0, current_speed)
        self.target_speed = 0.0
        self.paused = False
        self.set_target_speed(target_speed)

    @classmethod
    def from_config(cls, config, target_speed: float = 0.0) -> 'KinematicState':
        return cls(
            max_speed=config.max_speed,
            acceleration_rate=config.acceleration_rate,
            deceleration_rate=config.deceleration_rate,
            epsilon=config.speed_epsilon,
            target_speed=target_speed,
        )

    def set_target_speed(self, speed: float) -> float:
        """Store the target speed clamped to [0, max_speed] and return it."""
        self.target_speed = min(max(0.0, float(speed)), self.max_speed)
        return self.target_speed

    def toggle_pause(self) -> bool:
        """Flip the paused flag. Only future speed convergence is affected."""
        self.paused = not self.paused
        return self.paused

    def advance(self, dt: float) -> float:
        """Update the current speed for ``dt`` seconds of elapsed time."""
        dt = max(0.0, dt)
        if self.paused:
            self.current_speed = max(0.0, self.current_speed - self.deceleration_rate * dt)
            return self.current_speed

        diff = self.target_speed - self.current_speed
        if abs(diff) > self.epsilon:
            max_change = self.acceleration_rate * dt
            step = min(max(diff, -max_change), max_change)
            # A step covering the whole gap lands exactly on the target
            if abs(step) >= abs(diff):
                self.current_speed = self.target_speed
            else:
                self.current_speed += step
        else:
            self.current_speed = self.target_speed
        return self.current_speed

    def get_status(self) -> Dict[str, Any]:
        return {
            "current_speed": self.current_speed,
            "target_speed": self.target_speed,
            "max_speed": self.max_speed,
            "paused": self.paused,
        }
