"""
Mock Location

This package simulates a body walking or running along a route and produces
a continuous stream of plausible position fixes for location consumers.
"""

__version__ = "1.0.0"

from .channels import OutputSink, StreamSink, FileSink, MemorySink
from .config import SimulatorConfig, load_config
from .errors import (
    MockLocationError, StartupError, InvalidRouteError, PerTickError,
    PublishError, FatalRuntimeError,
)
from .follower import PathFollower
from .kinematics import KinematicState
from .models import Waypoint, LocationSample, LocationHistory, FollowerState
from .routes import RouteSource, FixedPath, ProceduralPath, RouteConfig
from .simulator import Simulator, SimulatorState
from . import geodesy

__all__ = [
    'Simulator',
    'SimulatorState',
    'SimulatorConfig',
    'load_config',
    'RouteConfig',
    'RouteSource',
    'FixedPath',
    'ProceduralPath',
    'PathFollower',
    'KinematicState',
    'Waypoint',
    'LocationSample',
    'LocationHistory',
    'FollowerState',
    'OutputSink',
    'StreamSink',
    'FileSink',
    'MemorySink',
    'MockLocationError',
    'StartupError',
    'InvalidRouteError',
    'PerTickError',
    'PublishError',
    'FatalRuntimeError',
    'geodesy',
]
