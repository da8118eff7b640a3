import logging
import math
import random
import threading
import time
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional, Union

from .channels import OutputSink
from .config import SimulatorConfig
from .constants import DEFAULT_INITIAL_SPEED
from .errors import FatalRuntimeError, StartupError
from .follower import PathFollower
from .kinematics import KinematicState
from .models import LocationHistory, LocationSample
from .routes import RouteConfig, RouteSource
from .smoothing import jitter_bearing, jitter_speed, smoothed_bearing

logger = logging.getLogger(__name__)


class SimulatorState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"


class _Run(object):
    '''
    Everything that lives for exactly one simulation run.

    Created by start(), owned by the tick thread, dropped when the run ends.
    '''

    def __init__(self, route: RouteSource, kinematics: KinematicState,
                 follower: PathFollower, history: LocationHistory, rng: random.Random):
        self.route = route
        self.kinematics = kinematics
        self.follower = follower
        self.history = history
        self.rng = rng
        self.ticks = 0
        self.tick_failures = 0
        self.publish_failures = 0
        self.last_sample: Optional[LocationSample] = None


class Simulator(object):
    '''
    Location simulator driving a route follower on a fixed tick.

    Each tick advances the speed model, moves the follower along its route,
    smooths the bearing over the recent history, adds a little sensor noise
    and publishes the sample on every channel of the output sink.
    '''

    def __init__(self, sink: OutputSink, config: Optional[SimulatorConfig] = None,
                 clock: Callable[[], float] = time.monotonic,
                 rng: Optional[random.Random] = None,
                 on_error: Optional[Callable[[FatalRuntimeError], None]] = None):
        '''
        Initialise the simulator instance.

        Args:
            sink: Output sink receiving the samples
            config: Simulator parameters (defaults to SimulatorConfig())
            clock: Monotonic clock in seconds, used to measure tick deltas
            rng: Random generator for path, jitter and noise (new one per run if None)
            on_error: Called once with the error when a run dies of a fatal error
        '''
        self.sink = sink
        self.config = config or SimulatorConfig()
        self.on_error = on_error
        self.last_error: Optional[FatalRuntimeError] = None
        self.last_sample: Optional[LocationSample] = None

        self._clock = clock
        self._rng = rng
        self.lock = threading.Lock()  # kinematic fields shared with callers
        self._state_lock = threading.Lock()
        self._stop_event = threading.Event()
        self.__worker: Optional[threading.Thread] = None
        self._state = SimulatorState.STOPPED
        self._run: Optional[_Run] = None

    # ------------------------------------------------------------------
    # Run setup

    def _prepare(self, route: Union[RouteConfig, RouteSource], initial_speed: float) -> _Run:
        if isinstance(route, RouteConfig):
            source = route.build()
        elif isinstance(route, RouteSource):
            source = route
        else:
            raise StartupError(f"Unsupported route type: {type(route).__name__}")

        cfg = self.config
        rng = self._rng if self._rng is not None else random.Random()
        kinematics = KinematicState.from_config(cfg, target_speed=initial_speed)
        follower = PathFollower(
            source,
            stationary_speed=cfg.stationary_speed,
            stationary_jitter_degrees=cfg.stationary_jitter_degrees,
            accuracy=cfg.accuracy_meters,
            rng=rng,
        )
        follower.reset()
        return _Run(source, kinematics, follower, LocationHistory(cfg.history_size), rng)

    # ------------------------------------------------------------------
    # Control surface

    def start(self, route: Union[RouteConfig, RouteSource],
              initial_speed: float = DEFAULT_INITIAL_SPEED) -> bool:
        '''
        Start the tick thread for a new run.

        Returns:
            True if a run was started, False if one was already running

        Raises:
            InvalidRouteError: the route is empty, single-point or malformed
        '''
        with self._state_lock:
            if self._state is SimulatorState.RUNNING:
                logger.info("Simulation already running")
                return False

            run = self._prepare(route, initial_speed)
            stop_event = threading.Event()
            worker = threading.Thread(
                target=self.__action,
                args=(run, stop_event),
                name="mock-location-tick",
                daemon=True,
            )
            self._stop_event = stop_event
            self._run = run
            self.last_error = None
            self.last_sample = None
            self.__worker = worker
            self._state = SimulatorState.RUNNING
            worker.start()

        logger.info("Simulation started (%s route, initial speed %.2f m/s)",
                    run.route.get_status().get("type"), run.kinematics.target_speed)
        return True

    def stop(self) -> bool:
        '''
        Stop the tick thread and wait for it to finish.

        Safe to call from any thread and any number of times. When it returns
        (from a thread other than the tick thread) no further sample will be
        published.

        Returns:
            True if a running simulation was asked to stop
        '''
        with self._state_lock:
            worker = self.__worker
            if self._state is SimulatorState.STOPPED and (worker is None or not worker.is_alive()):
                return False
            self._stop_event.set()

        if worker is not None and worker is not threading.current_thread():
            while worker.is_alive():
                worker.join(0.1)
        logger.info("Simulation stopped")
        return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        '''
        Block until the current run ends (stop() or a fatal error).

        Returns:
            True if no run is active any more
        '''
        worker = self.__worker
        if worker is None:
            return True
        deadline = None if timeout is None else time.monotonic() + timeout
        while worker.is_alive():
            remaining = 60 if deadline is None else deadline - time.monotonic()
            if remaining <= 0:
                return False
            worker.join(min(remaining, 60))
        return True

    def set_target_speed(self, speed: float) -> Optional[float]:
        '''
        Set the speed the body converges to, clamped to [0, max_speed].

        Returns:
            The stored target speed, or None when no run is active
        '''
        with self.lock:
            run = self._run
            if run is None:
                logger.debug("set_target_speed(%s) ignored, simulation not running", speed)
                return None
            return run.kinematics.set_target_speed(speed)

    def toggle_pause(self) -> Optional[bool]:
        '''
        Pause or resume. A paused body decelerates to a standstill.

        Returns:
            The new paused flag, or None when no run is active
        '''
        with self.lock:
            run = self._run
            if run is None:
                logger.debug("toggle_pause ignored, simulation not running")
                return None
            paused = run.kinematics.toggle_pause()
        logger.info("Simulation %s", "paused" if paused else "resumed")
        return paused

    # ------------------------------------------------------------------
    # State

    @property
    def state(self) -> SimulatorState:
        return self._state

    def is_running(self) -> bool:
        return self._state is SimulatorState.RUNNING

    @property
    def is_paused(self) -> bool:
        run = self._run
        return run is not None and run.kinematics.paused

    def get_status(self) -> Dict[str, Any]:
        '''Status information for display/debugging.'''
        run = self._run
        status: Dict[str, Any] = {
            "state": self._state.value,
            "interval_s": self.config.interval_seconds,
            "last_error": self.last_error.to_dict() if self.last_error else None,
            "last_sample": self.last_sample.to_dict() if self.last_sample else None,
        }
        if run is not None:
            with self.lock:
                status.update(run.kinematics.get_status())
            status.update({
                "ticks": run.ticks,
                "tick_failures": run.tick_failures,
                "publish_failures": run.publish_failures,
                "follower": run.follower.get_status(),
                "route": run.route.get_status(),
            })
        return status

    # ------------------------------------------------------------------
    # Tick

    def _tick(self, run: _Run, dt: float, timestamp: Optional[datetime] = None) -> LocationSample:
        '''
        Compute one sample: speed update, follower step, bearing smoothing
        and jitter. Does not publish.
        '''
        cfg = self.config
        with self.lock:
            speed = run.kinematics.advance(dt)

        raw = run.follower.next_sample(speed, dt, timestamp)
        run.history.push(raw)

        bearing = smoothed_bearing(run.history.bearings())
        reported_speed = speed if speed > cfg.reporting_speed_floor else 0.0
        sample = replace(
            raw,
            speed=jitter_speed(reported_speed, cfg.speed_jitter, run.rng),
            bearing=jitter_bearing(bearing, cfg.bearing_jitter, run.rng),
        )

        run.ticks += 1
        run.last_sample = sample
        return sample

    def _publish(self, sample: LocationSample, run: Optional[_Run] = None,
                 stop_event: Optional[threading.Event] = None) -> int:
        '''
        Publish a sample on every active channel. A failing channel is logged
        and skipped; the others still receive the sample.

        Returns:
            Number of channels the sample was delivered to

        Raises:
            FatalRuntimeError: the sink cannot enumerate its channels
        '''
        try:
            channels = self.sink.channels()
        except Exception as e:
            raise FatalRuntimeError(f"Output sink unavailable: {e}",
                                    details={"exception": type(e).__name__}) from e

        delivered = 0
        for channel in channels:
            if stop_event is not None and stop_event.is_set():
                break
            try:
                self.sink.publish(sample, channel)
                delivered += 1
            except FatalRuntimeError:
                raise
            except Exception as e:
                if run is not None:
                    run.publish_failures += 1
                logger.warning("Failed to publish to channel %s: %s", channel, e)
        return delivered

    def _warmup(self, run: _Run, stop_event: threading.Event):
        '''Publish a few stationary fixes at the start point to settle consumers.'''
        count = self.config.warmup_samples
        start = run.follower.position
        for i in range(count):
            if stop_event.is_set():
                return
            offset = 0.000001 * (i - count // 2)
            sample = LocationSample.at(
                start.latitude + offset, start.longitude + offset,
                speed=0.0, bearing=0.0, accuracy=self.config.accuracy_meters)
            self._publish(sample, run, stop_event)
            stop_event.wait(self.config.warmup_interval_seconds)

    def __action(self, run: _Run, stop_event: threading.Event):
        ''' Tick thread: open the sink, warm up, then tick until stopped.
        '''
        fatal: Optional[FatalRuntimeError] = None
        try:
            self.sink.open()
            self._warmup(run, stop_event)

            last = self._clock()
            while not stop_event.is_set():
                start = self._clock()
                dt = max(0.0, start - last)
                last = start

                try:
                    sample = self._tick(run, dt, datetime.now(timezone.utc))
                    self.last_sample = sample
                except FatalRuntimeError:
                    raise
                except Exception as e:
                    run.tick_failures += 1
                    logger.warning("Tick %d failed: %s", run.ticks, e)
                else:
                    if not stop_event.is_set():
                        self._publish(sample, run, stop_event)

                elapsed = self._clock() - start
                if stop_event.wait(max(0.0, self.config.interval_seconds - elapsed)):
                    break
        except FatalRuntimeError as e:
            fatal = e
        except Exception as e:
            fatal = FatalRuntimeError(f"Simulation loop failed: {e}",
                                      details={"exception": type(e).__name__})
            fatal.__cause__ = e
        finally:
            try:
                self.sink.close()
            except Exception:
                logger.exception("Error closing output sink")

            if fatal is not None:
                self.last_error = fatal
                logger.error("Simulation stopped after fatal error: %s", fatal, exc_info=fatal)

            with self._state_lock:
                if self.__worker is threading.current_thread():
                    self._run = None
                    self._state = SimulatorState.STOPPED
            stop_event.set()

            if fatal is not None and self.on_error is not None:
                try:
                    self.on_error(fatal)
                except Exception:
                    logger.exception("on_error callback failed")

    # ------------------------------------------------------------------
    # Synchronous generation

    def _ensure_stopped(self):
        with self._state_lock:
            if self._state is SimulatorState.RUNNING:
                raise StartupError("Simulation already running")

    def get_output(self, route: Union[RouteConfig, RouteSource], duration: float,
                   initial_speed: float = DEFAULT_INITIAL_SPEED,
                   start_time: Optional[datetime] = None) -> Iterator[LocationSample]:
        ''' Instantaneous generator for the simulator.
        Yields one sample per simulated tick for ``duration`` seconds without
        sleeping and without publishing.
        '''
        self._ensure_stopped()
        run = self._prepare(route, initial_speed)
        interval = self.config.interval_seconds
        now = start_time or datetime.now(timezone.utc)
        ticks = int(math.ceil(duration / interval - 1e-9))
        for _ in range(ticks):
            yield self._tick(run, interval, now)
            now += timedelta(seconds=interval)

    def generate(self, route: Union[RouteConfig, RouteSource], duration: float,
                 initial_speed: float = DEFAULT_INITIAL_SPEED,
                 start_time: Optional[datetime] = None) -> List[LocationSample]:
        ''' Instantaneous generator for the simulator.
        Synchronously publishes ``duration`` seconds of samples to the sink.
        '''
        self._ensure_stopped()
        samples = []
        self.sink.open()
        try:
            for sample in self.get_output(route, duration, initial_speed, start_time):
                self._publish(sample)
                samples.append(sample)
        finally:
            self.sink.close()
        return samples
