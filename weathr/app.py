"""
Frame loop - the single render thread.

Per tick: poll a key, take the newest weather update, follow terminal
resizes, compute the sky, rebuild the scene if its inputs changed, advance
the particles, compose and write one frame.
"""

from __future__ import annotations

import logging
import signal
import sys
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Mapping, Optional, TextIO

from .config import ResolvedConfig, SimulateOverride
from .core import scene, sky
from .core.channel import LatestValue
from .core.conditions import WeatherCondition
from .core.scene import SceneDescriptor
from .core.terminal import TerminalCapability, TerminalError, TerminalSession, detect
from .elements.registry import ELEMENTS_DIR, ElementRegistry, default_registry
from .services.feed import FeedUpdate, SimulatedFeed, WeatherFeed
from .services.weather import WeatherObservation, format_coordinates, wind_bias
from .simulation.engine import ParticleEngine
from .simulation.particle import Bounds
from .widget.compositor import FrameCompositor
from .widget.hud import HudData
from .widget.output import encode_frame
from .widget.pipeline import FrameBuffer

logger = logging.getLogger(__name__)

QUIT_KEYS = frozenset({"q", "Q", "\x03"})


class LoopState(Enum):
    RUNNING = "running"
    QUITTING = "quitting"


class FrameLoop:
    """
    Drives one animation session on an already-entered TerminalSession.

    Collaborators are injectable so tests can run ``step`` against a fake
    session without a tty.
    """

    def __init__(
        self,
        config: ResolvedConfig,
        session: TerminalSession,
        channel: LatestValue,
        simulate: Optional[SimulateOverride] = None,
        *,
        registry: Optional[ElementRegistry] = None,
        engine: Optional[ParticleEngine] = None,
        compositor: Optional[FrameCompositor] = None,
        env: Optional[Mapping[str, str]] = None,
        clock: Callable[[], float] = time.monotonic,
        now: Optional[Callable[[], datetime]] = None,
        coordinates: Optional[Callable[[], tuple]] = None,
    ):
        self.config = config
        self.session = session
        self.channel = channel
        self.simulate = simulate
        self.env = env
        self.clock = clock
        self.now = now or (lambda: datetime.now(timezone.utc))
        self.coordinates = coordinates or (lambda: (config.latitude, config.longitude))

        self.registry = registry if registry is not None else default_registry()
        self.engine = engine or ParticleEngine(seed=config.seed, registry=self.registry)
        width, height = session.size()
        self.compositor = compositor or FrameCompositor(
            width, height, registry=self.registry, archetypes=self.engine.archetypes,
        )
        self.capability: TerminalCapability = detect(env)

        self.state = LoopState.RUNNING
        self.observation: Optional[WeatherObservation] = None
        self.hud = HudData.loading(self._location_label())
        self.descriptor: Optional[SceneDescriptor] = None
        self._scene_key: Optional[tuple] = None
        self.elapsed = 0.0
        self.frames = 0

    @property
    def running(self) -> bool:
        return self.state is LoopState.RUNNING

    def request_quit(self) -> None:
        if self.state is LoopState.RUNNING:
            logger.info("Quit requested")
        self.state = LoopState.QUITTING

    def handle_key(self, key: Optional[str]) -> None:
        if key is not None and key in QUIT_KEYS:
            self.request_quit()

    def apply_update(self, update: FeedUpdate) -> None:
        """Adopt a feed publication. Status-only updates keep the last observation."""
        self.hud = update.hud
        if update.observation is not None:
            self.observation = update.observation

    def _location_label(self) -> str:
        latitude, longitude = self.coordinates()
        if latitude is None or longitude is None:
            return ""
        return format_coordinates(latitude, longitude)

    # -------------------------------------------------------------------------
    # Per-tick pieces
    # -------------------------------------------------------------------------

    def _follow_size(self) -> Bounds:
        width, height = self.session.size()
        if (width, height) != (self.compositor.width, self.compositor.height):
            logger.debug("Terminal resized to %dx%d", width, height)
            self.compositor.resize(width, height)
            self.capability = detect(self.env)
        return Bounds(width, height)

    def _sky(self) -> sky.SkyState:
        latitude, longitude = self.coordinates()
        force_night = bool(self.simulate and self.simulate.force_night)
        fallback = self.observation.is_day if self.observation else True
        return sky.compute(latitude, longitude, self.now(), force_night=force_night, fallback_is_day=fallback)

    def _scene(self, is_day: bool) -> SceneDescriptor:
        if self.simulate is not None:
            condition = self.simulate.condition
        elif self.observation is not None:
            condition = self.observation.condition
        else:
            condition = WeatherCondition.CLEAR

        extras = set(self.config.extras)
        if self.simulate is not None:
            extras |= self.simulate.extras

        wind = 0.0
        if self.observation is not None:
            wind = wind_bias(self.observation.wind_speed, self.observation.wind_direction, self.config.units)

        key = (condition, is_day, frozenset(extras), round(wind, 3))
        if key != self._scene_key:
            self.descriptor = scene.build(condition, is_day, extras, wind=wind)
            self._scene_key = key
            logger.debug("Scene rebuilt: %s (%s)", condition.value, "day" if is_day else "night")
        return self.descriptor

    def step(self, dt: float) -> Optional[FrameBuffer]:
        """Run one tick. Returns the frame written, or None once quitting."""
        self.handle_key(self.session.read_key(0.0))
        if not self.running:
            return None

        update = self.channel.take()
        if update is not None:
            self.apply_update(update)

        # Element edits seen by the watcher are applied here, between frames
        if self.registry.apply_pending():
            logger.debug("Applied element changes")

        bounds = self._follow_size()
        sky_state = self._sky()
        descriptor = self._scene(sky_state.is_day)
        self.engine.tick(descriptor, dt, bounds)

        self.elapsed += max(dt, 0.0)
        frame = self.compositor.compose(
            sky_state,
            self.engine.snapshot(),
            self.hud,
            self.capability,
            hud_visible=not self.config.hide_hud,
            location_visible=not self.config.hide_location,
            elapsed=self.elapsed,
        )
        self.session.write(encode_frame(frame))
        self.frames += 1
        return frame

    def run(self) -> None:
        """Fixed-tick loop until a quit key or signal."""
        interval = self.config.frame_interval
        last = self.clock()
        while self.running:
            start = self.clock()
            self.step(start - last)
            last = start

            elapsed = self.clock() - start
            sleep_time = max(0, interval - elapsed)
            time.sleep(sleep_time)

    def close(self) -> None:
        """Unhook the engine and compositor from the element registry."""
        self.compositor.close()
        self.engine.close()


def _install_signal_handlers(loop: FrameLoop) -> dict:
    """Route SIGINT/SIGTERM to a graceful quit; returns the previous handlers."""

    def quit_handler(signum, frame):
        loop.request_quit()

    original = {}
    for sig in (signal.SIGTERM, signal.SIGINT):
        original[sig] = signal.signal(sig, quit_handler)
    return original


def _restore_signal_handlers(original: dict) -> None:
    for sig, handler in original.items():
        signal.signal(sig, handler)


def _create_registry(config: ResolvedConfig) -> ElementRegistry:
    """Packaged elements, with the configured directory layered on top."""
    if config.elements_dir is None:
        return default_registry()
    registry = ElementRegistry([ELEMENTS_DIR, config.elements_dir])
    registry.load_all()
    return registry


def run(
    config: ResolvedConfig,
    simulate: Optional[SimulateOverride] = None,
    *,
    stdin: Optional[TextIO] = None,
    stdout: Optional[TextIO] = None,
    env: Optional[Mapping[str, str]] = None,
) -> int:
    """Run the animation until the user quits.

    Returns:
        0 on a clean quit, 1 if the terminal could not be set up.
    """
    registry = _create_registry(config)
    if config.watch_elements:
        registry.start_watching()

    channel: LatestValue[FeedUpdate] = LatestValue()
    if simulate is not None:
        feed = SimulatedFeed(config, channel, simulate)
        coordinates = None
    else:
        feed = WeatherFeed(config, channel)

        def coordinates():
            return feed.coordinates

    session = TerminalSession(stdin, stdout)
    try:
        with session:
            loop = FrameLoop(config, session, channel, simulate, registry=registry, env=env, coordinates=coordinates)
            original = _install_signal_handlers(loop)
            try:
                feed.start()
                loop.run()
            finally:
                _restore_signal_handlers(original)
                loop.close()
    except TerminalError as exc:
        logger.error("Terminal setup failed: %s", exc)
        print(f"weathr: {exc}", file=sys.stderr)
        return 1
    finally:
        feed.stop()
        registry.stop_watching()

    logger.info("Exited after %d frames", loop.frames)
    return 0
