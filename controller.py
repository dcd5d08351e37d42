import logging
from typing import Callable, List, Optional

from wealth_simulation import (
    Economy, BreadEconomy, SimulationConfig, SimulationState, StepOutcome
)

logger = logging.getLogger(__name__)


class AutoPlayer:
    """
    Periodic stepping through a cancellable timer handle.

    timer_factory(interval_ms) must return an object with add_callback(),
    start() and stop(), which is what matplotlib's canvas.new_timer() hands back.
    """

    def __init__(self, timer_factory: Callable, on_tick: Callable[[], None], interval_ms: int = 500):
        self.timer_factory = timer_factory
        self.on_tick = on_tick
        self.interval_ms = interval_ms
        self._timer = None

    @property
    def active(self) -> bool:
        return self._timer is not None

    def start(self):
        if self.active:
            return
        self._timer = self.timer_factory(self.interval_ms)
        self._timer.add_callback(self.on_tick)
        self._timer.start()
        logger.info("Auto-play started at %d ms", self.interval_ms)

    def stop(self):
        if not self.active:
            return
        self._timer.stop()
        self._timer = None
        logger.info("Auto-play stopped")

    def set_interval(self, interval_ms: int):
        self.interval_ms = interval_ms
        if self.active:
            # Replace the running timer so two never overlap
            self._timer.stop()
            self._timer = None
            self.start()


class SimulationController:
    """
    Owns the simulation state for one economy and exposes the UI controls.
    Slider inputs are clamped here, before they reach the engine.
    """

    SPEED_RANGE = (50, 2000)            # ms
    REDISTRIBUTION_RANGE = (0.0, 100.0)  # %
    BREAD_FRACTION_RANGE = (0.5, 2.0)   # per mille of the economy
    BATCH_STEPS = 10

    def __init__(self, economy: Economy, config: Optional[SimulationConfig] = None,
                 timer_factory: Optional[Callable] = None):
        self.economy = economy
        self.config = config if config is not None else SimulationConfig()
        self.state: SimulationState = economy.reset(self.config)
        self.listeners: List[Callable[["SimulationController"], None]] = []
        self.auto_player = None
        if timer_factory is not None:
            self.attach_timer_factory(timer_factory)

    def attach_timer_factory(self, timer_factory: Callable):
        was_playing = self.is_auto_playing
        if self.auto_player is not None:
            self.auto_player.stop()
        self.auto_player = AutoPlayer(timer_factory, self.step, self.config.auto_play_speed)
        if was_playing:
            self._notify()

    def add_listener(self, listener: Callable[["SimulationController"], None]):
        self.listeners.append(listener)

    def _notify(self):
        for listener in self.listeners:
            listener(self)

    # --- Controls ---

    def step(self) -> StepOutcome:
        outcome = self.economy.step(self.state, self.config)
        self._notify()
        return outcome

    def step_multiple(self, n: int = BATCH_STEPS) -> Optional[StepOutcome]:
        outcome = self.economy.step_multiple(self.state, self.config, n)
        self._notify()
        return outcome

    def reset(self):
        self.stop_auto_play()
        self.state = self.economy.reset(self.config)
        self._notify()

    @property
    def is_auto_playing(self) -> bool:
        return self.auto_player is not None and self.auto_player.active

    def start_auto_play(self):
        if self.auto_player is None:
            raise ValueError("Auto-play needs a timer factory.")
        self.auto_player.start()

    def stop_auto_play(self):
        if self.auto_player is not None:
            self.auto_player.stop()

    def toggle_auto_play(self) -> bool:
        if self.is_auto_playing:
            self.stop_auto_play()
        else:
            self.start_auto_play()
        return self.is_auto_playing

    def set_speed(self, speed_ms: float) -> int:
        low, high = self.SPEED_RANGE
        speed = int(min(max(speed_ms, low), high))
        self.config.auto_play_speed = speed
        if self.auto_player is not None:
            self.auto_player.set_interval(speed)
        logger.info("Auto-play speed set to %d ms", speed)
        return speed

    def set_redistribution_percent(self, percent: float) -> float:
        low, high = self.REDISTRIBUTION_RANGE
        percent = min(max(percent, low), high)
        self.config.redistribution_rate = percent / 100
        logger.info("Redistribution rate set to %.0f%%", percent)
        self._notify()
        return self.config.redistribution_rate

    def set_bread_fraction(self, per_mille: float) -> float:
        """Bread price as per mille of the economy (0.5-2 maps to 0.0005-0.002)."""
        if not isinstance(self.economy, BreadEconomy):
            raise ValueError(f"{self.economy.name} has no bread price.")
        low, high = self.BREAD_FRACTION_RANGE
        per_mille = min(max(per_mille, low), high)
        self.config.bread_fraction = per_mille / 1000
        logger.info("Bread fraction set to %.4f%%", self.config.bread_fraction * 100)

        # Re-price without advancing; e0 keeps its baseline
        if self.state.step_index > 0:
            self.economy.recompute(self.state, self.config)
        self._notify()
        return self.config.bread_fraction

    def stats(self):
        return self.economy.get_stats(self.state, self.config)
