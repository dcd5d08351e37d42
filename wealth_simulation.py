import logging
import numpy as np
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field, replace
from typing import List, Dict, Iterator, Optional, Tuple

logger = logging.getLogger(__name__)

# Agent colours; a1 (the accumulator) is red
COLORS = [
    '#e74c3c',
    '#3498db',
    '#2ecc71',
    '#f39c12',
    '#9b59b6',
    '#1abc9c',
    '#34495e',
    '#e67e22',
    '#95a5a6',
    '#16a085',
]


# --- Configuration ---

@dataclass
class SimulationConfig:
    num_agents: int = 10
    initial_value: float = 100.0
    growth_rate: float = 0.08           # a1 grows 8% per step
    redistribution_rate: float = 0.15   # share of a1's growth handed to the others
    bread_fraction: float = 0.001       # 0.1% of the economy buys one loaf
    max_history: int = 50
    auto_play_speed: int = 500          # ms between auto-play ticks

    def __post_init__(self):
        if self.num_agents < 2:
            raise ValueError("Need at least two agents (one accumulator plus recipients).")
        if self.initial_value <= 0:
            raise ValueError("Initial value must be positive.")
        if self.growth_rate < 0:
            raise ValueError("Growth rate cannot be negative.")
        if not 0.0 <= self.redistribution_rate <= 1.0:
            raise ValueError("Redistribution rate must be between 0 and 1.")
        if self.bread_fraction <= 0:
            raise ValueError("Bread fraction must be strictly positive.")
        if self.max_history < 1:
            raise ValueError("History must keep at least one snapshot.")
        if self.auto_play_speed <= 0:
            raise ValueError("Auto-play speed must be positive.")


# --- Agents & State ---

@dataclass
class Agent:
    id: int
    name: str
    nominal_value: float
    percentage: float
    bread_affordable: float = 0.0
    color: str = ''


def make_agents(config: SimulationConfig) -> List[Agent]:
    share = 100.0 / config.num_agents
    return [
        Agent(
            id=i,
            name=f"a{i + 1}",
            nominal_value=config.initial_value,
            percentage=share,
            color=COLORS[i % len(COLORS)],
        )
        for i in range(config.num_agents)
    ]


def copy_agents(agents: List[Agent]) -> List[Agent]:
    """Value copy of the agent list; every field is a scalar so replace() is enough."""
    return [replace(agent) for agent in agents]


@dataclass(frozen=True)
class HistoryPoint:
    step_index: int
    agent_name: str
    bread_affordable: float


class HistoryBuffer:
    """
    Bounded FIFO of per-step snapshots feeding the bread line chart.
    Each snapshot is a tuple of HistoryPoint, one per agent in agent order.
    """

    def __init__(self, max_length: int = 50):
        self.max_length = max_length
        self._snapshots = deque(maxlen=max_length)

    def push(self, snapshot: Tuple[HistoryPoint, ...]):
        self._snapshots.append(snapshot)

    def clear(self):
        self._snapshots.clear()

    def __len__(self) -> int:
        return len(self._snapshots)

    def __iter__(self) -> Iterator[Tuple[HistoryPoint, ...]]:
        return iter(self._snapshots)

    @property
    def oldest_step(self) -> Optional[int]:
        if not self._snapshots:
            return None
        return self._snapshots[0][0].step_index

    @property
    def latest(self) -> Optional[Tuple[HistoryPoint, ...]]:
        if not self._snapshots:
            return None
        return self._snapshots[-1]

    def steps(self) -> List[int]:
        return [snapshot[0].step_index for snapshot in self._snapshots]

    def series(self, agent_id: int) -> np.ndarray:
        """Bread affordability of one agent across the retained window."""
        return np.array([snapshot[agent_id].bread_affordable for snapshot in self._snapshots])


@dataclass
class SimulationState:
    step_index: int = 0
    agents: List[Agent] = field(default_factory=list)
    previous_agents: List[Agent] = field(default_factory=list)
    history: Optional[HistoryBuffer] = None
    bread_price: float = 0.0
    base_bread_price: float = 0.0
    base_breads_affordable: float = 0.0

    @property
    def accumulator(self) -> Agent:
        return self.agents[0]

    @property
    def others(self) -> List[Agent]:
        return self.agents[1:]

    def values(self) -> np.ndarray:
        return np.array([agent.nominal_value for agent in self.agents], dtype=float)


@dataclass(frozen=True)
class StepOutcome:
    step_index: int
    growth_amount: float
    redistributed_total: float
    per_agent_share: float


# --- Derived Metrics ---

def total_value(agents: List[Agent]) -> float:
    return sum(agent.nominal_value for agent in agents)


def update_percentages(agents: List[Agent]) -> float:
    """Set each agent's share of the total (in %). Returns the total."""
    total = total_value(agents)
    if total <= 0:
        logger.warning("Total economy is %s; percentage shares set to 0", total)
        for agent in agents:
            agent.percentage = 0.0
        return total

    for agent in agents:
        agent.percentage = (agent.nominal_value / total) * 100
    return total


def bread_price(agents: List[Agent], bread_fraction: float) -> float:
    return total_value(agents) * bread_fraction


def update_bread_affordability(agents: List[Agent], bread_fraction: float) -> float:
    """Set how many loaves each agent can buy. Returns the bread price."""
    price = bread_price(agents, bread_fraction)
    if price <= 0:
        logger.warning("Bread price is %s; affordability set to 0", price)
        for agent in agents:
            agent.bread_affordable = 0.0
        return price

    for agent in agents:
        agent.bread_affordable = agent.nominal_value / price
    return price


def gini(values) -> float:
    """
    Gini index as the direct mean absolute difference:
    sum_i sum_j |x_i - x_j| / (2 * n^2 * mean).
    No sorting, no shift; exact for the handful of agents simulated here.
    """
    values = np.asarray(values, dtype=float).flatten()
    n = values.shape[0]
    if n == 0:
        return 0.0
    mean = np.mean(values)
    if mean == 0:
        return 0.0
    sum_diff = np.sum(np.abs(values[:, None] - values[None, :]))
    return float(sum_diff / (2 * n * n * mean))


def mean_of(agents: List[Agent], attribute: str) -> float:
    if not agents:
        return 0.0
    return sum(getattr(agent, attribute) for agent in agents) / len(agents)


# --- Economy Variants ---

class Economy(ABC):
    """
    Accumulation economy: a1 grows geometrically each step and hands a fixed
    fraction of that growth, split evenly, to everybody else.

    Economy objects carry no simulation state; the caller owns the
    SimulationState and passes it (with the config) into every call.
    """

    tracks_history = False

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def recompute(self, state: SimulationState, config: SimulationConfig):
        """Refresh derived metrics in place without advancing the step."""
        pass

    @abstractmethod
    def get_stats(self, state: SimulationState, config: SimulationConfig) -> Dict:
        pass

    def reset(self, config: SimulationConfig) -> SimulationState:
        state = SimulationState(agents=make_agents(config))
        self.recompute(state, config)
        state.previous_agents = copy_agents(state.agents)
        if self.tracks_history:
            state.history = HistoryBuffer(config.max_history)
            self.save_to_history(state)
        logger.info("%s reset: %d agents at %.2f", self.name, config.num_agents, config.initial_value)
        return state

    def step(self, state: SimulationState, config: SimulationConfig) -> StepOutcome:
        previous_value = state.accumulator.nominal_value
        state.previous_agents = copy_agents(state.agents)
        state.step_index += 1

        # a1 accumulates
        state.accumulator.nominal_value *= (1 + config.growth_rate)
        growth_amount = state.accumulator.nominal_value - previous_value

        # Part of a1's growth is shared evenly among the rest
        redistributed_total = growth_amount * config.redistribution_rate
        per_agent_share = redistributed_total / (len(state.agents) - 1)
        for agent in state.others:
            agent.nominal_value += per_agent_share

        self.recompute(state, config)
        if self.tracks_history:
            self.save_to_history(state)

        logger.debug(
            "e%d: growth=%.4f redistributed=%.4f per_agent=%.4f",
            state.step_index, growth_amount, redistributed_total, per_agent_share,
        )
        return StepOutcome(state.step_index, growth_amount, redistributed_total, per_agent_share)

    def step_multiple(self, state: SimulationState, config: SimulationConfig, n: int) -> Optional[StepOutcome]:
        if n < 0:
            raise ValueError("Number of steps cannot be negative.")
        outcome = None
        for _ in range(n):
            outcome = self.step(state, config)
        return outcome

    @staticmethod
    def save_to_history(state: SimulationState):
        snapshot = tuple(
            HistoryPoint(state.step_index, agent.name, agent.bread_affordable)
            for agent in state.agents
        )
        state.history.push(snapshot)


class WealthEconomy(Economy):
    """Share-of-economy view: percentages, a1 concentration and Gini index."""

    @property
    def name(self) -> str:
        return "Wealth concentration"

    def recompute(self, state: SimulationState, config: SimulationConfig):
        update_percentages(state.agents)

    def get_stats(self, state: SimulationState, config: SimulationConfig) -> Dict:
        return {
            "step": state.step_index,
            "total": total_value(state.agents),
            "accumulator_share": state.accumulator.percentage,
            "others_mean_share": mean_of(state.others, "percentage"),
            "gini": gini(state.values()),
        }


class BreadEconomy(Economy):
    """
    Purchasing-power view: the bread price is a fixed fraction of the whole
    economy, so nominal gains below the economy's growth buy less bread.
    """

    tracks_history = True

    @property
    def name(self) -> str:
        return "Bread affordability"

    def recompute(self, state: SimulationState, config: SimulationConfig):
        # Price and loaves always come from the same fraction
        state.bread_price = update_bread_affordability(state.agents, config.bread_fraction)
        update_percentages(state.agents)

    def reset(self, config: SimulationConfig) -> SimulationState:
        state = super().reset(config)

        # e0 baseline; stays fixed even if the bread fraction changes later
        state.base_bread_price = state.bread_price
        state.base_breads_affordable = mean_of(state.others, "bread_affordable")
        return state

    def get_stats(self, state: SimulationState, config: SimulationConfig) -> Dict:
        price = state.bread_price
        others_breads = mean_of(state.others, "bread_affordable")
        return {
            "step": state.step_index,
            "total": total_value(state.agents),
            "bread_price": price,
            "base_bread_price": state.base_bread_price,
            "bread_price_change_pct": _pct_change(price, state.base_bread_price),
            "accumulator_breads": state.accumulator.bread_affordable,
            "others_mean_breads": others_breads,
            "base_breads_affordable": state.base_breads_affordable,
            "breads_change_pct": _pct_change(others_breads, state.base_breads_affordable),
        }


def _pct_change(current: float, base: float) -> float:
    if base == 0:
        return 0.0
    return (current / base - 1) * 100


ECONOMIES = {
    "bread": BreadEconomy,
    "wealth": WealthEconomy,
}
