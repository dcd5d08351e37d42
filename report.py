from dataclasses import dataclass
from typing import Dict, List

from wealth_simulation import (
    Economy, BreadEconomy, SimulationConfig, SimulationState, mean_of
)

BREAD_DELTA_EPSILON = 0.01
SHARE_DELTA_EPSILON = 0.001
MAX_BREAD_ICONS = 10
BREAD_ICON = "\U0001F35E"


def format_number(value: float, decimals: int = 2) -> str:
    return f"{value:.{decimals}f}"


def format_signed(value: float, decimals: int = 2) -> str:
    return f"{'+' if value >= 0 else ''}{format_number(value, decimals)}"


def delta_class(delta: float, epsilon: float) -> str:
    if delta > epsilon:
        return "positive"
    if delta < -epsilon:
        return "negative"
    return "neutral"


def bread_icons(breads: float) -> str:
    count = round(breads)
    icons = BREAD_ICON * min(count, MAX_BREAD_ICONS)
    if count > MAX_BREAD_ICONS:
        icons += f"... ({count})"
    return icons


@dataclass(frozen=True)
class TableRow:
    name: str
    color: str
    nominal_value: float
    percentage: float
    nominal_delta: float
    percentage_delta: float
    bread_affordable: float
    bread_delta: float
    is_accumulator: bool

    @property
    def nominal_class(self) -> str:
        return delta_class(self.nominal_delta, SHARE_DELTA_EPSILON)

    @property
    def percentage_class(self) -> str:
        return delta_class(self.percentage_delta, SHARE_DELTA_EPSILON)

    @property
    def bread_class(self) -> str:
        return delta_class(self.bread_delta, BREAD_DELTA_EPSILON)

    @property
    def icons(self) -> str:
        return bread_icons(self.bread_affordable)


def build_rows(economy: Economy, state: SimulationState) -> List[TableRow]:
    rows = []
    for agent, previous in zip(state.agents, state.previous_agents):
        rows.append(TableRow(
            name=agent.name,
            color=agent.color,
            nominal_value=agent.nominal_value,
            percentage=agent.percentage,
            nominal_delta=agent.nominal_value - previous.nominal_value,
            percentage_delta=agent.percentage - previous.percentage,
            bread_affordable=agent.bread_affordable,
            bread_delta=agent.bread_affordable - previous.bread_affordable,
            is_accumulator=agent.id == 0,
        ))
    return rows


def table_columns(economy: Economy) -> List[str]:
    if isinstance(economy, BreadEconomy):
        return ["Agent", "Nominal", "Breads", "Δ Breads", "Visual"]
    return ["Agent", "Nominal", "Share", "Δ Nominal", "Δ Share"]


def table_cells(economy: Economy, rows: List[TableRow]) -> List[List[str]]:
    if isinstance(economy, BreadEconomy):
        return [
            [r.name, format_number(r.nominal_value), format_number(r.bread_affordable, 1),
             format_signed(r.bread_delta, 1), r.icons]
            for r in rows
        ]
    return [
        [r.name, format_number(r.nominal_value), f"{format_number(r.percentage)}%",
         format_signed(r.nominal_delta), f"{format_signed(r.percentage_delta, 3)}%"]
        for r in rows
    ]


def format_table(economy: Economy, state: SimulationState) -> str:
    """Fixed-width text table of the agents; the accumulator row is starred."""
    rows = build_rows(economy, state)
    header = table_columns(economy)
    cells = table_cells(economy, rows)
    widths = [max(len(header[i]), *(len(c[i]) for c in cells)) for i in range(len(header))]

    lines = ["  ".join(h.ljust(w) for h, w in zip(header, widths))]
    lines.append("-" * len(lines[0]))
    for row, cell in zip(rows, cells):
        line = "  ".join(c.ljust(w) for c, w in zip(cell, widths))
        lines.append(line + ("  *" if row.is_accumulator else ""))
    return "\n".join(lines)


def format_summary(economy: Economy, stats: Dict) -> str:
    lines = [f"State:           e{stats['step']}",
             f"Total economy:   {format_number(stats['total'])}"]
    if isinstance(economy, BreadEconomy):
        lines += [
            f"Bread price:     {format_number(stats['bread_price'], 3)} "
            f"(e0: {format_number(stats['base_bread_price'], 3)}, "
            f"{format_signed(stats['bread_price_change_pct'], 1)}%)",
            f"Breads (others): {format_number(stats['others_mean_breads'], 1)} "
            f"(e0: {format_number(stats['base_breads_affordable'], 1)}, "
            f"{format_signed(stats['breads_change_pct'], 1)}%)",
        ]
    else:
        lines += [
            f"a1 concentration: {format_number(stats['accumulator_share'])}%",
            f"Gini index:      {format_number(stats['gini'], 3)}",
        ]
    return "\n".join(lines)


# --- Insight narrative ---

def insight_text(economy: Economy, state: SimulationState, config: SimulationConfig) -> str:
    if isinstance(economy, BreadEconomy):
        return _bread_insight(state)
    return _wealth_insight(state, config)


def _wealth_insight(state: SimulationState, config: SimulationConfig) -> str:
    a1_share = state.accumulator.percentage
    others_share = mean_of(state.others, "percentage")
    redist_pct = round(config.redistribution_rate * 100)
    retention_pct = 100 - redist_pct
    step = state.step_index

    if step == 0:
        return (f"At the initial state (e0) every agent holds the same nominal value "
                f"and the same share of the economy ({format_number(100 / len(state.agents), 0)}%).")
    if step < 5:
        return (f"a1 already controls {format_number(a1_share, 1)}% of the economy. "
                f"The others ({format_number(others_share)}% each) grow nominally through "
                f"a1's redistribution, but are already losing real share.")
    if step < 20:
        return (f"Nominal values rise for everyone, yet the real share of the non-accumulators "
                f"keeps falling. They receive only {redist_pct}% of what a1 generates, "
                f"while a1 retains {retention_pct}%.")
    if step < 50:
        return (f"Concentration accelerates: a1 controls {format_number(a1_share, 1)}% while the "
                f"others hold {format_number(others_share)}% on average, fully dependent on "
                f"a1's redistribution.")
    return (f"a1 dominates with {format_number(a1_share, 1)}% of the total. The others are "
            f"economically marginal, living off the crumbs of a1's growth.")


def _bread_insight(state: SimulationState) -> str:
    a1_bread = state.accumulator.bread_affordable
    others_bread = mean_of(state.others, "bread_affordable")
    step = state.step_index

    if step == 0:
        return (f"At the initial state (e0) everyone can buy the same amount of bread "
                f"({round(a1_bread)} loaves).")
    if step < 5:
        return (f"a1 can buy {round(a1_bread)} loaves while the others can buy "
                f"{round(others_bread)} on average. The divergence has begun.")
    if step < 20:
        base = state.base_breads_affordable
        a1_change = round((a1_bread / base - 1) * 100) if base else 0
        others_change = round((others_bread / base - 1) * 100) if base else 0
        direction = "more" if others_change >= 0 else "less"
        return (f"a1 can buy {'+' if a1_change > 0 else ''}{a1_change}% more bread than at the start. "
                f"The others can buy {abs(others_change)}% {direction}. Everyone holds more money, "
                f"but only a1 gains purchasing power.")
    if step < 50:
        return (f"The gap is dramatic: a1 buys {round(a1_bread)} loaves while the others buy only "
                f"{round(others_bread)}. Money lies, bread tells the truth.")
    return (f"a1 can buy {round(a1_bread)} loaves, the others only {round(others_bread)}. "
            f"Inequality measured in real goods is undeniable.")
