import matplotlib.pyplot as plt
import seaborn as sns
import numpy as np
from matplotlib.ticker import FuncFormatter
from matplotlib.widgets import Button, Slider

from controller import SimulationController
from report import table_columns, table_cells, build_rows, insight_text, format_number
from wealth_simulation import BreadEconomy, HistoryBuffer, SimulationState, COLORS, total_value

# Set style
sns.set_theme(style="whitegrid")

DELTA_COLORS = {
    "positive": "#27ae60",
    "negative": "#c0392b",
    "neutral": "#7f8c8d",
}
LABEL_COLOR = "#667eea"


def format_loaves(value, pos=None):
    return f"{value:.0f}"


def plot_bread_history(history: HistoryBuffer, ax):
    """Line chart of how many loaves each agent can buy, over the retained window."""
    if len(history) < 2:
        ax.text(0.5, 0.5, "Advance the simulation to see the evolution...",
                transform=ax.transAxes, ha="center", va="center", color="#999999", fontsize=12)
        ax.set_xticks([])
        ax.set_yticks([])
        return

    steps = np.array(history.steps())
    num_agents = len(history.latest)
    all_series = [history.series(agent_id) for agent_id in range(num_agents)]

    max_bread = max(float(np.max(s)) for s in all_series) * 1.1
    min_bread = max(0.0, min(float(np.min(s)) for s in all_series) * 0.9)
    if max_bread <= min_bread:
        max_bread = min_bread + 1

    for agent_id, series in enumerate(all_series):
        color = COLORS[agent_id % len(COLORS)]
        is_accumulator = agent_id == 0
        ax.plot(steps, series, color=color, linewidth=3 if is_accumulator else 2)

        # End point with label
        ax.scatter([steps[-1]], [series[-1]], color=color, s=40 if is_accumulator else 15, zorder=5)
        ax.annotate(history.latest[agent_id].agent_name,
                    xy=(steps[-1], series[-1]), xytext=(8, 0), textcoords="offset points",
                    fontsize=9, color=color, va="center",
                    fontweight="bold" if is_accumulator else "normal")

    ax.set_ylim(min_bread, max_bread)
    ax.set_xlim(steps[0], steps[-1])
    ax.set_xlabel("Economy state", color=LABEL_COLOR, fontweight="bold")
    ax.set_ylabel("Affordable loaves", color=LABEL_COLOR, fontweight="bold")
    ax.yaxis.set_major_formatter(FuncFormatter(format_loaves))
    ax.xaxis.set_major_formatter(FuncFormatter(lambda value, pos=None: f"e{value:.0f}"))


def plot_share_donut(state: SimulationState, ax):
    """Donut of each agent's share, starting at twelve o'clock and running clockwise."""
    shares = [agent.percentage for agent in state.agents]
    ax.set_aspect("equal")
    ax.axis("off")
    if sum(shares) <= 0:
        return

    ax.pie(shares, colors=[agent.color for agent in state.agents],
           startangle=90, counterclock=False, labeldistance=None,
           wedgeprops=dict(width=0.5, edgecolor="white", linewidth=2))

    # Label slices big enough to read, midway through the ring
    current = 0.0
    for agent in state.agents:
        if agent.percentage > 2:
            angle = np.deg2rad(90 - (current + agent.percentage / 2) * 3.6)
            x, y = 0.75 * np.cos(angle), 0.75 * np.sin(angle)
            ax.text(x, y, f"{agent.name}\n{format_number(agent.percentage, 1)}%",
                    ha="center", va="center", color="white", fontsize=9, fontweight="bold")
        current += agent.percentage

    ax.text(0, 0.08, f"e{state.step_index}", ha="center", va="center",
            color=LABEL_COLOR, fontsize=18, fontweight="bold")
    ax.text(0, -0.12, f"{round(total_value(state.agents))}", ha="center", va="center",
            color="#666666", fontsize=12)


def plot_agent_table(controller: SimulationController, ax):
    economy, state = controller.economy, controller.state
    columns = table_columns(economy)
    rows = build_rows(economy, state)
    cells = table_cells(economy, rows)
    if isinstance(economy, BreadEconomy):
        # DejaVu has no loaf glyph; the icon column stays console-only
        columns = columns[:-1]
        cells = [c[:-1] for c in cells]

    ax.axis("off")
    table = ax.table(cellText=cells, colLabels=columns, loc="center", cellLoc="center")
    table.auto_set_font_size(False)
    table.set_fontsize(9)
    table.scale(1, 1.3)

    for i, row in enumerate(rows, start=1):
        table[i, 0].get_text().set_color(row.color)
        if row.is_accumulator:
            table[i, 0].get_text().set_fontweight("bold")
        delta_cls = row.bread_class if isinstance(economy, BreadEconomy) else row.nominal_class
        table[i, 3].get_text().set_color(DELTA_COLORS[delta_cls])
        if not isinstance(economy, BreadEconomy):
            table[i, 4].get_text().set_color(DELTA_COLORS[row.percentage_class])


class Dashboard:
    """
    Interactive matplotlib front end: chart, agent table, insight text and
    the step / reset / auto-play / slider controls.
    """

    def __init__(self, controller: SimulationController):
        self.controller = controller
        self.is_bread = isinstance(controller.economy, BreadEconomy)

        self.fig = plt.figure(figsize=(14, 8))
        if self.fig.canvas.manager is not None:
            self.fig.canvas.manager.set_window_title(controller.economy.name)
        self.ax_chart = self.fig.add_axes([0.05, 0.38, 0.5, 0.55])
        self.ax_table = self.fig.add_axes([0.6, 0.38, 0.38, 0.55])
        self.insight = self.fig.text(0.05, 0.3, "", fontsize=10, wrap=True, va="top")
        self.metrics = self.fig.text(0.6, 0.3, "", fontsize=10, va="top", family="monospace")

        controller.attach_timer_factory(lambda interval: self.fig.canvas.new_timer(interval=interval))
        self._build_widgets()
        controller.add_listener(self.refresh)
        self.refresh(controller)

    def _build_widgets(self):
        config = self.controller.config
        self.step_btn = Button(self.fig.add_axes([0.05, 0.16, 0.1, 0.05]), "Step")
        self.step10_btn = Button(self.fig.add_axes([0.17, 0.16, 0.1, 0.05]), "Step x10")
        self.reset_btn = Button(self.fig.add_axes([0.29, 0.16, 0.1, 0.05]), "Reset")
        self.auto_btn = Button(self.fig.add_axes([0.41, 0.16, 0.12, 0.05]), "Auto-Play")

        self.step_btn.on_clicked(lambda event: self.controller.step())
        self.step10_btn.on_clicked(lambda event: self.controller.step_multiple())
        self.reset_btn.on_clicked(lambda event: self.controller.reset())
        self.auto_btn.on_clicked(self._toggle_auto_play)

        low, high = SimulationController.SPEED_RANGE
        self.speed_slider = Slider(self.fig.add_axes([0.15, 0.09, 0.3, 0.03]), "Speed (ms)",
                                   low, high, valinit=config.auto_play_speed, valstep=50)
        self.speed_slider.on_changed(self.controller.set_speed)

        low, high = SimulationController.REDISTRIBUTION_RANGE
        self.redistribution_slider = Slider(self.fig.add_axes([0.15, 0.04, 0.3, 0.03]), "Redistribution %",
                                            low, high, valinit=config.redistribution_rate * 100, valstep=1)
        self.redistribution_slider.on_changed(self.controller.set_redistribution_percent)

        self.bread_slider = None
        if self.is_bread:
            low, high = SimulationController.BREAD_FRACTION_RANGE
            self.bread_slider = Slider(self.fig.add_axes([0.65, 0.09, 0.25, 0.03]), "Bread (‰)",
                                       low, high, valinit=config.bread_fraction * 1000, valstep=0.1)
            self.bread_slider.on_changed(self.controller.set_bread_fraction)

    def _toggle_auto_play(self, event):
        self.controller.toggle_auto_play()
        self._sync_auto_label()

    def _sync_auto_label(self):
        self.auto_btn.label.set_text("Pause" if self.controller.is_auto_playing else "Auto-Play")

    def refresh(self, controller: SimulationController):
        state = controller.state
        self.ax_chart.clear()
        if self.is_bread:
            plot_bread_history(state.history, self.ax_chart)
            self.ax_chart.set_title("Affordable loaves per agent")
        else:
            plot_share_donut(state, self.ax_chart)
            self.ax_chart.set_title("Share of the economy")

        self.ax_table.clear()
        plot_agent_table(controller, self.ax_table)

        stats = controller.stats()
        if self.is_bread:
            summary = (f"e{stats['step']}  total {format_number(stats['total'])}\n"
                       f"bread price {format_number(stats['bread_price'], 3)} "
                       f"(e0 {format_number(stats['base_bread_price'], 3)})")
        else:
            summary = (f"e{stats['step']}  total {format_number(stats['total'])}\n"
                       f"a1 {format_number(stats['accumulator_share'])}%  "
                       f"Gini {format_number(stats['gini'], 3)}")
        self.metrics.set_text(summary)
        self.insight.set_text(insight_text(controller.economy, state, controller.config))
        self._sync_auto_label()
        self.fig.canvas.draw_idle()


def build_dashboard(controller: SimulationController) -> Dashboard:
    return Dashboard(controller)


def launch_dashboard(controller: SimulationController):
    dashboard = build_dashboard(controller)
    plt.show()
    controller.stop_auto_play()
    controller.listeners.remove(dashboard.refresh)
    return dashboard
