import logging

from wealth_simulation import SimulationConfig, BreadEconomy, ECONOMIES
from controller import SimulationController
from report import format_table, format_summary, insight_text


def get_float_input(prompt, default=None):
    while True:
        try:
            val_str = input(f"{prompt} (default {default}): " if default is not None else f"{prompt}: ")
            if not val_str and default is not None:
                return default
            return float(val_str)
        except ValueError:
            print("Please enter a valid number.")


def print_state(controller: SimulationController):
    print()
    print(format_table(controller.economy, controller.state))
    print("-" * 30)
    print(format_summary(controller.economy, controller.stats()))
    print("-" * 30)
    print(insight_text(controller.economy, controller.state, controller.config))


def run_console(controller: SimulationController):
    is_bread = isinstance(controller.economy, BreadEconomy)
    print_state(controller)

    while True:
        print("\nCommands: [s] step  [t] step x10  [r] reset  [p] redistribution %", end="")
        print("  [b] bread fraction" if is_bread else "", end="")
        print("  [d] dashboard  [q] quit")
        cmd = input("> ").strip().lower()

        if cmd == 's':
            controller.step()
        elif cmd == 't':
            controller.step_multiple(SimulationController.BATCH_STEPS)
        elif cmd == 'r':
            controller.reset()
        elif cmd == 'p':
            pct = get_float_input("Redistribution rate in % (0-100)",
                                  round(controller.config.redistribution_rate * 100))
            controller.set_redistribution_percent(pct)
        elif cmd == 'b' and is_bread:
            per_mille = get_float_input("Bread price in per mille of the economy (0.5-2)",
                                        controller.config.bread_fraction * 1000)
            controller.set_bread_fraction(per_mille)
        elif cmd == 'd':
            # Imported lazily so the console works without a display
            from visualizer import launch_dashboard
            print("Showing dashboard...")
            launch_dashboard(controller)
        elif cmd == 'q':
            break
        else:
            print("Invalid choice.")
            continue

        print_state(controller)


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    print("=== Accumulation Economy Simulator ===")

    while True:
        # 1. Select variant
        print("\n--- Step 1: Select Simulation ---")
        print("1. Bread affordability (purchasing power of each agent)")
        print("2. Wealth concentration (shares and Gini index)")

        choice = input("Choice (1-2): ")
        variant = {'1': "bread", '2': "wealth"}.get(choice)
        if variant is None:
            print("Invalid choice.")
            continue
        economy = ECONOMIES[variant]()

        # 2. Parameters
        print("\n--- Step 2: Configure Economy ---")
        defaults = SimulationConfig()
        initial = get_float_input("Initial value per agent", defaults.initial_value)
        growth = get_float_input("Growth rate of a1 (0.0 - 1.0)", defaults.growth_rate)
        redist = get_float_input("Redistribution rate (0.0 - 1.0)", defaults.redistribution_rate)
        bread = defaults.bread_fraction
        if isinstance(economy, BreadEconomy):
            bread = get_float_input("Bread fraction of the economy", defaults.bread_fraction)

        try:
            config = SimulationConfig(initial_value=initial, growth_rate=growth,
                                      redistribution_rate=redist, bread_fraction=bread)
        except ValueError as e:
            print(f"Invalid configuration: {e}")
            continue

        # 3. Simulate
        print(f"\n--- Running {economy.name} ---")
        controller = SimulationController(economy, config)
        run_console(controller)

        again = input("\nRun another simulation? (y/n): ")
        if again.lower() != 'y':
            break


if __name__ == "__main__":
    main()
