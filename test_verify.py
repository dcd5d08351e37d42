import numpy as np
import pytest
from wealth_simulation import (
    SimulationConfig, BreadEconomy, WealthEconomy, HistoryBuffer, HistoryPoint, ECONOMIES,
    gini, total_value, update_percentages, copy_agents, make_agents
)


def test_single_step_scenario():
    print("Testing one step from the default configuration...")
    # g=8%, r=15%, ten agents at 100
    config = SimulationConfig()
    economy = WealthEconomy()
    state = economy.reset(config)
    outcome = economy.step(state, config)

    assert state.step_index == 1
    assert np.isclose(state.agents[0].nominal_value, 108.0)
    assert np.isclose(outcome.growth_amount, 8.0)
    assert np.isclose(outcome.redistributed_total, 1.2)
    assert np.isclose(outcome.per_agent_share, 1.2 / 9)
    for agent in state.agents[1:]:
        assert np.isclose(agent.nominal_value, 100 + 1.2 / 9)
    assert np.isclose(total_value(state.agents), 1009.2)
    print("Single Step Passed!")


def test_total_grows_by_growth_plus_redistribution():
    print("Testing total economy growth...")
    config = SimulationConfig(redistribution_rate=0.4)
    economy = WealthEconomy()
    state = economy.reset(config)

    for _ in range(30):
        before = total_value(state.agents)
        previous_a1 = state.agents[0].nominal_value
        outcome = economy.step(state, config)
        after = total_value(state.agents)

        assert np.isclose(outcome.growth_amount, previous_a1 * config.growth_rate)
        assert np.isclose(after - before, outcome.growth_amount + outcome.redistributed_total)
        assert after > before
    print("Total Growth Passed!")


def test_shares_sum_to_100():
    print("Testing percentage shares...")
    config = SimulationConfig()
    for economy in (WealthEconomy(), BreadEconomy()):
        state = economy.reset(config)
        assert np.isclose(sum(a.percentage for a in state.agents), 100.0, rtol=1e-9)
        for _ in range(75):
            economy.step(state, config)
            assert np.isclose(sum(a.percentage for a in state.agents), 100.0, rtol=1e-9)
    print("Shares Passed!")


def test_zero_redistribution_freezes_others():
    print("Testing zero redistribution...")
    config = SimulationConfig(redistribution_rate=0.0)
    economy = WealthEconomy()
    state = economy.reset(config)
    economy.step_multiple(state, config, 25)

    for agent in state.agents[1:]:
        assert agent.nominal_value == 100.0
    assert np.isclose(state.agents[0].nominal_value, 100.0 * 1.08 ** 25)
    print("Zero Redistribution Passed!")


def test_gini():
    print("Testing Gini...")
    # Perfect equality = 0
    config = SimulationConfig()
    economy = WealthEconomy()
    state = economy.reset(config)
    assert economy.get_stats(state, config)["gini"] == 0.0

    economy.step_multiple(state, config, 40)
    g = economy.get_stats(state, config)["gini"]
    assert 0.0 < g < 1.0

    # One holder of everything among n: (n-1)/n
    assert np.isclose(gini([0, 0, 0, 10]), 0.75)
    assert np.isclose(gini([1, 3]), 0.25)
    assert gini([]) == 0.0
    assert gini([0, 0]) == 0.0
    print("Gini Passed!")


def test_gini_increases_with_concentration():
    config = SimulationConfig()
    economy = WealthEconomy()
    state = economy.reset(config)
    previous = 0.0
    for _ in range(20):
        economy.step(state, config)
        current = economy.get_stats(state, config)["gini"]
        assert current > previous
        previous = current


def test_previous_snapshot_is_independent():
    config = SimulationConfig()
    economy = WealthEconomy()
    state = economy.reset(config)
    assert [a.nominal_value for a in state.previous_agents] == [100.0] * 10

    economy.step(state, config)
    assert state.previous_agents[0].nominal_value == 100.0
    assert state.previous_agents[0] is not state.agents[0]

    state.agents[0].nominal_value = 5.0
    assert state.previous_agents[0].nominal_value == 100.0


def test_copy_agents_is_a_value_copy():
    agents = make_agents(SimulationConfig())
    copies = copy_agents(agents)
    copies[3].nominal_value = 1.0
    assert agents[3].nominal_value == 100.0
    assert copies[3].name == "a4"


def test_agent_names_and_colors():
    agents = make_agents(SimulationConfig())
    assert [a.name for a in agents] == [f"a{i}" for i in range(1, 11)]
    assert [a.id for a in agents] == list(range(10))
    assert agents[0].color == '#e74c3c'
    assert all(np.isclose(a.percentage, 10.0) for a in agents)


def test_bread_scenario():
    print("Testing bread affordability...")
    config = SimulationConfig()
    economy = BreadEconomy()
    state = economy.reset(config)

    # Total 1000, price 1.0, everyone buys 100 loaves
    assert np.isclose(state.base_bread_price, 1.0)
    assert np.isclose(state.base_breads_affordable, 100.0)
    assert all(np.isclose(a.bread_affordable, 100.0) for a in state.agents)

    economy.step(state, config)
    price = 1009.2 * config.bread_fraction
    assert np.isclose(state.agents[0].bread_affordable, 108.0 / price)
    assert np.isclose(state.agents[1].bread_affordable, (100 + 1.2 / 9) / price)

    stats = economy.get_stats(state, config)
    assert np.isclose(stats["bread_price"], price)
    assert np.isclose(stats["bread_price_change_pct"], 0.92)
    assert stats["breads_change_pct"] < 0
    print("Bread Passed!")


def test_history_window():
    print("Testing history buffer...")
    config = SimulationConfig()
    economy = BreadEconomy()
    state = economy.reset(config)
    assert len(state.history) == 1
    assert state.history.oldest_step == 0

    for _ in range(60):
        economy.step(state, config)
        assert len(state.history) <= 50

    # e0 baseline plus e1..e10 have been evicted
    assert len(state.history) == 50
    assert state.history.oldest_step == 11
    assert state.history.latest[0].step_index == 60
    assert state.history.steps() == list(range(11, 61))
    print("History Passed!")


def test_batch_stepping_records_every_step():
    config = SimulationConfig()
    economy = BreadEconomy()
    state = economy.reset(config)
    outcome = economy.step_multiple(state, config, 10)

    assert outcome.step_index == 10
    assert state.history.steps() == list(range(0, 11))
    assert len(state.history.latest) == 10
    assert state.history.latest[4].agent_name == "a5"


def test_step_multiple_rejects_negative():
    config = SimulationConfig()
    economy = WealthEconomy()
    state = economy.reset(config)
    assert economy.step_multiple(state, config, 0) is None
    with pytest.raises(ValueError):
        economy.step_multiple(state, config, -1)


def test_reset_restores_initial_state():
    print("Testing reset...")
    config = SimulationConfig()
    economy = BreadEconomy()
    state = economy.reset(config)
    economy.step_multiple(state, config, 12)

    state = economy.reset(config)
    assert state.step_index == 0
    assert all(a.nominal_value == 100.0 for a in state.agents)
    assert len(state.history) == 1
    assert state.history.oldest_step == 0
    print("Reset Passed!")


def test_recompute_does_not_step():
    config = SimulationConfig()
    economy = BreadEconomy()
    state = economy.reset(config)
    economy.step_multiple(state, config, 3)
    before = state.agents[1].bread_affordable

    config.bread_fraction = 0.002
    economy.recompute(state, config)
    assert state.step_index == 3
    assert len(state.history) == 4
    assert np.isclose(state.agents[1].bread_affordable, before / 2)
    # Baseline stays at e0 pricing
    assert np.isclose(state.base_bread_price, 1.0)


def test_only_bread_variant_keeps_history():
    config = SimulationConfig()
    assert set(ECONOMIES) == {"bread", "wealth"}

    wealth = ECONOMIES["wealth"]()
    assert not wealth.tracks_history
    state = wealth.reset(config)
    wealth.step_multiple(state, config, 3)
    assert state.history is None

    bread = ECONOMIES["bread"]()
    assert bread.tracks_history
    state = bread.reset(config)
    bread.step_multiple(state, config, 3)
    assert state.history.steps() == [0, 1, 2, 3]


def test_history_buffer_fifo():
    buffer = HistoryBuffer(3)
    for step in range(5):
        buffer.push((HistoryPoint(step, "a1", float(step)),))
    assert len(buffer) == 3
    assert buffer.steps() == [2, 3, 4]
    assert np.allclose(buffer.series(0), [2.0, 3.0, 4.0])

    buffer.clear()
    assert len(buffer) == 0
    assert buffer.oldest_step is None
    assert buffer.latest is None


def test_zero_total_guard():
    agents = make_agents(SimulationConfig())
    for agent in agents:
        agent.nominal_value = 0.0
    assert update_percentages(agents) == 0.0
    assert all(a.percentage == 0.0 for a in agents)


@pytest.mark.parametrize("kwargs", [
    {"num_agents": 1},
    {"initial_value": 0},
    {"growth_rate": -0.1},
    {"redistribution_rate": 1.5},
    {"bread_fraction": 0},
    {"max_history": 0},
    {"auto_play_speed": 0},
])
def test_invalid_config(kwargs):
    with pytest.raises(ValueError):
        SimulationConfig(**kwargs)


if __name__ == "__main__":
    try:
        test_single_step_scenario()
        test_total_grows_by_growth_plus_redistribution()
        test_shares_sum_to_100()
        test_zero_redistribution_freezes_others()
        test_gini()
        test_bread_scenario()
        test_history_window()
        test_reset_restores_initial_state()
        print("\nALL TESTS PASSED")
    except Exception as e:
        print(f"\nTEST FAILED: {e}")
        exit(1)
