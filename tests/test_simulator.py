import logging

import pytest

from surplus_miner.engine.aggregator import MonthlyMiningRecord
from surplus_miner.engine.simulator import MonthInputs, SimulationState, simulate, step, utilization_ratio
from surplus_miner.engine.surplus import MonthlySurplusRecord
from surplus_miner.schemas import FleetSlot, PhaseDefinition, PhaseKind, StrategyConfig

PLENTY_PJ = 1.0  # 1e15 J, far more than any toy fleet draws in a month


def inputs(month="2024-01", surplus_pj=PLENTY_PJ, days=30, network=10_000.0, coins=100.0, price=100.0):
    return MonthInputs(
        month=month,
        surplus_pj=surplus_pj,
        days_in_month=days,
        network_hash_rate_th=network,
        coins_created=coins,
        max_price=price,
    )


def seed(model="a", budget=10_500.0, month="2024-01"):
    return PhaseDefinition(kind=PhaseKind.SEED, start=month, model=model, budget_usd=budget)


def reinvest(model="a", ratio=0.5, start="2024-01", end="2024-12"):
    return PhaseDefinition(kind=PhaseKind.REINVEST, start=start, end=end, model=model, reinvest_ratio=ratio)


def test_utilization_ratio_bounds():
    assert utilization_ratio(100.0, 0.0) == 0.0
    assert utilization_ratio(100.0, 400.0) == 0.25
    assert utilization_ratio(1000.0, 400.0) == 1.0
    assert utilization_ratio(-5.0, 400.0) == 0.0


def test_empty_fleet_mines_nothing(toy_fleet):
    state = SimulationState.initial(toy_fleet)

    new_state, record = step(state, inputs(), None, toy_fleet)

    assert record.utilization_ratio == 0.0
    assert record.btc_mined_this_month == 0.0
    assert record.our_share_percent == 0.0
    assert record.phase == "dormant"
    assert new_state.coin_balance == 0.0


def test_seed_buys_whole_units(toy_fleet):
    state = SimulationState.initial(toy_fleet)

    new_state, record = step(state, inputs(), seed(budget=10_500.0), toy_fleet)

    assert record.fleet_counts == {"a": 10, "b": 0}
    assert record.capex_this_month_usd == 10_000.0
    assert record.total_capex_usd == 10_000.0
    assert record.utilization_ratio == 1.0
    assert record.total_hash_rate_th_s == pytest.approx(1000.0)
    assert record.our_share_percent == pytest.approx(10.0)
    assert record.btc_mined_this_month == pytest.approx(10.0)
    assert record.btc_sold_this_month == 0.0
    assert new_state.coin_balance == pytest.approx(10.0)
    assert new_state.cumulative_capital_spent == 10_000.0


def test_energy_constraint_throttles_fleet(toy_fleet):
    state = SimulationState(fleet_counts={"a": 10, "b": 0})
    # 10 x 1000 W for 30 days = 2.592e10 J; half of that is available
    half = 2.592e10 / 2 / 1e15

    _, record = step(state, inputs(surplus_pj=half), None, toy_fleet)

    assert record.utilization_ratio == pytest.approx(0.5)
    assert record.rated_hash_rate_th_s == pytest.approx(1000.0)
    assert record.total_hash_rate_th_s == pytest.approx(500.0)
    assert record.btc_mined_this_month == pytest.approx(5.0)


def test_negative_surplus_idles_fleet(toy_fleet):
    state = SimulationState(fleet_counts={"a": 10, "b": 5})

    _, record = step(state, inputs(surplus_pj=-0.5), None, toy_fleet)

    assert record.utilization_ratio == 0.0
    assert record.total_hash_rate_th_s == 0.0
    assert record.btc_mined_this_month == 0.0


def test_reinvest_sells_and_buys(toy_fleet):
    state = SimulationState(fleet_counts={"a": 10, "b": 0}, coin_balance=3.0, cumulative_capital_spent=10_000.0)

    new_state, record = step(state, inputs(network=1000.0, price=100.0), reinvest(ratio=0.5), toy_fleet)

    assert record.btc_mined_this_month == pytest.approx(100.0)
    assert record.btc_sold_this_month == pytest.approx(50.0)
    assert record.fleet_counts == {"a": 15, "b": 0}
    assert record.capex_this_month_usd == 5000.0
    assert record.total_capex_usd == 15_000.0
    assert new_state.coin_balance == pytest.approx(53.0)


def test_reinvest_into_second_model(toy_fleet):
    state = SimulationState(fleet_counts={"a": 10, "b": 0})

    _, record = step(state, inputs(network=1000.0, price=100.0), reinvest(model="b", ratio=0.5), toy_fleet)

    # $5000 buys two $2000 units; fleet mined with the counts held at month start
    assert record.fleet_counts == {"a": 10, "b": 2}
    assert record.capex_this_month_usd == 4000.0
    assert record.btc_sold_this_month == pytest.approx(50.0)


def test_reinvest_skipped_when_proceeds_buy_nothing(toy_fleet):
    state = SimulationState(fleet_counts={"a": 10, "b": 0})

    new_state, record = step(state, inputs(network=1000.0, price=1.0), reinvest(), toy_fleet)

    assert record.btc_sold_this_month == 0.0
    assert record.capex_this_month_usd == 0.0
    assert record.fleet_counts == {"a": 10, "b": 0}
    assert new_state.coin_balance == pytest.approx(100.0)


def test_reinvest_without_price_keeps_coins(toy_fleet, caplog):
    state = SimulationState(fleet_counts={"a": 10, "b": 0})

    with caplog.at_level(logging.WARNING):
        _, record = step(state, inputs(network=1000.0, price=None), reinvest(), toy_fleet)

    assert record.btc_sold_this_month == 0.0
    assert record.btc_balance == pytest.approx(100.0)
    assert "No usable price" in caplog.text


def test_step_does_not_mutate_input_state(toy_fleet):
    state = SimulationState(fleet_counts={"a": 10, "b": 0})

    new_state, record = step(state, inputs(network=1000.0), reinvest(), toy_fleet)

    assert state.fleet_counts == {"a": 10, "b": 0}
    assert state.coin_balance == 0.0
    record.fleet_counts["a"] = 0
    assert new_state.fleet_counts["a"] == 15


def _surplus(month, pj=PLENTY_PJ, days=30):
    return MonthlySurplusRecord(
        month=month,
        optimal_production_twh=0.0,
        actual_production_twh=0.0,
        surplus_twh=pj / 3.6,
        surplus_pj=pj,
        avg_availability_gw=0.0,
        days_in_month=days,
    )


def _mining(month, network=1000.0, coins=100.0, price=100.0):
    return MonthlyMiningRecord(
        month=month,
        avg_hash_rate_th=network,
        coins_created=coins,
        hash_per_coin=network / coins,
        max_price=price,
    )


@pytest.fixture
def toy_strategy():
    return StrategyConfig(
        fleet=[FleetSlot(key="a", model="Model A"), FleetSlot(key="b", model="Model B")],
        phases=[
            seed(model="a", budget=10_000.0, month="2024-01"),
            reinvest(model="b", ratio=0.75, start="2024-02", end="2024-04"),
            PhaseDefinition(kind=PhaseKind.DORMANT, start="2024-05", end="2024-05"),
            PhaseDefinition(kind=PhaseKind.ACCUMULATE, start="2024-06"),
        ],
    )


def test_simulate_skips_months_without_mining_data(toy_fleet, toy_strategy, caplog):
    surplus = [_surplus("2024-02"), _surplus("2024-01"), _surplus("2024-03")]
    mining = {"2024-01": _mining("2024-01"), "2024-03": _mining("2024-03")}

    with caplog.at_level(logging.WARNING):
        records = simulate(surplus, mining, toy_strategy, toy_fleet)

    assert [r.month for r in records] == ["2024-01", "2024-03"]
    assert "No bitcoin data for 2024-02" in caplog.text
    assert [r.phase for r in records] == ["seed", "reinvest"]


def test_simulate_run_invariants(toy_fleet, toy_strategy):
    months = [f"2024-{m:02d}" for m in range(1, 9)]
    surplus = [_surplus(m, pj=PLENTY_PJ if i % 3 else 1e-5) for i, m in enumerate(months)]
    mining = {m: _mining(m, network=1000.0 + 250 * i, price=500.0 + 100 * i) for i, m in enumerate(months)}

    records = simulate(surplus, mining, toy_strategy, toy_fleet)

    assert [r.month for r in records] == months
    balance = 0.0
    capex = 0.0
    previous = {"a": 0, "b": 0}
    for r in records:
        for key, count in r.fleet_counts.items():
            assert count >= previous[key]
        previous = r.fleet_counts
        assert 0.0 <= r.btc_sold_this_month <= r.btc_mined_this_month
        assert 0.0 <= r.utilization_ratio <= 1.0
        assert r.total_hash_rate_th_s <= r.rated_hash_rate_th_s + 1e-9
        balance += r.btc_mined_this_month - r.btc_sold_this_month
        capex += r.capex_this_month_usd
        assert r.btc_balance == pytest.approx(balance)
        assert r.total_capex_usd == pytest.approx(capex)

    by_month = {r.month: r for r in records}
    assert by_month["2024-05"].capex_this_month_usd == 0.0
    assert by_month["2024-05"].btc_sold_this_month == 0.0
    assert by_month["2024-08"].fleet_counts == by_month["2024-05"].fleet_counts
