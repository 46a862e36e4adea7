"""Paper trading step, trade targets and DuckDB persistence."""

from datetime import datetime, timedelta, timezone

import pytest

from famscan.detect import score_families
from famscan.models import MarketFamily
from famscan.paper import PaperConfig, PaperState, PricesSnapshot, pick_trade_target, run_paper_trade
from famscan.paper.storage import append_paper_events, count_paper_events, load_paper_state, save_paper_state

T0 = datetime(2026, 1, 5, 12, 0, tzinfo=timezone.utc)
CONFIG = PaperConfig()


def _prices(**by_market):
    return PricesSnapshot({mid: {"Yes": p, "No": None if p is None else 1 - p} for mid, p in by_market.items()})


def _enter(make_scored, price=0.4):
    fam = make_scored("market:s1", "single", score=0.5)
    result = run_paper_trade(PaperState.fresh(CONFIG), [fam], _prices(s1=price), CONFIG, T0)
    return fam, result


def test_entry_from_positive_score_family(make_scored):
    _, result = _enter(make_scored)
    (event,) = result.events
    assert event.type == "ENTRY"
    assert event.market_id == "s1"
    assert event.outcome == "Yes"
    assert event.usd == 25
    assert event.shares == pytest.approx(62.5)
    assert result.state.bankroll_cash_usd == pytest.approx(475)
    assert result.state.last_entry_by_family == {"market:s1": T0}
    assert result.summary.entered == 1
    assert result.summary.exposure_usd == pytest.approx(25)


def test_input_state_is_not_modified(make_scored):
    state = PaperState.fresh(CONFIG)
    run_paper_trade(state, [make_scored("market:s1", "single", score=0.5)], _prices(s1=0.4), CONFIG, T0)
    assert state.positions == []
    assert state.bankroll_cash_usd == 500


@pytest.mark.parametrize(
    ("price", "hours", "reason"),
    [(0.43, 1, "TP"), (0.37, 1, "SL"), (0.41, 25, "MAX_HOLD")],
)
def test_exit_rules(make_scored, price, hours, reason):
    fam, first = _enter(make_scored)
    later = T0 + timedelta(hours=hours)
    result = run_paper_trade(first.state, [fam], _prices(s1=price), CONFIG, later)
    exits = [e for e in result.events if e.type == "EXIT"]
    assert len(exits) == 1
    assert exits[0].reason == reason
    assert exits[0].realized_pnl_usd == pytest.approx(62.5 * price - 25)
    assert result.summary.exited == 1
    assert result.summary.marked == 1


def test_take_profit_respects_cooldown(make_scored):
    fam, first = _enter(make_scored)
    result = run_paper_trade(first.state, [fam], _prices(s1=0.43), CONFIG, T0 + timedelta(hours=1))
    assert [e.type for e in result.events] == ["MARK", "EXIT"]
    assert result.state.positions == []
    assert result.state.bankroll_cash_usd == pytest.approx(475 + 62.5 * 0.43)
    assert result.summary.realized_pnl_usd == pytest.approx(1.875)


def test_reentry_after_cooldown(make_scored):
    fam, first = _enter(make_scored)
    result = run_paper_trade(first.state, [fam], _prices(s1=0.41), CONFIG, T0 + timedelta(hours=25))
    assert [e.type for e in result.events] == ["MARK", "EXIT", "ENTRY"]
    assert len(result.state.positions) == 1


def test_missing_price_keeps_position_unmarked(make_scored):
    fam, first = _enter(make_scored)
    result = run_paper_trade(first.state, [fam], PricesSnapshot(), CONFIG, T0 + timedelta(hours=48))
    assert result.events == ()
    assert len(result.state.positions) == 1
    assert result.summary.marked == 0
    assert result.summary.unrealized_pnl_usd == 0


def test_invalid_entry_price_is_skipped(make_scored):
    fam = make_scored("market:s1", "single", score=0.5)
    result = run_paper_trade(PaperState.fresh(CONFIG), [fam], _prices(s1=0.9995), CONFIG, T0)
    assert result.events == ()


def test_zero_score_families_are_not_traded(make_scored):
    fam = make_scored("market:s1", "single", score=0.0)
    result = run_paper_trade(PaperState.fresh(CONFIG), [fam], _prices(s1=0.4), CONFIG, T0)
    assert result.summary.entered == 0


def test_trade_and_exposure_caps(make_scored):
    fams = [make_scored(f"market:s{i}", "single", score=0.5 - i * 0.1) for i in range(3)]
    prices = _prices(s0=0.4, s1=0.4, s2=0.4)
    result = run_paper_trade(PaperState.fresh(CONFIG), fams, prices, CONFIG, T0)
    assert [e.family_id for e in result.events] == ["market:s0", "market:s1"]

    tight = PaperConfig(max_exposure_pct=0.01)
    result = run_paper_trade(PaperState.fresh(tight), fams, prices, tight, T0)
    assert result.summary.entered == 1


def test_trade_size_limited_by_cash(make_scored):
    small = PaperConfig(bankroll_start_usd=10.0)
    fam = make_scored("market:s1", "single", score=0.5)
    result = run_paper_trade(PaperState.fresh(small), [fam], _prices(s1=0.4), small, T0)
    assert result.events[0].usd == 10
    assert result.state.bankroll_cash_usd == 0


def test_trade_targets(make_buckets, make_scored):
    fam = MarketFamily(
        family_id="bucket:t",
        family_type="bucket",
        title="t",
        num_outcomes=8,
        buckets=make_buckets([0.2, 0.2, 0.2, 0.02, 0.02, 0.2, 0.2, 0.2]),
    )
    (scored,) = score_families([fam])
    assert pick_trade_target(scored).market_id == "b3"
    assert pick_trade_target(make_scored("plain")).market_id == "b0"
    assert pick_trade_target(make_scored("market:s9", "single")).market_id == "s9"
    assert pick_trade_target(make_scored("market:m", "multi")) is None


def test_summary_dashboard_shape(make_scored):
    _, result = _enter(make_scored)
    d = result.summary.to_dashboard()
    assert d["open_positions_count"] == 1
    assert d["new_trades"][0]["market_id"] == "s1"
    assert d["open_positions"][0]["entry_ts"] == T0.isoformat()


def test_state_round_trip(temp_db, make_scored):
    assert load_paper_state(temp_db, CONFIG) == PaperState.fresh(CONFIG)
    _, result = _enter(make_scored)
    save_paper_state(temp_db, result.state)
    save_paper_state(temp_db, result.state)
    loaded = load_paper_state(temp_db, CONFIG)
    assert loaded == result.state
    assert append_paper_events(temp_db, result.events) == 1
    assert count_paper_events(temp_db) == {"ENTRY": 1}


def test_prices_snapshot_payload():
    snap = PricesSnapshot.from_payload(
        {
            "prices": [
                {"market_id": "m1", "outcomes": ["Yes", "No"], "outcome_prices": [0.3, None]},
                {"market_id": 5, "outcomes": ["Yes"], "outcome_prices": [0.1]},
                "junk",
            ]
        }
    )
    assert len(snap) == 1
    assert snap.get("m1", "Yes") == 0.3
    assert snap.get("m1", "No") is None
    assert snap.get("missing", "Yes") is None
    assert len(PricesSnapshot.from_payload(None)) == 0
