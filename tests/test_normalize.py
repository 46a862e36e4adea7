"""Market normalization: alias resolution, price alignment, stats, idempotence."""

from famscan.models import RawMarketRecord
from famscan.normalize import normalize_markets
from famscan.normalize.markets import coerce_number_list, coerce_string_list, normalize_market, stringify_id
from famscan.normalize.numbers import coerce_number, format_number


def _one(payload):
    markets, _ = normalize_markets([payload])
    assert len(markets) == 1
    return markets[0]


def test_gamma_shaped_record():
    m = _one(
        {
            "id": 123,
            "question": "  Will it rain?  ",
            "outcomes": '["Yes", "No"]',
            "outcomePrices": '["0.3", "0.7"]',
            "liquidityNum": 1500,
            "volume": "2500.5",
            "category": "weather",
        }
    )
    assert m.market_id == "123"
    assert m.title == "Will it rain?"
    assert m.outcomes == ("Yes", "No")
    assert m.prices == {"Yes": 0.3, "No": 0.7}
    assert m.yes_price == 0.3
    assert m.liquidity == 1500
    assert m.volume == 2500.5


def test_id_alias_order_and_float_ids():
    assert _one({"conditionId": "0xabc", "market_id": "  "}).market_id == "0xabc"
    assert _one({"id": 5.0}).market_id == "5"
    assert _one({"id": "", "market_id": 7}).market_id == "7"


def test_title_falls_back_to_id():
    assert _one({"id": "m1"}).title == "m1"
    assert _one({"id": "m1", "slug": "some-slug"}).title == "some-slug"


def test_event_id_from_embedded_events():
    assert _one({"id": "m1", "events": [{"id": 77, "title": "E"}]}).event_id == "77"
    assert _one({"id": "m1", "eventId": "e9", "events": [{"id": 77}]}).event_id == "e9"


def test_yes_price_prefers_yes_outcome():
    m = _one({"id": "m1", "outcomes": ["No", "Yes"], "outcomePrices": [0.6, 0.4]})
    assert m.yes_price == 0.4
    m = _one({"id": "m2", "outcomes": ["Over", "Under"], "outcomePrices": ["0.55", "0.45"]})
    assert m.yes_price == 0.55


def test_short_price_list_pads_with_none():
    m = _one({"id": "m1", "outcomes": ["A", "B", "C"], "outcome_prices": [0.2]})
    assert m.prices == {"A": 0.2, "B": None, "C": None}


def test_bad_json_and_bad_numbers():
    m = _one({"id": "m1", "outcomes": "[not json", "outcomePrices": '["x"]', "liquidity": "n/a"})
    assert m.outcomes == ()
    assert m.prices == {}
    assert m.yes_price is None
    assert m.liquidity is None


def test_duplicate_outcome_names_keep_first():
    m = _one({"id": "m1", "outcomes": ["Yes", "Yes", "No"], "outcomePrices": [0.1, 0.2, 0.9]})
    assert m.outcomes == ("Yes", "No")
    assert m.prices == {"Yes": 0.1, "No": 0.9}


def test_unidentifiable_records_are_only_counted():
    markets, stats = normalize_markets(
        [
            {"question": "no id"},
            {"id": True},
            "not a record",
            {"id": "m1", "outcomes": ["Yes", "No"], "outcomePrices": [0.5, 0.5]},
            {"id": "m2", "outcomes": ["A", "B", "C"]},
        ]
    )
    assert [m.market_id for m in markets] == ["m1", "m2"]
    assert stats.input_markets == 5
    assert stats.kept_markets == 2
    assert stats.markets_with_outcomes == 2
    assert stats.markets_with_prices == 1
    assert stats.binary_markets == 1
    assert stats.multi_outcome_markets == 1


def test_normalization_is_idempotent(bucket_payloads):
    payloads = bucket_payloads() + [
        {"id": "m9", "question": "Who wins?", "outcomes": ["A", "B", "C"], "outcomePrices": [0.5, None, 0.2]},
        {"id": "m10"},
    ]
    first, _ = normalize_markets(payloads)
    again, _ = normalize_markets(
        [
            {
                "id": m.market_id,
                "question": m.title,
                "event_id": m.event_id,
                "outcomes": list(m.outcomes),
                "outcomePrices": [m.prices[o] for o in m.outcomes],
                "liquidityNum": m.liquidity,
                "volumeNum": m.volume,
            }
            for m in first
        ]
    )
    assert again == first


def test_raw_record_splits_known_keys():
    rec = RawMarketRecord.from_payload({"id": "m1", "question": "Q", "foo": 1})
    assert rec.captured == {"id": "m1", "question": "Q"}
    assert rec.extra == {"foo": 1}
    assert normalize_market(rec).market_id == "m1"


def test_helpers():
    assert stringify_id(" a ") == "a"
    assert stringify_id(float("nan")) is None
    assert stringify_id(False) is None
    assert coerce_string_list('["a", "b"]') == ["a", "b"]
    assert coerce_string_list(["a", 1]) is None
    assert coerce_number_list('["1", "x", 2]') == [1.0, None, 2.0]
    assert coerce_number("  ") is None
    assert coerce_number("inf") is None
    assert coerce_number(True) is None
    assert format_number(10.0) == "10"
    assert format_number(3.5) == "3.5"


def test_oversized_integer_in_encoded_list_is_treated_as_malformed():
    huge = "1" * 5000
    m = _one({"id": "m1", "outcomes": '["Yes", "No"]', "outcomePrices": f"[{huge}, 0.5]"})
    assert m.outcomes == ("Yes", "No")
    assert m.prices == {"Yes": None, "No": None}
    assert m.yes_price is None
    m = _one({"id": "m2", "outcomes": f"[{huge}]"})
    assert m.outcomes == ()


def test_repeated_market_id_keeps_first_record():
    markets, stats = normalize_markets(
        [
            {"id": "m1", "question": "X 0-1%", "outcomes": ["Yes", "No"], "outcomePrices": [0.2, 0.8]},
            {"id": "m1", "question": "Who wins?", "outcomes": ["A", "B", "C"], "outcomePrices": [0.5, 0.3, 0.2]},
            {"id": "m2", "question": "X 1-2%", "outcomes": ["Yes", "No"], "outcomePrices": [0.3, 0.7]},
        ]
    )
    assert [m.market_id for m in markets] == ["m1", "m2"]
    assert markets[0].title == "X 0-1%"
    assert stats.input_markets == 3
    assert stats.kept_markets == 2
    assert stats.duplicate_markets == 1
    assert stats.multi_outcome_markets == 0
