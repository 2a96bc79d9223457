import copy
from unittest.mock import MagicMock

import pytest
import requests

from txn_pipeline.currency_service import CurrencyRateService, convert_records, normalize_currencies
from txn_pipeline.errors import ConfigurationError, MissingParameterError, RateLookupError


def _rate_payload(target, value):
    return {"data": {target: {"code": target, "value": value}}}


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


class TestGetRate:
    def test_fetches_rate(self, cfg, session, make_response):
        session.get.return_value = make_response(200, _rate_payload("EUR", 0.086))
        rates = CurrencyRateService(cfg, session=session)

        assert rates.get_rate("sek", "eur") == 0.086
        _, kwargs = session.get.call_args
        assert kwargs["params"] == {"apikey": "cur-key", "currencies": "EUR", "base_currency": "SEK"}

    def test_same_currency_short_circuits(self, cfg, session):
        cfg.currency_api_key = None
        assert CurrencyRateService(cfg, session=session).get_rate("EUR", "eur") == 1
        session.get.assert_not_called()

    @pytest.mark.parametrize("src, dst", [("", "EUR"), ("SEK", ""), (None, "EUR")])
    def test_missing_parameter(self, cfg, session, src, dst):
        with pytest.raises(MissingParameterError):
            CurrencyRateService(cfg, session=session).get_rate(src, dst)

    def test_missing_api_key(self, cfg, session):
        cfg.currency_api_key = None
        with pytest.raises(ConfigurationError):
            CurrencyRateService(cfg, session=session).get_rate("SEK", "EUR")

    def test_http_error(self, cfg, session, make_response):
        session.get.return_value = make_response(429, {"message": "quota"}, text="quota")
        with pytest.raises(RateLookupError, match="429"):
            CurrencyRateService(cfg, session=session).get_rate("SEK", "EUR")

    @pytest.mark.parametrize(
        "payload",
        [{}, {"data": {}}, {"data": {"EUR": {}}}, {"data": {"EUR": {"value": "0.08"}}}, [], ValueError("bad json")],
    )
    def test_unexpected_shape(self, cfg, session, make_response, payload):
        session.get.return_value = make_response(200, payload)
        with pytest.raises(RateLookupError):
            CurrencyRateService(cfg, session=session).get_rate("SEK", "EUR")

    def test_transport_error(self, cfg, session):
        session.get.side_effect = requests.ConnectionError("down")
        with pytest.raises(RateLookupError):
            CurrencyRateService(cfg, session=session).get_rate("SEK", "EUR")

    def test_unclear_code_is_not_looked_up(self, cfg, session):
        with pytest.raises(RateLookupError):
            CurrencyRateService(cfg, session=session).get_rate("[unclear]", "EUR")
        session.get.assert_not_called()


class TestNormalizeCurrencies:
    def test_converts_and_preserves_order(self, cfg, session, make_response):
        session.get.side_effect = [
            make_response(200, _rate_payload("EUR", 0.086)),
            make_response(200, _rate_payload("EUR", 0.9)),
        ]
        records = [
            {"amount": "742.52", "currency": "sek", "purpose": "Uber Eats"},
            {"amount": "10", "currency": "EUR", "purpose": "Bakery"},
            {"amount": "100", "currency": "USD", "purpose": "Books"},
        ]
        out = normalize_currencies(records, "EUR", CurrencyRateService(cfg, session=session))

        assert out is records
        assert [r["purpose"] for r in out] == ["Uber Eats", "Bakery", "Books"]
        assert out[0]["amount"] == 63.86 and out[0]["currency"] == "EUR"
        assert out[2]["amount"] == 90.0 and out[2]["currency"] == "EUR"
        assert session.get.call_count == 2

    def test_target_currency_left_identical(self, cfg, session):
        records = [{"amount": "1,000.00", "currency": "eur", "time": "2023-06-01"}]
        before = copy.deepcopy(records)
        normalize_currencies(records, "EUR", CurrencyRateService(cfg, session=session))
        assert records == before
        session.get.assert_not_called()

    def test_no_rate_cache(self, cfg, session, make_response):
        session.get.side_effect = lambda *a, **kw: make_response(200, _rate_payload("EUR", 0.5))
        records = [{"amount": "2", "currency": "USD"}, {"amount": "4", "currency": "USD"}]
        normalize_currencies(records, "EUR", CurrencyRateService(cfg, session=session))
        assert session.get.call_count == 2
        assert [r["amount"] for r in records] == [1.0, 2.0]

    def test_failure_is_isolated(self, cfg, session, make_response):
        session.get.side_effect = [
            make_response(500, text="boom"),
            make_response(200, _rate_payload("EUR", 0.5)),
        ]
        records = [
            {"amount": "10", "currency": "GBP"},
            {"amount": "10", "currency": "USD"},
        ]
        results = convert_records(records, "EUR", CurrencyRateService(cfg, session=session))

        assert [r.ok for r in results] == [False, True]
        assert records[0]["amount"] == "10" and records[0]["currency"] == "GBP"
        assert "500" in records[0]["conversion_error"]
        assert records[1] == {"amount": 5.0, "currency": "EUR"}

    def test_invalid_amount_annotated(self, cfg, session, make_response):
        session.get.return_value = make_response(200, _rate_payload("EUR", 0.5))
        records = [{"amount": "[unclear]", "currency": "USD"}]
        normalize_currencies(records, "EUR", CurrencyRateService(cfg, session=session))
        assert records[0]["amount"] == "[unclear]"
        assert records[0]["currency"] == "USD"
        assert "Invalid amount" in records[0]["conversion_error"]

    def test_missing_key_annotates_every_record(self, cfg, session):
        cfg.currency_api_key = None
        records = [{"amount": "1", "currency": "USD"}, {"amount": "2", "currency": "GBP"}]
        normalize_currencies(records, "EUR", CurrencyRateService(cfg, session=session))
        assert all("CURRENCY_API_KEY" in r["conversion_error"] for r in records)

    def test_records_without_currency_or_amount_skipped(self, cfg, session):
        records = [{"amount": "5"}, {"currency": "USD"}, "not a record", {"amount": 0, "currency": "USD"}]
        before = copy.deepcopy(records)
        results = convert_records(records, "EUR", CurrencyRateService(cfg, session=session))
        assert records == before
        assert all(r.ok and not r.converted for r in results)
        session.get.assert_not_called()

    @pytest.mark.parametrize("garbage", [float("inf"), "1234567890123456789012345678 SEK"])
    def test_out_of_range_amount_is_isolated(self, cfg, session, make_response, garbage):
        session.get.side_effect = lambda *a, **kw: make_response(200, _rate_payload("EUR", 0.5))
        records = [{"amount": garbage, "currency": "SEK"}, {"amount": "10", "currency": "SEK"}]
        out = normalize_currencies(records, "EUR", CurrencyRateService(cfg, session=session))

        assert out[0]["amount"] == garbage and out[0]["currency"] == "SEK"
        assert "amount" in out[0]["conversion_error"].lower()
        assert out[1] == {"amount": 5.0, "currency": "EUR"}
