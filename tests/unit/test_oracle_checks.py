"""Unit tests for the external oracle checks, served by httpx.MockTransport."""

from datetime import date

import httpx
import pytest

from src.pm_oracle.infrastructure.electricity import check_electricity_price
from src.pm_oracle.infrastructure.news import check_news_trending
from src.pm_oracle.infrastructure.sports import check_sports_match
from src.pm_oracle.infrastructure.stock_index import check_stock_index
from src.pm_oracle.infrastructure.weather import check_temperature


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _yahoo(previous, current) -> dict:
    return {"chart": {"result": [{"meta": {"previousClose": previous, "regularMarketPrice": current}}]}}


class TestStockIndex:
    async def test_closes_green(self) -> None:
        async with _client(lambda req: httpx.Response(200, json=_yahoo(11000.0, 11100.5))) as c:
            result = await check_stock_index(c, "^IBEX")

        assert result.outcome is True
        assert result.value == 11100.5
        assert "Yahoo Finance ^IBEX" in result.source
        assert "11000.00" in result.source

    async def test_closes_red(self) -> None:
        async with _client(lambda req: httpx.Response(200, json=_yahoo(11000.0, 10900.0))) as c:
            result = await check_stock_index(c)

        assert result.outcome is False

    async def test_sends_symbol_and_agent(self) -> None:
        seen = {}

        def handler(req: httpx.Request) -> httpx.Response:
            seen["url"] = str(req.url)
            seen["agent"] = req.headers["user-agent"]
            return httpx.Response(200, json=_yahoo(1.0, 2.0))

        async with _client(handler) as c:
            await check_stock_index(c, "^IBEX")

        assert "/v8/finance/chart/" in seen["url"]
        assert "IBEX" in seen["url"]
        assert "Mozilla" in seen["agent"]

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(500),
            httpx.Response(200, json={"chart": {"result": None}}),
            httpx.Response(200, json={"chart": {"result": [{"meta": {}}]}}),
            httpx.Response(200, text="<html>not json</html>"),
        ],
    )
    async def test_failures_give_no_answer(self, response) -> None:
        async with _client(lambda req: response) as c:
            assert await check_stock_index(c) is None

    async def test_network_error(self) -> None:
        def handler(req: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("boom", request=req)

        async with _client(handler) as c:
            assert await check_stock_index(c) is None


_REE_PAYLOAD = {"included": [{"attributes": {"values": [{"value": 90.0}, {"value": 110.0}]}}]}


class TestElectricity:
    async def test_primary_source(self) -> None:
        async with _client(lambda req: httpx.Response(200, json={"price": 123.4})) as c:
            result = await check_electricity_price(c, threshold=100)

        assert result.outcome is True
        assert result.value == pytest.approx(123.4)
        assert "preciodelaluz.org" in result.source

    async def test_falls_back_to_ree(self) -> None:
        seen_params = {}

        def handler(req: httpx.Request) -> httpx.Response:
            if req.url.host == "api.preciodelaluz.org":
                return httpx.Response(503)
            seen_params.update(req.url.params)
            return httpx.Response(200, json=_REE_PAYLOAD)

        async with _client(handler) as c:
            result = await check_electricity_price(c, threshold=100, day=date(2026, 7, 1))

        assert result.value == pytest.approx(100.0)
        assert result.outcome is False  # strictly greater than the threshold
        assert "REE" in result.source
        assert seen_params["start_date"] == "2026-07-01T00:00"

    async def test_null_primary_price_uses_fallback(self) -> None:
        def handler(req: httpx.Request) -> httpx.Response:
            if req.url.host == "api.preciodelaluz.org":
                return httpx.Response(200, json={"price": None})
            return httpx.Response(200, json=_REE_PAYLOAD)

        async with _client(handler) as c:
            result = await check_electricity_price(c, threshold=95)

        assert result.outcome is True

    async def test_both_sources_down(self) -> None:
        async with _client(lambda req: httpx.Response(502)) as c:
            assert await check_electricity_price(c) is None


class TestTemperature:
    @staticmethod
    def _by_latitude(temps: dict[str, float | None]):
        def handler(req: httpx.Request) -> httpx.Response:
            temp = temps.get(req.url.params["latitude"], 30.0)
            return httpx.Response(200, json={"daily": {"temperature_2m_max": [temp]}})

        return handler

    async def test_hottest_city_decides(self) -> None:
        async with _client(self._by_latitude({"37.39": 41.2, "40.42": 38.0})) as c:
            result = await check_temperature(c, threshold=40)

        assert result.outcome is True
        assert result.value == pytest.approx(41.2)
        assert "Sevilla" in result.source

    async def test_below_threshold(self) -> None:
        async with _client(self._by_latitude({})) as c:
            result = await check_temperature(c, threshold=30)

        assert result.outcome is False  # 30.0 is not above 30

    async def test_missing_reading_gives_no_answer(self) -> None:
        async with _client(self._by_latitude({"37.39": None, "41.65": 33.0})) as c:
            assert await check_temperature(c, threshold=30) is None

    async def test_empty_daily_block_gives_no_answer(self) -> None:
        def handler(req: httpx.Request) -> httpx.Response:
            if req.url.params["latitude"] == "37.98":
                return httpx.Response(200, json={"daily": {}})
            return httpx.Response(200, json={"daily": {"temperature_2m_max": [45.0]}})

        async with _client(handler) as c:
            assert await check_temperature(c) is None

    async def test_any_city_failing_gives_no_answer(self) -> None:
        def handler(req: httpx.Request) -> httpx.Response:
            if req.url.params["latitude"] == "40.42":
                return httpx.Response(500)
            return httpx.Response(200, json={"daily": {"temperature_2m_max": [45.0]}})

        async with _client(handler) as c:
            assert await check_temperature(c) is None


def _rss(items: int) -> str:
    body = "".join(f"<item><title>Noticia {i}</title></item>" for i in range(items))
    return f'<?xml version="1.0"?><rss version="2.0"><channel><title>Feed</title>{body}</channel></rss>'


class TestNewsTrending:
    async def test_enough_coverage(self) -> None:
        seen = {}

        def handler(req: httpx.Request) -> httpx.Response:
            seen["q"] = req.url.params["q"]
            return httpx.Response(200, text=_rss(6))

        async with _client(handler) as c:
            result = await check_news_trending(c, "Huelga de taxis", threshold=5)

        assert result.outcome is True
        assert result.value == 6.0
        assert "Huelga de taxis" in seen["q"]

    async def test_not_enough_coverage(self) -> None:
        async with _client(lambda req: httpx.Response(200, text=_rss(2))) as c:
            result = await check_news_trending(c, "tema", threshold=5)

        assert result.outcome is False

    async def test_invalid_xml(self) -> None:
        async with _client(lambda req: httpx.Response(200, text="<rss><channel>")) as c:
            assert await check_news_trending(c, "tema") is None

    async def test_empty_topic(self) -> None:
        async with _client(lambda req: httpx.Response(200, text=_rss(9))) as c:
            assert await check_news_trending(c, "") is None


def _sports_handler(events: dict):
    def handler(req: httpx.Request) -> httpx.Response:
        if req.url.path.endswith("searchteams.php"):
            return httpx.Response(200, json={"teams": [{"idTeam": "133738"}]})
        return httpx.Response(200, json=events)

    return handler


class TestSportsMatch:
    async def test_home_win(self) -> None:
        events = {"results": [{
            "idHomeTeam": "133738", "intHomeScore": "2", "intAwayScore": "1",
            "strEvent": "Real Madrid vs Getafe", "dateEvent": "2026-10-12",
        }]}
        async with _client(_sports_handler(events)) as c:
            result = await check_sports_match(c, "Real Madrid")

        assert result.outcome is True
        assert result.value == 2.0
        assert "Real Madrid vs Getafe 2-1" in result.source

    async def test_away_loss(self) -> None:
        events = {"results": [{
            "idHomeTeam": "999", "intHomeScore": "3", "intAwayScore": "0",
        }]}
        async with _client(_sports_handler(events)) as c:
            result = await check_sports_match(c, "Real Madrid")

        assert result.outcome is False
        assert result.value == 0.0

    async def test_draw_is_not_a_win(self) -> None:
        events = {"results": [{"idHomeTeam": "133738", "intHomeScore": 1, "intAwayScore": 1}]}
        async with _client(_sports_handler(events)) as c:
            assert (await check_sports_match(c, "Real Madrid")).outcome is False

    async def test_no_finished_match(self) -> None:
        events = {"results": [{"idHomeTeam": "133738", "intHomeScore": None, "intAwayScore": None}]}
        async with _client(_sports_handler(events)) as c:
            assert await check_sports_match(c, "Real Madrid") is None

    async def test_unknown_team(self) -> None:
        async with _client(lambda req: httpx.Response(200, json={"teams": None})) as c:
            assert await check_sports_match(c, "Nadie FC") is None
