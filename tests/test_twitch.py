"""Tests for the Twitch client. HTTP is stubbed, no network access."""

import asyncio
from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import aiohttp
import pytest

from config import Config
from twitch import STATUS_ERROR, STATUS_LIVE, STATUS_OFFLINE, STATUS_RATE_LIMITED, TwitchAPI


@pytest.fixture
def api() -> TwitchAPI:
    api = TwitchAPI(credentials=[("id-one", "secret-one"), ("id-two", "secret-two")])
    api.get_access_token = AsyncMock(return_value="token")
    return api


def stream_body(game_id: str = "491418") -> dict:
    return {
        "data": [
            {
                "game_id": game_id,
                "game_name": "Battlerite",
                "title": "ranked 3v3",
                "viewer_count": 42,
            }
        ]
    }


class FakeResponse:
    def __init__(self, status: int, body=None, error: Exception = None):
        self.status = status
        self.body = body
        self.error = error

    async def json(self):
        await asyncio.sleep(0)
        if self.error:
            raise self.error
        return self.body

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False


class FakeSession:
    """Stands in for aiohttp.ClientSession and records every request made through it"""

    def __init__(self, response: FakeResponse, requests: list, error: Exception = None):
        self.response = response
        self.requests = requests
        self.error = error

    def post(self, url, data=None):
        self.requests.append(("post", url, data))
        if self.error:
            raise self.error
        return self.response

    def get(self, url, headers=None, params=None):
        self.requests.append(("get", url, params))
        if self.error:
            raise self.error
        return self.response

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False


@pytest.fixture
def requests() -> list:
    return []


@pytest.fixture
def fake_http(monkeypatch, requests):
    """Patch aiohttp.ClientSession; call with the response (or error) every session should give"""
    def install(response: FakeResponse = None, error: Exception = None):
        monkeypatch.setattr(aiohttp, "ClientSession", lambda **kwargs: FakeSession(response, requests, error))
    return install


def token_response(token: str = "fresh", expires_in: int = 3600) -> FakeResponse:
    return FakeResponse(200, {"access_token": token, "expires_in": expires_in, "token_type": "bearer"})


class TestCredentials:
    def test_next_token_wraps_around(self) -> None:
        api = TwitchAPI(credentials=[("a", "1"), ("b", "2")])
        assert api.client_id == "a"
        api.next_token()
        assert api.client_id == "b"
        api.next_token()
        assert api.client_id == "a"

    def test_no_credentials(self) -> None:
        api = TwitchAPI(credentials=[])
        assert api.client_id is None
        api.next_token()
        assert api.current == 0

    async def test_access_token_missing_without_credentials(self) -> None:
        api = TwitchAPI(credentials=[])
        assert await api.get_access_token() is None

    async def test_cached_access_token_is_reused(self) -> None:
        api = TwitchAPI(credentials=[("a", "1")])
        api.access_tokens[0] = ("cached", datetime.now() + timedelta(hours=1))
        assert await api.get_access_token() == "cached"


class TestGetAccessToken:
    async def test_fetches_and_caches_token(self, fake_http, requests) -> None:
        fake_http(token_response("fresh", expires_in=3600))
        api = TwitchAPI(credentials=[("a", "1"), ("b", "2")])
        before = datetime.now()
        assert await api.get_access_token() == "fresh"

        token, expires_at = api.access_tokens[0]
        assert token == "fresh"
        # Refreshed 5 minutes before Twitch expires it
        assert before + timedelta(seconds=3300) <= expires_at <= datetime.now() + timedelta(seconds=3300)

        method, url, data = requests[0]
        assert method == "post"
        assert url == Config.TWITCH_TOKEN_URL
        assert data == {"client_id": "a", "client_secret": "1", "grant_type": "client_credentials"}

        assert await api.get_access_token() == "fresh"
        assert len(requests) == 1

    async def test_token_is_cached_per_credential(self, fake_http, requests) -> None:
        fake_http(token_response("second"))
        api = TwitchAPI(credentials=[("a", "1"), ("b", "2")])
        api.access_tokens[0] = ("first", datetime.now() + timedelta(hours=1))
        api.next_token()

        assert await api.get_access_token() == "second"
        assert requests[0][2]["client_id"] == "b"
        assert api.access_tokens[1][0] == "second"
        assert api.access_tokens[0][0] == "first"

    async def test_expired_token_is_refetched(self, fake_http, requests) -> None:
        fake_http(token_response("fresh"))
        api = TwitchAPI(credentials=[("a", "1")])
        api.access_tokens[0] = ("old", datetime.now() - timedelta(seconds=1))
        assert await api.get_access_token() == "fresh"
        assert len(requests) == 1

    async def test_concurrent_callers_share_one_request(self, fake_http, requests) -> None:
        fake_http(token_response("fresh"))
        api = TwitchAPI(credentials=[("a", "1")])
        tokens = await asyncio.gather(*(api.get_access_token() for _ in range(10)))
        assert tokens == ["fresh"] * 10
        assert len(requests) == 1

    async def test_rejected_credentials(self, fake_http) -> None:
        fake_http(FakeResponse(400, {"message": "invalid client secret"}))
        api = TwitchAPI(credentials=[("a", "1")])
        assert await api.get_access_token() is None
        assert api.access_tokens == {}

    async def test_network_error(self, fake_http) -> None:
        fake_http(error=aiohttp.ClientConnectionError("down"))
        api = TwitchAPI(credentials=[("a", "1")])
        assert await api.get_access_token() is None

    async def test_body_without_token(self, fake_http) -> None:
        fake_http(FakeResponse(200, {}))
        api = TwitchAPI(credentials=[("a", "1")])
        assert await api.get_access_token() is None
        assert api.access_tokens == {}

    async def test_body_not_json(self, fake_http) -> None:
        fake_http(FakeResponse(200, error=ValueError("Expecting value")))
        api = TwitchAPI(credentials=[("a", "1")])
        assert await api.get_access_token() is None


class TestGetStreamByName:
    async def test_live(self, api: TwitchAPI) -> None:
        api._get = AsyncMock(return_value=(200, stream_body()))
        info = await api.get_stream_by_name("brplayer")
        assert info["is_live"] is True
        assert info["status"] == STATUS_LIVE
        assert info["game_id"] == "491418"
        assert info["viewer_count"] == 42
        url, headers, params = api._get.call_args.args
        assert url.endswith("/streams")
        assert params == {"user_login": "brplayer"}
        assert headers["Client-ID"] == "id-one"
        assert headers["Authorization"] == "Bearer token"

    async def test_offline(self, api: TwitchAPI) -> None:
        api._get = AsyncMock(return_value=(200, {"data": []}))
        info = await api.get_stream_by_name("brplayer")
        assert info == {"is_live": False, "status": STATUS_OFFLINE}

    async def test_rate_limited_rotates_credential(self, api: TwitchAPI) -> None:
        api._get = AsyncMock(return_value=(429, None))
        info = await api.get_stream_by_name("brplayer")
        assert info["status"] == STATUS_RATE_LIMITED
        assert info["is_live"] is False
        assert api.client_id == "id-two"

    async def test_concurrent_rate_limits_rotate_once(self) -> None:
        api = TwitchAPI(credentials=[("a", "1"), ("b", "2"), ("c", "3")])
        api.get_access_token = AsyncMock(return_value="token")

        async def rate_limited(url, headers, params):
            await asyncio.sleep(0)
            return 429, None

        api._get = rate_limited
        results = await asyncio.gather(api.get_stream_by_name("one"), api.get_stream_by_name("two"))
        assert [info["status"] for info in results] == [STATUS_RATE_LIMITED, STATUS_RATE_LIMITED]
        assert api.client_id == "b"

    async def test_username_is_sent_as_query_parameter(self, api: TwitchAPI, fake_http, requests) -> None:
        fake_http(FakeResponse(200, {"data": []}))
        info = await api.get_stream_by_name("br player&game_id=1")
        assert info["status"] == STATUS_OFFLINE
        method, url, params = requests[0]
        assert method == "get"
        assert url == f"{Config.TWITCH_API_URL}/streams"
        assert params == {"user_login": "br player&game_id=1"}

    async def test_unauthorized_drops_cached_token(self, api: TwitchAPI) -> None:
        api.access_tokens[0] = ("stale", datetime.now() + timedelta(hours=1))
        api._get = AsyncMock(return_value=(401, None))
        info = await api.get_stream_by_name("brplayer")
        assert info["status"] == STATUS_ERROR
        assert 0 not in api.access_tokens

    async def test_server_error(self, api: TwitchAPI) -> None:
        api._get = AsyncMock(return_value=(503, None))
        info = await api.get_stream_by_name("brplayer")
        assert info == {"is_live": False, "status": STATUS_ERROR}

    async def test_network_error(self, api: TwitchAPI) -> None:
        api._get = AsyncMock(side_effect=aiohttp.ClientConnectionError("down"))
        info = await api.get_stream_by_name("brplayer")
        assert info["status"] == STATUS_ERROR

    async def test_timeout(self, api: TwitchAPI) -> None:
        api._get = AsyncMock(side_effect=asyncio.TimeoutError())
        info = await api.get_stream_by_name("brplayer")
        assert info["status"] == STATUS_ERROR

    async def test_no_token(self, api: TwitchAPI) -> None:
        api.get_access_token = AsyncMock(return_value=None)
        api._get = AsyncMock()
        info = await api.get_stream_by_name("brplayer")
        assert info["status"] == STATUS_ERROR
        api._get.assert_not_called()


class TestIsStreamingGame:
    async def test_matching_game(self, api: TwitchAPI) -> None:
        api._get = AsyncMock(return_value=(200, stream_body("491418")))
        assert await api.is_streaming_game("brplayer", "491418") is True

    async def test_other_game(self, api: TwitchAPI) -> None:
        api._get = AsyncMock(return_value=(200, stream_body("21779")))
        assert await api.is_streaming_game("brplayer", "491418") is False

    async def test_offline(self, api: TwitchAPI) -> None:
        api._get = AsyncMock(return_value=(200, {"data": []}))
        assert await api.is_streaming_game("brplayer", "491418") is False

    async def test_rate_limited_counts_as_not_streaming(self, api: TwitchAPI) -> None:
        api._get = AsyncMock(return_value=(429, None))
        assert await api.is_streaming_game("brplayer", "491418") is False
