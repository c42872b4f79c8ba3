"""Shared test fixtures.

All Discord objects are mocked — no real Discord or Twitch connection required.
"""

from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from config import Config


PLAYERS_DOCUMENT = {
    "data": [
        {
            "type": "player",
            "id": "934791968557563904",
            "attributes": {
                "name": "Varush",
                "shardId": "global",
                "stats": {"picture": 39003, "title": 60005},
            },
        }
    ]
}

TEAMS_DOCUMENT = {
    "data": [
        {"type": "team", "id": "1", "attributes": {"stats": {"wins": 30, "losses": 10, "league": 4, "division": 2}}},
        {"type": "team", "id": "2", "attributes": {"stats": {"wins": 5, "losses": 15, "league": 4, "division": 1}}},
        {"type": "team", "id": "3", "attributes": {"stats": {"wins": 1, "losses": 0}}},
    ]
}


def make_role(name: str, default: bool = False) -> MagicMock:
    role = MagicMock(spec=discord.Role)
    role.name = name
    role.is_default.return_value = default
    role.members = []
    return role


def make_member(member_id: int = 1, roles=None, activities=(), name: str = "Streamer") -> MagicMock:
    member = MagicMock(spec=discord.Member)
    member.id = member_id
    member.name = name
    member.display_name = name
    member.roles = list(roles) if roles is not None else []
    member.activities = tuple(activities)
    member.add_roles = AsyncMock()
    member.remove_roles = AsyncMock()
    return member


def make_stream(username: str = "somestreamer", game: Optional[str] = None) -> discord.Streaming:
    extra = {"state": game} if game else {}
    return discord.Streaming(name="Playing some Battlerite", url=f"https://www.twitch.tv/{username}", **extra)


class FakeGuild:
    """Minimal guild: roles by name plus a member cache."""

    def __init__(self, name: str = "Battlerite", roles=None, members=None):
        self.name = name
        self.everyone = make_role("@everyone", default=True)
        self.region = make_role("EU")
        self.streaming = make_role(Config.STREAMING_ROLE_NAME)
        self.probation = make_role(Config.PROBATION_ROLE_NAME)
        self.roles = roles if roles is not None else [self.everyone, self.region, self.streaming, self.probation]
        self.members = list(members or [])

    def add_member(self, member):
        member.guild = self
        self.members.append(member)
        return member

    def get_member(self, member_id):
        for member in self.members:
            if member.id == member_id:
                return member
        return None


@pytest.fixture
def guild() -> FakeGuild:
    return FakeGuild()


@pytest.fixture
def twitch_api() -> MagicMock:
    api = MagicMock()
    api.is_streaming_game = AsyncMock(return_value=True)
    return api


@pytest.fixture
def bot(guild: FakeGuild) -> MagicMock:
    bot = MagicMock()
    bot.guilds = [guild]
    bot.is_owner = AsyncMock(return_value=True)
    return bot


@pytest.fixture
def ctx() -> MagicMock:
    ctx = MagicMock()
    ctx.send = AsyncMock()
    ctx.guild = None
    return ctx
