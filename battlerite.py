#!/usr/bin/env python3
"""
Battlerite Module for StreamerRoleBot
Thin client for the Battlerite developer API (players, team stats, matches)
"""

import asyncio
import logging
import time
from collections import namedtuple
from typing import Dict, Iterable, Optional
from urllib.parse import urlencode
import aiohttp

from config import Config

logger = logging.getLogger('StreamerRoleBot.Battlerite')

PlayerSummary = namedtuple('PlayerSummary', ['id', 'name', 'picture', 'title'])

class TeamStatsSummary(namedtuple('TeamStatsSummary', ['teams', 'wins', 'losses', 'best_league', 'best_division'])):
    """Wins and losses added up over every team a player played in"""

    __slots__ = ()

    @property
    def games(self) -> int:
        return self.wins + self.losses

    @property
    def win_rate(self) -> float:
        if not self.games:
            return 0.0
        return self.wins * 100 / self.games

class BattleriteAPI:
    """Battlerite developer API wrapper with a short-lived response cache"""

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None):
        self.api_key = api_key if api_key is not None else Config.BATTLERITE_API_KEY
        self.base_url = (base_url or Config.BATTLERITE_API_URL).rstrip('/')
        self.cache = {}  # Cache responses to avoid burning the request quota
        self.cache_duration = Config.API_CACHE_DURATION

    def clear_cache(self):
        self.cache.clear()
        logger.info("Battlerite cache cleared")

    async def _get(self, path: str, params: Dict[str, str]) -> Optional[Dict]:
        """GET an endpoint and return the JSON:API document, or None on failure"""
        if not self.api_key:
            logger.warning(f"Battlerite API key missing - cannot request {path}")
            return None

        url = f"{self.base_url}/{path}?{urlencode(params)}"
        current_time = time.time()

        cached = self.cache.get(url)
        if cached and current_time - cached['timestamp'] < self.cache_duration:
            logger.debug(f"Using cached Battlerite response for {url}")
            return cached['data']

        headers = {
            'Authorization': f'Bearer {self.api_key}',
            'Accept': 'application/vnd.api+json'
        }

        try:
            timeout = aiohttp.ClientTimeout(total=15)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url, headers=headers) as response:
                    if response.status != 200:
                        logger.warning(f"Battlerite API returned status {response.status} for {url}")
                        return None
                    data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Error requesting Battlerite API {url}: {e}")
            return None

        self.cache[url] = {'data': data, 'timestamp': current_time}
        return data

    async def get_player_by_name(self, name: str) -> Optional[Dict]:
        return await self._get('players', {'filter[playerNames]': name})

    async def get_players_by_id(self, ids: Iterable) -> Optional[Dict]:
        """ids are joined as filter[playerIds]=123,456,789"""
        return await self._get('players', {'filter[playerIds]': ','.join(str(i) for i in ids)})

    async def get_player_stats(self, player_id, season: int) -> Optional[Dict]:
        return await self._get('teams', {'filter[playerIds]': str(player_id), 'tag[season]': str(season)})

    async def get_matches(self, created_at_start: str, ranking_type: str) -> Optional[Dict]:
        """created_at_start is ISO-8601, e.g. 2017-01-01T08:25:30Z"""
        return await self._get('matches', {
            'filter[createdAt-start]': created_at_start,
            'filter[rankingType]': ranking_type
        })

def parse_player(document: Optional[Dict]) -> Optional[PlayerSummary]:
    """Pull the first player out of a players document"""
    if not document or not document.get('data'):
        return None

    player = document['data'][0]
    attributes = player.get('attributes', {})
    stats = attributes.get('stats') or {}
    return PlayerSummary(
        id=str(player.get('id', '')),
        name=attributes.get('name', ''),
        picture=stats.get('picture'),
        title=stats.get('title')
    )

def summarize_team_stats(document: Optional[Dict]) -> TeamStatsSummary:
    """Add up wins/losses over all teams in a teams document"""
    teams = (document or {}).get('data') or []
    wins = losses = 0
    best_league = best_division = None

    for team in teams:
        stats = team.get('attributes', {}).get('stats') or {}
        wins += stats.get('wins', 0)
        losses += stats.get('losses', 0)

        league = stats.get('league')
        if league is None:
            continue
        division = stats.get('division')
        # Higher league wins; within a league a lower division number is better
        if (best_league is None or league > best_league
                or (league == best_league and division is not None
                    and (best_division is None or division < best_division))):
            best_league, best_division = league, division

    return TeamStatsSummary(len(teams), wins, losses, best_league, best_division)
