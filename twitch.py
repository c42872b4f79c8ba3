#!/usr/bin/env python3
"""
Twitch Platform Module for StreamerRoleBot
Handles Twitch API authentication, quota-aware credential rotation and stream lookups
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple
import aiohttp

from config import Config

logger = logging.getLogger('StreamerRoleBot.Twitch')

# Lookup outcomes returned in the 'status' field of get_stream_by_name
STATUS_LIVE = 'live'
STATUS_OFFLINE = 'offline'
STATUS_RATE_LIMITED = 'rate_limited'
STATUS_ERROR = 'error'

class TwitchAPI:
    """Twitch API manager for stream lookups with a rotating pool of app credentials"""

    def __init__(self, credentials: Optional[List[Tuple[str, str]]] = None):
        self.credentials = credentials if credentials is not None else Config.twitch_credentials()
        self.current = 0
        self.access_tokens = {}  # credential index -> (token, expires_at)
        self.token_locks = {}  # credential index -> asyncio.Lock
        if not self.credentials:
            logger.warning("No Twitch credentials configured - stream lookups will fail")

    @property
    def client_id(self) -> Optional[str]:
        if not self.credentials:
            return None
        return self.credentials[self.current][0]

    def next_token(self):
        """Switch to the next credential in the pool, wrapping around"""
        if not self.credentials:
            return
        self.current = (self.current + 1) % len(self.credentials)
        logger.warning(f"Twitch quota exceeded - switched to credential #{self.current + 1} of {len(self.credentials)}")

    async def get_access_token(self) -> Optional[str]:
        """Get or refresh the app access token of the active credential"""
        if not self.credentials:
            return None

        index = self.current
        lock = self.token_locks.setdefault(index, asyncio.Lock())

        # One token request per credential; concurrent callers wait and reuse it
        async with lock:
            cached = self.access_tokens.get(index)
            if cached and datetime.now() < cached[1]:
                return cached[0]

            client_id, client_secret = self.credentials[index]
            data = {
                'client_id': client_id,
                'client_secret': client_secret,
                'grant_type': 'client_credentials'
            }

            try:
                timeout = aiohttp.ClientTimeout(total=10)
                async with aiohttp.ClientSession(timeout=timeout) as session:
                    async with session.post(Config.TWITCH_TOKEN_URL, data=data) as response:
                        if response.status == 200:
                            token_data = await response.json()
                            token = token_data['access_token']
                            expires_in = token_data['expires_in']
                            self.access_tokens[index] = (token, datetime.now() + timedelta(seconds=expires_in - 300))
                            return token
                        else:
                            logger.error(f"Failed to get Twitch token: {response.status}")
                            return None
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                logger.error(f"Failed to get Twitch token: {e}")
                return None
            except (KeyError, TypeError, ValueError) as e:
                logger.error(f"Unexpected Twitch token response: {e!r}")
                return None

    async def _get(self, url: str, headers: Dict[str, str], params: Dict[str, str]) -> Tuple[int, Optional[Dict]]:
        """GET a Helix endpoint, returning the status code and decoded body (if 200)"""
        timeout = aiohttp.ClientTimeout(total=10)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(url, headers=headers, params=params) as response:
                if response.status != 200:
                    return response.status, None
                return response.status, await response.json()

    async def get_stream_by_name(self, username: str) -> Dict:
        """Look up the live stream of a Twitch channel"""
        token = await self.get_access_token()
        if not token:
            return {'is_live': False, 'status': STATUS_ERROR}

        index = self.current
        headers = {
            'Client-ID': self.credentials[index][0],
            'Authorization': f'Bearer {token}'
        }
        url = f'{Config.TWITCH_API_URL}/streams'

        try:
            status, body = await self._get(url, headers, {'user_login': username})
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error(f"Failed getting response from Twitch for {username}: {e}")
            return {'is_live': False, 'status': STATUS_ERROR}

        logger.debug(f"Twitch stream lookup for {username}: {status} {body}")

        if status == 429:
            # Concurrent lookups on the same exhausted credential rotate only once
            if self.current == index:
                self.next_token()
            return {'is_live': False, 'status': STATUS_RATE_LIMITED}

        if status == 401:
            # Token revoked or expired early
            self.access_tokens.pop(index, None)
            logger.error(f"Twitch rejected the access token while looking up {username}")
            return {'is_live': False, 'status': STATUS_ERROR}

        if status != 200 or body is None:
            logger.error(f"Failed to get Twitch stream info for {username}: {status}")
            return {'is_live': False, 'status': STATUS_ERROR}

        if not body.get('data'):
            return {'is_live': False, 'status': STATUS_OFFLINE}

        stream = body['data'][0]
        return {
            'is_live': True,
            'status': STATUS_LIVE,
            'game_id': str(stream.get('game_id', '')),
            'game_name': stream.get('game_name', ''),
            'title': stream.get('title', ''),
            'viewer_count': stream.get('viewer_count', 0)
        }

    async def is_streaming_game(self, username: str, game_id: str) -> bool:
        """Check if the channel is live in the given game/category"""
        stream_info = await self.get_stream_by_name(username)
        if not stream_info['is_live']:
            return False
        return stream_info['game_id'] == str(game_id)
