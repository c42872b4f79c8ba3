#!/usr/bin/env python3
"""
Configuration Module for StreamerRoleBot
Centralized configuration to avoid code duplication
"""

import os
from typing import List, Tuple

class Config:
    """Centralized configuration for StreamerRoleBot"""

    # Discord
    DISCORD_TOKEN = os.getenv('DISCORD_TOKEN')
    GUILD_NAME = os.getenv('GUILD_NAME', 'battlerite')
    COMMAND_TRIGGER = os.getenv('COMMAND_TRIGGER', '!br')
    OWNER_DISCORD_USER_ID = int(os.getenv('OWNER_DISCORD_USER_ID', '233347968378339328'))
    DISCORD_SERVER_INVITE = 'https://discord.gg/5ZZDsXv'
    DISCORD_MESSAGE_MAX_CHAR = 1024

    # Role names (matched case-insensitively)
    STREAMING_ROLE_NAME = os.getenv('STREAMING_ROLE_NAME', 'Streaming')
    PROBATION_ROLE_NAME = os.getenv('PROBATION_ROLE_NAME', 'Under Probation')

    # Twitch API
    TWITCH_API_URL = 'https://api.twitch.tv/helix'
    TWITCH_TOKEN_URL = 'https://id.twitch.tv/oauth2/token'
    TWITCH_CREDENTIALS = os.getenv('TWITCH_CREDENTIALS', '')
    TWITCH_BATTLERITE_ID = os.getenv('TWITCH_BATTLERITE_ID', '491418')

    # Battlerite API
    BATTLERITE_API_URL = 'https://api.developer.battlerite.com/shards/global'
    BATTLERITE_API_KEY = os.getenv('BATTLERITE_API_KEY')
    BATTLERITE_CURRENT_SEASON = int(os.getenv('BATTLERITE_CURRENT_SEASON', '8'))
    ASSETS_URL = 'https://raw.githubusercontent.com/curliq/assets/master/championIcons/'
    ASSETS_PROFILE_URL = 'https://raw.githubusercontent.com/curliq/assets/master/playerIcons/'

    # Messages
    ERROR_TITLE = 'Error...'
    ERROR_MESSAGE = 'Oops, something wrong is not right'

    # Embed Colors
    COLORS = {
        'twitch': 0x9146FF,
        'battlerite': 0xF5A623,
        'error': 0xE74C3C
    }

    # Check Intervals (in seconds)
    TWITCH_CALL_DELAY = int(os.getenv('TWITCH_CALL_DELAY', '30'))             # Twitch needs time to update stream data
    RECALL_TWITCH_INTERVAL = int(os.getenv('RECALL_TWITCH_INTERVAL', '180'))  # 3 minutes between rechecks
    API_CACHE_DURATION = 300                                                   # 5 minutes cache for Battlerite data

    # Health server
    PORT = int(os.getenv('PORT', '5000'))

    @classmethod
    def twitch_credentials(cls) -> List[Tuple[str, str]]:
        """Parse TWITCH_CREDENTIALS ("id:secret,id:secret") into a list of pairs"""
        credentials = []
        for entry in cls.TWITCH_CREDENTIALS.split(','):
            client_id, _, client_secret = entry.strip().partition(':')
            if client_id and client_secret:
                credentials.append((client_id, client_secret))
        return credentials
