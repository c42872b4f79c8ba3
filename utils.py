#!/usr/bin/env python3
"""
Utility Module for StreamerRoleBot
Logging setup, embed construction and small formatting helpers
"""

import re
import sys
import logging
from decimal import Decimal, ROUND_HALF_EVEN
from typing import Optional

import discord

from config import Config

STREAMING_URL_PATTERN = re.compile(r'^https?://(www\.)?twitch\.tv/.+')

class ConsoleLoggingHandler:
    """Sends INFO/DEBUG to STDOUT and WARNING/ERROR to STDERR"""

    def __init__(self, level=logging.INFO):
        self.formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

        # Configure root logger (clear existing handlers to prevent duplication)
        root_logger = logging.getLogger()
        root_logger.handlers.clear()
        root_logger.setLevel(level)

        self.stdout_handler = logging.StreamHandler(sys.stdout)
        self.stdout_handler.setLevel(logging.DEBUG)
        self.stdout_handler.setFormatter(self.formatter)
        self.stdout_handler.addFilter(lambda record: record.levelno < logging.WARNING)

        self.stderr_handler = logging.StreamHandler(sys.stderr)
        self.stderr_handler.setLevel(logging.WARNING)
        self.stderr_handler.setFormatter(self.formatter)

        root_logger.addHandler(self.stdout_handler)
        root_logger.addHandler(self.stderr_handler)

def setup_logging(level=logging.INFO) -> ConsoleLoggingHandler:
    """Configure console logging and silence noisy library loggers"""
    handler = ConsoleLoggingHandler(level)

    logging.getLogger('discord.http').setLevel(logging.WARNING)
    logging.getLogger('discord.gateway').setLevel(logging.WARNING)
    logging.getLogger('discord.client').setLevel(logging.WARNING)
    logging.getLogger('aiohttp.access').setLevel(logging.WARNING)
    return handler

def get_basic_embed_message(title: str, message: str, color: Optional[int] = None) -> discord.Embed:
    """Build a basic embed message with just one field"""
    if len(message) > Config.DISCORD_MESSAGE_MAX_CHAR:
        message = message[:Config.DISCORD_MESSAGE_MAX_CHAR - 3] + '...'
    embed = discord.Embed(color=color) if color is not None else discord.Embed()
    embed.add_field(name=title, value=message, inline=False)
    return embed

def round_two_decimals(value: float) -> str:
    """Round the exact binary value to two decimal places (half-even) and always show both digits"""
    rounded = Decimal(float(value)).quantize(Decimal('0.01'), rounding=ROUND_HALF_EVEN)
    return f"{rounded:.2f}"

def is_valid_streaming_url(url: Optional[str]) -> bool:
    if not url:
        return False
    return STREAMING_URL_PATTERN.match(url) is not None

def twitch_username_from_url(url: str) -> str:
    """https://www.twitch.tv/SomeName/ -> SomeName"""
    path = url.split('?', 1)[0].rstrip('/')
    return path[path.rfind('/') + 1:]

def streaming_activity(member) -> Optional[discord.Streaming]:
    """Return the member's streaming activity, if any"""
    for activity in member.activities:
        if isinstance(activity, discord.Streaming):
            return activity
    return None
