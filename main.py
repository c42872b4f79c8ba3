#!/usr/bin/env python3
"""
StreamerRoleBot - Discord Bot that gives the Streaming role to members live on Twitch
Also provides Battlerite stats commands
"""

import asyncio
import logging
from datetime import datetime

import discord
from discord.ext import commands
from aiohttp import web

from config import Config
from twitch import TwitchAPI
from battlerite import BattleriteAPI
from streaming_role import StreamingRole
from battlerite_commands import BattleriteCommands
from utils import setup_logging

logger = logging.getLogger('StreamerRoleBot')

class StreamerRoleBot(commands.Bot):
    def __init__(self):
        # Presences and members are needed to see streaming activities of every member
        intents = discord.Intents.default()
        intents.message_content = True
        intents.members = True
        intents.presences = True

        super().__init__(
            command_prefix=f"{Config.COMMAND_TRIGGER} ",
            intents=intents,
            owner_id=Config.OWNER_DISCORD_USER_ID,
            help_command=None
        )
        self.twitch_api = TwitchAPI()
        self.battlerite_api = BattleriteAPI()
        self.start_time = None

    async def setup_hook(self):
        logger.info("Adding StreamingRole cog...")
        await self.add_cog(StreamingRole(self, self.twitch_api))
        logger.info("Adding BattleriteCommands cog...")
        await self.add_cog(BattleriteCommands(self, self.battlerite_api))

    async def on_ready(self):
        self.start_time = datetime.now()
        logger.info(f'{self.user} has connected to Discord!')
        logger.info(f'Bot is in {len(self.guilds)} guilds')

    @property
    def tracked_members(self) -> int:
        cog = self.get_cog('StreamingRole')
        return len(cog.trackers) if cog else 0

async def create_health_server(bot: StreamerRoleBot):
    """Create a simple HTTP server for health checks"""
    async def health_check(request):
        return web.json_response({
            "status": "healthy" if bot.is_ready() else "starting",
            "bot": "StreamerRoleBot",
            "tracked_members": bot.tracked_members,
            "started_at": bot.start_time.isoformat() if bot.start_time else None,
            "timestamp": datetime.now().isoformat()
        })

    async def root_handler(request):
        return web.json_response({
            "message": "StreamerRoleBot is running",
            "status": "online"
        })

    app = web.Application()
    app.router.add_get('/', root_handler)
    app.router.add_get('/health', health_check)

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, '0.0.0.0', Config.PORT)
    await site.start()

    logger.info(f"HTTP server started on port {Config.PORT} for health checks")
    return runner

async def main():
    """Main function to run both Discord bot and HTTP server"""
    setup_logging()

    if not Config.DISCORD_TOKEN:
        logger.error("DISCORD_TOKEN not found in environment variables")
        raise SystemExit(1)

    logger.info("Starting StreamerRoleBot...")
    bot = StreamerRoleBot()
    server_runner = await create_health_server(bot)

    try:
        async with bot:
            await bot.start(Config.DISCORD_TOKEN)
    finally:
        await server_runner.cleanup()

def run():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Bot shutdown requested")

if __name__ == '__main__':
    run()
