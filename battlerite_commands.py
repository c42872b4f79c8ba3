"""
Battlerite stats commands for StreamerRoleBot
"""

import logging
from typing import Optional

import discord
from discord.ext import commands

from config import Config
from battlerite import BattleriteAPI, parse_player, summarize_team_stats
from utils import get_basic_embed_message, round_two_decimals

logger = logging.getLogger('StreamerRoleBot.commands')

class BattleriteCommands(commands.Cog):
    def __init__(self, bot: commands.Bot, battlerite_api: BattleriteAPI):
        self.bot = bot
        self.battlerite_api = battlerite_api

    @commands.command(name="player")
    async def player(self, ctx: commands.Context, *, name: str):
        """Show a Battlerite player's profile"""
        player = parse_player(await self.battlerite_api.get_player_by_name(name))
        if player is None:
            await ctx.send(embed=get_basic_embed_message("Player not found", f"No Battlerite player called **{name}**"))
            return

        embed = discord.Embed(title=player.name, color=Config.COLORS['battlerite'])
        embed.add_field(name="Player ID", value=player.id, inline=True)
        if player.title is not None:
            embed.add_field(name="Title", value=str(player.title), inline=True)
        if player.picture is not None:
            embed.set_thumbnail(url=f"{Config.ASSETS_PROFILE_URL}{player.picture}.png")
        await ctx.send(embed=embed)

    @commands.command(name="stats")
    async def stats(self, ctx: commands.Context, name: str, season: Optional[int] = None):
        """Show wins, losses and win rate of a player for a season"""
        season = season if season is not None else Config.BATTLERITE_CURRENT_SEASON

        player = parse_player(await self.battlerite_api.get_player_by_name(name))
        if player is None:
            await ctx.send(embed=get_basic_embed_message("Player not found", f"No Battlerite player called **{name}**"))
            return

        document = await self.battlerite_api.get_player_stats(player.id, season)
        if document is None:
            await ctx.send(embed=get_basic_embed_message(Config.ERROR_TITLE, Config.ERROR_MESSAGE, Config.COLORS['error']))
            return

        summary = summarize_team_stats(document)
        if not summary.games:
            await ctx.send(embed=get_basic_embed_message(player.name, f"No ranked games in season {season}"))
            return

        embed = discord.Embed(title=f"{player.name} - Season {season}", color=Config.COLORS['battlerite'])
        embed.add_field(name="Wins", value=str(summary.wins), inline=True)
        embed.add_field(name="Losses", value=str(summary.losses), inline=True)
        embed.add_field(name="Win rate", value=f"{round_two_decimals(summary.win_rate)}%", inline=True)
        embed.add_field(name="Teams", value=str(summary.teams), inline=True)
        if summary.best_league is not None:
            embed.add_field(name="Best league", value=f"League {summary.best_league} - Division {summary.best_division}", inline=True)
        if player.picture is not None:
            embed.set_thumbnail(url=f"{Config.ASSETS_PROFILE_URL}{player.picture}.png")
        await ctx.send(embed=embed)

    @commands.command(name="invite")
    async def invite(self, ctx: commands.Context):
        await ctx.send(Config.DISCORD_SERVER_INVITE)

    @commands.Cog.listener()
    async def on_command_error(self, ctx: commands.Context, error: commands.CommandError):
        if isinstance(error, commands.CommandNotFound):
            return

        if isinstance(error, (commands.MissingRequiredArgument, commands.BadArgument)):
            usage = f"{Config.COMMAND_TRIGGER} {ctx.command.qualified_name} {ctx.command.signature}".strip()
            await ctx.send(embed=get_basic_embed_message("Usage", f"`{usage}`"))
            return

        if isinstance(error, commands.CheckFailure):
            logger.warning(f"{ctx.author} tried to use {ctx.command}: {error}")
        else:
            logger.error(f"Error in command {ctx.command} used by {ctx.author}: {error}")
        try:
            await ctx.send(embed=get_basic_embed_message(Config.ERROR_TITLE, Config.ERROR_MESSAGE, Config.COLORS['error']))
        except discord.HTTPException as e:
            logger.error(f"Failed to send error message: {e}")
