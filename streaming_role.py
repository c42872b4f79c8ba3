#!/usr/bin/env python3
"""
Streaming Role Module for StreamerRoleBot

Watches presence changes of every member in the community server and keeps the
Streaming role on whoever is live on Twitch in the configured game.

Flow per member:
    presence/role event -> run_checks
        not streaming            -> remove role, stop tracking
        streaming (Twitch URL)   -> start tracker
    tracker: wait TWITCH_CALL_DELAY (Twitch needs time to update its data),
             ask Twitch for the stream category, add/remove the role,
             then rerun the checks every RECALL_TWITCH_INTERVAL while streaming.

Members holding the probation role never get the role added.
Create a role named Config.STREAMING_ROLE_NAME and pin it on the right hand side
of the server for this to be visible.
"""

import asyncio
import logging
from typing import Dict, Optional

import discord
from discord.ext import commands

from config import Config
from twitch import TwitchAPI
from utils import get_basic_embed_message, is_valid_streaming_url, streaming_activity, twitch_username_from_url

logger = logging.getLogger('StreamerRoleBot.StreamingRole')

def find_role(guild: discord.Guild, name: str) -> Optional[discord.Role]:
    """Case-insensitive role lookup by name"""
    name = name.lower()
    for role in guild.roles:
        if role.name.lower() == name:
            return role
    return None

def is_streaming(activity: Optional[discord.Streaming]) -> bool:
    """Checks if the activity is a stream with a valid Twitch URL"""
    if activity is None or not activity.url:
        return False
    return is_valid_streaming_url(activity.url)

def has_at_least_one_role(member: discord.Member) -> bool:
    """Normally the region role; @everyone does not count"""
    return any(not role.is_default() for role in member.roles)

class StreamingRole(commands.Cog):
    """Grants/revokes the Streaming role based on Twitch streams of the configured game"""

    def __init__(self, bot: commands.Bot, twitch_api: TwitchAPI, game_id: Optional[str] = None,
                 call_delay: Optional[float] = None, recall_interval: Optional[float] = None):
        self.bot = bot
        self.twitch_api = twitch_api
        self.game_id = game_id or Config.TWITCH_BATTLERITE_ID
        self.call_delay = Config.TWITCH_CALL_DELAY if call_delay is None else call_delay
        self.recall_interval = Config.RECALL_TWITCH_INTERVAL if recall_interval is None else recall_interval
        self.trackers: Dict[int, asyncio.Task] = {}  # member id -> pending tracker

    def cog_unload(self):
        for task in self.trackers.values():
            task.cancel()
        self.trackers.clear()
        logger.info("Cancelled all streaming trackers")

    def get_guild(self) -> Optional[discord.Guild]:
        """The community server, found by name"""
        name = Config.GUILD_NAME.lower()
        for guild in self.bot.guilds:
            if guild.name.lower() == name:
                return guild
        return None

    def is_main_guild(self, guild: Optional[discord.Guild]) -> bool:
        return guild is not None and guild.name.lower() == Config.GUILD_NAME.lower()

    def has_probation_role(self, guild: discord.Guild, member: discord.Member) -> bool:
        probation_role = find_role(guild, Config.PROBATION_ROLE_NAME)
        if probation_role is None:
            logger.debug("no probation role found")
            return False
        return probation_role in member.roles

    # ---------------------------------------------------------------- checks

    async def run_checks(self, guild: discord.Guild, member: discord.Member):
        if not has_at_least_one_role(member):
            return

        streamer_role = find_role(guild, Config.STREAMING_ROLE_NAME)
        if streamer_role is None:
            logger.warning("no streamer role found")
            return

        if not is_streaming(streaming_activity(member)):
            self.cancel_tracker(member.id)
            await self.remove_streamer_role(member, streamer_role)
            return

        logger.info(f"{member.display_name} is streaming")
        self.schedule_tracker(guild, member)

    async def is_streaming_game(self, member: discord.Member, activity: discord.Streaming) -> bool:
        """Ask Twitch whether the stream's category is the configured game"""
        twitch_username = twitch_username_from_url(activity.url)
        logger.info(f"{member.display_name} - checking if {twitch_username} is streaming game {self.game_id}")
        return await self.twitch_api.is_streaming_game(twitch_username, self.game_id)

    async def confirm_streamer_role(self, guild: discord.Guild, member_id: int) -> bool:
        """Delayed check: add or remove the role. Returns whether the member is still streaming."""
        member = guild.get_member(member_id)
        if member is None:
            logger.info(f"Member {member_id} left before the Twitch check")
            return False

        streamer_role = find_role(guild, Config.STREAMING_ROLE_NAME)
        if streamer_role is None:
            logger.warning("no streamer role found")
            return False

        activity = streaming_activity(member)
        streaming = is_streaming(activity)

        if (streaming and not self.has_probation_role(guild, member)
                and await self.is_streaming_game(member, activity)):
            await self.add_streamer_role(member, streamer_role)
        else:
            await self.remove_streamer_role(member, streamer_role)

        return streaming

    # -------------------------------------------------------------- trackers

    def schedule_tracker(self, guild: discord.Guild, member: discord.Member):
        """Replace any pending tracker for the member with a fresh one"""
        self.cancel_tracker(member.id)
        task = asyncio.create_task(self._track(guild, member.id))
        task.add_done_callback(lambda t, member_id=member.id: self._forget_tracker(member_id, t))
        self.trackers[member.id] = task

    def cancel_tracker(self, member_id: int):
        task = self.trackers.pop(member_id, None)
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    def _forget_tracker(self, member_id: int, task: asyncio.Task):
        if self.trackers.get(member_id) is task:
            del self.trackers[member_id]

    async def _track(self, guild: discord.Guild, member_id: int):
        started = asyncio.get_running_loop().time()
        await asyncio.sleep(self.call_delay)

        try:
            still_streaming = await self.confirm_streamer_role(guild, member_id)
        except Exception as e:
            # Keep tracking; the next recheck gets another chance
            logger.error(f"Error confirming streamer role for member {member_id}: {e}")
            still_streaming = True

        if not still_streaming:
            return

        # Is streaming so call Twitch again soon
        elapsed = asyncio.get_running_loop().time() - started
        await asyncio.sleep(max(self.recall_interval - elapsed, 0))

        member = guild.get_member(member_id)
        if member is None:
            return
        try:
            await self.run_checks(guild, member)
        except Exception as e:
            logger.error(f"Error rechecking {member.display_name}: {e}")

    # ----------------------------------------------------------------- roles

    async def add_streamer_role(self, member: discord.Member, streamer_role: discord.Role):
        if streamer_role in member.roles:
            return
        logger.info(f"add role to {member}")
        try:
            await member.add_roles(streamer_role, reason="Streaming the configured game on Twitch")
        except discord.Forbidden:
            logger.error(f"Missing permissions to add role '{streamer_role.name}' to {member}")
        except discord.HTTPException as e:
            logger.error(f"Failed to add role '{streamer_role.name}' to {member}: {e}")

    async def remove_streamer_role(self, member: discord.Member, streamer_role: discord.Role):
        if streamer_role not in member.roles:
            return
        logger.info(f"remove role from {member}")
        try:
            await member.remove_roles(streamer_role, reason="No longer streaming the configured game")
        except discord.Forbidden:
            logger.error(f"Missing permissions to remove role '{streamer_role.name}' from {member}")
        except discord.HTTPException as e:
            logger.error(f"Failed to remove role '{streamer_role.name}' from {member}: {e}")

    async def sweep(self) -> int:
        """Run the checks on every member of the community server"""
        guild = self.get_guild()
        if guild is None:
            logger.error(f"Guild '{Config.GUILD_NAME}' not found - cannot sync streaming roles")
            return 0

        for member in guild.members:
            await self.run_checks(guild, member)
        logger.info(f"Synced streaming roles for {len(guild.members)} members of {guild.name}")
        return len(guild.members)

    # ---------------------------------------------------------------- events

    @commands.Cog.listener()
    async def on_ready(self):
        await self.sweep()

    @commands.Cog.listener()
    async def on_presence_update(self, before: discord.Member, after: discord.Member):
        """Called whenever someone in the server changes their presence"""
        if not self.is_main_guild(after.guild):
            return

        # Status-only changes (online/idle/dnd) don't matter here
        before_stream = streaming_activity(before)
        after_stream = streaming_activity(after)
        if before_stream == after_stream and getattr(before_stream, 'game', None) == getattr(after_stream, 'game', None):
            return

        # Checked here rather than in run_checks so a tracker that is already
        # running still removes the role from a member put on probation
        if self.has_probation_role(after.guild, after):
            return

        await self.run_checks(after.guild, after)

    @commands.Cog.listener()
    async def on_member_update(self, before: discord.Member, after: discord.Member):
        """Someone joining already streaming only gets checked once they pick a (region) role"""
        if not self.is_main_guild(after.guild):
            return

        added_roles = [role for role in after.roles if role not in before.roles]
        if not added_roles:
            return

        logger.info(f"{after.name} added role {', '.join(role.name for role in added_roles)}")

        if self.has_probation_role(after.guild, after):
            return

        streaming_role_name = Config.STREAMING_ROLE_NAME.lower()
        if all(role.name.lower() == streaming_role_name for role in added_roles):
            return

        await self.run_checks(after.guild, after)

    # -------------------------------------------------------------- commands

    async def cog_check(self, ctx: commands.Context) -> bool:
        if await ctx.bot.is_owner(ctx.author):
            return True
        raise commands.NotOwner(f"{ctx.author} does not own this bot.")

    @commands.command(name='streamers')
    async def streamers(self, ctx: commands.Context):
        """List members currently holding the Streaming role"""
        guild = ctx.guild or self.get_guild()
        streamer_role = find_role(guild, Config.STREAMING_ROLE_NAME) if guild else None
        if streamer_role is None:
            await ctx.send(embed=get_basic_embed_message(Config.ERROR_TITLE, "no streamer role found", Config.COLORS['error']))
            return

        names = [member.display_name for member in streamer_role.members]
        message = '\n'.join(names) if names else 'Nobody is streaming right now'
        embed = get_basic_embed_message(f"{streamer_role.name} ({len(names)})", message, Config.COLORS['twitch'])
        embed.set_footer(text=f"Tracking {len(self.trackers)} member(s)")
        await ctx.send(embed=embed)

    @commands.command(name='resync')
    async def resync(self, ctx: commands.Context):
        """Rerun the checks on every member"""
        count = await self.sweep()
        await ctx.send(embed=get_basic_embed_message("Resync", f"Checked {count} member(s)", Config.COLORS['twitch']))
