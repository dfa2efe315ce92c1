"""Presence tracking and status panel refresh."""

import discord
from discord.ext import commands, tasks
import logging
from datetime import datetime
from typing import Optional

from database import DatabaseManager
from bot.tracker import PresenceEvent, MemberStat, apply_presence
from bot.panels import refresh_all_panels

logger = logging.getLogger(__name__)

# Seconds between panel refreshes unless overridden by config
REFRESH_INTERVAL = 60


class TrackingCog(commands.Cog):
    """Cog for accruing presence durations and keeping panels up to date."""

    def __init__(self, bot: commands.Bot, db: DatabaseManager, config):
        """
        Initialize tracking cog.

        Args:
            bot: Discord bot instance
            db: Database manager
            config: Bot configuration
        """
        self.bot = bot
        self.db = db
        self.config = config

        interval = getattr(config, 'refresh_interval', REFRESH_INTERVAL)
        if interval != REFRESH_INTERVAL:
            self.refresh_panels.change_interval(seconds=interval)

    async def cog_load(self):
        self.refresh_panels.start()

    async def cog_unload(self):
        logger.info("TrackingCog unloading, stopping panel refresh")
        self.refresh_panels.cancel()

    def record_presence(self, event: PresenceEvent, now: Optional[datetime] = None) -> Optional[MemberStat]:
        """
        Accrue time for a member and store their new presence state.

        Only this member's stats are read and written, so events for other
        members of the same guild are never overwritten.

        Args:
            event: Observed presence change
            now: Observation time (defaults to now)

        Returns:
            The saved MemberStat, or None if the guild is not tracked
        """
        stat = self.db.get_member_stat(event.guild_id, event.member_id)
        is_new = stat is None
        stat = apply_presence(stat, event.member_id, event.status, now)

        if not self.db.upsert_member_stat(event.guild_id, stat):
            return None

        if is_new:
            logger.info(f"Started tracking member {event.member_id} in guild {event.guild_id} ({event.status})")
        else:
            logger.debug(f"Member {event.member_id} in guild {event.guild_id} is now {event.status}")
        return stat

    @commands.Cog.listener()
    async def on_presence_update(self, before: discord.Member, after: discord.Member):
        """
        Called when a member's presence changes.
        Only members holding the guild's tracked role are recorded.

        Args:
            before: Member state before presence update
            after: Member state after presence update
        """
        settings = self.db.get_guild_settings(after.guild.id)
        if not settings or not settings.get('role_id'):
            return

        if after.get_role(settings['role_id']) is None:
            return

        self.record_presence(PresenceEvent.from_member(after))

    @commands.Cog.listener()
    async def on_guild_remove(self, guild: discord.Guild):
        """
        Called when the bot leaves a guild or the guild is deleted.
        Drops the guild's tracking data.

        Args:
            guild: The guild that was removed
        """
        logger.info(f"Bot left guild: {guild.name} ({guild.id}). Cleaning up tracking data...")
        if not self.db.delete_guild_config(guild.id):
            logger.error(f"Failed to remove tracking data for guild {guild.id} during on_guild_remove")

    @tasks.loop(seconds=REFRESH_INTERVAL)
    async def refresh_panels(self):
        """Background task that re-renders page 0 of every status panel."""
        try:
            refreshed = await refresh_all_panels(self.bot, self.db)
            logger.debug(f"Refreshed {refreshed} status panel(s)")
        except Exception as e:
            logger.error(f"Error refreshing status panels: {e}", exc_info=True)

    @refresh_panels.before_loop
    async def before_refresh_panels(self):
        """Wait for bot to be ready before starting the refresh loop."""
        await self.bot.wait_until_ready()


async def setup(bot: commands.Bot):
    """
    Setup function for loading the cog.

    Args:
        bot: Discord bot instance
    """
    await bot.add_cog(TrackingCog(bot, bot.db, bot.config))
    logger.info("TrackingCog loaded")
