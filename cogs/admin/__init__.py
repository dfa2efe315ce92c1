"""Admin cog package for the staff status bot."""

import logging
from discord.ext import commands

from .admin_cog import AdminCog, NO_TRACKING_DATA
from .permissions import check_permission, has_guild_permission

logger = logging.getLogger(__name__)


async def setup(bot: commands.Bot):
    """
    Setup function for loading the cog.

    Args:
        bot: Discord bot instance
    """
    await bot.add_cog(AdminCog(bot, bot.db, bot.config))
    logger.info("AdminCog loaded")


__all__ = [
    'AdminCog',
    'NO_TRACKING_DATA',
    'check_permission',
    'has_guild_permission',
    'setup'
]
