"""User commands cog and status panel button handling."""

import discord
from discord import app_commands
from discord.ext import commands
import logging
import math
import os
from datetime import datetime, timezone

import psutil

from database import DatabaseManager
from bot.panels import PanelButton, render_panel
from bot.utils import create_embed, format_uptime, truncate_string
from cogs.admin import NO_TRACKING_DATA

logger = logging.getLogger(__name__)

# Discord's limit for embed descriptions
EMBED_DESCRIPTION_LIMIT = 4096

HELP_COMMANDS = [
    ("/setrole", "Set a role to track member statuses"),
    ("/disable", "Disable status tracking for this server"),
    ("/help", "Show this help message"),
    ("/restartstaff", "Reset the tracked time for all staff members"),
    ("/ping", "Show the bot and database ping"),
    ("/showstaff", "Show the list of staff members being tracked"),
]


class CommandsCog(commands.Cog):
    """Cog for user-facing commands and panel navigation."""

    def __init__(self, bot: commands.Bot, db: DatabaseManager, config):
        """
        Initialize commands cog.

        Args:
            bot: Discord bot instance
            db: Database manager
            config: Bot configuration
        """
        self.bot = bot
        self.db = db
        self.config = config

    @app_commands.command(name="help", description="Show the help message")
    async def help(self, interaction: discord.Interaction):
        embed = create_embed("Help", discord.Color.blue())
        embed.description = "Here are the available commands:"
        for name, description in HELP_COMMANDS:
            embed.add_field(name=name, value=description, inline=False)

        await interaction.response.send_message(embed=embed)

    @app_commands.command(name="ping", description="Show the bot and database ping")
    async def ping(self, interaction: discord.Interaction):
        """
        Report gateway latency and database connectivity.

        Args:
            interaction: Discord interaction
        """
        latency = self.bot.latency
        bot_ping = f"{round(latency * 1000)}ms" if math.isfinite(latency) else "Unknown"

        db_health = self.db.get_database_health()
        if db_health['status'] == 'healthy':
            db_ping = f"Connected ({db_health['latency_ms']}ms)"
        else:
            db_ping = "Disconnected"

        embed = create_embed("Pong!", discord.Color.green())
        embed.add_field(name="Bot Ping", value=bot_ping, inline=True)
        embed.add_field(name="Database Ping", value=db_ping, inline=True)

        memory_mb = psutil.Process(os.getpid()).memory_info().rss / 1024 / 1024
        if self.bot.start_time:
            uptime = format_uptime(datetime.now(timezone.utc) - self.bot.start_time)
        else:
            uptime = "Unknown"
        embed.set_footer(text=f"Memory: {memory_mb:.1f} MB • Uptime: {uptime}")

        await interaction.response.send_message(embed=embed)

    @app_commands.command(name="showstaff", description="Show the list of staff members being tracked")
    @app_commands.guild_only()
    async def showstaff(self, interaction: discord.Interaction):
        """
        List the members currently holding the tracked role.

        Args:
            interaction: Discord interaction
        """
        settings = self.db.get_guild_settings(interaction.guild_id)
        if not settings:
            await interaction.response.send_message(NO_TRACKING_DATA)
            return

        role = interaction.guild.get_role(settings['role_id'])
        if role is None:
            await interaction.response.send_message("Role not found!")
            return

        staff_list = "\n".join(member.mention for member in role.members) or "No staff members found."

        embed = create_embed(f"Staff members in role: {role.name}", discord.Color.blue())
        embed.description = truncate_string(staff_list, EMBED_DESCRIPTION_LIMIT)
        await interaction.response.send_message(embed=embed)

    async def paginate(self, interaction: discord.Interaction, action: str, page: int):
        """
        Re-render the stored panel at the requested page and edit it in place.

        Args:
            interaction: Button interaction
            action: previous, next or refresh
            page: Zero-based page index from the button
        """
        guild_config = self.db.get_guild_config(interaction.guild_id)
        if not guild_config:
            await interaction.response.send_message(NO_TRACKING_DATA, ephemeral=True)
            return

        rendered = render_panel(interaction.guild, guild_config, page)
        if rendered is None:
            await interaction.response.send_message("Role not found!", ephemeral=True)
            return

        embed, view = rendered
        try:
            channel = interaction.guild.get_channel_or_thread(guild_config['channel_id']) or interaction.channel
            message = await channel.fetch_message(guild_config['message_id'])
            await message.edit(embed=embed, view=view)
        except discord.HTTPException as e:
            logger.error(f"Failed to update status message in guild {interaction.guild_id}: {e}")
            await interaction.response.send_message("Failed to refresh status.", ephemeral=True)
            return

        logger.debug(f"{interaction.user} pressed {action} on the panel in guild {interaction.guild_id} (page {page})")
        await interaction.response.send_message("Status refreshed!", ephemeral=True)


async def setup(bot: commands.Bot):
    """
    Setup function for loading the cog.

    Args:
        bot: Discord bot instance
    """
    # Routes panel button presses, including on messages posted before a restart
    bot.add_dynamic_items(PanelButton)
    await bot.add_cog(CommandsCog(bot, bot.db, bot.config))
    logger.info("CommandsCog loaded")
