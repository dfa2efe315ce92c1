"""Admin commands cog for configuring status tracking."""

import discord
from discord import app_commands
from discord.ext import commands
import logging
from datetime import datetime, timezone

from database import DatabaseManager
from bot.panels import create_status_embed, create_panel_view
from bot.utils import create_error_embed
from .permissions import check_permission

logger = logging.getLogger(__name__)

NO_TRACKING_DATA = "No tracking data found for this server."


class AdminCog(commands.Cog):
    """Cog for commands that change tracking configuration."""

    def __init__(self, bot: commands.Bot, db: DatabaseManager, config):
        """
        Initialize admin cog.

        Args:
            bot: Discord bot instance
            db: Database manager
            config: Bot configuration
        """
        self.bot = bot
        self.db = db
        self.config = config

    @app_commands.command(name="setrole", description="Set a role to track member statuses")
    @app_commands.describe(role="The role to track")
    @app_commands.guild_only()
    async def setrole(self, interaction: discord.Interaction, role: discord.Role):
        """
        Track a role and post its status panel in the current channel.

        Args:
            interaction: Discord interaction
            role: Role whose members are tracked
        """
        if not await check_permission(interaction, 'manage_roles'):
            return

        guild_id = interaction.guild_id
        channel = interaction.channel

        existing = self.db.get_guild_config(guild_id)
        members = existing['members'] if existing else []

        try:
            message = await channel.send(
                embed=create_status_embed(role, members, 0),
                view=create_panel_view(0, len(role.members))
            )
        except discord.HTTPException as e:
            logger.error(f"Failed to post status panel in guild {guild_id}: {e}")
            await interaction.response.send_message(
                embed=create_error_embed("I couldn't post the status message in this channel. Check my permissions."),
                ephemeral=True
            )
            return

        if not self.db.upsert_guild_config(guild_id, role_id=role.id, channel_id=channel.id, message_id=message.id):
            # An unsaved panel would never be refreshed
            try:
                await message.delete()
            except discord.HTTPException as e:
                logger.warning(f"Could not remove unsaved status panel {message.id} in guild {guild_id}: {e}")
            await interaction.response.send_message(
                embed=create_error_embed("Failed to save the tracking configuration."),
                ephemeral=True
            )
            return

        logger.info(f"Tracking role '{role.name}' ({role.id}) in guild {interaction.guild.name}, panel {message.id}")
        await interaction.response.send_message("Role set and status message created/updated!")

    @app_commands.command(name="disable", description="Disable status tracking for this server")
    @app_commands.guild_only()
    async def disable(self, interaction: discord.Interaction):
        """
        Delete this guild's tracking configuration and stats.

        Args:
            interaction: Discord interaction
        """
        if not await check_permission(interaction, 'manage_messages'):
            return

        if not self.db.delete_guild_config(interaction.guild_id):
            await interaction.response.send_message(
                embed=create_error_embed("Failed to disable status tracking."),
                ephemeral=True
            )
            return

        logger.info(f"Status tracking disabled in guild {interaction.guild.name} by {interaction.user}")
        await interaction.response.send_message("Status tracking disabled for this server.")

    @app_commands.command(name="restartstaff", description="Reset the tracked time for all staff members")
    @app_commands.guild_only()
    async def restartstaff(self, interaction: discord.Interaction):
        """
        Zero every tracked member's accumulated time.

        Args:
            interaction: Discord interaction
        """
        if not await check_permission(interaction, 'manage_messages'):
            return

        reset_count = self.db.reset_member_stats(interaction.guild_id, datetime.now(timezone.utc))
        if reset_count is None:
            await interaction.response.send_message(NO_TRACKING_DATA)
            return

        logger.info(f"{interaction.user} reset staff time for {reset_count} members in guild {interaction.guild.name}")
        await interaction.response.send_message("Staff time has been reset.")
