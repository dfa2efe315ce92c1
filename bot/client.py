"""Construction of the Bot instance, its global handlers and extension loading."""

import discord
from discord.ext import commands
import logging
from datetime import datetime, timezone

from database import DatabaseManager

logger = logging.getLogger(__name__)

EXTENSIONS = (
    'cogs.tracking',
    'cogs.commands',
    'cogs.admin',
)

GUILD_ONLY_MESSAGE = "This command can only be used inside a server."
UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."


async def _send_ephemeral(interaction: discord.Interaction, message: str):
    """Reply or follow up privately, depending on whether a response was sent."""
    if interaction.response.is_done():
        await interaction.followup.send(message, ephemeral=True)
    else:
        await interaction.response.send_message(message, ephemeral=True)


def create_bot(config) -> commands.Bot:
    """Build the bot with member and presence intents and attach the shared database."""
    intents = discord.Intents.default()
    intents.members = True    # role.members
    intents.presences = True  # on_presence_update

    bot = commands.Bot(
        command_prefix=commands.when_mentioned,
        intents=intents,
        help_command=None,
        application_id=config.client_id,
    )

    bot.config = config
    bot.db = DatabaseManager(config.db_file)
    bot.start_time = None

    @bot.event
    async def on_ready():
        # on_ready fires again after reconnects; uptime counts from the first one
        if bot.start_time is None:
            bot.start_time = datetime.now(timezone.utc)

        tracked = len(bot.db.get_all_guild_configs())
        logger.info(f"Logged in as {bot.user} (ID: {bot.user.id}) in {len(bot.guilds)} guild(s), "
                    f"{tracked} with status tracking enabled")

        try:
            synced = await bot.tree.sync()
            logger.info(f"Registered {len(synced)} slash command(s)")
        except discord.HTTPException as e:
            logger.error(f"Slash command registration failed: {e}", exc_info=True)

    @bot.event
    async def on_error(event: str, *args, **kwargs):
        logger.error(f"Unhandled exception in {event}", exc_info=True)

    @bot.tree.error
    async def on_app_command_error(interaction: discord.Interaction,
                                   error: discord.app_commands.AppCommandError):
        if isinstance(error, discord.app_commands.NoPrivateMessage):
            message = GUILD_ONLY_MESSAGE
        else:
            name = interaction.command.name if interaction.command else 'unknown'
            logger.error(f"/{name} failed: {error}", exc_info=error)
            message = UNEXPECTED_ERROR_MESSAGE

        try:
            await _send_ephemeral(interaction, message)
        except discord.HTTPException as e:
            logger.error(f"Could not report command error to the user: {e}")

    return bot


async def setup_bot(bot: commands.Bot):
    """Load the cog extensions. Slash commands are synced later, in on_ready."""
    for extension in EXTENSIONS:
        try:
            await bot.load_extension(extension)
            logger.info(f"Loaded extension {extension}")
        except commands.ExtensionError as e:
            logger.error(f"Failed to load extension {extension}: {e}", exc_info=True)
