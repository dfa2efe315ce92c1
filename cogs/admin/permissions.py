"""Shared permission checking utilities for admin commands."""

import discord
import logging

from bot.utils import create_error_embed

logger = logging.getLogger(__name__)

# Permission attribute -> name shown to users
PERMISSION_LABELS = {
    'manage_roles': 'Manage Roles',
    'manage_messages': 'Manage Messages',
}


def has_guild_permission(member: discord.Member, permission: str) -> bool:
    """
    Check a member's guild-level permission.
    Administrators have every permission.

    Args:
        member: Discord member
        permission: Permission attribute name, e.g. 'manage_roles'
    """
    permissions = getattr(member, 'guild_permissions', None)
    if permissions is None:
        return False
    return bool(permissions.administrator or getattr(permissions, permission, False))


async def check_permission(interaction: discord.Interaction, permission: str) -> bool:
    """
    Check if the invoking member holds a guild permission.

    If they don't, a private rejection is sent automatically and nothing else
    should happen.

    Args:
        interaction: Discord interaction
        permission: Permission attribute name, e.g. 'manage_messages'

    Returns:
        bool: True if user has permission, False otherwise
    """
    if has_guild_permission(interaction.user, permission):
        return True

    label = PERMISSION_LABELS.get(permission, permission.replace('_', ' ').title())
    await interaction.response.send_message(
        embed=create_error_embed(f"You need to have `{label}` permissions to use this command."),
        ephemeral=True
    )
    logger.info(f"Rejected {interaction.user} in guild {interaction.guild_id}: missing {label}")
    return False
