"""Status panel rendering and refresh for tracked roles."""

import re
import logging
from typing import Optional, List, Dict, Any, Tuple

import discord

from bot.tracker import MemberStat
from bot.utils import create_embed

logger = logging.getLogger(__name__)

MEMBERS_PER_PAGE = 10
PANEL_ACTIONS = ('previous', 'next', 'refresh')
CUSTOM_ID_TEMPLATE = rf'(?P<action>{"|".join(PANEL_ACTIONS)})_(?P<page>-?\d+)'

_CUSTOM_ID_RE = re.compile(CUSTOM_ID_TEMPLATE)


def format_duration(seconds: float) -> str:
    """Format seconds as '{h}h {m}m {s}s' without padding or day rollover."""
    hours = int(seconds // 3600)
    seconds %= 3600
    minutes = int(seconds // 60)
    seconds = int(seconds % 60)
    return f"{hours}h {minutes}m {seconds}s"


def build_custom_id(action: str, page: int) -> str:
    """Encode a panel button action and its target page."""
    return f"{action}_{page}"


def parse_custom_id(custom_id: str) -> Optional[Tuple[str, int]]:
    """
    Decode a panel button custom ID.

    Returns:
        (action, page) tuple, or None if the ID is not a panel button
    """
    match = _CUSTOM_ID_RE.fullmatch(custom_id or '')
    if not match:
        return None
    return match['action'], int(match['page'])


def format_member_line(member: discord.Member, stat: Optional[MemberStat]) -> str:
    if stat is None:
        return f"{member.mention}: No data available"

    return (
        f"{member.mention}: \n"
        f"Online: {format_duration(stat.online_time)} \n"
        f"Idle: {format_duration(stat.idle_time)} \n"
        f"DND: {format_duration(stat.dnd_time)} \n"
        f"Offline: {format_duration(stat.offline_time)}"
    )


def create_status_embed(role: discord.Role, stats: List[MemberStat], page: int) -> discord.Embed:
    """
    Build one page of the status panel.

    The live members of the role decide who is listed; stored stats only
    supply the numbers.

    Args:
        role: Tracked role
        stats: Stored member stats for the guild
        page: Zero-based page index

    Returns:
        Discord embed for the page
    """
    page = max(page, 0)
    start = page * MEMBERS_PER_PAGE
    end = start + MEMBERS_PER_PAGE

    stats_by_id = {stat.member_id: stat for stat in stats}
    lines = [format_member_line(member, stats_by_id.get(member.id)) for member in role.members]

    embed = create_embed(f"Status for role: {role.name}", discord.Color.blue())
    embed.description = "\n\n".join(lines[start:end]) or "None"
    embed.set_footer(text="Last updated")
    return embed


class PanelButton(discord.ui.DynamicItem[discord.ui.Button], template=CUSTOM_ID_TEMPLATE):
    """Pagination button whose custom ID carries the target page."""

    def __init__(self, action: str, page: int, *, label: Optional[str] = None,
                 style: discord.ButtonStyle = discord.ButtonStyle.secondary, disabled: bool = False):
        super().__init__(
            discord.ui.Button(
                label=label or action.capitalize(),
                style=style,
                custom_id=build_custom_id(action, page),
                disabled=disabled
            )
        )
        self.action = action
        self.page = page

    @classmethod
    async def from_custom_id(cls, interaction: discord.Interaction, item: discord.ui.Button, match: re.Match[str], /):
        action, page = parse_custom_id(item.custom_id)
        return cls(action, page, label=item.label, style=item.style, disabled=item.disabled)

    async def callback(self, interaction: discord.Interaction):
        cog = interaction.client.get_cog('CommandsCog')
        if cog is None:
            logger.warning(f"Panel button '{self.custom_id}' pressed but CommandsCog is not loaded")
            await interaction.response.send_message("Failed to refresh status.", ephemeral=True)
            return
        await cog.paginate(interaction, self.action, self.page)


def create_panel_view(page: int, total_members: int) -> discord.ui.View:
    """
    Build the Previous / Refresh / Next controls for a panel page.

    Args:
        page: Zero-based page index being shown
        total_members: Number of members currently holding the role
    """
    view = discord.ui.View(timeout=None)
    view.add_item(PanelButton('previous', page - 1, label="Previous",
                              style=discord.ButtonStyle.secondary, disabled=page <= 0))
    view.add_item(PanelButton('refresh', 0, label="Refresh", style=discord.ButtonStyle.primary))
    view.add_item(PanelButton('next', page + 1, label="Next", style=discord.ButtonStyle.secondary,
                              disabled=(page + 1) * MEMBERS_PER_PAGE >= total_members))
    return view


def render_panel(guild: discord.Guild, guild_config: Dict[str, Any],
                 page: int) -> Optional[Tuple[discord.Embed, discord.ui.View]]:
    """
    Render a guild's panel at the given page.

    Returns:
        (embed, view), or None if the tracked role no longer exists
    """
    role = guild.get_role(guild_config['role_id'])
    if role is None:
        return None

    embed = create_status_embed(role, guild_config.get('members', []), page)
    view = create_panel_view(page, len(role.members))
    return embed, view


async def refresh_guild_panel(bot: discord.Client, guild_config: Dict[str, Any]) -> bool:
    """
    Re-render page 0 of a guild's panel and edit the stored message.

    Returns:
        bool: True if the panel was edited, False if something was unresolvable
    """
    guild_id = guild_config['guild_id']

    guild = bot.get_guild(guild_id)
    if guild is None:
        logger.debug(f"Guild {guild_id} not available, skipping panel refresh")
        return False

    channel = guild.get_channel_or_thread(guild_config['channel_id']) if guild_config.get('channel_id') else None
    if channel is None or not guild_config.get('message_id'):
        logger.debug(f"Panel channel or message missing for guild {guild_id}, skipping refresh")
        return False

    rendered = render_panel(guild, guild_config, 0)
    if rendered is None:
        logger.debug(f"Tracked role {guild_config['role_id']} missing in guild {guild_id}, skipping refresh")
        return False

    embed, view = rendered
    message = await channel.fetch_message(guild_config['message_id'])
    await message.edit(embed=embed, view=view)
    return True


async def refresh_all_panels(bot: discord.Client, db) -> int:
    """
    Refresh the panel of every configured guild.
    A failure in one guild is logged and does not stop the others.

    Returns:
        Number of panels successfully refreshed
    """
    refreshed = 0
    for guild_config in db.get_all_guild_configs():
        try:
            if await refresh_guild_panel(bot, guild_config):
                refreshed += 1
        except Exception as e:
            logger.error(f"Failed to update status message in guild {guild_config['guild_id']}: {e}")
    return refreshed
