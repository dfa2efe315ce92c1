"""Embed and formatting helpers shared by the cogs and the status panel."""

import discord
from datetime import datetime, timezone, timedelta


def create_embed(title: str, color: discord.Color = discord.Color.blue(),
                 description: str = None) -> discord.Embed:
    """Build an embed stamped with the current UTC time."""
    return discord.Embed(
        title=title,
        description=description,
        color=color,
        timestamp=datetime.now(timezone.utc),
    )


def create_error_embed(message: str) -> discord.Embed:
    """Red "Error" embed used for ephemeral permission and failure replies."""
    return create_embed("Error", discord.Color.red(), message)


def format_uptime(delta: timedelta) -> str:
    """Render a timedelta as e.g. '2d 3h 4m 5s', dropping leading zero units."""
    hours, remainder = divmod(delta.seconds, 3600)
    minutes, seconds = divmod(remainder, 60)

    parts = [(delta.days, 'd'), (hours, 'h'), (minutes, 'm')]
    while len(parts) > 1 and parts[0][0] == 0:
        parts.pop(0)
    return ' '.join(f"{value}{unit}" for value, unit in parts + [(seconds, 's')])


def truncate_string(text: str, max_length: int, suffix: str = "...") -> str:
    """Cut text down to max_length characters, ending with suffix when shortened."""
    if len(text) <= max_length:
        return text
    return text[:max_length - len(suffix)] + suffix
