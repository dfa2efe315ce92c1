"""Presence duration accrual for tracked members."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

import discord

logger = logging.getLogger(__name__)

# Presence states that own a <status>_time accumulator on MemberStat
TRACKED_STATUSES = ('online', 'idle', 'dnd', 'offline')


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PresenceEvent:
    """The fields of a presence update the tracker cares about."""

    guild_id: int
    member_id: int
    status: str

    @classmethod
    def from_member(cls, member: discord.Member) -> 'PresenceEvent':
        return cls(guild_id=member.guild.id, member_id=member.id, status=str(member.status))


@dataclass
class MemberStat:
    """Accumulated seconds a member has spent in each presence state."""

    member_id: int
    online_time: float = 0.0
    idle_time: float = 0.0
    dnd_time: float = 0.0
    offline_time: float = 0.0
    last_status: str = 'offline'
    last_update: datetime = field(default_factory=utcnow)

    @property
    def total_time(self) -> float:
        return self.online_time + self.idle_time + self.dnd_time + self.offline_time

    def reset(self, now: Optional[datetime] = None):
        """Zero every accumulator, keeping the last observed status."""
        self.online_time = 0.0
        self.idle_time = 0.0
        self.dnd_time = 0.0
        self.offline_time = 0.0
        self.last_update = now or utcnow()


def apply_presence(stat: Optional[MemberStat], member_id: int, new_status: str,
                   now: Optional[datetime] = None) -> MemberStat:
    """
    Apply an observed presence state to a member's stats.

    The time since the last update is credited to the state the member was
    in, then the new state becomes the current one.

    Args:
        stat: Existing stats for the member, or None if never seen
        member_id: Discord user ID
        new_status: Newly observed presence state
        now: Time of the observation (defaults to now)

    Returns:
        The updated (or newly created) MemberStat
    """
    now = now or utcnow()

    if stat is None:
        return MemberStat(member_id=member_id, last_status=new_status, last_update=now)

    # Not clamped: a clock moving backwards yields a negative elapsed value
    elapsed = (now - stat.last_update).total_seconds()

    if stat.last_status in TRACKED_STATUSES:
        bucket = f"{stat.last_status}_time"
        setattr(stat, bucket, getattr(stat, bucket) + elapsed)
    else:
        logger.debug(f"Unrecognised previous status '{stat.last_status}' for member {member_id}, nothing accrued")

    stat.last_status = new_status
    stat.last_update = now
    return stat
