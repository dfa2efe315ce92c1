from types import SimpleNamespace
from unittest.mock import AsyncMock

import discord
import pytest

from bot.tracker import MemberStat
from cogs.admin import AdminCog, NO_TRACKING_DATA
from cogs.commands import CommandsCog
from fakes import (
    make_role, make_guild, make_channel, make_interaction,
    GUILD_ID, ROLE_ID, CHANNEL_ID, MESSAGE_ID,
)

MANAGE_ALL = discord.Permissions(manage_roles=True, manage_messages=True)


@pytest.fixture
def admin(db, bot_config):
    return AdminCog(SimpleNamespace(), db, bot_config)


@pytest.fixture
def user_commands(db, bot_config):
    return CommandsCog(SimpleNamespace(latency=0.05, start_time=None), db, bot_config)


def _reply(interaction):
    return interaction.response.send_message.await_args


async def test_setrole_posts_panel_and_stores_ids(admin, db):
    role = make_role(12)
    channel = make_channel()
    interaction = make_interaction(make_guild(role=role, channel=channel), MANAGE_ALL, channel)

    await AdminCog.setrole.callback(admin, interaction, role)

    sent = channel.send.await_args.kwargs
    assert sent['embed'].title == "Status for role: Staff"
    assert len(sent['view'].children) == 3
    config = db.get_guild_config(GUILD_ID)
    assert (config['role_id'], config['channel_id'], config['message_id']) == (ROLE_ID, CHANNEL_ID, MESSAGE_ID)
    assert _reply(interaction).args[0] == "Role set and status message created/updated!"


async def test_setrole_requires_manage_roles(admin, db):
    role = make_role(1)
    channel = make_channel()
    interaction = make_interaction(make_guild(role=role, channel=channel),
                                   discord.Permissions(manage_messages=True), channel)

    await AdminCog.setrole.callback(admin, interaction, role)

    assert _reply(interaction).kwargs['ephemeral'] is True
    assert "Manage Roles" in _reply(interaction).kwargs['embed'].description
    channel.send.assert_not_awaited()
    assert db.get_guild_config(GUILD_ID) is None


async def test_administrator_passes_permission_checks(admin, db):
    db.upsert_guild_config(GUILD_ID, role_id=ROLE_ID)
    interaction = make_interaction(make_guild(), discord.Permissions(administrator=True))

    await AdminCog.disable.callback(admin, interaction)

    assert db.get_guild_config(GUILD_ID) is None


async def test_disable_without_permission_keeps_config(admin, db):
    db.upsert_guild_config(GUILD_ID, role_id=ROLE_ID)
    interaction = make_interaction(make_guild(), discord.Permissions(manage_roles=True))

    await AdminCog.disable.callback(admin, interaction)

    assert _reply(interaction).kwargs['ephemeral'] is True
    assert db.get_guild_config(GUILD_ID) is not None


async def test_disable_then_showstaff_reports_no_data(admin, user_commands, db):
    role = make_role(2)
    db.upsert_guild_config(GUILD_ID, role_id=ROLE_ID, channel_id=CHANNEL_ID, message_id=MESSAGE_ID)
    guild = make_guild(role=role)

    disable = make_interaction(guild, MANAGE_ALL)
    await AdminCog.disable.callback(admin, disable)
    assert _reply(disable).args[0] == "Status tracking disabled for this server."

    show = make_interaction(guild)
    await CommandsCog.showstaff.callback(user_commands, show)
    assert _reply(show).args[0] == NO_TRACKING_DATA


async def test_showstaff_lists_role_members(user_commands, db):
    db.upsert_guild_config(GUILD_ID, role_id=ROLE_ID)
    interaction = make_interaction(make_guild(role=make_role(2)))

    await CommandsCog.showstaff.callback(user_commands, interaction)

    embed = _reply(interaction).kwargs['embed']
    assert embed.title == "Staff members in role: Staff"
    assert embed.description == "<@100>\n<@101>"


async def test_showstaff_role_gone(user_commands, db):
    db.upsert_guild_config(GUILD_ID, role_id=ROLE_ID)
    interaction = make_interaction(make_guild(role=None))

    await CommandsCog.showstaff.callback(user_commands, interaction)

    assert _reply(interaction).args[0] == "Role not found!"


async def test_restartstaff_resets_and_reports(admin, db):
    db.upsert_guild_config(GUILD_ID, role_id=ROLE_ID, members=[
        MemberStat(member_id=1, online_time=500, last_status='idle'),
    ])
    interaction = make_interaction(make_guild(), MANAGE_ALL)

    await AdminCog.restartstaff.callback(admin, interaction)

    stat = db.get_member_stat(GUILD_ID, 1)
    assert stat.total_time == 0
    assert stat.last_status == 'idle'
    assert _reply(interaction).args[0] == "Staff time has been reset."


async def test_restartstaff_without_config(admin):
    interaction = make_interaction(make_guild(), MANAGE_ALL)

    await AdminCog.restartstaff.callback(admin, interaction)

    assert _reply(interaction).args[0] == NO_TRACKING_DATA


async def test_help_lists_every_command(user_commands):
    interaction = make_interaction(make_guild())

    await CommandsCog.help.callback(user_commands, interaction)

    names = [field.name for field in _reply(interaction).kwargs['embed'].fields]
    assert names == ["/setrole", "/disable", "/help", "/restartstaff", "/ping", "/showstaff"]


async def test_ping_reports_latency_and_database(user_commands):
    interaction = make_interaction(make_guild())

    await CommandsCog.ping.callback(user_commands, interaction)

    fields = {f.name: f.value for f in _reply(interaction).kwargs['embed'].fields}
    assert fields["Bot Ping"] == "50ms"
    assert fields["Database Ping"].startswith("Connected")


async def test_paginate_edits_stored_message(user_commands, db):
    role = make_role(15)
    channel = make_channel()
    db.upsert_guild_config(GUILD_ID, role_id=ROLE_ID, channel_id=CHANNEL_ID, message_id=MESSAGE_ID)
    interaction = make_interaction(make_guild(role=role, channel=channel), channel=channel)

    await user_commands.paginate(interaction, 'next', 1)

    channel.fetch_message.assert_awaited_once_with(MESSAGE_ID)
    message = await channel.fetch_message(MESSAGE_ID)
    edited = message.edit.await_args.kwargs
    assert len(edited['embed'].description.split("\n\n")) == 5
    assert _reply(interaction).args[0] == "Status refreshed!"


async def test_paginate_reports_deleted_message(user_commands, db):
    channel = make_channel()
    channel.fetch_message = AsyncMock(side_effect=discord.NotFound(
        SimpleNamespace(status=404, reason="Not Found"), "Unknown Message"
    ))
    db.upsert_guild_config(GUILD_ID, role_id=ROLE_ID, channel_id=CHANNEL_ID, message_id=MESSAGE_ID)
    interaction = make_interaction(make_guild(role=make_role(3), channel=channel), channel=channel)

    await user_commands.paginate(interaction, 'refresh', 0)

    assert _reply(interaction).args[0] == "Failed to refresh status."


async def test_paginate_without_config(user_commands):
    interaction = make_interaction(make_guild(role=make_role(3)))

    await user_commands.paginate(interaction, 'refresh', 0)

    assert _reply(interaction).args[0] == NO_TRACKING_DATA


async def test_paginate_edits_panel_in_a_thread_from_elsewhere(user_commands, db):
    thread = make_channel(channel_id=5550)
    other_channel = make_channel()
    db.upsert_guild_config(GUILD_ID, role_id=ROLE_ID, channel_id=5550, message_id=MESSAGE_ID)
    interaction = make_interaction(make_guild(role=make_role(3), channel=other_channel, thread=thread),
                                   channel=other_channel)

    await user_commands.paginate(interaction, 'refresh', 0)

    thread.fetch_message.assert_awaited_once_with(MESSAGE_ID)
    other_channel.fetch_message.assert_not_awaited()
    assert _reply(interaction).args[0] == "Status refreshed!"


async def test_setrole_removes_panel_when_config_not_saved(admin, db, monkeypatch):
    role = make_role(1)
    channel = make_channel()
    interaction = make_interaction(make_guild(role=role, channel=channel), MANAGE_ALL, channel)
    monkeypatch.setattr(db, 'upsert_guild_config', lambda *args, **kwargs: False)

    await AdminCog.setrole.callback(admin, interaction, role)

    message = await channel.send()
    message.delete.assert_awaited_once()
    assert _reply(interaction).kwargs['ephemeral'] is True
