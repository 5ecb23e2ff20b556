from typing import Optional, Union

from .settings import BotSettings

IdLike = Optional[Union[int, str]]


def is_allowed_guild(guild_id: IdLike, settings: BotSettings) -> bool:
    """Empty allow list allows everything; DMs (no guild) pass the guild check."""
    if not settings.allowed_guild_ids or guild_id is None:
        return True
    return str(guild_id) in settings.allowed_guild_ids


def is_allowed_channel(channel_id: IdLike, settings: BotSettings) -> bool:
    if not settings.allowed_channel_ids:
        return True
    return channel_id is not None and str(channel_id) in settings.allowed_channel_ids


def is_allowed_origin(guild_id: IdLike, channel_id: IdLike, settings: BotSettings) -> bool:
    return is_allowed_guild(guild_id, settings) and is_allowed_channel(
        channel_id, settings
    )
