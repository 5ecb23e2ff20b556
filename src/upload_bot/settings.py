import os
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional


class BotConfigError(RuntimeError):
    pass


def _split_csv_env(raw: Optional[str]) -> list[str]:
    if not raw:
        return []
    values = [value.strip() for value in raw.split(",")]
    return [value for value in values if value]


def _id_set(values: Iterable[Any]) -> FrozenSet[str]:
    return frozenset(str(value).strip() for value in values if str(value).strip())


@dataclass(frozen=True)
class BotSettings:
    token: str
    allowed_guild_ids: FrozenSet[str]
    allowed_channel_ids: FrozenSet[str]
    download_dir: Optional[str] = None


def load_bot_settings(
    data: Optional[Dict[str, Any]] = None,
    env: Optional[Mapping[str, str]] = None,
) -> BotSettings:
    """
    Build BotSettings from the "discord" config section and environment.

    DISCORD_ALLOWED_GUILD_IDS / DISCORD_ALLOWED_CHANNEL_IDS (comma separated)
    replace the config file lists when set.
    """
    env = os.environ if env is None else env
    discord_section = (data or {}).get("discord") or {}

    token = (env.get("DISCORD_TOKEN") or "").strip()
    if not token:
        raise BotConfigError("DISCORD_TOKEN environment variable not set.")

    guilds = _split_csv_env(env.get("DISCORD_ALLOWED_GUILD_IDS")) or discord_section.get(
        "allowed_guild_ids", []
    )
    channels = _split_csv_env(
        env.get("DISCORD_ALLOWED_CHANNEL_IDS")
    ) or discord_section.get("allowed_channel_ids", [])

    return BotSettings(
        token=token,
        allowed_guild_ids=_id_set(guilds),
        allowed_channel_ids=_id_set(channels),
        download_dir=(env.get("UPLOAD_DOWNLOAD_DIR") or "").strip() or None,
    )
