import pytest

from upload_bot.filters import is_allowed_channel, is_allowed_guild, is_allowed_origin
from upload_bot.settings import BotConfigError, BotSettings, load_bot_settings


def make_settings(guilds=(), channels=()) -> BotSettings:
    return BotSettings(
        token="token",
        allowed_guild_ids=frozenset(guilds),
        allowed_channel_ids=frozenset(channels),
    )


def test_token_is_required() -> None:
    with pytest.raises(BotConfigError):
        load_bot_settings({}, env={})


def test_config_lists_are_normalised_to_strings() -> None:
    settings = load_bot_settings(
        {"discord": {"allowed_guild_ids": [123, "456"], "allowed_channel_ids": [789]}},
        env={"DISCORD_TOKEN": "abc"},
    )

    assert settings.token == "abc"
    assert settings.allowed_guild_ids == frozenset({"123", "456"})
    assert settings.allowed_channel_ids == frozenset({"789"})
    assert settings.download_dir is None


def test_environment_lists_replace_config_lists() -> None:
    settings = load_bot_settings(
        {"discord": {"allowed_guild_ids": [1], "allowed_channel_ids": [2]}},
        env={
            "DISCORD_TOKEN": "abc",
            "DISCORD_ALLOWED_GUILD_IDS": " 10, 20 ,",
            "UPLOAD_DOWNLOAD_DIR": "/tmp/staging",
        },
    )

    assert settings.allowed_guild_ids == frozenset({"10", "20"})
    assert settings.allowed_channel_ids == frozenset({"2"})
    assert settings.download_dir == "/tmp/staging"


def test_empty_allow_lists_allow_everything() -> None:
    settings = make_settings()

    assert is_allowed_origin(1, 2, settings)
    assert is_allowed_origin(None, None, settings)


def test_guild_filter() -> None:
    settings = make_settings(guilds={"100"})

    assert is_allowed_guild(100, settings)
    assert not is_allowed_guild(200, settings)
    # Direct messages carry no guild
    assert is_allowed_guild(None, settings)


def test_channel_filter() -> None:
    settings = make_settings(channels={"7"})

    assert is_allowed_channel("7", settings)
    assert not is_allowed_channel(8, settings)
    assert not is_allowed_channel(None, settings)


def test_origin_needs_both_checks() -> None:
    settings = make_settings(guilds={"100"}, channels={"7"})

    assert is_allowed_origin(100, 7, settings)
    assert not is_allowed_origin(100, 8, settings)
    assert not is_allowed_origin(200, 7, settings)
