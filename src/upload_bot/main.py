import asyncio
import logging
from functools import partial
from typing import List, Optional

import discord
from dotenv import load_dotenv

from upload_rotator import PendingAsset, UploadClient, format_report, load_settings
from upload_rotator.config import read_config_file

from .filters import is_allowed_channel, is_allowed_guild
from .settings import BotSettings, load_bot_settings
from .staging import stage_attachment

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("upload_bot")

NO_ATTACHMENT_REPLY = "Upload an audio file (mp3/ogg) to have it processed."
WRONG_CHANNEL_REPLY = "This bot only works in its allowed channels."


def attach_library_logging() -> None:
    """Route the library logger (which does not propagate) to the console."""
    lib_logger = logging.getLogger("upload_rotator")
    lib_logger.setLevel(logging.INFO)
    if not any(isinstance(h, logging.StreamHandler) for h in lib_logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.getLogger().handlers[0].formatter)
        lib_logger.addHandler(handler)


def build_assets(
    attachments: List[discord.Attachment],
    client: UploadClient,
    download_dir: Optional[str] = None,
) -> List[PendingAsset]:
    return [
        PendingAsset(
            name=attachment.filename,
            content_type=attachment.content_type,
            stage=partial(
                stage_attachment,
                client.http_client,
                attachment.url,
                attachment.filename,
                download_dir,
            ),
        )
        for attachment in attachments
    ]


class UploadBot(discord.Client):
    """Discord front end: filters messages and hands attachments to the pipeline."""

    def __init__(self, settings: BotSettings, upload_client: UploadClient):
        intents = discord.Intents.default()
        intents.guilds = True
        intents.guild_messages = True
        intents.message_content = True
        super().__init__(intents=intents)
        self.settings = settings
        self.upload_client = upload_client

    async def on_ready(self):
        logger.info(f"Bot logged in as {self.user}")
        logger.info(f"Loaded {len(self.upload_client.credentials)} API keys for fallback")
        logger.info(
            f"Filters active: {len(self.settings.allowed_channel_ids)} channel(s), "
            f"{len(self.settings.allowed_guild_ids)} guild(s)"
        )

    async def on_message(self, message: discord.Message):
        guild_id = message.guild.id if message.guild else None
        if not is_allowed_guild(guild_id, self.settings):
            logger.info(f"[Ignored] Message from unauthorized guild {guild_id}")
            return

        if not is_allowed_channel(message.channel.id, self.settings):
            logger.info(f"[Ignored] Message from unauthorized channel {message.channel.id}")
            if self.user is not None and self.user.mentioned_in(message):
                await message.reply(WRONG_CHANNEL_REPLY)
            return

        if message.author.bot:
            return

        if not message.attachments:
            await message.reply(NO_ATTACHMENT_REPLY)
            return

        assets = build_assets(
            list(message.attachments), self.upload_client, self.settings.download_dir
        )
        results = await self.upload_client.upload_batch(assets, progress=message.reply)
        logger.info(
            f"Batch from {message.author} done: "
            f"{sum(1 for r in results if r.succeeded)}/{len(results)} uploaded"
        )
        await message.reply(format_report(results))


async def main():
    load_dotenv()
    attach_library_logging()

    config_data = read_config_file()
    uploader_settings = load_settings(data=config_data)
    bot_settings = load_bot_settings(config_data)

    async with UploadClient(uploader_settings) as upload_client:
        bot = UploadBot(bot_settings, upload_client)
        async with bot:
            await bot.start(bot_settings.token)


def run():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Shutting down")


if __name__ == "__main__":
    run()
