import asyncio
import logging

from infrastructure.config import build_store, load_settings
from infrastructure.leetcode.stats_client import LeetCodeClient
from infrastructure.moderation.gemini_moderator import GeminiModerator
from interfaces.discord.handlers import create_discord_bot


async def run() -> None:
    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not settings.discord_token:
        raise RuntimeError("DISCORD_TOKEN environment variable is not set.")

    store = build_store(settings)
    moderator = GeminiModerator(settings.gemini_api_key, settings.gemini_model)

    async with LeetCodeClient(
        settings.leetcode_api_url, settings.leetcode_timeout
    ) as provider:
        bot = create_discord_bot(store, provider, moderator)
        async with bot:
            await bot.start(settings.discord_token)


def main() -> None:
    asyncio.run(run())


if __name__ == "__main__":
    main()
