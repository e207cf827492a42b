import logging

from infrastructure.config import build_store, load_settings
from infrastructure.leetcode.stats_client import LeetCodeClient
from infrastructure.moderation.gemini_moderator import GeminiModerator
from interfaces.telegram.handlers import create_telegram_bot


def main() -> None:
    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not settings.telegram_token:
        raise RuntimeError("TELEGRAM_TOKEN environment variable is not set.")

    store = build_store(settings)
    moderator = GeminiModerator(settings.gemini_api_key, settings.gemini_model)

    def provider_factory() -> LeetCodeClient:
        return LeetCodeClient(settings.leetcode_api_url, settings.leetcode_timeout)

    bot = create_telegram_bot(settings.telegram_token, store, provider_factory, moderator)
    bot.infinity_polling()


if __name__ == "__main__":
    main()
