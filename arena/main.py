import asyncio
import logging

from aiogram import Bot, Dispatcher

from arena.challenges import ChallengeService
from arena.combat.engine import BattleEngine, EngineSettings
from arena.config import load_config
from arena.db import open_repository
from arena.handlers import get_routers


async def main() -> None:
    config = load_config()
    logging.basicConfig(level=config.log_level)
    repo = open_repository(config.db_path)
    engine = BattleEngine(
        repo,
        settings=EngineSettings(
            legacy_effects=config.legacy_effects,
            enforce_cooldowns=config.enforce_cooldowns,
        ),
    )

    bot = Bot(token=config.bot_token)
    dp = Dispatcher(repo=repo, engine=engine, challenges=ChallengeService(repo))
    for router in get_routers():
        dp.include_router(router)

    await dp.start_polling(bot)


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
