from aiogram import Router

from arena.handlers.battle import router as battle_router
from arena.handlers.challenge import router as challenge_router
from arena.handlers.common import router as common_router


def get_routers() -> list[Router]:
    return [
        common_router,
        challenge_router,
        battle_router,
    ]
