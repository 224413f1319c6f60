from aiogram import Router
from aiogram.filters import Command
from aiogram.types import Message

from arena.ui import templates


router = Router()

COMMANDS = (
    "📜 Commands:\n"
    "🏰 /start — register\n"
    "🧭 /me — profile\n"
    "🎭 /fighters — fighter roster\n"
    "🤝 /challenge @user — challenge a player\n"
    "📨 /challenges — incoming challenges\n"
    "⚔️ /battle — current battle\n"
    "🏆 /top — leaderboard\n"
    "ℹ️ /help — help"
)


def get_or_register(repo, from_user):
    fid = str(from_user.id)
    user = repo.get_user_by_fid(fid)
    if user:
        return user, False
    username = from_user.username or f"user{fid}"
    user = repo.create_user(
        fid=fid,
        username=username,
        display_name=from_user.full_name or username,
    )
    return user, True


@router.message(Command("start"))
async def cmd_start(message: Message, repo) -> None:
    _, created = get_or_register(repo, message.from_user)
    if created:
        greet = "🏟 Welcome to the Arena! Registration complete."
    else:
        greet = "✨ Welcome back, fighter."
    await message.answer(f"{greet}\n\n{COMMANDS}")


@router.message(Command("me"))
async def cmd_me(message: Message, repo) -> None:
    user = repo.get_user_by_fid(str(message.from_user.id))
    if not user:
        await message.answer("Register first with /start.")
        return
    opponents = [u.username for u in repo.list_recent_opponents(user.id)]
    await message.answer(templates.profile_text(user, opponents))


@router.message(Command("fighters"))
async def cmd_fighters(message: Message, repo) -> None:
    await message.answer(templates.character_list(repo.list_characters()))


@router.message(Command("top"))
async def cmd_top(message: Message, repo) -> None:
    users = repo.list_leaderboard(limit=10)
    if not users:
        await message.answer("🏆 The leaderboard is empty.")
        return
    lines = [templates.top_header()]
    for idx, user in enumerate(users, start=1):
        lines.append(templates.top_entry(idx, user.username, user.rank_points, user.level))
    await message.answer("\n".join(lines))


@router.message(Command("help"))
async def cmd_help(message: Message) -> None:
    await message.answer(COMMANDS)
