from aiogram import Router
from aiogram.filters import Command
from aiogram.types import CallbackQuery, Message

from arena.challenges import ChallengeService
from arena.errors import ArenaError
from arena.handlers.battle import send_battle_view
from arena.keyboards import challenge_keyboard, characters_keyboard
from arena.ui import templates


router = Router()


@router.message(Command("challenge"))
async def cmd_challenge(message: Message, repo) -> None:
    user = repo.get_user_by_fid(str(message.from_user.id))
    if not user:
        await message.answer("Register first with /start.")
        return

    parts = (message.text or "").split()
    if len(parts) < 2 or not parts[1].startswith("@"):
        await message.answer("Usage: /challenge @username")
        return

    target = repo.get_user_by_username(parts[1].lstrip("@"))
    if not target:
        await message.answer("Player not found.")
        return
    if target.id == user.id:
        await message.answer("You cannot challenge yourself.")
        return

    await message.answer(
        f"🎭 Pick your fighter against @{target.username}:",
        reply_markup=characters_keyboard(repo.list_characters(), f"challenge:pick:{target.id}"),
    )


@router.callback_query(lambda c: c.data and c.data.startswith("challenge:pick:"))
async def callback_challenge_pick(callback: CallbackQuery, repo, challenges: ChallengeService) -> None:
    _, _, target_id, character_id = callback.data.split(":")
    user = repo.get_user_by_fid(str(callback.from_user.id))
    if not user:
        await callback.answer("Register first with /start.")
        return
    try:
        challenge = challenges.issue_challenge(user.id, int(target_id), int(character_id))
    except ArenaError as exc:
        await callback.answer(str(exc))
        return

    target = repo.get_user(challenge.to_user_id)
    character = repo.get_character(challenge.from_character_id)
    await callback.message.answer(f"📨 Challenge sent to @{target.username}.")
    await callback.bot.send_message(
        chat_id=int(target.fid),
        text=templates.challenge_line(challenge.id, user.username, character.name),
        reply_markup=challenge_keyboard(challenge),
    )
    await callback.answer()


@router.message(Command("challenges"))
async def cmd_challenges(message: Message, repo, challenges: ChallengeService) -> None:
    user = repo.get_user_by_fid(str(message.from_user.id))
    if not user:
        await message.answer("Register first with /start.")
        return
    pending = challenges.pending_challenges(user.id)
    if not pending:
        await message.answer("📭 No incoming challenges.")
        return
    for challenge in pending:
        challenger = repo.get_user(challenge.from_user_id)
        character = repo.get_character(challenge.from_character_id)
        await message.answer(
            templates.challenge_line(
                challenge.id,
                challenger.username if challenger else "unknown",
                character.name if character else "?",
            ),
            reply_markup=challenge_keyboard(challenge),
        )


@router.callback_query(lambda c: c.data and c.data.startswith("challenge:accept:"))
async def callback_challenge_accept(callback: CallbackQuery, repo) -> None:
    challenge_id = callback.data.rsplit(":", 1)[1]
    await callback.message.answer(
        "🎭 Pick your fighter:",
        reply_markup=characters_keyboard(repo.list_characters(), f"challenge:join:{challenge_id}"),
    )
    await callback.answer()


@router.callback_query(lambda c: c.data and c.data.startswith("challenge:join:"))
async def callback_challenge_join(callback: CallbackQuery, repo, challenges: ChallengeService) -> None:
    _, _, challenge_id, character_id = callback.data.split(":")
    user = repo.get_user_by_fid(str(callback.from_user.id))
    if not user:
        await callback.answer("Register first with /start.")
        return
    try:
        battle, _ = challenges.accept_challenge(int(challenge_id), user.id, int(character_id))
    except ArenaError as exc:
        await callback.answer(str(exc))
        return

    challenger = repo.get_user(battle.player1_id)
    await callback.answer("Challenge accepted!")
    await send_battle_view(callback.bot, repo, battle.id, user)
    if challenger:
        await send_battle_view(callback.bot, repo, battle.id, challenger)


@router.callback_query(lambda c: c.data and c.data.startswith("challenge:reject:"))
async def callback_challenge_reject(callback: CallbackQuery, repo, challenges: ChallengeService) -> None:
    challenge_id = int(callback.data.rsplit(":", 1)[1])
    user = repo.get_user_by_fid(str(callback.from_user.id))
    if not user:
        await callback.answer("Register first with /start.")
        return
    try:
        challenge = challenges.reject_challenge(challenge_id, user.id)
    except ArenaError as exc:
        await callback.answer(str(exc))
        return

    await callback.answer("Challenge rejected.")
    challenger = repo.get_user(challenge.from_user_id)
    if challenger:
        await callback.bot.send_message(
            chat_id=int(challenger.fid),
            text=f"❌ @{user.username} rejected your challenge.",
        )
