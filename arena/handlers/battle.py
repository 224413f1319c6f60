from aiogram import Bot, Router
from aiogram.filters import Command
from aiogram.types import CallbackQuery, Message

from arena.challenges import ChallengeService
from arena.combat.engine import BattleEngine
from arena.errors import ArenaError
from arena.keyboards import moves_keyboard
from arena.models import BattleAction, User
from arena.ui import templates


router = Router()


def _names(repo, battle) -> tuple[str, str]:
    names = []
    for character_id in (battle.player1_character_id, battle.player2_character_id):
        character = repo.get_character(character_id)
        names.append(character.name if character else "?")
    return names[0], names[1]


async def send_battle_view(bot: Bot, repo, battle_id: int, viewer: User) -> None:
    battle = repo.get_battle(battle_id)
    state = repo.get_battle_state(battle_id)
    if not battle or not state:
        return
    p1_name, p2_name = _names(repo, battle)
    current_name = p1_name if state.current_player_id == battle.player1_id else p2_name
    text = templates.battle_text(state, p1_name, p2_name, current_name)

    reply_markup = None
    if state.status == "active" and state.current_player_id == viewer.id:
        is_player1 = viewer.id == battle.player1_id
        character_id = battle.player1_character_id if is_player1 else battle.player2_character_id
        cooldowns = state.player1_cooldowns if is_player1 else state.player2_cooldowns
        reply_markup = moves_keyboard(
            battle.id,
            repo.get_moves_by_character_id(character_id),
            cooldowns,
            state.current_turn,
        )
    await bot.send_message(chat_id=int(viewer.fid), text=text, reply_markup=reply_markup)


@router.message(Command("battle"))
async def cmd_battle(message: Message, repo) -> None:
    user = repo.get_user_by_fid(str(message.from_user.id))
    if not user:
        await message.answer("Register first with /start.")
        return
    active = [b for b in repo.list_user_battles(user.id) if b.status == "active"]
    if not active:
        await message.answer("🗺 No active battles. Send a /challenge.")
        return
    await send_battle_view(message.bot, repo, active[0].id, user)


@router.callback_query(lambda c: c.data and c.data.startswith("move:"))
async def callback_move(
    callback: CallbackQuery, repo, engine: BattleEngine, challenges: ChallengeService
) -> None:
    _, battle_id, move_id = callback.data.split(":")
    battle_id, move_id = int(battle_id), int(move_id)
    user = repo.get_user_by_fid(str(callback.from_user.id))
    if not user:
        await callback.answer("Register first with /start.")
        return

    battle = repo.get_battle(battle_id)
    state = repo.get_battle_state(battle_id)
    if not battle or not state or not battle.has_player(user.id):
        await callback.answer("Battle not found.")
        return
    if state.current_player_id != user.id:
        await callback.answer("Not your turn.")
        return

    character_id = (
        battle.player1_character_id if user.id == battle.player1_id else battle.player2_character_id
    )
    move = next((m for m in repo.get_moves_by_character_id(character_id) if m.id == move_id), None)
    if not move:
        await callback.answer("Unknown move.")
        return

    action = BattleAction.from_move(move, target_id=battle.opponent_of(user.id))
    try:
        new_state = engine.resolve_action(battle_id, user.id, action)
    except ArenaError as exc:
        await callback.answer(str(exc))
        return
    await callback.answer()

    opponent = repo.get_user(battle.opponent_of(user.id))
    viewers = [user] + ([opponent] if opponent else [])
    for viewer in viewers:
        await send_battle_view(callback.bot, repo, battle_id, viewer)
        if new_state.status == "completed":
            result = challenges.battle_result(battle_id, viewer.id)
            await callback.bot.send_message(
                chat_id=int(viewer.fid),
                text=templates.result_text(
                    result.won,
                    result.xp_gained,
                    result.rank_points_change,
                    result.total_turns,
                    result.damage_dealt,
                ),
            )
