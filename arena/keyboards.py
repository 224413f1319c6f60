from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup
from aiogram.utils.keyboard import InlineKeyboardBuilder

from arena.combat.cooldowns import turns_left
from arena.models import Challenge, Character, Move
from arena.ui.templates import move_label, rarity_label


def characters_keyboard(characters: list[Character], prefix: str) -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    for character in characters:
        builder.add(
            InlineKeyboardButton(
                text=f"{rarity_label(character.rarity)} {character.name}",
                callback_data=f"{prefix}:{character.id}",
            )
        )
    builder.adjust(1)
    return builder.as_markup()


def challenge_keyboard(challenge: Challenge) -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.add(
        InlineKeyboardButton(text="✅ Accept", callback_data=f"challenge:accept:{challenge.id}"),
        InlineKeyboardButton(text="❌ Reject", callback_data=f"challenge:reject:{challenge.id}"),
    )
    builder.adjust(2)
    return builder.as_markup()


def moves_keyboard(
    battle_id: int, moves: list[Move], cooldowns: dict[str, int], current_turn: int
) -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    for move in moves:
        left = turns_left(cooldowns, move.name, current_turn)
        builder.add(
            InlineKeyboardButton(
                text=move_label(move, left),
                callback_data=f"move:{battle_id}:{move.id}",
            )
        )
    builder.adjust(2)
    return builder.as_markup()
