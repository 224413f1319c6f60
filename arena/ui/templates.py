from arena.combat.formulas import ATTACK, BUFF, HEAL
from arena.combat.status import summarize_effects
from arena.models import BattleState, Character, Move, User
from arena.progression import rank_title, xp_to_next_level


ACTION_LABELS = {
    ATTACK: "⚔️",
    HEAL: "💚",
    BUFF: "🛡",
}

RARITY_EMOJI = {
    "Common": "⚪",
    "Rare": "🔵",
    "Legendary": "🟡",
}

LOG_LINES_SHOWN = 6


def rarity_label(rarity: str) -> str:
    return RARITY_EMOJI.get(rarity, "⚪")


def health_bar(health: int, width: int = 10) -> str:
    filled = max(0, min(width, round(health * width / 100)))
    return "█" * filled + "░" * (width - filled)


def profile_text(user: User, recent_opponents: list[str] | None = None) -> str:
    next_xp = xp_to_next_level(user.level)
    name = user.verified_name or user.display_name
    text = (
        f"🧝 {name} (@{user.username})\n"
        f"🏅 Rank: {rank_title(user.rank_points)} · {user.rank_points} RP\n"
        f"⭐ Level {user.level} | XP {user.experience}/{next_xp}"
    )
    if recent_opponents:
        text += "\n🤺 Recent opponents: " + ", ".join(f"@{opponent}" for opponent in recent_opponents)
    return text


def character_line(character: Character) -> str:
    return (
        f"{rarity_label(character.rarity)} {character.name} · {character.character_class} "
        f"(ATK {character.attack} / DEF {character.defense} / SPD {character.speed})"
    )


def character_list(characters: list[Character]) -> str:
    lines = ["🎭 Fighters"]
    for character in characters:
        lines.append(f"{character.id}. {character_line(character)}")
    return "\n".join(lines)


def move_label(move: Move, turns_left: int = 0) -> str:
    if move.damage:
        action = ATTACK
    elif move.effect == "heal":
        action = HEAL
    else:
        action = BUFF
    label = f"{ACTION_LABELS[action]} {move.name}"
    if move.damage:
        label += f" ({move.damage})"
    if turns_left:
        label += f" ⏳{turns_left}"
    return label


def battle_text(
    state: BattleState,
    player1_name: str,
    player2_name: str,
    current_name: str,
) -> str:
    p1_effects = summarize_effects(state.player1_effects)
    p2_effects = summarize_effects(state.player2_effects)
    lines = [
        f"🌀 Turn {state.current_turn}",
        f"❤️ {player1_name}: {state.player1_health} {health_bar(state.player1_health)}",
        f"🧪 Effects: {p1_effects}",
        f"❤️ {player2_name}: {state.player2_health} {health_bar(state.player2_health)}",
        f"🧪 Effects: {p2_effects}",
        "━━━━━━━━━━━━━━━━━━━━",
    ]
    lines.extend(state.battle_log[-LOG_LINES_SHOWN:])
    if state.status == "completed":
        lines.append("🏁 Battle over.")
    else:
        lines.append(f"👉 {current_name} to move.")
    return "\n".join(lines)


def challenge_line(challenge_id: int, challenger: str, character: str) -> str:
    return f"📨 #{challenge_id} from @{challenger} with {character}"


def result_text(won: bool, xp: int, rank_points: int, turns: int, damage: int) -> str:
    header = "🏆 Victory!" if won else "💀 Defeat."
    sign = "+" if rank_points >= 0 else ""
    return (
        f"{header}\n"
        f"⭐ +{xp} XP | 🏅 {sign}{rank_points} RP\n"
        f"🌀 Turns: {turns} | ⚔️ Damage dealt: {damage}"
    )


def top_header() -> str:
    return "🏆 Leaderboard"


def top_entry(index: int, username: str, rank_points: int, level: int) -> str:
    medal = {1: "🥇", 2: "🥈", 3: "🥉"}.get(index, "🔸")
    return f"{medal} {index}. {username} | {rank_title(rank_points)} {rank_points} RP | Lv. {level}"
