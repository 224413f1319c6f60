import json

from arena.models import Move


# Both sides alternate; a cooldown of N blocks the user's next N turns, so the move
# is ready again N + 1 of their own turns (2 * (N + 1) battle turns) later.
TURNS_PER_ROUND = 2


def ready_turn(move: Move, used_on_turn: int) -> int:
    return used_on_turn + (move.cooldown + 1) * TURNS_PER_ROUND


def is_ready(cooldowns: dict[str, int], move_name: str, current_turn: int) -> bool:
    return cooldowns.get(move_name, 0) <= current_turn


def turns_left(cooldowns: dict[str, int], move_name: str, current_turn: int) -> int:
    return max(0, cooldowns.get(move_name, 0) - current_turn)


def start_cooldown(cooldowns: dict[str, int], move: Move, used_on_turn: int) -> None:
    if move.cooldown <= 0:
        return
    cooldowns[move.name] = ready_turn(move, used_on_turn)


def dump_cooldowns_json(cooldowns: dict[str, int]) -> str:
    return json.dumps(cooldowns)


def parse_cooldowns_json(raw: str) -> dict[str, int]:
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return {}
    if not isinstance(data, dict):
        return {}
    return {str(name): int(turn) for name, turn in data.items()}
