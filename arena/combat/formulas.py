import math
from dataclasses import dataclass

from arena.errors import InvalidStateError


ATTACK = "attack"
HEAL = "heal"
BUFF = "buff"
ACTION_TYPES = (ATTACK, HEAL, BUFF)

MAX_HEALTH = 100
CRIT_CHANCE = 0.10
CRIT_MULTIPLIER = 1.5
HEAL_RANGE = (15, 25)


@dataclass
class DamageResult:
    raw: int
    damage: int
    is_crit: bool


def clamp_health(value: int, max_health: int = MAX_HEALTH) -> int:
    return max(0, min(max_health, value))


def parse_damage_range(text: str) -> tuple[int, int]:
    parts = text.split("-")
    if len(parts) != 2:
        raise InvalidStateError(f"Malformed damage range: {text!r}")
    try:
        low, high = int(parts[0].strip()), int(parts[1].strip())
    except ValueError:
        raise InvalidStateError(f"Malformed damage range: {text!r}") from None
    if low > high:
        raise InvalidStateError(f"Damage range {text!r} has min above max")
    return low, high


def critical_damage(raw: int, multiplier: float = CRIT_MULTIPLIER) -> int:
    return math.floor(raw * multiplier)


def roll_damage(
    damage_range: tuple[int, int],
    rng,
    crit_chance: float = CRIT_CHANCE,
    crit_multiplier: float = CRIT_MULTIPLIER,
) -> DamageResult:
    raw = rng.randint(damage_range[0], damage_range[1])
    if rng.random() < crit_chance:
        return DamageResult(raw=raw, damage=critical_damage(raw, crit_multiplier), is_crit=True)
    return DamageResult(raw=raw, damage=raw, is_crit=False)


def roll_heal(rng, heal_range: tuple[int, int] = HEAL_RANGE) -> int:
    return rng.randint(heal_range[0], heal_range[1])
