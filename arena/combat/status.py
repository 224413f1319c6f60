import json
from typing import Iterable

from arena.models import ActiveEffect


DEFAULT_DURATION = 2
EFFECT_DURATIONS = {
    "burn": 2,
    "slow": 2,
    "defense_boost": 1,
    "untargetable": 1,
}


def effect_duration(tag: str) -> int:
    return EFFECT_DURATIONS.get(tag, DEFAULT_DURATION)


def apply_effect(effects: list[ActiveEffect], tag: str) -> ActiveEffect:
    effect = ActiveEffect(tag=tag, remaining_turns=effect_duration(tag))
    effects.append(effect)
    return effect


def tick_effects(effects: Iterable[ActiveEffect]) -> tuple[list[ActiveEffect], list[str]]:
    """Spend one turn of every effect; returns (still active, expired tags)."""
    active = []
    expired = []
    for eff in effects:
        remaining = eff.remaining_turns - 1
        if remaining > 0:
            active.append(ActiveEffect(tag=eff.tag, remaining_turns=remaining))
        else:
            expired.append(eff.tag)
    return active, expired


def summarize_effects(effects: Iterable[ActiveEffect]) -> str:
    parts = [f"{eff.tag}({eff.remaining_turns})" for eff in effects]
    if not parts:
        return "none"
    return ", ".join(parts)


def dump_effects_json(effects: Iterable[ActiveEffect]) -> str:
    return json.dumps(
        [{"tag": eff.tag, "remaining_turns": eff.remaining_turns} for eff in effects]
    )


def parse_effects_json(effects_json: str) -> list[ActiveEffect]:
    try:
        data = json.loads(effects_json)
    except json.JSONDecodeError:
        return []
    if not isinstance(data, list):
        return []
    effects = []
    for eff in data:
        # Rows written before durations existed hold bare tags.
        if isinstance(eff, str):
            effects.append(ActiveEffect(tag=eff, remaining_turns=effect_duration(eff)))
        elif isinstance(eff, dict) and eff.get("tag"):
            effects.append(
                ActiveEffect(tag=eff["tag"], remaining_turns=int(eff.get("remaining_turns", 1)))
            )
    return effects
