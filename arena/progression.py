from __future__ import annotations


RANK_TIERS = [
    (100, "Bronze"),
    (250, "Silver"),
    (500, "Gold"),
    (1000, "Platinum"),
]
TOP_TIER = "Diamond"


def xp_to_next_level(level: int) -> int:
    return max(1, level) * 100


def apply_level_up(level: int, xp: int) -> tuple[int, int, bool]:
    """Single-step level up: overflow experience is discarded, never cascaded."""
    new_level = max(1, level)
    new_xp = max(0, xp)
    if new_xp >= xp_to_next_level(new_level):
        return new_level + 1, 0, True
    return new_level, new_xp, False


def level_progress(level: int, xp: int) -> int:
    return min(100, int(xp * 100 / xp_to_next_level(level)))


def rank_title(rank_points: int) -> str:
    for threshold, title in RANK_TIERS:
        if rank_points < threshold:
            return title
    return TOP_TIER
