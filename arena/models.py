from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class User:
    id: int
    fid: str
    username: str
    display_name: str
    verified_name: Optional[str] = None
    avatar_url: Optional[str] = None
    level: int = 1
    experience: int = 0
    rank_points: int = 0


@dataclass(frozen=True)
class Character:
    id: int
    name: str
    character_class: str
    rarity: str
    attack: int
    defense: int
    speed: int
    special_move: str
    special_move_description: str
    image_url: str


@dataclass(frozen=True)
class Move:
    id: int
    character_id: int
    name: str
    damage: Optional[str]
    effect: Optional[str]
    description: str
    cooldown: int = 0


@dataclass
class Battle:
    id: int
    player1_id: int
    player2_id: int
    player1_character_id: int
    player2_character_id: int
    status: str
    winner_id: Optional[int] = None
    turns: int = 0
    battle_log: list[str] = field(default_factory=list)
    player1_damage: int = 0
    player2_damage: int = 0
    player1_critical_hits: int = 0
    player2_critical_hits: int = 0
    player1_healing: int = 0
    player2_healing: int = 0
    player1_status_effects: int = 0
    player2_status_effects: int = 0
    rewards_settled: bool = False
    player1_xp_gained: int = 0
    player2_xp_gained: int = 0
    player1_rank_points_change: int = 0
    player2_rank_points_change: int = 0
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def opponent_of(self, user_id: int) -> int:
        return self.player2_id if user_id == self.player1_id else self.player1_id

    def has_player(self, user_id: int) -> bool:
        return user_id in (self.player1_id, self.player2_id)


@dataclass
class ActiveEffect:
    tag: str
    remaining_turns: int


@dataclass
class BattleState:
    battle_id: int
    current_turn: int
    current_player_id: int
    player1_health: int
    player2_health: int
    player1_effects: list[ActiveEffect] = field(default_factory=list)
    player2_effects: list[ActiveEffect] = field(default_factory=list)
    battle_log: list[str] = field(default_factory=list)
    status: str = "active"
    winner: Optional[int] = None
    player1_cooldowns: dict[str, int] = field(default_factory=dict)
    player2_cooldowns: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        data = {
            "battleId": self.battle_id,
            "currentTurn": self.current_turn,
            "currentPlayerId": self.current_player_id,
            "player1Health": self.player1_health,
            "player2Health": self.player2_health,
            "player1Effects": [eff.tag for eff in self.player1_effects],
            "player2Effects": [eff.tag for eff in self.player2_effects],
            "battleLog": list(self.battle_log),
            "status": self.status,
        }
        if self.winner is not None:
            data["winner"] = self.winner
        return data


@dataclass
class BattleAction:
    type: str
    move_name: str
    target_id: int
    move_id: Optional[int] = None
    damage: Optional[str] = None
    effect: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "BattleAction":
        return cls(
            type=data["type"],
            move_name=data.get("moveName", ""),
            target_id=int(data.get("targetId", 0)),
            move_id=data.get("moveId"),
            damage=data.get("damage") or None,
            effect=data.get("effect") or None,
        )

    @classmethod
    def from_move(cls, move: Move, target_id: int) -> "BattleAction":
        # Non-damaging "heal" moves resolve as heals, other non-damaging moves as buffs.
        if move.damage:
            action_type = "attack"
        elif move.effect == "heal":
            action_type = "heal"
        else:
            action_type = "buff"
        return cls(
            type=action_type,
            move_name=move.name,
            target_id=target_id,
            move_id=move.id,
            damage=move.damage,
            effect=move.effect if action_type != "heal" else None,
        )


@dataclass
class Challenge:
    id: int
    from_user_id: int
    to_user_id: int
    from_character_id: int
    status: str = "pending"
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class BattleResult:
    battle_id: int
    won: bool
    opponent_id: int
    opponent_name: str
    xp_gained: int
    rank_points_change: int
    level: int
    level_progress: int
    total_turns: int
    damage_dealt: int
    damage_taken: int
    critical_hits: int
    healing: int
    status_effects: int
