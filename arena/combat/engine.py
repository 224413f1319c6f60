import logging
import random
import threading
from dataclasses import dataclass

from arena.catalog import find_move
from arena.combat import cooldowns
from arena.combat.formulas import (
    ACTION_TYPES,
    ATTACK,
    CRIT_CHANCE,
    CRIT_MULTIPLIER,
    HEAL,
    HEAL_RANGE,
    MAX_HEALTH,
    DamageResult,
    clamp_health,
    parse_damage_range,
    roll_damage,
    roll_heal,
)
from arena.combat.settlement import RewardSettlement
from arena.combat.status import apply_effect, tick_effects
from arena.errors import ForbiddenError, InvalidStateError, NotFoundError
from arena.models import Battle, BattleAction, BattleState, Move, utcnow


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineSettings:
    crit_chance: float = CRIT_CHANCE
    crit_multiplier: float = CRIT_MULTIPLIER
    heal_range: tuple[int, int] = HEAL_RANGE
    max_health: int = MAX_HEALTH
    legacy_effects: bool = False
    enforce_cooldowns: bool = False


@dataclass
class Side:
    """One combatant's view of the state, so resolution code is written once."""

    user_id: int
    character_id: int
    is_player1: bool

    def health(self, state: BattleState) -> int:
        return state.player1_health if self.is_player1 else state.player2_health

    def set_health(self, state: BattleState, value: int) -> None:
        if self.is_player1:
            state.player1_health = value
        else:
            state.player2_health = value

    def effects(self, state: BattleState) -> list:
        return state.player1_effects if self.is_player1 else state.player2_effects

    def set_effects(self, state: BattleState, effects: list) -> None:
        if self.is_player1:
            state.player1_effects = effects
        else:
            state.player2_effects = effects

    def cooldowns(self, state: BattleState) -> dict[str, int]:
        return state.player1_cooldowns if self.is_player1 else state.player2_cooldowns

    def add_stat(self, battle: Battle, stat: str, amount: int) -> None:
        name = f"player{1 if self.is_player1 else 2}_{stat}"
        setattr(battle, name, getattr(battle, name) + amount)


def sides_for(battle: Battle, state: BattleState) -> tuple[Side, Side]:
    player1 = Side(battle.player1_id, battle.player1_character_id, True)
    player2 = Side(battle.player2_id, battle.player2_character_id, False)
    if state.current_player_id == battle.player1_id:
        return player1, player2
    return player2, player1


class BattleEngine:
    def __init__(
        self,
        repo,
        rng=None,
        settings: EngineSettings | None = None,
        settlement: RewardSettlement | None = None,
    ) -> None:
        self.repo = repo
        self.rng = rng if rng is not None else random.Random()
        self.settings = settings or EngineSettings()
        self.settlement = settlement or RewardSettlement(repo)
        self._locks: dict[int, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, battle_id: int) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(battle_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[battle_id] = lock
            return lock

    def _forget_lock(self, battle_id: int) -> None:
        with self._locks_guard:
            self._locks.pop(battle_id, None)

    def resolve_action(self, battle_id: int, actor_id: int, action: BattleAction) -> BattleState:
        with self._lock_for(battle_id):
            try:
                state = self._resolve(battle_id, actor_id, action)
            except NotFoundError:
                self._forget_lock(battle_id)
                raise
            # Completed battles are never written again.
            if state.status == "completed":
                self._forget_lock(battle_id)
            return state

    def _load(self, battle_id: int) -> tuple[Battle, BattleState]:
        battle = self.repo.get_battle(battle_id)
        if not battle:
            raise NotFoundError(f"Battle {battle_id} not found")
        state = self.repo.get_battle_state(battle_id)
        if not state:
            raise NotFoundError(f"Battle state {battle_id} not found")
        return battle, state

    def _catalog_move(self, actor: Side, action: BattleAction) -> Move | None:
        moves = self.repo.get_moves_by_character_id(actor.character_id)
        return find_move(moves, action.move_id, action.move_name)

    def _validate(
        self, battle: Battle, state: BattleState, actor_id: int, action: BattleAction, actor: Side
    ) -> tuple[tuple[int, int] | None, Move | None]:
        if state.status == "completed" or battle.status == "completed":
            self._forget_lock(battle.id)
            raise InvalidStateError(f"Battle {battle.id} is already completed")
        if actor_id != state.current_player_id:
            raise ForbiddenError("Not your turn")
        if action.type not in ACTION_TYPES:
            raise InvalidStateError(f"Unknown action type: {action.type!r}")

        damage_range = None
        if action.type == ATTACK and action.damage:
            damage_range = parse_damage_range(action.damage)

        move = self._catalog_move(actor, action)
        if (
            move
            and self.settings.enforce_cooldowns
            and not cooldowns.is_ready(actor.cooldowns(state), move.name, state.current_turn)
        ):
            left = cooldowns.turns_left(actor.cooldowns(state), move.name, state.current_turn)
            raise InvalidStateError(f"{move.name} is on cooldown for {left} more turns")
        return damage_range, move

    def _resolve(self, battle_id: int, actor_id: int, action: BattleAction) -> BattleState:
        battle, state = self._load(battle_id)
        actor, defender = sides_for(battle, state)
        damage_range, move = self._validate(battle, state, actor_id, action, actor)

        carried = len(actor.effects(state))
        character = self.repo.get_character(actor.character_id)
        actor_name = character.name if character else f"Player {1 if actor.is_player1 else 2}"

        if action.type == ATTACK:
            log_entry = self._apply_attack(battle, state, actor, defender, action, damage_range, actor_name)
        elif action.type == HEAL:
            log_entry = self._apply_heal(battle, state, actor, actor_name)
        else:
            log_entry = self._apply_buff(battle, state, actor, action, actor_name)

        state.battle_log.append(log_entry)
        battle.battle_log.append(log_entry)
        logger.debug("Battle %s turn %s: %s", battle.id, state.current_turn, log_entry)

        if move:
            cooldowns.start_cooldown(actor.cooldowns(state), move, state.current_turn)

        if defender.health(state) <= 0:
            self._finish(battle, state, actor, defender)
        else:
            if not self.settings.legacy_effects:
                self._tick_actor_effects(state, actor, carried)
            state.current_turn += 1
            state.current_player_id = defender.user_id

        battle.turns = state.current_turn
        battle.updated_at = utcnow()
        self.repo.save_battle(battle)
        self.repo.save_battle_state(state)
        return state

    def _tick_actor_effects(self, state: BattleState, actor: Side, carried: int) -> None:
        # Effects the actor gained this turn start counting on their next turn.
        effects = actor.effects(state)
        remaining, expired = tick_effects(effects[:carried])
        actor.set_effects(state, remaining + effects[carried:])
        if expired:
            logger.debug("Battle %s: %s wore off", state.battle_id, ", ".join(expired))

    def _apply_attack(
        self,
        battle: Battle,
        state: BattleState,
        actor: Side,
        defender: Side,
        action: BattleAction,
        damage_range: tuple[int, int] | None,
        actor_name: str,
    ) -> str:
        result = DamageResult(raw=0, damage=0, is_crit=False)
        if damage_range:
            result = roll_damage(
                damage_range,
                self.rng,
                crit_chance=self.settings.crit_chance,
                crit_multiplier=self.settings.crit_multiplier,
            )
            defender.set_health(
                state, clamp_health(defender.health(state) - result.damage, self.settings.max_health)
            )
            actor.add_stat(battle, "damage", result.damage)
            if result.is_crit:
                actor.add_stat(battle, "critical_hits", 1)

        log_entry = f"{actor_name} used {action.move_name} for {result.damage} damage"
        if result.is_crit:
            log_entry += " (CRITICAL HIT!)"
        if action.effect:
            apply_effect(defender.effects(state), action.effect)
            actor.add_stat(battle, "status_effects", 1)
            log_entry += f" and applied {action.effect}"
        return log_entry

    def _apply_heal(self, battle: Battle, state: BattleState, actor: Side, actor_name: str) -> str:
        healing = roll_heal(self.rng, self.settings.heal_range)
        actor.set_health(
            state, clamp_health(actor.health(state) + healing, self.settings.max_health)
        )
        actor.add_stat(battle, "healing", healing)
        return f"{actor_name} healed for {healing} HP"

    def _apply_buff(
        self, battle: Battle, state: BattleState, actor: Side, action: BattleAction, actor_name: str
    ) -> str:
        log_entry = f"{actor_name} used {action.move_name}"
        if action.effect:
            apply_effect(actor.effects(state), action.effect)
            actor.add_stat(battle, "status_effects", 1)
            log_entry += f" and gained {action.effect}"
        return log_entry

    def _finish(self, battle: Battle, state: BattleState, winner: Side, loser: Side) -> None:
        user = self.repo.get_user(winner.user_id)
        fallback = f"Player {1 if winner.is_player1 else 2}"
        state.status = "completed"
        state.winner = winner.user_id
        victory = f"{user.username if user else fallback} wins!"
        state.battle_log.append(victory)
        battle.battle_log.append(victory)
        battle.status = "completed"
        battle.winner_id = winner.user_id
        logger.info("Battle %s completed, winner %s", battle.id, winner.user_id)
        self.settlement.settle_battle(battle)
