import logging
from dataclasses import dataclass

from arena.models import Battle
from arena.progression import apply_level_up, xp_to_next_level


logger = logging.getLogger(__name__)

WINNER_XP = 25
WINNER_RANK_POINTS = 15
LOSER_XP = 5
LOSER_RANK_POINTS = -10


@dataclass
class SettlementOutcome:
    user_id: int
    xp_gained: int
    rank_points_change: int
    level: int
    experience: int
    leveled_up: bool


class RewardSettlement:
    def __init__(self, repo) -> None:
        self.repo = repo

    def settle(self, winner_id: int, loser_id: int) -> list[SettlementOutcome]:
        outcomes = []
        winner = self.repo.get_user(winner_id)
        if winner:
            level, xp, leveled_up = apply_level_up(winner.level, winner.experience + WINNER_XP)
            winner.level = level
            winner.experience = xp
            winner.rank_points = winner.rank_points + WINNER_RANK_POINTS
            self.repo.save_user(winner)
            outcomes.append(
                SettlementOutcome(
                    user_id=winner.id,
                    xp_gained=WINNER_XP,
                    rank_points_change=WINNER_RANK_POINTS,
                    level=winner.level,
                    experience=winner.experience,
                    leveled_up=leveled_up,
                )
            )
            if leveled_up:
                logger.info("User %s reached level %s", winner.id, winner.level)

        loser = self.repo.get_user(loser_id)
        if loser:
            before_xp = loser.experience
            before_points = loser.rank_points
            # Losers never level up, so experience stops at the next-level threshold.
            cap = max(loser.experience, xp_to_next_level(loser.level))
            loser.experience = min(loser.experience + LOSER_XP, cap)
            loser.rank_points = max(0, loser.rank_points + LOSER_RANK_POINTS)
            self.repo.save_user(loser)
            outcomes.append(
                SettlementOutcome(
                    user_id=loser.id,
                    xp_gained=loser.experience - before_xp,
                    rank_points_change=loser.rank_points - before_points,
                    level=loser.level,
                    experience=loser.experience,
                    leveled_up=False,
                )
            )
        return outcomes

    def settle_battle(self, battle: Battle) -> bool:
        """Settle a completed battle once; later calls are no-ops returning False."""
        if battle.rewards_settled or battle.winner_id is None:
            return False
        loser_id = battle.opponent_of(battle.winner_id)
        for outcome in self.settle(battle.winner_id, loser_id):
            side = "player1" if outcome.user_id == battle.player1_id else "player2"
            setattr(battle, f"{side}_xp_gained", outcome.xp_gained)
            setattr(battle, f"{side}_rank_points_change", outcome.rank_points_change)
        battle.rewards_settled = True
        self.repo.save_battle(battle)
        logger.info(
            "Settled battle %s: winner %s, loser %s", battle.id, battle.winner_id, loser_id
        )
        return True
