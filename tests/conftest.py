import pytest

from arena.challenges import ChallengeService
from arena.combat.engine import BattleEngine, EngineSettings
from arena.db import MemoryRepository
from tests.helpers.scripted_random import ScriptedRandom


@pytest.fixture
def repo() -> MemoryRepository:
    return MemoryRepository()


@pytest.fixture
def users(repo):
    alice = repo.create_user(fid="1001", username="alice", display_name="Alice")
    bob = repo.create_user(fid="1002", username="bob", display_name="Bob")
    return alice, bob


@pytest.fixture
def challenges(repo) -> ChallengeService:
    return ChallengeService(repo)


@pytest.fixture
def rng() -> ScriptedRandom:
    return ScriptedRandom()


@pytest.fixture
def engine(repo, rng) -> BattleEngine:
    return BattleEngine(repo, rng=rng, settings=EngineSettings())


@pytest.fixture
def battle(users, challenges):
    alice, bob = users
    battle, _ = challenges.start_battle(alice.id, bob.id, 1, 2)
    return battle
