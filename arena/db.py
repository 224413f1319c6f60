import copy
import json
import sqlite3
from datetime import datetime
from typing import Optional, Protocol

from arena.catalog import build_catalog
from arena.combat.cooldowns import dump_cooldowns_json, parse_cooldowns_json
from arena.combat.status import dump_effects_json, parse_effects_json
from arena.models import Battle, BattleState, Challenge, Character, Move, User, utcnow


MEMORY_PATH = ":memory:"


class Repository(Protocol):
    def get_user(self, user_id: int) -> Optional[User]: ...
    def get_user_by_fid(self, fid: str) -> Optional[User]: ...
    def get_user_by_username(self, username: str) -> Optional[User]: ...
    def create_user(
        self,
        fid: str,
        username: str,
        display_name: str,
        verified_name: Optional[str] = None,
        avatar_url: Optional[str] = None,
    ) -> User: ...
    def save_user(self, user: User) -> None: ...
    def get_character(self, character_id: int) -> Optional[Character]: ...
    def list_characters(self) -> list[Character]: ...
    def get_moves_by_character_id(self, character_id: int) -> list[Move]: ...
    def get_battle(self, battle_id: int) -> Optional[Battle]: ...
    def create_battle(
        self,
        player1_id: int,
        player2_id: int,
        player1_character_id: int,
        player2_character_id: int,
        status: str,
    ) -> Battle: ...
    def save_battle(self, battle: Battle) -> None: ...
    def list_user_battles(self, user_id: int) -> list[Battle]: ...
    def get_battle_state(self, battle_id: int) -> Optional[BattleState]: ...
    def save_battle_state(self, state: BattleState) -> None: ...
    def get_challenge(self, challenge_id: int) -> Optional[Challenge]: ...
    def create_challenge(
        self, from_user_id: int, to_user_id: int, from_character_id: int
    ) -> Challenge: ...
    def save_challenge(self, challenge: Challenge) -> None: ...
    def list_pending_challenges(self, user_id: int) -> list[Challenge]: ...
    def list_leaderboard(self, limit: int = 10) -> list[User]: ...
    def list_recent_opponents(self, user_id: int, limit: int = 5) -> list[User]: ...


def _recent_first(battles: list[Battle]) -> list[Battle]:
    return sorted(battles, key=lambda b: (b.updated_at, b.id), reverse=True)


def _unique_opponents(battles: list[Battle], user_id: int) -> list[int]:
    seen = []
    for battle in _recent_first(battles):
        opponent = battle.opponent_of(user_id)
        if opponent not in seen:
            seen.append(opponent)
    return seen


class MemoryRepository:
    """Dict-backed repository; hands out copies so callers cannot mutate stored rows."""

    def __init__(self) -> None:
        characters, moves = build_catalog()
        self._characters = {c.id: c for c in characters}
        self._moves = {m.id: m for m in moves}
        self._users: dict[int, User] = {}
        self._battles: dict[int, Battle] = {}
        self._states: dict[int, BattleState] = {}
        self._challenges: dict[int, Challenge] = {}
        self._next_user_id = 1
        self._next_battle_id = 1
        self._next_challenge_id = 1

    def get_user(self, user_id: int) -> Optional[User]:
        user = self._users.get(user_id)
        return copy.deepcopy(user) if user else None

    def get_user_by_fid(self, fid: str) -> Optional[User]:
        for user in self._users.values():
            if user.fid == fid:
                return copy.deepcopy(user)
        return None

    def get_user_by_username(self, username: str) -> Optional[User]:
        for user in self._users.values():
            if user.username.lower() == username.lower():
                return copy.deepcopy(user)
        return None

    def create_user(
        self,
        fid: str,
        username: str,
        display_name: str,
        verified_name: Optional[str] = None,
        avatar_url: Optional[str] = None,
    ) -> User:
        user = User(
            id=self._next_user_id,
            fid=fid,
            username=username,
            display_name=display_name,
            verified_name=verified_name,
            avatar_url=avatar_url,
        )
        self._next_user_id += 1
        self._users[user.id] = copy.deepcopy(user)
        return user

    def save_user(self, user: User) -> None:
        self._users[user.id] = copy.deepcopy(user)

    def get_character(self, character_id: int) -> Optional[Character]:
        return self._characters.get(character_id)

    def list_characters(self) -> list[Character]:
        return list(self._characters.values())

    def get_moves_by_character_id(self, character_id: int) -> list[Move]:
        return [m for m in self._moves.values() if m.character_id == character_id]

    def get_battle(self, battle_id: int) -> Optional[Battle]:
        battle = self._battles.get(battle_id)
        return copy.deepcopy(battle) if battle else None

    def create_battle(
        self,
        player1_id: int,
        player2_id: int,
        player1_character_id: int,
        player2_character_id: int,
        status: str,
    ) -> Battle:
        battle = Battle(
            id=self._next_battle_id,
            player1_id=player1_id,
            player2_id=player2_id,
            player1_character_id=player1_character_id,
            player2_character_id=player2_character_id,
            status=status,
        )
        self._next_battle_id += 1
        self._battles[battle.id] = copy.deepcopy(battle)
        return battle

    def save_battle(self, battle: Battle) -> None:
        self._battles[battle.id] = copy.deepcopy(battle)

    def list_user_battles(self, user_id: int) -> list[Battle]:
        battles = [copy.deepcopy(b) for b in self._battles.values() if b.has_player(user_id)]
        return _recent_first(battles)

    def get_battle_state(self, battle_id: int) -> Optional[BattleState]:
        state = self._states.get(battle_id)
        return copy.deepcopy(state) if state else None

    def save_battle_state(self, state: BattleState) -> None:
        self._states[state.battle_id] = copy.deepcopy(state)

    def get_challenge(self, challenge_id: int) -> Optional[Challenge]:
        challenge = self._challenges.get(challenge_id)
        return copy.deepcopy(challenge) if challenge else None

    def create_challenge(
        self, from_user_id: int, to_user_id: int, from_character_id: int
    ) -> Challenge:
        challenge = Challenge(
            id=self._next_challenge_id,
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            from_character_id=from_character_id,
        )
        self._next_challenge_id += 1
        self._challenges[challenge.id] = copy.deepcopy(challenge)
        return challenge

    def save_challenge(self, challenge: Challenge) -> None:
        self._challenges[challenge.id] = copy.deepcopy(challenge)

    def list_pending_challenges(self, user_id: int) -> list[Challenge]:
        return [
            copy.deepcopy(c)
            for c in self._challenges.values()
            if c.to_user_id == user_id and c.status == "pending"
        ]

    def list_leaderboard(self, limit: int = 10) -> list[User]:
        users = sorted(self._users.values(), key=lambda u: (-u.rank_points, u.id))
        return [copy.deepcopy(u) for u in users[:limit]]

    def list_recent_opponents(self, user_id: int, limit: int = 5) -> list[User]:
        battles = [b for b in self._battles.values() if b.has_player(user_id)]
        users = [self.get_user(uid) for uid in _unique_opponents(battles, user_id)]
        return [u for u in users if u][:limit]


def get_connection(db_path: str) -> sqlite3.Connection:
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(conn: sqlite3.Connection) -> None:
    cursor = conn.cursor()
    cursor.execute(
        """
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            fid TEXT UNIQUE NOT NULL,
            username TEXT UNIQUE NOT NULL,
            display_name TEXT NOT NULL,
            verified_name TEXT,
            avatar_url TEXT,
            level INTEGER NOT NULL DEFAULT 1,
            experience INTEGER NOT NULL DEFAULT 0,
            rank_points INTEGER NOT NULL DEFAULT 0
        )
        """
    )
    cursor.execute(
        """
        CREATE TABLE IF NOT EXISTS characters (
            id INTEGER PRIMARY KEY,
            name TEXT NOT NULL,
            character_class TEXT NOT NULL,
            rarity TEXT NOT NULL,
            attack INTEGER NOT NULL,
            defense INTEGER NOT NULL,
            speed INTEGER NOT NULL,
            special_move TEXT NOT NULL,
            special_move_description TEXT NOT NULL,
            image_url TEXT NOT NULL
        )
        """
    )
    cursor.execute(
        """
        CREATE TABLE IF NOT EXISTS moves (
            id INTEGER PRIMARY KEY,
            character_id INTEGER NOT NULL,
            name TEXT NOT NULL,
            damage TEXT,
            effect TEXT,
            description TEXT NOT NULL,
            cooldown INTEGER NOT NULL DEFAULT 0
        )
        """
    )
    cursor.execute(
        """
        CREATE TABLE IF NOT EXISTS battles (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            player1_id INTEGER NOT NULL,
            player2_id INTEGER NOT NULL,
            player1_character_id INTEGER NOT NULL,
            player2_character_id INTEGER NOT NULL,
            status TEXT NOT NULL,
            winner_id INTEGER,
            turns INTEGER NOT NULL DEFAULT 0,
            battle_log TEXT NOT NULL DEFAULT '[]',
            player1_damage INTEGER NOT NULL DEFAULT 0,
            player2_damage INTEGER NOT NULL DEFAULT 0,
            player1_critical_hits INTEGER NOT NULL DEFAULT 0,
            player2_critical_hits INTEGER NOT NULL DEFAULT 0,
            player1_healing INTEGER NOT NULL DEFAULT 0,
            player2_healing INTEGER NOT NULL DEFAULT 0,
            player1_status_effects INTEGER NOT NULL DEFAULT 0,
            player2_status_effects INTEGER NOT NULL DEFAULT 0,
            rewards_settled INTEGER NOT NULL DEFAULT 0,
            player1_xp_gained INTEGER NOT NULL DEFAULT 0,
            player2_xp_gained INTEGER NOT NULL DEFAULT 0,
            player1_rank_points_change INTEGER NOT NULL DEFAULT 0,
            player2_rank_points_change INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
        """
    )
    cursor.execute(
        """
        CREATE TABLE IF NOT EXISTS battle_states (
            battle_id INTEGER PRIMARY KEY,
            current_turn INTEGER NOT NULL,
            current_player_id INTEGER NOT NULL,
            player1_health INTEGER NOT NULL,
            player2_health INTEGER NOT NULL,
            player1_effects TEXT NOT NULL DEFAULT '[]',
            player2_effects TEXT NOT NULL DEFAULT '[]',
            battle_log TEXT NOT NULL DEFAULT '[]',
            status TEXT NOT NULL,
            winner INTEGER,
            player1_cooldowns TEXT NOT NULL DEFAULT '{}',
            player2_cooldowns TEXT NOT NULL DEFAULT '{}'
        )
        """
    )
    cursor.execute(
        """
        CREATE TABLE IF NOT EXISTS challenges (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            from_user_id INTEGER NOT NULL,
            to_user_id INTEGER NOT NULL,
            from_character_id INTEGER NOT NULL,
            status TEXT NOT NULL,
            created_at TEXT NOT NULL
        )
        """
    )
    _ensure_battle_columns(conn)
    conn.commit()
    seed_data(conn)


def _ensure_battle_columns(conn: sqlite3.Connection) -> None:
    cursor = conn.cursor()
    cursor.execute("PRAGMA table_info(battles)")
    columns = {row["name"] for row in cursor.fetchall()}
    for name in (
        "player1_xp_gained",
        "player2_xp_gained",
        "player1_rank_points_change",
        "player2_rank_points_change",
    ):
        if name not in columns:
            cursor.execute(f"ALTER TABLE battles ADD COLUMN {name} INTEGER NOT NULL DEFAULT 0")


def seed_data(conn: sqlite3.Connection) -> None:
    cursor = conn.cursor()
    cursor.execute("SELECT COUNT(*) as cnt FROM characters")
    if cursor.fetchone()["cnt"] > 0:
        return
    characters, moves = build_catalog()
    cursor.executemany(
        """
        INSERT INTO characters (id, name, character_class, rarity, attack, defense, speed,
                                special_move, special_move_description, image_url)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        [
            (
                c.id,
                c.name,
                c.character_class,
                c.rarity,
                c.attack,
                c.defense,
                c.speed,
                c.special_move,
                c.special_move_description,
                c.image_url,
            )
            for c in characters
        ],
    )
    cursor.executemany(
        """
        INSERT INTO moves (id, character_id, name, damage, effect, description, cooldown)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        [
            (m.id, m.character_id, m.name, m.damage, m.effect, m.description, m.cooldown)
            for m in moves
        ],
    )
    conn.commit()


def _battle_from_row(row: sqlite3.Row) -> Battle:
    data = dict(row)
    data["battle_log"] = json.loads(data["battle_log"])
    data["rewards_settled"] = bool(data["rewards_settled"])
    data["created_at"] = datetime.fromisoformat(data["created_at"])
    data["updated_at"] = datetime.fromisoformat(data["updated_at"])
    return Battle(**data)


def _state_from_row(row: sqlite3.Row) -> BattleState:
    data = dict(row)
    data["player1_effects"] = parse_effects_json(data["player1_effects"])
    data["player2_effects"] = parse_effects_json(data["player2_effects"])
    data["battle_log"] = json.loads(data["battle_log"])
    data["player1_cooldowns"] = parse_cooldowns_json(data["player1_cooldowns"])
    data["player2_cooldowns"] = parse_cooldowns_json(data["player2_cooldowns"])
    return BattleState(**data)


def _challenge_from_row(row: sqlite3.Row) -> Challenge:
    data = dict(row)
    data["created_at"] = datetime.fromisoformat(data["created_at"])
    return Challenge(**data)


class SqliteRepository:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn
        init_db(conn)

    @classmethod
    def open(cls, db_path: str) -> "SqliteRepository":
        return cls(get_connection(db_path))

    def close(self) -> None:
        self.conn.close()

    def _fetch_one(self, sql: str, params: tuple) -> Optional[sqlite3.Row]:
        cursor = self.conn.cursor()
        cursor.execute(sql, params)
        return cursor.fetchone()

    def _fetch_all(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        cursor = self.conn.cursor()
        cursor.execute(sql, params)
        return cursor.fetchall()

    def get_user(self, user_id: int) -> Optional[User]:
        row = self._fetch_one("SELECT * FROM users WHERE id = ?", (user_id,))
        if not row:
            return None
        return User(**row)

    def get_user_by_fid(self, fid: str) -> Optional[User]:
        row = self._fetch_one("SELECT * FROM users WHERE fid = ?", (fid,))
        if not row:
            return None
        return User(**row)

    def get_user_by_username(self, username: str) -> Optional[User]:
        row = self._fetch_one(
            "SELECT * FROM users WHERE lower(username) = lower(?)", (username,)
        )
        if not row:
            return None
        return User(**row)

    def create_user(
        self,
        fid: str,
        username: str,
        display_name: str,
        verified_name: Optional[str] = None,
        avatar_url: Optional[str] = None,
    ) -> User:
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO users (fid, username, display_name, verified_name, avatar_url,
                               level, experience, rank_points)
            VALUES (?, ?, ?, ?, ?, 1, 0, 0)
            """,
            (fid, username, display_name, verified_name, avatar_url),
        )
        self.conn.commit()
        return self.get_user(cursor.lastrowid)

    def save_user(self, user: User) -> None:
        cursor = self.conn.cursor()
        cursor.execute(
            """
            UPDATE users
            SET username = ?, display_name = ?, verified_name = ?, avatar_url = ?,
                level = ?, experience = ?, rank_points = ?
            WHERE id = ?
            """,
            (
                user.username,
                user.display_name,
                user.verified_name,
                user.avatar_url,
                user.level,
                user.experience,
                user.rank_points,
                user.id,
            ),
        )
        self.conn.commit()

    def get_character(self, character_id: int) -> Optional[Character]:
        row = self._fetch_one("SELECT * FROM characters WHERE id = ?", (character_id,))
        if not row:
            return None
        return Character(**row)

    def list_characters(self) -> list[Character]:
        return [Character(**row) for row in self._fetch_all("SELECT * FROM characters ORDER BY id")]

    def get_moves_by_character_id(self, character_id: int) -> list[Move]:
        rows = self._fetch_all(
            "SELECT * FROM moves WHERE character_id = ? ORDER BY id", (character_id,)
        )
        return [Move(**row) for row in rows]

    def get_battle(self, battle_id: int) -> Optional[Battle]:
        row = self._fetch_one("SELECT * FROM battles WHERE id = ?", (battle_id,))
        if not row:
            return None
        return _battle_from_row(row)

    def create_battle(
        self,
        player1_id: int,
        player2_id: int,
        player1_character_id: int,
        player2_character_id: int,
        status: str,
    ) -> Battle:
        now = utcnow().isoformat()
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO battles (player1_id, player2_id, player1_character_id,
                                 player2_character_id, status, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (player1_id, player2_id, player1_character_id, player2_character_id, status, now, now),
        )
        self.conn.commit()
        return self.get_battle(cursor.lastrowid)

    def save_battle(self, battle: Battle) -> None:
        cursor = self.conn.cursor()
        cursor.execute(
            """
            UPDATE battles
            SET status = ?, winner_id = ?, turns = ?, battle_log = ?,
                player1_damage = ?, player2_damage = ?,
                player1_critical_hits = ?, player2_critical_hits = ?,
                player1_healing = ?, player2_healing = ?,
                player1_status_effects = ?, player2_status_effects = ?,
                rewards_settled = ?, player1_xp_gained = ?, player2_xp_gained = ?,
                player1_rank_points_change = ?, player2_rank_points_change = ?,
                updated_at = ?
            WHERE id = ?
            """,
            (
                battle.status,
                battle.winner_id,
                battle.turns,
                json.dumps(battle.battle_log),
                battle.player1_damage,
                battle.player2_damage,
                battle.player1_critical_hits,
                battle.player2_critical_hits,
                battle.player1_healing,
                battle.player2_healing,
                battle.player1_status_effects,
                battle.player2_status_effects,
                int(battle.rewards_settled),
                battle.player1_xp_gained,
                battle.player2_xp_gained,
                battle.player1_rank_points_change,
                battle.player2_rank_points_change,
                battle.updated_at.isoformat(),
                battle.id,
            ),
        )
        self.conn.commit()

    def list_user_battles(self, user_id: int) -> list[Battle]:
        rows = self._fetch_all(
            """
            SELECT * FROM battles
            WHERE player1_id = ? OR player2_id = ?
            ORDER BY updated_at DESC, id DESC
            """,
            (user_id, user_id),
        )
        return [_battle_from_row(row) for row in rows]

    def get_battle_state(self, battle_id: int) -> Optional[BattleState]:
        row = self._fetch_one("SELECT * FROM battle_states WHERE battle_id = ?", (battle_id,))
        if not row:
            return None
        return _state_from_row(row)

    def save_battle_state(self, state: BattleState) -> None:
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT OR REPLACE INTO battle_states (
                battle_id, current_turn, current_player_id, player1_health, player2_health,
                player1_effects, player2_effects, battle_log, status, winner,
                player1_cooldowns, player2_cooldowns
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                state.battle_id,
                state.current_turn,
                state.current_player_id,
                state.player1_health,
                state.player2_health,
                dump_effects_json(state.player1_effects),
                dump_effects_json(state.player2_effects),
                json.dumps(state.battle_log),
                state.status,
                state.winner,
                dump_cooldowns_json(state.player1_cooldowns),
                dump_cooldowns_json(state.player2_cooldowns),
            ),
        )
        self.conn.commit()

    def get_challenge(self, challenge_id: int) -> Optional[Challenge]:
        row = self._fetch_one("SELECT * FROM challenges WHERE id = ?", (challenge_id,))
        if not row:
            return None
        return _challenge_from_row(row)

    def create_challenge(
        self, from_user_id: int, to_user_id: int, from_character_id: int
    ) -> Challenge:
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO challenges (from_user_id, to_user_id, from_character_id, status, created_at)
            VALUES (?, ?, ?, 'pending', ?)
            """,
            (from_user_id, to_user_id, from_character_id, utcnow().isoformat()),
        )
        self.conn.commit()
        return self.get_challenge(cursor.lastrowid)

    def save_challenge(self, challenge: Challenge) -> None:
        cursor = self.conn.cursor()
        cursor.execute(
            "UPDATE challenges SET status = ? WHERE id = ?",
            (challenge.status, challenge.id),
        )
        self.conn.commit()

    def list_pending_challenges(self, user_id: int) -> list[Challenge]:
        rows = self._fetch_all(
            """
            SELECT * FROM challenges
            WHERE to_user_id = ? AND status = 'pending'
            ORDER BY id
            """,
            (user_id,),
        )
        return [_challenge_from_row(row) for row in rows]

    def list_leaderboard(self, limit: int = 10) -> list[User]:
        rows = self._fetch_all(
            "SELECT * FROM users ORDER BY rank_points DESC, id ASC LIMIT ?", (limit,)
        )
        return [User(**row) for row in rows]

    def list_recent_opponents(self, user_id: int, limit: int = 5) -> list[User]:
        opponents = _unique_opponents(self.list_user_battles(user_id), user_id)
        users = [self.get_user(uid) for uid in opponents]
        return [u for u in users if u][:limit]


def open_repository(db_path: str):
    if db_path == MEMORY_PATH:
        return MemoryRepository()
    return SqliteRepository.open(db_path)
