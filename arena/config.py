from dataclasses import dataclass
import os


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Config:
    bot_token: str
    db_path: str
    log_level: str
    legacy_effects: bool
    enforce_cooldowns: bool


def load_config() -> Config:
    bot_token = os.getenv("BOT_TOKEN")
    if not bot_token:
        raise RuntimeError("BOT_TOKEN is not set")
    db_path = os.getenv("DB_PATH", "arena.sqlite3")
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    return Config(
        bot_token=bot_token,
        db_path=db_path,
        log_level=log_level,
        legacy_effects=_env_flag("ARENA_LEGACY_EFFECTS"),
        enforce_cooldowns=_env_flag("ARENA_ENFORCE_COOLDOWNS"),
    )
