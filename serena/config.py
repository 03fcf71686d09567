from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# DB SQLite em arquivo na raiz do projeto
DB_PATH = Path(__file__).resolve().parents[1] / "serena.sqlite"
DEFAULT_DATABASE_URL = f"sqlite:///{DB_PATH}"

CONFLICT_WINDOW_MODES = ("legacy", "overlap")

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_UNIT_SECONDS = {"s": 1, "m": 60, "h": 60 * 60, "d": 24 * 60 * 60}


def parse_expiry_seconds(value: str) -> int:
    """
    Converte "7d", "12h", "30m", "30s" ou segundos puros ("3600") em segundos.
    """
    match = _DURATION_RE.match(value or "")
    if not match:
        raise ValueError(f"JWT_EXPIRES_IN inválido: {value!r}")
    amount, unit = int(match.group(1)), match.group(2) or "s"
    seconds = amount * _UNIT_SECONDS[unit]
    if seconds <= 0:
        raise ValueError(f"JWT_EXPIRES_IN deve ser positivo: {value!r}")
    return seconds


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    environment: str = "development"
    database_url: str = DEFAULT_DATABASE_URL
    # Em produção: definir JWT_SECRET no ambiente
    jwt_secret: str = "CHANGE_ME_DEV_SECRET"
    jwt_algorithm: str = "HS256"
    jwt_expire_seconds: int = 7 * 24 * 60 * 60
    conflict_window: str = "legacy"
    log_level: str = "INFO"
    log_json: bool = False
    cors_origins: tuple[str, ...] = field(default=("http://localhost:3000",))

    def __post_init__(self) -> None:
        if self.conflict_window not in CONFLICT_WINDOW_MODES:
            raise ValueError(
                f"CONFLICT_WINDOW deve ser um de {CONFLICT_WINDOW_MODES}, recebido {self.conflict_window!r}"
            )
        if self.jwt_expire_seconds <= 0:
            raise ValueError("jwt_expire_seconds deve ser positivo")

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @classmethod
    def from_env(cls) -> "Settings":
        environment = os.getenv("APP_ENV", "development").strip().lower()
        origins = os.getenv("CORS_ORIGIN")
        if origins:
            cors = tuple(o.strip() for o in origins.split(",") if o.strip())
        else:
            cors = ("http://localhost:3000",)

        return cls(
            environment=environment,
            database_url=os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL),
            jwt_secret=os.getenv("JWT_SECRET", "CHANGE_ME_DEV_SECRET"),
            jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
            jwt_expire_seconds=parse_expiry_seconds(os.getenv("JWT_EXPIRES_IN", "7d")),
            conflict_window=os.getenv("CONFLICT_WINDOW", "legacy").strip().lower(),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_json=_env_flag("LOG_JSON", environment == "production"),
            cors_origins=cors,
        )
