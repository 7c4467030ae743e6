import os
import enum
import logging
from pydantic import BaseModel, Field
from typing import List
from dotenv import load_dotenv

load_dotenv()


class ScopeMatchPolicy(str, enum.Enum):
    """How a supervisor's scope is judged when team and department data are missing."""
    PERMISSIVE = "permissive"
    STRICT = "strict"


def read_scope_policy() -> ScopeMatchPolicy:
    raw = os.getenv("SCOPE_MATCH_POLICY", ScopeMatchPolicy.PERMISSIVE.value).strip().lower()
    try:
        return ScopeMatchPolicy(raw)
    except ValueError:
        raise RuntimeError(
            f"FATAL: SCOPE_MATCH_POLICY must be one of "
            f"{[p.value for p in ScopeMatchPolicy]}, got '{raw}'."
        )


class LifecycleSettings(BaseModel):
    scope_match_policy: ScopeMatchPolicy = Field(default_factory=read_scope_policy)
    half_day_markers: List[str] = Field(
        default_factory=lambda: [
            m.strip()
            for m in os.getenv("HALF_DAY_MARKERS", "half-day,ครึ่งวัน").split(",")
            if m.strip()
        ]
    )
    transition_retry_attempts: int = int(os.getenv("TRANSITION_RETRY_ATTEMPTS", "3"))


class Config(BaseModel):
    app_name: str = "Leaveflow"
    environment: str = os.getenv("APP_ENV", "development")
    api_prefix: str = "/api"
    version: str = "1.0.0"
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./leaveflow.db")

    # Request lifecycle
    lifecycle: LifecycleSettings = LifecycleSettings()

    request_id_header: str = "X-Request-ID"


settings = Config()

_logger = logging.getLogger(__name__)
if settings.environment != "development" and settings.lifecycle.scope_match_policy == ScopeMatchPolicy.PERMISSIVE:
    _logger.warning("Supervisors with incomplete team/department data are treated as in scope.")
