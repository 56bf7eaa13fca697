"""Configuration loading from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

DEFAULT_MAX_CV_BYTES = 2 * 1024 * 1024


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Config:
    # Remote lead store (Supabase / PostgREST)
    supabase_url: str = ""
    supabase_key: str = ""
    leads_table: str = "leads"
    request_timeout: float = 10.0

    # In-memory fallback
    demo_latency: float = 0.0
    seed_demo_data: bool = True

    # Intake
    max_cv_bytes: int = DEFAULT_MAX_CV_BYTES
    company_name: str = "ProAgo World"

    # Staff accounts + tokens
    jwt_secret: str = "leadflow-dev-secret-change-me"
    jwt_expire_hours: int = 12
    recruiter_password: str = ""
    worker_password: str = ""
    manager_password: str = ""

    log_level: str = "INFO"
    log_format: str = "text"

    def __post_init__(self) -> None:
        self.supabase_url = self.supabase_url.rstrip("/")
        if self.max_cv_bytes <= 0:
            self.max_cv_bytes = DEFAULT_MAX_CV_BYTES


def load_config(env_file: str | None = None) -> Config:
    """Load configuration from .env file and environment variables."""
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    return Config(
        supabase_url=os.getenv("SUPABASE_URL", ""),
        supabase_key=os.getenv("SUPABASE_ANON_KEY", ""),
        leads_table=os.getenv("LEADS_TABLE", "leads"),
        request_timeout=float(os.getenv("REQUEST_TIMEOUT", "10")),
        demo_latency=float(os.getenv("DEMO_LATENCY", "0.3")),
        seed_demo_data=_env_bool("SEED_DEMO_DATA", True),
        max_cv_bytes=int(os.getenv("MAX_CV_BYTES", str(DEFAULT_MAX_CV_BYTES))),
        company_name=os.getenv("COMPANY_NAME", "ProAgo World"),
        jwt_secret=os.getenv("JWT_SECRET", "leadflow-dev-secret-change-me"),
        jwt_expire_hours=int(os.getenv("JWT_EXPIRE_HOURS", "12")),
        recruiter_password=os.getenv("RECRUITER_PASSWORD", ""),
        worker_password=os.getenv("WORKER_PASSWORD", ""),
        manager_password=os.getenv("MANAGER_PASSWORD", ""),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_format=os.getenv("LOG_FORMAT", "text"),
    )
