from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_FIXTURE = BASE_DIR / "storage" / "demo_data.json"


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    log_level: str = "INFO"
    page_size: int = 12
    cache_max_size: int = 100
    cache_ttl_seconds: int = 300
    locations_fixture: Path = DEFAULT_FIXTURE

    @property
    def use_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


def load_settings() -> Settings:
    load_dotenv()
    return Settings(
        supabase_url=os.getenv("SUPABASE_URL"),
        supabase_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        page_size=_int_env("PAGE_SIZE", 12),
        cache_max_size=_int_env("CACHE_MAX_SIZE", 100),
        cache_ttl_seconds=_int_env("CACHE_TTL_SECONDS", 300),
        locations_fixture=Path(os.getenv("LOCATIONS_FIXTURE") or DEFAULT_FIXTURE),
    )


def build_store(settings: Settings):
    """Supabase when credentials are configured, otherwise the in-memory demo store."""
    if settings.use_supabase:
        from storage.supabase_store import SupabaseStore

        return SupabaseStore(settings.supabase_url, settings.supabase_key)
    from storage.memory_store import InMemoryStore

    if settings.locations_fixture.exists():
        return InMemoryStore.from_fixture(settings.locations_fixture)
    return InMemoryStore()
