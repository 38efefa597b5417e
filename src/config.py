from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


def _flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default) == "1"


@dataclass(frozen=True)
class Settings:
    supabase_disabled: bool
    supabase_url: str | None
    supabase_anon_key: str | None
    storage_bucket: str
    storage_local_dir: str
    env: str
    log_level: str
    max_chain_depth: int
    histogram_cache_size: int

    @classmethod
    def from_env(cls) -> Settings:
        return cls(
            supabase_disabled=_flag("SUPABASE_DISABLED"),
            supabase_url=os.getenv("SUPABASE_URL"),
            supabase_anon_key=os.getenv("SUPABASE_ANON_KEY"),
            storage_bucket=os.getenv("SUPABASE_STORAGE_BUCKET", "images"),
            storage_local_dir=os.getenv("SUPABASE_STORAGE_LOCAL_DIR", ".local_storage"),
            env=os.getenv("ENV", "development"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            max_chain_depth=int(os.getenv("MAX_CHAIN_DEPTH", "64")),
            histogram_cache_size=int(os.getenv("HISTOGRAM_CACHE_SIZE", "128")),
        )

    @property
    def use_supabase(self) -> bool:
        return not self.supabase_disabled and bool(self.supabase_url and self.supabase_anon_key)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
