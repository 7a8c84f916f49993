from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProjectRules(BaseModel):
    slug: str
    rules_version: str

class StorageRules(BaseModel):
    backend: Literal["json", "sqlite", "memory"] = "json"
    path: str = "client_state.json"
    entitlement_key: str = "userStatus"
    demo_key_prefix: str = "demoPlayed_"

class EntitlementRules(BaseModel):
    default_grant_days: int = Field(default=30, ge=1)

class PlaybackRules(BaseModel):
    demo_seconds: float = Field(default=10.0, gt=0)
    audio_url_template: str = "/audios/{content_id}.mp3"

    @field_validator("audio_url_template")
    @classmethod
    def _has_placeholder(cls, value: str) -> str:
        if "{content_id}" not in value:
            raise ValueError("audio_url_template must contain '{content_id}'")
        return value

class OfflineCacheRules(BaseModel):
    cache_prefix: str = "audio-guide-static"
    version_tag: str = "v1"
    origin: str = "http://localhost:5173"
    storage_backend: Literal["file", "memory"] = "file"
    storage_dir: str = "caches"
    manifest: list[str] = Field(default_factory=lambda: ["/", "/index.html", "/manifest.json"])
    max_entries: int | None = Field(default=None, ge=1)
    clear_on_logout: bool = False
    fetch_timeout_seconds: float = Field(default=15.0, gt=0)

    @field_validator("manifest")
    @classmethod
    def _paths_are_absolute(cls, value: list[str]) -> list[str]:
        bad = [p for p in value if not p.startswith("/")]
        if bad:
            raise ValueError(f"manifest paths must start with '/': {bad}")
        return value

class LoggingRules(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

class Rules(BaseModel):
    project: ProjectRules
    storage: StorageRules = Field(default_factory=StorageRules)
    entitlement: EntitlementRules = Field(default_factory=EntitlementRules)
    playback: PlaybackRules = Field(default_factory=PlaybackRules)
    offline_cache: OfflineCacheRules = Field(default_factory=OfflineCacheRules)
    logging: LoggingRules = Field(default_factory=LoggingRules)

    model_config = ConfigDict(extra="forbid")
