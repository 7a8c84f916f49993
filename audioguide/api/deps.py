from functools import lru_cache
from pathlib import Path

from fastapi import Depends, HTTPException, status

from audioguide.app_shell.context import ClientContext, resolve_data_dir
from audioguide.components.demo_gate import DemoGate
from audioguide.components.entitlement import EntitlementStore
from audioguide.components.offline_cache import CacheLifecycleManager, CacheWorkerChannel
from audioguide.components.playback import PlaybackController
from audioguide.rules.loader import load_rules, resolve_rules_path
from audioguide.rules.models import Rules
from audioguide.services.access import AccessService


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.rules_path: Path = resolve_rules_path()
        self.data_dir: Path = resolve_data_dir()


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules() -> Rules:
    return load_rules(get_settings().rules_path)


# --- Context ---
@lru_cache
def get_context() -> ClientContext:
    """One client context per process; the player and caches are shared."""
    return ClientContext.create(get_rules(), get_settings().data_dir)


# --- Component Services ---
def get_entitlements(ctx: ClientContext = Depends(get_context)) -> EntitlementStore:
    return ctx.entitlements


def get_demo_gate(ctx: ClientContext = Depends(get_context)) -> DemoGate:
    return ctx.demo_gate


def get_access_service(ctx: ClientContext = Depends(get_context)) -> AccessService:
    return ctx.access_service


def get_player(ctx: ClientContext = Depends(get_context)) -> PlaybackController:
    return ctx.shared_player()


def get_cache_manager(ctx: ClientContext = Depends(get_context)) -> CacheLifecycleManager:
    return ctx.cache_manager


def get_cache_channel(ctx: ClientContext = Depends(get_context)) -> CacheWorkerChannel:
    """The worker channel started by the app lifespan."""
    if not ctx.cache_channel.running:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Cache worker is not running",
        )
    return ctx.cache_channel
