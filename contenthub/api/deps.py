import os
from functools import lru_cache
from pathlib import Path

from fastapi import Depends, Header, HTTPException, status

from contenthub.adapters.clock import SystemClock
from contenthub.adapters.presign import JwtPresigner
from contenthub.adapters.sqlite.repos import SQLiteShareLinkStore, SQLiteVersionStore
from contenthub.components.access_gate import AccessGate
from contenthub.components.events import EventRecorder
from contenthub.components.lifecycle import LifecycleConfig, LifecycleManager
from contenthub.components.share_links import SharingConfig, ShareLinkService
from contenthub.components.share_resolver import ShareLinkResolver
from contenthub.core.ports.storage import PresignPort
from contenthub.core.ports.stores import ShareLinkStore, VersionStore
from contenthub.core.ports.time import TimePort
from contenthub.rules.loader import load_rules
from contenthub.rules.models import Rules


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.data_dir = Path(os.environ.get("CONTENTHUB_DATA_DIR", "./data"))
        self.db_path = str(self.data_dir / "contenthub.db")
        self.storage_dir = self.data_dir / "objects"
        self.rules_path = Path(
            os.environ.get("CONTENTHUB_RULES_PATH", str(self.base_dir / "rules.yaml"))
        )
        self.secret_key = os.environ.get("CONTENTHUB_SECRET_KEY", "dev-secret-unsafe")
        self.public_base_url = os.environ.get(
            "CONTENTHUB_PUBLIC_BASE_URL", "http://localhost:8000"
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules() -> Rules:
    return load_rules(get_settings().rules_path)


def lifecycle_config(rules: Rules) -> LifecycleConfig:
    return LifecycleConfig(
        scheduler_actor_id=rules.lifecycle.scheduler_actor_id,
        auto_publish_change_log=rules.lifecycle.auto_publish_change_log,
        single_scheduled_version_per_asset=rules.lifecycle.single_scheduled_version_per_asset,
        process_due_batch_size=rules.lifecycle.process_due_batch_size,
        version_number_attempts=rules.lifecycle.version_number_attempts,
    )


def sharing_config(rules: Rules) -> SharingConfig:
    return SharingConfig(
        token_bytes=rules.sharing.token_bytes,
        verification_token_bytes=rules.sharing.verification_token_bytes,
        default_allow_download=rules.sharing.default_allow_download,
        default_expire_with_asset=rules.sharing.default_expire_with_asset,
        download_ttl_seconds=rules.sharing.download_ttl_seconds,
    )


# --- Clock (singleton) ---
_clock = SystemClock()


def get_clock() -> TimePort:
    return _clock


# --- Stores ---
def get_version_store(
    settings: Settings = Depends(get_settings),
    rules: Rules = Depends(get_rules),
) -> VersionStore:
    return SQLiteVersionStore(settings.db_path, timeout_seconds=rules.store.timeout_seconds)


def get_share_link_store(
    settings: Settings = Depends(get_settings),
    rules: Rules = Depends(get_rules),
) -> ShareLinkStore:
    return SQLiteShareLinkStore(settings.db_path, timeout_seconds=rules.store.timeout_seconds)


# --- Adapters ---
def get_jwt_presigner(
    settings: Settings = Depends(get_settings),
    clock: TimePort = Depends(get_clock),
) -> JwtPresigner:
    return JwtPresigner(settings.secret_key, settings.public_base_url, clock)


def get_presigner(jwt_presigner: JwtPresigner = Depends(get_jwt_presigner)) -> PresignPort:
    """Signing side only; routes that hand out URLs depend on this."""
    return jwt_presigner


# --- Component Services ---
def get_lifecycle_manager(
    store: VersionStore = Depends(get_version_store),
    clock: TimePort = Depends(get_clock),
    rules: Rules = Depends(get_rules),
) -> LifecycleManager:
    return LifecycleManager(store=store, time_port=clock, config=lifecycle_config(rules))


def get_share_link_service(
    links: ShareLinkStore = Depends(get_share_link_store),
    versions: VersionStore = Depends(get_version_store),
    clock: TimePort = Depends(get_clock),
    rules: Rules = Depends(get_rules),
) -> ShareLinkService:
    return ShareLinkService(links, versions, time_port=clock, config=sharing_config(rules))


def get_resolver(
    links: ShareLinkStore = Depends(get_share_link_store),
    versions: VersionStore = Depends(get_version_store),
    clock: TimePort = Depends(get_clock),
) -> ShareLinkResolver:
    return ShareLinkResolver(links, versions, time_port=clock)


def get_access_gate(
    links: ShareLinkStore = Depends(get_share_link_store),
    clock: TimePort = Depends(get_clock),
) -> AccessGate:
    return AccessGate(links, time_port=clock)


def get_event_recorder(
    links: ShareLinkStore = Depends(get_share_link_store),
    clock: TimePort = Depends(get_clock),
) -> EventRecorder:
    return EventRecorder(links, time_port=clock)


# --- Actor ---
def get_actor_id(x_actor_id: str | None = Header(default=None)) -> str:
    """
    Actor identity supplied by the upstream identity layer.
    Authentication happens before requests reach this service.
    """
    if not x_actor_id or not x_actor_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing actor identity",
        )
    return x_actor_id.strip()
