from pydantic import BaseModel, Field


class ProjectRules(BaseModel):
    slug: str
    rules_version: str


class LifecycleRules(BaseModel):
    scheduler_actor_id: str = "system"
    auto_publish_change_log: str = "Automatically published by scheduler"
    single_scheduled_version_per_asset: bool = True
    process_due_batch_size: int = Field(default=50, ge=1)
    version_number_attempts: int = Field(default=3, ge=1)


class SharingRules(BaseModel):
    token_bytes: int = Field(default=24, ge=16)
    verification_token_bytes: int = Field(default=16, ge=8)
    default_allow_download: bool = True
    default_expire_with_asset: bool = False
    download_ttl_seconds: int = Field(default=3600, ge=1)


class StoreRules(BaseModel):
    timeout_seconds: float = Field(default=5.0, gt=0)


class Rules(BaseModel):
    project: ProjectRules
    lifecycle: LifecycleRules = Field(default_factory=LifecycleRules)
    sharing: SharingRules = Field(default_factory=SharingRules)
    store: StoreRules = Field(default_factory=StoreRules)
