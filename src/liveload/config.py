"""Reload engine configuration."""

from pydantic import BaseModel, ConfigDict, Field


class ReloadConfig(BaseModel):
    """Configuration for a ReloadEngine.

    poll_interval of None disables automatic reloads; reload() is then
    the only trigger.
    """

    model_config = ConfigDict(validate_assignment=True)

    # Seconds between automatic reload passes
    poll_interval: float | None = Field(default=0.5, gt=0)

    # Seconds to wait before the next automatic pass after a failed one
    failure_retry_delay: float = Field(default=5.0, ge=0)

    # Number of outcomes kept by ReloadEngine.history()
    history_size: int = Field(default=50, ge=1)

    # Module name prefixes that loaders must never reload
    protected_modules: list[str] = Field(default_factory=lambda: ["liveload"])
