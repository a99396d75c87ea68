from __future__ import annotations

from pydantic import Field

try:
    from pydantic_settings import BaseSettings, SettingsConfigDict
except Exception as e:  # pragma: no cover
    raise RuntimeError(
        "pydantic-settings is required. Install with: pip install pydantic-settings"
    ) from e


class ContactGraphSettings(BaseSettings):
    """Unified configuration for contact-graph.

    Environment variables are prefixed with CONTACT_GRAPH_.
    """

    model_config = SettingsConfigDict(env_prefix="CONTACT_GRAPH_", extra="ignore")

    # --- Core ---
    log_level: str = Field(default="INFO", description="Python logging level")
    vault_path: str | None = Field(default=None, description="Directory of contact documents")

    # --- Rendered section ---
    section_heading: str = Field(default="Related", description="Heading word of the relationship list")
    section_heading_level: int = Field(default=2, ge=1, le=6)
    notes_heading: str = Field(default="Notes", description="Section the list is inserted after")

    # --- Sync ---
    lock_ttl_seconds: float = Field(default=5.0, gt=0, description="Bounded per-entity lock lifetime")
    infer_gender: bool = True
    stamp_revision: bool = True

    # --- Structured field names ---
    uid_field: str = "UID"
    name_field: str = "FN"
    gender_field: str = "GENDER"
    revision_field: str = "REV"


settings = ContactGraphSettings()
