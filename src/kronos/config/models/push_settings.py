"""Web Push configuration model."""

from __future__ import annotations

from pydantic import BaseModel, Field

from kronos.shared.constants import PushDefaults


class PushSettings(BaseModel):
    """VAPID credentials and subscription storage.

    Security: private key is masked in __repr__.
    """

    vapid_public_key: str = Field(default="", description="VAPID application server key")
    vapid_private_key: str = Field(
        default="",
        repr=False,
        description="VAPID private key (required to send)",
    )
    vapid_subject: str = Field(default=PushDefaults.VAPID_SUBJECT)
    db_path: str = Field(
        default=PushDefaults.DEFAULT_DB_PATH,
        description="SQLite database of push subscriptions",
    )
    ttl: int = Field(default=PushDefaults.TTL_SECONDS, ge=0, description="Push message TTL")

    @property
    def is_configured(self) -> bool:
        return bool(self.vapid_public_key and self.vapid_private_key)

    def __repr__(self) -> str:
        masked_key = "****" if self.vapid_private_key else "[empty]"
        return (
            f"PushSettings("
            f"vapid_public_key={self.vapid_public_key!r}, "
            f"vapid_private_key={masked_key}, "
            f"vapid_subject={self.vapid_subject!r})"
        )


__all__ = ["PushSettings"]
