"""Signed-in user identity."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class UserIdentity:
    """Identity issued by the auth gateway.

    Attributes:
        id: Stable user identifier.
        display_name: Display name.
        photo_url: Avatar URL.
        email: E-mail address.
    """

    id: str
    display_name: str | None = None
    photo_url: str | None = None
    email: str | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("User id cannot be empty")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "displayName": self.display_name,
            "photoURL": self.photo_url,
            "email": self.email,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UserIdentity":
        return cls(
            id=str(data.get("id") or ""),
            display_name=data.get("displayName"),
            photo_url=data.get("photoURL"),
            email=data.get("email"),
        )
