"""Per-request caller identity.

The entry layer builds one ``Actor`` per request and passes it explicitly to
every service call; there is no ambient session.
"""

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class ShareCredential:
    """Share-link slug and password presented through HTTP Basic auth."""

    slug: str
    password: str | None = None


@dataclass(frozen=True)
class Actor:
    """The caller of a service operation.

    Attributes:
        user_id: Internal id of the authenticated user, None when anonymous.
        user_external_id: External id of the authenticated user, if any.
        share: Share-link credential presented with the request, if any.
    """

    user_id: int | None = None
    user_external_id: UUID | None = None
    share: ShareCredential | None = None

    @property
    def is_anonymous(self) -> bool:
        return self.user_id is None

    @classmethod
    def anonymous(cls, share: ShareCredential | None = None) -> "Actor":
        return cls(user_id=None, share=share)
