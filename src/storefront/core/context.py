"""
Request context passed to every resolver.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Optional

from ..auth.identity import IdentityContext


USER_ID_HEADER = "x-user-id"


@dataclass
class RequestContext:
    """
    Per-request data available to reference, field and operation resolvers.

    Contains:
    - identity: verified bearer token identity, None when unauthenticated
    - headers: incoming request headers (lower-cased names)
    """
    identity: Optional[IdentityContext] = None
    headers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_headers(
        cls,
        headers: Mapping[str, str],
        identity: Optional[IdentityContext] = None,
    ) -> "RequestContext":
        return cls(identity=identity, headers={k.lower(): v for k, v in headers.items()})

    @property
    def is_authenticated(self) -> bool:
        return self.identity is not None

    @property
    def user_id(self) -> Optional[str]:
        """
        Acting user id: the token subject, else the demo ``x-user-id`` header.

        The header fallback is not authentication; it only identifies whose
        cart or session a demo flow operates on.
        """
        if self.identity is not None:
            return self.identity.subject
        return self.headers.get(USER_ID_HEADER) or None

    def has_scope(self, scope: str) -> bool:
        return self.identity is not None and self.identity.has_scope(scope)
