from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class PermissionRule:
    """States in which a permission applies, per state axis.

    Attributes:
        metadata: Allowed image (metadata) states; None stands for "no state yet".
        language: Allowed translation (language) states; same convention.
    """

    metadata: List[Optional[str]] = field(default_factory=list)
    language: List[Optional[str]] = field(default_factory=list)

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "PermissionRule":
        return cls(
            metadata=list(data.get("metadata") or []),
            language=list(data.get("language") or []),
        )


@dataclass(frozen=True)
class UserContext:
    """Signed-in user as handed over by the authentication service.

    Read-only for the lifetime of a review session.
    """

    access_token: str
    username: str
    roles: List[str] = field(default_factory=list)
    permissions: List[str] = field(default_factory=list)
    languages_allowed: List[str] = field(default_factory=list)
    permission_rules: Dict[str, PermissionRule] = field(default_factory=dict)
    token_type: str = "bearer"

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "UserContext":
        rules = data.get("permission_rules") or {}
        return cls(
            access_token=data.get("access_token") or "",
            username=data.get("username") or "",
            roles=list(data.get("roles") or []),
            permissions=list(data.get("permissions") or []),
            languages_allowed=list(data.get("languages_allowed") or []),
            permission_rules={name: PermissionRule.from_payload(rule or {}) for name, rule in rules.items()},
            token_type=data.get("token_type") or "bearer",
        )
