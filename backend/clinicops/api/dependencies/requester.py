"""
Requester identity dependency.

Authentication happens upstream (gateway); the engine trusts the identity
headers it forwards.
"""

from typing import Optional

from fastapi import Header, HTTPException, status

from ...principal import Requester


def get_requester(
    x_tenant_id: Optional[str] = Header(None, alias="X-Tenant-Id"),
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    x_user_role: Optional[str] = Header(None, alias="X-User-Role"),
) -> Requester:
    tenant_id = (x_tenant_id or "").strip()
    user_id = (x_user_id or "").strip()
    role = (x_user_role or "").strip()
    missing = [
        name
        for name, value in (
            ("X-Tenant-Id", tenant_id),
            ("X-User-Id", user_id),
            ("X-User-Role", role),
        )
        if not value
    ]
    if missing:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "message": "Missing requester identity headers",
                "code": "UNAUTHENTICATED",
                "details": {"missing": missing},
            },
        )
    return Requester(tenant_id=tenant_id, user_id=user_id, raw_role=role)
