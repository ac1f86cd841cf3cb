"""
api/routes/v1/admin.py -- Account administration (admin role only).

Routes:
  GET    /api/v1/admin/users                -- list accounts (?role=&page=&limit=)
  PATCH  /api/v1/admin/users/{id}/role      -- change role
  PATCH  /api/v1/admin/users/{id}/disable   -- deactivate
  PATCH  /api/v1/admin/users/{id}/enable    -- reactivate
  DELETE /api/v1/admin/users/{id}           -- delete account and its news

Every rule lives in AccountService; handlers only translate HTTP to calls.
Guards enforced there:
  - No self-demotion, self-disable or self-delete.
  - The last admin can be neither demoted, disabled nor deleted. The check
    and the write are a single guarded statement, so two concurrent requests
    cannot both remove "the other" admin.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from api.models import (
    AccountListResponse,
    ActiveData,
    ActiveStateResponse,
    DeleteAccountResponse,
    MAX_PAGE_LIMIT,
    RoleChangeResponse,
    RoleData,
    RoleUpdate,
)
from auth.accounts import AccountService
from auth.dependencies import require_admin
from auth.models import Account, Identity

# Auth policy: every route requires admin (require_admin).
router = APIRouter(prefix="/admin/users")


@router.get("", response_model=AccountListResponse)
def list_users(
    request: Request,
    role: Optional[str] = Query(default=None),
    page: Optional[int] = Query(default=None, ge=1),
    limit: Optional[int] = Query(default=None, ge=1, le=MAX_PAGE_LIMIT),
    identity: Identity = Depends(require_admin),
) -> AccountListResponse:
    """List accounts newest first. The pagination block appears only when page or limit is given."""
    service: AccountService = request.app.state.accounts
    return AccountListResponse.from_page(service.list_accounts(role=role, page=page, limit=limit))


@router.patch("/{user_id}/role", response_model=RoleChangeResponse)
def update_role(
    request: Request,
    user_id: str,
    body: RoleUpdate,
    identity: Identity = Depends(require_admin),
) -> RoleChangeResponse:
    service: AccountService = request.app.state.accounts
    account = service.change_role(identity.subject_id, user_id, body.role)
    return RoleChangeResponse(
        message="User role updated successfully",
        data=RoleData(id=account.id, email=account.email, role=account.role),
    )


@router.patch("/{user_id}/disable", response_model=ActiveStateResponse)
def disable_user(
    request: Request,
    user_id: str,
    identity: Identity = Depends(require_admin),
) -> ActiveStateResponse:
    """Deactivate an account. Its live access token keeps working until expiry; refresh is refused."""
    service: AccountService = request.app.state.accounts
    return _active_state("User disabled successfully", service.disable(identity.subject_id, user_id))


@router.patch("/{user_id}/enable", response_model=ActiveStateResponse)
def enable_user(
    request: Request,
    user_id: str,
    identity: Identity = Depends(require_admin),
) -> ActiveStateResponse:
    service: AccountService = request.app.state.accounts
    return _active_state("User enabled successfully", service.enable(user_id))


@router.delete("/{user_id}", response_model=DeleteAccountResponse)
def delete_user(
    request: Request,
    user_id: str,
    identity: Identity = Depends(require_admin),
) -> DeleteAccountResponse:
    """Delete an account and every news item it authored.

    Image removal is best-effort: a blob backend failure is logged and the
    delete still succeeds.
    """
    service: AccountService = request.app.state.accounts
    return DeleteAccountResponse.from_summary(service.delete(identity.subject_id, user_id))


def _active_state(message: str, account: Account) -> ActiveStateResponse:
    return ActiveStateResponse(
        message=message,
        data=ActiveData(id=account.id, email=account.email, is_active=account.is_active),
    )
