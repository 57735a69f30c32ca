"""Current user and handle management."""

from __future__ import annotations

import re
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from tasteplans.api.dependencies import get_current_user, get_store
from tasteplans.supabase_client.supabase_service import SupabaseService


router = APIRouter(prefix="/api/user", tags=["user"])

HANDLE_RE = re.compile(r"^[A-Za-z0-9_.]{2,32}$")


class HandleUpdate(BaseModel):
    handle: Optional[str] = None


@router.get("/me")
def me(user: Dict[str, Any] = Depends(get_current_user)):
    return {k: user.get(k) for k in ("id", "handle", "name", "email", "image")}


@router.get("/check-handle")
def check_handle(user: Dict[str, Any] = Depends(get_current_user)):
    return {"hasHandle": bool(user.get("handle"))}


@router.post("/update-handle")
def update_handle(
    body: HandleUpdate,
    user: Dict[str, Any] = Depends(get_current_user),
    store: SupabaseService = Depends(get_store),
):
    handle = (body.handle or "").strip()
    if not handle:
        raise HTTPException(status_code=400, detail="Handle is required")
    if not HANDLE_RE.match(handle):
        raise HTTPException(status_code=400, detail="Handle may only use letters, digits, '_' and '.'")

    existing = store.get_user_by_handle(handle)
    if existing and existing["id"] != user["id"]:
        raise HTTPException(status_code=400, detail="Handle already taken")

    store.update_user_handle(user["id"], handle)
    return {"success": True}
