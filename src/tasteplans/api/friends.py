"""Friendships and friend requests."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from tasteplans.api.dependencies import get_current_user, get_store
from tasteplans.supabase_client.supabase_service import SupabaseService


LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/api/friends", tags=["friends"])


class FriendRequestCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    receiver_handle: str = Field(..., alias="receiverHandle")


class FriendRequestAction(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    request_id: str = Field(..., alias="requestId")


class FriendRemove(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    friend_id: str = Field(..., alias="friendId")


def _public_user(user: Dict[str, Any]) -> Dict[str, Any]:
    return {k: user.get(k) for k in ("id", "handle", "name", "image")}


def _users_by_id(store: SupabaseService, user_ids: List[str]) -> Dict[str, Dict[str, Any]]:
    unique_ids = list(dict.fromkeys(uid for uid in user_ids if uid))
    return {u["id"]: _public_user(u) for u in store.get_users_by_ids(unique_ids)}


@router.get("")
def list_friends(
    user: Dict[str, Any] = Depends(get_current_user),
    store: SupabaseService = Depends(get_store),
):
    """Friends plus incoming and outgoing pending requests, newest first."""
    try:
        friendships = store.get_friendships(user["id"])
        pending = store.get_friend_requests(receiver_id=user["id"])
        sent = store.get_friend_requests(sender_id=user["id"])
        people = _users_by_id(
            store,
            [f["friend_id"] for f in friendships]
            + [r["sender_id"] for r in pending]
            + [r["receiver_id"] for r in sent],
        )
    except Exception:
        LOGGER.exception("Get friends error")
        raise HTTPException(status_code=500, detail="Failed to get friends")

    return {
        "friends": [
            {"friendshipId": f["id"], "user": people.get(f["friend_id"]), "since": f.get("created_at")}
            for f in friendships
        ],
        "pendingRequests": [
            {"id": r["id"], "sender": people.get(r["sender_id"]), "createdAt": r.get("created_at")}
            for r in pending
        ],
        "sentRequests": [
            {"id": r["id"], "receiver": people.get(r["receiver_id"]), "createdAt": r.get("created_at")}
            for r in sent
        ],
    }


@router.post("/request")
def send_request(
    body: FriendRequestCreate,
    user: Dict[str, Any] = Depends(get_current_user),
    store: SupabaseService = Depends(get_store),
):
    receiver = store.get_user_by_handle(body.receiver_handle)
    if not receiver:
        raise HTTPException(status_code=404, detail="User not found")
    if receiver["id"] == user["id"]:
        raise HTTPException(status_code=400, detail="Cannot send friend request to yourself")
    if store.find_friendship(user["id"], receiver["id"]):
        raise HTTPException(status_code=400, detail="Already friends")
    if store.find_friend_request(user["id"], receiver["id"]):
        raise HTTPException(status_code=400, detail="Friend request already exists")

    created = store.create_friend_request(user["id"], receiver["id"])
    friend_request = {**(created or {}), "receiver": _public_user(receiver)}
    return {"success": True, "friendRequest": friend_request}


def _own_incoming_request(store: SupabaseService, request_id: str, user: Dict[str, Any]) -> Dict[str, Any]:
    friend_request = store.get_friend_request(request_id)
    if not friend_request:
        raise HTTPException(status_code=404, detail="Friend request not found")
    if friend_request["receiver_id"] != user["id"]:
        raise HTTPException(status_code=403, detail="Not authorized")
    return friend_request


@router.post("/accept")
def accept_request(
    body: FriendRequestAction,
    user: Dict[str, Any] = Depends(get_current_user),
    store: SupabaseService = Depends(get_store),
):
    friend_request = _own_incoming_request(store, body.request_id, user)
    try:
        store.create_friendship(friend_request["sender_id"], friend_request["receiver_id"])
        store.delete_friend_request(body.request_id)
    except Exception:
        LOGGER.exception("Accept friend request error")
        raise HTTPException(status_code=500, detail="Failed to accept friend request")
    return {"success": True}


@router.post("/reject")
def reject_request(
    body: FriendRequestAction,
    user: Dict[str, Any] = Depends(get_current_user),
    store: SupabaseService = Depends(get_store),
):
    _own_incoming_request(store, body.request_id, user)
    store.delete_friend_request(body.request_id)
    return {"success": True}


@router.delete("/remove")
def remove_friend(
    body: FriendRemove,
    user: Dict[str, Any] = Depends(get_current_user),
    store: SupabaseService = Depends(get_store),
):
    """Delete both sides of a friendship."""
    store.delete_friendship(user["id"], body.friend_id)
    return {"success": True}
