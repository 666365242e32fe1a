"""Shared endpoint dependencies."""

from dataclasses import dataclass

from fastapi import Header, HTTPException, Request

from chaos_story.engine import ChaosGameEngine


@dataclass
class ActingUser:
    user_id: str
    display_name: str | None


def get_engine(request: Request) -> ChaosGameEngine:
    return request.app.state.engine


def acting_user(
    x_user_id: str = Header(default=""),
    x_user_name: str = Header(default=""),
) -> ActingUser:
    """The caller, as named by the X-User-Id / X-User-Name headers."""
    if not x_user_id:
        raise HTTPException(401, "Must be logged in")
    return ActingUser(user_id=x_user_id, display_name=x_user_name or None)
