"""Pydantic request models for API endpoints."""

from pydantic import BaseModel


class CreateGame(BaseModel):
    title: str
    premise: str
    chaos_level: int


class MakeChoice(BaseModel):
    choice_id: str


class CastVote(BaseModel):
    history_index: int
    vote_type: str
