"""
Request bodies for the JSON endpoints.

Field names arrive in camelCase (``userId``, ``movieIds``); the models accept
either spelling. Range checks on counts live in the pipelines so the HTTP and
CLI paths report the same messages.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

_BODY_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EnrichRequest(BaseModel):
    model_config = _BODY_CONFIG

    count: Optional[int] = None


class QueryRequest(BaseModel):
    model_config = _BODY_CONFIG

    query: str = Field(min_length=1)
    user_id: Optional[int] = None


class CompareRequest(BaseModel):
    model_config = _BODY_CONFIG

    movie_ids: list[int] = Field(min_length=2)
    user_id: Optional[int] = None
