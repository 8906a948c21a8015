from datetime import datetime
from typing import List
from uuid import UUID
from pydantic import BaseModel, Field


class AuthorCreate(BaseModel):
    name: str = Field(min_length=1, max_length=512)


class AuthorUpdate(BaseModel):
    name: str = Field(min_length=1, max_length=512)


class AuthorResponse(BaseModel):
    id: str
    name: str

    model_config = {"from_attributes": True}


class BookCreate(BaseModel):
    name: str = Field(min_length=1, max_length=512)
    author_ids: List[UUID] = Field(default_factory=list)


class BookUpdate(BaseModel):
    name: str = Field(min_length=1, max_length=512)
    author_ids: List[UUID] = Field(default_factory=list)


class BookResponse(BaseModel):
    id: str
    name: str
    author_ids: List[str]
    created_at: datetime
    updated_at: datetime
