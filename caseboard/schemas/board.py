"""Pydantic schemas for boards and columns."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from caseboard.schemas.case import CaseRead


class BoardCreate(BaseModel):
    """Request schema for creating a board."""

    name: str = Field(..., min_length=1, max_length=100)
    color: str | None = Field(None, pattern=r"^#[0-9a-fA-F]{6}$")
    # Column names in display order; defaults apply when omitted or empty
    columns: list[str] | None = None


class ColumnRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    board_id: UUID
    name: str
    position: int
    color: str | None
    is_final: bool


class BoardRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    slug: str
    color: str
    created_at: datetime


class ColumnWithCases(ColumnRead):
    cases: list[CaseRead] = []


class BoardDetail(BoardRead):
    """Board with its columns and the active cases in each column."""

    columns: list[ColumnWithCases] = []


class BoardUpdate(BaseModel):
    """Partial board update. The slug is kept so existing links still resolve."""

    name: str | None = Field(None, min_length=1, max_length=100)
    color: str | None = Field(None, pattern=r"^#[0-9a-fA-F]{6}$")


class ColumnCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    # Appended after the last column when omitted
    position: int | None = Field(None, ge=0)
    color: str | None = Field(None, pattern=r"^#[0-9a-fA-F]{6}$")
    is_final: bool = False


class ColumnUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    position: int | None = Field(None, ge=0)
    color: str | None = Field(None, pattern=r"^#[0-9a-fA-F]{6}$")
    is_final: bool | None = None
