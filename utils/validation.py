# utils/validation.py
"""
Schemas for admin uploads and forms.

Each parse function returns an UploadResult: the rows that validated, as
typed models, plus one error dict per problem ({"index", "field",
"message"}) so the admin page can show exactly what to fix.
"""

from __future__ import annotations

import csv
import io
import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Literal, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from config import QUESTION_TYPES
from utils.eligibility import to_utc

MATCH_CSV_COLUMNS = ["team1", "team2", "venue", "date"]


class PlayerUpload(BaseModel):
    name: str = Field(..., min_length=1)
    role: Optional[str] = Field(None, description="Batsman | Bowler | All-rounder | Wicket-keeper")
    age: Optional[str] = None

    @field_validator("age", mode="before")
    @classmethod
    def age_as_text(cls, value):
        return None if value is None else str(value)


class TeamUpload(BaseModel):
    team: str = Field(..., min_length=1, description="Full team name")
    shortName: Optional[str] = None
    squad: List[PlayerUpload]

    def to_document(self) -> Dict[str, Any]:
        doc = {"name": self.team.strip(), "squad": [p.model_dump(exclude_none=True) for p in self.squad]}
        if self.shortName:
            doc["shortName"] = self.shortName.strip()
        return doc


class MatchUpload(BaseModel):
    team1: str = Field(..., min_length=1)
    team2: str = Field(..., min_length=1)
    venue: str = ""
    date: datetime
    status: Literal["upcoming", "live", "completed"] = "upcoming"
    isPredictionEnabledByAdmin: bool = False

    @field_validator("date")
    @classmethod
    def date_in_utc(cls, value: datetime) -> datetime:
        return to_utc(value)

    @model_validator(mode="after")
    def teams_differ(self):
        if self.team1.strip().lower() == self.team2.strip().lower():
            raise ValueError("team1 and team2 cannot be the same")
        return self


class QuestionForm(BaseModel):
    text: str = Field(..., min_length=3)
    type: str = "custom"
    points: int = Field(10, ge=1)
    negativePoints: int = Field(0, ge=0)
    options: List[str] = Field(default_factory=list)
    isActive: bool = True

    @field_validator("type")
    @classmethod
    def known_type(cls, value: str) -> str:
        if value not in QUESTION_TYPES:
            raise ValueError(f"type must be one of {', '.join(QUESTION_TYPES)}")
        return value

    @field_validator("options", mode="before")
    @classmethod
    def split_options(cls, value):
        if isinstance(value, str):
            return [o.strip() for o in value.split(",") if o.strip()]
        return value


@dataclass
class UploadResult:
    items: List[BaseModel] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def _errors_from(exc: ValidationError, index: Optional[int]) -> List[Dict[str, Any]]:
    return [
        {"index": index, "field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
        for err in exc.errors()
    ]


def validate_rows(model, rows: Iterable[Any]) -> UploadResult:
    result = UploadResult()
    for index, row in enumerate(rows):
        if not isinstance(row, dict):
            result.errors.append({"index": index, "field": "", "message": "Expected an object"})
            continue
        # Blank CSV cells mean "not given"
        cleaned = {k: v for k, v in row.items() if k and v not in ("", None)}
        try:
            result.items.append(model.model_validate(cleaned))
        except ValidationError as exc:
            result.errors.extend(_errors_from(exc, index))
    return result


def parse_team_upload(text: str) -> UploadResult:
    """Accepts one team object ({"team", "squad": [...]}) or a list of them."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        return UploadResult(errors=[{"index": None, "field": "", "message": f"Invalid JSON: {exc}"}])

    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list) or not data:
        return UploadResult(errors=[{"index": None, "field": "", "message": "Expected a team object or a non-empty list of teams"}])
    return validate_rows(TeamUpload, data)


def parse_match_rows(rows: List[Dict[str, Any]]) -> UploadResult:
    return validate_rows(MatchUpload, rows)


def parse_matches_csv(content: str) -> UploadResult:
    reader = csv.DictReader(io.StringIO(content))
    missing = [c for c in MATCH_CSV_COLUMNS if c not in (reader.fieldnames or [])]
    if missing:
        return UploadResult(errors=[{
            "index": None,
            "field": ", ".join(missing),
            "message": f"CSV missing columns: {missing}. Found columns: {reader.fieldnames}",
        }])
    return parse_match_rows(list(reader))
