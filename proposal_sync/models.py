"""Shared data models for the proposal sync."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from proposal_sync import config


@dataclass(slots=True)
class Presentation:
    """One occasion a proposal was presented at a plenary meeting."""

    date: str
    url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"date": self.date}
        if self.url is not None:
            data["url"] = self.url
        return data

    @classmethod
    def from_mapping(cls, value: Mapping[str, Any]) -> "Presentation":
        return cls(date=str(value.get("date", "")), url=value.get("url"))


@dataclass(slots=True)
class ProposalRecord:
    """Normalised representation of a stage 3 proposal."""

    id: str
    title: str
    example: Optional[str] = None
    presented: List[Presentation] = field(default_factory=list)
    has_specification: bool = False
    description: Optional[str] = None
    authors: List[str] = field(default_factory=list)
    champions: List[str] = field(default_factory=list)
    tests: Optional[List[str]] = None
    # Fields written even when None, because the dataset stored them as null.
    null_fields: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        """Return the record in output key order, leaving out unset fields."""
        values = {
            "id": self.id,
            "authors": list(self.authors),
            "champions": list(self.champions),
            "description": self.description,
            "example": self.example,
            "has_specification": self.has_specification,
            "presented": [item.to_dict() for item in self.presented],
            "title": self.title,
            "tests": list(self.tests) if self.tests is not None else None,
        }
        return {
            key: values[key]
            for key in config.RECORD_KEY_ORDER
            if values[key] is not None or key in self.null_fields
        }


@dataclass(slots=True)
class StageTableRow:
    """Raw cells of one row of the upstream stage table."""

    proposal: str
    author: str
    champion: str
    last_presented: str
    tests: Optional[str] = None

    @classmethod
    def from_mapping(cls, row: Mapping[str, str]) -> "StageTableRow":
        return cls(
            proposal=row.get("proposal", ""),
            author=row.get("author", ""),
            champion=row.get("champion", ""),
            last_presented=row.get("last_presented", ""),
            tests=row.get("tests"),
        )


@dataclass(slots=True)
class RepoMetadata:
    """Subset of the GitHub repository metadata used by the resolvers."""

    description: Optional[str]
    files: List[str] = field(default_factory=list)
