from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, model_validator

# column widths of the vote log and config tables
MAX_SHOW_SLUG = 200
MAX_GROUP_NAME = 50


class VotingConfig(BaseModel):
    """Round state for one show.

    `groups` partitions `pool`; group order is the running order of the show.
    `timer_duration` is in seconds, 0 meaning no countdown.
    """

    groups: Dict[str, List[int]] = Field(default_factory=dict)
    pool: List[int] = Field(default_factory=list)
    active_group: Optional[str] = None
    timer_start: Optional[datetime] = None
    timer_duration: int = Field(default=0, ge=0)
    num_groups: int = Field(default=3, ge=1)
    top_per_group: int = Field(default=2, ge=0)
    weight_first: float = Field(default=3, ge=0)
    weight_second: float = Field(default=2, ge=0)
    weight_third: float = Field(default=1, ge=0)
    hide_bios: bool = False
    reveal_results: bool = False

    @model_validator(mode="after")
    def _check_invariants(self) -> "VotingConfig":
        for name in self.groups:
            if not 1 <= len(name) <= MAX_GROUP_NAME:
                raise ValueError(f"group name must be 1-{MAX_GROUP_NAME} characters: {name[:MAX_GROUP_NAME]!r}")
        if self.active_group is not None and self.active_group not in self.groups:
            raise ValueError(f"active_group {self.active_group!r} is not a configured group")
        if (self.active_group is None) != (self.timer_start is None):
            raise ValueError("timer_start must be set exactly when a group is active")
        owner: Dict[int, str] = {}
        for name, performer_ids in self.groups.items():
            for pid in performer_ids:
                if pid in owner:
                    raise ValueError(f"performer {pid} is in both {owner[pid]!r} and {name!r}")
                owner[pid] = name
        if len(set(self.pool)) != len(self.pool) or set(owner) != set(self.pool):
            raise ValueError("groups must partition the performer pool")
        return self

    def evolve(self, **changes: Any) -> "VotingConfig":
        """Copy with changes applied, re-running validation (model_copy does not)."""
        data = self.model_dump()
        data.update(changes)
        return VotingConfig.model_validate(data)

    @property
    def is_active(self) -> bool:
        return self.active_group is not None

    @property
    def expires_at(self) -> Optional[datetime]:
        if self.timer_start is None or self.timer_duration <= 0:
            return None
        return self.timer_start + timedelta(seconds=self.timer_duration)

    def weight_for(self, rank: int) -> float:
        return {1: self.weight_first, 2: self.weight_second, 3: self.weight_third}.get(rank, 0.0)

    def group_of(self, performer_id: int) -> Optional[str]:
        for name, performer_ids in self.groups.items():
            if performer_id in performer_ids:
                return name
        return None


@dataclass(frozen=True)
class VersionedConfig:
    config: VotingConfig
    version: int


@dataclass(frozen=True)
class VoteLogEntry:
    show_slug: str
    group_name: str
    performer_id: int
    performer_name: str
    vote_rank: int
    ip_hash: str
    token: str
    voted_at: datetime
    origin_hash: str = ""


@dataclass(frozen=True)
class VoterIdentity:
    """`identity_hash` dedups ballots; `origin_hash` is network-only and feeds the fraud monitor."""
    identity_hash: str
    origin_hash: str
    ballot_token_id: Optional[str] = None


@dataclass(frozen=True)
class VoteResult:
    """Aggregate of one performer's rows in one group."""
    performer_id: int
    performer_name: str
    group_name: str
    first: int
    second: int
    third: int
    total_votes: int
    weighted_score: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "performer_id": self.performer_id,
            "performer_name": self.performer_name,
            "group_name": self.group_name,
            "first": self.first,
            "second": self.second,
            "third": self.third,
            "total_votes": self.total_votes,
            "weighted_score": self.weighted_score,
        }


@dataclass(frozen=True)
class FinalStanding:
    performer_id: int
    performer_name: str
    group_name: str
    raw_score: float
    normalized_score: float
    first: int
    second: int
    total_votes: int
    final_rank: int


class RejectReason(str, Enum):
    INVALID_BALLOT = "invalid_ballot"
    NO_ACTIVE_VOTING = "no_active_voting"
    INVALID_PERFORMER = "invalid_performer"
    DUPLICATE_SELECTION = "duplicate_selection"
    ALREADY_VOTED = "already_voted"


@dataclass(frozen=True)
class Accepted:
    group_name: str
    token: str
    ranks: List[int]
    accepted: bool = True


@dataclass(frozen=True)
class Rejected:
    reason: RejectReason
    accepted: bool = False


BallotOutcome = Union[Accepted, Rejected]


@dataclass(frozen=True)
class Withheld:
    """Results exist but are not yet revealed to this caller."""
    reason: str = "results_not_revealed"


@dataclass(frozen=True)
class PerformerInfo:
    id: int
    name: str
    bio: Optional[str] = None
    photo_url: Optional[str] = None


@dataclass(frozen=True)
class FraudReport:
    is_suspicious: bool
    score: int
    indicators: List[str] = field(default_factory=list)


@dataclass
class VotingStatus:
    show_slug: str
    active_group: Optional[str]
    is_open: bool
    is_expired: bool
    time_remaining: Optional[int]
    timer_duration: int
    hide_bios: bool
    reveal_results: bool
    performers: List[PerformerInfo] = field(default_factory=list)
