from datetime import datetime
from pydantic import BaseModel, Field
from typing import Dict, List, Optional


class PerformerCardOut(BaseModel):
    id: int
    name: str
    bio: Optional[str] = None
    photo_url: Optional[str] = None


class VotingStatusOut(BaseModel):
    show_slug: str
    active_group: Optional[str] = None
    is_open: bool = False
    is_expired: bool = False
    time_remaining: Optional[int] = None
    timer_duration: int = 0
    hide_bios: bool = False
    reveal_results: bool = False
    performers: List[PerformerCardOut] = Field(default_factory=list)
    ballot_token: Optional[str] = None


class DeviceIn(BaseModel):
    screen: Optional[str] = Field(default=None, max_length=32)
    timezone: Optional[str] = Field(default=None, max_length=64)
    language: Optional[str] = Field(default=None, max_length=35)
    platform: Optional[str] = Field(default=None, max_length=64)


class BallotIn(BaseModel):
    performer_ids: List[int] = Field(default_factory=list)
    token: Optional[str] = None
    device: Optional[DeviceIn] = None


class BallotOut(BaseModel):
    accepted: bool = True
    group_name: str
    ranks: List[int]


class VoteResultOut(BaseModel):
    performer_id: int
    performer_name: str
    group_name: str
    first: int = 0
    second: int = 0
    third: int = 0
    total_votes: int = 0
    weighted_score: float = 0


class ResultsOut(BaseModel):
    withheld: bool = False
    revealed: bool = False
    results: List[VoteResultOut] = Field(default_factory=list)


class VotingConfigOut(BaseModel):
    version: int
    groups: Dict[str, List[int]] = Field(default_factory=dict)
    pool: List[int] = Field(default_factory=list)
    active_group: Optional[str] = None
    timer_start: Optional[datetime] = None
    timer_duration: int = 0
    num_groups: int = 3
    top_per_group: int = 2
    weight_first: float = 3
    weight_second: float = 2
    weight_third: float = 1
    hide_bios: bool = False
    reveal_results: bool = False


class LayoutIn(BaseModel):
    groups: Dict[str, List[int]]
    pool: Optional[List[int]] = None
    timer_duration: Optional[int] = Field(default=None, ge=0)
    num_groups: Optional[int] = Field(default=None, ge=1)
    top_per_group: Optional[int] = Field(default=None, ge=0)
    hide_bios: Optional[bool] = None
    expected_version: Optional[int] = None


class AssignGroupsIn(BaseModel):
    pool: List[int]
    num_groups: int = Field(default=3, ge=1, le=26)
    expected_version: Optional[int] = None


class WeightsIn(BaseModel):
    first: Optional[float] = Field(default=None, ge=0)
    second: Optional[float] = Field(default=None, ge=0)
    third: Optional[float] = Field(default=None, ge=0)
    expected_version: Optional[int] = None


class FinalStandingOut(BaseModel):
    performer_id: int
    performer_name: str
    group_name: str
    raw_score: float
    normalized_score: float
    first: int
    second: int
    total_votes: int
    final_rank: int


class VoteLogOut(BaseModel):
    group_name: str
    performer_id: int
    performer_name: str
    vote_rank: int
    ip_hash: str
    token: str
    voted_at: datetime
