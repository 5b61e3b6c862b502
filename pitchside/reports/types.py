"""
Type definitions for the player development report.

These types are the data contract between the analytics layer and the
PDF generator.
"""

from typing import Optional, List
from pydantic import BaseModel, Field


class ReportPlayer(BaseModel):
    id: str
    name: str
    position: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None


class ReportClub(BaseModel):
    id: str
    name: str
    logo_url: Optional[str] = None


class ReportTeam(BaseModel):
    id: str
    name: str


class AttendanceSummary(BaseModel):
    sessions_attended: int = 0
    total_sessions: int = 0
    attendance_percentage: float = 0.0


class ReportSession(BaseModel):
    session_id: str
    session_title: str
    session_date: str  # ISO format


class ReportIDP(BaseModel):
    """An IDP with the sessions that trained it"""
    idp_id: str
    attribute_key: str
    attribute_name: str
    priority: int
    started_at: str
    ended_at: Optional[str] = None
    training_sessions: int = 0
    last_trained_date: Optional[str] = None
    sessions: List[ReportSession] = Field(default_factory=list)


class TrainingBalanceEntry(BaseModel):
    category: str
    label: str
    events: int = 0
    total_weight: float = 0.0
    percentage: int = 0


class PlayerReportData(BaseModel):
    """Everything drawn in a player development report"""
    player: ReportPlayer
    club: ReportClub
    team: ReportTeam
    attendance: AttendanceSummary
    active_idps: List[ReportIDP] = Field(default_factory=list)
    historical_idps: List[ReportIDP] = Field(default_factory=list)
    training_balance: List[TrainingBalanceEntry] = Field(default_factory=list)
    generated_at: str
