from datetime import datetime
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field, validator
from enum import Enum

from .utils import new_id, now_iso, normalize_datetime


class ClubRole(str, Enum):
    HEAD_COACH = "head_coach"
    ADMIN = "admin"
    COACH = "coach"


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"


class BlockSource(str, Enum):
    USER = "user"
    SYSTEM = "system"
    MARKETPLACE = "marketplace"


class OrderType(str, Enum):
    FIRST = "first"
    SECOND = "second"


class AttributeSource(str, Enum):
    COACH = "coach"
    LLM = "llm"
    SYSTEM = "system"


class BlockType(str, Enum):
    IN_POSSESSION = "in_possession"
    OUT_OF_POSSESSION = "out_of_possession"


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


def _require_text(v, label):
    if v is None or not str(v).strip():
        raise ValueError(f'{label} cannot be empty')
    return str(v).strip()


class Coach(BaseModel):
    """Coach account; signs in by email one-time code"""
    id: str = Field(default_factory=new_id)
    email: str
    name: Optional[str] = None
    position: Optional[str] = None
    profile_picture: Optional[str] = None
    onboarding_completed: bool = False
    is_active: bool = True
    created_at: str = Field(default_factory=now_iso)

    @validator('email')
    def validate_email(cls, v):
        return _require_text(v, 'Email').lower()


class Club(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str
    logo_url: Optional[str] = None
    created_at: str = Field(default_factory=now_iso)

    @validator('name')
    def validate_name(cls, v):
        return _require_text(v, 'Club name')


class ClubMembership(BaseModel):
    id: str = Field(default_factory=new_id)
    club_id: str
    coach_id: str
    role: ClubRole = ClubRole.COACH
    joined_at: str = Field(default_factory=now_iso)


class ClubInvite(BaseModel):
    id: str = Field(default_factory=new_id)
    club_id: str
    created_by: str
    email: str
    token: str
    created_at: str = Field(default_factory=now_iso)
    expires_at: Optional[str] = None
    used_at: Optional[str] = None

    @validator('email')
    def validate_email(cls, v):
        return _require_text(v, 'Email').lower()


class Team(BaseModel):
    id: str = Field(default_factory=new_id)
    club_id: str
    created_by_coach_id: Optional[str] = None
    name: str
    age_group: Optional[str] = None  # e.g. "U12"
    gender: Optional[str] = None
    skill_level: Optional[str] = None  # beginner / intermediate / advanced
    player_count: int = 0
    session_duration: int = 60  # minutes
    sessions_per_week: int = 1
    created_at: str = Field(default_factory=now_iso)

    @validator('name')
    def validate_name(cls, v):
        return _require_text(v, 'Team name')

    @validator('player_count', 'session_duration', 'sessions_per_week')
    def validate_non_negative(cls, v):
        if v < 0:
            raise ValueError('Value must be non-negative')
        return v


class TeamCoach(BaseModel):
    id: str = Field(default_factory=new_id)
    team_id: str
    coach_id: str
    assigned_at: str = Field(default_factory=now_iso)


class Player(BaseModel):
    id: str = Field(default_factory=new_id)
    club_id: str
    team_id: Optional[str] = None
    name: str
    age: Optional[int] = None
    gender: Optional[str] = None
    position: Optional[str] = None
    created_at: str = Field(default_factory=now_iso)

    @validator('name')
    def validate_name(cls, v):
        return _require_text(v, 'Player name')

    @validator('age')
    def validate_age(cls, v):
        if v is not None and v < 0:
            raise ValueError('Age must be non-negative')
        return v


class PlayerIDP(BaseModel):
    """Individual Development Plan entry: one targeted attribute for a player"""
    id: str = Field(default_factory=new_id)
    player_id: str
    attribute_key: str
    priority: int = 1  # 1 = primary, 2 = secondary, 3 = tertiary
    notes: Optional[str] = None
    started_at: str = Field(default_factory=now_iso)
    ended_at: Optional[str] = None

    @validator('attribute_key')
    def validate_attribute_key(cls, v):
        return _require_text(v, 'Attribute key')

    @validator('priority')
    def validate_priority(cls, v):
        if v not in (1, 2, 3):
            raise ValueError('Priority must be 1, 2 or 3')
        return v

    @property
    def is_active(self) -> bool:
        return self.ended_at is None


class GameModelBlock(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str = ""
    details: Optional[str] = None


class GameModelZone(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str
    in_possession: List[GameModelBlock] = Field(default_factory=list)
    out_of_possession: List[GameModelBlock] = Field(default_factory=list)


class GameModelZones(BaseModel):
    """Club or team game model: pitch zones with in/out of possession principles"""
    zones: List[GameModelZone] = Field(default_factory=list)


class SessionThemeSnapshot(BaseModel):
    zone_id: Optional[str] = None
    zone_name: str
    block_id: Optional[str] = None
    block_name: str
    block_type: BlockType


class SyllabusDay(BaseModel):
    day_of_week: int  # 0 = Monday ... 6 = Sunday
    theme: Optional[SessionThemeSnapshot] = None

    @validator('day_of_week')
    def validate_day(cls, v):
        if v < 0 or v > 6:
            raise ValueError('Day of week must be between 0 (Monday) and 6 (Sunday)')
        return v


class SyllabusWeek(BaseModel):
    week_index: int
    days: List[SyllabusDay] = Field(default_factory=list)


class TrainingSyllabus(BaseModel):
    weeks: List[SyllabusWeek] = Field(default_factory=list)


class SyllabusSlot(BaseModel):
    week_index: int
    day_of_week: int
    theme: SessionThemeSnapshot


class Session(BaseModel):
    """A planned training session for a team"""
    id: str = Field(default_factory=new_id)
    club_id: str
    team_id: str
    coach_id: str
    title: str
    content: Optional[str] = None
    session_date: str  # ISO datetime
    duration: int = 60
    age_group: Optional[str] = None
    skill_level: Optional[str] = None
    player_count: Optional[int] = None
    notes: Optional[str] = None
    syllabus_week_index: Optional[int] = None
    syllabus_day_of_week: Optional[int] = None
    theme_block_id: Optional[str] = None
    theme_snapshot: Optional[SessionThemeSnapshot] = None
    created_at: str = Field(default_factory=now_iso)
    updated_at: str = Field(default_factory=now_iso)

    @validator('title')
    def validate_title(cls, v):
        return _require_text(v, 'Title')

    @validator('session_date')
    def validate_session_date(cls, v):
        return normalize_datetime(v)

    @validator('duration')
    def validate_duration(cls, v):
        if v <= 0:
            raise ValueError('Duration must be positive')
        return v

    @property
    def session_datetime(self) -> datetime:
        return datetime.fromisoformat(self.session_date)


class SessionAttendance(BaseModel):
    id: str = Field(default_factory=new_id)
    session_id: str
    player_id: str
    status: AttendanceStatus = AttendanceStatus.PRESENT
    notes: Optional[str] = None
    updated_at: str = Field(default_factory=now_iso)


class SessionFeedback(BaseModel):
    id: str = Field(default_factory=new_id)
    session_id: str
    coach_id: str
    team_feedback: Optional[str] = None
    audio_url: Optional[str] = None
    transcript: Optional[str] = None
    overall_rating: Optional[int] = None
    processed_at: Optional[str] = None
    created_at: str = Field(default_factory=now_iso)
    updated_at: str = Field(default_factory=now_iso)

    @validator('overall_rating')
    def validate_rating(cls, v):
        if v is not None and (v < 1 or v > 5):
            raise ValueError('Rating must be between 1 and 5')
        return v


class PlayerFeedbackNote(BaseModel):
    id: str = Field(default_factory=new_id)
    session_feedback_id: str
    player_id: str
    note: str
    attribute_key: Optional[str] = None
    sentiment: Optional[Sentiment] = None
    created_at: str = Field(default_factory=now_iso)

    @validator('note')
    def validate_note(cls, v):
        return _require_text(v, 'Note')


class SessionBlock(BaseModel):
    """Reusable training drill"""
    id: str = Field(default_factory=new_id)
    title: str
    description: Optional[str] = None
    coaching_points: Optional[str] = None
    image_url: Optional[str] = None
    diagram_data: Optional[Dict[str, Any]] = None
    duration: int = 15
    ball_rolling: Optional[int] = None  # minutes of active play
    creator_id: Optional[str] = None
    club_id: Optional[str] = None
    is_public: bool = False
    source: BlockSource = BlockSource.USER
    created_at: str = Field(default_factory=now_iso)
    updated_at: str = Field(default_factory=now_iso)

    @validator('title')
    def validate_title(cls, v):
        return _require_text(v, 'Title')

    @validator('duration')
    def validate_duration(cls, v):
        if v < 0:
            raise ValueError('Duration must be non-negative')
        return v


class SessionBlockAssignment(BaseModel):
    id: str = Field(default_factory=new_id)
    session_id: str
    block_id: str
    position: int = 0
    slot_index: int = 0  # 0 = primary, 1 = simultaneous practice

    @validator('slot_index')
    def validate_slot(cls, v):
        if v not in (0, 1):
            raise ValueError('Slot index must be 0 or 1')
        return v


class SessionBlockAttribute(BaseModel):
    id: str = Field(default_factory=new_id)
    block_id: str
    attribute_key: str
    relevance: float = 1.0
    order_type: OrderType = OrderType.FIRST
    source: AttributeSource = AttributeSource.COACH

    @validator('relevance')
    def validate_relevance(cls, v):
        if v < 0 or v > 1:
            raise ValueError('Relevance must be between 0 and 1')
        return v


class BlockPlayerExclusion(BaseModel):
    id: str = Field(default_factory=new_id)
    assignment_id: str
    player_id: str


class PlayerTrainingEvent(BaseModel):
    id: str = Field(default_factory=new_id)
    player_id: str
    session_id: str
    attribute_key: str
    weight: float = 1.0
    created_at: str = Field(default_factory=now_iso)


class CoachingRule(BaseModel):
    id: str = Field(default_factory=new_id)
    coach_id: str
    team_id: Optional[str] = None  # None = applies to every team
    content: str
    is_active: bool = True
    created_at: str = Field(default_factory=now_iso)

    @validator('content')
    def validate_content(cls, v):
        return _require_text(v, 'Rule')


class EquipmentItem(BaseModel):
    type: str
    quantity: int = 1


class TeamFacility(BaseModel):
    id: str = Field(default_factory=new_id)
    team_id: str
    space_type: Optional[str] = None
    custom_space: Optional[str] = None
    equipment: List[EquipmentItem] = Field(default_factory=list)
    other_factors: Optional[str] = None


class PlayingMethodology(BaseModel):
    id: str = Field(default_factory=new_id)
    club_id: str
    team_id: Optional[str] = None
    created_by_coach_id: Optional[str] = None
    title: str
    description: Optional[str] = None
    zones: Optional[GameModelZones] = None
    display_order: int = 0
    is_active: bool = True
    created_at: str = Field(default_factory=now_iso)
    updated_at: str = Field(default_factory=now_iso)

    @validator('title')
    def validate_title(cls, v):
        return _require_text(v, 'Title')


class TrainingMethodology(BaseModel):
    id: str = Field(default_factory=new_id)
    club_id: str
    team_id: Optional[str] = None
    created_by_coach_id: Optional[str] = None
    title: str
    description: Optional[str] = None
    syllabus: Optional[TrainingSyllabus] = None
    display_order: int = 0
    is_active: bool = True
    created_at: str = Field(default_factory=now_iso)
    updated_at: str = Field(default_factory=now_iso)

    @validator('title')
    def validate_title(cls, v):
        return _require_text(v, 'Title')


class PositionalProfile(BaseModel):
    id: str = Field(default_factory=new_id)
    club_id: str
    team_id: Optional[str] = None
    position_key: str
    custom_position_name: Optional[str] = None
    attributes: List[str] = Field(default_factory=list)
    is_active: bool = True
    display_order: int = 0
    created_at: str = Field(default_factory=now_iso)
    updated_at: str = Field(default_factory=now_iso)


class SystemDefault(BaseModel):
    id: str = Field(default_factory=new_id)
    category: str
    key: str
    value: Dict[str, Any] = Field(default_factory=dict)
    display_order: int = 0
    is_active: bool = True

    @property
    def name(self) -> str:
        return self.value.get('name') or self.key


class TrainingRuleToggle(BaseModel):
    id: str = Field(default_factory=new_id)
    team_id: str
    training_rule_id: str
    is_enabled: bool = True
    updated_at: str = Field(default_factory=now_iso)
