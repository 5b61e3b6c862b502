import json
import secrets
from pathlib import Path
from typing import Optional, Dict, Any, List, Callable, Iterable
from datetime import datetime
from werkzeug.security import generate_password_hash, check_password_hash

from .models import (
    Coach, Club, ClubMembership, ClubRole, ClubInvite, Team, TeamCoach, Player, PlayerIDP,
    Session, SessionAttendance, AttendanceStatus, SessionFeedback, PlayerFeedbackNote,
    SessionBlock, SessionBlockAssignment, SessionBlockAttribute, OrderType, BlockPlayerExclusion,
    PlayerTrainingEvent, CoachingRule, TeamFacility, EquipmentItem, PlayingMethodology,
    TrainingMethodology, PositionalProfile, SystemDefault, TrainingRuleToggle, GameModelZones,
    TrainingSyllabus,
)
from .defaults import build_system_defaults, ATTRIBUTE_CATEGORIES
from .utils import now_iso, TIMESTAMP_FORMAT

COLLECTIONS = [
    'coaches', 'otp_codes', 'clubs', 'club_memberships', 'club_invites', 'teams', 'team_coaches',
    'players', 'player_idps', 'sessions', 'session_attendance', 'session_feedback',
    'player_feedback_notes', 'session_blocks', 'session_block_assignments',
    'session_block_attributes', 'block_player_exclusions', 'player_training_events',
    'coaching_rules', 'team_facilities', 'playing_methodology', 'training_methodology',
    'positional_profiles', 'system_defaults', 'team_training_rule_toggles',
]

MAX_OTP_ATTEMPTS = 5


class StorageManager:
    """JSON-file storage, one file per collection under data_dir"""

    def __init__(self, data_dir: str = "data"):
        self.data_dir = Path(data_dir)
        self.files = {name: self.data_dir / f"{name}.json" for name in COLLECTIONS}

        # Ensure data directory exists
        self.data_dir.mkdir(parents=True, exist_ok=True)

        # Initialize files if they don't exist
        self._initialize_files()

    def _initialize_files(self):
        """Initialize JSON files with default data if they don't exist"""
        for name, path in self.files.items():
            if not path.exists():
                self._save(name, [])
        if not self._load('system_defaults'):
            self._save('system_defaults', build_system_defaults())

    # ------------------------------------------------------------------
    # Generic collection helpers
    # ------------------------------------------------------------------

    def _load(self, name: str) -> list:
        """Load a collection from its JSON file"""
        try:
            with open(self.files[name], 'r', encoding='utf-8') as f:
                data = json.load(f)
                return data if isinstance(data, list) else []
        except (FileNotFoundError, json.JSONDecodeError):
            return []

    def _save(self, name: str, rows: list) -> None:
        """Save a collection to its JSON file"""
        try:
            with open(self.files[name], 'w', encoding='utf-8') as f:
                json.dump(rows, f, indent=2, ensure_ascii=False)
        except (IOError, OSError) as e:
            raise RuntimeError(f"Failed to save {name.replace('_', ' ')}: {str(e)}")

    @staticmethod
    def _to_model(model_cls, row: Dict[str, Any]):
        try:
            return model_cls(**row)
        except (ValueError, TypeError, KeyError):
            # Skip invalid rows
            return None

    def _models(self, model_cls, rows: Iterable[Dict[str, Any]]) -> list:
        result = []
        for row in rows:
            model = self._to_model(model_cls, row)
            if model is not None:
                result.append(model)
        return result

    def _find(self, name: str, model_cls, **filters) -> list:
        """Return models whose fields equal every given filter value"""
        rows = [
            r for r in self._load(name)
            if all(r.get(field) == value for field, value in filters.items())
        ]
        return self._models(model_cls, rows)

    def _get(self, name: str, model_cls, record_id: str):
        for row in self._load(name):
            if row.get('id') == record_id:
                return self._to_model(model_cls, row)
        return None

    def _upsert(self, name: str, model) -> str:
        """Insert or replace a record by id and return its id"""
        rows = self._load(name)
        record = model.model_dump(mode='json')
        for i, row in enumerate(rows):
            if row.get('id') == model.id:
                rows[i] = record
                break
        else:
            rows.append(record)
        self._save(name, rows)
        return model.id

    def _delete_where(self, name: str, predicate: Callable[[Dict[str, Any]], bool]) -> List[Dict[str, Any]]:
        """Delete matching rows and return them"""
        rows = self._load(name)
        kept = [r for r in rows if not predicate(r)]
        removed = [r for r in rows if predicate(r)]
        if removed:
            self._save(name, kept)
        return removed

    def _delete(self, name: str, record_id: str) -> bool:
        return bool(self._delete_where(name, lambda r: r.get('id') == record_id))

    # ------------------------------------------------------------------
    # Coaches and one-time sign-in codes
    # ------------------------------------------------------------------

    def create_coach(self, email: str, name: Optional[str] = None) -> Coach:
        """Create a new coach account"""
        coach = Coach(email=email, name=name)
        self._upsert('coaches', coach)
        return coach

    def get_coach(self, coach_id: str) -> Optional[Coach]:
        return self._get('coaches', Coach, coach_id)

    def get_coach_by_email(self, email: str) -> Optional[Coach]:
        """Get a coach by email address (case-insensitive)"""
        if not email:
            return None
        email = email.strip().lower()
        for row in self._load('coaches'):
            if (row.get('email') or '').lower() == email:
                return self._to_model(Coach, row)
        return None

    def save_coach(self, coach: Coach) -> str:
        return self._upsert('coaches', coach)

    def ensure_coach_profile(self, email: str) -> Coach:
        """Return the coach for this email, creating a profile on first sign-in"""
        coach = self.get_coach_by_email(email)
        if coach:
            return coach
        return self.create_coach(email=email, name=email.split('@')[0])

    def create_otp_code(self, email: str, code: str, expires_at: str) -> bool:
        """Store a hashed sign-in code, replacing any previous one for the email"""
        email = email.strip().lower()
        codes = [c for c in self._load('otp_codes') if c.get('email') != email]
        codes.append({
            'email': email,
            'code_hash': generate_password_hash(code),
            'expires_at': expires_at,
            'attempts': 0,
            'created_at': now_iso(),
        })
        self._save('otp_codes', codes)
        return True

    def verify_otp_code(self, email: str, code: str) -> bool:
        """Check a sign-in code; a valid code is consumed"""
        email = (email or '').strip().lower()
        codes = self._load('otp_codes')
        for code_data in codes:
            if code_data.get('email') != email:
                continue
            try:
                expires_at = datetime.strptime(code_data['expires_at'], TIMESTAMP_FORMAT)
            except (ValueError, KeyError):
                expires_at = None
            if expires_at is None or datetime.now() >= expires_at:
                # Expired or invalid, remove it
                codes.remove(code_data)
                self._save('otp_codes', codes)
                return False
            try:
                valid = check_password_hash(code_data.get('code_hash', ''), code or '')
            except ValueError:
                valid = False
            if valid:
                codes.remove(code_data)
            else:
                code_data['attempts'] = code_data.get('attempts', 0) + 1
                if code_data['attempts'] >= MAX_OTP_ATTEMPTS:
                    codes.remove(code_data)
            self._save('otp_codes', codes)
            return valid
        return False

    def delete_otp_code(self, email: str) -> bool:
        email = (email or '').strip().lower()
        return bool(self._delete_where('otp_codes', lambda c: c.get('email') == email))

    # ------------------------------------------------------------------
    # Clubs and memberships
    # ------------------------------------------------------------------

    def create_club(self, name: str, coach_id: str, logo_url: Optional[str] = None) -> Club:
        """Create a club with the coach as head coach"""
        club = Club(name=name, logo_url=logo_url)
        self._upsert('clubs', club)
        self.add_membership(club.id, coach_id, ClubRole.HEAD_COACH)
        return club

    def get_club(self, club_id: str) -> Optional[Club]:
        return self._get('clubs', Club, club_id)

    def save_club(self, club: Club) -> str:
        return self._upsert('clubs', club)

    def delete_club(self, club_id: str) -> bool:
        """Delete a club and everything that belongs to it"""
        if not self._delete('clubs', club_id):
            return False
        for team in self.get_club_teams(club_id):
            self.delete_team(team.id)
        for player in self._find('players', Player, club_id=club_id):
            self.delete_player(player.id)
        for block in self._find('session_blocks', SessionBlock, club_id=club_id):
            if not block.is_public:
                self.delete_block(block.id)
        self._delete_where('club_memberships', lambda r: r.get('club_id') == club_id)
        self._delete_where('club_invites', lambda r: r.get('club_id') == club_id)
        for name in ('playing_methodology', 'training_methodology', 'positional_profiles'):
            self._delete_where(name, lambda r: r.get('club_id') == club_id)
        return True

    def add_membership(self, club_id: str, coach_id: str, role: ClubRole = ClubRole.COACH) -> ClubMembership:
        membership = ClubMembership(club_id=club_id, coach_id=coach_id, role=role)
        self._upsert('club_memberships', membership)
        return membership

    def get_membership(self, coach_id: str) -> Optional[ClubMembership]:
        """Get the coach's club membership (a coach belongs to at most one club)"""
        memberships = self._find('club_memberships', ClubMembership, coach_id=coach_id)
        return memberships[0] if memberships else None

    def get_club_memberships(self, club_id: str) -> List[ClubMembership]:
        memberships = self._find('club_memberships', ClubMembership, club_id=club_id)
        memberships.sort(key=lambda m: m.joined_at)
        return memberships

    def save_membership(self, membership: ClubMembership) -> str:
        return self._upsert('club_memberships', membership)

    def remove_membership(self, club_id: str, coach_id: str) -> bool:
        """Remove a coach from a club and from all of the club's teams"""
        removed = self._delete_where(
            'club_memberships',
            lambda r: r.get('club_id') == club_id and r.get('coach_id') == coach_id,
        )
        if not removed:
            return False
        team_ids = {t.id for t in self.get_club_teams(club_id)}
        self._delete_where(
            'team_coaches',
            lambda r: r.get('team_id') in team_ids and r.get('coach_id') == coach_id,
        )
        return True

    def transfer_head_coach(self, club_id: str, from_coach_id: str, to_coach_id: str) -> bool:
        """Make to_coach the head coach; the previous head coach becomes an admin"""
        rows = self._load('club_memberships')
        current = target = None
        for row in rows:
            if row.get('club_id') != club_id:
                continue
            if row.get('coach_id') == from_coach_id:
                current = row
            elif row.get('coach_id') == to_coach_id:
                target = row
        if current is None or target is None or current.get('role') != ClubRole.HEAD_COACH.value:
            return False
        current['role'] = ClubRole.ADMIN.value
        target['role'] = ClubRole.HEAD_COACH.value
        self._save('club_memberships', rows)
        return True

    # ------------------------------------------------------------------
    # Invites
    # ------------------------------------------------------------------

    def create_invite(self, club_id: str, created_by: str, email: str, expires_at: Optional[str] = None) -> ClubInvite:
        # Replace any pending invite for the same email
        email = email.strip().lower()
        self._delete_where(
            'club_invites',
            lambda r: r.get('club_id') == club_id and r.get('email') == email and not r.get('used_at'),
        )
        invite = ClubInvite(
            club_id=club_id,
            created_by=created_by,
            email=email,
            token=secrets.token_urlsafe(24),
            expires_at=expires_at,
        )
        self._upsert('club_invites', invite)
        return invite

    def get_invite_by_token(self, token: str) -> Optional[ClubInvite]:
        if not token:
            return None
        invites = self._find('club_invites', ClubInvite, token=token)
        return invites[0] if invites else None

    def get_pending_invites(self, club_id: str) -> List[ClubInvite]:
        """Unused, unexpired invites for a club, newest first"""
        now = datetime.now().strftime(TIMESTAMP_FORMAT)
        invites = [
            i for i in self._find('club_invites', ClubInvite, club_id=club_id)
            if not i.used_at and (not i.expires_at or i.expires_at > now)
        ]
        invites.sort(key=lambda i: i.created_at, reverse=True)
        return invites

    def revoke_invite(self, invite_id: str, club_id: str) -> bool:
        return bool(self._delete_where(
            'club_invites',
            lambda r: r.get('id') == invite_id and r.get('club_id') == club_id,
        ))

    def mark_invite_used(self, invite_id: str) -> bool:
        invite = self._get('club_invites', ClubInvite, invite_id)
        if not invite:
            return False
        invite.used_at = now_iso()
        self._upsert('club_invites', invite)
        return True

    # ------------------------------------------------------------------
    # Teams
    # ------------------------------------------------------------------

    def get_club_teams(self, club_id: str) -> List[Team]:
        teams = self._find('teams', Team, club_id=club_id)
        teams.sort(key=lambda t: t.name.lower())
        return teams

    def get_team(self, team_id: str) -> Optional[Team]:
        return self._get('teams', Team, team_id)

    def save_team(self, team: Team) -> str:
        return self._upsert('teams', team)

    def delete_team(self, team_id: str) -> bool:
        """Delete a team and its players, sessions, rules and settings"""
        if not self._delete('teams', team_id):
            return False
        for player in self._find('players', Player, team_id=team_id):
            self.delete_player(player.id)
        for session in self._find('sessions', Session, team_id=team_id):
            self.delete_session(session.id)
        for name in ('team_coaches', 'coaching_rules', 'team_facilities', 'playing_methodology',
                     'training_methodology', 'positional_profiles', 'team_training_rule_toggles'):
            self._delete_where(name, lambda r: r.get('team_id') == team_id)
        return True

    def assign_coach_to_team(self, team_id: str, coach_id: str) -> TeamCoach:
        existing = self._find('team_coaches', TeamCoach, team_id=team_id, coach_id=coach_id)
        if existing:
            return existing[0]
        assignment = TeamCoach(team_id=team_id, coach_id=coach_id)
        self._upsert('team_coaches', assignment)
        return assignment

    def unassign_coach_from_team(self, team_id: str, coach_id: str) -> bool:
        return bool(self._delete_where(
            'team_coaches',
            lambda r: r.get('team_id') == team_id and r.get('coach_id') == coach_id,
        ))

    def get_coach_teams(self, coach_id: str) -> List[Team]:
        team_ids = {tc.team_id for tc in self._find('team_coaches', TeamCoach, coach_id=coach_id)}
        teams = self._models(Team, (r for r in self._load('teams') if r.get('id') in team_ids))
        teams.sort(key=lambda t: t.name.lower())
        return teams

    def get_team_coaches(self, team_id: str) -> List[Coach]:
        coach_ids = {tc.coach_id for tc in self._find('team_coaches', TeamCoach, team_id=team_id)}
        return self._models(Coach, (r for r in self._load('coaches') if r.get('id') in coach_ids))

    # ------------------------------------------------------------------
    # Players and IDPs
    # ------------------------------------------------------------------

    def get_players(self, club_id: str, team_id: Optional[str] = None) -> List[Player]:
        """Players of a club, optionally limited to one team, ordered by name"""
        filters = {'club_id': club_id}
        if team_id:
            filters['team_id'] = team_id
        players = self._find('players', Player, **filters)
        players.sort(key=lambda p: p.name.lower())
        return players

    def get_team_players(self, team_id: str) -> List[Player]:
        players = self._find('players', Player, team_id=team_id)
        players.sort(key=lambda p: p.name.lower())
        return players

    def get_player(self, player_id: str) -> Optional[Player]:
        return self._get('players', Player, player_id)

    def save_player(self, player: Player) -> str:
        return self._upsert('players', player)

    def delete_player(self, player_id: str) -> bool:
        if not self._delete('players', player_id):
            return False
        for name in ('player_idps', 'session_attendance', 'player_feedback_notes',
                     'player_training_events', 'block_player_exclusions'):
            self._delete_where(name, lambda r: r.get('player_id') == player_id)
        return True

    def get_player_idps(self, player_id: str) -> List[PlayerIDP]:
        """All IDPs for a player: active first, then by priority"""
        idps = self._find('player_idps', PlayerIDP, player_id=player_id)
        idps.sort(key=lambda i: (i.ended_at is not None, i.priority, i.started_at))
        return idps

    def get_active_idps(self, player_id: str) -> List[PlayerIDP]:
        return [i for i in self.get_player_idps(player_id) if i.ended_at is None]

    def get_active_idps_for_players(self, player_ids: Iterable[str]) -> Dict[str, List[PlayerIDP]]:
        wanted = set(player_ids)
        result = {pid: [] for pid in wanted}
        rows = (r for r in self._load('player_idps') if r.get('player_id') in wanted and not r.get('ended_at'))
        for idp in self._models(PlayerIDP, rows):
            result[idp.player_id].append(idp)
        for idps in result.values():
            idps.sort(key=lambda i: i.priority)
        return result

    def get_idp(self, idp_id: str) -> Optional[PlayerIDP]:
        return self._get('player_idps', PlayerIDP, idp_id)

    def save_idp(self, idp: PlayerIDP) -> str:
        return self._upsert('player_idps', idp)

    def end_idp(self, idp_id: str) -> bool:
        idp = self.get_idp(idp_id)
        if not idp or idp.ended_at:
            return False
        idp.ended_at = now_iso()
        self._upsert('player_idps', idp)
        return True

    def delete_idp(self, idp_id: str) -> bool:
        return self._delete('player_idps', idp_id)

    def set_player_idps(self, player_id: str, entries: List[Dict[str, Any]]) -> List[PlayerIDP]:
        """Replace the player's active IDP set.

        Attributes no longer listed are ended (history is kept); attributes
        still listed keep their start date and get the new priority/notes.
        """
        active = {i.attribute_key: i for i in self.get_active_idps(player_id)}
        wanted = {}
        for index, entry in enumerate(entries):
            key = (entry.get('attribute_key') or '').strip()
            if key and key not in wanted:
                wanted[key] = {
                    'priority': int(entry.get('priority') or index + 1),
                    'notes': entry.get('notes'),
                }
        # Validate everything before writing
        result = []
        for key, values in wanted.items():
            idp = active.get(key) or PlayerIDP(player_id=player_id, attribute_key=key)
            result.append(PlayerIDP(**{**idp.model_dump(), **values}))
        for key, idp in active.items():
            if key not in wanted:
                self.end_idp(idp.id)
        for idp in result:
            self.save_idp(idp)
        result.sort(key=lambda i: i.priority)
        return result

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def get_sessions(self, coach_id: str, team_id: Optional[str] = None) -> List[Session]:
        """Sessions created by a coach, newest first"""
        filters = {'coach_id': coach_id}
        if team_id:
            filters['team_id'] = team_id
        sessions = self._find('sessions', Session, **filters)
        sessions.sort(key=lambda s: s.session_date, reverse=True)
        return sessions

    def get_team_sessions(self, team_id: str) -> List[Session]:
        """All sessions of a team, newest first"""
        sessions = self._find('sessions', Session, team_id=team_id)
        sessions.sort(key=lambda s: s.session_date, reverse=True)
        return sessions

    def get_session(self, session_id: str) -> Optional[Session]:
        return self._get('sessions', Session, session_id)

    def get_sessions_by_ids(self, session_ids: Iterable[str]) -> Dict[str, Session]:
        wanted = set(session_ids)
        sessions = self._models(Session, (r for r in self._load('sessions') if r.get('id') in wanted))
        return {s.id: s for s in sessions}

    def save_session(self, session: Session) -> str:
        session.updated_at = now_iso()
        return self._upsert('sessions', session)

    def delete_session(self, session_id: str) -> bool:
        """Delete a session with its attendance, feedback, blocks and events"""
        if not self._delete('sessions', session_id):
            return False
        self._delete_where('session_attendance', lambda r: r.get('session_id') == session_id)
        for feedback in self._delete_where('session_feedback', lambda r: r.get('session_id') == session_id):
            self._delete_where('player_feedback_notes', lambda r, fid=feedback.get('id'): r.get('session_feedback_id') == fid)
        assignment_ids = {
            a.get('id') for a in self._delete_where(
                'session_block_assignments', lambda r: r.get('session_id') == session_id)
        }
        if assignment_ids:
            self._delete_where('block_player_exclusions', lambda r: r.get('assignment_id') in assignment_ids)
        self._delete_where('player_training_events', lambda r: r.get('session_id') == session_id)
        return True

    def get_upcoming_sessions(self, team_id: str, limit: int = 10, now: Optional[datetime] = None) -> List[Session]:
        """Sessions from now onwards, soonest first"""
        cutoff = (now or datetime.now()).strftime(TIMESTAMP_FORMAT)
        sessions = [s for s in self.get_team_sessions(team_id) if s.session_date >= cutoff]
        sessions.sort(key=lambda s: s.session_date)
        return sessions[:limit]

    def get_latest_syllabus_session(self, team_id: str) -> Optional[Session]:
        """Most recent session of the team that was created from a syllabus slot"""
        for session in self.get_team_sessions(team_id):
            if session.syllabus_week_index is not None and session.syllabus_day_of_week is not None:
                return session
        return None

    # ------------------------------------------------------------------
    # Attendance
    # ------------------------------------------------------------------

    def get_session_attendance(self, session_id: str) -> List[SessionAttendance]:
        return self._find('session_attendance', SessionAttendance, session_id=session_id)

    def get_player_attendance(self, player_id: str) -> List[SessionAttendance]:
        return self._find('session_attendance', SessionAttendance, player_id=player_id)

    def get_attendance_for_sessions(self, session_ids: Iterable[str]) -> List[SessionAttendance]:
        wanted = set(session_ids)
        return self._models(SessionAttendance, (r for r in self._load('session_attendance') if r.get('session_id') in wanted))

    def mark_attendance(self, session_id: str, player_id: str, status: AttendanceStatus,
                        notes: Optional[str] = None) -> SessionAttendance:
        """Create or update the attendance record for a player in a session"""
        existing = self._find('session_attendance', SessionAttendance, session_id=session_id, player_id=player_id)
        if existing:
            record = existing[0]
            record.status = AttendanceStatus(status)
            if notes is not None:
                record.notes = notes
            record.updated_at = now_iso()
        else:
            record = SessionAttendance(session_id=session_id, player_id=player_id, status=status, notes=notes)
        self._upsert('session_attendance', record)
        return record

    def initialize_attendance(self, session_id: str, player_ids: Iterable[str]) -> List[SessionAttendance]:
        """Mark every listed player without a record as present"""
        rows = self._load('session_attendance')
        recorded = {r.get('player_id') for r in rows if r.get('session_id') == session_id}
        for player_id in player_ids:
            if player_id not in recorded:
                rows.append(SessionAttendance(session_id=session_id, player_id=player_id).model_dump(mode='json'))
        self._save('session_attendance', rows)
        return self.get_session_attendance(session_id)

    def delete_attendance(self, session_id: str, player_id: str) -> bool:
        return bool(self._delete_where(
            'session_attendance',
            lambda r: r.get('session_id') == session_id and r.get('player_id') == player_id,
        ))

    def update_attendance_notes(self, session_id: str, player_id: str, notes: Optional[str]) -> bool:
        existing = self._find('session_attendance', SessionAttendance, session_id=session_id, player_id=player_id)
        if not existing:
            return False
        record = existing[0]
        record.notes = notes
        record.updated_at = now_iso()
        self._upsert('session_attendance', record)
        return True

    # ------------------------------------------------------------------
    # Feedback
    # ------------------------------------------------------------------

    def get_session_feedback(self, session_id: str) -> Optional[SessionFeedback]:
        feedback = self._find('session_feedback', SessionFeedback, session_id=session_id)
        return feedback[0] if feedback else None

    def get_feedback_for_sessions(self, session_ids: Iterable[str]) -> Dict[str, SessionFeedback]:
        wanted = set(session_ids)
        feedback = self._models(SessionFeedback, (r for r in self._load('session_feedback') if r.get('session_id') in wanted))
        return {f.session_id: f for f in feedback}

    def get_feedback_by_ids(self, feedback_ids: Iterable[str]) -> Dict[str, SessionFeedback]:
        wanted = set(feedback_ids)
        feedback = self._models(SessionFeedback, (r for r in self._load('session_feedback') if r.get('id') in wanted))
        return {f.id: f for f in feedback}

    def save_session_feedback(self, feedback: SessionFeedback) -> SessionFeedback:
        """Upsert feedback; there is at most one record per session"""
        existing = self.get_session_feedback(feedback.session_id)
        if existing:
            feedback.id = existing.id
            feedback.created_at = existing.created_at
        feedback.updated_at = now_iso()
        self._upsert('session_feedback', feedback)
        return feedback

    def get_feedback_notes(self, session_feedback_id: str) -> List[PlayerFeedbackNote]:
        return self._find('player_feedback_notes', PlayerFeedbackNote, session_feedback_id=session_feedback_id)

    def get_player_notes(self, player_id: str) -> List[PlayerFeedbackNote]:
        """Feedback notes about a player, newest first"""
        notes = self._find('player_feedback_notes', PlayerFeedbackNote, player_id=player_id)
        notes.sort(key=lambda n: n.created_at, reverse=True)
        return notes

    def get_notes_for_players(self, player_ids: Iterable[str]) -> List[PlayerFeedbackNote]:
        wanted = set(player_ids)
        return self._models(PlayerFeedbackNote, (r for r in self._load('player_feedback_notes') if r.get('player_id') in wanted))

    def replace_feedback_notes(self, session_feedback_id: str, notes: List[PlayerFeedbackNote]) -> None:
        rows = [r for r in self._load('player_feedback_notes') if r.get('session_feedback_id') != session_feedback_id]
        rows.extend(n.model_dump(mode='json') for n in notes)
        self._save('player_feedback_notes', rows)

    # ------------------------------------------------------------------
    # Session blocks, attributes, assignments and exclusions
    # ------------------------------------------------------------------

    def get_block(self, block_id: str) -> Optional[SessionBlock]:
        return self._get('session_blocks', SessionBlock, block_id)

    def get_all_blocks(self) -> List[SessionBlock]:
        return self._models(SessionBlock, self._load('session_blocks'))

    def get_blocks_by_ids(self, block_ids: Iterable[str]) -> Dict[str, SessionBlock]:
        wanted = set(block_ids)
        blocks = self._models(SessionBlock, (r for r in self._load('session_blocks') if r.get('id') in wanted))
        return {b.id: b for b in blocks}

    def save_block(self, block: SessionBlock) -> str:
        block.updated_at = now_iso()
        return self._upsert('session_blocks', block)

    def delete_block(self, block_id: str) -> bool:
        if not self._delete('session_blocks', block_id):
            return False
        assignment_ids = {
            a.get('id') for a in self._delete_where(
                'session_block_assignments', lambda r: r.get('block_id') == block_id)
        }
        if assignment_ids:
            self._delete_where('block_player_exclusions', lambda r: r.get('assignment_id') in assignment_ids)
        self._delete_where('session_block_attributes', lambda r: r.get('block_id') == block_id)
        return True

    @staticmethod
    def _sort_attributes(attributes: List[SessionBlockAttribute]) -> List[SessionBlockAttribute]:
        attributes.sort(key=lambda a: (a.order_type != OrderType.FIRST, -a.relevance))
        return attributes

    def get_block_attributes(self, block_id: str) -> List[SessionBlockAttribute]:
        """Block attributes: first-order before second-order, most relevant first"""
        return self._sort_attributes(self._find('session_block_attributes', SessionBlockAttribute, block_id=block_id))

    def get_attributes_for_blocks(self, block_ids: Iterable[str]) -> Dict[str, List[SessionBlockAttribute]]:
        wanted = set(block_ids)
        result = {bid: [] for bid in wanted}
        rows = (r for r in self._load('session_block_attributes') if r.get('block_id') in wanted)
        for attribute in self._models(SessionBlockAttribute, rows):
            result[attribute.block_id].append(attribute)
        for attributes in result.values():
            self._sort_attributes(attributes)
        return result

    def save_block_attributes(self, block_id: str, attributes: List[SessionBlockAttribute]) -> List[SessionBlockAttribute]:
        """Replace all attributes of a block"""
        rows = [r for r in self._load('session_block_attributes') if r.get('block_id') != block_id]
        for attribute in attributes:
            attribute.block_id = block_id
            rows.append(attribute.model_dump(mode='json'))
        self._save('session_block_attributes', rows)
        return self.get_block_attributes(block_id)

    def get_session_assignments(self, session_id: str) -> List[SessionBlockAssignment]:
        """Block assignments of a session ordered by position then slot"""
        assignments = self._find('session_block_assignments', SessionBlockAssignment, session_id=session_id)
        assignments.sort(key=lambda a: (a.position, a.slot_index))
        return assignments

    def get_assignments_for_sessions(self, session_ids: Iterable[str]) -> List[SessionBlockAssignment]:
        wanted = set(session_ids)
        return self._models(
            SessionBlockAssignment,
            (r for r in self._load('session_block_assignments') if r.get('session_id') in wanted),
        )

    def get_assignment(self, assignment_id: str) -> Optional[SessionBlockAssignment]:
        return self._get('session_block_assignments', SessionBlockAssignment, assignment_id)

    def save_assignment(self, assignment: SessionBlockAssignment) -> str:
        return self._upsert('session_block_assignments', assignment)

    def save_assignments(self, assignments: List[SessionBlockAssignment]) -> None:
        """Write several assignments in one pass"""
        by_id = {a.id: a.model_dump(mode='json') for a in assignments}
        rows = [by_id.pop(r.get('id'), r) for r in self._load('session_block_assignments')]
        rows.extend(by_id.values())
        self._save('session_block_assignments', rows)

    def delete_assignment(self, assignment_id: str) -> bool:
        if not self._delete('session_block_assignments', assignment_id):
            return False
        self._delete_where('block_player_exclusions', lambda r: r.get('assignment_id') == assignment_id)
        return True

    def get_exclusions(self, assignment_id: str) -> List[str]:
        """Player ids excluded from a block assignment"""
        return [e.player_id for e in self._find('block_player_exclusions', BlockPlayerExclusion, assignment_id=assignment_id)]

    def get_exclusions_for_assignments(self, assignment_ids: Iterable[str]) -> Dict[str, set]:
        wanted = set(assignment_ids)
        result = {aid: set() for aid in wanted}
        for row in self._load('block_player_exclusions'):
            if row.get('assignment_id') in wanted:
                result[row['assignment_id']].add(row.get('player_id'))
        return result

    def add_exclusion(self, assignment_id: str, player_id: str) -> None:
        if player_id not in self.get_exclusions(assignment_id):
            self._upsert('block_player_exclusions', BlockPlayerExclusion(assignment_id=assignment_id, player_id=player_id))

    def remove_exclusion(self, assignment_id: str, player_id: str) -> bool:
        return bool(self._delete_where(
            'block_player_exclusions',
            lambda r: r.get('assignment_id') == assignment_id and r.get('player_id') == player_id,
        ))

    def set_exclusions(self, assignment_id: str, player_ids: Iterable[str]) -> List[str]:
        rows = [r for r in self._load('block_player_exclusions') if r.get('assignment_id') != assignment_id]
        for player_id in dict.fromkeys(player_ids):
            rows.append(BlockPlayerExclusion(assignment_id=assignment_id, player_id=player_id).model_dump(mode='json'))
        self._save('block_player_exclusions', rows)
        return self.get_exclusions(assignment_id)

    # ------------------------------------------------------------------
    # Training events
    # ------------------------------------------------------------------

    def get_player_training_events(self, player_id: str) -> List[PlayerTrainingEvent]:
        """Training events of a player, newest first"""
        events = self._find('player_training_events', PlayerTrainingEvent, player_id=player_id)
        events.sort(key=lambda e: e.created_at, reverse=True)
        return events

    def get_training_events_for_players(self, player_ids: Iterable[str]) -> List[PlayerTrainingEvent]:
        wanted = set(player_ids)
        return self._models(PlayerTrainingEvent, (r for r in self._load('player_training_events') if r.get('player_id') in wanted))

    def replace_session_training_events(self, session_id: str, events: List[PlayerTrainingEvent]) -> None:
        rows = [r for r in self._load('player_training_events') if r.get('session_id') != session_id]
        rows.extend(e.model_dump(mode='json') for e in events)
        self._save('player_training_events', rows)

    # ------------------------------------------------------------------
    # Coaching rules
    # ------------------------------------------------------------------

    def get_rules(self, coach_id: str) -> List[CoachingRule]:
        rules = self._find('coaching_rules', CoachingRule, coach_id=coach_id)
        rules.sort(key=lambda r: r.created_at)
        return rules

    def get_global_rules(self, coach_id: str) -> List[CoachingRule]:
        """Rules that apply to every team of the coach"""
        return [r for r in self.get_rules(coach_id) if r.team_id is None]

    def get_team_rules(self, coach_id: str, team_id: str) -> List[CoachingRule]:
        return [r for r in self.get_rules(coach_id) if r.team_id == team_id]

    def get_rule(self, rule_id: str) -> Optional[CoachingRule]:
        return self._get('coaching_rules', CoachingRule, rule_id)

    def save_rule(self, rule: CoachingRule) -> str:
        return self._upsert('coaching_rules', rule)

    def delete_rule(self, rule_id: str) -> bool:
        return self._delete('coaching_rules', rule_id)

    def toggle_rule(self, rule_id: str) -> Optional[CoachingRule]:
        rule = self.get_rule(rule_id)
        if not rule:
            return None
        rule.is_active = not rule.is_active
        self._upsert('coaching_rules', rule)
        return rule

    # ------------------------------------------------------------------
    # Facilities
    # ------------------------------------------------------------------

    def get_team_facilities(self, team_id: str) -> Optional[TeamFacility]:
        facilities = self._find('team_facilities', TeamFacility, team_id=team_id)
        return facilities[0] if facilities else None

    def save_team_facilities(self, team_id: str, space_type: Optional[str] = None,
                             custom_space: Optional[str] = None,
                             equipment: Optional[List[Dict[str, Any]]] = None,
                             other_factors: Optional[str] = None) -> TeamFacility:
        """Create or update the facilities record of a team"""
        facility = self.get_team_facilities(team_id) or TeamFacility(team_id=team_id)
        facility.space_type = space_type
        facility.custom_space = custom_space
        facility.equipment = [EquipmentItem(**item) for item in (equipment or [])]
        facility.other_factors = other_factors
        self._upsert('team_facilities', facility)
        return facility

    # ------------------------------------------------------------------
    # Methodology
    # ------------------------------------------------------------------

    _METHODOLOGY = {
        'playing': ('playing_methodology', PlayingMethodology),
        'training': ('training_methodology', TrainingMethodology),
        'profiles': ('positional_profiles', PositionalProfile),
    }

    def get_methodology(self, kind: str, club_id: str, team_id: Optional[str] = None) -> list:
        """Club-level entries when team_id is None, otherwise the team's entries"""
        name, model_cls = self._METHODOLOGY[kind]
        entries = self._find(name, model_cls, club_id=club_id, team_id=team_id)
        entries.sort(key=lambda e: (e.display_order, e.created_at))
        return entries

    def get_methodology_entry(self, kind: str, entry_id: str):
        name, model_cls = self._METHODOLOGY[kind]
        return self._get(name, model_cls, entry_id)

    def save_methodology_entry(self, kind: str, entry) -> str:
        name, _ = self._METHODOLOGY[kind]
        entry.updated_at = now_iso()
        return self._upsert(name, entry)

    def delete_methodology_entry(self, kind: str, entry_id: str) -> bool:
        name, _ = self._METHODOLOGY[kind]
        return self._delete(name, entry_id)

    def get_zones(self, club_id: str, team_id: Optional[str] = None) -> GameModelZones:
        """Game model zones of the club (or team); empty when none are defined"""
        for entry in self.get_methodology('playing', club_id, team_id):
            if entry.zones is not None:
                return entry.zones
        return GameModelZones()

    def save_zones(self, club_id: str, zones: GameModelZones, team_id: Optional[str] = None,
                   coach_id: Optional[str] = None) -> PlayingMethodology:
        entries = self.get_methodology('playing', club_id, team_id)
        target = next((e for e in entries if e.zones is not None), None) or (entries[0] if entries else None)
        if target is None:
            target = PlayingMethodology(
                club_id=club_id,
                team_id=team_id,
                created_by_coach_id=coach_id,
                title='Game Model',
                description='Pitch zones with in and out of possession principles',
            )
        target.zones = zones
        self.save_methodology_entry('playing', target)
        return target

    def get_syllabus(self, club_id: str, team_id: Optional[str] = None) -> Optional[TrainingSyllabus]:
        for entry in self.get_methodology('training', club_id, team_id):
            if entry.syllabus is not None:
                return entry.syllabus
        return None

    def save_syllabus(self, club_id: str, syllabus: TrainingSyllabus, team_id: Optional[str] = None,
                      coach_id: Optional[str] = None) -> TrainingMethodology:
        entries = self.get_methodology('training', club_id, team_id)
        target = next((e for e in entries if e.syllabus is not None), None) or (entries[0] if entries else None)
        if target is None:
            target = TrainingMethodology(
                club_id=club_id,
                team_id=team_id,
                created_by_coach_id=coach_id,
                title='Training Syllabus',
            )
        target.syllabus = syllabus
        self.save_methodology_entry('training', target)
        return target

    def _copy_methodology(self, kind: str, club_id: str, team_id: str, coach_id: Optional[str] = None) -> int:
        name, model_cls = self._METHODOLOGY[kind]
        copies = []
        for entry in self.get_methodology(kind, club_id):
            data = entry.model_dump(exclude={'id', 'created_at', 'updated_at'})
            data['team_id'] = team_id
            if coach_id and 'created_by_coach_id' in data:
                data['created_by_coach_id'] = coach_id
            copies.append(model_cls(**data).model_dump(mode='json'))
        if copies:
            self._save(name, self._load(name) + copies)
        return len(copies)

    def revert_team_methodology(self, kind: str, team_id: str, club_id: str) -> int:
        """Discard the team's entries of one kind and copy the club's back in"""
        name, _ = self._METHODOLOGY[kind]
        self._delete_where(name, lambda r: r.get('team_id') == team_id)
        return self._copy_methodology(kind, club_id, team_id)

    def revert_team_playing_methodology(self, team_id: str, club_id: str) -> int:
        return self.revert_team_methodology('playing', team_id, club_id)

    def revert_team_positional_profiles(self, team_id: str, club_id: str) -> int:
        return self.revert_team_methodology('profiles', team_id, club_id)

    def copy_club_methodology_to_team(self, team_id: str, club_id: str, coach_id: Optional[str] = None) -> int:
        """Seed a new team with the club's methodology (kinds the team already has are skipped)"""
        copied = 0
        for kind in self._METHODOLOGY:
            if not self.get_methodology(kind, club_id, team_id):
                copied += self._copy_methodology(kind, club_id, team_id, coach_id)
        return copied

    def get_rule_toggles(self, team_id: str) -> List[TrainingRuleToggle]:
        return self._find('team_training_rule_toggles', TrainingRuleToggle, team_id=team_id)

    def set_rule_toggle(self, team_id: str, training_rule_id: str, is_enabled: bool) -> TrainingRuleToggle:
        """Upsert on (team, training rule)"""
        existing = self._find('team_training_rule_toggles', TrainingRuleToggle,
                              team_id=team_id, training_rule_id=training_rule_id)
        toggle = existing[0] if existing else TrainingRuleToggle(team_id=team_id, training_rule_id=training_rule_id)
        toggle.is_enabled = bool(is_enabled)
        toggle.updated_at = now_iso()
        self._upsert('team_training_rule_toggles', toggle)
        return toggle

    # ------------------------------------------------------------------
    # System defaults
    # ------------------------------------------------------------------

    def get_system_defaults(self, category: Optional[str] = None) -> List[SystemDefault]:
        defaults = [d for d in self._models(SystemDefault, self._load('system_defaults')) if d.is_active]
        if category:
            defaults = [d for d in defaults if d.category == category]
        defaults.sort(key=lambda d: (d.category, d.display_order))
        return defaults

    def get_attribute_catalogue(self) -> List[SystemDefault]:
        """Four Corners attributes in category order"""
        defaults = [d for d in self.get_system_defaults() if d.category in ATTRIBUTE_CATEGORIES]
        defaults.sort(key=lambda d: (ATTRIBUTE_CATEGORIES.index(d.category), d.display_order))
        return defaults

    def get_attribute_names(self) -> Dict[str, str]:
        return {d.key: d.name for d in self.get_attribute_catalogue()}

    def get_attribute_categories(self) -> Dict[str, str]:
        return {d.key: d.category for d in self.get_attribute_catalogue()}
