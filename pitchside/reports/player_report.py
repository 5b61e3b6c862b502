"""
Player Development Report

Player details, attendance, training balance by Four Corners category,
active development goals with the sessions that trained them, and
historical goals.
"""

import logging
from datetime import datetime
from typing import List, Optional, Union, BinaryIO

from reportlab.lib.pagesizes import A4
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, PageBreak, KeepTogether

from ..analytics import (
    get_player_idp_progress, get_player_attendance_summary, get_player_training_balance, get_idp_training_sessions,
)
from ..analytics.display import get_priority_label
from ..storage import StorageManager
from ..utils import format_date_for_display, now_iso
from .base_generator import BasePDFGenerator
from .formatters import format_percentage, format_idp_period, truncate_text
from .types import (
    PlayerReportData, ReportPlayer, ReportClub, ReportTeam, AttendanceSummary,
    ReportIDP, ReportSession, TrainingBalanceEntry,
)

logger = logging.getLogger(__name__)

REPORT_TYPE = "Player Development Report"


def build_player_report_data(storage: StorageManager, player_id: str, team_id: Optional[str] = None,
                             now: Optional[datetime] = None) -> PlayerReportData:
    """
    Collect everything drawn in a player report.

    Args:
        storage: Storage manager
        player_id: Player to report on
        team_id: Team context; defaults to the player's team

    Returns:
        PlayerReportData

    Raises:
        ValueError: when the player, team or club does not exist
    """
    player = storage.get_player(player_id)
    if not player:
        raise ValueError("Player not found")
    team = storage.get_team(team_id or player.team_id) if (team_id or player.team_id) else None
    if not team:
        raise ValueError("Team not found")
    club = storage.get_club(team.club_id)
    if not club:
        raise ValueError("Club not found")

    attendance = get_player_attendance_summary(storage, player_id)

    def to_report_idp(progress: dict) -> ReportIDP:
        trained = get_idp_training_sessions(storage, progress['idp_id'])
        return ReportIDP(
            idp_id=progress['idp_id'],
            attribute_key=progress['attribute_key'],
            attribute_name=progress['attribute_name'],
            priority=progress['priority'],
            started_at=progress['started_at'],
            ended_at=progress['ended_at'],
            training_sessions=progress['training_sessions'],
            last_trained_date=progress['last_trained_at'],
            sessions=[
                ReportSession(session_id=s['session_id'], session_title=s['title'], session_date=s['session_date'])
                for s in trained
            ],
        )

    progress = get_player_idp_progress(storage, player_id, now=now)

    return PlayerReportData(
        player=ReportPlayer(id=player.id, name=player.name, position=player.position,
                            age=player.age, gender=player.gender),
        club=ReportClub(id=club.id, name=club.name, logo_url=club.logo_url),
        team=ReportTeam(id=team.id, name=team.name),
        attendance=AttendanceSummary(
            sessions_attended=attendance['attended'],
            total_sessions=attendance['total_sessions'],
            attendance_percentage=attendance['attendance_percentage'],
        ),
        active_idps=[to_report_idp(p) for p in progress if p['is_active']],
        historical_idps=[to_report_idp(p) for p in progress if not p['is_active']],
        training_balance=[TrainingBalanceEntry(**entry) for entry in get_player_training_balance(storage, player_id)],
        generated_at=now_iso(),
    )


class PlayerReportGenerator(BasePDFGenerator):
    """Generator for the player development report"""

    def generate(self, output: Union[str, BinaryIO]) -> Union[str, BinaryIO]:
        """
        Generate the report PDF.

        Args:
            output: File path or writable binary buffer

        Returns:
            The output it was given
        """
        doc = SimpleDocTemplate(
            output,
            pagesize=A4,
            rightMargin=self.margin,
            leftMargin=self.margin,
            topMargin=self.margin,
            bottomMargin=self.margin,
            title=f"{self.data.player.name} - {REPORT_TYPE}",
        )

        story = []
        story.append(Paragraph(f"{self.data.player.name}", self.styles['CustomTitle']))
        story.extend(self._create_player_details())
        story.extend(self._create_attendance_summary())
        story.extend(self._create_training_balance())
        story.append(PageBreak())
        story.extend(self._create_idp_section(f"Active Development Goals ({len(self.data.active_idps)})",
                                              self.data.active_idps, "No active development goals."))
        if self.data.historical_idps:
            story.append(PageBreak())
            story.extend(self._create_idp_section(
                f"Historical Development Goals ({len(self.data.historical_idps)})",
                self.data.historical_idps, "",
            ))

        def on_each_page(canvas_obj, doc_obj):
            self._create_header_footer(canvas_obj, doc_obj, REPORT_TYPE)

        doc.build(story, onFirstPage=on_each_page, onLaterPages=on_each_page)
        logger.info(f"Generated player report for {self.data.player.id}")
        return output

    def _create_player_details(self) -> List:
        player = self.data.player
        rows = [
            ["Club", self.data.club.name],
            ["Team", self.data.team.name],
            ["Position", player.position or "Not recorded"],
        ]
        if player.age is not None:
            rows.append(["Age", str(player.age)])
        if player.gender:
            rows.append(["Gender", player.gender.title()])
        rows.append(["Report Date", format_date_for_display(self.data.generated_at)])
        return [Paragraph("Player Details", self.styles['SectionHeader']), self._create_key_value_table(rows)]

    def _create_attendance_summary(self) -> List:
        attendance = self.data.attendance
        data = [
            ["Sessions Attended", "Total Sessions", "Attendance"],
            [str(attendance.sessions_attended), str(attendance.total_sessions),
             format_percentage(attendance.attendance_percentage)],
        ]
        width = self.content_width / 3
        return [
            Paragraph("Attendance", self.styles['SectionHeader']),
            self._create_table(data, col_widths=[width] * 3),
        ]

    def _create_training_balance(self) -> List:
        elements = [Paragraph("Training Balance", self.styles['SectionHeader'])]
        if not any(entry.events for entry in self.data.training_balance):
            elements.append(Paragraph("No training recorded yet.", self.styles['Muted']))
            return elements

        data = [["Category", "Training Events", "Share"]]
        for entry in self.data.training_balance:
            data.append([entry.label, str(entry.events), f"{entry.percentage}%"])
        widths = [self.content_width * 0.5, self.content_width * 0.25, self.content_width * 0.25]
        elements.append(self._create_table(data, col_widths=widths))
        return elements

    def _create_idp_section(self, title: str, idps: List[ReportIDP], empty_text: str) -> List:
        elements = [Paragraph(title, self.styles['SectionHeader'])]
        if not idps:
            if empty_text:
                elements.append(Paragraph(empty_text, self.styles['Muted']))
            return elements

        for idp in idps:
            block = [
                Paragraph(f"{idp.attribute_name} ({get_priority_label(idp.priority)})", self.styles['SubHeader']),
                Paragraph(
                    f"{format_idp_period(idp.started_at, idp.ended_at)} | "
                    f"{idp.training_sessions} training session{'s' if idp.training_sessions != 1 else ''}",
                    self.styles['TableCell'],
                ),
                Spacer(1, 4),
            ]
            if idp.sessions:
                data = [["Date", "Session"]]
                for session in idp.sessions:
                    data.append([format_date_for_display(session.session_date), truncate_text(session.session_title, 70)])
                block.append(self._create_table(data, col_widths=[self.content_width * 0.25, self.content_width * 0.75]))
            else:
                block.append(Paragraph("Not trained yet.", self.styles['Muted']))
            elements.append(KeepTogether(block))
            elements.append(Spacer(1, 8))
        return elements


def generate_player_report(data: PlayerReportData, output: Union[str, BinaryIO]) -> Union[str, BinaryIO]:
    return PlayerReportGenerator(data).generate(output)
