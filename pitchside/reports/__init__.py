"""
PDF reports drawn with reportlab.

Currently one report: the player development report (details, attendance,
training balance, active and historical development goals).
"""

from .types import PlayerReportData
from .player_report import build_player_report_data, PlayerReportGenerator, generate_player_report

__all__ = [
    'PlayerReportData',
    'build_player_report_data',
    'PlayerReportGenerator',
    'generate_player_report',
]
