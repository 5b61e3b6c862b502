"""
Base PDF generator with the page layout, styles and tables shared by reports.
"""

from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib import colors
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle
from reportlab.lib.enums import TA_CENTER, TA_LEFT, TA_RIGHT
from reportlab.pdfgen import canvas
from typing import List, Optional

from .types import PlayerReportData
from .formatters import get_report_generation_date


class BasePDFGenerator:
    """Base class for PDF report generators"""

    def __init__(self, data: PlayerReportData, primary_color: str = "#15803D", header_color: str = "#1F2937"):
        self.data = data
        self.primary_color = colors.HexColor(primary_color)
        self.header_color = colors.HexColor(header_color)
        self.light_grey = colors.HexColor("#F3F4F6")
        self.dark_grey = colors.HexColor("#6B7280")

        self.page_width, self.page_height = A4
        self.margin = 36  # 0.5 inch
        self.content_width = self.page_width - (2 * self.margin)

        self.styles = getSampleStyleSheet()
        self._create_custom_styles()

    def _create_custom_styles(self):
        self.styles.add(ParagraphStyle(
            name='CustomTitle',
            parent=self.styles['Title'],
            fontSize=18,
            spaceAfter=20,
            alignment=TA_CENTER,
            textColor=self.primary_color,
            fontName='Helvetica-Bold'
        ))

        self.styles.add(ParagraphStyle(
            name='SectionHeader',
            parent=self.styles['Heading2'],
            fontSize=12,
            spaceAfter=12,
            spaceBefore=16,
            alignment=TA_LEFT,
            textColor=self.header_color,
            fontName='Helvetica-Bold'
        ))

        self.styles.add(ParagraphStyle(
            name='SubHeader',
            parent=self.styles['Normal'],
            fontSize=10,
            spaceBefore=8,
            spaceAfter=4,
            textColor=self.primary_color,
            fontName='Helvetica-Bold'
        ))

        self.styles.add(ParagraphStyle(
            name='TableCell',
            parent=self.styles['Normal'],
            fontSize=9,
            alignment=TA_LEFT,
            fontName='Helvetica',
            leading=10.5
        ))

        self.styles.add(ParagraphStyle(
            name='Muted',
            parent=self.styles['Normal'],
            fontSize=9,
            textColor=self.dark_grey,
            fontName='Helvetica-Oblique'
        ))

        self.styles.add(ParagraphStyle(
            name='Footer',
            parent=self.styles['Normal'],
            fontSize=8,
            alignment=TA_RIGHT,
            textColor=self.dark_grey,
            fontName='Helvetica'
        ))

    def _create_header_footer(self, canvas_obj: canvas.Canvas, doc: SimpleDocTemplate, report_type: str):
        """Draw the running header and page footer"""
        header_text = f"{self.data.player.name} | {self.data.club.name} | {self.data.team.name} | {report_type}"
        canvas_obj.setFont("Helvetica", 8)
        canvas_obj.setFillColor(self.dark_grey)
        canvas_obj.drawString(self.margin, self.page_height - 20, header_text)

        footer_text = f"Page {canvas_obj.getPageNumber()} | Report Generated: {get_report_generation_date()}"
        canvas_obj.drawString(self.margin, 20, footer_text)

    def _create_table(self, data: List[List], col_widths: Optional[List[float]] = None) -> Table:
        """Table with a dark header row and alternating row shading"""
        table = Table(data, colWidths=col_widths, repeatRows=1)

        style = TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), self.header_color),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
            ('ALIGN', (0, 0), (-1, 0), 'CENTER'),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, 0), 9),
            ('BOTTOMPADDING', (0, 0), (-1, 0), 8),
            ('TOPPADDING', (0, 0), (-1, 0), 8),

            ('BACKGROUND', (0, 1), (-1, -1), colors.white),
            ('TEXTCOLOR', (0, 1), (-1, -1), colors.black),
            ('ALIGN', (0, 1), (-1, -1), 'LEFT'),
            ('FONTNAME', (0, 1), (-1, -1), 'Helvetica'),
            ('FONTSIZE', (0, 1), (-1, -1), 9),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
            ('LEFTPADDING', (0, 0), (-1, -1), 6),
            ('RIGHTPADDING', (0, 0), (-1, -1), 6),
            ('TOPPADDING', (0, 1), (-1, -1), 4),
            ('BOTTOMPADDING', (0, 1), (-1, -1), 4),
        ])

        for i in range(2, len(data), 2):
            style.add('BACKGROUND', (0, i), (-1, i), self.light_grey)

        table.setStyle(style)
        return table

    def _create_key_value_table(self, rows: List[List[str]]) -> Table:
        """Two column label/value table without a header row"""
        table = Table(rows, colWidths=[self.content_width * 0.35, self.content_width * 0.65])
        table.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
            ('FONTNAME', (1, 0), (1, -1), 'Helvetica'),
            ('FONTSIZE', (0, 0), (-1, -1), 9),
            ('TEXTCOLOR', (0, 0), (0, -1), self.header_color),
            ('LINEBELOW', (0, 0), (-1, -1), 0.25, self.light_grey),
            ('TOPPADDING', (0, 0), (-1, -1), 4),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 4),
        ]))
        return table
