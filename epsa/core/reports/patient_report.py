"""
Patient Report Generator

Writes a one-page PDF summary of an ePSA assessment:
- Core risk score, tier and displayed range
- PSA/MRI refinement with its point breakdown (when available)
- Advisory next steps
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
import os
import uuid
from xml.sax.saxutils import escape

from reportlab.lib.colors import HexColor, white
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Flowable, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from epsa.core.scoring import CoreAssessmentResult, PostAssessmentResult
from epsa.utils import get_logger, ReportGenerationError

logger = get_logger(__name__)

POST_COLORS = {
    "green":  HexColor("#27AE60"),
    "yellow": HexColor("#D4AF37"),
    "orange": HexColor("#E67E22"),
    "red":    HexColor("#C0392B"),
}

CAVEATS = [
    "This is a screening estimate, not a medical diagnosis.",
    "Results should be reviewed with a qualified healthcare provider.",
    "The model was derived from a small cohort and is validated for ages 30–95.",
]


@dataclass
class PatientReport:
    """Data container for a generated patient report."""
    report_id: str
    generated_at: datetime
    patient_id: str = "ANONYMOUS"
    score_percent: int = 0
    risk_tier: str = ""
    post_risk: Optional[str] = None
    next_steps: List[str] = field(default_factory=list)
    pdf_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "report_id": self.report_id,
            "generated_at": self.generated_at.isoformat(),
            "patient_id": self.patient_id,
            "score_percent": self.score_percent,
            "risk_tier": self.risk_tier,
            "post_risk": self.post_risk,
            "pdf_path": self.pdf_path,
        }


class RiskIndicator(Flowable):
    """Colored pill showing the headline risk label."""

    def __init__(self, label: str, color, width: float = 300, height: float = 40):
        Flowable.__init__(self)
        self.label = label
        self.color = color
        self.width = width
        self.height = height

    def draw(self):
        self.canv.setFillColor(self.color)
        self.canv.roundRect(0, 0, self.width, self.height, 8, fill=1, stroke=0)

        self.canv.setFillColor(white)
        self.canv.setFont("Helvetica-Bold", 13)
        text_width = self.canv.stringWidth(self.label, "Helvetica-Bold", 13)
        self.canv.drawString((self.width - text_width) / 2, self.height / 2.5, self.label)


class PatientReportGenerator:
    """Generates patient-facing PDF summaries of ePSA results."""

    def __init__(self, output_dir: str = "reports"):
        self.output_dir = output_dir
        os.makedirs(output_dir, exist_ok=True)
        self._styles = getSampleStyleSheet()
        self._create_custom_styles()
        logger.info(f"PatientReportGenerator initialized, output: {output_dir}")

    def _create_custom_styles(self):
        if 'ReportTitle' not in self._styles:
            self._styles.add(ParagraphStyle(
                name='ReportTitle',
                parent=self._styles['Title'],
                fontSize=24,
                spaceAfter=20,
                textColor=HexColor("#1E40AF"),
                alignment=TA_CENTER,
                fontName='Helvetica-Bold'
            ))

        if 'SectionHeader' not in self._styles:
            self._styles.add(ParagraphStyle(
                name='SectionHeader',
                parent=self._styles['Heading2'],
                fontSize=15,
                spaceBefore=20,
                spaceAfter=10,
                textColor=HexColor("#1F2937"),
                fontName='Helvetica-Bold'
            ))

        if 'Caveat' not in self._styles:
            self._styles.add(ParagraphStyle(
                name='Caveat',
                parent=self._styles['Normal'],
                fontSize=9,
                textColor=HexColor("#6B7280"),
                spaceBefore=4,
                spaceAfter=4
            ))

    def generate(
        self,
        core: CoreAssessmentResult,
        post: Optional[PostAssessmentResult] = None,
        patient_id: str = "ANONYMOUS",
    ) -> PatientReport:
        """
        Generate a patient PDF report.

        Args:
            core: Core assessment result
            post: Optional PSA/MRI result
            patient_id: Patient identifier (anonymized)

        Returns:
            PatientReport with the PDF path set

        Raises:
            ReportGenerationError: if the PDF cannot be written
        """
        generated_at = datetime.now()
        report = PatientReport(
            report_id=f"PR-{generated_at.strftime('%Y%m%d-%H%M%S')}-{uuid.uuid4().hex[:6]}",
            generated_at=generated_at,
            patient_id=patient_id,
            score_percent=core.score_percent,
            risk_tier=core.risk_tier.value,
            post_risk=post.risk_percent_range if post else None,
            next_steps=list(post.next_steps) if post else [core.action],
        )

        try:
            report.pdf_path = self._generate_pdf(report, core, post)
        except OSError as exc:
            logger.error(f"Report {report.report_id}: PDF write failed: {exc}")
            raise ReportGenerationError(
                f"Could not write PDF report: {exc}",
                report_type="patient",
                details={"report_id": report.report_id},
            ) from exc

        logger.info(f"Report {report.report_id} written to {report.pdf_path}")
        return report

    def _generate_pdf(
        self,
        report: PatientReport,
        core: CoreAssessmentResult,
        post: Optional[PostAssessmentResult],
    ) -> str:
        filepath = os.path.join(self.output_dir, f"{report.report_id}.pdf")

        doc = SimpleDocTemplate(
            filepath,
            pagesize=letter,
            rightMargin=0.75*inch,
            leftMargin=0.75*inch,
            topMargin=0.75*inch,
            bottomMargin=0.75*inch
        )

        story = []
        story.append(Paragraph("Your ePSA Risk Assessment", self._styles['ReportTitle']))
        story.append(Paragraph(
            f"Report ID: <b>{report.report_id}</b> | Generated: "
            f"{report.generated_at.strftime('%B %d, %Y at %I:%M %p')}",
            self._styles['Caveat']
        ))
        story.append(Spacer(1, 20))

        # ===== CORE RESULT =====
        story.append(Paragraph("Risk Estimate", self._styles['SectionHeader']))
        story.append(RiskIndicator(
            f"{core.score_percent}% - {core.risk_tier.value.title()} Risk",
            HexColor(core.color),
        ))
        story.append(Spacer(1, 10))
        story.append(self._table([
            ["Displayed range", core.confidence_range],
            ["Risk band", core.score_range],
            ["Age", str(core.age)],
            ["BMI", core.bmi_formatted],
            ["IPSS total", str(core.ipss_total)],
            ["SHIM total", str(core.shim_total)],
        ]))
        story.append(Spacer(1, 8))
        story.append(Paragraph(escape(core.action), self._styles["Normal"]))

        # ===== POST RESULT =====
        if post is not None:
            story.append(Paragraph("With PSA / MRI", self._styles['SectionHeader']))
            story.append(RiskIndicator(
                f"{post.risk_label}: {post.risk_percent_range}",
                POST_COLORS.get(post.color, HexColor("#6B7280")),
                width=360,
            ))
            story.append(Spacer(1, 10))
            rows = [
                ["Core points", str(post.core_points)],
                ["PSA points", str(post.psa_points)],
                ["PI-RADS points", str(post.pirads_points)],
                ["Total points", str(post.total_points)],
            ]
            if post.pirads_overridden:
                rows.append(["PI-RADS override", "Yes"])
            story.append(self._table(rows))

        # ===== NEXT STEPS =====
        story.append(Paragraph("Next Steps", self._styles['SectionHeader']))
        for step in report.next_steps:
            story.append(Paragraph(f"• {escape(step)}", self._styles["Normal"]))

        story.append(Spacer(1, 20))
        for caveat in CAVEATS:
            story.append(Paragraph(caveat, self._styles['Caveat']))

        doc.build(story)
        return filepath

    @staticmethod
    def _table(rows: List[List[str]]) -> Table:
        table = Table(rows, colWidths=[2.2*inch, 3.5*inch])
        table.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 10),
            ('TEXTCOLOR', (0, 0), (0, -1), HexColor("#374151")),
            ('LINEBELOW', (0, 0), (-1, -1), 0.25, HexColor("#E5E7EB")),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 6),
        ]))
        return table
