"""PDF, HTML, CSV and JSON exports built from already-fetched data."""
import csv
import html
import io
import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.pdfgen import canvas as pdf_canvas
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from healthcare_pro.services.prompts import mood_label

BRAND = colors.HexColor("#667eea")
HEALTH_BRAND = colors.HexColor("#0066cc")
INSIGHT_CHARS = 80
CSV_FIELDS = ("date", "mood", "emoji", "emotions", "activities", "tags", "notes", "sleep_hours", "energy_level",
              "created_at", "updated_at")


class NumberedCanvas(pdf_canvas.Canvas):
    """Defers page output so the footer can print the total page count."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_pages: List[dict] = []

    def showPage(self):
        self._saved_pages.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        total = len(self._saved_pages)
        for state in self._saved_pages:
            self.__dict__.update(state)
            self._draw_footer(total)
            super().showPage()
        super().save()

    def _draw_footer(self, total: int):
        width, _ = self._pagesize
        self.setFont("Helvetica", 8)
        self.setFillColor(colors.grey)
        self.drawString(36, 20, "Generated by HealthCare Pro")
        self.drawRightString(width - 36, 20, f"Page {self._pageNumber} of {total}")


def _table(rows: List[List[str]], header_color, col_widths: Optional[Sequence[float]] = None) -> Table:
    tbl = Table(rows, colWidths=col_widths, repeatRows=1)
    tbl.setStyle(TableStyle([
        ("BOX", (0, 0), (-1, -1), 0.5, colors.grey),
        ("INNERGRID", (0, 0), (-1, -1), 0.25, colors.lightgrey),
        ("BACKGROUND", (0, 0), (-1, 0), header_color),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 8),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
    ]))
    return tbl


def _build(story: list) -> bytes:
    buf = io.BytesIO()
    doc = SimpleDocTemplate(buf, pagesize=A4, leftMargin=36, rightMargin=36, topMargin=36, bottomMargin=48)
    doc.build(story, canvasmaker=NumberedCanvas)
    return buf.getvalue()


def _today() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


def _truncate(text: str, limit: int = INSIGHT_CHARS) -> str:
    text = str(text)
    return text[:limit] + ("..." if len(text) > limit else "")


def _insight_lines(insights: Optional[Dict[str, Any]]) -> List[str]:
    if not insights:
        return []
    keys = ("weeklyMoodSummary", "triggerPatternDetection", "behavioralSuggestion")
    return [str(insights[k]) for k in keys if insights.get(k)]


# ---- Mood analytics ----

def mood_analytics_pdf(summary: Dict[str, Any], insights: Optional[Dict[str, Any]] = None) -> bytes:
    styles = getSampleStyleSheet()
    story = [
        Paragraph("Mood Analytics Report", styles["Title"]),
        Paragraph(f"Generated on {_today()}", styles["Normal"]),
        Paragraph(f"Timeframe: {html.escape(str(summary.get('timeframe', '')))}", styles["Normal"]),
        Spacer(1, 12),
        Paragraph("Key Metrics", styles["Heading2"]),
        Paragraph(f"Average Mood: {summary.get('avg_mood', 0)}/5", styles["Normal"]),
        Paragraph(f"Most Common Tag: {html.escape(str(summary.get('most_common_tag') or '-'))}", styles["Normal"]),
        Paragraph(f"Total Entries: {summary.get('total_entries', 0)}", styles["Normal"]),
        Spacer(1, 12),
    ]

    trend = summary.get("mood_trend") or []
    if trend:
        story.append(Paragraph("Mood Trend Data", styles["Heading2"]))
        rows = [["Date", "Mood Score", "Mood Level"]]
        rows += [[str(p.get("date")), str(p.get("mood")), mood_label(int(p.get("mood") or 0))] for p in trend]
        story += [_table(rows, BRAND, [160, 100, 120]), Spacer(1, 12)]

    tags = summary.get("top_tags") or []
    if tags:
        story.append(Paragraph("Most Common Activities", styles["Heading2"]))
        rows = [["Activity", "Count"]] + [[str(tag), str(count)] for tag, count in tags]
        story += [_table(rows, BRAND, [260, 80]), Spacer(1, 12)]

    lines = _insight_lines(insights)
    if lines:
        story.append(Paragraph("AI Insights", styles["Heading2"]))
        story += [Paragraph(html.escape(_truncate(line)), styles["Normal"]) for line in lines]
    return _build(story)


def _metric_cards(summary: Dict[str, Any]) -> str:
    metrics = [
        ("Avg Mood This Period", summary.get("avg_mood", 0)),
        ("Most Common Tag", summary.get("most_common_tag") or "-"),
        ("Sleep Avg", summary.get("avg_sleep_hours") if summary.get("avg_sleep_hours") is not None else "-"),
        ("Energy Avg", summary.get("avg_energy_level") if summary.get("avg_energy_level") is not None else "-"),
        ("Entries", summary.get("total_entries", 0)),
    ]
    return "".join(
        f'<div class="metric-card"><div class="metric-value">{html.escape(str(value))}</div>'
        f'<div class="metric-label">{html.escape(title)}</div></div>'
        for title, value in metrics
    )


_HTML_STYLE = """
body { font-family: -apple-system, 'Segoe UI', Roboto, sans-serif; color: #1a202c; background: #f7fafc; margin: 0; }
.report-container { max-width: 900px; margin: 0 auto; background: #fff; }
.report-header { background: #667eea; color: #fff; padding: 32px; text-align: center; }
.report-content { padding: 32px; }
.metrics-grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(150px, 1fr)); gap: 16px; }
.metric-card { border: 1px solid #e2e8f0; border-radius: 8px; padding: 16px; text-align: center; }
.metric-value { font-size: 1.6em; font-weight: 700; color: #667eea; }
.section { margin-bottom: 32px; }
.data-table { width: 100%; border-collapse: collapse; }
.data-table th { background: #667eea; color: #fff; padding: 8px; text-align: left; }
.data-table td { padding: 8px; border-bottom: 1px solid #e2e8f0; }
.insight-card { border-left: 4px solid #667eea; padding: 12px 16px; margin-bottom: 12px; background: #f7fafc; }
.mood-badge { color: #fff; border-radius: 12px; padding: 2px 10px; }
.mood-1 { background: #ef4444; } .mood-2 { background: #f97316; } .mood-3 { background: #eab308; }
.mood-4 { background: #22c55e; } .mood-5 { background: #3b82f6; }
@media print { body { background: #fff; } }
"""


def _html_table(header: Sequence[str], rows: List[List[str]]) -> str:
    head = "".join(f"<th>{html.escape(h)}</th>" for h in header)
    body = "".join("<tr>" + "".join(f"<td>{cell}</td>" for cell in row) + "</tr>" for row in rows)
    return f'<table class="data-table"><thead><tr>{head}</tr></thead><tbody>{body}</tbody></table>'


def _html_page(title: str, subtitle: str, sections: List[str]) -> str:
    return (
        '<!DOCTYPE html>\n<html lang="en">\n<head>\n<meta charset="UTF-8">\n'
        '<meta name="viewport" content="width=device-width, initial-scale=1.0">\n'
        f"<title>{html.escape(title)}</title>\n<style>{_HTML_STYLE}</style>\n</head>\n<body>\n"
        '<div class="report-container">\n'
        f'<div class="report-header"><h1>{html.escape(title)}</h1><p>{html.escape(subtitle)}</p></div>\n'
        f'<div class="report-content">{"".join(sections)}</div>\n'
        "</div>\n</body>\n</html>\n"
    )


def _section(title: str, inner: str) -> str:
    return f'<div class="section"><h2 class="section-title">{html.escape(title)}</h2>{inner}</div>'


def mood_analytics_html(summary: Dict[str, Any], insights: Optional[Dict[str, Any]] = None) -> str:
    timeframe = str(summary.get("timeframe", ""))
    sections = [_section("Key Metrics", f'<div class="metrics-grid">{_metric_cards(summary)}</div>')]

    trend = summary.get("mood_trend") or []
    if trend:
        rows = []
        for point in trend:
            mood = int(point.get("mood") or 0)
            rows.append([
                html.escape(str(point.get("date"))),
                str(mood),
                f'<span class="mood-badge mood-{mood}">{html.escape(mood_label(mood))}</span>',
            ])
        sections.append(_section("Mood Trend Data", _html_table(("Date", "Mood Score", "Mood Level"), rows)))

    tags = summary.get("top_tags") or []
    if tags:
        rows = [[html.escape(str(tag)), str(count)] for tag, count in tags]
        sections.append(_section("Most Common Activities", _html_table(("Activity", "Count"), rows)))

    if insights:
        cards = "".join(
            f'<div class="insight-card"><div class="insight-title">{html.escape(key)}</div>'
            f'<div class="insight-content">{html.escape(str(value))}</div></div>'
            for key, value in insights.items()
            if isinstance(value, str) and value
        )
        sections.append(_section("AI Insights", cards))

    return _html_page(
        f"Mood Analytics Report - {timeframe}",
        f"{timeframe} Summary, generated on {_today()}",
        sections,
    )


# ---- Health summary ----

def health_summary_pdf(summary: Dict[str, Any], patient: str = "") -> bytes:
    styles = getSampleStyleSheet()
    story = [
        Paragraph("Health Summary Report", styles["Title"]),
        Paragraph(f"Generated: {_today()}", styles["Normal"]),
    ]
    if patient:
        story.append(Paragraph(f"Patient: {html.escape(patient)}", styles["Normal"]))
    story += [
        Spacer(1, 12),
        Paragraph("Summary Statistics", styles["Heading2"]),
        Paragraph(f"Total Symptom Reports: {summary.get('totalSymptomReports', 0)}", styles["Normal"]),
        Paragraph(f"Total Prescription Analyses: {summary.get('totalPrescriptionAnalyses', 0)}", styles["Normal"]),
        Paragraph(f"Total Mood Entries: {summary.get('totalMoodEntries', 0)}", styles["Normal"]),
        Spacer(1, 12),
    ]

    conditions = summary.get("commonConditions") or []
    if conditions:
        story.append(Paragraph("Common Conditions", styles["Heading2"]))
        rows = [["Condition", "Frequency"]] + [[str(c["condition"]), str(c["count"])] for c in conditions]
        story += [_table(rows, HEALTH_BRAND, [300, 100]), Spacer(1, 12)]

    medications = summary.get("commonMedications") or []
    if medications:
        story.append(Paragraph("Common Medications", styles["Heading2"]))
        rows = [["Medication", "Frequency"]] + [[str(m["medication"]), str(m["count"])] for m in medications]
        story += [_table(rows, HEALTH_BRAND, [300, 100]), Spacer(1, 12)]

    risks = summary.get("riskFactors") or []
    if risks:
        story.append(Paragraph("Risk Factors & Recommendations", styles["Heading2"]))
        cell = styles["BodyText"]
        rows = [["Risk Factor", "Severity", "Recommendation"]]
        rows += [
            [Paragraph(html.escape(r["description"]), cell), r["severity"], Paragraph(html.escape(r["recommendation"]), cell)]
            for r in risks
        ]
        story.append(_table(rows, HEALTH_BRAND, [200, 70, 250]))
    return _build(story)


def health_summary_html(summary: Dict[str, Any]) -> str:
    stats = _html_table(("Metric", "Value"), [
        ["Total Symptom Reports", str(summary.get("totalSymptomReports", 0))],
        ["Total Prescription Analyses", str(summary.get("totalPrescriptionAnalyses", 0))],
        ["Total Mood Entries", str(summary.get("totalMoodEntries", 0))],
    ])
    sections = [_section("Summary Statistics", stats)]
    conditions = summary.get("commonConditions") or []
    if conditions:
        rows = [[html.escape(str(c["condition"])), str(c["count"])] for c in conditions]
        sections.append(_section("Common Conditions", _html_table(("Condition", "Frequency"), rows)))
    medications = summary.get("commonMedications") or []
    if medications:
        rows = [[html.escape(str(m["medication"])), str(m["count"])] for m in medications]
        sections.append(_section("Common Medications", _html_table(("Medication", "Frequency"), rows)))
    risks = summary.get("riskFactors") or []
    if risks:
        rows = [[html.escape(r["description"]), html.escape(r["severity"]), html.escape(r["recommendation"])] for r in risks]
        sections.append(_section("Risk Factors & Recommendations",
                                 _html_table(("Risk Factor", "Severity", "Recommendation"), rows)))
    return _html_page("Health Summary Report", f"Generated on {_today()}", sections)


# ---- Raw mood entries ----

def _plain(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def mood_entries_json(entries: List[Dict[str, Any]]) -> str:
    rows = [{k: _plain(e.get(k)) for k in ("id",) + CSV_FIELDS} for e in entries]
    return json.dumps({"exportedAt": datetime.now(timezone.utc).isoformat(), "entries": rows}, indent=2)


def mood_entries_csv(entries: List[Dict[str, Any]]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(CSV_FIELDS)
    for entry in entries:
        row = []
        for key in CSV_FIELDS:
            value = entry.get(key)
            if isinstance(value, list):
                value = ";".join(str(v) for v in value)
            row.append("" if value is None else _plain(value))
        writer.writerow(row)
    return buf.getvalue()
