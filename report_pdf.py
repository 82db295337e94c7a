# report_pdf.py
"""
Report exports: the lifting report as a pandas DataFrame / CSV and as a
reportlab PDF, and the season stock summary as a PDF.
"""

import numbers
from io import BytesIO
from typing import Dict, Iterable, List

import pandas as pd
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_LEFT
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from records import LiftingRecord
from timezone_utils import format_iso_date, get_local_time

LIFTING_COLUMNS = [
    "Date", "DO No.", "Godown", "RST No.", "Truck No.",
    "Gross (Qtls)", "Tare (Qtls)", "Net (Qtls)", "New Bags", "Used Bags",
]

HEADER_COLOR = colors.HexColor("#92400e")

TABLE_STYLE = [
    ("BACKGROUND", (0, 0), (-1, 0), HEADER_COLOR),
    ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
    ("ALIGN", (0, 0), (-1, -1), "CENTER"),
    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
    ("FONTSIZE", (0, 0), (-1, 0), 10),
    ("FONTSIZE", (0, 1), (-1, -1), 9),
    ("GRID", (0, 0), (-1, -1), 0.3, colors.grey),
    ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.whitesmoke, colors.lightgrey]),
    ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
]


def lifting_report_dataframe(records: Iterable[LiftingRecord]) -> pd.DataFrame:
    rows = [
        {
            "Date": format_iso_date(r.lifting_date),
            "DO No.": r.do_no,
            "Godown": r.godown,
            "RST No.": r.rst_no,
            "Truck No.": r.truck_no,
            "Gross (Qtls)": round(r.gross_lifted_quantity, 3),
            "Tare (Qtls)": round(r.total_bag_weight, 3),
            "Net (Qtls)": round(r.net_paddy_quantity, 3),
            "New Bags": r.number_of_new_bags,
            "Used Bags": r.number_of_used_bags,
        }
        for r in records
    ]
    return pd.DataFrame(rows, columns=LIFTING_COLUMNS)


def lifting_report_csv(records: Iterable[LiftingRecord]) -> bytes:
    return lifting_report_dataframe(records).to_csv(index=False).encode("utf-8")


def _cell(value) -> str:
    if value is None:
        return ""
    if isinstance(value, numbers.Integral):
        return str(int(value))
    if isinstance(value, numbers.Number):
        return f"{float(value):,.3f}"
    return str(value)


def _styles():
    styles = getSampleStyleSheet()
    return {
        "title": ParagraphStyle("MMTitle", parent=styles["Title"], alignment=TA_CENTER, fontSize=18),
        "subtitle": ParagraphStyle("MMSubtitle", parent=styles["Heading3"], alignment=TA_CENTER, fontSize=12),
        "filters": ParagraphStyle("MMFilters", parent=styles["BodyText"], alignment=TA_CENTER, fontSize=10),
        "body": ParagraphStyle("MMBody", parent=styles["BodyText"], alignment=TA_LEFT, fontSize=9),
        "heading": styles["Heading3"],
    }


def _table(data: List[List[str]], bold_last_row: bool = False) -> Table:
    table = Table(data, repeatRows=1)
    style = list(TABLE_STYLE)
    if bold_last_row:
        style.append(("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"))
    table.setStyle(TableStyle(style))
    return table


def _document(buffer: BytesIO) -> SimpleDocTemplate:
    return SimpleDocTemplate(
        buffer,
        pagesize=landscape(A4),
        leftMargin=25,
        rightMargin=25,
        topMargin=35,
        bottomMargin=25,
    )


def generate_lifting_report_pdf(report: Dict, username: str, season: str, filters_text: str) -> bytes:
    """PDF of a filtered lifting report (``filter_lifting_report`` output) with a totals row."""
    buffer = BytesIO()
    doc = _document(buffer)
    styles = _styles()

    elements = [
        Paragraph("Paddy Lifting Report", styles["title"]),
        Paragraph(f"{username} - Season {season}", styles["subtitle"]),
        Paragraph(filters_text, styles["filters"]),
        Spacer(1, 12),
    ]

    df = lifting_report_dataframe(report["records"])
    if df.empty:
        elements.append(Paragraph("No records available for the selected filters.", styles["body"]))
    else:
        data = [list(df.columns)]
        for _, row in df.iterrows():
            data.append([_cell(row[col]) for col in df.columns])
        totals = report["totals"]
        data.append([
            "Total", "", "", "", "",
            _cell(totals["gross"]), _cell(totals["tare"]), _cell(totals["net"]),
            _cell(totals["new_bags"]), _cell(totals["used_bags"]),
        ])
        elements.append(_table(data, bold_last_row=True))

    elements.append(Spacer(1, 12))
    elements.append(Paragraph(f"Generated {get_local_time().strftime('%d-%m-%Y %H:%M')}", styles["body"]))
    doc.build(elements)
    return buffer.getvalue()


def generate_stock_summary_pdf(summary: Dict, username: str, season: str) -> bytes:
    """PDF of ``DashboardMetrics.get_season_summary`` output."""
    buffer = BytesIO()
    doc = _document(buffer)
    styles = _styles()

    elements = [
        Paragraph("Stock Summary", styles["title"]),
        Paragraph(f"{username} - Season {season}", styles["subtitle"]),
        Spacer(1, 12),
    ]

    paddy = summary["paddy_stock"]
    overview = [
        ["Item", "Quantity"],
        ["Paddy allotted (Qtls)", _cell(summary["total_allotted"])],
        ["Paddy lifted (Qtls)", _cell(summary["total_lifted"])],
        ["Paddy pending (Qtls)", _cell(summary["total_pending"])],
        ["Paddy in stock (Qtls)", _cell(paddy["stock"])],
        ["Work in progress (Qtls)", _cell(summary["current_wip"])],
        ["Rice produced (Qtls)", _cell(summary["rice_produced"])],
        ["Rice delivered (Qtls)", _cell(summary["deliveries"]["total_delivered"])],
        ["Plain rice stock (Qtls)", _cell(summary["plain_rice_stock"])],
        ["FRK stock (Qtls)", _cell(summary["frk_stock"])],
    ]
    elements.append(_table(overview))

    godowns = summary.get("godowns") or []
    if godowns:
        elements.append(Spacer(1, 12))
        elements.append(Paragraph("Godown-wise position", styles["heading"]))
        data = [["Godown", "Allotted (Qtls)", "Lifted (Qtls)", "Pending (Qtls)"]]
        for g in godowns:
            data.append([g["godown"], _cell(g["allotted"]), _cell(g["lifted"]), _cell(g["pending"])])
        elements.append(_table(data))

    elements.append(Spacer(1, 12))
    elements.append(Paragraph(f"Generated {get_local_time().strftime('%d-%m-%Y %H:%M')}", styles["body"]))
    doc.build(elements)
    return buffer.getvalue()
