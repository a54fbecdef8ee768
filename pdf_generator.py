# pdf_generator.py
import base64
import binascii
import io
from datetime import datetime
from xml.sax.saxutils import escape

from pydantic.alias_generators import to_camel
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Image, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from prompt import HISTORY_SECTIONS

RISK_COLORS = {
    "HIGH": "#dc3545",
    "MEDIUM": "#fd7e14",
    "LOW": "#198754",
}

# camelCase keys, as stored in Scan.patient_data
HISTORY_LABELS = {
    to_camel(attr): label
    for _, fields in HISTORY_SECTIONS
    for attr, label in fields
}


def _paragraphs(text: str) -> str:
    return escape(text).replace("\n", "<br/>")


def _scan_image(image_data: str):
    try:
        raw = base64.b64decode(image_data, validate=True)
    except (binascii.Error, ValueError):
        return None
    return Image(io.BytesIO(raw), width=2.5*inch, height=2.5*inch)


def generate_scan_report(scan_data: dict, output_path: str) -> str:
    """
    Generate an ORAL CAVITY screening PDF report for a completed scan.

    scan_data keys: scan_id, scan_date, doctor_name, patient_name, risk,
    confidence, analysis, image_data, patient_data.
    """
    doc = SimpleDocTemplate(output_path, pagesize=A4)
    story = []
    styles = getSampleStyleSheet()

    title_style = ParagraphStyle(
        'CustomTitle',
        parent=styles['Heading1'],
        fontSize=22,
        textColor=colors.HexColor('#0d6efd'),
        spaceAfter=30,
        alignment=TA_CENTER,
        fontName='Helvetica-Bold'
    )

    heading_style = ParagraphStyle(
        'CustomHeading',
        parent=styles['Heading2'],
        fontSize=14,
        textColor=colors.HexColor('#1e293b'),
        spaceAfter=12,
        fontName='Helvetica-Bold'
    )

    normal_style = ParagraphStyle(
        'CustomNormal',
        parent=styles['Normal'],
        fontSize=10,
        textColor=colors.HexColor('#334155'),
        spaceAfter=8
    )

    story.append(Paragraph("ORAL CAVITY SCREENING REPORT", title_style))
    story.append(Spacer(1, 0.3*inch))

    # Scan info table
    story.append(Paragraph("Scan Information", heading_style))
    info_data = [
        ['Scan ID:', scan_data['scan_id']],
        ['Scan Date:', scan_data['scan_date']],
        ['Doctor:', scan_data.get('doctor_name') or '-'],
        ['Patient:', scan_data.get('patient_name') or '-'],
    ]
    info_table = Table(info_data, colWidths=[2*inch, 4*inch])
    info_table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (0, -1), colors.HexColor('#f8f9fa')),
        ('TEXTCOLOR', (0, 0), (-1, -1), colors.HexColor('#1e293b')),
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 12),
        ('GRID', (0, 0), (-1, -1), 1, colors.HexColor('#dee2e6'))
    ]))
    story.append(info_table)
    story.append(Spacer(1, 0.3*inch))

    # Key findings
    story.append(Paragraph("Key Findings", heading_style))
    risk = scan_data.get('risk') or 'UNKNOWN'
    risk_color = colors.HexColor(RISK_COLORS.get(risk, '#6c757d'))
    result_data = [
        ['Risk Level:', risk],
        ['Confidence:', f"{scan_data.get('confidence') or 0}%"],
    ]
    result_table = Table(result_data, colWidths=[2*inch, 4*inch])
    result_table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (0, -1), colors.HexColor('#f8f9fa')),
        ('TEXTCOLOR', (1, 0), (1, 0), risk_color),
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('GRID', (0, 0), (-1, -1), 1, colors.HexColor('#dee2e6'))
    ]))
    story.append(result_table)
    story.append(Spacer(1, 0.3*inch))

    # Patient history
    patient_data = scan_data.get('patient_data') or {}
    history_rows = [
        [f"{label}:", str(patient_data[key])]
        for key, label in HISTORY_LABELS.items()
        if patient_data.get(key) is not None
    ]
    if history_rows:
        story.append(Paragraph("Patient History", heading_style))
        history_table = Table(history_rows, colWidths=[2.5*inch, 3.5*inch])
        history_table.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
            ('GRID', (0, 0), (-1, -1), 1, colors.HexColor('#dee2e6'))
        ]))
        story.append(history_table)
        story.append(Spacer(1, 0.3*inch))

    image = _scan_image(scan_data.get('image_data') or '')
    if image is not None:
        story.append(Paragraph("Oral Cavity Image", heading_style))
        story.append(image)
        story.append(Spacer(1, 0.2*inch))

    if scan_data.get('analysis'):
        story.append(Paragraph("Clinical Assessment", heading_style))
        story.append(Paragraph(_paragraphs(scan_data['analysis']), normal_style))

    # Footer
    story.append(Spacer(1, 0.5*inch))
    story.append(Paragraph(
        "AI-assisted screening only. Findings must be confirmed by a qualified clinician.",
        ParagraphStyle('Disclaimer', fontSize=9, textColor=colors.HexColor('#6c757d'), alignment=TA_CENTER)
    ))
    story.append(Paragraph(
        f"Generated on {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        ParagraphStyle('Footer', fontSize=9, textColor=colors.HexColor('#adb5bd'), alignment=TA_CENTER)
    ))

    doc.build(story)
    return output_path
