# labtrack/services/export.py
"""Asset register export to xlsx, pdf and docx streams."""

import io
from datetime import datetime
from docx import Document
import pandas as pd
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph
from labtrack.utils import format_timestamp

COLUMNS = [
    'Sr No', 'Asset ID', 'Name of Supply', 'Type', 'Lab', 'Date',
    'Invoice Number', 'Rate', 'Total Amount', 'Consumable', 'Status', 'Remark'
]
MIMETYPES = {
    'xlsx': 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    'pdf': 'application/pdf',
    'docx': 'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
}


def asset_rows(assets):
    """Flatten assets into export rows keyed by COLUMNS."""
    rows = []
    for asset in assets:
        rows.append({
            'Sr No': asset.sr_no,
            'Asset ID': asset.asset_id or '',
            'Name of Supply': asset.name_of_supply,
            'Type': asset.type.name if asset.type else '',
            'Lab': asset.lab.lab_identifier if asset.lab else '',
            'Date': asset.date.isoformat() if asset.date else '',
            'Invoice Number': asset.invoice_number or '',
            'Rate': float(asset.rate or 0),
            'Total Amount': float(asset.total_amount or 0),
            'Consumable': 'Yes' if asset.is_consumable else 'No',
            'Status': asset.approval_status.replace('_', ' ').title(),
            'Remark': asset.remark or ''
        })
    return rows


def _title(lab_identifier):
    return (
        f"Asset Register - {lab_identifier}"
        if lab_identifier
        else "Full Asset Register"
    )


def generate_excel(data):
    """Generate Excel file as a stream.

    Args:
        data: List of dictionaries produced by asset_rows

    Returns:
        BytesIO: Excel file stream
    """
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine='xlsxwriter') as writer:
        df = pd.DataFrame(data, columns=COLUMNS)
        df.to_excel(writer, sheet_name='Asset Register', index=False)
        workbook = writer.book
        worksheet = writer.sheets['Asset Register']

        header_format = workbook.add_format({
            'bold': True,
            'bg_color': '#4F81BD',
            'font_color': 'white',
            'border': 1
        })

        for col_num, value in enumerate(df.columns.values):
            worksheet.write(0, col_num, value, header_format)
            longest = df[value].astype(str).apply(len).max() if len(df) else 0
            worksheet.set_column(col_num, col_num, max(longest, len(value)) + 2)

    output.seek(0)
    return output


def generate_pdf(data, lab_identifier=None):
    """Generate PDF file as a stream.

    Args:
        data: List of dictionaries produced by asset_rows
        lab_identifier: Optional lab identifier for the title

    Returns:
        BytesIO: PDF file stream
    """
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=landscape(A4),
        rightMargin=36,
        leftMargin=36,
        topMargin=36,
        bottomMargin=36
    )

    styles = getSampleStyleSheet()
    timestamp = format_timestamp(datetime.utcnow())
    elements = [
        Paragraph(_title(lab_identifier), styles['Title']),
        Paragraph(
            f"Generated on: {timestamp.strftime('%Y-%m-%d %H:%M')}",
            styles['Normal']
        ),
    ]

    table_data = [COLUMNS]
    for row in data:
        table_data.append([str(row[column]) for column in COLUMNS])

    table = Table(table_data, repeatRows=1)
    table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.grey),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, 0), 8),
        ('BOTTOMPADDING', (0, 0), (-1, 0), 8),
        ('TEXTCOLOR', (0, 1), (-1, -1), colors.black),
        ('FONTNAME', (0, 1), (-1, -1), 'Helvetica'),
        ('FONTSIZE', (0, 1), (-1, -1), 7),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.black),
        ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
        ('LEFTPADDING', (0, 0), (-1, -1), 4),
        ('RIGHTPADDING', (0, 0), (-1, -1), 4),
    ]))
    elements.append(table)

    doc.build(elements)
    buffer.seek(0)
    return buffer


def generate_word(data, lab_identifier=None):
    """Generate Word document as a stream."""
    doc = Document()
    doc.add_heading(_title(lab_identifier), 0)

    timestamp = format_timestamp(datetime.utcnow())
    doc.add_paragraph(f"Generated on: {timestamp.strftime('%Y-%m-%d %H:%M')}")

    table = doc.add_table(rows=1, cols=len(COLUMNS))
    table.style = 'Table Grid'
    for cell, header in zip(table.rows[0].cells, COLUMNS):
        cell.text = header

    for row in data:
        for cell, column in zip(table.add_row().cells, COLUMNS):
            cell.text = str(row[column])

    buffer = io.BytesIO()
    doc.save(buffer)
    buffer.seek(0)
    return buffer


GENERATORS = {
    'xlsx': lambda data, lab_identifier: generate_excel(data),
    'pdf': generate_pdf,
    'docx': generate_word,
}


def export_assets(assets, fmt, lab_identifier=None):
    """Render assets in the requested format.

    Returns:
        tuple: (stream, mimetype, filename)

    Raises:
        ValueError: unsupported format
    """
    if fmt not in GENERATORS:
        raise ValueError(f"Format not supported: {fmt}")
    stream = GENERATORS[fmt](asset_rows(assets), lab_identifier)
    stamp = format_timestamp(datetime.utcnow()).strftime('%Y%m%d_%H%M%S')
    scope = lab_identifier or 'all'
    return stream, MIMETYPES[fmt], f"assets_{scope}_{stamp}.{fmt}"
