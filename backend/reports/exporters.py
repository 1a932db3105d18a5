"""PDF (reportlab) and Excel (openpyxl) renderings of report tables"""
import io

from django.utils import timezone
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas as rlcanvas

PDF_CONTENT_TYPE = 'application/pdf'
EXCEL_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'

ROW_HEIGHT = 7 * mm
MARGIN = 15 * mm
HEADER_HEIGHT = 18 * mm


def _fit(text, width, font_name, font_size, pdf):
    text = '' if text is None else str(text)
    while text and pdf.stringWidth(text, font_name, font_size) > width - 2 * mm:
        text = text[:-1]
    return text


def build_pdf(title, headers, rows):
    """Render a paginated table with title and generation date; returns PDF bytes"""
    buffer = io.BytesIO()
    page_size = landscape(A4) if len(headers) > 5 else A4
    width, height = page_size
    pdf = rlcanvas.Canvas(buffer, pagesize=page_size)
    pdf.setTitle(title)
    column_width = (width - 2 * MARGIN) / max(len(headers), 1)
    generated = timezone.localtime().strftime('%Y-%m-%d %H:%M')
    page = 1

    def draw_page_header():
        pdf.setFillColor(colors.lightgrey)
        pdf.rect(0, height - HEADER_HEIGHT, width, HEADER_HEIGHT, fill=1, stroke=0)
        pdf.setFillColor(colors.black)
        pdf.setFont('Helvetica-Bold', 14)
        pdf.drawCentredString(width / 2, height - HEADER_HEIGHT + 7 * mm, title)
        pdf.setFont('Helvetica', 9)
        pdf.drawString(MARGIN, height - HEADER_HEIGHT - 6 * mm, f'Generated: {generated}')
        pdf.drawRightString(width - MARGIN, height - HEADER_HEIGHT - 6 * mm, f'Page {page}')
        y = height - HEADER_HEIGHT - 14 * mm
        pdf.setFont('Helvetica-Bold', 10)
        for index, header in enumerate(headers):
            pdf.drawString(MARGIN + index * column_width, y, _fit(header, column_width, 'Helvetica-Bold', 10, pdf))
        pdf.line(MARGIN, y - 2 * mm, width - MARGIN, y - 2 * mm)
        return y - ROW_HEIGHT

    y = draw_page_header()
    pdf.setFont('Helvetica', 9)
    if not rows:
        pdf.drawString(MARGIN, y, 'No data available')
    for row in rows:
        if y < MARGIN:
            pdf.showPage()
            page += 1
            y = draw_page_header()
            pdf.setFont('Helvetica', 9)
        for index, value in enumerate(row):
            pdf.drawString(MARGIN + index * column_width, y, _fit(value, column_width, 'Helvetica', 9, pdf))
        y -= ROW_HEIGHT

    pdf.setFont('Helvetica', 8)
    pdf.setFillColor(colors.grey)
    pdf.drawCentredString(width / 2, 8 * mm, f'{len(rows)} row(s)')
    pdf.showPage()
    pdf.save()
    return buffer.getvalue()


def build_excel(title, headers, rows, sheet_name=None):
    """Render a single-sheet workbook with a bold header row; returns XLSX bytes"""
    workbook = Workbook()
    sheet = workbook.active
    # Excel sheet titles are limited to 31 characters
    sheet.title = (sheet_name or title)[:31]
    sheet.append(headers)
    for cell in sheet[1]:
        cell.font = Font(bold=True)
        cell.fill = PatternFill(start_color='DDDDDD', end_color='DDDDDD', fill_type='solid')
    for row in rows:
        sheet.append(row)

    for index, header in enumerate(headers, start=1):
        longest = max([len(str(header))] + [len(str(row[index - 1])) for row in rows if len(row) >= index])
        sheet.column_dimensions[get_column_letter(index)].width = min(longest + 2, 60)
    sheet.freeze_panes = 'A2'

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def export_filename(kind, extension):
    return f"{kind}-report-{timezone.localtime().strftime('%Y%m%d-%H%M%S')}.{extension}"
