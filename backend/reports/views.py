import logging

from django.http import HttpResponse
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.core.utils import error_response
from .analytics import REPORT_KINDS, dashboard_stats as compute_dashboard_stats, report_table, usage_report as compute_usage_report
from .exporters import PDF_CONTENT_TYPE, EXCEL_CONTENT_TYPE, build_pdf, build_excel, export_filename

logger = logging.getLogger('backend.reports')

MAX_DAYS = 365


def parse_days(request, default=7):
    try:
        days = int(request.query_params.get('days', default))
    except (TypeError, ValueError):
        return None
    if days < 1 or days > MAX_DAYS:
        return None
    return days


def parse_kind(request):
    kind = request.query_params.get('kind', 'inventory')
    return kind if kind in REPORT_KINDS else None


def file_response(content, content_type, filename):
    response = HttpResponse(content, content_type=content_type)
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    response['X-Content-Type-Options'] = 'nosniff'
    return response


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard_stats(request):
    """Headline counts for the dashboard"""
    return Response(compute_dashboard_stats())


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def usage_report(request):
    """Per-day usage, top items and top people for the last ``days`` days"""
    days = parse_days(request)
    if days is None:
        return error_response(f'days must be a whole number between 1 and {MAX_DAYS}')
    return Response(compute_usage_report(days))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def export_pdf(request):
    """Download a report as PDF"""
    kind = parse_kind(request)
    days = parse_days(request)
    if kind is None:
        return error_response(f"kind must be one of: {', '.join(REPORT_KINDS)}")
    if days is None:
        return error_response(f'days must be a whole number between 1 and {MAX_DAYS}')

    title, headers, rows = report_table(kind, days)
    content = build_pdf(title, headers, rows)
    logger.info(f"PDF {kind} report generated for {request.user.username} ({len(rows)} rows)")
    return file_response(content, PDF_CONTENT_TYPE, export_filename(kind, 'pdf'))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def export_excel(request):
    """Download a report as an Excel workbook"""
    kind = parse_kind(request)
    days = parse_days(request)
    if kind is None:
        return error_response(f"kind must be one of: {', '.join(REPORT_KINDS)}")
    if days is None:
        return error_response(f'days must be a whole number between 1 and {MAX_DAYS}')

    title, headers, rows = report_table(kind, days)
    content = build_excel(title, headers, rows, sheet_name=kind)
    logger.info(f"Excel {kind} report generated for {request.user.username} ({len(rows)} rows)")
    return file_response(content, EXCEL_CONTENT_TYPE, export_filename(kind, 'xlsx'))
