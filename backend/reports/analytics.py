"""Aggregations behind the dashboard, usage report, exports and assistant"""
from datetime import timedelta

from django.db.models import Sum, Count
from django.db.models.functions import TruncDate
from django.utils import timezone

from backend.catalog.models import Category, Item
from backend.inventory.models import ItemOut
from backend.requisitions.models import Request

REPORT_KINDS = ('inventory', 'low_stock', 'items_out', 'usage')

REPORT_TITLES = {
    'inventory': 'Inventory Report',
    'low_stock': 'Low Stock Report',
    'items_out': 'Items Out Report',
    'usage': 'Usage Report',
}


def dashboard_stats():
    return {
        'totalItems': Item.objects.count(),
        'totalCategories': Category.objects.count(),
        'itemsOut': ItemOut.objects.count(),
        'lowStockItems': Item.objects.low_stock().count(),
        'pendingRequests': Request.objects.filter(status=Request.STATUS_PENDING).count(),
    }


def window_start(days):
    """Start of the first day in a window of ``days`` days ending today"""
    today = timezone.localdate()
    return today - timedelta(days=days - 1)


def usage_by_day(days=7):
    """Units issued and distinct people per day, zero-filled for the whole window"""
    start = window_start(days)
    rows = ItemOut.objects.filter(date_time__date__gte=start).annotate(
        day=TruncDate('date_time')
    ).values('day').annotate(
        items=Sum('quantity'),
        users=Count('person_name', distinct=True),
    )
    by_day = {row['day']: row for row in rows}

    usage = []
    for offset in range(days):
        day = start + timedelta(days=offset)
        row = by_day.get(day)
        usage.append({
            'date': day.isoformat(),
            'items': row['items'] if row else 0,
            'users': row['users'] if row else 0,
        })
    return usage


def top_items(days=None, limit=5):
    queryset = ItemOut.objects.all()
    if days:
        queryset = queryset.filter(date_time__date__gte=window_start(days))
    rows = queryset.values('item_id', 'item__name', 'item__category__name').annotate(
        count=Sum('quantity')
    ).order_by('-count', 'item__name')[:limit]
    return [
        {
            'item_id': row['item_id'],
            'name': row['item__name'] or 'Unknown Item',
            'count': row['count'],
            'category': row['item__category__name'] or 'Unknown',
        }
        for row in rows
    ]


def top_people(days=None, limit=5):
    queryset = ItemOut.objects.all()
    if days:
        queryset = queryset.filter(date_time__date__gte=window_start(days))
    rows = queryset.values('person_name').annotate(
        count=Sum('quantity'),
        checkouts=Count('id'),
    ).order_by('-count', 'person_name')[:limit]
    return [
        {'name': row['person_name'], 'count': row['count'], 'checkouts': row['checkouts']}
        for row in rows
    ]


def usage_report(days=7):
    usage = usage_by_day(days)
    total_items = sum(day['items'] for day in usage)
    return {
        'days': days,
        'usage': usage,
        'topItems': top_items(days),
        'topUsers': top_people(days),
        'summary': {
            'totalItemsIssued': total_items,
            'maxActiveUsers': max((day['users'] for day in usage), default=0),
            'avgDailyUsage': round(total_items / (len(usage) or 1)),
        },
    }


def report_table(kind, days=7):
    """
    Tabular data for an export.

    Returns:
        (title, headers, rows) where rows are lists of plain values
    """
    if kind == 'inventory':
        items = Item.objects.select_related('category', 'vendor').order_by('name')
        headers = ['Name', 'Category', 'Quantity', 'Threshold', 'Unit Price', 'Vendor', 'Status']
        rows = [
            [
                item.name,
                item.category.name if item.category else 'Uncategorized',
                item.quantity,
                item.effective_threshold,
                float(item.unit_price) if item.unit_price is not None else '',
                item.display_vendor_name or '',
                'Low Stock' if item.is_low_stock else 'In Stock',
            ]
            for item in items
        ]
    elif kind == 'low_stock':
        items = Item.objects.low_stock().select_related('category').order_by('quantity', 'name')
        headers = ['Name', 'Category', 'Quantity', 'Threshold', 'Status']
        rows = [
            [
                item.name,
                item.category.name if item.category else 'Uncategorized',
                item.quantity,
                item.effective_threshold,
                'Out of Stock' if item.quantity <= 0 else 'Low Stock',
            ]
            for item in items
        ]
    elif kind == 'items_out':
        records = ItemOut.objects.select_related('item__category', 'issued_by').order_by('-date_time', '-id')
        headers = ['Date', 'Person', 'Item', 'Category', 'Quantity', 'Issued By']
        rows = [
            [
                timezone.localtime(record.date_time).strftime('%Y-%m-%d %H:%M'),
                record.person_name,
                record.item.name if record.item else 'Unknown Item',
                record.item.category.name if record.item and record.item.category else 'Unknown Category',
                record.quantity,
                record.issued_by.full_name if record.issued_by else '',
            ]
            for record in records
        ]
    elif kind == 'usage':
        headers = ['Date', 'Items Issued', 'Active Users']
        rows = [[day['date'], day['items'], day['users']] for day in usage_by_day(days)]
    else:
        raise ValueError(f'Unknown report kind: {kind}')
    return REPORT_TITLES[kind], headers, rows
