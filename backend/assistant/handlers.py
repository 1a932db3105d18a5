"""Canned data queries answering each assistant intent"""
from datetime import timedelta
from decimal import Decimal
from difflib import get_close_matches

from django.db.models import Count, Sum
from django.urls import reverse
from django.utils import timezone

from backend.catalog.models import Category, Item
from backend.inventory.models import ItemOut
from backend.reports.analytics import REPORT_TITLES, top_items, top_people
from backend.requisitions.models import Request

HELP_LINES = [
    "• Search for items by typing 'search for [item name]'",
    "• Check user activity with 'user stats'",
    "• Get inventory summary with 'weekly summary'",
    "• Find low stock items with 'low stock items'",
    "• See empty shelves with 'out of stock'",
    "• Browse a category with 'items in [category]' or 'list categories'",
    "• Check one item with 'stock of [item]' or 'who took [item]'",
    "• Review activity with 'recent checkouts' or 'top items'",
    "• Follow requests with 'pending requests' or 'request status [number]'",
    "• Get the stock valuation with 'inventory value'",
    "• Build a file with 'generate pdf report of low stock' or 'export excel inventory report'",
]

FALLBACK_MESSAGE = (
    "I'm not sure how to help with that query. Try asking me to 'search for [item]', "
    "show 'user stats', 'low stock items', or provide a 'weekly summary'."
)

ITEM_MATCH_CUTOFF = 0.6


def reply(*messages, download=None):
    data = {'messages': [message for message in messages if message]}
    if download:
        data['download'] = download
    return data


def bullet_list(lines):
    return '\n'.join(lines)


def find_item(term):
    """Exact, then substring, then closest-name match for a free-text item name"""
    term = (term or '').strip()
    if not term:
        return None
    item = Item.objects.filter(name__iexact=term).first()
    if item:
        return item
    item = Item.objects.filter(name__icontains=term).order_by('name').first()
    if item:
        return item
    names = {name.lower(): name for name in Item.objects.values_list('name', flat=True)}
    close = get_close_matches(term.lower(), list(names), n=1, cutoff=ITEM_MATCH_CUTOFF)
    if not close:
        # Plurals such as "cables" for "Cable"
        close = get_close_matches(term.lower().rstrip('s'), list(names), n=1, cutoff=ITEM_MATCH_CUTOFF)
    if close:
        return Item.objects.filter(name=names[close[0]]).first()
    return None


def low_stock_suffix(item):
    return ' ⚠️ LOW STOCK' if item.is_low_stock else ''


def handle_help(user, params):
    return reply('Here are some things you can ask me about:', bullet_list(HELP_LINES))


def handle_greeting(user, params):
    name = user.first_name or user.username
    return reply(f"👋 Hello {name}! Type 'help' to see what I can do.")


def handle_search(user, params):
    term = params.get('term', '').strip()
    if not term:
        return reply("Please specify what you're looking for, for example 'search for cables'.")
    items = [
        item for item in Item.objects.order_by('name')
        if term in item.name.lower() or term in (item.description or '').lower()
    ]
    if not items:
        return reply(f'No items found matching "{term}". Try a different search term.')
    return reply(
        f'📦 I found {len(items)} items matching "{term}":',
        bullet_list(f'• {item.name} - Quantity: {item.quantity}{low_stock_suffix(item)}' for item in items),
    )


def handle_user_stats(user, params):
    people = top_people()
    if not people:
        return reply('No user activity recorded yet.')
    return reply(
        '👥 Top users by items checked out:',
        bullet_list(f"{index}. {person['name']}: {person['count']} items" for index, person in enumerate(people, start=1)),
    )


def inventory_health(low_stock_count):
    return '🟠 Needs attention' if low_stock_count > 5 else '🟢 Good'


def handle_weekly_summary(user, params):
    total_units = Item.objects.aggregate(total=Sum('quantity'))['total'] or 0
    low_stock_count = Item.objects.low_stock().count()
    one_week_ago = timezone.now() - timedelta(days=7)
    weekly_checkouts = ItemOut.objects.filter(date_time__gte=one_week_ago).aggregate(total=Sum('quantity'))['total'] or 0
    return reply(
        '📊 Weekly Inventory Summary:',
        bullet_list([
            f'• Total items in stock: {total_units}',
            f'• Items checked out this week: {weekly_checkouts}',
            f'• Low stock alerts: {low_stock_count}',
            f'• Inventory health: {inventory_health(low_stock_count)}',
        ]),
    )


def handle_low_stock(user, params):
    items = list(Item.objects.low_stock().order_by('quantity', 'name'))
    if not items:
        return reply('Good news! No items are currently below their low stock threshold.')
    return reply(
        f'⚠️ Found {len(items)} items with low stock:',
        bullet_list(f'• {item.name} - Current: {item.quantity}, Threshold: {item.effective_threshold}' for item in items),
    )


def handle_out_of_stock(user, params):
    items = list(Item.objects.out_of_stock().order_by('name'))
    if not items:
        return reply('Good news! No items are out of stock.')
    return reply(
        f'🚫 Found {len(items)} items out of stock:',
        bullet_list(f'• {item.name}' for item in items),
    )


def handle_items_in_category(user, params):
    name = params.get('category', '').strip()
    if not name:
        return reply("Please specify a category name, for example 'items in Electronics'.")
    categories = list(Category.objects.filter(name__icontains=name).order_by('name'))
    if not categories:
        return reply(f'I couldn\'t find a category named "{name}".')
    items = list(Item.objects.filter(category__in=categories).order_by('name'))
    if not items:
        return reply(f'No items found in the {categories[0].name} category.')
    return reply(
        f'📂 Found {len(items)} items in {categories[0].name} category:',
        bullet_list(f'• {item.name} - Quantity: {item.quantity}' for item in items),
    )


def handle_list_categories(user, params):
    categories = list(Category.objects.annotate(item_count=Count('items')).order_by('name'))
    if not categories:
        return reply('No categories have been created yet.')
    return reply(
        f'📂 There are {len(categories)} categories:',
        bullet_list(f'• {category.name} ({category.item_count} items)' for category in categories),
    )


def handle_stock_of(user, params):
    term = params.get('item', '')
    item = find_item(term)
    if item is None:
        return reply(f'I couldn\'t find an item named "{term}".')
    return reply(
        f'📦 {item.name}: {item.quantity} units in stock (threshold {item.effective_threshold}){low_stock_suffix(item)}'
    )


def handle_who_took(user, params):
    term = params.get('item', '')
    item = find_item(term)
    if item is None:
        return reply(f'I couldn\'t find an item named "{term}".')
    records = list(ItemOut.objects.filter(item=item).order_by('-date_time', '-id')[:10])
    if not records:
        return reply(f'Nobody has checked out {item.name} yet.')
    return reply(
        f'👤 People who took {item.name}:',
        bullet_list(
            f"• {record.person_name} - {record.quantity} on {timezone.localtime(record.date_time).strftime('%Y-%m-%d')}"
            for record in records
        ),
    )


def handle_recent_checkouts(user, params):
    records = list(ItemOut.objects.select_related('item').order_by('-date_time', '-id')[:5])
    if not records:
        return reply('No checkouts recorded yet.')
    return reply(
        '🕒 Recent checkouts:',
        bullet_list(
            f"• {timezone.localtime(record.date_time).strftime('%Y-%m-%d %H:%M')}: {record.person_name} took "
            f"{record.quantity} x {record.item.name if record.item else 'Unknown Item'}"
            for record in records
        ),
    )


def handle_top_items(user, params):
    items = top_items()
    if not items:
        return reply('No item usage data available.')
    return reply(
        '🏆 Most issued items:',
        bullet_list(
            f"{index}. {item['name']}: {item['count']} units ({item['category']})"
            for index, item in enumerate(items, start=1)
        ),
    )


def handle_pending_requests(user, params):
    pending = Request.objects.filter(status=Request.STATUS_PENDING).select_related('selected_approver').annotate(
        item_count=Count('items')
    ).order_by('-created_at', '-id')
    total = pending.count()
    if not total:
        return reply('There are no pending requests.')
    lines = []
    for request_obj in pending[:10]:
        approver = request_obj.selected_approver.full_name if request_obj.selected_approver else 'Unassigned'
        project = f' ({request_obj.project_name})' if request_obj.project_name else ''
        lines.append(
            f'• {request_obj.reference} by {request_obj.created_by}{project} - '
            f'{request_obj.item_count} item(s), approver {approver or "Unassigned"}'
        )
    return reply(f'📝 {total} pending request(s):', bullet_list(lines))


def handle_request_status(user, params):
    request_id = int(params.get('id', 0))
    request_obj = Request.objects.select_related('selected_approver').filter(pk=request_id).first()
    if request_obj is None:
        return reply(f"I couldn't find request #{request_id}.")
    approver = request_obj.selected_approver.full_name if request_obj.selected_approver else ''
    lines = [
        f'• Type: {request_obj.get_type_display()}',
        f'• Items: {request_obj.items.count()}',
        f'• Approver: {approver or "Unassigned"}',
    ]
    if request_obj.status == Request.STATUS_REJECTED:
        rejection = request_obj.rejections.order_by('-created_at', '-id').first()
        if rejection:
            lines.append(f'• Reason: {rejection.reason}')
    if request_obj.status == Request.STATUS_COMPLETED and request_obj.release_by:
        lines.append(f'• Released by: {request_obj.release_by}')
    return reply(
        f'📄 Request {request_obj.reference} is {request_obj.get_status_display()}.',
        bullet_list(lines),
    )


def handle_inventory_value(user, params):
    total = Decimal('0.00')
    priced = 0
    unpriced = 0
    for quantity, unit_price in Item.objects.values_list('quantity', 'unit_price'):
        if unit_price is None:
            unpriced += 1
            continue
        priced += 1
        total += unit_price * quantity
    return reply(
        f'💰 Total inventory value: {total:,.2f}',
        bullet_list([
            f'• Priced items: {priced}',
            f'• Items without a unit price: {unpriced}',
        ]),
    )


def detect_report_kind(text):
    text = (text or '').lower()
    if 'low stock' in text or 'low-stock' in text:
        return 'low_stock'
    if 'items out' in text or 'checkout' in text or 'issued' in text:
        return 'items_out'
    if 'usage' in text:
        return 'usage'
    return 'inventory'


def handle_generate_report(user, params):
    report_format = 'pdf' if params.get('format') == 'pdf' else 'excel'
    kind = detect_report_kind(params.get('message'))
    url_name = 'export-pdf' if report_format == 'pdf' else 'export-excel'
    label = 'PDF' if report_format == 'pdf' else 'Excel'
    return reply(
        f'📄 Your {REPORT_TITLES[kind]} ({label}) is ready to download.',
        download={'kind': kind, 'format': report_format, 'url': f'{reverse(url_name)}?kind={kind}'},
    )


def handle_unknown(user, params):
    return reply(FALLBACK_MESSAGE)


HANDLERS = {
    'help': handle_help,
    'greeting': handle_greeting,
    'search': handle_search,
    'user_stats': handle_user_stats,
    'weekly_summary': handle_weekly_summary,
    'low_stock': handle_low_stock,
    'out_of_stock': handle_out_of_stock,
    'items_in_category': handle_items_in_category,
    'list_categories': handle_list_categories,
    'stock_of': handle_stock_of,
    'who_took': handle_who_took,
    'recent_checkouts': handle_recent_checkouts,
    'top_items': handle_top_items,
    'pending_requests': handle_pending_requests,
    'request_status': handle_request_status,
    'inventory_value': handle_inventory_value,
    'generate_report': handle_generate_report,
    'unknown': handle_unknown,
}


def answer(intent, params, user, message):
    handler = HANDLERS.get(intent, handle_unknown)
    return handler(user, {**params, 'message': message})
