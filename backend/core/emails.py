"""
Outgoing e-mail: account credentials, password resets and low stock alerts.

Alerts are best-effort: failures are logged and never propagate to the
request that triggered them. Credential mails do propagate, so that a user
is not created without being told their password.
"""
import logging

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.db import transaction
from django.utils import timezone
from django.utils.html import escape

from .models import Setting, Supervisor

logger = logging.getLogger('backend.core')


def get_sender():
    """Sender address built from the from_name / from_email settings"""
    from_name = Setting.get_value('from_name', 'Inventory System')
    from_email = Setting.get_value('from_email', settings.DEFAULT_FROM_EMAIL)
    return f'"{from_name}" <{from_email}>'


def _send(subject, text_body, html_body, recipients):
    message = EmailMultiAlternatives(
        subject=subject,
        body=text_body,
        from_email=get_sender(),
        to=recipients,
    )
    message.attach_alternative(html_body, 'text/html')
    return message.send()


def send_user_credentials(email, username, password):
    subject = 'Welcome to the Inventory System - Your Account Details'
    text_body = (
        f"Your inventory account has been created.\n\n"
        f"Username: {username}\n"
        f"Password: {password}\n\n"
        f"Please keep these credentials safe."
    )
    html_body = (
        f"<h2>Welcome to the Inventory System</h2>"
        f"<p>Your account has been created.</p>"
        f"<p><strong>Username:</strong> {escape(username)}<br>"
        f"<strong>Password:</strong> {escape(password)}</p>"
        f"<p>Please keep these credentials safe.</p>"
    )
    _send(subject, text_body, html_body, [email])
    logger.info(f"Credentials e-mail sent to {email}")


def send_reset_password(email, username, password):
    subject = 'Inventory System - Password Reset Confirmation'
    text_body = (
        f"Your password has been reset.\n\n"
        f"Username: {username}\n"
        f"New password: {password}\n"
    )
    html_body = (
        f"<h2>Password Reset</h2>"
        f"<p><strong>Username:</strong> {escape(username)}<br>"
        f"<strong>New password:</strong> {escape(password)}</p>"
    )
    _send(subject, text_body, html_body, [email])
    logger.info(f"Password reset e-mail sent to {email}")


def _item_table(items, header_color, title):
    if not items:
        return ''
    rows = ''.join(
        f"<tr><td>{escape(item.name)}</td>"
        f"<td style=\"text-align:center;color:{header_color};font-weight:bold\">{item.quantity}</td>"
        f"<td style=\"text-align:center\">{item.effective_threshold}</td>"
        f"<td>{escape(item.category.name if item.category else 'N/A')}</td></tr>"
        for item in items
    )
    return (
        f"<h3 style=\"color:{header_color}\">{title} ({len(items)})</h3>"
        f"<table style=\"width:100%;border-collapse:collapse\">"
        f"<thead><tr><th>Item Name</th><th>Quantity</th><th>Threshold</th><th>Category</th></tr></thead>"
        f"<tbody>{rows}</tbody></table>"
    )


def build_low_stock_message(low_stock_items):
    """
    Build (subject, text, html) for a list of low stock items.

    Items at or below zero are critical; the subject escalates when any exist.
    """
    critical_items = [item for item in low_stock_items if item.quantity <= 0]
    low_items = [item for item in low_stock_items if item.quantity > 0]

    subject = 'Low Stock Alert Summary'
    intro = 'The following items have reached low stock levels. Please review and restock as needed.'
    if critical_items:
        subject = f'Critical Stock Alert: {len(critical_items)} Item(s) Out of Stock!'
        intro = (
            f'{len(critical_items)} item(s) are out of stock, and {len(low_items)} more are low. '
            f'Immediate action required!'
        )

    sent_at = timezone.localtime().strftime('%A %d/%m/%Y at %H:%M')
    lines = [intro, '']
    for item in critical_items + low_items:
        category = item.category.name if item.category else 'N/A'
        lines.append(f"- {item.name}: {item.quantity} (threshold {item.effective_threshold}, {category})")
    lines.extend(['', f'Sent {sent_at}'])

    html_body = (
        f"<p>{escape(intro)}</p>"
        f"{_item_table(critical_items, '#d32f2f', 'Out of Stock')}"
        f"{_item_table(low_items, '#ff9800', 'Low Stock')}"
        f"<p style=\"color:#777\">Sent {sent_at}</p>"
    )
    return subject, '\n'.join(lines), html_body


def send_low_stock_alert(items=None, supervisors=None):
    """
    Mail every supervisor a summary of low stock items.

    Args:
        items: Optional iterable of Item; defaults to all items at or below threshold
        supervisors: Optional iterable of Supervisor; defaults to all supervisors

    Returns:
        Number of e-mails sent (0 when there is nothing to report or nobody to tell)
    """
    from backend.catalog.models import Item

    try:
        supervisors = list(supervisors) if supervisors is not None else list(Supervisor.objects.all())
        if not supervisors:
            logger.warning('No supervisors configured for low stock alerts')
            return 0

        if items is None:
            items = Item.objects.low_stock()
        low_stock_items = sorted(
            (item for item in items if item.is_low_stock),
            key=lambda item: (item.quantity, item.name),
        )
        if not low_stock_items:
            logger.info('No low stock items to alert about')
            return 0

        subject, text_body, html_body = build_low_stock_message(low_stock_items)
        sent = 0
        for supervisor in supervisors:
            sent += _send(subject, text_body, html_body, [supervisor.email])
        logger.info(f"Low stock alert '{subject}' sent to {sent} supervisor(s)")
        return sent
    except Exception as e:
        logger.error(f"Failed to send low stock alert: {str(e)}")
        return 0


def schedule_low_stock_alert(items=None):
    """Send a low stock alert once the surrounding transaction commits"""
    item_ids = [item.pk for item in items] if items is not None else None

    def _send_alert():
        from backend.catalog.models import Item

        alert_items = None
        if item_ids is not None:
            alert_items = Item.objects.select_related('category').filter(pk__in=item_ids)
        send_low_stock_alert(items=alert_items)

    transaction.on_commit(_send_alert)
