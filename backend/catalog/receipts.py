"""Receipt image storage for items"""
import logging
import secrets
from pathlib import Path

from django.conf import settings
from django.core.files.storage import default_storage
from django.utils import timezone

logger = logging.getLogger('backend.catalog')

RECEIPT_DIR = 'receipts'


class InvalidReceipt(Exception):
    pass


def validate_receipt(uploaded_file):
    content_type = getattr(uploaded_file, 'content_type', '') or ''
    if not content_type.startswith('image/'):
        raise InvalidReceipt('Only image files are allowed')
    if uploaded_file.size > settings.RECEIPT_MAX_BYTES:
        raise InvalidReceipt(f'Receipt image must be {settings.RECEIPT_MAX_BYTES // (1024 * 1024)}MB or smaller')


def store_receipt(uploaded_file):
    """
    Validate and save an uploaded receipt image.

    Returns:
        dict entry for Item.receipt_images: {'path': storage name, 'uploaded_at': ISO timestamp}
    """
    validate_receipt(uploaded_file)
    now = timezone.now()
    extension = Path(uploaded_file.name or '').suffix.lower()
    filename = f"{RECEIPT_DIR}/receipt-{int(now.timestamp() * 1000)}-{secrets.randbelow(10 ** 9)}{extension}"
    saved_name = default_storage.save(filename, uploaded_file)
    logger.info(f"Stored receipt image {saved_name}")
    return {'path': saved_name, 'uploaded_at': now.isoformat()}


def delete_receipts(receipt_images):
    """Remove stored receipt files; missing files are logged and skipped"""
    for receipt in receipt_images or []:
        path = receipt.get('path') if isinstance(receipt, dict) else receipt
        if not path:
            continue
        try:
            if default_storage.exists(path):
                default_storage.delete(path)
            else:
                logger.warning(f"Receipt image not found on delete: {path}")
        except OSError as e:
            logger.warning(f"Could not delete receipt image {path}: {str(e)}")
