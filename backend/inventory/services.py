"""Stock movements shared by direct issues and finalized requests"""
import logging

from backend.catalog.models import Item

logger = logging.getLogger('backend.inventory')


class InsufficientStock(Exception):
    def __init__(self, item, requested):
        self.item = item
        self.requested = requested
        super().__init__(
            f"Insufficient stock. Only {item.quantity} units available. Requested: {requested}"
        )


def deduct_stock(item_id, quantity):
    """
    Lock the item row and remove ``quantity`` units.

    Must be called inside transaction.atomic().

    Raises:
        Item.DoesNotExist: unknown item
        InsufficientStock: fewer units on hand than requested
    """
    item = Item.objects.select_for_update().select_related('category').get(pk=item_id)
    if quantity > item.quantity:
        raise InsufficientStock(item, quantity)
    item.quantity -= quantity
    item.save(update_fields=['quantity', 'updated_at'])
    logger.info(f"Deducted {quantity} of {item.name}; {item.quantity} left")
    return item


def add_stock(item_id, quantity):
    """Lock the item row and put ``quantity`` units back"""
    item = Item.objects.select_for_update().select_related('category').get(pk=item_id)
    item.quantity += quantity
    item.save(update_fields=['quantity', 'updated_at'])
    logger.info(f"Returned {quantity} of {item.name}; {item.quantity} on hand")
    return item
