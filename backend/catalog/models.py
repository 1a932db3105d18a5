from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import F, Value
from django.db.models.functions import Coalesce


class Category(models.Model):
    """Item categories"""
    name = models.CharField(max_length=255, db_index=True)
    description = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'categories'
        verbose_name_plural = 'categories'
        ordering = ['-created_at', '-id']


class Vendor(models.Model):
    """Suppliers items can be linked to"""
    name = models.CharField(max_length=255)
    contact_info = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'vendors'
        ordering = ['name']


class ItemQuerySet(models.QuerySet):
    def with_effective_threshold(self):
        return self.annotate(
            effective_low_stock_threshold=Coalesce(F('low_stock_threshold'), Value(settings.LOW_STOCK_DEFAULT_THRESHOLD))
        )

    def low_stock(self):
        """Items whose quantity is at or below their threshold (default threshold when unset)"""
        return self.with_effective_threshold().filter(
            quantity__lte=F('effective_low_stock_threshold')
        )

    def out_of_stock(self):
        return self.filter(quantity__lte=0)


class Item(models.Model):
    """Inventory item with on-hand quantity and low stock threshold"""
    name = models.CharField(max_length=255, db_index=True)
    description = models.TextField(blank=True, null=True)
    category = models.ForeignKey(Category, on_delete=models.SET_NULL, null=True, blank=True, related_name='items')
    vendor = models.ForeignKey(Vendor, on_delete=models.SET_NULL, null=True, blank=True, related_name='items')
    quantity = models.IntegerField(default=0, validators=[MinValueValidator(0)])
    low_stock_threshold = models.IntegerField(default=5, null=True, blank=True, validators=[MinValueValidator(0)])
    vendor_name = models.CharField(max_length=255, blank=True, null=True)
    unit_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True, validators=[MinValueValidator(0)])
    receipt_images = models.JSONField(default=list, blank=True)
    update_reasons = models.TextField(blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ItemQuerySet.as_manager()

    def __str__(self):
        return self.name

    @property
    def effective_threshold(self):
        if self.low_stock_threshold is None:
            return settings.LOW_STOCK_DEFAULT_THRESHOLD
        return self.low_stock_threshold

    @property
    def is_low_stock(self):
        return self.quantity <= self.effective_threshold

    @property
    def display_vendor_name(self):
        if self.vendor_id:
            return self.vendor.name
        return self.vendor_name

    def add_update_reason(self, reason, timestamp):
        entry = f"{reason} at {timestamp}"
        self.update_reasons = f"{self.update_reasons} | {entry}" if self.update_reasons else entry

    class Meta:
        db_table = 'items'
        ordering = ['-created_at', '-id']
        constraints = [
            models.CheckConstraint(condition=models.Q(quantity__gte=0), name='items_quantity_non_negative'),
        ]
