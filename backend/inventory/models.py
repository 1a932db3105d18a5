from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from backend.catalog.models import Item


class ItemOut(models.Model):
    """Direct issue of stock to a named person, outside the request workflow"""
    person_name = models.CharField(max_length=255)
    item = models.ForeignKey(Item, on_delete=models.SET_NULL, null=True, related_name='items_out')
    quantity = models.IntegerField(validators=[MinValueValidator(1)])
    date_time = models.DateTimeField(default=timezone.now, db_index=True)
    issued_by = models.ForeignKey('core.User', on_delete=models.SET_NULL, null=True, blank=True, related_name='items_issued')

    def __str__(self):
        return f"{self.quantity} x {self.item} to {self.person_name}"

    class Meta:
        db_table = 'items_out'
        ordering = ['-date_time', '-id']
        constraints = [
            models.CheckConstraint(condition=models.Q(quantity__gt=0), name='items_out_quantity_positive'),
        ]
