from django.conf import settings
from django.core.files.storage import default_storage
from rest_framework import serializers
from .models import Category, Vendor, Item


class CategorySerializer(serializers.ModelSerializer):
    item_count = serializers.IntegerField(read_only=True, default=0)

    class Meta:
        model = Category
        fields = ['id', 'name', 'description', 'item_count', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Category name is required')
        return value


class VendorSerializer(serializers.ModelSerializer):
    class Meta:
        model = Vendor
        fields = ['id', 'name', 'contact_info', 'created_at']
        read_only_fields = ['created_at']


class ThresholdField(serializers.Field):
    """Low stock threshold; missing, null, blank, negative or non-numeric input falls back to the default"""

    def to_internal_value(self, data):
        try:
            value = int(data)
        except (TypeError, ValueError):
            return settings.LOW_STOCK_DEFAULT_THRESHOLD
        return value if value >= 0 else settings.LOW_STOCK_DEFAULT_THRESHOLD

    def validate_empty_values(self, data):
        if data is None:
            return (True, settings.LOW_STOCK_DEFAULT_THRESHOLD)
        return super().validate_empty_values(data)

    def to_representation(self, value):
        return value


class ItemSerializer(serializers.ModelSerializer):
    category_name = serializers.SerializerMethodField()
    vendor_name = serializers.SerializerMethodField()
    is_low_stock = serializers.BooleanField(read_only=True)
    effective_threshold = serializers.IntegerField(read_only=True)
    receipt_images = serializers.SerializerMethodField()

    class Meta:
        model = Item
        fields = ['id', 'name', 'description', 'category', 'category_name', 'vendor', 'vendor_name',
                  'quantity', 'low_stock_threshold', 'effective_threshold', 'is_low_stock', 'unit_price',
                  'receipt_images', 'update_reasons', 'created_at', 'updated_at']

    def get_category_name(self, obj):
        return obj.category.name if obj.category else None

    def get_vendor_name(self, obj):
        return obj.display_vendor_name

    def get_receipt_images(self, obj):
        return [
            {**receipt, 'url': default_storage.url(receipt['path'])}
            for receipt in obj.receipt_images or []
            if isinstance(receipt, dict) and receipt.get('path')
        ]


class ItemWriteSerializer(serializers.ModelSerializer):
    """Create an item; multipart input arrives as strings"""
    name = serializers.CharField(max_length=255, error_messages={'required': 'Item name is required', 'blank': 'Item name is required'})
    quantity = serializers.IntegerField(min_value=0, error_messages={
        'required': 'Quantity is required',
        'invalid': 'Quantity must be a valid number',
        'min_value': 'Quantity cannot be negative',
    })
    low_stock_threshold = ThresholdField(required=False, allow_null=True)
    unit_price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, required=False, allow_null=True,
                                          error_messages={'min_value': 'Unit price cannot be negative'})
    category = serializers.PrimaryKeyRelatedField(queryset=Category.objects.all(), required=False, allow_null=True)
    vendor = serializers.PrimaryKeyRelatedField(queryset=Vendor.objects.all(), required=False, allow_null=True)

    class Meta:
        model = Item
        fields = ['name', 'description', 'category', 'vendor', 'vendor_name', 'quantity',
                  'low_stock_threshold', 'unit_price']

    def to_internal_value(self, data):
        # Empty strings from multipart forms mean "not set" for optional relations and price
        if hasattr(data, 'dict'):
            data = data.dict()
        else:
            data = dict(data)
        for key in ('category', 'vendor', 'unit_price'):
            if data.get(key) == '':
                data[key] = None
        return super().to_internal_value(data)

    def validate_name(self, value):
        return value.strip()


class ItemUpdateSerializer(ItemWriteSerializer):
    update_reason = serializers.CharField(write_only=True, error_messages={
        'required': 'Update reason is required',
        'blank': 'Update reason is required',
    })

    class Meta(ItemWriteSerializer.Meta):
        fields = ItemWriteSerializer.Meta.fields + ['update_reason']

    def validate_update_reason(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Update reason is required')
        return value

    def validate(self, attrs):
        # Updates are partial, so the required flag alone does not enforce the reason
        if not attrs.get('update_reason'):
            raise serializers.ValidationError({'update_reason': 'Update reason is required'})
        return attrs
