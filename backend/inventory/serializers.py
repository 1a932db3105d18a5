from rest_framework import serializers
from backend.catalog.serializers import ItemSerializer
from backend.core.serializers import AliasedFieldsMixin
from .models import ItemOut

REQUIRED_FIELDS_MESSAGE = 'Person name, item and quantity are required'


class ItemOutSerializer(serializers.ModelSerializer):
    item_name = serializers.SerializerMethodField()
    category_name = serializers.SerializerMethodField()
    issued_by_name = serializers.SerializerMethodField()

    class Meta:
        model = ItemOut
        fields = ['id', 'person_name', 'item', 'item_name', 'category_name', 'quantity', 'date_time',
                  'issued_by', 'issued_by_name']

    def get_item_name(self, obj):
        return obj.item.name if obj.item else 'Unknown Item'

    def get_category_name(self, obj):
        if obj.item and obj.item.category:
            return obj.item.category.name
        return 'Unknown Category'

    def get_issued_by_name(self, obj):
        return obj.issued_by.full_name if obj.issued_by else None


class IssueItemSerializer(AliasedFieldsMixin, serializers.Serializer):
    """Input for a direct issue; accepts camelCase keys from the browser client"""
    person_name = serializers.CharField(max_length=255, error_messages={
        'required': REQUIRED_FIELDS_MESSAGE, 'blank': REQUIRED_FIELDS_MESSAGE, 'null': REQUIRED_FIELDS_MESSAGE,
    })
    item = serializers.IntegerField(error_messages={
        'required': REQUIRED_FIELDS_MESSAGE, 'null': REQUIRED_FIELDS_MESSAGE, 'invalid': 'Invalid item',
    })
    quantity = serializers.IntegerField(min_value=1, error_messages={
        'required': REQUIRED_FIELDS_MESSAGE,
        'null': REQUIRED_FIELDS_MESSAGE,
        'invalid': 'Quantity must be a valid number',
        'min_value': 'Quantity must be greater than zero',
    })

    field_aliases = {'personName': 'person_name', 'itemId': 'item'}

    def validate_person_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError(REQUIRED_FIELDS_MESSAGE)
        return value


class IssueResultSerializer(ItemOutSerializer):
    updated_item = ItemSerializer(source='item', read_only=True)

    class Meta(ItemOutSerializer.Meta):
        fields = ItemOutSerializer.Meta.fields + ['updated_item']
