from django.contrib.auth import get_user_model
from rest_framework import serializers

from backend.catalog.models import Item
from backend.core.serializers import AliasedFieldsMixin
from .models import Request, RequestItem, Approval, Rejection

User = get_user_model()


class RequestItemSerializer(serializers.ModelSerializer):
    item_name = serializers.SerializerMethodField()
    current_stock = serializers.SerializerMethodField()

    class Meta:
        model = RequestItem
        fields = ['id', 'item', 'item_name', 'current_stock', 'quantity_requested', 'quantity_received',
                  'quantity_returned', 'created_at', 'updated_at']

    def get_item_name(self, obj):
        return obj.item.name if obj.item else 'Unknown Item'

    def get_current_stock(self, obj):
        return obj.item.quantity if obj.item else None


class ApprovalSerializer(serializers.ModelSerializer):
    class Meta:
        model = Approval
        fields = ['id', 'approver_name', 'signature', 'approved_by', 'created_at']


class RejectionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Rejection
        fields = ['id', 'rejector_name', 'reason', 'rejected_by', 'created_at']


class RequestListSerializer(serializers.ModelSerializer):
    item_count = serializers.SerializerMethodField()
    approver_name = serializers.SerializerMethodField()
    reject_reason = serializers.SerializerMethodField()
    reference = serializers.CharField(read_only=True)

    class Meta:
        model = Request
        fields = ['id', 'reference', 'created_by', 'requester', 'team_leader_name', 'team_leader_phone',
                  'project_name', 'isp_name', 'location', 'deployment_type', 'release_by', 'received_by',
                  'selected_approver', 'approver_name', 'type', 'reason', 'status', 'item_count',
                  'reject_reason', 'created_at', 'updated_at']

    def get_item_count(self, obj):
        count = getattr(obj, 'item_count', None)
        return count if count is not None else obj.items.count()

    def get_approver_name(self, obj):
        if obj.selected_approver and obj.selected_approver.full_name:
            return obj.selected_approver.full_name
        return 'Unassigned'

    def get_reject_reason(self, obj):
        if hasattr(obj, 'latest_reject_reason'):
            return obj.latest_reject_reason
        rejection = obj.rejections.order_by('-created_at', '-id').first()
        return rejection.reason if rejection else None


class RequestDetailSerializer(RequestListSerializer):
    items = RequestItemSerializer(many=True, read_only=True)
    approvals = ApprovalSerializer(many=True, read_only=True)
    rejections = RejectionSerializer(many=True, read_only=True)

    class Meta(RequestListSerializer.Meta):
        fields = RequestListSerializer.Meta.fields + ['items', 'approvals', 'rejections']


class RequestItemInputSerializer(AliasedFieldsMixin, serializers.Serializer):
    """A requested line; the item is given by id or by exact name"""
    item = serializers.IntegerField(required=False, allow_null=True)
    name = serializers.CharField(required=False, allow_blank=True)
    quantity_requested = serializers.IntegerField(min_value=1, error_messages={
        'required': 'Requested quantity is required',
        'invalid': 'Requested quantity must be a valid number',
        'min_value': 'Requested quantity must be greater than zero',
    })

    field_aliases = {
        'itemId': 'item',
        'item_id': 'item',
        'requested': 'quantity_requested',
        'quantityRequested': 'quantity_requested',
    }

    def validate(self, attrs):
        item_id = attrs.get('item')
        name = (attrs.get('name') or '').strip()
        if item_id is not None:
            item = Item.objects.filter(pk=item_id).first()
            if item is None:
                raise serializers.ValidationError(f'Item not found: {name or item_id}')
        elif name:
            item = Item.objects.filter(name=name).order_by('id').first()
            if item is None:
                raise serializers.ValidationError(f'Item not found: {name}')
        else:
            raise serializers.ValidationError('Each requested item needs an item id or name')
        return {'item': item, 'quantity_requested': attrs['quantity_requested']}


class RequestWriteSerializer(AliasedFieldsMixin, serializers.Serializer):
    """Header fields and item lines for creating or editing a request"""
    created_by = serializers.CharField(max_length=255, required=False, allow_blank=True)
    team_leader_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    team_leader_phone = serializers.CharField(max_length=50, required=False, allow_blank=True)
    project_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    isp_name = serializers.CharField(max_length=255, required=False, allow_blank=True, allow_null=True)
    location = serializers.CharField(required=False, allow_blank=True)
    deployment_type = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    release_by = serializers.CharField(max_length=255, required=False, allow_blank=True, allow_null=True)
    received_by = serializers.CharField(max_length=255, required=False, allow_blank=True, allow_null=True)
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    type = serializers.ChoiceField(choices=Request.TYPE_CHOICES, default=Request.TYPE_MATERIAL_REQUEST,
                                   error_messages={'invalid_choice': 'Invalid request type'})
    selected_approver = serializers.IntegerField(error_messages={
        'required': 'Selected approver is required',
        'null': 'Selected approver is required',
        'invalid': 'Selected approver is required',
    })
    items = RequestItemInputSerializer(many=True, allow_empty=False, error_messages={
        'empty': 'At least one item is required',
        'required': 'At least one item is required',
    })

    field_aliases = {
        'createdBy': 'created_by',
        'teamLeaderName': 'team_leader_name',
        'teamLeaderPhone': 'team_leader_phone',
        'projectName': 'project_name',
        'ispName': 'isp_name',
        'deployment': 'deployment_type',
        'deploymentType': 'deployment_type',
        'releaseBy': 'release_by',
        'receivedBy': 'received_by',
        'selectedApproverId': 'selected_approver',
    }

    def validate_selected_approver(self, value):
        approver = User.objects.filter(pk=value, is_active=True).first()
        if approver is None:
            raise serializers.ValidationError('Selected approver not found')
        return approver

    def validate_items(self, value):
        item_ids = [line['item'].pk for line in value]
        if len(item_ids) != len(set(item_ids)):
            raise serializers.ValidationError('Each item can only be requested once')
        return value

    def create(self, validated_data):
        items = validated_data.pop('items')
        requester = self.context.get('user')
        created_by = (validated_data.pop('created_by', '') or '').strip()
        if not created_by and requester is not None:
            created_by = requester.full_name or requester.username
        validated_data['team_leader_name'] = validated_data.get('team_leader_name') or created_by
        for key in ('isp_name', 'deployment_type', 'release_by', 'received_by', 'reason'):
            validated_data[key] = validated_data.get(key) or None

        request_obj = Request.objects.create(
            created_by=created_by,
            requester=requester,
            status=Request.STATUS_PENDING,
            **validated_data
        )
        self._create_items(request_obj, items)
        return request_obj

    def update(self, instance, validated_data):
        items = validated_data.pop('items', None)
        validated_data.pop('created_by', None)
        validated_data.pop('type', None)
        for key, value in validated_data.items():
            setattr(instance, key, value)
        instance.save()
        if items is not None:
            instance.items.all().delete()
            self._create_items(instance, items)
        return instance

    def _create_items(self, request_obj, items):
        RequestItem.objects.bulk_create([
            RequestItem(request=request_obj, item=line['item'], quantity_requested=line['quantity_requested'])
            for line in items
        ])


class RequestUpdateSerializer(RequestWriteSerializer):
    selected_approver = serializers.IntegerField(required=False)


class ApproveSerializer(AliasedFieldsMixin, serializers.Serializer):
    approver_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    signature = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    field_aliases = {'approverName': 'approver_name'}


class RejectSerializer(AliasedFieldsMixin, serializers.Serializer):
    reason = serializers.CharField(error_messages={
        'required': 'Rejection reason is required',
        'blank': 'Rejection reason is required',
        'null': 'Rejection reason is required',
    })
    rejector_name = serializers.CharField(max_length=255, error_messages={
        'required': 'Rejector name is required',
        'blank': 'Rejector name is required',
        'null': 'Rejector name is required',
    })

    field_aliases = {'rejectorName': 'rejector_name'}


class FinalizeItemSerializer(AliasedFieldsMixin, serializers.Serializer):
    item = serializers.IntegerField(error_messages={'required': 'Item id is required'})
    quantity_received = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    quantity_returned = serializers.IntegerField(min_value=0, required=False, allow_null=True)

    field_aliases = {
        'itemId': 'item',
        'quantityReceived': 'quantity_received',
        'quantityReturned': 'quantity_returned',
    }


class FinalizeSerializer(AliasedFieldsMixin, serializers.Serializer):
    items = FinalizeItemSerializer(many=True)
    released_by = serializers.CharField(max_length=255, required=False, allow_blank=True)

    field_aliases = {'releasedBy': 'released_by'}
