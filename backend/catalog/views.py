import logging

from django.db import transaction
from django.db.models import Count
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.core.emails import schedule_low_stock_alert
from backend.core.utils import create_audit_log, error_response, first_error
from .filters import ItemFilter
from .models import Category, Vendor, Item
from .receipts import InvalidReceipt, validate_receipt, store_receipt, delete_receipts
from .serializers import (
    CategorySerializer, VendorSerializer, ItemSerializer, ItemWriteSerializer, ItemUpdateSerializer
)

logger = logging.getLogger('backend.catalog')


def superadmin_required_response(request):
    if request.user.role != 'superadmin':
        return error_response('Super Admin access required', status.HTTP_403_FORBIDDEN)
    return None


def _audit_changes(validated_data):
    """JSON-safe copy of validated serializer data"""
    changes = {}
    for key, value in validated_data.items():
        if hasattr(value, 'pk'):
            changes[key] = value.pk
        elif value is None or isinstance(value, (str, int, float, bool)):
            changes[key] = value
        else:
            changes[key] = str(value)
    return changes


# Category views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def category_list_create(request):
    """List all categories with their item counts or create a new category"""
    if request.method == 'GET':
        categories = Category.objects.annotate(item_count=Count('items')).order_by('-created_at', '-id')
        serializer = CategorySerializer(categories, many=True)
        return Response(serializer.data)

    serializer = CategorySerializer(data=request.data)
    if not serializer.is_valid():
        return error_response(first_error(serializer.errors))
    category = serializer.save()
    create_audit_log(
        request=request,
        action='create_category',
        model_name='Category',
        object_id=category.id,
        object_name=category.name,
        changes={'name': category.name, 'description': category.description},
    )
    return Response(CategorySerializer(category).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def category_detail(request, pk):
    """Retrieve, update or delete a category"""
    category = get_object_or_404(Category.objects.annotate(item_count=Count('items')), pk=pk)

    if request.method == 'GET':
        return Response(CategorySerializer(category).data)

    if request.method in ('PUT', 'PATCH'):
        serializer = CategorySerializer(category, data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return error_response(first_error(serializer.errors))
        category = serializer.save()
        create_audit_log(
            request=request,
            action='update_category',
            model_name='Category',
            object_id=category.id,
            object_name=category.name,
            changes=_audit_changes(serializer.validated_data),
        )
        return Response(CategorySerializer(category).data)

    denied = superadmin_required_response(request)
    if denied:
        return denied
    category_id = category.id
    name = category.name
    category.delete()
    create_audit_log(
        request=request,
        action='delete_category',
        model_name='Category',
        object_id=category_id,
        object_name=name,
    )
    return Response({'message': 'Category deleted successfully'})


# Vendor views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def vendor_list_create(request):
    """List all vendors or create a new vendor"""
    if request.method == 'GET':
        return Response(VendorSerializer(Vendor.objects.all(), many=True).data)

    serializer = VendorSerializer(data=request.data)
    if not serializer.is_valid():
        return error_response(first_error(serializer.errors))
    vendor = serializer.save()
    return Response(VendorSerializer(vendor).data, status=status.HTTP_201_CREATED)


# Item views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def item_list_create(request):
    """List items (filterable) or create an item with an optional receipt image"""
    if request.method == 'GET':
        queryset = Item.objects.select_related('category', 'vendor').all()
        queryset = ItemFilter(request.query_params, queryset=queryset).qs
        queryset = queryset.order_by('-created_at', '-id')
        return Response(ItemSerializer(queryset, many=True).data)

    serializer = ItemWriteSerializer(data=request.data)
    if not serializer.is_valid():
        return error_response(first_error(serializer.errors))

    receipt_file = request.FILES.get('receiptImage')
    try:
        if receipt_file:
            validate_receipt(receipt_file)
    except InvalidReceipt as e:
        return error_response(str(e))

    receipt_images = [store_receipt(receipt_file)] if receipt_file else []
    item = serializer.save(receipt_images=receipt_images)
    create_audit_log(
        request=request,
        action='create_item',
        model_name='Item',
        object_id=item.id,
        object_name=item.name,
        changes=_audit_changes(serializer.validated_data),
    )
    logger.info(f"Item {item.name} created with quantity {item.quantity}")

    if item.is_low_stock:
        schedule_low_stock_alert()
    return Response(ItemSerializer(item).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def item_detail(request, pk):
    """Retrieve, update (with a mandatory reason) or delete an item"""
    if request.method == 'GET':
        item = get_object_or_404(Item.objects.select_related('category', 'vendor'), pk=pk)
        return Response(ItemSerializer(item).data)

    if request.method == 'DELETE':
        denied = superadmin_required_response(request)
        if denied:
            return denied
        item = get_object_or_404(Item, pk=pk)
        item_id = item.id
        name = item.name
        receipt_images = list(item.receipt_images or [])
        item.delete()
        delete_receipts(receipt_images)
        create_audit_log(
            request=request,
            action='delete_item',
            model_name='Item',
            object_id=item_id,
            object_name=name,
        )
        return Response({'message': 'Item deleted successfully'})

    receipt_file = request.FILES.get('receiptImage')
    try:
        if receipt_file:
            validate_receipt(receipt_file)
    except InvalidReceipt as e:
        return error_response(str(e))

    with transaction.atomic():
        item = get_object_or_404(Item.objects.select_for_update(), pk=pk)
        old_quantity = item.quantity
        serializer = ItemUpdateSerializer(item, data=request.data, partial=True)
        if not serializer.is_valid():
            return error_response(first_error(serializer.errors))

        reason = serializer.validated_data.pop('update_reason')
        item.add_update_reason(reason, timezone.now().strftime('%Y-%m-%d %H:%M:%S'))
        if receipt_file:
            item.receipt_images = list(item.receipt_images or []) + [store_receipt(receipt_file)]
        item = serializer.save()

        changes = _audit_changes(serializer.validated_data)
        changes['update_reason'] = reason
        create_audit_log(
            request=request,
            action='update_item',
            model_name='Item',
            object_id=item.id,
            object_name=item.name,
            changes=changes,
        )
        if item.quantity < old_quantity and item.is_low_stock:
            logger.info(f"Item {item.name} dropped to low stock ({item.quantity}), alert scheduled")
            schedule_low_stock_alert()

    item = Item.objects.select_related('category', 'vendor').get(pk=item.pk)
    return Response(ItemSerializer(item).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def low_stock_list(request):
    """Items at or below their low stock threshold"""
    items = Item.objects.low_stock().select_related('category', 'vendor').order_by('quantity', 'name')
    return Response(ItemSerializer(items, many=True).data)
