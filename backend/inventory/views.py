import logging

from django.db import transaction
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.catalog.models import Item
from backend.core.emails import schedule_low_stock_alert, send_low_stock_alert
from backend.core.utils import create_audit_log, error_response, first_error
from .models import ItemOut
from .serializers import ItemOutSerializer, IssueItemSerializer, IssueResultSerializer
from .services import InsufficientStock, deduct_stock

logger = logging.getLogger('backend.inventory')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def items_out_list_create(request):
    """List issued items (newest first) or issue stock to a person"""
    if request.method == 'GET':
        items_out = ItemOut.objects.select_related('item__category', 'issued_by').order_by('-date_time', '-id')
        return Response(ItemOutSerializer(items_out, many=True).data)

    serializer = IssueItemSerializer(data=request.data)
    if not serializer.is_valid():
        return error_response(first_error(serializer.errors))
    data = serializer.validated_data

    try:
        with transaction.atomic():
            item = deduct_stock(data['item'], data['quantity'])
            item_out = ItemOut.objects.create(
                person_name=data['person_name'],
                item=item,
                quantity=data['quantity'],
                issued_by=request.user,
            )
            create_audit_log(
                request=request,
                action='issue_item',
                model_name='ItemOut',
                object_id=item_out.id,
                object_name=item.name,
                changes={
                    'item_id': item.id,
                    'person_name': item_out.person_name,
                    'quantity': item_out.quantity,
                    'remaining_quantity': item.quantity,
                },
            )
            schedule_low_stock_alert()
    except Item.DoesNotExist:
        return error_response('Item not found', status.HTTP_404_NOT_FOUND)
    except InsufficientStock as e:
        logger.warning(f"Issue rejected for item {data['item']}: {str(e)}")
        return error_response(str(e))

    logger.info(f"Issued {item_out.quantity} x {item.name} to {item_out.person_name}")
    return Response(IssueResultSerializer(item_out).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def send_low_stock_alert_view(request):
    """Mail supervisors about every item at or below threshold"""
    low_stock_items = list(Item.objects.low_stock().select_related('category'))
    sent = send_low_stock_alert(items=low_stock_items)
    if sent:
        create_audit_log(
            request=request,
            action='low_stock_alert',
            model_name='Item',
            object_id='low-stock',
            object_name=f'{len(low_stock_items)} item(s)',
            changes={'emails_sent': sent, 'item_ids': [item.id for item in low_stock_items]},
        )
    return Response({
        'message': 'Low stock alert processed',
        'low_stock_count': len(low_stock_items),
        'emails_sent': sent,
    })
