import logging

from django.db import transaction
from django.db.models import Count, OuterRef, Q, Subquery
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.catalog.models import Item
from backend.core.emails import schedule_low_stock_alert
from backend.core.permissions import IsManager, IsSuperAdminOrIssuer
from backend.core.utils import create_audit_log, error_response, first_error
from backend.inventory.services import InsufficientStock, add_stock, deduct_stock
from .filters import RequestFilter
from .models import Request, Approval, Rejection
from .serializers import (
    RequestListSerializer, RequestDetailSerializer, RequestWriteSerializer, RequestUpdateSerializer,
    ApproveSerializer, RejectSerializer, FinalizeSerializer
)

logger = logging.getLogger('backend.requisitions')


def request_list_queryset(user):
    """Requests visible to ``user``: approvers only see pending requests assigned to them"""
    latest_rejection = Rejection.objects.filter(request=OuterRef('pk')).order_by('-created_at', '-id')
    queryset = Request.objects.select_related('selected_approver').annotate(
        item_count=Count('items', distinct=True),
        latest_reject_reason=Subquery(latest_rejection.values('reason')[:1]),
    )
    if user.role == 'approver':
        queryset = queryset.filter(~Q(status=Request.STATUS_PENDING) | Q(selected_approver=user))
    return queryset


def request_detail_response(request_obj):
    request_obj = Request.objects.select_related('selected_approver').prefetch_related(
        'items__item', 'approvals', 'rejections'
    ).get(pk=request_obj.pk)
    return RequestDetailSerializer(request_obj).data


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def request_list_create(request):
    """List requests (newest first) or submit a new one"""
    if request.method == 'GET':
        queryset = request_list_queryset(request.user)
        queryset = RequestFilter(request.query_params, queryset=queryset).qs
        queryset = queryset.order_by('-created_at', '-id')
        return Response(RequestListSerializer(queryset, many=True).data)

    serializer = RequestWriteSerializer(data=request.data, context={'user': request.user})
    if not serializer.is_valid():
        return error_response(first_error(serializer.errors))

    with transaction.atomic():
        request_obj = serializer.save()
        create_audit_log(
            request=request,
            action='create_request',
            model_name='Request',
            object_id=request_obj.id,
            object_reference=request_obj.reference,
            changes={
                'request_id': request_obj.id,
                'selected_approver_id': request_obj.selected_approver_id,
                'type': request_obj.type,
            },
        )
    logger.info(f"Request {request_obj.reference} ({request_obj.type}) created by {request_obj.created_by}")
    return Response(request_detail_response(request_obj), status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def request_detail(request, pk):
    """Retrieve a request with its items, approvals and rejections, or edit a pending request"""
    if request.method == 'GET':
        request_obj = get_object_or_404(Request, pk=pk)
        return Response(request_detail_response(request_obj))

    with transaction.atomic():
        request_obj = get_object_or_404(Request.objects.select_for_update(), pk=pk)
        if request_obj.status != Request.STATUS_PENDING:
            return error_response('Only pending requests can be edited')

        serializer = RequestUpdateSerializer(request_obj, data=request.data)
        if not serializer.is_valid():
            return error_response(first_error(serializer.errors))

        request_obj = serializer.save()
        create_audit_log(
            request=request,
            action='update_request',
            model_name='Request',
            object_id=request_obj.id,
            object_reference=request_obj.reference,
            changes={'request_id': request_obj.id},
        )
    return Response(request_detail_response(request_obj))


@api_view(['POST'])
@permission_classes([IsManager])
def request_approve(request, pk):
    """Record an approval; a pending request moves to approved"""
    serializer = ApproveSerializer(data=request.data)
    if not serializer.is_valid():
        return error_response(first_error(serializer.errors))

    with transaction.atomic():
        request_obj = get_object_or_404(Request.objects.select_for_update(), pk=pk)
        if request_obj.status != Request.STATUS_PENDING:
            return error_response('Only pending requests can be approved')

        approver_name = serializer.validated_data.get('approver_name') or request.user.full_name or request.user.username
        Approval.objects.create(
            request=request_obj,
            approver_name=approver_name,
            signature=serializer.validated_data.get('signature') or None,
            approved_by=request.user,
        )
        request_obj.status = Request.STATUS_APPROVED
        request_obj.save(update_fields=['status', 'updated_at'])
        create_audit_log(
            request=request,
            action='approve_request',
            model_name='Request',
            object_id=request_obj.id,
            object_reference=request_obj.reference,
            changes={'request_id': request_obj.id, 'approver_name': approver_name},
        )
    logger.info(f"Request {request_obj.reference} approved by {approver_name}")
    return Response({'message': 'Approval recorded', 'request': request_detail_response(request_obj)})


@api_view(['POST'])
@permission_classes([IsManager])
def request_reject(request, pk):
    """Reject a pending or approved request with a reason"""
    serializer = RejectSerializer(data=request.data)
    if not serializer.is_valid():
        return error_response(first_error(serializer.errors))
    data = serializer.validated_data

    with transaction.atomic():
        request_obj = get_object_or_404(Request.objects.select_for_update(), pk=pk)
        if request_obj.status not in Request.REJECTABLE_STATUSES:
            return error_response('Request not rejectable (must be pending or approved)')

        Rejection.objects.create(
            request=request_obj,
            rejector_name=data['rejector_name'],
            reason=data['reason'],
            rejected_by=request.user,
        )
        request_obj.status = Request.STATUS_REJECTED
        request_obj.save(update_fields=['status', 'updated_at'])
        create_audit_log(
            request=request,
            action='reject_request',
            model_name='Request',
            object_id=request_obj.id,
            object_reference=request_obj.reference,
            changes={'request_id': request_obj.id, 'reason': data['reason']},
        )
    logger.info(f"Request {request_obj.reference} rejected by {data['rejector_name']}")
    return Response({'message': 'Request rejected'})


@api_view(['POST'])
@permission_classes([IsSuperAdminOrIssuer])
def request_finalize(request, pk):
    """
    Complete an approved request and move stock.

    Material requests deduct each received quantity; item returns add it back.
    Lines without a positive received quantity leave stock untouched. Any
    insufficient line rolls back the whole operation.
    """
    serializer = FinalizeSerializer(data=request.data)
    if not serializer.is_valid():
        return error_response(first_error(serializer.errors))
    data = serializer.validated_data
    released_by = data.get('released_by') or request.user.full_name or request.user.username

    try:
        with transaction.atomic():
            request_obj = get_object_or_404(Request.objects.select_for_update(), pk=pk)
            if request_obj.status != Request.STATUS_APPROVED:
                return error_response('Request is not approved')

            lines = {line.item_id: line for line in request_obj.items.all()}
            for entry in data['items']:
                if entry['item'] not in lines:
                    return error_response(f"Item {entry['item']} is not part of this request")

            touched_items = []
            for entry in data['items']:
                line = lines[entry['item']]
                quantity = entry.get('quantity_received') or 0
                if quantity > 0:
                    if request_obj.type == Request.TYPE_MATERIAL_REQUEST:
                        touched_items.append(deduct_stock(entry['item'], quantity))
                    else:
                        touched_items.append(add_stock(entry['item'], quantity))

                line.quantity_received = entry.get('quantity_received') or None
                line.quantity_returned = entry.get('quantity_returned') or None
                line.save(update_fields=['quantity_received', 'quantity_returned', 'updated_at'])

            request_obj.status = Request.STATUS_COMPLETED
            request_obj.release_by = released_by
            request_obj.save(update_fields=['status', 'release_by', 'updated_at'])
            create_audit_log(
                request=request,
                action='finalize_request',
                model_name='Request',
                object_id=request_obj.id,
                object_reference=request_obj.reference,
                changes={'request_id': request_obj.id, 'released_by': released_by, 'type': request_obj.type},
            )
            if touched_items and request_obj.type == Request.TYPE_MATERIAL_REQUEST:
                schedule_low_stock_alert(touched_items)
    except Item.DoesNotExist:
        return error_response('Item not found', status.HTTP_404_NOT_FOUND)
    except InsufficientStock as e:
        logger.warning(f"Finalize of request {pk} rolled back: {str(e)}")
        return error_response(
            f"Insufficient stock for {e.item.name}. Only {e.item.quantity} units available. Requested: {e.requested}"
        )

    logger.info(f"Request {request_obj.reference} finalized, released by {released_by}")
    return Response({'message': 'Request finalized', 'request': request_detail_response(request_obj)})
