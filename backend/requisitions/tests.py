"""
Test suite for the requisitions module
Tests: request submission, visibility, editing, approval, rejection and finalization
"""
from django.core import mail
from django.test import TestCase
from rest_framework import status

from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .models import Request, Approval, Rejection


class RequestCreateTests(TestCase):
    """Test submitting requests"""

    def setUp(self):
        self.requester = TestDataFactory.create_user(role='requester', first_name='Rita', last_name='Requester')
        self.approver = TestDataFactory.create_user(role='approver')
        self.cable = TestDataFactory.create_item(name='Drop Cable', quantity=50)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.requester)

    def payload(self, **overrides):
        data = {
            'projectName': 'Fibre Rollout',
            'teamLeaderPhone': '0700000000',
            'location': 'Site A',
            'ispName': 'FastNet',
            'deployment': 'FTTH',
            'selectedApproverId': self.approver.id,
            'items': [{'itemId': self.cable.id, 'requested': 5}],
        }
        data.update(overrides)
        return data

    def test_create_request(self):
        response = self.client.post('/api/v1/requests/', self.payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'pending')
        self.assertEqual(response.data['type'], 'material_request')
        self.assertEqual(response.data['created_by'], 'Rita Requester')
        self.assertEqual(response.data['team_leader_name'], 'Rita Requester')
        self.assertEqual(response.data['deployment_type'], 'FTTH')
        self.assertEqual(response.data['reference'], f"REQ-{response.data['id']:05d}")
        self.assertEqual(len(response.data['items']), 1)
        self.assertEqual(response.data['items'][0]['item_name'], 'Drop Cable')
        self.assertEqual(response.data['items'][0]['quantity_requested'], 5)
        self.assertTrue(AuditLog.objects.filter(action='create_request').exists())

    def test_create_request_does_not_move_stock(self):
        self.client.post('/api/v1/requests/', self.payload(), format='json')
        self.cable.refresh_from_db()
        self.assertEqual(self.cable.quantity, 50)

    def test_item_resolved_by_name(self):
        response = self.client.post('/api/v1/requests/', self.payload(items=[{'name': 'Drop Cable', 'quantity_requested': 2}]), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['items'][0]['item'], self.cable.id)

    def test_repeated_item_is_rejected(self):
        items = [{'itemId': self.cable.id, 'requested': 2}, {'itemId': self.cable.id, 'requested': 3}]
        response = self.client.post('/api/v1/requests/', self.payload(items=items), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Each item can only be requested once')
        self.assertFalse(Request.objects.exists())

    def test_unknown_item_name(self):
        response = self.client.post('/api/v1/requests/', self.payload(items=[{'name': 'Unicorn', 'requested': 1}]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Item not found: Unicorn')
        self.assertFalse(Request.objects.exists())

    def test_approver_required(self):
        data = self.payload()
        del data['selectedApproverId']
        response = self.client.post('/api/v1/requests/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Selected approver is required')

    def test_items_required(self):
        response = self.client.post('/api/v1/requests/', self.payload(items=[]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'At least one item is required')

    def test_requested_quantity_must_be_positive(self):
        response = self.client.post('/api/v1/requests/', self.payload(items=[{'itemId': self.cable.id, 'requested': 0}]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Requested quantity must be greater than zero')

    def test_create_item_return(self):
        response = self.client.post('/api/v1/requests/', self.payload(type='item_return', reason='Unused'), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['type'], 'item_return')
        self.assertEqual(response.data['reason'], 'Unused')


class RequestListTests(TestCase):
    """Test listing, visibility and filters"""

    def setUp(self):
        self.approver = TestDataFactory.create_user(role='approver')
        self.other_approver = TestDataFactory.create_user(role='approver')
        self.mine = TestDataFactory.create_request(approver=self.approver)
        self.theirs = TestDataFactory.create_request(approver=self.other_approver)
        self.approved = TestDataFactory.create_request(approver=self.other_approver, status='approved')
        self.client = AuthenticatedAPIClient()

    def test_approver_sees_assigned_pending_and_all_processed(self):
        self.client.authenticate_user(self.approver)
        response = self.client.get('/api/v1/requests/')
        ids = {row['id'] for row in response.data}
        self.assertEqual(ids, {self.mine.id, self.approved.id})

    def test_requester_sees_everything_newest_first(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/v1/requests/')
        self.assertEqual([row['id'] for row in response.data], [self.approved.id, self.theirs.id, self.mine.id])
        self.assertEqual(response.data[0]['item_count'], 1)

    def test_filter_by_status(self):
        self.client.authenticate_user(TestDataFactory.create_superadmin())
        response = self.client.get('/api/v1/requests/?status=approved')
        self.assertEqual([row['id'] for row in response.data], [self.approved.id])

    def test_unassigned_approver_name(self):
        self.mine.selected_approver = None
        self.mine.save()
        self.client.authenticate_user(TestDataFactory.create_superadmin())
        response = self.client.get(f'/api/v1/requests/{self.mine.id}/')
        self.assertEqual(response.data['approver_name'], 'Unassigned')

    def test_latest_reject_reason_shown(self):
        Rejection.objects.create(request=self.theirs, rejector_name='Boss', reason='Too many')
        Rejection.objects.create(request=self.theirs, rejector_name='Boss', reason='Wrong site')
        self.client.authenticate_user(TestDataFactory.create_superadmin())
        response = self.client.get('/api/v1/requests/')
        row = next(row for row in response.data if row['id'] == self.theirs.id)
        self.assertEqual(row['reject_reason'], 'Wrong site')

    def test_missing_request(self):
        self.client.authenticate_user(self.approver)
        response = self.client.get('/api/v1/requests/99999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class RequestUpdateTests(TestCase):
    """Test editing pending requests"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.item = TestDataFactory.create_item(name='Splitter')
        self.request_obj = TestDataFactory.create_request()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_update_replaces_items(self):
        response = self.client.put(f'/api/v1/requests/{self.request_obj.id}/', {
            'projectName': 'Metro Ring',
            'items': [{'itemId': self.item.id, 'requested': 7}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['project_name'], 'Metro Ring')
        self.assertEqual([(row['item'], row['quantity_requested']) for row in response.data['items']], [(self.item.id, 7)])
        self.assertTrue(AuditLog.objects.filter(action='update_request').exists())

    def test_only_pending_requests_can_be_edited(self):
        self.request_obj.status = Request.STATUS_APPROVED
        self.request_obj.save()
        original_items = list(self.request_obj.items.values_list('item_id', 'quantity_requested'))
        response = self.client.put(f'/api/v1/requests/{self.request_obj.id}/', {
            'items': [{'itemId': self.item.id, 'requested': 7}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Only pending requests can be edited')
        self.assertEqual(list(self.request_obj.items.values_list('item_id', 'quantity_requested')), original_items)

    def test_update_rejects_repeated_item(self):
        response = self.client.put(f'/api/v1/requests/{self.request_obj.id}/', {
            'items': [{'itemId': self.item.id, 'requested': 1}, {'name': 'Splitter', 'requested': 2}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Each item can only be requested once')


class RequestApprovalTests(TestCase):
    """Test approve and reject transitions"""

    def setUp(self):
        self.approver = TestDataFactory.create_user(role='approver', first_name='Ann', last_name='Approver')
        self.request_obj = TestDataFactory.create_request(approver=self.approver)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.approver)

    def test_approve(self):
        response = self.client.post(f'/api/v1/requests/{self.request_obj.id}/approve/', {
            'approverName': 'Ann A.', 'signature': 'data:image/png;base64,AAAA',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Approval recorded')
        self.assertEqual(response.data['request']['status'], 'approved')
        approval = Approval.objects.get(request=self.request_obj)
        self.assertEqual(approval.approver_name, 'Ann A.')
        self.assertEqual(approval.approved_by, self.approver)
        self.assertTrue(AuditLog.objects.filter(action='approve_request').exists())

    def test_approve_defaults_name_to_user(self):
        self.client.post(f'/api/v1/requests/{self.request_obj.id}/approve/', {}, format='json')
        self.assertEqual(Approval.objects.get(request=self.request_obj).approver_name, 'Ann Approver')

    def test_approve_twice_rejected(self):
        self.client.post(f'/api/v1/requests/{self.request_obj.id}/approve/', {}, format='json')
        response = self.client.post(f'/api/v1/requests/{self.request_obj.id}/approve/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Only pending requests can be approved')
        self.assertEqual(Approval.objects.count(), 1)

    def test_requester_cannot_approve(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='requester'))
        response = self.client.post(f'/api/v1/requests/{self.request_obj.id}/approve/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_reject_pending(self):
        response = self.client.post(f'/api/v1/requests/{self.request_obj.id}/reject/', {
            'reason': 'Over budget', 'rejectorName': 'Ann',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Request rejected')
        self.request_obj.refresh_from_db()
        self.assertEqual(self.request_obj.status, 'rejected')
        self.assertEqual(Rejection.objects.get().reason, 'Over budget')

    def test_reject_approved(self):
        self.request_obj.status = Request.STATUS_APPROVED
        self.request_obj.save()
        response = self.client.post(f'/api/v1/requests/{self.request_obj.id}/reject/', {
            'reason': 'Cancelled', 'rejector_name': 'Ann',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_reject_completed_is_refused(self):
        self.request_obj.status = Request.STATUS_COMPLETED
        self.request_obj.save()
        response = self.client.post(f'/api/v1/requests/{self.request_obj.id}/reject/', {
            'reason': 'Late', 'rejectorName': 'Ann',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Request not rejectable (must be pending or approved)')

    def test_reject_requires_reason_and_name(self):
        url = f'/api/v1/requests/{self.request_obj.id}/reject/'
        response = self.client.post(url, {'rejectorName': 'Ann'}, format='json')
        self.assertEqual(response.data['error'], 'Rejection reason is required')
        response = self.client.post(url, {'reason': 'No'}, format='json')
        self.assertEqual(response.data['error'], 'Rejector name is required')


class RequestFinalizeTests(TestCase):
    """Test finalizing approved requests and the stock movement it causes"""

    def setUp(self):
        self.issuer = TestDataFactory.create_user(role='issuer', first_name='Ivo', last_name='Issuer')
        self.cable = TestDataFactory.create_item(name='Drop Cable', quantity=20, low_stock_threshold=5)
        self.clamp = TestDataFactory.create_item(name='Clamp', quantity=3, low_stock_threshold=1)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.issuer)

    def finalize(self, request_obj, items, **extra):
        return self.client.post(f'/api/v1/requests/{request_obj.id}/finalize/', {'items': items, **extra}, format='json')

    def test_material_request_deducts_stock(self):
        request_obj = TestDataFactory.create_request(items=[(self.cable, 10)], status='approved')
        response = self.finalize(request_obj, [{'itemId': self.cable.id, 'quantityReceived': 8}], releasedBy='Store Desk')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['request']['status'], 'completed')
        self.assertEqual(response.data['request']['release_by'], 'Store Desk')
        self.assertEqual(response.data['request']['items'][0]['quantity_received'], 8)
        self.cable.refresh_from_db()
        self.assertEqual(self.cable.quantity, 12)
        self.assertTrue(AuditLog.objects.filter(action='finalize_request').exists())

    def test_release_defaults_to_current_user(self):
        request_obj = TestDataFactory.create_request(items=[(self.cable, 1)], status='approved')
        response = self.finalize(request_obj, [{'itemId': self.cable.id, 'quantityReceived': 1}])
        self.assertEqual(response.data['request']['release_by'], 'Ivo Issuer')

    def test_item_return_adds_stock(self):
        request_obj = TestDataFactory.create_request(items=[(self.cable, 4)], request_type='item_return', status='approved')
        response = self.finalize(request_obj, [{'itemId': self.cable.id, 'quantityReceived': 4}])
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.cable.refresh_from_db()
        self.assertEqual(self.cable.quantity, 24)

    def test_zero_received_leaves_stock(self):
        request_obj = TestDataFactory.create_request(items=[(self.cable, 4)], status='approved')
        response = self.finalize(request_obj, [{'itemId': self.cable.id, 'quantityReceived': 0, 'quantityReturned': 4}])
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.cable.refresh_from_db()
        self.assertEqual(self.cable.quantity, 20)

    def test_insufficient_stock_rolls_back_every_line(self):
        request_obj = TestDataFactory.create_request(items=[(self.cable, 5), (self.clamp, 5)], status='approved')
        response = self.finalize(request_obj, [
            {'itemId': self.cable.id, 'quantityReceived': 5},
            {'itemId': self.clamp.id, 'quantityReceived': 5},
        ])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Insufficient stock for Clamp. Only 3 units available. Requested: 5')
        self.cable.refresh_from_db()
        self.clamp.refresh_from_db()
        self.assertEqual(self.cable.quantity, 20)
        self.assertEqual(self.clamp.quantity, 3)
        request_obj.refresh_from_db()
        self.assertEqual(request_obj.status, 'approved')

    def test_line_outside_request_rolls_back(self):
        request_obj = TestDataFactory.create_request(items=[(self.cable, 5)], status='approved')
        response = self.finalize(request_obj, [
            {'itemId': self.cable.id, 'quantityReceived': 5},
            {'itemId': self.clamp.id, 'quantityReceived': 1},
        ])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], f'Item {self.clamp.id} is not part of this request')
        self.cable.refresh_from_db()
        self.assertEqual(self.cable.quantity, 20)

    def test_pending_request_cannot_be_finalized(self):
        request_obj = TestDataFactory.create_request(items=[(self.cable, 1)])
        response = self.finalize(request_obj, [{'itemId': self.cable.id, 'quantityReceived': 1}])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Request is not approved')

    def test_approver_cannot_finalize(self):
        request_obj = TestDataFactory.create_request(items=[(self.cable, 1)], status='approved')
        self.client.authenticate_user(TestDataFactory.create_user(role='approver'))
        response = self.finalize(request_obj, [{'itemId': self.cable.id, 'quantityReceived': 1}])
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_finalize_into_low_stock_alerts(self):
        TestDataFactory.create_supervisor()
        request_obj = TestDataFactory.create_request(items=[(self.cable, 16)], status='approved')
        with self.captureOnCommitCallbacks(execute=True):
            self.finalize(request_obj, [{'itemId': self.cable.id, 'quantityReceived': 16}])
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn('Drop Cable', mail.outbox[0].body)
