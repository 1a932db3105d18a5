"""
Test suite for the inventory module
Tests: direct issues, stock deduction, low stock alerts and the items-out ledger
"""
from django.core import mail
from django.db import transaction
from django.test import TestCase
from rest_framework import status

from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .models import ItemOut
from .services import InsufficientStock, add_stock, deduct_stock


class IssueItemTests(TestCase):
    """Test issuing stock to a person"""

    def setUp(self):
        self.user = TestDataFactory.create_user(role='issuer', first_name='Ivy', last_name='Issuer')
        self.category = TestDataFactory.create_category(name='Cables')
        self.item = TestDataFactory.create_item(name='Drop Cable', quantity=10, low_stock_threshold=3, category=self.category)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_issue_deducts_stock(self):
        response = self.client.post('/api/v1/items-out/', {
            'person_name': 'John Doe', 'item': self.item.id, 'quantity': 4,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['item_name'], 'Drop Cable')
        self.assertEqual(response.data['issued_by_name'], 'Ivy Issuer')
        self.assertEqual(response.data['updated_item']['quantity'], 6)
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity, 6)
        log = AuditLog.objects.get(action='issue_item')
        self.assertEqual(log.changes['remaining_quantity'], 6)

    def test_issue_accepts_camel_case_keys(self):
        response = self.client.post('/api/v1/items-out/', {
            'personName': '  Jane  ', 'itemId': self.item.id, 'quantity': 1,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['person_name'], 'Jane')

    def test_issue_whole_stock(self):
        response = self.client.post('/api/v1/items-out/', {
            'person_name': 'John', 'item': self.item.id, 'quantity': 10,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity, 0)

    def test_insufficient_stock(self):
        response = self.client.post('/api/v1/items-out/', {
            'person_name': 'John', 'item': self.item.id, 'quantity': 11,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Insufficient stock. Only 10 units available. Requested: 11')
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity, 10)
        self.assertFalse(ItemOut.objects.exists())

    def test_missing_fields(self):
        response = self.client.post('/api/v1/items-out/', {'item': self.item.id, 'quantity': 1}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Person name, item and quantity are required')

    def test_non_positive_quantity(self):
        response = self.client.post('/api/v1/items-out/', {
            'person_name': 'John', 'item': self.item.id, 'quantity': 0,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Quantity must be greater than zero')

    def test_unknown_item(self):
        response = self.client.post('/api/v1/items-out/', {
            'person_name': 'John', 'item': 99999, 'quantity': 1,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Item not found')

    def test_issue_into_low_stock_mails_supervisors(self):
        TestDataFactory.create_supervisor(email='boss@example.com')
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post('/api/v1/items-out/', {
                'person_name': 'John', 'item': self.item.id, 'quantity': 8,
            }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn('Drop Cable', mail.outbox[0].body)

    def test_issue_above_threshold_sends_nothing(self):
        TestDataFactory.create_supervisor()
        with self.captureOnCommitCallbacks(execute=True):
            self.client.post('/api/v1/items-out/', {
                'person_name': 'John', 'item': self.item.id, 'quantity': 2,
            }, format='json')
        self.assertEqual(len(mail.outbox), 0)

    def test_requires_authentication(self):
        self.client.logout()
        response = self.client.get('/api/v1/items-out/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class ItemsOutListTests(TestCase):
    """Test the items-out ledger"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user())

    def test_newest_first(self):
        item = TestDataFactory.create_item(name='Cable')
        first = TestDataFactory.create_item_out(item, person_name='First')
        second = TestDataFactory.create_item_out(item, person_name='Second')
        response = self.client.get('/api/v1/items-out/')
        self.assertEqual([row['id'] for row in response.data], [second.id, first.id])

    def test_deleted_item_and_category_fallbacks(self):
        item = TestDataFactory.create_item(name='Gone', category=False)
        TestDataFactory.create_item_out(item)
        response = self.client.get('/api/v1/items-out/')
        self.assertEqual(response.data[0]['item_name'], 'Gone')
        self.assertEqual(response.data[0]['category_name'], 'Unknown Category')

        item.delete()
        response = self.client.get('/api/v1/items-out/')
        self.assertEqual(response.data[0]['item_name'], 'Unknown Item')
        self.assertEqual(response.data[0]['category_name'], 'Unknown Category')


class StockServiceTests(TestCase):

    def test_deduct_and_add(self):
        item = TestDataFactory.create_item(quantity=5)
        with transaction.atomic():
            self.assertEqual(deduct_stock(item.id, 5).quantity, 0)
            self.assertEqual(add_stock(item.id, 3).quantity, 3)

    def test_deduct_more_than_available(self):
        item = TestDataFactory.create_item(quantity=2)
        with self.assertRaises(InsufficientStock) as ctx:
            with transaction.atomic():
                deduct_stock(item.id, 3)
        self.assertEqual(ctx.exception.requested, 3)
        item.refresh_from_db()
        self.assertEqual(item.quantity, 2)


class ManualLowStockAlertTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user())

    def test_alert_reports_counts(self):
        TestDataFactory.create_supervisor()
        TestDataFactory.create_supervisor()
        TestDataFactory.create_item(quantity=1)
        TestDataFactory.create_item(quantity=0)
        TestDataFactory.create_item(quantity=50)
        response = self.client.post('/api/v1/send-low-stock-alert/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['low_stock_count'], 2)
        self.assertEqual(response.data['emails_sent'], 2)
        self.assertEqual(len(mail.outbox), 2)
        self.assertTrue(AuditLog.objects.filter(action='low_stock_alert').exists())

    def test_alert_without_supervisors(self):
        TestDataFactory.create_item(quantity=0)
        response = self.client.post('/api/v1/send-low-stock-alert/')
        self.assertEqual(response.data['emails_sent'], 0)
        self.assertFalse(AuditLog.objects.filter(action='low_stock_alert').exists())
