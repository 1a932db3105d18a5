"""
Test suite for the catalog module
Tests: categories, vendors, items, receipt images, update reasons and low stock listing
"""
import shutil
import tempfile

from django.core import mail
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from rest_framework import status

from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .models import Category, Item
from .receipts import InvalidReceipt, validate_receipt

MEDIA_ROOT = tempfile.mkdtemp()

PNG_BYTES = (
    b'\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00\x1f\x15\xc4\x89'
    b'\x00\x00\x00\rIDATx\x9cc\xf8\x0f\x00\x00\x01\x01\x00\x05\x18\xd8N\x00\x00\x00\x00IEND\xaeB`\x82'
)


def receipt_file(name='receipt.png', content_type='image/png', content=PNG_BYTES):
    return SimpleUploadedFile(name, content, content_type=content_type)


class CategoryTests(TestCase):
    """Test category CRUD"""

    def setUp(self):
        self.user = TestDataFactory.create_user(role='issuer')
        self.admin = TestDataFactory.create_superadmin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_list_includes_item_count(self):
        category = TestDataFactory.create_category(name='Cables')
        TestDataFactory.create_item(category=category)
        TestDataFactory.create_item(category=category)
        response = self.client.get('/api/v1/categories/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        row = next(row for row in response.data if row['id'] == category.id)
        self.assertEqual(row['item_count'], 2)

    def test_create_category(self):
        response = self.client.post('/api/v1/categories/', {'name': '  Tools  ', 'description': 'Hand tools'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['name'], 'Tools')
        self.assertEqual(response.data['item_count'], 0)
        self.assertTrue(AuditLog.objects.filter(action='create_category', object_name='Tools').exists())

    def test_create_category_requires_name(self):
        response = self.client.post('/api/v1/categories/', {'name': '   '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)

    def test_update_category(self):
        category = TestDataFactory.create_category(name='Old')
        response = self.client.put(f'/api/v1/categories/{category.id}/', {'name': 'New', 'description': ''}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        category.refresh_from_db()
        self.assertEqual(category.name, 'New')
        self.assertTrue(AuditLog.objects.filter(action='update_category').exists())

    def test_delete_requires_superadmin(self):
        category = TestDataFactory.create_category()
        response = self.client.delete(f'/api/v1/categories/{category.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'Super Admin access required')
        self.assertTrue(Category.objects.filter(pk=category.id).exists())

    def test_delete_keeps_items_uncategorized(self):
        category = TestDataFactory.create_category()
        item = TestDataFactory.create_item(category=category)
        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/v1/categories/{category.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        item.refresh_from_db()
        self.assertIsNone(item.category)
        self.assertTrue(AuditLog.objects.filter(action='delete_category').exists())

    def test_missing_category(self):
        response = self.client.get('/api/v1/categories/99999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class VendorTests(TestCase):
    """Test vendor list and create"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user())

    def test_create_and_list_vendor(self):
        response = self.client.post('/api/v1/vendors/', {'name': 'Acme Supplies', 'contact_info': 'acme@example.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        response = self.client.get('/api/v1/vendors/')
        self.assertEqual([row['name'] for row in response.data], ['Acme Supplies'])


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class ItemTests(TestCase):
    """Test item creation, updates, deletion and filters"""

    @classmethod
    def tearDownClass(cls):
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)
        super().tearDownClass()

    def setUp(self):
        self.user = TestDataFactory.create_user(role='issuer')
        self.admin = TestDataFactory.create_superadmin()
        self.category = TestDataFactory.create_category(name='Cables')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_item(self):
        response = self.client.post('/api/v1/items/', {
            'name': ' Fibre Patch Cord ',
            'description': 'SC/APC 3m',
            'category': self.category.id,
            'quantity': 40,
            'low_stock_threshold': 10,
            'unit_price': '2.50',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['name'], 'Fibre Patch Cord')
        self.assertEqual(response.data['category_name'], 'Cables')
        self.assertEqual(response.data['low_stock_threshold'], 10)
        self.assertFalse(response.data['is_low_stock'])
        self.assertEqual(response.data['receipt_images'], [])
        self.assertTrue(AuditLog.objects.filter(action='create_item', object_name='Fibre Patch Cord').exists())

    def test_create_item_validation_messages(self):
        cases = [
            ({'quantity': 1}, 'Item name is required'),
            ({'name': 'Cable'}, 'Quantity is required'),
            ({'name': 'Cable', 'quantity': -1}, 'Quantity cannot be negative'),
            ({'name': 'Cable', 'quantity': 1, 'unit_price': '-3'}, 'Unit price cannot be negative'),
        ]
        for data, message in cases:
            response = self.client.post('/api/v1/items/', data, format='json')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
            self.assertEqual(response.data['error'], message)

    def test_invalid_threshold_falls_back_to_default(self):
        response = self.client.post('/api/v1/items/', {'name': 'Cable', 'quantity': 10, 'low_stock_threshold': 'abc'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['low_stock_threshold'], 5)

    def test_null_threshold_falls_back_to_default(self):
        response = self.client.post('/api/v1/items/', {'name': 'Widget', 'quantity': 10, 'low_stock_threshold': None}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['low_stock_threshold'], 5)

    def test_create_item_with_receipt(self):
        response = self.client.post('/api/v1/items/', {
            'name': 'Splitter',
            'quantity': '12',
            'category': '',
            'unit_price': '',
            'receiptImage': receipt_file(),
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNone(response.data['category'])
        self.assertEqual(len(response.data['receipt_images']), 1)
        receipt = response.data['receipt_images'][0]
        self.assertTrue(receipt['path'].startswith('receipts/receipt-'))
        self.assertTrue(receipt['path'].endswith('.png'))
        self.assertIn('url', receipt)

    def test_create_item_rejects_non_image_receipt(self):
        response = self.client.post('/api/v1/items/', {
            'name': 'Splitter',
            'quantity': '12',
            'receiptImage': receipt_file(name='notes.txt', content_type='text/plain', content=b'hello'),
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Only image files are allowed')
        self.assertFalse(Item.objects.filter(name='Splitter').exists())

    def test_create_low_item_sends_alert_after_commit(self):
        TestDataFactory.create_supervisor(email='boss@example.com')
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post('/api/v1/items/', {'name': 'Connector', 'quantity': 2}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ['boss@example.com'])
        self.assertIn('Connector', mail.outbox[0].body)

    def test_item_alert_lists_every_low_item(self):
        TestDataFactory.create_supervisor(email='boss@example.com')
        TestDataFactory.create_item(name='OldEmpty', quantity=0, category=self.category)
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post('/api/v1/items/', {'name': 'NewLow', 'quantity': 2}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].subject, 'Critical Stock Alert: 1 Item(s) Out of Stock!')
        self.assertIn('OldEmpty', mail.outbox[0].body)
        self.assertIn('NewLow', mail.outbox[0].body)

    def test_update_requires_reason(self):
        item = TestDataFactory.create_item(quantity=20, category=self.category)
        response = self.client.patch(f'/api/v1/items/{item.id}/', {'quantity': 15}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Update reason is required')
        item.refresh_from_db()
        self.assertEqual(item.quantity, 20)

    def test_update_appends_reason(self):
        item = TestDataFactory.create_item(quantity=20, category=self.category)
        self.client.patch(f'/api/v1/items/{item.id}/', {'quantity': 15, 'update_reason': 'Stock count'}, format='json')
        response = self.client.patch(f'/api/v1/items/{item.id}/', {'description': 'Blue', 'update_reason': 'Relabel'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['quantity'], 15)
        reasons = response.data['update_reasons'].split(' | ')
        self.assertEqual(len(reasons), 2)
        self.assertTrue(reasons[0].startswith('Stock count at '))
        self.assertTrue(reasons[1].startswith('Relabel at '))
        log = AuditLog.objects.filter(action='update_item').latest('id')
        self.assertEqual(log.changes['update_reason'], 'Relabel')

    def test_update_with_receipt_appends_image(self):
        item = TestDataFactory.create_item(category=self.category)
        response = self.client.put(f'/api/v1/items/{item.id}/', {
            'update_reason': 'Restocked',
            'quantity': '30',
            'receiptImage': receipt_file(),
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['receipt_images']), 1)

    def test_update_dropping_to_low_stock_alerts(self):
        TestDataFactory.create_supervisor()
        item = TestDataFactory.create_item(quantity=20, category=self.category)
        with self.captureOnCommitCallbacks(execute=True):
            self.client.patch(f'/api/v1/items/{item.id}/', {'quantity': 3, 'update_reason': 'Damaged'}, format='json')
        self.assertEqual(len(mail.outbox), 1)

    def test_update_raising_stock_does_not_alert(self):
        TestDataFactory.create_supervisor()
        item = TestDataFactory.create_item(quantity=1, category=self.category)
        with self.captureOnCommitCallbacks(execute=True):
            self.client.patch(f'/api/v1/items/{item.id}/', {'quantity': 4, 'update_reason': 'Partial restock'}, format='json')
        self.assertEqual(len(mail.outbox), 0)

    def test_delete_requires_superadmin(self):
        item = TestDataFactory.create_item(category=self.category)
        response = self.client.delete(f'/api/v1/items/{item.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/v1/items/{item.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Item.objects.filter(pk=item.id).exists())
        self.assertTrue(AuditLog.objects.filter(action='delete_item', object_id=str(item.id)).exists())

    def test_delete_tolerates_missing_receipt_file(self):
        item = TestDataFactory.create_item(category=self.category,
                                           receipt_images=[{'path': 'receipts/gone.png', 'uploaded_at': ''}])
        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/v1/items/{item.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_search_matches_every_word(self):
        vendor = TestDataFactory.create_vendor(name='Acme')
        TestDataFactory.create_item(name='Patch Cord SC', category=self.category, vendor=vendor)
        TestDataFactory.create_item(name='Patch Panel', category=self.category)
        response = self.client.get('/api/v1/items/?search=patch acme')
        self.assertEqual([row['name'] for row in response.data], ['Patch Cord SC'])
        response = self.client.get('/api/v1/items/?search=cables')
        self.assertEqual(len(response.data), 2)

    def test_filter_by_category_and_stock_state(self):
        other = TestDataFactory.create_category(name='Tools')
        TestDataFactory.create_item(name='Drill', quantity=0, category=other)
        TestDataFactory.create_item(name='Cord', quantity=4, category=self.category)
        TestDataFactory.create_item(name='Duct', quantity=50, category=self.category)
        response = self.client.get(f'/api/v1/items/?category={other.id}')
        self.assertEqual([row['name'] for row in response.data], ['Drill'])
        response = self.client.get('/api/v1/items/?low_stock=true')
        self.assertEqual(sorted(row['name'] for row in response.data), ['Cord', 'Drill'])
        response = self.client.get('/api/v1/items/?out_of_stock=1')
        self.assertEqual([row['name'] for row in response.data], ['Drill'])

    def test_low_stock_list_uses_default_threshold(self):
        TestDataFactory.create_item(name='Unset', quantity=5, low_stock_threshold=None, category=self.category)
        TestDataFactory.create_item(name='Zero', quantity=0, category=self.category)
        TestDataFactory.create_item(name='Plenty', quantity=6, low_stock_threshold=None, category=self.category)
        response = self.client.get('/api/v1/low-stock/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['name'] for row in response.data], ['Zero', 'Unset'])
        self.assertEqual(response.data[1]['effective_threshold'], 5)


class ReceiptValidationTests(TestCase):

    def test_rejects_non_image(self):
        with self.assertRaises(InvalidReceipt):
            validate_receipt(receipt_file(name='a.pdf', content_type='application/pdf'))

    @override_settings(RECEIPT_MAX_BYTES=10)
    def test_rejects_oversized_image(self):
        with self.assertRaises(InvalidReceipt):
            validate_receipt(receipt_file())

    def test_accepts_image(self):
        self.assertIsNone(validate_receipt(receipt_file()))


class ItemModelTests(TestCase):

    def test_add_update_reason_joins_entries(self):
        item = TestDataFactory.create_item()
        item.add_update_reason('First', '2024-01-01 10:00:00')
        item.add_update_reason('Second', '2024-01-02 10:00:00')
        self.assertEqual(item.update_reasons.count(' | '), 1)
        self.assertIn('First', item.update_reasons)

    def test_display_vendor_name_prefers_vendor(self):
        vendor = TestDataFactory.create_vendor(name='Acme')
        item = TestDataFactory.create_item(vendor=vendor, vendor_name='Free text')
        self.assertEqual(item.display_vendor_name, 'Acme')
        item = TestDataFactory.create_item(vendor_name='Free text')
        self.assertEqual(item.display_vendor_name, 'Free text')
