"""
Test suite for the reports module
Tests: dashboard stats, usage report, PDF and Excel exports
"""
import io
from datetime import timedelta

from django.test import TestCase
from django.utils import timezone
from openpyxl import load_workbook
from rest_framework import status

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .analytics import report_table, top_items, usage_by_day
from .exporters import build_excel, build_pdf


class DashboardStatsTests(TestCase):
    """Test dashboard headline counts"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user())

    def test_counts(self):
        category = TestDataFactory.create_category()
        low = TestDataFactory.create_item(quantity=2, category=category)
        TestDataFactory.create_item(quantity=50, category=category)
        TestDataFactory.create_item_out(low)
        TestDataFactory.create_request(items=[(low, 1)])
        TestDataFactory.create_request(items=[(low, 1)], status='completed')

        response = self.client.get('/api/v1/dashboard-stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {
            'totalItems': 2,
            'totalCategories': 1,
            'itemsOut': 1,
            'lowStockItems': 1,
            'pendingRequests': 1,
        })

    def test_requires_authentication(self):
        self.client.logout()
        response = self.client.get('/api/v1/dashboard-stats/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class UsageReportTests(TestCase):
    """Test per-day usage and top lists"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user())
        self.cable = TestDataFactory.create_item(name='Cable')
        self.clamp = TestDataFactory.create_item(name='Clamp', category=False)
        now = timezone.now()
        TestDataFactory.create_item_out(self.cable, person_name='Ann', quantity=3, date_time=now)
        TestDataFactory.create_item_out(self.cable, person_name='Ben', quantity=2, date_time=now)
        TestDataFactory.create_item_out(self.clamp, person_name='Ann', quantity=1, date_time=now)
        TestDataFactory.create_item_out(self.clamp, person_name='Old', quantity=9, date_time=now - timedelta(days=30))

    def test_usage_window_is_zero_filled(self):
        usage = usage_by_day(7)
        self.assertEqual(len(usage), 7)
        self.assertEqual(usage[-1]['date'], timezone.localdate().isoformat())
        self.assertEqual(usage[-1]['items'], 6)
        self.assertEqual(usage[-1]['users'], 2)
        self.assertEqual(sum(day['items'] for day in usage[:-1]), 0)

    def test_usage_endpoint(self):
        response = self.client.get('/api/v1/reports/usage/?days=7')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['days'], 7)
        self.assertEqual(response.data['summary']['totalItemsIssued'], 6)
        self.assertEqual(response.data['summary']['maxActiveUsers'], 2)
        self.assertEqual(response.data['summary']['avgDailyUsage'], 1)
        self.assertEqual(response.data['topItems'][0]['name'], 'Cable')
        self.assertEqual(response.data['topItems'][0]['count'], 5)
        self.assertEqual(response.data['topUsers'][0], {'name': 'Ann', 'count': 4, 'checkouts': 2})

    def test_all_time_top_items(self):
        rows = top_items()
        self.assertEqual(rows[0]['name'], 'Clamp')
        self.assertEqual(rows[0]['count'], 10)
        self.assertEqual(rows[0]['category'], 'Unknown')

    def test_invalid_days(self):
        for value in ('0', '366', 'abc'):
            response = self.client.get(f'/api/v1/reports/usage/?days={value}')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class ExportTests(TestCase):
    """Test report downloads"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user())
        category = TestDataFactory.create_category(name='Cables')
        TestDataFactory.create_item(name='Drop Cable', quantity=2, category=category, unit_price='1.50')
        TestDataFactory.create_item(name='Duct', quantity=40, category=category)

    def test_pdf_export(self):
        response = self.client.get('/api/v1/reports/export/pdf/?kind=inventory')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], 'application/pdf')
        self.assertIn('attachment; filename="inventory-report-', response['Content-Disposition'])
        self.assertTrue(response.content.startswith(b'%PDF'))

    def test_excel_export(self):
        response = self.client.get('/api/v1/reports/export/excel/?kind=low_stock')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'],
                         'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet')
        workbook = load_workbook(io.BytesIO(response.content))
        sheet = workbook.active
        self.assertEqual(sheet.title, 'low_stock')
        self.assertEqual([cell.value for cell in sheet[1]], ['Name', 'Category', 'Quantity', 'Threshold', 'Status'])
        self.assertEqual([cell.value for cell in sheet[2]], ['Drop Cable', 'Cables', 2, 5, 'Low Stock'])
        self.assertEqual(sheet.max_row, 2)

    def test_unknown_kind(self):
        response = self.client.get('/api/v1/reports/export/pdf/?kind=sales')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'kind must be one of: inventory, low_stock, items_out, usage')

    def test_every_kind_renders(self):
        for kind in ('inventory', 'low_stock', 'items_out', 'usage'):
            title, headers, rows = report_table(kind, 7)
            self.assertTrue(build_pdf(title, headers, rows).startswith(b'%PDF'))
            self.assertTrue(build_excel(title, headers, rows))

    def test_empty_table_renders(self):
        self.assertTrue(build_pdf('Empty', ['A', 'B'], []).startswith(b'%PDF'))

    def test_unknown_report_table(self):
        with self.assertRaises(ValueError):
            report_table('sales')
