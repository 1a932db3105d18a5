"""
Test suite for the assistant module
Tests: rule and fuzzy intent matching, canned answers and report links
"""
from django.test import SimpleTestCase, TestCase
from rest_framework import status

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .handlers import FALLBACK_MESSAGE, find_item, inventory_health
from .intents import fuzzy_intent, match_intent


class IntentMatchingTests(SimpleTestCase):
    """Test mapping free text to intents"""

    def test_rule_intents(self):
        cases = [
            ('Help', 'help', {}),
            ('hello there', 'greeting', {}),
            ('search for Drop Cable', 'search', {'term': 'drop cable'}),
            ('show user stats', 'user_stats', {}),
            ('weekly summary please', 'weekly_summary', {}),
            ('which items are out of stock', 'out_of_stock', {}),
            ('low stock items', 'low_stock', {}),
            ('items in Electronics', 'items_in_category', {'category': 'electronics'}),
            ('list categories', 'list_categories', {}),
            ('who took the splitter?', 'who_took', {'item': 'splitter'}),
            ('stock of patch cord', 'stock_of', {'item': 'patch cord'}),
            ('how many cables do we have?', 'stock_of', {'item': 'cables'}),
            ('recent checkouts', 'recent_checkouts', {}),
            ('top items', 'top_items', {}),
            ('any pending requests?', 'pending_requests', {}),
            ('request status #12', 'request_status', {'id': '12'}),
            ('status of request REQ-7', 'request_status', {'id': '7'}),
            ('what is the inventory value', 'inventory_value', {}),
            ('how many pending requests are there?', 'pending_requests', {}),
            ('how many categories do we have?', 'list_categories', {}),
            ('how many recent checkouts', 'recent_checkouts', {}),
        ]
        for message, intent, params in cases:
            with self.subTest(message=message):
                self.assertEqual(match_intent(message), (intent, params))

    def test_report_request_takes_precedence(self):
        self.assertEqual(match_intent('Generate PDF report of low stock'), ('generate_report', {'format': 'pdf'}))
        self.assertEqual(match_intent('export excel inventory report'), ('generate_report', {'format': 'excel'}))

    def test_fuzzy_intents(self):
        self.assertEqual(match_intent('wekly sumary'), ('weekly_summary', {}))
        self.assertEqual(match_intent('show catgories'), ('list_categories', {}))

    def test_fuzzy_below_cutoff(self):
        intent, score = fuzzy_intent('zebra migration')
        self.assertIsNone(intent)
        self.assertLess(score, 0.75)

    def test_unknown_and_empty(self):
        self.assertEqual(match_intent('zebra migration'), ('unknown', {}))
        self.assertEqual(match_intent('   '), ('unknown', {}))

    def test_inventory_health(self):
        self.assertEqual(inventory_health(5), '🟢 Good')
        self.assertEqual(inventory_health(6), '🟠 Needs attention')


class AssistantQueryTests(TestCase):
    """Test the assistant endpoint answers"""

    def setUp(self):
        self.user = TestDataFactory.create_user(first_name='Ada')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.cables = TestDataFactory.create_category(name='Cables')
        self.cable = TestDataFactory.create_item(name='Drop Cable', quantity=2, category=self.cables, unit_price='10.00')
        self.duct = TestDataFactory.create_item(name='Duct', quantity=30, category=self.cables, unit_price='1.50')

    def ask(self, message):
        response = self.client.post('/api/v1/assistant/query/', {'message': message}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        return response.data

    def test_message_required(self):
        response = self.client.post('/api/v1/assistant/query/', {'message': ''}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Message is required')

    def test_greeting_uses_first_name(self):
        data = self.ask('hi')
        self.assertEqual(data['intent'], 'greeting')
        self.assertIn('Ada', data['messages'][0])

    def test_search(self):
        data = self.ask('search for cable')
        self.assertEqual(data['messages'][0], '📦 I found 1 items matching "cable":')
        self.assertIn('Drop Cable - Quantity: 2 ⚠️ LOW STOCK', data['messages'][1])

    def test_search_without_results(self):
        data = self.ask('search for unicorn')
        self.assertEqual(data['messages'], ['No items found matching "unicorn". Try a different search term.'])

    def test_low_stock(self):
        data = self.ask('low stock')
        self.assertEqual(data['messages'][0], '⚠️ Found 1 items with low stock:')
        self.assertIn('Drop Cable - Current: 2, Threshold: 5', data['messages'][1])

    def test_no_low_stock(self):
        self.cable.quantity = 40
        self.cable.save()
        data = self.ask('low stock')
        self.assertEqual(data['messages'], ['Good news! No items are currently below their low stock threshold.'])

    def test_items_in_category(self):
        data = self.ask('items in cables')
        self.assertEqual(data['messages'][0], '📂 Found 2 items in Cables category:')

    def test_weekly_summary(self):
        TestDataFactory.create_item_out(self.duct, quantity=4)
        data = self.ask('weekly summary')
        self.assertEqual(data['messages'][0], '📊 Weekly Inventory Summary:')
        self.assertIn('Total items in stock: 32', data['messages'][1])
        self.assertIn('Items checked out this week: 4', data['messages'][1])
        self.assertIn('🟢 Good', data['messages'][1])

    def test_user_stats(self):
        TestDataFactory.create_item_out(self.duct, person_name='Ann', quantity=4)
        TestDataFactory.create_item_out(self.cable, person_name='Ben', quantity=1)
        data = self.ask('user stats')
        self.assertEqual(data['messages'][0], '👥 Top users by items checked out:')
        self.assertEqual(data['messages'][1], '1. Ann: 4 items\n2. Ben: 1 items')

    def test_stock_of_with_fuzzy_name(self):
        data = self.ask('how many drop cables?')
        self.assertIn('Drop Cable: 2 units in stock', data['messages'][0])

    def test_who_took(self):
        TestDataFactory.create_item_out(self.duct, person_name='Ann', quantity=4)
        data = self.ask('who took duct')
        self.assertEqual(data['messages'][0], '👤 People who took Duct:')
        self.assertIn('Ann - 4', data['messages'][1])

    def test_request_status(self):
        request_obj = TestDataFactory.create_request(items=[(self.cable, 1)], status='approved')
        data = self.ask(f'request status {request_obj.id}')
        self.assertEqual(data['messages'][0], f'📄 Request {request_obj.reference} is Approved.')

    def test_missing_request(self):
        data = self.ask('request status 999')
        self.assertEqual(data['messages'], ["I couldn't find request #999."])

    def test_inventory_value(self):
        data = self.ask('inventory value')
        self.assertEqual(data['messages'][0], '💰 Total inventory value: 65.00')

    def test_report_download_link(self):
        data = self.ask('generate pdf report of low stock')
        self.assertEqual(data['intent'], 'generate_report')
        self.assertEqual(data['download'], {
            'kind': 'low_stock',
            'format': 'pdf',
            'url': '/api/v1/reports/export/pdf/?kind=low_stock',
        })

    def test_fallback(self):
        data = self.ask('zebra migration')
        self.assertEqual(data, {'intent': 'unknown', 'messages': [FALLBACK_MESSAGE]})

    def test_find_item_strategies(self):
        self.assertEqual(find_item('drop cable'), self.cable)
        self.assertEqual(find_item('duc'), self.duct)
        self.assertEqual(find_item('drop cabel'), self.cable)
        self.assertIsNone(find_item('satellite dish'))
