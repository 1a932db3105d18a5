"""
Test utilities and factories for creating test data
"""
import random
import string

from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from backend.core.models import Setting, Supervisor
from backend.catalog.models import Category, Vendor, Item
from backend.inventory.models import ItemOut
from backend.requisitions.models import Request, RequestItem

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', role='requester',
                    first_name='Test', last_name=None, is_active=True):
        """Create a test user with a workflow role"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'.lower()
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            role=role,
            first_name=first_name,
            last_name=last_name or username.title(),
            is_active=is_active,
        )

    @staticmethod
    def create_superadmin(**kwargs):
        return TestDataFactory.create_user(role='superadmin', **kwargs)

    @staticmethod
    def create_setting(key, value, description=''):
        return Setting.objects.create(key=key, value=value, description=description)

    @staticmethod
    def create_supervisor(name=None, email=None):
        """Create a low stock alert recipient"""
        if not name:
            name = f'Supervisor {TestDataFactory.random_string(4)}'
        if not email:
            email = f'supervisor_{TestDataFactory.random_string(6).lower()}@test.com'
        return Supervisor.objects.create(name=name, email=email)

    @staticmethod
    def create_category(name=None, description=None):
        """Create a test category"""
        if not name:
            name = f'Category_{TestDataFactory.random_string(6)}'
        return Category.objects.create(
            name=name,
            description=description or f'Test category {name}'
        )

    @staticmethod
    def create_vendor(name=None):
        if not name:
            name = f'Vendor_{TestDataFactory.random_string(6)}'
        return Vendor.objects.create(name=name, contact_info='0700000000')

    @staticmethod
    def create_item(name=None, quantity=20, low_stock_threshold=5, category=None, unit_price=None, **kwargs):
        """Create a test item; pass category=False for an uncategorized item"""
        if not name:
            name = f'Item_{TestDataFactory.random_string(6)}'
        if category is None:
            category = TestDataFactory.create_category()
        return Item.objects.create(
            name=name,
            quantity=quantity,
            low_stock_threshold=low_stock_threshold,
            category=category or None,
            unit_price=unit_price,
            **kwargs
        )

    @staticmethod
    def create_item_out(item, person_name='John Doe', quantity=1, issued_by=None, date_time=None):
        """Record a direct issue without touching stock"""
        kwargs = {}
        if date_time is not None:
            kwargs['date_time'] = date_time
        return ItemOut.objects.create(
            item=item,
            person_name=person_name,
            quantity=quantity,
            issued_by=issued_by,
            **kwargs
        )

    @staticmethod
    def create_request(approver=None, requester=None, items=None, request_type='material_request',
                       status='pending', project_name='Fibre Rollout'):
        """
        Create a request with lines.

        Args:
            items: list of (Item, quantity_requested) tuples; one new item when omitted
        """
        if approver is None:
            approver = TestDataFactory.create_user(role='approver')
        request_obj = Request.objects.create(
            created_by=requester.full_name if requester else 'Field Tech',
            requester=requester,
            team_leader_name='Team Lead',
            team_leader_phone='0700000000',
            project_name=project_name,
            location='Site A',
            selected_approver=approver,
            type=request_type,
            status=status,
        )
        if items is None:
            items = [(TestDataFactory.create_item(), 2)]
        for item, quantity in items:
            RequestItem.objects.create(request=request_obj, item=item, quantity_requested=quantity)
        return request_obj


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
