"""
Test suite for the core module
Tests: authentication, user administration, settings, supervisors, audit logs and e-mail alerts
"""
from io import StringIO

from django.core import mail
from django.core.management import call_command
from django.test import TestCase
from rest_framework import status

from backend.core.emails import build_low_stock_message, get_sender, send_low_stock_alert
from backend.core.models import AuditLog, Setting, Supervisor, User
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.core.utils import create_audit_log, first_error, generate_password, generate_unique_username


class AuthTests(TestCase):
    """Test login, token payload, me and logout"""

    def setUp(self):
        self.user = TestDataFactory.create_user(username='jdoe', password='secret123', role='issuer',
                                                first_name='Jane', last_name='Doe')
        self.client = AuthenticatedAPIClient()

    def test_login_returns_token_and_user(self):
        response = self.client.post('/api/v1/auth/login/', {'username': 'jdoe', 'password': 'secret123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['token'], response.data['access'])
        self.assertEqual(response.data['user']['role'], 'issuer')
        self.assertEqual(response.data['user']['full_name'], 'Jane Doe')

    def test_login_is_audited(self):
        self.client.post('/api/v1/auth/login/', {'username': 'jdoe', 'password': 'secret123'},
                         format='json', HTTP_USER_AGENT='pytest-agent')
        log = AuditLog.objects.get(action='login')
        self.assertEqual(log.user, self.user)
        self.assertEqual(log.changes['user_agent'], 'pytest-agent')

    def test_login_wrong_password(self):
        response = self.client.post('/api/v1/auth/login/', {'username': 'jdoe', 'password': 'nope'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_login_disabled_user(self):
        self.user.is_active = False
        self.user.save()
        response = self.client.post('/api/v1/auth/login/', {'username': 'jdoe', 'password': 'secret123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_includes_role_flags(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_admin'])
        self.assertTrue(response.data['can_approve'])
        self.assertTrue(response.data['can_finalize'])

    def test_unauthenticated_request_rejected(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_logout_is_audited(self):
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/v1/auth/logout/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(AuditLog.objects.filter(action='logout', user=self.user).exists())


class UserManagementTests(TestCase):
    """Test user CRUD restricted to super admins"""

    def setUp(self):
        self.admin = TestDataFactory.create_superadmin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def create_user(self, **overrides):
        data = {'first_name': 'Alice', 'last_name': 'Mukasa', 'email': 'Alice@Example.com', 'role': 'requester'}
        data.update(overrides)
        return self.client.post('/api/v1/users/', data, format='json')

    def test_create_user_generates_credentials(self):
        response = self.create_user()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['username'], 'mukasa')
        self.assertEqual(response.data['email'], 'alice@example.com')
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ['alice@example.com'])
        self.assertIn('Username: mukasa', mail.outbox[0].body)
        self.assertTrue(AuditLog.objects.filter(action='create_user', object_name='mukasa').exists())

    def test_generated_username_is_suffixed_when_taken(self):
        self.create_user()
        response = self.create_user(email='other@example.com', last_name='Mu Kasa')
        self.assertEqual(response.data['username'], 'mukasa1')

    def test_create_user_duplicate_email(self):
        self.create_user()
        response = self.create_user(last_name='Other')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Email already exists')

    def test_create_user_invalid_role(self):
        response = self.create_user(role='janitor')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid role')

    def test_non_superadmin_cannot_list_users(self):
        requester = TestDataFactory.create_user(role='requester')
        self.client.authenticate_user(requester)
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_update_user(self):
        user = TestDataFactory.create_user()
        response = self.client.put(f'/api/v1/users/{user.id}/', {
            'first_name': 'New', 'last_name': 'Name', 'email': 'new@example.com', 'role': 'approver', 'is_active': True,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        user.refresh_from_db()
        self.assertEqual(user.role, 'approver')
        self.assertEqual(user.email, 'new@example.com')

    def test_update_user_duplicate_email(self):
        user = TestDataFactory.create_user()
        other = TestDataFactory.create_user()
        response = self.client.put(f'/api/v1/users/{user.id}/', {
            'first_name': 'A', 'last_name': 'B', 'email': other.email, 'role': 'requester', 'is_active': True,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Email already exists')

    def test_update_missing_user(self):
        response = self.client.put('/api/v1/users/99999/', {'first_name': 'A'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_cannot_delete_self(self):
        response = self.client.delete(f'/api/v1/users/{self.admin.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Cannot delete your own account')

    def test_delete_user(self):
        user = TestDataFactory.create_user()
        response = self.client.delete(f'/api/v1/users/{user.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(User.objects.filter(pk=user.id).exists())
        self.assertTrue(AuditLog.objects.filter(action='delete_user', object_id=str(user.id)).exists())

    def test_change_role(self):
        user = TestDataFactory.create_user()
        response = self.client.put(f'/api/v1/users/{user.id}/role/', {'role': 'issuer'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        user.refresh_from_db()
        self.assertEqual(user.role, 'issuer')
        self.assertTrue(AuditLog.objects.filter(action='update_user_role').exists())

    def test_reset_password(self):
        user = TestDataFactory.create_user(password='oldpass123')
        response = self.client.post(f'/api/v1/users/{user.id}/reset-password/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        user.refresh_from_db()
        self.assertFalse(user.check_password('oldpass123'))
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn('Password Reset', mail.outbox[0].subject)

    def test_approver_list_visible_to_any_user(self):
        approver = TestDataFactory.create_user(role='approver')
        TestDataFactory.create_user(role='issuer')
        requester = TestDataFactory.create_user(role='requester')
        self.client.authenticate_user(requester)
        response = self.client.get('/api/v1/users/approvers/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['id'] for row in response.data], [approver.id])


class SettingTests(TestCase):
    """Test settings map and upsert"""

    def setUp(self):
        self.user = TestDataFactory.create_superadmin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_settings_map(self):
        TestDataFactory.create_setting('from_name', 'Stores')
        response = self.client.get('/api/v1/settings/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['from_name'], 'Stores')
        self.assertEqual(len(response.data['all']), 1)

    def test_upsert_setting(self):
        response = self.client.post('/api/v1/settings/from_email/', {'value': 'stores@example.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {'key': 'from_email', 'value': 'stores@example.com'})
        self.client.post('/api/v1/settings/from_email/', {'value': 'other@example.com'}, format='json')
        self.assertEqual(Setting.objects.get(key='from_email').value, 'other@example.com')
        self.assertEqual(AuditLog.objects.filter(action='update_setting').count(), 2)


class SupervisorTests(TestCase):
    """Test supervisor administration"""

    def setUp(self):
        self.user = TestDataFactory.create_superadmin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_supervisor_lowercases_email(self):
        response = self.client.post('/api/v1/supervisors/', {'name': 'Store Boss', 'email': 'Boss@Example.COM'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['email'], 'boss@example.com')

    def test_create_supervisor_requires_name_and_email(self):
        response = self.client.post('/api/v1/supervisors/', {'email': 'boss@example.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Name and email are required')

    def test_duplicate_supervisor_email(self):
        TestDataFactory.create_supervisor(email='boss@example.com')
        response = self.client.post('/api/v1/supervisors/', {'name': 'Again', 'email': 'BOSS@example.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_ordered_by_name(self):
        TestDataFactory.create_supervisor(name='Zed')
        TestDataFactory.create_supervisor(name='Amy')
        response = self.client.get('/api/v1/supervisors/')
        self.assertEqual([row['name'] for row in response.data], ['Amy', 'Zed'])

    def test_update_and_delete_supervisor(self):
        supervisor = TestDataFactory.create_supervisor()
        response = self.client.put(f'/api/v1/supervisors/{supervisor.id}/', {'name': 'Renamed', 'email': 'renamed@example.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['name'], 'Renamed')
        response = self.client.delete(f'/api/v1/supervisors/{supervisor.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Supervisor.objects.exists())

    def test_missing_supervisor(self):
        response = self.client.delete('/api/v1/supervisors/99999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Supervisor not found')

    def test_requester_forbidden(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/v1/supervisors/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class AuditLogTests(TestCase):
    """Test audit log listing and filters"""

    def setUp(self):
        self.admin = TestDataFactory.create_superadmin(first_name='Super', last_name='Admin')
        self.requester = TestDataFactory.create_user()
        create_audit_log(user=self.admin, action='create_item', model_name='Item', object_id=1, object_name='Cable')
        create_audit_log(user=self.requester, action='issue_item', model_name='ItemOut', object_id=2)
        self.client = AuthenticatedAPIClient()

    def test_superadmin_sees_all_newest_first(self):
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['action'] for row in response.data], ['issue_item', 'create_item'])
        self.assertEqual(response.data[1]['full_name'], 'Super Admin')

    def test_filter_by_action(self):
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/audit-logs/?action=create_item')
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['object_name'], 'Cable')

    def test_filter_by_user(self):
        self.client.authenticate_user(self.admin)
        response = self.client.get(f'/api/v1/audit-logs/?user={self.requester.id}')
        self.assertEqual([row['action'] for row in response.data], ['issue_item'])

    def test_any_user_sees_all_entries(self):
        self.client.authenticate_user(self.requester)
        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['action'] for row in response.data], ['issue_item', 'create_item'])

    def test_any_user_reads_another_users_entry(self):
        entry = AuditLog.objects.get(action='create_item')
        self.client.authenticate_user(self.requester)
        response = self.client.get(f'/api/v1/audit-logs/{entry.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['object_name'], 'Cable')

    def test_create_audit_log_skips_missing_fields(self):
        self.assertIsNone(create_audit_log(action='login', model_name=None, object_id=1))


class UtilityTests(TestCase):
    """Test account helpers and error flattening"""

    def test_generate_password(self):
        password = generate_password()
        self.assertEqual(len(password), 6)
        self.assertRegex(password, r'^[0-9A-F]{6}$')

    def test_generate_unique_username(self):
        self.assertEqual(generate_unique_username('  Van Der Berg '), 'vanderberg')
        TestDataFactory.create_user(username='vanderberg')
        self.assertEqual(generate_unique_username('Van Der Berg'), 'vanderberg1')

    def test_first_error_skips_valid_rows(self):
        errors = {'items': [{}, {'non_field_errors': ['Item not found: Cable']}]}
        self.assertEqual(first_error(errors), 'Item not found: Cable')


class LowStockEmailTests(TestCase):
    """Test low stock alert composition and delivery"""

    def setUp(self):
        self.category = TestDataFactory.create_category(name='Cables')

    def test_subject_escalates_when_items_are_out_of_stock(self):
        empty = TestDataFactory.create_item(name='Patch Cord', quantity=0, category=self.category)
        low = TestDataFactory.create_item(name='Connector', quantity=2, category=self.category)
        subject, text_body, html_body = build_low_stock_message([empty, low])
        self.assertEqual(subject, 'Critical Stock Alert: 1 Item(s) Out of Stock!')
        self.assertIn('Patch Cord', text_body)
        self.assertIn('Out of Stock', html_body)

    def test_subject_for_low_items_only(self):
        low = TestDataFactory.create_item(quantity=3, category=self.category)
        subject, _, _ = build_low_stock_message([low])
        self.assertEqual(subject, 'Low Stock Alert Summary')

    def test_no_supervisors_sends_nothing(self):
        TestDataFactory.create_item(quantity=0, category=self.category)
        self.assertEqual(send_low_stock_alert(), 0)
        self.assertEqual(len(mail.outbox), 0)

    def test_no_low_items_sends_nothing(self):
        TestDataFactory.create_supervisor()
        TestDataFactory.create_item(quantity=50, category=self.category)
        self.assertEqual(send_low_stock_alert(), 0)

    def test_one_mail_per_supervisor(self):
        TestDataFactory.create_supervisor(email='a@example.com')
        TestDataFactory.create_supervisor(email='b@example.com')
        TestDataFactory.create_item(quantity=1, category=self.category)
        TestDataFactory.create_setting('from_name', 'Stores')
        TestDataFactory.create_setting('from_email', 'stores@example.com')
        self.assertEqual(send_low_stock_alert(), 2)
        self.assertEqual(sorted(message.to[0] for message in mail.outbox), ['a@example.com', 'b@example.com'])
        self.assertEqual(mail.outbox[0].from_email, '"Stores" <stores@example.com>')
        self.assertEqual(get_sender(), '"Stores" <stores@example.com>')

    def test_null_threshold_uses_default(self):
        TestDataFactory.create_supervisor()
        TestDataFactory.create_item(quantity=5, low_stock_threshold=None, category=self.category)
        self.assertEqual(send_low_stock_alert(), 1)


class InitSystemCommandTests(TestCase):
    """Test the seeding command"""

    def test_seeds_superadmin_and_settings_once(self):
        out = StringIO()
        call_command('init_system', password='seedpass1', stdout=out)
        call_command('init_system', stdout=out)
        admin = User.objects.get(username='superadmin')
        self.assertEqual(admin.role, 'superadmin')
        self.assertTrue(admin.check_password('seedpass1'))
        self.assertEqual(User.objects.filter(username='superadmin').count(), 1)
        self.assertEqual(Setting.objects.get(key='from_name').value, 'Inventory System')
        self.assertTrue(Setting.objects.filter(key='from_email').exists())
        self.assertIn('Default user already exists', out.getvalue())
