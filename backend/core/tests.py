"""
Test suite for core module
Tests: registration, token auth, current user, audit logs and shared helpers
"""
from io import StringIO

from django.core.cache import cache
from django.core.management import call_command
from django.test import TestCase
from rest_framework import status

from backend.catalog.models import Product
from backend.core.cache_utils import cache_catalog, cached_query, get_cached_catalog, invalidate_marketplace_cache
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.core.utils import (
    create_audit_log, format_zar, format_zar_compact, rands_to_cents, generate_slug,
    generate_unique_slug, normalize_whatsapp_number, is_valid_whatsapp_number, mask_phone,
)
from backend.shops.models import Shop, ShopUser


class HelperTests(TestCase):
    """Test money, slug and phone helpers"""

    def test_format_zar(self):
        self.assertEqual(format_zar(123456), "R 1,234.56")
        self.assertEqual(format_zar(0), "R 0.00")

    def test_format_zar_compact(self):
        self.assertEqual(format_zar_compact(4900), "R49.00")

    def test_rands_to_cents_rounds_half_up(self):
        self.assertEqual(rands_to_cents('149.99'), 14999)
        self.assertEqual(rands_to_cents('0.005'), 1)
        self.assertEqual(rands_to_cents(25), 2500)

    def test_generate_slug(self):
        self.assertEqual(generate_slug("Marble Tower Fashions"), "marble-tower-fashions")
        self.assertEqual(generate_slug("  Hello   World!!  "), "hello-world")

    def test_generate_unique_slug_appends_counter(self):
        taken = {'shop', 'shop-1'}
        self.assertEqual(generate_unique_slug('shop', lambda s: s in taken), 'shop-2')
        self.assertEqual(generate_unique_slug('free', lambda s: s in taken), 'free')

    def test_normalize_whatsapp_number(self):
        self.assertEqual(normalize_whatsapp_number('071 234 5678'), '+27712345678')
        self.assertEqual(normalize_whatsapp_number('27712345678'), '+27712345678')
        self.assertEqual(normalize_whatsapp_number('+27 (71) 234-5678'), '+27712345678')

    def test_is_valid_whatsapp_number(self):
        self.assertTrue(is_valid_whatsapp_number('0712345678'))
        self.assertFalse(is_valid_whatsapp_number('12345'))
        self.assertFalse(is_valid_whatsapp_number('+4471234567'))

    def test_mask_phone(self):
        self.assertEqual(mask_phone('+27712345678'), '***5678')
        self.assertIsNone(mask_phone(''))


class AuthAPITests(TestCase):
    """Test registration, login and the current user endpoint"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_register_returns_tokens(self):
        data = {
            'username': 'thandi',
            'email': 'thandi@example.com',
            'password': 'Str0ng-Passw0rd!',
            'password_confirm': 'Str0ng-Passw0rd!',
        }
        response = self.client.post('/api/v1/auth/register/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['user']['username'], 'thandi')

    def test_register_password_mismatch(self):
        data = {
            'username': 'sipho',
            'password': 'Str0ng-Passw0rd!',
            'password_confirm': 'different-Passw0rd!',
        }
        response = self.client.post('/api/v1/auth/register/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('password', response.data)

    def test_register_normalizes_phone(self):
        data = {
            'username': 'lerato',
            'password': 'Str0ng-Passw0rd!',
            'password_confirm': 'Str0ng-Passw0rd!',
            'phone': '082 555 1234',
        }
        response = self.client.post('/api/v1/auth/register/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['user']['phone'], '+27825551234')

        data.update(username='lerato2', phone='12345')
        response = self.client.post('/api/v1/auth/register/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('phone', response.data)

    def test_login(self):
        TestDataFactory.create_user(username='seller', password='testpass123')
        response = self.client.post('/api/v1/auth/login/', {'username': 'seller', 'password': 'testpass123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_me_requires_auth(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_lists_shops_with_role(self):
        user = TestDataFactory.create_user()
        shop = TestDataFactory.create_shop(owner=user, name='Durban Denim')
        other = TestDataFactory.create_shop()
        TestDataFactory.add_member(other, user, role=ShopUser.ROLE_STAFF)
        self.client.authenticate_user(user)

        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['shops']), 2)
        roles = {s['slug']: s['role'] for s in response.data['shops']}
        self.assertEqual(roles[shop.slug], ShopUser.ROLE_OWNER)
        self.assertEqual(roles[other.slug], ShopUser.ROLE_STAFF)
        self.assertFalse(response.data['is_admin'])


class AuditLogTests(TestCase):
    """Test audit log creation and the back-office endpoints"""

    def setUp(self):
        self.admin = TestDataFactory.create_user(is_staff=True)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_create_audit_log_records_shop_slug(self):
        shop = TestDataFactory.create_shop()
        log = create_audit_log(
            action='shop_update', model_name='Shop', object_id=shop.id,
            user=self.admin, object_name=shop.name, shop=shop
        )
        self.assertEqual(log.shop_slug, shop.slug)
        self.assertEqual(log.object_id, str(shop.id))

    def test_create_audit_log_skips_missing_fields(self):
        self.assertIsNone(create_audit_log(action='shop_update', model_name='Shop'))
        self.assertEqual(AuditLog.objects.count(), 0)

    def test_audit_log_list_filters(self):
        create_audit_log(action='shop_verify', model_name='Shop', object_id=1, user=self.admin, shop='a')
        create_audit_log(action='order_status', model_name='Order', object_id=2, user=self.admin, shop='b')

        response = self.client.get('/api/v1/audit-logs/?action=shop_verify')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['action'], 'shop_verify')

        response = self.client.get('/api/v1/audit-logs/?shop=b')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['model_name'], 'Order')

    def test_audit_log_detail(self):
        log = create_audit_log(action='shop_verify', model_name='Shop', object_id=1, user=self.admin)
        response = self.client.get(f'/api/v1/audit-logs/{log.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['username'], self.admin.username)

    def test_audit_logs_admin_only(self):
        seller = TestDataFactory.create_user()
        self.client.authenticate_user(seller)
        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class SeedDemoShopCommandTests(TestCase):
    """Test the demo data command"""

    def test_seed_creates_shop_once(self):
        out = StringIO()
        call_command('seed_demo_shop', stdout=out)
        shop = Shop.objects.get(slug='demo-fashions')
        self.assertEqual(shop.memberships.get().role, ShopUser.ROLE_OWNER)
        self.assertEqual(Product.objects.filter(shop=shop).count(), 4)
        jacket = Product.objects.get(shop=shop, name='Mint Green Suit Jacket')
        self.assertEqual((jacket.min_price_cents, jacket.max_price_cents), (75000, 79000))

        call_command('seed_demo_shop', stdout=out)
        self.assertIn('already exists', out.getvalue())
        self.assertEqual(Shop.objects.filter(slug='demo-fashions').count(), 1)


class CacheInvalidationTests(TestCase):
    """Test that marketplace invalidation leaves shop catalog caches alone"""

    def setUp(self):
        cache.clear()

    def test_marketplace_invalidation_refreshes_cached_query(self):
        calls = []

        @cached_query(cache_ttl=60, key_prefix='featured_shops')
        def featured(limit):
            calls.append(limit)
            return ['durban-denim']

        cache_catalog('durban-denim', {'products': []})
        featured(5)
        featured(5)
        self.assertEqual(calls, [5])

        invalidate_marketplace_cache()
        self.assertEqual(featured(5), ['durban-denim'])
        self.assertEqual(calls, [5, 5])
        self.assertEqual(get_cached_catalog('durban-denim'), {'products': []})

    def test_shop_save_keeps_other_catalogs(self):
        other = TestDataFactory.create_shop()
        cache_catalog(other.slug, {'products': [1]})
        shop = TestDataFactory.create_shop()
        cache_catalog(shop.slug, {'products': [2]})

        with self.captureOnCommitCallbacks(execute=True):
            shop.is_verified = True
            shop.save()

        self.assertIsNone(get_cached_catalog(shop.slug))
        self.assertEqual(get_cached_catalog(other.slug), {'products': [1]})
