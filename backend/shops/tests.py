"""
Test suite for Shops module
Tests: shop creation, membership access, product limits, back-office moderation and payment methods
"""
from django.test import TestCase, override_settings
from rest_framework import status

from backend.core.models import AuditLog
from backend.core.exceptions import ProductLimitReached, UpgradeRequestError
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.shops.models import Shop, ShopUser, PaymentMethod, UpgradeRequest
from backend.shops.utils import (
    unique_shop_slug, get_whatsapp_number_for, check_product_limit, enforce_product_limit,
    submit_upgrade_request, review_upgrade_request,
)


class ShopUtilsTests(TestCase):
    """Test slug, WhatsApp routing and product limit helpers"""

    def test_unique_shop_slug(self):
        TestDataFactory.create_shop(name='Marble Tower', slug='marble-tower')
        self.assertEqual(unique_shop_slug('Marble Tower'), 'marble-tower-1')
        self.assertEqual(unique_shop_slug('Cape Kids'), 'cape-kids')

    def test_unique_shop_slug_excludes_self(self):
        shop = TestDataFactory.create_shop(name='Marble Tower', slug='marble-tower')
        self.assertEqual(unique_shop_slug('Marble Tower', exclude_pk=shop.pk), 'marble-tower')

    def test_whatsapp_number_routing(self):
        shop = TestDataFactory.create_shop(whatsapp_number='+27710000001', retail_whatsapp_number='+27710000002')
        self.assertEqual(get_whatsapp_number_for(shop, 'wholesale'), '+27710000001')
        self.assertEqual(get_whatsapp_number_for(shop, 'retail'), '+27710000002')

        shop.retail_whatsapp_number = ''
        self.assertEqual(get_whatsapp_number_for(shop, 'retail'), '+27710000001')

    @override_settings(TRADEFEED_FREE_PRODUCT_LIMIT=2)
    def test_free_shop_product_limit(self):
        shop = TestDataFactory.create_shop()
        TestDataFactory.create_product(shop)
        TestDataFactory.create_product(shop, is_active=False)
        self.assertEqual(check_product_limit(shop), {'allowed': True, 'current': 1, 'limit': 2, 'unlimited': False})

        TestDataFactory.create_product(shop)
        with self.assertRaises(ProductLimitReached) as ctx:
            enforce_product_limit(shop)
        self.assertEqual(ctx.exception.limit, 2)

    def test_pro_shop_is_unlimited(self):
        shop = TestDataFactory.create_shop(subscription_tier=Shop.TIER_PRO)
        result = check_product_limit(shop)
        self.assertTrue(result['allowed'])
        self.assertTrue(result['unlimited'])
        self.assertIsNone(result['limit'])


class ShopAPITests(TestCase):
    """Test seller shop endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_shop_makes_owner(self):
        data = {'name': 'Joburg Threads', 'whatsapp_number': '071 234 5678', 'city': 'Johannesburg', 'province': 'Gauteng'}
        response = self.client.post('/api/v1/shops/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['slug'], 'joburg-threads')
        self.assertEqual(response.data['whatsapp_number'], '+27712345678')
        self.assertEqual(response.data['role'], ShopUser.ROLE_OWNER)
        self.assertTrue(AuditLog.objects.filter(action='shop_create', shop_slug='joburg-threads').exists())

    def test_create_shop_rejects_bad_number(self):
        response = self.client.post('/api/v1/shops/', {'name': 'Bad Number', 'whatsapp_number': '12345'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('whatsapp_number', response.data)

    def test_create_shop_name_too_short(self):
        response = self.client.post('/api/v1/shops/', {'name': 'A', 'whatsapp_number': '0712345678'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('name', response.data)

    def test_list_only_member_shops(self):
        mine = TestDataFactory.create_shop(owner=self.user)
        TestDataFactory.create_shop()
        response = self.client.get('/api/v1/shops/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([s['slug'] for s in response.data], [mine.slug])

    def test_non_member_is_forbidden(self):
        shop = TestDataFactory.create_shop()
        response = self.client.get(f'/api/v1/shops/{shop.slug}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_update_cannot_change_verification(self):
        shop = TestDataFactory.create_shop(owner=self.user)
        response = self.client.patch(f'/api/v1/shops/{shop.slug}/', {'description': 'New stock weekly', 'is_verified': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        shop.refresh_from_db()
        self.assertEqual(shop.description, 'New stock weekly')
        self.assertFalse(shop.is_verified)

    def test_staff_member_cannot_delete(self):
        shop = TestDataFactory.create_shop(owner=self.user, role=ShopUser.ROLE_STAFF)
        response = self.client.delete(f'/api/v1/shops/{shop.slug}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertTrue(Shop.objects.filter(pk=shop.pk).exists())

    def test_owner_can_delete(self):
        shop = TestDataFactory.create_shop(owner=self.user)
        response = self.client.delete(f'/api/v1/shops/{shop.slug}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Shop.objects.filter(pk=shop.pk).exists())

    def test_product_limit_endpoint(self):
        shop = TestDataFactory.create_shop(owner=self.user)
        TestDataFactory.create_product(shop)
        response = self.client.get(f'/api/v1/shops/{shop.slug}/product-limit/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['current'], 1)


class AdminShopAPITests(TestCase):
    """Test back-office shop moderation"""

    def setUp(self):
        self.admin = TestDataFactory.create_user(is_staff=True)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_list_with_filter_and_search(self):
        TestDataFactory.create_shop(name='Verified Fashions', is_verified=True)
        TestDataFactory.create_shop(name='New Kicks')
        response = self.client.get('/api/v1/admin/shops/?filter=verified')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['name'], 'Verified Fashions')

        response = self.client.get('/api/v1/admin/shops/?search=kicks')
        self.assertEqual(response.data['count'], 1)

    def test_list_includes_owner_and_counts(self):
        owner = TestDataFactory.create_user(username='owner1')
        shop = TestDataFactory.create_shop(owner=owner)
        product = TestDataFactory.create_product(shop)
        TestDataFactory.create_order(shop, TestDataFactory.create_variant(product))
        response = self.client.get('/api/v1/admin/shops/')
        row = response.data['results'][0]
        self.assertEqual(row['owner']['username'], 'owner1')
        self.assertEqual(row['product_count'], 1)
        self.assertEqual(row['order_count'], 1)

    def test_verify_shop(self):
        shop = TestDataFactory.create_shop()
        response = self.client.post(f'/api/v1/admin/shops/{shop.id}/verify/', {'is_verified': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        shop.refresh_from_db()
        self.assertTrue(shop.is_verified)
        log = AuditLog.objects.get(action='shop_verify')
        self.assertEqual(log.changes, {'is_verified': {'old': False, 'new': True}})

    def test_feature_requires_boolean(self):
        shop = TestDataFactory.create_shop()
        response = self.client.post(f'/api/v1/admin/shops/{shop.id}/feature/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_deactivate_shop(self):
        shop = TestDataFactory.create_shop()
        response = self.client.post(f'/api/v1/admin/shops/{shop.id}/activate/', {'is_active': False}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        shop.refresh_from_db()
        self.assertFalse(shop.is_active)

    def test_non_staff_forbidden(self):
        seller = TestDataFactory.create_user()
        self.client.authenticate_user(seller)
        response = self.client.get('/api/v1/admin/shops/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class PaymentMethodAPITests(TestCase):
    """Test payment method management"""

    def setUp(self):
        self.admin = TestDataFactory.create_user(is_staff=True)
        self.client = AuthenticatedAPIClient()

    def test_public_list_shows_active_in_order(self):
        PaymentMethod.objects.create(name='EFT', display_order=2)
        PaymentMethod.objects.create(name='SnapScan', display_order=1)
        PaymentMethod.objects.create(name='Cheque', is_active=False)
        response = self.client.get('/api/v1/payment-methods/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([m['name'] for m in response.data], ['SnapScan', 'EFT'])

    def test_admin_crud(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/v1/admin/payment-methods/', {'name': 'EFT', 'instructions': 'FNB 123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        pk = response.data['id']

        response = self.client.patch(f'/api/v1/admin/payment-methods/{pk}/', {'is_active': False}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_active'])

        response = self.client.delete(f'/api/v1/admin/payment-methods/{pk}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)


class UpgradeRequestServiceTests(TestCase):
    """Test submitting and reviewing manual upgrade requests"""

    def setUp(self):
        self.owner = TestDataFactory.create_user()
        self.admin = TestDataFactory.create_user(is_staff=True)
        self.shop = TestDataFactory.create_shop(owner=self.owner)
        self.method = TestDataFactory.create_payment_method(name='EFT')

    def test_submit_keeps_plan_until_approved(self):
        upgrade_request = submit_upgrade_request(self.shop, self.owner, self.method, '  TF-EFT-001 ')
        self.assertEqual(upgrade_request.status, UpgradeRequest.STATUS_PENDING)
        self.assertEqual(upgrade_request.payment_reference, 'TF-EFT-001')
        self.assertEqual(upgrade_request.payment_method_name, 'EFT')
        self.shop.refresh_from_db()
        self.assertEqual(self.shop.subscription_tier, Shop.TIER_FREE)

    def test_submit_rejects_pro_shop_blank_reference_and_inactive_method(self):
        pro = TestDataFactory.create_shop(owner=self.owner, subscription_tier=Shop.TIER_PRO)
        with self.assertRaises(UpgradeRequestError):
            submit_upgrade_request(pro, self.owner, self.method, 'REF1')
        with self.assertRaises(UpgradeRequestError):
            submit_upgrade_request(self.shop, self.owner, self.method, '   ')
        inactive = TestDataFactory.create_payment_method(is_active=False)
        with self.assertRaises(UpgradeRequestError):
            submit_upgrade_request(self.shop, self.owner, inactive, 'REF1')
        self.assertEqual(UpgradeRequest.objects.count(), 0)

    def test_only_one_pending_request(self):
        submit_upgrade_request(self.shop, self.owner, self.method, 'REF1')
        with self.assertRaises(UpgradeRequestError) as ctx:
            submit_upgrade_request(self.shop, self.owner, self.method, 'REF2')
        self.assertIn('pending', ctx.exception.message)

    def test_approve_moves_shop_to_pro(self):
        upgrade_request = submit_upgrade_request(self.shop, self.owner, self.method, 'REF1')
        upgrade_request = review_upgrade_request(upgrade_request, self.admin, approve=True, admin_note='Paid in full')
        self.assertEqual(upgrade_request.status, UpgradeRequest.STATUS_APPROVED)
        self.assertEqual(upgrade_request.reviewed_by, self.admin)
        self.assertIsNotNone(upgrade_request.reviewed_at)
        self.shop.refresh_from_db()
        self.assertTrue(self.shop.is_pro)
        self.assertTrue(check_product_limit(self.shop)['unlimited'])

    def test_reject_keeps_plan_and_allows_resubmission(self):
        upgrade_request = submit_upgrade_request(self.shop, self.owner, self.method, 'REF1')
        review_upgrade_request(upgrade_request, self.admin, approve=False, admin_note='Payment not received')
        self.shop.refresh_from_db()
        self.assertFalse(self.shop.is_pro)
        self.assertEqual(submit_upgrade_request(self.shop, self.owner, self.method, 'REF2').status,
                         UpgradeRequest.STATUS_PENDING)

    def test_reviewed_request_cannot_be_reviewed_again(self):
        upgrade_request = submit_upgrade_request(self.shop, self.owner, self.method, 'REF1')
        review_upgrade_request(upgrade_request, self.admin, approve=False)
        with self.assertRaises(UpgradeRequestError):
            review_upgrade_request(upgrade_request, self.admin, approve=True)
        self.shop.refresh_from_db()
        self.assertFalse(self.shop.is_pro)


class UpgradeRequestAPITests(TestCase):
    """Test the seller upgrade endpoint and the back-office review"""

    def setUp(self):
        self.owner = TestDataFactory.create_user()
        self.admin = TestDataFactory.create_user(is_staff=True)
        self.shop = TestDataFactory.create_shop(owner=self.owner)
        self.method = TestDataFactory.create_payment_method(name='SnapScan')
        self.client = AuthenticatedAPIClient()
        self.url = f'/api/v1/shops/{self.shop.slug}/upgrade-requests/'

    def submit(self, reference='SNAP-123'):
        return self.client.post(self.url, {
            'payment_method': self.method.id,
            'payment_reference': reference,
            'proof_of_payment_url': 'https://example.com/proof.pdf',
        }, format='json')

    def test_owner_submits_request(self):
        self.client.authenticate_user(self.owner)
        response = self.submit()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], UpgradeRequest.STATUS_PENDING)
        self.assertEqual(response.data['payment_method_name'], 'SnapScan')
        self.assertTrue(AuditLog.objects.filter(action='upgrade_request', shop_slug=self.shop.slug).exists())

        response = self.client.get(self.url)
        self.assertEqual(len(response.data), 1)

    def test_second_pending_request_rejected(self):
        self.client.authenticate_user(self.owner)
        self.submit()
        response = self.submit('SNAP-456')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('pending', response.data['error'])

    def test_manager_cannot_submit(self):
        manager = TestDataFactory.create_user()
        TestDataFactory.add_member(self.shop, manager, role=ShopUser.ROLE_MANAGER)
        self.client.authenticate_user(manager)
        response = self.submit()
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(UpgradeRequest.objects.count(), 0)

    def test_inactive_payment_method_rejected(self):
        PaymentMethod.objects.filter(pk=self.method.pk).update(is_active=False)
        self.client.authenticate_user(self.owner)
        response = self.submit()
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('payment_method', response.data)

    def test_admin_approves_request(self):
        upgrade_request = submit_upgrade_request(self.shop, self.owner, self.method, 'SNAP-123')
        self.client.authenticate_user(self.admin)

        response = self.client.get('/api/v1/admin/upgrade-requests/?status=pending')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([r['id'] for r in response.data['results']], [upgrade_request.id])

        response = self.client.post(f'/api/v1/admin/upgrade-requests/{upgrade_request.id}/approve/',
                                    {'admin_note': 'Confirmed on statement'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], UpgradeRequest.STATUS_APPROVED)
        self.shop.refresh_from_db()
        self.assertEqual(self.shop.subscription_tier, Shop.TIER_PRO)

        log = AuditLog.objects.get(action='upgrade_approve')
        self.assertEqual(log.changes['subscription_tier'], {'old': Shop.TIER_FREE, 'new': Shop.TIER_PRO})

        response = self.client.post(f'/api/v1/admin/upgrade-requests/{upgrade_request.id}/reject/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_admin_rejects_request(self):
        upgrade_request = submit_upgrade_request(self.shop, self.owner, self.method, 'SNAP-123')
        self.client.authenticate_user(self.admin)
        response = self.client.post(f'/api/v1/admin/upgrade-requests/{upgrade_request.id}/reject/',
                                    {'admin_note': 'No payment found'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['admin_note'], 'No payment found')
        self.shop.refresh_from_db()
        self.assertEqual(self.shop.subscription_tier, Shop.TIER_FREE)
        self.assertTrue(AuditLog.objects.filter(action='upgrade_reject').exists())

    def test_review_requires_admin(self):
        upgrade_request = submit_upgrade_request(self.shop, self.owner, self.method, 'SNAP-123')
        self.client.authenticate_user(self.owner)
        response = self.client.post(f'/api/v1/admin/upgrade-requests/{upgrade_request.id}/approve/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.get('/api/v1/admin/upgrade-requests/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
