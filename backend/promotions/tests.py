"""
Test suite for Promotions module
Tests: tier pricing, payment ids, listing lifecycle, performance figures and the seller endpoints
"""
from datetime import timedelta
from io import StringIO

from django.core.cache import cache
from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from backend.core.exceptions import PromotionError
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.promotions.models import PromotedListing, ProductView
from backend.promotions.tiers import (
    BOOST, FEATURED, SPOTLIGHT, round_half_up, tier_weight, calculate_promotion_price,
    get_promotion_summary, build_promotion_payment_id, parse_promotion_payment_id, tiers_payload,
)
from backend.promotions.utils import (
    expire_promoted_listings, create_promoted_listing, cancel_promotion, get_shop_promotions,
    get_shop_promotion_stats, click_through_rate, get_promotion_performance, estimate_orders,
    get_promotion_comparison, estimate_roi, promotable_products, record_product_view,
)
from backend.shops.models import ShopUser


class TierTests(TestCase):
    """Test pricing and payment id helpers"""

    def test_round_half_up(self):
        self.assertEqual(round_half_up(2.5), 3)
        self.assertEqual(round_half_up(2.4999), 2)
        self.assertEqual(round_half_up(-2.5), -2)

    def test_prices_with_duration_discounts(self):
        self.assertEqual(calculate_promotion_price(BOOST, 1), 4900)
        self.assertEqual(calculate_promotion_price(BOOST, 2), 9310)
        self.assertEqual(calculate_promotion_price(FEATURED, 4), 53640)
        self.assertEqual(calculate_promotion_price(SPOTLIGHT, 4), 143640)

    def test_unlisted_duration_has_no_discount(self):
        self.assertEqual(calculate_promotion_price(BOOST, 3), 14700)

    def test_summary(self):
        self.assertEqual(get_promotion_summary(BOOST, 2), 'Boost — 2 weeks — R93.10')

    def test_tier_weight(self):
        self.assertEqual([tier_weight(t) for t in (SPOTLIGHT, FEATURED, BOOST, None)], [3, 2, 1, 0])

    def test_payment_id_round_trip(self):
        payment_id = build_promotion_payment_id(7, 42, FEATURED, 2)
        self.assertEqual(payment_id, 'promo_7_42_FEATURED_2')
        self.assertEqual(parse_promotion_payment_id(payment_id),
                         {'shop_id': '7', 'product_id': '42', 'tier': FEATURED, 'weeks': 2})

    def test_invalid_payment_ids(self):
        for payment_id in ('', 'order_1_2_BOOST_1', 'promo_1_2_GOLD_1', 'promo_1_2_BOOST_x', 'promo_1_2_BOOST_0', 'promo_1_2'):
            self.assertIsNone(parse_promotion_payment_id(payment_id), payment_id)

    def test_tiers_payload(self):
        payload = tiers_payload()
        self.assertEqual([t['key'] for t in payload['tiers']], [BOOST, FEATURED, SPOTLIGHT])
        self.assertEqual(payload['tiers'][0]['prices'][1]['price_cents'], 9310)


class PromotionServiceTests(TestCase):
    """Test promoted listing lifecycle and performance figures"""

    def setUp(self):
        self.shop = TestDataFactory.create_shop()
        self.product = TestDataFactory.create_product(self.shop, name='Leather Bag')
        TestDataFactory.create_variant(self.product)
        TestDataFactory.create_image(self.product)

    def test_create_listing(self):
        listing = create_promoted_listing(self.shop, self.product, FEATURED, 2)
        self.assertEqual(listing.status, PromotedListing.STATUS_ACTIVE)
        self.assertEqual(listing.amount_paid_cents, 28310)
        self.assertEqual(listing.expires_at - listing.starts_at, timedelta(days=14))

    def test_rejects_second_active_promotion(self):
        create_promoted_listing(self.shop, self.product, BOOST, 1)
        with self.assertRaises(PromotionError):
            create_promoted_listing(self.shop, self.product, SPOTLIGHT, 1)

    def test_rejects_product_without_image(self):
        bare = TestDataFactory.create_product(self.shop)
        TestDataFactory.create_variant(bare)
        with self.assertRaises(PromotionError):
            create_promoted_listing(self.shop, bare, BOOST, 1)

    def test_rejects_unknown_tier_and_duration(self):
        with self.assertRaises(PromotionError):
            create_promoted_listing(self.shop, self.product, 'GOLD', 1)
        with self.assertRaises(PromotionError):
            create_promoted_listing(self.shop, self.product, BOOST, 3)

    def test_rejects_product_of_other_shop(self):
        with self.assertRaises(PromotionError):
            create_promoted_listing(TestDataFactory.create_shop(), self.product, BOOST, 1)

    def test_expire_promoted_listings(self):
        past = timezone.now() - timedelta(days=8)
        stale = TestDataFactory.create_promotion(self.product, starts_at=past, expires_at=past + timedelta(days=7))
        self.assertEqual(expire_promoted_listings(), 1)
        stale.refresh_from_db()
        self.assertEqual(stale.status, PromotedListing.STATUS_EXPIRED)
        # Expired listings free the product for a new promotion
        create_promoted_listing(self.shop, self.product, BOOST, 1)

    def test_expire_command(self):
        past = timezone.now() - timedelta(days=8)
        TestDataFactory.create_promotion(self.product, starts_at=past, expires_at=past + timedelta(days=7))
        out = StringIO()
        call_command('expire_promotions', '--dry-run', stdout=out)
        self.assertIn('1 promoted listing(s) would expire', out.getvalue())
        call_command('expire_promotions', stdout=out)
        self.assertIn('Expired 1 promoted listing(s)', out.getvalue())

    def test_cancel_only_active(self):
        listing = TestDataFactory.create_promotion(self.product)
        self.assertTrue(cancel_promotion(listing.id, self.shop))
        self.assertFalse(cancel_promotion(listing.id, self.shop))
        listing.refresh_from_db()
        self.assertEqual(listing.status, PromotedListing.STATUS_CANCELLED)

    def test_cancel_other_shop_listing(self):
        listing = TestDataFactory.create_promotion(self.product)
        self.assertFalse(cancel_promotion(listing.id, TestDataFactory.create_shop()))

    def test_shop_promotions_active_first(self):
        other = TestDataFactory.create_product(self.shop)
        cancelled = TestDataFactory.create_promotion(other, status=PromotedListing.STATUS_CANCELLED)
        active = TestDataFactory.create_promotion(self.product)
        PromotedListing.objects.filter(pk=active.pk).update(created_at=timezone.now() - timedelta(days=2))
        self.assertEqual(list(get_shop_promotions(self.shop)), [active, cancelled])

    def test_stats(self):
        TestDataFactory.create_promotion(self.product, amount_paid_cents=4900, impressions=100, clicks=5)
        other = TestDataFactory.create_product(self.shop)
        TestDataFactory.create_promotion(other, status=PromotedListing.STATUS_EXPIRED, amount_paid_cents=14900,
                                         impressions=50, clicks=1)
        stats = get_shop_promotion_stats(self.shop)
        self.assertEqual(stats, {'active_count': 1, 'total_spent_cents': 19800,
                                 'total_impressions': 150, 'total_clicks': 6})

    def test_stats_empty_shop(self):
        stats = get_shop_promotion_stats(TestDataFactory.create_shop())
        self.assertEqual(stats['total_spent_cents'], 0)

    def test_click_through_rate(self):
        self.assertEqual(click_through_rate(3, 200), 1.5)
        self.assertEqual(click_through_rate(5, 0), 0)

    def test_estimate_orders(self):
        self.assertEqual(estimate_orders(0), {'low': 1, 'high': 1})
        self.assertEqual(estimate_orders(100), {'low': 10, 'high': 18})

    def test_estimate_roi(self):
        listing = TestDataFactory.create_promotion(self.product, amount_paid_cents=10000, clicks=100)
        roi = estimate_roi(listing, avg_order_cents=5000)
        self.assertEqual(roi, {'estimated_orders': 10, 'estimated_revenue_cents': 50000, 'roi': 5.0})

    def test_performance_spreads_impressions(self):
        start = timezone.now() - timedelta(days=4) + timedelta(hours=1)
        TestDataFactory.create_promotion(self.product, starts_at=start, expires_at=start + timedelta(days=7),
                                         impressions=400, clicks=8)
        performance = get_promotion_performance(self.shop)
        self.assertEqual(len(performance), 1)
        row = performance[0]
        self.assertEqual(row['days_active'], 4)
        self.assertEqual(row['avg_impressions_per_day'], 100)
        self.assertEqual(len(row['daily_data']), 4)
        self.assertEqual(row['ctr'], 2.0)

    def test_comparison(self):
        TestDataFactory.create_promotion(self.product, impressions=40, clicks=10)
        for _ in range(20):
            record_product_view(self.shop, self.product)
        record_product_view(self.shop, self.product, kind=ProductView.KIND_WHATSAPP_CLICK)
        comparison = get_promotion_comparison(self.shop)
        self.assertEqual(comparison['organic_views'], 20)
        self.assertEqual(comparison['promoted_views'], 40)
        self.assertEqual(comparison['multiplier'], 2.0)
        self.assertEqual(comparison['conversion_rate'], 1.7)

    def test_comparison_defaults_without_traffic(self):
        comparison = get_promotion_comparison(self.shop)
        self.assertEqual(comparison['multiplier'], 0)
        self.assertEqual(comparison['conversion_rate'], 8.0)

    def test_promotable_products(self):
        bare = TestDataFactory.create_product(self.shop)
        TestDataFactory.create_variant(bare)
        TestDataFactory.create_promotion(self.product)
        products = list(promotable_products(self.shop))
        self.assertEqual(products, [self.product])
        self.assertTrue(products[0].has_promotion)


class PromotionAPITests(TestCase):
    """Test the seller promotion endpoints"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.shop = TestDataFactory.create_shop(owner=self.user)
        self.product = TestDataFactory.create_product(self.shop)
        TestDataFactory.create_variant(self.product)
        TestDataFactory.create_image(self.product)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.base = f'/api/v1/shops/{self.shop.slug}/promotions'

    def test_create_promotion(self):
        data = {'product_id': self.product.id, 'tier': 'SPOTLIGHT', 'weeks': 1}
        response = self.client.post(f'{self.base}/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['amount_paid_cents'], 39900)
        self.assertEqual(response.data['badge_label'], '⭐ Spotlight')
        self.assertEqual(response.data['payment_reference'], f'promo_{self.shop.id}_{self.product.id}_SPOTLIGHT_1')

    def test_create_rejects_mismatched_reference(self):
        data = {'product_id': self.product.id, 'tier': 'BOOST', 'weeks': 1,
                'payment_reference': f'promo_{self.shop.id}_{self.product.id}_SPOTLIGHT_1'}
        response = self.client.post(f'{self.base}/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('payment_reference', response.data)

    def test_create_duplicate_returns_error(self):
        TestDataFactory.create_promotion(self.product)
        response = self.client.post(f'{self.base}/', {'product_id': self.product.id, 'tier': 'BOOST', 'weeks': 1}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)

    def test_staff_role_cannot_create(self):
        staff = TestDataFactory.create_user()
        TestDataFactory.add_member(self.shop, staff, role=ShopUser.ROLE_STAFF)
        self.client.authenticate_user(staff)
        response = self.client.post(f'{self.base}/', {'product_id': self.product.id, 'tier': 'BOOST', 'weeks': 1}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_with_stats(self):
        TestDataFactory.create_promotion(self.product, amount_paid_cents=4900)
        response = self.client.get(f'{self.base}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['promotions']), 1)
        self.assertEqual(response.data['stats']['total_spent_cents'], 4900)

    def test_cancel(self):
        listing = TestDataFactory.create_promotion(self.product)
        response = self.client.post(f'{self.base}/{listing.id}/cancel/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.post(f'{self.base}/{listing.id}/cancel/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_performance(self):
        TestDataFactory.create_promotion(self.product, impressions=10)
        response = self.client.get(f'{self.base}/performance/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['performance']), 1)
        self.assertIn('estimated_orders', response.data['comparison'])

    def test_promotable(self):
        response = self.client.get(f'{self.base}/promotable/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0]['id'], self.product.id)
        self.assertFalse(response.data[0]['has_promotion'])

    def test_quote_and_tiers_are_public(self):
        self.client.logout()
        response = self.client.get('/api/v1/promotions/quote/?tier=BOOST&weeks=2')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['price_cents'], 9310)
        response = self.client.get('/api/v1/promotions/tiers/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['tiers']), 3)
