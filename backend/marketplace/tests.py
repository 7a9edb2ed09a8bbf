"""
Test suite for Marketplace module
Tests: promotion ranking, promoted slot interleaving, the product feed, click tracking and featured shops
"""
from datetime import datetime, timedelta, timezone as dt_timezone

from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.marketplace.ranking import rank_by_promotion, interleave_promoted_products
from backend.marketplace.utils import get_promoted_products, track_promoted_impressions, get_featured_shops
from backend.promotions.models import PromotedListing, ProductView
from backend.promotions.tiers import BOOST, FEATURED, SPOTLIGHT
from backend.shops.models import Shop


def card(product_id, day=1):
    return {'id': product_id, 'created_at': datetime(2026, 3, day, tzinfo=dt_timezone.utc)}


class RankingTests(TestCase):
    """Test the pure ordering helpers"""

    def test_rank_by_tier_then_newest(self):
        products = [card(1, day=1), card(2, day=5), card(3, day=3), card(4, day=2)]
        listings = {1: SPOTLIGHT, 3: BOOST, 4: BOOST}
        ranked = rank_by_promotion(products, listings)
        self.assertEqual([p['id'] for p in ranked], [1, 3, 4, 2])

    def test_rank_accepts_listing_objects(self):
        listing = PromotedListing(tier=FEATURED)
        ranked = rank_by_promotion([card(1, day=9), card(2, day=1)], {2: listing})
        self.assertEqual([p['id'] for p in ranked], [2, 1])

    def test_interleave_every_fifth_slot(self):
        organic = [card(i) for i in range(1, 10)]
        promoted = [card(100), card(101)]
        result = [p['id'] for p in interleave_promoted_products(organic, promoted)]
        self.assertEqual(result, [1, 2, 3, 4, 100, 5, 6, 7, 8, 101, 9])

    def test_interleave_drops_organic_duplicates(self):
        organic = [card(1), card(2), card(3)]
        result = [p['id'] for p in interleave_promoted_products(organic, [card(2)])]
        self.assertEqual(result, [1, 3, 2])

    def test_interleave_fills_tail_with_promoted(self):
        result = [p['id'] for p in interleave_promoted_products([card(1)], [card(100), card(101)])]
        self.assertEqual(result, [1, 100, 101])

    def test_interleave_without_promoted(self):
        organic = [card(1), card(2)]
        self.assertEqual(interleave_promoted_products(organic, []), organic)


class MarketplaceUtilsTests(TestCase):
    """Test promoted product selection and tracking"""

    def setUp(self):
        cache.clear()
        self.shop = TestDataFactory.create_shop()

    def make_product(self, shop=None, **kwargs):
        product = TestDataFactory.create_product(shop or self.shop, **kwargs)
        TestDataFactory.create_variant(product)
        return product

    def test_promoted_products_order(self):
        boost = self.make_product()
        spotlight = self.make_product()
        featured = self.make_product()
        now = timezone.now()
        TestDataFactory.create_promotion(boost, tier=BOOST)
        TestDataFactory.create_promotion(featured, tier=FEATURED, starts_at=now - timedelta(days=1))
        TestDataFactory.create_promotion(spotlight, tier=SPOTLIGHT, starts_at=now - timedelta(days=2))
        pairs = get_promoted_products()
        self.assertEqual([product for product, _ in pairs], [spotlight, featured, boost])

    def test_promoted_products_skip_inactive(self):
        inactive_shop = TestDataFactory.create_shop(is_active=False)
        TestDataFactory.create_promotion(self.make_product(shop=inactive_shop))
        TestDataFactory.create_promotion(self.make_product(is_active=False))
        TestDataFactory.create_promotion(self.make_product(), status=PromotedListing.STATUS_CANCELLED)
        past = timezone.now() - timedelta(days=10)
        TestDataFactory.create_promotion(self.make_product(), starts_at=past, expires_at=past + timedelta(days=7))
        self.assertEqual(get_promoted_products(), [])

    def test_track_impressions(self):
        listing = TestDataFactory.create_promotion(self.make_product())
        self.assertEqual(track_promoted_impressions([listing.id, None]), 1)
        self.assertEqual(track_promoted_impressions([]), 0)
        listing.refresh_from_db()
        self.assertEqual(listing.impressions, 1)

    def test_featured_shops(self):
        featured = TestDataFactory.create_shop(name='Featured', is_featured_shop=True)
        self.make_product(shop=featured)
        spot_shop = TestDataFactory.create_shop(name='Spot')
        TestDataFactory.create_promotion(self.make_product(shop=spot_shop), tier=SPOTLIGHT)
        boosted = TestDataFactory.create_shop(name='Boosted')
        TestDataFactory.create_promotion(self.make_product(shop=boosted), tier=BOOST)

        shops = {s['slug']: s for s in get_featured_shops(limit=10)}
        self.assertEqual(set(shops), {featured.slug, spot_shop.slug})
        self.assertEqual(shops[featured.slug]['product_count'], 1)
        self.assertFalse(shops[featured.slug]['has_spotlight'])
        self.assertTrue(shops[spot_shop.slug]['has_spotlight'])

    def test_featured_shops_cache_cleared_on_shop_change(self):
        self.assertEqual(get_featured_shops(limit=5), [])
        with self.captureOnCommitCallbacks(execute=True):
            TestDataFactory.create_shop(is_featured_shop=True)
        self.assertEqual(len(get_featured_shops(limit=5)), 1)


class MarketplaceAPITests(TestCase):
    """Test the public marketplace endpoints"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.gauteng = TestDataFactory.create_shop(province='Gauteng', city='Johannesburg', is_verified=True)
        self.cape = TestDataFactory.create_shop(province='Western Cape', city='Cape Town')

    def make_product(self, shop, price=10000, **kwargs):
        product = TestDataFactory.create_product(shop, **kwargs)
        TestDataFactory.create_variant(product, price_in_cents=price)
        return product

    def test_feed_lists_sellable_products(self):
        listed = self.make_product(self.gauteng)
        TestDataFactory.create_product(self.gauteng, name='No Variants')
        self.make_product(TestDataFactory.create_shop(is_active=False))
        response = self.client.get('/api/v1/marketplace/products/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([p['id'] for p in response.data['products']], [listed.id])
        self.assertEqual(response.data['total'], 1)
        self.assertEqual(response.data['total_pages'], 1)
        self.assertEqual(response.data['products'][0]['shop']['slug'], self.gauteng.slug)

    def test_location_and_verified_filters(self):
        jhb = self.make_product(self.gauteng)
        cpt = self.make_product(self.cape)
        response = self.client.get('/api/v1/marketplace/products/', {'province': 'western cape'})
        self.assertEqual([p['id'] for p in response.data['products']], [cpt.id])
        response = self.client.get('/api/v1/marketplace/products/?verified_only=true')
        self.assertEqual([p['id'] for p in response.data['products']], [jhb.id])

    def test_price_sort(self):
        cheap = self.make_product(self.gauteng, price=5000)
        dear = self.make_product(self.cape, price=90000)
        response = self.client.get('/api/v1/marketplace/products/?sort=price_asc')
        self.assertEqual([p['id'] for p in response.data['products']], [cheap.id, dear.id])
        response = self.client.get('/api/v1/marketplace/products/?sort=price_desc')
        self.assertEqual([p['id'] for p in response.data['products']], [dear.id, cheap.id])

    def test_pagination(self):
        for _ in range(3):
            self.make_product(self.gauteng)
        response = self.client.get('/api/v1/marketplace/products/?page=2&page_size=2')
        self.assertEqual(response.data['page'], 2)
        self.assertEqual(response.data['total_pages'], 2)
        self.assertEqual(len(response.data['products']), 1)

    def test_page_one_interleaves_and_counts_impressions(self):
        organic = [self.make_product(self.gauteng) for _ in range(5)]
        promoted = self.make_product(self.cape)
        listing = TestDataFactory.create_promotion(promoted, tier=SPOTLIGHT)
        response = self.client.get('/api/v1/marketplace/products/?page_size=5')
        ids = [p['id'] for p in response.data['products']]
        self.assertEqual(ids[4], promoted.id)
        self.assertEqual(ids.count(promoted.id), 1)
        self.assertEqual(len(ids), 5)
        self.assertEqual(response.data['products'][4]['promotion']['badge_label'], '⭐ Spotlight')
        self.assertTrue(set(ids) <= {p.id for p in organic} | {promoted.id})
        listing.refresh_from_db()
        self.assertEqual(listing.impressions, 1)

    def test_promoted_click(self):
        product = self.make_product(self.gauteng)
        listing = TestDataFactory.create_promotion(product)
        response = self.client.post(f'/api/v1/marketplace/promotions/{listing.id}/click/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['tracked'])
        listing.refresh_from_db()
        self.assertEqual(listing.clicks, 1)
        self.assertTrue(ProductView.objects.filter(kind=ProductView.KIND_PROMOTED_CLICK, product=product).exists())

    def test_promoted_click_unknown_listing(self):
        response = self.client.post('/api/v1/marketplace/promotions/999999/click/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['tracked'])

    def test_featured_shops_endpoint(self):
        Shop.objects.filter(pk=self.cape.pk).update(is_featured_shop=True)
        response = self.client.get('/api/v1/marketplace/featured-shops/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([s['slug'] for s in response.data], [self.cape.slug])
