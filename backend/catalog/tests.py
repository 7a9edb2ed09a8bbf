"""
Test suite for Catalog module
Tests: product and variant management, price range upkeep, filters, public catalog and its cache
"""
from django.core.cache import cache
from django.test import TestCase, override_settings
from rest_framework import status

from backend.core.cache_utils import get_cached_catalog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.catalog.filters import ProductFilter, filter_products
from backend.catalog.models import Product, ProductImage, ProductVariant
from backend.catalog.utils import unique_category_slug, public_products_queryset
from backend.promotions.models import ProductView
from backend.shops.models import Shop


class ProductModelTests(TestCase):
    """Test denormalized price range and image ordering"""

    def setUp(self):
        self.shop = TestDataFactory.create_shop()
        self.product = TestDataFactory.create_product(self.shop)

    def test_price_range_follows_active_variants(self):
        TestDataFactory.create_variant(self.product, size='S', price_in_cents=10000)
        variant = TestDataFactory.create_variant(self.product, size='L', price_in_cents=25000)
        self.product.refresh_from_db()
        self.assertEqual((self.product.min_price_cents, self.product.max_price_cents), (10000, 25000))

        variant.is_active = False
        variant.save()
        self.product.refresh_from_db()
        self.assertEqual((self.product.min_price_cents, self.product.max_price_cents), (10000, 10000))

    def test_price_range_cleared_when_last_variant_deleted(self):
        variant = TestDataFactory.create_variant(self.product)
        variant.delete()
        self.product.refresh_from_db()
        self.assertIsNone(self.product.min_price_cents)

    def test_retail_price_falls_back_to_wholesale(self):
        variant = TestDataFactory.create_variant(self.product, price_in_cents=10000)
        self.assertEqual(variant.price_for('retail'), 10000)
        variant.retail_price_in_cents = 15000
        self.assertEqual(variant.price_for('retail'), 15000)
        self.assertEqual(variant.price_for('wholesale'), 10000)

    def test_cover_image_is_first_position(self):
        TestDataFactory.create_image(self.product, url='https://img.example.com/b.jpg', position=1)
        TestDataFactory.create_image(self.product, url='https://img.example.com/a.jpg', position=0)
        self.assertEqual(self.product.cover_image, 'https://img.example.com/a.jpg')

    def test_unique_category_slug_per_shop(self):
        TestDataFactory.create_category(self.shop, name='Dresses', slug='dresses')
        self.assertEqual(unique_category_slug(self.shop, 'Dresses'), 'dresses-1')
        other = TestDataFactory.create_shop()
        self.assertEqual(unique_category_slug(other, 'Dresses'), 'dresses')


class ProductFilterTests(TestCase):
    """Test storefront filters and the in-memory search"""

    def setUp(self):
        self.shop = TestDataFactory.create_shop()
        self.tops = TestDataFactory.create_category(self.shop, name='Tops', slug='tops')
        self.shirt = TestDataFactory.create_product(self.shop, name='Linen Shirt', category=self.tops)
        TestDataFactory.create_variant(self.shirt, size='M', color='White', price_in_cents=20000, stock=0)
        self.jeans = TestDataFactory.create_product(self.shop, name='Mom Jeans', description='High waist denim')
        TestDataFactory.create_variant(self.jeans, size='32', color='Blue', price_in_cents=45000, stock=4)

    def filtered(self, params):
        return list(ProductFilter(params, queryset=Product.objects.filter(shop=self.shop)).qs)

    def test_search_matches_description(self):
        self.assertEqual(self.filtered({'search': 'DENIM'}), [self.jeans])

    def test_category_by_slug(self):
        self.assertEqual(self.filtered({'category': 'tops'}), [self.shirt])

    def test_price_bounds(self):
        self.assertEqual(self.filtered({'max_price': 30000}), [self.shirt])
        self.assertEqual(self.filtered({'min_price': 30000}), [self.jeans])

    def test_in_stock(self):
        self.assertEqual(self.filtered({'in_stock': 'true'}), [self.jeans])

    def test_size_and_color_case_insensitive(self):
        self.assertEqual(self.filtered({'color': 'white'}), [self.shirt])
        self.assertEqual(self.filtered({'size': '32'}), [self.jeans])

    def test_filter_products_in_memory(self):
        products = [
            {'name': 'Linen Shirt', 'description': ''},
            {'name': 'Mom Jeans', 'description': 'High waist denim'},
        ]
        self.assertEqual(filter_products(products, 'denim'), [products[1]])
        self.assertEqual(filter_products(products, '  '), products)
        self.assertEqual(filter_products([self.shirt, self.jeans], 'SHIRT'), [self.shirt])


class ProductAPITests(TestCase):
    """Test seller catalog endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.shop = TestDataFactory.create_shop(owner=self.user)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.base = f'/api/v1/shops/{self.shop.slug}'

    def test_create_product_with_images(self):
        data = {
            'name': 'Summer Dress',
            'images': [{'url': 'https://img.example.com/1.jpg'}, {'url': 'https://img.example.com/2.jpg'}],
        }
        response = self.client.post(f'{self.base}/products/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        positions = list(ProductImage.objects.filter(product_id=response.data['id']).values_list('position', flat=True))
        self.assertEqual(positions, [0, 1])

    @override_settings(TRADEFEED_FREE_PRODUCT_LIMIT=1)
    def test_create_product_over_limit(self):
        TestDataFactory.create_product(self.shop)
        response = self.client.post(f'{self.base}/products/', {'name': 'One Too Many'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['limit'], 1)
        self.assertIn('error', response.data)

    def test_category_from_other_shop_rejected(self):
        foreign = TestDataFactory.create_category(TestDataFactory.create_shop())
        response = self.client.post(f'{self.base}/products/', {'name': 'Hoodie', 'category': foreign.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('category', response.data)

    def test_create_category_generates_slug(self):
        response = self.client.post(f'{self.base}/categories/', {'name': 'Kids Wear'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['slug'], 'kids-wear')

    def test_create_variant_in_rands(self):
        product = TestDataFactory.create_product(self.shop)
        response = self.client.post(
            f'{self.base}/products/{product.id}/variants/',
            {'size': 'L', 'color': 'Black', 'price_in_rands': '299.99', 'stock': 5}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['price_in_cents'], 29999)
        product.refresh_from_db()
        self.assertEqual(product.min_price_cents, 29999)

    def test_variant_requires_positive_price(self):
        product = TestDataFactory.create_product(self.shop)
        response = self.client.post(f'{self.base}/products/{product.id}/variants/', {'size': 'L', 'price_in_cents': 0}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('price_in_cents', response.data)

    def test_duplicate_variant_rejected(self):
        product = TestDataFactory.create_product(self.shop)
        TestDataFactory.create_variant(product, size='M', color='Red')
        response = self.client.post(
            f'{self.base}/products/{product.id}/variants/',
            {'size': 'M', 'color': 'Red', 'price_in_cents': 1000}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_stock_out_of_range(self):
        product = TestDataFactory.create_product(self.shop)
        variant = TestDataFactory.create_variant(product)
        response = self.client.patch(f'{self.base}/variants/{variant.id}/', {'stock': 1000000}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_variant_stock(self):
        product = TestDataFactory.create_product(self.shop)
        variant = TestDataFactory.create_variant(product, stock=2)
        response = self.client.patch(f'{self.base}/variants/{variant.id}/', {'stock': 12}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        variant.refresh_from_db()
        self.assertEqual(variant.stock, 12)

    def test_product_of_other_shop_is_not_found(self):
        product = TestDataFactory.create_product(TestDataFactory.create_shop())
        response = self.client.get(f'{self.base}/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_list_filters_inactive(self):
        TestDataFactory.create_product(self.shop, name='Live')
        TestDataFactory.create_product(self.shop, name='Hidden', is_active=False)
        response = self.client.get(f'{self.base}/products/?is_active=false')
        self.assertEqual([p['name'] for p in response.data], ['Hidden'])


class PublicCatalogTests(TestCase):
    """Test the public storefront and its cache"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.shop = TestDataFactory.create_shop(name='Cape Kids', slug='cape-kids')
        self.category = TestDataFactory.create_category(self.shop, name='Shoes', slug='shoes')
        self.product = TestDataFactory.create_product(self.shop, name='Sneaker', category=self.category)
        TestDataFactory.create_variant(self.product, size='5', price_in_cents=30000)
        TestDataFactory.create_variant(self.product, size='6', price_in_cents=32000, is_active=False)

    def test_catalog_lists_sellable_products(self):
        TestDataFactory.create_product(self.shop, name='No Variants')
        TestDataFactory.create_product(self.shop, name='Inactive', is_active=False)
        response = self.client.get('/api/v1/catalog/cape-kids/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['shop']['slug'], 'cape-kids')
        self.assertEqual([p['name'] for p in response.data['products']], ['Sneaker'])
        self.assertEqual(len(response.data['products'][0]['variants']), 1)
        self.assertEqual(response.data['categories'], [{'id': self.category.id, 'name': 'Shoes', 'slug': 'shoes'}])

    def test_catalog_is_cached(self):
        self.client.get('/api/v1/catalog/cape-kids/')
        self.assertIsNotNone(get_cached_catalog('cape-kids'))

    def test_product_change_invalidates_cache_after_commit(self):
        self.client.get('/api/v1/catalog/cape-kids/')
        with self.captureOnCommitCallbacks(execute=True):
            self.product.name = 'Runner'
            self.product.save()
        self.assertIsNone(get_cached_catalog('cape-kids'))
        response = self.client.get('/api/v1/catalog/cape-kids/')
        self.assertEqual(response.data['products'][0]['name'], 'Runner')

    def test_inactive_shop_not_found(self):
        Shop.objects.filter(pk=self.shop.pk).update(is_active=False)
        response = self.client.get('/api/v1/catalog/cape-kids/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_search_only_uses_cached_payload(self):
        response = self.client.get('/api/v1/catalog/cape-kids/?search=sneak')
        self.assertEqual(len(response.data['products']), 1)
        response = self.client.get('/api/v1/catalog/cape-kids/?search=boot')
        self.assertEqual(response.data['products'], [])

    def test_filtered_catalog(self):
        response = self.client.get('/api/v1/catalog/cape-kids/?min_price=31000')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['products'], [])

    def test_product_detail_records_view(self):
        response = self.client.get(f'/api/v1/catalog/cape-kids/products/{self.product.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['shop']['slug'], 'cape-kids')
        self.assertEqual(ProductView.objects.filter(product=self.product, kind=ProductView.KIND_PRODUCT_VIEW).count(), 1)

    def test_public_queryset_excludes_inactive_variants_only_products(self):
        hidden = TestDataFactory.create_product(self.shop)
        TestDataFactory.create_variant(hidden, is_active=False)
        self.assertNotIn(hidden, list(public_products_queryset(self.shop)))
        self.assertTrue(ProductVariant.objects.filter(product=hidden).exists())
