"""
Test suite for Orders module
Tests: cart arithmetic, WhatsApp message, order creation and stock, status changes, checkout and tracking
"""
from urllib.parse import unquote

from django.db.models import F
from django.db.models.signals import post_save
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status

from backend.catalog.models import ProductVariant
from backend.core.exceptions import InsufficientStockError, InvalidStatusTransition, TradeFeedError
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.orders.cart import Cart, CartLine, WHOLESALE, RETAIL
from backend.orders.models import Order
from backend.orders.utils import (
    generate_order_number, validate_stock, resolve_order_type, create_order,
    can_transition, update_order_status, get_order_stats, find_order_for_tracking,
)
from backend.orders.whatsapp import build_whatsapp_message, build_whatsapp_url, build_whatsapp_checkout_url
from backend.promotions.models import ProductView


def make_line(variant_id=1, quantity=1, price_in_cents=10000, max_stock=10, order_type=WHOLESALE, **kwargs):
    kwargs.setdefault('product_id', 100)
    kwargs.setdefault('product_name', 'Summer Dress')
    kwargs.setdefault('size', 'M')
    return CartLine(variant_id=variant_id, price_in_cents=price_in_cents, max_stock=max_stock,
                    quantity=quantity, order_type=order_type, **kwargs)


class CartTests(TestCase):
    """Test cart line arithmetic"""

    def setUp(self):
        self.cart = Cart('cape-kids')

    def test_add_merges_same_variant_and_type(self):
        self.cart.add(make_line(), 2)
        self.cart.add(make_line(), 3)
        self.assertEqual(len(self.cart.lines), 1)
        self.assertEqual(self.cart.lines[0].quantity, 5)

    def test_same_variant_different_type_is_separate_line(self):
        self.cart.add(make_line(), 1)
        self.cart.add(make_line(order_type=RETAIL), 1)
        self.assertEqual(len(self.cart.lines), 2)
        self.assertEqual(len(self.cart.lines_for(RETAIL)), 1)

    def test_add_caps_at_stock(self):
        self.cart.add(make_line(max_stock=4), 3)
        line = self.cart.add(make_line(max_stock=4), 3)
        self.assertEqual(line.quantity, 4)

    def test_add_floors_at_minimum(self):
        line = self.cart.add(make_line(min_wholesale_qty=6), 1)
        self.assertEqual(line.quantity, 6)

    def test_add_refreshes_price(self):
        self.cart.add(make_line(price_in_cents=10000), 1)
        line = self.cart.add(make_line(price_in_cents=12000), 1)
        self.assertEqual(line.price_in_cents, 12000)

    def test_update_below_minimum_removes_line(self):
        self.cart.add(make_line(min_wholesale_qty=3), 3)
        self.assertIsNone(self.cart.update_quantity(1, 2))
        self.assertTrue(self.cart.is_empty())

    def test_update_caps_at_stock(self):
        self.cart.add(make_line(max_stock=5), 1)
        self.assertEqual(self.cart.update_quantity(1, 50).quantity, 5)

    def test_update_unknown_line(self):
        self.assertIsNone(self.cart.update_quantity(99, 1))

    def test_totals(self):
        self.cart.add(make_line(variant_id=1, price_in_cents=10000), 2)
        self.cart.add(make_line(variant_id=2, price_in_cents=2500), 3)
        self.assertEqual(self.cart.total_items, 5)
        self.assertEqual(self.cart.total_price_cents, 27500)

    def test_remove_and_clear(self):
        self.cart.add(make_line(variant_id=1), 1)
        self.cart.add(make_line(variant_id=2), 1)
        self.cart.remove(1)
        self.assertEqual([line.variant_id for line in self.cart.lines], [2])
        self.cart.clear()
        self.assertEqual(self.cart.total_items, 0)

    def test_line_dict_round_trip(self):
        line = make_line(color='Teal', order_type=RETAIL)
        self.assertEqual(CartLine.from_dict(line.to_dict()).key, (1, RETAIL))


@override_settings(TRADEFEED_BASE_URL='https://tradefeed.co.za')
class WhatsAppMessageTests(TestCase):
    """Test the order message and wa.me link"""

    def test_empty_cart_gives_empty_message(self):
        self.assertEqual(build_whatsapp_message([]), '')

    def test_message_layout(self):
        lines = [make_line(product_name='Mint Green Suit Jacket', size='44', color='Teal',
                           option2_label='Color', price_in_cents=75000, quantity=6)]
        message = build_whatsapp_message(lines, order_number='TF-20260302-A1B2', shop_slug='suits')
        self.assertTrue(message.startswith('🛒 *New Order #TF-20260302-A1B2*\n\n┌'))
        self.assertIn('│ 6× *Mint Green Suit Jacket*', message)
        self.assertIn('│    Size: 44 | Color: Teal', message)
        self.assertIn('│    💰 R 750.00 × 6 = R 4,500.00', message)
        self.assertIn('│    🔗 https://tradefeed.co.za/catalog/suits/products/100', message)
        self.assertIn('💰 *Total: R 4,500.00*\n📦 Items: 6', message)
        self.assertIn('📦 *Track:* https://tradefeed.co.za/track/TF-20260302-A1B2', message)
        self.assertTrue(message.endswith('Thank you for your order! 🙏'))

    def test_single_unit_and_retail_marker(self):
        message = build_whatsapp_message([make_line(order_type=RETAIL)])
        self.assertIn('🛒 *New Order from TradeFeed*', message)
        self.assertIn('*Summer Dress* 🛍️', message)
        self.assertIn('│    💰 R 100.00\n', message)
        self.assertNotIn('Color:', message)
        self.assertNotIn('Track:', message)

    def test_delivery_section(self):
        delivery = {'address': '12 Long Street', 'city': 'Cape Town', 'province': 'Western Cape', 'postal_code': '8001'}
        message = build_whatsapp_message([make_line()], delivery=delivery)
        self.assertIn('📍 *Deliver to:*\n   12 Long Street\n   Cape Town, Western Cape 8001', message)

    def test_url_strips_plus_and_encodes(self):
        url = build_whatsapp_url('+27712345678', "Hi (it's me)!\nR 1,000")
        self.assertTrue(url.startswith('https://wa.me/27712345678?text='))
        self.assertIn("(it's", url)
        self.assertIn('%0A', url)
        self.assertEqual(unquote(url.split('text=', 1)[1]), "Hi (it's me)!\nR 1,000")

    def test_checkout_url_carries_full_message(self):
        lines = [make_line(quantity=2)]
        url = build_whatsapp_checkout_url('+27712345678', lines, order_number='TF-20260302-A1B2', shop_slug='suits')
        self.assertTrue(url.startswith('https://wa.me/27712345678?text='))
        self.assertEqual(
            unquote(url.split('text=', 1)[1]),
            build_whatsapp_message(lines, order_number='TF-20260302-A1B2', shop_slug='suits'),
        )


class OrderServiceTests(TestCase):
    """Test order numbers, stock checks, order creation and status changes"""

    def setUp(self):
        self.shop = TestDataFactory.create_shop()
        self.product = TestDataFactory.create_product(self.shop, name='Denim Jacket')
        self.variant = TestDataFactory.create_variant(self.product, size='M', price_in_cents=50000, stock=5,
                                                      retail_price_in_cents=65000)

    def test_order_number_format(self):
        number = generate_order_number()
        today = timezone.localdate().strftime('%Y%m%d')
        self.assertRegex(number, rf'^TF-{today}-[A-HJ-NP-Z2-9]{{4}}$')

    def test_validate_stock(self):
        result = validate_stock([
            {'variant_id': self.variant.id, 'quantity': 6, 'product_name': 'Denim Jacket'},
            {'variant_id': 999999, 'quantity': 1},
        ])
        self.assertFalse(result['valid'])
        self.assertEqual(result['errors'][0]['available'], 5)
        self.assertEqual(result['errors'][1]['available'], 0)
        self.assertTrue(validate_stock([{'variant_id': self.variant.id, 'quantity': 5}])['valid'])

    def test_validate_stock_sums_lines_for_same_variant(self):
        result = validate_stock([
            {'variant_id': self.variant.id, 'quantity': 3, 'order_type': WHOLESALE},
            {'variant_id': self.variant.id, 'quantity': 3, 'order_type': RETAIL},
        ])
        self.assertFalse(result['valid'])
        self.assertEqual(len(result['errors']), 1)
        self.assertEqual(result['errors'][0]['requested'], 6)
        self.assertEqual(result['errors'][0]['available'], 5)

    def test_resolve_order_type(self):
        self.assertEqual(resolve_order_type([{'order_type': RETAIL}, {'order_type': RETAIL}]), RETAIL)
        self.assertEqual(resolve_order_type([{'order_type': RETAIL}, {}]), WHOLESALE)

    def test_create_order_decrements_stock(self):
        order = create_order(self.shop, [{'variant_id': self.variant.id, 'quantity': 2}], buyer_name='Lerato')
        self.variant.refresh_from_db()
        self.assertEqual(self.variant.stock, 3)
        self.assertEqual(order.total_cents, 100000)
        self.assertEqual(order.item_count, 2)
        self.assertEqual(order.status, Order.STATUS_PENDING)
        item = order.items.get()
        self.assertEqual(item.product_name, 'Denim Jacket')
        self.assertEqual(item.option1_value, 'M')

    def test_create_order_uses_retail_price(self):
        order = create_order(self.shop, [{'variant_id': self.variant.id, 'quantity': 1, 'order_type': RETAIL}])
        self.assertEqual(order.total_cents, 65000)
        self.assertEqual(order.order_type, RETAIL)

    def test_insufficient_stock_rolls_back(self):
        other = TestDataFactory.create_variant(self.product, size='L', stock=10)
        with self.assertRaises(InsufficientStockError) as ctx:
            create_order(self.shop, [
                {'variant_id': other.id, 'quantity': 1},
                {'variant_id': self.variant.id, 'quantity': 9},
            ])
        self.assertEqual(ctx.exception.errors[0]['available'], 5)
        other.refresh_from_db()
        self.assertEqual(other.stock, 10)
        self.assertEqual(Order.objects.count(), 0)

    def test_wholesale_and_retail_lines_share_stock(self):
        with self.assertRaises(InsufficientStockError) as ctx:
            create_order(self.shop, [
                {'variant_id': self.variant.id, 'quantity': 3, 'order_type': WHOLESALE},
                {'variant_id': self.variant.id, 'quantity': 3, 'order_type': RETAIL},
            ])
        self.assertEqual(ctx.exception.errors, [{
            'variant_id': self.variant.id, 'product_name': 'Denim Jacket', 'requested': 6, 'available': 5,
        }])
        self.variant.refresh_from_db()
        self.assertEqual(self.variant.stock, 5)
        self.assertEqual(Order.objects.count(), 0)

        order = create_order(self.shop, [
            {'variant_id': self.variant.id, 'quantity': 2, 'order_type': WHOLESALE},
            {'variant_id': self.variant.id, 'quantity': 3, 'order_type': RETAIL},
        ])
        self.assertEqual(order.items.count(), 2)
        self.variant.refresh_from_db()
        self.assertEqual(self.variant.stock, 0)

    def test_stock_taken_by_concurrent_checkout_rolls_back(self):
        # Another buyer takes 4 units after the stock check but before the decrement
        def sell_out(sender, instance, created, **kwargs):
            ProductVariant.objects.filter(pk=self.variant.pk).update(stock=F('stock') - 4)

        post_save.connect(sell_out, sender=Order, dispatch_uid='concurrent-checkout')
        self.addCleanup(post_save.disconnect, sender=Order, dispatch_uid='concurrent-checkout')

        with self.assertRaises(InsufficientStockError) as ctx:
            create_order(self.shop, [{'variant_id': self.variant.id, 'quantity': 2}])
        self.assertEqual(ctx.exception.errors, [{
            'variant_id': self.variant.id, 'product_name': 'Denim Jacket', 'requested': 2, 'available': 1,
        }])
        self.variant.refresh_from_db()
        self.assertEqual(self.variant.stock, 5)
        self.assertEqual(Order.objects.count(), 0)

    def test_variant_from_other_shop_is_unavailable(self):
        foreign = TestDataFactory.create_variant(TestDataFactory.create_product(TestDataFactory.create_shop()))
        with self.assertRaises(InsufficientStockError):
            create_order(self.shop, [{'variant_id': foreign.id, 'quantity': 1}])

    def test_empty_items(self):
        with self.assertRaises(TradeFeedError):
            create_order(self.shop, [])

    def test_order_survives_variant_deletion(self):
        order = create_order(self.shop, [{'variant_id': self.variant.id, 'quantity': 1}])
        self.product.delete()
        item = order.items.get()
        self.assertIsNone(item.variant_id)
        self.assertEqual(item.product_name, 'Denim Jacket')

    def test_transitions(self):
        self.assertTrue(can_transition(Order.STATUS_PENDING, Order.STATUS_CONFIRMED))
        self.assertTrue(can_transition(Order.STATUS_SHIPPED, Order.STATUS_DELIVERED))
        self.assertFalse(can_transition(Order.STATUS_SHIPPED, Order.STATUS_CANCELLED))
        self.assertFalse(can_transition(Order.STATUS_DELIVERED, Order.STATUS_PENDING))
        self.assertFalse(can_transition(Order.STATUS_CANCELLED, Order.STATUS_CONFIRMED))

    def test_invalid_transition_raises(self):
        order = TestDataFactory.create_order(self.shop, self.variant)
        with self.assertRaises(InvalidStatusTransition):
            update_order_status(order, Order.STATUS_DELIVERED)

    def test_cancel_restores_stock(self):
        order = create_order(self.shop, [{'variant_id': self.variant.id, 'quantity': 3}])
        update_order_status(order, Order.STATUS_CANCELLED)
        self.variant.refresh_from_db()
        self.assertEqual(self.variant.stock, 5)

    def test_order_stats(self):
        TestDataFactory.create_order(self.shop, self.variant, quantity=2)
        TestDataFactory.create_order(self.shop, self.variant, status=Order.STATUS_CANCELLED)
        stats = get_order_stats(self.shop)
        self.assertEqual(stats['total'], 2)
        self.assertEqual(stats['pending'], 1)
        self.assertEqual(stats['cancelled'], 1)
        self.assertEqual(stats['revenue_cents'], 100000)

    def test_find_order_case_insensitive(self):
        order = TestDataFactory.create_order(self.shop, self.variant, order_number='TF-20260101-ABCD')
        self.assertEqual(find_order_for_tracking(' tf-20260101-abcd '), order)
        self.assertIsNone(find_order_for_tracking(''))


class CartCheckoutAPITests(TestCase):
    """Test the session cart and WhatsApp checkout endpoints"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.shop = TestDataFactory.create_shop(slug='joburg-threads', whatsapp_number='+27710000001',
                                                retail_whatsapp_number='+27710000002')
        self.product = TestDataFactory.create_product(self.shop, name='Linen Shirt', min_wholesale_qty=3)
        self.variant = TestDataFactory.create_variant(self.product, size='L', color='White',
                                                      price_in_cents=20000, stock=10, retail_price_in_cents=30000)
        self.cart_url = '/api/v1/catalog/joburg-threads/cart/'

    def test_add_applies_minimum_and_server_price(self):
        response = self.client.post(self.cart_url, {'variant_id': self.variant.id, 'quantity': 1}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        line = response.data['lines'][0]
        self.assertEqual(line['quantity'], 3)
        self.assertEqual(line['price_in_cents'], 20000)
        self.assertEqual(response.data['total_price_cents'], 60000)

    def test_retail_line_ignores_minimum(self):
        response = self.client.post(self.cart_url, {'variant_id': self.variant.id, 'quantity': 1, 'order_type': 'retail'}, format='json')
        self.assertEqual(response.data['retail_lines'][0]['quantity'], 1)
        self.assertEqual(response.data['retail_lines'][0]['price_in_cents'], 30000)

    def test_cart_persists_in_session(self):
        self.client.post(self.cart_url, {'variant_id': self.variant.id, 'quantity': 4}, format='json')
        response = self.client.get(self.cart_url)
        self.assertEqual(response.data['total_items'], 4)

    def test_out_of_stock_add(self):
        ProductVariant.objects.filter(pk=self.variant.pk).update(stock=0)
        response = self.client.post(self.cart_url, {'variant_id': self.variant.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertIn('stock_errors', response.data)

    def test_update_and_remove_line(self):
        self.client.post(self.cart_url, {'variant_id': self.variant.id, 'quantity': 4}, format='json')
        response = self.client.patch(self.cart_url, {'variant_id': self.variant.id, 'quantity': 6}, format='json')
        self.assertEqual(response.data['total_items'], 6)
        response = self.client.delete(f'{self.cart_url}{self.variant.id}/')
        self.assertEqual(response.data['lines'], [])

    def test_checkout_from_cart(self):
        self.client.post(self.cart_url, {'variant_id': self.variant.id, 'quantity': 3}, format='json')
        data = {
            'buyer_name': 'Naledi',
            'buyer_phone': '0821234567',
            'delivery_address': '5 Main Road',
            'delivery_city': 'Soweto',
            'delivery_province': 'Gauteng',
            'delivery_postal_code': '1804',
        }
        response = self.client.post('/api/v1/catalog/joburg-threads/checkout/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['whatsapp_url'].startswith('https://wa.me/27710000001?text='))
        self.assertEqual(response.data['total_cents'], 60000)
        self.assertIn(f"#{response.data['order_number']}", response.data['whatsapp_message'])
        self.assertIn('Soweto, Gauteng 1804', response.data['whatsapp_message'])

        order = Order.objects.get(pk=response.data['order_id'])
        self.assertEqual(order.whatsapp_message, response.data['whatsapp_message'])
        self.variant.refresh_from_db()
        self.assertEqual(self.variant.stock, 7)
        self.assertEqual(self.client.get(self.cart_url).data['lines'], [])
        self.assertTrue(ProductView.objects.filter(kind=ProductView.KIND_WHATSAPP_CLICK, product=self.product).exists())

    def test_retail_checkout_uses_retail_number(self):
        data = {'items': [{'variant_id': self.variant.id, 'quantity': 1, 'order_type': 'retail'}]}
        response = self.client.post('/api/v1/catalog/joburg-threads/checkout/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['whatsapp_url'].startswith('https://wa.me/27710000002?text='))

    def test_checkout_empty_cart(self):
        response = self.client.post('/api/v1/catalog/joburg-threads/checkout/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_checkout_insufficient_stock(self):
        data = {'items': [{'variant_id': self.variant.id, 'quantity': 11}]}
        response = self.client.post('/api/v1/catalog/joburg-threads/checkout/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['stock_errors'][0]['available'], 10)
        self.assertEqual(Order.objects.count(), 0)

    def test_checkout_validates_delivery(self):
        data = {'items': [{'variant_id': self.variant.id, 'quantity': 3}], 'delivery_address': '5 Main Road',
                'delivery_postal_code': '18'}
        response = self.client.post('/api/v1/catalog/joburg-threads/checkout/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('delivery_postal_code', response.data)

    def test_track_order_masks_phone(self):
        order = TestDataFactory.create_order(self.shop, self.variant, buyer_phone='+27821234567')
        response = self.client.get(f'/api/v1/track/{order.order_number.lower()}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['buyer_phone'], '***4567')
        self.assertEqual(response.data['shop']['slug'], 'joburg-threads')

    def test_track_unknown_order(self):
        response = self.client.get('/api/v1/track/TF-00000000-XXXX/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data, {'error': 'Order not found'})


class SellerOrderAPITests(TestCase):
    """Test seller order management"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.shop = TestDataFactory.create_shop(owner=self.user)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        product = TestDataFactory.create_product(self.shop)
        self.variant = TestDataFactory.create_variant(product, stock=5)
        self.base = f'/api/v1/shops/{self.shop.slug}/orders'

    def test_list_filters_by_status(self):
        TestDataFactory.create_order(self.shop, self.variant)
        TestDataFactory.create_order(self.shop, self.variant, status=Order.STATUS_SHIPPED)
        response = self.client.get(f'{self.base}/?status=shipped')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['status'], Order.STATUS_SHIPPED)

    def test_update_status(self):
        order = TestDataFactory.create_order(self.shop, self.variant)
        response = self.client.post(f'{self.base}/{order.id}/status/', {'status': 'CONFIRMED'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], Order.STATUS_CONFIRMED)

    def test_invalid_status_change(self):
        order = TestDataFactory.create_order(self.shop, self.variant, status=Order.STATUS_DELIVERED)
        response = self.client.patch(f'{self.base}/{order.id}/status/', {'status': 'PENDING'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)

    def test_stats(self):
        TestDataFactory.create_order(self.shop, self.variant, quantity=2)
        response = self.client.get(f'{self.base}/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['revenue_cents'], self.variant.price_in_cents * 2)

    def test_other_shop_orders_forbidden(self):
        other = TestDataFactory.create_shop()
        response = self.client.get(f'/api/v1/shops/{other.slug}/orders/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
