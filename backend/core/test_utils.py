"""
Test utilities and factories for creating test data
"""
from datetime import timedelta
import random
import string

from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from backend.shops.models import Shop, ShopUser, PaymentMethod
from backend.catalog.models import Category, Product, ProductImage, ProductVariant
from backend.orders.models import Order, OrderItem
from backend.promotions.models import PromotedListing
from backend.promotions.tiers import BOOST

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_lowercase + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', is_staff=False, is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            is_staff=is_staff,
            is_superuser=is_superuser
        )

    @staticmethod
    def create_shop(owner=None, name=None, slug=None, role=ShopUser.ROLE_OWNER, **kwargs):
        """Create a test shop, optionally with a member"""
        if not name:
            name = f'Shop {TestDataFactory.random_string(6)}'
        if not slug:
            slug = f'shop-{TestDataFactory.random_string(8)}'
        kwargs.setdefault('whatsapp_number', '+27712345678')
        shop = Shop.objects.create(name=name, slug=slug, **kwargs)
        if owner:
            ShopUser.objects.create(user=owner, shop=shop, role=role)
        return shop

    @staticmethod
    def add_member(shop, user, role=ShopUser.ROLE_STAFF):
        return ShopUser.objects.create(user=user, shop=shop, role=role)

    @staticmethod
    def create_payment_method(name=None, is_active=True, display_order=0):
        return PaymentMethod.objects.create(
            name=name or f"EFT {TestDataFactory.random_string(4)}",
            instructions="FNB 62000000000, reference: your shop name",
            is_active=is_active,
            display_order=display_order,
        )

    @staticmethod
    def create_category(shop, name=None, slug=None):
        """Create a test category"""
        if not name:
            name = f'Category {TestDataFactory.random_string(6)}'
        return Category.objects.create(
            shop=shop,
            name=name,
            slug=slug or f'cat-{TestDataFactory.random_string(8)}'
        )

    @staticmethod
    def create_product(shop, name=None, category=None, is_active=True, **kwargs):
        """Create a test product"""
        if not name:
            name = f'Product {TestDataFactory.random_string(6)}'
        return Product.objects.create(
            shop=shop,
            name=name,
            category=category,
            is_active=is_active,
            **kwargs
        )

    @staticmethod
    def create_variant(product, size='M', color=None, price_in_cents=15000, stock=10, **kwargs):
        """Create a test variant; price range on the product is refreshed by signal"""
        return ProductVariant.objects.create(
            product=product,
            size=size,
            color=color,
            price_in_cents=price_in_cents,
            stock=stock,
            **kwargs
        )

    @staticmethod
    def create_image(product, url=None, position=0):
        return ProductImage.objects.create(
            product=product,
            url=url or f'https://img.example.com/{TestDataFactory.random_string(8)}.jpg',
            position=position
        )

    @staticmethod
    def create_order(shop, variant=None, quantity=1, status=Order.STATUS_PENDING, order_number=None, **kwargs):
        """Create an order directly, without touching stock"""
        if not order_number:
            order_number = f'TF-{TestDataFactory.random_string(8).upper()}'
        price = variant.price_in_cents if variant else 0
        order = Order.objects.create(
            shop=shop,
            order_number=order_number,
            status=status,
            total_cents=price * quantity,
            item_count=quantity if variant else 0,
            **kwargs
        )
        if variant:
            OrderItem.objects.create(
                order=order,
                product=variant.product,
                variant=variant,
                product_name=variant.product.name,
                option1_value=variant.size,
                option2_value=variant.color,
                price_in_cents=price,
                quantity=quantity
            )
        return order

    @staticmethod
    def create_promotion(product, tier=BOOST, weeks=1, status=PromotedListing.STATUS_ACTIVE, **kwargs):
        """Create a promoted listing running from now"""
        now = timezone.now()
        kwargs.setdefault('starts_at', now)
        kwargs.setdefault('expires_at', now + timedelta(weeks=weeks))
        return PromotedListing.objects.create(
            shop=product.shop,
            product=product,
            tier=tier,
            status=status,
            **kwargs
        )


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
        super().logout()
