"""
Management command to create a demo shop for local development
Usage: python manage.py seed_demo_shop [--owner USERNAME] [--clear]
"""
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from backend.catalog.models import Category, Product, ProductImage, ProductVariant
from backend.core.cache_signals import suspend_cache_signals
from backend.core.cache_utils import invalidate_catalog_cache, invalidate_marketplace_cache
from backend.shops.models import Shop, ShopUser

User = get_user_model()

DEMO_SLUG = 'demo-fashions'

DEMO_PRODUCTS = [
    {
        'name': 'Mint Green Suit Jacket',
        'category': 'Jackets',
        'description': 'Slim fit, single breasted.',
        'min_wholesale_qty': 3,
        'variants': [('44', 'Teal', 75000, 12), ('46', 'Teal', 75000, 8), ('48', 'Navy', 79000, 5)],
    },
    {
        'name': 'Linen Summer Dress',
        'category': 'Dresses',
        'description': 'Breathable linen, midi length.',
        'min_wholesale_qty': 6,
        'variants': [('S', 'White', 32000, 20), ('M', 'White', 32000, 18), ('L', 'Sand', 34000, 0)],
    },
    {
        'name': 'High Waist Mom Jeans',
        'category': 'Denim',
        'description': 'Rigid denim with a relaxed leg.',
        'min_wholesale_qty': 1,
        'variants': [('30', 'Blue', 45000, 10), ('32', 'Blue', 45000, 7), ('34', 'Black', 47000, 3)],
    },
    {
        'name': 'Kids Canvas Sneaker',
        'category': 'Shoes',
        'description': 'Lace-up canvas sneaker for school and play.',
        'min_wholesale_qty': 12,
        'variants': [('5', None, 18000, 40), ('6', None, 18000, 36), ('7', None, 19000, 24)],
    },
]


class Command(BaseCommand):
    help = "Creates a demo shop with categories, products and variants"

    def add_arguments(self, parser):
        parser.add_argument(
            '--owner',
            default='demo',
            help='Username of the shop owner (created if missing, password "demo12345")',
        )
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Delete the existing demo shop first',
        )

    def handle(self, *args, **options):
        if options['clear']:
            deleted, _ = Shop.objects.filter(slug=DEMO_SLUG).delete()
            if deleted:
                self.stdout.write(self.style.WARNING(f"Deleted existing demo shop '{DEMO_SLUG}'"))

        if Shop.objects.filter(slug=DEMO_SLUG).exists():
            self.stdout.write(self.style.WARNING(f"Demo shop '{DEMO_SLUG}' already exists. Use --clear to recreate it."))
            return

        owner, created = User.objects.get_or_create(username=options['owner'])
        if created:
            owner.set_password('demo12345')
            owner.save()
            self.stdout.write(self.style.SUCCESS(f"  ✓ Created user: {owner.username}"))

        product_count = 0
        variant_count = 0
        # Bulk seeding; the catalog cache is invalidated once at the end
        with suspend_cache_signals(), transaction.atomic():
            shop = Shop.objects.create(
                name='Demo Fashions',
                slug=DEMO_SLUG,
                description='Wholesale fashion straight from the factory floor.',
                whatsapp_number='+27712345678',
                city='Johannesburg',
                province='Gauteng',
                is_verified=True,
            )
            ShopUser.objects.create(user=owner, shop=shop, role=ShopUser.ROLE_OWNER)

            categories = {}
            for data in DEMO_PRODUCTS:
                name = data['category']
                if name not in categories:
                    categories[name] = Category.objects.create(shop=shop, name=name, slug=name.lower())

                product = Product.objects.create(
                    shop=shop,
                    category=categories[name],
                    name=data['name'],
                    description=data['description'],
                    min_wholesale_qty=data['min_wholesale_qty'],
                )
                ProductImage.objects.create(
                    product=product,
                    url=f"https://placehold.co/600x800?text={product.name.replace(' ', '+')}",
                    alt_text=product.name,
                )
                for size, color, price, stock in data['variants']:
                    ProductVariant.objects.create(
                        product=product, size=size, color=color, price_in_cents=price, stock=stock
                    )
                    variant_count += 1
                product_count += 1
                self.stdout.write(self.style.SUCCESS(f"  ✓ Created: {product.name}"))

        invalidate_catalog_cache(DEMO_SLUG)
        invalidate_marketplace_cache()

        self.stdout.write(self.style.SUCCESS("\n================================================================================"))
        self.stdout.write(self.style.SUCCESS("SUMMARY"))
        self.stdout.write(self.style.SUCCESS("================================================================================"))
        self.stdout.write(f"Shop: {shop.name} ({shop.slug})")
        self.stdout.write(f"Owner: {owner.username}")
        self.stdout.write(f"Categories Created: {len(categories)}")
        self.stdout.write(f"Products Created: {product_count}")
        self.stdout.write(f"Variants Created: {variant_count}")
