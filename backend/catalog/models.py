from django.db import models
from django.db.models import Min, Max


class Category(models.Model):
    """Product categories, scoped to a shop"""
    shop = models.ForeignKey('shops.Shop', on_delete=models.CASCADE, related_name='categories')
    name = models.CharField(max_length=100)
    slug = models.SlugField(max_length=120)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'categories'
        verbose_name_plural = 'categories'
        ordering = ['name']
        constraints = [
            models.UniqueConstraint(fields=['shop', 'slug'], name='unique_category_slug_per_shop'),
        ]


class Product(models.Model):
    """A catalog product; the buyable units are its variants"""
    shop = models.ForeignKey('shops.Shop', on_delete=models.CASCADE, related_name='products')
    category = models.ForeignKey(Category, on_delete=models.SET_NULL, null=True, blank=True, related_name='products')
    name = models.CharField(max_length=200, db_index=True)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    option1_label = models.CharField(max_length=50, default='Size')
    option2_label = models.CharField(max_length=50, default='Color')
    min_wholesale_qty = models.PositiveIntegerField(default=1)
    # Denormalized from active variants for marketplace sorting and price filters
    min_price_cents = models.PositiveIntegerField(null=True, blank=True, db_index=True)
    max_price_cents = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    def refresh_price_range(self, save=True):
        """Recompute min/max price over active variants"""
        prices = self.variants.filter(is_active=True).aggregate(
            low=Min('price_in_cents'), high=Max('price_in_cents')
        )
        self.min_price_cents = prices['low']
        self.max_price_cents = prices['high']
        if save:
            Product.objects.filter(pk=self.pk).update(
                min_price_cents=self.min_price_cents, max_price_cents=self.max_price_cents
            )
        return self.min_price_cents, self.max_price_cents

    @property
    def cover_image(self):
        image = self.images.order_by('position', 'id').first()
        return image.url if image else None

    class Meta:
        db_table = 'products'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['shop', 'is_active'], name='idx_product_shop_active'),
        ]


class ProductImage(models.Model):
    """Product images; position 0 is the cover"""
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='images')
    url = models.URLField(max_length=500)
    alt_text = models.CharField(max_length=200, blank=True)
    position = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.product.name} image #{self.position}"

    class Meta:
        db_table = 'product_images'
        ordering = ['position', 'id']


class ProductVariant(models.Model):
    """Size/colour variant carrying price and stock"""
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='variants')
    size = models.CharField(max_length=20)
    color = models.CharField(max_length=50, null=True, blank=True)
    price_in_cents = models.PositiveIntegerField(help_text='Wholesale price in cents')
    retail_price_in_cents = models.PositiveIntegerField(null=True, blank=True)
    stock = models.PositiveIntegerField(default=0)
    sku = models.CharField(max_length=100, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        if self.color:
            return f"{self.product.name} - {self.size} / {self.color}"
        return f"{self.product.name} - {self.size}"

    def price_for(self, order_type):
        """Unit price for an order type; retail falls back to the wholesale price"""
        if order_type == 'retail' and self.retail_price_in_cents:
            return self.retail_price_in_cents
        return self.price_in_cents

    class Meta:
        db_table = 'product_variants'
        ordering = ['id']
        constraints = [
            models.UniqueConstraint(fields=['product', 'size', 'color'], name='unique_variant_options'),
            models.CheckConstraint(condition=models.Q(price_in_cents__gt=0), name='variant_price_positive'),
        ]
