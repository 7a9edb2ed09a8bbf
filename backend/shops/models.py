from django.conf import settings
from django.db import models


class Shop(models.Model):
    """A seller's storefront"""
    PROVINCE_CHOICES = [
        ('Eastern Cape', 'Eastern Cape'),
        ('Free State', 'Free State'),
        ('Gauteng', 'Gauteng'),
        ('KwaZulu-Natal', 'KwaZulu-Natal'),
        ('Limpopo', 'Limpopo'),
        ('Mpumalanga', 'Mpumalanga'),
        ('North West', 'North West'),
        ('Northern Cape', 'Northern Cape'),
        ('Western Cape', 'Western Cape'),
    ]
    TIER_FREE = 'FREE'
    TIER_PRO = 'PRO'
    SUBSCRIPTION_TIER_CHOICES = [
        (TIER_FREE, 'Free'),
        (TIER_PRO, 'Pro'),
    ]

    name = models.CharField(max_length=100, db_index=True)
    slug = models.SlugField(max_length=120, unique=True)
    description = models.TextField(blank=True)
    whatsapp_number = models.CharField(max_length=20, help_text='Wholesale WhatsApp number, stored as +27XXXXXXXXX')
    retail_whatsapp_number = models.CharField(max_length=20, blank=True, help_text='Optional number for retail orders')
    logo_url = models.URLField(blank=True)
    city = models.CharField(max_length=100, blank=True)
    province = models.CharField(max_length=30, choices=PROVINCE_CHOICES, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    is_verified = models.BooleanField(default=False)
    is_featured_shop = models.BooleanField(default=False)
    subscription_tier = models.CharField(max_length=10, choices=SUBSCRIPTION_TIER_CHOICES, default=TIER_FREE)
    members = models.ManyToManyField(settings.AUTH_USER_MODEL, through='ShopUser', related_name='shops')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    @property
    def is_pro(self):
        return self.subscription_tier == self.TIER_PRO

    class Meta:
        db_table = 'shops'
        ordering = ['name']


class ShopUser(models.Model):
    """Membership of a user in a shop"""
    ROLE_OWNER = 'OWNER'
    ROLE_MANAGER = 'MANAGER'
    ROLE_STAFF = 'STAFF'
    ROLE_CHOICES = [
        (ROLE_OWNER, 'Owner'),
        (ROLE_MANAGER, 'Manager'),
        (ROLE_STAFF, 'Staff'),
    ]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='shop_memberships')
    shop = models.ForeignKey(Shop, on_delete=models.CASCADE, related_name='memberships')
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default=ROLE_STAFF)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.user} @ {self.shop} ({self.role})"

    class Meta:
        db_table = 'shop_users'
        unique_together = [['user', 'shop']]


class PaymentMethod(models.Model):
    """Manual payment method shown to sellers upgrading their plan"""
    name = models.CharField(max_length=100)
    description = models.CharField(max_length=255, blank=True)
    instructions = models.TextField(blank=True, help_text='Bank details or steps shown to the seller')
    is_active = models.BooleanField(default=True)
    display_order = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'payment_methods'
        ordering = ['display_order', 'name']


class UpgradeRequest(models.Model):
    """
    A seller's request to move to the PRO plan after paying manually.

    The plan only changes when an admin approves the request.
    """
    STATUS_PENDING = 'PENDING'
    STATUS_APPROVED = 'APPROVED'
    STATUS_REJECTED = 'REJECTED'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Under Review'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_REJECTED, 'Rejected'),
    ]

    shop = models.ForeignKey(Shop, on_delete=models.CASCADE, related_name='upgrade_requests')
    requested_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                                     related_name='upgrade_requests')
    requested_tier = models.CharField(max_length=10, choices=Shop.SUBSCRIPTION_TIER_CHOICES, default=Shop.TIER_PRO)
    payment_method = models.ForeignKey(PaymentMethod, on_delete=models.SET_NULL, null=True, blank=True,
                                       related_name='upgrade_requests')
    payment_method_name = models.CharField(max_length=100, help_text='Method name at the time of the request')
    payment_reference = models.CharField(max_length=100)
    proof_of_payment_url = models.URLField(blank=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING)
    admin_note = models.TextField(blank=True)
    reviewed_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                                    related_name='reviewed_upgrade_requests')
    reviewed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.shop} -> {self.requested_tier} ({self.status})"

    class Meta:
        db_table = 'upgrade_requests'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', '-created_at'], name='idx_upgrade_status_created'),
        ]
