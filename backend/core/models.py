from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Extended user model with additional fields"""
    phone = models.CharField(max_length=20, blank=True, null=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'users'


class AuditLog(models.Model):
    """Audit log for seller and back-office operations"""
    ACTION_CHOICES = [
        ('shop_create', 'Shop Created'),
        ('shop_update', 'Shop Updated'),
        ('shop_delete', 'Shop Deleted'),
        ('shop_verify', 'Shop Verification Changed'),
        ('shop_feature', 'Shop Featured Changed'),
        ('shop_activate', 'Shop Active Changed'),
        ('product_create', 'Product Created'),
        ('product_update', 'Product Updated'),
        ('product_delete', 'Product Deleted'),
        ('variant_update', 'Variant Updated'),
        ('order_create', 'Order Created'),
        ('order_status', 'Order Status Changed'),
        ('promotion_create', 'Promotion Created'),
        ('promotion_cancel', 'Promotion Cancelled'),
        ('upgrade_request', 'Upgrade Requested'),
        ('upgrade_approve', 'Upgrade Approved'),
        ('upgrade_reject', 'Upgrade Rejected'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., product name, order number)")
    shop_slug = models.CharField(max_length=120, blank=True, null=True, db_index=True, help_text="Slug of the shop the action belongs to")
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.action} {self.model_name}#{self.object_id}"

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='idx_audit_created'),
            models.Index(fields=['action'], name='idx_audit_action'),
            models.Index(fields=['model_name'], name='idx_audit_model'),
        ]
