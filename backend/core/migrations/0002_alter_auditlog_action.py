from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('core', '0001_initial'),
    ]

    operations = [
        migrations.AlterField(
            model_name='auditlog',
            name='action',
            field=models.CharField(choices=[('shop_create', 'Shop Created'), ('shop_update', 'Shop Updated'), ('shop_delete', 'Shop Deleted'), ('shop_verify', 'Shop Verification Changed'), ('shop_feature', 'Shop Featured Changed'), ('shop_activate', 'Shop Active Changed'), ('product_create', 'Product Created'), ('product_update', 'Product Updated'), ('product_delete', 'Product Deleted'), ('variant_update', 'Variant Updated'), ('order_create', 'Order Created'), ('order_status', 'Order Status Changed'), ('promotion_create', 'Promotion Created'), ('promotion_cancel', 'Promotion Cancelled'), ('upgrade_request', 'Upgrade Requested'), ('upgrade_approve', 'Upgrade Approved'), ('upgrade_reject', 'Upgrade Rejected')], max_length=50),
        ),
    ]
