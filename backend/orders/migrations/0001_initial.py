import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('catalog', '0001_initial'),
        ('shops', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Order',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('order_number', models.CharField(max_length=30, unique=True)),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('CONFIRMED', 'Confirmed'), ('SHIPPED', 'Shipped'), ('DELIVERED', 'Delivered'), ('CANCELLED', 'Cancelled')], db_index=True, default='PENDING', max_length=20)),
                ('buyer_name', models.CharField(blank=True, max_length=100)),
                ('buyer_phone', models.CharField(blank=True, max_length=20)),
                ('buyer_note', models.TextField(blank=True)),
                ('delivery_address', models.CharField(blank=True, max_length=300)),
                ('delivery_city', models.CharField(blank=True, max_length=100)),
                ('delivery_province', models.CharField(blank=True, max_length=30)),
                ('delivery_postal_code', models.CharField(blank=True, max_length=10)),
                ('order_type', models.CharField(choices=[('wholesale', 'Wholesale'), ('retail', 'Retail')], default='wholesale', max_length=10)),
                ('total_cents', models.PositiveIntegerField(default=0)),
                ('item_count', models.PositiveIntegerField(default=0)),
                ('whatsapp_message', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('shop', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='orders', to='shops.shop')),
            ],
            options={
                'db_table': 'orders',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['shop', 'status'], name='idx_order_shop_status'),
                ],
            },
        ),
        migrations.CreateModel(
            name='OrderItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_name', models.CharField(max_length=200)),
                ('option1_label', models.CharField(default='Size', max_length=50)),
                ('option1_value', models.CharField(max_length=50)),
                ('option2_label', models.CharField(default='Color', max_length=50)),
                ('option2_value', models.CharField(blank=True, max_length=50, null=True)),
                ('price_in_cents', models.PositiveIntegerField()),
                ('quantity', models.PositiveIntegerField()),
                ('order_type', models.CharField(choices=[('wholesale', 'Wholesale'), ('retail', 'Retail')], default='wholesale', max_length=10)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='orders.order')),
                ('product', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='order_items', to='catalog.product')),
                ('variant', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='order_items', to='catalog.productvariant')),
            ],
            options={
                'db_table': 'order_items',
                'ordering': ['id'],
            },
        ),
    ]
