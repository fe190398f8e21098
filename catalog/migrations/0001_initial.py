from decimal import Decimal

import django.core.validators
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(db_index=True, help_text='Product name for display and search', max_length=200)),
                ('category', models.CharField(db_index=True, default='General', help_text='Free-text product category', max_length=100)),
                ('price', models.DecimalField(decimal_places=2, help_text='Unit price (non-negative)', max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('original_price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Price before discount, for display', max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('sale_price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('is_sale', models.BooleanField(default=False)),
                ('stock', models.PositiveIntegerField(default=0, help_text='Units available for ordering')),
                ('image', models.CharField(blank=True, default='', max_length=500)),
                ('description', models.TextField(blank=True, default='', help_text='Optional product description')),
                ('is_eco_friendly', models.BooleanField(default=False)),
                ('is_new', models.BooleanField(default=False)),
                ('in_stock', models.BooleanField(default=True, help_text='Display flag; ordering checks the stock count')),
                ('rating', models.DecimalField(decimal_places=1, default=Decimal('4.0'), max_digits=2, validators=[django.core.validators.MinValueValidator(Decimal('0.0')), django.core.validators.MaxValueValidator(Decimal('5.0'))])),
                ('reviews', models.PositiveIntegerField(default=0)),
                ('tags', models.JSONField(blank=True, default=list)),
                ('features', models.JSONField(blank=True, default=list)),
                ('is_visible', models.BooleanField(db_index=True, default=True, help_text='Hidden products are neither listed nor orderable')),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Product',
                'verbose_name_plural': 'Products',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['name', 'is_visible'], name='product_name_visible_idx'),
                    models.Index(fields=['category', 'is_visible'], name='product_category_visible_idx'),
                    models.Index(fields=['price'], name='product_price_idx'),
                ],
            },
        ),
    ]
