"""
Management command to seed the database with sample data.

Generates:
- Sample products across several categories
- One demo admin and a few demo clients (password: ``password123``)

Usage:
    python manage.py seed_data
    python manage.py seed_data --clear  # Clear existing data first
"""
import random
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from catalog.models import Product

DEMO_PASSWORD = 'password123'

PRODUCT_TEMPLATES = {
    'Electronics': [
        'Wireless Headphones', 'Bluetooth Speaker', 'USB-C Cable',
        'Power Bank', 'Smart Watch', 'Laptop Stand', 'Gaming Mouse',
    ],
    'Clothing': [
        'Cotton T-Shirt', 'Denim Jeans', 'Wool Sweater', 'Rain Jacket',
        'Running Shoes', 'Winter Coat',
    ],
    'Home & Garden': [
        'Plant Pot Set', 'LED Light Bulbs', 'Throw Pillow', 'Kitchen Knife Set',
        'Bed Sheet Set', 'Wall Clock',
    ],
    'Sports & Outdoors': [
        'Yoga Mat', 'Dumbbells Set', 'Water Bottle', 'Camping Tent',
        'Hiking Backpack', 'Bicycle Helmet',
    ],
    'Books': [
        'Fiction Bestseller', 'Cookbook', 'Sci-Fi Novel', 'Programming Guide',
        'Travel Guide',
    ],
}

ADJECTIVES = [
    'Premium', 'Deluxe', 'Classic', 'Modern', 'Eco-Friendly',
    'Compact', 'Portable', 'Handmade', 'Essential', 'Ultimate'
]

TAGS = ['bestseller', 'gift', 'new-arrival', 'limited', 'sustainable', 'clearance']


class Command(BaseCommand):
    help = 'Seed the database with sample products and demo users'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Clear existing products and orders before seeding',
        )
        parser.add_argument(
            '--products',
            type=int,
            default=100,
            help='Number of products to create (default: 100)',
        )
        parser.add_argument(
            '--clients',
            type=int,
            default=3,
            help='Number of demo client accounts to create (default: 3)',
        )

    def handle(self, *args, **options):
        if options['clear']:
            self.stdout.write('Clearing existing data...')
            self._clear_data()

        self.stdout.write('Starting database seeding...')

        with transaction.atomic():
            self._create_users(options['clients'])
            self._create_products(options['products'])

        self.stdout.write(self.style.SUCCESS('Database seeding completed successfully!'))

    def _clear_data(self):
        """Clear orders and products; user accounts are kept."""
        from orders.models import OrderItem, Order

        OrderItem.objects.all().delete()
        Order.objects.all().delete()
        Product.objects.all().delete()

        self.stdout.write(self.style.WARNING('All existing products and orders cleared.'))

    def _create_users(self, clients):
        User = get_user_model()

        accounts = [('admin@example.com', 'Demo Admin', User.Role.ADMIN)]
        accounts += [
            (f'client{i}@example.com', f'Demo Client {i}', User.Role.CLIENT)
            for i in range(1, clients + 1)
        ]

        for email, name, role in accounts:
            if User.objects.filter(email=email).exists():
                continue
            User.objects.create_user(email=email, password=DEMO_PASSWORD, name=name, role=role)
            self.stdout.write(f'  Created {role}: {email}')

    def _create_products(self, count):
        """Create sample products with realistic data."""
        products = []
        existing_names = set(Product.objects.values_list('name', flat=True))

        self.stdout.write(f'Creating {count} products...')

        for i in range(count):
            category = random.choice(list(PRODUCT_TEMPLATES))
            base_name = random.choice(PRODUCT_TEMPLATES[category])

            # Try up to 10 times to get a unique name
            for _ in range(10):
                name = f"{random.choice(ADJECTIVES)} {base_name} v{random.randint(1, 99)}"
                if name not in existing_names:
                    break
            else:
                name = f"Product {i + 1} - {category}"
            existing_names.add(name)

            price = Decimal(str(round(random.uniform(5, 500), 2)))
            is_sale = random.random() < 0.2

            products.append(Product(
                name=name,
                category=category,
                price=price,
                original_price=price,
                sale_price=(price * Decimal('0.8')).quantize(Decimal('0.01')) if is_sale else Decimal('0.00'),
                is_sale=is_sale,
                stock=random.randint(0, 200),
                description=f"High-quality {base_name.lower()} for everyday use.",
                is_eco_friendly=random.random() < 0.3,
                is_new=random.random() < 0.2,
                rating=Decimal(str(round(random.uniform(3, 5), 1))),
                reviews=random.randint(0, 500),
                tags=random.sample(TAGS, k=random.randint(0, 3)),
                features=[],
                is_visible=random.random() > 0.05  # 95% visible
            ))

        Product.objects.bulk_create(products)
        self.stdout.write(self.style.SUCCESS(f'Created {len(products)} products'))
