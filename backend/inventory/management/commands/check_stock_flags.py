"""
Django management command to check that product stock flags match quantities
and that each product's quantity agrees with its latest inventory movement
"""
from django.core.management.base import BaseCommand
from django.db import transaction

from backend.inventory.models import Product


class Command(BaseCommand):
    help = 'Check low/out-of-stock flags and movement history against product quantities'

    def add_arguments(self, parser):
        parser.add_argument(
            '--product-id',
            type=int,
            help='Check specific product ID only',
        )
        parser.add_argument(
            '--fix',
            action='store_true',
            help='Rewrite stale stock flags',
        )
        parser.add_argument(
            '--show-all',
            action='store_true',
            help='Show all products, not just discrepancies',
        )

    def handle(self, *args, **options):
        product_id = options.get('product_id')
        fix = options.get('fix', False)
        show_all = options.get('show_all', False)

        self.stdout.write("=" * 80)
        self.stdout.write(self.style.SUCCESS("PRODUCT STOCK FLAG ANALYSIS"))
        self.stdout.write("=" * 80)

        if product_id:
            products = Product.objects.filter(id=product_id)
        else:
            products = Product.objects.all().order_by('id')

        self.stdout.write(f"Total Products: {products.count()}")
        self.stdout.write("")

        flag_issues = []
        history_issues = []

        for product in products:
            stored_low, stored_out = product.is_low_stock, product.is_out_of_stock
            product.refresh_stock_flags()
            flags_stale = (stored_low, stored_out) != (product.is_low_stock, product.is_out_of_stock)

            last_movement = product.inventory_history.order_by('-date', '-id').first()
            history_mismatch = last_movement is not None and last_movement.new_quantity != product.quantity

            if flags_stale:
                flag_issues.append(product)
            if history_mismatch:
                history_issues.append((product, last_movement))

            if show_all or flags_stale or history_mismatch:
                self.stdout.write(f"Product: {product.name} (ID: {product.id})")
                self.stdout.write(f"  Quantity: {product.quantity} (threshold: {product.low_stock_threshold})")
                self.stdout.write(f"  Stored flags: low={stored_low}, out={stored_out}")
                self.stdout.write(f"  Expected flags: low={product.is_low_stock}, out={product.is_out_of_stock}")
                if last_movement:
                    self.stdout.write(f"  Last movement: {last_movement.movement_type} {last_movement.quantity:+d} -> {last_movement.new_quantity}")
                if flags_stale:
                    self.stdout.write(self.style.WARNING("  ⚠️  Stock flags are out of sync"))
                if history_mismatch:
                    self.stdout.write(self.style.WARNING("  ⚠️  Quantity differs from last recorded movement"))
                if not flags_stale and not history_mismatch:
                    self.stdout.write(self.style.SUCCESS("  ✓ In sync"))
                self.stdout.write("")

        if fix and flag_issues:
            with transaction.atomic():
                for product in flag_issues:
                    Product.objects.filter(pk=product.pk).update(
                        is_low_stock=product.is_low_stock,
                        is_out_of_stock=product.is_out_of_stock,
                    )
            self.stdout.write(self.style.SUCCESS(f"✓ Fixed flags on {len(flag_issues)} products"))

        self.stdout.write("=" * 80)
        self.stdout.write(self.style.SUCCESS("SUMMARY"))
        self.stdout.write("=" * 80)
        self.stdout.write(f"Products with stale flags: {len(flag_issues)}")
        self.stdout.write(f"Products whose quantity differs from history: {len(history_issues)}")
        if not flag_issues and not history_issues:
            self.stdout.write(self.style.SUCCESS("✓ No discrepancies found!"))
