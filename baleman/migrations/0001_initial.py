"""
Initial migration for Baleman models.
"""

from decimal import Decimal
import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


PRODUCT_TYPES = [('TOLA', 'Fiber'), ('LINT', 'Lint'), ('SIKLON', 'Cyclone'), ('ULUK', 'Uluk')]
GRADES = [('OLIY', 'Premium'), ('YAXSHI', 'Good'), ('ORTA', 'Middling'), ('ODDIY', 'Ordinary'), ('IFLOS', 'Contaminated')]
LAB_STATUSES = [('pending', 'Pending'), ('approved', 'Approved'), ('rejected', 'Rejected')]


class Migration(migrations.Migration):
    """Create Baleman models: Lot, Bale, LabResult, Checklist, ChecklistItem, ModificationRequest, Shipment."""

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Lot',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('number', models.PositiveIntegerField(help_text='Sequential per product type', verbose_name='Number')),
                ('product_type', models.CharField(choices=PRODUCT_TYPES, max_length=20, verbose_name='Product type')),
                ('selection', models.CharField(blank=True, default='', max_length=100, verbose_name='Selection variety')),
                ('ptm', models.CharField(blank=True, default='', max_length=50, verbose_name='PTM')),
                ('picking_type', models.CharField(blank=True, default='', max_length=50, verbose_name='Picking type')),
                ('capacity', models.PositiveIntegerField(default=220, verbose_name='Capacity')),
                ('used', models.PositiveIntegerField(default=0, help_text='Bales currently owned by the lot', verbose_name='Used')),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('active', 'Active'), ('paused', 'Paused'), ('closed', 'Closed')], db_index=True, default='active', max_length=20, verbose_name='Status')),
                ('notes', models.TextField(blank=True, default='', verbose_name='Notes')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Lot',
                'verbose_name_plural': 'Lots',
                'ordering': ['product_type', 'number'],
            },
        ),
        migrations.CreateModel(
            name='Bale',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('qr_code', models.CharField(max_length=64, unique=True, verbose_name='QR code')),
                ('order_no', models.PositiveIntegerField(verbose_name='Order number')),
                ('product_type', models.CharField(choices=PRODUCT_TYPES, max_length=20, verbose_name='Product type')),
                ('gross_weight', models.DecimalField(decimal_places=2, max_digits=10, verbose_name='Gross')),
                ('tare_weight', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=10, verbose_name='Tare')),
                ('net_weight', models.DecimalField(decimal_places=2, help_text='Gross minus tare', max_digits=10, verbose_name='Net')),
                ('grade', models.CharField(blank=True, choices=GRADES, default='', max_length=20, verbose_name='Grade')),
                ('status', models.CharField(choices=[('in_stock', 'In stock'), ('reserved', 'Reserved'), ('shipped', 'Shipped'), ('returned', 'Returned'), ('waste', 'Waste')], db_index=True, default='in_stock', max_length=20, verbose_name='Status')),
                ('lab_status', models.CharField(choices=LAB_STATUSES, db_index=True, default='pending', max_length=20, verbose_name='Lab status')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('lot', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='bales', to='baleman.lot', verbose_name='Lot')),
            ],
            options={
                'verbose_name': 'Bale',
                'verbose_name_plural': 'Bales',
                'ordering': ['lot', 'order_no'],
            },
        ),
        migrations.CreateModel(
            name='LabResult',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('grade', models.CharField(choices=GRADES, max_length=20, verbose_name='Grade')),
                ('moisture', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True, verbose_name='Moisture %')),
                ('trash', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True, verbose_name='Trash %')),
                ('navi', models.PositiveSmallIntegerField(blank=True, null=True, verbose_name='Navi')),
                ('strength', models.DecimalField(blank=True, decimal_places=2, max_digits=6, null=True, verbose_name='Strength')),
                ('length_mm', models.DecimalField(blank=True, decimal_places=2, max_digits=6, null=True, verbose_name='Length (mm)')),
                ('comment', models.TextField(blank=True, default='', verbose_name='Comment')),
                ('status', models.CharField(choices=LAB_STATUSES, db_index=True, default='pending', max_length=20, verbose_name='Status')),
                ('analyst', models.CharField(blank=True, default='', max_length=100, verbose_name='Analyst')),
                ('reviewer', models.CharField(blank=True, default='', max_length=100, verbose_name='Reviewer')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('reviewed_at', models.DateTimeField(blank=True, null=True, verbose_name='Reviewed at')),
                ('bale', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='lab_result', to='baleman.bale', verbose_name='Bale')),
            ],
            options={
                'verbose_name': 'Lab result',
                'verbose_name_plural': 'Lab results',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='Checklist',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('workspace_id', models.CharField(db_index=True, max_length=64, verbose_name='Workspace')),
                ('customer_id', models.CharField(db_index=True, max_length=64, verbose_name='Customer')),
                ('customer_name', models.CharField(blank=True, default='', max_length=200, verbose_name='Customer name')),
                ('order_id', models.CharField(blank=True, default='', max_length=64, verbose_name='Order')),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('confirmed', 'Confirmed'), ('locked', 'Locked'), ('modification_requested', 'Modification requested')], db_index=True, default='draft', max_length=30, verbose_name='Status')),
                ('created_by', models.CharField(max_length=100, verbose_name='Created by')),
                ('confirmed_by', models.CharField(blank=True, default='', max_length=100, verbose_name='Confirmed by')),
                ('locked_by', models.CharField(blank=True, default='', max_length=100, verbose_name='Locked by')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('confirmed_at', models.DateTimeField(blank=True, null=True, verbose_name='Confirmed at')),
                ('locked_at', models.DateTimeField(blank=True, null=True, verbose_name='Locked at')),
                ('modification_requested_at', models.DateTimeField(blank=True, null=True)),
                ('modification_reason', models.TextField(blank=True, default='')),
                ('summary', models.JSONField(blank=True, default=dict, verbose_name='Summary')),
                ('total_items', models.PositiveIntegerField(default=0, verbose_name='Items')),
                ('total_weight', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=14, verbose_name='Total weight')),
                ('notes', models.TextField(blank=True, default='')),
            ],
            options={
                'verbose_name': 'Checklist',
                'verbose_name_plural': 'Checklists',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='ChecklistItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('position', models.PositiveIntegerField(verbose_name='Position')),
                ('qr_code', models.CharField(max_length=64, verbose_name='QR code')),
                ('lot_number', models.PositiveIntegerField(verbose_name='Lot number')),
                ('net_weight', models.DecimalField(decimal_places=2, max_digits=10, verbose_name='Net')),
                ('grade', models.CharField(blank=True, default='', max_length=20, verbose_name='Grade')),
                ('quality_score', models.DecimalField(blank=True, decimal_places=2, max_digits=6, null=True, verbose_name='Quality score')),
                ('added_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('bale', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='checklist_items', to='baleman.bale', verbose_name='Bale')),
                ('checklist', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='baleman.checklist', verbose_name='Checklist')),
                ('lot', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to='baleman.lot', verbose_name='Lot')),
            ],
            options={
                'verbose_name': 'Checklist item',
                'verbose_name_plural': 'Checklist items',
                'ordering': ['checklist', 'position'],
            },
        ),
        migrations.CreateModel(
            name='ModificationRequest',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('requested_by', models.CharField(max_length=100, verbose_name='Requested by')),
                ('requested_by_role', models.CharField(max_length=50, verbose_name='Role')),
                ('reason', models.TextField(verbose_name='Reason')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('approved', 'Approved'), ('rejected', 'Rejected')], db_index=True, default='pending', max_length=20, verbose_name='Status')),
                ('reviewed_by', models.CharField(blank=True, default='', max_length=100, verbose_name='Reviewed by')),
                ('reviewed_at', models.DateTimeField(blank=True, null=True, verbose_name='Reviewed at')),
                ('review_note', models.TextField(blank=True, default='', verbose_name='Review note')),
                ('checklist_summary', models.JSONField(help_text='Totals at request time, for audit comparison', verbose_name='Checklist snapshot')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('checklist', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='modification_requests', to='baleman.checklist', verbose_name='Checklist')),
            ],
            options={
                'verbose_name': 'Modification request',
                'verbose_name_plural': 'Modification requests',
                'ordering': ['created_at'],
            },
        ),
        migrations.CreateModel(
            name='Shipment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('order_id', models.CharField(blank=True, default='', max_length=64, verbose_name='Order')),
                ('customer_id', models.CharField(db_index=True, max_length=64, verbose_name='Customer')),
                ('driver_first_name', models.CharField(max_length=100, verbose_name='Driver first name')),
                ('driver_last_name', models.CharField(max_length=100, verbose_name='Driver last name')),
                ('driver_license', models.CharField(max_length=50, verbose_name='Driver license')),
                ('driver_phone', models.CharField(blank=True, default='', max_length=30, verbose_name='Driver phone')),
                ('vehicle_number', models.CharField(max_length=30, verbose_name='Vehicle number')),
                ('vehicle_type', models.CharField(blank=True, default='', max_length=50, verbose_name='Vehicle type')),
                ('waybill_number', models.CharField(db_index=True, max_length=64, verbose_name='Waybill')),
                ('tracking_number', models.CharField(max_length=64, unique=True, verbose_name='Tracking number')),
                ('documents', models.JSONField(blank=True, default=dict, help_text='Readiness flags: waybill, invoice, packing, quality', verbose_name='Documents')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('preparing', 'Preparing'), ('ready', 'Ready'), ('shipped', 'Shipped'), ('delivered', 'Delivered'), ('cancelled', 'Cancelled')], db_index=True, default='pending', max_length=20, verbose_name='Status')),
                ('status_history', models.JSONField(blank=True, default=list)),
                ('total_items', models.PositiveIntegerField(verbose_name='Items')),
                ('total_weight', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=14, verbose_name='Total weight')),
                ('notes', models.TextField(blank=True, default='')),
                ('shipped_by', models.CharField(max_length=100, verbose_name='Shipped by')),
                ('planned_delivery_date', models.DateField(blank=True, null=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('shipped_at', models.DateTimeField(blank=True, null=True)),
                ('delivered_at', models.DateTimeField(blank=True, null=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('recipient_name', models.CharField(blank=True, default='', max_length=200)),
                ('recipient_signature', models.TextField(blank=True, default='')),
                ('delivery_notes', models.TextField(blank=True, default='')),
                ('checklist', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='shipments', to='baleman.checklist', verbose_name='Checklist')),
            ],
            options={
                'verbose_name': 'Shipment',
                'verbose_name_plural': 'Shipments',
                'ordering': ['-created_at'],
            },
        ),
        # Constraints
        migrations.AddConstraint(
            model_name='lot',
            constraint=models.UniqueConstraint(fields=('product_type', 'number'), name='unique_lot_number_per_product'),
        ),
        migrations.AddConstraint(
            model_name='lot',
            constraint=models.CheckConstraint(condition=models.Q(('capacity__gte', 1)), name='lot_capacity_positive'),
        ),
        migrations.AddConstraint(
            model_name='lot',
            constraint=models.CheckConstraint(condition=models.Q(('used__lte', models.F('capacity'))), name='lot_used_within_capacity'),
        ),
        migrations.AddConstraint(
            model_name='bale',
            constraint=models.UniqueConstraint(fields=('lot', 'order_no'), name='unique_bale_order_per_lot'),
        ),
        migrations.AddConstraint(
            model_name='bale',
            constraint=models.CheckConstraint(condition=models.Q(('net_weight__gte', 0)), name='bale_net_weight_non_negative'),
        ),
        migrations.AddIndex(
            model_name='bale',
            index=models.Index(fields=['status', 'lab_status'], name='bale_status_lab_idx'),
        ),
        migrations.AddIndex(
            model_name='checklist',
            index=models.Index(fields=['workspace_id', 'status'], name='checklist_workspace_status_idx'),
        ),
        migrations.AddConstraint(
            model_name='checklistitem',
            constraint=models.UniqueConstraint(fields=('bale',), name='unique_bale_reservation'),
        ),
        migrations.AddIndex(
            model_name='checklistitem',
            index=models.Index(fields=['checklist', 'position'], name='checklist_item_position_idx'),
        ),
        migrations.AddConstraint(
            model_name='modificationrequest',
            constraint=models.UniqueConstraint(condition=models.Q(('status', 'pending')), fields=('checklist',), name='one_pending_request_per_checklist'),
        ),
    ]
