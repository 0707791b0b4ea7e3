"""
Baleman Admin — read-only views for production debugging.

- Lot: counters with a "recalculate" action
- Bale / LabResult: read-only
- Checklist: read-only with inline items
- ModificationRequest: read-only audit trail
- Shipment: read-only

State only changes through the warehouse service.
"""

from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from baleman.models import (
    Bale,
    Checklist,
    ChecklistItem,
    LabResult,
    Lot,
    ModificationRequest,
    Shipment,
)


class ReadOnlyAdmin(admin.ModelAdmin):
    """Base admin that blocks add/change/delete."""

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# =========================================================================
# LOT ADMIN
# =========================================================================

@admin.register(Lot)
class LotAdmin(ReadOnlyAdmin):
    """Lot admin — read-only with counter recalculation."""

    list_display = ['number', 'product_type', 'status', 'used', 'capacity', 'free_slots_display']
    list_filter = ['product_type', 'status']
    search_fields = ['number', 'ptm', 'selection']
    ordering = ['product_type', '-number']
    actions = ['recalculate_counters']

    @admin.display(description=_('Free'))
    def free_slots_display(self, obj):
        return obj.free_slots

    @admin.action(description=_('Recalculate used counters'))
    def recalculate_counters(self, request, queryset):
        changed = 0
        for lot in queryset:
            before = lot.used
            if lot.recalculate() != before:
                changed += 1
        self.message_user(request, _('{count} lot counter(s) corrected.').format(count=changed))


# =========================================================================
# BALE / LAB ADMIN
# =========================================================================

@admin.register(Bale)
class BaleAdmin(ReadOnlyAdmin):
    list_display = ['qr_code', 'lot', 'order_no', 'net_weight', 'grade', 'status', 'lab_status']
    list_filter = ['status', 'lab_status', 'product_type', 'grade']
    search_fields = ['qr_code']
    list_select_related = ['lot']


@admin.register(LabResult)
class LabResultAdmin(ReadOnlyAdmin):
    list_display = ['bale', 'grade', 'strength', 'moisture', 'status', 'analyst', 'reviewer']
    list_filter = ['status', 'grade']
    search_fields = ['bale__qr_code', 'analyst']
    list_select_related = ['bale']


# =========================================================================
# CHECKLIST ADMIN (with items)
# =========================================================================

class ChecklistItemInline(admin.TabularInline):
    model = ChecklistItem
    extra = 0
    fields = ['position', 'qr_code', 'lot_number', 'net_weight', 'grade', 'quality_score', 'scanned_at']
    readonly_fields = fields
    ordering = ['position']
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Checklist)
class ChecklistAdmin(ReadOnlyAdmin):
    list_display = ['id', 'customer_name', 'customer_id', 'status', 'total_items', 'total_weight', 'created_at']
    list_filter = ['status', 'workspace_id']
    search_fields = ['customer_id', 'customer_name', 'order_id']
    date_hierarchy = 'created_at'
    inlines = [ChecklistItemInline]


# =========================================================================
# MODIFICATION REQUEST ADMIN (audit trail)
# =========================================================================

@admin.register(ModificationRequest)
class ModificationRequestAdmin(ReadOnlyAdmin):
    list_display = ['id', 'checklist', 'requested_by', 'requested_by_role', 'status', 'reviewed_by', 'created_at']
    list_filter = ['status', 'requested_by_role']
    search_fields = ['requested_by', 'reason']


# =========================================================================
# SHIPMENT ADMIN
# =========================================================================

@admin.register(Shipment)
class ShipmentAdmin(ReadOnlyAdmin):
    list_display = ['tracking_number', 'waybill_number', 'customer_id', 'driver_name',
                    'status', 'total_items', 'total_weight', 'created_at']
    list_filter = ['status']
    search_fields = ['tracking_number', 'waybill_number', 'vehicle_number']
    date_hierarchy = 'created_at'
