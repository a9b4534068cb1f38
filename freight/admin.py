from django.contrib import admin

from .models import (
    AuditLog,
    City,
    Country,
    Driver,
    Location,
    Manifest,
    ManifestHistory,
    Order,
    OrderLeg,
    SplitPoint,
    State,
    Terminal,
    Trailer,
    Vehicle,
)

admin.site.register(Country)
admin.site.register(State)
admin.site.register(City)
admin.site.register(Terminal)
admin.site.register(Driver)
admin.site.register(Vehicle)
admin.site.register(Trailer)
admin.site.register(SplitPoint)


class LocationInline(admin.TabularInline):
    model = Location
    fk_name = "order"
    extra = 0


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("order_number", "customer_name", "load_tender_number", "rate", "currency")
    search_fields = ("order_number", "customer_name", "load_tender_number")
    inlines = [LocationInline]


@admin.register(Manifest)
class ManifestAdmin(admin.ModelAdmin):
    list_display = ("number", "status", "driver", "vehicle", "driver_payment_type", "driver_rate")
    list_filter = ("status", "driver_payment_type")
    search_fields = ("number",)


@admin.register(OrderLeg)
class OrderLegAdmin(admin.ModelAdmin):
    list_display = ("order", "sequence_number", "split_sequence", "status", "manifest")
    list_filter = ("status",)


# Append-only trails: read them, never edit them.
@admin.register(ManifestHistory)
class ManifestHistoryAdmin(admin.ModelAdmin):
    list_display = ("manifest_number", "previous_status", "status", "driver_name", "changed_at")

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ("table_name", "record_id", "action", "created_by", "created_at")
    list_filter = ("action",)

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
