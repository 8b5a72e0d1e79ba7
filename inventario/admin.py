from django.contrib import admin

from .models import (
    Bom,
    BomLine,
    Item,
    ItemMinStock,
    Location,
    StockBalance,
    StockMovement,
    StockReservation,
    StockReservationLine,
    Warehouse,
)


class ItemMinStockInline(admin.TabularInline):
    model = ItemMinStock
    extra = 0


@admin.register(Item)
class ItemAdmin(admin.ModelAdmin):
    list_display = ("sku", "name", "type", "category", "uom", "active")
    list_filter = ("type", "uom", "active")
    search_fields = ("sku", "name", "brand", "category")
    inlines = [ItemMinStockInline]


class LocationInline(admin.TabularInline):
    model = Location
    extra = 0


@admin.register(Warehouse)
class WarehouseAdmin(admin.ModelAdmin):
    list_display = ("name", "type", "address", "active")
    list_filter = ("type", "active")
    inlines = [LocationInline]


@admin.register(StockBalance)
class StockBalanceAdmin(admin.ModelAdmin):
    list_display = ("item", "warehouse", "location", "on_hand", "reserved")
    list_filter = ("warehouse",)
    search_fields = ("item__sku", "item__name")
    # Los saldos sólo cambian vía inventario.ledger.
    readonly_fields = ("item", "warehouse", "location", "on_hand", "reserved", "updated_at")


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = ("created_at", "type", "item", "warehouse", "qty", "uom", "ref_kind", "ref_id")
    list_filter = ("type", "warehouse", "ref_kind")
    search_fields = ("item__sku", "item__name", "ref_id", "note")

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class StockReservationLineInline(admin.TabularInline):
    model = StockReservationLine
    extra = 0
    readonly_fields = ("item", "qty", "uom", "lot")


@admin.register(StockReservation)
class StockReservationAdmin(admin.ModelAdmin):
    list_display = ("ref_kind", "ref_id", "warehouse", "status", "created_at")
    list_filter = ("status", "ref_kind", "warehouse")
    inlines = [StockReservationLineInline]


class BomLineInline(admin.TabularInline):
    model = BomLine
    extra = 0


@admin.register(Bom)
class BomAdmin(admin.ModelAdmin):
    list_display = ("finished_item", "version", "active", "updated_at")
    list_filter = ("active",)
    search_fields = ("finished_item__sku", "finished_item__name")
    inlines = [BomLineInline]
