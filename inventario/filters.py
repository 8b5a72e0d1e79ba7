import django_filters
from django.db.models import Q

from .models import Bom, Item, StockBalance, StockMovement, StockReservation


class ItemFilter(django_filters.FilterSet):
    q = django_filters.CharFilter(method="filter_q")
    type = django_filters.ChoiceFilter(choices=Item.TYPE_CHOICES)
    active = django_filters.BooleanFilter()

    class Meta:
        model = Item
        fields = ["q", "type", "active"]

    def filter_q(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(sku__icontains=value) | Q(name__icontains=value) | Q(brand__icontains=value) | Q(category__icontains=value)
        )


class StockBalanceFilter(django_filters.FilterSet):
    warehouse_id = django_filters.NumberFilter(field_name="warehouse_id")
    item_id = django_filters.NumberFilter(field_name="item_id")
    location_id = django_filters.NumberFilter(field_name="location_id")

    class Meta:
        model = StockBalance
        fields = ["warehouse_id", "item_id", "location_id"]


class StockMovementFilter(django_filters.FilterSet):
    item_id = django_filters.NumberFilter(field_name="item_id")
    warehouse_id = django_filters.NumberFilter(field_name="warehouse_id")
    type = django_filters.ChoiceFilter(choices=StockMovement.TYPE_CHOICES)

    class Meta:
        model = StockMovement
        fields = ["item_id", "warehouse_id", "type"]


class StockReservationFilter(django_filters.FilterSet):
    kind = django_filters.CharFilter(field_name="ref_kind")
    ref_id = django_filters.CharFilter(field_name="ref_id")
    status = django_filters.ChoiceFilter(choices=StockReservation.STATUS_CHOICES)

    class Meta:
        model = StockReservation
        fields = ["kind", "ref_id", "status"]


class BomFilter(django_filters.FilterSet):
    finished_item_id = django_filters.NumberFilter(field_name="finished_item_id")
    active = django_filters.BooleanFilter()

    class Meta:
        model = Bom
        fields = ["finished_item_id", "active"]
