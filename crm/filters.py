from datetime import datetime, time

import django_filters
from django.db.models import Q
from django.utils import timezone

from .models import Cliente, Cotizacion


class ClienteFilter(django_filters.FilterSet):
    q = django_filters.CharFilter(method="filter_q")
    etapa = django_filters.CharFilter(field_name="etapa", lookup_expr="iexact")
    prioridad = django_filters.CharFilter(field_name="prioridad", lookup_expr="iexact")

    class Meta:
        model = Cliente
        fields = ["q", "etapa", "prioridad"]

    def filter_q(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(nombre_completo__istartswith=value)
            | Q(email__istartswith=value)
            | Q(telefono__istartswith=value)
            | Q(empresa__istartswith=value)
        )


def _aware(day, moment: time):
    return timezone.make_aware(datetime.combine(day, moment))


class CotizacionFilter(django_filters.FilterSet):
    vendedor_id = django_filters.NumberFilter(field_name="vendedor_id")
    cliente_id = django_filters.NumberFilter(field_name="cliente_id")
    sucursal_id = django_filters.NumberFilter(field_name="sucursal_id")
    etapa_id = django_filters.NumberFilter(field_name="etapa_id")
    fecha_desde = django_filters.DateFilter(method="filter_fecha_desde")
    fecha_hasta = django_filters.DateFilter(method="filter_fecha_hasta")
    search_term = django_filters.CharFilter(method="filter_search_term")

    class Meta:
        model = Cotizacion
        fields = ["vendedor_id", "cliente_id", "sucursal_id", "etapa_id", "fecha_desde", "fecha_hasta", "search_term"]

    def filter_fecha_desde(self, queryset, name, value):
        return queryset.filter(created_at__gte=_aware(value, time.min))

    def filter_fecha_hasta(self, queryset, name, value):
        return queryset.filter(created_at__lte=_aware(value, time.max))

    def filter_search_term(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(Q(cliente__nombre_completo__icontains=value) | Q(codigo__icontains=value))
