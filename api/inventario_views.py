from django.conf import settings
from django.db.models import Count
from django.shortcuts import get_object_or_404
from rest_framework import status

from core.access import can_manage_stock, can_view_stock
from core.audit import log_event
from inventario.exports import export_balances, export_movements
from inventario.filters import BomFilter, ItemFilter, StockBalanceFilter, StockMovementFilter, StockReservationFilter
from inventario.ledger import ConsumeLine, apply_movement, apply_transfer, create_reservation, produce, release_reservation
from inventario.models import (
    Bom,
    Item,
    Location,
    StockBalance,
    StockMovement,
    StockReservation,
    Warehouse,
)

from .base import EnvelopeAPIView
from .inventario_serializers import (
    BomSerializer,
    ItemSerializer,
    LocationSerializer,
    MovementCreateSerializer,
    ProduceSerializer,
    ReservationCreateSerializer,
    StockBalanceSerializer,
    StockMovementSerializer,
    StockReservationSerializer,
    WarehouseSerializer,
)

EXPORT_FORMATS = {"csv", "xlsx"}


class _StockBaseView(EnvelopeAPIView):
    def _check(self, request, write: bool = False):
        if write:
            return None if can_manage_stock(request.user) else self._forbidden("modificar stock")
        return None if can_view_stock(request.user) else self._forbidden("consultar stock")

    @staticmethod
    def _export_format(request) -> str:
        raw = request.query_params.get("export") or request.query_params.get("format") or ""
        return raw.strip().lower() if raw.strip().lower() in EXPORT_FORMATS else ""

    @staticmethod
    def _location(warehouse: Warehouse, location_id):
        if not location_id:
            return None
        return get_object_or_404(Location, pk=location_id, warehouse=warehouse)


class ItemsView(_StockBaseView):
    def get(self, request):
        denied = self._check(request)
        if denied:
            return denied
        filterset = ItemFilter(request.query_params, queryset=Item.objects.prefetch_related("min_stock__warehouse"))
        if not filterset.is_valid():
            return self._invalid_filters(filterset)
        return self._paginate(request, filterset.qs, ItemSerializer, default_limit=100)

    def post(self, request):
        denied = self._check(request, write=True)
        if denied:
            return denied
        serializer = ItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        item = serializer.save()
        log_event(request.user, "CREATE", "inventario.Item", str(item.id), {"sku": item.sku})
        return self._ok(ItemSerializer(item).data, status.HTTP_201_CREATED)


class ItemDetailView(_StockBaseView):
    def get(self, request, item_id: int):
        denied = self._check(request)
        if denied:
            return denied
        return self._ok(ItemSerializer(get_object_or_404(Item, pk=item_id)).data)

    def put(self, request, item_id: int):
        denied = self._check(request, write=True)
        if denied:
            return denied
        item = get_object_or_404(Item, pk=item_id)
        serializer = ItemSerializer(item, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        item = serializer.save()
        log_event(request.user, "UPDATE", "inventario.Item", str(item.id), {"campos": sorted(request.data.keys())})
        return self._ok(ItemSerializer(item).data)


class WarehousesView(_StockBaseView):
    def get(self, request):
        denied = self._check(request)
        if denied:
            return denied
        qs = Warehouse.objects.annotate(locations_count=Count("locations"))
        return self._ok(WarehouseSerializer(qs, many=True).data)

    def post(self, request):
        denied = self._check(request, write=True)
        if denied:
            return denied
        serializer = WarehouseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        warehouse = serializer.save()
        log_event(request.user, "CREATE", "inventario.Warehouse", str(warehouse.id), {"name": warehouse.name})
        return self._ok(WarehouseSerializer(warehouse).data, status.HTTP_201_CREATED)


class WarehouseLocationsView(_StockBaseView):
    def get(self, request, warehouse_id: int):
        denied = self._check(request)
        if denied:
            return denied
        warehouse = get_object_or_404(Warehouse, pk=warehouse_id)
        return self._ok(LocationSerializer(warehouse.locations.all(), many=True).data)

    def post(self, request, warehouse_id: int):
        denied = self._check(request, write=True)
        if denied:
            return denied
        warehouse = get_object_or_404(Warehouse, pk=warehouse_id)
        serializer = LocationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        code = serializer.validated_data["code"].strip()
        if warehouse.locations.filter(code__iexact=code).exists():
            return self._fail(f"Ya existe la ubicación {code} en {warehouse.name}.")
        location = serializer.save(warehouse=warehouse, code=code)
        return self._ok(LocationSerializer(location).data, status.HTTP_201_CREATED)


class BalancesView(_StockBaseView):
    def get(self, request):
        denied = self._check(request)
        if denied:
            return denied
        qs = StockBalance.objects.select_related("item", "warehouse", "location")
        filterset = StockBalanceFilter(request.query_params, queryset=qs)
        if not filterset.is_valid():
            return self._invalid_filters(filterset)
        balances = list(filterset.qs[: settings.STOCK_BALANCES_LIMIT])

        export_format = self._export_format(request)
        if export_format:
            return export_balances(balances, export_format)
        return self._ok(StockBalanceSerializer(balances, many=True).data, count=len(balances))


class MovementsView(_StockBaseView):
    def get(self, request):
        denied = self._check(request)
        if denied:
            return denied
        qs = StockMovement.objects.select_related("item", "warehouse", "location", "created_by")
        filterset = StockMovementFilter(request.query_params, queryset=qs)
        if not filterset.is_valid():
            return self._invalid_filters(filterset)
        movements = list(filterset.qs[: settings.STOCK_MOVEMENTS_LIMIT])

        export_format = self._export_format(request)
        if export_format:
            return export_movements(movements, export_format)
        return self._ok(StockMovementSerializer(movements, many=True).data, count=len(movements))

    def post(self, request):
        denied = self._check(request, write=True)
        if denied:
            return denied
        serializer = MovementCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        item = get_object_or_404(Item, pk=data["item_id"])
        common = {
            "item": item,
            "qty": data["qty"],
            "uom": data.get("uom") or item.uom,
            "lot": data["lot"],
            "serial": data["serial"],
            "note": data["note"],
            "ref_kind": data["ref_kind"],
            "ref_id": data["ref_id"],
            "user": request.user,
        }

        if data["type"] == StockMovement.TYPE_TRANSFER:
            from_warehouse = get_object_or_404(Warehouse, pk=data["from_warehouse_id"])
            to_warehouse = get_object_or_404(Warehouse, pk=data["to_warehouse_id"])
            movement = apply_transfer(
                from_warehouse=from_warehouse,
                to_warehouse=to_warehouse,
                from_location=self._location(from_warehouse, data.get("from_location_id")),
                to_location=self._location(to_warehouse, data.get("to_location_id")),
                **common,
            )
        else:
            warehouse = get_object_or_404(Warehouse, pk=data["warehouse_id"])
            movement = apply_movement(
                type=data["type"],
                warehouse=warehouse,
                location=self._location(warehouse, data.get("location_id")),
                unit_cost=data.get("unit_cost"),
                **common,
            )
        log_event(
            request.user,
            data["type"],
            "inventario.StockMovement",
            str(movement.id),
            {"sku": item.sku, "qty": str(movement.qty), "warehouse_id": movement.warehouse_id},
        )
        return self._ok(StockMovementSerializer(movement).data, status.HTTP_201_CREATED)


class ReservationsView(_StockBaseView):
    def get(self, request):
        denied = self._check(request)
        if denied:
            return denied
        qs = StockReservation.objects.select_related("warehouse").prefetch_related("lines__item")
        filterset = StockReservationFilter(request.query_params, queryset=qs)
        if not filterset.is_valid():
            return self._invalid_filters(filterset)
        return self._paginate(request, filterset.qs, StockReservationSerializer, default_limit=100)

    def post(self, request):
        denied = self._check(request, write=True)
        if denied:
            return denied
        serializer = ReservationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        warehouse = get_object_or_404(Warehouse, pk=data["warehouse_id"])

        lines = []
        for line in data["lines"]:
            item = get_object_or_404(Item, pk=line["item_id"])
            lines.append(
                {
                    "item": item,
                    "qty": line["qty"],
                    "uom": line.get("uom") or item.uom,
                    "lot": line["lot"],
                    "location": self._location(warehouse, line.get("location_id")),
                }
            )
        reservation = create_reservation(
            warehouse=warehouse,
            lines=lines,
            ref_kind=data["ref_kind"],
            ref_id=data["ref_id"],
            note=data["note"],
            user=request.user,
        )
        log_event(
            request.user,
            "RESERVE",
            "inventario.StockReservation",
            str(reservation.id),
            {"ref": f"{reservation.ref_kind}/{reservation.ref_id}", "lineas": len(lines)},
        )
        return self._ok(StockReservationSerializer(reservation).data, status.HTTP_201_CREATED)


class ReservationReleaseView(_StockBaseView):
    def post(self, request, reservation_id: int):
        denied = self._check(request, write=True)
        if denied:
            return denied
        reservation = release_reservation(get_object_or_404(StockReservation, pk=reservation_id), user=request.user)
        log_event(request.user, "RELEASE", "inventario.StockReservation", str(reservation.id))
        return self._ok(StockReservationSerializer(reservation).data)


class BomsView(_StockBaseView):
    def get(self, request):
        denied = self._check(request)
        if denied:
            return denied
        qs = Bom.objects.select_related("finished_item").prefetch_related("lines__component_item")
        filterset = BomFilter(request.query_params, queryset=qs)
        if not filterset.is_valid():
            return self._invalid_filters(filterset)
        return self._ok(BomSerializer(filterset.qs, many=True).data)

    def post(self, request):
        denied = self._check(request, write=True)
        if denied:
            return denied
        serializer = BomSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        bom = serializer.save()
        log_event(request.user, "CREATE", "inventario.Bom", str(bom.id), {"sku": bom.finished_item.sku, "version": bom.version})
        return self._ok(BomSerializer(bom).data, status.HTTP_201_CREATED)


class BomDetailView(_StockBaseView):
    def get(self, request, bom_id: int):
        denied = self._check(request)
        if denied:
            return denied
        return self._ok(BomSerializer(get_object_or_404(Bom, pk=bom_id)).data)

    def put(self, request, bom_id: int):
        denied = self._check(request, write=True)
        if denied:
            return denied
        bom = get_object_or_404(Bom, pk=bom_id)
        serializer = BomSerializer(bom, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        bom = serializer.save()
        log_event(request.user, "UPDATE", "inventario.Bom", str(bom.id), {"campos": sorted(request.data.keys())})
        return self._ok(BomSerializer(bom).data)


class ProduceView(_StockBaseView):
    def post(self, request):
        denied = self._check(request, write=True)
        if denied:
            return denied
        serializer = ProduceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        finished = get_object_or_404(Item, pk=data["finished_item_id"])
        warehouse = get_object_or_404(Warehouse, pk=data["warehouse_id"])

        override = None
        if data.get("override_consume_lines"):
            override = []
            for line in data["override_consume_lines"]:
                component = get_object_or_404(Item, pk=line["component_item_id"])
                line_warehouse = warehouse
                if line.get("warehouse_id"):
                    line_warehouse = get_object_or_404(Warehouse, pk=line["warehouse_id"])
                override.append(
                    ConsumeLine(
                        component_item=component,
                        qty=line["qty"],
                        uom=line.get("uom") or component.uom,
                        warehouse=line_warehouse,
                        location=self._location(line_warehouse, line.get("location_id")),
                    )
                )

        result = produce(
            finished_item=finished,
            warehouse=warehouse,
            qty=data["qty"],
            location=self._location(warehouse, data.get("location_id")),
            override_consume_lines=override,
            ref_kind=data["ref_kind"],
            ref_id=data["ref_id"],
            note=data["note"],
            user=request.user,
        )
        produced = result["produced"]
        log_event(
            request.user,
            "PRODUCE",
            "inventario.Item",
            str(finished.id),
            {"qty": str(data["qty"]), "warehouse_id": warehouse.id, "movimientos": len(result["consumed"]) + 1},
        )
        return self._ok(
            {
                "bom_id": result["bom"].id if result["bom"] else None,
                "consumed_movement_ids": [movement.id for movement in result["consumed"]],
                "produced_movement_id": produced.id,
            },
            status.HTTP_201_CREATED,
        )
