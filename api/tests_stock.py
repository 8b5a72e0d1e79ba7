from decimal import Decimal
from io import BytesIO

from django.contrib.auth import get_user_model
from django.urls import reverse
from openpyxl import load_workbook
from rest_framework import status
from rest_framework.test import APITestCase

from core.access import ROLE_DEPOSITO, ROLE_VENDEDOR, set_user_role
from core.models import AuditLog
from inventario.ledger import apply_movement
from inventario.models import (
    REF_PROJECT,
    UOM_M,
    UOM_UN,
    Bom,
    BomLine,
    Item,
    ItemMinStock,
    Location,
    StockBalance,
    StockMovement,
    StockReservation,
    Warehouse,
)


class StockEndpointsTests(APITestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(username="deposito@example.com", password="test12345")
        set_user_role(self.user, ROLE_DEPOSITO)
        self.client.force_authenticate(self.user)
        self.main = Warehouse.objects.create(name="Central", type=Warehouse.TYPE_MAIN)
        self.obra = Warehouse.objects.create(name="Obra Palermo", type=Warehouse.TYPE_JOB_SITE)
        self.perfil = Item.objects.create(
            type=Item.TYPE_COMPONENT, sku="PERF-60", name="Perfil 60", category="Perfiles", uom=UOM_M
        )
        self.ventana = Item.objects.create(
            type=Item.TYPE_FINISHED, sku="VEN-120", name="Ventana 120", category="Ventanas", uom=UOM_UN
        )

    def _ingresar(self, item, qty, warehouse=None):
        apply_movement(type=StockMovement.TYPE_IN, item=item, warehouse=warehouse or self.main, qty=qty, uom=item.uom)

    def _on_hand(self, item, warehouse):
        return StockBalance.objects.get(item=item, warehouse=warehouse, location=None).on_hand

    def test_items_create_with_min_stock_and_filter(self):
        resp = self.client.post(
            reverse("api_stock_items"),
            {
                "type": Item.TYPE_COMPONENT,
                "sku": " vid-4mm ",
                "name": "Vidrio 4mm",
                "category": "Vidrios",
                "uom": UOM_UN,
                "min_stock": [{"warehouse": self.main.id, "min": "10"}],
            },
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, resp.data)
        self.assertEqual(resp.data["data"]["sku"], "VID-4MM")
        item_id = resp.data["data"]["id"]
        self.assertEqual(ItemMinStock.objects.get(item_id=item_id).min, Decimal("10"))

        resp = self.client.get(reverse("api_stock_items"), {"q": "vidrio"})
        self.assertEqual([i["sku"] for i in resp.data["data"]], ["VID-4MM"])
        resp = self.client.get(reverse("api_stock_items"), {"type": Item.TYPE_FINISHED})
        self.assertEqual([i["sku"] for i in resp.data["data"]], ["VEN-120"])

        resp = self.client.put(
            reverse("api_stock_item_detail", args=[item_id]),
            {"name": "Vidrio float 4mm", "min_stock": []},
            format="json",
        )
        self.assertEqual(resp.data["data"]["name"], "Vidrio float 4mm")
        self.assertFalse(ItemMinStock.objects.filter(item_id=item_id).exists())

    def test_warehouses_and_locations(self):
        resp = self.client.post(
            reverse("api_stock_warehouse_locations", args=[self.main.id]), {"code": "R-01"}, format="json"
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        resp = self.client.post(
            reverse("api_stock_warehouse_locations", args=[self.main.id]), {"code": "r-01"}, format="json"
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

        resp = self.client.get(reverse("api_stock_warehouses"))
        central = next(w for w in resp.data["data"] if w["id"] == self.main.id)
        self.assertEqual(central["locations_count"], 1)

        resp = self.client.post(
            reverse("api_stock_warehouses"), {"name": "Taller", "type": Warehouse.TYPE_WORKSHOP}, format="json"
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)

    def test_movement_in_and_out(self):
        resp = self.client.post(
            reverse("api_stock_movements"),
            {"type": "IN", "item_id": self.perfil.id, "warehouse_id": self.main.id, "qty": "25.5", "unit_cost": "1200"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data["data"]["uom"], UOM_M)

        resp = self.client.post(
            reverse("api_stock_movements"),
            {"type": "OUT", "item_id": self.perfil.id, "warehouse_id": self.main.id, "qty": "30"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("Stock insuficiente", resp.data["error"])
        self.assertEqual(self._on_hand(self.perfil, self.main), Decimal("25.5"))
        self.assertEqual(
            list(AuditLog.objects.filter(model="inventario.StockMovement").values_list("action", flat=True)), ["IN"]
        )

    def test_movement_requires_warehouse(self):
        resp = self.client.post(
            reverse("api_stock_movements"), {"type": "IN", "item_id": self.perfil.id, "qty": "1"}, format="json"
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        resp = self.client.post(
            reverse("api_stock_movements"),
            {"type": "RESERVE", "item_id": self.perfil.id, "warehouse_id": self.main.id, "qty": "1"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_location_of_another_warehouse_is_not_found(self):
        ajena = Location.objects.create(warehouse=self.obra, code="A-01")
        resp = self.client.post(
            reverse("api_stock_movements"),
            {"type": "IN", "item_id": self.perfil.id, "warehouse_id": self.main.id, "location_id": ajena.id, "qty": "1"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    def test_transfer(self):
        self._ingresar(self.perfil, "10")
        resp = self.client.post(
            reverse("api_stock_movements"),
            {
                "type": "TRANSFER",
                "item_id": self.perfil.id,
                "from_warehouse_id": self.main.id,
                "to_warehouse_id": self.obra.id,
                "qty": "4",
            },
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data["data"]["to_warehouse"], self.obra.id)
        self.assertEqual(self._on_hand(self.perfil, self.main), Decimal("6"))
        self.assertEqual(self._on_hand(self.perfil, self.obra), Decimal("4"))

    def test_balances_and_movements_listing(self):
        self._ingresar(self.perfil, "10")
        self._ingresar(self.ventana, "2", warehouse=self.obra)

        resp = self.client.get(reverse("api_stock_balances"), {"warehouse_id": self.obra.id})
        self.assertEqual(resp.data["count"], 1)
        self.assertEqual(resp.data["data"][0]["item_sku"], "VEN-120")
        self.assertEqual(Decimal(resp.data["data"][0]["available"]), Decimal("2"))

        resp = self.client.get(reverse("api_stock_movements"), {"item_id": self.perfil.id})
        self.assertEqual(len(resp.data["data"]), 1)
        resp = self.client.get(reverse("api_stock_movements"), {"type": "NOPE"})
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_exports(self):
        self._ingresar(self.perfil, "10")

        resp = self.client.get(reverse("api_stock_balances"), {"format": "csv"})
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertTrue(resp["Content-Type"].startswith("text/csv"))
        self.assertIn("attachment; filename=", resp["Content-Disposition"])
        self.assertIn("PERF-60", resp.content.decode("utf-8-sig"))

        resp = self.client.get(reverse("api_stock_movements"), {"export": "xlsx"})
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        ws = load_workbook(BytesIO(resp.content)).active
        rows = list(ws.values)
        self.assertEqual(rows[0][1], "Tipo")
        self.assertEqual(rows[1][2], "PERF-60")

    def test_reservation_and_release(self):
        self._ingresar(self.perfil, "10")
        resp = self.client.post(
            reverse("api_stock_reservations"),
            {
                "ref_kind": REF_PROJECT,
                "ref_id": "OT-00001",
                "warehouse_id": self.main.id,
                "lines": [{"item_id": self.perfil.id, "qty": "6"}],
            },
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        reservation_id = resp.data["data"]["id"]
        self.assertEqual(resp.data["data"]["lines"][0]["item_sku"], "PERF-60")
        self.assertEqual(StockBalance.objects.get(item=self.perfil, warehouse=self.main).reserved, Decimal("6"))

        resp = self.client.get(reverse("api_stock_reservations"), {"kind": REF_PROJECT, "ref_id": "OT-00001"})
        self.assertEqual(resp.data["count"], 1)

        resp = self.client.post(
            reverse("api_stock_reservations"),
            {
                "ref_kind": REF_PROJECT,
                "ref_id": "OT-00002",
                "warehouse_id": self.main.id,
                "lines": [{"item_id": self.perfil.id, "qty": "5"}],
            },
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(StockReservation.objects.count(), 1)

        resp = self.client.post(reverse("api_stock_reservation_release", args=[reservation_id]))
        self.assertEqual(resp.data["data"]["status"], StockReservation.STATUS_RELEASED)
        resp = self.client.post(reverse("api_stock_reservation_release", args=[reservation_id]))
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_reservation_needs_lines(self):
        resp = self.client.post(
            reverse("api_stock_reservations"),
            {"ref_kind": REF_PROJECT, "ref_id": "OT-1", "warehouse_id": self.main.id, "lines": []},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_bom_crud_and_produce(self):
        resp = self.client.post(
            reverse("api_stock_boms"),
            {
                "finished_item": self.ventana.id,
                "version": 1,
                "lines": [{"component_item": self.perfil.id, "qty": "4.8", "uom": UOM_M}],
            },
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, resp.data)
        bom_id = resp.data["data"]["id"]

        resp = self.client.put(
            reverse("api_stock_bom_detail", args=[bom_id]),
            {"lines": [{"component_item": self.perfil.id, "qty": "5", "uom": UOM_M}]},
            format="json",
        )
        self.assertEqual(BomLine.objects.get(bom_id=bom_id).qty, Decimal("5"))

        resp = self.client.post(
            reverse("api_stock_produce"), {"finished_item_id": self.ventana.id, "warehouse_id": self.main.id}, format="json"
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(StockMovement.objects.filter(type=StockMovement.TYPE_PRODUCE).exists())

        self._ingresar(self.perfil, "12")
        resp = self.client.post(
            reverse("api_stock_produce"),
            {"finished_item_id": self.ventana.id, "warehouse_id": self.main.id, "qty": "2"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data["data"]["bom_id"], bom_id)
        self.assertEqual(len(resp.data["data"]["consumed_movement_ids"]), 1)
        self.assertEqual(self._on_hand(self.perfil, self.main), Decimal("2"))
        self.assertEqual(self._on_hand(self.ventana, self.main), Decimal("2"))
        self.assertTrue(AuditLog.objects.filter(action="PRODUCE").exists())

    def test_bom_rejects_self_component(self):
        resp = self.client.post(
            reverse("api_stock_boms"),
            {"finished_item": self.ventana.id, "version": 1, "lines": [{"component_item": self.ventana.id, "qty": "1", "uom": UOM_UN}]},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Bom.objects.exists())

    def test_permissions(self):
        vendedor = get_user_model().objects.create_user(username="v@example.com", password="test12345")
        set_user_role(vendedor, ROLE_VENDEDOR)
        self.client.force_authenticate(vendedor)

        self.assertEqual(self.client.get(reverse("api_stock_balances")).status_code, status.HTTP_403_FORBIDDEN)
        resp = self.client.post(
            reverse("api_stock_movements"),
            {"type": "IN", "item_id": self.perfil.id, "warehouse_id": self.main.id, "qty": "1"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
