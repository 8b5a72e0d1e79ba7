from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase

from inventario.ledger import (
    NOTE_CONSUMO,
    NOTE_INGRESO,
    ConsumeLine,
    StockError,
    active_bom,
    apply_movement,
    apply_reservation,
    apply_transfer,
    create_reservation,
    produce,
    release_reservation,
)
from inventario.models import (
    REF_PRODUCTION,
    REF_PROJECT,
    UOM_M,
    UOM_UN,
    Bom,
    BomLine,
    Item,
    Location,
    StockBalance,
    StockMovement,
    StockReservation,
    Warehouse,
)


class _LedgerFixture(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(username="deposito@example.com", password="test12345")
        self.main = Warehouse.objects.create(name="Central", type=Warehouse.TYPE_MAIN)
        self.taller = Warehouse.objects.create(name="Taller", type=Warehouse.TYPE_WORKSHOP)
        self.perfil = Item.objects.create(
            type=Item.TYPE_COMPONENT, sku="PERF-60", name="Perfil aluminio 60", category="Perfiles", uom=UOM_M
        )
        self.vidrio = Item.objects.create(
            type=Item.TYPE_COMPONENT, sku="VID-4MM", name="Vidrio 4mm", category="Vidrios", uom=UOM_UN
        )
        self.ventana = Item.objects.create(
            type=Item.TYPE_FINISHED, sku="VEN-120", name="Ventana corrediza 120", category="Ventanas", uom=UOM_UN
        )

    def _balance(self, item, warehouse, location=None) -> StockBalance:
        return StockBalance.objects.get(item=item, warehouse=warehouse, location=location)

    def _ingresar(self, item, qty, warehouse=None, location=None):
        return apply_movement(
            type=StockMovement.TYPE_IN,
            item=item,
            warehouse=warehouse or self.main,
            location=location,
            qty=qty,
            uom=item.uom,
            user=self.user,
        )


class ApplyMovementTests(_LedgerFixture):
    def test_in_and_out_update_on_hand_and_record_signed_qty(self):
        self._ingresar(self.perfil, "30")
        out = apply_movement(
            type=StockMovement.TYPE_OUT, item=self.perfil, warehouse=self.main, qty="12.5", uom=UOM_M, user=self.user
        )

        self.assertEqual(self._balance(self.perfil, self.main).on_hand, Decimal("17.5"))
        self.assertEqual(out.qty, Decimal("-12.5"))
        self.assertEqual(out.created_by, self.user)
        self.assertEqual(StockMovement.objects.count(), 2)

    def test_out_without_stock_fails_and_leaves_no_movement(self):
        self._ingresar(self.perfil, "5")
        with self.assertRaisesMessage(StockError, "Stock insuficiente"):
            apply_movement(type=StockMovement.TYPE_OUT, item=self.perfil, warehouse=self.main, qty="6", uom=UOM_M)

        self.assertEqual(self._balance(self.perfil, self.main).on_hand, Decimal("5"))
        self.assertEqual(StockMovement.objects.count(), 1)

    def test_out_cannot_consume_reserved_stock(self):
        self._ingresar(self.vidrio, "10")
        apply_reservation(
            action=StockMovement.TYPE_RESERVE,
            warehouse=self.main,
            lines=[{"item": self.vidrio, "qty": "8", "uom": UOM_UN}],
            ref_kind=REF_PROJECT,
            ref_id="OT-00001",
        )
        with self.assertRaises(StockError):
            apply_movement(type=StockMovement.TYPE_OUT, item=self.vidrio, warehouse=self.main, qty="3", uom=UOM_UN)

    def test_adjust_accepts_signed_qty_but_not_zero(self):
        self._ingresar(self.vidrio, "4")
        apply_movement(type=StockMovement.TYPE_ADJUST, item=self.vidrio, warehouse=self.main, qty="-1", uom=UOM_UN)
        self.assertEqual(self._balance(self.vidrio, self.main).on_hand, Decimal("3"))

        with self.assertRaisesMessage(StockError, "qty no puede ser 0"):
            apply_movement(type=StockMovement.TYPE_ADJUST, item=self.vidrio, warehouse=self.main, qty="0", uom=UOM_UN)
        with self.assertRaises(StockError):
            apply_movement(type=StockMovement.TYPE_ADJUST, item=self.vidrio, warehouse=self.main, qty="-5", uom=UOM_UN)

    def test_in_rejects_non_positive_and_unknown_types(self):
        with self.assertRaises(StockError):
            apply_movement(type=StockMovement.TYPE_IN, item=self.vidrio, warehouse=self.main, qty="-2", uom=UOM_UN)
        with self.assertRaises(StockError):
            apply_movement(type="SCRAP", item=self.vidrio, warehouse=self.main, qty="2", uom=UOM_UN)
        with self.assertRaises(StockError):
            apply_movement(type=StockMovement.TYPE_IN, item=self.vidrio, warehouse=self.main, qty="abc", uom=UOM_UN)

    def test_location_must_belong_to_warehouse(self):
        location = Location.objects.create(warehouse=self.taller, code="A-01")
        with self.assertRaisesMessage(StockError, "no pertenece"):
            self._ingresar(self.vidrio, "1", warehouse=self.main, location=location)

    def test_balances_are_kept_per_location(self):
        rack = Location.objects.create(warehouse=self.main, code="R-01")
        self._ingresar(self.vidrio, "3", location=rack)
        self._ingresar(self.vidrio, "2")

        self.assertEqual(self._balance(self.vidrio, self.main, rack).on_hand, Decimal("3"))
        self.assertEqual(self._balance(self.vidrio, self.main).on_hand, Decimal("2"))


class TransferTests(_LedgerFixture):
    def test_transfer_moves_stock_between_warehouses(self):
        self._ingresar(self.perfil, "20")
        movement = apply_transfer(
            item=self.perfil, qty="8", uom=UOM_M, from_warehouse=self.main, to_warehouse=self.taller, user=self.user
        )

        self.assertEqual(self._balance(self.perfil, self.main).on_hand, Decimal("12"))
        self.assertEqual(self._balance(self.perfil, self.taller).on_hand, Decimal("8"))
        self.assertEqual(movement.type, StockMovement.TYPE_TRANSFER)
        self.assertEqual(movement.warehouse, self.main)
        self.assertEqual(movement.to_warehouse, self.taller)

    def test_transfer_validates_origin_and_destination(self):
        self._ingresar(self.perfil, "2")
        with self.assertRaisesMessage(StockError, "Stock insuficiente en origen"):
            apply_transfer(item=self.perfil, qty="3", uom=UOM_M, from_warehouse=self.main, to_warehouse=self.taller)
        with self.assertRaisesMessage(StockError, "Origen y destino son iguales"):
            apply_transfer(item=self.perfil, qty="1", uom=UOM_M, from_warehouse=self.main, to_warehouse=self.main)


class ReservationTests(_LedgerFixture):
    def test_create_and_release_reservation(self):
        self._ingresar(self.vidrio, "10")
        reservation = create_reservation(
            warehouse=self.main,
            lines=[{"item": self.vidrio, "qty": "4", "uom": UOM_UN}],
            ref_kind=REF_PROJECT,
            ref_id="OT-00007",
            user=self.user,
        )
        balance = self._balance(self.vidrio, self.main)
        self.assertEqual(balance.reserved, Decimal("4"))
        self.assertEqual(balance.available, Decimal("6"))
        self.assertEqual(reservation.lines.count(), 1)

        release_reservation(reservation, user=self.user)
        reservation.refresh_from_db()
        self.assertEqual(reservation.status, StockReservation.STATUS_RELEASED)
        self.assertEqual(self._balance(self.vidrio, self.main).reserved, Decimal("0"))
        self.assertEqual(
            list(StockMovement.objects.filter(item=self.vidrio).order_by("id").values_list("type", "qty")),
            [
                (StockMovement.TYPE_IN, Decimal("10")),
                (StockMovement.TYPE_RESERVE, Decimal("4")),
                (StockMovement.TYPE_UNRESERVE, Decimal("-4")),
            ],
        )

        with self.assertRaisesMessage(StockError, "no está activa"):
            release_reservation(reservation)

    def test_reservation_over_available_rolls_back_document(self):
        self._ingresar(self.vidrio, "2")
        with self.assertRaisesMessage(StockError, "Stock insuficiente para reservar"):
            create_reservation(
                warehouse=self.main,
                lines=[{"item": self.vidrio, "qty": "3", "uom": UOM_UN}],
                ref_kind=REF_PROJECT,
                ref_id="OT-00008",
            )
        self.assertFalse(StockReservation.objects.exists())

    def test_unreserve_cannot_leave_negative_reserved(self):
        self._ingresar(self.vidrio, "2")
        with self.assertRaisesMessage(StockError, "no puede ser negativo"):
            apply_reservation(
                action=StockMovement.TYPE_UNRESERVE,
                warehouse=self.main,
                lines=[{"item": self.vidrio, "qty": "1", "uom": UOM_UN}],
                ref_kind=REF_PROJECT,
                ref_id="OT-00009",
            )


class ProduceTests(_LedgerFixture):
    def setUp(self):
        super().setUp()
        self.bom = Bom.objects.create(finished_item=self.ventana, version=1)
        BomLine.objects.create(bom=self.bom, component_item=self.perfil, qty=Decimal("4.8"), uom=UOM_M)
        BomLine.objects.create(bom=self.bom, component_item=self.vidrio, qty=Decimal("2"), uom=UOM_UN)

    def test_produce_consumes_components_and_adds_finished_item(self):
        self._ingresar(self.perfil, "20")
        self._ingresar(self.vidrio, "10")

        result = produce(finished_item=self.ventana, warehouse=self.main, qty=2, user=self.user)

        self.assertEqual(result["bom"], self.bom)
        self.assertEqual(self._balance(self.perfil, self.main).on_hand, Decimal("10.4"))
        self.assertEqual(self._balance(self.vidrio, self.main).on_hand, Decimal("6"))
        self.assertEqual(self._balance(self.ventana, self.main).on_hand, Decimal("2"))

        produced = result["produced"]
        self.assertEqual(produced.type, StockMovement.TYPE_PRODUCE)
        self.assertEqual(produced.note, NOTE_INGRESO)
        self.assertEqual((produced.ref_kind, produced.ref_id), (REF_PRODUCTION, str(self.ventana.id)))
        self.assertEqual([m.note for m in result["consumed"]], [NOTE_CONSUMO, NOTE_CONSUMO])

    def test_produce_is_atomic_when_a_component_is_missing(self):
        self._ingresar(self.perfil, "20")
        self._ingresar(self.vidrio, "1")
        movimientos = StockMovement.objects.count()

        with self.assertRaises(StockError):
            produce(finished_item=self.ventana, warehouse=self.main, qty=1)

        self.assertEqual(StockMovement.objects.count(), movimientos)
        self.assertEqual(self._balance(self.perfil, self.main).on_hand, Decimal("20"))
        self.assertFalse(StockBalance.objects.filter(item=self.ventana, on_hand__gt=0).exists())

    def test_produce_without_active_bom(self):
        self.bom.active = False
        self.bom.save()
        with self.assertRaisesMessage(StockError, "No hay BOM activa"):
            produce(finished_item=self.ventana, warehouse=self.main)

    def test_active_bom_uses_highest_active_version(self):
        v2 = Bom.objects.create(finished_item=self.ventana, version=2)
        Bom.objects.create(finished_item=self.ventana, version=3, active=False)
        self.assertEqual(active_bom(self.ventana), v2)

    def test_override_lines_replace_bom_and_can_use_another_warehouse(self):
        self._ingresar(self.perfil, "5", warehouse=self.taller)
        result = produce(
            finished_item=self.ventana,
            warehouse=self.main,
            override_consume_lines=[ConsumeLine(component_item=self.perfil, qty=Decimal("3"), uom=UOM_M, warehouse=self.taller)],
        )

        self.assertIsNone(result["bom"])
        self.assertEqual(self._balance(self.perfil, self.taller).on_hand, Decimal("2"))
        self.assertEqual(self._balance(self.ventana, self.main).on_hand, Decimal("1"))
