import csv
from io import BytesIO

from django.http import HttpResponse
from django.utils import timezone
from openpyxl import Workbook

BALANCE_HEADERS = ["SKU", "Artículo", "Depósito", "Ubicación", "UOM", "En mano", "Reservado", "Disponible"]
MOVEMENT_HEADERS = [
    "Fecha",
    "Tipo",
    "SKU",
    "Artículo",
    "Depósito",
    "Ubicación",
    "Cantidad",
    "UOM",
    "Referencia",
    "Nota",
    "Usuario",
]


def _balance_row(balance) -> list:
    return [
        balance.item.sku,
        balance.item.name,
        balance.warehouse.name,
        balance.location.code if balance.location_id else "",
        balance.item.uom,
        balance.on_hand,
        balance.reserved,
        balance.available,
    ]


def _movement_row(movement) -> list:
    ref = f"{movement.ref_kind}/{movement.ref_id}" if movement.ref_kind else ""
    return [
        timezone.localtime(movement.created_at).strftime("%Y-%m-%d %H:%M"),
        movement.type,
        movement.item.sku,
        movement.item.name,
        movement.warehouse.name,
        movement.location.code if movement.location_id else "",
        movement.qty,
        movement.uom,
        ref,
        movement.note,
        movement.created_by.username if movement.created_by_id else "",
    ]


def _csv_response(filename: str, headers: list[str], rows) -> HttpResponse:
    response = HttpResponse(content_type="text/csv; charset=utf-8")
    response["Content-Disposition"] = f'attachment; filename="{filename}.csv"'
    writer = csv.writer(response)
    writer.writerow(headers)
    for row in rows:
        writer.writerow(row)
    return response


def _xlsx_response(filename: str, title: str, headers: list[str], rows) -> HttpResponse:
    wb = Workbook()
    ws = wb.active
    ws.title = title
    ws.append(headers)
    for row in rows:
        ws.append([float(value) if hasattr(value, "as_tuple") else value for value in row])

    out = BytesIO()
    wb.save(out)
    out.seek(0)
    response = HttpResponse(
        out.getvalue(),
        content_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )
    response["Content-Disposition"] = f'attachment; filename="{filename}.xlsx"'
    return response


def export_balances(balances, export_format: str) -> HttpResponse:
    stamp = timezone.localdate().isoformat()
    rows = (_balance_row(balance) for balance in balances)
    if export_format == "xlsx":
        return _xlsx_response(f"stock_saldos_{stamp}", "Saldos", BALANCE_HEADERS, rows)
    return _csv_response(f"stock_saldos_{stamp}", BALANCE_HEADERS, rows)


def export_movements(movements, export_format: str) -> HttpResponse:
    stamp = timezone.localdate().isoformat()
    rows = (_movement_row(movement) for movement in movements)
    if export_format == "xlsx":
        return _xlsx_response(f"stock_movimientos_{stamp}", "Movimientos", MOVEMENT_HEADERS, rows)
    return _csv_response(f"stock_movimientos_{stamp}", MOVEMENT_HEADERS, rows)
