"""Alta masiva de clientes desde JSON, CSV o XLSX."""
from __future__ import annotations

import csv
import io
import logging
from typing import Any, Iterable
from zipfile import BadZipFile

from django.db import transaction
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from core.normalizacion import normalizar_nombre, normalizar_prioridad

from .models import Cliente

logger = logging.getLogger(__name__)

# encabezado normalizado -> campo de Cliente
COLUMNAS = {
    "nombre": "nombre_completo",
    "nombre_completo": "nombre_completo",
    "nombrecompleto": "nombre_completo",
    "cliente": "nombre_completo",
    "email": "email",
    "correo": "email",
    "telefono": "telefono",
    "celular": "telefono",
    "empresa": "empresa",
    "prioridad": "prioridad",
    "etapa": "etapa",
    "origen": "origen_contacto",
    "origen_contacto": "origen_contacto",
    "origencontacto": "origen_contacto",
    "direccion": "direccion",
    "ciudad": "ciudad",
    "pais": "pais",
    "dni": "dni",
    "cuil": "cuil",
    "razon_social": "razon_social",
    "razonsocial": "razon_social",
    "notas": "notas",
}
ETAPAS_VALIDAS = {normalizar_nombre(value): value for value, _ in Cliente.ETAPA_CHOICES}


class ImportacionError(ValueError):
    pass


def _clave(header: Any) -> str:
    return normalizar_nombre(str(header or "")).replace(" ", "_")


def leer_archivo(nombre: str, contenido: bytes) -> list[dict[str, Any]]:
    suffix = nombre.lower().rsplit(".", 1)[-1] if "." in nombre else ""
    if suffix == "csv":
        try:
            reader = csv.DictReader(io.StringIO(contenido.decode("utf-8-sig")))
            return [{_clave(k): v for k, v in row.items()} for row in reader]
        except UnicodeDecodeError as exc:
            raise ImportacionError("El CSV debe estar en UTF-8.") from exc
        except csv.Error as exc:
            raise ImportacionError(f"CSV ilegible: {exc}") from exc

    if suffix in {"xlsx", "xlsm"}:
        try:
            wb = load_workbook(io.BytesIO(contenido), data_only=True, read_only=True)
            ws = wb.active
            rows = list(ws.values)
            wb.close()
        except (InvalidFileException, BadZipFile, KeyError, OSError) as exc:
            raise ImportacionError("El archivo XLSX está dañado o no es un libro de Excel.") from exc
        if not rows:
            return []
        headers = [_clave(h) for h in rows[0]]
        out: list[dict[str, Any]] = []
        for r in rows[1:]:
            row = {}
            for i, h in enumerate(headers):
                if not h:
                    continue
                row[h] = r[i] if i < len(r) else None
            out.append(row)
        return out

    raise ImportacionError("Formato no soportado. Usa CSV o XLSX.")


def _texto(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return " ".join(str(value).split())


def fila_a_cliente(row: dict[str, Any]) -> dict[str, str] | None:
    """Mapea una fila a campos de Cliente; None si falta nombre o teléfono."""
    data: dict[str, str] = {}
    for key, value in row.items():
        campo = COLUMNAS.get(_clave(key))
        if campo and campo not in data:
            data[campo] = _texto(value)
    if not data.get("nombre_completo") or not data.get("telefono"):
        return None
    data["email"] = data.get("email", "").lower()
    data["prioridad"] = normalizar_prioridad(data.get("prioridad")) or Cliente.PRIORIDAD_DEFAULT
    data["etapa"] = ETAPAS_VALIDAS.get(normalizar_nombre(data.get("etapa", "")), Cliente.ETAPA_NUEVO)
    return data


@transaction.atomic
def importar_clientes(rows: Iterable[dict[str, Any]], vendedor=None) -> dict[str, int]:
    insertados = omitidos = 0
    for row in rows:
        data = fila_a_cliente(row) if isinstance(row, dict) else None
        if data is None:
            omitidos += 1
            continue
        Cliente.objects.create(vendedor_asignado=vendedor, **data)
        insertados += 1
    logger.info("Importación de clientes: %s insertados, %s omitidos", insertados, omitidos)
    return {"insertados": insertados, "omitidos": omitidos}
