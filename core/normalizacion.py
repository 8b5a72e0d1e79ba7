from typing import Any

from unidecode import unidecode

_PRIORIDADES_CANONICAS = {"alta": "Alta", "media": "Media", "baja": "Baja"}


def normalizar_nombre(texto: str) -> str:
    if not texto:
        return ""
    texto = unidecode(str(texto))
    texto = texto.lower().strip()
    texto = " ".join(texto.split())
    return texto


def normalizar_prioridad(valor: str | None) -> str:
    """alta/MEDIA/ Baja -> Alta/Media/Baja; cualquier otra prioridad se devuelve recortada."""
    texto = " ".join(str(valor or "").split())
    return _PRIORIDADES_CANONICAS.get(normalizar_nombre(texto), texto)


def vacios_a_none(data: Any) -> Any:
    if isinstance(data, dict):
        return {key: vacios_a_none(value) for key, value in data.items()}
    if isinstance(data, list):
        return [vacios_a_none(value) for value in data]
    if isinstance(data, str) and not data.strip():
        return None
    return data
