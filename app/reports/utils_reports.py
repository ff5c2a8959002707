# ============================================================
# utils_reports.py - Utilidades de fechas, números y notas
# ============================================================

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, List, Optional, Sequence, Tuple
import logging
import math
import re

import pytz
from bson.decimal128 import Decimal128

logger = logging.getLogger(__name__)

# ============================================================
# CAMPOS CANDIDATOS DE FECHA (en orden de prioridad)
# ============================================================

CAMPOS_FECHA_FACTURA = ("fecha_pago", "fecha_emision", "created_at")
CAMPOS_FECHA_CITA = ("scheduled_at", "created_at")
CAMPOS_FECHA_CONSULTA = ("started_at", "created_at")
CAMPOS_FECHA_RESULTADO = ("reported_at", "created_at")

PATRON_FECHA = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")

# Marcadores que el flujo de pago escribe en `notas`:
#   "[REFERENCIA] 00123456"  /  "[CAPTURA] https://..."
PATRON_REFERENCIA = re.compile(r"\[REFERENCIA\]\s*(\S+)")
PATRON_CAPTURA = re.compile(r"\[CAPTURA\]\s*(\S+)")

MESES_ES = [
    "enero", "febrero", "marzo", "abril", "mayo", "junio",
    "julio", "agosto", "septiembre", "octubre", "noviembre", "diciembre",
]

# ============================================================
# RANGO DE FECHAS
# ============================================================

def _a_utc(instante: datetime) -> datetime:
    if instante.tzinfo is None:
        return pytz.UTC.localize(instante)
    return instante.astimezone(pytz.UTC)


def parsear_fecha_calendario(valor: str, nombre_campo: str) -> date:
    """
    Parsea 'YYYY-MM-DD' por componentes, sin pasar por un parser genérico,
    para que la zona horaria local no corra el día.
    """
    match = PATRON_FECHA.match(valor.strip())
    if not match:
        raise ValueError(f"'{nombre_campo}' debe tener formato YYYY-MM-DD")
    anio, mes, dia = (int(parte) for parte in match.groups())
    try:
        return date(anio, mes, dia)
    except ValueError as exc:
        raise ValueError(f"'{nombre_campo}' no es una fecha válida: {valor}") from exc


def normalizar_rango_fechas(
    start_date: Optional[str],
    end_date: Optional[str],
    ahora: Optional[datetime] = None,
) -> Tuple[datetime, datetime]:
    """
    Convierte startDate/endDate en un rango UTC inclusivo.

    - start: YYYY-MM-DD a las 00:00:00.000 UTC; por defecto el día 1 del mes actual.
    - end: YYYY-MM-DD a las 23:59:59.999 UTC; por defecto `ahora`.

    No se exige start <= end: un rango invertido simplemente no incluye nada.
    """
    ahora = _a_utc(ahora) if ahora else datetime.now(pytz.UTC)

    if start_date:
        d = parsear_fecha_calendario(start_date, "startDate")
        inicio = datetime(d.year, d.month, d.day, tzinfo=pytz.UTC)
    else:
        inicio = datetime(ahora.year, ahora.month, 1, tzinfo=pytz.UTC)

    if end_date:
        d = parsear_fecha_calendario(end_date, "endDate")
        fin = datetime(d.year, d.month, d.day, 23, 59, 59, 999000, tzinfo=pytz.UTC)
    else:
        fin = ahora

    return inicio, fin

# ============================================================
# FECHA EFECTIVA Y FILTRO LOCAL
# ============================================================

def a_dia_utc(valor: Any) -> Optional[date]:
    """Trunca un instante (datetime, date o string ISO) a su día calendario UTC."""
    if valor is None:
        return None
    if isinstance(valor, datetime):
        return _a_utc(valor).date()
    if isinstance(valor, date):
        return valor
    if isinstance(valor, str):
        texto = valor.strip()
        if not texto:
            return None
        try:
            return _a_utc(datetime.fromisoformat(texto.replace("Z", "+00:00"))).date()
        except ValueError:
            pass
        # "2024-05-01 10:00:00+00" y variantes: nos quedamos con el día
        match = PATRON_FECHA.match(texto[:10])
        if match:
            try:
                return date(*(int(parte) for parte in match.groups()))
            except ValueError:
                return None
    return None


def a_instante_utc(valor: Any) -> Optional[datetime]:
    """Como a_dia_utc pero conservando la hora; fechas sin hora quedan a las 00:00 UTC."""
    if isinstance(valor, datetime):
        return _a_utc(valor)
    if isinstance(valor, str) and valor.strip():
        try:
            return _a_utc(datetime.fromisoformat(valor.strip().replace("Z", "+00:00")))
        except ValueError:
            pass
    dia = a_dia_utc(valor)
    if dia is None:
        return None
    return datetime(dia.year, dia.month, dia.day, tzinfo=pytz.UTC)


def _leer_campo(registro: Any, campo: str) -> Any:
    if isinstance(registro, dict):
        return registro.get(campo)
    return getattr(registro, campo, None)


def fecha_efectiva(registro: Any, campos: Sequence[str]) -> Optional[date]:
    """
    Toma el primer campo no nulo de `campos` y lo trunca a día UTC.
    Si ninguno existe (o el primero no se puede interpretar) devuelve None.
    """
    for campo in campos:
        valor = _leer_campo(registro, campo)
        if valor is None or valor == "":
            continue
        dia = a_dia_utc(valor)
        if dia is None:
            logger.debug(f"Fecha no interpretable en '{campo}': {valor!r}")
        return dia
    return None


def en_rango(dia: Optional[date], inicio: datetime, fin: datetime) -> bool:
    if dia is None:
        return False
    return a_dia_utc(inicio) <= dia <= a_dia_utc(fin)


def filtrar_por_rango(
    registros: Iterable[Any],
    campos: Sequence[str],
    inicio: datetime,
    fin: datetime,
) -> List[Any]:
    """Filtro local con granularidad de día sobre la fecha efectiva de cada registro."""
    return [r for r in registros if en_rango(fecha_efectiva(r, campos), inicio, fin)]

# ============================================================
# COERCIÓN NUMÉRICA
# ============================================================

def a_numero(valor: Any) -> Optional[float]:
    """Convierte a float; None si no es numérico, NaN o infinito."""
    if valor is None or isinstance(valor, bool):
        return None
    if isinstance(valor, Decimal128):
        valor = valor.to_decimal()
    if isinstance(valor, (int, float, Decimal)):
        numero = float(valor)
    elif isinstance(valor, str):
        try:
            numero = float(valor.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(numero) or math.isinf(numero):
        return None
    return numero

# ============================================================
# EXTRACCIÓN DE NOTAS Y FORMATEADORES
# ============================================================

def extraer_referencia(notas: Optional[str]) -> Optional[str]:
    """Devuelve el token que sigue a '[REFERENCIA]' en las notas, o None."""
    if not notas:
        return None
    match = PATRON_REFERENCIA.search(notas)
    return match.group(1) if match else None


def extraer_captura(notas: Optional[str]) -> Optional[str]:
    if not notas:
        return None
    match = PATRON_CAPTURA.search(notas)
    return match.group(1) if match else None


def etiqueta_mes(dia: date) -> str:
    """Ej: date(2024, 5, 3) -> 'mayo de 2024'"""
    return f"{MESES_ES[dia.month - 1]} de {dia.year}"
