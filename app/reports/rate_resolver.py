# ============================================================
# rate_resolver.py - Resolución de la tasa efectiva por factura
#
# PRECEDENCIA:
#   1. Tasa histórica (moneda, fecha efectiva) de la base de tasas
#   2. tipo_cambio congelado en la factura
#   3. 1
# BS / VES ya están en moneda local: tasa = 1, sin consulta.
# ============================================================

from typing import Dict, Iterable, Optional, Tuple
import asyncio
import logging

from app.rates import rates_client
from .models_reports import Factura
from .utils_reports import CAMPOS_FECHA_FACTURA, a_numero, fecha_efectiva

logger = logging.getLogger(__name__)

TablaTasas = Dict[Tuple[str, str], float]


async def _tasa_para(fecha: str, moneda: str) -> Optional[float]:
    try:
        doc = await rates_client.obtener_tasa_historica(moneda, fecha)
    except Exception as e:
        logger.warning(f"Consulta de tasa fallida ({moneda}, {fecha}): {e}")
        return None
    if not doc:
        return None
    tasa = a_numero(doc.get("rate"))
    if tasa is None:
        logger.warning(f"Tasa no numérica para ({moneda}, {fecha}): {doc.get('rate')!r}")
    return tasa


async def cargar_tasas_historicas(facturas_pagadas: Iterable[Factura]) -> TablaTasas:
    """
    Lanza una consulta por cada par (fecha, moneda) del producto cruzado
    de fechas efectivas y monedas no locales, todas en paralelo.
    Los pares sin tasa no aparecen en la tabla.
    """
    fechas = set()
    monedas = set()
    for factura in facturas_pagadas:
        dia = fecha_efectiva(factura, CAMPOS_FECHA_FACTURA)
        if dia is None:
            continue
        fechas.add(dia.isoformat())
        if not factura.moneda_local:
            monedas.add(factura.currency)

    pares = [(fecha, moneda) for fecha in sorted(fechas) for moneda in sorted(monedas)]
    if not pares:
        return {}

    resultados = await asyncio.gather(*(_tasa_para(fecha, moneda) for fecha, moneda in pares))
    tabla = {par: tasa for par, tasa in zip(pares, resultados) if tasa is not None}
    logger.info(f"Tasas históricas: {len(tabla)}/{len(pares)} pares encontrados")
    return tabla


def tasa_efectiva(factura: Factura, fecha: str, tabla: TablaTasas) -> float:
    if factura.moneda_local:
        return 1.0

    historica = tabla.get((fecha, factura.currency))
    if historica is not None:
        return historica

    congelada = a_numero(factura.tipo_cambio)
    if congelada is not None:
        return congelada

    return 1.0
