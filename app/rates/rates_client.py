# ============================================================
# rates_client.py - Cliente de la base externa de tasas de cambio
#
# Documento 'rates':
#   {code: "USD", rate: 36.5, curr_date: "2024-05-01", curr_time: "13:00",
#    rate_datetime: <captura>, created_at: <inserción>}
# Una tasa se expresa en Bs por 1 unidad de `code`.
# ============================================================

from typing import Dict, List, Optional
import logging

from app.database.mongo import collection_rates
from app.reports.utils_reports import a_numero

logger = logging.getLogger(__name__)

ORDEN_RECIENTE = [("rate_datetime", -1)]


def _cliente_disponible() -> bool:
    if collection_rates is None:
        logger.debug("[Rates Client] Cliente de tasas no inicializado")
        return False
    return True


def limpiar_tasa(doc: Dict) -> Dict:
    """Quita el ObjectId para poder serializar el documento."""
    limpio = {k: v for k, v in doc.items() if k != "_id"}
    if "_id" in doc:
        limpio["id"] = str(doc["_id"])
    return limpio


async def obtener_tasa_historica(code: str, fecha: str) -> Optional[Dict]:
    """
    Tasa de `code` para el día `fecha` (YYYY-MM-DD). Si hay varias
    capturas ese día gana la más reciente. None si no existe o falla.
    """
    if not _cliente_disponible():
        return None
    try:
        docs = await (
            collection_rates.find({"code": code.upper(), "curr_date": fecha})
            .sort(ORDEN_RECIENTE)
            .limit(1)
            .to_list(1)
        )
    except Exception as e:
        logger.warning(f"[Rates Client] Error obteniendo tasa {code} {fecha}: {e}")
        return None
    return docs[0] if docs else None


async def obtener_tasa_reciente(code: str = "USD") -> Optional[Dict]:
    """Última tasa capturada para `code`, sin importar el día."""
    if not _cliente_disponible():
        return None
    try:
        docs = await (
            collection_rates.find({"code": code.upper()})
            .sort(ORDEN_RECIENTE)
            .limit(1)
            .to_list(1)
        )
    except Exception as e:
        logger.error(f"[Rates Client] Excepción obteniendo tasa: {e}")
        return None
    return docs[0] if docs else None


async def obtener_todas_las_tasas() -> List[Dict]:
    if not _cliente_disponible():
        return []
    try:
        return await collection_rates.find({}).sort(ORDEN_RECIENTE).to_list(None)
    except Exception as e:
        logger.error(f"[Rates Client] Error obteniendo tasas: {e}")
        return []


async def _tasa_usd_actual() -> Optional[float]:
    ultima = await obtener_tasa_reciente("USD")
    if not ultima:
        logger.warning("[Rates Client] No se pudo obtener tasa, usando 0")
        return None
    return a_numero(ultima.get("rate"))


async def convertir_usd_a_bs(monto_usd: float, tasa: Optional[float] = None) -> float:
    if not tasa:
        tasa = await _tasa_usd_actual()
        if not tasa:
            return 0.0
    return monto_usd * tasa


async def convertir_bs_a_usd(monto_bs: float, tasa: Optional[float] = None) -> float:
    if not tasa:
        tasa = await _tasa_usd_actual()
        if not tasa:
            return 0.0
    return monto_bs / tasa
