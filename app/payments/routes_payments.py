# ============================================================
# routes_payments.py - Pagos efectuados con referencia o captura
# ============================================================

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from datetime import datetime
from typing import Dict, List, Type, TypeVar
import asyncio
import logging

import pytz
from pydantic import BaseModel, ValidationError

from app.auth.routes import requiere_rol
from app.database.mongo import collection_consultas, collection_facturacion
from app.reports.models_reports import Consulta, Factura
from app.reports.utils_reports import a_instante_utc, extraer_captura, extraer_referencia

router = APIRouter(prefix="/api/medic/pagos", tags=["Pagos"])
logger = logging.getLogger(__name__)

ESTADOS_CON_PAGO = ["pagada", "pendiente_verificacion"]
MARCADORES = ("[REFERENCIA]", "[CAPTURA]")

_MUY_ANTIGUO = datetime(1970, 1, 1, tzinfo=pytz.UTC)

M = TypeVar("M", bound=BaseModel)


def proyectar(docs: List[Dict], modelo: Type[M]) -> List[M]:
    """Proyecta cada documento; uno que no valida se registra y se omite."""
    registros = []
    for doc in docs:
        try:
            registros.append(modelo.model_validate(doc))
        except ValidationError as e:
            logger.warning(f"[Medic Pagos Efectuados] Documento descartado ({doc.get('_id')}): {e}")
    return registros


def tiene_comprobante(factura: Factura) -> bool:
    return bool(factura.notas) and any(m in factura.notas for m in MARCADORES)


def ordenar_pagos(facturas: List[Factura]) -> List[Factura]:
    """fecha_pago desc (sin fecha al final), luego fecha_emision desc."""

    def clave(f: Factura):
        pago = a_instante_utc(f.fecha_pago)
        emision = a_instante_utc(f.fecha_emision) or _MUY_ANTIGUO
        return (pago is not None, pago or _MUY_ANTIGUO, emision)

    return sorted(facturas, key=clave, reverse=True)


async def _consultas_de_cita(appointment_id: str, doctor_id: str) -> List[Dict]:
    try:
        docs = await (
            collection_consultas.find({"appointment_id": appointment_id, "doctor_id": doctor_id})
            .sort([("created_at", -1)])
            .to_list(None)
        )
    except Exception as e:
        logger.warning(f"[Medic Pagos Efectuados] Consultas de la cita {appointment_id} no disponibles: {e}")
        return []
    return [c.model_dump() for c in proyectar(docs, Consulta)]


async def _con_consultas(factura: Factura, doctor_id: str) -> Dict:
    item = factura.model_dump()
    item["referencia"] = extraer_referencia(factura.notas)
    item["captura"] = extraer_captura(factura.notas)
    item["consultations"] = (
        await _consultas_de_cita(factura.appointment_id, doctor_id) if factura.appointment_id else []
    )
    return item


@router.get("/efectuados")
async def pagos_efectuados(current_user: dict = Depends(requiere_rol("MEDICO"))):
    """
    Facturas pagadas o pendientes de verificación del médico que traen
    número de referencia o captura del pago en las notas.
    """
    doctor_id = current_user["user_id"]
    try:
        docs = await collection_facturacion.find({
            "doctor_id": doctor_id,
            "estado_pago": {"$in": ESTADOS_CON_PAGO}
        }).to_list(None)
    except Exception as e:
        logger.error(f"[Medic Pagos Efectuados API] Error: {e}")
        return JSONResponse(status_code=500, content={"error": "Error al obtener pagos efectuados"})

    facturas = proyectar(docs, Factura)
    con_comprobante = ordenar_pagos([f for f in facturas if tiene_comprobante(f)])

    data = await asyncio.gather(*(_con_consultas(f, doctor_id) for f in con_comprobante))
    return {"data": list(data)}
