# ============================================================
# data_sources.py - Lectura de registros del médico
#
# Citas, consultas y facturas se traen SIN filtro de fecha:
# sus columnas de fecha vienen pobladas de forma inconsistente y
# el filtro se aplica localmente (utils_reports.filtrar_por_rango).
# Las órdenes de laboratorio y los resultados críticos sí se
# filtran en el servidor.
# ============================================================

from datetime import datetime
from typing import Dict, List, Type, TypeVar
import logging

from pydantic import BaseModel, ValidationError

from app.database.mongo import (
    collection_citas,
    collection_consultas,
    collection_facturacion,
    collection_lab_results,
)
from .models_reports import Cita, Consulta, Factura, OrdenLaboratorio

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


async def _listar(collection, filtro: Dict, modelo: Type[M], nombre: str) -> List[M]:
    """
    Ejecuta la consulta y proyecta cada documento al modelo.
    Un error de lectura se registra y se trata como conjunto vacío.
    """
    try:
        docs = await collection.find(filtro).to_list(None)
    except Exception as e:
        logger.error(f"Error obteniendo {nombre}: {e}")
        return []

    registros = []
    for doc in docs:
        try:
            registros.append(modelo.model_validate(doc))
        except ValidationError as e:
            logger.warning(f"Documento de {nombre} descartado ({doc.get('_id')}): {e}")
    return registros


async def obtener_citas(doctor_id: str) -> List[Cita]:
    return await _listar(collection_citas, {"doctor_id": doctor_id}, Cita, "citas")


async def obtener_consultas(doctor_id: str) -> List[Consulta]:
    return await _listar(collection_consultas, {"doctor_id": doctor_id}, Consulta, "consultas")


async def obtener_facturas(doctor_id: str) -> List[Factura]:
    return await _listar(collection_facturacion, {"doctor_id": doctor_id}, Factura, "facturas")


async def obtener_ordenes(doctor_id: str, inicio: datetime, fin: datetime) -> List[OrdenLaboratorio]:
    filtro = {
        "ordering_provider_id": doctor_id,
        "created_at": {"$gte": inicio, "$lte": fin},
    }
    return await _listar(collection_lab_results, filtro, OrdenLaboratorio, "órdenes de laboratorio")


async def obtener_resultados_criticos(doctor_id: str, inicio: datetime, fin: datetime) -> List[OrdenLaboratorio]:
    """Críticos por fecha de reporte: una orden previa al rango cuenta si se reportó dentro."""
    filtro = {
        "ordering_provider_id": doctor_id,
        "is_critical": True,
        "reported_at": {"$gte": inicio, "$lte": fin},
    }
    return await _listar(collection_lab_results, filtro, OrdenLaboratorio, "resultados críticos")


async def obtener_registros_medico(doctor_id: str, inicio: datetime, fin: datetime) -> Dict[str, List]:
    """Trae todas las fuentes del reporte, una después de otra."""
    return {
        "citas": await obtener_citas(doctor_id),
        "consultas": await obtener_consultas(doctor_id),
        "facturas": await obtener_facturas(doctor_id),
        "ordenes": await obtener_ordenes(doctor_id, inicio, fin),
        "criticos": await obtener_resultados_criticos(doctor_id, inicio, fin),
    }
