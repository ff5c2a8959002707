# ============================================================
# routes_reports.py - Reporte de ingresos y actividad del médico
# Ubicación: app/reports/routes_reports.py
# ============================================================

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse, StreamingResponse
from typing import Optional, Tuple
from datetime import datetime
import logging

import pytz

from app.auth.routes import requiere_rol
from .excel_generator import generar_nombre_archivo_excel, generar_reporte_excel_medico
from .models_reports import ReporteMedicoResponse
from .report_builder import generar_reporte_medico
from .utils_reports import normalizar_rango_fechas

router = APIRouter(prefix="/api/medic", tags=["Reportes"])
logger = logging.getLogger(__name__)

solo_medico = requiere_rol("MEDICO")


def obtener_ahora() -> datetime:
    """Instante actual en UTC; se inyecta para poder fijarlo en pruebas."""
    return datetime.now(pytz.UTC)


def _rango(start_date: Optional[str], end_date: Optional[str], ahora: datetime) -> Tuple[datetime, datetime]:
    try:
        return normalizar_rango_fechas(start_date, end_date, ahora)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc)
        ) from exc


def _error_inesperado(e: Exception) -> JSONResponse:
    mensaje = str(e) or "Error desconocido"
    logger.exception(f"[Medic Reportes API] Error inesperado: {mensaje}")
    return JSONResponse(status_code=500, content={"error": mensaje})

# ============================================================
# 1. REPORTE JSON
# ============================================================

@router.get("/reportes", response_model=ReporteMedicoResponse)
async def obtener_reporte_medico(
    start_date: Optional[str] = Query(None, alias="startDate", description="Fecha inicio (YYYY-MM-DD), default: día 1 del mes"),
    end_date: Optional[str] = Query(None, alias="endDate", description="Fecha fin (YYYY-MM-DD), default: hoy"),
    current_user: dict = Depends(solo_medico),
    ahora: datetime = Depends(obtener_ahora)
):
    """
    Ingresos del médico en USD y Bs con desglose por (fecha, moneda),
    diagnósticos más frecuentes y conteos de citas, consultas y órdenes.

    Si una fuente de datos falla el reporte sale igual, con esa parte vacía.
    """
    inicio, fin = _rango(start_date, end_date, ahora)
    try:
        return await generar_reporte_medico(current_user["user_id"], inicio, fin)
    except Exception as e:
        return _error_inesperado(e)

# ============================================================
# 2. REPORTE EXCEL
# ============================================================

@router.get("/reportes/excel")
async def descargar_reporte_medico_excel(
    start_date: Optional[str] = Query(None, alias="startDate", description="Fecha inicio (YYYY-MM-DD)"),
    end_date: Optional[str] = Query(None, alias="endDate", description="Fecha fin (YYYY-MM-DD)"),
    current_user: dict = Depends(solo_medico),
    ahora: datetime = Depends(obtener_ahora)
):
    """Mismo reporte, descargable en Excel (Resumen, Desglose de Ingresos, Diagnosticos)."""
    inicio, fin = _rango(start_date, end_date, ahora)
    try:
        reporte = await generar_reporte_medico(current_user["user_id"], inicio, fin)
        fecha_inicio = inicio.date().isoformat()
        fecha_fin = fin.date().isoformat()
        excel_file = generar_reporte_excel_medico(reporte, fecha_inicio, fecha_fin)
    except Exception as e:
        return _error_inesperado(e)

    nombre_archivo = generar_nombre_archivo_excel(fecha_inicio, fecha_fin)
    return StreamingResponse(
        excel_file,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename={nombre_archivo}"}
    )
