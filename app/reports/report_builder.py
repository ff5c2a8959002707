# ============================================================
# report_builder.py - Ensamblado del reporte del médico
#
# FLUJO:
#   rango -> lectura de registros -> filtro local por día
#         -> tasas históricas (en paralelo) -> ingresos + desglose
#         -> diagnósticos / conteos -> respuesta
# ============================================================

from datetime import datetime
import logging

from .accounting_logic import calcular_ingresos
from .data_sources import obtener_registros_medico
from .models_reports import EstadisticasReporte, ReporteMedicoResponse
from .rate_resolver import cargar_tasas_historicas
from .stats_logic import agrupar_por_mes, contar_resultados_criticos, top_diagnosticos
from .utils_reports import (
    CAMPOS_FECHA_CITA,
    CAMPOS_FECHA_CONSULTA,
    CAMPOS_FECHA_FACTURA,
    filtrar_por_rango,
)

logger = logging.getLogger(__name__)


async def generar_reporte_medico(doctor_id: str, inicio: datetime, fin: datetime) -> ReporteMedicoResponse:
    registros = await obtener_registros_medico(doctor_id, inicio, fin)

    citas = filtrar_por_rango(registros["citas"], CAMPOS_FECHA_CITA, inicio, fin)
    consultas = filtrar_por_rango(registros["consultas"], CAMPOS_FECHA_CONSULTA, inicio, fin)
    facturas = filtrar_por_rango(registros["facturas"], CAMPOS_FECHA_FACTURA, inicio, fin)
    ordenes = registros["ordenes"]

    pagadas = [f for f in facturas if f.esta_pagada]
    tasas = await cargar_tasas_historicas(pagadas)
    ingresos = calcular_ingresos(pagadas, tasas)

    logger.info(
        f"Reporte médico {doctor_id} [{inicio.date()} → {fin.date()}]: "
        f"{len(citas)} citas, {len(consultas)} consultas, {len(pagadas)}/{len(facturas)} facturas pagadas"
    )

    return ReporteMedicoResponse(
        appointmentsByMonth=agrupar_por_mes(citas, CAMPOS_FECHA_CITA),
        consultationsByMonth=agrupar_por_mes(consultas, CAMPOS_FECHA_CONSULTA),
        totalIncome=ingresos["totalIncome"],
        totalIncomeUSD=ingresos["totalIncomeUSD"],
        totalIncomeBS=ingresos["totalIncomeBS"],
        incomeBreakdown=ingresos["incomeBreakdown"],
        topDiagnoses=top_diagnosticos(consultas),
        totalOrders=len(ordenes),
        totalCriticalResults=contar_resultados_criticos(registros["criticos"], inicio, fin),
        stats=EstadisticasReporte(
            totalAppointments=len(citas),
            totalConsultations=len(consultas),
            totalInvoices=len(facturas),
            paidInvoices=len(pagadas),
        ),
    )
