# ============================================================
# accounting_logic.py - Ingresos del médico en USD y Bs
#
# REGLAS:
#   - Solo estado_pago ∈ {pagada, pagado} suma ingresos
#   - totalIncomeUSD suma el `total` tal cual, sea cual sea la moneda
#     (campo heredado, valor nominal; NO convertir)
#   - totalIncomeBS suma total * tasa efectiva, factura por factura
#   - Desglose por (fecha efectiva, moneda) con métodos de pago
# ============================================================

from typing import Dict, List, Optional, Tuple
import logging

from .models_reports import DesgloseIngreso, Factura, MetodoPagoConteo
from .rate_resolver import TablaTasas, tasa_efectiva
from .utils_reports import CAMPOS_FECHA_FACTURA, a_numero, extraer_referencia, fecha_efectiva

logger = logging.getLogger(__name__)


def _monto_factura(factura: Factura) -> Optional[float]:
    """Un total ausente cuenta como 0; uno no numérico se descarta (None)."""
    if factura.total is None or factura.total == "":
        return 0.0
    return a_numero(factura.total)


class _Acumulador:
    """Entrada de desglose en construcción para un (fecha, moneda)."""

    def __init__(self, fecha: str, moneda: str, tasa: float):
        self.fecha = fecha
        self.moneda = moneda
        self.tasa_inicial = tasa
        self.usd = 0.0
        self.bs = 0.0
        self.count = 0
        self.metodos: Dict[Tuple[Optional[str], Optional[str]], int] = {}

    def agregar(self, monto: float, tasa: float, metodo: Optional[str], referencia: Optional[str]):
        self.usd += monto
        self.bs += monto * tasa
        self.count += 1
        if metodo or referencia:
            clave = (metodo, referencia)
            self.metodos[clave] = self.metodos.get(clave, 0) + 1

    def a_modelo(self) -> DesgloseIngreso:
        # Con tasas congeladas distintas dentro del mismo día se informa la ponderada
        tasa = self.bs / self.usd if self.usd else self.tasa_inicial
        return DesgloseIngreso(
            date=self.fecha,
            currency=self.moneda,
            usd=self.usd,
            bs=self.bs,
            count=self.count,
            tasa=tasa,
            metodos=[
                MetodoPagoConteo(metodo=metodo, referencia=referencia, count=count)
                for (metodo, referencia), count in self.metodos.items()
            ],
        )


def calcular_ingresos(facturas_pagadas: List[Factura], tasas: TablaTasas) -> Dict:
    """
    Agrega facturas ya filtradas (en rango y pagadas).

    Returns:
        {
            "totalIncome": 4100.0,
            "totalIncomeUSD": 4100.0,
            "totalIncomeBS": 149600.0,
            "incomeBreakdown": [DesgloseIngreso, ...]   # fecha desc
        }
    """
    total_usd = 0.0
    total_bs = 0.0
    desglose: Dict[str, _Acumulador] = {}

    for factura in facturas_pagadas:
        monto = _monto_factura(factura)
        if monto is None:
            logger.warning(f"Factura {factura.id} con total no numérico ({factura.total!r}), se omite")
            continue

        dia = fecha_efectiva(factura, CAMPOS_FECHA_FACTURA)
        if dia is None:
            continue
        fecha = dia.isoformat()
        tasa = tasa_efectiva(factura, fecha, tasas)

        total_usd += monto
        total_bs += monto * tasa

        clave = f"{fecha}_{factura.currency}"
        if clave not in desglose:
            desglose[clave] = _Acumulador(fecha, factura.currency, tasa)
        desglose[clave].agregar(monto, tasa, factura.metodo_pago, extraer_referencia(factura.notas))

    entradas = sorted(desglose.values(), key=lambda a: a.moneda)
    entradas.sort(key=lambda a: a.fecha, reverse=True)

    return {
        "totalIncome": total_usd,
        "totalIncomeUSD": total_usd,
        "totalIncomeBS": total_bs,
        "incomeBreakdown": [a.a_modelo() for a in entradas],
    }
