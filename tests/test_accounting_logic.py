import asyncio
from datetime import datetime

import pytest

from app.reports.accounting_logic import calcular_ingresos
from app.reports.models_reports import Factura
from app.reports.rate_resolver import cargar_tasas_historicas


def _factura(**datos):
    base = {"total": 100, "currency": "USD", "tipo_cambio": 36, "fecha_pago": "2024-05-01", "estado_pago": "pagada"}
    base.update(datos)
    return Factura.model_validate(base)


def _ingresos(facturas):
    tasas = asyncio.run(cargar_tasas_historicas(facturas))
    return calcular_ingresos(facturas, tasas)


def test_factura_con_tasa_congelada(sin_tasas):
    resultado = _ingresos([_factura()])

    assert resultado["totalIncomeUSD"] == 100
    assert resultado["totalIncome"] == 100
    assert resultado["totalIncomeBS"] == 3600
    [entrada] = resultado["incomeBreakdown"]
    assert (entrada.date, entrada.currency, entrada.usd, entrada.bs, entrada.count) == ("2024-05-01", "USD", 100, 3600, 1)
    assert entrada.tasa == 36


def test_tasa_historica_reemplaza_a_la_congelada(con_tasas):
    con_tasas([{"code": "USD", "curr_date": "2024-05-01", "rate": 40, "rate_datetime": datetime(2024, 5, 1, 12)}])

    resultado = _ingresos([_factura()])

    assert resultado["totalIncomeBS"] == 4000
    assert resultado["incomeBreakdown"][0].tasa == 40


def test_tasa_se_aplica_por_factura_antes_de_sumar(sin_tasas):
    facturas = [
        _factura(total=100, tipo_cambio=36, fecha_pago="2024-05-01"),
        _factura(total=50, tipo_cambio=40, fecha_pago="2024-05-02"),
        _factura(total=1000, currency="BS", tipo_cambio=36, fecha_pago="2024-05-02"),
        _factura(total="20", tipo_cambio=None, fecha_pago="2024-05-03"),
    ]

    resultado = _ingresos(facturas)

    assert resultado["totalIncomeUSD"] == 1170
    assert resultado["totalIncomeBS"] == 100 * 36 + 50 * 40 + 1000 * 1 + 20 * 1
    assert sum(e.count for e in resultado["incomeBreakdown"]) == len(facturas)
    assert sum(e.bs for e in resultado["incomeBreakdown"]) == pytest.approx(resultado["totalIncomeBS"])


def test_desglose_ordenado_por_fecha_descendente(sin_tasas):
    facturas = [
        _factura(fecha_pago="2024-05-01"),
        _factura(fecha_pago="2024-05-03"),
        _factura(fecha_pago="2024-05-02", currency="EUR"),
        _factura(fecha_pago="2024-05-02"),
    ]

    claves = [(e.date, e.currency) for e in _ingresos(facturas)["incomeBreakdown"]]

    assert claves == [("2024-05-03", "USD"), ("2024-05-02", "EUR"), ("2024-05-02", "USD"), ("2024-05-01", "USD")]


def test_metodos_de_pago_sin_duplicados(sin_tasas):
    facturas = [
        _factura(metodo_pago="PAGO_MOVIL", notas="[REFERENCIA] 0001"),
        _factura(metodo_pago="PAGO_MOVIL", notas="Consulta\n[REFERENCIA] 0001"),
        _factura(metodo_pago="PAGO_MOVIL", notas="[REFERENCIA] 0002"),
        _factura(metodo_pago="EFECTIVO", notas=None),
        _factura(metodo_pago=None, notas=None),
    ]

    [entrada] = _ingresos(facturas)["incomeBreakdown"]
    metodos = [(m.metodo, m.referencia, m.count) for m in entrada.metodos]

    assert entrada.count == 5
    assert metodos == [("PAGO_MOVIL", "0001", 2), ("PAGO_MOVIL", "0002", 1), ("EFECTIVO", None, 1)]


def test_total_no_numerico_se_omite(sin_tasas):
    facturas = [_factura(total="no-es-numero"), _factura(total=float("nan")), _factura(total=10)]

    resultado = _ingresos(facturas)

    assert resultado["totalIncomeUSD"] == 10
    assert resultado["totalIncomeBS"] == 360
    assert resultado["incomeBreakdown"][0].count == 1


def test_total_ausente_cuenta_como_cero(sin_tasas):
    resultado = _ingresos([_factura(total=None)])

    assert resultado["totalIncomeUSD"] == 0
    assert resultado["incomeBreakdown"][0].count == 1


def test_moneda_ausente_es_usd(sin_tasas):
    resultado = _ingresos([_factura(currency=None)])

    assert resultado["incomeBreakdown"][0].currency == "USD"


def test_sin_facturas():
    assert calcular_ingresos([], {}) == {
        "totalIncome": 0.0,
        "totalIncomeUSD": 0.0,
        "totalIncomeBS": 0.0,
        "incomeBreakdown": [],
    }


def test_tasa_del_desglose_es_ponderada(sin_tasas):
    facturas = [
        _factura(total=100, tipo_cambio=36),
        _factura(total=100, tipo_cambio=40),
    ]

    [entrada] = _ingresos(facturas)["incomeBreakdown"]

    assert (entrada.usd, entrada.bs, entrada.count) == (200, 7600, 2)
    assert entrada.tasa == 38


def test_campos_numericos_se_guardan_como_texto():
    factura = _factura(numero_factura=1001, metodo_pago=3, appointment_id=77)

    assert (factura.numero_factura, factura.metodo_pago, factura.appointment_id) == ("1001", "3", "77")
