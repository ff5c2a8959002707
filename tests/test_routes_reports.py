from datetime import datetime
from io import BytesIO

import pytest
import pytz
from fastapi.testclient import TestClient
from openpyxl import load_workbook

from app.auth.routes import get_current_user
from app.core.config import app
from app.reports import data_sources, routes_reports

MEDICO = {"email": "medico@clinica.com", "rol": "MEDICO", "nombre": "Dra. Pérez", "user_id": "doc-1"}
AHORA = datetime(2024, 5, 20, 12, 0, tzinfo=pytz.UTC)


@pytest.fixture
def almacen(monkeypatch, fake_collection):
    colecciones = {
        "collection_citas": fake_collection([
            {"_id": "a1", "doctor_id": "doc-1", "scheduled_at": "2024-05-02T14:00:00Z"},
            {"_id": "a2", "doctor_id": "doc-1", "scheduled_at": "2024-04-28T14:00:00Z"},
            {"_id": "a3", "doctor_id": "otro", "scheduled_at": "2024-05-02T14:00:00Z"},
        ]),
        "collection_consultas": fake_collection([
            {"_id": "c1", "doctor_id": "doc-1", "started_at": "2024-05-02T14:10:00Z", "diagnosis": "Migraña"},
            {"_id": "c2", "doctor_id": "doc-1", "started_at": None, "created_at": "2024-05-03", "diagnosis": "Migraña"},
            {"_id": "c3", "doctor_id": "doc-1", "started_at": "2024-05-04", "diagnosis": "Gastritis"},
        ]),
        "collection_facturacion": fake_collection([
            {"_id": "f1", "doctor_id": "doc-1", "total": 100, "currency": "USD", "tipo_cambio": 36,
             "fecha_pago": "2024-05-01", "estado_pago": "pagada", "metodo_pago": "PAGO_MOVIL",
             "notas": "[REFERENCIA] 778899"},
            {"_id": "f2", "doctor_id": "doc-1", "total": 80, "currency": "USD", "tipo_cambio": 36,
             "fecha_emision": "2024-05-05", "estado_pago": "pendiente"},
        ]),
        "collection_lab_results": fake_collection([
            {"_id": "l1", "ordering_provider_id": "doc-1", "created_at": datetime(2024, 5, 3, tzinfo=pytz.UTC),
             "is_critical": True, "reported_at": datetime(2024, 5, 4, tzinfo=pytz.UTC)},
            {"_id": "l2", "ordering_provider_id": "doc-1", "created_at": datetime(2024, 5, 6, tzinfo=pytz.UTC)},
            {"_id": "l3", "ordering_provider_id": "doc-1", "created_at": datetime(2024, 4, 28, tzinfo=pytz.UTC),
             "is_critical": True, "reported_at": datetime(2024, 5, 2, tzinfo=pytz.UTC)},
        ]),
    }
    for nombre, coleccion in colecciones.items():
        monkeypatch.setattr(data_sources, nombre, coleccion)
    return colecciones


@pytest.fixture
def client():
    app.dependency_overrides[get_current_user] = lambda: MEDICO
    app.dependency_overrides[routes_reports.obtener_ahora] = lambda: AHORA
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_reporte_con_tasa_congelada(client, almacen, sin_tasas):
    response = client.get("/api/medic/reportes", params={"startDate": "2024-05-01", "endDate": "2024-05-10"})

    assert response.status_code == 200
    data = response.json()
    assert data["totalIncomeUSD"] == 100
    assert data["totalIncomeBS"] == 3600
    assert data["incomeBreakdown"] == [{
        "date": "2024-05-01", "currency": "USD", "usd": 100, "bs": 3600, "count": 1, "tasa": 36,
        "metodos": [{"metodo": "PAGO_MOVIL", "referencia": "778899", "count": 1}],
    }]
    assert data["stats"] == {"totalAppointments": 1, "totalConsultations": 3, "totalInvoices": 2, "paidInvoices": 1}
    assert data["topDiagnoses"] == [{"diagnosis": "Migraña", "count": 2}, {"diagnosis": "Gastritis", "count": 1}]
    assert data["appointmentsByMonth"] == [{"month": "mayo de 2024", "count": 1}]
    assert data["totalOrders"] == 2
    # l3 se ordenó en abril pero se reportó en mayo
    assert data["totalCriticalResults"] == 2


def test_reporte_con_tasa_historica(client, almacen, con_tasas):
    con_tasas([{"code": "USD", "curr_date": "2024-05-01", "rate": 40, "rate_datetime": datetime(2024, 5, 1, 13)}])

    data = client.get("/api/medic/reportes", params={"startDate": "2024-05-01", "endDate": "2024-05-10"}).json()

    assert data["totalIncomeBS"] == 4000


def test_reporte_por_defecto_usa_mes_actual(client, almacen, sin_tasas):
    data = client.get("/api/medic/reportes").json()

    assert data["stats"]["totalAppointments"] == 1
    assert data["totalIncomeUSD"] == 100
    lab = next(f for f in almacen["collection_lab_results"].filtros if "created_at" in f)
    assert lab["ordering_provider_id"] == "doc-1"
    assert lab["created_at"] == {"$gte": datetime(2024, 5, 1, tzinfo=pytz.UTC), "$lte": AHORA}


def test_fuente_caida_no_aborta_el_reporte(client, almacen, sin_tasas, fake_collection, monkeypatch):
    monkeypatch.setattr(data_sources, "collection_consultas", fake_collection(error=RuntimeError("conexión perdida")))

    response = client.get("/api/medic/reportes", params={"startDate": "2024-05-01", "endDate": "2024-05-10"})

    assert response.status_code == 200
    data = response.json()
    assert data["stats"]["totalConsultations"] == 0
    assert data["topDiagnoses"] == []
    assert data["totalIncomeUSD"] == 100


def test_fecha_mal_formada_es_422(client, almacen, sin_tasas):
    response = client.get("/api/medic/reportes", params={"startDate": "01/05/2024"})

    assert response.status_code == 422
    assert "startDate" in response.json()["detail"]


def test_error_inesperado_es_500(client, monkeypatch):
    async def _explota(*args, **kwargs):
        raise RuntimeError("fallo inesperado")

    monkeypatch.setattr(routes_reports, "generar_reporte_medico", _explota)

    response = client.get("/api/medic/reportes")

    assert response.status_code == 500
    assert response.json() == {"error": "fallo inesperado"}


def test_sin_token_es_401():
    response = TestClient(app).get("/api/medic/reportes")

    assert response.status_code == 401


def test_rol_distinto_de_medico_es_403(client):
    app.dependency_overrides[get_current_user] = lambda: {**MEDICO, "rol": "PACIENTE"}

    response = client.get("/api/medic/reportes")

    assert response.status_code == 403


def test_reporte_excel(client, almacen, sin_tasas):
    response = client.get("/api/medic/reportes/excel", params={"startDate": "2024-05-01", "endDate": "2024-05-10"})

    assert response.status_code == 200
    assert "Reporte_Medico_2024-05-01_2024-05-10.xlsx" in response.headers["content-disposition"]
    wb = load_workbook(BytesIO(response.content))
    assert wb.sheetnames == ["Resumen", "Desglose de Ingresos", "Diagnosticos"]
    desglose = wb["Desglose de Ingresos"]
    assert [c.value for c in desglose[2]] == ["2024-05-01", "USD", 1, 100, 36, 3600, "PAGO_MOVIL", "778899", 1]
    assert wb["Diagnosticos"]["A2"].value == "Migraña"


def test_campos_numericos_en_texto_no_descartan_registros(client, almacen, sin_tasas, fake_collection, monkeypatch):
    monkeypatch.setattr(data_sources, "collection_facturacion", fake_collection([
        {"_id": "f1", "doctor_id": "doc-1", "total": 100, "currency": "USD", "tipo_cambio": 36,
         "fecha_pago": "2024-05-01", "estado_pago": "pagada", "numero_factura": 1001, "metodo_pago": 3},
    ]))
    monkeypatch.setattr(data_sources, "collection_consultas", fake_collection([
        {"_id": "c1", "doctor_id": "doc-1", "started_at": "2024-05-02", "diagnosis": 404},
    ]))

    response = client.get("/api/medic/reportes", params={"startDate": "2024-05-01", "endDate": "2024-05-10"})

    assert response.status_code == 200
    data = response.json()
    assert data["totalIncomeUSD"] == 100
    assert data["stats"]["paidInvoices"] == 1
    assert data["incomeBreakdown"][0]["metodos"] == [{"metodo": "3", "referencia": None, "count": 1}]
    assert data["topDiagnoses"] == [{"diagnosis": "404", "count": 1}]


def test_resultado_critico_de_orden_previa_al_rango(client, almacen, sin_tasas):
    data = client.get("/api/medic/reportes", params={"startDate": "2024-05-01", "endDate": "2024-05-04"}).json()

    # l1 y l3 se reportaron dentro del rango; l3 se ordenó antes
    assert data["totalOrders"] == 1
    assert data["totalCriticalResults"] == 2
    criticos = next(f for f in almacen["collection_lab_results"].filtros if "reported_at" in f)
    assert criticos["is_critical"] is True
    assert criticos["reported_at"]["$gte"] == datetime(2024, 5, 1, tzinfo=pytz.UTC)
