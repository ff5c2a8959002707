# ============================================================
# models_reports.py - Proyecciones de registros y respuestas
# ============================================================

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Any, List, Optional

# ============================================================
# CONSTANTES
# ============================================================

ESTADOS_PAGADOS = {"pagada", "pagado"}
MONEDAS_LOCALES = {"BS", "VES"}
MONEDA_POR_DEFECTO = "USD"

# ============================================================
# REGISTROS DEL ALMACÉN
# Los documentos llegan sin tipado fiable: todo es opcional y
# los montos se coercionan al agregarlos, no aquí.
# ============================================================

def a_texto(v: Any) -> Optional[str]:
    """Campos de texto libre: cualquier valor no nulo se guarda como str."""
    return str(v) if v is not None else None


class RegistroBase(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    created_at: Any = None

    @model_validator(mode="before")
    @classmethod
    def usar_object_id(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("id") is None and data.get("_id") is not None:
            data = {**data, "id": data["_id"]}
        return data

    @field_validator("id", mode="before")
    @classmethod
    def id_a_texto(cls, v):
        return a_texto(v)


class Factura(RegistroBase):
    total: Any = None
    currency: str = MONEDA_POR_DEFECTO
    tipo_cambio: Any = None
    fecha_pago: Any = None
    fecha_emision: Any = None
    estado_pago: Optional[str] = None
    metodo_pago: Optional[str] = None
    notas: Optional[str] = None
    numero_factura: Optional[str] = None
    appointment_id: Optional[str] = None
    patient_id: Optional[str] = None

    @field_validator("currency", mode="before")
    @classmethod
    def normalizar_moneda(cls, v):
        if v is None or not str(v).strip():
            return MONEDA_POR_DEFECTO
        return str(v).strip().upper()

    @field_validator(
        "estado_pago", "metodo_pago", "notas", "numero_factura", "appointment_id", "patient_id",
        mode="before",
    )
    @classmethod
    def campos_a_texto(cls, v):
        return a_texto(v)

    @property
    def esta_pagada(self) -> bool:
        return (self.estado_pago or "").strip().lower() in ESTADOS_PAGADOS

    @property
    def moneda_local(self) -> bool:
        return self.currency in MONEDAS_LOCALES


class Cita(RegistroBase):
    scheduled_at: Any = None
    status: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def campos_a_texto(cls, v):
        return a_texto(v)


class Consulta(RegistroBase):
    started_at: Any = None
    diagnosis: Optional[str] = None
    chief_complaint: Optional[str] = None
    appointment_id: Optional[str] = None

    @field_validator("diagnosis", "chief_complaint", "appointment_id", mode="before")
    @classmethod
    def campos_a_texto(cls, v):
        return a_texto(v)


class OrdenLaboratorio(RegistroBase):
    reported_at: Any = None
    status: Optional[str] = None
    is_critical: bool = False

    @field_validator("status", mode="before")
    @classmethod
    def campos_a_texto(cls, v):
        return a_texto(v)

    @field_validator("is_critical", mode="before")
    @classmethod
    def critico_a_bool(cls, v):
        return v is True or str(v).strip().lower() == "true"

# ============================================================
# RESPONSE MODELS (formato JSON del reporte)
# ============================================================

class ConteoMes(BaseModel):
    month: str
    count: int


class MetodoPagoConteo(BaseModel):
    metodo: Optional[str] = None
    referencia: Optional[str] = None
    count: int = 0


class DesgloseIngreso(BaseModel):
    date: str
    currency: str
    usd: float = 0.0
    bs: float = 0.0
    count: int = 0
    tasa: float = 1.0
    metodos: List[MetodoPagoConteo] = Field(default_factory=list)


class ConteoDiagnostico(BaseModel):
    diagnosis: str
    count: int


class EstadisticasReporte(BaseModel):
    totalAppointments: int = 0
    totalConsultations: int = 0
    totalInvoices: int = 0
    paidInvoices: int = 0


class ReporteMedicoResponse(BaseModel):
    appointmentsByMonth: List[ConteoMes] = Field(default_factory=list)
    consultationsByMonth: List[ConteoMes] = Field(default_factory=list)
    totalIncome: float = 0.0
    totalIncomeUSD: float = 0.0
    totalIncomeBS: float = 0.0
    incomeBreakdown: List[DesgloseIngreso] = Field(default_factory=list)
    topDiagnoses: List[ConteoDiagnostico] = Field(default_factory=list)
    totalOrders: int = 0
    totalCriticalResults: int = 0
    stats: EstadisticasReporte = Field(default_factory=EstadisticasReporte)
