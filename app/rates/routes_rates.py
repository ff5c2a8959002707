# ============================================================
# routes_rates.py - Consulta de tasas de cambio y conversión
# ============================================================

from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional

from app.auth.routes import get_current_user
from .rates_client import (
    convertir_bs_a_usd,
    convertir_usd_a_bs,
    limpiar_tasa,
    obtener_tasa_reciente,
    obtener_todas_las_tasas,
)

router = APIRouter(prefix="/api/rates", tags=["Tasas"])


@router.get("/latest")
async def tasa_reciente(
    code: str = Query("USD", description="Código de moneda"),
    current_user: dict = Depends(get_current_user)
):
    tasa = await obtener_tasa_reciente(code)
    if not tasa:
        raise HTTPException(status_code=404, detail=f"No hay tasa disponible para {code.upper()}")
    return limpiar_tasa(tasa)


@router.get("")
async def listar_tasas(current_user: dict = Depends(get_current_user)):
    return [limpiar_tasa(t) for t in await obtener_todas_las_tasas()]


@router.get("/convert")
async def convertir(
    amount: float = Query(..., description="Monto a convertir"),
    direction: str = Query("usd_a_bs", pattern="^(usd_a_bs|bs_a_usd)$"),
    rate: Optional[float] = Query(None, gt=0, description="Tasa a usar; por defecto la última USD"),
    current_user: dict = Depends(get_current_user)
):
    if direction == "usd_a_bs":
        resultado = await convertir_usd_a_bs(amount, rate)
    else:
        resultado = await convertir_bs_a_usd(amount, rate)
    return {"amount": amount, "direction": direction, "rate": rate, "result": resultado}
