from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware  # Importa el middleware CORS
from dotenv import load_dotenv
import logging
import os

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(levelname)s - [%(name)s] - %(message)s'
)

# Importar routers de cada módulo
from app.reports.routes_reports import router as reports_router
from app.payments.routes_payments import router as payments_router
from app.rates.routes_rates import router as rates_router

app = FastAPI(
    title="API de Reportes Médicos",
    description="Ingresos multimoneda (USD / Bs) y estadísticas de actividad del médico.",
)

origins = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if origin.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/")
async def read_root():
    return {"message": "Bienvenido a la API de Reportes Médicos"}

@app.get("/health")
async def health():
    return {"status": "healthy"}

# Incluir todos los routers
app.include_router(reports_router)
app.include_router(payments_router)
app.include_router(rates_router)
