from motor.motor_asyncio import AsyncIOMotorClient
import os
import logging
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

uri = os.getenv("MONGODB_URI")
db_name = os.getenv("MONGODB_NAME", "MedicAgenda")

if not uri:
    raise RuntimeError("MONGODB_URI no está definida en .env")

client = AsyncIOMotorClient(uri)
db = client[db_name]
collection_auth = db["users_auth"]
collection_citas = db["appointment"]
collection_consultas = db["consultation"]
collection_facturacion = db["facturacion"]
collection_lab_results = db["lab_result"]

# Base de tasas: servicio externo, puede no estar configurado
rates_uri = os.getenv("RATES_MONGODB_URI")
rates_db_name = os.getenv("RATES_MONGODB_NAME", "rates")

if rates_uri:
    rates_client = AsyncIOMotorClient(rates_uri)
    collection_rates = rates_client[rates_db_name]["rates"]
else:
    logger.warning("RATES_MONGODB_URI no configurada: se usarán solo tasas congeladas")
    rates_client = None
    collection_rates = None
