import os

# La app lee la configuración al importarse
os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017")
os.environ.setdefault("SECRET_KEY", "clave-de-pruebas")

import pytest


def _coincide(valor, condicion):
    if isinstance(condicion, dict):
        for op, esperado in condicion.items():
            if op == "$in" and valor not in esperado:
                return False
            if op == "$gte" and (valor is None or valor < esperado):
                return False
            if op == "$lte" and (valor is None or valor > esperado):
                return False
        return True
    return valor == condicion


class FakeCursor:
    """Imita el cursor de motor: find().sort().limit().to_list()."""

    def __init__(self, docs, error=None):
        self._docs = list(docs)
        self._error = error

    def sort(self, clave, direccion=None):
        orden = clave if isinstance(clave, list) else [(clave, direccion or 1)]
        for campo, sentido in reversed(orden):
            self._docs.sort(
                key=lambda d: (d.get(campo) is not None, d.get(campo) if d.get(campo) is not None else 0),
                reverse=sentido == -1,
            )
        return self

    def limit(self, n):
        self._docs = self._docs[:n]
        return self

    async def to_list(self, length=None):
        if self._error:
            raise self._error
        return self._docs[:length] if length else list(self._docs)


class FakeCollection:
    def __init__(self, docs=None, error=None):
        self.docs = list(docs or [])
        self.error = error
        self.filtros = []

    def find(self, filtro=None):
        filtro = filtro or {}
        self.filtros.append(filtro)
        docs = [d for d in self.docs if all(_coincide(d.get(k), v) for k, v in filtro.items())]
        return FakeCursor(docs, self.error)

    async def find_one(self, filtro):
        docs = await self.find(filtro).to_list(1)
        return docs[0] if docs else None


@pytest.fixture
def fake_collection():
    return FakeCollection


@pytest.fixture
def sin_tasas(monkeypatch):
    """Base de tasas vacía (ninguna tasa histórica disponible)."""
    from app.rates import rates_client

    coleccion = FakeCollection([])
    monkeypatch.setattr(rates_client, "collection_rates", coleccion)
    return coleccion


@pytest.fixture
def con_tasas(monkeypatch):
    """Permite cargar tasas históricas en la base fake."""
    from app.rates import rates_client

    def _cargar(docs):
        coleccion = FakeCollection(docs)
        monkeypatch.setattr(rates_client, "collection_rates", coleccion)
        return coleccion

    return _cargar
