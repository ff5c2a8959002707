# ============================================================
# stats_logic.py - Conteos categóricos del reporte
# ============================================================

from collections import Counter
from datetime import date, datetime
from typing import Any, Iterable, List, Sequence

from .models_reports import ConteoDiagnostico, ConteoMes, Consulta, OrdenLaboratorio
from .utils_reports import CAMPOS_FECHA_RESULTADO, en_rango, etiqueta_mes, fecha_efectiva

TOP_DIAGNOSTICOS = 10


def top_diagnosticos(consultas: Iterable[Consulta], limite: int = TOP_DIAGNOSTICOS) -> List[ConteoDiagnostico]:
    """Frecuencia de diagnósticos, mayor a menor; empates en orden de aparición."""
    conteo = Counter(c.diagnosis for c in consultas if c.diagnosis)
    return [ConteoDiagnostico(diagnosis=d, count=n) for d, n in conteo.most_common(limite)]


def agrupar_por_mes(registros: Iterable[Any], campos: Sequence[str]) -> List[ConteoMes]:
    """Agrupa por 'mes de año' de la fecha efectiva, en orden cronológico."""
    conteo = Counter()
    for registro in registros:
        dia = fecha_efectiva(registro, campos)
        if dia is not None:
            conteo[(dia.year, dia.month)] += 1

    return [
        ConteoMes(month=etiqueta_mes(date(anio, mes, 1)), count=n)
        for (anio, mes), n in sorted(conteo.items())
    ]


def contar_resultados_criticos(ordenes: Iterable[OrdenLaboratorio], inicio: datetime, fin: datetime) -> int:
    return sum(
        1
        for o in ordenes
        if o.is_critical and en_rango(fecha_efectiva(o, CAMPOS_FECHA_RESULTADO), inicio, fin)
    )
