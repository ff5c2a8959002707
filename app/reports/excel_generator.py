# ============================================================
# excel_generator.py - Reporte del médico en Excel (3 hojas)
# ============================================================

from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, Border, Side, PatternFill
from openpyxl.utils import get_column_letter
from io import BytesIO

from .models_reports import ReporteMedicoResponse

# Estilos compartidos
TITULO_FONT = Font(name='Arial', size=14, bold=True)
HEADER_FONT = Font(name='Arial', size=10, bold=True)
NORMAL_FONT = Font(name='Arial', size=10)
TOTAL_FONT = Font(name='Arial', size=11, bold=True)

CENTRO = Alignment(horizontal='center', vertical='center')
BORDE_ABAJO = Border(bottom=Side(style='medium'))
RELLENO_GRIS = PatternFill(start_color="E0E0E0", end_color="E0E0E0", fill_type="solid")

FORMATO_MONTO = '#,##0.00'

# ============================================================
# FUNCIÓN PRINCIPAL
# ============================================================

def generar_reporte_excel_medico(reporte: ReporteMedicoResponse, fecha_inicio: str, fecha_fin: str) -> BytesIO:
    """
    Genera Excel con 3 hojas:
    1. Resumen - totales de ingresos y estadísticas
    2. Desglose de Ingresos - una fila por (fecha, moneda, método)
    3. Diagnosticos - top de diagnósticos del período
    """
    wb = Workbook()

    ws_resumen = wb.active
    ws_resumen.title = "Resumen"
    _crear_hoja_resumen(ws_resumen, reporte, fecha_inicio, fecha_fin)

    ws_desglose = wb.create_sheet("Desglose de Ingresos")
    _crear_hoja_desglose(ws_desglose, reporte)

    ws_diagnosticos = wb.create_sheet("Diagnosticos")
    _crear_hoja_diagnosticos(ws_diagnosticos, reporte)

    excel_file = BytesIO()
    wb.save(excel_file)
    excel_file.seek(0)

    return excel_file


def _encabezados(ws, fila: int, titulos: list):
    for col, titulo in enumerate(titulos, start=1):
        celda = ws.cell(row=fila, column=col, value=titulo)
        celda.font = HEADER_FONT
        celda.fill = RELLENO_GRIS
        celda.border = BORDE_ABAJO
        celda.alignment = CENTRO


def _ajustar_anchos(ws, anchos: list):
    for col, ancho in enumerate(anchos, start=1):
        ws.column_dimensions[get_column_letter(col)].width = ancho

# ============================================================
# HOJA 1: RESUMEN
# ============================================================

def _crear_hoja_resumen(ws, reporte: ReporteMedicoResponse, fecha_inicio: str, fecha_fin: str):
    fila = 1
    ws.merge_cells(f'A{fila}:B{fila}')
    ws[f'A{fila}'] = "REPORTE DE INGRESOS DEL MÉDICO"
    ws[f'A{fila}'].font = TITULO_FONT
    ws[f'A{fila}'].alignment = CENTRO
    fila += 2

    ws[f'A{fila}'] = "Inicio:"
    ws[f'B{fila}'] = f"{fecha_inicio} 00:00"
    ws[f'A{fila}'].font = HEADER_FONT
    fila += 1
    ws[f'A{fila}'] = "Fin:"
    ws[f'B{fila}'] = f"{fecha_fin} 23:59"
    ws[f'A{fila}'].font = HEADER_FONT
    fila += 2

    totales = [
        ("Ingresos (USD)", reporte.totalIncomeUSD),
        ("Ingresos (Bs)", reporte.totalIncomeBS),
    ]
    for etiqueta, valor in totales:
        ws[f'A{fila}'] = etiqueta
        ws[f'A{fila}'].font = TOTAL_FONT
        ws[f'B{fila}'] = valor
        ws[f'B{fila}'].number_format = FORMATO_MONTO
        fila += 1
    fila += 1

    stats = reporte.stats
    conteos = [
        ("Citas", stats.totalAppointments),
        ("Consultas", stats.totalConsultations),
        ("Facturas", stats.totalInvoices),
        ("Facturas pagadas", stats.paidInvoices),
        ("Órdenes emitidas", reporte.totalOrders),
        ("Resultados críticos", reporte.totalCriticalResults),
    ]
    for etiqueta, valor in conteos:
        ws[f'A{fila}'] = etiqueta
        ws[f'A{fila}'].font = NORMAL_FONT
        ws[f'B{fila}'] = valor
        fila += 1

    _ajustar_anchos(ws, [28, 20])

# ============================================================
# HOJA 2: DESGLOSE DE INGRESOS
# ============================================================

def _crear_hoja_desglose(ws, reporte: ReporteMedicoResponse):
    _encabezados(ws, 1, ["Fecha", "Moneda", "Facturas", "Monto", "Tasa", "Monto Bs", "Método", "Referencia", "Pagos"])

    fila = 2
    for entrada in reporte.incomeBreakdown:
        metodos = entrada.metodos or [None]
        for metodo in metodos:
            ws.cell(row=fila, column=1, value=entrada.date)
            ws.cell(row=fila, column=2, value=entrada.currency)
            ws.cell(row=fila, column=3, value=entrada.count)
            ws.cell(row=fila, column=4, value=entrada.usd).number_format = FORMATO_MONTO
            ws.cell(row=fila, column=5, value=entrada.tasa).number_format = FORMATO_MONTO
            ws.cell(row=fila, column=6, value=entrada.bs).number_format = FORMATO_MONTO
            if metodo is not None:
                ws.cell(row=fila, column=7, value=metodo.metodo or "")
                ws.cell(row=fila, column=8, value=metodo.referencia or "")
                ws.cell(row=fila, column=9, value=metodo.count)
            fila += 1

    ws.cell(row=fila, column=1, value="TOTAL").font = TOTAL_FONT
    ws.cell(row=fila, column=4, value=reporte.totalIncomeUSD).number_format = FORMATO_MONTO
    ws.cell(row=fila, column=6, value=reporte.totalIncomeBS).number_format = FORMATO_MONTO

    _ajustar_anchos(ws, [12, 10, 10, 14, 10, 16, 16, 18, 8])

# ============================================================
# HOJA 3: DIAGNÓSTICOS
# ============================================================

def _crear_hoja_diagnosticos(ws, reporte: ReporteMedicoResponse):
    _encabezados(ws, 1, ["Diagnóstico", "Consultas"])
    for fila, item in enumerate(reporte.topDiagnoses, start=2):
        ws.cell(row=fila, column=1, value=item.diagnosis)
        ws.cell(row=fila, column=2, value=item.count)
    _ajustar_anchos(ws, [40, 12])


def generar_nombre_archivo_excel(fecha_inicio: str, fecha_fin: str) -> str:
    return f"Reporte_Medico_{fecha_inicio}_{fecha_fin}.xlsx"
