"""
Accounting documentation block embedded in every backup.

A static, human-readable description of the account taxonomy and the
operating mechanics, so a backup file explains itself to an accountant
opening it without the application. Written in the users' language.
"""

from datetime import datetime
from typing import Any


def accounting_documentation(generated_at: datetime) -> dict[str, Any]:
    return {
        "_meta": {
            "fecha_generacion": generated_at.isoformat(),
            "descripcion": "Estructura de cuentas y mecánicas contables del sistema El Jardín ERP.",
        },
        "estructura_cuentas": {
            "activos": {
                "definicion": "Recursos controlados por la empresa de los que se esperan beneficios económicos futuros.",
                "cuentas": [
                    {"nombre": "Caja Chica", "tipo": "Efectivo", "naturaleza": "Deudora"},
                    {"nombre": "Bancos", "tipo": "Efectivo", "naturaleza": "Deudora"},
                    {
                        "nombre": "Inventario",
                        "tipo": "Activo Circulante",
                        "naturaleza": "Deudora",
                        "nota": "Lotes con costo unitario, descargados por FIFO. Bajo inventario periódico "
                                "no se descarga en cada venta sino en Tomas Físicas y Producción.",
                    },
                    {
                        "nombre": "Activo Fijo",
                        "tipo": "Activo No Circulante",
                        "naturaleza": "Deudora",
                        "nota": "Mobiliario, equipo, remodelaciones.",
                    },
                ],
            },
            "pasivos": {
                "definicion": "Obligaciones presentes de la empresa.",
                "cuentas": [
                    {
                        "nombre": "Cuentas por Pagar",
                        "tipo": "Pasivo Circulante",
                        "naturaleza": "Acreedora",
                        "nota": "Sin movimientos: el sistema no registra cuentas por pagar.",
                    },
                ],
            },
            "patrimonio": {
                "definicion": "Parte residual de los activos una vez deducidos los pasivos.",
                "cuentas": [
                    {"nombre": "Capital Inicial", "tipo": "Patrimonio", "naturaleza": "Acreedora"},
                    {
                        "nombre": "Utilidades Retenidas / Ejercicio",
                        "tipo": "Patrimonio",
                        "naturaleza": "Acreedora",
                        "nota": "Ventas - Costos - Gastos, recalculado desde el registro de transacciones.",
                    },
                ],
            },
            "resultados": {
                "definicion": "Cuentas nominales del estado de resultados.",
                "cuentas": [
                    {"nombre": "Ventas", "tipo": "Ingreso", "naturaleza": "Acreedora"},
                    {
                        "nombre": "Costos (COGS)",
                        "tipo": "Egreso",
                        "naturaleza": "Deudora",
                        "nota": "Bajo inventario periódico se reconoce en las Tomas Físicas.",
                    },
                    {
                        "nombre": "Gastos Operativos",
                        "tipo": "Egreso",
                        "naturaleza": "Deudora",
                        "nota": "Servicios, pérdida de valor de activos y faltantes de efectivo.",
                    },
                ],
            },
        },
        "mecanicas_operativas": {
            "ventas": "Aumenta Caja/Bancos y Ventas. No descarga inventario ni registra costo en el momento.",
            "compras_inventario": "Disminuye Caja/Bancos y aumenta Inventario. Crea un lote fechado con su costo unitario.",
            "compras_activos": "Disminuye Caja/Bancos y aumenta Activo Fijo.",
            "gastos": "Disminuye Caja/Bancos y aumenta Gastos Operativos.",
            "produccion": "Descarga ingredientes por FIFO y crea un lote del producto con ese mismo costo. "
                          "No cambia el valor total del inventario.",
            "anulaciones": "Una anulación nunca borra: marca la transacción original como ANULADA "
                           "y agrega un contra-asiento que la referencia.",
            "auditorias_y_ajustes": {
                "caja_bancos": "Faltantes van a Gastos; sobrantes a Ventas.",
                "inventario": "Las unidades faltantes se descargan por FIFO hacia Costos; los sobrantes "
                              "vuelven al inventario al costo promedio y reducen Costos.",
                "activos_fijos": "La pérdida de valor del equipo se traslada a Gastos Operativos.",
            },
        },
    }
