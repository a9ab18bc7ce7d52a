"""
Errores de dominio de tesorería.

Todos llevan un mensaje corto, apto para mostrarse al operador, y un
`codigo` estable que los routers devuelven en el cuerpo de la respuesta.
"""

from decimal import Decimal
from typing import List, Optional


class ErrorTesoreria(Exception):
    codigo = "ERROR_TESORERIA"

    def __init__(self, mensaje: str):
        super().__init__(mensaje)
        self.mensaje = mensaje

    def a_dict(self) -> dict:
        return {"error": self.mensaje, "codigo": self.codigo}


class ErrorValidacion(ErrorTesoreria):
    """Entrada incompleta o mal formada; se rechaza antes de mutar nada."""
    codigo = "VALIDACION"


class MontoNoMultiplo(ErrorTesoreria):
    """El monto de un pago adelantado no es múltiplo exacto de la cuota."""
    codigo = "MONTO_NO_MULTIPLO"

    def __init__(self, residuo: Decimal, meses_cubiertos: int, cuota: Decimal):
        self.residuo = residuo
        self.meses_cubiertos = meses_cubiertos
        self.cuota = cuota
        super().__init__(
            f"El monto no es múltiplo exacto de la cuota (${cuota}). "
            f"Sobran ${residuo}. Montos válidos cercanos: "
            f"${self.totales_sugeridos[0]} ({meses_cubiertos} meses) o "
            f"${self.totales_sugeridos[1]} ({meses_cubiertos + 1} meses)."
        )

    @property
    def totales_sugeridos(self) -> List[Decimal]:
        return [self.cuota * self.meses_cubiertos, self.cuota * (self.meses_cubiertos + 1)]

    def a_dict(self) -> dict:
        data = super().a_dict()
        data.update({
            "residuo": float(self.residuo),
            "meses_cubiertos": self.meses_cubiertos,
            "totales_sugeridos": [float(t) for t in self.totales_sugeridos],
        })
        return data


class SinMesesPendientes(ErrorTesoreria):
    """Pronto pago pedido para un miembro con el año logial completo."""
    codigo = "SIN_MESES_PENDIENTES"


class SeleccionInvalida(ErrorTesoreria):
    """La selección de meses no coincide con el monto validado."""
    codigo = "SELECCION_INVALIDA"


class RecursoNoEncontrado(ErrorTesoreria):
    codigo = "NO_ENCONTRADO"


class ErrorAlmacen(ErrorTesoreria):
    """Fallo de persistencia (red, restricción, timeout). Sin reintento."""
    codigo = "ERROR_ALMACEN"

    def __init__(self, mensaje: str, causa: Optional[BaseException] = None):
        super().__init__(mensaje)
        self.causa = causa


class ConfiguracionNoResuelta(ErrorTesoreria):
    """La fila de settings aún no tiene id real al intentar actualizarla."""
    codigo = "CONFIGURACION_NO_RESUELTA"
