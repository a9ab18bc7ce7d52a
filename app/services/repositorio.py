"""
Repositorio de Tesorería
app/services/repositorio.py

Único punto de acceso a la base de datos para escrituras y para la carga
completa del caché. Cada operación abre su propia sesión, confirma y
devuelve las filas ya desconectadas (expire_on_commit=False).

Cualquier SQLAlchemyError se traduce a ErrorAlmacen: el llamador NO debe
tocar el caché si recibe ese error.
"""

import logging
from contextlib import contextmanager
from typing import Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.database import SessionLocal
from app.models import (
    DegreeFee, Expense, ExtraordinaryFee, ExtraordinaryPayment, Member, MonthlyPayment, Settings,
)
from app.services.errores import ConfiguracionNoResuelta, ErrorAlmacen
from app.services.politicas_financieras import (
    CAMPOS_EDITABLES, CONFIG_DEFECTO, ConfiguracionLogia, configuracion_desde_fila,
)

logger = logging.getLogger(__name__)


class RepositorioTesoreria:
    def __init__(self, session_factory=SessionLocal):
        self._session_factory = session_factory

    @contextmanager
    def _sesion(self, operacion: str):
        db: Session = self._session_factory()
        try:
            yield db
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning(f"Error de base de datos al {operacion}: {exc}")
            raise ErrorAlmacen(f"No se pudo {operacion}", exc) from exc
        finally:
            db.close()

    # ══════════════════════════════════════
    # CARGA COMPLETA (para el caché)
    # ══════════════════════════════════════

    def cargar_todo(self) -> Dict:
        with self._sesion("cargar los datos") as db:
            configuracion = self._obtener_o_crear_configuracion(db)
            return {
                "members": db.query(Member).order_by(Member.full_name).all(),
                "monthly_payments": db.query(MonthlyPayment).all(),
                "expenses": db.query(Expense).order_by(Expense.expense_date.desc()).all(),
                "extraordinary_fees": (
                    db.query(ExtraordinaryFee).order_by(ExtraordinaryFee.created_at.desc()).all()
                ),
                "extraordinary_payments": db.query(ExtraordinaryPayment).all(),
                "degree_fees": db.query(DegreeFee).order_by(DegreeFee.fee_date.desc()).all(),
                "configuracion": configuracion,
            }

    # ══════════════════════════════════════
    # HELPERS GENÉRICOS
    # ══════════════════════════════════════

    def _guardar(self, modelo, datos: dict, obj_id=None, operacion: str = "guardar"):
        with self._sesion(operacion) as db:
            if obj_id is not None:
                obj = db.get(modelo, obj_id)
                if obj is None:
                    return None
                for campo, valor in datos.items():
                    setattr(obj, campo, valor)
            else:
                obj = modelo(**datos)
                db.add(obj)
            db.commit()
            db.refresh(obj)
            return obj

    def _eliminar(self, modelo, obj_id, operacion: str = "eliminar") -> bool:
        with self._sesion(operacion) as db:
            obj = db.get(modelo, obj_id)
            if obj is None:
                return False
            db.delete(obj)
            db.commit()
            return True

    # ══════════════════════════════════════
    # PAGOS MENSUALES
    # ══════════════════════════════════════

    def guardar_pago_mensual(self, member_id, month: int, year: int, datos: dict) -> MonthlyPayment:
        """Inserta o edita la fila única (miembro, mes, año)."""
        with self._sesion("guardar el pago") as db:
            pago = db.query(MonthlyPayment).filter(
                MonthlyPayment.member_id == member_id,
                MonthlyPayment.month == month,
                MonthlyPayment.year == year,
            ).first()
            if pago is None:
                pago = MonthlyPayment(member_id=member_id, month=month, year=year, **datos)
                db.add(pago)
            else:
                for campo, valor in datos.items():
                    setattr(pago, campo, valor)
            db.commit()
            db.refresh(pago)
            return pago

    def insertar_pagos_mensuales(self, filas: Iterable) -> List[MonthlyPayment]:
        """Inserta un lote completo en UNA transacción (todo o nada)."""
        with self._sesion("registrar el lote de pagos") as db:
            pagos = [MonthlyPayment(**fila.a_dict()) for fila in filas]
            db.add_all(pagos)
            db.commit()
            for pago in pagos:
                db.refresh(pago)
            return pagos

    def eliminar_pago_mensual(self, pago_id) -> bool:
        return self._eliminar(MonthlyPayment, pago_id, "eliminar el pago")

    # ══════════════════════════════════════
    # MIEMBROS
    # ══════════════════════════════════════

    def guardar_miembro(self, datos: dict, member_id=None) -> Optional[Member]:
        return self._guardar(Member, datos, member_id, "guardar el miembro")

    def eliminar_miembro(self, member_id) -> bool:
        """Borra el miembro y, explícitamente, sus pagos (no todos los motores aplican CASCADE)."""
        with self._sesion("eliminar el miembro") as db:
            miembro = db.get(Member, member_id)
            if miembro is None:
                return False
            db.query(MonthlyPayment).filter(MonthlyPayment.member_id == member_id).delete()
            db.query(ExtraordinaryPayment).filter(ExtraordinaryPayment.member_id == member_id).delete()
            db.delete(miembro)
            db.commit()
            return True

    # ══════════════════════════════════════
    # GASTOS Y DERECHOS DE GRADO
    # ══════════════════════════════════════

    def guardar_gasto(self, datos: dict, gasto_id=None) -> Optional[Expense]:
        return self._guardar(Expense, datos, gasto_id, "guardar el gasto")

    def eliminar_gasto(self, gasto_id) -> bool:
        return self._eliminar(Expense, gasto_id, "eliminar el gasto")

    def guardar_derecho_grado(self, datos: dict, derecho_id=None) -> Optional[DegreeFee]:
        return self._guardar(DegreeFee, datos, derecho_id, "guardar el derecho de grado")

    def eliminar_derecho_grado(self, derecho_id) -> bool:
        return self._eliminar(DegreeFee, derecho_id, "eliminar el derecho de grado")

    # ══════════════════════════════════════
    # CUOTAS EXTRAORDINARIAS
    # ══════════════════════════════════════

    def guardar_cuota_extraordinaria(self, datos: dict, cuota_id=None) -> Optional[ExtraordinaryFee]:
        return self._guardar(ExtraordinaryFee, datos, cuota_id, "guardar la cuota extraordinaria")

    def eliminar_cuota_extraordinaria(self, cuota_id) -> bool:
        with self._sesion("eliminar la cuota extraordinaria") as db:
            cuota = db.get(ExtraordinaryFee, cuota_id)
            if cuota is None:
                return False
            db.query(ExtraordinaryPayment).filter(
                ExtraordinaryPayment.extraordinary_fee_id == cuota_id
            ).delete()
            db.delete(cuota)
            db.commit()
            return True

    def registrar_pago_extraordinario(self, datos: dict) -> ExtraordinaryPayment:
        return self._guardar(ExtraordinaryPayment, datos, None, "registrar el abono")

    def eliminar_pago_extraordinario(self, pago_id) -> bool:
        return self._eliminar(ExtraordinaryPayment, pago_id, "eliminar el abono")

    # ══════════════════════════════════════
    # CONFIGURACIÓN
    # ══════════════════════════════════════

    def _obtener_o_crear_configuracion(self, db: Session) -> ConfiguracionLogia:
        fila = db.query(Settings).order_by(Settings.id).first()
        if fila is None:
            fila = Settings(
                institution_name=CONFIG_DEFECTO.institution_name,
                monthly_fee_base=CONFIG_DEFECTO.monthly_fee_base,
                monthly_report_template=CONFIG_DEFECTO.monthly_report_template,
                annual_report_template=CONFIG_DEFECTO.annual_report_template,
            )
            db.add(fila)
            db.commit()
            db.refresh(fila)
            logger.info(f"Configuración inicial creada (id={fila.id})")
        return configuracion_desde_fila(fila)

    def obtener_o_crear_configuracion(self) -> ConfiguracionLogia:
        with self._sesion("leer la configuración") as db:
            return self._obtener_o_crear_configuracion(db)

    def actualizar_configuracion(self, settings_id, cambios: dict) -> ConfiguracionLogia:
        with self._sesion("guardar la configuración") as db:
            fila = db.get(Settings, settings_id)
            if fila is None:
                raise ConfiguracionNoResuelta(
                    "No se encontró configuración válida en la base de datos"
                )
            for campo in CAMPOS_EDITABLES:
                if campo in cambios:
                    setattr(fila, campo, cambios[campo])
            db.commit()
            db.refresh(fila)
            return configuracion_desde_fila(fila)
