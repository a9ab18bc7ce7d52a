from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from app.services.errores import ConfiguracionNoResuelta, ErrorAlmacen
from app.services.pagos_lote_service import asignar_pronto_pago
from app.services.repositorio import RepositorioTesoreria


def test_cargar_todo_crea_la_configuracion(repositorio):
    datos = repositorio.cargar_todo()

    assert datos["members"] == []
    assert datos["configuracion"].resuelta
    assert datos["configuracion"].monthly_fee_base > 0
    # La segunda carga reutiliza la misma fila
    assert repositorio.cargar_todo()["configuracion"].id == datos["configuracion"].id


def test_pago_mensual_es_unico_por_mes(repositorio):
    miembro = repositorio.guardar_miembro({"full_name": "Ana", "status": "activo"})

    primero = repositorio.guardar_pago_mensual(miembro.id, 7, 2025, {"amount": Decimal("30")})
    segundo = repositorio.guardar_pago_mensual(miembro.id, 7, 2025, {"amount": Decimal("50")})

    assert primero.id == segundo.id
    pagos = repositorio.cargar_todo()["monthly_payments"]
    assert len(pagos) == 1
    assert pagos[0].amount == Decimal("50.00")


def test_lote_es_todo_o_nada(repositorio):
    miembro = repositorio.guardar_miembro({"full_name": "Ana", "status": "activo"})
    repositorio.guardar_pago_mensual(miembro.id, 6, 2026, {"amount": Decimal("50")})

    # Se calcula sin ver la fila de junio: el insert choca con la restricción única
    resultado = asignar_pronto_pago(miembro, [], 50, date(2025, 7, 1))
    with pytest.raises(ErrorAlmacen):
        repositorio.insertar_pagos_mensuales(resultado.filas)

    assert len(repositorio.cargar_todo()["monthly_payments"]) == 1


def test_eliminar_miembro_borra_sus_pagos(repositorio):
    miembro = repositorio.guardar_miembro({"full_name": "Ana", "status": "activo"})
    cuota = repositorio.guardar_cuota_extraordinaria({"name": "Templo", "amount_per_member": Decimal("100")})
    repositorio.guardar_pago_mensual(miembro.id, 7, 2025, {"amount": Decimal("50")})
    repositorio.registrar_pago_extraordinario({
        "extraordinary_fee_id": cuota.id, "member_id": miembro.id, "amount_paid": Decimal("40"),
    })

    assert repositorio.eliminar_miembro(miembro.id)

    datos = repositorio.cargar_todo()
    assert datos["members"] == []
    assert datos["monthly_payments"] == []
    assert datos["extraordinary_payments"] == []
    assert not repositorio.eliminar_miembro(miembro.id)


def test_guardar_inexistente_devuelve_none(repositorio):
    assert repositorio.guardar_gasto({"description": "x"}, gasto_id=999) is None


def test_actualizar_configuracion(repositorio):
    actual = repositorio.obtener_o_crear_configuracion()
    nueva = repositorio.actualizar_configuracion(actual.id, {"monthly_fee_base": Decimal("60")})
    assert nueva.monthly_fee_base == Decimal("60.00")

    with pytest.raises(ConfiguracionNoResuelta):
        repositorio.actualizar_configuracion(999, {"monthly_fee_base": Decimal("60")})


def test_error_de_base_se_traduce(session_factory):
    def sesion_rota():
        sesion = session_factory()

        def falla(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("conexión perdida"))

        sesion.query = falla
        return sesion

    with pytest.raises(ErrorAlmacen):
        RepositorioTesoreria(sesion_rota).cargar_todo()
