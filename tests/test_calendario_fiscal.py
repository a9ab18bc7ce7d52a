from datetime import date

import pytest

from app.services.calendario_fiscal import (
    anio_fiscal_de, es_cumpleanos, fecha_larga, formatear_fecha, info_anio_fiscal,
    meses_fiscales, nombre_mes, pertenece_al_anio_fiscal,
)


@pytest.mark.parametrize("fecha, esperado", [
    (date(2025, 7, 1), 2025),
    (date(2025, 12, 31), 2025),
    (date(2026, 1, 1), 2025),
    (date(2026, 6, 30), 2025),
    (date(2026, 7, 1), 2026),
])
def test_anio_fiscal_cambia_en_julio(fecha, esperado):
    assert anio_fiscal_de(fecha) == esperado


def test_info_anio_fiscal():
    info = info_anio_fiscal(date(2026, 3, 1))
    assert info.anio_fiscal == 2025
    assert info.anio_calendario_siguiente == 2026
    assert info.etiqueta == "2025-2026"
    assert (info.mes_inicio, info.mes_fin) == (7, 6)


def test_meses_fiscales_julio_a_junio():
    meses = meses_fiscales(2025)
    assert len(meses) == 12
    assert len(set(meses)) == 12
    assert meses[0] == (7, 2025)
    assert meses[5] == (12, 2025)
    assert meses[6] == (1, 2026)
    assert meses[-1] == (6, 2026)


def test_pertenece_al_anio_fiscal():
    assert pertenece_al_anio_fiscal(3, 2026, 2025)
    assert not pertenece_al_anio_fiscal(7, 2026, 2025)


def test_formatos():
    assert nombre_mes(7) == "Julio"
    assert formatear_fecha(date(2025, 9, 3)) == "03/09/2025"
    assert formatear_fecha(None) == "-"
    assert fecha_larga(date(2026, 10, 17)) == "17 de octubre de 2026"


def test_es_cumpleanos_ignora_el_anio():
    assert es_cumpleanos(date(1980, 10, 17), hoy=date(2026, 10, 17))
    assert not es_cumpleanos(date(1980, 10, 18), hoy=date(2026, 10, 17))
    assert not es_cumpleanos(None)
