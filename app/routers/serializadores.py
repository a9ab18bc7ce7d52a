"""Filas ORM → dict para las respuestas JSON."""

from app.services.calendario_fiscal import es_cumpleanos


def _iso(valor):
    return valor.isoformat() if valor else None


def _num(valor):
    return float(valor) if valor is not None else None


def miembro_dict(m) -> dict:
    return {
        "id": m.id,
        "full_name": m.full_name,
        "degree": m.degree,
        "status": m.status,
        "treasury_amount": _num(m.treasury_amount),
        "is_treasurer": bool(m.is_treasurer),
        "cargo_logial": m.cargo_logial,
        "email": m.email,
        "phone": m.phone,
        "cedula": m.cedula,
        "address": m.address,
        "join_date": _iso(m.join_date),
        "birth_date": _iso(m.birth_date),
        "cumple_hoy": es_cumpleanos(m.birth_date),
    }


def pago_mensual_dict(p) -> dict:
    return {
        "id": p.id,
        "member_id": p.member_id,
        "month": p.month,
        "year": p.year,
        "amount": _num(p.amount),
        "paid_at": _iso(p.paid_at),
        "status": p.status,
        "payment_type": p.payment_type,
        "receipt_url": p.receipt_url,
        "quick_pay_group_id": p.quick_pay_group_id,
    }


def gasto_dict(g) -> dict:
    return {
        "id": g.id,
        "description": g.description,
        "amount": _num(g.amount),
        "category": g.category,
        "expense_date": _iso(g.expense_date),
        "notes": g.notes,
        "receipt_url": g.receipt_url,
    }


def derecho_grado_dict(d) -> dict:
    return {
        "id": d.id,
        "description": d.description,
        "amount": _num(d.amount),
        "category": d.category,
        "fee_date": _iso(d.fee_date),
        "notes": d.notes,
        "receipt_url": d.receipt_url,
    }


def cuota_extraordinaria_dict(c) -> dict:
    return {
        "id": c.id,
        "name": c.name,
        "description": c.description,
        "amount_per_member": _num(c.amount_per_member),
        "due_date": _iso(c.due_date),
        "is_mandatory": bool(c.is_mandatory),
        "category": c.category,
    }


def pago_extraordinario_dict(p) -> dict:
    return {
        "id": p.id,
        "extraordinary_fee_id": p.extraordinary_fee_id,
        "member_id": p.member_id,
        "amount_paid": _num(p.amount_paid),
        "payment_date": _iso(p.payment_date),
        "receipt_url": p.receipt_url,
    }
