"""
Conversão de instâncias SQLAlchemy em dicts prontos para JSON.
Chaves em snake_case, iguais às colunas.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict


def _json_value(val):
    if isinstance(val, uuid.UUID):
        return str(val)
    # datetime antes de date (datetime é subclasse de date)
    if isinstance(val, (datetime, date)):
        return val.isoformat()
    # numerics do Postgres (Decimal) -> float seguro p/ JSON
    if isinstance(val, Decimal):
        return float(val)
    return val


def sa_model_to_dict(instance, *, include=None, exclude=None) -> Dict[str, Any]:
    """
    Converte uma instância SQLAlchemy em dict simples (apenas colunas).
    - include/exclude: coleções de nomes de colunas para filtrar.
    """
    if instance is None:
        return {}
    raw = {}
    for c in instance.__table__.columns:
        name = c.name
        if include and name not in include:
            continue
        if exclude and name in exclude:
            continue
        raw[name] = _json_value(getattr(instance, c.key))
    return raw
