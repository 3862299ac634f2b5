"""
Ciclo de vida do lead no funil (Kanban).

novo_lead -> agendado -> follow_up_1 -> follow_up_2 -> follow_up_3
                 |            |              |              |
                 +------------+--------------+--------------+--> matriculado
qualquer etapa não terminal ------------------------------------> em_espera

matriculado e em_espera são terminais.
"""

from __future__ import annotations

from enum import Enum
from typing import FrozenSet

from utils.errors import InvalidArgument


class LeadStatus(str, Enum):
    NOVO_LEAD = "novo_lead"
    AGENDADO = "agendado"
    FOLLOW_UP_1 = "follow_up_1"
    FOLLOW_UP_2 = "follow_up_2"
    FOLLOW_UP_3 = "follow_up_3"
    MATRICULADO = "matriculado"
    EM_ESPERA = "em_espera"


INITIAL_STATUS = LeadStatus.NOVO_LEAD

# ordem canônica das colunas do funil (também usada nos relatórios)
PIPELINE_ORDER = (
    LeadStatus.NOVO_LEAD,
    LeadStatus.AGENDADO,
    LeadStatus.FOLLOW_UP_1,
    LeadStatus.FOLLOW_UP_2,
    LeadStatus.FOLLOW_UP_3,
    LeadStatus.MATRICULADO,
    LeadStatus.EM_ESPERA,
)

VALID_STATUS = frozenset(s.value for s in LeadStatus)

TERMINAL_STATES = frozenset({LeadStatus.MATRICULADO, LeadStatus.EM_ESPERA})

# etapas em que o lead já foi agendado e pode ser matriculado
_ENROLLABLE = (
    LeadStatus.AGENDADO,
    LeadStatus.FOLLOW_UP_1,
    LeadStatus.FOLLOW_UP_2,
    LeadStatus.FOLLOW_UP_3,
)

_FORWARD = (
    LeadStatus.NOVO_LEAD,
    LeadStatus.AGENDADO,
    LeadStatus.FOLLOW_UP_1,
    LeadStatus.FOLLOW_UP_2,
    LeadStatus.FOLLOW_UP_3,
)

INTEREST_LEVELS = ("frio", "morno", "quente")


def _build_transitions() -> dict:
    table = {}
    for i, current in enumerate(_FORWARD):
        targets = set(_FORWARD[i + 1:])
        targets.add(LeadStatus.EM_ESPERA)
        if current in _ENROLLABLE:
            targets.add(LeadStatus.MATRICULADO)
        table[current] = frozenset(targets)
    for terminal in TERMINAL_STATES:
        table[terminal] = frozenset()
    return table


TRANSITIONS = _build_transitions()


class InvalidTransition(InvalidArgument):
    pass


def normalize_status(value) -> LeadStatus:
    """'Follow-up 1', ' AGENDADO ' etc. -> LeadStatus; fora do conjunto -> InvalidArgument."""
    if isinstance(value, LeadStatus):
        return value
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgument(f"status inválido: {value}")
    key = value.strip().lower().replace("-", "_").replace(" ", "_")
    while "__" in key:
        key = key.replace("__", "_")
    if key not in VALID_STATUS:
        raise InvalidArgument(f"status inválido: {value}")
    return LeadStatus(key)


def normalize_interest_level(value) -> str:
    key = str(value or "").strip().lower()
    if key not in INTEREST_LEVELS:
        raise InvalidArgument(f"interest_level inválido: {value}")
    return key


def allowed_transitions(current) -> FrozenSet[LeadStatus]:
    return TRANSITIONS.get(normalize_status(current), frozenset())


def is_terminal(status) -> bool:
    return normalize_status(status) in TERMINAL_STATES


def check_transition(current, target) -> bool:
    """
    Valida current -> target. Retorna False quando não há mudança (no-op),
    True quando a transição é permitida; levanta InvalidTransition caso contrário.
    """
    src = normalize_status(current)
    dst = normalize_status(target)
    if src == dst:
        return False
    if dst not in TRANSITIONS[src]:
        raise InvalidTransition(
            f"Transição inválida: {src.value} -> {dst.value}",
            detail={"allowed": sorted(s.value for s in TRANSITIONS[src])},
        )
    return True


def pipeline_rank(status: str) -> int:
    """Posição no funil; valores fora do conjunto vão para o fim."""
    try:
        return PIPELINE_ORDER.index(LeadStatus(status))
    except ValueError:
        return len(PIPELINE_ORDER)
