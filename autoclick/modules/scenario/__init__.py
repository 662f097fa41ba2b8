"""
Scenario Module
===============

Domain: automation scenarios as seen by the tutorial coordinator.
"""

from .models import (
    DATABASE_ID_INSERTION,
    EndConditionOperator,
    Identifier,
    Scenario,
    TutorialSuccess,
)

__all__ = [
    "DATABASE_ID_INSERTION",
    "EndConditionOperator",
    "Identifier",
    "Scenario",
    "TutorialSuccess",
]
