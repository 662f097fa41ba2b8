"""
Scenario Models
===============

Purpose
-------
Vocabulary shared between the tutorial coordinator and the scenario store:
scenario identifiers, the creation request of a tutorial scenario, and the
per-tutorial success record.

Design Decisions
----------------
- `Identifier` pairs the store's database id with an optional domain id; a
  database id of `DATABASE_ID_INSERTION` marks a record not yet inserted.
- Records are frozen so values handed to observers cannot be mutated behind
  the store's back.

Dependencies
------------
None - pure data structures
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

# Database id of a record that has not been inserted yet
DATABASE_ID_INSERTION = 0


class EndConditionOperator(IntEnum):
    """How a scenario combines its end conditions."""

    AND = 1
    OR = 2


@dataclass(frozen=True)
class Identifier:
    """Store identity of a scenario."""

    database_id: int
    domain_id: Optional[int] = None

    @property
    def is_inserted(self) -> bool:
        return self.database_id != DATABASE_ID_INSERTION


@dataclass(frozen=True)
class Scenario:
    """Creation request for an automation scenario."""

    id: Identifier
    name: str
    detection_quality: int
    end_condition_operator: EndConditionOperator = EndConditionOperator.OR


@dataclass(frozen=True)
class TutorialSuccess:
    """
    Completion record of one tutorial.

    `scenario_id` is the scenario the tutorial ran in; later tutorials reuse
    it. `completed` is True only when every step was walked, not skipped.
    """

    tutorial_index: int
    scenario_id: Identifier
    completed: bool
