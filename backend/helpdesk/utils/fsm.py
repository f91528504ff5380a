from __future__ import annotations
"""Simple finite state machine utility for enforcing allowed status transitions.

Used for the ticket lifecycle and the close-request review step.
Usage:
    from helpdesk.utils.fsm import TransitionValidator
    REVIEW_FSM = TransitionValidator({
        'pending': {'approved', 'rejected'},
        'approved': set(),
        'rejected': set(),
    }, field_name='request_status')
    REVIEW_FSM.assert_can_transition(current_status, target_status)

Raises InvalidStateError if the transition is not in the graph.
"""
from typing import Dict, List, Set
from helpdesk.errors import InvalidStateError

class TransitionValidator:
    def __init__(self, graph: Dict[str, Set[str]], field_name: str = 'status'):
        self.graph = graph
        self.field_name = field_name

    def can_transition(self, current: str, target: str) -> bool:
        return target in self.graph.get(current, set())

    def assert_can_transition(self, current: str, target: str):
        if not self.can_transition(current, target):
            raise InvalidStateError(f"Invalid {self.field_name} transition {current} -> {target}")
        return True

    def states(self) -> List[str]:
        """All states in declaration order (sources first, then targets not declared as sources)."""
        seen: List[str] = list(self.graph)
        for targets in self.graph.values():
            for t in sorted(targets):
                if t not in seen:
                    seen.append(t)
        return seen

__all__ = ['TransitionValidator']
