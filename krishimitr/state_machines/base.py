"""
Base state machine class for all flow state machines.

Provides common functionality for transition logging, error tracking and
flow info retrieval.
"""

from typing import Any, Dict, List, Optional
from statemachine import StateMachine
import structlog


class FlowMachine(StateMachine):
    """
    Base class for all flow state machines.

    Features:
    - Structured logging on every transition
    - Error code/message slots for rejected transitions
    - get_flow_info() for UI layers
    """

    def __init__(
        self,
        context: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None,
        **kwargs
    ):
        """
        Initialize flow machine.

        Args:
            context: Identifying data for logging (e.g. {"id": ...})
            user_id: User ID for logging
            **kwargs: Additional arguments passed to StateMachine (start_value, ...)
        """
        self.context = context or {}
        self.user_id = user_id
        self.logger = structlog.get_logger(__name__)
        self.error_code: Optional[str] = None
        self.error_message: Optional[str] = None
        super().__init__(**kwargs)

    @property
    def state_id(self) -> str:
        return self.current_state.id

    def allowed_event_ids(self) -> List[str]:
        ids = []
        for event in self.allowed_events:
            ids.append(getattr(event, "id", None) or event.name)
        return ids

    def get_flow_info(self) -> Dict[str, Any]:
        """
        Returns current state + allowed events.

        Returns:
            Dict with state, allowed_events, and error info
        """
        return {
            "state": self.state_id,
            "allowed_events": self.allowed_event_ids(),
            "error_code": self.error_code,
            "error_message": self.error_message,
        }

    def clear_error(self):
        self.error_code = None
        self.error_message = None

    def log_transition(self, event: str, from_state: str, to_state: str):
        """
        Log state transition with structured logging.

        Args:
            event: Event name that triggered transition
            from_state: Previous state
            to_state: New state
        """
        self.logger.info(
            "state_transition",
            flow=type(self).__name__,
            transition_event=event,
            from_state=from_state,
            to_state=to_state,
            user_id=self.user_id,
            context_id=self.context.get("id"),
        )

    def on_transition(self, event: str, source, target):
        """Hook called on every transition."""
        self.log_transition(event, source.id, target.id)
