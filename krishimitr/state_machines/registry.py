"""
State machine registry for dynamic instantiation.

Provides factory function to create state machine instances by flow type.
"""

from typing import Any, Dict, Optional
from .base import FlowMachine


FLOW_REGISTRY: Dict[str, str] = {
    "session": "SessionFlowMachine",
    "payment": "PaymentFlowMachine",
}


def get_flow_machine(
    flow_type: str,
    context: Optional[Dict[str, Any]] = None,
    user_id: Optional[str] = None,
    **kwargs
) -> FlowMachine:
    """
    Factory to instantiate state machine by flow type.

    Args:
        flow_type: Type of flow (session, payment)
        context: Identifying data for logging
        user_id: User ID for logging
        **kwargs: Additional arguments for the machine

    Returns:
        Instantiated state machine

    Raises:
        ValueError: If flow_type is not registered
    """
    if flow_type not in FLOW_REGISTRY:
        raise ValueError(
            f"Unknown flow type: {flow_type}. "
            f"Available: {list(FLOW_REGISTRY.keys())}"
        )

    if flow_type == "session":
        from .session_flow import SessionFlowMachine
        return SessionFlowMachine(context=context, user_id=user_id, **kwargs)
    elif flow_type == "payment":
        from .payment_flow import PaymentFlowMachine
        return PaymentFlowMachine(context=context, user_id=user_id, **kwargs)
    else:
        raise ValueError(f"Flow type {flow_type} not implemented yet")
