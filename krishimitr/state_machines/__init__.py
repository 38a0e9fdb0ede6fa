"""
State machine infrastructure for multi-step flows.

This package provides state machines for the client session lifecycle and
the simulated payment wizard.
"""

from .base import FlowMachine
from .registry import get_flow_machine, FLOW_REGISTRY

__all__ = ["FlowMachine", "get_flow_machine", "FLOW_REGISTRY"]
