"""
Client session state machine.

A single client holds at most one active session. Signing in while already
signed in replaces the identity; signing out always succeeds.
"""

from statemachine import State
from .base import FlowMachine


class SessionFlowMachine(FlowMachine):
    """Tracks whether the client has an authenticated identity."""

    signed_out = State(initial=True, value="signed_out")
    active = State(value="active")

    sign_in = signed_out.to(active) | active.to(active)
    sign_out = active.to(signed_out) | signed_out.to(signed_out)

    @property
    def is_active(self) -> bool:
        return self.current_state.id == "active"

    def on_sign_in(self, user_id: str = None):
        if user_id:
            self.user_id = user_id
        self.clear_error()

    def after_sign_out(self):
        self.user_id = None
