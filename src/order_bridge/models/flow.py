"""Per-customer dialogue state.

The stored row is a (flow_name, step, data) triple; in code it is one of a
closed set of state variants, so a flow name without a matching step cannot
be represented.
"""

from typing import Any, Dict, Literal, Optional, Tuple, Union

from pydantic import BaseModel

from order_bridge.config.constants import FLOW_ORDER_TRACKING, STEP_AWAIT_IDENTIFIER
from order_bridge.core.logger import setup_logger

logger = setup_logger(__name__)


class IdleState(BaseModel):
    """No dialogue is active."""

    kind: Literal["idle"] = "idle"

    class Config:
        frozen = True


class AwaitingIdentifierState(BaseModel):
    """Order tracking: waiting for the customer to send an order number."""

    kind: Literal["awaiting_identifier"] = "awaiting_identifier"
    last_identifier: Optional[str] = None

    class Config:
        frozen = True


FlowState = Union[IdleState, AwaitingIdentifierState]

IDLE = IdleState()


def flow_state_from_row(
    flow_name: Optional[str],
    step: Optional[str],
    data: Optional[Dict[str, Any]],
) -> FlowState:
    """Decode a stored row; unknown or inconsistent rows read as idle."""
    if flow_name is None and step is None:
        return IDLE

    if flow_name == FLOW_ORDER_TRACKING and step == STEP_AWAIT_IDENTIFIER:
        data = data or {}
        return AwaitingIdentifierState(last_identifier=data.get("last_identifier"))

    logger.warning(f"Unrecognized flow state row (flow_name={flow_name!r}, step={step!r}), treating as idle")
    return IDLE


def flow_state_to_row(state: FlowState) -> Tuple[Optional[str], Optional[str], Dict[str, Any]]:
    """Encode a state as (flow_name, step, data)."""
    if isinstance(state, AwaitingIdentifierState):
        data: Dict[str, Any] = {}
        if state.last_identifier:
            data["last_identifier"] = state.last_identifier
        return FLOW_ORDER_TRACKING, STEP_AWAIT_IDENTIFIER, data

    return None, None, {}
