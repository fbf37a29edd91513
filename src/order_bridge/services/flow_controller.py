"""Order-tracking dialogue: decides the reply to each inbound text."""

from typing import NamedTuple, Optional

from order_bridge.config.messages import example_identifier, get_messages
from order_bridge.config.settings import Settings
from order_bridge.core.exceptions import NotConnectedError, OrderLookupError
from order_bridge.core.logger import setup_logger
from order_bridge.core.monitoring import capture_exception
from order_bridge.core.token_manager import TokenManager
from order_bridge.db.repository import FlowStateRepository
from order_bridge.models.flow import IDLE, AwaitingIdentifierState
from order_bridge.models.order import OrderSummary
from order_bridge.services.identifier import (
    OrderIdentifierExtractor,
    is_cancel_request,
    looks_like_order_intent,
)
from order_bridge.services.order_resolver import OrderResolver

logger = setup_logger(__name__)


class LookupOutcome(NamedTuple):
    """Reply text for a lookup and whether it ended the dialogue."""

    resolved: bool
    reply: str


class FlowController:
    """
    Two-state machine per customer: idle and awaiting an order number.

    idle     + order number in text  -> lookup, stay idle
    idle     + order intent          -> ask for number, awaiting
    idle     + anything else         -> help text
    awaiting + order number          -> lookup, idle once the lookup resolves
    awaiting + no valid number       -> re-prompt, state unchanged

    State is persisted before the reply is returned to the caller for sending.
    """

    def __init__(
        self,
        settings: Settings,
        flow_states: FlowStateRepository,
        token_manager: TokenManager,
        resolver: OrderResolver,
        extractor: Optional[OrderIdentifierExtractor] = None,
    ):
        """Initialize controller with state storage, token manager and resolver."""
        self.flow_states = flow_states
        self.token_manager = token_manager
        self.resolver = resolver
        self.extractor = extractor or OrderIdentifierExtractor(
            settings.order_number_format,
            settings.order_number_length,
        )
        self.locale = settings.locale
        self.messages = get_messages(settings.locale)
        self.connect_url = settings.storefront_connect_url
        self.length = settings.order_number_length
        self.example = example_identifier(settings.order_number_format, settings.order_number_length)

    async def handle_text(self, customer_id: int, text: Optional[str]) -> str:
        """
        Advance the customer's dialogue with one inbound text.

        Args:
            customer_id: Internal customer id
            text: Extracted message text ("" for non-text messages)

        Returns:
            Reply text to send to the customer
        """
        text = (text or "").strip()
        state = await self.flow_states.get_flow_state(customer_id)

        if isinstance(state, AwaitingIdentifierState):
            return await self._handle_awaiting(customer_id, text)
        return await self._handle_idle(customer_id, text)

    async def _handle_idle(self, customer_id: int, text: str) -> str:
        identifier = self.extractor.extract(text)
        if identifier:
            logger.info(f"Direct order number submission: {identifier}", extra={"customer_id": customer_id})
            outcome = await self.lookup(identifier)
            return outcome.reply

        if looks_like_order_intent(text, self.locale):
            await self.flow_states.set_flow_state(customer_id, AwaitingIdentifierState())
            logger.info("Started order tracking flow", extra={"customer_id": customer_id})
            return self.messages["ask_identifier"].format(length=self.length)

        return self._help()

    async def _handle_awaiting(self, customer_id: int, text: str) -> str:
        if is_cancel_request(text, self.locale):
            await self.flow_states.set_flow_state(customer_id, IDLE)
            logger.info("Order tracking flow cancelled", extra={"customer_id": customer_id})
            return f"{self.messages['cancelled']}\n\n{self._help()}"

        identifier = self.extractor.extract(text)
        if not identifier:
            logger.debug("No valid order number in reply, re-prompting", extra={"customer_id": customer_id})
            return self.messages["invalid_identifier"].format(length=self.length, example=self.example)

        outcome = await self.lookup(identifier)
        if outcome.resolved:
            await self.flow_states.set_flow_state(customer_id, IDLE)
        else:
            await self.flow_states.set_flow_state(
                customer_id,
                AwaitingIdentifierState(last_identifier=identifier),
            )
        return outcome.reply

    async def lookup(self, identifier: str) -> LookupOutcome:
        """
        Look an order number up and build the reply.

        Found and not-found both resolve the dialogue; a missing credential or
        a provider failure leaves it open so the customer can retry.
        """
        try:
            access_token = await self.token_manager.require_access_token()
            summary = await self.resolver.find_order(identifier, access_token)
        except NotConnectedError as e:
            logger.warning(f"Order lookup skipped: {e}")
            return LookupOutcome(False, self.messages["not_connected"].format(connect_url=self.connect_url))
        except OrderLookupError as e:
            logger.error(f"Order lookup failed for {identifier}: {e}")
            capture_exception(e, context={"identifier": identifier, "status_code": e.status_code})
            return LookupOutcome(False, self.messages["lookup_failed"])

        if summary is None:
            return LookupOutcome(True, self.messages["order_not_found"].format(identifier=identifier))

        return LookupOutcome(True, self.format_summary(summary))

    def format_summary(self, summary: OrderSummary) -> str:
        """Render an order summary as a plain-text reply."""
        lines = [self.messages["order_found"].format(order_number=summary.order_number, status=summary.status)]
        if summary.carrier:
            lines.append(self.messages["carrier"].format(carrier=summary.carrier))
        if summary.tracking_number:
            lines.append(self.messages["tracking_number"].format(tracking_number=summary.tracking_number))
        if summary.tracking_url:
            lines.append(self.messages["tracking_url"].format(tracking_url=summary.tracking_url))
        return "\n".join(lines)

    def _help(self) -> str:
        return self.messages["help"].format(length=self.length)
