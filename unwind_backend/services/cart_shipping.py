"""
Cart Shipping State

Shipping state for one cart session, as a pure transition function plus a
small async shell that talks to QuoteService.

States: EMPTY -> ADDRESS_SET -> LOADING -> QUOTES_READY | ERROR

- Changing the address (or the cart contents) always drops quotes,
  selection and error, and invalidates any request still in flight
- Every quote request carries a token; results whose token is not the
  latest issued are ignored
- Selection must be one of the current quotes
"""
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from unwind_backend.modules.shipping.errors import QuoteError, QuoteValidationError
from unwind_backend.modules.shipping.types import Address, PackageItem, Quote

logger = logging.getLogger(__name__)


class ShippingStatus(str, Enum):
    EMPTY = "empty"
    ADDRESS_SET = "address_set"
    LOADING = "loading"
    QUOTES_READY = "quotes_ready"
    ERROR = "error"


@dataclass(frozen=True)
class ShippingState:
    status: ShippingStatus = ShippingStatus.EMPTY
    address: Optional[Address] = None
    quotes: Tuple[Quote, ...] = ()
    selected_quote: Optional[Quote] = None
    error: Optional[str] = None
    field_errors: Dict[str, str] = field(default_factory=dict)
    is_fallback: bool = False
    warnings: Tuple[str, ...] = ()
    # Latest issued request token; bumped by requests and invalidations
    request_token: int = 0

    @property
    def loading(self) -> bool:
        return self.status == ShippingStatus.LOADING


# ==================== Events ====================


@dataclass(frozen=True)
class AddressChanged:
    address: Address


@dataclass(frozen=True)
class ItemsChanged:
    pass


@dataclass(frozen=True)
class QuotesRequested:
    token: int


@dataclass(frozen=True)
class QuotesReceived:
    token: int
    quotes: Tuple[Quote, ...]
    is_fallback: bool = False
    warnings: Tuple[str, ...] = ()


@dataclass(frozen=True)
class QuotesFailed:
    token: int
    error: str
    field_errors: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class QuoteSelected:
    quote: Quote


@dataclass(frozen=True)
class Cleared:
    pass


ShippingEvent = Union[
    AddressChanged, ItemsChanged, QuotesRequested, QuotesReceived, QuotesFailed, QuoteSelected, Cleared
]


def _invalidated(state: ShippingState) -> ShippingState:
    """Drop everything derived from the old address or cart."""
    return replace(
        state,
        status=ShippingStatus.ADDRESS_SET if state.address is not None else ShippingStatus.EMPTY,
        quotes=(),
        selected_quote=None,
        error=None,
        field_errors={},
        is_fallback=False,
        warnings=(),
        request_token=state.request_token + 1,
    )


def transition(state: ShippingState, event: ShippingEvent) -> ShippingState:
    """Pure state transition. Events that do not apply return `state` unchanged."""
    if isinstance(event, AddressChanged):
        return _invalidated(replace(state, address=event.address))

    if isinstance(event, ItemsChanged):
        return _invalidated(state)

    if isinstance(event, Cleared):
        return ShippingState(request_token=state.request_token + 1)

    if isinstance(event, QuotesRequested):
        if state.address is None or event.token <= state.request_token:
            return state
        return replace(
            state,
            status=ShippingStatus.LOADING,
            error=None,
            field_errors={},
            request_token=event.token,
        )

    if isinstance(event, QuotesReceived):
        if event.token != state.request_token or state.status != ShippingStatus.LOADING:
            return state
        if not event.quotes:
            return replace(
                state,
                status=ShippingStatus.ERROR,
                quotes=(),
                selected_quote=None,
                error="No shipping options are available for this address",
            )
        return replace(
            state,
            status=ShippingStatus.QUOTES_READY,
            quotes=tuple(event.quotes),
            selected_quote=event.quotes[0],
            error=None,
            is_fallback=event.is_fallback,
            warnings=tuple(event.warnings),
        )

    if isinstance(event, QuotesFailed):
        if event.token != state.request_token or state.status != ShippingStatus.LOADING:
            return state
        return replace(
            state,
            status=ShippingStatus.ERROR,
            quotes=(),
            selected_quote=None,
            error=event.error,
            field_errors=dict(event.field_errors),
            is_fallback=False,
        )

    if isinstance(event, QuoteSelected):
        if state.status != ShippingStatus.QUOTES_READY or event.quote not in state.quotes:
            return state
        return replace(state, selected_quote=event.quote)

    raise TypeError(f"Unknown shipping event: {type(event).__name__}")


# ==================== Session shell ====================


class InvalidQuoteSelection(ValueError):
    """The quote is not part of the currently offered set."""


class CartShippingSession:
    """
    Imperative shell around `transition` for one cart.

    Only the latest `request_quotes` call can change the state; earlier
    calls still complete but their results are discarded.
    """

    def __init__(self, quote_service, items: Optional[List[PackageItem]] = None, declared_value: float = 0.0):
        self.quote_service = quote_service
        self.items: List[PackageItem] = list(items or [])
        self.declared_value = declared_value
        self._state = ShippingState()

    @property
    def state(self) -> ShippingState:
        return self._state

    def dispatch(self, event: ShippingEvent) -> ShippingState:
        self._state = transition(self._state, event)
        return self._state

    def set_address(self, address: Address) -> ShippingState:
        return self.dispatch(AddressChanged(address))

    def set_items(self, items: List[PackageItem], declared_value: float) -> ShippingState:
        self.items = list(items)
        self.declared_value = declared_value
        return self.dispatch(ItemsChanged())

    def clear(self) -> ShippingState:
        self.items = []
        self.declared_value = 0.0
        return self.dispatch(Cleared())

    def select_quote(self, quote: Quote) -> ShippingState:
        before = self._state
        after = self.dispatch(QuoteSelected(quote))
        if after is before:
            raise InvalidQuoteSelection(f"Quote '{quote.service}' is not in the current options")
        return after

    async def request_quotes(self) -> ShippingState:
        if self._state.address is None:
            logger.debug("Quote request ignored: no address set")
            return self._state

        token = self._state.request_token + 1
        self.dispatch(QuotesRequested(token))
        address, items, value = self._state.address, list(self.items), self.declared_value

        try:
            result = await self.quote_service.get_quotes(address, items, value)
        except QuoteValidationError as e:
            event = QuotesFailed(token, e.message, field_errors=e.field_messages())
        except QuoteError as e:
            event = QuotesFailed(token, e.message)
        except Exception as e:
            logger.exception(f"Quote request {token} failed unexpectedly: {type(e).__name__}")
            event = QuotesFailed(token, "Shipping quotes are temporarily unavailable")
        else:
            event = QuotesReceived(
                token,
                tuple(result.quotes),
                is_fallback=result.is_fallback,
                warnings=tuple(result.warnings),
            )

        if token != self._state.request_token:
            logger.warning(f"Discarding stale quote response (token {token}, latest {self._state.request_token})")
        return self.dispatch(event)
