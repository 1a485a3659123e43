"""
Address Search

Suburb/postcode autocomplete for the checkout form. Uses BigPost's suburb
search when available, otherwise a small built-in list of regional centres.
"""
import logging
from dataclasses import dataclass, asdict, field
from typing import Any, Dict, List, Optional, Tuple

from unwind_backend.modules.shipping.carriers.bigpost import BigPostClient
from unwind_backend.modules.shipping.errors import CarrierError, ShippingError
from unwind_backend.modules.shipping.types import StateCode

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2
MAX_RESULTS = 10

SEARCH_TYPES = ("street", "suburb", "city", "postcode")

# suburb, postcode per state
FALLBACK_LOCALITIES: Dict[StateCode, List[Tuple[str, str]]] = {
    StateCode.VIC: [
        ("Melbourne", "3000"), ("Geelong", "3220"), ("Ballarat", "3350"), ("Bendigo", "3550"),
        ("Shepparton", "3630"), ("Warrnambool", "3280"), ("Wodonga", "3690"),
        ("Traralgon", "3844"), ("Frankston", "3199"), ("Brooklyn", "3012"),
    ],
    StateCode.NSW: [
        ("Sydney", "2000"), ("Newcastle", "2300"), ("Wollongong", "2500"), ("Wagga Wagga", "2650"),
        ("Tamworth", "2340"), ("Orange", "2800"), ("Dubbo", "2830"), ("Albury", "2640"),
        ("Bathurst", "2795"), ("Lismore", "2480"),
    ],
    StateCode.QLD: [
        ("Brisbane", "4000"), ("Gold Coast", "4217"), ("Townsville", "4810"), ("Cairns", "4870"),
        ("Toowoomba", "4350"), ("Rockhampton", "4700"), ("Mackay", "4740"), ("Bundaberg", "4670"),
    ],
    StateCode.SA: [
        ("Adelaide", "5000"), ("Mount Gambier", "5290"), ("Whyalla", "5600"),
        ("Murray Bridge", "5253"), ("Port Augusta", "5700"), ("Port Lincoln", "5606"),
    ],
    StateCode.WA: [
        ("Perth", "6000"), ("Fremantle", "6160"), ("Mandurah", "6210"), ("Bunbury", "6230"),
        ("Geraldton", "6530"), ("Albany", "6330"), ("Broome", "6725"), ("Kalgoorlie", "6430"),
    ],
    StateCode.TAS: [
        ("Hobart", "7000"), ("Launceston", "7250"), ("Devonport", "7310"), ("Burnie", "7320"),
    ],
    StateCode.NT: [
        ("Darwin", "0800"), ("Alice Springs", "0870"), ("Katherine", "0850"), ("Palmerston", "0830"),
    ],
    StateCode.ACT: [
        ("Canberra", "2600"), ("Belconnen", "2617"), ("Gungahlin", "2912"), ("Tuggeranong", "2900"),
    ],
}


@dataclass
class AddressSuggestion:
    value: str
    label: str
    suburb: str
    postcode: str
    state: str
    description: Optional[str] = None
    locality_id: Optional[int] = None

    @classmethod
    def build(cls, suburb: str, postcode: str, state: StateCode, locality_id: Optional[int] = None):
        return cls(
            value=f"{suburb}, {postcode}, {state.value}",
            label=f"{suburb}, {postcode}",
            description=state.value,
            suburb=suburb,
            postcode=postcode,
            state=state.value,
            locality_id=locality_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class AddressSearchResult:
    results: List[AddressSuggestion] = field(default_factory=list)
    fallback: bool = False


def fallback_suggestions(query: str, state: Optional[StateCode] = None) -> List[AddressSuggestion]:
    """Case-insensitive substring match on suburb or postcode, capped at 10."""
    needle = query.strip().lower()
    states = [state] if state else list(FALLBACK_LOCALITIES)

    matches = []
    for code in states:
        for suburb, postcode in FALLBACK_LOCALITIES.get(code, []):
            if needle in suburb.lower() or needle in postcode:
                matches.append(AddressSuggestion.build(suburb, postcode, code))
                if len(matches) >= MAX_RESULTS:
                    return matches
    return matches


class AddressSearchService:
    def __init__(self, carrier: Optional[BigPostClient] = None):
        self.carrier = carrier

    async def search(
        self,
        query: str,
        search_type: Optional[str] = None,
        state: Optional[str] = None,
    ) -> AddressSearchResult:
        query = (query or "").strip()
        if len(query) < MIN_QUERY_LENGTH:
            raise ShippingError(
                f"Query must be at least {MIN_QUERY_LENGTH} characters", code="QUERY_TOO_SHORT"
            )
        if search_type and search_type not in SEARCH_TYPES:
            raise ShippingError(f"Unknown search type: {search_type}", code="INVALID_SEARCH_TYPE")

        state_code = None
        if state:
            try:
                state_code = StateCode(state.strip().upper())
            except ValueError:
                raise ShippingError(f"Unknown state: {state}", code="INVALID_STATE") from None

        if self.carrier is not None:
            try:
                response = await self.carrier.search_suburbs(query, state_code)
                if response.success and response.results:
                    return AddressSearchResult(
                        results=[
                            AddressSuggestion.build(r.suburb, r.postcode, r.state, locality_id=r.id)
                            for r in response.results[:MAX_RESULTS]
                        ]
                    )
            except CarrierError as e:
                logger.warning(f"BigPost suburb search failed, using fallback: {e.message}")

        logger.debug(f"Using fallback address search for '{query}'")
        return AddressSearchResult(results=fallback_suggestions(query, state_code), fallback=True)
