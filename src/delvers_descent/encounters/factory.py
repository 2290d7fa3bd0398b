"""Single dispatch point mapping an encounter type to its state machine."""

from __future__ import annotations

import logging

from delvers_descent.core.config import BalanceConfig
from delvers_descent.core.errors import UnsupportedEncounterError
from delvers_descent.core.models import EncounterType
from delvers_descent.core.rng import GameRNG
from delvers_descent.encounters.base import Encounter
from delvers_descent.encounters.discovery import DiscoverySite
from delvers_descent.encounters.hazard import Hazard
from delvers_descent.encounters.puzzle import PuzzleChamber
from delvers_descent.encounters.rest_site import RestSite
from delvers_descent.encounters.risk_event import RiskEvent
from delvers_descent.encounters.safe_passage import SafePassage
from delvers_descent.encounters.scoundrel import Scoundrel
from delvers_descent.encounters.trade import TradeOpportunity

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Dispatch table -- maps EncounterType -> variant class
# ------------------------------------------------------------------

ENCOUNTER_CLASSES: dict[EncounterType, type[Encounter]] = {
    EncounterType.PUZZLE_CHAMBER: PuzzleChamber,
    EncounterType.TRADE_OPPORTUNITY: TradeOpportunity,
    EncounterType.DISCOVERY_SITE: DiscoverySite,
    EncounterType.HAZARD: Hazard,
    EncounterType.RISK_EVENT: RiskEvent,
    EncounterType.REST_SITE: RestSite,
    EncounterType.SAFE_PASSAGE: SafePassage,
    EncounterType.SCOUNDREL: Scoundrel,
}


def create_encounter(
    encounter_type: EncounterType | str,
    depth: int,
    rng: GameRNG,
    config: BalanceConfig | None = None,
) -> Encounter:
    """Instantiate the state machine for *encounter_type*.

    Raises
    ------
    UnsupportedEncounterError
        If *encounter_type* has no registered variant.
    """
    try:
        kind = EncounterType(encounter_type)
    except ValueError:
        raise UnsupportedEncounterError(str(encounter_type)) from None

    cls = ENCOUNTER_CLASSES.get(kind)
    if cls is None:
        raise UnsupportedEncounterError(kind.value)
    logger.debug("Creating %s encounter at depth %d", kind.value, depth)
    return cls(depth, rng, config)
