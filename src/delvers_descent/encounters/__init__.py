"""Encounter variants, the factory that builds them and the resolver."""

from delvers_descent.encounters.base import Encounter
from delvers_descent.encounters.discovery import DiscoverySite, ExplorationPath
from delvers_descent.encounters.factory import ENCOUNTER_CLASSES, create_encounter
from delvers_descent.encounters.hazard import Hazard, ObstacleType, SolutionPath
from delvers_descent.encounters.puzzle import PuzzleChamber, RevealResult, Tile, TileType
from delvers_descent.encounters.resolver import EncounterResolver
from delvers_descent.encounters.rest_site import RestAction, RestSite, RestSiteType
from delvers_descent.encounters.risk_event import RiskChoice, RiskEvent
from delvers_descent.encounters.safe_passage import PassageType, SafePassage
from delvers_descent.encounters.scoundrel import Card, CardKind, PlayResult, Scoundrel, Suit
from delvers_descent.encounters.trade import TradeOpportunity, TradeOption, TradeResult

__all__ = [
    # contract
    "Encounter",
    "ENCOUNTER_CLASSES",
    "EncounterResolver",
    "create_encounter",
    # puzzle
    "PuzzleChamber",
    "RevealResult",
    "Tile",
    "TileType",
    # trade
    "TradeOpportunity",
    "TradeOption",
    "TradeResult",
    # discovery
    "DiscoverySite",
    "ExplorationPath",
    # hazard
    "Hazard",
    "ObstacleType",
    "SolutionPath",
    # risk event
    "RiskChoice",
    "RiskEvent",
    # rest site
    "RestAction",
    "RestSite",
    "RestSiteType",
    # safe passage
    "PassageType",
    "SafePassage",
    # scoundrel
    "Card",
    "CardKind",
    "PlayResult",
    "Scoundrel",
    "Suit",
]
