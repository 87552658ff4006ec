"""Default basket constituents."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Constituent:
    id: str
    symbol: str
    name: str


CRYPTO_BASKET: tuple[Constituent, ...] = (
    Constituent("virtuals-protocol", "VIRTUAL", "Virtuals Protocol"),
    Constituent("iotex", "IOTX", "IoTeX"),
    Constituent("geodnet", "GEOD", "Geodnet"),
    Constituent("peaq-network", "PEAQ", "peaq"),
    Constituent("auki-labs", "AUKI", "Auki"),
)

EQUITY_BASKET: tuple[Constituent, ...] = (
    Constituent("ISRG", "ISRG", "Intuitive Surgical"),
    Constituent("TER", "TER", "Teradyne"),
    Constituent("SYM", "SYM", "Symbotic"),
    Constituent("PATH", "PATH", "UiPath"),
    Constituent("ZBRA", "ZBRA", "Zebra Technologies"),
    Constituent("ROK", "ROK", "Rockwell Automation"),
    Constituent("EMR", "EMR", "Emerson"),
    Constituent("ABBNY", "ABBNY", "ABB ADR"),
    Constituent("FANUY", "FANUY", "FANUC ADR"),
    Constituent("YASKY", "YASKY", "Yaskawa Electric ADR"),
    Constituent("SIEGY", "SIEGY", "Siemens ADR"),
    Constituent("SBGSY", "SBGSY", "Schneider Electric ADR"),
    Constituent("OTIS", "OTIS", "Otis Worldwide"),
    Constituent("DE", "DE", "Deere"),
    Constituent("TRMB", "TRMB", "Trimble"),
    Constituent("IRBT", "IRBT", "iRobot"),
    Constituent("CGNX", "CGNX", "Cognex"),
    Constituent("AMSWA", "AMSWA", "Amtech Systems"),
    Constituent("SSYS", "SSYS", "Stratasys"),
)

COMPARE_DEFAULT_TICKERS: tuple[str, ...] = ("BOTZ", "ROBO", "IRBO")

_KNOWN_NAMES = {item.id: item for item in CRYPTO_BASKET + EQUITY_BASKET}


def resolve_constituents(ids: list[str] | None, default: tuple[Constituent, ...]) -> list[Constituent]:
    """Resolve requested ids against known metadata; unknown ids get a derived symbol."""
    if not ids:
        return list(default)
    resolved: list[Constituent] = []
    for asset_id in ids:
        known = _KNOWN_NAMES.get(asset_id)
        if known is not None:
            resolved.append(known)
        else:
            resolved.append(Constituent(asset_id, asset_id.upper(), asset_id))
    return resolved


def display_name(ticker: str) -> str:
    known = _KNOWN_NAMES.get(ticker.upper())
    return known.name if known is not None else ticker.upper()
