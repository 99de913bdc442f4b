"""Cache key builders, one per dataset kind.

Every key format used by the application lives here. Per-collection keys
always contain ``:`` and therefore map to digest-suffixed file names, which
keeps them apart from the aggregate keys of the same provider and kind.
"""

from typing import Literal

Provider = Literal["nextcloud", "google"]
Kind = Literal["calendar", "tasks"]


def weather(country: str, city: str) -> str:
    return f"weather:{country}:{city}"


def geocode(city: str, country: str) -> str:
    return f"geocode:{city}:{country}"


def collection(provider: Provider, kind: Kind, name: str) -> str:
    """Key for one upstream collection (a single calendar or task list)."""
    return f"{provider}_{kind}_list:{name}"


def aggregate(provider: Provider, kind: Kind) -> str:
    """Key for the merged result across all collections of a view."""
    return f"{provider}_{kind}_items_all"
