# Getter registry: maps source URL schemes to getter classes.

from __future__ import annotations

from typing import TYPE_CHECKING

from counterbase.config.settings import eco_visio_domain_settings
from counterbase.sources.base import Getter, SourceError
from counterbase.utils.logging import get_logger

if TYPE_CHECKING:
    from counterbase.config.settings import AppSettings
    from counterbase.sources.ecocounter import EcoCounterGetter

logger = get_logger(__name__)

# Registry populated on first use by _load_builtins
_REGISTRY: dict[str, type] = {}


def register(scheme: str, cls: type) -> None:
    """Register a getter class under a URL scheme."""
    _REGISTRY[scheme] = cls


def get_getter(scheme: str, settings: AppSettings) -> Getter:
    """Create a configured getter instance for a URL scheme."""
    if not _REGISTRY:
        _load_builtins()

    if scheme not in _REGISTRY:
        available = ", ".join(sorted(_REGISTRY.keys()))
        raise SourceError(f"Unknown source scheme '{scheme}'. Available schemes: {available}")

    cls = _REGISTRY[scheme]
    timeout = settings.crawler.request_timeout

    if scheme == "ecocounter":
        getter = cls(settings.eco_visio, timeout=timeout)
        add_private_domains(getter, settings.eco_visio.private_domain_names)
        return getter  # type: ignore[return-value]
    elif scheme == "hfxtransit":
        return cls(settings.hfxtransit, timeout=timeout)  # type: ignore[return-value]
    else:
        return cls(settings)  # type: ignore[return-value]


def add_private_domains(getter: EcoCounterGetter, names: list[str]) -> None:
    """Register private domains whose ECO_VISIO_<NAME>_* credentials are set.

    Domains with missing credentials are skipped; their sources then yield
    no data instead of failing.
    """
    for name in names:
        creds = eco_visio_domain_settings(name)
        if not creds.is_complete:
            prefix = f"ECO_VISIO_{name.upper()}_"
            logger.warning(
                "private_domain_skipped",
                domain=name,
                reason=f"missing {prefix}USERNAME, {prefix}PASSWORD or {prefix}DOMAIN_ID",
            )
            continue

        getter.add_private_domain(
            name=name,
            username=creds.username,
            password=creds.password.get_secret_value(),
            user_id=creds.user_id,
            domain_id=creds.domain_id,
        )
        logger.info("private_domain_added", domain=name)


def build_getters(settings: AppSettings) -> dict[str, Getter]:
    """Instantiate one getter per registered scheme."""
    return {scheme: get_getter(scheme, settings) for scheme in available_schemes()}


def _load_builtins() -> None:
    """Lazy-import built-in getters to populate the registry."""
    from counterbase.sources.ecocounter import EcoCounterGetter
    from counterbase.sources.halifax_transit import HalifaxTransitGetter

    register("ecocounter", EcoCounterGetter)
    register("hfxtransit", HalifaxTransitGetter)


def available_schemes() -> list[str]:
    """Return list of registered URL schemes."""
    if not _REGISTRY:
        _load_builtins()
    return sorted(_REGISTRY.keys())
