# src/application/event_handlers.py

from typing import Callable, Dict

from src.application.projection_maintainer import ProjectionMaintainer
from src.domain.errors import ValidationError
from src.domain.geo import GeoPoint


class ProviderEventHandler:
    """
    Translates provider domain events into projection mutations.

    Payload schema (producers: Providers, Catalogs, Reviews modules):
    {
      "type": "provider.activated|profile_changed|location_changed|
               services_changed|rating_changed|tier_changed|
               deactivated|removed",
      "provider_id": "<id>",
      ...fields for that event type
    }

    Errors propagate to the caller, which owns retry and dead-lettering.
    """

    def __init__(self, maintainer: ProjectionMaintainer):
        self._maintainer = maintainer
        self._handlers: Dict[str, Callable[[dict], None]] = {
            "provider.activated":        self._on_activated,
            "provider.profile_changed":  self._on_profile_changed,
            "provider.location_changed": self._on_location_changed,
            "provider.services_changed": self._on_services_changed,
            "provider.rating_changed":   self._on_rating_changed,
            "provider.tier_changed":     self._on_tier_changed,
            "provider.deactivated":      self._on_deactivated,
            "provider.removed":          self._on_removed,
        }

    @property
    def event_types(self):
        return sorted(self._handlers)

    def handle(self, payload: dict) -> None:
        if not isinstance(payload, dict):
            raise ValidationError("payload", "Event payload must be an object.", payload)

        event_type = payload.get("type")
        handler = self._handlers.get(event_type)
        if handler is None:
            raise ValidationError("type", f"Unsupported event type: {event_type!r}.", event_type)

        payload = {**payload, "provider_id": str(_require(payload, "provider_id"))}
        print(f"[EventHandler] {event_type} → provider {payload['provider_id']}")
        handler(payload)

    # ─── Handlers ────────────────────────────────────────────────────────────

    def _on_activated(self, payload: dict) -> None:
        self._maintainer.create(
            provider_id=payload["provider_id"],
            display_name=_require(payload, "name"),
            location=_location(payload),
            tier=payload.get("tier", "free"),
            description=payload.get("description"),
            city=payload.get("city"),
            state=payload.get("state"),
        )

    def _on_profile_changed(self, payload: dict) -> None:
        self._maintainer.update_basic_info(
            payload["provider_id"],
            display_name=_require(payload, "name"),
            description=payload.get("description"),
            city=payload.get("city"),
            state=payload.get("state"),
        )

    def _on_location_changed(self, payload: dict) -> None:
        self._maintainer.update_location(payload["provider_id"], _location(payload))

    def _on_services_changed(self, payload: dict) -> None:
        self._maintainer.update_services(
            payload["provider_id"], _require(payload, "service_ids")
        )

    def _on_rating_changed(self, payload: dict) -> None:
        self._maintainer.update_rating(
            payload["provider_id"],
            payload.get("average_rating"),
            _require(payload, "review_count"),
        )

    def _on_tier_changed(self, payload: dict) -> None:
        self._maintainer.update_tier(payload["provider_id"], _require(payload, "tier"))

    def _on_deactivated(self, payload: dict) -> None:
        self._maintainer.deactivate(payload["provider_id"])

    def _on_removed(self, payload: dict) -> None:
        self._maintainer.delete(payload["provider_id"])


def _require(payload: dict, key: str):
    if payload.get(key) is None:
        raise ValidationError(key, f"Event is missing required field '{key}'.")
    return payload[key]


def _location(payload: dict) -> GeoPoint:
    return GeoPoint(_require(payload, "latitude"), _require(payload, "longitude"))
