"""Cargo variants and the cargo-exclusivity guard.

A shipment carries exactly one of three payloads. The payloads form a
pydantic discriminated union tagged by ``kind``, so a constructed record
can never hold two of them. Caller input still arrives in the flat shape
``{"vehicle": {...}, "container": None, "lcl": None}`` and goes through
:func:`resolve_cargo` before anything is persisted.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field

from elxctl.domain.errors import InvalidCargoComposition


class CargoType(StrEnum):
    """Cargo variant tags."""

    VEHICLE = "vehicle"
    CONTAINER = "container"
    LCL = "lcl"


class TransportMode(StrEnum):
    """Shipping mode, always derived from the cargo type."""

    RORO = "RoRo"
    CONTAINER = "Container"


class _CargoBase(BaseModel):
    """Details shared by every cargo variant."""

    model_config = {"frozen": True, "extra": "forbid", "str_strip_whitespace": True}

    description: str | None = None
    weight_kg: float | None = Field(default=None, ge=0)


class VehicleCargo(_CargoBase):
    """Roll-on/roll-off vehicle."""

    kind: Literal["vehicle"] = "vehicle"
    make: str | None = None
    model: str | None = None
    year: int | None = Field(default=None, ge=1886)
    vin: str | None = None
    booking_no: str | None = None


class ContainerCargo(_CargoBase):
    """Full container load."""

    kind: Literal["container"] = "container"
    container_no: str | None = None
    size: str | None = None  # e.g. 20GP, 40HC
    seal_no: str | None = None


class LclCargo(_CargoBase):
    """Less-than-container load, consolidated with other shippers."""

    kind: Literal["lcl"] = "lcl"
    packages: int | None = Field(default=None, ge=0)
    volume_cbm: float | None = Field(default=None, ge=0)
    commodity: str | None = None


CargoVariant = Annotated[
    VehicleCargo | ContainerCargo | LclCargo,
    Field(discriminator="kind"),
]

_VARIANT_MODELS: dict[CargoType, type[_CargoBase]] = {
    CargoType.VEHICLE: VehicleCargo,
    CargoType.CONTAINER: ContainerCargo,
    CargoType.LCL: LclCargo,
}


def mode_for(cargo_type: CargoType | str) -> TransportMode:
    """RoRo for vehicles, Container for everything else."""
    if CargoType(cargo_type) is CargoType.VEHICLE:
        return TransportMode.RORO
    return TransportMode.CONTAINER


def _is_populated(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, BaseModel):
        return True
    if isinstance(value, Mapping):
        return any(v not in (None, "") for v in value.values())
    return bool(value)


def resolve_cargo(
    cargo_type: CargoType | str,
    candidates: Mapping[str, Any],
) -> VehicleCargo | ContainerCargo | LclCargo:
    """Return the single cargo variant matching *cargo_type*.

    *candidates* maps variant names (``vehicle``, ``container``, ``lcl``)
    to a payload dict, a variant model, or ``None``. An empty dict counts
    as absent.

    Raises:
        InvalidCargoComposition: Unknown cargo type, unknown variant key,
            zero or several populated variants, or a populated variant
            that is not *cargo_type*.
    """
    try:
        wanted = CargoType(cargo_type)
    except ValueError:
        raise InvalidCargoComposition(
            f"Unknown cargo type: {cargo_type!r}",
            cargo_type=str(cargo_type),
        ) from None

    unknown = sorted(set(candidates) - {t.value for t in CargoType})
    if unknown:
        raise InvalidCargoComposition(
            f"Unknown cargo variant(s): {', '.join(unknown)}",
            variants=unknown,
        )

    populated = [name for name, value in candidates.items() if _is_populated(value)]
    if len(populated) != 1:
        raise InvalidCargoComposition(
            f"Exactly one cargo variant must be populated, got {len(populated)}",
            cargo_type=wanted.value,
            populated=sorted(populated),
        )

    name = populated[0]
    if name != wanted.value:
        raise InvalidCargoComposition(
            f"Cargo type {wanted.value!r} does not match populated variant {name!r}",
            cargo_type=wanted.value,
            populated=[name],
        )

    payload = candidates[name]
    model_cls = _VARIANT_MODELS[wanted]
    if isinstance(payload, model_cls):
        return payload  # type: ignore[return-value]
    if isinstance(payload, BaseModel):
        raise InvalidCargoComposition(
            f"Payload for {name!r} is a {type(payload).__name__}",
            cargo_type=wanted.value,
        )
    data = {k: v for k, v in dict(payload).items() if k != "kind"}
    return model_cls.model_validate(data)  # type: ignore[return-value]


def cargo_candidates(cargo: VehicleCargo | ContainerCargo | LclCargo) -> dict[str, Any]:
    """Flatten a variant back into the ``{vehicle, container, lcl}`` shape."""
    out: dict[str, Any] = {t.value: None for t in CargoType}
    out[cargo.kind] = cargo.model_dump(exclude={"kind"})
    return out
