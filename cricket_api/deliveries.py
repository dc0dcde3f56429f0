# cricket_api/deliveries.py
from __future__ import annotations

from typing import Any, Iterable, List, Optional, Tuple

from cricket_api.errors import ValidationError
from cricket_api.models import EXTRA_TYPES, WICKET_KINDS, Delivery

# Callers (scoring UIs) send a bare "out" when they do not know the dismissal kind
DEFAULT_WICKET_KIND = "bowled"


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _require_int(name: str, value: Any, *, minimum: int, maximum: Optional[int] = None) -> int:
    if _is_missing(value):
        raise ValidationError(f"Missing required field: {name}", field=name)
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be an integer", field=name)
    try:
        out = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer, got {value!r}", field=name)

    if out < minimum or (maximum is not None and out > maximum):
        bounds = f">= {minimum}" if maximum is None else f"between {minimum} and {maximum}"
        raise ValidationError(f"{name} must be {bounds}, got {out}", field=name)
    return out


def _optional_int(name: str, value: Any, *, minimum: int = 0) -> int:
    if _is_missing(value):
        return 0
    return _require_int(name, value, minimum=minimum)


def _require_id(name: str, value: Any) -> str:
    if _is_missing(value):
        raise ValidationError(f"Missing required field: {name}", field=name)
    return str(value).strip()


def _optional_id(value: Any) -> Optional[str]:
    if _is_missing(value):
        return None
    return str(value).strip()


def normalize_extra_type(extra_type: Any) -> str:
    if _is_missing(extra_type):
        return "none"
    et = str(extra_type).strip().lower()
    if et == "none":
        return "none"
    if et not in EXTRA_TYPES:
        raise ValidationError(
            f"Invalid extra type: {extra_type}. Must be one of: {', '.join(EXTRA_TYPES)}",
            field="extra_type",
        )
    return et


def normalize_wicket_type(is_wicket: bool, wicket_type: Any) -> Optional[str]:
    """
    Not a wicket -> None.
    Wicket with no kind, or the literal "out" -> "bowled" (lenient default).
    Any other value must be a known dismissal kind.
    """
    if not is_wicket:
        return None
    if _is_missing(wicket_type):
        return DEFAULT_WICKET_KIND

    wt = str(wicket_type).strip().lower()
    if wt == "out":
        return DEFAULT_WICKET_KIND
    if wt not in WICKET_KINDS:
        raise ValidationError(
            f"Invalid wicket type: {wicket_type}. Must be one of: {', '.join(WICKET_KINDS)}",
            field="wicket_type",
        )
    return wt


def build_delivery(
    match_id: str,
    *,
    innings_number: Any = None,
    over_number: Any = None,
    ball_number: Any = None,
    bowler_id: Any = None,
    striker_id: Any = None,
    non_striker_id: Any = None,
    runs_scored: Any = 0,
    extra_type: Any = None,
    extra_runs: Any = 0,
    is_wicket: Any = False,
    wicket_type: Any = None,
    wicket_player_id: Any = None,
) -> Delivery:
    """
    Validate raw delivery input and return the canonical Delivery.

    Raises ValidationError naming the first missing/invalid field.
    """
    innings = _require_int("innings_number", innings_number, minimum=1, maximum=2)
    over = _require_int("over_number", over_number, minimum=0)
    ball = _require_int("ball_number", ball_number, minimum=1)
    bowler = _require_id("bowler_id", bowler_id)
    striker = _require_id("striker_id", striker_id)
    non_striker = _optional_id(non_striker_id)

    if non_striker is not None and non_striker == striker:
        raise ValidationError("striker_id and non_striker_id must be different", field="non_striker_id")

    runs = _optional_int("runs_scored", runs_scored)
    extra = normalize_extra_type(extra_type)
    extras = _optional_int("extra_runs", extra_runs)

    wicket = bool(is_wicket)
    kind = normalize_wicket_type(wicket, wicket_type)
    dismissed = _optional_id(wicket_player_id) if wicket else None

    return Delivery(
        match_id=str(match_id),
        innings_number=innings,
        over_number=over,
        ball_number=ball,
        bowler_id=bowler,
        striker_id=striker,
        non_striker_id=non_striker,
        runs_scored=runs,
        extra_type=extra,
        extra_runs=extras,
        is_wicket=wicket,
        wicket_type=kind,
        wicket_player_id=dismissed,
    )


def delivery_sort_key(d: Delivery) -> Tuple[int, int, int, int]:
    # Extras re-bowled with the same ball number keep submission order via sequence
    return (d.innings_number, d.over_number, d.ball_number, d.sequence or 0)


def sort_deliveries(deliveries: Iterable[Delivery]) -> List[Delivery]:
    return sorted(deliveries, key=delivery_sort_key)


def in_log_order(deliveries: Iterable[Delivery]) -> List[Delivery]:
    """Submission order (sequence), which is the order aggregates were built in."""
    return sorted(deliveries, key=lambda d: (d.sequence or 0))
