"""Runtime configuration state management."""

# Global runtime configuration state
_config = {
    "carrier_category": "Queue",
    "segment_suffix": "-segment",
    "debug": False,
}


def set_carrier_category(value: str) -> None:
    _config["carrier_category"] = value


def get_carrier_category() -> str:
    return _config["carrier_category"]


def set_segment_suffix(value: str) -> None:
    _config["segment_suffix"] = value


def get_segment_suffix() -> str:
    return _config["segment_suffix"]


def set_debug(value: bool) -> None:
    _config["debug"] = value


def get_debug() -> bool:
    return _config["debug"]


def reset() -> None:
    """Restore the defaults (used by stop_tracing and tests)."""
    _config.update(
        carrier_category="Queue",
        segment_suffix="-segment",
        debug=False,
    )
