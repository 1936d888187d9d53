"""
Structured keys for skipped dispositions and run failures.
Use these keys in counters and log lines; map to user-facing messages in the CLI.
"""

NOT_CLOSED = "not_closed"
NO_LAYER_MAPPING = "no_layer_mapping"
NO_PLACEMENT = "no_placement"
OUTSIDE_SECTIONS = "outside_sections"
CONFIG_INVALID = "config_invalid"

USER_MESSAGES: dict[str, str] = {
    NOT_CLOSED: "Disposition outline is not closed or has fewer than 3 vertices.",
    NO_LAYER_MAPPING: "No text layer mapping for this disposition's purpose.",
    NO_PLACEMENT: "Every candidate overlaps an earlier label and forced placement is off.",
    OUTSIDE_SECTIONS: "Disposition lies outside the buffered section extents.",
    CONFIG_INVALID: "Settings file could not be read; defaults were used.",
}


def user_message(error_key: str | None, fallback: str = "Something went wrong.") -> str:
    """
    Short message for a skip or failure key, as written into warning log lines
    by placement, settings loading and the CLI. Empty or unknown keys give fallback.
    """
    if error_key and error_key in USER_MESSAGES:
        return USER_MESSAGES[error_key]
    return fallback
