def validate_positive_integer(type_: object, value: int | None) -> None:
    if value is not None and value < 1:
        raise ValueError("Value must be a positive integer")


def validate_non_negative_integer(type_: object, value: int) -> None:
    if value < 0:
        raise ValueError("Value cannot be negative")


def validate_positive_number(type_: object, value: float) -> None:
    if value <= 0:
        raise ValueError("Value must be greater than 0")


def validate_non_negative_number(type_: object, value: float) -> None:
    if value < 0:
        raise ValueError("Value cannot be negative")


def validate_gate_threshold(type_: object, value: float) -> None:
    """Validate that a relative gate threshold is in [1e-7, 1)."""
    if not 1e-7 <= value < 1.0:
        raise ValueError("Threshold must be at least 0.0000001 and less than 1")


def validate_db_level(type_: object, value: float) -> None:
    if not -100.0 <= value <= 0.0:
        raise ValueError("Level must be between -100 and 0 dB")


def validate_unit_level(type_: object, value: float) -> None:
    if not 0.0 <= value <= 1.0:
        raise ValueError("Level must be between 0 and 1")


def validate_tremolo_depth(type_: object, value: float) -> None:
    if not 0.0 < value <= 1.0:
        raise ValueError("Depth must be greater than 0 and at most 1")


def validate_vibrato_width(type_: object, value: float) -> None:
    if not 0.0 < value <= 100.0:
        raise ValueError("Width must be greater than 0 and at most 100 seconds")


def validate_vibrato_depth(type_: object, value: float) -> None:
    if not 0.0 < value <= 10000.0:
        raise ValueError("Depth must be greater than 0 and at most 10000 milliseconds")


def validate_compare_threshold(type_: object, value: float) -> None:
    """Validate that a comparison threshold is in [1e-20, 1]."""
    if not 1e-20 <= value <= 1.0:
        raise ValueError("Threshold must be between 0.00000000000000000001 and 1")


def validate_graph_range(type_: object, value: float) -> None:
    if not -1e10 <= value <= 1e10:
        raise ValueError("Amplitude must be between -10000000000 and 10000000000")
