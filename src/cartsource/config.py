"""
Configuration for cartsource components.

The core consumes these values; loading them from files or the environment
is the host process's job.
"""

from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal, InvalidOperation

DEFAULT_BACKEND_CONTEXT_TTL = timedelta(minutes=5)
DEFAULT_SESSION_MAX_IDLE = timedelta(hours=24)
DEFAULT_SWEEP_INTERVAL = timedelta(hours=1)
DEFAULT_TAX_RATE = Decimal("0.10")


def to_decimal_rate(value: Decimal | float | int | str) -> Decimal:
    """
    Coerce a tax rate to Decimal.

    Floats go through ``str`` so that ``0.1`` becomes ``Decimal("0.1")``
    rather than its binary approximation.

    Raises:
        ValueError: If the value cannot be interpreted as a number
    """
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"tax_rate must be numeric, got {value!r}") from e


@dataclass(frozen=True)
class CartSourceConfig:
    """
    Configuration for the session store, backend simulation and sweeper.

    Attributes:
        backend_context_ttl: Idle time after which a backend context handle expires
        session_max_idle: Idle time after which the sweeper discards a session
        sweep_interval: Delay between sweeps when a SessionSweeper is running
        tax_rate: Tax rate applied to the subtotal (e.g. Decimal("0.10"))
        enable_tracing: Whether components built from this config emit spans

    Example:
        >>> config = CartSourceConfig(
        ...     backend_context_ttl=timedelta(seconds=2),
        ...     tax_rate="0.08",
        ... )
        >>> config.tax_rate
        Decimal('0.08')
    """

    backend_context_ttl: timedelta = DEFAULT_BACKEND_CONTEXT_TTL
    session_max_idle: timedelta = DEFAULT_SESSION_MAX_IDLE
    sweep_interval: timedelta = DEFAULT_SWEEP_INTERVAL
    tax_rate: Decimal = DEFAULT_TAX_RATE
    enable_tracing: bool = True

    def __post_init__(self) -> None:
        """Validate configuration values."""
        object.__setattr__(self, "tax_rate", to_decimal_rate(self.tax_rate))

        for name in ("backend_context_ttl", "session_max_idle", "sweep_interval"):
            value = getattr(self, name)
            if not isinstance(value, timedelta):
                raise ValueError(f"{name} must be a timedelta, got {type(value).__name__}")
            if value <= timedelta(0):
                raise ValueError(f"{name} must be positive, got {value}")

        if not self.tax_rate.is_finite() or self.tax_rate < 0:
            raise ValueError(f"tax_rate must be a non-negative number, got {self.tax_rate}")
