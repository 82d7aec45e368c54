"""Random process engine.

Evolves an instrument's state with a geometric-Brownian-motion style update.
The engine is pure: it only reads the given state, draws from the injected
random source and returns a new state. It never raises for a state built from
a validated ``GeneratorConfig``.
"""

from __future__ import annotations

import math
import random
from decimal import ROUND_HALF_UP, Decimal

from .config import GeneratorConfig
from .models import GeneratorState

PRICE_FLOOR = 0.1
CLAMPED_PRICE = 1.0
SPREAD_MIN = 0.01
SPREAD_MAX = 0.2
SHARE_STEP_BOUND = 100

_FOUR_PLACES = Decimal("0.0001")
# math.exp overflows just above 709
_MAX_EXPONENT = 700.0


def round_price(value: float) -> float:
    """Round to four decimal places, halves away from zero."""
    return float(Decimal(repr(value)).quantize(_FOUR_PLACES, rounding=ROUND_HALF_UP))


def clamp_price(value: float) -> float:
    """Replace any price at or below the floor with the clamped price."""
    return CLAMPED_PRICE if value <= PRICE_FLOOR else value


def next_value(state: GeneratorState, z: float) -> float:
    """Apply one Brownian step to the underlying value."""
    exponent = (state.mu - 0.5 * state.sigma * state.sigma) * state.dt + (
        state.sigma * state.value * z * math.sqrt(state.dt)
    )
    value = state.value * math.exp(min(exponent, _MAX_EXPONENT))
    if not math.isfinite(value):
        return state.value
    return value


def adjust_share(share: int, volume: int, rng: random.Random) -> int:
    """Randomly perturb the tradable share count, keeping it in [0, volume].

    The step is drawn from [0, 100), so the decreasing branch below can never
    fire and shares only ever grow towards the volume.
    """
    if rng.random() < 0.5:
        step = rng.randrange(SHARE_STEP_BOUND)
        if step > 0 and share + step < volume:
            share += step
        elif step < 0 and share + step > 0:
            share += step
    return share


def evolve(state: GeneratorState, rng: random.Random) -> GeneratorState:
    """Compute the next state of an instrument.

    Args:
        state: Current state, left untouched
        rng: Random source used for the Gaussian step, spread and share draws

    Returns:
        The state after one tick
    """
    value = next_value(state, rng.gauss(0.0, 1.0))
    bid = value - rng.uniform(SPREAD_MIN, SPREAD_MAX)
    ask = value + rng.uniform(SPREAD_MIN, SPREAD_MAX)

    value = clamp_price(round_price(value))
    bid = clamp_price(round_price(bid))
    ask = clamp_price(round_price(ask))

    return state.model_copy(
        update={
            "value": value,
            "bid": bid,
            "ask": ask,
            "share": adjust_share(state.share, state.volume, rng),
        }
    )


def initial_state(config: GeneratorConfig, rng: random.Random) -> GeneratorState:
    """Derive the starting state of an instrument from its configuration.

    Bid and ask are seeded within one percent of the opening price, and half of
    the volume starts out tradable.
    """
    price = config.price
    return GeneratorState(
        name=config.name,
        symbol=config.symbol or config.name,
        exchange=config.exchange,
        period=config.period,
        variation=config.variation,
        mu=config.mu,
        sigma=config.sigma,
        dt=config.dt,
        volume=config.volume,
        open=price,
        value=price,
        bid=price - rng.uniform(0.0, price / 100),
        ask=price + rng.uniform(0.0, price / 100),
        share=config.volume // 2,
    )
