import math

from .errors import ArithmeticViolation
from .fixed_point import Q64, MIN_SQRT_PRICE, MAX_SQRT_PRICE, add_delta, div_round_up


class CurveState:
    """
    Price and liquidity of the active constant product curve.

    price_root: square root of the base/quote price, Q64.64
    ambient_seed: full range liquidity in seeds, worth ambient_seed * (1 + ambient_growth)
    concentrated: in range liquidity of the positions bracketing the current tick
    ambient_growth: fee growth compounded into every ambient seed, Q64.64
    conc_growth: ambient seeds earned per unit of concentrated liquidity, Q64.64
    conc_seeds: ambient seeds minted for concentrated liquidity and not yet paid to a range position
    """
    def __init__(
            self,
            price_root: int = 0,
            ambient_seed: int = 0,
            concentrated: int = 0,
            ambient_growth: int = 0,
            conc_growth: int = 0,
            conc_seeds: int = 0
    ):
        self.price_root = price_root
        self.ambient_seed = ambient_seed
        self.concentrated = concentrated
        self.ambient_growth = ambient_growth
        self.conc_growth = conc_growth
        self.conc_seeds = conc_seeds

    @property
    def ambient_liquidity(self) -> int:
        return inflate_seeds(self.ambient_seed, self.ambient_growth)

    @property
    def active_liquidity(self) -> int:
        return self.ambient_liquidity + self.concentrated

    def __repr__(self):
        return (
            f'CurveState(price_root={self.price_root}, ambient_seed={self.ambient_seed}, '
            f'concentrated={self.concentrated}, ambient_growth={self.ambient_growth}, '
            f'conc_growth={self.conc_growth}, conc_seeds={self.conc_seeds})'
        )


def inflate_seeds(seeds: int, growth: int) -> int:
    return seeds * (Q64 + growth) >> 64


def deflate_liquidity(liquidity: int, growth: int) -> int:
    return (liquidity << 64) // (Q64 + growth)


def base_flow(liquidity: int, price_a: int, price_b: int, round_up: bool = False) -> int:
    """Base tokens needed to move the curve between two square root prices."""
    numerator = liquidity * abs(price_b - price_a)
    return div_round_up(numerator, Q64) if round_up else numerator >> 64


def quote_flow(liquidity: int, price_a: int, price_b: int, round_up: bool = False) -> int:
    """Quote tokens needed to move the curve between two square root prices."""
    numerator = (liquidity << 64) * abs(price_b - price_a)
    denominator = price_a * price_b
    return div_round_up(numerator, denominator) if round_up else numerator // denominator


def liquidity_amounts(liquidity: int, price_root: int, lower_price: int, upper_price: int,
                      round_up: bool = False) -> tuple[int, int]:
    """Base and quote tokens backing `liquidity` over [lower_price, upper_price] at price_root."""
    if price_root <= lower_price:
        return 0, quote_flow(liquidity, lower_price, upper_price, round_up)
    if price_root >= upper_price:
        return base_flow(liquidity, lower_price, upper_price, round_up), 0
    return (
        base_flow(liquidity, lower_price, price_root, round_up),
        quote_flow(liquidity, price_root, upper_price, round_up)
    )


def ambient_amounts(liquidity: int, price_root: int, round_up: bool = False) -> tuple[int, int]:
    """Virtual reserves of full range liquidity at price_root."""
    if round_up:
        return div_round_up(liquidity * price_root, Q64), div_round_up(liquidity << 64, price_root)
    return liquidity * price_root >> 64, (liquidity << 64) // price_root


def calc_liq_inflator(reserve: int, fees: int) -> int:
    """sqrt(1 + fees / reserve) - 1 in Q64.64, rounded down."""
    return math.isqrt(((reserve + fees) << 128) // reserve) - Q64


def assimilate_fees(curve: CurveState, fees: int, in_base: bool) -> int:
    """
    Fold collected fees into the curve's liquidity. The fee side reserve grows by `fees`, so
    liquidity inflates by sqrt(1 + fees / reserve) and the price moves by the same factor
    toward the fee asset. Returns the liquidity inflator applied.
    """
    liquidity = curve.active_liquidity
    if fees == 0 or liquidity == 0:
        return 0
    base_reserve, quote_reserve = ambient_amounts(liquidity, curve.price_root, round_up=True)
    reserve = base_reserve if in_base else quote_reserve
    if reserve == 0:
        return 0
    inflator = calc_liq_inflator(reserve, fees)
    if inflator > 0:
        step_to_liquidity(curve, inflator, in_base)
    return inflator


def step_to_liquidity(curve: CurveState, inflator: int, in_base: bool):
    if in_base:
        price_root = curve.price_root * (Q64 + inflator) >> 64
    else:
        price_root = (curve.price_root << 64) // (Q64 + inflator)
    if price_root < MIN_SQRT_PRICE or price_root > MAX_SQRT_PRICE:
        raise ArithmeticViolation(f'fee assimilation pushed the price out of range: {price_root}')

    ambient_growth = ((Q64 + curve.ambient_growth) * (Q64 + inflator) >> 64) - Q64
    # concentrated liquidity earns its share as freshly minted ambient seeds
    conc_inflator = (inflator << 64) // (Q64 + ambient_growth)
    conc_seeds = curve.concentrated * conc_inflator >> 64
    curve.ambient_seed = add_delta(curve.ambient_seed, conc_seeds)
    curve.conc_seeds += conc_seeds
    curve.ambient_growth = ambient_growth
    curve.conc_growth += conc_inflator
    curve.price_root = price_root
