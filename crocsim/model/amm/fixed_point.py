import math

from mpmath import mp, mpf

from .errors import ArithmeticViolation

mp.dps = 50

# prices are square roots in Q64.64, growth rates are Q16.64 fractions above 1.0
Q64 = 1 << 64
Q128 = 1 << 128
MAX_UINT128 = Q128 - 1

TICK_INCREMENT = 1 + 1e-4
MIN_TICK = -665454
MAX_TICK = 831818

_ODD_TICK_RATIO = 0xfffcb933bd6fad37aa2d162d1a594001
_TICK_MULTIPLIERS = (
    (2 ** 1, 0xfff97272373d413259a46990580e213a),
    (2 ** 2, 0xfff2e50f5f656932ef12357cf3c7fdcc),
    (2 ** 3, 0xffe5caca7e10e4e61c3624eaa0941cd0),
    (2 ** 4, 0xffcb9843d60f6159c9db58835c926644),
    (2 ** 5, 0xff973b41fa98c081472e6896dfb254c0),
    (2 ** 6, 0xff2ea16466c96a3843ec78b326b52861),
    (2 ** 7, 0xfe5dee046a99a2a811c461f1969c3053),
    (2 ** 8, 0xfcbe86c7900a88aedcffc83b479aa3a4),
    (2 ** 9, 0xf987a7253ac413176f2b074cf7815e54),
    (2 ** 10, 0xf3392b0822b70005940c7a398e4b70f3),
    (2 ** 11, 0xe7159475a2c29b7443b29c7fa6e889d9),
    (2 ** 12, 0xd097f3bdfd2022b8845ad8f792aa5825),
    (2 ** 13, 0xa9f746462d870fdf8a65dc1f90e061e5),
    (2 ** 14, 0x70d869a156d2a1b890bb3df62baf32f7),
    (2 ** 15, 0x31be135f97d08fd981231505542fcfa6),
    (2 ** 16, 0x9aa508b5b7a84e1c677de54f3e99bc9),
    (2 ** 17, 0x5d6af8dedb81196699c329225ee604),
    (2 ** 18, 0x2216e584f5fa1ea926041bedfe98),
    (2 ** 19, 0x48a170391f7dc42444e8fa2),
)


def get_sqrt_ratio_at_tick(tick: int) -> int:
    """
    Square root price of 1.0001 ** tick in Q64.64, rounded up.
    """
    if tick < MIN_TICK or tick > MAX_TICK:
        raise ValueError(f'tick {tick} is outside [{MIN_TICK}, {MAX_TICK}]')
    abs_tick = abs(tick)
    ratio = _ODD_TICK_RATIO if abs_tick & 1 else Q128
    for bit, multiplier in _TICK_MULTIPLIERS:
        if abs_tick & bit:
            ratio = (ratio * multiplier) >> 128

    if tick > 0:
        ratio = (1 << 256) // ratio

    return (ratio >> 64) + (1 if ratio % Q64 != 0 else 0)


MIN_SQRT_PRICE = get_sqrt_ratio_at_tick(MIN_TICK)
MAX_SQRT_PRICE = get_sqrt_ratio_at_tick(MAX_TICK)


def get_tick_at_sqrt_ratio(price_root: int) -> int:
    """
    Greatest tick whose square root price does not exceed price_root.
    """
    if price_root < MIN_SQRT_PRICE or price_root > MAX_SQRT_PRICE:
        raise ValueError(f'square root price {price_root} is outside the supported range')
    estimate = math.floor(2 * (math.log(price_root) - math.log(Q64)) / math.log(TICK_INCREMENT))
    tick = min(max(estimate, MIN_TICK), MAX_TICK)
    # the float estimate can be off by a tick or two either way
    while tick > MIN_TICK and get_sqrt_ratio_at_tick(tick) > price_root:
        tick -= 1
    while tick < MAX_TICK and get_sqrt_ratio_at_tick(tick + 1) <= price_root:
        tick += 1
    return tick


def to_sqrt_price(price) -> int:
    return int(mp.sqrt(mpf(price)) * Q64)


def from_sqrt_price(price_root: int) -> mpf:
    return (mpf(price_root) / Q64) ** 2


def to_fixed_growth(growth) -> int:
    return int(mpf(growth) * Q64)


def from_fixed_growth(growth: int) -> mpf:
    return mpf(growth) / Q64


def add_delta(liquidity: int, delta: int) -> int:
    """Apply a signed liquidity delta, reverting on underflow or 128-bit overflow."""
    result = liquidity + delta
    if result < 0:
        raise ArithmeticViolation(f'liquidity underflow: {liquidity} + ({delta})')
    if result > MAX_UINT128:
        raise ArithmeticViolation(f'liquidity overflow: {liquidity} + {delta}')
    return result


def div_round_up(numerator: int, denominator: int) -> int:
    return -(-numerator // denominator)
