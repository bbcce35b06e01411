import logging

from .curve import CurveState, assimilate_fees, base_flow, quote_flow
from .errors import ArithmeticViolation
from .fixed_point import div_round_up, get_sqrt_ratio_at_tick

logger = logging.getLogger('crocsim').getChild('swap_curve')

FEE_RATE_DENOMINATOR = 1_000_000


class SwapFrame:
    """
    Fixed parameters of one swap.

    is_buy: pay base, receive quote, price moves up
    in_base_qty: the requested quantity is denominated in base (otherwise in quote)
    fee_rate: parts per million charged on the counter side flow
    proto_cut: the protocol takes total fee // proto_cut (0 for none)
    """
    def __init__(self, is_buy: bool, in_base_qty: bool, fee_rate: int = 0, proto_cut: int = 0):
        self.is_buy = is_buy
        self.in_base_qty = in_base_qty
        self.fee_rate = fee_rate
        self.proto_cut = proto_cut


class SwapAccum:
    """Running totals of a swap. Flows are positive when owed to the pool."""
    def __init__(self, qty_left: int, frame: SwapFrame, paid_base: int = 0, paid_quote: int = 0,
                 paid_proto: int = 0):
        self.qty_left = qty_left
        self.frame = frame
        self.paid_base = paid_base
        self.paid_quote = paid_quote
        self.paid_proto = paid_proto

    def __repr__(self):
        return (
            f'SwapAccum(qty_left={self.qty_left}, paid_base={self.paid_base}, '
            f'paid_quote={self.paid_quote}, paid_proto={self.paid_proto})'
        )


def swap_to_limit(curve: CurveState, accum: SwapAccum, bump_tick: int, limit_price: int):
    """
    Execute as much of the swap as the curve allows without passing the price of bump_tick
    or limit_price. Fees are charged on the counter flow to that bound and assimilated into
    the curve before the quantity is swept. No tick crossing is performed here.
    """
    swap_to_price(curve, accum, get_sqrt_ratio_at_tick(bump_tick), limit_price)


def swap_to_price(curve: CurveState, accum: SwapAccum, bump_price: int, limit_price: int):
    limit = determine_limit(bump_price, limit_price, accum.frame.is_buy)
    fee_base, fee_quote, fee_proto = book_exch_fees(curve, accum, limit)
    base, quote = swap_over_curve(curve, accum, limit)
    accum.paid_base += base + fee_base
    accum.paid_quote += quote + fee_quote
    accum.paid_proto += fee_proto
    logger.debug(f'swept to {curve.price_root} toward {limit}, {accum}')


def determine_limit(bump_price: int, limit_price: int, is_buy: bool) -> int:
    return min(bump_price, limit_price) if is_buy else max(bump_price, limit_price)


def vig_over_flow(flow: int, fee_rate: int, proto_cut: int) -> tuple[int, int]:
    """Split the fee on `flow` into the liquidity provider part and the protocol part."""
    total_fee = flow * fee_rate // FEE_RATE_DENOMINATOR
    proto_fee = total_fee // proto_cut if proto_cut > 0 else 0
    return total_fee - proto_fee, proto_fee


def book_exch_fees(curve: CurveState, accum: SwapAccum, limit: int) -> tuple[int, int, int]:
    frame = accum.frame
    if frame.fee_rate == 0:
        return 0, 0, 0
    _, _, counter_flow = sweep_flows(curve.active_liquidity, curve.price_root, accum.qty_left, limit,
                                     frame.is_buy, frame.in_base_qty)
    liq_fee, proto_fee = vig_over_flow(counter_flow, frame.fee_rate, frame.proto_cut)
    fees_in_base = not frame.in_base_qty
    assimilate_fees(curve, liq_fee, fees_in_base)
    total_fee = liq_fee + proto_fee
    if fees_in_base:
        return total_fee, 0, proto_fee
    return 0, total_fee, proto_fee


def swap_over_curve(curve: CurveState, accum: SwapAccum, limit: int) -> tuple[int, int]:
    """Sweep the remaining quantity toward `limit`. Returns signed (base, quote) flows."""
    frame = accum.frame
    next_price, denom_flow, counter_flow = sweep_flows(
        curve.active_liquidity, curve.price_root, accum.qty_left, limit, frame.is_buy, frame.in_base_qty
    )
    if denom_flow > accum.qty_left:
        raise ArithmeticViolation(f'sweep consumed {denom_flow} of {accum.qty_left} remaining')
    curve.price_root = next_price
    accum.qty_left -= denom_flow

    base, quote = (denom_flow, counter_flow) if frame.in_base_qty else (counter_flow, denom_flow)
    return (base, -quote) if frame.is_buy else (-base, quote)


def sweep_flows(liquidity: int, price_root: int, qty: int, limit: int, is_buy: bool,
                in_base: bool) -> tuple[int, int, int]:
    """
    Price reached by swapping at most `qty` toward `limit`, the denominated flow consumed and
    the counter flow. Flows into the pool round up, flows out round down.
    """
    if (is_buy and limit <= price_root) or (not is_buy and limit >= price_root):
        return price_root, 0, 0
    if liquidity == 0:
        return limit, 0, 0

    # buys pay in base, sells pay in quote
    denom_is_input = in_base == is_buy
    flow = base_flow if in_base else quote_flow
    counter = quote_flow if in_base else base_flow

    to_limit = flow(liquidity, price_root, limit, round_up=denom_is_input)
    if to_limit <= qty:
        next_price, denom_flow = limit, to_limit
    else:
        next_price = price_after_flow(liquidity, price_root, qty, is_buy, in_base)
        next_price = min(next_price, limit) if is_buy else max(next_price, limit)
        denom_flow = qty
    counter_flow = counter(liquidity, price_root, next_price, round_up=not denom_is_input)
    return next_price, denom_flow, counter_flow


def price_after_flow(liquidity: int, price_root: int, qty: int, is_buy: bool, in_base: bool) -> int:
    """Square root price after `qty` of the denominated token flows, rounded in the pool's favour."""
    if in_base:
        if is_buy:
            return price_root + (qty << 64) // liquidity
        return price_root - div_round_up(qty << 64, liquidity)
    reserve_term = liquidity << 64
    if is_buy:
        return div_round_up(reserve_term * price_root, reserve_term - qty * price_root)
    return div_round_up(reserve_term * price_root, reserve_term + qty * price_root)
