import logging

from .errors import ArithmeticViolation
from .fixed_point import add_delta
from .tick_census import TickCensus

logger = logging.getLogger('crocsim').getChild('level_book')


class BookLevel:
    """
    Liquidity referencing one initialized tick. Ranges whose lower bound is the tick add bid
    lots, ranges whose upper bound is the tick add ask lots. The fee odometer holds the global
    concentrated growth accumulated on the far side of the tick from the current price.
    """
    def __init__(self, bid_lots: int = 0, ask_lots: int = 0, fee_odometer: int = 0):
        self.bid_lots = bid_lots
        self.ask_lots = ask_lots
        self.fee_odometer = fee_odometer

    @property
    def net_liquidity(self) -> int:
        """Liquidity added to the curve when price crosses the tick upward."""
        return self.bid_lots - self.ask_lots

    @property
    def gross_liquidity(self) -> int:
        return self.bid_lots + self.ask_lots

    def __repr__(self):
        return (
            f'BookLevel(bid_lots={self.bid_lots}, ask_lots={self.ask_lots}, '
            f'fee_odometer={self.fee_odometer})'
        )


class LevelBook:
    def __init__(self, census: TickCensus = None):
        self.levels: dict[int, BookLevel] = {}
        self.census = census or TickCensus()

    def level(self, tick: int) -> BookLevel:
        return self.levels.get(tick)

    def add_level_liquidity(self, tick: int, liquidity: int, is_bid: bool, fee_mileage: int) -> bool:
        """
        Returns True when the tick was newly initialized. A new level starts its odometer at the
        current global mileage, so rewards are only counted from this point on.
        """
        if liquidity <= 0:
            raise ValueError('liquidity added to a level must be positive')
        level = self.levels.get(tick)
        fresh = level is None
        if fresh:
            level = BookLevel(fee_odometer=fee_mileage)
            self.levels[tick] = level
            self.census.bookmark_tick(tick)
            logger.debug(f'initialized tick {tick} at mileage {fee_mileage}')
        if is_bid:
            level.bid_lots = add_delta(level.bid_lots, liquidity)
        else:
            level.ask_lots = add_delta(level.ask_lots, liquidity)
        return fresh

    def remove_level_liquidity(self, tick: int, liquidity: int, is_bid: bool) -> bool:
        """Returns True when the level emptied out and the tick was uninitialized."""
        level = self.levels.get(tick)
        if level is None:
            raise ArithmeticViolation(f'no liquidity is referenced at tick {tick}')
        if is_bid:
            level.bid_lots = add_delta(level.bid_lots, -liquidity)
        else:
            level.ask_lots = add_delta(level.ask_lots, -liquidity)
        if level.gross_liquidity == 0:
            del self.levels[tick]
            self.census.forget_tick(tick)
            logger.debug(f'cleared tick {tick}')
            return True
        return False

    def add_book_liq(self, mid_tick: int, lower: int, upper: int, liquidity: int, fee_mileage: int) -> int:
        """Reference a range on both of its bounding levels. Returns the fee mileage inside the range."""
        self.add_level_liquidity(lower, liquidity, True, fee_mileage)
        self.add_level_liquidity(upper, liquidity, False, fee_mileage)
        return self.clock_fee_odometer(mid_tick, lower, upper, fee_mileage)

    def remove_book_liq(self, mid_tick: int, lower: int, upper: int, liquidity: int, fee_mileage: int) -> int:
        """Inverse of add_book_liq. The inside mileage is read before either level is cleared."""
        odometer = self.clock_fee_odometer(mid_tick, lower, upper, fee_mileage)
        self.remove_level_liquidity(lower, liquidity, True)
        self.remove_level_liquidity(upper, liquidity, False)
        return odometer

    def cross_level(self, tick: int, is_buy: bool, fee_mileage: int) -> int:
        """
        Cross an initialized tick, flipping its odometer to the other side of the price. Returns
        the signed change to the curve's concentrated liquidity: +net when crossing upward and
        -net when crossing downward.
        """
        level = self.levels.get(tick)
        if level is None:
            return 0
        level.fee_odometer = fee_mileage - level.fee_odometer
        delta = level.net_liquidity if is_buy else -level.net_liquidity
        logger.debug(f'crossed tick {tick} {"up" if is_buy else "down"}, liquidity delta {delta}')
        return delta

    def clock_fee_odometer(self, mid_tick: int, lower: int, upper: int, fee_mileage: int) -> int:
        """Global mileage accumulated while the price was inside [lower, upper)."""
        lower_odometer = self.levels[lower].fee_odometer
        upper_odometer = self.levels[upper].fee_odometer
        below = lower_odometer if lower <= mid_tick else fee_mileage - lower_odometer
        above = upper_odometer if upper > mid_tick else fee_mileage - upper_odometer
        return fee_mileage - below - above
