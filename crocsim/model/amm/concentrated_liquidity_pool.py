import copy
import logging
from contextlib import contextmanager
from typing import Any, Callable

from mpmath import mpf

from .curve import CurveState, ambient_amounts, deflate_liquidity, inflate_seeds, liquidity_amounts
from .errors import (
    ArithmeticViolation, AuthorizationError, PoolAlreadyInitialized, PoolNotInitialized, ReentrancyError,
    SettlementShortfall
)
from .exchange import Exchange
from .fixed_point import (
    MAX_SQRT_PRICE, MAX_TICK, MIN_SQRT_PRICE, MIN_TICK, add_delta, from_sqrt_price, get_sqrt_ratio_at_tick,
    get_tick_at_sqrt_ratio
)
from .level_book import BookLevel, LevelBook
from .position_registrar import PositionRegistrar, RangePosition
from .protocol_account import ProtocolAccount
from .swap_curve import FEE_RATE_DENOMINATOR, SwapAccum, SwapFrame, swap_to_limit
from .tick_census import TickCensus
from .vault import TokenVault

logger = logging.getLogger('crocsim').getChild('pool')

MAX_PROTO_CUT = 255

# settle(base_owed, quote_owed, data) must move the owed tokens into the pool's vault
SettleHook = Callable[[int, int, Any], None]


class PoolState:
    """Everything a pool operation may change, staged and committed as one unit."""
    def __init__(self, fee_rate: int = 0, proto_cut: int = 0):
        self.curve = CurveState()
        self.tick = 0
        self.census = TickCensus()
        self.levels = LevelBook(self.census)
        self.positions = PositionRegistrar()
        self.protocol = ProtocolAccount()
        self.fee_rate = fee_rate
        self.proto_cut = proto_cut

    def copy(self):
        return copy.deepcopy(self)


class ConcentratedLiquidityPool(Exchange):
    def __init__(
            self,
            vault: TokenVault,
            base: str = 'BASE',
            quote: str = 'QUOTE',
            fee_rate: int = 0,
            proto_cut: int = 0,
            authority: str = '',
            unique_id: str = 'pool'
    ):
        """
        A single base/quote pair with full range (ambient) and range bound (concentrated)
        liquidity on one constant product curve.

        vault: custody of the pool's token balances
        fee_rate: swap fee in parts per million, charged on the counter side of each swap
        proto_cut: the protocol keeps total fee // proto_cut, 0 disables the protocol take
        authority: the only principal allowed to change the protocol cut or collect its fees
        """
        if base == quote:
            raise ValueError('base and quote must be different assets')
        _validate_fee_rate(fee_rate)
        _validate_proto_cut(proto_cut)
        self.vault = vault
        self.base = base
        self.quote = quote
        self.asset_list = [base, quote]
        self.authority = authority
        self.unique_id = unique_id
        self.state = PoolState(fee_rate, proto_cut)
        self._locked = False

    def __repr__(self):
        return (
            f'ConcentratedLiquidityPool: {self.unique_id}\n'
            f'********************************\n'
            f'price: {self.price()} {self.base}/{self.quote}, tick: {self.tick}\n'
            f'liquidity: ambient {self.ambient_liquidity}, concentrated {self.concentrated_liquidity}\n'
            f'fee rate: {self.fee_rate} ppm, protocol cut: {self.proto_cut}\n'
        )

    @contextmanager
    def _lock(self):
        if self._locked:
            raise ReentrancyError(f'pool {self.unique_id} is locked by an operation in progress')
        self._locked = True
        try:
            yield
        finally:
            self._locked = False

    # read only queries

    @property
    def curve(self) -> CurveState:
        return self.state.curve

    @property
    def price_root(self) -> int:
        return self.state.curve.price_root

    @property
    def tick(self) -> int:
        return self.state.tick

    @property
    def liquidity(self) -> int:
        return self.state.curve.active_liquidity

    @property
    def ambient_liquidity(self) -> int:
        return self.state.curve.ambient_liquidity

    @property
    def concentrated_liquidity(self) -> int:
        return self.state.curve.concentrated

    @property
    def fee_rate(self) -> int:
        return self.state.fee_rate

    @property
    def proto_cut(self) -> int:
        return self.state.proto_cut

    @property
    def fee(self) -> float:
        return self.state.fee_rate / FEE_RATE_DENOMINATOR

    @property
    def protocol_fees(self) -> tuple[int, int]:
        return self.state.protocol.base_fees, self.state.protocol.quote_fees

    def terminal_bitmap(self, tick: int) -> int:
        return self.state.census.terminal_bitmap(tick)

    def mezzanine_bitmap(self, tick: int) -> int:
        return self.state.census.mezzanine_bitmap(tick)

    def level(self, tick: int) -> BookLevel:
        return self.state.levels.level(tick)

    def position(self, owner: str, lower: int, upper: int) -> RangePosition:
        return self.state.positions.position(owner, lower, upper)

    def ambient_position(self, owner: str) -> int:
        return self.state.positions.ambient_position(owner)

    def price(self, tkn: str = None, numeraire: str = '') -> mpf:
        """
        Spot price of tkn in numeraire. With no arguments, the price of quote in base.
        """
        tkn = tkn or self.quote
        if tkn not in self.asset_list:
            raise ValueError(f"Invalid token symbol. Token symbol must be {' or '.join(self.asset_list)}.")
        if numeraire and numeraire not in self.asset_list:
            raise ValueError(f"Invalid numeraire symbol. Numeraire must be {' or '.join(self.asset_list)}.")
        if tkn == numeraire:
            return mpf(1)
        if self.price_root == 0:
            return mpf(0)
        price = from_sqrt_price(self.price_root)
        return price if tkn == self.quote else 1 / price

    # state changing operations

    def initialize(self, price_root: int):
        with self._lock():
            if self.state.curve.price_root != 0:
                raise PoolAlreadyInitialized(f'pool {self.unique_id} is already initialized')
            if not MIN_SQRT_PRICE <= price_root < MAX_SQRT_PRICE:
                raise ValueError(f'initial square root price {price_root} is out of range')
            staged = self.state.copy()
            staged.curve.price_root = price_root
            staged.tick = get_tick_at_sqrt_ratio(price_root)
            self.state = staged
            logger.info(f'initialized {self.unique_id} at price root {price_root}, tick {staged.tick}')
        return self

    def mint(
            self,
            owner: str,
            lower: int,
            upper: int,
            liquidity: int,
            settle: SettleHook = None,
            data=None
    ) -> tuple[int, int]:
        """
        Add concentrated liquidity to [lower, upper). Returns the base and quote owed, which the
        settle hook must deliver before the call returns.
        """
        with self._lock():
            self._require_initialized()
            _validate_range(lower, upper)
            _validate_liquidity(liquidity)
            staged = self.state.copy()
            curve = staged.curve

            mileage = staged.levels.add_book_liq(staged.tick, lower, upper, liquidity, curve.conc_growth)
            staged.positions.add_liquidity(owner, lower, upper, liquidity, mileage)
            if lower <= staged.tick < upper:
                curve.concentrated = add_delta(curve.concentrated, liquidity)

            base_owed, quote_owed = liquidity_amounts(
                liquidity, curve.price_root, get_sqrt_ratio_at_tick(lower), get_sqrt_ratio_at_tick(upper),
                round_up=True
            )
            self._settle(owner, base_owed, quote_owed, settle, data)
            self.state = staged
            logger.debug(f'{owner} minted {liquidity} in [{lower}, {upper}) for {base_owed}, {quote_owed}')
            return base_owed, quote_owed

    def burn(
            self,
            owner: str,
            lower: int,
            upper: int,
            liquidity: int,
            recipient: str = None
    ) -> tuple[int, int]:
        """
        Remove concentrated liquidity from the owner's [lower, upper) position and pay out the
        principal plus accrued rewards. Returns the signed flows, negative for paid by the pool.
        """
        recipient = recipient or owner
        with self._lock():
            self._require_initialized()
            _validate_range(lower, upper)
            _validate_liquidity(liquidity)
            staged = self.state.copy()
            curve = staged.curve

            position = staged.positions.position(owner, lower, upper)
            if position is None or position.liquidity < liquidity:
                held = position.liquidity if position else 0
                raise ArithmeticViolation(
                    f'{owner} holds {held} liquidity in [{lower}, {upper}), cannot burn {liquidity}'
                )
            mileage = staged.levels.clock_fee_odometer(staged.tick, lower, upper, curve.conc_growth)
            _, reward_seeds = staged.positions.remove_liquidity(owner, lower, upper, liquidity, mileage)
            staged.levels.remove_book_liq(staged.tick, lower, upper, liquidity, curve.conc_growth)
            if lower <= staged.tick < upper:
                curve.concentrated = add_delta(curve.concentrated, -liquidity)

            base_paid, quote_paid = liquidity_amounts(
                liquidity, curve.price_root, get_sqrt_ratio_at_tick(lower), get_sqrt_ratio_at_tick(upper)
            )
            # per position claims round independently of the per step mints, so they are paid out of
            # the concentrated reward pool only and never out of ambient positions' seeds
            reward_seeds = min(reward_seeds, curve.conc_seeds)
            if reward_seeds > 0:
                curve.conc_seeds -= reward_seeds
                curve.ambient_seed = add_delta(curve.ambient_seed, -reward_seeds)
                reward_base, reward_quote = ambient_amounts(
                    inflate_seeds(reward_seeds, curve.ambient_growth), curve.price_root
                )
                base_paid += reward_base
                quote_paid += reward_quote

            self._settle(recipient, -base_paid, -quote_paid)
            self.state = staged
            logger.debug(
                f'{owner} burned {liquidity} in [{lower}, {upper}) for {base_paid}, {quote_paid} '
                f'including {reward_seeds} reward seeds'
            )
            return -base_paid, -quote_paid

    def mint_ambient(self, owner: str, liquidity: int, settle: SettleHook = None, data=None) -> tuple[int, int]:
        with self._lock():
            self._require_initialized()
            _validate_liquidity(liquidity)
            staged = self.state.copy()
            curve = staged.curve

            seeds = deflate_liquidity(liquidity, curve.ambient_growth)
            if seeds == 0:
                raise ValueError(f'liquidity {liquidity} is worth less than one ambient seed')
            curve.ambient_seed = add_delta(curve.ambient_seed, seeds)
            staged.positions.add_ambient(owner, seeds)

            base_owed, quote_owed = ambient_amounts(liquidity, curve.price_root, round_up=True)
            self._settle(owner, base_owed, quote_owed, settle, data)
            self.state = staged
            logger.debug(f'{owner} minted {liquidity} ambient liquidity ({seeds} seeds)')
            return base_owed, quote_owed

    def burn_ambient(self, owner: str, liquidity: int, recipient: str = None) -> tuple[int, int]:
        recipient = recipient or owner
        with self._lock():
            self._require_initialized()
            _validate_liquidity(liquidity)
            staged = self.state.copy()
            curve = staged.curve

            seeds = deflate_liquidity(liquidity, curve.ambient_growth)
            staged.positions.remove_ambient(owner, seeds)
            curve.ambient_seed = add_delta(curve.ambient_seed, -seeds)

            base_paid, quote_paid = ambient_amounts(inflate_seeds(seeds, curve.ambient_growth), curve.price_root)
            self._settle(recipient, -base_paid, -quote_paid)
            self.state = staged
            logger.debug(f'{owner} burned {liquidity} ambient liquidity ({seeds} seeds)')
            return -base_paid, -quote_paid

    def swap(
            self,
            recipient: str,
            is_buy: bool,
            in_base_qty: bool,
            qty: int,
            limit_price: int,
            settle: SettleHook = None,
            data=None
    ) -> tuple[int, int]:
        """
        Swap up to qty (denominated in base if in_base_qty, else quote) without moving the square
        root price past limit_price. A buy pays base and receives quote. Returns the signed base
        and quote flows: positive amounts are owed by the trader through the settle hook,
        negative amounts are paid to the recipient.
        """
        with self._lock():
            self._require_initialized()
            if qty <= 0:
                raise ValueError('swap quantity must be positive')
            staged = self.state.copy()
            limit = min(max(limit_price, MIN_SQRT_PRICE), MAX_SQRT_PRICE)

            frame = SwapFrame(is_buy, in_base_qty, staged.fee_rate, staged.proto_cut)
            accum = SwapAccum(qty, frame)
            self._sweep_swap_liq(staged, accum, limit)
            staged.protocol.accumulate(accum.paid_proto, is_base=not in_base_qty)

            self._settle(recipient, accum.paid_base, accum.paid_quote, settle, data)
            self.state = staged
            logger.debug(
                f'swap {"buy" if is_buy else "sell"} {qty} {self.base if in_base_qty else self.quote}: '
                f'{accum.paid_base} base, {accum.paid_quote} quote, {accum.qty_left} left unfilled'
            )
            return accum.paid_base, accum.paid_quote

    def set_protocol_fee_share(self, caller: str, proto_cut: int):
        with self._lock():
            self._require_authority(caller)
            _validate_proto_cut(proto_cut)
            staged = self.state.copy()
            staged.proto_cut = proto_cut
            self.state = staged
            logger.info(f'protocol cut of {self.unique_id} set to {proto_cut}')
        return self

    def collect_protocol_fees(self, caller: str, recipient: str) -> tuple[int, int]:
        with self._lock():
            self._require_authority(caller)
            staged = self.state.copy()
            base_fees, quote_fees = staged.protocol.disburse(recipient)
            self._settle(recipient, -base_fees, -quote_fees)
            self.state = staged
            return base_fees, quote_fees

    # internals

    def _sweep_swap_liq(self, staged: PoolState, accum: SwapAccum, limit: int):
        curve = staged.curve
        census = staged.census
        is_buy = accum.frame.is_buy

        while _has_swap_left(curve, accum, limit):
            start_price = curve.price_root
            bump_tick, spills = census.pin_bitmap(is_buy, staged.tick)
            swap_to_limit(curve, accum, bump_tick, limit)

            if spills and _has_swap_left(curve, accum, limit):
                bump_tick = census.seek_mezz_spill(bump_tick, is_buy)
                # the next boundary may sit on the spilled border itself, leaving nothing to walk
                if curve.price_root != get_sqrt_ratio_at_tick(bump_tick):
                    swap_to_limit(curve, accum, bump_tick, limit)

            logger.debug(f'step toward tick {bump_tick} (spills={spills}) reached {curve.price_root}')
            at_level = curve.price_root == get_sqrt_ratio_at_tick(bump_tick) and census.is_initialized(bump_tick)
            if at_level and _has_swap_left(curve, accum, limit):
                delta = staged.levels.cross_level(bump_tick, is_buy, curve.conc_growth)
                curve.concentrated = add_delta(curve.concentrated, delta)
                staged.tick = bump_tick if is_buy else bump_tick - 1
            elif curve.price_root != start_price:
                # no initialized tick was crossed, so the tick stays on its side of the bump
                tick = get_tick_at_sqrt_ratio(curve.price_root)
                if at_level and is_buy:
                    tick = bump_tick - 1
                staged.tick = max(tick, staged.tick) if is_buy else min(tick, staged.tick)

    def _settle(self, recipient: str, base_flow: int, quote_flow: int, settle: SettleHook = None, data=None):
        """
        Pay negative flows to the recipient, then call the settle hook for positive flows and
        verify by balance delta that the vault received at least what is owed. Any failure
        rolls the vault back.
        """
        with self.vault.transaction():
            for asset, flow in ((self.base, base_flow), (self.quote, quote_flow)):
                if flow < 0:
                    before = self.vault.balance_of(asset)
                    self.vault.push(asset, recipient, -flow)
                    if before - self.vault.balance_of(asset) != -flow:
                        raise SettlementShortfall(f'push of {-flow} {asset} to {recipient} did not settle')

            base_owed, quote_owed = max(base_flow, 0), max(quote_flow, 0)
            if base_owed == 0 and quote_owed == 0:
                return
            if settle is None:
                raise SettlementShortfall(f'{base_owed} base and {quote_owed} quote owed with no settle hook')
            base_before = self.vault.balance_of(self.base)
            quote_before = self.vault.balance_of(self.quote)
            settle(base_owed, quote_owed, data)
            base_received = self.vault.balance_of(self.base) - base_before
            quote_received = self.vault.balance_of(self.quote) - quote_before
            if base_received < base_owed or quote_received < quote_owed:
                raise SettlementShortfall(
                    f'owed {base_owed} base and {quote_owed} quote, '
                    f'received {base_received} base and {quote_received} quote'
                )

    def _require_initialized(self):
        if self.state.curve.price_root == 0:
            raise PoolNotInitialized(f'pool {self.unique_id} has not been initialized')

    def _require_authority(self, caller: str):
        if not self.authority or caller != self.authority:
            raise AuthorizationError(f'{caller} is not the authority of pool {self.unique_id}')


def _has_swap_left(curve: CurveState, accum: SwapAccum, limit: int) -> bool:
    if accum.qty_left <= 0:
        return False
    if accum.frame.is_buy:
        return curve.price_root < limit
    return curve.price_root > limit


def _validate_range(lower: int, upper: int):
    if not MIN_TICK < lower < upper < MAX_TICK:
        raise ValueError(
            f'invalid tick range [{lower}, {upper}), ticks must satisfy {MIN_TICK} < lower < upper < {MAX_TICK}'
        )


def _validate_liquidity(liquidity: int):
    if not isinstance(liquidity, int) or liquidity <= 0:
        raise ValueError(f'liquidity must be a positive integer, got {liquidity}')


def _validate_fee_rate(fee_rate: int):
    if not isinstance(fee_rate, int) or not 0 <= fee_rate < FEE_RATE_DENOMINATOR:
        raise ValueError(f'fee_rate must be an integer in [0, {FEE_RATE_DENOMINATOR}), got {fee_rate}')


def _validate_proto_cut(proto_cut: int):
    if not isinstance(proto_cut, int) or not 0 <= proto_cut <= MAX_PROTO_CUT:
        raise ValueError(f'proto_cut must be an integer in [0, {MAX_PROTO_CUT}], got {proto_cut}')
