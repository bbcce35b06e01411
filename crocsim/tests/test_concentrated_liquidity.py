import pytest
from hypothesis import given, settings
from mpmath import mp, mpf

from crocsim.model.amm.concentrated_liquidity_pool import ConcentratedLiquidityPool
from crocsim.model.amm.curve import inflate_seeds, liquidity_amounts, quote_flow
from crocsim.model.amm.errors import (
    ArithmeticViolation, AuthorizationError, PoolAlreadyInitialized, PoolNotInitialized, ReentrancyError,
    SettlementShortfall
)
from crocsim.model.amm.fixed_point import (
    MAX_SQRT_PRICE, MIN_SQRT_PRICE, get_sqrt_ratio_at_tick, get_tick_at_sqrt_ratio, to_sqrt_price
)
from crocsim.model.amm.vault import Agent, TokenVault
from crocsim.tests.strategies_curve import make_pool, pool_scenario, settle_from

mp.dps = 50


def p(tick):
    return get_sqrt_ratio_at_tick(tick)


def buy(pool, qty, limit=MAX_SQRT_PRICE, in_base=True, recipient='trader'):
    return pool.swap(recipient, True, in_base, qty, limit, settle_from(pool, 'trader'))


def sell(pool, qty, limit=MIN_SQRT_PRICE, in_base=False, recipient='trader'):
    return pool.swap(recipient, False, in_base, qty, limit, settle_from(pool, 'trader'))


def mint(pool, lower, upper, liquidity, owner='lp'):
    return pool.mint(owner, lower, upper, liquidity, settle_from(pool, owner))


def test_initialize():
    pool = ConcentratedLiquidityPool(TokenVault())
    with pytest.raises(PoolNotInitialized):
        pool.swap('trader', True, True, 1000, MAX_SQRT_PRICE)
    with pytest.raises(ValueError):
        pool.initialize(0)
    with pytest.raises(ValueError):
        pool.initialize(MAX_SQRT_PRICE)
    pool.initialize(to_sqrt_price(4))
    if float(pool.price()) != pytest.approx(4, rel=1e-15):
        raise AssertionError('Pool did not start at the initial price.')
    if float(pool.price('BASE', 'QUOTE')) != pytest.approx(0.25, rel=1e-15):
        raise AssertionError('Inverse price is wrong.')
    if pool.price('BASE', 'BASE') != 1:
        raise AssertionError('A token should be worth exactly one of itself.')
    if pool.tick != get_tick_at_sqrt_ratio(to_sqrt_price(4)):
        raise AssertionError('Tick does not match the initial price.')
    with pytest.raises(PoolAlreadyInitialized):
        pool.initialize(to_sqrt_price(2))
    with pytest.raises(ValueError):
        pool.price('DOT')


def test_constructor_validation():
    with pytest.raises(ValueError):
        ConcentratedLiquidityPool(TokenVault(), fee_rate=1000000)
    with pytest.raises(ValueError):
        ConcentratedLiquidityPool(TokenVault(), fee_rate=-1)
    with pytest.raises(ValueError):
        ConcentratedLiquidityPool(TokenVault(), proto_cut=256)
    with pytest.raises(ValueError):
        ConcentratedLiquidityPool(TokenVault(), base='DOT', quote='DOT')
    pool = ConcentratedLiquidityPool(TokenVault(), fee_rate=3000, proto_cut=4)
    if pool.fee != 0.003:
        raise AssertionError('Fee should be expressed as a fraction.')


def test_mint_in_range():
    pool = make_pool()
    liquidity = 10 ** 9
    base_owed, quote_owed = mint(pool, -100, 100, liquidity)

    expected_base = liquidity * (1 - mp.sqrt(mpf('1.0001') ** -100))
    expected_quote = liquidity * (1 - 1 / mp.sqrt(mpf('1.0001') ** 100))
    if base_owed != pytest.approx(float(expected_base), abs=2):
        raise AssertionError(f'Base owed {base_owed} does not match {expected_base}.')
    if quote_owed != pytest.approx(float(expected_quote), abs=2):
        raise AssertionError(f'Quote owed {quote_owed} does not match {expected_quote}.')
    if pool.concentrated_liquidity != liquidity or pool.liquidity != liquidity:
        raise AssertionError('In range liquidity should be active.')
    if pool.vault.balance_of('BASE') != base_owed or pool.vault.balance_of('QUOTE') != quote_owed:
        raise AssertionError('Vault did not receive the minted amounts.')
    if pool.vault.agent('lp').get_holdings('BASE') != 10 ** 18 - base_owed:
        raise AssertionError('LP was not charged.')
    if pool.terminal_bitmap(100) == 0 or pool.terminal_bitmap(-100) == 0:
        raise AssertionError('Range bounds were not bookmarked.')
    if pool.mezzanine_bitmap(100) == 0:
        raise AssertionError('Mezzanine bitmap was not updated.')
    if pool.level(-100).bid_lots != liquidity or pool.level(100).ask_lots != liquidity:
        raise AssertionError('Levels do not reference the position.')
    if pool.position('lp', -100, 100).liquidity != liquidity:
        raise AssertionError('Position was not registered.')


def test_mint_out_of_range():
    pool = make_pool()
    base_owed, quote_owed = mint(pool, 100, 200, 10 ** 9)
    if base_owed != 0 or quote_owed <= 0:
        raise AssertionError('A range above the price should be funded in quote only.')
    base_owed, quote_owed = mint(pool, -200, -100, 10 ** 9)
    if quote_owed != 0 or base_owed <= 0:
        raise AssertionError('A range below the price should be funded in base only.')
    if pool.concentrated_liquidity != 0:
        raise AssertionError('Out of range liquidity should not be active.')


def test_mint_validation():
    pool = make_pool()
    with pytest.raises(ValueError):
        mint(pool, 100, 100, 10 ** 9)
    with pytest.raises(ValueError):
        mint(pool, 200, 100, 10 ** 9)
    with pytest.raises(ValueError):
        mint(pool, -100, 100, 0)


def test_mint_burn_round_trip():
    pool = make_pool()
    base_owed, quote_owed = mint(pool, -100, 100, 10 ** 9)
    base_flow, quote_flow_ = pool.burn('lp', -100, 100, 10 ** 9)
    if not 0 <= base_owed + base_flow <= 1 or not 0 <= quote_owed + quote_flow_ <= 1:
        raise AssertionError('Burn should return the minted amounts, rounded in favor of the pool.')
    if pool.level(-100) is not None or pool.level(100) is not None:
        raise AssertionError('Empty levels should be cleared.')
    if pool.terminal_bitmap(100) != 0 or pool.terminal_bitmap(-100) != 0:
        raise AssertionError('Empty levels should be forgotten by the census.')
    if pool.concentrated_liquidity != 0:
        raise AssertionError('Burned liquidity is still active.')
    if pool.position('lp', -100, 100).liquidity != 0:
        raise AssertionError('Position should be empty.')


def test_burn_more_than_owned():
    pool = make_pool()
    mint(pool, -100, 100, 10 ** 9)
    before = pool.state
    with pytest.raises(ArithmeticViolation):
        pool.burn('lp', -100, 100, 10 ** 9 + 1)
    with pytest.raises(ArithmeticViolation):
        pool.burn('trader', -100, 100, 1)
    if pool.state is not before:
        raise AssertionError('A failed burn should not change the pool.')


def test_cross_ticks_upward():
    pool = make_pool()
    mint(pool, 100, 200, 5 * 10 ** 9)
    base_flow, quote_flow_ = buy(pool, 10 ** 12, limit=p(300))
    if pool.tick != 300 or pool.price_root != p(300):
        raise AssertionError(f'Swap should stop at the limit, landed on tick {pool.tick}.')
    if pool.concentrated_liquidity != 0:
        raise AssertionError('Liquidity should be inactive after crossing the whole range.')
    if base_flow <= 0 or quote_flow_ >= 0:
        raise AssertionError('A buy pays base and receives quote.')
    if -quote_flow_ > quote_flow(5 * 10 ** 9, p(100), p(200)):
        raise AssertionError('Trader received more quote than the range held.')


def test_stop_inside_range():
    pool = make_pool()
    mint(pool, 100, 200, 5 * 10 ** 9)
    buy(pool, 10 ** 12, limit=p(150))
    if pool.tick != 150 or pool.concentrated_liquidity != 5 * 10 ** 9:
        raise AssertionError('Range should be active with the price inside it.')


def test_cross_ticks_downward():
    pool = make_pool()
    mint(pool, 100, 200, 5 * 10 ** 9)
    buy(pool, 10 ** 12, limit=p(300))
    sell(pool, 10 ** 12, limit=p(50))
    if pool.tick != 50 or pool.price_root != p(50):
        raise AssertionError(f'Swap should stop at the limit, landed on tick {pool.tick}.')
    if pool.concentrated_liquidity != 0:
        raise AssertionError('Liquidity should be inactive after crossing back through the range.')


def test_limit_short_of_liquidity():
    pool = make_pool()
    mint(pool, 100, 200, 5 * 10 ** 9)
    flows = buy(pool, 10 ** 12, limit=p(50))
    if flows != (0, 0):
        raise AssertionError('Nothing should trade before reaching any liquidity.')
    if pool.tick != 50 or pool.concentrated_liquidity != 0:
        raise AssertionError('Price should move to the limit through empty space.')


def level_state(pool, tick):
    level = pool.level(tick)
    return level.bid_lots, level.ask_lots, level.fee_odometer


def test_exact_landing_on_tick():
    pool = make_pool(ambient=10 ** 9)
    mint(pool, 100, 200, 5 * 10 ** 9)
    before = level_state(pool, 100)
    buy(pool, 10 ** 12, limit=p(100))
    if pool.price_root != p(100) or pool.tick != 99:
        raise AssertionError('Swap should rest on the range bound without crossing it.')
    if pool.concentrated_liquidity != 0 or level_state(pool, 100) != before:
        raise AssertionError('A swap stopped by its limit should not cross the level.')

    buy(pool, 1000)
    if pool.tick != 100 or pool.concentrated_liquidity != 5 * 10 ** 9:
        raise AssertionError('The next buy should cross the level it rests on.')

    sell(pool, 10 ** 12, limit=p(100))
    if pool.price_root != p(100) or pool.tick != 100:
        raise AssertionError('Sell should rest on the range bound without crossing it.')
    if pool.concentrated_liquidity != 5 * 10 ** 9:
        raise AssertionError('Range should stay active while the price rests on its lower bound.')

    sell(pool, 1000)
    if pool.tick != 99 or pool.concentrated_liquidity != 0:
        raise AssertionError('Any sell from a lower bound should deactivate the range.')
    if pool.price_root >= p(100):
        raise AssertionError('Sell should move the price down.')


def test_exhausted_on_tick_does_not_cross():
    pool = make_pool(ambient=10 ** 9)
    mint(pool, 100, 200, 5 * 10 ** 9)
    base_flow, _ = buy(pool, 10 ** 12, limit=p(100))
    pool = make_pool(ambient=10 ** 9)
    mint(pool, 100, 200, 5 * 10 ** 9)
    buy(pool, base_flow)
    if pool.price_root != p(100):
        raise AssertionError('Exact quantity should land on the range bound.')
    if pool.tick != 99 or pool.concentrated_liquidity != 0:
        raise AssertionError('A swap with nothing left should not cross the level.')


def test_limit_before_next_level():
    pool = make_pool(fee_rate=3000, ambient=10 ** 9)
    mint(pool, 100, 200, 5 * 10 ** 9)
    mint(pool, -200, -100, 5 * 10 ** 9)
    upper, lower = level_state(pool, 100), level_state(pool, -100)

    base_flow, quote_flow_ = buy(pool, 10 ** 12, limit=p(50))
    if not 0 < base_flow < 10 ** 12 or quote_flow_ >= 0:
        raise AssertionError('Buy should fill partially against ambient liquidity.')
    if pool.price_root != p(50) or pool.tick != 50:
        raise AssertionError('Buy should stop exactly at its limit.')
    if level_state(pool, 100) != upper or pool.concentrated_liquidity != 0:
        raise AssertionError('Buy stopped short of a level should leave it untouched.')

    base_flow, quote_flow_ = sell(pool, 10 ** 12, limit=p(-50))
    if not 0 < quote_flow_ < 10 ** 12 or base_flow >= 0:
        raise AssertionError('Sell should fill partially against ambient liquidity.')
    if pool.price_root != p(-50) or pool.tick != -50:
        raise AssertionError('Sell should stop exactly at its limit.')
    if level_state(pool, -100) != lower or pool.concentrated_liquidity != 0:
        raise AssertionError('Sell stopped short of a level should leave it untouched.')


def test_cross_word_border():
    pool = make_pool()
    liquidity = 10 ** 9
    mint(pool, 256, 600, liquidity)
    buy(pool, 10 ** 12, limit=p(300))
    if pool.tick != 300 or pool.concentrated_liquidity != liquidity:
        raise AssertionError('Range starting on a word border was not crossed.')


def test_cross_word_border_selling():
    pool = make_pool()
    liquidity = 10 ** 9
    mint(pool, -512, -100, liquidity)
    sell(pool, 10 ** 12, limit=p(-300))
    if pool.tick != -300 or pool.concentrated_liquidity != liquidity:
        raise AssertionError('Range below the price was not entered.')


def test_cross_lobby():
    pool = make_pool()
    liquidity = 10 ** 9
    mint(pool, 70000, 80000, liquidity)
    buy(pool, 10 ** 12, limit=p(75000))
    if pool.tick != 75000 or pool.concentrated_liquidity != liquidity:
        raise AssertionError('Range in a distant lobby was not entered.')


def test_recipient_and_data():
    pool = make_pool(ambient=10 ** 9)
    seen = []

    def settle(base_owed, quote_owed, data):
        seen.append(data)
        settle_from(pool, 'trader')(base_owed, quote_owed, data)

    base_flow, quote_flow_ = pool.swap('alice', True, True, 10 ** 6, MAX_SQRT_PRICE, settle, data='order-1')
    if seen != ['order-1']:
        raise AssertionError('Settle hook did not receive the caller data.')
    if pool.vault.agent('alice').get_holdings('QUOTE') != -quote_flow_:
        raise AssertionError('Output was not paid to the recipient.')
    if pool.vault.agent('trader').get_holdings('BASE') != 10 ** 18 - base_flow:
        raise AssertionError('Input was not paid by the settling agent.')


def test_reentrancy():
    pool = make_pool(ambient=10 ** 9)

    def reenter(base_owed, quote_owed, data):
        buy(pool, 1000)

    with pytest.raises(ReentrancyError):
        pool.mint('lp', -100, 100, 10 ** 9, reenter)
    if pool._locked:
        raise AssertionError('Lock was not released after the failure.')
    if pool.concentrated_liquidity != 0:
        raise AssertionError('Failed mint changed the pool.')
    mint(pool, -100, 100, 10 ** 9)
    if pool.concentrated_liquidity != 10 ** 9:
        raise AssertionError('Pool should accept operations after a reentrant failure.')


def test_settlement_shortfall():
    pool = make_pool(ambient=10 ** 9)
    before = pool.state
    balances = dict(pool.vault.balances)

    with pytest.raises(SettlementShortfall):
        pool.mint('lp', -100, 100, 10 ** 9)
    with pytest.raises(SettlementShortfall):
        pool.swap('trader', True, True, 10 ** 6, MAX_SQRT_PRICE)

    def underpay(base_owed, quote_owed, data):
        pool.vault.pull('BASE', 'lp', base_owed - 1)
        pool.vault.pull('QUOTE', 'lp', quote_owed)

    with pytest.raises(SettlementShortfall):
        pool.mint('lp', -100, 100, 10 ** 9, underpay)
    if pool.state is not before:
        raise AssertionError('Failed settlement changed the pool.')
    if pool.vault.balances != balances:
        raise AssertionError('Failed settlement changed the vault.')
    if pool.vault.agent('lp').get_holdings('QUOTE') != 10 ** 18 - balances['QUOTE']:
        raise AssertionError('Failed settlement was not rolled back for the payer.')


def test_poor_agent_cannot_settle():
    vault = TokenVault(agents=[Agent(holdings={'BASE': 100, 'QUOTE': 100}, unique_id='lp')])
    pool = ConcentratedLiquidityPool(vault).initialize(to_sqrt_price(1))
    with pytest.raises(SettlementShortfall):
        pool.mint_ambient('lp', 10 ** 9, vault.settle_from('lp', 'BASE', 'QUOTE'))
    if vault.balances or vault.agent('lp').holdings != {'BASE': 100, 'QUOTE': 100}:
        raise AssertionError('Vault should be untouched.')


def test_authorization():
    pool = make_pool(proto_cut=4)
    with pytest.raises(AuthorizationError):
        pool.set_protocol_fee_share('trader', 5)
    with pytest.raises(AuthorizationError):
        pool.collect_protocol_fees('lp', 'lp')
    pool.set_protocol_fee_share('governance', 5)
    if pool.proto_cut != 5:
        raise AssertionError('Protocol cut was not updated.')
    with pytest.raises(ValueError):
        pool.set_protocol_fee_share('governance', 256)

    ungoverned = ConcentratedLiquidityPool(TokenVault()).initialize(to_sqrt_price(1))
    with pytest.raises(AuthorizationError):
        ungoverned.set_protocol_fee_share('', 5)


def test_collect_protocol_fees():
    pool = make_pool(fee_rate=3000, proto_cut=4, ambient=10 ** 9)
    buy(pool, 10 ** 6)
    base_fees, quote_fees = pool.protocol_fees
    if base_fees != 0 or quote_fees <= 0:
        raise AssertionError('Fees on a base denominated buy should be taken in quote.')

    collected = pool.collect_protocol_fees('governance', 'treasury')
    if collected != (0, quote_fees):
        raise AssertionError('Collection should return the accumulated fees.')
    if pool.vault.agent('treasury').get_holdings('QUOTE') != quote_fees:
        raise AssertionError('Treasury did not receive the protocol fees.')
    if pool.protocol_fees != (0, 0):
        raise AssertionError('Protocol fees should be zeroed after collection.')


def test_range_rewards():
    pool = make_pool(fee_rate=3000, ambient=10 ** 9)
    liquidity = 10 ** 9
    mint(pool, -1000, 1000, liquidity)
    mint(pool, 5000, 6000, liquidity)
    buy(pool, 10 ** 7)
    sell(pool, 10 ** 7)
    if pool.curve.conc_growth <= 0:
        raise AssertionError('Concentrated liquidity should have earned fees.')

    principal_base, principal_quote = liquidity_amounts(liquidity, pool.price_root, p(-1000), p(1000))
    base_flow, quote_flow_ = pool.burn('lp', -1000, 1000, liquidity)
    if -base_flow <= principal_base or -quote_flow_ <= principal_quote:
        raise AssertionError('In range position should be paid rewards on top of its principal.')

    base_flow, quote_flow_ = pool.burn('lp', 5000, 6000, liquidity)
    if (base_flow, quote_flow_) != (0, -quote_flow(liquidity, p(5000), p(6000))):
        raise AssertionError('Out of range position should not earn rewards.')


def test_ambient_compounding():
    pool = make_pool(fee_rate=3000, ambient=10 ** 9)
    if pool.ambient_position('lp') != 10 ** 9:
        raise AssertionError('Seeds should equal liquidity before any growth.')
    buy(pool, 10 ** 7)
    sell(pool, 10 ** 7)
    if pool.curve.ambient_growth <= 0 or pool.ambient_liquidity <= 10 ** 9:
        raise AssertionError('Fees should compound into ambient liquidity.')

    base_flow, quote_flow_ = pool.burn_ambient('lp', 10 ** 9)
    if base_flow >= 0 or quote_flow_ >= 0:
        raise AssertionError('Ambient burn should pay out both tokens.')
    if pool.ambient_position('lp') <= 0:
        raise AssertionError('Compounded seeds should outlast the initial liquidity.')
    with pytest.raises(ArithmeticViolation):
        pool.burn_ambient('lp', 10 ** 9)


@given(pool_scenario())
@settings(deadline=None, max_examples=50)
def test_swap_invariants(scenario):
    pool = make_pool(fee_rate=scenario['fee_rate'], proto_cut=scenario['proto_cut'], ambient=scenario['ambient'])
    for lower, upper, liquidity in scenario['positions']:
        mint(pool, lower, upper, liquidity)

    for is_buy, in_base, qty in scenario['swaps']:
        ambient_growth, conc_growth = pool.curve.ambient_growth, pool.curve.conc_growth
        if is_buy:
            buy(pool, qty, limit=p(5000), in_base=in_base)
        else:
            sell(pool, qty, limit=p(-5000), in_base=in_base)

        if pool.curve.ambient_growth < ambient_growth or pool.curve.conc_growth < conc_growth:
            raise AssertionError('Growth accumulators should never decrease.')
        in_range = sum(
            position.liquidity for (owner, lower, upper), position in pool.state.positions.positions.items()
            if lower <= pool.tick < upper
        )
        if pool.concentrated_liquidity != in_range:
            raise AssertionError(f'Active liquidity {pool.concentrated_liquidity} != in range total {in_range}.')
        if abs(get_tick_at_sqrt_ratio(pool.price_root) - pool.tick) > 1:
            raise AssertionError(f'Tick {pool.tick} drifted away from the price {pool.price_root}.')
        if not p(-5000) <= pool.price_root <= p(5000):
            raise AssertionError('Price moved past the swap limits.')


def test_spot_prices():
    pool = make_pool(fee_rate=3000, price=4)
    if float(pool.buy_spot('QUOTE', 'BASE')) != pytest.approx(4 * 1.003, rel=1e-12):
        raise AssertionError('Buy spot should include the fee.')
    if float(pool.sell_spot('QUOTE', 'BASE')) != pytest.approx(4 * 0.997, rel=1e-12):
        raise AssertionError('Sell spot should deduct the fee.')
    if float(pool.buy_spot('BASE', 'QUOTE', fee=0)) != pytest.approx(0.25, rel=1e-12):
        raise AssertionError('Fee free buy spot should equal the price.')
    if float(pool.value_assets({'BASE': 100, 'QUOTE': 10}, 'BASE')) != pytest.approx(140, rel=1e-12):
        raise AssertionError('Basket value is wrong.')


def seeds_accounted(pool):
    return sum(pool.state.positions.ambient.values()) + pool.curve.conc_seeds


def exit_everyone(pool):
    for (owner, lower, upper), position in list(pool.state.positions.positions.items()):
        if position.liquidity > 0:
            pool.burn(owner, lower, upper, position.liquidity)
    for owner, seeds in list(pool.state.positions.ambient.items()):
        liquidity = inflate_seeds(seeds, pool.curve.ambient_growth)
        if liquidity > 0:
            pool.burn_ambient(owner, liquidity)


def test_range_rewards_never_take_ambient_seeds():
    pool = make_pool(fee_rate=79, ambient=10 ** 9)
    mint(pool, -246, 0, 10 ** 8)
    mint(pool, -258, -2, 10 ** 8)
    sell(pool, 15462864)
    minted = pool.curve.conc_seeds
    if pool.curve.ambient_seed != seeds_accounted(pool):
        raise AssertionError('Curve seeds should be ambient positions plus unclaimed range rewards.')

    pool.burn('lp', -246, 0, 10 ** 8)
    pool.burn('lp', -258, -2, 10 ** 8)
    if pool.ambient_position('lp') != 10 ** 9 or pool.curve.ambient_seed != seeds_accounted(pool):
        raise AssertionError('Range burns should only pay out seeds minted for ranges.')
    if not 0 <= pool.curve.conc_seeds <= minted:
        raise AssertionError('Unclaimed range rewards went out of bounds.')

    pool.burn_ambient('lp', inflate_seeds(10 ** 9, pool.curve.ambient_growth))
    if pool.ambient_position('lp') > 1:
        raise AssertionError('Ambient provider should be able to withdraw every seed.')


@given(pool_scenario())
@settings(deadline=None, max_examples=50)
def test_everyone_can_exit(scenario):
    pool = make_pool(fee_rate=scenario['fee_rate'], proto_cut=scenario['proto_cut'], ambient=scenario['ambient'])
    for i, (lower, upper, liquidity) in enumerate(scenario['positions']):
        owner = f'lp{i}'
        pool.vault.register(Agent(holdings={'BASE': 10 ** 18, 'QUOTE': 10 ** 18}, unique_id=owner))
        mint(pool, lower, upper, liquidity, owner=owner)
    for is_buy, in_base, qty in scenario['swaps']:
        if is_buy:
            buy(pool, qty, limit=p(5000), in_base=in_base)
        else:
            sell(pool, qty, limit=p(-5000), in_base=in_base)
        if pool.curve.ambient_seed != seeds_accounted(pool):
            raise AssertionError('Curve seeds should be ambient positions plus unclaimed range rewards.')

    exit_everyone(pool)
    if pool.state.levels.levels or pool.concentrated_liquidity != 0:
        raise AssertionError('Every level should be cleared once all ranges are burned.')
    if pool.curve.ambient_seed != seeds_accounted(pool) or pool.ambient_position('lp') > 1:
        raise AssertionError('Ambient provider should be able to withdraw every seed.')
