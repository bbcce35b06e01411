from .errors import ArithmeticViolation
from .fixed_point import add_delta


class RangePosition:
    def __init__(self, liquidity: int = 0, fee_mileage: int = 0, reward_seeds: int = 0):
        self.liquidity = liquidity
        # inside fee mileage as of the last mint into the position
        self.fee_mileage = fee_mileage
        # ambient seeds earned before the last mint and not yet paid out
        self.reward_seeds = reward_seeds

    def __repr__(self):
        return (
            f'RangePosition(liquidity={self.liquidity}, fee_mileage={self.fee_mileage}, '
            f'reward_seeds={self.reward_seeds})'
        )


class PositionRegistrar:
    """
    Range positions keyed by (owner, lower tick, upper tick) and full range positions keyed by
    owner. Range rewards are denominated in ambient seeds: one unit of concentrated liquidity
    earns (mileage delta >> 64) seeds.
    """
    def __init__(self):
        self.positions: dict[tuple[str, int, int], RangePosition] = {}
        self.ambient: dict[str, int] = {}

    def position(self, owner: str, lower: int, upper: int) -> RangePosition:
        return self.positions.get((owner, lower, upper))

    def add_liquidity(self, owner: str, lower: int, upper: int, amount: int, fee_mileage: int):
        position = self.positions.setdefault((owner, lower, upper), RangePosition(fee_mileage=fee_mileage))
        if position.liquidity > 0:
            # bank what the existing liquidity has earned so the new capital starts from zero
            position.reward_seeds += calc_rewards(position.fee_mileage, fee_mileage, position.liquidity)
        position.liquidity = add_delta(position.liquidity, amount)
        position.fee_mileage = fee_mileage
        return position

    def remove_liquidity(self, owner: str, lower: int, upper: int, amount: int, fee_mileage: int) -> tuple[int, int]:
        """
        Burn `amount` of the position's liquidity. Returns the liquidity principal released and
        the reward seeds owed on that slice of the position.
        """
        position = self.positions.get((owner, lower, upper))
        held = position.liquidity if position else 0
        if amount > held:
            raise ArithmeticViolation(
                f'{owner} holds {held} liquidity in [{lower}, {upper}), cannot burn {amount}'
            )
        banked = position.reward_seeds * amount // position.liquidity
        rewards = calc_rewards(position.fee_mileage, fee_mileage, amount) + banked
        position.reward_seeds -= banked
        position.liquidity -= amount
        return amount, rewards

    def ambient_position(self, owner: str) -> int:
        return self.ambient.get(owner, 0)

    def add_ambient(self, owner: str, seeds: int):
        self.ambient[owner] = add_delta(self.ambient.get(owner, 0), seeds)

    def remove_ambient(self, owner: str, seeds: int):
        held = self.ambient.get(owner, 0)
        if seeds > held:
            raise ArithmeticViolation(f'{owner} holds {held} ambient seeds, cannot burn {seeds}')
        self.ambient[owner] = held - seeds


def calc_rewards(start_mileage: int, end_mileage: int, liquidity: int) -> int:
    mileage = end_mileage - start_mileage
    if mileage < 0:
        raise ArithmeticViolation(f'fee mileage moved backwards: {start_mileage} -> {end_mileage}')
    return mileage * liquidity >> 64
