import logging
from contextlib import contextmanager

from .errors import SettlementShortfall

logger = logging.getLogger('crocsim').getChild('vault')


class Agent:
    unique_id: str = ''

    def __init__(self, holdings: dict[str: int] = None, unique_id: str = 'agent', enforce_holdings: bool = True):
        """
        holdings should be in the form of:
        {
            asset_name: quantity
        }
        Quantities are integer token units. With enforce_holdings=False the agent may go negative,
        which is convenient for traders that should never be the cause of a failed settlement.
        """
        self.holdings = dict(holdings) if holdings is not None else {}
        self.unique_id = unique_id
        self.enforce_holdings = enforce_holdings

    def __repr__(self):
        return f'Agent({self.unique_id}, holdings={self.holdings})'

    def get_holdings(self, tkn: str) -> int:
        return self.holdings.get(tkn, 0)

    def validate_holdings(self, tkn: str, amt: int) -> bool:
        return not self.enforce_holdings or self.get_holdings(tkn) >= amt

    def deposit(self, tkn: str, amt: int):
        self.holdings[tkn] = self.get_holdings(tkn) + amt

    def withdraw(self, tkn: str, amt: int):
        if not self.validate_holdings(tkn, amt):
            raise SettlementShortfall(f'agent {self.unique_id} holds {self.get_holdings(tkn)} {tkn}, owes {amt}')
        self.holdings[tkn] = self.get_holdings(tkn) - amt


class TokenVault:
    """
    Custody of one pool's token balances. Tokens move between the vault and registered agents;
    pushing to an unknown holder registers an empty agent for it.
    """

    def __init__(self, agents: list[Agent] = None, balances: dict[str: int] = None):
        self.agents = {agent.unique_id: agent for agent in agents or []}
        self.balances = dict(balances) if balances is not None else {}

    def register(self, agent: Agent) -> Agent:
        self.agents[agent.unique_id] = agent
        return agent

    def agent(self, holder: str) -> Agent:
        if holder not in self.agents:
            self.agents[holder] = Agent(unique_id=holder)
        return self.agents[holder]

    @contextmanager
    def transaction(self):
        """
        Undo every balance change made inside the block if it raises.
        """
        balances = dict(self.balances)
        holdings = {holder: dict(agent.holdings) for holder, agent in self.agents.items()}
        try:
            yield self
        except Exception:
            self.balances = balances
            for holder in list(self.agents):
                if holder in holdings:
                    self.agents[holder].holdings = holdings[holder]
                else:
                    del self.agents[holder]
            raise

    def balance_of(self, asset: str) -> int:
        return self.balances.get(asset, 0)

    def pull(self, asset: str, holder: str, amount: int):
        """Move `amount` of `asset` from the holder into the vault."""
        if amount < 0:
            raise ValueError('transfer amounts must be non-negative')
        if amount == 0:
            return
        if holder not in self.agents:
            raise SettlementShortfall(f'unknown holder {holder}')
        self.agents[holder].withdraw(asset, amount)
        self.balances[asset] = self.balance_of(asset) + amount
        logger.debug(f'pulled {amount} {asset} from {holder}')

    def push(self, asset: str, holder: str, amount: int):
        """Move `amount` of `asset` out of the vault to the holder."""
        if amount < 0:
            raise ValueError('transfer amounts must be non-negative')
        if amount == 0:
            return
        if self.balance_of(asset) < amount:
            raise SettlementShortfall(f'vault holds {self.balance_of(asset)} {asset}, cannot pay {amount}')
        self.balances[asset] -= amount
        self.agent(holder).deposit(asset, amount)
        logger.debug(f'pushed {amount} {asset} to {holder}')

    def settle_from(self, holder: str, base: str, quote: str):
        """
        Settlement hook that pays whatever a pool asks for out of the holder's balances.
        """
        def settle(base_owed: int, quote_owed: int, data=None):
            self.pull(base, holder, base_owed)
            self.pull(quote, holder, quote_owed)
        return settle
