import copy


class Exchange:
    unique_id: str
    asset_list: list[str]

    def copy(self):
        return copy.deepcopy(self)

    def price(self, tkn: str = None, numeraire: str = ''):
        """
        Spot price of tkn denominated in numeraire.
        """
        raise NotImplementedError

    def buy_spot(self, tkn_buy: str, tkn_sell: str, fee: float = None):
        """
        How much tkn_sell will 1 tkn_buy cost?
        """
        if fee is None:
            fee = self.fee
        return self.price(tkn_buy, tkn_sell) * (1 + fee)

    def sell_spot(self, tkn_sell: str, tkn_buy: str, fee: float = None):
        """
        How much tkn_buy can be bought for 1 tkn_sell?
        """
        if fee is None:
            fee = self.fee
        return self.price(tkn_sell, tkn_buy) * (1 - fee)

    @property
    def fee(self) -> float:
        return 0

    def value_assets(self, assets: dict[str: int], numeraire: str = '') -> float:
        """
        Value of a basket of assets at the exchange's spot prices.
        """
        return sum(self.price(tkn, numeraire) * quantity for tkn, quantity in assets.items())
