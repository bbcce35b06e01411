class PoolRevert(Exception):
    """
    Raised for any fatal pool condition. The operation that raised it has no effect on the
    committed pool state.
    """


class ReentrancyError(PoolRevert):
    pass


class ArithmeticViolation(PoolRevert, ArithmeticError):
    """Overflow, underflow or a liquidity/position size invariant breach."""


class SettlementShortfall(PoolRevert):
    """The settlement hook or the transfer collaborator did not deliver the owed balance."""


class AuthorizationError(PoolRevert):
    pass


class PoolNotInitialized(PoolRevert):
    pass


class PoolAlreadyInitialized(PoolRevert):
    pass
