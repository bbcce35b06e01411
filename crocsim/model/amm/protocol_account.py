import logging

logger = logging.getLogger('crocsim').getChild('protocol_account')


class ProtocolAccount:
    """Swap fees skimmed for the protocol, held by the pool until collected."""
    def __init__(self, base_fees: int = 0, quote_fees: int = 0):
        self.base_fees = base_fees
        self.quote_fees = quote_fees

    def accumulate(self, paid_proto: int, is_base: bool):
        if paid_proto == 0:
            return
        if paid_proto < 0:
            raise ValueError('protocol fees cannot be negative')
        if is_base:
            self.base_fees += paid_proto
        else:
            self.quote_fees += paid_proto

    def disburse(self, recipient: str) -> tuple[int, int]:
        """Zero both accumulators and return what they held, for transfer to the recipient."""
        base_fees, quote_fees = self.base_fees, self.quote_fees
        self.base_fees = 0
        self.quote_fees = 0
        if base_fees or quote_fees:
            logger.info(f'disbursing protocol fees {base_fees} base, {quote_fees} quote to {recipient}')
        return base_fees, quote_fees
