import logging

from .fixed_point import MIN_TICK, MAX_TICK

logger = logging.getLogger('crocsim').getChild('tick_census')

# a terminal word covers 256 ticks, a mezzanine word covers 256 terminal words
WORD_SHIFT = 8
WORD_MASK = 0xff
MIN_LOBBY = MIN_TICK >> (2 * WORD_SHIFT)
MAX_LOBBY = MAX_TICK >> (2 * WORD_SHIFT)


def _lowest_bit(bitmap: int) -> int:
    return (bitmap & -bitmap).bit_length() - 1


def _highest_bit(bitmap: int) -> int:
    return bitmap.bit_length() - 1


def _bits_above(bit: int) -> int:
    return ~((1 << (bit + 1)) - 1)


def _bits_at_or_below(bit: int) -> int:
    return (1 << (bit + 1)) - 1


def word_start(word: int) -> int:
    return word << WORD_SHIFT


class TickCensus:
    """
    Two tier index of initialized ticks. The terminal tier maps a word index (tick >> 8) to a
    256 bit bitmap of the ticks inside it. The mezzanine tier maps a lobby index (word >> 8) to
    a bitmap of the words holding at least one initialized tick. The sentinel ticks MIN_TICK
    and MAX_TICK are never stored.
    """

    def __init__(self):
        self.terminal = {}
        self.mezzanine = {}

    def is_initialized(self, tick: int) -> bool:
        return bool(self.terminal_bitmap(tick) >> (tick & WORD_MASK) & 1)

    def terminal_bitmap(self, tick: int) -> int:
        return self.terminal.get(tick >> WORD_SHIFT, 0)

    def mezzanine_bitmap(self, tick: int) -> int:
        return self.mezzanine.get(tick >> (2 * WORD_SHIFT), 0)

    def bookmark_tick(self, tick: int):
        if tick <= MIN_TICK or tick >= MAX_TICK:
            raise ValueError(f'tick {tick} must lie strictly between the sentinel ticks')
        word = tick >> WORD_SHIFT
        self.terminal[word] = self.terminal.get(word, 0) | (1 << (tick & WORD_MASK))
        lobby = word >> WORD_SHIFT
        self.mezzanine[lobby] = self.mezzanine.get(lobby, 0) | (1 << (word & WORD_MASK))

    def forget_tick(self, tick: int):
        word = tick >> WORD_SHIFT
        bitmap = self.terminal.get(word, 0) & ~(1 << (tick & WORD_MASK))
        if bitmap:
            self.terminal[word] = bitmap
            return
        self.terminal.pop(word, None)
        lobby = word >> WORD_SHIFT
        mezz = self.mezzanine.get(lobby, 0) & ~(1 << (word & WORD_MASK))
        if mezz:
            self.mezzanine[lobby] = mezz
        else:
            self.mezzanine.pop(lobby, None)

    def pin_bitmap(self, is_buy: bool, tick: int) -> tuple[int, bool]:
        """
        Nearest initialized tick in the swap direction inside the terminal word holding `tick`.
        Buys look strictly above `tick`, sells look at or below it. When the word has nothing in
        that direction the border of the word is returned together with spills=True: the start
        of the next word for a buy, the start of the current word for a sell.
        """
        bitmap = self.terminal_bitmap(tick)
        word = tick >> WORD_SHIFT
        bit = tick & WORD_MASK
        if is_buy:
            candidates = bitmap & _bits_above(bit)
            if candidates:
                return word_start(word) + _lowest_bit(candidates), False
            return min(word_start(word + 1), MAX_TICK), True
        candidates = bitmap & _bits_at_or_below(bit)
        if candidates:
            return word_start(word) + _highest_bit(candidates), False
        return max(word_start(word), MIN_TICK), True

    def seek_mezz_spill(self, border_tick: int, is_buy: bool) -> int:
        """
        Escalate past a spilled word. Buys find the lowest initialized tick at or above the
        border, sells the highest initialized tick strictly below it. Returns that tick (or the
        sentinel in the swap direction when there is none).
        """
        if is_buy:
            word = border_tick >> WORD_SHIFT
            bitmap = self.terminal.get(word, 0) & ~((1 << (border_tick & WORD_MASK)) - 1)
        else:
            word = (border_tick - 1) >> WORD_SHIFT
            bitmap = self.terminal.get(word, 0) & _bits_at_or_below((border_tick - 1) & WORD_MASK)

        if not bitmap:
            word = self._next_word(word, is_buy)
            if word is None:
                sentinel = MAX_TICK if is_buy else MIN_TICK
                logger.debug(f'no initialized tick beyond {border_tick}, bounded by sentinel {sentinel}')
                return sentinel
            bitmap = self.terminal[word]

        bit = _lowest_bit(bitmap) if is_buy else _highest_bit(bitmap)
        return word_start(word) + bit

    def _next_word(self, word: int, is_buy: bool):
        # non-empty words strictly beyond `word`, walking lobbies until the tick range runs out
        lobby = word >> WORD_SHIFT
        bit = word & WORD_MASK
        if is_buy:
            bitmap = self.mezzanine.get(lobby, 0) & _bits_above(bit)
        else:
            bitmap = self.mezzanine.get(lobby, 0) & ((1 << bit) - 1)
        while not bitmap:
            lobby += 1 if is_buy else -1
            if lobby < MIN_LOBBY or lobby > MAX_LOBBY:
                return None
            bitmap = self.mezzanine.get(lobby, 0)
        bit = _lowest_bit(bitmap) if is_buy else _highest_bit(bitmap)
        return (lobby << WORD_SHIFT) + bit
