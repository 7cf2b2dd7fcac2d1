from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

DETAILS_PANEL_LENGTH = 135
BIG_SCROLL_AMOUNT = 4
# saturating "go to top/bottom" request; widgets clamp it to their contents
SCROLL_MAX = 2**16 - 1


class ScrollDirection(Enum):
    UP = "up"
    DOWN = "down"


@dataclass(frozen=True)
class Scroll:
    direction: ScrollDirection
    amount: int

    @classmethod
    def up(cls, amount: int) -> Scroll:
        return cls(ScrollDirection.UP, max(amount, 0))

    @classmethod
    def down(cls, amount: int) -> Scroll:
        return cls(ScrollDirection.DOWN, max(amount, 0))

    def apply(self, index: int, upper: int) -> int:
        """Move `index` by this request, clamped to [0, upper]."""
        if self.direction is ScrollDirection.UP:
            return max(index - self.amount, 0)
        return max(min(index + self.amount, upper), 0)


def calculate_sizes(n_col: int, details_threshold: int = DETAILS_PANEL_LENGTH) -> tuple[int, int, int]:
    # Adjacent panels share a border column, hence the +2 / +1 before splitting.
    if n_col > details_threshold:
        pod_col = (n_col + 2) // 3
        ep_col = (n_col + 2) // 3
        det_col = n_col + 2 - pod_col - ep_col
    else:
        pod_col = (n_col + 1) // 2
        ep_col = n_col + 1 - pod_col
        det_col = 0
    return pod_col, ep_col, det_col


def page_amount(n_row: int) -> int:
    return max(n_row - 3, 0)


def big_scroll_amount(n_row: int, divisor: int = BIG_SCROLL_AMOUNT) -> int:
    return n_row // max(divisor, 1)
