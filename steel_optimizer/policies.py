"""
Политики выбора: какую позицию размещать следующей и как сравнивать схемы разных заготовок
"""

from typing import Dict, List, Type

from .errors import InvalidInputError
from .models import CuttingPattern, DemandItem, StockItem, StockOrigin
from .patterns import PatternScoring, pattern_rank_key

# Порядок предпочтения происхождения заготовки при равной оценке схем
_ORIGIN_RANK = {
    StockOrigin.REMNANT: 0,
    StockOrigin.ORIGINAL: 1,
    StockOrigin.WELDED: 2,
}


class SelectionPolicy:
    """Базовая политика выбора"""

    name = "base"
    scoring = PatternScoring.UTILIZATION

    def __init__(self, scarcity_bonus: float = 0.5):
        self.scarcity_bonus = scarcity_bonus

    def pick_demand(self, items: List[DemandItem], remaining: Dict[str, int]) -> DemandItem:
        raise NotImplementedError

    def rank(self, pattern: CuttingPattern, stock: StockItem, remaining: Dict[str, int]) -> tuple:
        """Ключ сравнения кандидатов (меньше - лучше)"""
        return (
            pattern_rank_key(pattern, self.scoring, remaining, self.scarcity_bonus),
            stock.weld_count,
            _ORIGIN_RANK[stock.origin],
            round(stock.length, 6),
            stock.id,
        )


class LongestFirstPolicy(SelectionPolicy):
    """Самая длинная незакрытая позиция первой - меньше дробления проката"""

    name = "longest_first"
    scoring = PatternScoring.UTILIZATION

    def pick_demand(self, items: List[DemandItem], remaining: Dict[str, int]) -> DemandItem:
        outstanding = [item for item in items if remaining.get(item.id, 0) > 0]
        return min(outstanding, key=lambda item: (-item.length, item.id))


class ScarcityFirstPolicy(SelectionPolicy):
    """Позиции с наименьшим остатком спроса первыми, схемы с бонусом за закрытие позиций"""

    name = "scarcity_first"
    scoring = PatternScoring.SCARCITY

    def pick_demand(self, items: List[DemandItem], remaining: Dict[str, int]) -> DemandItem:
        outstanding = [item for item in items if remaining.get(item.id, 0) > 0]
        return min(outstanding, key=lambda item: (remaining[item.id], -item.length, item.id))


SELECTION_POLICIES: Dict[str, Type[SelectionPolicy]] = {
    LongestFirstPolicy.name: LongestFirstPolicy,
    ScarcityFirstPolicy.name: ScarcityFirstPolicy,
}


def get_policy(name: str, scarcity_bonus: float = 0.5) -> SelectionPolicy:
    policy_class = SELECTION_POLICIES.get(name)
    if policy_class is None:
        raise InvalidInputError(f"Неизвестная политика выбора: {name}. "
                                f"Доступны: {', '.join(sorted(SELECTION_POLICIES))}", field='selection_policy')
    return policy_class(scarcity_bonus=scarcity_bonus)
