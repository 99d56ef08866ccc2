"""
Генерация схем раскроя одной заготовки (ограниченный рюкзак по длинам позиций)
"""

import logging
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .config import LENGTH_TOLERANCE
from .models import CuttingPattern, DemandItem

logger = logging.getLogger(__name__)


class PatternScoring(Enum):
    """Критерий оценки схемы"""
    UTILIZATION = "utilization"  # Минимум остатка (максимум использованной длины)
    SCARCITY = "scarcity"        # Бонус за полное закрытие позиций с малым остатком спроса


def pattern_rank_key(pattern: CuttingPattern, scoring: PatternScoring,
                     remaining: Dict[str, int], scarcity_bonus: float = 0.5) -> tuple:
    """
    Ключ сортировки схем (меньше - лучше)

    После основного критерия: меньше разных длин, затем меньше остаток.
    """
    signature = tuple((demand_id, -count) for demand_id, _, count in pattern.pieces)
    leftover = round(pattern.leftover, 6)
    if scoring == PatternScoring.SCARCITY:
        bonus = sum(length * count for demand_id, length, count in pattern.pieces
                    if count >= remaining.get(demand_id, 0))
        score = round(pattern.used_length + scarcity_bonus * bonus, 6)
        return (-score, pattern.distinct_count, leftover, signature)
    return (leftover, pattern.distinct_count, signature)


def build_pattern(stock_length: float, pieces: Sequence[Tuple[str, float, int]],
                  waste_threshold: float) -> CuttingPattern:
    pieces = tuple((demand_id, length, count) for demand_id, length, count in pieces if count > 0)
    leftover = stock_length - sum(length * count for _, length, count in pieces)
    # Погрешность сложения длин не должна давать отрицательный остаток
    if abs(leftover) <= LENGTH_TOLERANCE * max(1, len(pieces)):
        leftover = 0.0
    return CuttingPattern(
        stock_length=stock_length,
        pieces=pieces,
        leftover=leftover,
        reusable=leftover + LENGTH_TOLERANCE >= waste_threshold,
    )


class PatternGenerator:
    """
    Генератор схем раскроя

    Перебор в глубину по различным длинам позиций (от длинных к коротким) с
    ограничением числа узлов. При достижении лимита перебор прекращается, а в
    кандидаты добавляется жадная схема "самая длинная подходящая первой". Жадная
    схема добавляется всегда, поэтому результат не пуст, если обязательная
    позиция помещается в заготовку.
    """

    def __init__(self, waste_threshold: float, scoring: PatternScoring = PatternScoring.UTILIZATION,
                 max_nodes: int = 5000, max_patterns: int = 20, scarcity_bonus: float = 0.5):
        self.waste_threshold = waste_threshold
        self.scoring = scoring
        self.max_nodes = max_nodes
        self.max_patterns = max_patterns
        self.scarcity_bonus = scarcity_bonus
        self.truncated_count = 0
        self._cache: Dict[tuple, List[CuttingPattern]] = {}

    def generate(self, stock_length: float, demand: Sequence[Tuple[DemandItem, int]],
                 required_id: Optional[str] = None,
                 should_stop: Optional[Callable[[], bool]] = None) -> List[CuttingPattern]:
        """
        Схемы раскроя для заготовки stock_length

        demand - пары (позиция, оставшееся количество). Если задан required_id,
        каждая схема содержит эту позицию хотя бы один раз.
        """
        items: List[Tuple[DemandItem, int]] = []
        remaining: Dict[str, int] = {}
        for item, qty in demand:
            if qty <= 0 or item.length > stock_length + LENGTH_TOLERANCE:
                continue
            cap = min(qty, int((stock_length + LENGTH_TOLERANCE) // item.length))
            if cap > 0:
                items.append((item, cap))
                remaining[item.id] = qty
        items.sort(key=lambda pair: (-pair[0].length, pair[0].id))

        if required_id is not None and required_id not in remaining:
            return []
        if not items:
            return []

        cache_key = (round(stock_length, 6), required_id,
                     tuple((item.id, cap, cap == remaining[item.id]) for item, cap in items))
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        patterns, complete = self._enumerate(stock_length, items, required_id, should_stop)
        greedy = self._greedy(stock_length, items, required_id)
        if greedy is not None:
            patterns.append(greedy)

        unique = {}
        for pattern in patterns:
            unique.setdefault(pattern.pieces, pattern)
        ranked = sorted(unique.values(),
                        key=lambda p: pattern_rank_key(p, self.scoring, remaining, self.scarcity_bonus))
        ranked = ranked[:self.max_patterns]

        # Прерванный перебор не кэшируется
        if complete:
            self._cache[cache_key] = ranked
        return ranked

    def _enumerate(self, stock_length: float, items: List[Tuple[DemandItem, int]],
                   required_id: Optional[str],
                   should_stop: Optional[Callable[[], bool]]) -> Tuple[List[CuttingPattern], bool]:
        counts = [0] * len(items)
        found: List[CuttingPattern] = []
        state = {'nodes': 0, 'truncated': False, 'stopped': False, 'perfect': False}

        def is_maximal(leftover: float) -> bool:
            for index, (item, cap) in enumerate(items):
                if counts[index] < cap and item.length <= leftover + LENGTH_TOLERANCE:
                    return False
            return True

        def search(index: int, free_length: float):
            if state['truncated'] or state['stopped'] or state['perfect']:
                return
            state['nodes'] += 1
            if state['nodes'] > self.max_nodes:
                state['truncated'] = True
                return
            if should_stop is not None and state['nodes'] % 256 == 0 and should_stop():
                state['stopped'] = True
                return

            if index == len(items):
                if any(counts) and is_maximal(free_length):
                    pieces = [(item.id, item.length, counts[i]) for i, (item, _) in enumerate(items)]
                    pattern = build_pattern(stock_length, pieces, self.waste_threshold)
                    found.append(pattern)
                    # Лучше схемы без остатка из одной обязательной позиции ничего нет
                    if (self.scoring == PatternScoring.UTILIZATION and pattern.leftover == 0.0
                            and required_id is not None and pattern.distinct_count == 1):
                        state['perfect'] = True
                return

            item, cap = items[index]
            max_count = min(cap, int((free_length + LENGTH_TOLERANCE) // item.length))
            min_count = 1 if item.id == required_id else 0
            for count in range(max_count, min_count - 1, -1):
                counts[index] = count
                search(index + 1, free_length - count * item.length)
                if state['truncated'] or state['stopped'] or state['perfect']:
                    break
            counts[index] = 0

        search(0, stock_length)

        if state['truncated']:
            self.truncated_count += 1
            logger.debug(f"⚠️ Перебор схем для {stock_length:.0f}мм ограничен {self.max_nodes} узлами, "
                         f"добавлена жадная схема")
        return found, not state['stopped']

    def _greedy(self, stock_length: float, items: List[Tuple[DemandItem, int]],
                required_id: Optional[str]) -> Optional[CuttingPattern]:
        """Жадная схема: самая длинная подходящая позиция первой"""
        counts = {item.id: 0 for item, _ in items}
        free_length = stock_length
        if required_id is not None:
            required = next(item for item, _ in items if item.id == required_id)
            if required.length > free_length + LENGTH_TOLERANCE:
                return None
            counts[required_id] = 1
            free_length -= required.length

        for item, cap in items:
            fit = int((free_length + LENGTH_TOLERANCE) // item.length)
            take = min(cap - counts[item.id], fit)
            if take > 0:
                counts[item.id] += take
                free_length -= take * item.length

        pieces = [(item.id, item.length, counts[item.id]) for item, _ in items]
        if not any(count for _, _, count in pieces):
            return None
        return build_pattern(stock_length, pieces, self.waste_threshold)
