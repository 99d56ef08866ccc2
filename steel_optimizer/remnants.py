"""
Учет деловых остатков в пределах одного запуска оптимизации
"""

import logging
from collections import deque
from typing import Deque, Dict, List

from .config import LENGTH_TOLERANCE
from .errors import InternalError
from .models import Remnant, RemnantKind, StockItem, StockOrigin

logger = logging.getLogger(__name__)


def _length_key(length: float) -> float:
    return round(length, 6)


def _remnant_id(length: float) -> str:
    return "R" + f"{length:.6f}".rstrip('0').rstrip('.')


class RemnantLedger:
    """
    Реестр остатков запуска

    Остаток короче waste_threshold - отход, остальные - деловые остатки, которые
    возвращаются в предложение для последующих шагов. Одинаковые по длине
    остатки объединяются счетчиком (очередь шагов, на которых они получены).
    """

    def __init__(self, waste_threshold: float):
        self.waste_threshold = waste_threshold
        self._pool: Dict[float, Deque[int]] = {}
        self._produced: List[Remnant] = []

    def classify(self, length: float) -> RemnantKind:
        if length + LENGTH_TOLERANCE < self.waste_threshold:
            return RemnantKind.WASTE
        return RemnantKind.REUSABLE

    def record(self, length: float, step: int) -> Remnant:
        """Регистрирует остаток, полученный на шаге step"""
        if length < -LENGTH_TOLERANCE:
            raise InternalError(f"Отрицательный остаток {length:.6f}мм на шаге {step}")
        length = max(0.0, length)
        remnant = Remnant(length=length, kind=self.classify(length), produced_at=step)
        self._produced.append(remnant)

        if remnant.kind == RemnantKind.REUSABLE:
            self._pool.setdefault(_length_key(length), deque()).append(step)
            logger.debug(f"♻️ Деловой остаток {length:.1f}мм (шаг {step})")
        return remnant

    def reclaim(self, min_length: float) -> List[StockItem]:
        """Деловые остатки длиной не меньше min_length как заготовки"""
        items = []
        for length in sorted(self._pool, reverse=True):
            steps = self._pool[length]
            if not steps or length + LENGTH_TOLERANCE < min_length:
                continue
            items.append(StockItem(
                id=_remnant_id(length),
                length=length,
                origin=StockOrigin.REMNANT,
                available=len(steps),
                produced_at=steps[0],
            ))
        return items

    def consume(self, length: float, step: int) -> int:
        """
        Забирает один остаток указанной длины для шага step

        Возвращает номер шага, на котором остаток был получен. Использовать можно
        только остатки, полученные раньше текущего шага.
        """
        steps = self._pool.get(_length_key(length))
        if not steps:
            raise InternalError(f"Остаток {length:.1f}мм отсутствует в реестре")
        if steps[0] >= step:
            raise InternalError(f"Остаток {length:.1f}мм с шага {steps[0]} не может использоваться на шаге {step}")
        produced_at = steps.popleft()
        if not steps:
            del self._pool[_length_key(length)]
        return produced_at

    def unused(self) -> List[Remnant]:
        """Деловые остатки, оставшиеся неиспользованными"""
        remnants = []
        for length in sorted(self._pool, reverse=True):
            for produced_at in self._pool[length]:
                remnants.append(Remnant(length=length, kind=RemnantKind.REUSABLE, produced_at=produced_at))
        return remnants

    @property
    def count(self) -> int:
        return sum(len(steps) for steps in self._pool.values())

    @property
    def total_length(self) -> float:
        return sum(length * len(steps) for length, steps in self._pool.items())

    @property
    def produced(self) -> List[Remnant]:
        return list(self._produced)
