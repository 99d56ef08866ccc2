"""
Модели данных линейного раскроя: позиции, заготовки, схемы раскроя, остатки и план
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .config import DEFAULT_OPTIMIZATION_PARAMS, LENGTH_TOLERANCE
from .errors import InvalidInputError


class StockOrigin(Enum):
    """Происхождение заготовки"""
    ORIGINAL = "original"   # Модульный прокат из каталога
    REMNANT = "remnant"     # Деловой остаток текущего запуска
    WELDED = "welded"       # Сварная сборка из нескольких заготовок


class RemnantKind(Enum):
    """Классификация остатка после реза"""
    WASTE = "waste"
    REUSABLE = "reusable"


class RunStatus(Enum):
    """Состояния запуска оптимизации"""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    TIMED_OUT = "timedOut"
    INFEASIBLE = "infeasible"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self not in (RunStatus.IDLE, RunStatus.RUNNING)


@dataclass(frozen=True)
class DemandItem:
    """Требуемая по проекту позиция: длина и количество"""
    id: str
    length: float
    quantity: int
    component_number: str = ""
    part_number: str = ""
    specification: str = ""
    cross_section: float = 0.0
    source_ids: Tuple[str, ...] = ()

    @property
    def total_length(self) -> float:
        return self.length * self.quantity


@dataclass(frozen=True)
class StockItem:
    """Заготовка (пруток), из которой режутся позиции"""
    id: str
    length: float
    origin: StockOrigin = StockOrigin.ORIGINAL
    weld_count: int = 0
    members: Tuple['StockItem', ...] = ()
    available: Optional[int] = None  # None - неограниченное количество
    name: str = ""
    produced_at: Optional[int] = None  # Шаг, на котором получен остаток

    @property
    def is_composite(self) -> bool:
        return self.origin == StockOrigin.WELDED

    @property
    def consumed_length(self) -> float:
        """Длина модульного проката, списываемая при использовании заготовки"""
        if self.origin == StockOrigin.ORIGINAL:
            return self.length
        if self.origin == StockOrigin.WELDED:
            return sum(member.consumed_length for member in self.members)
        return 0.0

    @property
    def bar_count(self) -> int:
        """Количество целых прутков из каталога"""
        if self.origin == StockOrigin.ORIGINAL:
            return 1
        if self.origin == StockOrigin.WELDED:
            return sum(member.bar_count for member in self.members)
        return 0

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'name': self.name,
            'length': self.length,
            'origin': self.origin.value,
            'weldCount': self.weld_count,
        }
        if self.produced_at is not None:
            data['producedAt'] = self.produced_at
        if self.members:
            data['members'] = [member.to_dict() for member in self.members]
        return data


@dataclass(frozen=True)
class CuttingPattern:
    """Схема раскроя одной заготовки: (id позиции, длина, количество) + остаток"""
    stock_length: float
    pieces: Tuple[Tuple[str, float, int], ...]
    leftover: float
    reusable: bool = False

    @property
    def used_length(self) -> float:
        return sum(length * count for _, length, count in self.pieces)

    @property
    def piece_count(self) -> int:
        return sum(count for _, _, count in self.pieces)

    @property
    def distinct_count(self) -> int:
        return len(self.pieces)

    def counts(self) -> Dict[str, int]:
        return {demand_id: count for demand_id, _, count in self.pieces}

    def is_consistent(self, tolerance: float = LENGTH_TOLERANCE) -> bool:
        """Проверка инварианта: сумма резов + остаток == длина заготовки"""
        if self.leftover < 0:
            return False
        if any(count <= 0 for _, _, count in self.pieces):
            return False
        return abs(self.used_length + self.leftover - self.stock_length) <= tolerance * max(1, self.piece_count)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'stockLength': self.stock_length,
            'cuts': [{'demandId': demand_id, 'length': length, 'count': count}
                     for demand_id, length, count in self.pieces],
            'leftover': self.leftover,
            'reusable': self.reusable,
        }


@dataclass(frozen=True)
class Remnant:
    """Остаток после применения схемы"""
    length: float
    kind: RemnantKind
    produced_at: int

    @property
    def is_waste(self) -> bool:
        return self.kind == RemnantKind.WASTE

    def to_dict(self) -> Dict[str, Any]:
        return {'length': self.length, 'kind': self.kind.value, 'producedAt': self.produced_at}


@dataclass(frozen=True)
class PlanEntry:
    """Назначение: заготовка + схема раскроя (в порядке применения)"""
    step: int
    stock: StockItem
    pattern: CuttingPattern
    remnant: Remnant

    def to_dict(self) -> Dict[str, Any]:
        data = self.pattern.to_dict()
        data.update({
            'step': self.step,
            'stock': self.stock.to_dict(),
            'remnantKind': self.remnant.kind.value,
        })
        return data


@dataclass
class OptimizationPlan:
    """План раскроя с агрегированными показателями"""
    entries: List[PlanEntry] = field(default_factory=list)
    unused_remnants: List[Remnant] = field(default_factory=list)
    target_loss_rate: float = 0.0

    @property
    def total_consumed_length(self) -> float:
        return sum(entry.stock.consumed_length for entry in self.entries)

    @property
    def total_used_length(self) -> float:
        return sum(entry.pattern.used_length for entry in self.entries)

    @property
    def total_waste_length(self) -> float:
        return sum(entry.remnant.length for entry in self.entries if entry.remnant.is_waste)

    @property
    def unused_remnant_length(self) -> float:
        return sum(remnant.length for remnant in self.unused_remnants)

    @property
    def loss_rate(self) -> float:
        """Фактический процент потерь: отходы / списанный прокат"""
        consumed = self.total_consumed_length
        return (self.total_waste_length / consumed * 100) if consumed > 0 else 0.0

    @property
    def target_met(self) -> bool:
        return self.loss_rate <= self.target_loss_rate + LENGTH_TOLERANCE

    @property
    def bar_count(self) -> int:
        return sum(entry.stock.bar_count for entry in self.entries)

    @property
    def max_weld_count(self) -> int:
        return max((entry.stock.weld_count for entry in self.entries), default=0)

    def stock_usage(self) -> List[Dict[str, Any]]:
        """Сводка списания модульного проката по длинам"""
        usage: Dict[float, int] = {}
        for entry in self.entries:
            bars = entry.stock.members if entry.stock.is_composite else (entry.stock,)
            for bar in bars:
                if bar.origin == StockOrigin.ORIGINAL:
                    usage[bar.length] = usage.get(bar.length, 0) + 1
        return [{'length': length, 'count': usage[length]} for length in sorted(usage, reverse=True)]

    def cut_list(self) -> List[Dict[str, Any]]:
        """Количество нарезанных деталей по позициям"""
        cut = OrderedDict()
        for entry in self.entries:
            for demand_id, length, count in entry.pattern.pieces:
                if demand_id not in cut:
                    cut[demand_id] = {'demandId': demand_id, 'length': length, 'count': 0}
                cut[demand_id]['count'] += count
        return list(cut.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            'entries': [entry.to_dict() for entry in self.entries],
            'totalConsumedLength': self.total_consumed_length,
            'totalUsedLength': self.total_used_length,
            'totalWasteLength': self.total_waste_length,
            'lossRate': self.loss_rate,
            'targetLossRate': self.target_loss_rate,
            'targetMet': self.target_met,
            'barCount': self.bar_count,
            'unusedRemnants': [remnant.to_dict() for remnant in self.unused_remnants],
            'stockUsage': self.stock_usage(),
            'cutList': self.cut_list(),
        }


# Соответствие имен параметров клиента (camelCase) именам движка
_PARAM_ALIASES = {
    'wasteThreshold': 'waste_threshold',
    'targetLossRate': 'target_loss_rate',
    'timeLimit': 'time_limit',
    'maxWeldingSegments': 'max_welding_segments',
    'boundedSupply': 'bounded_supply',
    'selectionPolicy': 'selection_policy',
    'maxPatternNodes': 'max_pattern_nodes',
    'maxPatternsPerStock': 'max_patterns_per_stock',
    'maxComposites': 'max_composites',
    'maxCompositeNodes': 'max_composite_nodes',
    'scarcityBonus': 'scarcity_bonus',
    'progressInterval': 'progress_interval',
}


@dataclass
class OptimizationParams:
    """Параметры оптимизации"""
    waste_threshold: float = DEFAULT_OPTIMIZATION_PARAMS['waste_threshold']
    target_loss_rate: float = DEFAULT_OPTIMIZATION_PARAMS['target_loss_rate']
    time_limit: float = DEFAULT_OPTIMIZATION_PARAMS['time_limit']
    max_welding_segments: int = DEFAULT_OPTIMIZATION_PARAMS['max_welding_segments']
    bounded_supply: bool = DEFAULT_OPTIMIZATION_PARAMS['bounded_supply']
    selection_policy: str = DEFAULT_OPTIMIZATION_PARAMS['selection_policy']
    max_pattern_nodes: int = DEFAULT_OPTIMIZATION_PARAMS['max_pattern_nodes']
    max_patterns_per_stock: int = DEFAULT_OPTIMIZATION_PARAMS['max_patterns_per_stock']
    max_composites: int = DEFAULT_OPTIMIZATION_PARAMS['max_composites']
    max_composite_nodes: int = DEFAULT_OPTIMIZATION_PARAMS['max_composite_nodes']
    scarcity_bonus: float = DEFAULT_OPTIMIZATION_PARAMS['scarcity_bonus']
    progress_interval: float = DEFAULT_OPTIMIZATION_PARAMS['progress_interval']

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]] = None, **kwargs) -> 'OptimizationParams':
        """Создает параметры из словаря клиента (camelCase или snake_case)"""
        merged = dict(data or {})
        merged.update(kwargs)

        values = {}
        for key, value in merged.items():
            name = _PARAM_ALIASES.get(key, key)
            if name not in DEFAULT_OPTIMIZATION_PARAMS or value is None:
                continue
            values[name] = _coerce_param(name, value)
        return cls(**values)


def _coerce_param(name: str, value: Any) -> Any:
    default = DEFAULT_OPTIMIZATION_PARAMS[name]
    if isinstance(default, bool):
        if isinstance(value, str):
            return value.strip().lower() in ('1', 'true', 'yes')
        return bool(value)
    if isinstance(default, str):
        return str(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"Параметр {name} должен быть числом, получено: {value!r}", field=name)
    if isinstance(default, int):
        if not number.is_integer():
            raise InvalidInputError(f"Параметр {name} должен быть целым числом, получено: {value!r}", field=name)
        return int(number)
    return number
