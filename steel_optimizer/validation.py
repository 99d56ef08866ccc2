"""
Проверка ограничений и предварительная проверка выполнимости по сварке
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List

from .config import CONSTRAINT_LIMITS
from .errors import InvalidInputError
from .models import OptimizationParams
from .welding import minimum_welds


@dataclass
class WeldingCheck:
    """Результат предварительной проверки сварки"""
    is_valid: bool
    message: str = ""
    conflict_count: int = 0
    max_design_length: float = 0.0
    max_stock_length: float = 0.0
    suggested_weld_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        return {
            'isValid': data['is_valid'],
            'message': data['message'],
            'conflictCount': data['conflict_count'],
            'maxDesignLength': data['max_design_length'],
            'maxStockLength': data['max_stock_length'],
            'suggestedWeldCount': data['suggested_weld_count'],
        }


def validate_constraints(params: OptimizationParams) -> List[str]:
    """Список ошибок диапазонов ограничений (пустой - все в порядке)"""
    errors = []

    low, high = CONSTRAINT_LIMITS['waste_threshold']
    if not low <= params.waste_threshold <= high:
        errors.append(f"Порог отхода должен быть в диапазоне {low:.0f}-{high:.0f}мм")

    low, high = CONSTRAINT_LIMITS['target_loss_rate']
    if not low <= params.target_loss_rate <= high:
        errors.append(f"Целевой процент потерь должен быть в диапазоне {low:.0f}-{high:.0f}%")

    low, high = CONSTRAINT_LIMITS['time_limit']
    if not low <= params.time_limit <= high:
        errors.append(f"Лимит времени расчета должен быть в диапазоне {low:.0f}-{high:.0f} секунд")

    low, high = CONSTRAINT_LIMITS['max_welding_segments']
    if (not isinstance(params.max_welding_segments, int) or isinstance(params.max_welding_segments, bool)
            or not low <= params.max_welding_segments <= high):
        errors.append(f"Максимальное число сварок должно быть целым в диапазоне {low}-{high}")

    return errors


def check_constraints(params: OptimizationParams):
    """Быстрый отказ до начала поиска"""
    errors = validate_constraints(params)
    if errors:
        raise InvalidInputError(errors[0], field='constraints')


def check_welding_feasibility(design_lengths: Iterable[float], stock_lengths: Iterable[float],
                              max_weld_segments: int) -> WeldingCheck:
    """
    Предварительная проверка: хватает ли длины модульного проката с учетом сварки

    Проверка рекомендательная, окончательное решение принимает движок (статус infeasible).
    """
    design_lengths = list(design_lengths)
    stock_lengths = list(stock_lengths)
    if not design_lengths or not stock_lengths:
        return WeldingCheck(is_valid=True)

    max_stock = max(stock_lengths)
    max_design = max(design_lengths)
    reach = max_stock * (max(0, max_weld_segments) + 1)
    conflicts = [length for length in design_lengths if length > reach]
    if not conflicts:
        return WeldingCheck(is_valid=True, max_design_length=max_design, max_stock_length=max_stock)

    worst = max(conflicts)
    suggested = minimum_welds(worst, max_stock)
    if max_weld_segments <= 0:
        message = (f"{len(conflicts)} проектных позиций длиннее самого длинного модульного проката "
                   f"({max_stock:g}мм), рекомендуется установить максимальное число сварок не менее {suggested}")
    else:
        message = (f"{len(conflicts)} проектных позиций длиннее {reach:g}мм "
                   f"({max_weld_segments} сварок по {max_stock:g}мм), "
                   f"рекомендуется установить максимальное число сварок не менее {suggested}")
    return WeldingCheck(
        is_valid=False,
        message=message,
        conflict_count=len(conflicts),
        max_design_length=max_design,
        max_stock_length=max_stock,
        suggested_weld_count=suggested,
    )
