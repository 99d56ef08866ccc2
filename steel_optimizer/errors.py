"""
Исключения движка оптимизации
"""

from typing import Optional


class OptimizationError(Exception):
    """Базовая ошибка оптимизации"""


class InvalidInputError(OptimizationError):
    """Некорректные входные данные или ограничения (до начала поиска)"""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class InfeasibleError(OptimizationError):
    """Позицию нельзя разместить ни в одной заготовке или сварной сборке"""

    def __init__(self, message: str, item=None, suggested_weld_count: Optional[int] = None):
        super().__init__(message)
        self.item = item
        self.suggested_weld_count = suggested_weld_count


class InternalError(OptimizationError):
    """Нарушение инварианта раскроя - внутренняя ошибка, не пользовательская"""
