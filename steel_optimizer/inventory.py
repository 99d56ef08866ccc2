"""
Нормализация исходных данных: проектные позиции (спрос) и модульный прокат (предложение)
"""

import logging
import math
from typing import Any, Dict, List, Optional, Tuple

from .config import DEFAULT_CROSS_SECTION
from .errors import InvalidInputError
from .models import DemandItem, StockItem, StockOrigin

logger = logging.getLogger(__name__)


def _pick(row: Dict[str, Any], *keys, default=None):
    """Первое непустое значение из перечисленных ключей"""
    for key in keys:
        value = row.get(key)
        if value is not None and value != '':
            return value
    return default


def _positive_number(value: Any, field: str, row_label: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"{row_label}: поле {field} должно быть числом, получено {value!r}", field=field)
    if math.isnan(number) or math.isinf(number) or number <= 0:
        raise InvalidInputError(f"{row_label}: поле {field} должно быть положительным, получено {value!r}", field=field)
    return number


def _positive_int(value: Any, field: str, row_label: str) -> int:
    number = _positive_number(value, field, row_label)
    if not number.is_integer():
        raise InvalidInputError(f"{row_label}: поле {field} должно быть целым, получено {value!r}", field=field)
    return int(number)


def normalize_demand(design_segments: List[Dict[str, Any]]) -> List[DemandItem]:
    """
    Проектные позиции -> DemandItem

    Позиции с одинаковой длиной и сечением объединяются суммированием количества.
    """
    if not design_segments:
        raise InvalidInputError("Список проектных позиций пуст", field='designSteels')

    merged: Dict[Tuple[float, float], Dict[str, Any]] = {}
    order: List[Tuple[float, float]] = []
    zero_sections = 0

    for index, row in enumerate(design_segments):
        row_label = f"Проектная позиция #{index + 1}"
        length = _positive_number(_pick(row, 'length'), 'length', row_label)
        quantity = _positive_int(_pick(row, 'quantity', 'qty', default=1), 'quantity', row_label)

        try:
            cross_section = float(_pick(row, 'crossSection', 'cross_section', default=0) or 0)
        except (TypeError, ValueError):
            raise InvalidInputError(f"{row_label}: некорректное сечение {row.get('crossSection')!r}",
                                    field='crossSection')
        if cross_section <= 0:
            cross_section = DEFAULT_CROSS_SECTION
            zero_sections += 1

        row_id = str(_pick(row, 'id', 'partNumber', 'part_number', 'componentNumber', 'component_number',
                           default=f"D{index + 1}"))
        key = (length, cross_section)
        if key not in merged:
            merged[key] = {
                'id': row_id,
                'length': length,
                'quantity': 0,
                'component_number': str(_pick(row, 'componentNumber', 'component_number', default='')),
                'part_number': str(_pick(row, 'partNumber', 'part_number', default='')),
                'specification': str(_pick(row, 'specification', default='')),
                'cross_section': cross_section,
                'source_ids': [],
            }
            order.append(key)
        merged[key]['quantity'] += quantity
        merged[key]['source_ids'].append(row_id)

    if zero_sections:
        logger.warning(f"⚠️ {zero_sections} позиций с нулевым сечением, установлено {DEFAULT_CROSS_SECTION:.0f}мм²")

    items = []
    seen_ids = set()
    for key in order:
        data = merged[key]
        item_id = data['id']
        # Идентификаторы после объединения должны быть уникальны
        if item_id in seen_ids:
            item_id = f"{item_id}@{data['length']:g}"
        seen_ids.add(item_id)
        data['id'] = item_id
        data['source_ids'] = tuple(data['source_ids'])
        items.append(DemandItem(**data))

    if len(items) < len(design_segments):
        logger.info(f"📦 Объединено позиций: {len(design_segments)} -> {len(items)}")

    items.sort(key=lambda d: (-d.length, d.id))
    return items


def normalize_stock(module_bars: List[Dict[str, Any]], bounded_supply: bool = False) -> List[StockItem]:
    """
    Модульный прокат -> StockItem

    При bounded_supply=False количество каждой длины не ограничено (закупка под заказ).
    """
    if not module_bars:
        raise InvalidInputError("Список модульного проката пуст", field='moduleSteels')

    merged: Dict[float, Dict[str, Any]] = {}
    for index, row in enumerate(module_bars):
        row_label = f"Модульный прокат #{index + 1}"
        length = _positive_number(_pick(row, 'length'), 'length', row_label)

        available: Optional[int] = None
        if bounded_supply:
            raw = _pick(row, 'available', 'count', 'quantity')
            if raw is None:
                raise InvalidInputError(f"{row_label}: при ограниченном наличии нужно указать количество",
                                        field='available')
            available = _positive_int(raw, 'available', row_label)

        if length in merged:
            if available is not None:
                merged[length]['available'] += available
            continue
        merged[length] = {
            'id': str(_pick(row, 'id', 'name', default=f"M{index + 1}")),
            'name': str(_pick(row, 'name', default='')),
            'available': available,
        }

    stock = []
    seen_ids = set()
    for length, data in merged.items():
        item_id = data['id']
        # Наличие учитывается по идентификатору, разные длины не должны его делить
        if item_id in seen_ids:
            item_id = f"{item_id}@{length:g}"
        seen_ids.add(item_id)
        stock.append(StockItem(
            id=item_id,
            length=length,
            origin=StockOrigin.ORIGINAL,
            available=data['available'],
            name=data['name'],
        ))
    stock.sort(key=lambda s: (-s.length, s.id))
    return stock


def normalize(design_segments: List[Dict[str, Any]], module_bars: List[Dict[str, Any]],
              bounded_supply: bool = False) -> Tuple[List[DemandItem], List[StockItem]]:
    """Нормализация снимка склада и спецификации в начале запуска"""
    demand = normalize_demand(design_segments)
    stock = normalize_stock(module_bars, bounded_supply)

    total_pieces = sum(item.quantity for item in demand)
    logger.info(f"📊 Спрос: {len(demand)} позиций ({total_pieces} шт), "
                f"прокат: {len(stock)} длин, {'ограниченное' if bounded_supply else 'неограниченное'} наличие")
    return demand, stock
