#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Модуль оптимизации линейного раскроя стального проката

Жадный поиск по позициям спроса с перебором схем раскроя, сварными сборками
и повторным использованием деловых остатков в пределах запуска.
"""

import logging
import math
import threading
import time
import traceback
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .config import LENGTH_TOLERANCE
from .errors import InfeasibleError, InternalError
from .inventory import normalize
from .models import (CuttingPattern, DemandItem, OptimizationParams, OptimizationPlan, PlanEntry,
                     RunStatus, StockItem, StockOrigin)
from .patterns import PatternGenerator
from .policies import SelectionPolicy, get_policy
from .remnants import RemnantLedger
from .validation import check_constraints, check_welding_feasibility
from .welding import build_composites, minimum_welds

logger = logging.getLogger(__name__)


def _floor_percent(value: float) -> float:
    return math.floor(value * 100) / 100


@dataclass
class RunState:
    """Изменяемое состояние одного запуска (принадлежит только контроллеру)"""
    demand: List[DemandItem]
    remaining: Dict[str, int]
    availability: Dict[str, Optional[int]]
    ledger: RemnantLedger
    started_at: float
    original_total: float
    entries: List[PlanEntry] = field(default_factory=list)
    progress: float = 0.0
    last_report: Optional[float] = None

    @property
    def remaining_total(self) -> float:
        return sum(item.length * self.remaining[item.id] for item in self.demand)

    @property
    def outstanding(self) -> List[Tuple[DemandItem, int]]:
        return [(item, self.remaining[item.id]) for item in self.demand if self.remaining[item.id] > 0]

    @property
    def step(self) -> int:
        return len(self.entries)


@dataclass
class RunResult:
    """Результат запуска оптимизации"""
    status: RunStatus
    plan: OptimizationPlan
    progress: float
    message: str
    elapsed: float
    remaining_demand: Dict[str, int] = field(default_factory=dict)
    infeasible_item: Optional[DemandItem] = None
    suggested_weld_count: Optional[int] = None

    @property
    def success(self) -> bool:
        return self.status == RunStatus.COMPLETED

    @property
    def partial(self) -> bool:
        return self.status in (RunStatus.TIMED_OUT, RunStatus.CANCELLED)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'status': self.status.value,
            'success': self.success,
            'partial': self.partial,
            'progress': self.progress,
            'message': self.message,
            'elapsed': round(self.elapsed, 3),
            'remainingDemand': dict(self.remaining_demand),
            'infeasibleItem': None,
            'suggestedWeldCount': self.suggested_weld_count,
            'plan': self.plan.to_dict(),
        }
        if self.infeasible_item is not None:
            item = self.infeasible_item
            data['infeasibleItem'] = {
                'id': item.id,
                'length': item.length,
                'quantity': item.quantity,
                'componentNumber': item.component_number,
                'partNumber': item.part_number,
                'sourceIds': list(item.source_ids),
            }
        return data


class SearchController:
    """
    Управление поиском плана раскроя

    Idle -> Running -> {Completed, TimedOut, Infeasible, Failed, Cancelled}.
    Контроллер одноразовый: каждый запуск создает собственные RunState и реестр остатков.
    """

    def __init__(self, params: OptimizationParams, policy: Optional[SelectionPolicy] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.params = params
        self.policy = policy or get_policy(params.selection_policy, params.scarcity_bonus)
        self.clock = clock
        self.status = RunStatus.IDLE
        self.progress_callback: Optional[Callable[[float], None]] = None
        self.generator = PatternGenerator(
            waste_threshold=params.waste_threshold,
            scoring=self.policy.scoring,
            max_nodes=params.max_pattern_nodes,
            max_patterns=params.max_patterns_per_stock,
            scarcity_bonus=params.scarcity_bonus,
        )

    def set_progress_callback(self, callback: Callable[[float], None]):
        """Установка callback для отслеживания прогресса"""
        self.progress_callback = callback

    def _report_progress(self, state: RunState, force: bool = False):
        """Прогресс по закрытой длине спроса, не чаще progress_interval"""
        if state.original_total > 0:
            done = (state.original_total - state.remaining_total) / state.original_total * 100
            state.progress = max(state.progress, min(100.0, done))

        if not self.progress_callback:
            return
        now = self.clock()
        if force or state.last_report is None or now - state.last_report >= self.params.progress_interval:
            state.last_report = now
            self.progress_callback(_floor_percent(state.progress))

    def run(self, demand: List[DemandItem], stock: List[StockItem],
            progress_fn: Optional[Callable[[float], None]] = None,
            cancel_event: Optional[threading.Event] = None) -> RunResult:
        """Основной метод оптимизации"""
        if self.status != RunStatus.IDLE:
            raise RuntimeError(f"Контроллер уже использован (состояние {self.status.value})")
        if progress_fn:
            self.set_progress_callback(progress_fn)

        self.status = RunStatus.RUNNING
        state = RunState(
            demand=list(demand),
            remaining={item.id: item.quantity for item in demand},
            availability={item.id: item.available for item in stock},
            ledger=RemnantLedger(self.params.waste_threshold),
            started_at=self.clock(),
            original_total=sum(item.total_length for item in demand),
        )

        logger.info(f"🚀 Начинаем оптимизацию: {len(demand)} позиций, {len(stock)} длин проката, "
                    f"порог отхода {self.params.waste_threshold:g}мм, сварок до {self.params.max_welding_segments}, "
                    f"лимит {self.params.time_limit:g}с, политика {self.policy.name}")
        self._report_progress(state, force=True)

        try:
            while state.outstanding:
                interrupted = self._interrupted(state, cancel_event)
                if interrupted:
                    return self._finish(state, interrupted)

                interrupted = self._step(state, stock, cancel_event)
                if interrupted:
                    return self._finish(state, interrupted)

                self._report_progress(state)

            return self._finish(state, RunStatus.COMPLETED)

        except InfeasibleError as e:
            logger.warning(f"⚠️ {e}")
            return self._finish(state, RunStatus.INFEASIBLE, message=str(e),
                                infeasible_item=e.item, suggested_weld_count=e.suggested_weld_count)
        except InternalError as e:
            logger.error(f"❌ Внутренняя ошибка оптимизации: {e}")
            logger.error(traceback.format_exc())
            return self._finish(state, RunStatus.FAILED, message=f"Внутренняя ошибка: {e}")

    def _interrupted(self, state: RunState, cancel_event: Optional[threading.Event]) -> Optional[RunStatus]:
        if cancel_event is not None and cancel_event.is_set():
            return RunStatus.CANCELLED
        if self.clock() - state.started_at > self.params.time_limit:
            return RunStatus.TIMED_OUT
        return None

    def _step(self, state: RunState, catalogue: List[StockItem],
              cancel_event: Optional[threading.Event]) -> Optional[RunStatus]:
        """Один шаг: выбор позиции, схем по всем кандидатам и применение лучшей"""
        target = self.policy.pick_demand(state.demand, state.remaining)
        candidates = self._candidates(state, catalogue, target)
        outstanding = state.outstanding

        stop_flag = {'status': None}

        def should_stop() -> bool:
            stop_flag['status'] = self._interrupted(state, cancel_event)
            return stop_flag['status'] is not None

        best = None
        for stock in candidates:
            patterns = self.generator.generate(stock.length, outstanding, required_id=target.id,
                                               should_stop=should_stop)
            if stop_flag['status']:
                return stop_flag['status']
            if not patterns:
                continue
            key = self.policy.rank(patterns[0], stock, state.remaining)
            if best is None or key < best[0]:
                best = (key, stock, patterns[0])

        # Шаг, не завершившийся до истечения времени, отбрасывается целиком
        interrupted = self._interrupted(state, cancel_event)
        if interrupted:
            return interrupted

        if best is None:
            raise InfeasibleError(f"Не найдено ни одной схемы раскроя для позиции {target.id} ({target.length:g}мм)",
                                  item=target)

        _, stock, pattern = best
        self._apply(state, stock, pattern)
        return None

    def _candidates(self, state: RunState, catalogue: List[StockItem], target: DemandItem) -> List[StockItem]:
        """Заготовки, в которые помещается target: остатки, каталог, при необходимости - сварные сборки"""
        available = [
            replace(item, available=state.availability[item.id])
            for item in catalogue
            if state.availability[item.id] is None or state.availability[item.id] > 0
        ]
        singles = [item for item in available if item.length + LENGTH_TOLERANCE >= target.length]
        candidates = state.ledger.reclaim(target.length) + singles
        if candidates:
            return candidates

        weld_limit = self.params.max_welding_segments
        if weld_limit > 0:
            pieces = available + state.ledger.reclaim(0.0)
            composites = build_composites(pieces, weld_limit, target.length,
                                          max_composites=self.params.max_composites,
                                          max_nodes=self.params.max_composite_nodes)
            if composites:
                logger.debug(f"🔗 Позиция {target.id} ({target.length:g}мм): {len(composites)} сварных сборок")
                return composites

        longest = max(item.length for item in catalogue)
        suggested = minimum_welds(target.length, longest)
        if not available:
            message = f"Модульный прокат исчерпан, позицию {target.id} ({target.length:g}мм) разместить не из чего"
        elif weld_limit <= 0:
            message = (f"Позиция {target.id} ({target.length:g}мм) длиннее самого длинного модульного проката "
                       f"({longest:g}мм), сварка запрещена. Рекомендуемое число сварок: {suggested}")
        else:
            message = (f"Позиция {target.id} ({target.length:g}мм) не перекрывается сборкой из "
                       f"{weld_limit + 1} прутков. Рекомендуемое число сварок: {suggested}")
        raise InfeasibleError(message, item=target, suggested_weld_count=suggested)

    def _apply(self, state: RunState, stock: StockItem, pattern: CuttingPattern):
        """Применение схемы: списание спроса, заготовки и учет остатка"""
        step = state.step
        if not pattern.is_consistent():
            raise InternalError(f"Схема не сходится: {pattern.used_length:.6f} + {pattern.leftover:.6f} "
                                f"!= {pattern.stock_length:.6f}")
        if abs(pattern.stock_length - stock.length) > LENGTH_TOLERANCE:
            raise InternalError(f"Схема для {pattern.stock_length:g}мм применена к заготовке {stock.length:g}мм")
        if stock.weld_count > self.params.max_welding_segments:
            raise InternalError(f"Сборка {stock.id} превышает лимит сварок")
        for demand_id, _, count in pattern.pieces:
            if count > state.remaining.get(demand_id, 0):
                raise InternalError(f"Схема режет {count} шт позиции {demand_id}, "
                                    f"осталось {state.remaining.get(demand_id, 0)}")

        unit = self._consume(state, stock, step)
        for demand_id, _, count in pattern.pieces:
            state.remaining[demand_id] -= count
        remnant = state.ledger.record(pattern.leftover, step)
        state.entries.append(PlanEntry(step=step, stock=unit, pattern=pattern, remnant=remnant))

        logger.debug(f"✂️ Шаг {step}: {stock.id} ({stock.length:g}мм) -> "
                     f"{', '.join(f'{d}x{c}' for d, _, c in pattern.pieces)}, "
                     f"остаток {pattern.leftover:.1f}мм ({remnant.kind.value})")

    def _consume(self, state: RunState, stock: StockItem, step: int) -> StockItem:
        """Списывает заготовку; возвращает конкретную единицу с точным происхождением"""
        if stock.origin == StockOrigin.ORIGINAL:
            count = state.availability.get(stock.id)
            if count is not None:
                if count <= 0:
                    raise InternalError(f"Модульный прокат {stock.id} исчерпан")
                state.availability[stock.id] = count - 1
            return replace(stock, available=None)
        if stock.origin == StockOrigin.REMNANT:
            produced_at = state.ledger.consume(stock.length, step)
            return replace(stock, available=None, produced_at=produced_at)
        members = tuple(self._consume(state, member, step) for member in stock.members)
        return replace(stock, members=members, available=None)

    def _finish(self, state: RunState, status: RunStatus, message: Optional[str] = None,
                infeasible_item: Optional[DemandItem] = None,
                suggested_weld_count: Optional[int] = None) -> RunResult:
        """Формирует результат и переводит контроллер в конечное состояние"""
        self.status = status
        elapsed = self.clock() - state.started_at

        if status == RunStatus.FAILED:
            # Несогласованный план не возвращается
            plan = OptimizationPlan(target_loss_rate=self.params.target_loss_rate)
        else:
            plan = OptimizationPlan(
                entries=list(state.entries),
                unused_remnants=state.ledger.unused(),
                target_loss_rate=self.params.target_loss_rate,
            )

        if status == RunStatus.COMPLETED:
            state.progress = 100.0
        self._report_progress(state, force=True)
        progress = 100.0 if status == RunStatus.COMPLETED else _floor_percent(state.progress)

        if message is None:
            message = self._default_message(status, plan)

        self._log_summary(status, plan, elapsed)
        return RunResult(
            status=status,
            plan=plan,
            progress=progress,
            message=message,
            elapsed=elapsed,
            remaining_demand={item_id: qty for item_id, qty in state.remaining.items() if qty > 0},
            infeasible_item=infeasible_item,
            suggested_weld_count=suggested_weld_count,
        )

    def _default_message(self, status: RunStatus, plan: OptimizationPlan) -> str:
        if status == RunStatus.COMPLETED:
            message = (f"Все позиции раскроены: {plan.bar_count} прутков, "
                       f"потери {plan.loss_rate:.2f}%")
            if not plan.target_met:
                message += f" (цель {plan.target_loss_rate:g}% не достигнута)"
            return message
        if status == RunStatus.TIMED_OUT:
            return (f"Превышен лимит времени {self.params.time_limit:g}с, "
                    f"возвращен частичный план из {len(plan.entries)} резов")
        if status == RunStatus.CANCELLED:
            return "Оптимизация отменена"
        return status.value

    def _log_summary(self, status: RunStatus, plan: OptimizationPlan, elapsed: float):
        icon = "✅" if status == RunStatus.COMPLETED else "⚠️"
        logger.info(f"{icon} Оптимизация завершена ({status.value}) за {elapsed:.2f}с")
        if not plan.entries:
            return
        logger.info(f"📊 Результат: {len(plan.entries)} схем, {plan.bar_count} прутков, "
                    f"списано {plan.total_consumed_length:.0f}мм, отходы {plan.total_waste_length:.0f}мм, "
                    f"потери {plan.loss_rate:.2f}% (цель {plan.target_loss_rate:g}%)")
        if plan.unused_remnants:
            logger.info(f"♻️ Неиспользованные деловые остатки: {len(plan.unused_remnants)} шт, "
                        f"{plan.unused_remnant_length:.0f}мм")
        welded = [entry for entry in plan.entries if entry.stock.is_composite]
        if welded:
            logger.info(f"🔗 Сварные сборки: {len(welded)}, максимум сварок {plan.max_weld_count}")
        if self.generator.truncated_count:
            logger.info(f"⚠️ Перебор схем ограничивался {self.generator.truncated_count} раз")


def optimize(design_segments: Sequence[Dict[str, Any]], module_bars: Sequence[Dict[str, Any]],
             constraints: Optional[Dict[str, Any]] = None,
             progress_fn: Optional[Callable[[float], None]] = None,
             cancel_event: Optional[threading.Event] = None,
             clock: Callable[[], float] = time.monotonic, **kwargs) -> RunResult:
    """
    Главная функция оптимизации для сервиса заданий

    Ошибки входных данных (InvalidInputError) поднимаются до начала поиска.
    """
    params = OptimizationParams.from_dict(constraints, **kwargs)
    check_constraints(params)
    policy = get_policy(params.selection_policy, params.scarcity_bonus)

    demand, stock = normalize(list(design_segments), list(module_bars), params.bounded_supply)

    welding = check_welding_feasibility([d.length for d in demand], [s.length for s in stock],
                                        params.max_welding_segments)
    if not welding.is_valid:
        logger.warning(f"⚠️ {welding.message}")

    controller = SearchController(params, policy, clock=clock)
    return controller.run(demand, stock, progress_fn=progress_fn, cancel_event=cancel_event)
