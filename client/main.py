#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Точка входа: отправка задания оптимизации из JSON-файла и вывод сводки

Использование:
    python -m client.main job.json [--force]

Формат файла: {"designSteels": [...], "moduleSteels": [...], "constraints": {...}}
"""

import json
import logging
import sys

from client.core.api_client import check_api_connection, submit_optimization, wait_for_result
from client.core.config import LOG_LEVEL

logger = logging.getLogger(__name__)


def print_summary(status):
    """Сводка результата: статус, потери, список раскроя"""
    print(f"Статус: {status.get('status')} ({status.get('progress', 0):.0f}%)")
    print(status.get('message', ''))

    result = status.get('result') or {}
    item = result.get('infeasibleItem')
    if item:
        print(f"Неразмещаемая позиция: {item['id']} ({item['length']:g}мм), "
              f"рекомендуемое число сварок: {result.get('suggestedWeldCount')}")

    plan = result.get('plan')
    if not plan or not plan.get('entries'):
        return
    print(f"Прутков: {plan['barCount']}, списано {plan['totalConsumedLength']:.0f}мм, "
          f"отходы {plan['totalWasteLength']:.0f}мм, потери {plan['lossRate']:.2f}% "
          f"(цель {plan['targetLossRate']:g}%)")
    for entry in plan['entries']:
        stock = entry['stock']
        cuts = ', '.join(f"{cut['length']:g}x{cut['count']}" for cut in entry['cuts'])
        weld = f" [сварок: {stock['weldCount']}]" if stock['weldCount'] else ""
        print(f"  {entry['step'] + 1:>4}. {stock['origin']:<8} {stock['length']:>8g}мм{weld}: {cuts} "
              f"| остаток {entry['leftover']:g}мм ({entry['remnantKind']})")


def main():
    """Главная функция - точка входа"""
    logging.basicConfig(level=getattr(logging, LOG_LEVEL, logging.INFO))

    args = [arg for arg in sys.argv[1:] if not arg.startswith('--')]
    if len(args) != 1:
        print(__doc__)
        sys.exit(2)

    try:
        with open(args[0], encoding='utf-8') as f:
            job = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        print(f"Ошибка чтения файла задания: {e}")
        sys.exit(1)

    if not check_api_connection():
        print("API сервер недоступен")
        sys.exit(1)

    submitted = submit_optimization(job.get('designSteels', []), job.get('moduleSteels', []),
                                    job.get('constraints'), force='--force' in sys.argv)
    if not submitted.get('success'):
        print(submitted.get('message'))
        sys.exit(1)

    status = wait_for_result(submitted['jobId'],
                             progress_fn=lambda p: print(f"\rПрогресс: {p:.0f}%", end='', flush=True))
    print()
    print_summary(status)
    sys.exit(0 if status.get('success') else 1)


if __name__ == "__main__":
    main()
