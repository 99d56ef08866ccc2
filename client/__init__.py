#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Клиентская часть сервиса оптимизации линейного раскроя

Этот пакет содержит:
- core: Работа с API и предварительные проверки
- Основной модуль запуска задания из файла
"""

__version__ = "1.0.0"

# Экспорт основных компонентов для удобного импорта
from .core.api_client import check_api_connection, submit_optimization, wait_for_result

__all__ = [
    'check_api_connection',
    'submit_optimization',
    'wait_for_result',
]
