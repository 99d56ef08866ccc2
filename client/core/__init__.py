"""
Клиент сервиса оптимизации раскроя: предварительные проверки, постановка и опрос заданий
"""

from .api_client import (check_api_connection, submit_optimization, get_optimization_status,
                         cancel_optimization, wait_for_result)

__all__ = ["check_api_connection", "submit_optimization", "get_optimization_status",
           "cancel_optimization", "wait_for_result"]
