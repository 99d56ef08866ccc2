"""
Configuration settings for the steel cutting optimization client
"""

import os

# API Configuration
API_URL = os.getenv('OPTIMIZER_API_URL', "http://localhost:8000")
REQUEST_TIMEOUT = 120  # секунды на один HTTP-запрос
POLL_INTERVAL = 1.0    # интервал опроса статуса задания (с)

# Ограничения оптимизации по умолчанию
DEFAULT_CONSTRAINTS = {
    'wasteThreshold': 100,      # мм: остаток короче - отход
    'targetLossRate': 5.0,      # %: целевой процент потерь (рекомендательный)
    'timeLimit': 30,            # с: лимит времени расчета
    'maxWeldingSegments': 1,    # максимальное число сварок на одну деталь
    'boundedSupply': False,     # ограниченное наличие модульного проката
}

# Application Settings
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()
