"""
Настройки движка оптимизации линейного раскроя стального проката
"""

# Допуск сравнения длин (мм)
LENGTH_TOLERANCE = 1e-6

# Площадь сечения по умолчанию, если в исходных данных она нулевая (мм²)
DEFAULT_CROSS_SECTION = 1000.0

# Допустимые диапазоны ограничений: (минимум, максимум)
CONSTRAINT_LIMITS = {
    'waste_threshold': (100.0, 2000.0),      # мм
    'target_loss_rate': (0.0, 20.0),         # %
    'time_limit': (1.0, 300.0),              # секунды
    'max_welding_segments': (0, 9),          # количество сварок
}

# Параметры оптимизации по умолчанию
DEFAULT_OPTIMIZATION_PARAMS = {
    'waste_threshold': 100.0,
    'target_loss_rate': 5.0,
    'time_limit': 30.0,
    'max_welding_segments': 1,
    'bounded_supply': False,
    'selection_policy': 'longest_first',
    # Ограничения перебора
    'max_pattern_nodes': 5000,      # Узлов перебора на одну длину заготовки
    'max_patterns_per_stock': 20,   # Лучших схем на одну длину заготовки
    'max_composites': 50,           # Сварных сборок на один шаг
    'max_composite_nodes': 20000,   # Узлов перебора сварных сборок
    'scarcity_bonus': 0.5,          # Вес бонуса за закрытие позиции (режим SCARCITY)
    'progress_interval': 0.2,       # Минимальный интервал отчета о прогрессе (с)
}
