"""
HTTP сервис заданий оптимизации раскроя
"""
