"""
Configuration module for API server
"""

import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Server settings
API_HOST = os.getenv('API_HOST', '0.0.0.0')
API_PORT = int(os.getenv('API_PORT', '8000'))

# Пул потоков для запусков оптимизации
MAX_WORKERS = int(os.getenv('MAX_WORKERS', '5'))

# API timeout settings
API_TIMEOUT = int(os.getenv('API_TIMEOUT', '330'))  # Лимит оптимизации 300с + запас

# Сколько завершенных заданий хранить для опроса
MAX_STORED_JOBS = int(os.getenv('MAX_STORED_JOBS', '50'))

# Debug settings
ENABLE_DETAILED_LOGGING = os.getenv('ENABLE_DETAILED_LOGGING', 'true').lower() == 'true'
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()
