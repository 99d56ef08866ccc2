from fastapi import FastAPI
from dotenv import load_dotenv
import uvicorn
from fastapi import HTTPException
import asyncio
from concurrent.futures import ThreadPoolExecutor
import logging
import threading
import time
import traceback

from steel_optimizer import InvalidInputError

from api.config import API_HOST, API_PORT, API_TIMEOUT, ENABLE_DETAILED_LOGGING, LOG_LEVEL, MAX_WORKERS
from api.jobs import run_optimization, validate_request
from api.models import OptimizationJobRequest
from api.routes import router

# Загрузка переменных окружения
load_dotenv()

logging.basicConfig(level=getattr(logging, LOG_LEVEL, logging.INFO))
logger = logging.getLogger(__name__)

app = FastAPI(title="Steel Cutting Optimization API")
app.include_router(router)

# Пул потоков для синхронных запусков оптимизации
executor = ThreadPoolExecutor(max_workers=MAX_WORKERS)


@app.post("/optimize/sync")
async def optimize_sync(request: OptimizationJobRequest):
    """
    Синхронный запуск оптимизации с ожиданием результата

    Этапы:
    1. Проверка ограничений и входных данных
    2. Запуск поиска в отдельном потоке с таймаутом API_TIMEOUT
    """
    start_time = time.time()
    payload = request.model_dump()

    logger.info(f"🔄 API: Синхронная оптимизация: {len(request.designSteels)} позиций, "
                f"{len(request.moduleSteels)} длин проката")
    if ENABLE_DETAILED_LOGGING:
        logger.info(f"🔧 API: Ограничения: {payload['constraints']}")

    try:
        validate_request(payload)
    except InvalidInputError as e:
        logger.warning(f"⚠️ API: Некорректный запрос: {e}")
        raise HTTPException(status_code=400, detail={"error": "InvalidInput", "field": e.field, "message": str(e)})

    cancel_event = threading.Event()
    loop = asyncio.get_running_loop()
    future = loop.run_in_executor(executor, run_optimization, payload, None, cancel_event)

    try:
        result = await asyncio.wait_for(future, timeout=API_TIMEOUT)
    except asyncio.TimeoutError:
        cancel_event.set()
        execution_time = time.time() - start_time
        error_msg = f"Превышен таймаут ожидания результата оптимизации ({API_TIMEOUT} секунд). " \
                    f"Операция выполнялась {execution_time:.2f} секунд."
        logger.error(f"❌ API: {error_msg}")
        raise HTTPException(status_code=504, detail=error_msg)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail={"error": "InvalidInput", "field": e.field, "message": str(e)})
    except Exception as e:
        execution_time = time.time() - start_time
        error_msg = f"Ошибка оптимизации за {execution_time:.2f} секунд: {str(e)}"
        logger.error(f"❌ API: {error_msg}")
        logger.error(f"❌ API: Трассировка ошибки: {traceback.format_exc()}")
        raise HTTPException(status_code=500, detail=error_msg)

    execution_time = time.time() - start_time
    logger.info(f"⏱️ API: Оптимизация завершена ({result['status']}) за {execution_time:.2f} секунд")
    return result


if __name__ == "__main__":
    import multiprocessing
    multiprocessing.freeze_support()
    uvicorn.run(app, host=API_HOST, port=API_PORT)
