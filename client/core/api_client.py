"""
API клиент для взаимодействия с сервером оптимизации
"""

import json
import logging
import time

import requests

from steel_optimizer.models import OptimizationParams
from steel_optimizer.errors import InvalidInputError
from steel_optimizer.validation import check_welding_feasibility, validate_constraints

from .config import API_URL, DEFAULT_CONSTRAINTS, POLL_INTERVAL, REQUEST_TIMEOUT

logger = logging.getLogger(__name__)

FINISHED_STATUSES = ('completed', 'timedOut', 'infeasible', 'failed', 'cancelled')


def check_api_connection():
    """Проверка доступности API"""
    try:
        response = requests.get(f"{API_URL}/health", timeout=REQUEST_TIMEOUT)
        return response.status_code == 200
    except requests.exceptions.RequestException as e:
        logger.error(f"API connection error: {e}")
        return False


def api_request(endpoint, data=None, method='GET'):
    """Универсальная функция для API запросов"""
    url = f"{API_URL}/{endpoint.lstrip('/')}"

    try:
        if method == 'POST':
            response = requests.post(url, json=data, timeout=REQUEST_TIMEOUT)
        elif method == 'DELETE':
            response = requests.delete(url, timeout=REQUEST_TIMEOUT)
        else:
            response = requests.get(url, timeout=REQUEST_TIMEOUT)

        response.raise_for_status()

        try:
            result = response.json()
            logger.debug(f"🔧 API CLIENT: {method} {endpoint} -> {type(result).__name__}")
            return result
        except json.JSONDecodeError as e:
            logger.error(f"JSON decode error: {e}")
            return None

    except requests.exceptions.RequestException as e:
        logger.error(f"Request error: {e}")
        return None


def precheck(design_steels, module_steels, constraints):
    """
    Клиентская проверка до отправки задания (без обращения к серверу)

    Returns:
        dict: {"success": bool, "message": str, "welding": dict | None}
    """
    if not design_steels:
        return {"success": False, "message": "Добавьте проектные позиции", "welding": None}
    if not module_steels:
        return {"success": False, "message": "Добавьте модульный прокат", "welding": None}

    try:
        params = OptimizationParams.from_dict(constraints)
    except InvalidInputError as e:
        return {"success": False, "message": f"Ошибка ограничений: {e}", "welding": None}
    errors = validate_constraints(params)
    if errors:
        return {"success": False, "message": f"Ошибка ограничений: {errors[0]}", "welding": None}

    try:
        design_lengths = [float(d.get('length', 0)) for d in design_steels]
        module_lengths = [float(m.get('length', 0)) for m in module_steels]
    except (TypeError, ValueError) as e:
        return {"success": False, "message": f"Некорректная длина: {e}", "welding": None}

    check = check_welding_feasibility(design_lengths, module_lengths, params.max_welding_segments)
    if not check.is_valid:
        return {"success": False, "message": check.message, "welding": check.to_dict()}
    return {"success": True, "message": "", "welding": check.to_dict()}


def submit_optimization(design_steels, module_steels, constraints=None, force=False):
    """
    Отправка задания оптимизации

    Args:
        design_steels: Список проектных позиций (length, quantity, ...)
        module_steels: Список модульного проката (length, name, ...)
        constraints: Ограничения; отсутствующие берутся из DEFAULT_CONSTRAINTS
        force: Отправить задание, даже если проверка сварки не пройдена

    Returns:
        dict: {"success": True, "jobId": ...} или {"success": False, "message": ...}
    """
    merged = dict(DEFAULT_CONSTRAINTS)
    merged.update(constraints or {})

    check = precheck(design_steels, module_steels, merged)
    if not check['success'] and not (force and check['welding']):
        logger.warning(f"⚠️ API: Задание не отправлено: {check['message']}")
        return check
    if not check['success']:
        logger.warning(f"⚠️ API: {check['message']} - отправляем задание по требованию пользователя")

    payload = {
        "designSteels": list(design_steels),
        "moduleSteels": list(module_steels),
        "constraints": merged,
    }
    logger.info(f"🔄 API: Отправка задания: {len(design_steels)} позиций, {len(module_steels)} длин проката")

    try:
        response = requests.post(f"{API_URL}/optimize", json=payload, timeout=REQUEST_TIMEOUT)

        if response.status_code == 200:
            result = response.json()
            logger.info(f"✅ API: Задание {result.get('jobId')} принято")
            return {"success": True, "jobId": result.get('jobId'), "status": result.get('status')}

        error_msg = f"HTTP {response.status_code}"
        try:
            detail = response.json().get('detail', 'Неизвестная ошибка')
            if isinstance(detail, dict):
                detail = detail.get('message', detail)
            error_msg = f"{error_msg}: {detail}"
        except ValueError:
            pass
        logger.error(f"❌ API: Ошибка отправки задания: {error_msg}")
        return {"success": False, "message": error_msg}

    except requests.exceptions.Timeout:
        error_msg = "Таймаут запроса к API серверу"
        logger.error(f"❌ API: {error_msg}")
        return {"success": False, "message": error_msg}
    except requests.exceptions.ConnectionError:
        error_msg = "Не удается подключиться к API серверу"
        logger.error(f"❌ API: {error_msg}")
        return {"success": False, "message": error_msg}


def get_optimization_status(job_id):
    """Статус задания: status, progress, message, result"""
    return api_request(f"optimize/{job_id}", method='GET')


def cancel_optimization(job_id):
    """Отмена задания"""
    return api_request(f"optimize/{job_id}", method='DELETE')


def wait_for_result(job_id, progress_fn=None, poll_interval=POLL_INTERVAL, timeout=None, sleep=time.sleep):
    """
    Опрос задания до завершения

    Прогресс передается в progress_fn только при увеличении. При превышении
    timeout задание отменяется.
    """
    start_time = time.monotonic()
    last_progress = -1.0

    while True:
        status = get_optimization_status(job_id)
        if status is None:
            return {"success": False, "message": f"Не удалось получить статус задания {job_id}"}

        progress = float(status.get('progress', 0))
        if progress_fn and progress > last_progress:
            last_progress = progress
            progress_fn(progress)

        if status.get('status') in FINISHED_STATUSES:
            status['success'] = status.get('status') == 'completed'
            return status

        if timeout is not None and time.monotonic() - start_time > timeout:
            cancel_optimization(job_id)
            return {"success": False, "message": f"Превышено время ожидания задания {job_id} ({timeout}с)"}

        sleep(poll_interval)
