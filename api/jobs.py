"""
Задания оптимизации: запуск в пуле потоков, прогресс для опроса, отмена
"""

import logging
import threading
import time
import traceback
import uuid
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from steel_optimizer import InvalidInputError, OptimizationParams, RunStatus, optimize
from steel_optimizer.inventory import normalize
from steel_optimizer.validation import check_constraints

from api.config import ENABLE_DETAILED_LOGGING, MAX_STORED_JOBS, MAX_WORKERS

logger = logging.getLogger(__name__)

PENDING = "pending"
RUNNING = "running"
CANCELLED = RunStatus.CANCELLED.value
FAILED = RunStatus.FAILED.value

FINISHED_STATUSES = {status.value for status in RunStatus if status.is_terminal}


@dataclass
class Job:
    """Задание оптимизации и его наблюдаемое состояние"""
    id: str
    request: Dict[str, Any]
    status: str = PENDING
    progress: float = 0.0
    message: str = ""
    result: Optional[dict] = None
    created_at: float = field(default_factory=time.time)
    finished_at: Optional[float] = None
    cancel_event: threading.Event = field(default_factory=threading.Event)

    @property
    def finished(self) -> bool:
        return self.status in FINISHED_STATUSES

    def to_status(self) -> Dict[str, Any]:
        return {
            "jobId": self.id,
            "status": self.status,
            "progress": self.progress,
            "message": self.message,
            "result": self.result,
        }


def validate_request(request: Dict[str, Any]) -> OptimizationParams:
    """Проверка запроса до постановки в очередь: диапазоны ограничений и данные"""
    params = OptimizationParams.from_dict(request.get('constraints'))
    check_constraints(params)
    normalize(request.get('designSteels') or [], request.get('moduleSteels') or [], params.bounded_supply)
    return params


def run_optimization(request: Dict[str, Any], progress_fn=None,
                     cancel_event: Optional[threading.Event] = None) -> Dict[str, Any]:
    """Блокирующий запуск оптимизации по словарю запроса"""
    result = optimize(
        request.get('designSteels') or [],
        request.get('moduleSteels') or [],
        request.get('constraints'),
        progress_fn=progress_fn,
        cancel_event=cancel_event,
    )
    return result.to_dict()


class JobManager:
    """
    Реестр заданий

    Каждое задание выполняется в отдельном потоке пула с собственным состоянием
    запуска; общими остаются только записи о статусе, защищенные блокировкой.
    """

    def __init__(self, max_workers: int = MAX_WORKERS, max_stored_jobs: int = MAX_STORED_JOBS):
        self._executor = ThreadPoolExecutor(max_workers=max_workers)
        self._jobs: "OrderedDict[str, Job]" = OrderedDict()
        self._lock = threading.Lock()
        self.max_stored_jobs = max_stored_jobs

    def submit(self, request: Dict[str, Any]) -> Job:
        """Ставит задание в очередь; InvalidInputError поднимается сразу"""
        validate_request(request)
        job = Job(id=uuid.uuid4().hex, request=request)
        with self._lock:
            self._jobs[job.id] = job
            self._prune()
        logger.info(f"📥 API: Задание {job.id} принято: {len(request.get('designSteels') or [])} позиций, "
                    f"{len(request.get('moduleSteels') or [])} длин проката")
        self._executor.submit(self._run, job)
        return job

    def get(self, job_id: str) -> Optional[Job]:
        with self._lock:
            return self._jobs.get(job_id)

    def cancel(self, job_id: str) -> Optional[Job]:
        """Отмена задания; частичный результат отменного задания отбрасывается"""
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return None
            if job.finished:
                return job
            job.cancel_event.set()
            if job.status == PENDING:
                self._mark_cancelled(job)
        logger.info(f"🛑 API: Запрошена отмена задания {job_id}")
        return job

    def _run(self, job: Job):
        with self._lock:
            if job.cancel_event.is_set():
                self._mark_cancelled(job)
                return
            job.status = RUNNING
            job.message = "Оптимизация выполняется"

        start_time = time.time()
        try:
            result = run_optimization(job.request, progress_fn=lambda p: self._set_progress(job, p),
                                      cancel_event=job.cancel_event)
        except InvalidInputError as e:
            with self._lock:
                job.status = FAILED
                job.message = str(e)
                job.finished_at = time.time()
            logger.warning(f"⚠️ API: Задание {job.id} отклонено: {e}")
            return
        except Exception as e:
            with self._lock:
                job.status = FAILED
                job.message = f"Ошибка оптимизации: {str(e)}"
                job.finished_at = time.time()
            logger.error(f"❌ API: Ошибка задания {job.id}: {e}")
            logger.error(f"❌ API: Трассировка ошибки: {traceback.format_exc()}")
            return

        with self._lock:
            if job.cancel_event.is_set() or result['status'] == CANCELLED:
                self._mark_cancelled(job)
            else:
                job.status = result['status']
                job.progress = max(job.progress, result['progress'])
                job.message = result['message']
                job.result = result
                job.finished_at = time.time()

        execution_time = time.time() - start_time
        logger.info(f"⏱️ API: Задание {job.id} завершено ({job.status}) за {execution_time:.2f} секунд")
        if ENABLE_DETAILED_LOGGING and job.result:
            plan = job.result['plan']
            logger.info(f"📊 API: Схем {len(plan['entries'])}, прутков {plan['barCount']}, "
                        f"потери {plan['lossRate']:.2f}%")

    def _set_progress(self, job: Job, progress: float):
        with self._lock:
            job.progress = max(job.progress, progress)

    @staticmethod
    def _mark_cancelled(job: Job):
        job.status = CANCELLED
        job.message = "Оптимизация отменена"
        job.result = None
        job.finished_at = time.time()

    def _prune(self):
        """Удаляет самые старые завершенные задания сверх лимита"""
        excess = len(self._jobs) - self.max_stored_jobs
        if excess <= 0:
            return
        for job_id in [job_id for job_id, job in self._jobs.items() if job.finished][:excess]:
            del self._jobs[job_id]

    def shutdown(self):
        with self._lock:
            for job in self._jobs.values():
                if not job.finished:
                    job.cancel_event.set()
        self._executor.shutdown(wait=True)


job_manager = JobManager()
