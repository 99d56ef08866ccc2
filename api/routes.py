from fastapi import APIRouter, HTTPException
import logging
import time

from steel_optimizer import InvalidInputError, check_welding_feasibility

from api.jobs import job_manager
from api.models import JobCreated, JobStatus, OptimizationJobRequest, WeldingCheckRequest

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
def health():
    return {"status": "ok"}


@router.post("/optimize", response_model=JobCreated)
def submit_optimization(request: OptimizationJobRequest):
    """
    Поставить задание оптимизации в очередь

    Ошибки входных данных возвращаются сразу (400), до начала поиска.
    """
    try:
        job = job_manager.submit(request.model_dump())
    except InvalidInputError as e:
        logger.warning(f"⚠️ API: Некорректный запрос: {e}")
        raise HTTPException(status_code=400, detail={"error": "InvalidInput", "field": e.field, "message": str(e)})
    return {"jobId": job.id, "status": job.status}


@router.get("/optimize/{job_id}", response_model=JobStatus)
def optimization_status(job_id: str):
    job = job_manager.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"Задание {job_id} не найдено")
    return job.to_status()


@router.delete("/optimize/{job_id}", response_model=JobStatus)
def cancel_optimization(job_id: str):
    """
    Отменить задание (клиент может бросить задание в любой момент)
    """
    job = job_manager.cancel(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"Задание {job_id} не найдено")
    return job.to_status()


@router.post("/validate-welding")
def validate_welding(request: WeldingCheckRequest):
    """
    Предварительная проверка выполнимости по сварке (рекомендательная)
    """
    start_time = time.time()
    check = check_welding_feasibility(request.designLengths, request.moduleLengths, request.maxWeldingSegments)
    logger.debug(f"✅ API: Проверка сварки выполнена за {time.time() - start_time:.3f}с")
    return check.to_dict()
