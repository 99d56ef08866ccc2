from pydantic import BaseModel, Field
from typing import List, Optional

from steel_optimizer.config import DEFAULT_OPTIMIZATION_PARAMS


class DesignSteel(BaseModel):
    """Проектная позиция (требуемая длина и количество)"""
    id: Optional[str] = None
    length: float
    quantity: int = 1
    componentNumber: Optional[str] = None
    partNumber: Optional[str] = None
    specification: Optional[str] = None
    crossSection: Optional[float] = None


class ModuleSteel(BaseModel):
    """Модульный прокат (длина заготовки в каталоге)"""
    id: Optional[str] = None
    name: Optional[str] = None
    length: float
    available: Optional[int] = None


class Constraints(BaseModel):
    wasteThreshold: float = DEFAULT_OPTIMIZATION_PARAMS['waste_threshold']
    targetLossRate: float = DEFAULT_OPTIMIZATION_PARAMS['target_loss_rate']
    timeLimit: float = DEFAULT_OPTIMIZATION_PARAMS['time_limit']
    maxWeldingSegments: int = DEFAULT_OPTIMIZATION_PARAMS['max_welding_segments']
    boundedSupply: bool = DEFAULT_OPTIMIZATION_PARAMS['bounded_supply']
    selectionPolicy: str = DEFAULT_OPTIMIZATION_PARAMS['selection_policy']


class OptimizationJobRequest(BaseModel):
    designSteels: List[DesignSteel]
    moduleSteels: List[ModuleSteel]
    constraints: Constraints = Field(default_factory=Constraints)


class WeldingCheckRequest(BaseModel):
    designLengths: List[float]
    moduleLengths: List[float]
    maxWeldingSegments: int = 0


class JobCreated(BaseModel):
    jobId: str
    status: str


class JobStatus(BaseModel):
    jobId: str
    status: str
    progress: float
    message: str = ""
    result: Optional[dict] = None
