"""
Движок оптимизации линейного раскроя стального проката
"""

from .errors import InfeasibleError, InternalError, InvalidInputError, OptimizationError
from .models import (CuttingPattern, DemandItem, OptimizationParams, OptimizationPlan, PlanEntry, Remnant,
                     RemnantKind, RunStatus, StockItem, StockOrigin)
from .optimizer_core import RunResult, SearchController, optimize
from .validation import WeldingCheck, check_welding_feasibility, validate_constraints

__version__ = "1.0.0"

__all__ = [
    "optimize", "SearchController", "RunResult", "OptimizationParams", "OptimizationPlan",
    "DemandItem", "StockItem", "StockOrigin", "CuttingPattern", "Remnant", "RemnantKind", "PlanEntry",
    "RunStatus", "WeldingCheck", "check_welding_feasibility", "validate_constraints",
    "OptimizationError", "InvalidInputError", "InfeasibleError", "InternalError",
]
