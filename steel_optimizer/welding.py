"""
Сварные сборки: виртуальные заготовки из нескольких прутков, соединенных встык
"""

import logging
import math
from typing import List, Tuple

from .config import LENGTH_TOLERANCE
from .models import StockItem, StockOrigin

logger = logging.getLogger(__name__)


def minimum_welds(target_length: float, longest_piece: float) -> int:
    """Минимальное число сварок, чтобы перекрыть target_length прутками longest_piece"""
    if longest_piece <= 0:
        return 0
    return max(0, math.ceil(target_length / longest_piece - LENGTH_TOLERANCE) - 1)


def make_composite(members: Tuple[StockItem, ...]) -> StockItem:
    """Сборка из упорядоченных прутков; число сварок = число прутков - 1"""
    return StockItem(
        id="W(" + "+".join(member.id for member in members) + ")",
        length=sum(member.length for member in members),
        origin=StockOrigin.WELDED,
        weld_count=len(members) - 1,
        members=tuple(members),
        available=1,
    )


def build_composites(pieces: List[StockItem], max_weld_segments: int, target_length: float,
                     max_composites: int = 50, max_nodes: int = 20000) -> List[StockItem]:
    """
    Строит минимальные сварные сборки, перекрывающие target_length

    pieces - доступные одиночные заготовки (каталог и деловые остатки), поле
    available ограничивает кратность (None - без ограничений). Сборка содержит
    не более max_weld_segments + 1 прутков; ветвь перебора останавливается, как
    только длина перекрывает цель, поэтому лишние прутки не добавляются.
    """
    if max_weld_segments <= 0 or not pieces:
        return []

    max_members = max_weld_segments + 1
    candidates = sorted(
        (p for p in pieces if p.available is None or p.available > 0),
        key=lambda p: (-p.length, p.origin != StockOrigin.REMNANT, p.id),
    )
    if not candidates:
        return []
    longest = candidates[0].length
    if longest * max_members + LENGTH_TOLERANCE < target_length:
        return []

    found: List[Tuple[StockItem, ...]] = []
    nodes = 0
    members: List[StockItem] = []
    used = [0] * len(candidates)

    def search(start: int, total: float):
        nonlocal nodes
        if nodes >= max_nodes:
            return
        nodes += 1

        if total + LENGTH_TOLERANCE >= target_length:
            if len(members) >= 2:
                found.append(tuple(members))
            return
        slots = max_members - len(members)
        if slots <= 0 or total + longest * slots + LENGTH_TOLERANCE < target_length:
            return

        for index in range(start, len(candidates)):
            piece = candidates[index]
            if piece.available is not None and used[index] >= piece.available:
                continue
            # Остаток оставшимися слотами не перекрыть даже этой длиной
            if total + piece.length * slots + LENGTH_TOLERANCE < target_length:
                break
            used[index] += 1
            members.append(piece)
            search(index, total + piece.length)
            members.pop()
            used[index] -= 1

    search(0, 0.0)

    if nodes >= max_nodes:
        logger.debug(f"⚠️ Перебор сварных сборок ограничен {max_nodes} узлами")

    composites = [make_composite(combo) for combo in found]
    composites.sort(key=lambda c: (round(c.length, 6), c.weld_count, c.id))
    composites = composites[:max_composites]

    logger.debug(f"🔗 Сварные сборки для {target_length:.0f}мм: {len(composites)} (узлов {nodes})")
    return composites
