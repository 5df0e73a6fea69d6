# SPDX-FileCopyrightText: 2025 Yuzuki Fujita
# SPDX-License-Identifier: BSD-3-Clause

from typing import Dict, List, Optional, Sequence, Tuple, Union

from .experiment import Checkpoint, RunResult

COLUMN_WIDTH = 25
PRECISION = 10

Cell = Union[str, int, float]


def format_cell(value: Cell, precision: int = PRECISION) -> str:
    if isinstance(value, float):
        return f"{value:.{precision}g}"
    return str(value)


def format_row(
    cells: Sequence[Cell],
    precision: int = PRECISION,
    column_width: int = COLUMN_WIDTH,
) -> str:
    """各セルを左寄せで column_width 桁にそろえる（幅を超えるセルは詰めない）。"""
    return "".join(format_cell(c, precision).ljust(column_width) for c in cells)


def format_checkpoint(
    checkpoint: Checkpoint,
    names: Sequence[str],
    precision: int = PRECISION,
    column_width: int = COLUMN_WIDTH,
) -> str:
    cells: List[Cell] = [checkpoint.index]
    cells.extend(checkpoint.errors[name] for name in names)
    return format_row(cells, precision, column_width)


def format_table(
    result: RunResult,
    precision: int = PRECISION,
    column_width: int = COLUMN_WIDTH,
) -> List[str]:
    """RunResult を「タイトル・ヘッダ・各チェックポイント・MaxError」の行に整形する。"""
    lines = [f"mean: {result.config.mean:f}"]
    lines.append(format_row(["Count", *result.names], precision, column_width))
    for cp in result.checkpoints:
        lines.append(format_checkpoint(cp, result.names, precision, column_width))

    max_row: List[Cell] = ["MaxError"]
    max_row.extend(result.max_errors[name] for name in result.names)
    lines.append(format_row(max_row, precision, column_width))
    return lines


class TableAssembler:
    """
    別々に届くチェックポイントと実験結果を実験IDごとにまとめ、表1つ分がそろったら返す。

    チェックポイントと結果は別トピックで届くので到着順は仮定しない。
    結果側の expected（チェックポイント数）に達した時点で完了とみなす。
    """

    def __init__(self) -> None:
        self.checkpoints: Dict[str, List[Checkpoint]] = {}
        self.results: Dict[str, Tuple[RunResult, int]] = {}

    def add_checkpoint(self, run_id: str, checkpoint: Checkpoint) -> Optional[RunResult]:
        self.checkpoints.setdefault(run_id, []).append(checkpoint)
        return self._finish(run_id)

    def add_result(self, run_id: str, result: RunResult, expected: int) -> Optional[RunResult]:
        self.results[run_id] = (result, expected)
        return self._finish(run_id)

    def pending(self) -> List[str]:
        return sorted(set(self.checkpoints) | set(self.results))

    def _finish(self, run_id: str) -> Optional[RunResult]:
        if run_id not in self.results:
            return None
        result, expected = self.results[run_id]
        received = self.checkpoints.get(run_id, [])
        if len(received) < expected:
            return None

        del self.results[run_id]
        self.checkpoints.pop(run_id, None)
        result.checkpoints = sorted(received, key=lambda cp: cp.index)
        return result
