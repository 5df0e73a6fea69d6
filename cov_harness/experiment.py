# SPDX-FileCopyrightText: 2025 Yuzuki Fujita
# SPDX-License-Identifier: BSD-3-Clause

import math
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from .stats_covariance import make_accumulators

EPS = 1e-12

MODES = ("stream", "batch")
DEFAULT_MEANS = (100000.0, 10000000.0)


@dataclass
class ExperimentConfig:
    """1回の実験（ある平均値・サンプル数）の設定。"""

    mean: float = 100000.0
    count: int = 10_000_000
    checkpoint_interval: int = 0
    x_offset: float = 1.0
    y_offset: float = 1.0
    mode: str = "stream"

    def __post_init__(self) -> None:
        # 0 は「全体の1%ごと」を意味する
        if self.checkpoint_interval == 0:
            self.checkpoint_interval = max(1, self.count // 100)

    def validate(self) -> None:
        if self.count < 1:
            raise ValueError(f"count は1以上にしてください（count={self.count}）")
        if self.checkpoint_interval < 1:
            raise ValueError(
                f"checkpoint_interval は正の値にしてください（{self.checkpoint_interval}）"
            )
        if self.mode not in MODES:
            raise ValueError(f"mode は {MODES} のいずれかです（mode={self.mode!r}）")
        for label, v in (("mean", self.mean), ("x_offset", self.x_offset), ("y_offset", self.y_offset)):
            if not math.isfinite(v):
                raise ValueError(f"{label} が有限値ではありません（{v}）")
        if self.x_offset == 0.0 or self.y_offset == 0.0:
            raise ValueError("offset が0だと真の共分散が0になり相対誤差を定義できません")


@dataclass(frozen=True)
class Checkpoint:
    """チェックポイントでの各実装の相対誤差[%]と推定値。"""

    index: int
    errors: Dict[str, float]
    estimates: Dict[str, float]


@dataclass
class RunResult:
    config: ExperimentConfig
    analytic: float
    names: List[str]
    checkpoints: List[Checkpoint] = field(default_factory=list)
    max_errors: Dict[str, float] = field(default_factory=dict)


def alternating_samples(
    mean_x: float,
    mean_y: float,
    x_offset: float,
    y_offset: float,
    count: int,
) -> Iterator[Tuple[float, float]]:
    """(mean - d, mean + d, mean - d, ...) を x, y 同符号で交互に生成する。"""
    dx = x_offset
    dy = y_offset
    for _ in range(count):
        dx = -dx
        dy = -dy
        yield mean_x + dx, mean_y + dy


def analytic_covariance(config: ExperimentConfig) -> float:
    return config.x_offset * config.y_offset


def relative_error(target: float, value: float) -> float:
    return abs(value - target) / max(EPS, abs(target))


def run_experiment(
    config: ExperimentConfig,
    on_checkpoint: Optional[Callable[[Checkpoint], None]] = None,
) -> RunResult:
    """
    全実装に同じサンプル対を順番に与え、チェックポイントごとに誤差を記録する。

    stream モードでは checkpoint_interval サンプルごとと最後のサンプルで、batch モードでは
    最後に1回だけ covariance() を読む。読み出しは状態を変更しない。
    """
    config.validate()

    accumulators = make_accumulators()
    names = [acc.name() for acc in accumulators]
    result = RunResult(
        config=config,
        analytic=analytic_covariance(config),
        names=names,
        max_errors={name: 0.0 for name in names},
    )

    def take_checkpoint(index: int) -> None:
        errors: Dict[str, float] = {}
        estimates: Dict[str, float] = {}
        for name, acc in zip(names, accumulators):
            est = acc.covariance()
            err = relative_error(result.analytic, est) * 100
            estimates[name] = est
            errors[name] = err
            result.max_errors[name] = max(result.max_errors[name], err)

        cp = Checkpoint(index=index, errors=errors, estimates=estimates)
        result.checkpoints.append(cp)
        if on_checkpoint is not None:
            on_checkpoint(cp)

    streaming = config.mode == "stream"
    samples = alternating_samples(
        config.mean, config.mean, config.x_offset, config.y_offset, config.count
    )
    for i, (x, y) in enumerate(samples, start=1):
        for acc in accumulators:
            acc.add(x, y)
        if streaming and i % config.checkpoint_interval == 0:
            take_checkpoint(i)

    # 最終状態は必ず1回報告する（count が間隔の倍数なら上のループで記録済み）
    if not streaming or config.count % config.checkpoint_interval != 0:
        take_checkpoint(config.count)

    return result


def run_sweep(
    means: Iterable[float] = DEFAULT_MEANS,
    count: int = 10_000_000,
    checkpoint_interval: int = 0,
    offset: float = 1.0,
    mode: str = "stream",
    on_checkpoint: Optional[Callable[[ExperimentConfig, Checkpoint], None]] = None,
    on_result: Optional[Callable[[RunResult], None]] = None,
) -> List[RunResult]:
    """平均値ごとに独立した実験を実行する。"""
    configs = [
        ExperimentConfig(
            mean=float(mean),
            count=count,
            checkpoint_interval=checkpoint_interval,
            x_offset=offset,
            y_offset=offset,
            mode=mode,
        )
        for mean in means
    ]
    return _run_all(configs, on_checkpoint, on_result)


def run_batches(
    mean: float,
    sizes: Sequence[int],
    offset: float = 1.0,
    on_checkpoint: Optional[Callable[[ExperimentConfig, Checkpoint], None]] = None,
    on_result: Optional[Callable[[RunResult], None]] = None,
) -> List[RunResult]:
    """サンプル数を変えて batch モードで実行し、最終値だけを比較する。"""
    configs = [
        ExperimentConfig(mean=float(mean), count=int(n), x_offset=offset, y_offset=offset, mode="batch")
        for n in sizes
    ]
    return _run_all(configs, on_checkpoint, on_result)


def _run_all(
    configs: List[ExperimentConfig],
    on_checkpoint: Optional[Callable[[ExperimentConfig, Checkpoint], None]],
    on_result: Optional[Callable[[RunResult], None]],
) -> List[RunResult]:
    # 途中で不正な設定に当たらないよう、実行前に全部検証する
    for config in configs:
        config.validate()

    results: List[RunResult] = []
    for config in configs:
        cb = None
        if on_checkpoint is not None:
            cb = _bind(on_checkpoint, config)
        result = run_experiment(config, cb)
        if on_result is not None:
            on_result(result)
        results.append(result)
    return results


def _bind(
    fn: Callable[[ExperimentConfig, Checkpoint], None],
    config: ExperimentConfig,
) -> Callable[[Checkpoint], None]:
    return lambda cp: fn(config, cp)
