# SPDX-FileCopyrightText: 2025 Yuzuki Fujita
# SPDX-License-Identifier: BSD-3-Clause

from abc import ABC, abstractmethod
from typing import List, Tuple, Type

from .stats_kahan import KahanSum


class EmptyAccumulatorError(ValueError):
    """サンプルが1つも入っていない状態で共分散を問い合わせたときの例外。"""


class CovarianceAccumulator(ABC):
    """
    2系列の母共分散（n で割る）を逐次計算するアキュムレータの共通インターフェース。

    add(x, y) でサンプル対を1つずつ取り込み、covariance() で現時点の推定値を返す。
    covariance() は状態を変更しない。
    """

    def __init__(self) -> None:
        self.n = 0

    @abstractmethod
    def add(self, x: float, y: float) -> None:
        ...

    @abstractmethod
    def _estimate(self) -> float:
        ...

    @abstractmethod
    def name(self) -> str:
        ...

    def covariance(self) -> float:
        if self.n == 0:
            raise EmptyAccumulatorError(
                f"{self.name()}: covariance() はサンプルを1つ以上 add してから呼んでください"
            )
        return self._estimate()


class NaiveCovariance(CovarianceAccumulator):
    """Σx, Σy, Σxy を素朴な float 加算で持つ実装。平均が大きいと桁落ちする。"""

    def __init__(self) -> None:
        super().__init__()
        self.sum_x = 0.0
        self.sum_y = 0.0
        self.sum_xy = 0.0

    def add(self, x: float, y: float) -> None:
        self.n += 1
        self.sum_x += x
        self.sum_y += y
        self.sum_xy += x * y

    def _estimate(self) -> float:
        return (self.sum_xy - self.sum_x * self.sum_y / self.n) / self.n

    def name(self) -> str:
        return "Dummy"


class KahanCovariance(CovarianceAccumulator):
    """
    NaiveCovariance と同じ式だが、各和を KahanSum で持つ実装。

    加算の誤差は抑えられるが、最後の引き算 Σxy - ΣxΣy/n での桁落ちは残る。
    """

    def __init__(self) -> None:
        super().__init__()
        self.sum_x = KahanSum()
        self.sum_y = KahanSum()
        self.sum_xy = KahanSum()

    def add(self, x: float, y: float) -> None:
        self.n += 1
        self.sum_x.add(x)
        self.sum_y.add(y)
        self.sum_xy.add(x * y)

    def _estimate(self) -> float:
        sum_x = self.sum_x.value()
        sum_y = self.sum_y.value()
        return (self.sum_xy.value() - sum_x * sum_y / self.n) / self.n

    def name(self) -> str:
        return "Kahan"


class WelfordCovariance(CovarianceAccumulator):
    """平均と偏差積の和を逐次更新する実装（Welford法）。大きな和を作らない。"""

    def __init__(self) -> None:
        super().__init__()
        self.mean_x = 0.0
        self.mean_y = 0.0
        self.c = 0.0

    def add(self, x: float, y: float) -> None:
        self.n += 1
        delta_x = x - self.mean_x
        self.mean_x += delta_x / self.n
        # 順序に注意：更新後の mean_x と更新前の mean_y を掛ける
        self.c += (x - self.mean_x) * (y - self.mean_y)
        self.mean_y += (y - self.mean_y) / self.n

    def _estimate(self) -> float:
        return self.c / self.n

    def name(self) -> str:
        return "Welford"


VARIANTS: Tuple[Type[CovarianceAccumulator], ...] = (
    NaiveCovariance,
    KahanCovariance,
    WelfordCovariance,
)


def make_accumulators() -> List[CovarianceAccumulator]:
    """比較対象の3実装を、レポートの列順で新しく生成する。"""
    return [cls() for cls in VARIANTS]
