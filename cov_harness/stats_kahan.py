# SPDX-FileCopyrightText: 2025 Yuzuki Fujita
# SPDX-License-Identifier: BSD-3-Clause

from dataclasses import dataclass


@dataclass
class KahanSum:
    """丸め誤差を補正しながら和を逐次計算するクラス（Kahan法）。"""

    total: float = 0.0
    correction: float = 0.0

    def add(self, value: float) -> None:
        y = value - self.correction
        t = self.total + y
        # t - total で実際に足された量を取り出し、失われた下位ビットを次回に回す
        self.correction = (t - self.total) - y
        self.total = t

    def merge(self, other: "KahanSum") -> None:
        """別の KahanSum の現在値を add 経由で加える。"""
        self.add(other.value())

    def value(self) -> float:
        return self.total + self.correction
