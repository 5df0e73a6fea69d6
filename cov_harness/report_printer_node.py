#!/usr/bin/python3
# SPDX-FileCopyrightText: 2025 Yuzuki Fujita
# SPDX-License-Identifier: BSD-3-Clause

from typing import Optional

import rclpy
from rclpy.node import Node

from cov_harness_interfaces.msg import CovarianceCheckpoint, CovarianceReport

from .experiment import Checkpoint, ExperimentConfig, RunResult
from .report import TableAssembler, format_table


def checkpoint_from_msg(c: CovarianceCheckpoint) -> Checkpoint:
    names = list(c.variant_names)
    return Checkpoint(
        index=int(c.sample_index),
        errors=dict(zip(names, (float(v) for v in c.errors_percent))),
        estimates=dict(zip(names, (float(v) for v in c.estimates))),
    )


def result_from_msg(r: CovarianceReport) -> RunResult:
    """CovarianceReport から表の作成に必要な RunResult を組み立てる（checkpoints は空）。"""
    names = list(r.variant_names)
    config = ExperimentConfig(
        mean=float(r.mean),
        count=int(r.count),
        checkpoint_interval=int(r.checkpoint_interval),
        x_offset=float(r.x_offset),
        y_offset=float(r.y_offset),
        mode=str(r.mode),
    )
    return RunResult(
        config=config,
        analytic=float(r.analytic),
        names=names,
        max_errors=dict(zip(names, (float(v) for v in r.max_errors_percent))),
    )


class ReportPrinter(Node):
    """チェックポイントとレポートを受信し、実験ごとに表形式で表示するノード。"""

    def __init__(self) -> None:
        super().__init__("report_printer")

        self.declare_parameter("checkpoint_topic", "/cov/checkpoint")
        self.declare_parameter("report_topic", "/cov/report")
        checkpoint_topic = str(self.get_parameter("checkpoint_topic").value)
        report_topic = str(self.get_parameter("report_topic").value)

        self.tables = TableAssembler()

        self.create_subscription(CovarianceCheckpoint, checkpoint_topic, self._on_checkpoint, 1000)
        self.create_subscription(CovarianceReport, report_topic, self._on_report, 10)
        self.get_logger().info(f"レポート購読開始: {checkpoint_topic}, {report_topic}")

    def _on_checkpoint(self, c: CovarianceCheckpoint) -> None:
        self._print(c.experiment_id, self.tables.add_checkpoint(c.experiment_id, checkpoint_from_msg(c)))

    def _on_report(self, r: CovarianceReport) -> None:
        done = self.tables.add_result(r.experiment_id, result_from_msg(r), int(r.num_checkpoints))
        self._print(r.experiment_id, done)

    def _print(self, exp_id: str, result: Optional[RunResult]) -> None:
        """表がそろっていればログとして出力する。"""
        if result is None:
            return
        self.get_logger().info(f"実験ID={exp_id}, mode={result.config.mode}, 真値={result.analytic}")
        for line in format_table(result):
            self.get_logger().info(line)


def main() -> None:
    rclpy.init()
    node = ReportPrinter()
    try:
        rclpy.spin(node)
    finally:
        node.destroy_node()
        rclpy.shutdown()


if __name__ == "__main__":
    main()
