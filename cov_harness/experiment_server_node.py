#!/usr/bin/env python3
# SPDX-FileCopyrightText: 2025 Yuzuki Fujita
# SPDX-License-Identifier: BSD-3-Clause

from typing import List, Optional

import rclpy
from rclpy.node import Node

from cov_harness_interfaces.msg import CovarianceCheckpoint, CovarianceReport
from cov_harness_interfaces.srv import RunCovarianceExperiment

from .experiment import (
    Checkpoint,
    ExperimentConfig,
    RunResult,
    run_batches,
    run_experiment,
    run_sweep,
)


class ExperimentServer(Node):
    """
    共分散アルゴリズムの比較実験を実行するノード。

    1つの設定（平均値・サンプル数）ごとに、
    1. 交互データを全実装に同じ順序で与える
    2. チェックポイントごとに相対誤差をCovarianceCheckpoint としてpublish する
    3. 実行後に最大誤差などをCovarianceReport としてpublish する

    run_on_start が真なら起動直後に means の全平均値で1回ずつ実行する。
    mode が batch のときは count の代わりに sizes の各サンプル数で実行する。
    実験IDは実行ごとに連番を付けて一意にする。
    /experiment/run サービスで任意の設定を1つ実行することもできる。
    """

    def __init__(self) -> None:
        super().__init__("experiment_server")

        self.declare_parameter("checkpoint_topic", "/cov/checkpoint")
        self.declare_parameter("report_topic", "/cov/report")
        self.declare_parameter("means", [100000.0, 10000000.0])
        self.declare_parameter("count", 10000000)
        self.declare_parameter("checkpoint_interval", 0)
        self.declare_parameter("offset", 1.0)
        self.declare_parameter("mode", "stream")
        self.declare_parameter("sizes", [100000, 1000000, 10000000])
        self.declare_parameter("run_on_start", True)

        self.checkpoint_topic = str(self.get_parameter("checkpoint_topic").value)
        self.report_topic = str(self.get_parameter("report_topic").value)
        self.means = [float(m) for m in self.get_parameter("means").value]
        self.count = int(self.get_parameter("count").value)
        self.checkpoint_interval = int(self.get_parameter("checkpoint_interval").value)
        self.offset = float(self.get_parameter("offset").value)
        self.mode = str(self.get_parameter("mode").value)
        self.sizes: List[int] = [int(n) for n in self.get_parameter("sizes").value]
        self.run_seq = 0

        self.pub_checkpoint = self.create_publisher(
            CovarianceCheckpoint, self.checkpoint_topic, 1000
        )
        self.pub_report = self.create_publisher(CovarianceReport, self.report_topic, 10)

        self.create_service(
            RunCovarianceExperiment,
            "/experiment/run",
            self._on_run,
        )

        self.start_timer = None
        if bool(self.get_parameter("run_on_start").value):
            self.start_timer = self.create_timer(0.5, self._run_on_start)

        self.get_logger().info(
            f"checkpoint_topic={self.checkpoint_topic}, report_topic={self.report_topic}, "
            f"means={self.means}, count={self.count}, mode={self.mode}, sizes={self.sizes}"
        )

    def _next_id(self, prefix: str) -> str:
        """prefix に連番を付けた実験IDを返す。同じ prefix でも実行ごとに異なる。"""
        self.run_seq += 1
        return f"{prefix}-{self.run_seq}"

    def _run_on_start(self) -> None:
        """起動時に1回だけ means の全平均値で実験する。"""
        if self.start_timer is not None:
            self.start_timer.cancel()
            self.start_timer = None

        batch = self.mode == "batch"
        prefix = "batch" if batch else "sweep"
        # 実行は1設定ずつ順番に進むので、直前の設定と同一かどうかで ID を切り替える
        current = {"config": None, "id": ""}

        def exp_id_for(config: ExperimentConfig) -> str:
            if current["config"] is not config:
                current["config"] = config
                current["id"] = self._next_id(prefix)
            return current["id"]

        def on_checkpoint(config: ExperimentConfig, cp: Checkpoint) -> None:
            self._publish_checkpoint(exp_id_for(config), config, cp)

        def on_result(result: RunResult) -> None:
            self._publish_result(exp_id_for(result.config), result)

        try:
            if batch:
                for mean in self.means:
                    run_batches(mean, self.sizes, self.offset, on_checkpoint, on_result)
            else:
                run_sweep(
                    self.means,
                    self.count,
                    self.checkpoint_interval,
                    self.offset,
                    self.mode,
                    on_checkpoint,
                    on_result,
                )
        except ValueError as e:
            self.get_logger().error(f"設定が不正です: {e}")

    def run_and_publish(self, exp_id: str, config: ExperimentConfig) -> RunResult:
        """1つの設定を実行し、チェックポイントとレポートをpublish する。"""
        config.validate()
        self.get_logger().info(
            f"実験開始: id={exp_id}, mean={config.mean}, count={config.count}, "
            f"interval={config.checkpoint_interval}, mode={config.mode}"
        )
        result = run_experiment(config, lambda cp: self._publish_checkpoint(exp_id, config, cp))
        self._publish_result(exp_id, result)
        return result

    def _publish_checkpoint(self, exp_id: str, config: ExperimentConfig, cp: Checkpoint) -> None:
        msg = CovarianceCheckpoint()
        msg.stamp = self.get_clock().now().to_msg()
        msg.experiment_id = exp_id
        msg.mean = float(config.mean)
        msg.sample_index = int(cp.index)
        msg.variant_names = list(cp.errors)
        msg.errors_percent = [float(v) for v in cp.errors.values()]
        msg.estimates = [float(cp.estimates[name]) for name in cp.errors]
        self.pub_checkpoint.publish(msg)

    def _publish_result(self, exp_id: str, result: RunResult) -> None:
        self.pub_report.publish(self._to_report(exp_id, result))

        summary = ", ".join(f"{name}={result.max_errors[name]:.3g}%" for name in result.names)
        self.get_logger().info(
            f"実験終了: id={exp_id}, mean={result.config.mean}, count={result.config.count}, "
            f"最大誤差 {summary}"
        )

    def _to_report(self, exp_id: str, result: RunResult) -> CovarianceReport:
        config = result.config
        last: Optional[Checkpoint] = result.checkpoints[-1] if result.checkpoints else None

        rep = CovarianceReport()
        rep.stamp = self.get_clock().now().to_msg()

        rep.experiment_id = exp_id
        rep.mean = float(config.mean)
        rep.x_offset = float(config.x_offset)
        rep.y_offset = float(config.y_offset)
        rep.count = int(config.count)
        rep.checkpoint_interval = int(config.checkpoint_interval)
        rep.mode = config.mode
        rep.analytic = float(result.analytic)

        rep.variant_names = list(result.names)
        rep.max_errors_percent = [float(result.max_errors[n]) for n in result.names]
        if last is not None:
            rep.final_estimates = [float(last.estimates[n]) for n in result.names]
        rep.num_checkpoints = len(result.checkpoints)
        return rep

    def _on_run(
        self,
        req: RunCovarianceExperiment.Request,
        res: RunCovarianceExperiment.Response,
    ) -> RunCovarianceExperiment.Response:
        """実験実行サービスのコールバック。空/0 の項目はパラメータの値で埋める。"""

        exp_id = self._next_id(req.experiment_id if req.experiment_id else "exp")
        count = int(req.count) if req.count else self.count
        interval = int(req.checkpoint_interval) if req.checkpoint_interval else self.checkpoint_interval
        offset = float(req.offset) if req.offset else self.offset
        mode = req.mode if req.mode else self.mode

        config = ExperimentConfig(
            mean=float(req.mean),
            count=count,
            checkpoint_interval=interval,
            x_offset=offset,
            y_offset=offset,
            mode=mode,
        )

        try:
            result = self.run_and_publish(exp_id, config)
        except ValueError as e:
            self.get_logger().error(f"設定が不正です: {e}")
            res.experiment_id = exp_id
            res.accepted = False
            res.message = str(e)
            return res

        res.experiment_id = exp_id
        res.accepted = True
        res.message = "レポートをpublish しました"
        res.variant_names = list(result.names)
        res.max_errors_percent = [float(result.max_errors[n]) for n in result.names]
        return res


def main() -> None:
    rclpy.init()
    node = ExperimentServer()
    try:
        rclpy.spin(node)
    finally:
        node.destroy_node()
        rclpy.shutdown()


if __name__ == "__main__":
    main()
