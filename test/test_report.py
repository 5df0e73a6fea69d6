# SPDX-FileCopyrightText: 2025 Yuzuki Fujita
# SPDX-License-Identifier: BSD-3-Clause

from cov_harness.experiment import Checkpoint, ExperimentConfig, RunResult, run_experiment
from cov_harness.report import (
    TableAssembler,
    format_cell,
    format_checkpoint,
    format_row,
    format_table,
)


def test_format_cell():
    assert format_cell(1.0) == "1"
    assert format_cell(0.123456789012345) == "0.123456789"
    assert format_cell(1e-13) == "1e-13"
    assert format_cell(300) == "300"
    assert format_cell("MaxError") == "MaxError"


def test_format_row_pads_columns():
    row = format_row(["Count", "Dummy"], column_width=8)

    assert row == "Count   Dummy   "


def test_format_checkpoint_uses_name_order():
    cp = Checkpoint(
        index=100,
        errors={"Dummy": 2.0, "Welford": 0.0},
        estimates={"Dummy": 1.02, "Welford": 1.0},
    )

    line = format_checkpoint(cp, ["Welford", "Dummy"], column_width=5)

    assert line == "100  0    2    "


def test_format_table():
    result = run_experiment(ExperimentConfig(mean=100000.0, count=40, checkpoint_interval=20))

    lines = format_table(result)

    assert lines[0] == "mean: 100000.000000"
    assert lines[1].split() == ["Count", "Dummy", "Kahan", "Welford"]
    assert [line.split()[0] for line in lines[2:-1]] == ["20", "40"]
    assert lines[-1].split()[0] == "MaxError"
    assert len(lines) == 5
    assert all(len(line) == 25 * 4 for line in lines[1:])


def make_result(count=40, interval=20):
    return run_experiment(ExperimentConfig(mean=100000.0, count=count, checkpoint_interval=interval))


def summary_of(result):
    # チェックポイントを持たない、レポート側だけの RunResult
    return RunResult(
        config=result.config,
        analytic=result.analytic,
        names=list(result.names),
        max_errors=dict(result.max_errors),
    )


def test_assembler_checkpoints_first():
    result = make_result()
    tables = TableAssembler()

    for cp in result.checkpoints:
        assert tables.add_checkpoint("sweep-1", cp) is None
    done = tables.add_result("sweep-1", summary_of(result), len(result.checkpoints))

    assert done is not None
    assert format_table(done) == format_table(result)
    assert tables.pending() == []


def test_assembler_result_before_checkpoints():
    result = make_result()
    tables = TableAssembler()

    assert tables.add_result("exp-1", summary_of(result), 2) is None
    assert tables.add_checkpoint("exp-1", result.checkpoints[1]) is None
    done = tables.add_checkpoint("exp-1", result.checkpoints[0])

    assert done is not None
    assert [cp.index for cp in done.checkpoints] == [20, 40]
    assert tables.pending() == []


def test_assembler_keeps_runs_apart():
    first = make_result()
    second = make_result(count=30, interval=10)
    tables = TableAssembler()

    for cp in first.checkpoints:
        tables.add_checkpoint("exp-1", cp)
    for cp in second.checkpoints:
        tables.add_checkpoint("exp-2", cp)

    done = tables.add_result("exp-2", summary_of(second), len(second.checkpoints))

    assert [cp.index for cp in done.checkpoints] == [10, 20, 30]
    assert tables.pending() == ["exp-1"]
