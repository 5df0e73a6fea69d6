# SPDX-FileCopyrightText: 2025 Yuzuki Fujita
# SPDX-License-Identifier: BSD-3-Clause

from launch import LaunchDescription
from launch_ros.actions import Node


def generate_launch_description() -> LaunchDescription:
    server = Node(
        package="cov_harness",
        executable="experiment_server_node",
        name="experiment_server",
        output="screen",
        parameters=[
            {"checkpoint_topic": "/cov/checkpoint"},
            {"report_topic": "/cov/report"},
            {"means": [100000.0, 10000000.0]},
            {"count": 10000000},
            {"checkpoint_interval": 0},
            {"offset": 1.0},
            {"mode": "stream"},
            {"sizes": [100000, 1000000, 10000000]},
            {"run_on_start": True},
        ],
    )

    printer = Node(
        package="cov_harness",
        executable="report_printer_node",
        name="report_printer",
        output="screen",
        parameters=[
            {"checkpoint_topic": "/cov/checkpoint"},
            {"report_topic": "/cov/report"},
        ],
    )

    return LaunchDescription([printer, server])
