import os
from glob import glob
from setuptools import setup

package_name = "cov_harness"

setup(
    name=package_name,
    version="0.1.0",
    packages=[package_name],
    data_files=[
        ("share/ament_index/resource_index/packages",
            ["resource/" + package_name]),
        ("share/" + package_name, ["package.xml"]),
        (os.path.join("share", package_name, "launch"), glob("launch/*.launch.py")),
        (os.path.join("share", package_name, "test"), ["test/test.bash"]),
    ],
    install_requires=["setuptools"],
    extras_require={"test": ["pytest"]},
    tests_require=["pytest"],
    zip_safe=True,
    maintainer="Yuzuki Fujita",
    maintainer_email="fujifujiyuzunoki@icloud.com",
    description="逐次共分散アルゴリズムの数値誤差比較ハーネス（素朴和・Kahan・Welford）",
    license="BSD-3-Clause",
    entry_points={
        "console_scripts": [
            "experiment_server_node = cov_harness.experiment_server_node:main",
            "report_printer_node = cov_harness.report_printer_node:main",
        ],
    },
)
