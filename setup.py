# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import io
import os

from setuptools import find_packages, setup

from ecosched.__misc__ import __version__

readme_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), "README.md")
readme = io.open(readme_path, encoding="utf-8").read() if os.path.exists(readme_path) else ""

setup(
    name="ecosched",
    version=__version__,
    description="Energy-aware task placement and VM rebalancing engine",
    long_description=readme,
    long_description_content_type="text/markdown",
    author="ecosched Team",
    license="MIT License",
    platforms=["Windows", "Linux", "macOS"],
    keywords=[
        "energy-efficiency",
        "scheduling",
        "virtual-machine",
        "live-migration",
        "simulator",
    ],
    classifiers=[
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Natural Language :: English",
        "Operating System :: MacOS",
        "Operating System :: Microsoft :: Windows",
        "Operating System :: POSIX",
        "Operating System :: Unix",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3",
        "Topic :: System :: Distributed Computing",
    ],
    python_requires=">=3.7",
    install_requires=[
        "numpy",
        "pandas",
        "PyYAML",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "ecosched=ecosched.cli.ecosched:main",
        ],
    },
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    package_data={
        "ecosched.scheduler": ["*.yml"],
        "ecosched.simulator": ["topologies/*/*.yml"],
    },
    zip_safe=False,
)
