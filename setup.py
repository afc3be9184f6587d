#!/usr/bin/python3
# Setup file for gitrefs
# Copyright (C) 2026 The gitrefs contributors
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later

from setuptools import setup

setup(
    name="gitrefs",
    version="0.1.0",
    description="Python implementation of the git reference store",
    license="Apache-2.0 OR GPL-2.0-or-later",
    python_requires=">=3.10",
    packages=["gitrefs"],
    package_data={"": ["py.typed"]},
    install_requires=[],
    extras_require={
        "fuzzing": ["atheris"],
    },
    entry_points={
        "console_scripts": [
            "gitrefs=gitrefs.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python :: 3",
        "Operating System :: POSIX",
        "Topic :: Software Development :: Version Control",
    ],
)
