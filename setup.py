"""Minimal setup.py for loss_simulator package."""

import os
from pathlib import Path

from setuptools import find_packages, setup

# Read the version from _version.py
__version__ = ""
exec(open(os.path.join("loss_simulator", "_version.py")).read())

# Read the README file
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding="utf-8")

setup(
    name="loss_simulator",
    version=__version__,
    description="Monte Carlo claim simulation for insurance pricing risk",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["loss_simulator", "loss_simulator.*"], exclude=["*.tests*"]),
    package_data={"loss_simulator": ["data/parameters/*.yaml"]},
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Financial and Insurance Industry",
        "Topic :: Scientific/Engineering :: Mathematics",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.11",
    install_requires=[
        "numpy>=2.0",
        "pandas>=2.2",
        "pydantic>=2.7",
        "pyyaml>=6.0.1",
        "scipy>=1.13",
        "tqdm>=4.66",
    ],
    extras_require={
        "dev": [
            "pytest>=8.2",
            "pytest-cov>=5.0",
            "pytest-xdist>=3.6",
            "pylint>=3.2",
            "black>=24.4",
            "mypy>=1.10",
            "isort>=5.13",
            "types-PyYAML>=6.0.0",
        ],
        "glm": [
            "statsmodels>=0.14.2",
        ],
    },
    include_package_data=True,
    zip_safe=False,
)
