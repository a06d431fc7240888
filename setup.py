"""
Setup script for gblock

gblock is pure Python: storage comes from ctypes, so there is no native
build step. This script only declares package metadata and dependencies.
"""

from pathlib import Path
from setuptools import setup, find_packages


# Read version from src/gblock/__init__.py
def get_version():
    version_file = Path("src/gblock/__init__.py")
    if version_file.exists():
        for line in version_file.read_text().splitlines():
            if line.startswith("__version__"):
                return line.split("=")[1].strip().strip('"').strip("'")
    return "0.1.0"


# Read long description from README
def get_long_description():
    readme = Path("README.md")
    if readme.exists():
        return readme.read_text(encoding="utf-8")
    return ""


setup(
    name="gblock",
    version=get_version(),
    description="Typed numeric blocks with ownership, views and a fixed cast policy",
    long_description=get_long_description(),
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=find_packages("src"),
    python_requires=">=3.8",
    install_requires=[
        "numpy",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    zip_safe=True,
)
