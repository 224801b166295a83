#!/usr/bin/env python3
"""
Setup script for FocusLens, the real-time behavioral attention index.
"""

import os
import sys
from setuptools import setup, find_packages
from setuptools.command.develop import develop

HERE = os.path.abspath(os.path.dirname(__file__))


def read_requirements(filename):
    """Read requirements from file."""
    with open(os.path.join(HERE, filename), 'r') as f:
        return [line.strip() for line in f if line.strip() and not line.startswith('#')]


def check_system_requirements():
    """Check if system meets requirements."""
    if sys.version_info < (3, 9):
        print("ERROR: Python 3.9 or higher is required")
        return False
    return True


def create_directories():
    """Create the runtime directories used for logs and config files."""
    for directory in ("logs", "data/configs"):
        os.makedirs(directory, exist_ok=True)


class CustomDevelop(develop):
    """Custom develop command."""

    def run(self):
        """Run custom development installation."""
        if not check_system_requirements():
            sys.exit(1)

        develop.run(self)
        create_directories()


# Read README for long description
def read_readme():
    """Read README file."""
    try:
        with open(os.path.join(HERE, "README.md"), "r", encoding="utf-8") as f:
            return f.read()
    except FileNotFoundError:
        return "Real-time behavioral attention index from facial landmarks"


setup(
    name="focuslens",
    version="1.0.0",
    author="FocusLens Team",
    description="Real-time behavioral attention index from facial landmarks",
    long_description=read_readme(),
    long_description_content_type="text/markdown",
    packages=find_packages(include=["focuslens", "focuslens.*"]),
    py_modules=["main"],
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Education",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Scientific/Engineering :: Image Recognition",
    ],
    python_requires=">=3.9",
    install_requires=read_requirements("requirements.txt"),
    extras_require={
        "dev": [
            "pytest>=7.4.2",
            "black>=23.9.1",
            "flake8>=6.1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "focuslens=main:main",
        ],
    },
    cmdclass={
        "develop": CustomDevelop,
    },
    keywords=[
        "attention",
        "computer-vision",
        "eye-aspect-ratio",
        "face-mesh",
        "mediapipe",
        "real-time",
        "monitoring",
        "education",
    ],
)
