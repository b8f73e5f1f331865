#!/usr/bin/env python3
"""
Setup script for WoL-TUI
"""

from setuptools import setup

# Read the README file
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Read the version from the main module
def get_version():
    with open("wol_tui.py", "r", encoding="utf-8") as f:
        for line in f:
            if line.startswith("__version__"):
                return line.split('"')[1]
    return "1.0.0"

setup(
    name="wol-tui",
    version=get_version(),
    author="Cardigans of the Galaxy",
    author_email="",
    description="A keyboard-driven terminal list of machines to wake with Wake-on-LAN magic packets",
    long_description=long_description,
    long_description_content_type="text/markdown",
    py_modules=["wol_tui"],
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: System Administrators",
        "Intended Audience :: Information Technology",
        "Topic :: System :: Networking",
        "Topic :: System :: Systems Administration",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Environment :: Console :: Curses",
    ],
    python_requires=">=3.8",
    install_requires=[
        "netifaces>=0.11.0",
        'windows-curses>=2.3; sys_platform == "win32"',
    ],
    extras_require={
        "dev": [
            "pytest>=6.0",
            "pytest-cov",
            "black",
            "flake8",
        ],
    },
    entry_points={
        "console_scripts": [
            "wol-tui=wol_tui:main",
            "woltui=wol_tui:main",
        ],
    },
    keywords="wake-on-lan, wol, network, magic-packet, tui, curses",
    zip_safe=False,
    include_package_data=True,
)
