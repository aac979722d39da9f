#!/usr/bin/env python3
from setuptools import setup, find_packages

setup(
    name="bash-shortcuts",
    version="0.1.0",
    description="Run named shell command shortcuts and track whether they are running",
    license="ISC",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=["pypubsub"],
    extras_require={"test": ["pytest"]},
    entry_points={
        "console_scripts": ["bashshortcuts=bashshortcuts.__main__:main"],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: ISC License (ISCL)",
        "Operating System :: POSIX :: Linux",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Utilities",
    ],
)
