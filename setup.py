#!/usr/bin/env python3
"""
Setup script for the Mumble client session core
"""

from setuptools import setup, find_namespace_packages

setup(
    name="mumble-client",
    version="0.1.0",
    description="Mumble voice chat client: version/authentication handshake and message dispatch",
    packages=find_namespace_packages(include=["mumble", "mumble.*"]),
    install_requires=[
        "websockets==15.0",
        "click==8.1.7",
        "typer==0.12.3",
        "rich==13.9.2",
        "PyYAML==6.0.2",
    ],
    extras_require={
        "test": [
            "pytest==8.4.2",
            "pytest-asyncio==1.2.0",
        ],
    },
    python_requires=">=3.9",
    entry_points={
        'console_scripts': [
            'mumble-client=mumble.client.mumble_cli:main',
        ],
    },
)
