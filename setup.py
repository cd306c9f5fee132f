#!/usr/bin/env python3
"""
Setup configuration for virtcheck CLI
"""
from setuptools import setup, find_packages

setup(
    name='virtcheck',
    version='1.0.0',
    description='ContainerDisk VMI end-to-end harness for KubeVirt clusters',
    packages=find_packages(exclude=['tests', 'tests.*']),
    python_requires='>=3.8',
    install_requires=[
        'click>=8.1.7',
        'rich>=13.7.0',
        'pyyaml>=6.0.3',
        'pexpect>=4.9.0',
    ],
    extras_require={
        'test': [
            'pytest>=8.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'virtcheck=virtcheck.cli:main',
        ],
    },
)
